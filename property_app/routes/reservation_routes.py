import uuid
from typing import List

from fastapi import APIRouter, Depends
from fastapi_utils.cbv import cbv
from sqlalchemy.ext.asyncio import AsyncSession

from core.get_current_user import get_current_user
from core.get_db import get_db_async
from core.safe_handler import safe_handler
from models.models import User
from schemas.schema import (
    CancelReservationOut,
    CancelReservationSchema,
    InitializeReservationSchema,
    ReservationInitOut,
    ReservationPaymentOut,
    ReservationStatusOut,
    ReservationVerifyOut,
)
from services.reservation_service import ReservationService

router = APIRouter(tags=["Property Reservations"])


@cbv(router=router)
class ReservationRoutes:
    @router.post("/initialize", response_model=ReservationInitOut)
    @safe_handler
    async def initialize(
        self,
        data: InitializeReservationSchema,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        return await ReservationService(db).initialize_reservation_fee(
            user_id=current_user.id, property_id=data.property_id
        )

    @router.get("/verify/{reference}", response_model=ReservationVerifyOut)
    @safe_handler
    async def verify(
        self,
        reference: str,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        return await ReservationService(db).verify_reservation_fee(reference)

    @router.get("/status/{property_id}", response_model=ReservationStatusOut)
    @safe_handler
    async def status(
        self,
        property_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        return await ReservationService(db).get_reservation_status(
            user_id=current_user.id, property_id=property_id
        )

    @router.get("/my", response_model=List[ReservationPaymentOut])
    @safe_handler
    async def my_reservations(
        self,
        page: int = 1,
        per_page: int = 20,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        return await ReservationService(db).list_user_reservations(
            current_user.id, page, per_page
        )

    @router.post("/{property_id}/cancel", response_model=CancelReservationOut)
    @safe_handler
    async def cancel(
        self,
        property_id: uuid.UUID,
        data: CancelReservationSchema,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        return await ReservationService(db).cancel_reservation(
            user_id=current_user.id, property_id=property_id, reason=data.reason
        )
