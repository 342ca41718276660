import uuid

from fastapi import APIRouter, Depends
from fastapi_utils.cbv import cbv
from sqlalchemy.ext.asyncio import AsyncSession

from core.get_current_user import get_current_user
from core.get_db import get_db_async
from core.safe_handler import safe_handler
from models.models import User
from schemas.schema import InterestOut, PaymentDetailsOut
from services.interest_service import InterestService

router = APIRouter(tags=["Buyer Interests And Payment Details"])


@cbv(router=router)
class InterestRoutes:
    @router.post("/interests/{property_id}", response_model=InterestOut)
    @safe_handler
    async def express_interest(
        self,
        property_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        return await InterestService(db).express_interest(current_user.id, property_id)

    @router.get("/payments/details/{property_id}", response_model=PaymentDetailsOut)
    @safe_handler
    async def payment_details(
        self,
        property_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        return await InterestService(db).get_payment_details(current_user, property_id)
