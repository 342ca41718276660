import uuid
from typing import List

from fastapi import APIRouter, Depends
from fastapi_utils.cbv import cbv
from sqlalchemy.ext.asyncio import AsyncSession

from core.get_current_user import get_current_user
from core.get_db import get_db_async
from core.safe_handler import safe_handler
from models.models import User
from schemas.schema import CommissionOut, MarkSaleSchema, ReviewSaleSchema, SaleOut
from services.sale_service import SaleService

router = APIRouter(tags=["Property Sales And Finance Review"])


@cbv(router=router)
class SalesRoutes:
    @router.post("/mark-sold", response_model=SaleOut)
    @safe_handler
    async def mark_as_sold(
        self,
        data: MarkSaleSchema,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        return await SaleService(db).mark_as_sold(admin=current_user, data=data)

    @router.post("/review", response_model=SaleOut)
    @safe_handler
    async def review(
        self,
        data: ReviewSaleSchema,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        return await SaleService(db).review_sale(reviewer=current_user, data=data)

    @router.get("/pending", response_model=List[SaleOut])
    @safe_handler
    async def pending(
        self,
        page: int = 1,
        per_page: int = 20,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        return await SaleService(db).list_pending_sales(current_user, page, per_page)

    @router.get("/{sale_id}/commissions", response_model=List[CommissionOut])
    @safe_handler
    async def commissions(
        self,
        sale_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        return await SaleService(db).list_sale_commissions(current_user, sale_id)
