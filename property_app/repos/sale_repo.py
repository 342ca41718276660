import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from core.paginate import PaginatePage
from models.enums import CommissionStatus, FinanceStatus, SaleStatus
from models.models import Commission, Sale


class SaleRepo:
    def __init__(self, db):
        self.db = db

    async def get_by_id(self, sale_id: uuid.UUID) -> Optional[Sale]:
        result = await self.db.execute(
            select(Sale)
            .where(Sale.id == sale_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def stage(self, sale: Sale) -> Sale:
        self.db.add(sale)
        await self.db.flush()
        return sale

    async def record_review(
        self,
        sale_id: uuid.UUID,
        *,
        reviewer_id: uuid.UUID,
        decision: FinanceStatus,
        comment: str | None,
        now: datetime,
    ) -> bool:
        """Stage the one-shot finance decision; False when the sale was already reviewed."""
        confirmed = decision == FinanceStatus.CONFIRMED
        result = await self.db.execute(
            update(Sale)
            .where(Sale.id == sale_id, Sale.finance_status == FinanceStatus.PENDING)
            .values(
                finance_status=decision,
                finance_reviewed_by_id=reviewer_id,
                finance_reviewed_at=now,
                finance_comment=comment,
                status=SaleStatus.CONFIRMED if confirmed else SaleStatus.DISPUTED,
                company_account_paid=confirmed,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def list_pending(self, page: int = 1, per_page: int = 20) -> List[Sale]:
        result = await self.db.execute(
            select(Sale)
            .where(Sale.finance_status == FinanceStatus.PENDING)
            .order_by(Sale.marked_sold_at.asc())
            .offset(PaginatePage.offset(page, per_page))
            .limit(per_page)
        )
        return result.scalars().all()

    async def commit(self) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def rollback(self) -> None:
        await self.db.rollback()


class CommissionRepo:
    def __init__(self, db):
        self.db = db

    async def stage(
        self, *, sale_id: uuid.UUID, admin_id: uuid.UUID, amount: Decimal
    ) -> Commission:
        commission = Commission(
            sale_id=sale_id,
            admin_id=admin_id,
            amount=amount,
            status=CommissionStatus.PENDING,
        )
        self.db.add(commission)
        await self.db.flush()
        return commission

    async def list_for_sale(self, sale_id: uuid.UUID) -> List[Commission]:
        result = await self.db.execute(
            select(Commission).where(Commission.sale_id == sale_id)
        )
        return result.scalars().all()
