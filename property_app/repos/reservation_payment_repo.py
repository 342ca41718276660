import uuid
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload

from core.paginate import PaginatePage
from models.enums import PaymentStatus
from models.models import ReservationFeePayment


class ReservationPaymentRepo:
    def __init__(self, db):
        self.db = db

    async def create(
        self,
        *,
        user_id: uuid.UUID,
        property_id: uuid.UUID,
        amount: Decimal,
        reference: str,
        metadata: dict | None = None,
    ) -> ReservationFeePayment:
        payment = ReservationFeePayment(
            user_id=user_id,
            property_id=property_id,
            amount=amount,
            paystack_reference=reference,
            status=PaymentStatus.PENDING,
            payment_metadata=metadata or {},
        )
        self.db.add(payment)
        try:
            await self.db.commit()
            await self.db.refresh(payment)
            return payment
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def get_by_id(self, payment_id: uuid.UUID) -> Optional[ReservationFeePayment]:
        result = await self.db.execute(
            select(ReservationFeePayment)
            .where(ReservationFeePayment.id == payment_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by_reference(self, reference: str) -> Optional[ReservationFeePayment]:
        result = await self.db.execute(
            select(ReservationFeePayment)
            .where(ReservationFeePayment.paystack_reference == reference)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def latest_success(
        self, user_id: uuid.UUID, property_id: uuid.UUID
    ) -> Optional[ReservationFeePayment]:
        result = await self.db.execute(
            select(ReservationFeePayment)
            .where(
                ReservationFeePayment.user_id == user_id,
                ReservationFeePayment.property_id == property_id,
                ReservationFeePayment.status == PaymentStatus.SUCCESS,
            )
            .order_by(ReservationFeePayment.paid_at.desc())
            .limit(1)
        )
        return result.scalars().first()

    async def mark_failed(self, payment_id: uuid.UUID, annotations: dict) -> bool:
        """Move a not-yet-settled payment to FAILED, merging ``annotations`` into its metadata."""
        try:
            current = await self.get_by_id(payment_id)
            if current is None or current.status == PaymentStatus.SUCCESS:
                return False

            metadata = dict(current.payment_metadata or {})
            metadata.update(annotations)

            result = await self.db.execute(
                update(ReservationFeePayment)
                .where(
                    ReservationFeePayment.id == payment_id,
                    ReservationFeePayment.status != PaymentStatus.SUCCESS,
                )
                .values(status=PaymentStatus.FAILED, payment_metadata=metadata)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
            return result.rowcount == 1
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def list_for_user(
        self, user_id: uuid.UUID, page: int = 1, per_page: int = 20
    ) -> List[ReservationFeePayment]:
        result = await self.db.execute(
            select(ReservationFeePayment)
            .options(selectinload(ReservationFeePayment.listing))
            .where(ReservationFeePayment.user_id == user_id)
            .order_by(ReservationFeePayment.created_at.desc())
            .offset(PaginatePage.offset(page, per_page))
            .limit(per_page)
        )
        return result.scalars().all()
