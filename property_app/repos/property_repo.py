import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import and_, not_, or_, select, update
from sqlalchemy.exc import SQLAlchemyError

from models.enums import (
    PaymentStatus,
    PropertyStatus,
    ReservationFeeStatus,
)
from models.models import Property, ReservationFeePayment


class PropertyRepo:
    def __init__(self, db):
        self.db = db

    async def get_by_id(self, property_id: uuid.UUID) -> Optional[Property]:
        result = await self.db.execute(
            select(Property)
            .where(Property.id == property_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @staticmethod
    def _live_holder_other_than(user_id: uuid.UUID, now: datetime):
        return and_(
            Property.is_reserved.is_(True),
            Property.current_reservation_by.is_not(None),
            Property.current_reservation_by != user_id,
            Property.reservation_expires_at.is_not(None),
            Property.reservation_expires_at > now,
        )

    async def lock_for_payment(
        self,
        payment: ReservationFeePayment,
        now: datetime,
        expires_at: datetime,
        gateway_metadata: dict | None = None,
    ) -> bool:
        """Settle ``payment`` and hand the property to its payer in one commit.

        Both writes are conditional: the property only moves if no other user
        holds a live reservation and it is not sold, and the payment only moves
        if it is not already SUCCESS. If either condition fails nothing is
        written and False is returned.
        """
        try:
            claim = await self.db.execute(
                update(Property)
                .where(
                    Property.id == payment.property_id,
                    Property.status != PropertyStatus.SOLD,
                    not_(self._live_holder_other_than(payment.user_id, now)),
                )
                .values(
                    is_reserved=True,
                    current_reservation_by=payment.user_id,
                    reservation_started_at=now,
                    reservation_expires_at=expires_at,
                    reservation_fee_status=ReservationFeeStatus.PAID,
                    reservation_fee_paid_at=now,
                    status=PropertyStatus.PENDING,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            if claim.rowcount != 1:
                await self.db.rollback()
                return False

            metadata = dict(payment.payment_metadata or {})
            if gateway_metadata:
                metadata["gateway"] = gateway_metadata

            settle = await self.db.execute(
                update(ReservationFeePayment)
                .where(
                    ReservationFeePayment.id == payment.id,
                    ReservationFeePayment.status != PaymentStatus.SUCCESS,
                )
                .values(
                    status=PaymentStatus.SUCCESS,
                    paid_at=now,
                    payment_metadata=metadata,
                )
                .execution_options(synchronize_session=False)
            )
            if settle.rowcount != 1:
                await self.db.rollback()
                return False

            await self.db.commit()
            return True
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def release_reservation(
        self, property_id: uuid.UUID, user_id: uuid.UUID
    ) -> bool:
        try:
            result = await self.db.execute(
                update(Property)
                .where(
                    Property.id == property_id,
                    Property.current_reservation_by == user_id,
                    Property.status != PropertyStatus.SOLD,
                )
                .values(
                    is_reserved=False,
                    current_reservation_by=None,
                    reservation_started_at=None,
                    reservation_expires_at=None,
                    reservation_fee_status=ReservationFeeStatus.UNPAID,
                    status=PropertyStatus.AVAILABLE,
                )
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
            return result.rowcount == 1
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def release_expired_reservations(self, now: datetime) -> int:
        try:
            result = await self.db.execute(
                update(Property)
                .where(
                    Property.is_reserved.is_(True),
                    Property.reservation_expires_at.is_not(None),
                    Property.reservation_expires_at <= now,
                    Property.status != PropertyStatus.SOLD,
                )
                .values(
                    is_reserved=False,
                    current_reservation_by=None,
                    reservation_started_at=None,
                    reservation_expires_at=None,
                    reservation_fee_status=ReservationFeeStatus.UNPAID,
                    status=PropertyStatus.AVAILABLE,
                )
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
            return result.rowcount
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def place_hold(
        self,
        property_id: uuid.UUID,
        user_id: uuid.UUID,
        now: datetime,
        until: datetime,
    ) -> bool:
        """Take or extend the soft hold unless another user holds it or a live reservation."""
        try:
            result = await self.db.execute(
                update(Property)
                .where(
                    Property.id == property_id,
                    Property.status != PropertyStatus.SOLD,
                    not_(self._live_holder_other_than(user_id, now)),
                    or_(
                        Property.held_by_id.is_(None),
                        Property.held_by_id == user_id,
                        Property.hold_expires_at.is_(None),
                        Property.hold_expires_at <= now,
                    ),
                )
                .values(held_by_id=user_id, hold_expires_at=until)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
            return result.rowcount == 1
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def renew_hold(
        self,
        property_id: uuid.UUID,
        user_id: uuid.UUID,
        now: datetime,
        until: datetime,
    ) -> bool:
        try:
            result = await self.db.execute(
                update(Property)
                .where(
                    Property.id == property_id,
                    Property.held_by_id == user_id,
                    Property.hold_expires_at > now,
                )
                .values(hold_expires_at=until)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
            return result.rowcount == 1
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def release_hold(self, property_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        try:
            result = await self.db.execute(
                update(Property)
                .where(Property.id == property_id, Property.held_by_id == user_id)
                .values(held_by_id=None, hold_expires_at=None)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
            return result.rowcount == 1
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def mark_sold(self, property_id: uuid.UUID) -> bool:
        # not committed: the sale record is written in the same transaction
        result = await self.db.execute(
            update(Property)
            .where(Property.id == property_id, Property.status != PropertyStatus.SOLD)
            .values(
                status=PropertyStatus.SOLD,
                held_by_id=None,
                hold_expires_at=None,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
