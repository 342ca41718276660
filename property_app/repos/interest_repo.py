import uuid
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models.enums import InterestStatus
from models.models import PropertyInterest


class InterestRepo:
    def __init__(self, db):
        self.db = db

    async def get(
        self, user_id: uuid.UUID, property_id: uuid.UUID
    ) -> Optional[PropertyInterest]:
        result = await self.db.execute(
            select(PropertyInterest)
            .where(
                PropertyInterest.user_id == user_id,
                PropertyInterest.property_id == property_id,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def upsert_active(
        self, user_id: uuid.UUID, property_id: uuid.UUID
    ) -> PropertyInterest:
        stmt = select(PropertyInterest).where(
            PropertyInterest.user_id == user_id,
            PropertyInterest.property_id == property_id,
        )
        interest = (await self.db.execute(stmt)).scalar_one_or_none()

        try:
            if interest:
                if interest.status != InterestStatus.ACTIVE:
                    interest.status = InterestStatus.ACTIVE
                    await self.db.commit()
                    await self.db.refresh(interest)
                return interest

            interest = PropertyInterest(
                user_id=user_id,
                property_id=property_id,
                status=InterestStatus.ACTIVE,
            )
            self.db.add(interest)
            await self.db.commit()
            await self.db.refresh(interest)
            return interest
        except IntegrityError:
            await self.db.rollback()
            result = await self.db.execute(
                stmt.execution_options(populate_existing=True)
            )
            return result.scalar_one()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def settle_for_sale(
        self, property_id: uuid.UUID, buyer_id: uuid.UUID
    ) -> None:
        """Stage buyer -> PURCHASED and every other active interest -> EXPIRED. Caller commits."""
        await self.db.execute(
            update(PropertyInterest)
            .where(
                PropertyInterest.property_id == property_id,
                PropertyInterest.user_id == buyer_id,
            )
            .values(status=InterestStatus.PURCHASED)
            .execution_options(synchronize_session=False)
        )
        await self.db.execute(
            update(PropertyInterest)
            .where(
                PropertyInterest.property_id == property_id,
                PropertyInterest.user_id != buyer_id,
                PropertyInterest.status == InterestStatus.ACTIVE,
            )
            .values(status=InterestStatus.EXPIRED)
            .execution_options(synchronize_session=False)
        )
