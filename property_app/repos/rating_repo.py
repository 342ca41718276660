import uuid
from typing import Optional

from sqlalchemy import select

from models.models import ConversationReport, UserRating


class RatingRepo:
    def __init__(self, db):
        self.db = db

    async def get_for_chat(self, chat_id: uuid.UUID) -> Optional[UserRating]:
        result = await self.db.execute(
            select(UserRating).where(UserRating.chat_id == chat_id)
        )
        return result.scalar_one_or_none()

    async def stage(self, rating: UserRating) -> UserRating:
        # unique chat_id makes a racing duplicate fail at flush
        self.db.add(rating)
        await self.db.flush()
        return rating


class ConversationReportRepo:
    def __init__(self, db):
        self.db = db

    async def stage(self, report: ConversationReport) -> ConversationReport:
        self.db.add(report)
        await self.db.flush()
        return report
