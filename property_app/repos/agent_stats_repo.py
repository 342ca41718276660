import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from core.date_helper import utcnow
from models.models import AgentStatistics


class AgentStatsRepo:
    def __init__(self, db):
        self.db = db

    async def get(self, agent_id: uuid.UUID) -> Optional[AgentStatistics]:
        result = await self.db.execute(
            select(AgentStatistics)
            .where(AgentStatistics.agent_id == agent_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def ensure(self, agent_id: uuid.UUID) -> None:
        """Create the agent's statistics row if missing. Commits on creation."""
        if await self.get(agent_id):
            return

        self.db.add(AgentStatistics(agent_id=agent_id))
        try:
            await self.db.commit()
        except IntegrityError:
            # created concurrently
            await self.db.rollback()

    async def increment(
        self,
        agent_id: uuid.UUID,
        *,
        chats_completed: int = 0,
        earnings: Decimal = Decimal("0"),
        ratings_received: int = 0,
        tips: Decimal = Decimal("0"),
    ) -> None:
        """Stage an atomic increment. Caller commits."""
        await self.db.execute(
            update(AgentStatistics)
            .where(AgentStatistics.agent_id == agent_id)
            .values(
                total_chats_completed=AgentStatistics.total_chats_completed
                + chats_completed,
                total_earnings=AgentStatistics.total_earnings + earnings,
                total_ratings_received=AgentStatistics.total_ratings_received
                + ratings_received,
                total_tips_earned=AgentStatistics.total_tips_earned + tips,
                last_activity_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
