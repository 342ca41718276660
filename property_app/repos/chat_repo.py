import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload

from core.paginate import PaginatePage
from models.enums import (
    CLOSABLE_CHAT_STATUSES,
    LIVE_CHAT_STATUSES,
    AgentPaymentStatus,
    ChatStatus,
    ChatType,
    ClosureReason,
)
from models.models import Chat, UserRating


class ChatRepo:
    def __init__(self, db):
        self.db = db

    async def get_by_id(self, chat_id: uuid.UUID) -> Optional[Chat]:
        result = await self.db.execute(
            select(Chat)
            .where(Chat.id == chat_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_with_property(self, chat_id: uuid.UUID) -> Optional[Chat]:
        result = await self.db.execute(
            select(Chat)
            .options(selectinload(Chat.listing))
            .where(Chat.id == chat_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_live_chat(
        self, user_id: uuid.UUID, property_id: uuid.UUID
    ) -> Optional[Chat]:
        result = await self.db.execute(
            select(Chat)
            .where(
                Chat.user_id == user_id,
                Chat.property_id == property_id,
                Chat.status.in_(LIVE_CHAT_STATUSES),
            )
            .order_by(Chat.created_at.desc())
            .limit(1)
        )
        return result.scalars().first()

    async def record_user_message(self, chat_id: uuid.UUID, now: datetime) -> None:
        await self.db.execute(
            update(Chat)
            .where(Chat.id == chat_id)
            .values(
                user_message_count=Chat.user_message_count + 1,
                last_user_message_at=now,
            )
            .execution_options(synchronize_session=False)
        )

    async def record_agent_response(self, chat_id: uuid.UUID, now: datetime) -> None:
        await self.db.execute(
            update(Chat)
            .where(Chat.id == chat_id)
            .values(
                agent_response_count=Chat.agent_response_count + 1,
                last_agent_response_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        await self.db.execute(
            update(Chat)
            .where(Chat.id == chat_id, Chat.status == ChatStatus.OPEN)
            .values(status=ChatStatus.ACTIVE)
            .execution_options(synchronize_session=False)
        )

    async def record_first_response(
        self,
        chat_id: uuid.UUID,
        now: datetime,
        response_minutes: int,
        responsive: bool,
    ) -> bool:
        result = await self.db.execute(
            update(Chat)
            .where(Chat.id == chat_id, Chat.first_agent_response_at.is_(None))
            .values(
                first_agent_response_at=now,
                response_time_minutes=response_minutes,
                was_agent_responsive=responsive,
                agent_missed_first_response=not responsive,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def hand_off(
        self,
        chat_id: uuid.UUID,
        agent_id: uuid.UUID,
        keyword: str,
        now: datetime,
    ) -> bool:
        result = await self.db.execute(
            update(Chat)
            .where(
                Chat.id == chat_id,
                Chat.agent_id.is_(None),
                Chat.status.in_(CLOSABLE_CHAT_STATUSES),
            )
            .values(
                agent_id=agent_id,
                chat_type=ChatType.AGENT,
                ai_phase_ended_at=now,
                handoff_keyword=keyword,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def close_for_payment(
        self,
        chat_id: uuid.UUID,
        admin_id: uuid.UUID,
        details: str | None,
        now: datetime,
    ) -> bool:
        result = await self.db.execute(
            update(Chat)
            .where(Chat.id == chat_id, Chat.status.in_(CLOSABLE_CHAT_STATUSES))
            .values(
                status=ChatStatus.CLOSED,
                payment_received_at=now,
                closed_at=now,
                closed_by_admin_id=admin_id,
                closure_reason=ClosureReason.PAYMENT_RECEIVED,
                payment_confirmation_details=details,
                agent_payment_status=AgentPaymentStatus.PAYMENT_RECEIVED,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def stamp_rating_requested(self, chat_id: uuid.UUID, now: datetime) -> None:
        await self.db.execute(
            update(Chat)
            .where(Chat.id == chat_id)
            .values(rating_requested_at=now)
            .execution_options(synchronize_session=False)
        )

    async def commit(self) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def rollback(self) -> None:
        await self.db.rollback()

    async def list_for_user(
        self,
        user_id: uuid.UUID,
        status: ChatStatus | None = None,
        page: int = 1,
        per_page: int = 20,
    ) -> List[Chat]:
        stmt = select(Chat).where(Chat.user_id == user_id)
        if status:
            stmt = stmt.where(Chat.status == status)
        result = await self.db.execute(
            stmt.order_by(Chat.updated_at.desc())
            .offset(PaginatePage.offset(page, per_page))
            .limit(per_page)
        )
        return result.scalars().all()

    async def list_for_agent(
        self,
        agent_id: uuid.UUID,
        status: ChatStatus | None = None,
        page: int = 1,
        per_page: int = 20,
    ) -> List[Chat]:
        stmt = select(Chat).where(Chat.agent_id == agent_id)
        if status:
            stmt = stmt.where(Chat.status == status)
        result = await self.db.execute(
            stmt.order_by(Chat.updated_at.desc())
            .offset(PaginatePage.offset(page, per_page))
            .limit(per_page)
        )
        return result.scalars().all()

    async def list_all(
        self,
        status: ChatStatus | None = None,
        agent_id: uuid.UUID | None = None,
        page: int = 1,
        per_page: int = 50,
    ) -> List[Chat]:
        stmt = select(Chat)
        if status:
            stmt = stmt.where(Chat.status == status)
        if agent_id:
            stmt = stmt.where(Chat.agent_id == agent_id)
        result = await self.db.execute(
            stmt.order_by(Chat.created_at.desc())
            .offset(PaginatePage.offset(page, per_page))
            .limit(per_page)
        )
        return result.scalars().all()

    async def list_pending_payment(self) -> List[Chat]:
        result = await self.db.execute(
            select(Chat)
            .where(
                Chat.status == ChatStatus.ACTIVE,
                Chat.agent_payment_status == AgentPaymentStatus.PENDING,
            )
            .order_by(Chat.updated_at.desc())
        )
        return result.scalars().all()

    async def list_awaiting_rating(self, page: int = 1, per_page: int = 50) -> List[Chat]:
        rated = select(UserRating.id).where(UserRating.chat_id == Chat.id)
        result = await self.db.execute(
            select(Chat)
            .where(
                Chat.status == ChatStatus.CLOSED,
                Chat.agent_id.is_not(None),
                Chat.rating_requested_at.is_(None),
                ~rated.exists(),
            )
            .order_by(Chat.closed_at.desc())
            .offset(PaginatePage.offset(page, per_page))
            .limit(per_page)
        )
        return result.scalars().all()
