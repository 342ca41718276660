import uuid
from datetime import datetime
from typing import List

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from core.date_helper import utcnow
from models.enums import MessageType
from models.models import Chat, ChatMessage


class ChatMessageRepo:
    def __init__(self, db):
        self.db = db

    async def append(
        self,
        *,
        chat_id: uuid.UUID,
        sender_id: uuid.UUID,
        message: str,
        message_type: MessageType = MessageType.TEXT,
        is_ai_generated: bool = False,
        metadata: dict | None = None,
        created_at: datetime | None = None,
    ) -> ChatMessage:
        """Stage a message at the chat's next sequence position. Caller commits."""
        # bumping the chat row serialises concurrent appends on the same chat
        await self.db.execute(
            update(Chat)
            .where(Chat.id == chat_id)
            .values(message_seq=Chat.message_seq + 1)
            .execution_options(synchronize_session=False)
        )
        seq = (
            await self.db.execute(select(Chat.message_seq).where(Chat.id == chat_id))
        ).scalar_one()

        entry = ChatMessage(
            chat_id=chat_id,
            sender_id=sender_id,
            message=message,
            message_type=message_type,
            is_ai_generated=is_ai_generated,
            message_metadata=metadata,
            seq=seq,
            created_at=created_at or utcnow(),
        )
        self.db.add(entry)
        await self.db.flush()
        return entry

    async def add(self, **kwargs) -> ChatMessage:
        try:
            entry = await self.append(**kwargs)
            await self.db.commit()
            await self.db.refresh(entry)
            return entry
        except SQLAlchemyError:
            await self.db.rollback()
            raise

    async def list_for_chat(
        self, chat_id: uuid.UUID, limit: int = 50, offset: int = 0
    ) -> List[ChatMessage]:
        result = await self.db.execute(
            select(ChatMessage)
            .where(ChatMessage.chat_id == chat_id)
            .order_by(ChatMessage.seq.asc())
            .offset(offset)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return result.scalars().all()

    async def mark_read(self, chat_id: uuid.UUID, reader_id: uuid.UUID) -> int:
        try:
            result = await self.db.execute(
                update(ChatMessage)
                .where(
                    ChatMessage.chat_id == chat_id,
                    ChatMessage.sender_id != reader_id,
                    ChatMessage.read_at.is_(None),
                )
                .values(read_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
            return result.rowcount
        except SQLAlchemyError:
            await self.db.rollback()
            raise
