import asyncio
import logging
import uuid

from core.get_db import AsyncSessionLocal
from fintechs.text_generation import GroqTextClient
from models.enums import CLOSABLE_CHAT_STATUSES
from models.models import AI_USER_ID, ChatMessage, Property
from repos.chat_message_repo import ChatMessageRepo
from repos.chat_repo import ChatRepo

logger = logging.getLogger(__name__)

FALLBACK_REPLY = "I'm here, how can I help?"


def property_prompt(prop: Property | None, user_text: str) -> list[dict]:
    messages = []
    if prop is not None:
        messages.append(
            {
                "role": "system",
                "content": (
                    "You are the virtual assistant for a property listing.\n"
                    f"Title: {prop.title}\n"
                    f"Price: {prop.price}\n"
                    f"Location: {prop.location or 'N/A'}\n"
                    f"Category: {prop.category or 'N/A'}\n\n"
                    "Keep replies short and helpful. When the user is ready, tell "
                    "them to reply \"connect me to agent\"."
                ),
            }
        )
    messages.append({"role": "user", "content": user_text})
    return messages


class AssistantReplier:
    """Posts assistant replies in VA chats outside the request that triggered them."""

    def __init__(self, text_generator=None, session_factory=None):
        self.text_generator = text_generator or GroqTextClient()
        self.session_factory = session_factory or AsyncSessionLocal
        self.pending: set[asyncio.Task] = set()

    def schedule(self, chat_id: uuid.UUID, user_text: str) -> asyncio.Task:
        task = asyncio.create_task(self.reply(chat_id, user_text))
        self.pending.add(task)
        task.add_done_callback(self.pending.discard)
        return task

    async def reply(self, chat_id: uuid.UUID, user_text: str) -> ChatMessage | None:
        try:
            async with self.session_factory() as session:
                chat = await ChatRepo(session).get_with_property(chat_id)
                if not chat or chat.agent_id is not None:
                    return None
                if chat.status not in CLOSABLE_CHAT_STATUSES:
                    return None

                result = await self.text_generator.complete(
                    property_prompt(chat.listing, user_text)
                )
                text = (result or {}).get("text") or FALLBACK_REPLY

                return await ChatMessageRepo(session).add(
                    chat_id=chat_id,
                    sender_id=AI_USER_ID,
                    message=text,
                    is_ai_generated=True,
                    metadata={"mode": "AI_PHASE"},
                )
        except Exception:
            logger.exception(f"Assistant reply failed for chat {chat_id}")
            return None
