import logging
import uuid
from decimal import Decimal

from sqlalchemy.exc import IntegrityError

from core.business_config import MarketplaceConfig, marketplace_config
from core.date_helper import minutes_between, utcnow
from core.errors import BadRequestError, ForbiddenError, NotFoundError
from fire_and_forget.va_reply import AssistantReplier
from models.enums import (
    CLOSABLE_CHAT_STATUSES,
    AgentPaymentStatus,
    ChatStatus,
    ChatType,
    MessageType,
)
from models.models import AI_USER_ID, Chat, ChatMessage, ConversationReport, User, UserRating
from policy.marketplace_policy import MarketplacePolicy
from repos.agent_stats_repo import AgentStatsRepo
from repos.chat_message_repo import ChatMessageRepo
from repos.chat_repo import ChatRepo
from repos.property_repo import PropertyRepo
from repos.rating_repo import ConversationReportRepo, RatingRepo
from repos.user_repo import UserRepo
from services.reservation_service import ReservationService

logger = logging.getLogger(__name__)

HANDOFF_KEYWORDS = (
    "i'm ready to meet my agent",
    "connect me to agent",
    "talk to the agent",
    "ready for agent",
    "agent please",
    "i'm ready for agent",
    "connect to agent",
    "ready to meet agent",
    "transfer to agent",
)
ESCALATE_KEYWORD = "escalate"


def detect_handoff(message: str) -> str | None:
    lower = message.lower().strip().replace("’", "'")
    for keyword in HANDOFF_KEYWORDS:
        if keyword in lower:
            return keyword
    return None


class ChatService:
    def __init__(
        self,
        db,
        reservations: ReservationService | None = None,
        replier: AssistantReplier | None = None,
        config: MarketplaceConfig = marketplace_config,
    ):
        self.db = db
        self.config = config
        self.reservations = reservations or ReservationService(db, config=config)
        self.replier = replier or AssistantReplier()
        self.chat_repo: ChatRepo = ChatRepo(db)
        self.message_repo: ChatMessageRepo = ChatMessageRepo(db)
        self.property_repo: PropertyRepo = PropertyRepo(db)
        self.user_repo: UserRepo = UserRepo(db)
        self.stats_repo: AgentStatsRepo = AgentStatsRepo(db)
        self.rating_repo: RatingRepo = RatingRepo(db)
        self.report_repo: ConversationReportRepo = ConversationReportRepo(db)
        self.policy = MarketplacePolicy()

    async def _get_chat(self, chat_id: uuid.UUID) -> Chat:
        chat = await self.chat_repo.get_by_id(chat_id)
        if not chat:
            raise NotFoundError("Chat not found")
        return chat

    async def _require_admin(self, admin_id: uuid.UUID, detail: str) -> User:
        admin = await self.user_repo.by_id(admin_id)
        if not admin or not await self.policy.is_admin(admin):
            raise ForbiddenError(detail)
        return admin

    async def _require_reservation(self, user_id: uuid.UUID, property_id: uuid.UUID) -> None:
        if not await self.reservations.has_user_active_reservation(user_id, property_id):
            raise BadRequestError(
                "You need an active reservation on this property to start a chat"
            )

    async def create_chat(
        self,
        property_id: uuid.UUID,
        user_id: uuid.UUID,
        chat_type: ChatType = ChatType.VA,
    ) -> Chat:
        prop = await self.property_repo.get_by_id(property_id)
        if not prop:
            raise NotFoundError("Property not found")

        await self._require_reservation(user_id, property_id)

        if await self.chat_repo.get_live_chat(user_id, property_id):
            raise BadRequestError("You already have an active chat for this property")

        agent = None
        if chat_type == ChatType.AGENT:
            if not prop.agent_id:
                raise BadRequestError("Property has no assigned agent")
            agent = await self.user_repo.by_id(prop.agent_id)
            if not agent:
                raise BadRequestError("Assigned agent not found")

        chat = Chat(
            user_id=user_id,
            property_id=property_id,
            agent_id=agent.id if agent else None,
            chat_type=chat_type,
            status=ChatStatus.OPEN,
            agent_fee_percentage=self.config.platform_fee_percent,
            agent_fee_amount=self.config.agent_fee_for(prop.price),
            agent_payment_status=AgentPaymentStatus.PENDING,
            created_at=utcnow(),
        )

        if agent:
            welcome = (
                f"✅ Reservation confirmed for **{prop.title}**.\n"
                f"👤 Assigned Agent: {agent.full_name}\n"
                f"📞 Phone: {agent.phone_number or 'N/A'}"
            )
        else:
            welcome = (
                f"✅ Reservation confirmed for **{prop.title}**.\n"
                "I'm your virtual assistant and can answer questions about this "
                "property. When you're ready, reply **connect me to agent**."
            )

        try:
            self.db.add(chat)
            await self.db.flush()
            await self.message_repo.append(
                chat_id=chat.id,
                sender_id=AI_USER_ID,
                message=welcome,
                message_type=MessageType.SYSTEM,
            )
            await self.chat_repo.commit()
        except IntegrityError:
            await self.chat_repo.rollback()
            raise BadRequestError("You already have an active chat for this property")

        logger.info(f"Chat {chat.id} ({chat_type.value}) opened on property {property_id}")
        return await self._get_chat(chat.id)

    async def start_chat_and_hold(
        self, property_id: uuid.UUID, user_id: uuid.UUID
    ) -> dict:
        chat = await self.chat_repo.get_live_chat(user_id, property_id)
        if chat:
            await self._require_reservation(user_id, property_id)
        else:
            chat = await self.create_chat(property_id, user_id, ChatType.VA)

        prop = await self.reservations.soft_hold_for_chat(property_id, user_id)
        return {"chat": chat, "property": prop}

    async def renew_pending(self, chat_id: uuid.UUID, user_id: uuid.UUID):
        chat = await self._get_chat(chat_id)
        if not await self.policy.is_chat_owner(chat, user_id):
            raise ForbiddenError("Not allowed")
        return await self.reservations.renew_soft_hold_for_chat(chat.property_id, user_id)

    async def release_pending(self, chat_id: uuid.UUID, user_id: uuid.UUID):
        chat = await self._get_chat(chat_id)
        if not await self.policy.is_chat_owner(chat, user_id):
            raise ForbiddenError("Not allowed")
        return await self.reservations.release_soft_hold_for_chat(
            chat.property_id, user_id
        )

    async def send_message(
        self, chat_id: uuid.UUID, sender_id: uuid.UUID, message: str
    ) -> ChatMessage:
        chat = await self._get_chat(chat_id)

        sender = await self.user_repo.by_id(sender_id)
        if not sender:
            raise NotFoundError("Sender not found")
        if not await self.policy.can_send_message(sender):
            raise ForbiddenError("Super admin can only view chats")
        if not await self.policy.is_chat_participant(chat, sender_id):
            raise ForbiddenError("Not authorized to message in this chat")
        if chat.status not in CLOSABLE_CHAT_STATUSES:
            raise BadRequestError("This chat is closed")

        text = (message or "").strip()
        if not text:
            raise BadRequestError("Message cannot be empty")

        now = utcnow()
        is_agent = chat.agent_id is not None and sender_id == chat.agent_id
        reply_needed = False

        entry = await self.message_repo.append(
            chat_id=chat.id,
            sender_id=sender_id,
            message=text,
            created_at=now,
        )

        if is_agent:
            await self.chat_repo.record_agent_response(chat.id, now)
            if chat.first_agent_response_at is None:
                minutes = minutes_between(chat.created_at, now)
                await self.chat_repo.record_first_response(
                    chat.id,
                    now,
                    minutes,
                    minutes <= self.config.responsive_threshold_minutes,
                )
        else:
            await self.chat_repo.record_user_message(chat.id, now)
            keyword = detect_handoff(text) if chat.is_va_chat else None

            if keyword:
                await self._hand_off(chat, keyword, now)
            elif ESCALATE_KEYWORD in text.lower():
                await self._escalate(chat, sender_id)
            elif chat.is_va_chat:
                reply_needed = True

        await self.chat_repo.commit()
        await self.db.refresh(entry)

        if reply_needed:
            self.replier.schedule(chat.id, text)
        return entry

    async def _hand_off(self, chat: Chat, keyword: str, now) -> None:
        prop = await self.property_repo.get_by_id(chat.property_id)
        agent_id = prop.agent_id if prop else None

        if agent_id and await self.chat_repo.hand_off(chat.id, agent_id, keyword, now):
            logger.info(f"Chat {chat.id} handed off to agent {agent_id}")
            notice = "✅ Perfect! Connecting you with your agent..."
        else:
            notice = (
                "No agent is assigned to this property yet. "
                "Our team will connect you shortly."
            )

        await self.message_repo.append(
            chat_id=chat.id,
            sender_id=AI_USER_ID,
            message=notice,
            message_type=MessageType.SYSTEM,
        )

    async def _escalate(self, chat: Chat, user_id: uuid.UUID) -> None:
        await self.message_repo.append(
            chat_id=chat.id,
            sender_id=AI_USER_ID,
            message=(
                f"⚠️ User requested ESCALATION for chat {chat.id}. "
                "Please follow up immediately."
            ),
            message_type=MessageType.ADMIN_NOTIFICATION,
            metadata={
                "chat_id": str(chat.id),
                "user_id": str(user_id),
                "reason": "ESCALATE",
            },
        )
        await self.message_repo.append(
            chat_id=chat.id,
            sender_id=AI_USER_ID,
            message="✅ Escalated to admin. You'll be contacted shortly.",
            message_type=MessageType.SYSTEM,
        )
        logger.warning(f"Chat {chat.id} escalated by user {user_id}")

    async def get_chat_details(self, chat_id: uuid.UUID, user_id: uuid.UUID) -> dict:
        chat = await self._get_chat(chat_id)
        if not await self.policy.is_chat_participant(chat, user_id):
            raise ForbiddenError("Not authorized to view this chat")

        await self.message_repo.mark_read(chat.id, user_id)
        return {
            "chat": chat,
            "messages": await self.message_repo.list_for_chat(chat.id, limit=500),
            "rating": await self.rating_repo.get_for_chat(chat.id),
        }

    async def get_chat_messages(
        self,
        chat_id: uuid.UUID,
        user: User,
        limit: int = 50,
        offset: int = 0,
    ) -> list[ChatMessage]:
        chat = await self._get_chat(chat_id)
        if not (
            await self.policy.is_chat_participant(chat, user.id)
            or await self.policy.is_admin(user)
        ):
            raise ForbiddenError("Not authorized to view this chat")
        return await self.message_repo.list_for_chat(chat.id, limit, offset)

    async def list_user_chats(
        self,
        user_id: uuid.UUID,
        status: ChatStatus | None = None,
        page: int = 1,
        per_page: int = 20,
    ) -> list[Chat]:
        return await self.chat_repo.list_for_user(user_id, status, page, per_page)

    async def list_agent_chats(
        self,
        agent_id: uuid.UUID,
        status: ChatStatus | None = None,
        page: int = 1,
        per_page: int = 20,
    ) -> list[Chat]:
        return await self.chat_repo.list_for_agent(agent_id, status, page, per_page)

    async def list_all_chats(
        self,
        admin_id: uuid.UUID,
        status: ChatStatus | None = None,
        agent_id: uuid.UUID | None = None,
        page: int = 1,
        per_page: int = 50,
    ) -> list[Chat]:
        await self._require_admin(admin_id, "Only admins can list all chats")
        return await self.chat_repo.list_all(status, agent_id, page, per_page)

    async def list_pending_payment_chats(self, admin_id: uuid.UUID) -> list[Chat]:
        await self._require_admin(admin_id, "Only admins can list pending payments")
        return await self.chat_repo.list_pending_payment()

    async def list_chats_awaiting_rating(
        self, admin_id: uuid.UUID, page: int = 1, per_page: int = 50
    ) -> list[Chat]:
        """Closed agent chats nobody has asked to rate yet."""
        await self._require_admin(admin_id, "Only admins can list chats awaiting rating")
        return await self.chat_repo.list_awaiting_rating(page, per_page)

    async def get_chat_by_property(
        self, property_id: uuid.UUID, user_id: uuid.UUID
    ) -> Chat:
        chat = await self.chat_repo.get_live_chat(user_id, property_id)
        if not chat:
            raise NotFoundError("No active chat found for this property")
        return chat

    async def mark_payment_received(
        self,
        chat_id: uuid.UUID,
        admin_id: uuid.UUID,
        details: str | None = None,
    ) -> Chat:
        admin = await self.user_repo.by_id(admin_id)
        if not admin or not await self.policy.can_mark_payment_received(admin):
            raise ForbiddenError("Only admins can confirm payments")

        chat = await self._get_chat(chat_id)
        if chat.status not in CLOSABLE_CHAT_STATUSES:
            raise BadRequestError("Chat is already closed")

        chat_id = chat.id
        agent_id = chat.agent_id
        fee = Decimal(chat.agent_fee_amount or 0)

        if agent_id:
            await self.stats_repo.ensure(agent_id)

        now = utcnow()
        if not await self.chat_repo.close_for_payment(chat_id, admin_id, details, now):
            await self.chat_repo.rollback()
            raise BadRequestError("Chat is already closed")

        fee_note = f" Agent fee of ₦{fee:,.2f} will be processed." if agent_id else ""
        await self.message_repo.append(
            chat_id=chat_id,
            sender_id=admin_id,
            message=(
                "✅ Payment confirmed! This chat is now closed. "
                f"Thank you for using our platform.{fee_note}"
            ),
            message_type=MessageType.ADMIN_NOTIFICATION,
            created_at=now,
        )
        if agent_id:
            await self.stats_repo.increment(agent_id, chats_completed=1, earnings=fee)

        await self.chat_repo.commit()
        logger.info(f"Chat {chat_id} closed after payment confirmed by {admin_id}")
        return await self._get_chat(chat_id)

    async def rate_agent(self, chat_id: uuid.UUID, user_id: uuid.UUID, data) -> UserRating:
        chat = await self._get_chat(chat_id)

        if not await self.policy.is_chat_owner(chat, user_id):
            raise ForbiddenError("Only the user can rate the agent")
        if chat.status != ChatStatus.CLOSED:
            raise BadRequestError("Can only rate after chat is closed")
        if await self.rating_repo.get_for_chat(chat.id):
            raise BadRequestError("You have already rated this agent for this chat")
        if not chat.agent_id:
            raise BadRequestError(
                "This chat has no agent assigned. You cannot rate an agent."
            )

        chat_id = chat.id
        agent_id = chat.agent_id
        tip = Decimal(data.tip_amount) if data.tip_amount else Decimal("0")

        await self.stats_repo.ensure(agent_id)

        rating = UserRating(
            chat_id=chat_id,
            user_id=user_id,
            agent_id=agent_id,
            responsiveness_rating=data.responsiveness_rating,
            professionalism_rating=data.professionalism_rating,
            helpfulness_rating=data.helpfulness_rating,
            knowledge_rating=data.knowledge_rating,
            trustworthiness_rating=data.trustworthiness_rating,
            overall_rating=data.overall_rating,
            review_text=data.review_text,
            tip_amount=data.tip_amount,
        )
        try:
            await self.rating_repo.stage(rating)
            await self.stats_repo.increment(agent_id, ratings_received=1, tips=tip)
            await self.chat_repo.commit()
        except IntegrityError:
            await self.chat_repo.rollback()
            raise BadRequestError("You have already rated this agent for this chat")

        await self.db.refresh(rating)
        return rating

    async def report_conversation(
        self,
        chat_id: uuid.UUID,
        user_id: uuid.UUID,
        data,
    ) -> ConversationReport:
        chat = await self._get_chat(chat_id)

        if not await self.policy.is_chat_owner(chat, user_id):
            raise ForbiddenError("Only the user can report this conversation")
        if not chat.agent_id:
            raise BadRequestError(
                "This chat has no agent assigned. You cannot report an agent."
            )

        report = ConversationReport(
            chat_id=chat.id,
            user_id=user_id,
            reported_agent_id=chat.agent_id,
            reason=data.reason,
            description=data.description,
        )
        await self.report_repo.stage(report)
        await self.message_repo.append(
            chat_id=chat.id,
            sender_id=AI_USER_ID,
            message=f"🚩 Conversation reported by the user ({data.reason.value}).",
            message_type=MessageType.ADMIN_NOTIFICATION,
            metadata={"report_id": str(report.id)},
        )
        await self.chat_repo.commit()
        logger.warning(f"Chat {chat.id} reported: {data.reason.value}")

        await self.db.refresh(report)
        return report

    async def request_rating(self, chat_id: uuid.UUID, admin_id: uuid.UUID) -> dict:
        await self._require_admin(admin_id, "Only admins can request ratings")

        chat = await self._get_chat(chat_id)
        if chat.status != ChatStatus.CLOSED:
            raise BadRequestError("Ratings can only be requested on closed chats")
        if not chat.agent_id:
            raise BadRequestError("This chat has no agent assigned")
        if await self.rating_repo.get_for_chat(chat.id):
            raise BadRequestError("User already submitted rating")

        agent = await self.user_repo.by_id(chat.agent_id)
        name = agent.first_name if agent else "our team"

        now = utcnow()
        await self.chat_repo.stamp_rating_requested(chat.id, now)
        await self.message_repo.append(
            chat_id=chat.id,
            sender_id=admin_id,
            message=(
                f"Please rate your experience with our agent {name}. "
                "Your feedback helps us improve our service."
            ),
            message_type=MessageType.ADMIN_NOTIFICATION,
            created_at=now,
        )
        await self.chat_repo.commit()
        return {"message": "Rating request sent to user"}
