import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends
from fastapi_utils.cbv import cbv
from sqlalchemy.ext.asyncio import AsyncSession

from core.get_current_user import get_current_user
from core.get_db import get_db_async
from core.safe_handler import safe_handler
from models.enums import ChatStatus
from models.models import User
from schemas.schema import (
    ChatDetailsOut,
    ChatMessageOut,
    ChatOut,
    ConversationReportOut,
    CreateChatSchema,
    MarkPaymentReceivedSchema,
    MessageResponse,
    PropertyReservationOut,
    RateAgentSchema,
    ReportConversationSchema,
    SendMessageSchema,
    StartChatOut,
    UserRatingOut,
)
from services.chat_service import ChatService

router = APIRouter(tags=["Agent User Chats"])


@cbv(router=router)
class ChatRoutes:
    @router.post("/create", response_model=ChatOut)
    @safe_handler
    async def create(
        self,
        data: CreateChatSchema,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        return await ChatService(db).create_chat(
            property_id=data.property_id,
            user_id=current_user.id,
            chat_type=data.chat_type,
        )

    @router.post("/start/{property_id}", response_model=StartChatOut)
    @safe_handler
    async def start_and_hold(
        self,
        property_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        return await ChatService(db).start_chat_and_hold(property_id, current_user.id)

    @router.post("/{chat_id}/pending/renew", response_model=PropertyReservationOut)
    @safe_handler
    async def renew_pending(
        self,
        chat_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        return await ChatService(db).renew_pending(chat_id, current_user.id)

    @router.post("/{chat_id}/pending/release", response_model=PropertyReservationOut)
    @safe_handler
    async def release_pending(
        self,
        chat_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        return await ChatService(db).release_pending(chat_id, current_user.id)

    @router.get("/my", response_model=List[ChatOut])
    @safe_handler
    async def my_chats(
        self,
        status: Optional[ChatStatus] = None,
        page: int = 1,
        per_page: int = 20,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        return await ChatService(db).list_user_chats(
            current_user.id, status, page, per_page
        )

    @router.get("/agent", response_model=List[ChatOut])
    @safe_handler
    async def agent_chats(
        self,
        status: Optional[ChatStatus] = None,
        page: int = 1,
        per_page: int = 20,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        return await ChatService(db).list_agent_chats(
            current_user.id, status, page, per_page
        )

    @router.get("/admin/all", response_model=List[ChatOut])
    @safe_handler
    async def all_chats(
        self,
        status: Optional[ChatStatus] = None,
        agent_id: Optional[uuid.UUID] = None,
        page: int = 1,
        per_page: int = 50,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        return await ChatService(db).list_all_chats(
            current_user.id, status, agent_id, page, per_page
        )

    @router.get("/admin/pending-payments", response_model=List[ChatOut])
    @safe_handler
    async def pending_payment_chats(
        self,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        return await ChatService(db).list_pending_payment_chats(current_user.id)

    @router.get("/admin/pending-rating", response_model=List[ChatOut])
    @safe_handler
    async def awaiting_rating_chats(
        self,
        page: int = 1,
        per_page: int = 50,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        return await ChatService(db).list_chats_awaiting_rating(
            current_user.id, page, per_page
        )

    @router.get("/property/{property_id}", response_model=ChatOut)
    @safe_handler
    async def chat_for_property(
        self,
        property_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        return await ChatService(db).get_chat_by_property(property_id, current_user.id)

    @router.get("/{chat_id}", response_model=ChatDetailsOut)
    @safe_handler
    async def details(
        self,
        chat_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        return await ChatService(db).get_chat_details(chat_id, current_user.id)

    @router.get("/{chat_id}/messages", response_model=List[ChatMessageOut])
    @safe_handler
    async def messages(
        self,
        chat_id: uuid.UUID,
        limit: int = 50,
        offset: int = 0,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        return await ChatService(db).get_chat_messages(
            chat_id, current_user, limit, offset
        )

    @router.post("/{chat_id}/messages", response_model=ChatMessageOut)
    @safe_handler
    async def send_message(
        self,
        chat_id: uuid.UUID,
        data: SendMessageSchema,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        return await ChatService(db).send_message(chat_id, current_user.id, data.message)

    @router.post("/{chat_id}/mark-payment-received", response_model=ChatOut)
    @safe_handler
    async def mark_payment_received(
        self,
        chat_id: uuid.UUID,
        data: MarkPaymentReceivedSchema,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        return await ChatService(db).mark_payment_received(
            chat_id, current_user.id, data.payment_confirmation_details
        )

    @router.post("/{chat_id}/rate", response_model=UserRatingOut)
    @safe_handler
    async def rate(
        self,
        chat_id: uuid.UUID,
        data: RateAgentSchema,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        return await ChatService(db).rate_agent(chat_id, current_user.id, data)

    @router.post("/{chat_id}/report", response_model=ConversationReportOut)
    @safe_handler
    async def report(
        self,
        chat_id: uuid.UUID,
        data: ReportConversationSchema,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        return await ChatService(db).report_conversation(chat_id, current_user.id, data)

    @router.post("/{chat_id}/request-rating", response_model=MessageResponse)
    @safe_handler
    async def request_rating(
        self,
        chat_id: uuid.UUID,
        db: AsyncSession = Depends(get_db_async),
        current_user: User = Depends(get_current_user),
    ):
        return await ChatService(db).request_rating(chat_id, current_user.id)
