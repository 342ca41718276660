from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

from models.enums import (
    AgentPaymentStatus,
    ChatStatus,
    ChatType,
    ClosureReason,
    CommissionStatus,
    FinanceStatus,
    InterestStatus,
    MessageType,
    PaymentMethod,
    PaymentStatus,
    PropertyStatus,
    ReportReason,
    ReservationFeeStatus,
    SaleStatus,
)


class PropertyReservationOut(BaseModel):
    id: uuid.UUID
    title: str
    price: Decimal
    status: PropertyStatus
    is_reserved: bool
    current_reservation_by: Optional[uuid.UUID] = None
    reservation_started_at: Optional[datetime] = None
    reservation_expires_at: Optional[datetime] = None
    reservation_fee_status: ReservationFeeStatus
    held_by_id: Optional[uuid.UUID] = None
    hold_expires_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class InitializeReservationSchema(BaseModel):
    property_id: uuid.UUID


class ReservationInitOut(BaseModel):
    authorization_url: Optional[str]
    access_code: Optional[str]
    reference: str
    amount: Decimal
    expires_in_days: int


class ReservationPaymentOut(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    property_id: uuid.UUID
    amount: Decimal
    status: PaymentStatus
    paystack_reference: str
    paid_at: Optional[datetime] = None
    metadata: Optional[dict] = Field(default=None, validation_alias="payment_metadata")
    created_at: datetime

    model_config = {"from_attributes": True, "populate_by_name": True}


class ReservationVerifyOut(BaseModel):
    payment: ReservationPaymentOut
    property_id: uuid.UUID
    reserved_by: Optional[uuid.UUID]
    expires_at: Optional[datetime]


class ReservationStatusOut(BaseModel):
    has_reservation: bool
    message: Optional[str] = None
    payment_status: Optional[PaymentStatus] = None
    amount: Optional[Decimal] = None
    paid_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    days_remaining: Optional[int] = None


class CancelReservationSchema(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)


class CancelReservationOut(BaseModel):
    message: str
    amount: Decimal
    note: str
    reason: str


class CreateChatSchema(BaseModel):
    property_id: uuid.UUID
    chat_type: ChatType = ChatType.VA


class SendMessageSchema(BaseModel):
    message: str = Field(..., min_length=1, max_length=4000)

    @field_validator("message")
    @classmethod
    def not_blank(cls, value: str):
        if not value.strip():
            raise ValueError("Message cannot be empty.")
        return value.strip()


class MarkPaymentReceivedSchema(BaseModel):
    payment_confirmation_details: Optional[str] = Field(default=None, max_length=2000)


class RateAgentSchema(BaseModel):
    responsiveness_rating: int = Field(..., ge=1, le=5)
    professionalism_rating: int = Field(..., ge=1, le=5)
    helpfulness_rating: int = Field(..., ge=1, le=5)
    knowledge_rating: int = Field(..., ge=1, le=5)
    trustworthiness_rating: int = Field(..., ge=1, le=5)
    overall_rating: int = Field(..., ge=1, le=5)
    review_text: Optional[str] = Field(default=None, max_length=2000)
    tip_amount: Optional[Decimal] = Field(default=None, ge=0)


class ReportConversationSchema(BaseModel):
    reason: ReportReason
    description: Optional[str] = Field(default=None, max_length=2000)


class ChatOut(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    property_id: uuid.UUID
    agent_id: Optional[uuid.UUID] = None
    chat_type: ChatType
    status: ChatStatus
    user_message_count: int
    agent_response_count: int
    first_agent_response_at: Optional[datetime] = None
    last_user_message_at: Optional[datetime] = None
    last_agent_response_at: Optional[datetime] = None
    response_time_minutes: Optional[int] = None
    was_agent_responsive: Optional[bool] = None
    agent_missed_first_response: bool
    ai_phase_ended_at: Optional[datetime] = None
    agent_fee_percentage: Decimal
    agent_fee_amount: Decimal
    agent_payment_status: AgentPaymentStatus
    payment_received_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    closed_by_admin_id: Optional[uuid.UUID] = None
    closure_reason: Optional[ClosureReason] = None
    rating_requested_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class ChatMessageOut(BaseModel):
    id: uuid.UUID
    chat_id: uuid.UUID
    sender_id: uuid.UUID
    message: str
    message_type: MessageType
    is_ai_generated: bool
    seq: int
    read_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class UserRatingOut(BaseModel):
    id: uuid.UUID
    chat_id: uuid.UUID
    agent_id: uuid.UUID
    responsiveness_rating: int
    professionalism_rating: int
    helpfulness_rating: int
    knowledge_rating: int
    trustworthiness_rating: int
    overall_rating: int
    review_text: Optional[str] = None
    tip_amount: Optional[Decimal] = None
    tip_paid: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class ChatDetailsOut(BaseModel):
    chat: ChatOut
    messages: List[ChatMessageOut] = Field(default_factory=list)
    rating: Optional[UserRatingOut] = None


class StartChatOut(BaseModel):
    chat: ChatOut
    property: PropertyReservationOut


class ConversationReportOut(BaseModel):
    id: uuid.UUID
    chat_id: uuid.UUID
    reported_agent_id: uuid.UUID
    reason: ReportReason
    description: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class MessageResponse(BaseModel):
    message: str


class FaqChatSchema(BaseModel):
    # shape is checked by the service so a malformed list is a 400
    messages: Any = None


class FaqChatOut(BaseModel):
    message: str
    role: str


class InterestOut(BaseModel):
    id: uuid.UUID
    property_id: uuid.UUID
    user_id: uuid.UUID
    status: InterestStatus
    created_at: datetime

    model_config = {"from_attributes": True}


class PaymentDetailsOut(BaseModel):
    property_id: uuid.UUID
    property_title: str
    amount: Decimal
    bank_name: str
    account_name: str
    account_number: str
    instructions: str


class MarkSaleSchema(BaseModel):
    property_id: uuid.UUID
    buyer_id: uuid.UUID
    amount: Decimal = Field(..., gt=0)
    payment_method: PaymentMethod
    payment_reference: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = None
    payment_proof_url: Optional[str] = Field(default=None, max_length=512)


class ReviewSaleSchema(BaseModel):
    sale_id: uuid.UUID
    finance_status: FinanceStatus
    finance_comment: Optional[str] = None

    @field_validator("finance_status")
    @classmethod
    def decision_only(cls, value: FinanceStatus):
        if value == FinanceStatus.PENDING:
            raise ValueError("finance_status must be CONFIRMED or REJECTED")
        return value


class SaleOut(BaseModel):
    id: uuid.UUID
    property_id: uuid.UUID
    buyer_id: uuid.UUID
    seller_id: uuid.UUID
    amount: Decimal
    payment_method: PaymentMethod
    payment_reference: Optional[str] = None
    payment_proof_url: Optional[str] = None
    notes: Optional[str] = None
    status: SaleStatus
    finance_status: FinanceStatus
    company_account_paid: bool
    marked_sold_at: datetime
    finance_reviewed_by_id: Optional[uuid.UUID] = None
    finance_reviewed_at: Optional[datetime] = None
    finance_comment: Optional[str] = None

    model_config = {"from_attributes": True}


class CommissionOut(BaseModel):
    id: uuid.UUID
    sale_id: uuid.UUID
    admin_id: uuid.UUID
    amount: Decimal
    status: CommissionStatus

    model_config = {"from_attributes": True}
