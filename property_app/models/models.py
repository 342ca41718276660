import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.date_helper import utcnow
from core.get_db import Base

from .enums import (
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
    UserRole,
)

# Sender id stamped on assistant and system messages.
AI_USER_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")

LIVE_CHAT_CONDITION = "status IN ('OPEN', 'ACTIVE', 'PAYMENT_RECEIVED')"


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    first_name: Mapped[str] = mapped_column(String(255), nullable=False)
    last_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    phone_number: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, native_enum=False), nullable=False, default=UserRole.USER
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    @hybrid_property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self):
        return f"<User {self.email} ({self.id})>"


class Property(Base):
    __tablename__ = "properties"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    agent_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True, index=True
    )
    status: Mapped[PropertyStatus] = mapped_column(
        Enum(PropertyStatus, native_enum=False),
        default=PropertyStatus.AVAILABLE,
        nullable=False,
        index=True,
    )

    is_reserved: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    current_reservation_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True, index=True
    )
    reservation_started_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True
    )
    reservation_expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True, index=True
    )
    reservation_fee_status: Mapped[ReservationFeeStatus] = mapped_column(
        Enum(ReservationFeeStatus, native_enum=False),
        default=ReservationFeeStatus.UNPAID,
        nullable=False,
    )
    reservation_fee_paid_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True
    )

    held_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True
    )
    hold_expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow
    )

    agent: Mapped[Optional["User"]] = relationship("User", foreign_keys=[agent_id])

    def reservation_active(self, now: datetime) -> bool:
        return bool(
            self.is_reserved
            and self.reservation_expires_at
            and now < self.reservation_expires_at
        )

    def held_by_other(self, user_id: uuid.UUID, now: datetime) -> bool:
        return bool(
            self.held_by_id
            and self.held_by_id != user_id
            and self.hold_expires_at
            and now < self.hold_expires_at
        )

    def __repr__(self):
        return f"<Property {self.title} ({self.status})>"


class ReservationFeePayment(Base):
    __tablename__ = "reservation_fee_payments"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("properties.id"), nullable=False, index=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus, native_enum=False),
        default=PaymentStatus.PENDING,
        nullable=False,
        index=True,
    )
    paystack_reference: Mapped[str] = mapped_column(
        String(255), unique=True, index=True, nullable=False
    )
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    payment_metadata: Mapped[Optional[dict]] = mapped_column(
        "metadata", JSON, nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    listing: Mapped["Property"] = relationship("Property")


class PropertyInterest(Base):
    __tablename__ = "property_interests"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("properties.id"), nullable=False, index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    status: Mapped[InterestStatus] = mapped_column(
        Enum(InterestStatus, native_enum=False),
        default=InterestStatus.ACTIVE,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        UniqueConstraint("property_id", "user_id", name="uq_interest_property_user"),
    )


class Chat(Base):
    __tablename__ = "chats"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("properties.id"), nullable=False, index=True
    )
    agent_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True, index=True
    )
    chat_type: Mapped[ChatType] = mapped_column(
        Enum(ChatType, native_enum=False), default=ChatType.VA, nullable=False
    )
    status: Mapped[ChatStatus] = mapped_column(
        Enum(ChatStatus, native_enum=False),
        default=ChatStatus.OPEN,
        nullable=False,
        index=True,
    )

    user_message_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    agent_response_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    message_seq: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    first_agent_response_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True
    )
    last_user_message_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True
    )
    last_agent_response_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True
    )
    response_time_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    was_agent_responsive: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    agent_missed_first_response: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    ai_phase_ended_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True
    )
    handoff_keyword: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    agent_fee_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    agent_fee_amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    agent_payment_status: Mapped[AgentPaymentStatus] = mapped_column(
        Enum(AgentPaymentStatus, native_enum=False),
        default=AgentPaymentStatus.PENDING,
        nullable=False,
    )

    payment_received_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True
    )
    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    closed_by_admin_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True
    )
    closure_reason: Mapped[Optional[ClosureReason]] = mapped_column(
        Enum(ClosureReason, native_enum=False), nullable=True
    )
    payment_confirmation_details: Mapped[Optional[str]] = mapped_column(
        Text, nullable=True
    )
    rating_requested_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow
    )

    listing: Mapped["Property"] = relationship("Property")
    messages: Mapped[List["ChatMessage"]] = relationship(
        "ChatMessage", back_populates="chat", order_by="ChatMessage.seq"
    )

    @property
    def is_va_chat(self) -> bool:
        return self.agent_id is None

    __table_args__ = (
        Index("ix_chats_user_property", "user_id", "property_id"),
        Index(
            "uq_chats_live_per_user_property",
            "user_id",
            "property_id",
            unique=True,
            postgresql_where=text(LIVE_CHAT_CONDITION),
            sqlite_where=text(LIVE_CHAT_CONDITION),
        ),
    )


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    chat_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("chats.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # not a foreign key: the assistant sentinel has no user row
    sender_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    message_type: Mapped[MessageType] = mapped_column(
        Enum(MessageType, native_enum=False), default=MessageType.TEXT, nullable=False
    )
    is_ai_generated: Mapped[bool] = mapped_column(Boolean, default=False)
    seq: Mapped[int] = mapped_column(Integer, nullable=False)
    message_metadata: Mapped[Optional[dict]] = mapped_column(
        "metadata", JSON, nullable=True
    )
    read_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    chat: Mapped["Chat"] = relationship("Chat", back_populates="messages")

    __table_args__ = (UniqueConstraint("chat_id", "seq", name="uq_chat_message_seq"),)


class UserRating(Base):
    __tablename__ = "user_ratings"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    chat_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("chats.id"), unique=True, nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False
    )
    agent_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    responsiveness_rating: Mapped[int] = mapped_column(Integer, nullable=False)
    professionalism_rating: Mapped[int] = mapped_column(Integer, nullable=False)
    helpfulness_rating: Mapped[int] = mapped_column(Integer, nullable=False)
    knowledge_rating: Mapped[int] = mapped_column(Integer, nullable=False)
    trustworthiness_rating: Mapped[int] = mapped_column(Integer, nullable=False)
    overall_rating: Mapped[int] = mapped_column(Integer, nullable=False)
    review_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tip_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    tip_paid: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class AgentStatistics(Base):
    __tablename__ = "agent_statistics"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    agent_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id"), unique=True, nullable=False
    )
    total_chats_completed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_earnings: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), default=Decimal("0"), nullable=False
    )
    total_ratings_received: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    total_tips_earned: Mapped[Decimal] = mapped_column(
        Numeric(15, 2), default=Decimal("0"), nullable=False
    )
    last_activity_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True
    )


class ConversationReport(Base):
    __tablename__ = "conversation_reports"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    chat_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("chats.id"), nullable=False, index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False
    )
    reported_agent_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False
    )
    reason: Mapped[ReportReason] = mapped_column(
        Enum(ReportReason, native_enum=False), nullable=False
    )
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class Sale(Base):
    __tablename__ = "sales"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("properties.id"), nullable=False, index=True
    )
    buyer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    seller_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    payment_method: Mapped[PaymentMethod] = mapped_column(
        Enum(PaymentMethod, native_enum=False), nullable=False
    )
    payment_reference: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    payment_proof_url: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[SaleStatus] = mapped_column(
        Enum(SaleStatus, native_enum=False),
        default=SaleStatus.PAYMENT_SUBMITTED,
        nullable=False,
    )
    finance_status: Mapped[FinanceStatus] = mapped_column(
        Enum(FinanceStatus, native_enum=False),
        default=FinanceStatus.PENDING,
        nullable=False,
        index=True,
    )
    company_account_paid: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    marked_sold_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    finance_reviewed_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True
    )
    finance_reviewed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True
    )
    finance_comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class Commission(Base):
    __tablename__ = "commissions"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    sale_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("sales.id"), unique=True, nullable=False
    )
    admin_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    status: Mapped[CommissionStatus] = mapped_column(
        Enum(CommissionStatus, native_enum=False),
        default=CommissionStatus.PENDING,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
