"""create reservation, chat and sale tables

Revision ID: 3f1c9a7d2b40
Revises:
Create Date: 2026-10-18 09:12:41.118204
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

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
    UserRole,
)


# revision identifiers, used by Alembic.
revision: str = "3f1c9a7d2b40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


LIVE_CHAT_CONDITION = "status IN ('OPEN', 'ACTIVE', 'PAYMENT_RECEIVED')"


def _enum(enum_cls):
    return sa.Enum(enum_cls, native_enum=False)


def _pk():
    return sa.Column("id", sa.Uuid(), primary_key=True)


def _user_fk(name, nullable=False, **kwargs):
    return sa.Column(name, sa.Uuid(), sa.ForeignKey("users.id"), nullable=nullable, **kwargs)


def upgrade() -> None:
    """Upgrade schema."""

    op.create_table(
        "users",
        _pk(),
        sa.Column("first_name", sa.String(255), nullable=False),
        sa.Column("last_name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("phone_number", sa.String(20), nullable=True),
        sa.Column("role", _enum(UserRole), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )

    op.create_table(
        "properties",
        _pk(),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("location", sa.String(255), nullable=True),
        sa.Column("category", sa.String(64), nullable=True),
        sa.Column("price", sa.Numeric(15, 2), nullable=False),
        _user_fk("owner_id"),
        _user_fk("agent_id", nullable=True),
        sa.Column("status", _enum(PropertyStatus), nullable=False),
        sa.Column("is_reserved", sa.Boolean(), nullable=False),
        _user_fk("current_reservation_by", nullable=True),
        sa.Column("reservation_started_at", sa.DateTime(), nullable=True),
        sa.Column("reservation_expires_at", sa.DateTime(), nullable=True),
        sa.Column("reservation_fee_status", _enum(ReservationFeeStatus), nullable=False),
        sa.Column("reservation_fee_paid_at", sa.DateTime(), nullable=True),
        _user_fk("held_by_id", nullable=True),
        sa.Column("hold_expires_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    for column in ("owner_id", "agent_id", "status", "current_reservation_by", "reservation_expires_at"):
        op.create_index(f"ix_properties_{column}", "properties", [column])

    op.create_table(
        "reservation_fee_payments",
        _pk(),
        _user_fk("user_id"),
        sa.Column("property_id", sa.Uuid(), sa.ForeignKey("properties.id"), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", _enum(PaymentStatus), nullable=False),
        sa.Column("paystack_reference", sa.String(255), nullable=False),
        sa.Column("paid_at", sa.DateTime(), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_reservation_fee_payments_user_id", "reservation_fee_payments", ["user_id"])
    op.create_index("ix_reservation_fee_payments_property_id", "reservation_fee_payments", ["property_id"])
    op.create_index("ix_reservation_fee_payments_status", "reservation_fee_payments", ["status"])
    op.create_index(
        "ix_reservation_fee_payments_paystack_reference",
        "reservation_fee_payments",
        ["paystack_reference"],
        unique=True,
    )

    op.create_table(
        "property_interests",
        _pk(),
        sa.Column("property_id", sa.Uuid(), sa.ForeignKey("properties.id"), nullable=False),
        _user_fk("user_id"),
        sa.Column("status", _enum(InterestStatus), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("property_id", "user_id", name="uq_interest_property_user"),
    )
    op.create_index("ix_property_interests_property_id", "property_interests", ["property_id"])
    op.create_index("ix_property_interests_user_id", "property_interests", ["user_id"])

    op.create_table(
        "chats",
        _pk(),
        _user_fk("user_id"),
        sa.Column("property_id", sa.Uuid(), sa.ForeignKey("properties.id"), nullable=False),
        _user_fk("agent_id", nullable=True),
        sa.Column("chat_type", _enum(ChatType), nullable=False),
        sa.Column("status", _enum(ChatStatus), nullable=False),
        sa.Column("user_message_count", sa.Integer(), nullable=False),
        sa.Column("agent_response_count", sa.Integer(), nullable=False),
        sa.Column("message_seq", sa.Integer(), nullable=False),
        sa.Column("first_agent_response_at", sa.DateTime(), nullable=True),
        sa.Column("last_user_message_at", sa.DateTime(), nullable=True),
        sa.Column("last_agent_response_at", sa.DateTime(), nullable=True),
        sa.Column("response_time_minutes", sa.Integer(), nullable=True),
        sa.Column("was_agent_responsive", sa.Boolean(), nullable=True),
        sa.Column("agent_missed_first_response", sa.Boolean(), nullable=False),
        sa.Column("ai_phase_ended_at", sa.DateTime(), nullable=True),
        sa.Column("handoff_keyword", sa.String(255), nullable=True),
        sa.Column("agent_fee_percentage", sa.Numeric(5, 2), nullable=False),
        sa.Column("agent_fee_amount", sa.Numeric(15, 2), nullable=False),
        sa.Column("agent_payment_status", _enum(AgentPaymentStatus), nullable=False),
        sa.Column("payment_received_at", sa.DateTime(), nullable=True),
        sa.Column("closed_at", sa.DateTime(), nullable=True),
        _user_fk("closed_by_admin_id", nullable=True),
        sa.Column("closure_reason", _enum(ClosureReason), nullable=True),
        sa.Column("payment_confirmation_details", sa.Text(), nullable=True),
        sa.Column("rating_requested_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    for column in ("user_id", "property_id", "agent_id", "status"):
        op.create_index(f"ix_chats_{column}", "chats", [column])
    op.create_index("ix_chats_user_property", "chats", ["user_id", "property_id"])
    op.create_index(
        "uq_chats_live_per_user_property",
        "chats",
        ["user_id", "property_id"],
        unique=True,
        postgresql_where=sa.text(LIVE_CHAT_CONDITION),
        sqlite_where=sa.text(LIVE_CHAT_CONDITION),
    )

    op.create_table(
        "chat_messages",
        _pk(),
        sa.Column(
            "chat_id",
            sa.Uuid(),
            sa.ForeignKey("chats.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("sender_id", sa.Uuid(), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("message_type", _enum(MessageType), nullable=False),
        sa.Column("is_ai_generated", sa.Boolean(), nullable=True),
        sa.Column("seq", sa.Integer(), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("read_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("chat_id", "seq", name="uq_chat_message_seq"),
    )
    op.create_index("ix_chat_messages_chat_id", "chat_messages", ["chat_id"])

    op.create_table(
        "user_ratings",
        _pk(),
        sa.Column("chat_id", sa.Uuid(), sa.ForeignKey("chats.id"), nullable=False, unique=True),
        _user_fk("user_id"),
        _user_fk("agent_id"),
        sa.Column("responsiveness_rating", sa.Integer(), nullable=False),
        sa.Column("professionalism_rating", sa.Integer(), nullable=False),
        sa.Column("helpfulness_rating", sa.Integer(), nullable=False),
        sa.Column("knowledge_rating", sa.Integer(), nullable=False),
        sa.Column("trustworthiness_rating", sa.Integer(), nullable=False),
        sa.Column("overall_rating", sa.Integer(), nullable=False),
        sa.Column("review_text", sa.Text(), nullable=True),
        sa.Column("tip_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("tip_paid", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_user_ratings_agent_id", "user_ratings", ["agent_id"])

    op.create_table(
        "agent_statistics",
        _pk(),
        _user_fk("agent_id", unique=True),
        sa.Column("total_chats_completed", sa.Integer(), nullable=False),
        sa.Column("total_earnings", sa.Numeric(15, 2), nullable=False),
        sa.Column("total_ratings_received", sa.Integer(), nullable=False),
        sa.Column("total_tips_earned", sa.Numeric(15, 2), nullable=False),
        sa.Column("last_activity_at", sa.DateTime(), nullable=True),
    )

    op.create_table(
        "conversation_reports",
        _pk(),
        sa.Column("chat_id", sa.Uuid(), sa.ForeignKey("chats.id"), nullable=False),
        _user_fk("user_id"),
        _user_fk("reported_agent_id"),
        sa.Column("reason", _enum(ReportReason), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_conversation_reports_chat_id", "conversation_reports", ["chat_id"])

    op.create_table(
        "sales",
        _pk(),
        sa.Column("property_id", sa.Uuid(), sa.ForeignKey("properties.id"), nullable=False),
        _user_fk("buyer_id"),
        _user_fk("seller_id"),
        sa.Column("amount", sa.Numeric(15, 2), nullable=False),
        sa.Column("payment_method", _enum(PaymentMethod), nullable=False),
        sa.Column("payment_reference", sa.String(255), nullable=True),
        sa.Column("payment_proof_url", sa.String(512), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", _enum(SaleStatus), nullable=False),
        sa.Column("finance_status", _enum(FinanceStatus), nullable=False),
        sa.Column("company_account_paid", sa.Boolean(), nullable=False),
        sa.Column("marked_sold_at", sa.DateTime(), nullable=True),
        _user_fk("finance_reviewed_by_id", nullable=True),
        sa.Column("finance_reviewed_at", sa.DateTime(), nullable=True),
        sa.Column("finance_comment", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    for column in ("property_id", "buyer_id", "seller_id", "finance_status"):
        op.create_index(f"ix_sales_{column}", "sales", [column])

    op.create_table(
        "commissions",
        _pk(),
        sa.Column("sale_id", sa.Uuid(), sa.ForeignKey("sales.id"), nullable=False, unique=True),
        _user_fk("admin_id"),
        sa.Column("amount", sa.Numeric(15, 2), nullable=False),
        sa.Column("status", _enum(CommissionStatus), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_commissions_admin_id", "commissions", ["admin_id"])


def downgrade() -> None:
    """Downgrade schema."""

    for table in (
        "commissions",
        "sales",
        "conversation_reports",
        "agent_statistics",
        "user_ratings",
        "chat_messages",
        "chats",
        "property_interests",
        "reservation_fee_payments",
        "properties",
        "users",
    ):
        op.drop_table(table)
