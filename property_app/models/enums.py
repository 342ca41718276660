from enum import Enum


class UserRole(str, Enum):
    USER = "User"
    AGENT = "Agent"
    SELLER = "Seller"
    ADMIN = "Admin"
    SUPER_ADMIN = "Super Admin"


class PropertyStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    PENDING = "PENDING"
    SOLD = "SOLD"


class ReservationFeeStatus(str, Enum):
    UNPAID = "UNPAID"
    PAID = "PAID"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class GatewayStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    ABANDONED = "abandoned"


class ChatType(str, Enum):
    VA = "VA"
    AGENT = "AGENT"


class ChatStatus(str, Enum):
    OPEN = "OPEN"
    ACTIVE = "ACTIVE"
    PAYMENT_RECEIVED = "PAYMENT_RECEIVED"
    CLOSED = "CLOSED"


LIVE_CHAT_STATUSES = (ChatStatus.OPEN, ChatStatus.ACTIVE, ChatStatus.PAYMENT_RECEIVED)
CLOSABLE_CHAT_STATUSES = (ChatStatus.OPEN, ChatStatus.ACTIVE)


class MessageType(str, Enum):
    TEXT = "TEXT"
    SYSTEM = "SYSTEM"
    ADMIN_NOTIFICATION = "ADMIN_NOTIFICATION"


class AgentPaymentStatus(str, Enum):
    PENDING = "PENDING"
    PAYMENT_RECEIVED = "PAYMENT_RECEIVED"
    PAID = "PAID"


class ClosureReason(str, Enum):
    PAYMENT_RECEIVED = "PAYMENT_RECEIVED"


class InterestStatus(str, Enum):
    ACTIVE = "ACTIVE"
    PURCHASED = "PURCHASED"
    EXPIRED = "EXPIRED"


class SaleStatus(str, Enum):
    PAYMENT_SUBMITTED = "PAYMENT_SUBMITTED"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    DISPUTED = "DISPUTED"


class FinanceStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    REJECTED = "REJECTED"


class PaymentMethod(str, Enum):
    BANK_TRANSFER = "BANK_TRANSFER"
    CASH = "CASH"
    POS = "POS"
    CHEQUE = "CHEQUE"
    OTHER = "OTHER"


class CommissionStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    PAID = "PAID"


class ReportReason(str, Enum):
    UNRESPONSIVE = "UNRESPONSIVE"
    UNPROFESSIONAL = "UNPROFESSIONAL"
    MISLEADING_INFORMATION = "MISLEADING_INFORMATION"
    FRAUD = "FRAUD"
    OTHER = "OTHER"
