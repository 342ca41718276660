import logging
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from .settings import Settings, settings

logger = logging.getLogger(__name__)

DEFAULT_PERCENTAGES = {
    "platform_fee_percent": Decimal("10"),
    "agent_share_percent": Decimal("70"),
    "company_share_percent": Decimal("30"),
}


class MarketplaceConfig(BaseModel):
    """Business knobs resolved once at startup.

    Services receive this object through their constructor, so the fee maths
    never reads the environment directly.
    """

    model_config = ConfigDict(frozen=True)

    reservation_fee_amount: Decimal = Decimal("10000")
    reservation_period_days: int = 7
    soft_hold_minutes: int = 15
    platform_fee_percent: Decimal = DEFAULT_PERCENTAGES["platform_fee_percent"]
    agent_share_percent: Decimal = DEFAULT_PERCENTAGES["agent_share_percent"]
    company_share_percent: Decimal = DEFAULT_PERCENTAGES["company_share_percent"]
    sale_commission_rate: Decimal = Decimal("0.03")
    responsive_threshold_minutes: int = 1440

    company_bank_name: Optional[str] = None
    company_account_name: Optional[str] = None
    company_account_number: Optional[str] = None
    company_payment_instructions: Optional[str] = None

    @field_validator(
        "platform_fee_percent",
        "agent_share_percent",
        "company_share_percent",
        mode="before",
    )
    @classmethod
    def parse_percent(cls, value, info):
        fallback = DEFAULT_PERCENTAGES[info.field_name]
        if value is None or (isinstance(value, str) and not value.strip()):
            return fallback
        try:
            number = Decimal(str(value).strip())
        except ArithmeticError:
            number = None
        if number is None or number < 0 or number > 100:
            logger.warning(
                f"Invalid percentage value {value!r} for {info.field_name}, "
                f"using fallback {fallback}%"
            )
            return fallback
        return number

    @property
    def has_company_bank_details(self) -> bool:
        return bool(
            self.company_bank_name
            and self.company_account_name
            and self.company_account_number
        )

    def agent_fee_for(self, price: Decimal) -> Decimal:
        """Agent's cut of the platform fee charged on ``price``."""
        fee_total = Decimal(price) * self.platform_fee_percent / Decimal(100)
        return (fee_total * self.agent_share_percent / Decimal(100)).quantize(
            Decimal("0.01")
        )

    def commission_for(self, amount: Decimal) -> Decimal:
        return (Decimal(amount) * self.sale_commission_rate).quantize(Decimal("0.01"))


def build_marketplace_config(source: Settings) -> MarketplaceConfig:
    return MarketplaceConfig(
        reservation_fee_amount=source.RESERVATION_FEE_AMOUNT,
        reservation_period_days=source.RESERVATION_PERIOD_DAYS,
        soft_hold_minutes=source.SOFT_HOLD_MINUTES,
        platform_fee_percent=source.PLATFORM_FEE_PERCENT,
        agent_share_percent=source.AGENT_SHARE_PERCENT,
        company_share_percent=source.COMPANY_SHARE_PERCENT,
        sale_commission_rate=Decimal(str(source.SALE_COMMISSION_RATE)),
        responsive_threshold_minutes=source.RESPONSIVE_THRESHOLD_MINUTES,
        company_bank_name=source.COMPANY_BANK_NAME,
        company_account_name=source.COMPANY_ACCOUNT_NAME,
        company_account_number=source.COMPANY_ACCOUNT_NUMBER,
        company_payment_instructions=source.COMPANY_PAYMENT_INSTRUCTIONS,
    )


marketplace_config = build_marketplace_config(settings)
