from decimal import Decimal

import pytest
from fastapi import HTTPException

from core.breaker import CircuitBreaker, CircuitOpenError
from core.business_config import MarketplaceConfig
from core.date_helper import days_remaining, minutes_between, utcnow
from core.url_parser import parser

pytestmark = pytest.mark.unit


def test_default_fee_split():
    config = MarketplaceConfig()

    assert config.agent_fee_for(Decimal("5000000")) == Decimal("350000.00")
    assert config.commission_for(Decimal("500000")) == Decimal("15000.00")
    assert config.reservation_fee_amount == Decimal("10000")


@pytest.mark.parametrize("raw", [None, "", "abc", "-5", "150"])
def test_bad_percentages_fall_back(raw):
    config = MarketplaceConfig(platform_fee_percent=raw, agent_share_percent=raw)

    assert config.platform_fee_percent == Decimal("10")
    assert config.agent_share_percent == Decimal("70")


def test_custom_percentages():
    config = MarketplaceConfig(platform_fee_percent="5", agent_share_percent=" 50 ")

    assert config.agent_fee_for(Decimal("1000000")) == Decimal("25000.00")


def test_bank_details_need_all_three_fields():
    assert not MarketplaceConfig(company_bank_name="GTBank").has_company_bank_details
    assert MarketplaceConfig(
        company_bank_name="GTBank",
        company_account_name="Homes Ltd",
        company_account_number="0011223344",
    ).has_company_bank_details


def test_config_is_frozen():
    config = MarketplaceConfig()
    with pytest.raises(Exception):
        config.soft_hold_minutes = 30


def test_date_helpers():
    from datetime import timedelta

    now = utcnow()
    assert now.tzinfo is None
    assert minutes_between(now, now + timedelta(minutes=90)) == 90
    assert days_remaining(now + timedelta(days=2, hours=1), now) == 3


def test_origin_parser_skips_malformed_entries():
    origins = parser.parse_origin_list("https://homes.ng/, localhost:3000, http://127.0.0.1:5173", "ALLOWED_HOSTS")

    assert origins == ["https://homes.ng", "http://127.0.0.1:5173"]


async def test_breaker_opens_after_repeated_failures():
    breaker = CircuitBreaker("test", failure_threshold=2, base_recovery_time=60)

    async def failing():
        raise ConnectionError("down")

    for _ in range(2):
        with pytest.raises(ConnectionError):
            await breaker.call(failing)

    assert breaker.state == "OPEN"
    with pytest.raises(CircuitOpenError):
        await breaker.call(failing)


async def test_breaker_ignores_typed_rejections():
    breaker = CircuitBreaker("test", failure_threshold=1)

    async def rejected():
        raise HTTPException(status_code=400, detail="bad reference")

    with pytest.raises(HTTPException):
        await breaker.call(rejected)

    assert breaker.state == "CLOSED"
    assert breaker.failure_count == 0


def test_friendly_messages_follow_error_categories():
    from core.errors import ConflictError, ExternalServiceError
    from core.friendly_msg import CATEGORY_MESSAGES, DEFAULT_MESSAGE, get_friendly_message

    assert get_friendly_message(ConflictError("Property is reserved by another user")) == (
        "Property is reserved by another user"
    )
    assert get_friendly_message(ExternalServiceError("")) == CATEGORY_MESSAGES["external_failure"]
    assert get_friendly_message(CircuitOpenError("paystack")) == CATEGORY_MESSAGES["external_failure"]
    assert get_friendly_message(ConnectionResetError()) == (
        "Unable to connect to a required service. Please try again later."
    )
    assert get_friendly_message(KeyError("x")) == DEFAULT_MESSAGE


async def test_session_scope_rolls_back_on_error():
    from unittest.mock import AsyncMock

    from core.get_db import session_scope

    session = AsyncMock()
    with pytest.raises(ValueError):
        async with session_scope(lambda: session):
            raise ValueError("boom")

    session.rollback.assert_awaited_once()
    session.close.assert_awaited_once()
