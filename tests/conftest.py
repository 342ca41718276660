import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("PAYSTACK_SECRET_KEY", "sk_test_dummy")

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from core.business_config import MarketplaceConfig
from core.get_db import Base
from fire_and_forget.va_reply import AssistantReplier
from models import models  # noqa: F401


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'marketplace.db'}",
        connect_args={"timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def config():
    return MarketplaceConfig(
        company_bank_name="Providus Bank",
        company_account_name="Homes Marketplace Ltd",
        company_account_number="0123456789",
    )


@pytest.fixture
def gateway():
    gw = AsyncMock()
    gw.initialize_payment.side_effect = lambda **kwargs: {
        "authorization_url": f"https://checkout.paystack.com/{kwargs['reference']}",
        "access_code": "ac_test",
        "reference": kwargs["reference"],
    }
    gw.verify_payment.return_value = {
        "status": "success",
        "amount": Decimal("10000"),
        "currency": "NGN",
        "paid_at": "2026-10-18T09:00:00.000Z",
        "channel": "card",
        "metadata": {},
    }
    return gw


@pytest.fixture
def text_generator():
    generator = AsyncMock()
    generator.complete.return_value = {"text": "It has three bedrooms and a pool."}
    return generator


@pytest.fixture
def replier(text_generator, session_factory):
    return AssistantReplier(text_generator=text_generator, session_factory=session_factory)
