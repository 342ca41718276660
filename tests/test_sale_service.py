import uuid
from decimal import Decimal
from types import SimpleNamespace

import pytest

from core.errors import BadRequestError, ForbiddenError, NotFoundError, UnconfiguredError
from core.business_config import MarketplaceConfig
from factories import make_property, make_user, refetch
from models.enums import (
    CommissionStatus,
    FinanceStatus,
    InterestStatus,
    PaymentMethod,
    PropertyStatus,
    SaleStatus,
    UserRole,
)
from models.models import Property, Sale, User
from repos.interest_repo import InterestRepo
from services.interest_service import InterestService
from services.sale_service import SaleService

pytestmark = pytest.mark.unit


@pytest.fixture
async def market(db):
    seller = await make_user(db, role=UserRole.SELLER)
    other_seller = await make_user(db, role=UserRole.SELLER)
    admin = await make_user(db, role=UserRole.ADMIN)
    super_admin = await make_user(db, role=UserRole.SUPER_ADMIN)
    buyer = await make_user(db)
    rival = await make_user(db)
    prop = await make_property(db, seller, price=Decimal("500000"))
    return SimpleNamespace(
        seller=seller,
        other_seller=other_seller,
        admin=admin,
        super_admin=super_admin,
        buyer=buyer,
        rival=rival,
        property=prop,
    )


async def _user(db, user_id) -> User:
    return await refetch(db, User, user_id)


def _sale_data(market, **overrides):
    values = dict(
        property_id=market.property,
        buyer_id=market.buyer,
        amount=Decimal("500000"),
        payment_method=PaymentMethod.BANK_TRANSFER,
        payment_reference="TRF-88231",
        notes=None,
        payment_proof_url=None,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def _review(sale_id, decision, comment=None):
    return SimpleNamespace(sale_id=sale_id, finance_status=decision, finance_comment=comment)


async def test_sale_confirmed_books_commission(db, config, market):
    interests = InterestService(db, config)
    await interests.express_interest(market.buyer, market.property)
    await interests.express_interest(market.rival, market.property)
    sales = SaleService(db, config)

    sale = await sales.mark_as_sold(await _user(db, market.seller), _sale_data(market))

    assert sale.status == SaleStatus.PAYMENT_SUBMITTED
    assert sale.finance_status == FinanceStatus.PENDING
    assert sale.company_account_paid is False
    assert (await refetch(db, Property, market.property)).status == PropertyStatus.SOLD
    assert (await InterestRepo(db).get(market.buyer, market.property)).status == InterestStatus.PURCHASED
    assert (await InterestRepo(db).get(market.rival, market.property)).status == InterestStatus.EXPIRED

    reviewed = await sales.review_sale(
        await _user(db, market.admin), _review(sale.id, FinanceStatus.CONFIRMED, "Funds landed")
    )

    assert reviewed.status == SaleStatus.CONFIRMED
    assert reviewed.finance_status == FinanceStatus.CONFIRMED
    assert reviewed.company_account_paid is True
    assert reviewed.finance_reviewed_by_id == market.admin
    assert reviewed.finance_comment == "Funds landed"

    commissions = await sales.list_sale_commissions(await _user(db, market.admin), sale.id)
    assert len(commissions) == 1
    assert commissions[0].amount == Decimal("15000.00")
    assert commissions[0].admin_id == market.seller
    assert commissions[0].status == CommissionStatus.PENDING


async def test_rejected_sale_is_disputed_without_commission(db, config, market):
    sales = SaleService(db, config)
    sale = await sales.mark_as_sold(await _user(db, market.seller), _sale_data(market))

    reviewed = await sales.review_sale(
        await _user(db, market.admin), _review(sale.id, FinanceStatus.REJECTED)
    )

    assert reviewed.status == SaleStatus.DISPUTED
    assert reviewed.company_account_paid is False
    assert await sales.list_sale_commissions(await _user(db, market.admin), sale.id) == []
    assert (await refetch(db, Property, market.property)).status == PropertyStatus.SOLD


async def test_review_happens_once(db, config, market):
    sales = SaleService(db, config)
    sale = await sales.mark_as_sold(await _user(db, market.seller), _sale_data(market))
    admin = await _user(db, market.admin)
    await sales.review_sale(admin, _review(sale.id, FinanceStatus.CONFIRMED))

    with pytest.raises(ForbiddenError, match="Sale already reviewed."):
        await sales.review_sale(admin, _review(sale.id, FinanceStatus.REJECTED))

    final = await refetch(db, Sale, sale.id)
    assert final.finance_status == FinanceStatus.CONFIRMED


async def test_property_cannot_be_sold_twice(db, config, market):
    sales = SaleService(db, config)
    await sales.mark_as_sold(await _user(db, market.seller), _sale_data(market))

    with pytest.raises(BadRequestError, match="already been sold"):
        await sales.mark_as_sold(
            await _user(db, market.super_admin), _sale_data(market, buyer_id=market.rival)
        )


async def test_mark_sale_permissions(db, config, market):
    sales = SaleService(db, config)

    with pytest.raises(ForbiddenError):
        await sales.mark_as_sold(await _user(db, market.buyer), _sale_data(market))
    with pytest.raises(ForbiddenError):
        await sales.mark_as_sold(await _user(db, market.other_seller), _sale_data(market))
    with pytest.raises(NotFoundError):
        await sales.mark_as_sold(
            await _user(db, market.seller), _sale_data(market, buyer_id=uuid.uuid4())
        )

    sale = await sales.mark_as_sold(await _user(db, market.super_admin), _sale_data(market))
    assert sale.seller_id == market.super_admin


async def test_review_permissions_and_pending_queue(db, config, market):
    sales = SaleService(db, config)
    sale = await sales.mark_as_sold(await _user(db, market.seller), _sale_data(market))

    with pytest.raises(ForbiddenError):
        await sales.review_sale(
            await _user(db, market.seller), _review(sale.id, FinanceStatus.CONFIRMED)
        )
    with pytest.raises(ForbiddenError):
        await sales.list_pending_sales(await _user(db, market.buyer))

    pending = await sales.list_pending_sales(await _user(db, market.admin))
    assert [s.id for s in pending] == [sale.id]

    await sales.review_sale(await _user(db, market.admin), _review(sale.id, FinanceStatus.CONFIRMED))
    assert await sales.list_pending_sales(await _user(db, market.admin)) == []


async def test_express_interest_rules(db, config, market):
    interests = InterestService(db, config)

    with pytest.raises(BadRequestError, match="own property"):
        await interests.express_interest(market.seller, market.property)

    first = await interests.express_interest(market.buyer, market.property)
    again = await interests.express_interest(market.buyer, market.property)
    assert first.id == again.id
    assert again.status == InterestStatus.ACTIVE

    await SaleService(db, config).mark_as_sold(
        await _user(db, market.seller), _sale_data(market, buyer_id=market.rival)
    )
    with pytest.raises(BadRequestError, match="already been sold"):
        await interests.express_interest(market.buyer, market.property)


async def test_payment_details(db, config, market):
    interests = InterestService(db, config)

    with pytest.raises(ForbiddenError):
        await interests.get_payment_details(await _user(db, market.admin), market.property)
    with pytest.raises(ForbiddenError):
        await interests.get_payment_details(await _user(db, market.buyer), market.property)

    await interests.express_interest(market.buyer, market.property)
    details = await interests.get_payment_details(await _user(db, market.buyer), market.property)

    assert details["bank_name"] == "Providus Bank"
    assert details["account_number"] == "0123456789"
    assert details["amount"] == Decimal("500000")
    assert "3 Bedroom Duplex, Lekki" in details["instructions"]


async def test_payment_details_unconfigured(db, market):
    interests = InterestService(db, MarketplaceConfig())
    await interests.express_interest(market.buyer, market.property)

    with pytest.raises(UnconfiguredError, match="not configured"):
        await interests.get_payment_details(await _user(db, market.buyer), market.property)
