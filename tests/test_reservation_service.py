import asyncio
from datetime import timedelta
from decimal import Decimal

import httpx
import pytest
from sqlalchemy import update

from core.date_helper import utcnow
from core.errors import (
    BadRequestError,
    ConflictError,
    ExternalServiceError,
    ForbiddenError,
    NotFoundError,
)
from factories import make_property, make_user, refetch, reserve
from models.enums import PaymentStatus, PropertyStatus, ReservationFeeStatus, UserRole
from models.models import Property, ReservationFeePayment
from repos.property_repo import PropertyRepo
from repos.reservation_payment_repo import ReservationPaymentRepo
from services.reservation_service import ReservationService, make_reservation_reference

pytestmark = pytest.mark.unit


@pytest.fixture
async def listing(db):
    owner_id = await make_user(db, role=UserRole.SELLER)
    buyer_id = await make_user(db)
    rival_id = await make_user(db)
    property_id = await make_property(db, owner_id)
    return {"owner": owner_id, "buyer": buyer_id, "rival": rival_id, "property": property_id}


async def _expire(db, property_id):
    await db.execute(
        update(Property)
        .where(Property.id == property_id)
        .values(reservation_expires_at=utcnow() - timedelta(minutes=1))
    )
    await db.commit()


def test_reference_format():
    import uuid

    user_id = uuid.UUID("6f1d2c3b-0000-4000-8000-000000000000")
    reference = make_reservation_reference(user_id)
    prefix, millis, user_part, token = reference.split("-")
    assert prefix == "RSV"
    assert millis.isdigit()
    assert user_part == "6f1d2c3b"
    assert len(token) == 6


async def test_initialize_creates_pending_record(db, gateway, config, listing):
    service = ReservationService(db, gateway=gateway, config=config)

    init = await service.initialize_reservation_fee(listing["buyer"], listing["property"])

    assert init["authorization_url"].startswith("https://checkout.paystack.com/")
    assert init["amount"] == Decimal("10000")
    assert init["expires_in_days"] == 7
    gateway.initialize_payment.assert_awaited_once()
    assert gateway.initialize_payment.await_args.kwargs["amount"] == Decimal("10000")

    payment = await ReservationPaymentRepo(db).get_by_reference(init["reference"])
    assert payment.status == PaymentStatus.PENDING
    assert payment.payment_metadata["property_title"] == "3 Bedroom Duplex, Lekki"


async def test_initialize_gateway_failure_leaves_no_record(db, gateway, config, listing):
    gateway.initialize_payment.side_effect = httpx.ConnectError("connection refused")
    service = ReservationService(db, gateway=gateway, config=config)

    with pytest.raises(ExternalServiceError):
        await service.initialize_reservation_fee(listing["buyer"], listing["property"])

    assert await service.list_user_reservations(listing["buyer"]) == []


async def test_initialize_rejects_sold_property(db, gateway, config, listing):
    await db.execute(
        update(Property)
        .where(Property.id == listing["property"])
        .values(status=PropertyStatus.SOLD)
    )
    await db.commit()

    with pytest.raises(BadRequestError):
        await ReservationService(db, gateway=gateway, config=config).initialize_reservation_fee(
            listing["buyer"], listing["property"]
        )


async def test_initialize_unknown_property(db, gateway, config, listing):
    import uuid

    with pytest.raises(NotFoundError):
        await ReservationService(db, gateway=gateway, config=config).initialize_reservation_fee(
            listing["buyer"], uuid.uuid4()
        )


async def test_verify_reserves_property(db, gateway, config, listing):
    service = ReservationService(db, gateway=gateway, config=config)
    init = await service.initialize_reservation_fee(listing["buyer"], listing["property"])

    result = await service.verify_reservation_fee(init["reference"])

    assert result["payment"].status == PaymentStatus.SUCCESS
    assert result["payment"].payment_metadata["gateway"]["channel"] == "card"
    assert result["reserved_by"] == listing["buyer"]

    prop = await refetch(db, Property, listing["property"])
    assert prop.is_reserved is True
    assert prop.status == PropertyStatus.PENDING
    assert prop.reservation_fee_status == ReservationFeeStatus.PAID
    remaining = prop.reservation_expires_at - prop.reservation_started_at
    assert remaining == timedelta(days=7)
    assert await service.has_user_active_reservation(listing["buyer"], listing["property"])


async def test_verify_is_idempotent(db, gateway, config, listing):
    service = ReservationService(db, gateway=gateway, config=config)
    reference = await reserve(db, gateway, config, listing["buyer"], listing["property"])

    again = await service.verify_reservation_fee(reference)

    assert again["payment"].status == PaymentStatus.SUCCESS
    assert gateway.verify_payment.await_count == 1


async def test_verify_unknown_reference(db, gateway, config):
    with pytest.raises(NotFoundError, match="Payment record not found"):
        await ReservationService(db, gateway=gateway, config=config).verify_reservation_fee(
            "RSV-0-missing"
        )


async def test_failed_gateway_status_marks_payment_failed(db, gateway, config, listing):
    gateway.verify_payment.return_value = {"status": "abandoned", "metadata": {}}
    service = ReservationService(db, gateway=gateway, config=config)
    init = await service.initialize_reservation_fee(listing["buyer"], listing["property"])

    with pytest.raises(ExternalServiceError):
        await service.verify_reservation_fee(init["reference"])

    payment = await ReservationPaymentRepo(db).get_by_reference(init["reference"])
    assert payment.status == PaymentStatus.FAILED
    assert payment.payment_metadata["verifyStatus"] == "abandoned"
    prop = await refetch(db, Property, listing["property"])
    assert prop.is_reserved is False

    with pytest.raises(BadRequestError):
        await service.verify_reservation_fee(init["reference"])


async def test_gateway_outage_during_verify(db, gateway, config, listing):
    gateway.verify_payment.side_effect = httpx.ReadTimeout("timed out")
    service = ReservationService(db, gateway=gateway, config=config)
    init = await service.initialize_reservation_fee(listing["buyer"], listing["property"])

    with pytest.raises(ExternalServiceError):
        await service.verify_reservation_fee(init["reference"])

    payment = await ReservationPaymentRepo(db).get_by_reference(init["reference"])
    assert payment.status == PaymentStatus.FAILED
    assert payment.payment_metadata["verifyError"] == "gateway_unavailable"


async def test_short_payment_is_rejected(db, gateway, config, listing):
    gateway.verify_payment.return_value = {
        "status": "success",
        "amount": Decimal("500"),
        "metadata": {},
    }
    service = ReservationService(db, gateway=gateway, config=config)
    init = await service.initialize_reservation_fee(listing["buyer"], listing["property"])

    with pytest.raises(ExternalServiceError):
        await service.verify_reservation_fee(init["reference"])

    prop = await refetch(db, Property, listing["property"])
    assert prop.current_reservation_by is None


async def test_only_one_payer_can_hold_the_property(db, gateway, config, listing):
    service = ReservationService(db, gateway=gateway, config=config)
    first = await service.initialize_reservation_fee(listing["buyer"], listing["property"])
    second = await service.initialize_reservation_fee(listing["rival"], listing["property"])

    await service.verify_reservation_fee(first["reference"])
    with pytest.raises(ConflictError):
        await service.verify_reservation_fee(second["reference"])

    prop = await refetch(db, Property, listing["property"])
    assert prop.current_reservation_by == listing["buyer"]

    loser = await ReservationPaymentRepo(db).get_by_reference(second["reference"])
    assert loser.status == PaymentStatus.FAILED
    assert loser.payment_metadata["conflict"] == "property_unavailable"


async def test_concurrent_verifications_leave_one_holder(db, session_factory, gateway, config, listing):
    payers = [listing["buyer"], listing["rival"]] + [await make_user(db) for _ in range(2)]
    service = ReservationService(db, gateway=gateway, config=config)
    references = [
        (await service.initialize_reservation_fee(payer, listing["property"]))["reference"]
        for payer in payers
    ]

    async def verify(reference):
        async with session_factory() as session:
            return await ReservationService(
                session, gateway=gateway, config=config
            ).verify_reservation_fee(reference)

    results = await asyncio.gather(
        *(verify(reference) for reference in references), return_exceptions=True
    )

    winners = [r for r in results if isinstance(r, dict)]
    assert len(winners) == 1
    assert all(isinstance(r, ConflictError) for r in results if not isinstance(r, dict))

    repo = ReservationPaymentRepo(db)
    statuses = [(await repo.get_by_reference(ref)).status for ref in references]
    assert statuses.count(PaymentStatus.SUCCESS) == 1
    assert statuses.count(PaymentStatus.FAILED) == 3

    prop = await refetch(db, Property, listing["property"])
    assert prop.current_reservation_by == winners[0]["reserved_by"]


async def test_initialize_against_live_reservation(db, gateway, config, listing):
    service = ReservationService(db, gateway=gateway, config=config)
    await reserve(db, gateway, config, listing["buyer"], listing["property"])

    with pytest.raises(BadRequestError, match="already reserved by another user"):
        await service.initialize_reservation_fee(listing["rival"], listing["property"])
    with pytest.raises(ConflictError):
        await service.initialize_reservation_fee(listing["buyer"], listing["property"])


async def test_expired_reservation_frees_the_property(db, gateway, config, listing):
    service = ReservationService(db, gateway=gateway, config=config)
    await reserve(db, gateway, config, listing["buyer"], listing["property"])
    await _expire(db, listing["property"])

    assert not await service.has_user_active_reservation(listing["buyer"], listing["property"])
    status = await service.get_reservation_status(listing["buyer"], listing["property"])
    assert status["has_reservation"] is False
    assert status["message"] == "Reservation has expired"

    await reserve(db, gateway, config, listing["rival"], listing["property"])
    prop = await refetch(db, Property, listing["property"])
    assert prop.current_reservation_by == listing["rival"]


async def test_sweep_releases_expired_locks(db, gateway, config, listing):
    service = ReservationService(db, gateway=gateway, config=config)
    await reserve(db, gateway, config, listing["buyer"], listing["property"])
    assert await service.release_expired_reservations() == 0

    await _expire(db, listing["property"])
    assert await service.release_expired_reservations() == 1

    prop = await refetch(db, Property, listing["property"])
    assert prop.is_reserved is False
    assert prop.status == PropertyStatus.AVAILABLE
    assert prop.current_reservation_by is None


async def test_status_reports_days_remaining(db, gateway, config, listing):
    service = ReservationService(db, gateway=gateway, config=config)
    assert (await service.get_reservation_status(listing["buyer"], listing["property"]))[
        "has_reservation"
    ] is False

    await reserve(db, gateway, config, listing["buyer"], listing["property"])
    status = await service.get_reservation_status(listing["buyer"], listing["property"])

    assert status["has_reservation"] is True
    assert status["days_remaining"] == 7
    assert status["payment_status"] == PaymentStatus.SUCCESS


async def test_cancel_reservation(db, gateway, config, listing):
    service = ReservationService(db, gateway=gateway, config=config)
    await reserve(db, gateway, config, listing["buyer"], listing["property"])

    with pytest.raises(NotFoundError):
        await service.cancel_reservation(listing["rival"], listing["property"])

    result = await service.cancel_reservation(listing["buyer"], listing["property"], "Changed plans")

    assert result["note"] == "The reservation fee is non-refundable"
    assert result["reason"] == "Changed plans"
    prop = await refetch(db, Property, listing["property"])
    assert prop.is_reserved is False
    assert prop.reservation_fee_status == ReservationFeeStatus.UNPAID


async def test_cancel_by_previous_holder_is_forbidden(db, gateway, config, listing):
    service = ReservationService(db, gateway=gateway, config=config)
    await reserve(db, gateway, config, listing["buyer"], listing["property"])
    await _expire(db, listing["property"])
    await reserve(db, gateway, config, listing["rival"], listing["property"])

    with pytest.raises(ForbiddenError):
        await service.cancel_reservation(listing["buyer"], listing["property"])


async def test_list_user_reservations_newest_first(db, gateway, config, listing):
    service = ReservationService(db, gateway=gateway, config=config)
    first = await service.initialize_reservation_fee(listing["buyer"], listing["property"])
    second = await service.initialize_reservation_fee(listing["buyer"], listing["property"])

    rows = await service.list_user_reservations(listing["buyer"])

    assert [r.paystack_reference for r in rows] == [second["reference"], first["reference"]]
    assert all(isinstance(r, ReservationFeePayment) for r in rows)


async def test_soft_hold_lifecycle(db, gateway, config, listing):
    service = ReservationService(db, gateway=gateway, config=config)

    held = await service.soft_hold_for_chat(listing["property"], listing["buyer"])
    assert held.held_by_id == listing["buyer"]

    with pytest.raises(ConflictError):
        await service.soft_hold_for_chat(listing["property"], listing["rival"])
    with pytest.raises(BadRequestError):
        await service.renew_soft_hold_for_chat(listing["property"], listing["rival"])

    renewed = await service.renew_soft_hold_for_chat(listing["property"], listing["buyer"])
    assert renewed.hold_expires_at >= held.hold_expires_at

    released = await service.release_soft_hold_for_chat(listing["property"], listing["buyer"])
    assert released.held_by_id is None

    taken = await service.soft_hold_for_chat(listing["property"], listing["rival"])
    assert taken.held_by_id == listing["rival"]


async def test_soft_hold_respects_paid_reservation(db, gateway, config, listing):
    service = ReservationService(db, gateway=gateway, config=config)
    await reserve(db, gateway, config, listing["buyer"], listing["property"])

    with pytest.raises(ConflictError, match="reserved by another user"):
        await service.soft_hold_for_chat(listing["property"], listing["rival"])

    now = utcnow()
    placed = await PropertyRepo(db).place_hold(
        listing["property"], listing["rival"], now, now + timedelta(minutes=15)
    )
    assert placed is False
    assert (await refetch(db, Property, listing["property"])).held_by_id is None

    held = await service.soft_hold_for_chat(listing["property"], listing["buyer"])
    assert held.held_by_id == listing["buyer"]
