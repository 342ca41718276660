import logging
import secrets
import time
import uuid
from datetime import timedelta
from decimal import Decimal

import httpx

from core.business_config import MarketplaceConfig, marketplace_config
from core.date_helper import days_remaining, utcnow
from core.errors import (
    BadRequestError,
    ConflictError,
    ExternalServiceError,
    ForbiddenError,
    NotFoundError,
)
from core.settings import settings
from fintechs.paystack import PaystackClient
from models.enums import GatewayStatus, PaymentStatus, PropertyStatus
from models.models import Property, ReservationFeePayment
from repos.property_repo import PropertyRepo
from repos.reservation_payment_repo import ReservationPaymentRepo
from repos.user_repo import UserRepo

logger = logging.getLogger(__name__)

GATEWAY_ERRORS = (httpx.HTTPError, RuntimeError, ConnectionError)


def make_reservation_reference(user_id: uuid.UUID) -> str:
    millis = time.time_ns() // 1_000_000
    return f"RSV-{millis}-{str(user_id)[:8]}-{secrets.token_hex(3)}"


class ReservationService:
    def __init__(
        self,
        db,
        gateway=None,
        config: MarketplaceConfig = marketplace_config,
    ):
        self.db = db
        self.property_repo: PropertyRepo = PropertyRepo(db)
        self.payment_repo: ReservationPaymentRepo = ReservationPaymentRepo(db)
        self.user_repo: UserRepo = UserRepo(db)
        self.gateway = gateway or PaystackClient()
        self.config = config

    async def _get_property(self, property_id: uuid.UUID) -> Property:
        prop = await self.property_repo.get_by_id(property_id)
        if not prop:
            raise NotFoundError("Property not found")
        return prop

    async def initialize_reservation_fee(
        self, user_id: uuid.UUID, property_id: uuid.UUID
    ) -> dict:
        prop = await self._get_property(property_id)

        if prop.status == PropertyStatus.SOLD:
            raise BadRequestError("Property has already been sold")

        now = utcnow()
        if prop.reservation_active(now):
            if prop.current_reservation_by != user_id:
                raise BadRequestError("Property is already reserved by another user")
            raise ConflictError(
                "You already have an active reservation for this property"
            )

        user = await self.user_repo.by_id(user_id)
        if not user:
            raise NotFoundError("User not found")

        amount = self.config.reservation_fee_amount
        reference = make_reservation_reference(user_id)

        try:
            init = await self.gateway.initialize_payment(
                email=user.email,
                amount=amount,
                reference=reference,
                metadata={
                    "user_id": str(user_id),
                    "property_id": str(property_id),
                    "property_title": prop.title,
                    "customer_name": user.full_name,
                    "type": "reservation_fee",
                },
                callback_url=settings.FRONTEND_URL,
            )
        except GATEWAY_ERRORS as e:
            logger.error(f"Reservation fee init failed for {reference}: {e}")
            raise ExternalServiceError(
                "Payment gateway is unavailable, please try again shortly"
            )

        await self.payment_repo.create(
            user_id=user_id,
            property_id=property_id,
            amount=amount,
            reference=reference,
            metadata={
                "property_title": prop.title,
                "property_price": str(prop.price),
                "property_location": prop.location,
            },
        )
        logger.info(f"Reservation fee initialized: {reference} for property {property_id}")

        return {
            "authorization_url": init.get("authorization_url"),
            "access_code": init.get("access_code"),
            "reference": init.get("reference") or reference,
            "amount": amount,
            "expires_in_days": self.config.reservation_period_days,
        }

    async def _verified(self, payment: ReservationFeePayment) -> dict:
        prop = await self._get_property(payment.property_id)
        return {
            "payment": payment,
            "property_id": prop.id,
            "reserved_by": prop.current_reservation_by,
            "expires_at": prop.reservation_expires_at,
        }

    async def _fail(self, payment_id: uuid.UUID, annotations: dict) -> None:
        await self.payment_repo.mark_failed(payment_id, annotations)

    async def verify_reservation_fee(self, reference: str) -> dict:
        payment = await self.payment_repo.get_by_reference(reference)
        if not payment:
            raise NotFoundError("Payment record not found")

        if payment.status == PaymentStatus.SUCCESS:
            return await self._verified(payment)

        if payment.status == PaymentStatus.FAILED:
            raise BadRequestError(
                "This payment can no longer be verified, please start a new reservation"
            )

        payment_id = payment.id
        expected_amount = Decimal(payment.amount)

        try:
            verified = await self.gateway.verify_payment(reference)
        except GATEWAY_ERRORS as e:
            logger.error(f"Reservation fee verification failed for {reference}: {e}")
            await self._fail(payment_id, {"verifyError": "gateway_unavailable"})
            raise ExternalServiceError("Could not confirm the payment with the gateway")

        status = verified.get("status")
        if status != GatewayStatus.SUCCESS.value:
            await self._fail(payment_id, {"verifyStatus": status})
            raise ExternalServiceError(f"Payment was not successful (status: {status})")

        paid = verified.get("amount")
        if paid is not None and Decimal(str(paid)) < expected_amount:
            await self._fail(
                payment_id, {"verifyStatus": status, "amountPaid": str(paid)}
            )
            raise ExternalServiceError("Paid amount does not cover the reservation fee")

        now = utcnow()
        expires_at = now + timedelta(days=self.config.reservation_period_days)
        locked = await self.property_repo.lock_for_payment(
            payment,
            now,
            expires_at,
            gateway_metadata={
                "paid_at": verified.get("paid_at"),
                "channel": verified.get("channel"),
            },
        )

        payment = await self.payment_repo.get_by_id(payment_id)
        if locked or payment.status == PaymentStatus.SUCCESS:
            if locked:
                logger.info(
                    f"Property {payment.property_id} reserved by {payment.user_id} "
                    f"until {expires_at.isoformat()}"
                )
            return await self._verified(payment)

        await self._fail(
            payment_id,
            {"verifyStatus": status, "conflict": "property_unavailable"},
        )
        logger.warning(
            f"Reservation conflict on property {payment.property_id}: "
            f"payment {reference} marked FAILED"
        )
        raise ConflictError(
            "Property was reserved by another user before this payment was confirmed"
        )

    async def has_user_active_reservation(
        self, user_id: uuid.UUID, property_id: uuid.UUID
    ) -> bool:
        payment = await self.payment_repo.latest_success(user_id, property_id)
        if not payment:
            return False

        prop = await self.property_repo.get_by_id(property_id)
        if not prop or prop.current_reservation_by != user_id:
            return False
        if not prop.reservation_expires_at:
            return False
        return utcnow() < prop.reservation_expires_at

    async def get_reservation_status(
        self, user_id: uuid.UUID, property_id: uuid.UUID
    ) -> dict:
        payment = await self.payment_repo.latest_success(user_id, property_id)
        if not payment:
            return {"has_reservation": False, "message": "No active reservation"}

        prop = await self._get_property(property_id)
        now = utcnow()
        expires_at = prop.reservation_expires_at

        if (
            prop.current_reservation_by != user_id
            or not expires_at
            or now >= expires_at
        ):
            return {
                "has_reservation": False,
                "message": "Reservation has expired",
                "expires_at": expires_at,
            }

        return {
            "has_reservation": True,
            "payment_status": payment.status,
            "amount": payment.amount,
            "paid_at": payment.paid_at,
            "expires_at": expires_at,
            "days_remaining": days_remaining(expires_at, now),
        }

    async def list_user_reservations(
        self, user_id: uuid.UUID, page: int = 1, per_page: int = 20
    ):
        return await self.payment_repo.list_for_user(user_id, page, per_page)

    async def cancel_reservation(
        self,
        user_id: uuid.UUID,
        property_id: uuid.UUID,
        reason: str | None = None,
    ) -> dict:
        payment = await self.payment_repo.latest_success(user_id, property_id)
        if not payment:
            raise NotFoundError("No active reservation found")

        prop = await self._get_property(property_id)
        if prop.current_reservation_by != user_id:
            raise ForbiddenError("You do not own this reservation")

        released = await self.property_repo.release_reservation(property_id, user_id)
        if not released:
            raise ForbiddenError("You do not own this reservation")

        logger.info(f"Reservation on property {property_id} cancelled by {user_id}")
        return {
            "message": "Reservation cancelled",
            "amount": payment.amount,
            "note": "The reservation fee is non-refundable",
            "reason": reason or "User cancelled reservation",
        }

    async def release_expired_reservations(self) -> int:
        released = await self.property_repo.release_expired_reservations(utcnow())
        if released:
            logger.info(f"Released {released} expired reservation(s)")
        return released

    async def soft_hold_for_chat(
        self, property_id: uuid.UUID, user_id: uuid.UUID
    ) -> Property:
        prop = await self._get_property(property_id)
        now = utcnow()
        if prop.reservation_active(now) and prop.current_reservation_by != user_id:
            raise ConflictError("Property is reserved by another user")
        if prop.held_by_other(user_id, now):
            raise ConflictError("Property is currently held by another user")

        until = now + timedelta(minutes=self.config.soft_hold_minutes)
        if not await self.property_repo.place_hold(property_id, user_id, now, until):
            raise ConflictError("Property is currently held by another user")
        return await self._get_property(property_id)

    async def renew_soft_hold_for_chat(
        self, property_id: uuid.UUID, user_id: uuid.UUID
    ) -> Property:
        await self._get_property(property_id)
        now = utcnow()
        until = now + timedelta(minutes=self.config.soft_hold_minutes)

        if not await self.property_repo.renew_hold(property_id, user_id, now, until):
            raise BadRequestError("You do not hold this property, start the chat again")
        return await self._get_property(property_id)

    async def release_soft_hold_for_chat(
        self, property_id: uuid.UUID, user_id: uuid.UUID
    ) -> Property:
        await self._get_property(property_id)
        await self.property_repo.release_hold(property_id, user_id)
        return await self._get_property(property_id)
