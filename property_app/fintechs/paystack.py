import logging
from decimal import Decimal

import httpx

from core.breaker import paystack_breaker
from core.settings import settings

logger = logging.getLogger(__name__)


class PaystackClient:
    """Reservation-fee gateway. Amounts go in and come out in major units."""

    def __init__(self, secret: str | None = None, base_url: str | None = None):
        self.base_url = (base_url or settings.PAYSTACK_BASE_URL).rstrip("/")
        self.headers = {
            "Authorization": f"Bearer {secret or settings.PAYSTACK_SECRET_KEY}",
            "Content-Type": "application/json",
        }

    async def initialize_payment(
        self,
        *,
        email: str,
        amount: Decimal,
        reference: str,
        metadata: dict | None = None,
        callback_url: str | None = None,
    ) -> dict:
        return await paystack_breaker.call(
            self._initialize,
            email=email,
            amount=amount,
            reference=reference,
            metadata=metadata,
            callback_url=callback_url,
        )

    async def verify_payment(self, reference: str) -> dict:
        return await paystack_breaker.call(self._verify, reference)

    async def _initialize(
        self,
        *,
        email: str,
        amount: Decimal,
        reference: str,
        metadata: dict | None,
        callback_url: str | None,
    ) -> dict:
        url = f"{self.base_url}/transaction/initialize"

        payload = {
            "email": email,
            "amount": int(Decimal(amount) * 100),
            "reference": reference,
        }
        if metadata:
            payload["metadata"] = metadata
        if callback_url:
            payload["callback_url"] = callback_url

        async with httpx.AsyncClient(timeout=30) as client:
            res = await client.post(url, headers=self.headers, json=payload)

        res.raise_for_status()
        data = res.json()

        if not data.get("status"):
            raise RuntimeError(data.get("message", "Paystack init failed"))

        tx = data["data"]
        return {
            "authorization_url": tx.get("authorization_url"),
            "access_code": tx.get("access_code"),
            "reference": tx.get("reference", reference),
        }

    async def _verify(self, reference: str) -> dict:
        url = f"{self.base_url}/transaction/verify/{reference}"

        async with httpx.AsyncClient(timeout=30) as client:
            res = await client.get(url, headers=self.headers)

        if res.status_code == 404:
            logger.info(f"Paystack has no transaction for reference {reference}")
            return {"status": "failed", "reference": reference, "metadata": {}}

        res.raise_for_status()
        payload = res.json()

        if not payload.get("status"):
            return {"status": "failed", "reference": reference, "metadata": {}}

        tx = payload["data"]
        return {
            "status": tx.get("status", "failed"),
            "reference": tx.get("reference", reference),
            "amount": Decimal(tx.get("amount", 0)) / 100,
            "currency": tx.get("currency"),
            "paid_at": tx.get("paid_at"),
            "channel": tx.get("channel"),
            "metadata": tx.get("metadata") or {},
        }
