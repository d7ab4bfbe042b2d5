"""
Payment capture collaborators.

The settlement flows only see ``PaymentGateway.capture``. Two implementations
ship: ``MockPaymentGateway`` for local development and tests, and
``HttpPaymentGateway`` for a REST payment processor. Neither retries; provider
errors are raised as ``PaymentProviderError`` carrying the provider message.
"""
import asyncio
import enum
import logging
import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from functools import lru_cache
from typing import Any, Dict, Optional

import requests

from marketplace.core.config import settings

logger = logging.getLogger(__name__)

class PaymentStatus(str, enum.Enum):
    SUCCEEDED = "succeeded"
    PENDING = "pending"
    FAILED = "failed"

@dataclass(frozen=True)
class PaymentResult:
    id: str
    status: PaymentStatus
    message: Optional[str] = None

class PaymentProviderError(Exception):
    """The provider rejected the call or could not be reached."""

class PaymentGateway:

    async def capture(
        self,
        amount: Decimal,
        currency: str,
        payment_method_ref: str,
        idempotency_key: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> PaymentResult:
        raise NotImplementedError("Subclasses must implement capture")

def to_minor_units(amount: Decimal) -> int:
    return int((amount * 100).to_integral_value())

class MockPaymentGateway(PaymentGateway):
    """
    In-memory processor. The payment method reference picks the outcome:
    ``pm_fail`` declines, ``pm_pending`` stays pending, ``pm_error`` raises a
    provider error; anything else succeeds. A repeated idempotency key returns
    the first result instead of charging again.
    """

    def __init__(self):
        self.captures: Dict[str, PaymentResult] = {}
        self.calls: list = []

    async def capture(
        self,
        amount: Decimal,
        currency: str,
        payment_method_ref: str,
        idempotency_key: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> PaymentResult:
        self.calls.append({
            "amount": amount,
            "currency": currency,
            "payment_method_ref": payment_method_ref,
            "idempotency_key": idempotency_key,
            "metadata": metadata or {},
        })

        if idempotency_key in self.captures:
            return self.captures[idempotency_key]

        if payment_method_ref == "pm_error":
            raise PaymentProviderError("Your card was declined by the issuer")

        if payment_method_ref == "pm_fail":
            result = PaymentResult(id=f"mock_{uuid.uuid4().hex}", status=PaymentStatus.FAILED, message="Card declined")
        elif payment_method_ref == "pm_pending":
            result = PaymentResult(id=f"mock_{uuid.uuid4().hex}", status=PaymentStatus.PENDING)
        else:
            result = PaymentResult(id=f"mock_{uuid.uuid4().hex}", status=PaymentStatus.SUCCEEDED)

        self.captures[idempotency_key] = result
        logger.info("[MockPayments] %s %s %s -> %s", idempotency_key, amount, currency, result.status.value)
        return result

@dataclass
class HttpPaymentGateway(PaymentGateway):
    base_url: str
    api_key: str
    timeout: float = 15.0
    session: requests.Session = field(default_factory=requests.Session)

    def _post_capture(self, payload: Dict[str, Any], idempotency_key: str) -> Dict[str, Any]:
        url = f"{self.base_url.rstrip('/')}/captures"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Idempotency-Key": idempotency_key,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        try:
            response = self.session.post(url, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise PaymentProviderError(f"Payment provider unreachable: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if response.status_code >= 400:
            error = body.get("error")
            message = error.get("message") if isinstance(error, dict) else error
            raise PaymentProviderError(message or f"Payment provider returned HTTP {response.status_code}")
        return body

    async def capture(
        self,
        amount: Decimal,
        currency: str,
        payment_method_ref: str,
        idempotency_key: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> PaymentResult:
        payload = {
            "amount": to_minor_units(amount),
            "currency": currency.lower(),
            "payment_method": payment_method_ref,
            "confirm": True,
            "metadata": {k: str(v) for k, v in (metadata or {}).items()},
        }
        # requests is blocking; keep it off the event loop
        body = await asyncio.to_thread(self._post_capture, payload, idempotency_key)

        try:
            status = PaymentStatus(body.get("status"))
        except ValueError:
            # Anything still in flight (requires_action, processing, ...) settles later
            status = PaymentStatus.PENDING

        if not body.get("id"):
            raise PaymentProviderError("Payment provider response is missing an id")

        return PaymentResult(id=body["id"], status=status, message=body.get("message"))

@lru_cache
def get_payment_gateway() -> PaymentGateway:
    if settings.PAYMENT_PROVIDER == "http":
        if not settings.PAYMENT_API_URL or not settings.PAYMENT_API_KEY:
            raise RuntimeError("PAYMENT_API_URL and PAYMENT_API_KEY are required for the http payment provider")
        return HttpPaymentGateway(
            base_url=settings.PAYMENT_API_URL,
            api_key=settings.PAYMENT_API_KEY,
            timeout=settings.PAYMENT_TIMEOUT_SECONDS,
        )
    logger.info("Payment provider not configured, using Mock Mode.")
    return MockPaymentGateway()
