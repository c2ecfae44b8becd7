"""Async Razorpay API wrapper for VillaStay.

Every call is a single bounded-timeout HTTP request. Nothing is retried here:
orders, payments and refunds are not idempotent from our side, so retry policy
belongs to the caller.
"""

import hashlib
import hmac
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Protocol

import httpx

from villastay.config import settings
from villastay.errors import ProviderError

logger = logging.getLogger(__name__)

_MINOR_UNITS = Decimal("100")


class PaymentGatewayError(ProviderError):
    """Gateway unreachable, timed out, or rejected the request."""

    def __init__(self, message: str, *, detail: str | None = None, gateway_status: int | None = None) -> None:
        super().__init__(message, detail=detail)
        self.gateway_status = gateway_status


@dataclass(frozen=True)
class GatewayOrder:
    id: str
    amount: int
    currency: str
    receipt: str | None = None


@dataclass(frozen=True)
class GatewayPayment:
    id: str
    status: str
    method: str | None
    amount: int
    currency: str
    order_id: str | None = None


@dataclass(frozen=True)
class GatewayRefund:
    id: str
    payment_id: str
    amount: int
    currency: str
    status: str
    created_at: datetime | None = None
    processed_at: datetime | None = None
    reference_id: str | None = None
    notes: dict[str, str] = field(default_factory=dict)


class PaymentGateway(Protocol):
    """What the booking services need from a payment provider."""

    currency: str

    async def create_order(self, amount_minor: int, receipt: str, notes: dict[str, str]) -> GatewayOrder: ...

    async def fetch_payment(self, payment_id: str) -> GatewayPayment: ...

    async def refund(self, payment_id: str, amount_minor: int, notes: dict[str, str]) -> GatewayRefund: ...

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool: ...


def to_minor_units(amount: Decimal) -> int:
    """Convert a major-unit amount (rupees) to integer minor units (paise), rounding half up."""
    return int((Decimal(amount) * _MINOR_UNITS).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(amount: int) -> Decimal:
    """Convert integer minor units back to a two-place major-unit Decimal."""
    return (Decimal(amount) / _MINOR_UNITS).quantize(Decimal("0.01"))


def ts_to_naive(ts: int | None) -> datetime | None:
    """Convert a gateway Unix timestamp to naive UTC datetime."""
    if ts is None:
        return None
    return datetime.fromtimestamp(ts, tz=timezone.utc).replace(tzinfo=None)


def compute_signature(secret: str, order_id: str, payment_id: str) -> str:
    """HMAC-SHA256 of ``order_id|payment_id``, hex encoded."""
    message = f"{order_id}|{payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def _stringify_notes(notes: dict[str, Any]) -> dict[str, str]:
    # Razorpay only accepts string note values
    return {key: "" if value is None else str(value) for key, value in notes.items()}


@dataclass(frozen=True)
class RazorpayConfig:
    key_id: str
    key_secret: str
    api_url: str = "https://api.razorpay.com/v1"
    timeout: float = 15.0
    currency: str = "INR"

    @classmethod
    def from_settings(cls) -> "RazorpayConfig":
        return cls(
            key_id=settings.razorpay_key_id,
            key_secret=settings.razorpay_key_secret,
            api_url=settings.razorpay_api_url,
            timeout=settings.payment_gateway_timeout_seconds,
            currency=settings.payment_currency,
        )


class RazorpayClient:
    """:class:`PaymentGateway` backed by the Razorpay REST API."""

    def __init__(self, config: RazorpayConfig, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.config = config
        self.currency = config.currency
        self._transport = transport

    async def _request(self, method: str, path: str, payload: dict | None = None) -> dict:
        async with httpx.AsyncClient(
            base_url=self.config.api_url,
            auth=(self.config.key_id, self.config.key_secret),
            timeout=self.config.timeout,
            transport=self._transport,
        ) as client:
            try:
                response = await client.request(method, path, json=payload)
            except httpx.TimeoutException as e:
                logger.warning("Razorpay %s %s timed out after %ss", method, path, self.config.timeout)
                raise PaymentGatewayError("Payment provider timed out") from e
            except httpx.HTTPError as e:
                logger.warning("Razorpay %s %s failed: %s", method, path, type(e).__name__)
                raise PaymentGatewayError("Payment provider unreachable", detail=type(e).__name__) from e

        if response.status_code >= 400:
            description = None
            try:
                description = response.json().get("error", {}).get("description")
            except ValueError:
                pass
            logger.warning("Razorpay %s %s rejected with HTTP %s", method, path, response.status_code)
            raise PaymentGatewayError(
                "Payment provider rejected the request",
                detail=description,
                gateway_status=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise PaymentGatewayError("Invalid response from payment provider") from e

    async def create_order(self, amount_minor: int, receipt: str, notes: dict[str, str]) -> GatewayOrder:
        """Open an order for ``amount_minor`` paise."""
        logger.info("Creating Razorpay order for %s %s (receipt %s)", amount_minor, self.currency, receipt)
        data = await self._request(
            "POST",
            "/orders",
            {
                "amount": amount_minor,
                "currency": self.currency,
                "receipt": receipt,
                "notes": _stringify_notes(notes),
            },
        )
        order = GatewayOrder(
            id=data["id"],
            amount=int(data["amount"]),
            currency=data.get("currency", self.currency),
            receipt=data.get("receipt"),
        )
        logger.info("Created Razorpay order %s", order.id)
        return order

    async def fetch_payment(self, payment_id: str) -> GatewayPayment:
        """Retrieve the authoritative state of a payment."""
        data = await self._request("GET", f"/payments/{payment_id}")
        return GatewayPayment(
            id=data["id"],
            status=data.get("status", ""),
            method=data.get("method"),
            amount=int(data.get("amount", 0)),
            currency=data.get("currency", self.currency),
            order_id=data.get("order_id"),
        )

    async def refund(self, payment_id: str, amount_minor: int, notes: dict[str, str]) -> GatewayRefund:
        """Refund ``amount_minor`` paise of a captured payment."""
        logger.info("Requesting Razorpay refund of %s for payment %s", amount_minor, payment_id)
        data = await self._request(
            "POST",
            f"/payments/{payment_id}/refund",
            {"amount": amount_minor, "notes": _stringify_notes(notes)},
        )
        acquirer = data.get("acquirer_data") or {}
        refund = GatewayRefund(
            id=data["id"],
            payment_id=data.get("payment_id", payment_id),
            amount=int(data["amount"]),
            currency=data.get("currency", self.currency),
            status=data.get("status", "pending"),
            created_at=ts_to_naive(data.get("created_at")),
            processed_at=ts_to_naive(data.get("processed_at")),
            reference_id=data.get("receipt") or acquirer.get("arn") or acquirer.get("rrn"),
            notes=data.get("notes") or {},
        )
        logger.info("Razorpay refund %s for payment %s is %s", refund.id, payment_id, refund.status)
        return refund

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        """Check the checkout signature the client received from Razorpay."""
        expected = compute_signature(self.config.key_secret, order_id, payment_id)
        return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))


def get_razorpay_client() -> RazorpayClient:
    """Create a RazorpayClient from application settings."""
    return RazorpayClient(RazorpayConfig.from_settings())
