"""Stripe payment gateway adapter: intents, intent status, signed webhook events."""
from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

import stripe

from academy.errors import GatewayError, SignatureError

logger = logging.getLogger("academy.payments")

# metadata.registrationId value the frontend sends before a registration exists
PENDING_REGISTRATION = "pending"
DEFAULT_REGISTRATION_TYPE = "tournament"

SUCCEEDED_EVENT = "payment_intent.succeeded"
FAILED_EVENT = "payment_intent.payment_failed"


def to_minor_units(amount: float) -> int:
    """200.5 AED -> 20050 fils."""
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class PaymentIntent:
    intent_id: str
    client_secret: str


@dataclass(frozen=True)
class IntentStatus:
    intent_id: str
    status: str
    amount: float  # major units
    currency: str
    metadata: dict = field(default_factory=dict)


@dataclass(frozen=True)
class GatewayEvent:
    """Verified webhook event, reduced to what reconciliation needs."""

    event_id: str
    type: str
    intent_id: Optional[str]
    metadata: dict = field(default_factory=dict)
    created: Optional[datetime] = None  # naive UTC

    @property
    def registration_id(self) -> Optional[str]:
        """Correlation key, or None when the intent is not tied to a registration yet."""
        value = self.metadata.get("registrationId")
        if not value or value == PENDING_REGISTRATION:
            return None
        return value

    @property
    def registration_type(self) -> str:
        return self.metadata.get("registrationType") or DEFAULT_REGISTRATION_TYPE


def event_from_payload(event: dict) -> GatewayEvent:
    """Build a GatewayEvent from a decoded Stripe event body."""
    obj = (event.get("data") or {}).get("object") or {}
    created = event.get("created")
    return GatewayEvent(
        event_id=event.get("id", ""),
        type=event.get("type", ""),
        intent_id=obj.get("id"),
        metadata=dict(obj.get("metadata") or {}),
        created=datetime.fromtimestamp(created, tz=timezone.utc).replace(tzinfo=None) if created else None,
    )


class PaymentGateway(ABC):
    """Operations the registration backend needs from a payment provider."""

    @abstractmethod
    async def create_intent(self, amount: float, currency: str, metadata: dict[str, Any]) -> PaymentIntent:
        ...

    @abstractmethod
    async def retrieve_intent(self, intent_id: str) -> IntentStatus:
        ...

    @abstractmethod
    def parse_event(self, payload: bytes, signature: Optional[str]) -> GatewayEvent:
        """Verify the signature and decode the event. Raises SignatureError."""


class StripeGateway(PaymentGateway):
    """Stripe implementation. SDK calls run in a worker thread bounded by ``timeout``."""

    def __init__(self, api_key: str, webhook_secret: str, timeout: float = 15.0):
        self._api_key = api_key
        self._webhook_secret = webhook_secret
        self._timeout = timeout

    async def _call(self, fn, *args, **kwargs):
        if not self._api_key:
            raise GatewayError("Payment gateway is not configured")
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(fn, *args, api_key=self._api_key, **kwargs),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as e:
            logger.warning("Stripe call %s timed out after %.1fs", getattr(fn, "__qualname__", fn), self._timeout)
            raise GatewayError("Payment gateway timed out") from e
        except stripe.StripeError as e:
            logger.warning("Stripe call %s failed: %s", getattr(fn, "__qualname__", fn), e)
            raise GatewayError(f"Payment gateway error: {e.user_message or 'request failed'}") from e

    async def create_intent(self, amount, currency, metadata):
        intent = await self._call(
            stripe.PaymentIntent.create,
            amount=to_minor_units(amount),
            currency=currency.lower(),
            metadata={k: str(v) for k, v in metadata.items()},
            automatic_payment_methods={"enabled": True},
        )
        logger.info("Created payment intent %s for %s %s", intent.id, amount, currency.lower())
        return PaymentIntent(intent_id=intent.id, client_secret=intent.client_secret)

    async def retrieve_intent(self, intent_id):
        intent = await self._call(stripe.PaymentIntent.retrieve, intent_id)
        metadata = intent.metadata
        return IntentStatus(
            intent_id=intent.id,
            status=intent.status,
            amount=intent.amount / 100,
            currency=intent.currency,
            metadata={k: metadata[k] for k in metadata.keys()} if metadata else {},
        )

    def parse_event(self, payload, signature):
        if not self._webhook_secret:
            logger.warning("STRIPE_WEBHOOK_SECRET not set - rejecting webhook")
            raise SignatureError("Webhook secret is not configured")
        try:
            text = payload.decode("utf-8")
        except UnicodeDecodeError as e:
            logger.warning("Webhook body is not UTF-8")
            raise SignatureError() from e
        try:
            event = stripe.Webhook.construct_event(text, signature or "", self._webhook_secret)
        except stripe.SignatureVerificationError as e:
            logger.warning("Webhook signature verification failed: %s", e)
            raise SignatureError() from e
        except ValueError as e:
            # Signature matched but the body is not an event; nothing to apply
            logger.warning("Signed webhook body could not be parsed: %s", e)
            return GatewayEvent(event_id="", type="", intent_id=None)
        return event_from_payload(event)
