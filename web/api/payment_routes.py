"""Payment endpoints: intent creation, intent status, Stripe webhook."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request

import config
from academy.errors import RegistrationError, ValidationError
from academy.models import REGISTRATION_MODELS
from academy.services.lifecycle import LifecycleManager
from academy.services.payment_gateway import (
    DEFAULT_REGISTRATION_TYPE,
    PENDING_REGISTRATION,
    PaymentGateway,
    to_minor_units,
)
from academy.services.reconciliation import reconcile
from web.api.deps import get_gateway, get_lifecycle
from web.api.schemas import IntentRequest
from web.api.utils import check_registration_id, envelope

logger = logging.getLogger("academy.payments")

router = APIRouter(prefix="/api/payments", tags=["payments"])


@router.post("/intent")
async def create_payment_intent(
    body: IntentRequest,
    gateway: PaymentGateway = Depends(get_gateway),
    lifecycle: LifecycleManager = Depends(get_lifecycle),
):
    """Create a payment intent. When metadata names a registration, it becomes that registration's attempt."""
    metadata = dict(body.metadata)
    registration_id = metadata.get("registrationId")
    kind = metadata.get("registrationType") or DEFAULT_REGISTRATION_TYPE
    linked = bool(registration_id) and registration_id != PENDING_REGISTRATION
    if linked:
        check_registration_id(registration_id)
        if kind not in REGISTRATION_MODELS:
            kind = DEFAULT_REGISTRATION_TYPE
        # Refuse before talking to the gateway so a settled registration gets no new intent
        registration = await lifecycle.check_payable(kind, registration_id)
        if to_minor_units(body.amount) != to_minor_units(registration.payment_amount):
            raise ValidationError(
                "Payment amount does not match the registration",
                errors=[{"field": "amount", "message": f"Expected {registration.payment_amount:.2f}"}],
            )
        metadata["registrationType"] = kind

    intent = await gateway.create_intent(body.amount, body.currency or config.DEFAULT_CURRENCY, metadata)
    if linked:
        await lifecycle.attach_intent(kind, registration_id, intent.intent_id)
    return envelope({"clientSecret": intent.client_secret, "intentId": intent.intent_id})


@router.get("/status/{intent_id}")
async def get_payment_status(intent_id: str, gateway: PaymentGateway = Depends(get_gateway)):
    status = await gateway.retrieve_intent(intent_id)
    return envelope(
        {
            "intentId": status.intent_id,
            "status": status.status,
            "amount": status.amount,
            "currency": status.currency,
            "metadata": status.metadata,
        }
    )


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
    gateway: PaymentGateway = Depends(get_gateway),
    lifecycle: LifecycleManager = Depends(get_lifecycle),
):
    """Verify and apply a Stripe event. Bad signatures are rejected; anything after that is acknowledged."""
    payload = await request.body()
    event = gateway.parse_event(payload, stripe_signature)
    logger.info("Webhook event %s (%s) for %s", event.event_id, event.type, event.intent_id)
    try:
        await reconcile(lifecycle, event)
    except RegistrationError as e:
        logger.warning("Webhook %s not applied: %s", event.event_id, e.message)
    except Exception:
        logger.exception("Webhook %s reconciliation failed", event.event_id)
    return {"success": True, "received": True}
