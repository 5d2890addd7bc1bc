"""Route verified gateway events to the lifecycle manager."""
from __future__ import annotations

import logging
from typing import Optional

from academy.models import REGISTRATION_MODELS
from academy.models.registration import is_registration_id
from academy.services.lifecycle import FAILED, SUCCEEDED, LifecycleManager
from academy.services.payment_gateway import FAILED_EVENT, SUCCEEDED_EVENT, GatewayEvent
from academy.services.repository import Registration

logger = logging.getLogger("academy.payments")

EVENT_KINDS = {
    SUCCEEDED_EVENT: SUCCEEDED,
    FAILED_EVENT: FAILED,
}


async def reconcile(manager: LifecycleManager, event: GatewayEvent) -> Optional[Registration]:
    """Apply ``event`` to its registration. Returns None when there is nothing to update."""
    event_kind = EVENT_KINDS.get(event.type)
    if event_kind is None:
        logger.info("Unhandled event type %s", event.type)
        return None
    registration_id = event.registration_id
    if registration_id is None:
        logger.info("Payment %s %s has no registration yet - ignoring", event.intent_id, event_kind)
        return None
    kind = event.registration_type
    if kind not in REGISTRATION_MODELS or not is_registration_id(registration_id):
        logger.warning(
            "Payment %s carries unusable metadata (type=%s, id=%s)", event.intent_id, kind, registration_id
        )
        return None
    return await manager.apply_payment_event(
        kind, registration_id, event_kind, event.intent_id, occurred_at=event.created
    )
