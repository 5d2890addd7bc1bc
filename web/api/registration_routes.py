"""Registration endpoints. Academy and tournament registrations share one router shape."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query

from academy.errors import InvalidStateError, ValidationError
from academy.models import User
from academy.models.base import async_session_factory
from academy.models.registration import PAYMENT_STATUSES, STATUSES
from academy.services.lifecycle import LifecycleManager
from academy.services.repository import RegistrationRepository
from academy.services.stats import STATS
from academy.validators import validate_registration, validate_update
from web.api.deps import get_lifecycle, get_repository
from web.api.schemas import BulkStatusUpdate, PaymentUpdate, StatusUpdate
from web.api.utils import check_registration_id, envelope, serialize_registration
from web.auth import require_staff_user

logger = logging.getLogger("academy.api")


def build_router(kind: str, prefix: str) -> APIRouter:
    """Router for one registration kind. Literal paths are declared before /{registration_id}."""
    router = APIRouter(prefix=prefix, tags=[f"{kind}-registrations"])
    label = kind.capitalize()

    @router.post("", status_code=201)
    async def create_registration(
        body: dict = Body(...),
        lifecycle: LifecycleManager = Depends(get_lifecycle),
    ):
        """Public submission form."""
        payload, errors = validate_registration(kind, body)
        if errors:
            raise ValidationError(errors=errors)
        registration = await lifecycle.register(kind, payload)
        return envelope(serialize_registration(registration), f"{label} registration submitted successfully")

    @router.get("")
    async def list_registrations(
        status: Optional[str] = Query(None),
        payment_status: Optional[str] = Query(None, alias="paymentStatus"),
        repository: RegistrationRepository = Depends(get_repository),
        user: User = Depends(require_staff_user),
    ):
        if status and status not in STATUSES[kind]:
            raise InvalidStateError(f"Invalid status '{status}'")
        if payment_status and payment_status not in PAYMENT_STATUSES:
            raise InvalidStateError(f"Invalid payment status '{payment_status}'")
        registrations = await repository.find_all(kind, status=status, payment_status=payment_status)
        return envelope([serialize_registration(r) for r in registrations])

    @router.get("/stats")
    async def registration_stats(user: User = Depends(require_staff_user)):
        async with async_session_factory() as session:
            return envelope(await STATS[kind](session))

    @router.post("/bulk-update")
    async def bulk_update_status(
        body: BulkStatusUpdate,
        lifecycle: LifecycleManager = Depends(get_lifecycle),
        user: User = Depends(require_staff_user),
    ):
        for registration_id in body.registration_ids:
            check_registration_id(registration_id)
        modified = await lifecycle.bulk_set_status(kind, body.registration_ids, body.status, body.admin_notes)
        logger.info("%s bulk-updated %d %s registration(s)", user.username, modified, kind)
        return envelope({"modifiedCount": modified}, f"{modified} registrations updated successfully")

    @router.get("/{registration_id}")
    async def get_registration(
        registration_id: str,
        lifecycle: LifecycleManager = Depends(get_lifecycle),
        user: User = Depends(require_staff_user),
    ):
        registration = await lifecycle.get(kind, check_registration_id(registration_id))
        return envelope(serialize_registration(registration))

    @router.put("/{registration_id}")
    async def update_registration(
        registration_id: str,
        body: dict = Body(...),
        lifecycle: LifecycleManager = Depends(get_lifecycle),
        user: User = Depends(require_staff_user),
    ):
        check_registration_id(registration_id)
        update, errors = validate_update(kind, body)
        if errors:
            raise ValidationError(errors=errors)
        registration = await lifecycle.update_details(kind, registration_id, update)
        return envelope(serialize_registration(registration), f"{label} registration updated successfully")

    @router.patch("/{registration_id}/status")
    async def update_status(
        registration_id: str,
        body: StatusUpdate,
        lifecycle: LifecycleManager = Depends(get_lifecycle),
        user: User = Depends(require_staff_user),
    ):
        check_registration_id(registration_id)
        registration = await lifecycle.set_status(kind, registration_id, body.status)
        logger.info("%s set %s registration %s status to %s", user.username, kind, registration_id, body.status)
        return envelope(serialize_registration(registration), f"Registration status updated to {body.status}")

    @router.patch("/{registration_id}/payment")
    async def update_payment(
        registration_id: str,
        body: PaymentUpdate,
        lifecycle: LifecycleManager = Depends(get_lifecycle),
        user: User = Depends(require_staff_user),
    ):
        check_registration_id(registration_id)
        registration = await lifecycle.set_payment_status(
            kind, registration_id, body.payment_status, body.external_ref
        )
        return envelope(serialize_registration(registration), f"Payment status updated to {body.payment_status}")

    @router.delete("/{registration_id}")
    async def delete_registration(
        registration_id: str,
        lifecycle: LifecycleManager = Depends(get_lifecycle),
        user: User = Depends(require_staff_user),
    ):
        await lifecycle.delete(kind, check_registration_id(registration_id))
        logger.info("%s deleted %s registration %s", user.username, kind, registration_id)
        return envelope(message=f"{label} registration deleted successfully")

    return router


academy_router = build_router("academy", "/api/academy-registrations")
tournament_router = build_router("tournament", "/api/tournament-registrations")
