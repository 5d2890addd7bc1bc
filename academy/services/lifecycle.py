"""Registration lifecycle: status and payment state transitions.

Two orthogonal axes per registration:

- ``status``: programme progress, set by staff (and advanced once by a
  successful payment).
- ``payment_status``: settlement state, driven by gateway events and staff
  overrides.

Every change goes through ``_mutate``: read the record, decide the new values,
write them with a version check. A lost race re-runs the whole decision once.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Awaitable, Callable, Optional

from academy.errors import ConflictError, DuplicateError, InvalidStateError, NotFoundError
from academy.models.base import utcnow
from academy.models.registration import PAYMENT_STATUSES, STATUSES, age_group
from academy.services.duplicate_guard import check_duplicate
from academy.services.repository import Registration, RegistrationRepository
from academy.validators import RegistrationIn, RegistrationUpdate

logger = logging.getLogger("academy.lifecycle")

SUCCEEDED = "succeeded"
FAILED = "failed"
PAYMENT_EVENT_KINDS = (SUCCEEDED, FAILED)

# Status a pending registration moves to once its payment completes
CONFIRMED_STATUS = {"academy": "approved", "tournament": "confirmed"}
# Negative end states a late payment must not undo
TERMINAL_NEGATIVE = {"academy": {"rejected"}, "tournament": {"cancelled"}}

STATUS_TRANSITIONS = {
    "academy": {
        "pending": {"pending", "approved", "rejected"},
        "approved": {"active", "inactive"},
        "active": {"inactive"},
        "inactive": {"active"},
        "rejected": set(),
    },
    "tournament": {
        "pending": {"pending", "confirmed", "cancelled"},
        "confirmed": {"cancelled"},
        "cancelled": set(),
    },
}

PAYMENT_TRANSITIONS = {
    "pending": {"completed", "failed"},
    "failed": {"pending", "completed"},
    "completed": {"refunded"},
    "refunded": set(),
}

# Payment may be (re)started only from these states
PAYABLE_STATUSES = ("pending", "failed")

MAX_ATTEMPTS = 2

PaymentListener = Callable[[Registration], Awaitable[None]]


def is_status_transition(kind: str, current: str, new: str) -> bool:
    return new in STATUS_TRANSITIONS[kind].get(current, set())


class LifecycleManager:
    """Owns every write to a registration after it is created."""

    def __init__(self, repository: RegistrationRepository, clock: Callable[[], datetime] = utcnow):
        self._repo = repository
        self._clock = clock
        self._listeners: list[PaymentListener] = []

    def add_listener(self, listener: PaymentListener) -> None:
        """Call ``listener`` once each time a registration's payment becomes completed."""
        self._listeners.append(listener)

    # --- Creation / lookup ---

    async def register(self, kind: str, payload: RegistrationIn) -> Registration:
        """Persist a validated submission with initial state pending/pending."""
        check = await check_duplicate(self._repo, kind, payload.identity())
        if check.is_duplicate:
            logger.info("Duplicate %s registration matches %s", kind, check.existing_id)
            raise DuplicateError()
        now = self._clock()
        values = payload.model_dump()
        values.update(
            registration_date=now,
            created_at=now,
            updated_at=now,
            age_group=age_group(payload.date_of_birth, now.date()),
            status="pending",
            payment_status="pending",
        )
        registration = await self._repo.add(kind, values)
        logger.info("%s registration created: %s", kind.capitalize(), registration.id)
        return registration

    async def get(self, kind: str, registration_id: str) -> Registration:
        registration = await self._repo.get(kind, registration_id)
        if registration is None:
            raise NotFoundError(f"{kind.capitalize()} registration not found")
        return registration

    async def delete(self, kind: str, registration_id: str) -> None:
        if not await self._repo.delete(kind, registration_id):
            raise NotFoundError(f"{kind.capitalize()} registration not found")
        logger.info("%s registration deleted: %s", kind.capitalize(), registration_id)

    # --- Payment events ---

    async def apply_payment_event(
        self,
        kind: str,
        registration_id: str,
        event_kind: str,
        external_ref: str,
        occurred_at: Optional[datetime] = None,
    ) -> Registration:
        """Apply an authenticated gateway event. Redelivered events are no-ops."""
        if event_kind not in PAYMENT_EVENT_KINDS:
            raise InvalidStateError(f"Unknown payment event '{event_kind}'")

        def decide(reg: Registration) -> Optional[dict]:
            current = reg.payment_status
            if current == "refunded":
                raise InvalidStateError("Payment has been refunded")
            if event_kind == SUCCEEDED:
                # Collected money always settles the registration, however late the event arrives
                if current == "completed":
                    if reg.external_payment_ref == external_ref:
                        return None
                    raise InvalidStateError(
                        f"Payment already completed with {reg.external_payment_ref}"
                    )
                changes = self._completion_changes(kind, reg)
            else:
                if occurred_at and reg.payment_event_at and occurred_at < reg.payment_event_at:
                    logger.info(
                        "Ignoring stale failed event for %s (%s older than %s)",
                        reg.id, occurred_at, reg.payment_event_at,
                    )
                    return None
                if current == "completed":
                    logger.info("Ignoring failed event for completed registration %s", reg.id)
                    return None
                if reg.external_payment_ref and reg.external_payment_ref != external_ref:
                    logger.info(
                        "Ignoring failed event for %s: attempt %s superseded by %s",
                        reg.id, external_ref, reg.external_payment_ref,
                    )
                    return None
                if current == "failed" and reg.external_payment_ref == external_ref:
                    return None
                changes = {"payment_status": "failed"}
            changes["external_payment_ref"] = external_ref
            if occurred_at and (reg.payment_event_at is None or occurred_at > reg.payment_event_at):
                changes["payment_event_at"] = occurred_at
            return changes

        registration, previous = await self._mutate(kind, registration_id, decide)
        if previous is not None:
            logger.info(
                "Payment %s for %s registration %s (%s)", event_kind, kind, registration_id, external_ref
            )
            await self._notify_if_completed(previous, registration)
        return registration

    async def set_payment_status(
        self, kind: str, registration_id: str, payment_status: str, external_ref: Optional[str] = None
    ) -> Registration:
        """Staff override of the payment state."""
        if payment_status not in PAYMENT_STATUSES:
            raise InvalidStateError(f"Invalid payment status '{payment_status}'")

        def decide(reg: Registration) -> Optional[dict]:
            changes = {}
            if external_ref and external_ref != reg.external_payment_ref:
                if reg.external_payment_ref and reg.payment_status not in PAYABLE_STATUSES:
                    raise InvalidStateError(
                        f"Payment reference cannot change while payment is {reg.payment_status}"
                    )
                changes["external_payment_ref"] = external_ref
            if payment_status != reg.payment_status:
                if payment_status not in PAYMENT_TRANSITIONS[reg.payment_status]:
                    logger.warning(
                        "Staff moved payment of %s registration %s off the usual path: %s -> %s",
                        kind, reg.id, reg.payment_status, payment_status,
                    )
                if payment_status == "completed":
                    changes.update(self._completion_changes(kind, reg))
                else:
                    changes["payment_status"] = payment_status
                    if payment_status in PAYABLE_STATUSES:
                        changes["payment_date"] = None
            return changes or None

        registration, previous = await self._mutate(kind, registration_id, decide)
        if previous is not None:
            logger.info(
                "Payment status of %s registration %s set to %s by staff",
                kind, registration_id, registration.payment_status,
            )
            await self._notify_if_completed(previous, registration)
        return registration

    async def check_payable(self, kind: str, registration_id: str) -> Registration:
        """Raise unless a new payment attempt may start for this registration."""
        registration = await self.get(kind, registration_id)
        if registration.payment_status not in PAYABLE_STATUSES:
            raise InvalidStateError(f"Registration payment is already {registration.payment_status}")
        return registration

    async def attach_intent(self, kind: str, registration_id: str, intent_id: str) -> Registration:
        """Record a freshly created gateway intent as the current payment attempt."""

        def decide(reg: Registration) -> Optional[dict]:
            if reg.payment_status not in PAYABLE_STATUSES:
                raise InvalidStateError(f"Registration payment is already {reg.payment_status}")
            if reg.external_payment_ref == intent_id and reg.payment_status == "pending":
                return None
            return {"external_payment_ref": intent_id, "payment_status": "pending"}

        registration, _ = await self._mutate(kind, registration_id, decide)
        return registration

    # --- Staff actions ---

    def _check_status(self, kind: str, status: Optional[str]) -> str:
        if status not in STATUSES[kind]:
            raise InvalidStateError(
                f"Invalid status '{status}' for {kind} registration; expected one of {', '.join(STATUSES[kind])}"
            )
        return status

    async def set_status(self, kind: str, registration_id: str, new_status: str) -> Registration:
        """Set programme status. Any value of the kind's enum is accepted."""
        self._check_status(kind, new_status)

        def decide(reg: Registration) -> Optional[dict]:
            if reg.status == new_status:
                return None
            if not is_status_transition(kind, reg.status, new_status):
                logger.warning(
                    "Staff moved %s registration %s off the usual path: %s -> %s",
                    kind, reg.id, reg.status, new_status,
                )
            return {"status": new_status}

        registration, _ = await self._mutate(kind, registration_id, decide)
        return registration

    async def bulk_set_status(
        self, kind: str, registration_ids: list[str], status: str, admin_notes: Optional[str] = None
    ) -> int:
        self._check_status(kind, status)
        values = {"status": status}
        if admin_notes:
            values["admin_notes"] = admin_notes
        modified = await self._repo.bulk_update(kind, registration_ids, values)
        logger.info("Bulk status update on %d %s registration(s) -> %s", modified, kind, status)
        return modified

    async def update_details(self, kind: str, registration_id: str, update: RegistrationUpdate) -> Registration:
        """Apply a staff edit of non-identity fields."""
        values = update.model_dump(exclude_unset=True)
        if "status" in values:
            self._check_status(kind, values["status"])
        if not values:
            return await self.get(kind, registration_id)

        def decide(reg: Registration) -> Optional[dict]:
            changes = {k: v for k, v in values.items() if getattr(reg, k) != v}
            if "registration_date" in changes:
                changes["age_group"] = age_group(reg.date_of_birth, changes["registration_date"].date())
            return changes or None

        registration, _ = await self._mutate(kind, registration_id, decide)
        return registration

    # --- Internals ---

    def _completion_changes(self, kind: str, reg: Registration) -> dict:
        changes = {"payment_status": "completed", "payment_date": self._clock()}
        if reg.status in TERMINAL_NEGATIVE[kind]:
            logger.warning(
                "Payment completed for %s %s registration %s; status left unchanged",
                reg.status, kind, reg.id,
            )
        elif reg.status == "pending":
            changes["status"] = CONFIRMED_STATUS[kind]
        return changes

    async def _mutate(
        self, kind: str, registration_id: str, decide: Callable[[Registration], Optional[dict]]
    ) -> tuple[Registration, Optional[Registration]]:
        """Read-decide-write with a version check.

        Returns (current record, record before the write). The second item is
        None when ``decide`` found nothing to change.
        """
        for attempt in range(1, MAX_ATTEMPTS + 1):
            registration = await self.get(kind, registration_id)
            changes = decide(registration)
            if not changes:
                return registration, None
            updated = await self._repo.update_if_version(kind, registration_id, registration.version, changes)
            if updated is not None:
                return updated, registration
            logger.info(
                "Write conflict on %s registration %s (attempt %d/%d)",
                kind, registration_id, attempt, MAX_ATTEMPTS,
            )
        raise ConflictError()

    async def _notify_if_completed(self, before: Registration, after: Registration) -> None:
        if before.payment_status == "completed" or after.payment_status != "completed":
            return
        for listener in self._listeners:
            try:
                await listener(after)
            except Exception:
                logger.exception("Payment listener failed for registration %s", after.id)
