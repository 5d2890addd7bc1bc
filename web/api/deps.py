"""FastAPI dependencies wiring storage, lifecycle and payment gateway."""
from __future__ import annotations

import logging
from functools import lru_cache

import config
from academy.models.base import async_session_factory
from academy.services.lifecycle import LifecycleManager
from academy.services.payment_gateway import PaymentGateway, StripeGateway
from academy.services.repository import Registration, RegistrationRepository, SqlRegistrationRepository

logger = logging.getLogger("academy.api")


async def _log_completed_payment(registration: Registration) -> None:
    logger.info(
        "Payment completed for %s registration %s (%s, %.2f %s)",
        registration.kind, registration.id, registration.full_name,
        registration.payment_amount, config.DEFAULT_CURRENCY.upper(),
    )


@lru_cache
def get_repository() -> RegistrationRepository:
    return SqlRegistrationRepository(async_session_factory)


@lru_cache
def get_lifecycle() -> LifecycleManager:
    manager = LifecycleManager(get_repository())
    manager.add_listener(_log_completed_payment)
    return manager


@lru_cache
def get_gateway() -> PaymentGateway:
    return StripeGateway(
        api_key=config.STRIPE_SECRET_KEY,
        webhook_secret=config.STRIPE_WEBHOOK_SECRET,
        timeout=config.PAYMENT_GATEWAY_TIMEOUT,
    )
