"""Registration error taxonomy. Each error knows the HTTP status it maps to."""
from __future__ import annotations

from typing import Optional


class RegistrationError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, errors: Optional[list] = None):
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)


class ValidationError(RegistrationError):
    """Malformed or missing input. ``errors`` holds ``{field, message}`` entries."""

    status_code = 400
    default_message = "Validation failed"


class DuplicateError(RegistrationError):
    status_code = 400
    default_message = "A registration with this information already exists. Please contact us if you need assistance."


class NotFoundError(RegistrationError):
    status_code = 404
    default_message = "Registration not found"


class InvalidStateError(RegistrationError):
    """Illegal status value or payment transition."""

    status_code = 400
    default_message = "Invalid registration state"


class ConflictError(RegistrationError):
    """Concurrent write collided with ours and the retry also lost."""

    status_code = 409
    default_message = "Registration was modified concurrently, please retry"


class SignatureError(RegistrationError):
    status_code = 400
    default_message = "Webhook signature verification failed"


class GatewayError(RegistrationError):
    """Payment gateway call failed or timed out."""

    status_code = 502
    default_message = "Payment gateway unavailable"
