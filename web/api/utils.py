"""Shared API utilities."""
from __future__ import annotations

from typing import Any, Optional

from academy.errors import ValidationError
from academy.models.registration import is_registration_id
from academy.services.repository import Registration
from web.api.schemas import RESPONSE_MODELS


def envelope(
    data: Any = None,
    message: Optional[str] = None,
    errors: Optional[list] = None,
    success: bool = True,
) -> dict:
    """Build the response envelope every endpoint returns. Empty keys are left out."""
    body: dict[str, Any] = {"success": success}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = data
    if errors:
        body["errors"] = errors
    return body


def serialize_registration(registration: Registration) -> dict:
    """Registration row -> camelCase JSON dict."""
    schema = RESPONSE_MODELS[registration.kind]
    return schema.model_validate(registration).model_dump(mode="json", by_alias=True)


def check_registration_id(registration_id: str) -> str:
    if not is_registration_id(registration_id):
        raise ValidationError(
            "Invalid registration ID",
            errors=[{"field": "id", "message": "Invalid registration ID format"}],
        )
    return registration_id
