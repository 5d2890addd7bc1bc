"""
Input validation for registration payloads (Pydantic v2 models).

Each registration kind has a typed input model. ``validate_registration`` and
``validate_update`` run the model and return ``(model, errors)`` instead of
raising, so handlers can answer with a field-level error list.
"""
from __future__ import annotations

import re
from datetime import date, datetime
from typing import Annotated, Any, NamedTuple, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field, ValidationInfo, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from academy.models.registration import GENDERS, LOCATIONS, PLAYING_POSITIONS

# UAE numbers: optional +971 / 971 / 0 prefix, then nine digits not starting with 0 or 1
UAE_PHONE_RE = re.compile(r"^(\+971|971|0)?[2-9][0-9]{8}$")


def normalize_phone(value: str) -> str:
    return re.sub(r"\s", "", value or "")


class Identity(NamedTuple):
    """Fields the duplicate guard matches on."""

    email: str
    mobile_number: str
    first_name: str
    last_name: str
    date_of_birth: date


def _today(info: ValidationInfo) -> date:
    if info.context and info.context.get("today"):
        return info.context["today"]
    return date.today()


def _check_phone(v: str) -> str:
    v = normalize_phone(v)
    if not UAE_PHONE_RE.match(v):
        raise ValueError("Please enter a valid UAE phone number")
    return v


def _check_positions(v: list[str]) -> list[str]:
    bad = [p for p in v if p not in PLAYING_POSITIONS]
    if bad:
        raise ValueError(f"Invalid playing position: {', '.join(bad)}")
    return v


def _check_locations(v: list[str]) -> list[str]:
    bad = [loc for loc in v if loc not in LOCATIONS]
    if bad:
        raise ValueError(f"Invalid preferred location: {', '.join(bad)}")
    return v


def _check_teams(v: list[str]) -> list[str]:
    teams = [t for t in v if t]
    if not 1 <= len(teams) <= 2:
        raise ValueError("You must select between 1 and 2 teams")
    return teams


UAEPhone = Annotated[str, AfterValidator(_check_phone)]
Positions = Annotated[list[str], Field(min_length=1), AfterValidator(_check_positions)]
Locations = Annotated[list[str], Field(min_length=1), AfterValidator(_check_locations)]
Teams = Annotated[list[str], AfterValidator(_check_teams)]


class _Payload(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class RegistrationIn(_Payload):
    """Fields every registration submission carries."""

    model_config = ConfigDict(extra="ignore")

    player_first_name: str = Field(min_length=2, max_length=64)
    player_last_name: str = Field(min_length=2, max_length=64)
    date_of_birth: date
    gender: str
    playing_positions: Positions
    mobile_number: UAEPhone
    email: EmailStr
    academy_club: str = Field(min_length=1, max_length=128)
    preferred_locations: Locations
    payment_amount: float = Field(gt=0)
    notes: Optional[str] = None

    @field_validator("gender")
    @classmethod
    def validate_gender(cls, v: str) -> str:
        v = v.lower()
        if v not in GENDERS:
            raise ValueError("Gender must be 'male' or 'female'")
        return v

    @field_validator("date_of_birth")
    @classmethod
    def validate_date_of_birth(cls, v: date, info: ValidationInfo) -> date:
        if v > _today(info):
            raise ValueError("Date of birth cannot be in the future")
        return v

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()

    def identity(self) -> Identity:
        return Identity(
            email=self.email,
            mobile_number=self.mobile_number,
            first_name=self.player_first_name,
            last_name=self.player_last_name,
            date_of_birth=self.date_of_birth,
        )


class AcademyRegistrationIn(RegistrationIn):
    selected_teams: Teams
    parent_name: str = Field(min_length=1, max_length=128)
    parent_phone: UAEPhone
    emergency_contact: Optional[str] = None
    start_date: date

    @field_validator("start_date")
    @classmethod
    def validate_start_date(cls, v: date, info: ValidationInfo) -> date:
        if v < _today(info):
            raise ValueError("Start date cannot be in the past")
        return v


class TournamentRegistrationIn(RegistrationIn):
    division_last_season: str = Field(min_length=1, max_length=64)
    strength_weakness: str = Field(min_length=10)
    trial_date: str = Field(min_length=1, max_length=32)
    trial_date_label: str = Field(min_length=1, max_length=128)


def _not_null(v: Any) -> Any:
    # Omitted fields keep their value; an explicit null would clear a required column
    if v is None:
        raise ValueError("This field cannot be empty")
    return v


class RegistrationUpdate(_Payload):
    """Admin edits. Identity and payment fields are not editable here."""

    model_config = ConfigDict(extra="forbid")

    status: Optional[str] = None
    academy_club: Optional[str] = Field(default=None, min_length=1, max_length=128)
    playing_positions: Optional[Positions] = None
    preferred_locations: Optional[Locations] = None
    notes: Optional[str] = None
    admin_notes: Optional[str] = None
    registration_date: Optional[datetime] = None

    @field_validator(
        "status", "academy_club", "playing_positions", "preferred_locations", "registration_date", mode="before"
    )
    @classmethod
    def reject_null_common(cls, v: Any) -> Any:
        return _not_null(v)


class AcademyRegistrationUpdate(RegistrationUpdate):
    selected_teams: Optional[Teams] = None
    parent_name: Optional[str] = Field(default=None, min_length=1, max_length=128)
    parent_phone: Optional[UAEPhone] = None
    emergency_contact: Optional[str] = None
    start_date: Optional[date] = None
    assessment_completed: Optional[bool] = None
    assessment_date: Optional[date] = None
    assigned_coach: Optional[str] = None
    assigned_group: Optional[str] = None

    @field_validator("selected_teams", "parent_name", "parent_phone", "assessment_completed", mode="before")
    @classmethod
    def reject_null_academy(cls, v: Any) -> Any:
        return _not_null(v)


class TournamentRegistrationUpdate(RegistrationUpdate):
    division_last_season: Optional[str] = Field(default=None, min_length=1, max_length=64)
    strength_weakness: Optional[str] = Field(default=None, min_length=10)
    trial_date: Optional[str] = Field(default=None, min_length=1, max_length=32)
    trial_date_label: Optional[str] = Field(default=None, min_length=1, max_length=128)

    @field_validator("division_last_season", "strength_weakness", "trial_date", "trial_date_label", mode="before")
    @classmethod
    def reject_null_tournament(cls, v: Any) -> Any:
        return _not_null(v)


CREATE_MODELS: dict[str, type[RegistrationIn]] = {
    "academy": AcademyRegistrationIn,
    "tournament": TournamentRegistrationIn,
}

UPDATE_MODELS: dict[str, type[RegistrationUpdate]] = {
    "academy": AcademyRegistrationUpdate,
    "tournament": TournamentRegistrationUpdate,
}


def field_errors(exc: PydanticValidationError) -> list[dict]:
    """Flatten a pydantic error into ``[{field, message}]``."""
    errors = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err["loc"]) or "body"
        message = err["msg"]
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.append({"field": field, "message": message})
    return errors


def _run(model: type[BaseModel], data: Any, today: Optional[date]):
    if not isinstance(data, dict):
        return None, [{"field": "body", "message": "Request body must be a JSON object"}]
    try:
        return model.model_validate(data, context={"today": today or date.today()}), []
    except PydanticValidationError as e:
        return None, field_errors(e)


def validate_registration(kind: str, data: Any, today: Optional[date] = None):
    """Validate a submission. Returns (RegistrationIn | None, errors)."""
    return _run(CREATE_MODELS[kind], data, today)


def validate_update(kind: str, data: Any):
    """Validate an admin edit. Returns (RegistrationUpdate | None, errors)."""
    return _run(UPDATE_MODELS[kind], data, None)
