"""Response and request bodies for the registration API."""
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from pydantic import AliasGenerator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _Out(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=AliasGenerator(serialization_alias=to_camel),
    )


class _In(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegistrationOut(_Out):
    id: str
    registration_type: str = Field(validation_alias="kind", serialization_alias="registrationType")
    player_first_name: str
    player_last_name: str
    full_name: str
    date_of_birth: date
    gender: str
    playing_positions: list[str]
    mobile_number: str
    email: str
    academy_club: str
    preferred_locations: list[str]
    age_group: Optional[str] = None
    status: str
    registration_date: datetime
    payment_amount: float
    payment_status: str
    external_payment_ref: Optional[str] = None
    payment_date: Optional[datetime] = None
    notes: Optional[str] = None
    admin_notes: Optional[str] = None
    version: int
    created_at: datetime
    updated_at: datetime


class AcademyRegistrationOut(RegistrationOut):
    selected_teams: list[str]
    parent_name: str
    parent_phone: str
    emergency_contact: Optional[str] = None
    start_date: Optional[date] = None
    assessment_completed: bool
    assessment_date: Optional[date] = None
    assigned_coach: Optional[str] = None
    assigned_group: Optional[str] = None


class TournamentRegistrationOut(RegistrationOut):
    division_last_season: str
    strength_weakness: str
    trial_date: str
    trial_date_label: str
    tournament_name: str = Field(serialization_alias="tournament")
    cup_dates: str
    timings: str
    location: str


RESPONSE_MODELS: dict[str, type[RegistrationOut]] = {
    "academy": AcademyRegistrationOut,
    "tournament": TournamentRegistrationOut,
}


class StatusUpdate(_In):
    status: str


class PaymentUpdate(_In):
    payment_status: str
    external_ref: Optional[str] = None


class BulkStatusUpdate(_In):
    registration_ids: list[str] = Field(min_length=1)
    status: str
    admin_notes: Optional[str] = None


class IntentRequest(_In):
    amount: float = Field(gt=0)
    currency: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
