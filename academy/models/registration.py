"""Registration models - academy enrollment and tournament participation."""
from __future__ import annotations

import re
import uuid
from datetime import date, datetime
from typing import Optional

from sqlalchemy import JSON, Boolean, Date, DateTime, Float, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from academy.models.base import Base, utcnow

PLAYING_POSITIONS = ("GK", "CB", "RB", "LB", "CDM", "CM", "CAM", "LW", "RW", "ST")
LOCATIONS = ("active-mariah", "saadiyat")
GENDERS = ("male", "female")

PAYMENT_STATUSES = ("pending", "completed", "failed", "refunded")
ACADEMY_STATUSES = ("pending", "approved", "rejected", "active", "inactive")
TOURNAMENT_STATUSES = ("pending", "confirmed", "cancelled")

# Upper age bound (inclusive) for each bucket; anything older is Senior
AGE_GROUPS = ((6, "U6"), (8, "U8"), (10, "U10"), (12, "U12"), (14, "U14"), (16, "U16"), (18, "U18"))

REGISTRATION_ID_RE = re.compile(r"^[0-9a-f]{32}$")


def new_registration_id() -> str:
    return uuid.uuid4().hex


def is_registration_id(value: str) -> bool:
    return bool(REGISTRATION_ID_RE.match(value or ""))


def age_on(date_of_birth: date, on: date) -> int:
    """Whole years between date_of_birth and on."""
    years = on.year - date_of_birth.year
    if (on.month, on.day) < (date_of_birth.month, date_of_birth.day):
        years -= 1
    return years


def age_group(date_of_birth: date, on: date) -> str:
    """Bucket a player by age at the given date (U6 ... U18, Senior)."""
    age = age_on(date_of_birth, on)
    for bound, label in AGE_GROUPS:
        if age <= bound:
            return label
    return "Senior"


class RegistrationMixin:
    """Columns shared by both registration kinds."""

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_registration_id)

    player_first_name: Mapped[str] = mapped_column(String(64), nullable=False)
    player_last_name: Mapped[str] = mapped_column(String(64), nullable=False)
    date_of_birth: Mapped[date] = mapped_column(Date, nullable=False)
    gender: Mapped[str] = mapped_column(String(8), nullable=False)
    playing_positions: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    mobile_number: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(254), nullable=False, index=True)  # stored lowercased
    academy_club: Mapped[str] = mapped_column(String(128), nullable=False)
    preferred_locations: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    age_group: Mapped[Optional[str]] = mapped_column(String(8), nullable=True)

    status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending", index=True)
    registration_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    payment_amount: Mapped[float] = mapped_column(Float, nullable=False)
    payment_status: Mapped[str] = mapped_column(String(16), nullable=False, default="pending", index=True)
    external_payment_ref: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)  # Stripe intent id
    payment_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    payment_event_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)  # last applied gateway event

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    admin_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    @property
    def full_name(self) -> str:
        return f"{self.player_first_name} {self.player_last_name}"


class AcademyRegistration(RegistrationMixin, Base):
    """Player enrolling in the academy programme."""

    __tablename__ = "academy_registrations"
    __table_args__ = (
        UniqueConstraint("email", name="uq_academy_email"),
        UniqueConstraint("mobile_number", name="uq_academy_mobile"),
        UniqueConstraint("player_first_name", "player_last_name", "date_of_birth", name="uq_academy_identity"),
    )

    kind = "academy"

    selected_teams: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    parent_name: Mapped[str] = mapped_column(String(128), nullable=False)
    parent_phone: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    emergency_contact: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    assessment_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    assessment_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    assigned_coach: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    assigned_group: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)


class TournamentRegistration(RegistrationMixin, Base):
    """Player entering the preseason cup."""

    __tablename__ = "tournament_registrations"
    __table_args__ = (
        UniqueConstraint("email", name="uq_tournament_email"),
        UniqueConstraint("mobile_number", name="uq_tournament_mobile"),
        UniqueConstraint("player_first_name", "player_last_name", "date_of_birth", name="uq_tournament_identity"),
    )

    kind = "tournament"

    division_last_season: Mapped[str] = mapped_column(String(64), nullable=False)
    strength_weakness: Mapped[str] = mapped_column(Text, nullable=False)
    trial_date: Mapped[str] = mapped_column(String(32), nullable=False)
    trial_date_label: Mapped[str] = mapped_column(String(128), nullable=False)

    tournament_name: Mapped[str] = mapped_column(String(128), nullable=False, default="ATOMICS PRESEASON CUP")
    cup_dates: Mapped[str] = mapped_column(String(128), nullable=False, default="Tuesday - Thursday 26th - 28th August")
    timings: Mapped[str] = mapped_column(String(64), nullable=False, default="5:00 PM to 9:00 PM")
    location: Mapped[str] = mapped_column(String(128), nullable=False, default="Active Sports Pitches")


REGISTRATION_MODELS = {
    "academy": AcademyRegistration,
    "tournament": TournamentRegistration,
}

STATUSES = {
    "academy": ACADEMY_STATUSES,
    "tournament": TOURNAMENT_STATUSES,
}
