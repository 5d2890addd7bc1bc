"""Database models."""
from academy.models.base import Base, init_db
from academy.models.registration import (
    REGISTRATION_MODELS,
    STATUSES,
    AcademyRegistration,
    TournamentRegistration,
)
from academy.models.user import User

__all__ = [
    "Base",
    "AcademyRegistration",
    "TournamentRegistration",
    "REGISTRATION_MODELS",
    "STATUSES",
    "User",
    "init_db",
]
