"""Pre-insert check that blocks a second registration for the same player."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from academy.services.repository import RegistrationRepository
from academy.validators import Identity


@dataclass(frozen=True)
class DuplicateCheck:
    is_duplicate: bool
    existing_id: Optional[str] = None


async def check_duplicate(repository: RegistrationRepository, kind: str, identity: Identity) -> DuplicateCheck:
    """Match on email OR mobile OR (first name, last name, date of birth).

    Sharing any one of these with an existing record counts as a duplicate.
    Storage errors propagate.
    """
    existing = await repository.find_duplicate(kind, identity)
    if existing is None:
        return DuplicateCheck(is_duplicate=False)
    return DuplicateCheck(is_duplicate=True, existing_id=existing.id)
