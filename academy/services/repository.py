"""Registration storage behind an explicit repository interface."""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional, Union

from sqlalchemy import and_, delete, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from academy.errors import DuplicateError
from academy.models import REGISTRATION_MODELS, AcademyRegistration, TournamentRegistration
from academy.models.base import utcnow
from academy.validators import Identity

logger = logging.getLogger("academy.store")

Registration = Union[AcademyRegistration, TournamentRegistration]


class RegistrationRepository(ABC):
    """What the lifecycle manager needs from storage.

    Every mutation is a single statement; ``update_if_version`` is the only way
    to change one record and succeeds only if nobody else wrote it first.
    """

    @abstractmethod
    async def get(self, kind: str, registration_id: str) -> Optional[Registration]:
        ...

    @abstractmethod
    async def add(self, kind: str, values: dict) -> Registration:
        """Insert a new record. Raises DuplicateError on a unique-key collision."""

    @abstractmethod
    async def find_duplicate(self, kind: str, identity: Identity) -> Optional[Registration]:
        ...

    @abstractmethod
    async def update_if_version(
        self, kind: str, registration_id: str, version: int, values: dict
    ) -> Optional[Registration]:
        """Apply ``values`` if the stored version still equals ``version``. None on conflict."""

    @abstractmethod
    async def bulk_update(self, kind: str, registration_ids: list[str], values: dict) -> int:
        ...

    @abstractmethod
    async def delete(self, kind: str, registration_id: str) -> bool:
        ...

    @abstractmethod
    async def find_all(
        self, kind: str, status: Optional[str] = None, payment_status: Optional[str] = None
    ) -> list[Registration]:
        ...


class SqlRegistrationRepository(RegistrationRepository):
    """SQLAlchemy implementation; one short-lived session per call."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get(self, kind, registration_id):
        async with self._session_factory() as session:
            return await session.get(REGISTRATION_MODELS[kind], registration_id)

    async def add(self, kind, values):
        model = REGISTRATION_MODELS[kind]
        async with self._session_factory() as session:
            registration = model(**values)
            session.add(registration)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                logger.info("Duplicate %s registration rejected by unique constraint: %s", kind, e.orig)
                raise DuplicateError() from e
            await session.refresh(registration)
            return registration

    async def find_duplicate(self, kind, identity):
        model = REGISTRATION_MODELS[kind]
        async with self._session_factory() as session:
            result = await session.execute(
                select(model)
                .where(
                    or_(
                        model.email == identity.email,
                        model.mobile_number == identity.mobile_number,
                        and_(
                            model.player_first_name == identity.first_name,
                            model.player_last_name == identity.last_name,
                            model.date_of_birth == identity.date_of_birth,
                        ),
                    )
                )
                .limit(1)
            )
            return result.scalar_one_or_none()

    async def update_if_version(self, kind, registration_id, version, values):
        model = REGISTRATION_MODELS[kind]
        async with self._session_factory() as session:
            result = await session.execute(
                update(model)
                .where(model.id == registration_id, model.version == version)
                .values(**values, version=version + 1, updated_at=utcnow())
            )
            await session.commit()
            if result.rowcount == 0:
                return None
            return await session.get(model, registration_id)

    async def bulk_update(self, kind, registration_ids, values):
        model = REGISTRATION_MODELS[kind]
        async with self._session_factory() as session:
            result = await session.execute(
                update(model)
                .where(model.id.in_(registration_ids))
                .values(**values, version=model.version + 1, updated_at=utcnow())
            )
            await session.commit()
            return result.rowcount

    async def delete(self, kind, registration_id):
        model = REGISTRATION_MODELS[kind]
        async with self._session_factory() as session:
            result = await session.execute(delete(model).where(model.id == registration_id))
            await session.commit()
            return result.rowcount > 0

    async def find_all(self, kind, status=None, payment_status=None):
        model = REGISTRATION_MODELS[kind]
        query = select(model)
        if status:
            query = query.where(model.status == status)
        if payment_status:
            query = query.where(model.payment_status == payment_status)
        async with self._session_factory() as session:
            result = await session.execute(query.order_by(model.registration_date.desc()))
            return list(result.scalars().all())
