"""Admin user model for staff authentication."""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from academy.models.base import Base, utcnow


class User(Base):
    """Staff account allowed to review and manage registrations."""

    __tablename__ = "admin_users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(128), nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default="staff")  # staff, admin
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
