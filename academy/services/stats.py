"""Read-only aggregates for the staff dashboard."""
from __future__ import annotations

from collections import Counter

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from academy.models import AcademyRegistration, TournamentRegistration


def _count_where(column, value):
    return func.sum(case((column == value, 1), else_=0))


async def academy_stats(session: AsyncSession) -> dict:
    """Status/payment counts, revenue, age-group and location distributions."""
    m = AcademyRegistration
    row = (
        await session.execute(
            select(
                func.count(m.id),
                _count_where(m.status, "pending"),
                _count_where(m.status, "approved"),
                _count_where(m.status, "active"),
                _count_where(m.payment_status, "pending"),
                _count_where(m.payment_status, "completed"),
                func.sum(case((m.payment_status == "completed", m.payment_amount), else_=0)),
            )
        )
    ).one()
    overview = {
        "totalRegistrations": row[0] or 0,
        "pendingRegistrations": row[1] or 0,
        "approvedRegistrations": row[2] or 0,
        "activeRegistrations": row[3] or 0,
        "pendingPayments": row[4] or 0,
        "completedPayments": row[5] or 0,
        "totalRevenue": float(row[6] or 0),
    }

    age_rows = await session.execute(
        select(m.age_group, func.count(m.id)).group_by(m.age_group).order_by(m.age_group)
    )
    age_groups = [{"ageGroup": group, "count": count} for group, count in age_rows.all()]

    # Locations are a JSON list per row; count in Python rather than per-dialect JSON functions
    locations: Counter[str] = Counter()
    for (preferred,) in (await session.execute(select(m.preferred_locations))).all():
        locations.update(preferred or [])
    location_list = [{"location": loc, "count": count} for loc, count in sorted(locations.items())]

    return {
        "overview": overview,
        "ageGroupDistribution": age_groups,
        "locationDistribution": location_list,
    }


async def tournament_stats(session: AsyncSession, recent_days: int = 7) -> dict:
    """Status counts and registrations per day for the most recent days with activity."""
    m = TournamentRegistration
    row = (
        await session.execute(
            select(
                func.count(m.id),
                _count_where(m.status, "pending"),
                _count_where(m.status, "confirmed"),
                _count_where(m.status, "cancelled"),
                _count_where(m.payment_status, "completed"),
                func.sum(case((m.payment_status == "completed", m.payment_amount), else_=0)),
            )
        )
    ).one()
    day = func.date(m.registration_date)
    recent = await session.execute(
        select(day, func.count(m.id)).group_by(day).order_by(day.desc()).limit(recent_days)
    )
    return {
        "overview": {
            "totalRegistrations": row[0] or 0,
            "pendingRegistrations": row[1] or 0,
            "confirmedRegistrations": row[2] or 0,
            "cancelledRegistrations": row[3] or 0,
            "completedPayments": row[4] or 0,
            "totalRevenue": float(row[5] or 0),
        },
        "recentRegistrations": [{"date": str(d), "count": count} for d, count in recent.all()],
    }


STATS = {
    "academy": academy_stats,
    "tournament": tournament_stats,
}
