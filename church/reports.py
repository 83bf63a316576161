"""Donation reporting and dashboard aggregates.

All calendar arithmetic uses naive server-local datetimes, the same clock
the ``created_at`` columns are filled from. Every function takes an
optional ``now`` so the windows can be pinned in tests.
"""

import math
from datetime import datetime, timedelta

from sqlalchemy import select, func, distinct
from sqlalchemy.orm import Session

from . import models

DONATION_PERIODS = ("all_time", "this_month", "last_month", "this_year")
ACTIVITY_PERIODS = ("all_time", "today", "this_week", "this_month", "last_month")
TREND_MONTHS = 6


def month_start(moment: datetime, months_back: int = 0) -> datetime:
    """
    Return midnight on the first day of a calendar month.

    Args:
        moment (datetime): Reference time.
        months_back (int): How many calendar months before ``moment``'s month.

    Returns:
        datetime: Start of the requested month.
    """
    index = moment.year * 12 + (moment.month - 1) - months_back
    return datetime(index // 12, index % 12 + 1, 1)


def period_window(period: str, now: datetime):
    """
    Resolve a named period into a ``(start, end)`` pair.

    Either bound may be ``None`` (open). ``end`` is exclusive.

    Raises:
        ValueError: If the period name is unknown.
    """
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period in ("all_time", "all"):
        return None, None
    if period == "today":
        return today, None
    if period == "this_week":
        # weeks start on Sunday
        return today - timedelta(days=(today.weekday() + 1) % 7), None
    if period == "this_month":
        return month_start(now), None
    if period == "last_month":
        return month_start(now, 1), month_start(now)
    if period == "this_year":
        return datetime(now.year, 1, 1), None
    raise ValueError(f"Unknown period: {period}")


def growth_percentage(current: float, previous: float) -> int:
    """
    Percentage change from ``previous`` to ``current``.

    Zero when both are zero, 100 when only ``previous`` is zero. Halves
    round up.
    """
    if previous == 0:
        return 100 if current > 0 else 0
    return math.floor((current - previous) / previous * 100 + 0.5)


def _completed_sum(db: Session, start=None, end=None) -> float:
    stmt = select(func.coalesce(func.sum(models.Donation.amount), 0)).where(
        models.Donation.status == models.DonationStatus.COMPLETED
    )
    if start is not None:
        stmt = stmt.where(models.Donation.created_at >= start)
    if end is not None:
        stmt = stmt.where(models.Donation.created_at < end)
    return float(db.scalar(stmt) or 0)


def total_users(db: Session) -> int:
    return db.scalar(select(func.count(models.User.id))) or 0


def total_completed_amount(db: Session) -> float:
    """Sum of every completed donation."""
    return _completed_sum(db)


def monthly_completed_amount(db: Session, now: datetime | None = None) -> float:
    """Sum of completed donations since the start of the current calendar month."""
    now = now or datetime.now()
    return _completed_sum(db, month_start(now))


def donation_growth_percentage(db: Session, now: datetime | None = None) -> int:
    """Completed donations this calendar month against the whole previous month."""
    now = now or datetime.now()
    current = _completed_sum(db, month_start(now))
    previous = _completed_sum(db, month_start(now, 1), month_start(now))
    return growth_percentage(current, previous)


def user_growth_percentage(db: Session, now: datetime | None = None) -> int:
    """Sign-ups in the last 30 days against the 30 days before that."""
    now = now or datetime.now()
    thirty_days_ago = now - timedelta(days=30)
    sixty_days_ago = now - timedelta(days=60)

    def count_between(start, end):
        return db.scalar(
            select(func.count(models.User.id)).where(
                models.User.created_at >= start, models.User.created_at < end
            )
        ) or 0

    return growth_percentage(
        count_between(thirty_days_ago, now), count_between(sixty_days_ago, thirty_days_ago)
    )


def upcoming_events_count(db: Session, now: datetime | None = None) -> int:
    return db.scalar(
        select(func.count(models.Event.id)).where(
            models.Event.date >= (now or datetime.now())
        )
    ) or 0


def new_contacts_count(db: Session, now: datetime | None = None) -> int:
    """Contacts received during the last 30 days."""
    since = (now or datetime.now()) - timedelta(days=30)
    return db.scalar(
        select(func.count(models.Contact.id)).where(models.Contact.created_at >= since)
    ) or 0


def unread_contacts_count(db: Session) -> int:
    return db.scalar(
        select(func.count(models.Contact.id)).where(
            models.Contact.status == models.ContactStatus.UNREAD
        )
    ) or 0


def monthly_trend(db: Session, now: datetime | None = None, months: int = TREND_MONTHS):
    """
    Completed donation totals for the trailing calendar months.

    Buckets run oldest to newest. Each covers one calendar month except the
    newest, which ends at ``now`` rather than at the next month's start.

    Returns:
        list[dict]: ``{"month": "Oct 2026", "amount": 120.0}`` entries.
    """
    now = now or datetime.now()
    starts = [month_start(now, back) for back in range(months - 1, -1, -1)]
    trend = []
    for index, start in enumerate(starts):
        end = starts[index + 1] if index + 1 < len(starts) else now
        trend.append(
            {"month": start.strftime("%b %Y"), "amount": _completed_sum(db, start, end)}
        )
    return trend


def donation_summary(db: Session, period: str = "all_time", now: datetime | None = None):
    """
    Build the donation report shown on the admin donations page.

    Totals, average, donor count and the payment method breakdown cover
    completed donations inside the period; the status breakdown counts
    donations of every status inside the period. ``monthlyTotal``,
    ``donationGrowth`` and ``monthlyTrend`` are always relative to ``now``.

    Args:
        db (Session): Database session.
        period (str): One of ``DONATION_PERIODS``.
        now (datetime | None): Reference time.

    Returns:
        dict: Keys matching :class:`church.schemas.DonationSummary`.
    """
    now = now or datetime.now()
    start, end = period_window(period, now)

    window = []
    if start is not None:
        window.append(models.Donation.created_at >= start)
    if end is not None:
        window.append(models.Donation.created_at < end)
    completed = [models.Donation.status == models.DonationStatus.COMPLETED, *window]

    total_row = db.execute(
        select(
            func.coalesce(func.sum(models.Donation.amount), 0),
            func.avg(models.Donation.amount),
            func.count(distinct(models.Donation.user_id)),
        ).where(*completed)
    ).one()

    # statuses are counted across every donation, whatever the period
    status_rows = db.execute(
        select(models.Donation.status, func.count(models.Donation.id))
        .group_by(models.Donation.status)
    ).all()

    method_rows = db.execute(
        select(models.Donation.payment_method, func.count(models.Donation.id))
        .where(*completed)
        .group_by(models.Donation.payment_method)
    ).all()

    return {
        "total_donations": float(total_row[0] or 0),
        "monthly_total": monthly_completed_amount(db, now),
        "average_donation": float(total_row[1] or 0),
        "donation_growth": donation_growth_percentage(db, now),
        "total_donors": int(total_row[2] or 0),
        "status_breakdown": [
            {"name": models.DonationStatus(state).value, "value": count}
            for state, count in status_rows
        ],
        "monthly_trend": monthly_trend(db, now),
        "payment_method_breakdown": [
            {"name": models.PaymentMethod(method).value.replace("_", " "), "value": count}
            for method, count in method_rows
        ],
    }


def dashboard_stats(db: Session, now: datetime | None = None):
    """Compose the eight figures of the admin dashboard."""
    now = now or datetime.now()
    return {
        "total_users": total_users(db),
        "total_donations": total_completed_amount(db),
        "monthly_donations": monthly_completed_amount(db, now),
        "upcoming_events": upcoming_events_count(db, now),
        "new_contacts": new_contacts_count(db, now),
        "unread_contacts": unread_contacts_count(db),
        "user_growth": user_growth_percentage(db, now),
        "donation_growth": donation_growth_percentage(db, now),
    }
