"""Donation listing and aggregate statistics."""

from __future__ import annotations

from datetime import date, datetime, time, timezone

from sqlalchemy import func
from sqlalchemy.orm import Session

from transforme.models import Donation

RECURRING_FREQUENCIES = ("monthly", "yearly")
COMPLETED = "completed"


def list_donations(
    session: Session,
    *,
    frequency: str | None = None,
    status_value: str | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    page: int = 1,
    limit: int = 25,
) -> tuple[list[Donation], int]:
    page = max(1, page)
    limit = min(50, max(1, limit))

    query = session.query(Donation)
    if frequency:
        query = query.filter(Donation.frequency == frequency)
    if status_value:
        query = query.filter(Donation.status == status_value)
    if date_from:
        query = query.filter(
            Donation.created_at >= datetime.combine(date_from, time.min, tzinfo=timezone.utc)
        )
    if date_to:
        query = query.filter(
            Donation.created_at <= datetime.combine(date_to, time.max, tzinfo=timezone.utc)
        )

    total = query.count()
    rows = (
        query.order_by(Donation.created_at.desc(), Donation.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return rows, total


def donation_stats(session: Session) -> dict[str, object]:
    """Totals over completed donations only."""

    def _sum_and_count(*criteria) -> tuple[int, int]:
        total, count = (
            session.query(func.coalesce(func.sum(Donation.amount), 0), func.count(Donation.id))
            .filter(Donation.status == COMPLETED, *criteria)
            .one()
        )
        return int(total), int(count)

    total_raised, total_donations = _sum_and_count()
    recurring_total, recurring_count = _sum_and_count(
        Donation.frequency.in_(RECURRING_FREQUENCIES)
    )
    one_time_total, one_time_count = _sum_and_count(Donation.frequency == "one_time")
    unique_donors = (
        session.query(func.count(func.distinct(Donation.donor_email)))
        .filter(Donation.status == COMPLETED)
        .scalar()
    )
    by_currency = (
        session.query(Donation.currency, func.coalesce(func.sum(Donation.amount), 0))
        .filter(Donation.status == COMPLETED)
        .group_by(Donation.currency)
        .all()
    )
    return {
        "total_raised": total_raised,
        "total_donations": total_donations,
        "recurring_total": recurring_total,
        "recurring_count": recurring_count,
        "one_time_total": one_time_total,
        "one_time_count": one_time_count,
        "unique_donors": int(unique_donors or 0),
        "totals_by_currency": {currency: int(amount) for currency, amount in by_currency},
    }


__all__ = ["donation_stats", "list_donations"]
