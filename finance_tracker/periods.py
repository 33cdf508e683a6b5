"""Utilities for billing cycles and reporting periods."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, timedelta
from typing import Iterable, List, Tuple

from .models import Account, DueStatus

logger = logging.getLogger(__name__)

PAID = "paid"
OVERDUE = "overdue"
DUE_SOON = "due_soon"
UPCOMING = "upcoming"

DUE_SOON_DAYS = 7


def month_key(day: date) -> str:
    """Return ``day`` as a ``YYYY-MM`` month key."""

    return f"{day.year:04d}-{day.month:02d}"


def _add_months(year: int, month: int, months: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) + months
    return index // 12, index % 12 + 1


def day_in_month(year: int, month: int, day: int) -> date:
    """Return ``day`` of the given month, rolling past the month end.

    Day 31 of a 30-day month becomes the 1st of the following month, in
    the same way calendar arithmetic treats an out of range day.
    """

    if day < 1:
        raise ValueError(f"Day of month must be positive, got {day}")
    return date(year, month, 1) + timedelta(days=day - 1)


def next_due_date(due_day: int, today: date | None = None) -> date:
    """Return the next occurrence of ``due_day`` on or after ``today``."""

    today = today or date.today()
    if today.day <= due_day:
        return day_in_month(today.year, today.month, due_day)
    year, month = _add_months(today.year, today.month, 1)
    return day_in_month(year, month, due_day)


def days_until_due(due: date, today: date | None = None) -> int:
    today = today or date.today()
    return (due - today).days


def is_paid_for_month(account: Account, today: date | None = None) -> bool:
    today = today or date.today()
    return account.last_payment_month == month_key(today)


def mark_paid(account: Account, today: date | None = None) -> Account:
    today = today or date.today()
    return replace(account, last_payment_month=month_key(today))


def mark_unpaid(account: Account) -> Account:
    return replace(account, last_payment_month=None)


def payment_status(
    account: Account, today: date | None = None, due_soon_days: int = DUE_SOON_DAYS
) -> DueStatus:
    """Work out where ``account`` stands in its current billing cycle.

    A payment recorded for the current month satisfies this cycle and
    the status points at next month's due date. An unpaid bill whose
    day has already passed this month is overdue, with a negative day
    count.
    """

    if not account.payment_due_date:
        raise ValueError(f"Account {account.name!r} has no payment due date")
    today = today or date.today()
    due_day = account.payment_due_date
    cycle_due = day_in_month(today.year, today.month, due_day)

    if is_paid_for_month(account, today):
        year, month = _add_months(today.year, today.month, 1)
        due = day_in_month(year, month, due_day)
        return DueStatus(account, due, days_until_due(due, today), PAID)

    if cycle_due < today:
        return DueStatus(account, cycle_due, days_until_due(cycle_due, today), OVERDUE)

    days = days_until_due(cycle_due, today)
    state = DUE_SOON if days <= due_soon_days else UPCOMING
    return DueStatus(account, cycle_due, days, state)


def upcoming_due_dates(
    accounts: Iterable[Account],
    today: date | None = None,
    days_ahead: int = 30,
) -> List[DueStatus]:
    """Statuses for every account with a due day, soonest first.

    Overdue bills are always kept; others only when due within
    ``days_ahead`` days.
    """

    today = today or date.today()
    statuses = []
    for account in accounts:
        if not account.payment_due_date:
            continue
        status = payment_status(account, today)
        if status.state == OVERDUE or status.days_until_due <= days_ahead:
            statuses.append(status)
    logger.debug("%d bills due within %d days of %s", len(statuses), days_ahead, today)
    return sorted(statuses, key=lambda status: status.days_until_due)


def month_range(today: date | None = None) -> Tuple[date, date]:
    """Return the first and last day of the calendar month containing ``today``."""

    today = today or date.today()
    first = today.replace(day=1)
    year, month = _add_months(today.year, today.month, 1)
    return first, date(year, month, 1) - timedelta(days=1)


def last_month_range(today: date | None = None) -> Tuple[date, date]:
    """First and last day of the month before the one containing ``today``."""

    today = today or date.today()
    year, month = _add_months(today.year, today.month, -1)
    return month_range(date(year, month, 1))
