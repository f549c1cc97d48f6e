# gascert/utils/dates.py
"""
Date arithmetic and certificate status derivation.

Everything here is a pure function of its arguments; ``today`` defaults to the
current local date so callers (and tests) can pin the clock explicitly.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Iterable

STATUS_CURRENT = "current"
STATUS_NEAR_EXPIRY = "near_expiry"
STATUS_EXPIRED = "expired"

MONTH_NAMES_ES = (
    "enero",
    "febrero",
    "marzo",
    "abril",
    "mayo",
    "junio",
    "julio",
    "agosto",
    "septiembre",
    "octubre",
    "noviembre",
    "diciembre",
)


def as_date(value) -> date:
    """Accept a date, a datetime or an ISO-8601 string and return a date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    if "T" in text or " " in text:
        return datetime.fromisoformat(text).date()
    return date.fromisoformat(text)


def expiry_date(issue_date, validity_years: int) -> date:
    """
    Shift ``issue_date`` forward by whole calendar years.

    29 February rolls over to 1 March when the target year is not a leap year.
    """
    d = as_date(issue_date)
    year = d.year + int(validity_years)
    try:
        return d.replace(year=year)
    except ValueError:
        return date(year, 3, 1)


def days_remaining(target, today: date | None = None) -> int:
    """Whole days from today to ``target``; negative once it is in the past."""
    today = today or date.today()
    return (as_date(target) - today).days


def is_near_expiry(target, thresholds: Iterable[int], today: date | None = None) -> bool:
    thresholds = list(thresholds)
    if not thresholds:
        return False
    days = days_remaining(target, today)
    return 0 < days <= max(thresholds)


def classify_status(expiry, thresholds: Iterable[int], today: date | None = None) -> str:
    """
    Derive a certificate status from its expiry date.

    expired     -> expiry date reached (the expiry day itself counts)
    near_expiry -> 0 < days remaining <= largest alert threshold
    current     -> anything further away
    """
    days = days_remaining(expiry, today)
    if days <= 0:
        return STATUS_EXPIRED
    if is_near_expiry(expiry, thresholds, today):
        return STATUS_NEAR_EXPIRY
    return STATUS_CURRENT


def format_date(value) -> str:
    if not value:
        return "-"
    return as_date(value).strftime("%d/%m/%Y")


def month_label(value) -> str:
    return MONTH_NAMES_ES[as_date(value).month - 1]


def last_months(count: int, today: date | None = None) -> list[date]:
    """First day of each of the last ``count`` months, oldest first."""
    today = today or date.today()
    months = []
    for back in range(count - 1, -1, -1):
        total = today.year * 12 + (today.month - 1) - back
        months.append(date(total // 12, total % 12 + 1, 1))
    return months


def group_by_month(values: Iterable) -> dict[str, int]:
    """Count dates per ``M/YYYY`` bucket."""
    counts: dict[str, int] = {}
    for value in values:
        d = as_date(value)
        key = f"{d.month}/{d.year}"
        counts[key] = counts.get(key, 0) + 1
    return counts
