from __future__ import annotations

from collections.abc import Iterator
from datetime import date as Date
from datetime import timedelta


def week_start(reference_date: Date) -> Date:
    # Weeks run Monday..Sunday.
    return reference_date - timedelta(days=reference_date.weekday())


def week_range(reference_date: Date) -> tuple[Date, Date]:
    start = week_start(reference_date)
    return start, start + timedelta(days=6)


def trailing_range(reference_date: Date, days: int) -> tuple[Date, Date]:
    return reference_date - timedelta(days=max(0, days)), reference_date


def iter_dates(start: Date, end: Date) -> Iterator[Date]:
    cursor = start
    while cursor <= end:
        yield cursor
        cursor += timedelta(days=1)


def span_days(start: Date, end: Date) -> int:
    return (end - start).days + 1
