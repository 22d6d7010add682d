from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Literal, Union

from daylog.schemas.stats import CategoryTotal
from daylog.schemas.time_blocks import TimeBlock

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60

InvalidTimeReason = Literal[
    "empty", "missing_separator", "not_an_integer", "out_of_range"
]


@dataclass(frozen=True)
class ValidTime:
    minutes: int


@dataclass(frozen=True)
class InvalidTime:
    reason: InvalidTimeReason


ParsedTime = Union[ValidTime, InvalidTime]


class InvalidTimeFormat(ValueError):
    def __init__(self, *, field_name: str, value: str | None, reason: str) -> None:
        super().__init__(f"{field_name}={value!r} is not a valid HH:MM time ({reason})")
        self.field_name = field_name
        self.value = value
        self.reason = reason


@dataclass(frozen=True)
class ExcludedBlock:
    block: TimeBlock
    error: InvalidTimeFormat


@dataclass(frozen=True)
class AggregationReport:
    totals: dict[str, CategoryTotal]
    total_tracked_minutes: int
    excluded: list[ExcludedBlock] = field(default_factory=list)


def _parse_int(text: str) -> int | None:
    s = text.strip()
    # int() accepts "1_0"; a clock component never does.
    if "_" in s:
        return None
    try:
        return int(s)
    except ValueError:
        return None


def parse_time(time: str | None) -> ParsedTime:
    if not time:
        return InvalidTime("empty")
    if ":" not in time:
        return InvalidTime("missing_separator")

    # Only hours and minutes count; a trailing ":SS" (Postgres `time`) is ignored.
    parts = time.split(":")
    hour = _parse_int(parts[0])
    minute = _parse_int(parts[1])
    if hour is None or minute is None:
        return InvalidTime("not_an_integer")
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        return InvalidTime("out_of_range")
    return ValidTime(hour * 60 + minute)


def time_to_minutes(time: str | None) -> int:
    """Minutes since midnight for `HH:MM`.

    Anything unparsable is reported as 0 (midnight). Callers that need to tell
    a bad value apart from a real "00:00" should use `parse_time`.
    """
    parsed = parse_time(time)
    if isinstance(parsed, ValidTime):
        return parsed.minutes
    return 0


def calculate_duration(start: str | None, end: str | None) -> int:
    # Any negative difference is an overnight block; same instant stays 0.
    duration = time_to_minutes(end) - time_to_minutes(start)
    if duration < 0:
        duration += MINUTES_PER_DAY
    return duration


def format_duration(total_minutes: int) -> str:
    if total_minutes == 0:
        return "0분"

    hours, minutes = divmod(total_minutes, 60)
    if hours == 0:
        return f"{minutes}분"
    if minutes == 0:
        return f"{hours}시간"
    return f"{hours}시간 {minutes}분"


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _is_incomplete(block: TimeBlock) -> bool:
    return not (block.category and block.start_time and block.end_time)


def _time_error(block: TimeBlock) -> InvalidTimeFormat | None:
    for field_name, value in (
        ("start_time", block.start_time),
        ("end_time", block.end_time),
    ):
        parsed = parse_time(value)
        if isinstance(parsed, InvalidTime):
            return InvalidTimeFormat(
                field_name=field_name, value=value, reason=parsed.reason
            )
    return None


def aggregate_report(
    blocks: Sequence[TimeBlock],
    category_keys: Iterable[str],
    *,
    strict_categories: bool = False,
    strict_times: bool = False,
) -> AggregationReport:
    minutes: dict[str, int] = {}
    members: dict[str, list[TimeBlock]] = {}
    for key in category_keys:
        minutes.setdefault(key, 0)
        members.setdefault(key, [])
    registered = frozenset(minutes)

    excluded: list[ExcludedBlock] = []
    for block in blocks:
        if _is_incomplete(block):
            continue

        category = block.category or ""
        if category not in registered and strict_categories:
            continue

        if strict_times:
            error = _time_error(block)
            if error is not None:
                logger.warning("excluding block %s: %s", block.id, error)
                excluded.append(ExcludedBlock(block=block, error=error))
                continue

        duration = calculate_duration(block.start_time, block.end_time)
        minutes[category] = minutes.get(category, 0) + duration
        members.setdefault(category, []).append(block)

    total_tracked = sum(minutes.values())

    totals: dict[str, CategoryTotal] = {}
    for key, total in minutes.items():
        percentage = (
            _round_half_up(total / total_tracked * 100) if total_tracked > 0 else 0
        )
        totals[key] = CategoryTotal(
            total_minutes=total,
            display_text=format_duration(total),
            percentage=percentage,
            blocks=list(members[key]),
        )

    return AggregationReport(
        totals=totals, total_tracked_minutes=total_tracked, excluded=excluded
    )


def aggregate(
    blocks: Sequence[TimeBlock],
    category_keys: Iterable[str],
    *,
    strict_categories: bool = False,
    strict_times: bool = False,
) -> dict[str, CategoryTotal]:
    return aggregate_report(
        blocks,
        category_keys,
        strict_categories=strict_categories,
        strict_times=strict_times,
    ).totals
