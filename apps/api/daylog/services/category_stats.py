from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date as Date

from daylog.schemas.categories import DEFAULT_CATEGORY_COLOR, Category
from daylog.schemas.stats import CategoryStatRow, CategoryTotal, StatsSummary
from daylog.services.aggregator import AggregationReport, format_duration


def _hours(total_minutes: int) -> float:
    return round(total_minutes / 60, 2)


def build_category_rows(
    totals: Mapping[str, CategoryTotal], categories: Iterable[Category]
) -> list[CategoryStatRow]:
    """Display rows for charts/tables.

    Zero-total buckets are dropped and the rest sorted by minutes, largest
    first; ties keep the aggregator's order. A value with no Category record
    (e.g. the category was deleted) is shown under its raw key.
    """
    by_value = {c.value: c for c in categories}
    rows: list[CategoryStatRow] = []
    for value, total in totals.items():
        if total.total_minutes <= 0:
            continue
        category = by_value.get(value)
        rows.append(
            CategoryStatRow(
                value=value,
                label=category.label if category else value,
                color=category.color if category else DEFAULT_CATEGORY_COLOR,
                total_minutes=total.total_minutes,
                hours=_hours(total.total_minutes),
                display_text=total.display_text,
                percentage=total.percentage,
            )
        )
    rows.sort(key=lambda r: r.total_minutes, reverse=True)
    return rows


def build_summary(
    report: AggregationReport,
    categories: Iterable[Category],
    *,
    start_date: Date,
    end_date: Date,
) -> StatsSummary:
    total = report.total_tracked_minutes
    return StatsSummary(
        start_date=start_date,
        end_date=end_date,
        total_minutes=total,
        total_hours=_hours(total),
        total_display_text=format_duration(total),
        categories=build_category_rows(report.totals, categories),
        excluded_count=len(report.excluded),
    )


def summary_line(rows: Iterable[CategoryStatRow]) -> str:
    return ", ".join(f"{r.label}: {r.display_text}" for r in rows)
