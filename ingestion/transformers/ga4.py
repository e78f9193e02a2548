"""
Parse GA4 Data API rows and aggregate sessions and revenue.
"""

from typing import Any, Dict, Iterable, List

from ingestion.transformers.aggregation import (
    AggregateResult,
    GroupAccumulator,
    group_value,
    sum_fields,
    to_float,
    to_int,
)
from schemas.metrics import Ga4Breakdown, Ga4Row, Ga4Summary

GA4_DIMENSIONS = [
    "date",
    "sessionSource",
    "sessionMedium",
    "sessionCampaignName",
    "sessionCampaignId",
]

GA4_METRICS = [
    "sessions",
    "totalRevenue",
    "eventCount",
    "screenPageViews",
    "engagedSessions",
    "totalUsers",
    "totalAdRevenue",
]

ADDITIVE_FIELDS = (
    "sessions",
    "revenue",
    "ad_revenue",
    "events",
    "page_views",
    "engaged_sessions",
    "users",
)


def _value(values: List[Dict[str, Any]], index: int) -> Any:
    if index >= len(values) or not isinstance(values[index], dict):
        return None
    return values[index].get("value")


def parse_ga4_row(row: Dict[str, Any]) -> Ga4Row:
    dimensions = row.get("dimensionValues") or []
    metrics = row.get("metricValues") or []

    def metric(name):
        return _value(metrics, GA4_METRICS.index(name))

    return Ga4Row(
        date=_value(dimensions, 0) or "",
        source=group_value(_value(dimensions, 1)),
        medium=group_value(_value(dimensions, 2)),
        campaign_name=group_value(_value(dimensions, 3)),
        campaign_id=group_value(_value(dimensions, 4)),
        sessions=to_int(metric("sessions")),
        revenue=to_float(metric("totalRevenue")),
        events=to_int(metric("eventCount")),
        page_views=to_int(metric("screenPageViews")),
        engaged_sessions=to_int(metric("engagedSessions")),
        users=to_int(metric("totalUsers")),
        ad_revenue=to_float(metric("totalAdRevenue")),
    )


def aggregate_ga4_rows(rows: Iterable[Ga4Row]) -> AggregateResult[Ga4Summary]:
    rows = list(rows)
    by_source = GroupAccumulator(ADDITIVE_FIELDS)
    by_medium = GroupAccumulator(ADDITIVE_FIELDS)
    by_source_medium = GroupAccumulator(ADDITIVE_FIELDS)

    for row in rows:
        values = {name: getattr(row, name) for name in ADDITIVE_FIELDS}
        source = group_value(row.source)
        medium = group_value(row.medium)
        by_source.add(source, values)
        by_medium.add(medium, values)
        by_source_medium.add((source, medium), values)

    totals = sum_fields(rows, ADDITIVE_FIELDS)
    summary = Ga4Summary(
        total_sessions=totals["sessions"],
        total_revenue=totals["revenue"],
        total_ad_revenue=totals["ad_revenue"],
        total_events=totals["events"],
        total_page_views=totals["page_views"],
        total_engaged_sessions=totals["engaged_sessions"],
        total_users=totals["users"],
        row_count=len(rows),
    )

    def records(accumulator):
        return {key: Ga4Breakdown(key=key, **t) for key, t in accumulator.items()}

    return AggregateResult(
        summary=summary,
        breakdowns={
            "source": records(by_source),
            "medium": records(by_medium),
            "source_medium": records(by_source_medium),
        },
        row_count=len(rows),
    )


def aggregate_ga4(raw_rows: Iterable[Dict[str, Any]]) -> AggregateResult[Ga4Summary]:
    """Parse raw runReport rows and aggregate them"""
    return aggregate_ga4_rows(parse_ga4_row(row) for row in raw_rows)


def _label(key) -> str:
    return " / ".join(key) if isinstance(key, tuple) else key


def format_ga4_summary(result: AggregateResult[Ga4Summary]) -> str:
    summary = result.summary
    lines = [
        "=" * 60,
        "GA4 REPORT SUMMARY",
        "=" * 60,
        f"Total Sessions: {summary.total_sessions:,}",
        f"Total Revenue: ${summary.total_revenue:.2f}",
        f"Total Ad Revenue: ${summary.total_ad_revenue:.2f}",
        f"Total Events: {summary.total_events:,}",
        f"Total Page Views: {summary.total_page_views:,}",
        f"Total Engaged Sessions: {summary.total_engaged_sessions:,}",
        f"Total Users: {summary.total_users:,}",
        f"Rows: {summary.row_count:,}",
    ]
    for dimension, title in (
        ("source", "TOP SOURCES"),
        ("medium", "TOP MEDIUMS"),
        ("source_medium", "TOP SOURCE / MEDIUM"),
    ):
        lines += ["", f"{title} (by sessions):"]
        lines += [
            f"  {_label(b.key)}: {b.sessions:,} sessions | ${b.revenue:.2f}"
            for b in result.top(dimension, "sessions", limit=5)
        ]
    lines.append("=" * 60)
    return "\n".join(lines)
