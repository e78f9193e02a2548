"""
Aggregate Anura traffic-quality reports.

Two independently downloaded row sets feed the aggregation: "request" rows
(one per scored visit) and "response" rows (one per verdict, with a RESULT of
good / bad / warn). Both are first narrowed to a one-day window anchored on
a calendar-day boundary in a named timezone.
"""

from datetime import datetime, time, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple
from zoneinfo import ZoneInfo

from ingestion.transformers.aggregation import AggregateResult, GroupAccumulator, group_value, safe_rate
from schemas.metrics import AnuraBreakdown, AnuraSummary

RESULTS = ("good", "bad", "warn")
COUNT_FIELDS = ("requests", "responses") + RESULTS


def _field(row: Dict[str, Any], name: str) -> Any:
    if name in row:
        return row[name]
    return row.get(name.lower())


def traffic_window(reference: datetime, tz_name: str) -> Tuple[datetime, datetime]:
    """
    UTC bounds of the previous calendar day in ``tz_name``.

    ``reference`` is an aware instant; it is converted to the zone, moved back
    one day and truncated to local midnight. A run on 2024-07-14T00:00Z in
    America/Los_Angeles covers [2024-07-12T07:00Z, 2024-07-13T07:00Z).
    """
    tz = ZoneInfo(tz_name)
    local = reference.astimezone(tz)
    previous_day = (local - timedelta(days=1)).date()
    start = datetime.combine(previous_day, time.min, tzinfo=tz).astimezone(timezone.utc)
    return start, start + timedelta(hours=24)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string or epoch number; naive values are taken as UTC"""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        seconds = value / 1000 if value > 1e12 else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def filter_to_window(
    rows: Iterable[Dict[str, Any]],
    start: datetime,
    end: datetime,
    field: str = "TIMESTAMP"
) -> Tuple[List[Dict[str, Any]], int]:
    """Keep rows whose timestamp falls in [start, end); returns (kept, dropped)"""
    kept = []
    dropped = 0
    for row in rows:
        stamp = parse_timestamp(_field(row, field))
        if stamp is not None and start <= stamp < end:
            kept.append(row)
        else:
            dropped += 1
    return kept, dropped


def _metrics(counts: Dict[str, float]) -> Dict[str, Any]:
    requests = int(counts["requests"])
    responses = int(counts["responses"])
    return {
        "total_requests": requests,
        "total_responses": responses,
        "drop_rate": safe_rate(requests - responses, requests, 100),
        "good": int(counts["good"]),
        "good_rate": safe_rate(counts["good"], responses, 100),
        "bad": int(counts["bad"]),
        "bad_rate": safe_rate(counts["bad"], responses, 100),
        "warn": int(counts["warn"]),
        "warn_rate": safe_rate(counts["warn"], responses, 100),
    }


def aggregate_anura(
    requests: Iterable[Dict[str, Any]],
    responses: Iterable[Dict[str, Any]]
) -> AggregateResult[AnuraSummary]:
    by_source = GroupAccumulator(COUNT_FIELDS)
    totals = dict.fromkeys(COUNT_FIELDS, 0)
    row_count = 0

    for row in requests:
        by_source.add(group_value(_field(row, "SOURCE")), {"requests": 1})
        totals["requests"] += 1
        row_count += 1

    for row in responses:
        verdict = str(_field(row, "RESULT") or "").strip().lower()
        counts = {"responses": 1}
        if verdict in RESULTS:
            counts[verdict] = 1
        by_source.add(group_value(_field(row, "SOURCE")), counts)
        for name, value in counts.items():
            totals[name] += value
        row_count += 1

    return AggregateResult(
        summary=AnuraSummary(**_metrics(totals)),
        breakdowns={
            "source": {
                key: AnuraBreakdown(key=key, **_metrics(counts))
                for key, counts in by_source.items()
            }
        },
        row_count=row_count,
    )


def format_anura_summary(result: AggregateResult[AnuraSummary]) -> str:
    summary = result.summary
    lines = [
        "=" * 60,
        "ANURA REPORT SUMMARY",
        "=" * 60,
        f"Total Requests: {summary.total_requests:,}",
        f"Total Responses: {summary.total_responses:,}",
        f"Drop Rate: {summary.drop_rate:.2f}%",
        f"Good: {summary.good:,} ({summary.good_rate:.2f}%)",
        f"Bad: {summary.bad:,} ({summary.bad_rate:.2f}%)",
        f"Warn: {summary.warn:,} ({summary.warn_rate:.2f}%)",
        "",
        f"SOURCE BREAKDOWN ({len(result.breakdown('source'))} sources):",
    ]
    for index, metric in enumerate(result.top("source", "total_requests", limit=None), start=1):
        lines.append(
            f"{index}. {metric.key} | requests {metric.total_requests:,} | "
            f"responses {metric.total_responses:,} | drop {metric.drop_rate:.2f}% | "
            f"good {metric.good_rate:.2f}% | bad {metric.bad_rate:.2f}% | warn {metric.warn_rate:.2f}%"
        )
    lines.append("=" * 60)
    return "\n".join(lines)
