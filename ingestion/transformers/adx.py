"""
Parse Ad Manager report rows and aggregate ad exchange revenue.

Rows arrive as positional arrays (``dimensionValues`` and
``metricValueGroups[0].primaryValues``) in the order requested by
``ADX_DIMENSIONS`` / ``ADX_METRICS``.
"""

from typing import Any, Dict, Iterable, List

from ingestion.transformers.aggregation import (
    AggregateResult,
    GroupAccumulator,
    group_value,
    safe_rate,
    sum_fields,
    to_float,
    to_int,
)
from schemas.metrics import AdxBreakdown, AdxRow, AdxSummary

ADX_DIMENSIONS = [
    "DATE",
    "COUNTRY_NAME",
    "AD_UNIT_NAME_ALL_LEVEL",
    "BROWSER_NAME",
    "CUSTOM_DIMENSION_0_VALUE",  # traffic source
    "CUSTOM_DIMENSION_1_VALUE",  # campaign
    "AD_UNIT_ID",
    "AD_UNIT_NAME",
]

ADX_METRICS = [
    "AD_EXCHANGE_REVENUE",
    "AD_EXCHANGE_CLICKS",
    "AD_EXCHANGE_IMPRESSIONS",
    "AD_EXCHANGE_AVERAGE_ECPM",
    "AD_EXCHANGE_CTR",
    "AD_EXCHANGE_ACTIVE_VIEW_VIEWABLE_IMPRESSIONS",
    "AD_REQUESTS",
    "AD_SERVER_REVENUE",
]

ADDITIVE_FIELDS = (
    "ad_x_revenue",
    "ad_server_revenue",
    "clicks",
    "impressions",
    "viewable_impressions",
    "ad_requests",
)


def _dimension(values: List[Dict[str, Any]], name: str) -> Any:
    index = ADX_DIMENSIONS.index(name)
    if index >= len(values) or not isinstance(values[index], dict):
        return None
    return values[index].get("stringValue")


def _metric(values: List[Dict[str, Any]], name: str) -> Dict[str, Any]:
    index = ADX_METRICS.index(name)
    if index >= len(values) or not isinstance(values[index], dict):
        return {}
    return values[index]


def parse_adx_row(row: Dict[str, Any]) -> AdxRow:
    dimensions = row.get("dimensionValues") or []
    groups = row.get("metricValueGroups") or [{}]
    metrics = (groups[0] or {}).get("primaryValues") or []

    return AdxRow(
        date=_dimension(dimensions, "DATE") or "",
        country_name=group_value(_dimension(dimensions, "COUNTRY_NAME")),
        ad_unit_name=group_value(_dimension(dimensions, "AD_UNIT_NAME_ALL_LEVEL")),
        browser_name=group_value(_dimension(dimensions, "BROWSER_NAME")),
        source=group_value(_dimension(dimensions, "CUSTOM_DIMENSION_0_VALUE")),
        campaign=group_value(_dimension(dimensions, "CUSTOM_DIMENSION_1_VALUE")),
        ad_unit_id=group_value(_dimension(dimensions, "AD_UNIT_ID")),
        ad_x_revenue=to_float(_metric(metrics, "AD_EXCHANGE_REVENUE").get("doubleValue")),
        ad_server_revenue=to_float(_metric(metrics, "AD_SERVER_REVENUE").get("doubleValue")),
        clicks=to_int(_metric(metrics, "AD_EXCHANGE_CLICKS").get("intValue")),
        impressions=to_int(_metric(metrics, "AD_EXCHANGE_IMPRESSIONS").get("intValue")),
        average_ecpm=to_float(_metric(metrics, "AD_EXCHANGE_AVERAGE_ECPM").get("doubleValue")),
        ctr=to_float(_metric(metrics, "AD_EXCHANGE_CTR").get("doubleValue")),
        viewable_impressions=to_int(
            _metric(metrics, "AD_EXCHANGE_ACTIVE_VIEW_VIEWABLE_IMPRESSIONS").get("intValue")
        ),
        ad_requests=to_int(_metric(metrics, "AD_REQUESTS").get("intValue")),
    )


def _breakdown(key: str, totals: Dict[str, float]) -> AdxBreakdown:
    return AdxBreakdown(
        key=key,
        revenue=totals["ad_x_revenue"] + totals["ad_server_revenue"],
        ad_x_revenue=totals["ad_x_revenue"],
        ad_server_revenue=totals["ad_server_revenue"],
        clicks=totals["clicks"],
        impressions=totals["impressions"],
        viewable_impressions=totals["viewable_impressions"],
        ad_requests=totals["ad_requests"],
        average_ecpm=safe_rate(totals["ad_x_revenue"], totals["impressions"], 1000),
        average_ctr=safe_rate(totals["clicks"], totals["impressions"]),
    )


def aggregate_adx_rows(rows: Iterable[AdxRow]) -> AggregateResult[AdxSummary]:
    rows = list(rows)
    by_source = GroupAccumulator(ADDITIVE_FIELDS)
    by_ad_unit = GroupAccumulator(ADDITIVE_FIELDS)

    for row in rows:
        values = {name: getattr(row, name) for name in ADDITIVE_FIELDS}
        by_source.add(group_value(row.source), values)
        by_ad_unit.add(group_value(row.ad_unit_name), values)

    totals = sum_fields(rows, ADDITIVE_FIELDS)
    summary = AdxSummary(
        total_revenue=totals["ad_x_revenue"] + totals["ad_server_revenue"],
        total_ad_x_revenue=totals["ad_x_revenue"],
        total_ad_server_revenue=totals["ad_server_revenue"],
        total_clicks=totals["clicks"],
        total_impressions=totals["impressions"],
        total_viewable_impressions=totals["viewable_impressions"],
        total_ad_requests=totals["ad_requests"],
        average_ecpm=safe_rate(totals["ad_x_revenue"], totals["impressions"], 1000),
        average_ctr=safe_rate(totals["clicks"], totals["impressions"]),
        row_count=len(rows),
    )

    return AggregateResult(
        summary=summary,
        breakdowns={
            "source": {key: _breakdown(key, t) for key, t in by_source.items()},
            "ad_unit": {key: _breakdown(key, t) for key, t in by_ad_unit.items()},
        },
        row_count=len(rows),
    )


def aggregate_adx(raw_rows: Iterable[Dict[str, Any]]) -> AggregateResult[AdxSummary]:
    """Parse raw Ad Manager rows and aggregate them"""
    return aggregate_adx_rows(parse_adx_row(row) for row in raw_rows)


def format_adx_summary(result: AggregateResult[AdxSummary]) -> str:
    summary = result.summary
    lines = [
        "=" * 60,
        "ADX REVENUE REPORT",
        "=" * 60,
        f"Total Revenue: ${summary.total_revenue:.4f}",
        f"Total AdX Revenue: ${summary.total_ad_x_revenue:.4f}",
        f"Total AdServer Revenue: ${summary.total_ad_server_revenue:.4f}",
        f"Total Clicks: {summary.total_clicks:,}",
        f"Total Impressions: {summary.total_impressions:,}",
        f"Average eCPM: ${summary.average_ecpm:.4f}",
        f"Average CTR: {summary.average_ctr * 100:.4f}%",
        f"Total Ad Requests: {summary.total_ad_requests:,}",
        "",
        "REVENUE BY AD UNIT:",
    ]
    lines += [f"  {b.key}: ${b.revenue:.4f}" for b in result.top("ad_unit", "revenue", limit=None)]
    lines += ["", "REVENUE BY SOURCE (top 10):"]
    lines += [f"  {b.key}: ${b.revenue:.4f}" for b in result.top("source", "revenue")]
    lines.append("=" * 60)
    return "\n".join(lines)
