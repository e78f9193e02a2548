"""
Unit tests for row parsing and aggregation
"""

import pytest
from datetime import datetime, timezone

from ingestion.transformers.aggregation import AggregateResult, group_value, safe_rate, to_int
from ingestion.transformers.adx import aggregate_adx, format_adx_summary, parse_adx_row
from ingestion.transformers.anura import (
    aggregate_anura,
    filter_to_window,
    parse_timestamp,
    traffic_window,
)
from ingestion.transformers.ga4 import aggregate_ga4, format_ga4_summary, parse_ga4_row
from schemas.metrics import NOT_SET


class TestHelpers:
    """Test shared aggregation helpers"""

    @pytest.mark.parametrize("value", [None, "", "   ", float("nan")])
    def test_group_value_missing_becomes_sentinel(self, value):
        assert group_value(value) == NOT_SET

    def test_group_value_strips(self):
        assert group_value("  google ") == "google"

    def test_safe_rate_zero_denominator(self):
        assert safe_rate(5, 0) == 0.0
        assert safe_rate(0, 0, 100) == 0.0

    def test_safe_rate_scaled(self):
        assert safe_rate(1, 4, 100) == 25.0

    def test_to_int_parses_int64_strings(self):
        assert to_int("9007199254740993") == 9007199254740993
        assert to_int("12.0") == 12
        assert to_int(None) == 0
        assert to_int("abc") == 0


class TestAdxAggregation:
    """Test ad exchange parsing and aggregation"""

    def test_parse_row_positional(self, make_adx_row):
        row = parse_adx_row(make_adx_row("google", 1.5, clicks=3, impressions=100))

        assert row.source == "google"
        assert row.ad_x_revenue == 1.5
        assert row.clicks == 3
        assert row.impressions == 100
        assert row.ad_requests == 10

    def test_parse_row_missing_values_default(self):
        row = parse_adx_row({"dimensionValues": [], "metricValueGroups": []})

        assert row.source == NOT_SET
        assert row.clicks == 0
        assert row.ad_x_revenue == 0.0

    def test_revenue_split_by_source(self, make_adx_row):
        result = aggregate_adx([make_adx_row("google", 10.0), make_adx_row("", 5.0)])

        assert result.summary.total_revenue == 15.0
        by_source = result.breakdown("source")
        assert by_source[NOT_SET].revenue == 5.0
        assert by_source["google"].revenue == 10.0

    def test_breakdowns_sum_to_summary(self, mock_adx_rows):
        result = aggregate_adx(mock_adx_rows)
        summary = result.summary

        for dimension in ("source", "ad_unit"):
            groups = result.breakdown(dimension).values()
            assert sum(g.ad_x_revenue for g in groups) == pytest.approx(summary.total_ad_x_revenue)
            assert sum(g.clicks for g in groups) == summary.total_clicks
            assert sum(g.impressions for g in groups) == summary.total_impressions
            assert sum(g.ad_requests for g in groups) == summary.total_ad_requests

    def test_rates_derived_from_totals(self, mock_adx_rows):
        summary = aggregate_adx(mock_adx_rows).summary

        # 15.0 revenue over 4000 impressions, 4 clicks
        assert summary.average_ecpm == pytest.approx(3.75)
        assert summary.average_ctr == pytest.approx(0.001)

    def test_zero_impressions_give_zero_rates(self, make_adx_row):
        result = aggregate_adx([make_adx_row("google", 1.0, clicks=0, impressions=0)])

        assert result.summary.average_ecpm == 0.0
        assert result.summary.average_ctr == 0.0
        assert result.breakdown("source")["google"].average_ecpm == 0.0

    def test_empty_input(self):
        result = aggregate_adx([])

        assert result.summary.total_revenue == 0.0
        assert result.row_count == 0
        assert result.breakdown("source") == {}

    def test_aggregation_is_idempotent(self, mock_adx_rows):
        first = aggregate_adx(mock_adx_rows)
        second = aggregate_adx(mock_adx_rows)

        assert first.summary == second.summary
        assert first.breakdowns == second.breakdowns

    def test_format_summary(self, mock_adx_rows):
        text = format_adx_summary(aggregate_adx(mock_adx_rows))

        assert "ADX REVENUE REPORT" in text
        assert "google" in text


class TestAnuraAggregation:
    """Test traffic-quality window filtering and aggregation"""

    def test_window_is_previous_los_angeles_day(self):
        reference = datetime(2024, 7, 14, tzinfo=timezone.utc)

        start, end = traffic_window(reference, "America/Los_Angeles")

        assert start == datetime(2024, 7, 12, 7, tzinfo=timezone.utc)
        assert end == datetime(2024, 7, 13, 7, tzinfo=timezone.utc)

    def test_window_in_winter_time(self):
        start, end = traffic_window(datetime(2024, 1, 15, 12, tzinfo=timezone.utc), "America/Los_Angeles")

        assert start == datetime(2024, 1, 14, 8, tzinfo=timezone.utc)
        assert (end - start).total_seconds() == 24 * 3600

    @pytest.mark.parametrize("value,expected", [
        ("2024-07-12T08:00:00Z", datetime(2024, 7, 12, 8, tzinfo=timezone.utc)),
        ("2024-07-12 08:00:00", datetime(2024, 7, 12, 8, tzinfo=timezone.utc)),
        (1720771200, datetime(2024, 7, 12, 8, tzinfo=timezone.utc)),
        ("", None),
        ("not a date", None),
    ])
    def test_parse_timestamp(self, value, expected):
        assert parse_timestamp(value) == expected

    def test_filter_is_half_open(self, mock_anura_rows):
        start = datetime(2024, 7, 12, 7, tzinfo=timezone.utc)
        end = datetime(2024, 7, 13, 7, tzinfo=timezone.utc)

        kept, dropped = filter_to_window(mock_anura_rows["request"], start, end)

        assert len(kept) == 3
        assert dropped == 2
        assert all(row["TIMESTAMP"] != "2024-07-13T07:00:00Z" for row in kept)

    def test_counts_and_percentage_rates(self):
        requests = [{"SOURCE": "google"}] * 4
        responses = [
            {"SOURCE": "google", "RESULT": "good"},
            {"SOURCE": "google", "RESULT": "good"},
            {"SOURCE": "google", "RESULT": "Bad"},
        ]

        summary = aggregate_anura(requests, responses).summary

        assert summary.total_requests == 4
        assert summary.total_responses == 3
        assert summary.drop_rate == pytest.approx(25.0)
        assert summary.good == 2
        assert summary.good_rate == pytest.approx(200 / 3)
        assert summary.bad == 1
        assert summary.warn == 0
        assert summary.warn_rate == 0.0

    def test_source_breakdown_sums_to_summary(self):
        requests = [{"SOURCE": "google"}, {"SOURCE": ""}]
        responses = [
            {"SOURCE": "google", "RESULT": "good"},
            {"SOURCE": "yahoo", "RESULT": "warn"},
        ]

        result = aggregate_anura(requests, responses)
        groups = result.breakdown("source")

        assert set(groups) == {"google", "yahoo", NOT_SET}
        assert sum(g.total_requests for g in groups.values()) == result.summary.total_requests
        assert sum(g.total_responses for g in groups.values()) == result.summary.total_responses
        assert groups["yahoo"].warn_rate == 100.0
        assert groups["yahoo"].drop_rate == 0.0
        assert groups[NOT_SET].drop_rate == 100.0

    def test_no_rows(self):
        summary = aggregate_anura([], []).summary

        assert summary.drop_rate == 0.0
        assert summary.good_rate == 0.0


class TestGa4Aggregation:
    """Test web-analytics parsing and aggregation"""

    def test_parse_row(self, make_ga4_row):
        row = parse_ga4_row(make_ga4_row("google", "organic", 10, revenue=2.5))

        assert row.source == "google"
        assert row.medium == "organic"
        assert row.sessions == 10
        assert row.revenue == 2.5
        assert row.ad_revenue == 0.5

    def test_three_breakdowns(self, mock_ga4_rows):
        result = aggregate_ga4(mock_ga4_rows)

        assert set(result.breakdown("source")) == {"google", NOT_SET}
        assert set(result.breakdown("medium")) == {"organic", "cpc", "(none)"}
        assert ("google", "organic") in result.breakdown("source_medium")
        assert (NOT_SET, "(none)") in result.breakdown("source_medium")
        assert result.breakdown("source")["google"].sessions == 15

    def test_breakdowns_sum_to_summary(self, mock_ga4_rows):
        result = aggregate_ga4(mock_ga4_rows)

        assert result.summary.total_sessions == 18
        for dimension in ("source", "medium", "source_medium"):
            groups = result.breakdown(dimension).values()
            assert sum(g.sessions for g in groups) == result.summary.total_sessions
            assert sum(g.revenue for g in groups) == pytest.approx(result.summary.total_revenue)
            assert sum(g.users for g in groups) == result.summary.total_users

    def test_composite_key_is_unambiguous(self, make_ga4_row):
        result = aggregate_ga4([
            make_ga4_row("a / b", "c", 1),
            make_ga4_row("a", "b / c", 1),
        ])

        assert len(result.breakdown("source_medium")) == 2

    def test_format_summary(self, mock_ga4_rows):
        text = format_ga4_summary(aggregate_ga4(mock_ga4_rows))

        assert "Total Sessions: 18" in text
        assert "google / organic" in text


def test_top_orders_by_metric(mock_ga4_rows):
    result: AggregateResult = aggregate_ga4(mock_ga4_rows)

    top = result.top("medium", "sessions", limit=2)

    assert [g.key for g in top] == ["organic", "cpc"]
