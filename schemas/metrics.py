"""
Pydantic schemas for parsed report rows, summaries and breakdowns.

Summary models hold run totals; breakdown models hold the same metrics scoped
to one grouping key. Rates are always derived from accumulated totals.
"""

from typing import Tuple, Union

from pydantic import BaseModel, Field

NOT_SET = "(not set)"


# ============================================================================
# Ad exchange
# ============================================================================

class AdxRow(BaseModel):
    """One Ad Manager result row mapped from its positional dimension/metric arrays"""
    date: str = ""
    country_name: str = NOT_SET
    ad_unit_name: str = NOT_SET
    browser_name: str = NOT_SET
    source: str = NOT_SET
    campaign: str = NOT_SET
    ad_unit_id: str = NOT_SET
    ad_x_revenue: float = 0.0
    ad_server_revenue: float = 0.0
    clicks: int = 0
    impressions: int = 0
    average_ecpm: float = 0.0
    ctr: float = 0.0
    viewable_impressions: int = 0
    ad_requests: int = 0

    @property
    def revenue(self) -> float:
        return self.ad_x_revenue + self.ad_server_revenue


class AdxSummary(BaseModel):
    total_revenue: float = 0.0
    total_ad_x_revenue: float = 0.0
    total_ad_server_revenue: float = 0.0
    total_clicks: int = 0
    total_impressions: int = 0
    total_viewable_impressions: int = 0
    total_ad_requests: int = 0
    average_ecpm: float = 0.0
    average_ctr: float = 0.0
    row_count: int = 0


class AdxBreakdown(BaseModel):
    key: str
    revenue: float = 0.0
    ad_x_revenue: float = 0.0
    ad_server_revenue: float = 0.0
    clicks: int = 0
    impressions: int = 0
    viewable_impressions: int = 0
    ad_requests: int = 0
    average_ecpm: float = 0.0
    average_ctr: float = 0.0


# ============================================================================
# Traffic quality
# ============================================================================

class AnuraMetrics(BaseModel):
    """Request/response counts and derived rates (percentages)"""
    total_requests: int = 0
    total_responses: int = 0
    drop_rate: float = 0.0
    good: int = 0
    good_rate: float = 0.0
    bad: int = 0
    bad_rate: float = 0.0
    warn: int = 0
    warn_rate: float = 0.0


class AnuraSummary(AnuraMetrics):
    pass


class AnuraBreakdown(AnuraMetrics):
    key: str


# ============================================================================
# Web analytics
# ============================================================================

class Ga4Row(BaseModel):
    date: str = ""
    source: str = NOT_SET
    medium: str = NOT_SET
    campaign_name: str = NOT_SET
    campaign_id: str = NOT_SET
    sessions: int = 0
    revenue: float = 0.0
    events: int = 0
    page_views: int = 0
    engaged_sessions: int = 0
    users: int = 0
    ad_revenue: float = 0.0


class Ga4Summary(BaseModel):
    total_sessions: int = 0
    total_revenue: float = 0.0
    total_ad_revenue: float = 0.0
    total_events: int = 0
    total_page_views: int = 0
    total_engaged_sessions: int = 0
    total_users: int = 0
    row_count: int = 0


class Ga4Breakdown(BaseModel):
    key: Union[str, Tuple[str, str]] = Field(..., description="Group key; (source, medium) for the composite breakdown")
    sessions: int = 0
    revenue: float = 0.0
    ad_revenue: float = 0.0
    events: int = 0
    page_views: int = 0
    engaged_sessions: int = 0
    users: int = 0
