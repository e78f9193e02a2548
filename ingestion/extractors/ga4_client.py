"""
GA4 Data API client (``properties/{id}:runReport``).

runReport answers synchronously, so there is nothing to create or poll:
rows are paged by offset until a page comes back short.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

import httpx

from core.config import Settings
from ingestion.extractors.auth import ANALYTICS_SCOPES, google_auth_headers
from ingestion.extractors.base import HeaderProvider, ReportAPIClient
from ingestion.polling import fetch_all_pages
from ingestion.transformers.ga4 import GA4_DIMENSIONS, GA4_METRICS

logger = logging.getLogger(__name__)

BASE_URL = "https://analyticsdata.googleapis.com/v1beta"


class Ga4ReportClient(ReportAPIClient):
    name = "ga4"

    def __init__(
        self,
        http: httpx.AsyncClient,
        settings: Settings,
        auth_headers: Optional[HeaderProvider] = None
    ):
        super().__init__(
            http,
            auth_headers or google_auth_headers(ANALYTICS_SCOPES),
            timeout=settings.HTTP_TIMEOUT
        )
        self.settings = settings
        self.property_id = settings.GA4_PROPERTY_ID
        self.page_size = settings.GA4_PAGE_SIZE

    @property
    def run_report_url(self) -> str:
        return f"{BASE_URL}/properties/{self.property_id}:runReport"

    def build_request(self, start: date, end: date, offset: int = 0) -> Dict[str, Any]:
        return {
            "dateRanges": [{"startDate": start.isoformat(), "endDate": end.isoformat()}],
            "dimensions": [{"name": name} for name in GA4_DIMENSIONS],
            "metrics": [{"name": name} for name in GA4_METRICS],
            "limit": self.page_size,
            "offset": offset,
        }

    async def fetch_page(
        self, start: date, end: date, offset: Optional[int] = None
    ) -> Tuple[List[Dict[str, Any]], Optional[int]]:
        offset = offset or 0
        data = await self.request_json(
            "POST", self.run_report_url, json=self.build_request(start, end, offset)
        )
        rows = data.get("rows") or []
        logger.debug(f"GA4 page at offset {offset}: {len(rows)} rows (rowCount={data.get('rowCount')})")
        if len(rows) < self.page_size:
            return rows, None
        return rows, offset + self.page_size

    async def fetch_rows(self, start: date, end: date) -> List[Dict[str, Any]]:
        logger.info(f"Running GA4 report for {start.isoformat()} to {end.isoformat()}")
        return await fetch_all_pages(
            lambda offset: self.fetch_page(start, end, offset),
            max_pages=self.settings.MAX_PAGES,
            page_delay=self.settings.PAGE_DELAY,
            description="GA4 rows",
        )
