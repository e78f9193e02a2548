"""
Ad Manager REST v1 client for ad exchange revenue reports.

Flow: create report definition -> ``:run`` (long-running operation) -> poll
the operation until done -> ``:fetchRows`` pages of the result.
"""

import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Tuple

import httpx

from core.config import Settings
from core.exceptions import APIExtractionError, ReportFailedError
from ingestion.extractors.auth import AD_MANAGER_SCOPES, google_auth_headers
from ingestion.extractors.base import HeaderProvider, ReportAPIClient
from ingestion.polling import PollPolicy, fetch_all_pages, poll_until
from ingestion.transformers.adx import ADX_DIMENSIONS, ADX_METRICS

logger = logging.getLogger(__name__)

BASE_URL = "https://admanager.googleapis.com/v1"


def report_display_name(report_date: date) -> str:
    """Deterministic name used to find a report created by an earlier run"""
    return f"{report_date.isoformat()} Adx Report"


def _last_segment(resource_name: str, marker: str = "/") -> str:
    return resource_name.rsplit(marker, 1)[-1]


class AdxReportClient(ReportAPIClient):
    name = "adx"

    def __init__(
        self,
        http: httpx.AsyncClient,
        settings: Settings,
        auth_headers: Optional[HeaderProvider] = None
    ):
        super().__init__(
            http,
            auth_headers or google_auth_headers(AD_MANAGER_SCOPES),
            timeout=settings.HTTP_TIMEOUT
        )
        self.settings = settings
        self.network_code = settings.ADX_NETWORK_CODE
        self.poll_policy = PollPolicy.from_settings(settings)

    @property
    def reports_url(self) -> str:
        return f"{BASE_URL}/networks/{self.network_code}/reports"

    def build_definition(self, report_date: date, fixed_range: bool = True) -> Dict[str, Any]:
        """
        Report body covering the day before ``report_date``.

        Without ``fixed_range`` the relative YESTERDAY range is used, which is
        what a scheduled run without a date override asks for.
        """
        if fixed_range:
            day = report_date - timedelta(days=1)
            bound = {"year": day.year, "month": day.month, "day": day.day}
            date_range = {"fixed": {"startDate": bound, "endDate": dict(bound)}}
        else:
            date_range = {"relative": "YESTERDAY"}

        return {
            "visibility": "HIDDEN",
            "displayName": report_display_name(report_date),
            "reportDefinition": {
                "customDimensionKeyIds": self.settings.adx_custom_dimension_key_ids,
                "dimensions": ADX_DIMENSIONS,
                "metrics": ADX_METRICS,
                "dateRange": date_range,
                "filters": [],
                "reportType": "HISTORICAL",
                "timePeriodColumn": "TIME_PERIOD_COLUMN_DATE",
            },
        }

    async def find_report(self, report_date: date, fixed_range: bool = True) -> Optional[str]:
        """
        Return the id of an existing report with this date's display name and
        the same date range a new report would be created with.
        """
        display_name = report_display_name(report_date)
        date_range = self.build_definition(report_date, fixed_range)["reportDefinition"]["dateRange"]
        data = await self.request_json(
            "GET",
            self.reports_url,
            params={"filter": f'displayName = "{display_name}"', "pageSize": 10}
        )
        for report in data.get("reports") or []:
            if report.get("displayName") != display_name or not report.get("name"):
                continue
            if (report.get("reportDefinition") or {}).get("dateRange") != date_range:
                logger.info(f"Skipping ADX report {report['name']}: date range differs from {date_range}")
                continue
            report_id = _last_segment(report["name"])
            logger.info(f"Reusing existing ADX report {report_id} ({display_name})")
            return report_id
        return None

    async def create_report(self, report_date: date, fixed_range: bool = True) -> str:
        logger.info(f"Creating ADX report for {report_date.isoformat()}")
        data = await self.request_json(
            "POST", self.reports_url, json=self.build_definition(report_date, fixed_range)
        )
        name = data.get("name")
        if not name:
            raise APIExtractionError(
                "Report creation returned no resource name",
                context={"report": self.name, "response_body": str(data)[:500]}
            )
        report_id = _last_segment(name)
        logger.info(f"ADX report created with ID: {report_id}")
        return report_id

    async def run_report(self, report_id: str) -> str:
        """Start execution; returns the long-running operation name"""
        data = await self.request_json("POST", f"{self.reports_url}/{report_id}:run")
        operation = data.get("name")
        if not operation:
            raise APIExtractionError(
                "Report run returned no operation name",
                context={"report": self.name, "report_id": report_id}
            )
        logger.info(f"ADX report {report_id} execution started ({operation})")
        return operation

    async def get_operation(self, operation_name: str) -> Dict[str, Any]:
        return await self.request_json("GET", f"{BASE_URL}/{operation_name}")

    async def wait_for_result(self, report_id: str, operation_name: str) -> str:
        """Poll the run operation; returns the result id once it is done"""
        operation = await poll_until(
            lambda: self.get_operation(operation_name),
            lambda op: bool(op.get("done")),
            self.poll_policy,
            description=f"ADX report {report_id}",
        )
        if operation.get("error"):
            raise ReportFailedError(
                f"ADX report {report_id} failed",
                context={"report_id": report_id, "detail": operation["error"]}
            )
        result_name = (operation.get("response") or {}).get("reportResult")
        if not result_name or "results/" not in result_name:
            raise ReportFailedError(
                f"ADX report {report_id} finished without a result",
                context={"report_id": report_id, "detail": operation.get("response")}
            )
        return _last_segment(result_name, "results/")

    async def fetch_page(
        self, report_id: str, result_id: str, page_token: Optional[str] = None
    ) -> Tuple[List[Dict[str, Any]], Optional[str]]:
        params = {"pageSize": self.settings.PAGE_SIZE}
        if page_token:
            params["pageToken"] = page_token
        data = await self.request_json(
            "GET",
            f"{self.reports_url}/{report_id}/results/{result_id}:fetchRows",
            params=params
        )
        return data.get("rows") or [], data.get("nextPageToken") or None

    async def fetch_rows(self, report_id: str, result_id: str) -> List[Dict[str, Any]]:
        return await fetch_all_pages(
            lambda token: self.fetch_page(report_id, result_id, token),
            max_pages=self.settings.MAX_PAGES,
            page_delay=self.settings.PAGE_DELAY,
            description=f"ADX rows for report {report_id}",
        )
