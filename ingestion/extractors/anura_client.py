"""
Anura raw-report API client.

Raw reports are created per type ("request" / "response"), listed in a status
table until "Ready", then downloaded through a signed URL. The download is a
ZIP archive holding one CSV, or plain JSON for small reports.
"""

import io
import json
import logging
import zipfile
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import unquote

import httpx
import pandas as pd

from core.config import Settings
from core.exceptions import APIExtractionError, DataFormatError, ReportFailedError
from ingestion.extractors.base import ReportAPIClient
from ingestion.polling import PollPolicy, poll_until

logger = logging.getLogger(__name__)

BASE_URL = "https://api.anura.io/v1"
ZIP_MAGIC = b"PK\x03\x04"

STATUS_READY = "Ready"
STATUS_FAILED = "Failed"

REPORT_COLUMNS = {
    "request": ["source", "campaign"],
    "response": [
        "source",
        "campaign",
        "result",
        "rule_sets",
        "invalid_traffic_type",
        "ad_blocker",
        "page",
    ],
}


def date_to_number(value: date) -> int:
    """2024-07-12 -> 20240712"""
    return int(value.strftime("%Y%m%d"))


def request_window(report_date: date) -> Tuple[int, int]:
    """Integer-encoded (start, end) dates the raw reports are requested for"""
    return date_to_number(report_date - timedelta(days=2)), date_to_number(report_date)


def report_name(report_type: str, hours: int, start: int, end: int, index: str = "") -> str:
    """Deterministic name used to find a report created by an earlier run"""
    return f"Anura {report_type.capitalize()} Report Last{hours}Hours {start}-{end} {index}"


class AnuraReportClient(ReportAPIClient):
    name = "anura"

    def __init__(self, http: httpx.AsyncClient, settings: Settings):
        super().__init__(http, timeout=settings.HTTP_TIMEOUT)
        self.settings = settings
        self.token = settings.ANURA_API_TOKEN
        self.instance_id = settings.ANURA_INSTANCE_ID
        self.poll_policy = PollPolicy.fixed(
            settings.ANURA_POLL_INTERVAL, settings.POLL_MAX_ATTEMPTS
        )

    async def _post(self, path: str, body: Dict[str, Any]) -> Any:
        return await self.request_json("POST", f"{BASE_URL}{path}", json={"token": self.token, **body})

    async def list_reports(self) -> List[Dict[str, Any]]:
        data = await self._post("/raw/table", {})
        return ((data or {}).get("table") or {}).get("rows") or []

    async def find_ready_report(self, report_type: str, name: str) -> Optional[str]:
        """Id of a Ready report with this exact type and name, if any"""
        for report in await self.list_reports():
            if (
                report.get("status") == STATUS_READY
                and report.get("name") == name
                and report.get("type") == report_type
            ):
                logger.info(f"Reusing existing ready {report_type} report {report['id']}")
                return str(report["id"])
        return None

    async def create_report(self, report_type: str, start: int, end: int, name: str) -> str:
        logger.info(f"Creating Anura {report_type} report '{name}'")
        data = await self._post("/raw/request", {
            "instance": self.instance_id,
            "type": report_type,
            "start": start,
            "end": end,
            "standard": REPORT_COLUMNS[report_type],
            "name": name,
            "send_email": False,
        })
        report_id = (data or {}).get("id")
        if not report_id:
            raise APIExtractionError(
                f"Anura {report_type} report was not created",
                context={"report": self.name, "message": (data or {}).get("message")}
            )
        logger.info(f"Anura {report_type} report created with ID: {report_id}")
        return str(report_id)

    async def report_status(self, report_id: str) -> Optional[str]:
        for report in await self.list_reports():
            if str(report.get("id")) == report_id:
                return report.get("status")
        logger.debug(f"Anura report {report_id} not listed yet")
        return None

    async def wait_until_ready(self, report_id: str) -> None:
        """
        Poll the status table until the report is Ready.

        Raises:
            ReportFailedError: the report was marked Failed
            ReportTimeoutError: still not ready after the attempt ceiling
        """
        status = await poll_until(
            lambda: self.report_status(report_id),
            lambda s: s in (STATUS_READY, STATUS_FAILED),
            self.poll_policy,
            description=f"Anura report {report_id}",
        )
        if status == STATUS_FAILED:
            raise ReportFailedError(
                f"Anura report {report_id} failed to generate",
                context={"report_id": report_id, "detail": status}
            )

    async def get_metadata_id(self, report_id: str) -> str:
        data = await self._post("/raw/report", {"raw": report_id})
        metadata_id = (data or {}).get("id")
        if not metadata_id:
            raise APIExtractionError(
                f"No metadata returned for Anura report {report_id}",
                context={"report": self.name, "report_id": report_id}
            )
        return str(metadata_id)

    async def download(self, metadata_id: str) -> List[Dict[str, Any]]:
        data = await self._post(f"/raw/download/{metadata_id}", {"raw": metadata_id})
        url = (data or {}).get("url")
        if not url:
            raise APIExtractionError(
                f"No download URL for Anura report {metadata_id}",
                context={"report": self.name, "report_id": metadata_id}
            )
        response = await self.request_raw("GET", unquote(url))
        rows = parse_download(response.content, metadata_id)
        logger.info(f"Downloaded and parsed {len(rows)} rows for Anura report {metadata_id}")
        return rows


def parse_download(payload: bytes, report_id: str = "") -> List[Dict[str, Any]]:
    """Rows from a raw-report download: ZIP with a CSV inside, or a JSON array"""
    if payload[:4] == ZIP_MAGIC:
        try:
            archive = zipfile.ZipFile(io.BytesIO(payload))
        except zipfile.BadZipFile as e:
            raise DataFormatError(
                "Corrupt ZIP download",
                context={"report_id": report_id},
                original_exception=e
            )
        with archive:
            csv_names = [n for n in archive.namelist() if n.lower().endswith(".csv")]
            if not csv_names:
                raise DataFormatError(
                    "No CSV file found in ZIP",
                    context={"report_id": report_id, "detail": archive.namelist()}
                )
            with archive.open(csv_names[0]) as f:
                frame = pd.read_csv(f, dtype=str, keep_default_na=False)
        return frame.to_dict(orient="records")

    try:
        rows = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise DataFormatError(
            "Download is neither a ZIP archive nor JSON",
            context={"report_id": report_id},
            original_exception=e
        )
    if not isinstance(rows, list):
        raise DataFormatError(
            "JSON download is not a list of rows",
            context={"report_id": report_id, "detail": type(rows).__name__}
        )
    return rows
