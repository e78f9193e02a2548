"""
Raw report archive: a local JSON dump per run, optionally uploaded to a GCS
bucket under ``YYYY/MM/<filename>``.

Archiving is best-effort. Failures are logged and never fail a report.
"""

import json
import logging
import tempfile
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Optional, Sequence

import httpx

from core.config import Settings
from ingestion.extractors.auth import STORAGE_SCOPES, GoogleTokenProvider

logger = logging.getLogger(__name__)

UPLOAD_URL = "https://storage.googleapis.com/upload/storage/v1/b/{bucket}/o"


def destination_path(report_date: date, filename: str) -> str:
    return f"{report_date.year}/{report_date.month:02d}/{filename}"


class GcsUploader:
    """Media upload to Cloud Storage's JSON API with an ADC bearer token"""

    def __init__(
        self,
        http: httpx.AsyncClient,
        bucket: str,
        token_provider: Optional[GoogleTokenProvider] = None,
        timeout: float = 60.0
    ):
        self.http = http
        self.bucket = bucket
        self.token_provider = token_provider or GoogleTokenProvider(STORAGE_SCOPES)
        self.timeout = timeout

    async def upload(self, local_file: Path, destination: str) -> bool:
        """Upload a file; returns False (after logging) instead of raising"""
        try:
            headers = await self.token_provider.headers()
            headers["Content-Type"] = "application/json"
            response = await self.http.post(
                UPLOAD_URL.format(bucket=self.bucket),
                params={"uploadType": "media", "name": destination},
                content=local_file.read_bytes(),
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
        except Exception as e:
            logger.error(f"Error uploading {local_file} to gs://{self.bucket}/{destination}: {e}")
            return False

        logger.info(f"File uploaded to GCS: gs://{self.bucket}/{destination}")
        return True


class RawDataArchiver:
    """Writes raw rows to disk and hands the file to the uploader, if any"""

    def __init__(self, settings: Settings, uploader: Optional[GcsUploader] = None):
        self.directory = Path(settings.RAW_DATA_DIR or tempfile.gettempdir())
        self.cleanup = settings.CLEANUP_LOCAL_FILES
        self.uploader = uploader

    def write(
        self,
        report_type: str,
        report_date: date,
        report_id: str,
        rows: Sequence[Any],
        label: str = "raw-data"
    ) -> Path:
        stamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%fZ")
        filename = f"{report_type}-{label}-{report_date.isoformat()}-{stamp}.json"
        path = self.directory / filename
        self.directory.mkdir(parents=True, exist_ok=True)
        payload = {
            "metadata": {"reportDate": report_date.isoformat(), "reportId": report_id},
            "data": {"rows": list(rows)},
        }
        with open(path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, default=str)
        logger.info(f"Raw data dumped to: {path}")
        return path

    async def archive(
        self,
        report_type: str,
        report_date: date,
        report_id: str,
        rows: Sequence[Any],
        label: str = "raw-data"
    ) -> Optional[Path]:
        try:
            path = self.write(report_type, report_date, report_id, rows, label)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Error dumping raw {report_type} data: {e}")
            return None

        if self.uploader is None:
            return path

        uploaded = await self.uploader.upload(path, destination_path(report_date, path.name))
        if uploaded and self.cleanup:
            path.unlink(missing_ok=True)
            logger.info(f"Local file cleaned up: {path}")
            return None
        return path
