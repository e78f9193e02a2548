# ============================================================================
# File: ingestion/runner.py
# Description: Runs the enabled report jobs one after another
# ============================================================================
"""
Report Runner - executes every enabled report job in its own error boundary.

A failing report never stops the others. After the pass a Slack summary of
succeeded and failed report types is sent (best-effort) and the process exit
code reflects whether everything succeeded.
"""

import asyncio
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional

import httpx

from core.config import Settings, load_settings
from core.database import create_engine
from core.exceptions import ConfigurationError, ETLException
from core.logging import setup_logging
from ingestion.checkpoint import JsonCheckpointStore
from ingestion.extractors.adx_client import AdxReportClient
from ingestion.extractors.anura_client import AnuraReportClient
from ingestion.extractors.ga4_client import Ga4ReportClient
from ingestion.jobs.adx import AdxReportJob
from ingestion.jobs.anura import AnuraReportJob
from ingestion.jobs.base import JobResult, ReportJob
from ingestion.jobs.ga4 import Ga4ReportJob
from ingestion.loaders.warehouse import WarehouseSink
from ingestion.notifications import SlackNotifier
from ingestion.storage import GcsUploader, RawDataArchiver

logger = logging.getLogger(__name__)

# Run order
JOBS = {
    "adx": (AdxReportJob, AdxReportClient),
    "anura": (AnuraReportJob, AnuraReportClient),
    "ga4": (Ga4ReportJob, Ga4ReportClient),
}

JobFactory = Callable[[str, httpx.AsyncClient], ReportJob]


@dataclass
class RunSummary:
    success: List[str] = field(default_factory=list)
    failures: List[str] = field(default_factory=list)
    results: Dict[str, JobResult] = field(default_factory=dict)
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def exit_code(self) -> int:
        return 1 if self.failures else 0


class ReportRunner:
    """
    Orchestrates one pass over the enabled report types.

    Responsibilities:
    - Build each job with its client, checkpoint store and collaborators
    - Isolate failures per report type
    - Notify with the succeeded / failed lists
    """

    def __init__(
        self,
        settings: Settings,
        warehouse: WarehouseSink,
        job_factory: Optional[JobFactory] = None,
        http: Optional[httpx.AsyncClient] = None
    ):
        self.settings = settings
        self.warehouse = warehouse
        self.job_factory = job_factory or self.build_job
        self.http = http

    def build_job(self, name: str, http: httpx.AsyncClient) -> ReportJob:
        job_class, client_class = JOBS[name]
        uploader = (
            GcsUploader(http, self.settings.GCP_BUCKET) if self.settings.GCP_BUCKET else None
        )
        return job_class(
            settings=self.settings,
            client=client_class(http, self.settings),
            store=JsonCheckpointStore(Path(self.settings.CHECKPOINT_DIR), name),
            warehouse=self.warehouse,
            archiver=RawDataArchiver(self.settings, uploader),
        )

    async def run_one(self, name: str, http: httpx.AsyncClient) -> JobResult:
        logger.info(f"Starting {name} report")
        job = self.job_factory(name, http)
        result = await job.run()
        logger.info(f"{name} report {result.status.value} for {result.report_key}")
        return result

    async def run(self) -> RunSummary:
        summary = RunSummary()

        if self.http is not None:
            await self._run_all(self.http, summary)
        else:
            async with httpx.AsyncClient(timeout=self.settings.HTTP_TIMEOUT) as http:
                await self._run_all(http, summary)

        logger.info(
            f"Report pass finished. Success: {summary.success or '-'} "
            f"Fails: {summary.failures or '-'}"
        )
        return summary

    async def _run_all(self, http: httpx.AsyncClient, summary: RunSummary) -> None:
        for name in self.settings.enabled_reports:
            try:
                summary.results[name] = await self.run_one(name, http)
                summary.success.append(name)
            except ETLException as e:
                logger.error(
                    f"Error generating {name} report: {e.message}",
                    extra={"error_context": e.to_dict()}
                )
                summary.failures.append(name)
                summary.errors[name] = str(e)
            except Exception as e:
                logger.exception(f"Unexpected error generating {name} report")
                summary.failures.append(name)
                summary.errors[name] = str(e)

        notifier = SlackNotifier(http, self.settings.SLACK_WEBHOOK_URL)
        await notifier.notify(summary.success, summary.failures)


async def run_reports(settings: Settings) -> RunSummary:
    """Set up the warehouse and run one pass with the given settings"""
    engine = create_engine(settings)
    warehouse = WarehouseSink(engine)
    try:
        await warehouse.create_tables()
        return await ReportRunner(settings, warehouse).run()
    finally:
        await warehouse.dispose()


def main() -> int:
    """Console entry point; returns the process exit code"""
    try:
        settings = load_settings()
    except Exception as e:
        setup_logging()
        logger.error(f"Invalid configuration: {e}")
        return 1

    setup_logging(settings.LOG_LEVEL)

    try:
        settings.validate_for_run()
    except ConfigurationError as e:
        logger.error(e.message, extra={"error_context": e.to_dict()})
        return 1

    try:
        summary = asyncio.run(run_reports(settings))
    except Exception:
        logger.exception("Report run failed")
        return 1

    return summary.exit_code


if __name__ == "__main__":
    sys.exit(main())
