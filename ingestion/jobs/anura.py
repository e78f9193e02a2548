"""
Traffic-quality job.

Two raw reports ("request" and "response") are requested for a two-day range
ending on the run date, then narrowed to the previous calendar day in
ANURA_TIMEZONE before aggregation.

Checkpoint key: the integer-encoded range start (e.g. "20240712").
External ids: ``request``, ``response``, ``request_metadata``,
``response_metadata``; readiness flags ``request`` and ``response``.
"""

import logging
from datetime import date, datetime, time, timezone

from ingestion.extractors.anura_client import report_name, request_window
from ingestion.jobs.base import JobContext, ReportJob
from ingestion.transformers.anura import aggregate_anura, filter_to_window, format_anura_summary, traffic_window
from models.anura import AnuraReportSummary, AnuraSourceMetrics
from models.base import ReportStatus, ReportType

logger = logging.getLogger(__name__)

REPORT_TYPES = ("request", "response")


class AnuraReportJob(ReportJob):
    report_type = ReportType.ANURA.value
    summary_model = AnuraReportSummary

    def resolve_window(self, ctx: JobContext, report_date: date) -> None:
        start, end = request_window(report_date)
        ctx.report_key = str(start)
        ctx.key_value = start
        ctx.extra["start"] = start
        ctx.extra["end"] = end
        ctx.extra["names"] = {
            kind: report_name(
                kind, self.settings.ANURA_REPORT_HOURS, start, end, self.settings.ANURA_REPORT_INDEX
            )
            for kind in REPORT_TYPES
        }

    def reference_instant(self, report_date: date) -> datetime:
        """Instant the filter window is anchored on"""
        if self.settings.REPORT_DATE:
            return datetime.combine(report_date, time.min, tzinfo=timezone.utc)
        return self.clock()

    async def acquire(self, ctx: JobContext) -> None:
        for kind in REPORT_TYPES:
            if ctx.checkpoint.job_id(kind):
                logger.info(f"Using checkpointed Anura {kind} report {ctx.checkpoint.job_id(kind)}")
                continue

            name = ctx.extra["names"][kind]
            found = None
            if not self.settings.FORCE_RERUN:
                found = await self.client.find_ready_report(kind, name)
            if found:
                self.save(ctx, external_job_ids={kind: found}, readiness={kind: True})
                continue

            report_id = await self.client.create_report(
                kind, ctx.extra["start"], ctx.extra["end"], name
            )
            self.save_job_id(ctx, kind, report_id)

    async def execute(self, ctx: JobContext) -> None:
        for kind in REPORT_TYPES:
            if not ctx.checkpoint.is_ready(kind):
                logger.info(f"Waiting for Anura {kind} report to be ready")
                await self.client.wait_until_ready(ctx.checkpoint.job_id(kind))
                self.save(ctx, readiness={kind: True})

        for kind in REPORT_TYPES:
            metadata_key = f"{kind}_metadata"
            if not ctx.checkpoint.job_id(metadata_key):
                metadata_id = await self.client.get_metadata_id(ctx.checkpoint.job_id(kind))
                self.save_job_id(ctx, metadata_key, metadata_id)

    async def fetch(self, ctx: JobContext):
        logger.info("Downloading Anura report data")
        return {
            kind: await self.client.download(ctx.checkpoint.job_id(f"{kind}_metadata"))
            for kind in REPORT_TYPES
        }

    async def archive_raw(self, ctx: JobContext) -> None:
        for kind in REPORT_TYPES:
            await self.archiver.archive(
                self.report_type,
                ctx.report_date,
                ctx.checkpoint.job_id(kind),
                ctx.rows[kind],
                label=f"{kind}-raw-data",
            )

    def aggregate(self, ctx: JobContext):
        start, end = traffic_window(
            self.reference_instant(ctx.report_date), self.settings.ANURA_TIMEZONE
        )
        ctx.extra["window"] = (start, end)

        requests, dropped_requests = filter_to_window(ctx.rows["request"], start, end)
        responses, dropped_responses = filter_to_window(ctx.rows["response"], start, end)
        logger.info(
            f"Anura window {start.isoformat()} - {end.isoformat()}: kept "
            f"{len(requests)} requests / {len(responses)} responses, dropped "
            f"{dropped_requests} / {dropped_responses} outside the window or without timestamp"
        )

        result = aggregate_anura(requests, responses)
        result.dropped_rows = dropped_requests + dropped_responses
        return result

    def format_summary(self, result):
        return format_anura_summary(result)

    def warehouse_rows(self, ctx: JobContext):
        common = {
            "start_date": ctx.extra["start"],
            "end_date": ctx.extra["end"],
            "report_hours": self.settings.ANURA_REPORT_HOURS,
            "request_report_id": ctx.checkpoint.job_id("request"),
            "response_report_id": ctx.checkpoint.job_id("response"),
        }
        display_date = ctx.extra["window"][0]

        by_source = [
            {**common, "source": b.key, **b.model_dump(exclude={"key"}), "display_date": display_date}
            for b in ctx.result.breakdown("source").values()
        ]
        summary_row = {
            **common,
            "request_report_name": ctx.extra["names"]["request"],
            "response_report_name": ctx.extra["names"]["response"],
            **ctx.result.summary.model_dump(),
            "status": ReportStatus.COMPLETED.value,
            "display_date": display_date,
        }
        return [(AnuraSourceMetrics, by_source), (AnuraReportSummary, [summary_row])]
