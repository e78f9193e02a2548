"""
Web-analytics job.

runReport is synchronous, so there are no external ids to checkpoint; the
checkpoint only records the fetched row count. Key: the analysed day
(the day before the run date).
"""

import logging
from datetime import date, datetime, time, timedelta, timezone

from ingestion.jobs.base import JobContext, ReportJob
from ingestion.transformers.ga4 import aggregate_ga4, format_ga4_summary
from models.base import ReportStatus, ReportType
from models.ga4 import Ga4MediumMetrics, Ga4ReportSummary, Ga4SourceAndMediumMetrics, Ga4SourceMetrics

logger = logging.getLogger(__name__)


class Ga4ReportJob(ReportJob):
    report_type = ReportType.GA4.value
    summary_model = Ga4ReportSummary

    def resolve_window(self, ctx: JobContext, report_date: date) -> None:
        day = report_date - timedelta(days=1)
        ctx.extra["day"] = day
        ctx.report_key = day.isoformat()
        ctx.key_value = day

    async def fetch(self, ctx: JobContext):
        day = ctx.extra["day"]
        rows = await self.client.fetch_rows(day, day)
        self.save(ctx, row_count=len(rows))
        logger.info(f"Fetched {len(rows)} GA4 rows total")
        return rows

    async def archive_raw(self, ctx: JobContext) -> None:
        await self.archiver.archive(
            self.report_type, ctx.extra["day"], f"properties/{self.settings.GA4_PROPERTY_ID}", ctx.rows
        )

    def aggregate(self, ctx: JobContext):
        return aggregate_ga4(ctx.rows)

    def format_summary(self, result):
        return format_ga4_summary(result)

    def warehouse_rows(self, ctx: JobContext):
        day = ctx.extra["day"]
        display_date = datetime.combine(day, time.min, tzinfo=timezone.utc)

        def metrics(b):
            return {**b.model_dump(exclude={"key"}), "report_date": day, "display_date": display_date}

        by_source = [
            {**metrics(b), "source": b.key}
            for b in ctx.result.breakdown("source").values()
        ]
        by_medium = [
            {**metrics(b), "medium": b.key}
            for b in ctx.result.breakdown("medium").values()
        ]
        by_source_medium = [
            {**metrics(b), "source": b.key[0], "medium": b.key[1]}
            for b in ctx.result.breakdown("source_medium").values()
        ]
        summary_row = {
            "report_date": day,
            **ctx.result.summary.model_dump(exclude={"row_count"}),
            "status": ReportStatus.COMPLETED.value,
            "display_date": display_date,
        }
        return [
            (Ga4SourceMetrics, by_source),
            (Ga4MediumMetrics, by_medium),
            (Ga4SourceAndMediumMetrics, by_source_medium),
            (Ga4ReportSummary, [summary_row]),
        ]
