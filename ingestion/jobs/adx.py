"""
Ad exchange revenue job.

Checkpoint key: the run date (YYYY-MM-DD). The report covers the day before.
External ids: ``report`` (report definition) and ``result`` (run result).
"""

import logging
from datetime import date, datetime, time, timedelta, timezone

from ingestion.jobs.base import JobContext, ReportJob
from ingestion.transformers.adx import aggregate_adx, format_adx_summary
from models.adx import AdxReportSummary, AdxRevenueBySource
from models.base import ReportStatus, ReportType

logger = logging.getLogger(__name__)


def display_datetime(report_date: date) -> datetime:
    """Start (UTC) of the day the report's numbers belong to"""
    return datetime.combine(report_date - timedelta(days=1), time.min, tzinfo=timezone.utc)


class AdxReportJob(ReportJob):
    report_type = ReportType.ADX.value
    summary_model = AdxReportSummary

    def resolve_window(self, ctx: JobContext, report_date: date) -> None:
        ctx.report_key = report_date.isoformat()
        ctx.key_value = report_date

    async def acquire(self, ctx: JobContext) -> None:
        if ctx.checkpoint.job_id("report"):
            logger.info(f"Using checkpointed ADX report {ctx.checkpoint.job_id('report')}")
            return

        # relative YESTERDAY range unless the date was pinned
        fixed_range = self.settings.REPORT_DATE is not None
        report_id = None
        if not self.settings.FORCE_RERUN:
            report_id = await self.client.find_report(ctx.report_date, fixed_range=fixed_range)
        if not report_id:
            report_id = await self.client.create_report(ctx.report_date, fixed_range=fixed_range)
        self.save_job_id(ctx, "report", report_id)

    async def execute(self, ctx: JobContext) -> None:
        if ctx.checkpoint.job_id("result"):
            logger.info(f"Using checkpointed ADX result {ctx.checkpoint.job_id('result')}")
            return

        report_id = ctx.checkpoint.job_id("report")
        operation = await self.client.run_report(report_id)
        result_id = await self.client.wait_for_result(report_id, operation)
        self.save_job_id(ctx, "result", result_id)

    async def fetch(self, ctx: JobContext):
        rows = await self.client.fetch_rows(
            ctx.checkpoint.job_id("report"), ctx.checkpoint.job_id("result")
        )
        logger.info(f"Fetched {len(rows)} ADX rows total")
        return rows

    def aggregate(self, ctx: JobContext):
        return aggregate_adx(ctx.rows)

    async def archive_raw(self, ctx: JobContext) -> None:
        await self.archiver.archive(
            self.report_type, ctx.report_date, ctx.checkpoint.job_id("report"), ctx.rows
        )

    def format_summary(self, result):
        return format_adx_summary(result)

    def warehouse_rows(self, ctx: JobContext):
        report_id = ctx.checkpoint.job_id("report")
        summary = ctx.result.summary
        display_date = display_datetime(ctx.report_date)

        by_source = [
            {
                "report_date": ctx.report_date,
                "report_id": report_id,
                "source": b.key,
                "revenue": b.revenue,
                "ad_server_revenue": b.ad_server_revenue,
                "ad_x_revenue": b.ad_x_revenue,
                "clicks": b.clicks,
                "impressions": b.impressions,
                "ad_requests": b.ad_requests,
                "average_ecpm": b.average_ecpm,
                "average_ctr": b.average_ctr,
                "display_date": display_date,
            }
            for b in ctx.result.breakdown("source").values()
        ]
        summary_row = {
            "report_date": ctx.report_date,
            "report_id": report_id,
            **summary.model_dump(exclude={"row_count"}),
            "status": ReportStatus.COMPLETED.value,
            "display_date": display_date,
        }
        return [(AdxRevenueBySource, by_source), (AdxReportSummary, [summary_row])]
