"""
Integration tests for the report runner and scheduler
"""

import pytest
from datetime import date
from unittest.mock import AsyncMock, MagicMock, patch

from core.config import Settings
from core.exceptions import NetworkError
from ingestion.jobs.adx import AdxReportJob
from ingestion.jobs.anura import AnuraReportJob
from ingestion.jobs.base import JobOutcome, JobResult
from ingestion.jobs.ga4 import Ga4ReportJob
from ingestion.runner import ReportRunner, RunSummary, main, run_reports
from ingestion.scheduler import ReportScheduler
from models import AdxReportSummary


def job_returning(name, error=None):
    job = MagicMock()
    if error:
        job.run = AsyncMock(side_effect=error)
    else:
        job.run = AsyncMock(return_value=JobResult(name, "key", JobOutcome.COMPLETED))
    return job


class TestReportRunner:
    """Test per-report isolation and the pass summary"""

    @pytest.mark.asyncio
    async def test_failure_does_not_stop_other_reports(self, settings, warehouse):
        jobs = {
            "adx": job_returning("adx"),
            "anura": job_returning("anura", NetworkError("anura down")),
            "ga4": job_returning("ga4"),
        }
        http = AsyncMock()

        with patch("ingestion.runner.SlackNotifier") as notifier_class:
            notifier_class.return_value.notify = AsyncMock(return_value=False)
            runner = ReportRunner(settings, warehouse, job_factory=lambda name, _: jobs[name], http=http)
            summary = await runner.run()

        assert summary.success == ["adx", "ga4"]
        assert summary.failures == ["anura"]
        assert "anura down" in summary.errors["anura"]
        assert summary.exit_code == 1
        for job in jobs.values():
            job.run.assert_awaited_once()
        notifier_class.return_value.notify.assert_awaited_once_with(["adx", "ga4"], ["anura"])

    @pytest.mark.asyncio
    async def test_unexpected_errors_are_isolated(self, settings, warehouse):
        settings.ENABLED_REPORTS = "ga4,adx"
        jobs = {"ga4": job_returning("ga4", ValueError("boom")), "adx": job_returning("adx")}

        with patch("ingestion.runner.SlackNotifier") as notifier_class:
            notifier_class.return_value.notify = AsyncMock(return_value=False)
            summary = await ReportRunner(
                settings, warehouse, job_factory=lambda name, _: jobs[name], http=AsyncMock()
            ).run()

        assert summary.success == ["adx"]
        assert summary.failures == ["ga4"]

    @pytest.mark.asyncio
    async def test_all_succeeded_exit_code(self, settings, warehouse):
        settings.ENABLED_REPORTS = "adx"

        with patch("ingestion.runner.SlackNotifier") as notifier_class:
            notifier_class.return_value.notify = AsyncMock(return_value=True)
            summary = await ReportRunner(
                settings, warehouse, job_factory=lambda name, _: job_returning(name), http=AsyncMock()
            ).run()

        assert summary.exit_code == 0
        assert summary.results["adx"].status == JobOutcome.COMPLETED

    def test_empty_summary_exit_code(self):
        assert RunSummary().exit_code == 0

    @pytest.mark.asyncio
    async def test_build_job_wires_each_report_type(self, settings, warehouse):
        runner = ReportRunner(settings, warehouse)
        http = AsyncMock()

        assert isinstance(runner.build_job("adx", http), AdxReportJob)
        assert isinstance(runner.build_job("anura", http), AnuraReportJob)
        job = runner.build_job("ga4", http)
        assert isinstance(job, Ga4ReportJob)
        assert job.store.path.name == "ga4-checkpoint.json"
        assert job.archiver.uploader is None

    @pytest.mark.asyncio
    async def test_run_reports_end_to_end_with_skip(self, settings, warehouse):
        settings.ENABLED_REPORTS = "adx"
        await warehouse.insert_rows(AdxReportSummary, [{
            "report_date": date(2024, 7, 14),
            "report_id": "77",
            "status": "COMPLETED",
        }])

        with patch("ingestion.runner.SlackNotifier") as notifier_class:
            notifier_class.return_value.notify = AsyncMock(return_value=False)
            summary = await run_reports(settings)

        assert summary.success == ["adx"]
        assert summary.results["adx"].status == JobOutcome.SKIPPED


class TestMain:
    """Test the console entry point"""

    def test_configuration_error_exits_non_zero(self):
        with patch("ingestion.runner.load_settings", return_value=Settings(_env_file=None)):
            assert main() == 1

    def test_exit_code_follows_summary(self, settings):
        with patch("ingestion.runner.load_settings", return_value=settings), \
                patch("ingestion.runner.run_reports", new=AsyncMock(return_value=RunSummary(failures=["adx"]))):
            assert main() == 1

        with patch("ingestion.runner.load_settings", return_value=settings), \
                patch("ingestion.runner.run_reports", new=AsyncMock(return_value=RunSummary(success=["adx"]))):
            assert main() == 0

    def test_unexpected_error_exits_non_zero(self, settings):
        with patch("ingestion.runner.load_settings", return_value=settings), \
                patch("ingestion.runner.run_reports", new=AsyncMock(side_effect=RuntimeError("db gone"))):
            assert main() == 1


class TestReportScheduler:
    """Test scheduled report passes"""

    def test_scheduler_initialization(self, settings):
        scheduler = ReportScheduler(settings)

        assert scheduler.scheduler is not None
        assert scheduler.settings is settings

    @pytest.mark.asyncio
    async def test_run_report_job(self, settings):
        with patch("ingestion.scheduler.run_reports", new=AsyncMock(return_value=RunSummary())) as run:
            await ReportScheduler(settings).run_report_job()

        run.assert_awaited_once_with(settings)

    @pytest.mark.asyncio
    async def test_run_report_job_swallows_errors(self, settings):
        with patch("ingestion.scheduler.run_reports", new=AsyncMock(side_effect=RuntimeError("boom"))):
            await ReportScheduler(settings).run_report_job()
