"""
Report pipelines: extract from the reporting APIs, aggregate, load into the
warehouse.

Modules:
    checkpoint: JSON-file checkpoint store keyed by report key
    polling: Shared poll-until-done and pagination loops
    storage: Raw-data archive (local dump, optional GCS upload)
    notifications: Slack summary of a runner pass
    runner: Runs every enabled report job in its own error boundary
    scheduler: APScheduler integration for recurring passes

Subpackages:
    extractors: HTTP clients for Ad Manager, Anura and GA4 (+ ADC auth)
    transformers: Row parsing and aggregation into summaries/breakdowns
    loaders: Append-only warehouse sink
    jobs: Checkpointed state machine per report type

Architecture:
    Each job walks RESOLVE_WINDOW -> SHORT_CIRCUIT -> ACQUIRE -> EXECUTE ->
    FETCH -> AGGREGATE -> PERSIST. External ids are checkpointed as soon as
    they exist so a failed run resumes without recreating remote reports, and
    the summary row is written last so its presence marks a finished run.

Usage:
    from core.config import load_settings
    from ingestion.runner import run_reports

    summary = await run_reports(load_settings())
    print(summary.success, summary.failures)

Error Handling:
    All components raise the structured exceptions from core.exceptions.
    A failing report is logged with its error context, marks its checkpoint
    FAILED and is reported in the Slack summary; the other reports still run.
"""

__all__ = [
    "ReportRunner",
    "ReportScheduler",
    "JsonCheckpointStore",
    "AdxReportJob",
    "AnuraReportJob",
    "Ga4ReportJob",
    "WarehouseSink",
]
