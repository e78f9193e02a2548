"""
Pydantic schemas for data validation and serialization.

Schemas:
    checkpoint: Durable per-report-key progress records and partial updates
    metrics: Parsed report rows, run summaries and per-key breakdowns

Usage:
    from schemas.checkpoint import Checkpoint, CheckpointUpdate
    from schemas.metrics import AdxSummary, Ga4Breakdown

Example:
    update = CheckpointUpdate(external_job_ids={"report": "77"})
    checkpoint = store.save(update, "2024-07-14")
    assert checkpoint.job_id("report") == "77"
"""

__all__ = [
    "Checkpoint",
    "CheckpointUpdate",
    "AdxRow",
    "AdxSummary",
    "AdxBreakdown",
    "AnuraSummary",
    "AnuraBreakdown",
    "Ga4Row",
    "Ga4Summary",
    "Ga4Breakdown",
]
