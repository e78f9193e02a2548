"""
Pydantic schemas for per-report-date checkpoints
"""

from datetime import datetime
from typing import Dict, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from models.base import ReportStatus, utcnow


class Checkpoint(BaseModel):
    """
    Durable progress record of one report run.

    external_job_ids are idempotency tokens: once an external artifact id is
    stored under a name it is never replaced (see JsonCheckpointStore.save).
    """

    report_key: str = Field(..., min_length=1)
    external_job_ids: Dict[str, str] = Field(default_factory=dict)
    readiness: Dict[str, bool] = Field(default_factory=dict)
    status: ReportStatus = ReportStatus.PROCESSING
    row_count: Optional[int] = None
    error_message: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    class Config:
        alias_generator = to_camel
        populate_by_name = True

    def job_id(self, name: str) -> Optional[str]:
        return self.external_job_ids.get(name) or None

    def is_ready(self, name: str) -> bool:
        return bool(self.readiness.get(name))

    def to_storage(self) -> dict:
        """Serialize with camelCase keys for the checkpoint file"""
        return self.model_dump(mode="json", by_alias=True)


class CheckpointUpdate(BaseModel):
    """Partial checkpoint; only explicitly set fields are merged"""

    external_job_ids: Optional[Dict[str, str]] = None
    readiness: Optional[Dict[str, bool]] = None
    status: Optional[ReportStatus] = None
    row_count: Optional[int] = None
    error_message: Optional[str] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True
