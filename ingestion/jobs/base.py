"""
Checkpointed report job: a small explicit state machine shared by every
report type.

States run strictly forward::

    RESOLVE_WINDOW -> SHORT_CIRCUIT -> ACQUIRE -> EXECUTE -> FETCH
        -> AGGREGATE -> PERSIST -> COMPLETED

``advance`` executes exactly one state and returns the next one, so tests can
drive a job step by step. Every piece of external progress (created report
ids, result ids, readiness flags) is written to the checkpoint as soon as it
is known; a failed run leaves those in place and the next run picks up from
them instead of creating the external jobs again.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Type

from core.config import Settings
from core.exceptions import CheckpointError, ETLException
from ingestion.checkpoint import JsonCheckpointStore
from ingestion.loaders.warehouse import WarehouseSink
from ingestion.storage import RawDataArchiver
from ingestion.transformers.aggregation import AggregateResult
from models.base import Base, ReportStatus, utcnow
from schemas.checkpoint import Checkpoint, CheckpointUpdate

logger = logging.getLogger(__name__)


class JobState(str, Enum):
    RESOLVE_WINDOW = "RESOLVE_WINDOW"
    SHORT_CIRCUIT = "SHORT_CIRCUIT"
    ACQUIRE = "ACQUIRE"
    EXECUTE = "EXECUTE"
    FETCH = "FETCH"
    AGGREGATE = "AGGREGATE"
    PERSIST = "PERSIST"
    COMPLETED = "COMPLETED"


class JobOutcome(str, Enum):
    COMPLETED = "completed"
    SKIPPED = "skipped"


@dataclass
class JobContext:
    """Mutable state carried between the handlers of one run"""
    report_date: Optional[date] = None
    report_key: Optional[str] = None
    key_value: Any = None
    checkpoint: Optional[Checkpoint] = None
    existing: Optional[Dict[str, Any]] = None
    skipped: bool = False
    rows: Any = None
    result: Optional[AggregateResult] = None
    rows_written: int = 0
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class JobResult:
    """
    What a job run produced.

    A skipped run carries the summary row already in the warehouse in
    ``existing`` and no freshly computed ``summary``.
    """
    report_type: str
    report_key: str
    status: JobOutcome
    summary: Any = None
    existing: Optional[Dict[str, Any]] = None
    row_count: int = 0
    rows_written: int = 0


class ReportJob(ABC):
    """
    Base class for the per-report-type jobs.

    Subclasses describe their window and the work done in ACQUIRE, EXECUTE,
    FETCH and AGGREGATE, plus the warehouse rows PERSIST writes. The base
    class owns the ordering, short-circuiting and checkpoint bookkeeping.
    """

    report_type: str = ""
    summary_model: Type[Base] = None

    def __init__(
        self,
        settings: Settings,
        client: Any,
        store: JsonCheckpointStore,
        warehouse: WarehouseSink,
        archiver: Optional[RawDataArchiver] = None,
        clock: Callable[[], datetime] = utcnow
    ):
        self.settings = settings
        self.client = client
        self.store = store
        self.warehouse = warehouse
        self.archiver = archiver
        self.clock = clock
        self._handlers = {
            JobState.RESOLVE_WINDOW: self._resolve_window,
            JobState.SHORT_CIRCUIT: self._short_circuit,
            JobState.ACQUIRE: self._acquire,
            JobState.EXECUTE: self._execute,
            JobState.FETCH: self._fetch,
            JobState.AGGREGATE: self._aggregate,
            JobState.PERSIST: self._persist,
        }

    # ------------------------------------------------------------------
    # Subclass hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def resolve_window(self, ctx: JobContext, report_date: date) -> None:
        """Set ctx.report_key and ctx.key_value (summary lookup value)"""

    async def acquire(self, ctx: JobContext) -> None:
        """Reuse or create the external artifacts, checkpointing each id"""

    async def execute(self, ctx: JobContext) -> None:
        """Run/poll the external artifacts until their results are available"""

    @abstractmethod
    async def fetch(self, ctx: JobContext) -> Any:
        """Return the raw rows"""

    @abstractmethod
    def aggregate(self, ctx: JobContext) -> AggregateResult:
        pass

    @abstractmethod
    def warehouse_rows(self, ctx: JobContext) -> List[Tuple[Type[Base], Sequence[Dict[str, Any]]]]:
        """(model, rows) pairs to write; the summary table must come last"""

    async def archive_raw(self, ctx: JobContext) -> None:
        """Hand the raw rows to the archiver (best-effort)"""

    def format_summary(self, result: AggregateResult) -> Optional[str]:
        return None

    # ------------------------------------------------------------------
    # Checkpoint helpers
    # ------------------------------------------------------------------

    def save(self, ctx: JobContext, **fields) -> Checkpoint:
        ctx.checkpoint = self.store.save(CheckpointUpdate(**fields), ctx.report_key)
        return ctx.checkpoint

    def save_job_id(self, ctx: JobContext, name: str, value: str) -> str:
        """Persist an external id and return the value that is now stored"""
        checkpoint = self.save(ctx, external_job_ids={name: value})
        return checkpoint.job_id(name)

    # ------------------------------------------------------------------
    # State handlers
    # ------------------------------------------------------------------

    async def _resolve_window(self, ctx: JobContext) -> JobState:
        ctx.report_date = self.settings.REPORT_DATE or self.clock().date()
        self.resolve_window(ctx, ctx.report_date)
        logger.info(
            f"[{self.report_type}] report date {ctx.report_date.isoformat()}, key {ctx.report_key}"
        )
        return JobState.SHORT_CIRCUIT

    async def _short_circuit(self, ctx: JobContext) -> JobState:
        existing = await self.warehouse.query(self.summary_model, ctx.key_value, limit=1)

        if existing and not self.settings.FORCE_RERUN:
            ctx.existing = existing[0]
            ctx.skipped = True
            logger.info(
                f"[{self.report_type}] summary for {ctx.report_key} already in warehouse, skipping"
            )
            return JobState.COMPLETED

        if existing:
            logger.info(f"[{self.report_type}] FORCE_RERUN set, regenerating {ctx.report_key}")

        checkpoint = None if self.settings.FORCE_RERUN else self.store.load(ctx.report_key)
        if checkpoint is None:
            checkpoint = self.store.reset(ctx.report_key, Checkpoint(report_key=ctx.report_key))
        elif checkpoint.status != ReportStatus.PROCESSING:
            logger.info(
                f"[{self.report_type}] resuming {checkpoint.status.value} checkpoint "
                f"{ctx.report_key} with ids {checkpoint.external_job_ids}"
            )
            checkpoint = self.store.save(
                CheckpointUpdate(status=ReportStatus.PROCESSING), ctx.report_key
            )
        ctx.checkpoint = checkpoint
        return JobState.ACQUIRE

    async def _acquire(self, ctx: JobContext) -> JobState:
        await self.acquire(ctx)
        return JobState.EXECUTE

    async def _execute(self, ctx: JobContext) -> JobState:
        await self.execute(ctx)
        return JobState.FETCH

    async def _fetch(self, ctx: JobContext) -> JobState:
        ctx.rows = await self.fetch(ctx)
        return JobState.AGGREGATE

    async def _aggregate(self, ctx: JobContext) -> JobState:
        if self.archiver:
            await self.archive_raw(ctx)
        ctx.result = self.aggregate(ctx)
        text = self.format_summary(ctx.result)
        if text:
            logger.info(f"[{self.report_type}] summary\n{text}")
        return JobState.PERSIST

    async def _persist(self, ctx: JobContext) -> JobState:
        ctx.rows_written = await self.warehouse.insert_many(self.warehouse_rows(ctx))

        self.save(ctx, status=ReportStatus.COMPLETED, error_message=None)
        logger.info(
            f"[{self.report_type}] {ctx.report_key} completed: "
            f"{ctx.rows_written} warehouse rows written"
        )
        return JobState.COMPLETED

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------

    async def advance(self, ctx: JobContext, state: JobState) -> JobState:
        """Run the handler for ``state`` and return the next state"""
        if state == JobState.COMPLETED:
            return state
        logger.debug(f"[{self.report_type}] entering {state.value}")
        return await self._handlers[state](ctx)

    async def run(self, ctx: Optional[JobContext] = None) -> JobResult:
        """
        Drive the job to COMPLETED.

        Any error after the checkpoint is opened marks it FAILED (ids and
        flags kept) and is re-raised.
        """
        ctx = ctx or JobContext()
        state = JobState.RESOLVE_WINDOW

        try:
            while state != JobState.COMPLETED:
                state = await self.advance(ctx, state)
        except Exception as e:
            self._mark_failed(ctx, e)
            raise

        if ctx.skipped:
            return JobResult(
                report_type=self.report_type,
                report_key=ctx.report_key,
                status=JobOutcome.SKIPPED,
                existing=ctx.existing,
            )
        return JobResult(
            report_type=self.report_type,
            report_key=ctx.report_key,
            status=JobOutcome.COMPLETED,
            summary=ctx.result.summary,
            row_count=ctx.result.row_count,
            rows_written=ctx.rows_written,
        )

    def _mark_failed(self, ctx: JobContext, error: Exception) -> None:
        error_context = error.to_dict() if isinstance(error, ETLException) else {"error": str(error)}
        logger.error(
            f"[{self.report_type}] run for {ctx.report_key} failed: {error}",
            extra={"error_context": error_context}
        )
        if ctx.checkpoint is None:
            return
        try:
            self.save(ctx, status=ReportStatus.FAILED, error_message=str(error)[:1000])
        except CheckpointError as e:
            logger.error(f"[{self.report_type}] could not mark checkpoint FAILED: {e}")
