"""
File-backed checkpoint store, one JSON file per report type.

File layout (camelCase keys, pretty-printed)::

    {
      "2024-07-14": {
        "reportKey": "2024-07-14",
        "externalJobIds": {"report": "123", "result": "456"},
        "readiness": {},
        "status": "PROCESSING",
        ...
        "updatedAt": "2024-07-14T06:00:03.120000Z"
      }
    }

Writes go to a temp file in the same directory which then replaces the
original, so a crash mid-write leaves the previous file intact.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from core.exceptions import CheckpointError
from models.base import utcnow
from schemas.checkpoint import Checkpoint, CheckpointUpdate

logger = logging.getLogger(__name__)


class JsonCheckpointStore:
    """
    Durable report-key -> Checkpoint mapping.

    Single process, single writer per key; no locking.
    """

    def __init__(self, directory: Union[str, Path], report_type: str):
        self.directory = Path(directory)
        self.report_type = report_type
        self.path = self.directory / f"{report_type}-checkpoint.json"

    def _read_all(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Unreadable checkpoint file {self.path}, starting over: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Checkpoint file {self.path} is not an object, starting over")
            return {}
        return data

    def _write_all(self, data: Dict[str, Any], key: str) -> None:
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=self.directory, prefix=f".{self.report_type}-", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            raise CheckpointError(
                f"Failed to write checkpoint for {self.report_type}",
                context={"report_key": key, "path": str(self.path), "operation": "write"},
                original_exception=e
            )

    def load(self, key: str) -> Optional[Checkpoint]:
        """Return the checkpoint stored under key, or None when absent or unusable"""
        record = self._read_all().get(key)
        if record is None:
            return None
        try:
            checkpoint = Checkpoint.model_validate(record)
        except ValidationError as e:
            logger.warning(f"Invalid checkpoint for {self.report_type} {key}, starting over: {e}")
            return None
        logger.debug(f"Loaded {self.report_type} checkpoint {key}: {checkpoint.status.value}")
        return checkpoint

    def save(self, update: CheckpointUpdate, key: str) -> Checkpoint:
        """
        Merge the fields explicitly set on ``update`` into the stored record.

        External job ids only ever fill in: an id already stored under a name
        is kept and a differing incoming value is logged and ignored. Every
        other field is last-write-wins.
        """
        data = self._read_all()
        current = None
        if key in data:
            try:
                current = Checkpoint.model_validate(data[key])
            except ValidationError as e:
                logger.warning(f"Replacing invalid checkpoint for {self.report_type} {key}: {e}")
        if current is None:
            current = Checkpoint(report_key=key)

        changes = update.model_dump(exclude_unset=True)

        ids = changes.pop("external_job_ids", None)
        if ids:
            merged = dict(current.external_job_ids)
            for name, value in ids.items():
                if not value:
                    continue
                existing = merged.get(name)
                if existing and existing != str(value):
                    logger.warning(
                        f"Ignoring new {name} id {value} for {self.report_type} {key}; "
                        f"keeping {existing}"
                    )
                    continue
                merged[name] = str(value)
            current.external_job_ids = merged

        flags = changes.pop("readiness", None)
        if flags:
            current.readiness = {**current.readiness, **flags}

        for field_name, value in changes.items():
            setattr(current, field_name, value)
        current.updated_at = utcnow()

        data[key] = current.to_storage()
        self._write_all(data, key)
        return current

    def reset(self, key: str, checkpoint: Optional[Checkpoint] = None) -> Checkpoint:
        """Replace the record under key wholesale (used for forced reruns)"""
        checkpoint = checkpoint or Checkpoint(report_key=key)
        checkpoint.updated_at = utcnow()
        data = self._read_all()
        data[key] = checkpoint.to_storage()
        self._write_all(data, key)
        logger.info(f"Reset {self.report_type} checkpoint {key}")
        return checkpoint
