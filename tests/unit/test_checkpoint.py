"""
Unit tests for the JSON checkpoint store
"""

import json
import pytest

from core.exceptions import CheckpointError
from ingestion.checkpoint import JsonCheckpointStore
from models.base import ReportStatus
from schemas.checkpoint import Checkpoint, CheckpointUpdate


class TestJsonCheckpointStore:
    """Test checkpoint load / save / reset"""

    def test_load_missing_file(self, adx_store):
        assert adx_store.load("2024-07-14") is None

    def test_save_creates_record(self, adx_store):
        saved = adx_store.save(CheckpointUpdate(external_job_ids={"report": "123"}), "2024-07-14")

        assert saved.report_key == "2024-07-14"
        assert saved.status == ReportStatus.PROCESSING
        loaded = adx_store.load("2024-07-14")
        assert loaded.job_id("report") == "123"

    def test_file_uses_camel_case_keys(self, adx_store):
        adx_store.save(CheckpointUpdate(external_job_ids={"report": "123"}), "2024-07-14")

        data = json.loads(adx_store.path.read_text())
        record = data["2024-07-14"]
        assert record["reportKey"] == "2024-07-14"
        assert record["externalJobIds"] == {"report": "123"}
        assert "updatedAt" in record
        assert adx_store.path.name == "adx-checkpoint.json"

    def test_partial_updates_merge(self, adx_store):
        adx_store.save(CheckpointUpdate(external_job_ids={"report": "123"}), "k")
        adx_store.save(CheckpointUpdate(external_job_ids={"result": "456"}), "k")
        adx_store.save(CheckpointUpdate(readiness={"request": True}), "k")
        adx_store.save(CheckpointUpdate(status=ReportStatus.FAILED, error_message="boom"), "k")

        loaded = adx_store.load("k")
        assert loaded.external_job_ids == {"report": "123", "result": "456"}
        assert loaded.is_ready("request")
        assert loaded.status == ReportStatus.FAILED
        assert loaded.error_message == "boom"

    def test_external_ids_are_never_overwritten(self, adx_store, caplog):
        adx_store.save(CheckpointUpdate(external_job_ids={"report": "123"}), "k")

        saved = adx_store.save(CheckpointUpdate(external_job_ids={"report": "999"}), "k")

        assert saved.job_id("report") == "123"
        assert adx_store.load("k").job_id("report") == "123"
        assert "keeping 123" in caplog.text

    def test_repeated_identical_save_is_harmless(self, adx_store):
        update = CheckpointUpdate(external_job_ids={"report": "123"}, readiness={"request": True})

        adx_store.save(update, "k")
        adx_store.save(update, "k")

        loaded = adx_store.load("k")
        assert loaded.external_job_ids == {"report": "123"}
        assert loaded.readiness == {"request": True}

    def test_clearing_error_message(self, adx_store):
        adx_store.save(CheckpointUpdate(error_message="boom"), "k")
        adx_store.save(CheckpointUpdate(status=ReportStatus.COMPLETED, error_message=None), "k")

        assert adx_store.load("k").error_message is None

    def test_keys_are_independent(self, adx_store):
        adx_store.save(CheckpointUpdate(external_job_ids={"report": "1"}), "2024-07-13")
        adx_store.save(CheckpointUpdate(external_job_ids={"report": "2"}), "2024-07-14")

        assert adx_store.load("2024-07-13").job_id("report") == "1"
        assert adx_store.load("2024-07-14").job_id("report") == "2"

    def test_corrupt_file_loads_as_none(self, adx_store):
        adx_store.directory.mkdir(parents=True, exist_ok=True)
        adx_store.path.write_text("{not json")

        assert adx_store.load("k") is None

    def test_invalid_record_loads_as_none(self, adx_store):
        adx_store.directory.mkdir(parents=True, exist_ok=True)
        adx_store.path.write_text(json.dumps({"k": {"status": "NOT_A_STATUS"}}))

        assert adx_store.load("k") is None

    def test_reset_replaces_record(self, adx_store):
        adx_store.save(CheckpointUpdate(external_job_ids={"report": "123"}), "k")

        adx_store.reset("k", Checkpoint(report_key="k"))

        assert adx_store.load("k").external_job_ids == {}

    def test_write_failure_raises_checkpoint_error(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        store = JsonCheckpointStore(blocker, "adx")

        with pytest.raises(CheckpointError):
            store.save(CheckpointUpdate(row_count=1), "k")

    def test_no_temp_files_left_behind(self, adx_store):
        adx_store.save(CheckpointUpdate(row_count=10), "k")

        leftovers = [p.name for p in adx_store.directory.iterdir() if p.suffix == ".tmp"]
        assert leftovers == []
