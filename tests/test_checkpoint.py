"""Tests for the run context, checkpoint writer and fault handler."""

import json

import pytest

from tsmigrate.checkpoint import (
    CheckpointWriter,
    FaultHandler,
    RunContext,
    build_checkpoint,
    fault_checkpoint,
)
from tsmigrate.models import MigrationResult
from tsmigrate.store import MigrationStore


def _ok(index: int) -> MigrationResult:
    return MigrationResult(index=index, name=f"C{index}", success=True)


class TestRunContext:
    def test_next_index_is_first_gap(self):
        ctx = RunContext(batch_id=1, component_count=5)
        for i in (0, 1, 3):
            ctx.commit(_ok(i))
        assert ctx.completed_count == 3
        assert ctx.next_index == 2
        assert ctx.pending() == [2, 4]
        assert ctx.current_index == 3

    def test_next_index_when_done(self):
        ctx = RunContext(batch_id=1, component_count=2)
        ctx.commit(_ok(1))
        ctx.commit(_ok(0))
        assert ctx.next_index == 2
        assert [r.index for r in ctx.ordered_results()] == [0, 1]

    def test_from_checkpoint_drops_out_of_range_results(self):
        ctx = RunContext(batch_id=1, component_count=5)
        for i in range(4):
            ctx.commit(_ok(i))
        cp = build_checkpoint(ctx)
        resumed = RunContext.from_checkpoint(cp, component_count=3)
        assert sorted(resumed.results) == [0, 1, 2]
        assert resumed.next_index == 3


class TestFaultCheckpoint:
    def test_error_text(self):
        ctx = RunContext(batch_id=2, component_count=3)
        ctx.commit(_ok(0))
        cp = fault_checkpoint(ctx, RuntimeError("disk full"), timestamp="t")
        assert cp.error == "RuntimeError: disk full"
        assert (cp.completed_count, cp.next_index, cp.timestamp) == (1, 1, "t")

    def test_bare_exception_name(self):
        cp = fault_checkpoint(RunContext(batch_id=1, component_count=1), KeyboardInterrupt())
        assert cp.error == "KeyboardInterrupt"


class TestCheckpointWriter:
    def test_json_mirror_is_written(self, tmp_path):
        writer = CheckpointWriter(None, tmp_path / "cps")
        ctx = RunContext(batch_id=4, component_count=2)
        ctx.commit(_ok(0))
        writer.save(build_checkpoint(ctx, timestamp="t"))
        data = json.loads((tmp_path / "cps" / "batch-4-checkpoint.json").read_text())
        assert data["batchId"] == 4
        assert data["completedCount"] == 1
        assert data["nextIndex"] == 1
        assert writer.load(4).results == [_ok(0)]

    def test_load_falls_back_to_json(self, tmp_path):
        store = MigrationStore(str(tmp_path / "m.duckdb"))
        try:
            CheckpointWriter(None, tmp_path).save(build_checkpoint(RunContext(7, 3), timestamp="t"))
            cp = CheckpointWriter(store, tmp_path).load(7)
            assert cp is not None and cp.component_count == 3
        finally:
            store.close()

    def test_unreadable_json_is_ignored(self, tmp_path):
        (tmp_path / "batch-1-checkpoint.json").write_text("{not json")
        assert CheckpointWriter(None, tmp_path).load(1) is None

    def test_disabled_writer_writes_nothing(self, tmp_path):
        writer = CheckpointWriter(None, tmp_path / "cps", enabled=False)
        writer.save(build_checkpoint(RunContext(1, 1)))
        writer.clear(1)
        assert not (tmp_path / "cps").exists()

    def test_clear(self, tmp_path):
        writer = CheckpointWriter(None, tmp_path)
        writer.save(build_checkpoint(RunContext(1, 1)))
        writer.clear(1)
        assert writer.load(1) is None


class TestFaultHandler:
    def test_writes_checkpoint_and_reraises(self, tmp_path):
        writer = CheckpointWriter(None, tmp_path)
        ctx = RunContext(batch_id=3, component_count=4)
        with pytest.raises(RuntimeError):
            with FaultHandler(ctx, writer):
                ctx.commit(_ok(0))
                ctx.commit(_ok(1))
                raise RuntimeError("worker crashed")
        cp = writer.load(3)
        assert cp.error == "RuntimeError: worker crashed"
        assert cp.next_index == 2

    def test_clean_exit_writes_nothing(self, tmp_path):
        writer = CheckpointWriter(None, tmp_path)
        with FaultHandler(RunContext(batch_id=3, component_count=1), writer):
            pass
        assert writer.load(3) is None
