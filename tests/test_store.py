"""Tests for the DuckDB-backed MigrationStore."""

import pytest

from tsmigrate.models import Checkpoint, MigrationResult
from tsmigrate.store import MigrationStore


@pytest.fixture
def store(tmp_path):
    s = MigrationStore(str(tmp_path / "migration.duckdb"))
    yield s
    s.close()


def _checkpoint(batch_id=1, results=None, error=None) -> Checkpoint:
    results = results if results is not None else [
        MigrationResult(index=0, name="A", success=True, target_path="src/components/A.tsx",
                        warnings=["A: prop 'x' has unknown type"], duration_ms=12),
        MigrationResult(index=1, name="B", success=False, error="boom", stage="transform"),
        MigrationResult(index=2, name="C", success=True, skipped=True, reason="already TypeScript"),
    ]
    return Checkpoint(
        batch_id=batch_id, component_count=5, completed_count=len(results),
        current_index=2, next_index=3, results=results, error=error,
        timestamp="2026-01-01T00:00:00+00:00",
    )


class TestCheckpoints:
    def test_round_trip(self, store):
        store.save_checkpoint(_checkpoint(error="Killed"))
        cp = store.load_checkpoint(1)
        assert cp == _checkpoint(error="Killed")

    def test_missing_batch(self, store):
        assert store.load_checkpoint(9) is None

    def test_save_replaces_previous_state(self, store):
        store.save_checkpoint(_checkpoint(error="Killed"))
        store.save_checkpoint(_checkpoint())
        cp = store.load_checkpoint(1)
        assert cp.error is None
        assert [r.name for r in cp.results] == ["A", "B", "C"]

    def test_clear(self, store):
        store.save_checkpoint(_checkpoint(1))
        store.save_checkpoint(_checkpoint(2))
        store.clear_checkpoint(1)
        assert store.load_checkpoint(1) is None
        assert store.checkpointed_batches() == [2]


class TestStats:
    def test_counts_by_outcome(self, store):
        store.save_checkpoint(_checkpoint(1))
        store.save_checkpoint(_checkpoint(3))
        assert store.stats() == {"batches": 2, "succeeded": 2, "skipped": 2, "failed": 2}

    def test_empty(self, store):
        assert store.stats() == {"batches": 0, "succeeded": 0, "skipped": 0, "failed": 0}


class TestMeta:
    def test_set_and_overwrite(self, store):
        assert store.get_meta("last_plan_at") is None
        store.set_meta("last_plan_at", "a")
        store.set_meta("last_plan_at", "b")
        assert store.get_meta("last_plan_at") == "b"

    def test_persists_across_connections(self, tmp_path):
        path = str(tmp_path / "m.duckdb")
        s = MigrationStore(path)
        s.set_meta("k", "v")
        s.close()
        s = MigrationStore(path)
        try:
            assert s.get_meta("k") == "v"
        finally:
            s.close()
