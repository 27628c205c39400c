"""DuckDB schema and MigrationStore: checkpoints, per-item results and run metadata.

DuckDB connections are NOT thread-safe: concurrent queries from different
threads corrupt internal state. Every public method on MigrationStore holds a
threading.Lock for the full duration of execute-through-fetch, so the
orchestrator and the fault handler can share one store.
"""

import json
import logging
import threading

import duckdb

from .models import Checkpoint, MigrationResult

log = logging.getLogger(__name__)

_DDL = """
CREATE TABLE IF NOT EXISTS meta (
    key     VARCHAR PRIMARY KEY,
    value   VARCHAR
);

CREATE TABLE IF NOT EXISTS checkpoints (
    batch_id        INTEGER PRIMARY KEY,
    component_count INTEGER NOT NULL,
    completed_count INTEGER NOT NULL,
    current_index   INTEGER NOT NULL,
    next_index      INTEGER NOT NULL,
    error           VARCHAR,
    saved_at        VARCHAR NOT NULL
);

CREATE TABLE IF NOT EXISTS results (
    batch_id     INTEGER NOT NULL,
    idx          INTEGER NOT NULL,
    name         VARCHAR NOT NULL,
    success      BOOLEAN NOT NULL,
    skipped      BOOLEAN DEFAULT false,
    reason       VARCHAR,
    error        VARCHAR,
    stage        VARCHAR,
    warnings     VARCHAR,
    duration_ms  INTEGER DEFAULT 0,
    target_path  VARCHAR,
    dry_run      BOOLEAN DEFAULT false,
    PRIMARY KEY (batch_id, idx)
);

CREATE INDEX IF NOT EXISTS idx_results_batch ON results(batch_id);
"""


class MigrationStore:
    def __init__(self, db_path: str) -> None:
        self.db_path = db_path
        self._lock = threading.Lock()
        self._con = duckdb.connect(db_path)
        for stmt in _DDL.strip().split(";"):
            stmt = stmt.strip()
            if stmt:
                self._con.execute(stmt)
        log.debug("MigrationStore opened: %s", db_path)

    def close(self) -> None:
        with self._lock:
            self._con.close()

    # ── meta ────────────────────────────────────────────────────────────────

    def get_meta(self, key: str) -> str | None:
        with self._lock:
            row = self._con.execute(
                "SELECT value FROM meta WHERE key = ?", [key]
            ).fetchone()
        return row[0] if row else None

    def set_meta(self, key: str, value: str) -> None:
        with self._lock:
            self._con.execute(
                "INSERT OR REPLACE INTO meta VALUES (?, ?)", [key, value]
            )

    # ── checkpoints ─────────────────────────────────────────────────────────

    def save_checkpoint(self, cp: Checkpoint) -> None:
        """Upsert the checkpoint row and every result it carries, in one transaction."""
        rows = [
            [
                cp.batch_id, r.index, r.name, r.success, r.skipped, r.reason, r.error,
                r.stage, json.dumps(r.warnings), r.duration_ms, r.target_path, r.dry_run,
            ]
            for r in cp.results
        ]
        with self._lock:
            self._con.execute("BEGIN TRANSACTION")
            try:
                self._con.execute(
                    """
                    INSERT INTO checkpoints
                        (batch_id, component_count, completed_count, current_index, next_index, error, saved_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT (batch_id) DO UPDATE SET
                        component_count = excluded.component_count,
                        completed_count = excluded.completed_count,
                        current_index   = excluded.current_index,
                        next_index      = excluded.next_index,
                        error           = excluded.error,
                        saved_at        = excluded.saved_at
                    """,
                    [cp.batch_id, cp.component_count, cp.completed_count,
                     cp.current_index, cp.next_index, cp.error, cp.timestamp],
                )
                if rows:
                    self._con.executemany(
                        """
                        INSERT INTO results
                            (batch_id, idx, name, success, skipped, reason, error,
                             stage, warnings, duration_ms, target_path, dry_run)
                        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                        ON CONFLICT (batch_id, idx) DO UPDATE SET
                            name        = excluded.name,
                            success     = excluded.success,
                            skipped     = excluded.skipped,
                            reason      = excluded.reason,
                            error       = excluded.error,
                            stage       = excluded.stage,
                            warnings    = excluded.warnings,
                            duration_ms = excluded.duration_ms,
                            target_path = excluded.target_path,
                            dry_run     = excluded.dry_run
                        """,
                        rows,
                    )
                self._con.execute("COMMIT")
            except Exception:
                self._con.execute("ROLLBACK")
                raise

    def load_checkpoint(self, batch_id: int) -> Checkpoint | None:
        with self._lock:
            row = self._con.execute(
                """
                SELECT component_count, completed_count, current_index, next_index, error, saved_at
                FROM checkpoints WHERE batch_id = ?
                """,
                [batch_id],
            ).fetchone()
            if row is None:
                return None
            result_rows = self._con.execute(
                """
                SELECT idx, name, success, skipped, reason, error, stage,
                       warnings, duration_ms, target_path, dry_run
                FROM results WHERE batch_id = ? ORDER BY idx
                """,
                [batch_id],
            ).fetchall()

        results = [
            MigrationResult(
                index=r[0], name=r[1], success=r[2], skipped=r[3], reason=r[4],
                error=r[5], stage=r[6], warnings=json.loads(r[7]) if r[7] else [],
                duration_ms=r[8] or 0, target_path=r[9], dry_run=r[10],
            )
            for r in result_rows
        ]
        return Checkpoint(
            batch_id=batch_id,
            component_count=row[0],
            completed_count=row[1],
            current_index=row[2],
            next_index=row[3],
            results=results,
            error=row[4],
            timestamp=row[5],
        )

    def clear_checkpoint(self, batch_id: int) -> None:
        with self._lock:
            self._con.execute("DELETE FROM results WHERE batch_id = ?", [batch_id])
            self._con.execute("DELETE FROM checkpoints WHERE batch_id = ?", [batch_id])

    def checkpointed_batches(self) -> list[int]:
        with self._lock:
            rows = self._con.execute(
                "SELECT batch_id FROM checkpoints ORDER BY batch_id"
            ).fetchall()
        return [r[0] for r in rows]

    def stats(self) -> dict:
        with self._lock:
            batches = self._con.execute("SELECT COUNT(*) FROM checkpoints").fetchone()[0]
            by_outcome = self._con.execute(
                """
                SELECT
                    SUM(CASE WHEN success AND NOT skipped THEN 1 ELSE 0 END),
                    SUM(CASE WHEN skipped THEN 1 ELSE 0 END),
                    SUM(CASE WHEN NOT success THEN 1 ELSE 0 END)
                FROM results
                """
            ).fetchone()
        return {
            "batches": batches,
            "succeeded": by_outcome[0] or 0,
            "skipped": by_outcome[1] or 0,
            "failed": by_outcome[2] or 0,
        }
