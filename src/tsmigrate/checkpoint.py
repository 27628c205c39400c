"""
Run context, checkpoint construction and the crash-time fault handler.

The orchestrator owns a RunContext; checkpoints are always derived from it,
never from worker state, so a checkpoint only ever lists committed results.
"""

import json
import logging
import os
import signal
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from .models import Checkpoint, MigrationResult
from .store import MigrationStore

log = logging.getLogger(__name__)


@dataclass
class RunContext:
    batch_id: int
    component_count: int
    results: dict[int, MigrationResult] = field(default_factory=dict)
    current_index: int = 0

    @property
    def completed_count(self) -> int:
        return len(self.results)

    @property
    def next_index(self) -> int:
        """First index without a committed result."""
        for index in range(self.component_count):
            if index not in self.results:
                return index
        return self.component_count

    def pending(self) -> list[int]:
        return [i for i in range(self.component_count) if i not in self.results]

    def commit(self, result: MigrationResult) -> None:
        self.results[result.index] = result
        self.current_index = result.index

    def ordered_results(self) -> list[MigrationResult]:
        return [self.results[i] for i in sorted(self.results)]

    @classmethod
    def from_checkpoint(cls, cp: Checkpoint, component_count: int) -> "RunContext":
        results = {r.index: r for r in cp.results if 0 <= r.index < component_count}
        return cls(
            batch_id=cp.batch_id,
            component_count=component_count,
            results=results,
            current_index=cp.current_index,
        )


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_checkpoint(context: RunContext, error: str | None = None, timestamp: str | None = None) -> Checkpoint:
    return Checkpoint(
        batch_id=context.batch_id,
        component_count=context.component_count,
        completed_count=context.completed_count,
        current_index=context.current_index,
        next_index=context.next_index,
        results=context.ordered_results(),
        error=error,
        timestamp=timestamp or _now(),
    )


def fault_checkpoint(context: RunContext, error: BaseException, timestamp: str | None = None) -> Checkpoint:
    """The checkpoint to persist when a run dies with ``error``."""
    message = str(error)
    described = f"{type(error).__name__}: {message}" if message else type(error).__name__
    return build_checkpoint(context, error=described, timestamp=timestamp)


class CheckpointWriter:
    """Persists checkpoints to the store and mirrors them as JSON for operators."""

    def __init__(self, store: MigrationStore | None, directory: str | Path, enabled: bool = True) -> None:
        self.store = store
        self.directory = Path(directory)
        self.enabled = enabled

    def json_path(self, batch_id: int) -> Path:
        return self.directory / f"batch-{batch_id}-checkpoint.json"

    def save(self, cp: Checkpoint) -> None:
        if not self.enabled:
            return
        if self.store is not None:
            self.store.save_checkpoint(cp)
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.json_path(cp.batch_id)
        tmp = path.with_name(path.name + ".tmp")
        tmp.write_text(json.dumps(cp.to_dict(), indent=2), encoding="utf-8")
        os.replace(tmp, path)
        log.debug("Checkpoint saved: batch %d, %d/%d", cp.batch_id, cp.completed_count, cp.component_count)

    def load(self, batch_id: int) -> Checkpoint | None:
        if self.store is not None:
            cp = self.store.load_checkpoint(batch_id)
            if cp is not None:
                return cp
        path = self.json_path(batch_id)
        if not path.exists():
            return None
        try:
            return Checkpoint.from_dict(json.loads(path.read_text(encoding="utf-8")))
        except (OSError, ValueError, KeyError) as e:
            log.warning("Ignoring unreadable checkpoint %s: %s", path, e)
            return None

    def clear(self, batch_id: int) -> None:
        if not self.enabled:
            return
        if self.store is not None:
            self.store.clear_checkpoint(batch_id)
        self.json_path(batch_id).unlink(missing_ok=True)


class FaultHandler:
    """
    Context manager guarding a run: if the body dies, a best-effort
    checkpoint built from the run context is written before the error
    propagates. SIGTERM is turned into SystemExit so it takes the same path.
    """

    def __init__(self, context: RunContext, writer: CheckpointWriter) -> None:
        self.context = context
        self.writer = writer
        self._previous = None

    def _on_signal(self, signum, frame) -> None:
        raise SystemExit(128 + signum)

    def __enter__(self) -> "FaultHandler":
        if threading.current_thread() is threading.main_thread():
            self._previous = signal.signal(signal.SIGTERM, self._on_signal)
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if self._previous is not None:
            signal.signal(signal.SIGTERM, self._previous)
            self._previous = None
        if exc is not None:
            log.error("Run interrupted at batch %d: %s", self.context.batch_id, exc)
            try:
                self.writer.save(fault_checkpoint(self.context, exc))
            except Exception:
                log.error("Could not write fault checkpoint", exc_info=True)
        return False
