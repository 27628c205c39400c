"""
Batch execution: waves of contiguous shards on a thread pool, per-item stage
pipeline, checkpoint after every committed item.

Workers only produce results. They post ``(index, result)`` on a queue and the
orchestrator thread drains it, commits into the RunContext and writes the
checkpoint. A FaultHandler around the whole run persists whatever was
committed if the run dies.
"""

import logging
import os
import queue
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from .analyze import analyze_unit
from .artifacts import load_roadmap, write_failure_report
from .checkpoint import CheckpointWriter, FaultHandler, RunContext, build_checkpoint
from .config import MigrationConfig
from .errors import BatchNotFoundError, MigrationError, SourceParseError, StageError
from .governor import MemoryGovernor
from .models import BatchComponent, MigrationBatch, MigrationResult, SourceUnit
from .parse import load_unit
from .store import MigrationStore
from .synthesize import synthesize
from .transform import TransformResult, transform_unit
from .verify import verify_target

log = logging.getLogger(__name__)

_POLL_SECONDS = 0.05


class RunState(str, Enum):
    IDLE = "idle"
    PLANNING = "planning"
    EXECUTING = "executing"
    COMPLETED = "completed"
    PAUSED = "paused"


_TRANSITIONS: dict[RunState, set[RunState]] = {
    RunState.IDLE: {RunState.PLANNING},
    RunState.PLANNING: {RunState.EXECUTING},
    RunState.EXECUTING: {RunState.COMPLETED, RunState.PAUSED},
    RunState.PAUSED: {RunState.EXECUTING, RunState.PLANNING},
    RunState.COMPLETED: {RunState.PLANNING},
}


@dataclass
class RunOptions:
    dry_run: bool = False
    skip_existing: bool = False
    force: bool = False
    resume: bool = False
    verify: bool | None = None
    workers: int | None = None
    shard_size: int | None = None
    memory_mb: int | None = None


@dataclass
class RunSummary:
    batch_id: int
    batch_name: str
    total: int
    results: list[MigrationResult] = field(default_factory=list)
    elapsed_s: float = 0.0
    dry_run: bool = False
    failure_report: str | None = None

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.success and not r.skipped)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.results if r.skipped)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success and not r.skipped)

    @property
    def failures(self) -> list[MigrationResult]:
        return [r for r in self.results if not r.success and not r.skipped]


def split_shards(indices: list[int], shard_size: int) -> list[list[int]]:
    """Contiguous chunks of at most ``shard_size`` indices, in order."""
    size = max(1, shard_size)
    return [indices[i:i + size] for i in range(0, len(indices), size)]


def _stage(name: str, fn, *args):
    try:
        return fn(*args)
    except Exception as e:
        raise StageError(name, e) from e


def _load(path: str, project_root: str) -> SourceUnit:
    unit = load_unit(path, project_root)
    if unit.tree is None or unit.tree.root_node.has_error:
        raise SourceParseError(f"{path}: source has syntax errors")
    return unit


def _write_atomic(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    tmp.write_text(text, encoding="utf-8")
    os.replace(tmp, path)


class Orchestrator:
    def __init__(
        self,
        config: MigrationConfig,
        options: RunOptions | None = None,
        store: MigrationStore | None = None,
        governor: MemoryGovernor | None = None,
    ) -> None:
        self.config = config
        self.options = options or RunOptions()
        self.workers = max(1, self.options.workers or config.workers)
        self.shard_size = max(1, self.options.shard_size or config.shard_size)
        self.verify = config.verify if self.options.verify is None else self.options.verify
        self.writer = CheckpointWriter(
            store,
            config.root_path(config.checkpoint_dir),
            enabled=not self.options.dry_run,
        )
        self.governor = governor or MemoryGovernor(
            self.options.memory_mb or config.memory_budget_mb,
            high_water=config.memory_high_water,
            critical=config.memory_critical,
            cooldown=config.cooldown_seconds,
        )
        self.state = RunState.IDLE
        self.context: RunContext | None = None
        self._stop = threading.Event()

    def _transition(self, new: RunState) -> None:
        if new not in _TRANSITIONS[self.state]:
            raise MigrationError(f"Invalid run state transition {self.state.value} → {new.value}")
        log.debug("Run state %s → %s", self.state.value, new.value)
        self.state = new

    # ── planning ───────────────────────────────────────────────────────────

    def load_roadmap(self) -> list[MigrationBatch]:
        return load_roadmap(self.config.root_path(self.config.roadmap_file))

    @staticmethod
    def select_batch(batches: list[MigrationBatch], batch_id: int) -> MigrationBatch:
        for batch in batches:
            if batch.id == batch_id:
                return batch
        raise BatchNotFoundError(batch_id, [b.id for b in batches])

    def run(self, batch_id: int) -> RunSummary:
        """Run one roadmap batch, resuming from its checkpoint when requested."""
        self._transition(RunState.PLANNING)
        batch = self.select_batch(self.load_roadmap(), batch_id)
        context = RunContext(batch.id, batch.component_count)

        if self.options.resume:
            cp = self.writer.load(batch.id)
            if cp is None:
                log.info("No checkpoint for batch %d, starting from the beginning", batch.id)
            else:
                if cp.component_count != batch.component_count:
                    log.warning(
                        "Checkpoint for batch %d covers %d components, roadmap has %d",
                        batch.id, cp.component_count, batch.component_count,
                    )
                context = RunContext.from_checkpoint(cp, batch.component_count)
                log.info("Resuming batch %d at index %d (%d done)",
                         batch.id, context.next_index, context.completed_count)
        else:
            self.writer.clear(batch.id)

        return self.run_batch(batch, context)

    # ── execution ──────────────────────────────────────────────────────────

    def run_batch(self, batch: MigrationBatch, context: RunContext) -> RunSummary:
        self.context = context
        self._stop.clear()
        self._transition(RunState.EXECUTING)
        started = time.monotonic()
        log.info("Batch %d (%s): %d components, %d pending, %d workers",
                 batch.id, batch.name, batch.component_count, len(context.pending()), self.workers)

        with FaultHandler(context, self.writer):
            try:
                for wave in split_shards(context.pending(), self.workers * self.shard_size):
                    self._run_wave(batch, wave, context)
            except BaseException:
                self._transition(RunState.PAUSED)
                raise

        self.writer.save(build_checkpoint(context))
        self._transition(RunState.COMPLETED)

        summary = RunSummary(
            batch_id=batch.id,
            batch_name=batch.name,
            total=batch.component_count,
            results=context.ordered_results(),
            elapsed_s=time.monotonic() - started,
            dry_run=self.options.dry_run,
        )
        if summary.failures and not self.options.dry_run:
            report = self.writer.directory / f"batch-{batch.id}-failures.json"
            write_failure_report(report, batch, summary.failures)
            summary.failure_report = str(report)
        log.info("Batch %d done: %d succeeded, %d skipped, %d failed in %.1fs",
                 batch.id, summary.succeeded, summary.skipped, summary.failed, summary.elapsed_s)
        return summary

    def _run_wave(self, batch: MigrationBatch, wave: list[int], context: RunContext) -> None:
        outbox: queue.Queue = queue.Queue()
        shards = split_shards(wave, self.shard_size)
        pool = ThreadPoolExecutor(max_workers=min(self.workers, len(shards)))
        try:
            futures = [pool.submit(self._run_shard, batch, shard, outbox) for shard in shards]
            self._drain(futures, outbox, context)
        except BaseException:
            # stop unstarted shards and keep what finished workers already posted
            self._stop.set()
            pool.shutdown(wait=False, cancel_futures=True)
            self._commit_ready(outbox, context)
            raise
        pool.shutdown()

    def _run_shard(self, batch: MigrationBatch, shard: list[int], outbox: queue.Queue) -> None:
        for index in shard:
            if self._stop.is_set():
                return
            self.governor.check()
            outbox.put((index, self.migrate_item(index, batch.components[index])))

    def _drain(self, futures: list[Future], outbox: queue.Queue, context: RunContext) -> None:
        """Commit results as they arrive until every shard has finished."""
        while True:
            try:
                index, result = outbox.get(timeout=_POLL_SECONDS)
            except queue.Empty:
                if all(f.done() for f in futures) and outbox.empty():
                    break
                continue
            self._commit(context, result)

        for f in futures:
            error = f.exception()
            if error is not None:
                raise error

    def _commit_ready(self, outbox: queue.Queue, context: RunContext) -> None:
        """Commit results already waiting in the outbox, without blocking."""
        while True:
            try:
                index, result = outbox.get_nowait()
            except queue.Empty:
                return
            if index not in context.results:
                context.commit(result)
                self.writer.save(build_checkpoint(context))

    def _commit(self, context: RunContext, result: MigrationResult) -> None:
        context.commit(result)
        self.writer.save(build_checkpoint(context))
        if result.skipped:
            log.info("[%d] %s skipped: %s", result.index, result.name, result.reason)
        elif result.success:
            log.info("[%d] %s → %s", result.index, result.name, result.target_path)
        else:
            log.warning("[%d] %s failed at %s: %s", result.index, result.name, result.stage, result.error)

    # ── per item ───────────────────────────────────────────────────────────

    def migrate_item(self, index: int, component: BatchComponent) -> MigrationResult:
        """
        Migrate one component through load, analyze, synthesize, transform,
        write and verify. Stage errors become a failed result.
        """
        started = time.monotonic()
        result = MigrationResult(index=index, name=component.name, success=False, dry_run=self.options.dry_run)
        root = self.config.project_root

        try:
            unit = _stage("load", _load, component.path, root)
            if unit.language != "javascript":
                result.success = result.skipped = True
                result.reason = "already TypeScript"
                return result
            if self.options.skip_existing:
                existing = self.config.existing_target(component.path)
                if existing is not None:
                    result.success = result.skipped = True
                    result.reason = f"target exists: {existing}"
                    result.target_path = existing
                    return result

            profile = _stage("analyze", analyze_unit, unit, self.config)
            synthesis = _stage("synthesize", synthesize, profile, self.config.interface_mode)
            target = self.config.target_path_for(unit.path, profile.has_markup)
            transformed = _stage("transform", transform_unit, unit, profile, synthesis, self.config, target)
            result.target_path = target
            result.warnings.extend(transformed.warnings)

            outcome = _stage("write", self._write_target, transformed)
            if outcome == "exists":
                result.success = result.skipped = True
                result.reason = f"target exists with different content: {target} (use --force)"
                return result

            if self.verify and outcome != "dry-run":
                result.warnings.extend(_stage("verify", verify_target, target, root))
            result.success = True
        except StageError as e:
            result.error = str(e.cause) or type(e.cause).__name__
            result.stage = e.stage
            log.debug("%s failed at %s", component.path, e.stage, exc_info=e.cause)
        finally:
            result.duration_ms = int((time.monotonic() - started) * 1000)
        return result

    def _write_target(self, transformed: TransformResult) -> str:
        """
        Write the target (and companion) file.

        Returns "dry-run", "written", "unchanged" or "exists"; an existing
        file with different content is only replaced under ``force``.
        """
        outputs = [(self.config.root_path(transformed.target_path), transformed.code)]
        if transformed.companion_path and transformed.companion_code is not None:
            outputs.append((self.config.root_path(transformed.companion_path), transformed.companion_code))

        if self.options.dry_run:
            log.info("[dry-run] would write %s", ", ".join(str(p) for p, _ in outputs))
            return "dry-run"

        current = {p: p.read_text(encoding="utf-8") for p, _ in outputs if p.is_file()}
        if not self.options.force and any(p in current and current[p] != code for p, code in outputs):
            return "exists"

        written = 0
        for path, code in outputs:
            if current.get(path) == code:
                continue
            _write_atomic(path, code)
            written += 1
        return "written" if written else "unchanged"
