"""CLI entry point for tsmigrate."""

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path

from .analyze import analyze_file
from .artifacts import load_roadmap, profile_to_dict
from .checkpoint import CheckpointWriter
from .config import MigrationConfig, load_config
from .errors import ConfigError, MigrationError
from .inventory import run_plan, store_path
from .orchestrator import Orchestrator, RunOptions, RunSummary
from .store import MigrationStore

log = logging.getLogger(__name__)


def _config(path: str, config_file: str | None = None) -> MigrationConfig:
    root = Path(path).resolve()
    if not root.is_dir():
        raise ConfigError(f"Project directory not found: {root}")
    return load_config(str(root), config_file)


def _open_store(config: MigrationConfig, create: bool = True) -> MigrationStore | None:
    db = store_path(config)
    if not create and not db.exists():
        return None
    db.parent.mkdir(parents=True, exist_ok=True)
    return MigrationStore(str(db))


def _attach_run_log(
    config: MigrationConfig, verbose: bool
) -> tuple[logging.Handler, list[tuple[logging.Handler | logging.Logger, int]]]:
    """
    Per-run log file under the log dir; console output stays at its level.
    Returns the file handler and the levels to put back in ``_detach_run_log``.
    """
    log_dir = config.root_path(config.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    handler = logging.FileHandler(log_dir / f"migration-{stamp}.log", encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))

    pkg = logging.getLogger("tsmigrate")
    saved: list[tuple[logging.Handler | logging.Logger, int]] = []
    if not verbose:
        for console in logging.getLogger().handlers:
            if console.level == logging.NOTSET:
                saved.append((console, console.level))
                console.setLevel(logging.WARNING)
        saved.append((pkg, pkg.level))
        pkg.setLevel(logging.INFO)
    pkg.addHandler(handler)
    return handler, saved


def _detach_run_log(handler: logging.Handler, saved: list[tuple[logging.Handler | logging.Logger, int]]) -> None:
    logging.getLogger("tsmigrate").removeHandler(handler)
    handler.close()
    for target, level in saved:
        target.setLevel(level)


def cmd_plan(args: argparse.Namespace) -> int:
    config = _config(args.path, args.config)
    print(f"Analyzing {config.project_root}", file=sys.stderr)
    stats = run_plan(config)

    print(f"  components: {stats['components']}")
    print(f"  edges:      {stats['edges']}")
    print(f"  cycles:     {stats['cycles']}")
    for kind, count in sorted(stats["by_kind"].items()):
        print(f"    {kind}: {count}")
    print("  priorities:")
    for priority, count in sorted(stats["by_priority"].items()):
        print(f"    {priority}: {count}")
    print("  batches:")
    for batch_id, name, count in stats["batches"]:
        print(f"    {batch_id}. {name} ({count})")
    if stats["errors"]:
        print(f"  errors:     {stats['errors']}", file=sys.stderr)
    print(f"Wrote {config.inventory_file}, {config.roadmap_file}, {config.relationships_file}")
    return 0


def cmd_batches(args: argparse.Namespace) -> int:
    config = _config(args.path, args.config)
    batches = load_roadmap(config.root_path(config.roadmap_file))
    for batch in batches:
        print(f"{batch.id}. {batch.name}")
        print(f"   {batch.description}")
        print(f"   components: {batch.component_count}  "
              f"avg complexity: {batch.average_complexity}  "
              f"effort: {batch.estimated_effort:.1f}h")
        if args.list:
            for c in batch.components:
                print(f"     - {c.name:<30} {c.complexity_level:<10} {c.path}")
    return 0


def _print_summary(summary: RunSummary) -> None:
    mode = " (dry run)" if summary.dry_run else ""
    print(f"\nBatch {summary.batch_id}: {summary.batch_name}{mode}")
    print(f"  succeeded: {summary.succeeded}")
    print(f"  skipped:   {summary.skipped}")
    print(f"  failed:    {summary.failed}")
    print(f"  elapsed:   {summary.elapsed_s:.1f}s")
    for r in summary.failures:
        print(f"  ✗ {r.name} [{r.stage}] {r.error}", file=sys.stderr)
    if summary.failure_report:
        print(f"Failure report: {summary.failure_report}")


def cmd_run(args: argparse.Namespace) -> int:
    config = _config(args.path, args.config)
    options = RunOptions(
        dry_run=args.dry_run,
        skip_existing=args.skip_existing,
        force=args.force,
        resume=args.resume,
        verify=True if args.verify else None,
        workers=args.workers,
        memory_mb=args.memory,
    )

    run_log = None if args.dry_run else _attach_run_log(config, args.verbose)
    store = None if args.dry_run else _open_store(config)
    try:
        summary = Orchestrator(config, options, store=store).run(args.batch_id)
    finally:
        if store is not None:
            store.close()
        if run_log is not None:
            _detach_run_log(*run_log)

    _print_summary(summary)
    return 0


def _print_overview(store: MigrationStore | None) -> None:
    if store is None:
        print("No migration runs recorded yet")
        return
    stats = store.stats()
    print(f"Planned:   {store.get_meta('last_plan_at') or '(not planned yet)'}")
    print(f"Batches:   {', '.join(str(b) for b in store.checkpointed_batches()) or '(none run yet)'}")
    print(f"Succeeded: {stats['succeeded']}")
    print(f"Skipped:   {stats['skipped']}")
    print(f"Failed:    {stats['failed']}")


def cmd_status(args: argparse.Namespace) -> int:
    config = _config(args.path, args.config)
    store = _open_store(config, create=False)
    try:
        if args.batch_id is None:
            _print_overview(store)
            return 0
        writer = CheckpointWriter(store, config.root_path(config.checkpoint_dir))
        cp = writer.load(args.batch_id)
        if cp is None:
            print(f"No checkpoint for batch {args.batch_id}")
            return 0
        failed = [r for r in cp.results if not r.success and not r.skipped]
        skipped = [r for r in cp.results if r.skipped]
        print(f"Batch:     {cp.batch_id}")
        print(f"Saved:     {cp.timestamp}")
        print(f"Progress:  {cp.completed_count}/{cp.component_count}  (next index {cp.next_index})")
        print(f"Skipped:   {len(skipped)}")
        print(f"Failed:    {len(failed)}")
        if cp.error:
            print(f"Stopped:   {cp.error}")
        for r in failed:
            print(f"  ✗ [{r.index}] {r.name} [{r.stage}] {r.error}")
    finally:
        if store is not None:
            store.close()
    return 0


def cmd_analyze(args: argparse.Namespace) -> int:
    config = _config(args.path, args.config)
    root = Path(config.project_root)
    target = Path(args.file)
    target = target.resolve() if target.is_absolute() else (Path.cwd() / target).resolve()
    try:
        rel_path = target.relative_to(root).as_posix()
    except ValueError:
        raise ConfigError(f"{args.file} is outside the project root {root}") from None
    if not target.is_file():
        raise ConfigError(f"File not found: {args.file}")

    profile = analyze_file(rel_path, config)
    if profile is None:
        raise ConfigError(f"Cannot read {args.file}")

    if args.json:
        print(json.dumps(profile_to_dict(profile), indent=2))
        return 0

    print(f"{profile.kind.value}  {profile.name}  ({profile.path})")
    print(f"  category:   {profile.category.value}")
    print(f"  complexity: {profile.complexity.raw if profile.complexity else 0} ({profile.tier.value})")
    if profile.props:
        print("  props:")
        for p in profile.props:
            opt = "?" if p.optional else ""
            print(f"    {p.name}{opt}: {p.inferred_type or 'unknown'}")
    if profile.state:
        print("  state:")
        for s in profile.state:
            print(f"    {s.name}: {s.inferred_type or 'unknown'}  ({s.hook})")
    if profile.patterns:
        print(f"  patterns:   {', '.join(sorted(t.value for t in profile.patterns))}")
    if profile.internal_specifiers:
        print(f"  imports:    {', '.join(profile.internal_specifiers)}")
    print(f"  target:     {config.target_path_for(profile.path, profile.has_markup)}")
    return 0


def main(argv: list[str] | None = None) -> None:
    logging.basicConfig(
        level=logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    parser = argparse.ArgumentParser(
        prog="tsmigrate",
        description="Plan and run a batched JSX → TSX migration",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    parser.add_argument("--config", help="Config file (default: <project>/tsmigrate.json)")
    sub = parser.add_subparsers(dest="command", required=True)

    # plan
    p = sub.add_parser("plan", help="Analyze components and write inventory, roadmap and report")
    p.add_argument("path", nargs="?", default=".", help="Project root (default: .)")

    # batches
    p = sub.add_parser("batches", help="List roadmap batches")
    p.add_argument("--path", default=".", help="Project root")
    p.add_argument("--list", action="store_true", help="Also list each batch's components")

    # run
    p = sub.add_parser("run", help="Migrate one batch")
    p.add_argument("batch_id", type=int, help="Batch id from the roadmap")
    p.add_argument("--path", default=".", help="Project root")
    p.add_argument("--dry-run", action="store_true", help="Transform without writing anything")
    p.add_argument("--verbose", action="store_true", default=argparse.SUPPRESS, help="Verbose logging")
    p.add_argument("--skip-existing", action="store_true", help="Skip components whose target exists")
    p.add_argument("--force", action="store_true", help="Overwrite targets with different content")
    p.add_argument("--resume", action="store_true", help="Continue from the batch checkpoint")
    p.add_argument("--memory", type=int, help="Memory budget in MB")
    p.add_argument("--workers", type=int, help="Worker threads")
    p.add_argument("--verify", action="store_true", help="Type-check each written target with tsc")

    # status
    p = sub.add_parser("status", help="Show a batch checkpoint, or an overview of all runs")
    p.add_argument("batch_id", type=int, nargs="?", help="Batch id (default: overview)")
    p.add_argument("--path", default=".", help="Project root")

    # analyze
    p = sub.add_parser("analyze", help="Analyze a single component file")
    p.add_argument("file", help="Component file")
    p.add_argument("--path", default=".", help="Project root")
    p.add_argument("--json", action="store_true", help="Print the profile as JSON")

    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger("tsmigrate").setLevel(logging.DEBUG)

    handlers = {
        "plan": cmd_plan,
        "batches": cmd_batches,
        "run": cmd_run,
        "status": cmd_status,
        "analyze": cmd_analyze,
    }

    try:
        code = handlers[args.command](args)
    except MigrationError as e:
        print(f"error: {e}", file=sys.stderr)
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
