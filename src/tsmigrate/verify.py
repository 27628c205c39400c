"""Optional type-check of a written target with the project's TypeScript compiler."""

import logging
import subprocess
from pathlib import Path

log = logging.getLogger(__name__)

_MAX_REPORTED_LINES = 5


def tsc_command(target: str) -> list[str]:
    return ["npx", "tsc", "--noEmit", "--jsx", "preserve", "--skipLibCheck", target]


def verify_target(target: str, project_root: str, timeout: int = 120) -> list[str]:
    """
    Type-check one file. Returns warnings; an empty list means it passed or
    was not checked. Never raises.
    """
    root = Path(project_root)
    if not (root / "tsconfig.json").exists():
        log.debug("No tsconfig.json in %s, skipping type check", root)
        return []

    try:
        proc = subprocess.run(
            tsc_command(target),
            cwd=str(root),
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except (subprocess.TimeoutExpired, FileNotFoundError) as e:
        log.warning("Type check could not run for %s: %s", target, e)
        return [f"type check skipped: {e}"]

    if proc.returncode == 0:
        return []

    output = (proc.stdout or proc.stderr or "").strip().splitlines()
    log.info("Type check reported %d lines for %s", len(output), target)
    warnings = [f"tsc: {line}" for line in output[:_MAX_REPORTED_LINES]]
    if len(output) > _MAX_REPORTED_LINES:
        warnings.append(f"tsc: ... {len(output) - _MAX_REPORTED_LINES} more lines")
    return warnings or [f"tsc exited with status {proc.returncode}"]
