"""Exception hierarchy for tsmigrate.

Per-item failures are recovered by the orchestrator and recorded as failed
results; everything else escalates to the CLI, which exits with status 1.
"""


class MigrationError(Exception):
    """Base class for all tsmigrate errors."""


class ConfigError(MigrationError):
    pass


class SourceLoadError(MigrationError):
    pass


class SourceParseError(MigrationError):
    pass


class RoadmapError(MigrationError):
    pass


class BatchNotFoundError(MigrationError):
    def __init__(self, batch_id: int, available: list[int]) -> None:
        self.batch_id = batch_id
        self.available = available
        listed = ", ".join(str(b) for b in available) or "none"
        super().__init__(f"Batch {batch_id} not found (available: {listed})")


class StageError(MigrationError):
    """A pipeline stage failed for one component."""

    def __init__(self, stage: str, cause: BaseException) -> None:
        self.stage = stage
        self.cause = cause
        super().__init__(f"{stage}: {cause}")
