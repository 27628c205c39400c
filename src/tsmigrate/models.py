"""Core data structures for tsmigrate."""

from dataclasses import dataclass, field
from enum import Enum

from tree_sitter import Tree

UNKNOWN_TYPE = "unknown"


class ComponentKind(str, Enum):
    CLASS_COMPONENT = "ClassComponent"
    FUNCTION_COMPONENT = "FunctionComponent"
    HIGHER_ORDER_COMPONENT = "HigherOrderComponent"
    CUSTOM_HOOK = "CustomHook"
    CONTEXT_PROVIDER = "ContextProvider"
    UNKNOWN = "Unknown"


class PatternTag(str, Enum):
    CONDITIONAL_RENDERING = "ConditionalRendering"
    LIST_RENDERING = "ListRendering"
    DATA_FETCHING = "DataFetching"
    FORM_HANDLING = "FormHandling"
    CONTROLLED_INPUT = "ControlledInput"
    COMPOSITION = "Composition"
    MEMOIZATION = "Memoization"


class ComplexityTier(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very-high"


class Category(str, Enum):
    LAYOUT = "layout"
    UI = "ui"
    FORM = "form"
    FEATURE = "feature"
    PAGE = "page"
    UTILITY = "utility"
    OTHER = "other"


class Priority(str, Enum):
    MIGRATED = "migrated"
    HIGHEST = "highest"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass
class SourceUnit:
    path: str                   # relative to project root, forward slashes
    language: str               # "javascript" | "typescript" | "tsx"
    source: bytes
    tree: Tree | None
    content_hash: str

    @property
    def text(self) -> str:
        return self.source.decode("utf-8", errors="replace")


@dataclass
class LegacyType:
    """A runtime type declaration, e.g. ``PropTypes.arrayOf(PropTypes.string)``."""
    kind: str                   # "string" | "bool" | "arrayOf" | "shape" | ...
    args: list["LegacyType"] = field(default_factory=list)
    literals: list[str] = field(default_factory=list)      # oneOf([...]) members
    fields: dict[str, "LegacyType"] = field(default_factory=dict)  # shape({...})
    ref: str | None = None      # instanceOf(Target)
    required: bool = False


@dataclass
class PropDescriptor:
    name: str
    optional: bool = False
    inferred_type: str | None = None
    default_literal: str | None = None
    default_shape: str | None = None    # literal shape of the default value
    origin: str = "destructure"         # "legacy" | "interface" | "destructure" | "default" | "member" | "whole"
    legacy: LegacyType | None = None
    declared_type: str | None = None    # explicit type text from a TS declaration
    is_rest: bool = False

    @property
    def is_whole(self) -> bool:
        return self.origin == "whole"


@dataclass
class StateDescriptor:
    name: str
    setter_name: str | None = None
    inferred_type: str | None = None
    default_literal: str | None = None
    default_shape: str | None = None
    hook: str = "useState"              # "useState" | "useReducer" | "class"


@dataclass
class EffectDescriptor:
    hook: str                           # "useEffect" | "componentDidMount" | ...
    trigger: str                        # "every-render" | "mount" | "deps" | "dynamic" | "update" | "unmount"
    dependencies: list[str] | None = None
    has_cleanup: bool = False


@dataclass
class RefDescriptor:
    name: str
    initial_literal: str | None = None


@dataclass
class ContextUsage:
    context: str
    variable: str


@dataclass
class CallbackDescriptor:
    hook: str                           # "useCallback" | "useMemo"
    name: str
    dependencies: list[str] | None = None


@dataclass
class HookCall:
    name: str
    source: str                         # import specifier or "local"
    count: int = 1


@dataclass
class ImportRecord:
    specifier: str
    names: list[str]
    internal: bool


@dataclass
class DependencyEdge:
    source: str                 # importer path
    target: str                 # resolved path, or the raw specifier when unresolved
    internal: bool
    resolved: bool


@dataclass
class ComplexityScore:
    raw: float
    tier: ComplexityTier
    contributions: dict[str, float] = field(default_factory=dict)


@dataclass
class UsageScore:
    direct_usage: int
    weighted_score: float
    is_critical: bool


@dataclass
class ComponentProfile:
    path: str
    name: str
    kind: ComponentKind
    language: str = "javascript"
    exported: bool = False
    export_type: str = "none"           # "default" | "named" | "none"
    boundary: str | None = None         # leading directive, e.g. "use client"
    props: list[PropDescriptor] = field(default_factory=list)
    state: list[StateDescriptor] = field(default_factory=list)
    effects: list[EffectDescriptor] = field(default_factory=list)
    refs: list[RefDescriptor] = field(default_factory=list)
    contexts: list[ContextUsage] = field(default_factory=list)
    callbacks: list[CallbackDescriptor] = field(default_factory=list)
    hooks: list[HookCall] = field(default_factory=list)
    imports: list[ImportRecord] = field(default_factory=list)
    patterns: set[PatternTag] = field(default_factory=set)
    complexity: ComplexityScore | None = None
    category: Category = Category.OTHER
    internal_dependencies: list[str] = field(default_factory=list)
    depended_on_by: list[str] = field(default_factory=list)
    usage_score: UsageScore | None = None
    migration_priority: Priority | None = None
    migrated: bool = False
    has_markup: bool = False
    parse_error: bool = False
    file_size: int = 0
    content_hash: str = ""

    @property
    def tier(self) -> ComplexityTier:
        return self.complexity.tier if self.complexity else ComplexityTier.LOW

    @property
    def external_dependencies(self) -> list[str]:
        seen: dict[str, None] = {}
        for imp in self.imports:
            if not imp.internal:
                seen.setdefault(imp.specifier, None)
        return list(seen)

    @property
    def internal_specifiers(self) -> list[str]:
        return [imp.specifier for imp in self.imports if imp.internal]


@dataclass
class BatchComponent:
    name: str
    path: str
    complexity: float
    complexity_level: str
    category: str
    dependency_count: int
    used_by_count: int

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "path": self.path,
            "complexity": self.complexity,
            "complexityLevel": self.complexity_level,
            "category": self.category,
            "dependencyCount": self.dependency_count,
            "usedByCount": self.used_by_count,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "BatchComponent":
        return cls(
            name=data["name"],
            path=data["path"],
            complexity=data.get("complexity", 0),
            complexity_level=data.get("complexityLevel", ComplexityTier.LOW.value),
            category=data.get("category", Category.OTHER.value),
            dependency_count=data.get("dependencyCount", 0),
            used_by_count=data.get("usedByCount", 0),
        )


@dataclass
class MigrationBatch:
    id: int
    name: str
    description: str
    components: list[BatchComponent] = field(default_factory=list)

    @property
    def component_count(self) -> int:
        return len(self.components)

    @property
    def average_complexity(self) -> int:
        if not self.components:
            return 0
        return round(sum(c.complexity for c in self.components) / len(self.components))

    @property
    def estimated_effort(self) -> float:
        return self.component_count * self.average_complexity / 10

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "componentCount": self.component_count,
            "averageComplexity": self.average_complexity,
            "estimatedEffort": self.estimated_effort,
            "components": [c.to_dict() for c in self.components],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MigrationBatch":
        return cls(
            id=int(data["id"]),
            name=data.get("name", f"Batch {data['id']}"),
            description=data.get("description", ""),
            components=[BatchComponent.from_dict(c) for c in data.get("components", [])],
        )


@dataclass
class MigrationResult:
    index: int
    name: str
    success: bool
    skipped: bool = False
    reason: str | None = None
    error: str | None = None
    stage: str | None = None            # pipeline stage that failed
    warnings: list[str] = field(default_factory=list)
    duration_ms: int = 0
    target_path: str | None = None
    dry_run: bool = False

    def to_dict(self) -> dict:
        data: dict = {
            "index": self.index,
            "name": self.name,
            "success": self.success,
            "duration_ms": self.duration_ms,
        }
        if self.skipped:
            data["skipped"] = True
        if self.reason:
            data["reason"] = self.reason
        if self.error:
            data["error"] = self.error
        if self.stage:
            data["stage"] = self.stage
        if self.warnings:
            data["warnings"] = list(self.warnings)
        if self.target_path:
            data["targetPath"] = self.target_path
        if self.dry_run:
            data["dryRun"] = True
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "MigrationResult":
        return cls(
            index=int(data["index"]),
            name=data["name"],
            success=bool(data["success"]),
            skipped=bool(data.get("skipped", False)),
            reason=data.get("reason"),
            error=data.get("error"),
            stage=data.get("stage"),
            warnings=list(data.get("warnings", [])),
            duration_ms=int(data.get("duration_ms", 0)),
            target_path=data.get("targetPath"),
            dry_run=bool(data.get("dryRun", False)),
        )


@dataclass
class Checkpoint:
    batch_id: int
    component_count: int
    completed_count: int
    current_index: int
    next_index: int
    results: list[MigrationResult] = field(default_factory=list)
    error: str | None = None
    timestamp: str = ""                 # ISO 8601

    def to_dict(self) -> dict:
        data = {
            "batchId": self.batch_id,
            "timestamp": self.timestamp,
            "componentCount": self.component_count,
            "completedCount": self.completed_count,
            "currentIndex": self.current_index,
            "nextIndex": self.next_index,
            "results": [r.to_dict() for r in self.results],
        }
        if self.error:
            data["error"] = self.error
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Checkpoint":
        return cls(
            batch_id=int(data["batchId"]),
            component_count=int(data.get("componentCount", 0)),
            completed_count=int(data.get("completedCount", 0)),
            current_index=int(data.get("currentIndex", 0)),
            next_index=int(data.get("nextIndex", 0)),
            results=[MigrationResult.from_dict(r) for r in data.get("results", [])],
            error=data.get("error"),
            timestamp=data.get("timestamp", ""),
        )
