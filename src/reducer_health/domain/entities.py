from dataclasses import dataclass, field
from enum import Enum


class OutputMode(Enum):
    """Rendering mode for the report."""
    HUMAN = "human"
    JSON = "json"


class Severity(Enum):
    """Violation severity. CRITICAL is reserved for closures that block test substitution."""
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @property
    def rank(self) -> int:
        """0 for CRITICAL up to 3 for LOW (sort key)."""
        return _SEVERITY_ORDER.index(self)

    @property
    def is_blocking(self) -> bool:
        """True for severities that fail the run in strict mode."""
        return self in (Severity.CRITICAL, Severity.HIGH)


_SEVERITY_ORDER: tuple[Severity, ...] = (
    Severity.CRITICAL,
    Severity.HIGH,
    Severity.MEDIUM,
    Severity.LOW,
)


class Priority(Enum):
    """Extraction priority bucket."""
    P1 = "P1"
    P2 = "P2"
    P3 = "P3"

    @property
    def rank(self) -> int:
        return int(self.value[1:])


class Verdict(Enum):
    """Single pass/fail decision used for gating."""
    PASS = "pass"
    FAIL = "fail"


@dataclass(frozen=True)
class SourceUnit:
    """A file path plus its raw text. Never mutated by the engine."""
    path: str
    text: str


@dataclass(frozen=True)
class FeatureFact:
    """
    Structural fact-sheet for one feature reducer.

    Every count is derived from the source text alone, so extracting the same
    text twice yields an equal FeatureFact.
    """
    identifier: str
    path: str
    state_properties: tuple[str, ...] = ()
    actions: tuple[str, ...] = ()
    closure_properties: tuple[str, ...] = ()
    invoked_closures: tuple[str, ...] = ()
    dependencies: tuple[str, ...] = ()
    uncontrolled_effects: tuple[str, ...] = ()
    children: tuple[str, ...] = ()
    duplicate_handler_count: int = 0
    vague_methods: tuple[str, ...] = ()

    def counters(self) -> dict[str, int]:
        """Named counters that rule conditions and the scorer read."""
        return {
            "state_property_count": len(self.state_properties),
            "action_count": len(self.actions),
            "closure_count": len(self.closure_properties),
            "invoked_closure_count": len(self.invoked_closures),
            "dependency_count": len(self.dependencies),
            "missing_injection_count": len(self.uncontrolled_effects),
            "duplicate_handler_count": self.duplicate_handler_count,
            "vague_method_count": len(self.vague_methods),
            "child_count": len(self.children),
        }

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for serialization."""
        return {
            "stateProperties": list(self.state_properties),
            "actions": list(self.actions),
            "closureProperties": list(self.closure_properties),
            "dependencies": list(self.dependencies),
            "uncontrolledEffects": list(self.uncontrolled_effects),
            "children": list(self.children),
            "duplicateHandlers": self.duplicate_handler_count,
            "vagueMethods": list(self.vague_methods),
        }


@dataclass(frozen=True)
class EffortRange:
    """Estimated effort in hours, low to high."""
    low: float
    high: float

    def __add__(self, other: "EffortRange") -> "EffortRange":
        return EffortRange(low=self.low + other.low, high=self.high + other.high)

    def scaled(self, factor: int) -> "EffortRange":
        """Effort for `factor` occurrences of the same fix."""
        return EffortRange(low=self.low * factor, high=self.high * factor)

    def capped(self, cap: float) -> "EffortRange":
        """Clamp both ends at `cap` hours."""
        return EffortRange(low=min(self.low, cap), high=min(self.high, cap))

    @property
    def label(self) -> str:
        """Display form, e.g. '4-8h' or '2h'."""
        low = _format_hours(self.low)
        high = _format_hours(self.high)
        if low == high:
            return f"{low}h"
        return f"{low}-{high}h"

    def to_dict(self) -> dict[str, float]:
        """Convert to dictionary for serialization."""
        return {"low": self.low, "high": self.high}


def _format_hours(value: float) -> str:
    """Drop the fraction for whole hours."""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.1f}"


@dataclass(frozen=True)
class Violation:
    """A fired rule on one unit. Recomputed every run."""
    rule_id: str
    title: str
    severity: Severity
    message: str
    unit: str
    effort: EffortRange
    target: str

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for serialization."""
        return {
            "rule": self.rule_id,
            "title": self.title,
            "severity": self.severity.value,
            "message": self.message,
            "effortHours": self.effort.to_dict(),
            "target": self.target,
        }


@dataclass(frozen=True)
class Deduction:
    """One line of the score's explanation: `points` taken for `occurrences` hits."""
    reason: str
    points: int
    occurrences: int

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for serialization."""
        return {
            "reason": self.reason,
            "points": self.points,
            "occurrences": self.occurrences,
        }


@dataclass(frozen=True)
class TestabilityScore:
    """
    Testability score 0-100 with its deduction trail.

    100 minus the sum of deduction points always equals `score`.
    """
    __test__ = False

    unit: str
    score: int
    deductions: tuple[Deduction, ...]
    threshold: int

    @property
    def passed(self) -> bool:
        """Whether the unit clears the configured pass bar."""
        return self.score >= self.threshold

    def explain(self) -> str:
        """Human-readable 'why N, not 100'."""
        if not self.deductions:
            return f"{self.score}/100 (no deductions)"
        parts = ", ".join(f"-{d.points} {d.reason}" for d in self.deductions)
        return f"{self.score}/100 = 100 {parts}"


@dataclass(frozen=True)
class NodeMetrics:
    """Coupling metrics for one feature in the composition graph."""
    identifier: str
    fan_in: int
    fan_out: int
    subtree_size: int
    in_cycle: bool

    @property
    def coupling_complexity(self) -> int:
        """Direct children plus every reachable descendant."""
        return self.fan_out + self.subtree_size

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for serialization."""
        return {
            "fanIn": self.fan_in,
            "fanOut": self.fan_out,
            "subtreeSize": self.subtree_size,
            "inCycle": self.in_cycle,
            "couplingComplexity": self.coupling_complexity,
        }


@dataclass(frozen=True)
class CompositionGraph:
    """Read-only summary of the feature composition graph for one run."""
    nodes: tuple[str, ...] = ()
    edges: tuple[tuple[str, str], ...] = ()
    cycles: tuple[tuple[str, ...], ...] = ()
    dangling: tuple[tuple[str, str], ...] = ()
    metrics: tuple[NodeMetrics, ...] = ()
    _by_identifier: dict[str, NodeMetrics] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_by_identifier", {m.identifier: m for m in self.metrics})

    def node_metrics(self, identifier: str) -> NodeMetrics | None:
        """Metrics for a node, or None if the identifier is not a node."""
        return self._by_identifier.get(identifier)

    def fan_in(self, identifier: str) -> int:
        m = self.node_metrics(identifier)
        return m.fan_in if m else 0

    def fan_out(self, identifier: str) -> int:
        m = self.node_metrics(identifier)
        return m.fan_out if m else 0

    def coupling_complexity(self, identifier: str) -> int:
        m = self.node_metrics(identifier)
        return m.coupling_complexity if m else 0

    def cycle_members(self) -> set[str]:
        """Every node that is reachable from itself."""
        return {m.identifier for m in self.metrics if m.in_cycle}

    def cycle_edges(self) -> list[tuple[str, str]]:
        """Edges whose both ends sit in the same cycle."""
        out: list[tuple[str, str]] = []
        for source, target in self.edges:
            for cycle in self.cycles:
                if source in cycle and target in cycle:
                    out.append((source, target))
                    break
        return out

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for serialization."""
        cyclic = set(self.cycle_edges())
        return {
            "nodes": list(self.nodes),
            "edges": [
                {
                    "from": source,
                    "to": target,
                    "kind": "cycle" if (source, target) in cyclic else "composition",
                }
                for source, target in self.edges
            ],
            "cycles": [list(c) for c in self.cycles],
            "dangling": [{"from": source, "to": target} for source, target in self.dangling],
            "metrics": {m.identifier: m.to_dict() for m in self.metrics},
        }


@dataclass(frozen=True)
class ExtractionCandidate:
    """A recommended decomposition step for one unit or one composition edge."""
    unit: str
    target: str
    priority: Priority
    effort: EffortRange
    justification: tuple[str, ...]
    coupling_complexity: int
    edge: tuple[str, str] | None = None

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for serialization."""
        candidate: dict[str, object] = {"unit": self.unit, "target": self.target}
        if self.edge is not None:
            candidate["edge"] = {"from": self.edge[0], "to": self.edge[1]}
        return {
            "candidate": candidate,
            "priority": self.priority.value,
            "effortHours": self.effort.to_dict(),
            "justification": list(self.justification),
            "couplingComplexity": self.coupling_complexity,
        }


@dataclass(frozen=True)
class UnitReport:
    """Violations and score for one scored unit."""
    fact: FeatureFact
    violations: tuple[Violation, ...]
    score: TestabilityScore

    @property
    def identifier(self) -> str:
        return self.fact.identifier

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.fact.identifier,
            "path": self.fact.path,
            "violations": [v.to_dict() for v in self.violations],
            "score": self.score.score,
            "passed": self.score.passed,
            "deductions": [d.to_dict() for d in self.score.deductions],
            "facts": self.fact.to_dict(),
        }


@dataclass(frozen=True)
class SkippedUnit:
    """A unit that does not look like a feature reducer."""
    path: str
    reason: str

    def to_dict(self) -> dict[str, str]:
        return {"path": self.path, "reason": self.reason}


@dataclass(frozen=True)
class IngestionFailure:
    """A path that could not be read."""
    path: str
    reason: str

    def to_dict(self) -> dict[str, str]:
        return {"path": self.path, "reason": self.reason}


@dataclass(frozen=True)
class Report:
    """Complete result of one invocation. Immutable after assembly."""
    units: tuple[UnitReport, ...]
    graph: CompositionGraph
    plan: tuple[ExtractionCandidate, ...]
    verdict: Verdict
    skipped: tuple[SkippedUnit, ...] = ()
    ingestion_errors: tuple[IngestionFailure, ...] = ()
    strict: bool = False
    threshold: int = 75
    verdict_reasons: tuple[str, ...] = field(default_factory=tuple)

    @property
    def passed(self) -> bool:
        return self.verdict is Verdict.PASS

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for serialization (e.g. JSON)."""
        return {
            "version": "1.0.0",
            "strict": self.strict,
            "threshold": self.threshold,
            "units": [u.to_dict() for u in self.units],
            "skipped": [s.to_dict() for s in self.skipped],
            "ingestionErrors": [e.to_dict() for e in self.ingestion_errors],
            "graph": self.graph.to_dict(),
            "plan": [c.to_dict() for c in self.plan],
            "verdict": self.verdict.value,
            "verdictReasons": list(self.verdict_reasons),
        }
