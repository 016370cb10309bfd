"""Extraction planning: turn violations, scores and coupling into a prioritized action list.

Pure domain logic, no I/O. Single-threaded; the output order is part of the contract.
"""

from __future__ import annotations

import statistics
from collections.abc import Sequence

from reducer_health.domain.constants import CYCLE_EFFORT_HOURS, TESTABILITY_EFFORT_HOURS
from reducer_health.domain.entities import (
    CompositionGraph,
    EffortRange,
    ExtractionCandidate,
    Priority,
    Severity,
    UnitReport,
    Violation,
)

# Rules whose fix is a structural split, ranked by coupling impact
_STRUCTURAL_RULES: frozenset[str] = frozenset({"1.1", "1.5"})


class ExtractionPlanner:
    """
    Builds ExtractionCandidates ordered by priority, then coupling complexity
    (descending), then unit identifier.

    P1: any CRITICAL violation in the group, or the unit scores below threshold.
    P2: rule 1.1/1.5 on a unit whose coupling complexity is above the corpus
        median, and every composition-cycle edge.
    P3: everything else.
    """

    def __init__(self, threshold: int, max_effort_cap_hours: float) -> None:
        self._threshold = threshold
        self._cap = max_effort_cap_hours

    def plan(
        self, units: Sequence[UnitReport], graph: CompositionGraph
    ) -> list[ExtractionCandidate]:
        median = self.coupling_median(units, graph)
        candidates: list[ExtractionCandidate] = []
        for unit in units:
            candidates.extend(self._unit_candidates(unit, graph, median))
        candidates.extend(self._cycle_candidates(graph))
        return sorted(candidates, key=self._sort_key)

    @staticmethod
    def coupling_median(units: Sequence[UnitReport], graph: CompositionGraph) -> float:
        """Median coupling complexity over scored units (0 for an empty corpus)."""
        values = [graph.coupling_complexity(u.identifier) for u in units]
        if not values:
            return 0.0
        return float(statistics.median(values))

    def _unit_candidates(
        self, unit: UnitReport, graph: CompositionGraph, median: float
    ) -> list[ExtractionCandidate]:
        coupling = graph.coupling_complexity(unit.identifier)
        below_threshold = unit.score.score < self._threshold

        groups: dict[str, list[Violation]] = {}
        for violation in unit.violations:
            groups.setdefault(violation.target, []).append(violation)

        candidates: list[ExtractionCandidate] = []
        for target, violations in groups.items():
            effort = EffortRange(0, 0)
            for violation in violations:
                effort = effort + violation.effort
            justification = [
                f"Rule {v.rule_id} {v.title} ({v.severity.value})" for v in violations
            ]
            critical = any(v.severity is Severity.CRITICAL for v in violations)
            structural = any(v.rule_id in _STRUCTURAL_RULES for v in violations)
            if critical or below_threshold:
                priority = Priority.P1
            elif structural and coupling > median:
                priority = Priority.P2
                justification.append(
                    f"coupling complexity {coupling} above corpus median {median:g}")
            else:
                priority = Priority.P3
            if below_threshold:
                justification.append(
                    f"testability {unit.score.score} below threshold {self._threshold}")
            candidates.append(
                ExtractionCandidate(
                    unit=unit.identifier,
                    target=target,
                    priority=priority,
                    effort=effort.capped(self._cap),
                    justification=tuple(justification),
                    coupling_complexity=coupling,
                )
            )

        if below_threshold and not candidates:
            occurrences = sum(d.occurrences for d in unit.score.deductions)
            effort = EffortRange(*TESTABILITY_EFFORT_HOURS).scaled(max(1, occurrences))
            candidates.append(
                ExtractionCandidate(
                    unit=unit.identifier,
                    target="improve-testability",
                    priority=Priority.P1,
                    effort=effort.capped(self._cap),
                    justification=(
                        f"testability {unit.score.score} below threshold {self._threshold}",
                    )
                    + tuple(d.reason for d in unit.score.deductions),
                    coupling_complexity=coupling,
                )
            )
        return candidates

    def _cycle_candidates(self, graph: CompositionGraph) -> list[ExtractionCandidate]:
        """One break-cycle candidate per composition edge inside a cycle."""
        candidates: list[ExtractionCandidate] = []
        for source, target in graph.cycle_edges():
            cycle = next(c for c in graph.cycles if source in c and target in c)
            candidates.append(
                ExtractionCandidate(
                    unit=source,
                    target="break-cycle",
                    priority=Priority.P2,
                    effort=EffortRange(*CYCLE_EFFORT_HOURS).capped(self._cap),
                    justification=(f"composition cycle among {', '.join(cycle)}",),
                    coupling_complexity=graph.coupling_complexity(source),
                    edge=(source, target),
                )
            )
        return candidates

    @staticmethod
    def _sort_key(candidate: ExtractionCandidate) -> tuple[int, int, str, str, tuple[str, str]]:
        return (
            candidate.priority.rank,
            -candidate.coupling_complexity,
            candidate.unit,
            candidate.target,
            candidate.edge or ("", ""),
        )
