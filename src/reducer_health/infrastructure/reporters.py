"""Report renderers - human text and json. Implements ReportRendererProtocol."""

import json
from typing import TYPE_CHECKING

from reducer_health.domain.constants import SEVERITY_GLYPHS
from reducer_health.domain.entities import OutputMode

if TYPE_CHECKING:
    from reducer_health.domain.entities import (
        CompositionGraph,
        ExtractionCandidate,
        Report,
        UnitReport,
    )


class ReportRenderer:
    """Renders a Report as human-readable text or a stable json document."""

    _RULE_WIDTH = 64

    def render(self, report: "Report", mode: OutputMode) -> str:
        """Render report for mode. Json output is byte-identical for equal reports."""
        if mode is OutputMode.JSON:
            return self.render_json(report)
        return self.render_human(report)

    @staticmethod
    def render_json(report: "Report") -> str:
        return json.dumps(report.to_dict(), indent=2, sort_keys=True)

    def render_human(self, report: "Report") -> str:
        lines: list[str] = []
        lines.extend(self._header(report))
        for unit in report.units:
            lines.extend(self._unit_section(unit))
        lines.extend(self._graph_section(report.graph))
        lines.extend(self._plan_section(report.plan))
        lines.extend(self._ingestion_section(report))
        lines.extend(self._verdict_section(report))
        return "\n".join(lines)

    def _header(self, report: "Report") -> list[str]:
        strict = "strict" if report.strict else "lenient"
        return [
            "=" * self._RULE_WIDTH,
            f"  REDUCER HEALTH   units: {len(report.units)}   "
            f"threshold: {report.threshold}   mode: {strict}",
            "=" * self._RULE_WIDTH,
        ]

    @staticmethod
    def _unit_section(unit: "UnitReport") -> list[str]:
        status = "PASS" if unit.score.passed else "BELOW THRESHOLD"
        lines = [
            "",
            f"{unit.identifier}  ({unit.fact.path})",
            f"  score: {unit.score.score}/100  [{status}]",
        ]
        for deduction in unit.score.deductions:
            lines.append(
                f"    -{deduction.points:<3} {deduction.reason} x{deduction.occurrences}")
        if not unit.violations:
            lines.append("  no violations")
        for violation in unit.violations:
            glyph = SEVERITY_GLYPHS.get(violation.severity.value, "?")
            lines.append(
                f"  {glyph} [{violation.rule_id}] {violation.severity.value} "
                f"{violation.title} ({violation.effort.label}, {violation.target})")
            lines.append(f"      {violation.message}")
        return lines

    @staticmethod
    def _graph_section(graph: "CompositionGraph") -> list[str]:
        lines = [
            "",
            "Composition graph",
            f"  {len(graph.nodes)} feature(s), {len(graph.edges)} composition edge(s)",
        ]
        for cycle in graph.cycles:
            lines.append(f"  cycle: {' -> '.join(cycle + (cycle[0],))}")
        for source, target in graph.dangling:
            lines.append(f"  dangling: {source} -> {target} (not in corpus)")
        ranked = sorted(graph.metrics, key=lambda m: (-m.coupling_complexity, m.identifier))
        for metrics in ranked:
            if metrics.coupling_complexity == 0:
                continue
            lines.append(
                f"  {metrics.identifier}: fan-out {metrics.fan_out}, "
                f"subtree {metrics.subtree_size}, fan-in {metrics.fan_in}")
        return lines

    @staticmethod
    def _plan_section(plan: "tuple[ExtractionCandidate, ...]") -> list[str]:
        lines = ["", "Extraction plan"]
        if not plan:
            lines.append("  nothing to extract")
            return lines
        for rank, candidate in enumerate(plan, 1):
            subject = candidate.unit
            if candidate.edge is not None:
                subject = f"{candidate.edge[0]} -> {candidate.edge[1]}"
            lines.append(
                f"  {rank:>2}. [{candidate.priority.value}] {candidate.target} {subject} "
                f"({candidate.effort.label}, coupling {candidate.coupling_complexity})")
            for reason in candidate.justification:
                lines.append(f"        - {reason}")
        return lines

    @staticmethod
    def _ingestion_section(report: "Report") -> list[str]:
        lines: list[str] = []
        if report.skipped:
            lines.extend(["", "Skipped (not a feature reducer)"])
            lines.extend(f"  {s.path}: {s.reason}" for s in report.skipped)
        if report.ingestion_errors:
            lines.extend(["", "Ingestion errors"])
            lines.extend(f"  {e.path}: {e.reason}" for e in report.ingestion_errors)
        return lines

    def _verdict_section(self, report: "Report") -> list[str]:
        lines = ["", "=" * self._RULE_WIDTH, f"  VERDICT: {report.verdict.value.upper()}"]
        lines.extend(f"  - {reason}" for reason in report.verdict_reasons)
        lines.append("=" * self._RULE_WIDTH)
        return lines
