"""Report assembly: pure aggregation plus the pass/fail verdict. No analysis logic."""

from collections.abc import Sequence

from reducer_health.domain.entities import (
    CompositionGraph,
    ExtractionCandidate,
    IngestionFailure,
    Report,
    SkippedUnit,
    UnitReport,
    Verdict,
)


class ReportAssembler:
    """
    Merges per-unit results, the graph summary and the plan into one Report.

    Verdict is FAIL when strict mode is on and any HIGH/CRITICAL violation
    exists, when any unit scores below threshold, or when strict_ingestion is
    on and a file could not be read. Otherwise PASS.
    """

    def __init__(self, threshold: int, strict: bool = False, strict_ingestion: bool = False) -> None:
        self._threshold = threshold
        self._strict = strict
        self._strict_ingestion = strict_ingestion

    def assemble(
        self,
        units: Sequence[UnitReport],
        graph: CompositionGraph,
        plan: Sequence[ExtractionCandidate],
        skipped: Sequence[SkippedUnit] = (),
        ingestion_errors: Sequence[IngestionFailure] = (),
    ) -> Report:
        ordered_units = tuple(sorted(units, key=lambda u: (u.identifier, u.fact.path)))
        reasons = self.verdict_reasons(ordered_units, ingestion_errors)
        return Report(
            units=ordered_units,
            graph=graph,
            plan=tuple(plan),
            verdict=Verdict.FAIL if reasons else Verdict.PASS,
            skipped=tuple(sorted(skipped, key=lambda s: s.path)),
            ingestion_errors=tuple(sorted(ingestion_errors, key=lambda e: e.path)),
            strict=self._strict,
            threshold=self._threshold,
            verdict_reasons=tuple(reasons),
        )

    def verdict_reasons(
        self,
        units: Sequence[UnitReport],
        ingestion_errors: Sequence[IngestionFailure],
    ) -> list[str]:
        """Why the run fails; empty means pass."""
        reasons: list[str] = []
        if self._strict:
            blocking = [
                v for u in units for v in u.violations if v.severity.is_blocking
            ]
            if blocking:
                reasons.append(
                    f"strict: {len(blocking)} HIGH/CRITICAL violation(s)")
        below = [u.identifier for u in units if u.score.score < self._threshold]
        if below:
            reasons.append(
                f"{len(below)} unit(s) below testability threshold {self._threshold}: "
                + ", ".join(below)
            )
        if self._strict_ingestion and ingestion_errors:
            reasons.append(
                f"strict ingestion: {len(ingestion_errors)} unreadable file(s)")
        return reasons
