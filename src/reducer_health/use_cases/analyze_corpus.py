"""Use Case: Analyze Corpus - source paths in, immutable Report out."""

import dataclasses
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING

from reducer_health.domain.entities import (
    FeatureFact,
    IngestionFailure,
    Report,
    SkippedUnit,
    SourceUnit,
    UnitReport,
)
from reducer_health.domain.errors import IngestionError, ParseSkipped
from reducer_health.domain.extraction import FactExtractor
from reducer_health.domain.graph import CompositionGraphBuilder
from reducer_health.domain.planning import ExtractionPlanner
from reducer_health.domain.report import ReportAssembler
from reducer_health.domain.rules import RuleEngine
from reducer_health.domain.scoring import TestabilityScorer

if TYPE_CHECKING:
    from reducer_health.domain.config import ConfigurationLoader
    from reducer_health.domain.protocols import FileSystemProtocol, TelemetryPort


class AnalyzeCorpusUseCase:
    """
    Orchestrate ingestion, fact extraction, rules, scoring, graph, plan and report.

    Extraction runs on a worker pool; results are merged by unit identifier so
    output never depends on scheduling. Graph construction waits for every
    fact-sheet. Planning and assembly are single-threaded. Configuration and
    internal-invariant errors propagate; per-unit errors land in the Report.
    """

    def __init__(
        self,
        filesystem: "FileSystemProtocol",
        telemetry: "TelemetryPort",
        config_loader: "ConfigurationLoader",
        extractor: FactExtractor | None = None,
        graph_builder: CompositionGraphBuilder | None = None,
    ) -> None:
        self.filesystem = filesystem
        self.telemetry = telemetry
        self.config_loader = config_loader
        self.extractor = extractor or FactExtractor()
        self.graph_builder = graph_builder or CompositionGraphBuilder()
        self.rule_engine = RuleEngine(config_loader.rule_thresholds)
        self.scorer = TestabilityScorer(config_loader.threshold, config_loader.penalties)
        self.planner = ExtractionPlanner(
            config_loader.threshold, config_loader.max_effort_cap_hours)
        self.assembler = ReportAssembler(
            threshold=config_loader.threshold,
            strict=config_loader.strict,
            strict_ingestion=config_loader.strict_ingestion,
        )

    def execute(self, roots: Sequence[str]) -> Report:
        """Ingest every source under roots and analyze the readable ones."""
        paths, missing = self.filesystem.collect_source_paths(
            list(roots), self.config_loader.exclude)
        self.telemetry.step(f"Scanning {len(paths)} source file(s)")
        failures = [IngestionFailure(path=p, reason=r) for p, r in missing]

        with ThreadPoolExecutor(max_workers=self.config_loader.workers) as pool:
            outcomes = list(pool.map(self._read, paths))
        sources: list[SourceUnit] = []
        for outcome in outcomes:
            if isinstance(outcome, IngestionFailure):
                self.telemetry.warning(f"Could not read {outcome.path}: {outcome.reason}")
                failures.append(outcome)
            else:
                sources.append(outcome)
        return self.analyze(sources, failures)

    def analyze(
        self,
        sources: Sequence[SourceUnit],
        ingestion_errors: Sequence[IngestionFailure] = (),
    ) -> Report:
        """Pure engine: identical sources always yield an identical Report."""
        with ThreadPoolExecutor(max_workers=self.config_loader.workers) as pool:
            extracted = list(pool.map(self._extract, sources))

        facts: list[FeatureFact] = []
        skipped: list[SkippedUnit] = []
        for outcome in extracted:
            if isinstance(outcome, SkippedUnit):
                self.telemetry.debug(f"Skipped {outcome.path}: {outcome.reason}")
                skipped.append(outcome)
            else:
                facts.append(outcome)
        facts = self._disambiguate(facts)

        units = [
            UnitReport(
                fact=fact,
                violations=tuple(self.rule_engine.evaluate(fact)),
                score=self.scorer.score(fact),
            )
            for fact in facts
        ]
        graph = self.graph_builder.build(facts)
        plan = self.planner.plan(units, graph)
        report = self.assembler.assemble(units, graph, plan, skipped, ingestion_errors)
        self.telemetry.step(
            f"Analyzed {len(report.units)} unit(s), skipped {len(report.skipped)}, "
            f"{len(report.ingestion_errors)} ingestion error(s): {report.verdict.value.upper()}"
        )
        return report

    def _read(self, path: str) -> SourceUnit | IngestionFailure:
        try:
            return self.filesystem.read_source(path)
        except IngestionError as exc:
            return IngestionFailure(path=exc.path, reason=exc.reason)

    def _extract(self, source: SourceUnit) -> FeatureFact | SkippedUnit:
        try:
            return self.extractor.extract(source)
        except ParseSkipped as exc:
            return SkippedUnit(path=exc.path, reason=exc.reason)

    def _disambiguate(self, facts: list[FeatureFact]) -> list[FeatureFact]:
        """
        Keep identifiers unique, sorted by identifier.

        The first unit by path keeps a shared name (and receives references);
        later ones become `Name@path`.
        """
        seen: set[str] = set()
        unique: list[FeatureFact] = []
        for fact in sorted(facts, key=lambda f: (f.identifier, f.path)):
            if fact.identifier in seen:
                renamed = f"{fact.identifier}@{fact.path}"
                self.telemetry.warning(
                    f"Duplicate feature name {fact.identifier} in {fact.path}; reported as {renamed}")
                fact = dataclasses.replace(fact, identifier=renamed)
            seen.add(fact.identifier)
            unique.append(fact)
        return sorted(unique, key=lambda f: f.identifier)
