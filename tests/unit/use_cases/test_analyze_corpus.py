"""Unit tests for AnalyzeCorpusUseCase."""

import unittest
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest.mock import MagicMock

from reducer_health.domain.config import ConfigurationLoader
from reducer_health.domain.entities import OutputMode, Severity, SourceUnit, Verdict
from reducer_health.domain.errors import InternalInvariantViolation
from reducer_health.infrastructure.gateways.filesystem_gateway import FileSystemGateway
from reducer_health.infrastructure.reporters import ReportRenderer
from reducer_health.use_cases.analyze_corpus import AnalyzeCorpusUseCase


def _swift_feature(
    name: str,
    properties: int = 2,
    actions: int = 2,
    closures: int = 0,
    children: tuple[str, ...] = (),
) -> str:
    lines = ["import ComposableArchitecture", "", "@Reducer", f"struct {name} {{", "  struct State {"]
    lines += [f"    var p{i} = {i}" for i in range(properties)]
    lines += ["  }", "  enum Action {"]
    lines += [f"    case a{i}" for i in range(actions)]
    lines += ["  }"]
    lines += [f"  var effect{i}: () async -> Void" for i in range(closures)]
    lines.append("  var body: some ReducerOf<Self> {")
    for child in children:
        key = child[0].lower() + child[1:]
        lines += [
            f"    Scope(state: \\.{key}, action: \\.{key}) {{",
            f"      {child}()",
            "    }",
        ]
    lines.append("    Reduce { state, action in")
    if closures:
        lines.append("      return .run { _ in")
        lines += [f"        await effect{i}()" for i in range(closures)]
        lines.append("      }")
    else:
        lines.append("      return .none")
    lines += ["    }", "  }", "}", ""]
    return "\n".join(lines)


class TestAnalyzeCorpusUseCase(unittest.TestCase):
    """Test the end-to-end analysis flow."""

    def setUp(self) -> None:
        self.telemetry = MagicMock()
        self._tmp = TemporaryDirectory()
        self.root = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _use_case(self, **config: object) -> AnalyzeCorpusUseCase:
        return AnalyzeCorpusUseCase(
            filesystem=FileSystemGateway(),
            telemetry=self.telemetry,
            config_loader=ConfigurationLoader(config),
        )

    def _write(self, name: str, text: str) -> None:
        (self.root / name).write_text(text, encoding="utf-8")

    def test_empty_corpus_passes(self) -> None:
        report = self._use_case().execute([str(self.root)])
        self.assertEqual(report.units, ())
        self.assertEqual(report.plan, ())
        self.assertEqual(report.verdict, Verdict.PASS)

    def test_unreadable_file_is_reported_and_others_are_analyzed(self) -> None:
        for i in range(9):
            self._write(f"Feature{i}.swift", _swift_feature(f"Feature{i}"))
        (self.root / "Broken.swift").write_bytes(b"struct State { \xff }")

        report = self._use_case().execute([str(self.root)])

        self.assertEqual(len(report.units), 9)
        self.assertEqual(len(report.ingestion_errors), 1)
        self.assertTrue(report.ingestion_errors[0].path.endswith("Broken.swift"))
        self.assertEqual(report.verdict, Verdict.PASS)
        self.telemetry.warning.assert_called()

    def test_unreadable_file_fails_with_strict_ingestion(self) -> None:
        self._write("Feature.swift", _swift_feature("Feature"))
        (self.root / "Broken.swift").write_bytes(b"\xff\xfe")

        report = self._use_case(strict_ingestion=True).execute([str(self.root)])

        self.assertEqual(report.verdict, Verdict.FAIL)

    def test_missing_root_is_an_ingestion_error(self) -> None:
        report = self._use_case().execute([str(self.root / "Nope")])
        self.assertEqual(len(report.ingestion_errors), 1)
        self.assertEqual(report.verdict, Verdict.PASS)

    def test_monolithic_feature_with_closures_fails_in_strict_mode(self) -> None:
        self._write("Monolith.swift", _swift_feature("Monolith", properties=20, actions=42, closures=3))

        report = self._use_case(strict=True).execute([str(self.root)])

        unit = report.units[0]
        self.assertEqual(unit.fact.counters()["state_property_count"], 20)
        self.assertEqual(unit.fact.counters()["action_count"], 42)
        self.assertEqual(unit.fact.counters()["closure_count"], 3)
        by_rule = {v.rule_id: v for v in unit.violations}
        self.assertEqual(by_rule["1.1"].severity, Severity.HIGH)
        self.assertEqual(by_rule["1.2"].severity, Severity.CRITICAL)
        self.assertEqual(unit.score.score, 55)
        self.assertEqual(report.verdict, Verdict.FAIL)
        self.assertTrue(any(r.startswith("strict") for r in report.verdict_reasons))

    def test_non_reducer_files_are_skipped(self) -> None:
        self._write("Feature.swift", _swift_feature("Feature"))
        self._write("View.swift", "import SwiftUI\nstruct ContentView: View {}\n")

        report = self._use_case().execute([str(self.root)])

        self.assertEqual([u.identifier for u in report.units], ["Feature"])
        self.assertEqual(len(report.skipped), 1)
        self.assertTrue(report.skipped[0].path.endswith("View.swift"))

    def test_composition_graph_spans_files(self) -> None:
        self._write("App.swift", _swift_feature("AppFeature", children=("HomeFeature", "ThirdParty")))
        self._write("Home.swift", _swift_feature("HomeFeature"))

        report = self._use_case().execute([str(self.root)])

        self.assertEqual(report.graph.edges, (("AppFeature", "HomeFeature"),))
        self.assertEqual(report.graph.dangling, (("AppFeature", "ThirdParty"),))

    def test_duplicate_feature_names_are_disambiguated(self) -> None:
        (self.root / "a").mkdir()
        (self.root / "b").mkdir()
        (self.root / "a" / "Row.swift").write_text(_swift_feature("RowFeature"))
        (self.root / "b" / "Row.swift").write_text(_swift_feature("RowFeature"))

        report = self._use_case().execute([str(self.root)])

        identifiers = [u.identifier for u in report.units]
        self.assertEqual(identifiers[0], "RowFeature")
        self.assertTrue(identifiers[1].startswith("RowFeature@"))
        self.assertTrue(identifiers[1].endswith("Row.swift"))

    def test_output_is_identical_across_runs_and_worker_counts(self) -> None:
        for i in range(6):
            self._write(
                f"F{i}.swift",
                _swift_feature(f"F{i}", properties=i * 4, closures=i % 3, children=(f"F{(i + 1) % 6}",)),
            )
        renderer = ReportRenderer()

        outputs = {
            renderer.render(self._use_case(workers=workers).execute([str(self.root)]), OutputMode.JSON)
            for workers in (1, 4, 1)
        }

        self.assertEqual(len(outputs), 1)

    def test_analyze_accepts_in_memory_sources(self) -> None:
        report = self._use_case().analyze([SourceUnit("Mem.swift", _swift_feature("Mem"))])
        self.assertEqual([u.identifier for u in report.units], ["Mem"])

    def test_internal_invariant_violation_propagates(self) -> None:
        graph_builder = MagicMock()
        graph_builder.build.side_effect = InternalInvariantViolation("broken edge")
        use_case = AnalyzeCorpusUseCase(
            filesystem=FileSystemGateway(),
            telemetry=self.telemetry,
            config_loader=ConfigurationLoader(),
            graph_builder=graph_builder,
        )
        with self.assertRaises(InternalInvariantViolation):
            use_case.analyze([SourceUnit("Mem.swift", _swift_feature("Mem"))])
