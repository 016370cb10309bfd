"""CLI entry points for reducer-health - Thin Controller using Typer."""

import sys
from dataclasses import dataclass
from pathlib import Path

import typer

from reducer_health.domain.config import ConfigurationLoader
from reducer_health.domain.constants import (
    ARTIFACT_DIR,
    EXIT_CONFIG_ERROR,
    EXIT_INTERNAL_ERROR,
    EXIT_PASS,
    EXIT_VIOLATIONS,
    EXIT_WRITE_ERROR,
    LAST_REPORT_FILE,
    REDUCER_HEALTH_BANNER,
    TOOL_NAME,
)
from reducer_health.domain.entities import OutputMode
from reducer_health.domain.errors import ConfigurationError, InternalInvariantViolation
from reducer_health.domain.protocols import (
    ArtifactStorageProtocol,
    FileSystemProtocol,
    ReportRendererProtocol,
    TelemetryPort,
)
from reducer_health.domain.rules import RuleEngine
from reducer_health.infrastructure.config_file_loader import ConfigFileLoader
from reducer_health.interface.telemetry import ProjectTelemetry
from reducer_health.use_cases.analyze_corpus import AnalyzeCorpusUseCase


@dataclass(frozen=True)
class CLIDependencies:
    """Explicit dependencies for the CLI. All dependencies injected at composition root."""

    telemetry: TelemetryPort
    filesystem: FileSystemProtocol
    artifact_storage: ArtifactStorageProtocol
    renderer: ReportRendererProtocol
    config_file_loader: ConfigFileLoader


class CLIAppFactory:
    """Creates the Typer app. No top-level functions."""

    @staticmethod
    def resolve_target_paths(paths: list[Path] | None) -> list[str]:
        """Explicit paths, else the current directory."""
        if paths:
            return [str(p) for p in paths]
        return ["."]

    @staticmethod
    def load_configuration(
        deps: CLIDependencies, config_file: Path | None, **overrides: object
    ) -> ConfigurationLoader:
        """pyproject.toml table, then CLI flags on top. Raises ConfigurationError."""
        raw = deps.config_file_loader.load_config_from_fs(config_file=config_file)
        return ConfigurationLoader(raw).with_overrides(**overrides)

    @staticmethod
    def create_app(deps: CLIDependencies) -> typer.Typer:
        """Create the Typer app with explicitly injected dependencies. No Service Locator."""
        app = typer.Typer(
            name=TOOL_NAME,
            help="Reducer Health: grade feature reducers for size, testability and coupling.",
            add_completion=False,
        )

        @app.command()
        def check(
            paths: list[Path] | None = typer.Argument(None, help="Files or directories to analyze (default: .)"),  # noqa: B008
            mode: str | None = typer.Option(None, "--mode", help="Output mode: human or json"),
            strict: bool | None = typer.Option(
                None, "--strict/--no-strict", help="Fail on any HIGH or CRITICAL violation"),
            strict_ingestion: bool | None = typer.Option(
                None, "--strict-ingestion/--lenient-ingestion", help="Fail when a file cannot be read"),
            threshold: int | None = typer.Option(None, "--threshold", help="Testability pass bar (0-100)"),
            max_effort_cap: float | None = typer.Option(
                None, "--max-effort-cap", help="Cap in hours on one candidate's effort"),
            workers: int | None = typer.Option(None, "--workers", help="Extraction worker threads"),
            config: Path | None = typer.Option(None, "--config", help="pyproject.toml to read instead of the nearest one"),  # noqa: B008
            output: Path | None = typer.Option(None, "--output", help="Also write the json report to this file"),  # noqa: B008
            verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging on stderr"),
            no_save: bool = typer.Option(
                False, "--no-save", help=f"Do not write {ARTIFACT_DIR}/{LAST_REPORT_FILE}"),
        ) -> None:
            """Analyze feature reducers and print the health report. Exit 1 on a failing verdict."""
            ProjectTelemetry.configure_logging(verbose)
            try:
                loader = CLIAppFactory.load_configuration(
                    deps,
                    config,
                    mode=mode,
                    strict=strict,
                    strict_ingestion=strict_ingestion,
                    threshold=threshold,
                    max_effort_cap_hours=max_effort_cap,
                    workers=workers,
                )
                if loader.mode is OutputMode.HUMAN:
                    typer.echo(REDUCER_HEALTH_BANNER, err=True)
                    deps.telemetry.handshake()
                use_case = AnalyzeCorpusUseCase(
                    filesystem=deps.filesystem,
                    telemetry=deps.telemetry,
                    config_loader=loader,
                )
                report = use_case.execute(CLIAppFactory.resolve_target_paths(paths))
            except ConfigurationError as exc:
                deps.telemetry.error(str(exc))
                sys.exit(EXIT_CONFIG_ERROR)
            except InternalInvariantViolation as exc:
                deps.telemetry.error(f"Internal error: {exc}")
                sys.exit(EXIT_INTERNAL_ERROR)

            typer.echo(deps.renderer.render(report, loader.mode))
            json_document = deps.renderer.render(report, OutputMode.JSON)
            try:
                if output is not None:
                    deps.filesystem.write_text(str(output), json_document + "\n")
                    deps.telemetry.step(f"Report written to {output}")
                if not no_save:
                    saved = deps.artifact_storage.save_last_report(json_document + "\n")
                    deps.telemetry.debug(f"Report saved to {saved}")
            except OSError as exc:
                deps.telemetry.error(f"Could not write report: {exc}")
                sys.exit(EXIT_WRITE_ERROR)
            sys.exit(EXIT_PASS if report.passed else EXIT_VIOLATIONS)

        @app.command()
        def rules(
            config: Path | None = typer.Option(None, "--config", help="pyproject.toml to read instead of the nearest one"),  # noqa: B008
        ) -> None:
            """List the rules with their effective thresholds."""
            try:
                loader = CLIAppFactory.load_configuration(deps, config)
                engine = RuleEngine(loader.rule_thresholds)
            except ConfigurationError as exc:
                deps.telemetry.error(str(exc))
                sys.exit(EXIT_CONFIG_ERROR)
            for rule in engine.rules:
                effort = rule.effort.label
                if rule.effort_per is not None:
                    effort += f" per {rule.effort_per.removesuffix('_count')}"
                typer.echo(f"{rule.rule_id}  {rule.severity.value:<8} {rule.title}")
                typer.echo(f"     fires when: {rule.describe(engine.thresholds)}")
                if rule.escalation:
                    escalation = " and ".join(c.describe(engine.thresholds) for c in rule.escalation)
                    typer.echo(f"     CRITICAL when: {escalation}")
                typer.echo(f"     effort: {effort}   target: {rule.target}")

        return app
