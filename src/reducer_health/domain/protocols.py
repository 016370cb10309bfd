from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from reducer_health.domain.entities import OutputMode, Report, SourceUnit


class FileSystemProtocol(Protocol):
    """Corpus ingestion (find and read source files) and report file writes."""

    def collect_source_paths(
        self, roots: list[str], exclude: list[str]
    ) -> tuple[list[str], list[tuple[str, str]]]:
        """Return (source paths, [(missing root, reason)]) for the given roots."""
        ...

    def read_source(self, path: str) -> "SourceUnit":
        """Read one file. Raises IngestionError if it cannot be read or decoded."""
        ...

    def join_path(self, *paths: str) -> str:
        ...

    def make_dirs(self, path: str, exist_ok: bool = True) -> None:
        ...

    def write_text(self, path: str, content: str, encoding: str = "utf-8") -> None:
        ...


class TelemetryPort(Protocol):
    """Progress and diagnostics channel. Domain code never prints."""

    def handshake(self) -> None:
        ...

    def step(self, message: str) -> None:
        ...

    def warning(self, message: str) -> None:
        ...

    def error(self, message: str) -> None:
        ...

    def debug(self, message: str) -> None:
        ...


class ReportRendererProtocol(Protocol):
    """Turns a Report into text for one output mode."""

    def render(self, report: "Report", mode: "OutputMode") -> str:
        ...


class ArtifactStorageProtocol(Protocol):
    """Persist the last run's json report (.reducer-health/last_report.json)."""

    def save_last_report(self, document: str) -> str:
        """Write the document; return the full path written."""
        ...
