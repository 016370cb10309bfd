"""Filesystem Gateway - Infrastructure implementation of FileSystemProtocol."""

from pathlib import Path

from reducer_health.domain.constants import SOURCE_SUFFIXES
from reducer_health.domain.entities import SourceUnit
from reducer_health.domain.errors import IngestionError
from reducer_health.domain.protocols import FileSystemProtocol


class FileSystemGateway(FileSystemProtocol):
    """Infrastructure implementation of FileSystemProtocol using pathlib."""

    def __init__(self, suffixes: tuple[str, ...] = SOURCE_SUFFIXES) -> None:
        self._suffixes = suffixes

    def collect_source_paths(
        self, roots: list[str], exclude: list[str]
    ) -> tuple[list[str], list[tuple[str, str]]]:
        """Walk roots for source files (sorted, de-duplicated); report roots that do not exist."""
        found: set[str] = set()
        missing: list[tuple[str, str]] = []
        for root in roots:
            path_obj = Path(root)
            if path_obj.is_dir():
                candidates = [p for p in path_obj.rglob("*") if p.suffix in self._suffixes]
            elif path_obj.is_file():
                candidates = [path_obj]
            else:
                missing.append((root, "path does not exist"))
                continue
            for candidate in candidates:
                as_posix = candidate.as_posix()
                if any(fragment in as_posix for fragment in exclude):
                    continue
                if candidate.is_file() or not candidate.exists():
                    found.add(str(candidate))
        return sorted(found), missing

    def read_source(self, path: str) -> SourceUnit:
        """Read one source file as UTF-8."""
        try:
            return SourceUnit(path=path, text=Path(path).read_text(encoding="utf-8"))
        except UnicodeDecodeError as exc:
            raise IngestionError(path, f"not valid UTF-8 ({exc.reason})") from exc
        except OSError as exc:
            raise IngestionError(path, exc.strerror or str(exc)) from exc

    def join_path(self, *paths: str) -> str:
        """Join path components into a single path string."""
        return str(Path(*paths))

    def make_dirs(self, path: str, exist_ok: bool = True) -> None:
        """Create directory and parent directories if needed."""
        Path(path).mkdir(parents=True, exist_ok=exist_ok)

    def write_text(self, path: str, content: str, encoding: str = "utf-8") -> None:
        """Write text content to a file."""
        Path(path).write_text(content, encoding=encoding)
