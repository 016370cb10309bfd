"""Report archive under the working directory - Infrastructure implementation of ArtifactStorageProtocol."""

from reducer_health.domain.constants import LAST_REPORT_FILE
from reducer_health.domain.protocols import (
    ArtifactStorageProtocol,
    FileSystemProtocol,
)


class LocalArtifactStorage(ArtifactStorageProtocol):
    """Keeps the json document of the most recent run in one directory."""

    def __init__(
        self, base_path: str, filesystem: FileSystemProtocol, report_name: str = LAST_REPORT_FILE
    ) -> None:
        self._base = base_path
        self._fs = filesystem
        self._report_name = report_name

    def save_last_report(self, document: str) -> str:
        """Overwrite the previous run's report. Returns the path written; OSError propagates."""
        self._fs.make_dirs(self._base, exist_ok=True)
        path = self._fs.join_path(self._base, self._report_name)
        self._fs.write_text(path, document, encoding="utf-8")
        return path
