from typing import TYPE_CHECKING, Any, cast

from reducer_health.domain.constants import ARTIFACT_DIR
from reducer_health.infrastructure.config_file_loader import ConfigFileLoader
from reducer_health.infrastructure.gateways.artifact_storage_gateway import (
    LocalArtifactStorage,
)
from reducer_health.infrastructure.gateways.filesystem_gateway import FileSystemGateway
from reducer_health.infrastructure.reporters import ReportRenderer
from reducer_health.interface.telemetry import ProjectTelemetry

if TYPE_CHECKING:
    from reducer_health.domain.protocols import (
        ArtifactStorageProtocol,
        FileSystemProtocol,
        ReportRendererProtocol,
        TelemetryPort,
    )


class ReducerHealthContainer:
    """Dependency Injection Container for the reducer health checker."""

    def __init__(self) -> None:
        self._singletons: dict[str, Any] = {}
        self._register_defaults()

    def _register_defaults(self) -> None:
        """Register default implementations for protocols.

        Configuration is not read here: the CLI loads it per command so that a
        broken pyproject.toml maps to the configuration exit status.
        """
        self.register_singleton(
            "TelemetryPort", ProjectTelemetry("REDUCER-HEALTH", "cyan", "Feature reducers under review"))
        filesystem = FileSystemGateway()
        self.register_singleton("FileSystemGateway", filesystem)
        self.register_singleton(
            "ArtifactStorage", LocalArtifactStorage(base_path=ARTIFACT_DIR, filesystem=filesystem))
        self.register_singleton("ReportRenderer", ReportRenderer())
        self.register_singleton("ConfigFileLoader", ConfigFileLoader())

    # JUSTIFICATION: DI Container must handle any type of service
    def register_singleton(self, key: str, instance: Any) -> None:
        """Register a singleton instance."""
        self._singletons[key] = instance

    # JUSTIFICATION: DI Container must return any type of service
    def get(self, key: str) -> Any:
        """Retrieve a dependency by key. Prefer explicit get_* methods for type safety."""
        if key in self._singletons:
            return self._singletons[key]
        raise ValueError(f"Dependency '{key}' not registered.")

    def get_telemetry_port(self) -> "TelemetryPort":
        """Return the telemetry/UI port."""
        return cast("TelemetryPort", self.get("TelemetryPort"))

    def get_filesystem_gateway(self) -> "FileSystemProtocol":
        """Return the filesystem gateway."""
        return cast("FileSystemProtocol", self.get("FileSystemGateway"))

    def get_artifact_storage(self) -> "ArtifactStorageProtocol":
        """Return the artifact storage (.reducer-health/)."""
        return cast("ArtifactStorageProtocol", self.get("ArtifactStorage"))

    def get_renderer(self) -> "ReportRendererProtocol":
        return cast("ReportRendererProtocol", self.get("ReportRenderer"))

    def get_config_file_loader(self) -> ConfigFileLoader:
        return cast(ConfigFileLoader, self.get("ConfigFileLoader"))
