"""Package entry point - composition root. Wire dependencies and run the CLI app."""

from reducer_health.infrastructure.di.container import ReducerHealthContainer
from reducer_health.interface.cli import CLIAppFactory, CLIDependencies


def main() -> None:
    """Entry point: wire dependencies at composition root, create app, run."""
    container = ReducerHealthContainer()
    deps = CLIDependencies(
        telemetry=container.get_telemetry_port(),
        filesystem=container.get_filesystem_gateway(),
        artifact_storage=container.get_artifact_storage(),
        renderer=container.get_renderer(),
        config_file_loader=container.get_config_file_loader(),
    )
    app = CLIAppFactory.create_app(deps)
    app()


if __name__ == "__main__":
    main()
