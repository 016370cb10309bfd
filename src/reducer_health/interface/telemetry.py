"""Console telemetry: styled progress lines on stderr, mirrored to logging."""

import logging

import typer


class ProjectTelemetry:
    """TelemetryPort implementation. Stdout stays free for the report itself."""

    def __init__(self, name: str, color: str, tagline: str) -> None:
        self.name = name
        self.color = color
        self.tagline = tagline
        self.logger = logging.getLogger("reducer_health")

    def handshake(self) -> None:
        typer.secho(f"[{self.name}] {self.tagline}", fg=self.color, bold=True, err=True)
        self.logger.info("%s: %s", self.name, self.tagline)

    def step(self, message: str) -> None:
        typer.secho(f"[{self.name}] {message}", fg=self.color, err=True)
        self.logger.info(message)

    def warning(self, message: str) -> None:
        typer.secho(f"[{self.name}] WARNING: {message}", fg=typer.colors.YELLOW, err=True)
        self.logger.warning(message)

    def error(self, message: str) -> None:
        typer.secho(f"[{self.name}] ERROR: {message}", fg=typer.colors.RED, bold=True, err=True)
        self.logger.error(message)

    def debug(self, message: str) -> None:
        self.logger.debug(message)

    @staticmethod
    def configure_logging(verbose: bool = False) -> None:
        """
        Verbose: stream every reducer_health record (DEBUG and up) to stderr.

        Otherwise records are dropped; the styled console lines already carry
        steps, warnings and errors.
        """
        logger = logging.getLogger("reducer_health")
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
        if verbose:
            handler: logging.Handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
            logger.setLevel(logging.DEBUG)
        else:
            handler = logging.NullHandler()
            logger.setLevel(logging.WARNING)
        logger.addHandler(handler)
        logger.propagate = False
