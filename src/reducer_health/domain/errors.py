"""Error taxonomy for the analysis engine.

Per-unit outcomes (ParseSkipped, IngestionError) are collected into the Report.
ConfigurationError and InternalInvariantViolation abort the run.
"""


class ReducerHealthError(Exception):
    """Base class for all engine errors."""


class ParseSkipped(ReducerHealthError):
    """Unit does not resemble a feature reducer; excluded from scoring."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class IngestionError(ReducerHealthError):
    """A source path could not be read. Reported per unit, never fatal."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class ConfigurationError(ReducerHealthError):
    """Invalid option or threshold. Raised before any analysis runs."""

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(f"Invalid configuration '{key}': {reason}")
        self.key = key
        self.reason = reason


class InternalInvariantViolation(ReducerHealthError):
    """The engine produced data it cannot reconcile (an engine bug, not a data issue)."""
