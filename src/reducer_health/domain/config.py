"""Configuration for the analysis run. Immutable value object created by Infrastructure."""

from __future__ import annotations

import logging

from reducer_health.domain.constants import (
    DEFAULT_MAX_EFFORT_CAP_HOURS,
    DEFAULT_MODE,
    DEFAULT_PENALTIES,
    DEFAULT_RULE_THRESHOLDS,
    DEFAULT_THRESHOLD,
    VALID_MODES,
)
from reducer_health.domain.entities import OutputMode
from reducer_health.domain.errors import ConfigurationError

logger = logging.getLogger(__name__)

# camelCase spellings accepted alongside the snake_case keys
_KEY_ALIASES: dict[str, str] = {
    "maxEffortCapHours": "max_effort_cap_hours",
    "strictIngestion": "strict_ingestion",
    "maxStateProperties": "max_state_properties",
    "maxActions": "max_actions",
    "maxClosureProperties": "max_closure_properties",
    "minDuplicateHandlers": "min_duplicate_handlers",
    "minVagueMethods": "min_vague_methods",
    "minChildReferences": "min_child_references",
    "missingInjection": "missing_injection",
    "duplicateHandler": "duplicate_handler",
    "vagueMethod": "vague_method",
}

_TOP_LEVEL_KEYS: frozenset[str] = frozenset(
    {
        "mode",
        "strict",
        "strict_ingestion",
        "threshold",
        "max_effort_cap_hours",
        "workers",
        "exclude",
        "rules",
        "penalties",
    }
)


class ConfigurationLoader:
    """
    Immutable, validated configuration for one run.

    Created by Infrastructure from the `[tool.reducer-health]` table and CLI
    overrides. Every value is checked at construction; an invalid value raises
    ConfigurationError before any analysis starts.
    """

    def __init__(self, config_dict: dict[str, object] | None = None) -> None:
        """Normalize keys and validate once. No mutable state after init."""
        self._config = ConfigurationLoader.normalize_keys(config_dict or {})
        self.validate_config(self._config)
        self._rule_thresholds = self._merged_numbers(
            "rules", DEFAULT_RULE_THRESHOLDS)
        self._penalties = self._merged_numbers("penalties", DEFAULT_PENALTIES)

    @staticmethod
    def normalize_keys(raw: dict[str, object]) -> dict[str, object]:
        """Map camelCase aliases to snake_case, recursing into sub-tables."""
        out: dict[str, object] = {}
        for key, value in raw.items():
            name = _KEY_ALIASES.get(str(key), str(key))
            if isinstance(value, dict):
                value = ConfigurationLoader.normalize_keys(value)
            out[name] = value
        return out

    def validate_config(self, config: dict[str, object]) -> None:
        """Validate configuration values; raise ConfigurationError on the first bad one."""
        unknown = sorted(set(config) - _TOP_LEVEL_KEYS)
        if unknown:
            logger.warning("Ignoring unknown configuration keys: %s", ", ".join(unknown))

        mode = config.get("mode", DEFAULT_MODE)
        if mode not in VALID_MODES:
            raise ConfigurationError(
                "mode", f"expected one of {sorted(VALID_MODES)}, got {mode!r}")

        for flag in ("strict", "strict_ingestion"):
            if flag in config and not isinstance(config[flag], bool):
                raise ConfigurationError(flag, f"expected a boolean, got {config[flag]!r}")

        if "threshold" in config:
            threshold = config["threshold"]
            if not ConfigurationLoader._is_integral(threshold):
                raise ConfigurationError("threshold", f"expected an integer, got {threshold!r}")
            if not 0 <= threshold <= 100:
                raise ConfigurationError("threshold", f"must be within 0-100, got {threshold!r}")

        if "max_effort_cap_hours" in config:
            cap = config["max_effort_cap_hours"]
            if not ConfigurationLoader._is_number(cap) or cap <= 0:
                raise ConfigurationError(
                    "max_effort_cap_hours", f"expected a positive number, got {cap!r}")

        workers = config.get("workers")
        if workers is not None and (
            not ConfigurationLoader._is_integral(workers) or workers < 1
        ):
            raise ConfigurationError("workers", f"expected a positive integer, got {workers!r}")

        exclude = config.get("exclude", [])
        if not isinstance(exclude, list) or not all(isinstance(x, str) for x in exclude):
            raise ConfigurationError("exclude", "expected a list of path fragments")

        self._validate_number_table(config, "rules", DEFAULT_RULE_THRESHOLDS)
        self._validate_number_table(
            config, "penalties", DEFAULT_PENALTIES, integer_only=True)

    def _validate_number_table(
        self,
        config: dict[str, object],
        section: str,
        known: dict[str, int],
        integer_only: bool = False,
    ) -> None:
        raw = config.get(section, {})
        if not isinstance(raw, dict):
            raise ConfigurationError(section, "expected a table")
        for key, value in raw.items():
            qualified = f"{section}.{key}"
            if key not in known:
                raise ConfigurationError(
                    qualified, f"unknown key; expected one of {sorted(known)}")
            if not ConfigurationLoader._is_number(value):
                raise ConfigurationError(qualified, f"expected a number, got {value!r}")
            if integer_only and not ConfigurationLoader._is_integral(value):
                raise ConfigurationError(qualified, f"expected an integer, got {value!r}")
            if value < 0:
                raise ConfigurationError(qualified, f"must not be negative, got {value!r}")

    @staticmethod
    def _is_number(value: object) -> bool:
        """int or float, but not bool."""
        return isinstance(value, (int, float)) and not isinstance(value, bool)

    @staticmethod
    def _is_integral(value: object) -> bool:
        """A number with no fractional part."""
        if isinstance(value, float):
            return value.is_integer()
        return ConfigurationLoader._is_number(value)

    def _merged_numbers(self, section: str, defaults: dict[str, int]) -> dict[str, float]:
        raw = self._config.get(section, {})
        merged: dict[str, float] = dict(defaults)
        if isinstance(raw, dict):
            merged.update(raw)
        return merged

    def with_overrides(self, **overrides: object) -> "ConfigurationLoader":
        """Return a new loader with non-None overrides applied (e.g. from CLI flags)."""
        merged = dict(self._config)
        for key, value in overrides.items():
            if value is not None:
                merged[key] = value
        return ConfigurationLoader(merged)

    @property
    def config(self) -> dict[str, object]:
        """Return the loaded configuration."""
        return self._config

    @property
    def mode(self) -> OutputMode:
        return OutputMode(str(self._config.get("mode", DEFAULT_MODE)))

    @property
    def strict(self) -> bool:
        """Escalate any HIGH/CRITICAL violation to a failing verdict."""
        return bool(self._config.get("strict", False))

    @property
    def strict_ingestion(self) -> bool:
        """Treat unreadable files as a failing verdict."""
        return bool(self._config.get("strict_ingestion", False))

    @property
    def threshold(self) -> int:
        """Testability pass bar."""
        return int(self._config.get("threshold", DEFAULT_THRESHOLD))  # type: ignore[call-overload]

    @property
    def max_effort_cap_hours(self) -> float:
        return float(self._config.get(
            "max_effort_cap_hours", DEFAULT_MAX_EFFORT_CAP_HOURS))  # type: ignore[arg-type]

    @property
    def workers(self) -> int | None:
        workers = self._config.get("workers")
        return int(workers) if workers is not None else None  # type: ignore[call-overload]

    @property
    def exclude(self) -> list[str]:
        """Path fragments to skip during ingestion."""
        return [str(x) for x in self._config.get("exclude", [])]  # type: ignore[union-attr]

    @property
    def rule_thresholds(self) -> dict[str, float]:
        """Rule thresholds merged over defaults."""
        return dict(self._rule_thresholds)

    @property
    def penalties(self) -> dict[str, float]:
        """Score deductions per occurrence merged over defaults."""
        return dict(self._penalties)
