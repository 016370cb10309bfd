"""Load [tool.reducer-health] from pyproject.toml. Infrastructure I/O only."""

import sys
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib as toml_lib
else:
    import tomli as toml_lib

from reducer_health.domain.constants import CONFIG_SECTION
from reducer_health.domain.errors import ConfigurationError


class ConfigFileLoader:
    """
    Loads config from pyproject.toml. No top-level functions.
    """

    @staticmethod
    def load_config_from_fs(
        start: Path | None = None, config_file: Path | None = None
    ) -> dict[str, object]:
        """
        Return the [tool.reducer-health] table.

        Uses config_file when given, else the nearest pyproject.toml walking up
        from start (default: cwd). A file that is not valid TOML raises
        ConfigurationError; no file at all yields an empty config.
        """
        if config_file is not None:
            if not config_file.is_file():
                raise ConfigurationError("config", f"{config_file} does not exist")
            return ConfigFileLoader._section(config_file)
        current_path = (start or Path.cwd()).resolve()
        while True:
            candidate = current_path / "pyproject.toml"
            if candidate.is_file():
                return ConfigFileLoader._section(candidate)
            if current_path.parent == current_path:
                return {}
            current_path = current_path.parent

    @staticmethod
    def _section(path: Path) -> dict[str, object]:
        try:
            with path.open("rb") as f:
                data = toml_lib.load(f)
        except toml_lib.TOMLDecodeError as exc:
            raise ConfigurationError("config", f"{path} is not valid TOML: {exc}") from exc
        except OSError as exc:
            raise ConfigurationError("config", f"{path} could not be read: {exc}") from exc
        tool_section = data.get("tool", {}) or {}
        section = tool_section.get(CONFIG_SECTION, {}) or {}
        if not isinstance(section, dict):
            raise ConfigurationError(CONFIG_SECTION, "expected a table")
        return section
