import logging
import tomllib
from pathlib import Path
from typing import Any

from pydantic import ValidationError
from ui5lint_linter import LinterOptions, Ui5LintError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAMES = (".ui5lint.toml", "pyproject.toml")

# [tool.ui5lint] key -> LinterOptions field
OPTION_KEYS = {
    "select": "select",
    "ignore": "ignore",
    "details": "include_message_details",
    "coverage": "report_coverage",
    "jobs": "jobs",
    "timeout": "file_timeout",
    "message-order": "message_order",
    "catalog": "catalog_path",
}


class ConfigError(Ui5LintError):
    """Raised when configuration values are missing or invalid."""

    def __init__(self, source: str, reason: str):
        super().__init__(f"Invalid configuration: {source}", details={"source": source, "reason": reason})
        self.source = source
        self.reason = reason


class LintConfig:
    """Handles loading and validation of the [tool.ui5lint] configuration"""

    def __init__(self, config_path: Path | None = None, search_dir: Path | None = None):
        self.path: Path | None = None
        self.values: dict[str, Any] = {}

        if config_path is not None:
            if not config_path.is_file():
                raise ConfigError(str(config_path), "file not found")
            self._load_from_file(config_path)
        else:
            found = self.find(search_dir or Path.cwd())
            if found is not None:
                self._load_from_file(found)

    @staticmethod
    def find(directory: Path) -> Path | None:
        for name in CONFIG_FILE_NAMES:
            candidate = directory / name
            if candidate.is_file():
                return candidate
        return None

    def _load_from_file(self, path: Path):
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            # Fallback to defaults if parsing fails
            logger.warning("Ignoring configuration file %s: %s", path, e)
            return

        section = data.get("tool", {}).get("ui5lint")
        if section is None:
            return
        self.path = path

        unknown = sorted(set(section) - set(OPTION_KEYS))
        if unknown:
            logger.warning("Unknown keys in %s: %s", path, ", ".join(unknown))

        for key, field_name in OPTION_KEYS.items():
            if key in section:
                self.values[field_name] = section[key]

        # Catalog paths are relative to the configuration file
        catalog = self.values.get("catalog_path")
        if isinstance(catalog, str) and not Path(catalog).is_absolute():
            self.values["catalog_path"] = str(path.parent / catalog)

    def to_options(self, **overrides: Any) -> LinterOptions:
        """Build linter options, command line values (not None) win over the file"""
        values = dict(self.values)
        values.update({k: v for k, v in overrides.items() if v is not None})
        try:
            return LinterOptions(**values)
        except ValidationError as e:
            source = str(self.path) if self.path else "command line"
            raise ConfigError(source, str(e)) from e
