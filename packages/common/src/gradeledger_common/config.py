"""Configuration file loading with environment variable substitution.

Settings files may be YAML or JSON. String values can reference the
environment:

- ``${VAR}`` - replaced with ``VAR``; error if it is not set
- ``${VAR:default}`` - ``VAR`` or ``default``
- ``${VAR:-default}`` - same as above (bash-style)

A value that consists of a single reference is converted to bool, int or
float where possible, so ``timeout: ${SYNC_TIMEOUT:30}`` loads as ``30``.
"""

from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

from gradeledger_common.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class VariableSubstitution:
    """Handles environment variable substitution in configuration values."""

    VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::(-)?([^}]*))?\}")

    def substitute(self, value: Any) -> Any:
        """Recursively substitute environment variables in a value.

        Args:
            value: String, dict, list or any other value

        Returns:
            Value with environment variables substituted

        Raises:
            ConfigurationError: If a required environment variable is not set
        """
        if isinstance(value, str):
            return self._substitute_string(value)
        elif isinstance(value, dict):
            # Keys are not substituted, only values
            return {key: self.substitute(item) for key, item in value.items()}
        elif isinstance(value, list):
            return [self.substitute(item) for item in value]
        return value

    def _resolve(self, match: re.Match) -> str:
        var_name = match.group(1)
        has_default = match.group(2) is not None or match.group(3) is not None
        if var_name in os.environ:
            return os.environ[var_name]
        if has_default:
            return match.group(3) if match.group(3) is not None else ""
        raise ConfigurationError(
            f"Environment variable '{var_name}' not found",
            context={"variable": var_name},
        )

    def _substitute_string(self, text: str) -> Any:
        # A lone reference may produce a non-string value
        if text.startswith("${") and text.endswith("}") and text.count("${") == 1:
            match = self.VAR_PATTERN.fullmatch(text)
            if match:
                return self._convert_type(self._resolve(match))

        return self.VAR_PATTERN.sub(self._resolve, text)

    def _convert_type(self, value: str) -> Any:
        lowered = value.lower()
        if lowered in ("true", "yes"):
            return True
        if lowered in ("false", "no"):
            return False

        try:
            return int(value)
        except ValueError:
            pass

        try:
            return float(value)
        except ValueError:
            pass

        return value


def load_config(source: str | Path | dict[str, Any]) -> dict[str, Any]:
    """Load a configuration mapping from a file or a dict.

    Args:
        source: Path to a ``.yaml``/``.yml``/``.json`` file, or a dict

    Returns:
        The configuration with environment variables substituted

    Raises:
        ConfigurationError: If the file is missing, has an unsupported
            extension, or does not contain a mapping
    """
    if isinstance(source, dict):
        data: Any = source
    else:
        path = Path(source)
        if not path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {path}", context={"path": str(path)}
            )

        suffix = path.suffix.lower()
        with open(path, encoding="utf-8") as f:
            if suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            elif suffix == ".json":
                data = json.load(f)
            else:
                raise ConfigurationError(
                    f"Unsupported file format: {suffix}", context={"path": str(path)}
                )
        logger.debug("Loaded configuration from %s", path)

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            "Configuration must be a mapping", context={"type": type(data).__name__}
        )

    return VariableSubstitution().substitute(data)
