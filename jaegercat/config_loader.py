# Copyright 2025 jaegercat contributors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Configuration loader for jaegercat.

Merges, from lowest to highest precedence: built-in defaults, an optional
YAML file, ``JAEGERCAT_*`` environment variables and explicit command line
flags, then validates the result into an immutable :class:`AgentSettings`.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .config import AgentSettings
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "JAEGERCAT_"

# Environment variable -> settings field
ENV_MAPPINGS = {
    f"{ENV_PREFIX}COMPACT_THRIFT_PORT": "compact_thrift_port",
    f"{ENV_PREFIX}BINARY_THRIFT_PORT": "binary_thrift_port",
    f"{ENV_PREFIX}FORMAT": "format",
    f"{ENV_PREFIX}UDP_BUFFER_SIZE": "udp_buffer_size",
    f"{ENV_PREFIX}LOG_LEVEL": "log_level",
    f"{ENV_PREFIX}SAMPLE_SERVICES": "sample_services",
    f"{ENV_PREFIX}SAMPLING_HOST": "sampling_host",
    f"{ENV_PREFIX}SAMPLING_PORT": "sampling_port",
}

_ENV_REFERENCE = re.compile(r"\$\{([^}]+)\}")


class ConfigLoader:
    """Configuration loader with environment variable override support."""

    def __init__(self, environ: Mapping[str, str] | None = None):
        self.environ = os.environ if environ is None else environ

    def load(
        self,
        config_file: str | Path | None = None,
        overrides: Mapping[str, Any] | None = None,
    ) -> AgentSettings:
        """Build validated settings.

        Args:
            config_file: Optional YAML file with settings keys at top level
            overrides: Values given explicitly on the command line; ``None``
                values are treated as "not given"

        Raises:
            ConfigurationError: when the file cannot be read or any value is
                invalid
        """
        values: dict[str, Any] = {}
        if config_file is not None:
            values.update(self._read_yaml_file(Path(config_file)))
        values.update(self._env_overrides())
        if overrides:
            values.update({key: value for key, value in overrides.items() if value is not None})

        try:
            return AgentSettings(**values)
        except ValidationError as e:
            raise ConfigurationError(_describe_validation_error(e)) from e

    def _read_yaml_file(self, file_path: Path) -> dict[str, Any]:
        """Read and parse YAML file."""
        try:
            content = file_path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(f"cannot read config file {file_path}: {e}") from e

        content = self._substitute_env_vars(content)
        try:
            config = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"invalid YAML in {file_path}: {e}") from e

        if config is None:
            return {}
        if not isinstance(config, dict):
            raise ConfigurationError(f"config file {file_path} must contain a mapping")
        logger.debug("Loaded config from %s", file_path)
        return config

    def _substitute_env_vars(self, content: str) -> str:
        """Substitute ``${VAR}`` and ``${VAR:default}`` references."""

        def replace_var(match: re.Match[str]) -> str:
            var_name = match.group(1)
            if ":" in var_name:
                var_name, default_value = var_name.split(":", 1)
                return self.environ.get(var_name, default_value)
            return self.environ.get(var_name, match.group(0))

        return _ENV_REFERENCE.sub(replace_var, content)

    def _env_overrides(self) -> dict[str, str]:
        return {field: self.environ[env_var] for env_var, field in ENV_MAPPINGS.items() if env_var in self.environ}


def _describe_validation_error(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "settings"
        parts.append(f"{location}: {item['msg']} (got {item.get('input')!r})")
    return "; ".join(parts)


def load_settings(
    config_file: str | Path | None = None,
    overrides: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> AgentSettings:
    return ConfigLoader(environ).load(config_file, overrides)
