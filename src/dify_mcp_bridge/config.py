"""Bridge configuration.

Settings come from an optional YAML file, a ``.env`` file and the
environment, in increasing order of precedence.
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import yaml
from dotenv import find_dotenv, load_dotenv

ENV_URL = "DIFY_MCP_URL"
ENV_TOKEN = "DIFY_MCP_TOKEN"
ENV_TIMEOUT = "DIFY_MCP_TIMEOUT"

DEFAULT_TIMEOUT_MS = 60000


class ConfigError(Exception):
    """Raised when configuration loading or validation fails."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


def expand_env_vars(value: str) -> str:
    """Expand environment variables in a string.

    Supports ${VAR_NAME} syntax. Unknown variables are left unchanged.

    Args:
        value: String potentially containing environment variable references.

    Returns:
        String with known environment variables expanded.
    """
    pattern = re.compile(r"\$\{([^}]+)\}")

    def replacer(match: re.Match[str]) -> str:
        env_value = os.environ.get(match.group(1))
        if env_value is not None:
            return env_value
        return match.group(0)

    return pattern.sub(replacer, value)


@dataclass
class BridgeConfig:
    """Connection settings for the remote MCP endpoint."""

    remote_url: str = ""
    token: str = ""
    timeout_ms: int = DEFAULT_TIMEOUT_MS

    @property
    def timeout_seconds(self) -> float:
        """Timeout in seconds, as httpx expects it."""
        return self.timeout_ms / 1000

    def validate(self) -> None:
        """Validate the configuration.

        Raises:
            ConfigError: If a required setting is missing or malformed.
        """
        if not self.remote_url or not self.token:
            raise ConfigError(f"Missing env. Set {ENV_URL} and {ENV_TOKEN}.")

        parsed = urlparse(self.remote_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ConfigError(f"Remote URL must be an http(s) URL: {self.remote_url}")

        if self.timeout_ms <= 0:
            raise ConfigError(
                f"Timeout must be a positive number of milliseconds: {self.timeout_ms}"
            )

    @classmethod
    def from_dict(cls, config: Mapping[str, Any]) -> BridgeConfig:
        """Create a BridgeConfig from a parsed YAML document.

        Args:
            config: Dictionary parsed from YAML configuration.

        Returns:
            BridgeConfig with the ``remote`` section applied.
        """
        remote = config.get("remote") or {}
        if not isinstance(remote, Mapping):
            raise ConfigError("'remote' must be a mapping")

        url = remote.get("url", "")
        token = remote.get("token", "")
        return cls(
            remote_url=expand_env_vars(str(url)) if url else "",
            token=expand_env_vars(str(token)) if token else "",
            timeout_ms=_parse_timeout(remote.get("timeout_ms", DEFAULT_TIMEOUT_MS)),
        )

    def apply_env(self, environ: Mapping[str, str]) -> BridgeConfig:
        """Return a copy with environment variables layered on top.

        Args:
            environ: Environment mapping (usually ``os.environ``).

        Returns:
            New BridgeConfig.
        """
        timeout = environ.get(ENV_TIMEOUT)
        return BridgeConfig(
            remote_url=environ.get(ENV_URL) or self.remote_url,
            token=environ.get(ENV_TOKEN) or self.token,
            timeout_ms=_parse_timeout(timeout) if timeout else self.timeout_ms,
        )


def _parse_timeout(value: Any) -> int:
    try:
        return int(str(value).strip())
    except ValueError as e:
        raise ConfigError(f"Timeout must be an integer number of milliseconds: {value!r}") from e


def load_config_file(path: Path) -> BridgeConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML file.

    Returns:
        BridgeConfig instance.

    Raises:
        ConfigError: If the file cannot be found or parsed.
    """
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        with open(path) as f:
            config = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse config YAML: {e}") from e

    if not isinstance(config, dict):
        raise ConfigError("Config must be a YAML mapping")

    return BridgeConfig.from_dict(config)


def load_config(
    path: Path | None = None,
    environ: Mapping[str, str] | None = None,
    dotenv: bool = True,
) -> BridgeConfig:
    """Resolve the bridge configuration from every source.

    Args:
        path: Optional YAML config file.
        environ: Environment to read (defaults to ``os.environ``).
        dotenv: Load a ``.env`` file from the working directory first.

    Returns:
        Validated BridgeConfig.

    Raises:
        ConfigError: If the resulting configuration is invalid.
    """
    if dotenv:
        dotenv_path = find_dotenv(usecwd=True)
        if dotenv_path:
            load_dotenv(dotenv_path, override=False)

    config = load_config_file(path) if path else BridgeConfig()
    config = config.apply_env(os.environ if environ is None else environ)
    config.validate()
    return config
