# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Configuration for the key rotator.

RotatorConfig is the immutable set of inputs the core consumes.
ConfigLoader builds one from environment variables:

    API_KEYS                  JSON array or comma-separated list (required)
    GEMINI_API_BASE_URL       upstream base address
    ACCESS_TOKEN              enables the access gate
    KEY_COOLDOWN_SECONDS      default cooldown after a quota signal
    UPSTREAM_TIMEOUT_SECONDS  per-attempt upstream timeout
    HONOR_RETRY_AFTER         use upstream Retry-After as the cooldown
    API_PREFIX, HOST, PORT, LOG_LEVEL, RECENT_LOG_SIZE   server settings
"""

import json
import logging
import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Tuple

from .constants import (
    # Defaults
    DEFAULT_UPSTREAM_BASE_URL,
    DEFAULT_COOLDOWN_SECONDS,
    DEFAULT_UPSTREAM_TIMEOUT,
    DEFAULT_API_PREFIX,
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_LOG_LEVEL,
    DEFAULT_RECENT_LOG_SIZE,
    # Variable names
    ENV_API_KEYS,
    ENV_UPSTREAM_BASE_URL,
    ENV_ACCESS_TOKEN,
    ENV_COOLDOWN_SECONDS,
    ENV_UPSTREAM_TIMEOUT,
    ENV_HONOR_RETRY_AFTER,
    ENV_API_PREFIX,
    ENV_HOST,
    ENV_PORT,
    ENV_LOG_LEVEL,
    ENV_RECENT_LOG_SIZE,
    LIB_LOGGER_NAME,
)
from .errors import ConfigurationError

lib_logger = logging.getLogger(LIB_LOGGER_NAME)


@dataclass(frozen=True)
class RotatorConfig:
    """
    Immutable rotator configuration.

    Constructed once at startup. Raises ConfigurationError if no
    credentials are supplied.
    """

    api_keys: Tuple[str, ...] = field(repr=False)
    upstream_base_url: str = DEFAULT_UPSTREAM_BASE_URL
    access_token: Optional[str] = field(default=None, repr=False)
    cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS
    upstream_timeout: float = DEFAULT_UPSTREAM_TIMEOUT
    honor_retry_after: bool = False

    def __post_init__(self) -> None:
        if not self.api_keys:
            raise ConfigurationError("No API_KEYS supplied.")
        # Accept any sequence but store an immutable tuple
        object.__setattr__(self, "api_keys", tuple(self.api_keys))
        if not self.access_token:
            object.__setattr__(self, "access_token", None)
        if self.cooldown_seconds < 0:
            raise ConfigurationError("Cooldown must not be negative.")
        if self.upstream_timeout <= 0:
            raise ConfigurationError("Upstream timeout must be positive.")

    @property
    def gate_enabled(self) -> bool:
        return self.access_token is not None


@dataclass(frozen=True)
class ServerSettings:
    """Listener and adapter settings for the HTTP entry point."""

    api_prefix: str = DEFAULT_API_PREFIX
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    log_level: str = DEFAULT_LOG_LEVEL
    recent_log_size: int = DEFAULT_RECENT_LOG_SIZE


class ConfigLoader:
    """
    Loads configuration from an environment mapping.

    Usage:
        loader = ConfigLoader()  # reads os.environ
        config = loader.load_rotator_config()
        settings = loader.load_server_settings()
    """

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        """
        Initialize the ConfigLoader.

        Args:
            environ: Mapping to read variables from. Defaults to os.environ.
        """
        self._environ = environ if environ is not None else os.environ

    def load_rotator_config(self) -> RotatorConfig:
        """
        Build a RotatorConfig from the environment.

        Raises:
            ConfigurationError: if API_KEYS is missing, empty or malformed,
                or a numeric variable does not parse
        """
        api_keys = parse_api_keys(self._get(ENV_API_KEYS) or "")
        base_url = self._get(ENV_UPSTREAM_BASE_URL) or DEFAULT_UPSTREAM_BASE_URL

        config = RotatorConfig(
            api_keys=tuple(api_keys),
            upstream_base_url=base_url,
            access_token=self._get(ENV_ACCESS_TOKEN),
            cooldown_seconds=self._get_float(
                ENV_COOLDOWN_SECONDS, DEFAULT_COOLDOWN_SECONDS
            ),
            upstream_timeout=self._get_float(
                ENV_UPSTREAM_TIMEOUT, DEFAULT_UPSTREAM_TIMEOUT
            ),
            honor_retry_after=self._get_bool(ENV_HONOR_RETRY_AFTER, False),
        )
        lib_logger.debug(
            f"Loaded rotator config: {len(config.api_keys)} key(s), "
            f"base URL {config.upstream_base_url}"
        )
        return config

    def load_server_settings(self) -> ServerSettings:
        """Build ServerSettings from the environment."""
        prefix = self._get(ENV_API_PREFIX)
        if prefix is None:
            prefix = DEFAULT_API_PREFIX
        return ServerSettings(
            api_prefix=normalize_prefix(prefix),
            host=self._get(ENV_HOST) or DEFAULT_HOST,
            port=self._get_int(ENV_PORT, DEFAULT_PORT),
            log_level=(self._get(ENV_LOG_LEVEL) or DEFAULT_LOG_LEVEL).upper(),
            recent_log_size=self._get_int(ENV_RECENT_LOG_SIZE, DEFAULT_RECENT_LOG_SIZE),
        )

    # =========================================================================
    # INTERNAL METHODS
    # =========================================================================

    def _get(self, key: str) -> Optional[str]:
        value = self._environ.get(key)
        if value is None:
            return None
        value = value.strip()
        return value or None

    def _get_bool(self, key: str, default: bool) -> bool:
        value = self._get(key)
        if value is None:
            return default
        return value.lower() in ("true", "1", "yes")

    def _get_int(self, key: str, default: int) -> int:
        value = self._get(key)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            raise ConfigurationError(f"{key} must be an integer, got {value!r}")

    def _get_float(self, key: str, default: float) -> float:
        value = self._get(key)
        if value is None:
            return default
        try:
            return float(value)
        except ValueError:
            raise ConfigurationError(f"{key} must be a number, got {value!r}")


def parse_api_keys(raw: str) -> List[str]:
    """
    Parse the API_KEYS value.

    A value starting with '[' is read as a JSON array of strings,
    anything else as a comma-separated list. Blank entries are dropped.
    """
    raw = raw.strip()
    if raw.startswith("["):
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"API_KEYS is not valid JSON: {e.msg}")
        if not isinstance(parsed, list) or not all(
            isinstance(k, str) for k in parsed
        ):
            raise ConfigurationError("API_KEYS JSON must be an array of strings.")
        keys = parsed
    else:
        keys = raw.split(",")
    return [k.strip() for k in keys if k.strip()]


def normalize_prefix(prefix: str) -> str:
    """Return '' or a '/segment' path prefix without a trailing slash."""
    prefix = prefix.strip().rstrip("/")
    if prefix and not prefix.startswith("/"):
        prefix = "/" + prefix
    return prefix
