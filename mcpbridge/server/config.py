"""Configuration management with validation.

This module provides centralized configuration for the mcpbridge server with:
- YAML file support (mcpbridge_config.yml)
- Environment variable overrides
- Type-safe, validated configuration classes

Configuration precedence (highest to lowest):
1. Environment variables
2. YAML config file
3. Default values

Example mcpbridge_config.yml:
    cache:
      enabled: true
      ttl_seconds: 86400

    server:
      name: "mcpbridge"
      log_level: "INFO"

    clients:
      enabled_clients: ["bugsnag", "pactflow"]
      allowed_endpoints:
        - "https://api.bugsnag.com"
        - "/^https:\\/\\/.*\\.pactflow\\.io$/"

Usage:
    config = load_config()
    if config.cache.enabled:
        ttl = config.cache.ttl_seconds
"""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

from mcpbridge import __version__

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("mcpbridge_config.yml")
DEFAULT_CACHE_TTL_SECONDS = 86400  # 24 hours


def _parse_csv(value: str | None) -> tuple[str, ...] | None:
    """Split a comma-separated setting; empty or unset means "no restriction"."""
    if value is None or not value.strip():
        return None
    parts = tuple(p.strip() for p in value.split(",") if p.strip())
    return parts or None


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class CacheConfig:
    """Shared cache configuration.

    Attributes:
        enabled: Whether the cache is active (disabled = every operation is a no-op)
        ttl_seconds: Time to live for every entry
        max_entries: Upper bound on cached entries
    """

    enabled: bool = True
    ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS
    max_entries: int = 10000

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.ttl_seconds <= 0:
            msg = f"ttl_seconds must be > 0, got {self.ttl_seconds}"
            raise ValueError(msg)
        if self.max_entries <= 0:
            msg = f"max_entries must be > 0, got {self.max_entries}"
            raise ValueError(msg)


@dataclass(frozen=True)
class ServerConfig:
    """Server configuration.

    Attributes:
        name: Server name announced to the host
        version: Server version announced to the host
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    name: str = "mcpbridge"
    version: str = __version__
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        """Validate configuration."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.log_level.upper() not in valid_levels:
            msg = f"log_level must be one of {valid_levels}, got '{self.log_level}'"
            raise ValueError(msg)
        if not self.name:
            msg = "name cannot be empty"
            raise ValueError(msg)


@dataclass(frozen=True)
class ClientsConfig:
    """Client activation configuration.

    Attributes:
        enabled_clients: Client names to activate (None = all, case-insensitive)
        allowed_endpoints: Exact URLs or /regex/ patterns URL settings must match
            (None = any URL allowed)
    """

    enabled_clients: tuple[str, ...] | None = None
    allowed_endpoints: tuple[str, ...] | None = None

    def __post_init__(self) -> None:
        """Normalize configuration (use object.__setattr__ for frozen dataclass)."""
        if self.enabled_clients is not None:
            object.__setattr__(
                self,
                "enabled_clients",
                tuple(name.strip().lower() for name in self.enabled_clients if name.strip()),
            )
        if self.allowed_endpoints is not None:
            object.__setattr__(
                self,
                "allowed_endpoints",
                tuple(e.strip() for e in self.allowed_endpoints if e.strip()),
            )


@dataclass(frozen=True)
class ObservabilityConfig:
    """Observability configuration.

    Attributes:
        structured_logging: Whether to use structured JSON logging
        error_reporting: Whether unexpected tool failures are sent to the error reporter
    """

    structured_logging: bool = False
    error_reporting: bool = True


@dataclass
class Config:
    """Root configuration object."""

    cache: CacheConfig = field(default_factory=CacheConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    clients: ClientsConfig = field(default_factory=ClientsConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary."""
        return {
            "cache": {
                "enabled": self.cache.enabled,
                "ttl_seconds": self.cache.ttl_seconds,
                "max_entries": self.cache.max_entries,
            },
            "server": {
                "name": self.server.name,
                "version": self.server.version,
                "log_level": self.server.log_level,
            },
            "clients": {
                "enabled_clients": (
                    list(self.clients.enabled_clients)
                    if self.clients.enabled_clients is not None
                    else None
                ),
                "allowed_endpoints": (
                    list(self.clients.allowed_endpoints)
                    if self.clients.allowed_endpoints is not None
                    else None
                ),
            },
            "observability": {
                "structured_logging": self.observability.structured_logging,
                "error_reporting": self.observability.error_reporting,
            },
        }


_YAML_SECTIONS = {
    "cache": ("enabled", "ttl_seconds", "max_entries"),
    "server": ("name", "version", "log_level"),
    "clients": ("enabled_clients", "allowed_endpoints"),
    "observability": ("structured_logging", "error_reporting"),
}


def _apply_yaml(config: Config, yaml_config: dict[str, Any]) -> None:
    """Overlay known keys of each YAML section onto the matching dataclass."""
    for section, keys in _YAML_SECTIONS.items():
        values = yaml_config.get(section) or {}
        changes = {key: values[key] for key in keys if values.get(key) is not None}
        for key in ("enabled_clients", "allowed_endpoints"):
            if key in changes:
                changes[key] = tuple(changes[key]) or None
        if changes:
            setattr(config, section, replace(getattr(config, section), **changes))


def _apply_environment(config: Config, env: Mapping[str, str]) -> None:
    cache_changes: dict[str, Any] = {}
    if env.get("CACHE_ENABLED") is not None:
        # Anything but the literal "false" keeps the cache on
        cache_changes["enabled"] = env["CACHE_ENABLED"].strip().lower() != "false"
    if env.get("CACHE_TTL"):
        cache_changes["ttl_seconds"] = int(env["CACHE_TTL"])
    if cache_changes:
        config.cache = replace(config.cache, **cache_changes)

    server_changes: dict[str, Any] = {}
    if env.get("MCP_SERVER_NAME"):
        server_changes["name"] = env["MCP_SERVER_NAME"]
    if env.get("MCP_LOG_LEVEL"):
        server_changes["log_level"] = env["MCP_LOG_LEVEL"].upper()
    if server_changes:
        config.server = replace(config.server, **server_changes)

    clients_changes: dict[str, Any] = {}
    if "MCP_CLIENTS" in env:
        clients_changes["enabled_clients"] = _parse_csv(env["MCP_CLIENTS"])
    if "MCP_ALLOWED_ENDPOINTS" in env:
        clients_changes["allowed_endpoints"] = _parse_csv(env["MCP_ALLOWED_ENDPOINTS"])
    if clients_changes:
        config.clients = replace(config.clients, **clients_changes)

    observability_changes: dict[str, Any] = {}
    if env.get("MCP_STRUCTURED_LOGGING"):
        observability_changes["structured_logging"] = _parse_bool(env["MCP_STRUCTURED_LOGGING"])
    if env.get("MCP_ERROR_REPORTING"):
        observability_changes["error_reporting"] = _parse_bool(env["MCP_ERROR_REPORTING"])
    if observability_changes:
        config.observability = replace(config.observability, **observability_changes)


def load_config(
    config_path: Path | None = None, environ: Mapping[str, str] | None = None
) -> Config:
    """Load configuration from YAML file and environment variables.

    Environment variables win over the YAML file, which wins over defaults.

    Args:
        config_path: Optional path to config YAML file (default: ./mcpbridge_config.yml)
        environ: Environment mapping (default: os.environ)

    Returns:
        Config object

    Raises:
        ValueError: If the resulting configuration is invalid

    Environment variables:
        CACHE_ENABLED: Cache is disabled only by the literal "false"
        CACHE_TTL: Cache TTL in seconds
        MCP_SERVER_NAME: Server name announced to the host
        MCP_LOG_LEVEL: Log level (DEBUG/INFO/WARNING/ERROR/CRITICAL)
        MCP_CLIENTS: Comma-separated client names to enable
        MCP_ALLOWED_ENDPOINTS: Comma-separated exact URLs or /regex/ patterns
        MCP_STRUCTURED_LOGGING: Emit JSON log lines (true/false)
        MCP_ERROR_REPORTING: Report unexpected tool failures (true/false)
    """
    config = Config()
    path = config_path or DEFAULT_CONFIG_PATH

    if path.exists():
        try:
            with open(path) as f:
                _apply_yaml(config, yaml.safe_load(f) or {})
            logger.info("Configuration loaded from %s", path)
        except (OSError, yaml.YAMLError) as e:
            logger.warning("Ignoring unreadable config file %s: %s", path, e)

    _apply_environment(config, os.environ if environ is None else environ)
    return config


# Global config instance (lazy-loaded)
_global_config: Config | None = None


def get_config() -> Config:
    """Get global config instance (singleton pattern).

    Returns:
        Config object
    """
    global _global_config

    if _global_config is None:
        _global_config = load_config()

    return _global_config


def reset_config() -> None:
    """Drop the global config instance (used by tests)."""
    global _global_config
    _global_config = None


__all__ = [
    "CacheConfig",
    "ClientsConfig",
    "Config",
    "ObservabilityConfig",
    "ServerConfig",
    "get_config",
    "load_config",
    "reset_config",
]
