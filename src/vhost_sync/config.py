"""
Configuration loading, validation, and typed models.

Supports:
  - YAML config file (credentials may live there directly)
  - Environment variable overrides (APIGEE_BASE_URI, APIGEE_ORGANIZATION,
    APIGEE_USER, APIGEE_PASSWORD, APIGEE_ACCESS_TOKEN)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

import yaml

from .client import DEFAULT_BASE_URL

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "DEFAULT_STATE_PATH",
    "PROJECT_ROOT",
    "ConfigError",
    "ApigeeConfig",
    "AuthConfig",
    "AppConfig",
    "load_config",
]

logger = logging.getLogger(__name__)

# Project root directory (two levels up from this file: src/vhost_sync/)
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

DEFAULT_CONFIG_PATH = os.path.join(PROJECT_ROOT, "config", "config.yaml")

DEFAULT_STATE_PATH = os.path.join("state", "virtual_hosts.json")

# Environment variable names
ENV_BASE_URI = "APIGEE_BASE_URI"
ENV_ORGANIZATION = "APIGEE_ORGANIZATION"
ENV_USER = "APIGEE_USER"
ENV_PASSWORD = "APIGEE_PASSWORD"
ENV_ACCESS_TOKEN = "APIGEE_ACCESS_TOKEN"


# ---------------------------------------------------------------------------
# Typed configuration models
# ---------------------------------------------------------------------------

class ConfigError(Exception):
    """Raised when the configuration file is missing or invalid."""


@dataclass(frozen=True)
class ApigeeConfig:
    organization: str
    base_url: str = DEFAULT_BASE_URL


@dataclass(frozen=True)
class AuthConfig:
    username: str = ""
    password: str = ""
    access_token: str = ""

    def __repr__(self) -> str:
        """Redact secrets in repr to prevent accidental logging."""
        return (
            f"AuthConfig(username={self.username!r}, password='***redacted***', "
            f"access_token='***redacted***')"
        )


@dataclass(frozen=True)
class AppConfig:
    apigee: ApigeeConfig
    auth: AuthConfig
    state_path: str = DEFAULT_STATE_PATH


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

_PLACEHOLDER_VALUES = frozenset({
    "REPLACE_WITH_YOUR_PASSWORD",
    "REPLACE_WITH_YOUR_ACCESS_TOKEN",
    "your-organization",
})


def _is_placeholder(value: str) -> bool:
    return value in _PLACEHOLDER_VALUES or value.startswith("your-")


def load_config(config_path: str) -> AppConfig:
    """Load and validate the YAML configuration file.

    Environment variables take precedence over YAML values.  The file may
    be absent entirely when everything comes from the environment.

    Raises:
        ConfigError: If required values are missing or still placeholders.
    """
    path = Path(config_path)
    raw: dict = {}
    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            loaded = yaml.safe_load(f)
        if loaded is not None and not isinstance(loaded, dict):
            raise ConfigError(
                f"Invalid config file format: expected YAML mapping, got {type(loaded).__name__}"
            )
        raw = loaded or {}
    else:
        logger.debug("Config file %s not found, relying on environment", config_path)

    apigee_section = raw.get("apigee") or {}
    auth_section = raw.get("auth") or {}
    state_section = raw.get("state") or {}

    # --- Organization ---
    organization = os.environ.get(ENV_ORGANIZATION) or apigee_section.get("organization", "") or ""
    if not organization or _is_placeholder(organization):
        raise ConfigError(
            "Missing organization. "
            f"Set 'apigee.organization' in config or {ENV_ORGANIZATION} env var."
        )

    base_url = os.environ.get(ENV_BASE_URI) or apigee_section.get("base_url") or DEFAULT_BASE_URL
    if not base_url.startswith(("https://", "http://")):
        raise ConfigError(f"Invalid base URL: {base_url!r}")

    # --- Auth (env var > YAML) ---
    access_token = os.environ.get(ENV_ACCESS_TOKEN) or auth_section.get("access_token", "") or ""
    username = os.environ.get(ENV_USER) or auth_section.get("username", "") or ""
    password = os.environ.get(ENV_PASSWORD) or auth_section.get("password", "") or ""

    if access_token and _is_placeholder(access_token):
        raise ConfigError(f"Placeholder access token. Set '{ENV_ACCESS_TOKEN}' env var.")
    if not access_token:
        if not username or not password:
            raise ConfigError(
                "Missing credentials. Set 'auth.access_token', or both "
                f"'auth.username' and 'auth.password' (or {ENV_USER} / {ENV_PASSWORD})."
            )
        if _is_placeholder(password):
            raise ConfigError(f"Placeholder password. Set '{ENV_PASSWORD}' env var.")

    state_path = state_section.get("path") or DEFAULT_STATE_PATH

    config = AppConfig(
        apigee=ApigeeConfig(organization=organization, base_url=base_url),
        auth=AuthConfig(username=username, password=password, access_token=access_token),
        state_path=state_path,
    )

    logger.debug(
        "Config loaded from %s (auth: %s)",
        config_path,
        "token" if access_token else "basic",
    )
    return config
