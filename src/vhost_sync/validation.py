"""
Validation of user-supplied names before they are embedded in API URLs.

Prevents path injection via crafted virtual host or environment names in
desired-state files and import ids.
"""

from __future__ import annotations

import re

__all__ = [
    "ValidationError",
    "sanitize_vhost_name",
    "sanitize_env",
]


class ValidationError(Exception):
    """Raised when user input fails validation."""


# Apigee entity names: alphanumerics, underscores, hyphens, dots, 1-255 chars.
_NAME_PATTERN = re.compile(r'^[A-Za-z0-9_.\-]{1,255}$')

# Environments never contain underscores, the import id splits on the last one.
_ENV_PATTERN = re.compile(r'^[A-Za-z0-9.\-]{1,255}$')


def sanitize_vhost_name(value: str) -> str:
    """Validate a virtual host name.

    Returns the stripped value; raises ``ValidationError`` otherwise.
    """
    value = (value or "").strip()
    if not value:
        raise ValidationError("Virtual host name must not be empty.")
    if not _NAME_PATTERN.match(value):
        raise ValidationError(
            f"Invalid virtual host name: {value!r}. "
            "Use letters, digits, underscores, hyphens, or dots."
        )
    return value


def sanitize_env(value: str) -> str:
    """Validate an environment name (no underscores allowed)."""
    value = (value or "").strip()
    if not value:
        raise ValidationError("Environment must not be empty.")
    if not _ENV_PATTERN.match(value):
        raise ValidationError(
            f"Invalid environment: {value!r}. "
            "Use letters, digits, hyphens, or dots (no underscores)."
        )
    return value
