"""Apigee virtual host reconciliation."""

__version__ = "1.0.0"

__all__ = [
    "cli",
    "client",
    "config",
    "controller",
    "errors",
    "logging_setup",
    "mapper",
    "models",
    "state",
    "validation",
]
