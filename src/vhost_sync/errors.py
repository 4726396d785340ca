"""
Error kinds raised while reconciling a virtual host.

Every fatal path raises one of these with a message naming the operation
and the underlying cause.  ``RemoteNotFound`` is the only remote condition
the controller treats specially.
"""

from __future__ import annotations

__all__ = [
    "VhostSyncError",
    "MappingError",
    "RemoteError",
    "RemoteNotFound",
    "FormatError",
]


class VhostSyncError(Exception):
    """Base class for all vhost-sync errors."""


class MappingError(VhostSyncError):
    """Raised when a local record cannot be turned into a remote payload."""


class RemoteError(VhostSyncError):
    """Raised when a call to the management API fails.

    ``status_code`` is the HTTP status when a response was received, or
    None for transport failures (DNS, TLS, timeouts).
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class RemoteNotFound(RemoteError):
    """Raised when the management API answers 404 for a virtual host."""

    def __init__(self, message: str):
        super().__init__(message, status_code=404)


class FormatError(VhostSyncError):
    """Raised when an import id does not follow ``{name}_{env}``."""
