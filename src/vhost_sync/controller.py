"""
Lifecycle controller for a single virtual host.

Entry points mirror the lifecycle of the local record:

    create -> refresh_after_write -> read
    update -> refresh_after_write -> read
    read    (404 clears the local id so the next apply re-creates it)
    delete  (clears the local id on success)
    import_resource  ("{name}_{env}" -> fresh local record)

Local fields are written only after the corresponding remote call has
succeeded.  Retries are the client's business, not ours.
"""

from __future__ import annotations

import logging
import uuid

from .client import ApigeeClient
from .errors import FormatError, MappingError, RemoteError, RemoteNotFound
from .mapper import apply_updates, from_remote, to_remote
from .state import ResourceData
from .validation import ValidationError, sanitize_env, sanitize_vhost_name

__all__ = [
    "create",
    "read",
    "update",
    "delete",
    "import_resource",
    "refresh_after_write",
    "parse_import_id",
]

logger = logging.getLogger(__name__)


def _describe(operation: str, name: str, env: str) -> str:
    return f"{operation} virtual host '{name}' in env '{env}'"


def _rewrap(exc: RemoteError, context: str) -> RemoteError:
    """Prefix *exc* with the operation context, keeping its kind."""
    message = f"{context} failed: {exc}"
    if isinstance(exc, RemoteNotFound):
        return RemoteNotFound(message)
    return RemoteError(message, status_code=exc.status_code)


def _identity(data: ResourceData, operation: str) -> tuple[str, str]:
    """Return the validated (name, env) pair of a record."""
    name = data.get("name") or ""
    env = data.get("env") or ""
    try:
        return sanitize_vhost_name(name), sanitize_env(env)
    except ValidationError as exc:
        raise MappingError(f"{_describe(operation, name, env)} failed: {exc}") from exc


# ------------------------------------------------------------------
# Read
# ------------------------------------------------------------------

def read(data: ResourceData, client: ApigeeClient) -> None:
    """Pull remote state into *data*.

    A 404 is not an error: the local id is cleared so the resource is
    considered gone.  Any other remote error propagates and leaves the
    record untouched.
    """
    name, env = _identity(data, "read")
    logger.debug("read START %s/%s", env, name)

    try:
        vhost = client.get_virtual_host(name, env)
    except RemoteNotFound:
        logger.warning(
            "Virtual host '%s' not found in env '%s', removing it from local state",
            name, env,
        )
        data.set_id("")
        return
    except RemoteError as exc:
        logger.error("%s failed: %s", _describe("read", name, env), exc)
        raise _rewrap(exc, _describe("read", name, env)) from exc

    apply_updates(data, from_remote(vhost))


def refresh_after_write(data: ResourceData, client: ApigeeClient, operation: str) -> None:
    """Re-read the resource after *operation* so server-side defaults land locally."""
    logger.debug("refresh after %s for %r", operation, data.get("name"))
    read(data, client)


# ------------------------------------------------------------------
# Create / update
# ------------------------------------------------------------------

def create(data: ResourceData, client: ApigeeClient) -> None:
    """Create the remote virtual host described by *data*.

    A fresh opaque id is assigned up front and cleared again if anything
    fails before the remote object exists.
    """
    name, env = _identity(data, "create")
    context = _describe("create", name, env)
    logger.debug("create START %s/%s", env, name)

    data.set_id(str(uuid.uuid4()))
    try:
        vhost = to_remote(data)
        client.create_virtual_host(vhost, env)
    except MappingError as exc:
        data.set_id("")
        logger.error("%s failed: %s", context, exc)
        raise MappingError(f"{context} failed: {exc}") from exc
    except RemoteError as exc:
        data.set_id("")
        logger.error("%s failed: %s", context, exc)
        raise _rewrap(exc, context) from exc

    refresh_after_write(data, client, "create")


def update(data: ResourceData, client: ApigeeClient) -> None:
    """Push the local record to the existing remote virtual host."""
    name, env = _identity(data, "update")
    context = _describe("update", name, env)
    logger.debug("update START %s/%s", env, name)

    try:
        vhost = to_remote(data)
        client.update_virtual_host(vhost, env)
    except MappingError as exc:
        logger.error("%s failed: %s", context, exc)
        raise MappingError(f"{context} failed: {exc}") from exc
    except RemoteError as exc:
        logger.error("%s failed: %s", context, exc)
        raise _rewrap(exc, context) from exc

    refresh_after_write(data, client, "update")


# ------------------------------------------------------------------
# Delete
# ------------------------------------------------------------------

def delete(data: ResourceData, client: ApigeeClient) -> None:
    """Delete the remote virtual host and clear the local id."""
    name, env = _identity(data, "delete")
    logger.debug("delete START %s/%s", env, name)

    try:
        client.delete_virtual_host(name, env)
    except RemoteError as exc:
        logger.error("%s failed: %s", _describe("delete", name, env), exc)
        raise _rewrap(exc, _describe("delete", name, env)) from exc

    data.set_id("")


# ------------------------------------------------------------------
# Import
# ------------------------------------------------------------------

def parse_import_id(import_id: str) -> tuple[str, str]:
    """Split ``{name}_{env}`` at the last underscore.

    Names may contain underscores, environments may not.

    Raises:
        FormatError: If there is no underscore, either part is empty, or
            the parts are not valid names.
    """
    name, sep, env = (import_id or "").rpartition("_")
    if not sep or not name or not env:
        raise FormatError(
            f"Wrong format of import id: {import_id!r}. Please follow '{{name}}_{{env}}'"
        )
    try:
        return sanitize_vhost_name(name), sanitize_env(env)
    except ValidationError as exc:
        raise FormatError(f"Wrong format of import id: {import_id!r}. {exc}") from exc


def import_resource(import_id: str, client: ApigeeClient) -> ResourceData:
    """Build a new local record from an existing remote virtual host.

    Unlike ``read``, a 404 is fatal here: there is nothing to import.
    """
    logger.debug("import START %s", import_id)
    name, env = parse_import_id(import_id)

    try:
        vhost = client.get_virtual_host(name, env)
    except RemoteError as exc:
        logger.error("%s failed: %s", _describe("import", name, env), exc)
        raise _rewrap(exc, _describe("import", name, env)) from exc

    data = ResourceData(resource_id=import_id)
    apply_updates(data, from_remote(vhost))
    data.set("env", env)
    return data
