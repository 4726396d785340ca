"""
Conversion between the local state record and the remote ``VirtualHost``.

The local record is flat and loosely typed (port as a string, TLS flags as
"true"/"false" strings, options as JSON strings).  All of those conversions
happen here so the controller only ever sees native types.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from .errors import MappingError
from .models import EMPTY_LIST_SENTINEL, SSLInfo, VirtualHost
from .state import ResourceData

__all__ = [
    "TLS_BLOCK",
    "to_remote",
    "from_remote",
    "apply_updates",
]

logger = logging.getLogger(__name__)

# Name of the optional nested TLS block in the local record.
TLS_BLOCK = "ssl_info"

_TRUE_FLAGS = frozenset({"true"})
_FALSE_FLAGS = frozenset({"false", ""})


def _tls_key(name: str) -> str:
    return f"{TLS_BLOCK}.0.{name}"


# ------------------------------------------------------------------
# Local -> remote
# ------------------------------------------------------------------

def _parse_port(value: Any) -> int:
    text = str(value if value is not None else "").strip()
    try:
        port = int(text)
    except ValueError:
        raise MappingError(f"Invalid port {value!r}: not an integer") from None
    if port < 0:
        raise MappingError(f"Invalid port {value!r}: must not be negative")
    return port


def _parse_flag(value: Any, field_name: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value if value is not None else "").strip().lower()
    if text in _TRUE_FLAGS:
        return True
    if text in _FALSE_FLAGS:
        return False
    raise MappingError(f"Invalid {field_name} {value!r}: expected 'true' or 'false'")


def _parse_aliases(value: Any) -> list[str]:
    if isinstance(value, list):
        items = value
    else:
        items = str(value or "").split(",")
    return [str(item).strip() for item in items if str(item).strip()]


def _parse_options(value: Any, field_name: str) -> dict[str, str]:
    """Decode a JSON-object string (or mapping) into name -> value pairs."""
    if isinstance(value, dict):
        decoded = value
    else:
        text = str(value or "").strip()
        if not text:
            return {}
        try:
            decoded = json.loads(text)
        except json.JSONDecodeError as exc:
            raise MappingError(f"Invalid {field_name}: not valid JSON ({exc})") from exc
    if not isinstance(decoded, dict):
        raise MappingError(f"Invalid {field_name}: expected a JSON object")
    return {str(k): str(v) for k, v in decoded.items()}


def _string_list(value: Any) -> list[str]:
    if not value:
        return list(EMPTY_LIST_SENTINEL)
    if isinstance(value, str):
        return [value]
    return [str(item) for item in value]


def _build_ssl_info(data: ResourceData) -> SSLInfo:
    return SSLInfo(
        ssl_enabled=_parse_flag(data.get(_tls_key("ssl_enabled")), "ssl_enabled"),
        client_auth_enabled=_parse_flag(
            data.get(_tls_key("client_auth_enabled")), "client_auth_enabled"
        ),
        key_store=data.get(_tls_key("key_store"), "") or "",
        trust_store=data.get(_tls_key("trust_store"), "") or "",
        key_alias=data.get(_tls_key("key_alias"), "") or "",
        ciphers=_string_list(data.get(_tls_key("ciphers"))),
        protocols=_string_list(data.get(_tls_key("protocols"))),
        ignore_validation_errors=_parse_flag(
            data.get(_tls_key("ignore_validation_errors")), "ignore_validation_errors"
        ),
    )


def to_remote(data: ResourceData) -> VirtualHost:
    """Build the remote ``VirtualHost`` for a local record.

    Raises:
        MappingError: If the record cannot be represented remotely (missing
            name, non-numeric port, malformed flag or JSON option string).
    """
    logger.debug("to_remote START for %r", data.get("name"))

    name = (data.get("name") or "").strip()
    if not name:
        raise MappingError("Missing virtual host name")

    ssl_info = _build_ssl_info(data) if data.has_block(TLS_BLOCK) else None

    retry_raw = data.get("retryOptions")
    listen_raw = data.get("listenOptions")
    enabled = data.get("enabled")

    return VirtualHost(
        name=name,
        host_aliases=_parse_aliases(data.get("hostAliases")),
        base_url=data.get("baseUrl", "") or "",
        port=_parse_port(data.get("port")),
        enabled=True if enabled is None else _parse_flag(enabled, "enabled"),
        ssl_info=ssl_info,
        properties=_parse_options(data.get("properties"), "properties"),
        retry_options=(
            _parse_options(retry_raw, "retryOptions") if retry_raw else None
        ),
        listen_options=(
            _parse_options(listen_raw, "listenOptions") if listen_raw else None
        ),
    )


# ------------------------------------------------------------------
# Remote -> local
# ------------------------------------------------------------------

def _flatten(values: list[str]) -> list[str]:
    if list(values) == EMPTY_LIST_SENTINEL:
        return []
    return list(values)


def _flag_text(value: bool) -> str:
    return "true" if value else "false"


def _options_text(options: dict[str, str]) -> str:
    return json.dumps(options, sort_keys=True)


def from_remote(vhost: VirtualHost) -> list[tuple[str, Any]]:
    """Return the (field, value) updates that bring a local record in line.

    TLS fields are only included when the remote carries a TLS block;
    otherwise local TLS settings are left alone.
    """
    updates: list[tuple[str, Any]] = [
        ("name", vhost.name),
        ("hostAliases", ", ".join(vhost.host_aliases)),
        ("baseUrl", vhost.base_url),
        ("enabled", vhost.enabled),
        ("port", str(vhost.port)),
        ("properties", _options_text(vhost.properties)),
    ]
    if vhost.retry_options is not None:
        updates.append(("retryOptions", _options_text(vhost.retry_options)))
    if vhost.listen_options is not None:
        updates.append(("listenOptions", _options_text(vhost.listen_options)))

    ssl = vhost.ssl_info
    if ssl is not None:
        updates.extend([
            (_tls_key("ssl_enabled"), _flag_text(ssl.ssl_enabled)),
            (_tls_key("client_auth_enabled"), _flag_text(ssl.client_auth_enabled)),
            (_tls_key("key_store"), ssl.key_store),
            (_tls_key("trust_store"), ssl.trust_store),
            (_tls_key("key_alias"), ssl.key_alias),
            (_tls_key("ciphers"), _flatten(ssl.ciphers)),
            (_tls_key("protocols"), _flatten(ssl.protocols)),
            (_tls_key("ignore_validation_errors"), ssl.ignore_validation_errors),
        ])
    return updates


def apply_updates(data: ResourceData, updates: list[tuple[str, Any]]) -> None:
    """Write *updates* into the local record."""
    for key, value in updates:
        data.set(key, value)
