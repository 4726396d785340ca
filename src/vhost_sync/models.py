"""
Remote virtual host model and its JSON wire codec.

The dataclasses carry native Python types only.  The Apigee management API
expects a few oddities on the wire (string-typed booleans inside
``sSLInfo``, ``port`` as a string, name/value property lists); those are
produced and parsed here and nowhere else.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

__all__ = [
    "EMPTY_LIST_SENTINEL",
    "SSLInfo",
    "VirtualHost",
]


# A single empty string means "present but unset" to the API.
EMPTY_LIST_SENTINEL = [""]


def _sentinel() -> list[str]:
    return list(EMPTY_LIST_SENTINEL)


# ------------------------------------------------------------------
# Wire helpers
# ------------------------------------------------------------------

def _flag_to_wire(value: bool) -> str:
    return "true" if value else "false"


def _flag_from_wire(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() == "true"


def _aliases_from_wire(raw: Any) -> list[str]:
    # Some gateways return a single alias as a bare string.
    items = raw.split(",") if isinstance(raw, str) else (raw or [])
    return [str(item).strip() for item in items if str(item).strip()]


def _options_to_wire(options: dict[str, str]) -> dict:
    return {
        "property": [
            {"name": name, "value": value} for name, value in options.items()
        ]
    }


def _options_from_wire(raw: Any) -> dict[str, str]:
    """Parse ``{"property": [{"name": .., "value": ..}]}`` into a dict.

    A plain ``{name: value}`` mapping is accepted as well.
    """
    if not raw:
        return {}
    if isinstance(raw, dict) and "property" in raw:
        items = raw.get("property") or []
        return {
            str(item.get("name", "")): str(item.get("value", ""))
            for item in items
            if isinstance(item, dict) and item.get("name")
        }
    if isinstance(raw, dict):
        return {str(k): str(v) for k, v in raw.items()}
    return {}


# ------------------------------------------------------------------
# Models
# ------------------------------------------------------------------

@dataclass
class SSLInfo:
    """TLS settings of a virtual host."""
    ssl_enabled: bool = False
    client_auth_enabled: bool = False
    key_store: str = ""
    trust_store: str = ""
    key_alias: str = ""
    ciphers: list[str] = field(default_factory=_sentinel)
    protocols: list[str] = field(default_factory=_sentinel)
    ignore_validation_errors: bool = False

    def to_payload(self) -> dict:
        return {
            "enabled": _flag_to_wire(self.ssl_enabled),
            "clientAuthEnabled": _flag_to_wire(self.client_auth_enabled),
            "keyStore": self.key_store,
            "trustStore": self.trust_store,
            "keyAlias": self.key_alias,
            "ciphers": list(self.ciphers),
            "protocols": list(self.protocols),
            "ignoreValidationErrors": self.ignore_validation_errors,
        }

    @classmethod
    def from_payload(cls, raw: dict) -> SSLInfo:
        return cls(
            ssl_enabled=_flag_from_wire(raw.get("enabled")),
            client_auth_enabled=_flag_from_wire(raw.get("clientAuthEnabled")),
            key_store=raw.get("keyStore", "") or "",
            trust_store=raw.get("trustStore", "") or "",
            key_alias=raw.get("keyAlias", "") or "",
            ciphers=list(raw.get("ciphers") or EMPTY_LIST_SENTINEL),
            protocols=list(raw.get("protocols") or EMPTY_LIST_SENTINEL),
            ignore_validation_errors=_flag_from_wire(
                raw.get("ignoreValidationErrors")
            ),
        )


@dataclass
class VirtualHost:
    """A virtual host as the management API stores it.

    ``env`` is deliberately absent: the environment is part of the URL,
    not of the body.
    """
    name: str
    host_aliases: list[str] = field(default_factory=list)
    base_url: str = ""
    port: int = 0
    enabled: bool = True
    ssl_info: SSLInfo | None = None  # None = no TLS block
    properties: dict[str, str] = field(default_factory=dict)
    retry_options: dict[str, str] | None = None
    listen_options: dict[str, str] | None = None

    def to_payload(self) -> dict:
        """Render the JSON body for a create or update call."""
        body: dict[str, Any] = {
            "name": self.name,
            "hostAliases": list(self.host_aliases),
            "baseUrl": self.base_url,
            "port": str(self.port),
            "enabled": self.enabled,
            "properties": _options_to_wire(self.properties),
        }
        if self.ssl_info is not None:
            body["sSLInfo"] = self.ssl_info.to_payload()
        if self.retry_options is not None:
            body["retryOptions"] = _options_to_wire(self.retry_options)
        if self.listen_options is not None:
            body["listenOptions"] = _options_to_wire(self.listen_options)
        return body

    @classmethod
    def from_payload(cls, raw: dict) -> VirtualHost:
        """Parse a GET/POST/PUT response body.

        Raises:
            ValueError: If ``port`` is present but not an integer.
        """
        raw_port = raw.get("port")
        port = int(raw_port) if raw_port not in (None, "") else 0

        ssl_raw = raw.get("sSLInfo")
        retry_raw = raw.get("retryOptions")
        listen_raw = raw.get("listenOptions")

        return cls(
            name=raw.get("name", "") or "",
            host_aliases=_aliases_from_wire(raw.get("hostAliases")),
            base_url=raw.get("baseUrl", "") or "",
            port=port,
            enabled=_flag_from_wire(raw.get("enabled", True)),
            ssl_info=SSLInfo.from_payload(ssl_raw) if ssl_raw else None,
            properties=_options_from_wire(raw.get("properties")),
            retry_options=_options_from_wire(retry_raw) if retry_raw is not None else None,
            listen_options=_options_from_wire(listen_raw) if listen_raw is not None else None,
        )
