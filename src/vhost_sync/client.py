"""
Apigee Edge management API client for virtual hosts.

Features:
  - Typed create / get / update / delete on
    /v1/organizations/{org}/environments/{env}/virtualhosts
  - Structured errors: HTTP 404 raises ``RemoteNotFound``, anything else
    raises ``RemoteError`` carrying the status code
  - Automatic retry with backoff on transient failures (429, 502-504)
    for idempotent methods only
  - Credential redaction in __repr__
  - Dependency injection for session (testability)
"""

from __future__ import annotations

import logging
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .errors import RemoteError, RemoteNotFound
from .models import VirtualHost
from .validation import ValidationError, sanitize_env, sanitize_vhost_name

__all__ = ["ApigeeClient", "DEFAULT_BASE_URL"]

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.enterprise.apigee.com"

# Retry on rate limiting and gateway errors only; a 500 from the management
# API is usually a validation problem that will not go away.  POST is left
# out: a create that timed out at the gateway may already exist remotely.
_DEFAULT_RETRY = Retry(
    total=3,
    backoff_factor=0.5,
    status_forcelist=[429, 502, 503, 504],
    allowed_methods=["GET", "PUT", "DELETE"],
    raise_on_status=False,
)


def _build_session(
    username: str = "",
    password: str = "",
    access_token: str = "",
    retry: Retry | None = None,
) -> requests.Session:
    """Create a requests.Session with auth and a retry adapter."""
    session = requests.Session()
    session.headers.update({
        "Content-Type": "application/json",
        "Accept": "application/json",
    })
    if access_token:
        session.headers["Authorization"] = f"Bearer {access_token}"
    elif username:
        session.auth = (username, password)
    adapter = HTTPAdapter(max_retries=retry or _DEFAULT_RETRY)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


class ApigeeClient:
    """HTTP client for the virtual host endpoints of one organization."""

    # Default timeout for all HTTP requests: (connect, read) in seconds.
    DEFAULT_TIMEOUT = (10, 60)

    def __init__(
        self,
        organization: str,
        base_url: str = DEFAULT_BASE_URL,
        username: str = "",
        password: str = "",
        access_token: str = "",
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.organization = organization
        self._auth_hint = "token" if access_token else (username or "anonymous")
        self.session = session or _build_session(username, password, access_token)

    def __repr__(self) -> str:
        return (
            f"ApigeeClient(base_url={self.base_url!r}, "
            f"organization={self.organization!r}, auth={self._auth_hint!r})"
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _collection_url(self, env: str) -> str:
        try:
            env = sanitize_env(env)
        except ValidationError as exc:
            raise RemoteError(str(exc)) from exc
        return (
            f"{self.base_url}/v1/organizations/{self.organization}"
            f"/environments/{env}/virtualhosts"
        )

    def _item_url(self, name: str, env: str) -> str:
        try:
            name = sanitize_vhost_name(name)
        except ValidationError as exc:
            raise RemoteError(str(exc)) from exc
        return f"{self._collection_url(env)}/{name}"

    def _request(self, method: str, url: str, body: dict | None = None) -> requests.Response:
        """Send a request and translate failures into remote errors."""
        logger.debug("%s %s", method, url)
        try:
            resp = self.session.request(
                method, url, json=body, timeout=self.DEFAULT_TIMEOUT,
            )
            resp.raise_for_status()
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else None
            detail = _error_detail(exc.response)
            if status == 404:
                raise RemoteNotFound(f"{method} {url}: 404 not found") from exc
            raise RemoteError(
                f"{method} {url}: HTTP {status} {detail}".rstrip(),
                status_code=status,
            ) from exc
        except requests.RequestException as exc:
            raise RemoteError(f"{method} {url}: {exc}") from exc
        return resp

    @staticmethod
    def _parse_vhost(resp: requests.Response) -> VirtualHost:
        try:
            return VirtualHost.from_payload(resp.json())
        except (ValueError, AttributeError) as exc:
            raise RemoteError(
                f"Unexpected virtual host response from {resp.url}: {exc}",
                status_code=resp.status_code,
            ) from exc

    # ------------------------------------------------------------------
    # Virtual host operations
    # ------------------------------------------------------------------

    def create_virtual_host(self, vhost: VirtualHost, env: str) -> VirtualHost:
        """POST /v1/organizations/{org}/environments/{env}/virtualhosts"""
        resp = self._request("POST", self._collection_url(env), vhost.to_payload())
        logger.info("Created virtual host '%s' in env '%s'", vhost.name, env)
        return self._parse_vhost(resp)

    def get_virtual_host(self, name: str, env: str) -> VirtualHost:
        """GET /v1/organizations/{org}/environments/{env}/virtualhosts/{name}"""
        resp = self._request("GET", self._item_url(name, env))
        return self._parse_vhost(resp)

    def update_virtual_host(self, vhost: VirtualHost, env: str) -> VirtualHost:
        """PUT /v1/organizations/{org}/environments/{env}/virtualhosts/{name}"""
        resp = self._request("PUT", self._item_url(vhost.name, env), vhost.to_payload())
        logger.info("Updated virtual host '%s' in env '%s'", vhost.name, env)
        return self._parse_vhost(resp)

    def delete_virtual_host(self, name: str, env: str) -> requests.Response:
        """DELETE /v1/organizations/{org}/environments/{env}/virtualhosts/{name}"""
        resp = self._request("DELETE", self._item_url(name, env))
        logger.info("Deleted virtual host '%s' from env '%s'", name, env)
        return resp

    def list_virtual_hosts(self, env: str) -> list[str]:
        """GET /v1/organizations/{org}/environments/{env}/virtualhosts

        The API answers with a bare JSON list of names.
        """
        resp = self._request("GET", self._collection_url(env))
        data: Any = resp.json()
        names = [str(item) for item in data] if isinstance(data, list) else []
        names.sort()
        logger.info("Found %d virtual host(s) in env '%s'", len(names), env)
        return names


def _error_detail(resp: requests.Response | None) -> str:
    """Best-effort extraction of the API's error message."""
    if resp is None:
        return ""
    try:
        data = resp.json()
    except ValueError:
        return (resp.text or "")[:500]
    if isinstance(data, dict):
        return str(data.get("message") or data.get("code") or "")[:500]
    return ""
