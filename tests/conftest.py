from __future__ import annotations

import copy
from dataclasses import dataclass, field

import pytest

from vhost_sync.errors import RemoteError, RemoteNotFound
from vhost_sync.models import VirtualHost


@dataclass
class FakeVirtualHostClient:
    """In-memory stand-in for ApigeeClient keyed by (env, name)."""

    hosts: dict[tuple[str, str], VirtualHost] = field(default_factory=dict)
    calls: list[tuple[str, str, str]] = field(default_factory=list)
    created: list[VirtualHost] = field(default_factory=list)
    updated: list[VirtualHost] = field(default_factory=list)
    fail_with: dict[str, Exception] = field(default_factory=dict)
    default_port: int = 0

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.fail_with:
            raise self.fail_with[operation]

    def create_virtual_host(self, vhost: VirtualHost, env: str) -> VirtualHost:
        self.calls.append(("create", vhost.name, env))
        self._maybe_fail("create")
        self.created.append(copy.deepcopy(vhost))
        stored = copy.deepcopy(vhost)
        if not stored.port and self.default_port:
            stored.port = self.default_port
        self.hosts[(env, vhost.name)] = stored
        return copy.deepcopy(stored)

    def get_virtual_host(self, name: str, env: str) -> VirtualHost:
        self.calls.append(("get", name, env))
        self._maybe_fail("get")
        if (env, name) not in self.hosts:
            raise RemoteNotFound(f"GET {env}/{name}: 404 not found")
        return copy.deepcopy(self.hosts[(env, name)])

    def update_virtual_host(self, vhost: VirtualHost, env: str) -> VirtualHost:
        self.calls.append(("update", vhost.name, env))
        self._maybe_fail("update")
        if (env, vhost.name) not in self.hosts:
            raise RemoteNotFound(f"PUT {env}/{vhost.name}: 404 not found")
        self.updated.append(copy.deepcopy(vhost))
        self.hosts[(env, vhost.name)] = copy.deepcopy(vhost)
        return copy.deepcopy(vhost)

    def delete_virtual_host(self, name: str, env: str) -> None:
        self.calls.append(("delete", name, env))
        self._maybe_fail("delete")
        if self.hosts.pop((env, name), None) is None:
            raise RemoteNotFound(f"DELETE {env}/{name}: 404 not found")

    def list_virtual_hosts(self, env: str) -> list[str]:
        return sorted(name for (host_env, name) in self.hosts if host_env == env)


@pytest.fixture
def fake_client() -> FakeVirtualHostClient:
    return FakeVirtualHostClient()


@pytest.fixture
def server_error() -> RemoteError:
    return RemoteError("GET test/vh1: HTTP 500 boom", status_code=500)
