"""End-to-end tests for the CLI commands against the fake client."""

from __future__ import annotations

from pathlib import Path

import pytest

from vhost_sync import cli
from vhost_sync.config import ConfigError
from vhost_sync.errors import RemoteError
from vhost_sync.models import VirtualHost
from vhost_sync.state import StateStore

from conftest import FakeVirtualHostClient

_DESIRED = """
name: vh1
env: test
hostAliases:
  - a.com
  - b.com
baseUrl: https://x
port: 443
properties: {}
ssl_info:
  ssl_enabled: true
  key_store: ref://ks
  protocols:
    - TLSv1.2
"""


@pytest.fixture
def run(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    fake_client: FakeVirtualHostClient,
):
    config = tmp_path / "config.yaml"
    config.write_text(
        "apigee:\n  organization: acme\nauth:\n  access_token: tok\n",
        encoding="utf-8",
    )
    state = tmp_path / "state.json"
    monkeypatch.setattr(cli, "setup_logging", lambda **kwargs: "")
    monkeypatch.setattr(cli, "_build_client", lambda cfg: fake_client)
    monkeypatch.delenv("APIGEE_ORGANIZATION", raising=False)
    monkeypatch.delenv("APIGEE_ACCESS_TOKEN", raising=False)

    def _run(*argv: str) -> StateStore:
        cli.main(["--config", str(config), "--state", str(state), *argv])
        return StateStore(state).load()

    return _run


def _desired_file(tmp_path: Path, text: str = _DESIRED) -> str:
    path = tmp_path / "vh1.yaml"
    path.write_text(text, encoding="utf-8")
    return str(path)


def test_load_desired_normalises_yaml(tmp_path: Path) -> None:
    fields = cli.load_desired(_desired_file(tmp_path))

    assert fields["hostAliases"] == "a.com, b.com", "Alias lists should be comma-joined"
    assert fields["port"] == "443", "Ports should be stringified"
    assert fields["properties"] == "{}"
    assert fields["ssl_info"] == [
        {"ssl_enabled": "true", "key_store": "ref://ks", "protocols": ["TLSv1.2"]}
    ], "TLS mapping should become a one-entry block with string flags"


def test_load_desired_requires_env(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="env"):
        cli.load_desired(_desired_file(tmp_path, "name: vh1\nport: 80\n"))


def test_apply_creates_then_updates(
    tmp_path: Path, run, fake_client: FakeVirtualHostClient
) -> None:
    desired = _desired_file(tmp_path)

    store = run("apply", desired)
    record = store.find("vh1", "test")
    assert record is not None and record.id, "Apply should store the created record"
    assert fake_client.created[0].host_aliases == ["a.com", "b.com"]

    _desired_file(tmp_path, _DESIRED.replace("port: 443", "port: 8443"))
    store = run("apply", desired)
    updated = store.find("vh1", "test")

    assert updated is not None and updated.id == record.id, "Update keeps the id"
    assert fake_client.updated[0].port == 8443
    assert updated.get("port") == "8443"


def test_apply_recreates_vanished_host(
    tmp_path: Path, run, fake_client: FakeVirtualHostClient
) -> None:
    desired = _desired_file(tmp_path)
    first_id = run("apply", desired).find("vh1", "test").id
    fake_client.hosts.clear()

    store = run("apply", desired)
    record = store.find("vh1", "test")

    assert record is not None and record.id != first_id, "Drift should trigger a re-create"
    assert len(fake_client.created) == 2


def test_apply_failure_leaves_no_record(
    tmp_path: Path, run, fake_client: FakeVirtualHostClient
) -> None:
    fake_client.fail_with["create"] = RemoteError("POST: HTTP 400 bad", status_code=400)

    with pytest.raises(SystemExit) as excinfo:
        run("apply", _desired_file(tmp_path))

    assert excinfo.value.code == 1
    assert not (tmp_path / "state.json").exists(), "Nothing should be persisted"


def test_refresh_removes_record_on_404(
    tmp_path: Path, run, fake_client: FakeVirtualHostClient
) -> None:
    run("apply", _desired_file(tmp_path))
    fake_client.hosts.clear()

    store = run("refresh", "vh1", "test")

    assert store.find("vh1", "test") is None


def test_destroy_deletes_remote_and_record(
    tmp_path: Path, run, fake_client: FakeVirtualHostClient
) -> None:
    run("apply", _desired_file(tmp_path))

    store = run("destroy", "vh1", "test")

    assert store.find("vh1", "test") is None
    assert ("test", "vh1") not in fake_client.hosts


def test_import_adds_record(run, fake_client: FakeVirtualHostClient) -> None:
    fake_client.hosts[("prod", "my_host")] = VirtualHost(name="my_host", port=443)

    store = run("import", "my_host_prod")
    record = store.find("my_host", "prod")

    assert record is not None and record.id == "my_host_prod"


def test_import_bad_token_exits(run) -> None:
    with pytest.raises(SystemExit):
        run("import", "no-env-marker")


def test_show_remote_lists_names(
    run, fake_client: FakeVirtualHostClient, capsys: pytest.CaptureFixture[str]
) -> None:
    fake_client.hosts[("test", "secure")] = VirtualHost(name="secure")
    fake_client.hosts[("test", "default")] = VirtualHost(name="default")

    run("show", "--remote", "test")

    assert capsys.readouterr().out.split() == ["default", "secure"]


def test_apply_failed_update_keeps_stored_fields(
    tmp_path: Path, run, fake_client: FakeVirtualHostClient
) -> None:
    desired = _desired_file(tmp_path)
    run("apply", desired)
    fake_client.fail_with["update"] = RemoteError("PUT: HTTP 409 conflict", status_code=409)
    _desired_file(tmp_path, _DESIRED.replace("port: 443", "port: 8443"))

    with pytest.raises(SystemExit) as excinfo:
        run("apply", desired)

    record = StateStore(tmp_path / "state.json").load().find("vh1", "test")
    assert excinfo.value.code == 1
    assert record is not None and record.get("port") == "443", (
        "A rejected update must not reach the state file"
    )
    assert fake_client.hosts[("test", "vh1")].port == 443


def test_destroy_already_gone_removes_record(
    tmp_path: Path, run, fake_client: FakeVirtualHostClient
) -> None:
    run("apply", _desired_file(tmp_path))
    fake_client.hosts.clear()

    store = run("destroy", "vh1", "test")

    assert store.find("vh1", "test") is None, "A vanished host should not block destroy"
    assert fake_client.calls[-1][0] == "delete"


def test_destroy_other_error_keeps_record(
    tmp_path: Path, run, fake_client: FakeVirtualHostClient, server_error: RemoteError
) -> None:
    run("apply", _desired_file(tmp_path))
    fake_client.fail_with["delete"] = server_error

    with pytest.raises(SystemExit):
        run("destroy", "vh1", "test")

    assert StateStore(tmp_path / "state.json").load().find("vh1", "test") is not None
