"""
CLI entry point for vhost-sync.

Reconciles virtual hosts declared in YAML files against the Apigee
management API and keeps a local JSON state file in step:

    apply FILE        create or update the virtual host described in FILE
    refresh NAME ENV  pull remote state into the local record
    destroy NAME ENV  delete the remote virtual host and forget it locally
    import ID         adopt an existing virtual host ("{name}_{env}")
    show              list local records (or remote names with --remote ENV)
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

import yaml

from . import controller
from .client import ApigeeClient
from .config import DEFAULT_CONFIG_PATH, AppConfig, ConfigError, load_config
from .errors import RemoteNotFound, VhostSyncError
from .logging_setup import LOG_DIR, setup_logging
from .mapper import TLS_BLOCK
from .state import ResourceData, StateError, StateStore

__all__ = ["main", "load_desired"]

logger = logging.getLogger(__name__)

# Optional fields dropped from the local record when the desired file omits them.
_OPTIONAL_FIELDS = ("retryOptions", "listenOptions")


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="vhost-sync",
        description="Reconcile Apigee virtual hosts against a local state file.",
    )
    parser.add_argument("--config", "-c", default=DEFAULT_CONFIG_PATH,
                        help=f"Path to YAML config file (default: {DEFAULT_CONFIG_PATH})")
    parser.add_argument("--state", "-s", default=None,
                        help="Path to the JSON state file (overrides config)")
    parser.add_argument("--log-dir", default=LOG_DIR, help="Directory for log files")
    parser.add_argument("--verbose", "-v", action="store_true", default=False,
                        help="Enable verbose (debug) logging")

    sub = parser.add_subparsers(dest="command", required=True)

    p_apply = sub.add_parser("apply", help="Create or update a virtual host from a YAML file")
    p_apply.add_argument("file", help="Desired virtual host definition (YAML)")

    p_refresh = sub.add_parser("refresh", help="Refresh one local record from the API")
    p_refresh.add_argument("name")
    p_refresh.add_argument("env")

    p_destroy = sub.add_parser("destroy", help="Delete a virtual host")
    p_destroy.add_argument("name")
    p_destroy.add_argument("env")

    p_import = sub.add_parser("import", help="Import an existing virtual host")
    p_import.add_argument("import_id", help="'{name}_{env}'")

    p_show = sub.add_parser("show", help="List local records")
    p_show.add_argument("--remote", metavar="ENV", default=None,
                        help="List virtual host names in ENV from the API instead")

    return parser.parse_args(argv)


# ---------------------------------------------------------------------------
# Desired-state files
# ---------------------------------------------------------------------------

def _flag_text(value: Any) -> Any:
    if isinstance(value, bool):
        return "true" if value else "false"
    return value


def load_desired(path: str) -> dict[str, Any]:
    """Load a desired virtual host YAML file into local record fields.

    YAML conveniences are folded into the record's string encodings: lists
    of aliases are comma-joined, ports stringified, option mappings
    JSON-encoded, and the ``ssl_info`` mapping wrapped into a one-entry block.

    Raises:
        ConfigError: If the file is missing or not a mapping with name and env.
    """
    file_path = Path(path)
    if not file_path.exists():
        raise ConfigError(f"Desired state file not found: {path}")
    with open(file_path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)
    if not isinstance(raw, dict):
        raise ConfigError(f"Invalid desired state file {path}: expected a YAML mapping")

    fields: dict[str, Any] = dict(raw)
    for required in ("name", "env"):
        if not fields.get(required):
            raise ConfigError(f"Desired state file {path} is missing '{required}'")

    if isinstance(fields.get("hostAliases"), list):
        fields["hostAliases"] = ", ".join(str(a) for a in fields["hostAliases"])
    if "port" in fields and fields["port"] is not None:
        fields["port"] = str(fields["port"])
    for key in ("properties", *_OPTIONAL_FIELDS):
        if isinstance(fields.get(key), dict):
            fields[key] = json.dumps(fields[key], sort_keys=True)
    fields.setdefault("properties", "{}")

    tls = fields.pop(TLS_BLOCK, None)
    if isinstance(tls, list):
        tls = tls[0] if tls else None
    if isinstance(tls, dict):
        block = dict(tls)
        for flag in ("ssl_enabled", "client_auth_enabled"):
            if flag in block:
                block[flag] = _flag_text(block[flag])
        fields[TLS_BLOCK] = [block]
    return fields


def _merge_desired(data: ResourceData, desired: dict[str, Any]) -> None:
    """Overwrite the record's fields with the desired ones."""
    for key, value in desired.items():
        data.set(key, value)
    if TLS_BLOCK not in desired:
        data.set(TLS_BLOCK, [])
    for key in _OPTIONAL_FIELDS:
        if key not in desired:
            data.set(key, None)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def _cmd_apply(args: argparse.Namespace, client: ApigeeClient, store: StateStore) -> None:
    desired = load_desired(args.file)
    name, env = desired["name"], desired["env"]

    data = store.find(name, env)
    if data is not None:
        previous_id = data.id
        controller.read(data, client)
        if not data.id:
            logger.warning("Virtual host '%s' vanished from env '%s', re-creating", name, env)
            store.remove(previous_id)
            store.save()
            data = None

    if data is None:
        data = ResourceData(desired)
        try:
            controller.create(data, client)
        finally:
            if data.id:
                store.put(data)
                store.save()
        print(f"Created virtual host '{name}' in env '{env}' (id {data.id})")
        return

    # Merge into a copy so a rejected update leaves the stored record alone.
    candidate = ResourceData(data.to_mapping(), data.id)
    _merge_desired(candidate, desired)
    controller.update(candidate, client)
    if candidate.id:
        store.put(candidate)
    else:
        store.remove(data.id)
    store.save()
    print(f"Updated virtual host '{name}' in env '{env}'")


def _require_record(store: StateStore, name: str, env: str) -> ResourceData:
    data = store.find(name, env)
    if data is None:
        raise ConfigError(f"No local record for virtual host '{name}' in env '{env}'")
    return data


def _cmd_refresh(args: argparse.Namespace, client: ApigeeClient, store: StateStore) -> None:
    data = _require_record(store, args.name, args.env)
    previous_id = data.id
    controller.read(data, client)
    if not data.id:
        store.remove(previous_id)
        print(f"Virtual host '{args.name}' no longer exists in env '{args.env}', record removed")
    else:
        store.put(data)
        print(f"Refreshed virtual host '{args.name}' in env '{args.env}'")
    store.save()


def _cmd_destroy(args: argparse.Namespace, client: ApigeeClient, store: StateStore) -> None:
    data = _require_record(store, args.name, args.env)
    previous_id = data.id
    try:
        controller.delete(data, client)
    except RemoteNotFound:
        logger.warning(
            "Virtual host '%s' already gone from env '%s', removing record",
            args.name, args.env,
        )
        print(f"Virtual host '{args.name}' no longer exists in env '{args.env}', record removed")
    else:
        print(f"Deleted virtual host '{args.name}' from env '{args.env}'")
    store.remove(previous_id)
    store.save()


def _cmd_import(args: argparse.Namespace, client: ApigeeClient, store: StateStore) -> None:
    data = controller.import_resource(args.import_id, client)
    store.put(data)
    store.save()
    print(f"Imported virtual host '{data.get('name')}' from env '{data.get('env')}'")


def _cmd_show(args: argparse.Namespace, client: ApigeeClient, store: StateStore) -> None:
    if args.remote:
        for name in client.list_virtual_hosts(args.remote):
            print(name)
        return
    for data in store.records():
        tls = "tls" if data.has_block(TLS_BLOCK) else "plain"
        print(f"{data.get('env')}\t{data.get('name')}\t{data.get('port')}\t{tls}\t{data.id}")


_COMMANDS = {
    "apply": _cmd_apply,
    "refresh": _cmd_refresh,
    "destroy": _cmd_destroy,
    "import": _cmd_import,
    "show": _cmd_show,
}


def _build_client(cfg: AppConfig) -> ApigeeClient:
    return ApigeeClient(
        organization=cfg.apigee.organization,
        base_url=cfg.apigee.base_url,
        username=cfg.auth.username,
        password=cfg.auth.password,
        access_token=cfg.auth.access_token,
    )


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)

    setup_logging(verbose=args.verbose, log_prefix=args.command, log_dir=args.log_dir)

    try:
        cfg = load_config(args.config)
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        sys.exit(1)

    store = StateStore(Path(args.state or cfg.state_path))
    client = _build_client(cfg)
    logger.debug("Using %r with state file %s", client, store.path)

    try:
        store.load()
        _COMMANDS[args.command](args, client, store)
    except (ConfigError, StateError, VhostSyncError) as exc:
        logger.error("%s", exc)
        sys.exit(1)
