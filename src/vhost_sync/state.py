"""
Local state record and its JSON persistence.

``ResourceData`` is the accessor the controller works against: flat
fields addressed by name, with nested blocks (lists of mappings) reachable
through dotted paths such as ``ssl_info.0.ciphers``.  ``StateStore`` keeps
a set of records in a JSON file keyed by their opaque local id.
"""

from __future__ import annotations

import copy
import json
import logging
import os
from contextlib import suppress
from pathlib import Path
from typing import Any, Iterator

__all__ = [
    "ResourceData",
    "StateError",
    "StateStore",
]

logger = logging.getLogger(__name__)


class StateError(Exception):
    """Raised when the state file cannot be read or has an invalid shape."""


class ResourceData:
    """Field accessor for one local virtual host record."""

    def __init__(self, fields: dict[str, Any] | None = None, resource_id: str = ""):
        self._fields: dict[str, Any] = copy.deepcopy(fields or {})
        self._id = resource_id

    def __repr__(self) -> str:
        return f"ResourceData(id={self._id!r}, fields={self._fields!r})"

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    @property
    def id(self) -> str:
        """Opaque local identifier; empty when the record has no identity."""
        return self._id

    def set_id(self, value: str) -> None:
        self._id = value

    # ------------------------------------------------------------------
    # Field access
    # ------------------------------------------------------------------

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value at *key* (dotted path), or *default* if unset."""
        node: Any = self._fields
        for part in key.split("."):
            if isinstance(node, list):
                if not part.isdigit() or int(part) >= len(node):
                    return default
                node = node[int(part)]
            elif isinstance(node, dict):
                if part not in node:
                    return default
                node = node[part]
            else:
                return default
        return copy.deepcopy(node)

    def set(self, key: str, value: Any) -> None:
        """Set *key* (dotted path), creating intermediate blocks as needed.

        A numeric path segment addresses an entry of a block list; missing
        entries are appended as empty mappings.
        """
        parts = key.split(".")
        node: Any = self._fields
        for index, part in enumerate(parts[:-1]):
            following = parts[index + 1]
            if isinstance(node, list):
                position = int(part)
                while len(node) <= position:
                    node.append({})
                node = node[position]
                continue
            if part not in node or not isinstance(node[part], (dict, list)):
                node[part] = [] if following.isdigit() else {}
            node = node[part]

        last = parts[-1]
        if isinstance(node, list):
            position = int(last)
            while len(node) <= position:
                node.append({})
            node[position] = copy.deepcopy(value)
        else:
            node[last] = copy.deepcopy(value)

    def has_block(self, key: str) -> bool:
        """True if the nested block *key* holds at least one entry."""
        block = self._fields.get(key)
        return isinstance(block, list) and len(block) > 0

    def to_mapping(self) -> dict[str, Any]:
        return copy.deepcopy(self._fields)


class StateStore:
    """JSON file holding local virtual host records keyed by local id."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._records: dict[str, dict[str, Any]] = {}

    def load(self) -> StateStore:
        """Read the state file; a missing file yields an empty store."""
        if not self.path.exists():
            logger.debug("State file %s does not exist, starting empty", self.path)
            self._records = {}
            return self
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise StateError(f"Failed to parse state file {self.path}: {exc}") from exc

        records = payload.get("records") if isinstance(payload, dict) else None
        if not isinstance(records, dict):
            raise StateError(f"State file {self.path} has no 'records' mapping")
        self._records = records
        logger.debug("Loaded %d record(s) from %s", len(records), self.path)
        return self

    def save(self) -> None:
        """Write the state file atomically with owner-only permissions."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        payload = json.dumps({"records": self._records}, indent=2, sort_keys=True)

        fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
        except Exception:
            with suppress(FileNotFoundError):
                os.unlink(tmp_path)
            raise

        tmp_path.replace(self.path)
        os.chmod(self.path, 0o600)

    def records(self) -> Iterator[ResourceData]:
        for resource_id, record in sorted(self._records.items()):
            yield ResourceData(record.get("fields") or {}, resource_id)

    def find(self, name: str, env: str) -> ResourceData | None:
        """Return the record whose (name, env) matches, if any."""
        for data in self.records():
            if data.get("name") == name and data.get("env") == env:
                return data
        return None

    def put(self, data: ResourceData) -> None:
        """Store *data* under its id, replacing other records for its (name, env)."""
        if not data.id:
            raise StateError("Cannot store a record without an id")
        stale = self.find(data.get("name"), data.get("env"))
        if stale is not None and stale.id != data.id:
            del self._records[stale.id]
        self._records[data.id] = {"fields": data.to_mapping()}

    def remove(self, resource_id: str) -> None:
        self._records.pop(resource_id, None)
