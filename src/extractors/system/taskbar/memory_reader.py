"""
In-memory registry reader.

Registry trees are nested dicts, one per hive root:

    {
        "HKEY_USERS": {
            "keys": {
                "S-1-5-21-...-1001": {
                    "keys": {...},
                    "values": {"SomeCounter": 5, "SomePath": "C:\\\\Tools"},
                },
            },
        },
    }

Plain values are typed on load: int -> REG_DWORD, str -> REG_SZ,
bytes -> REG_BINARY; pass a RegistryValue for anything else. Open handles
are tracked so callers can verify every key was released.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Set

from core.enums import HiveRoot
from core.logging import get_logger

from ...exceptions import RegistryError, RegistryKeyNotFoundError, RegistryValueNotFoundError
from .registry_reader import (
    REG_BINARY,
    REG_DWORD,
    REG_SZ,
    KeyParent,
    RegistryValue,
    join_path,
)

LOGGER = get_logger("extractors.system.taskbar.memory_reader")


def _to_registry_value(raw: Any) -> RegistryValue:
    if isinstance(raw, RegistryValue):
        return raw
    if isinstance(raw, bool):
        return RegistryValue(REG_DWORD, int(raw))
    if isinstance(raw, int):
        return RegistryValue(REG_DWORD, raw)
    if isinstance(raw, str):
        return RegistryValue(REG_SZ, raw)
    if isinstance(raw, (bytes, bytearray)):
        return RegistryValue(REG_BINARY, bytes(raw))
    raise TypeError(f"Unsupported registry value payload: {raw!r}")


@dataclass(eq=False)
class MemoryKey:
    """Handle onto one node of an in-memory registry tree."""
    path: str
    node: Mapping[str, Any]


class MemoryRegistryReader:
    """RegistryReader over nested dicts."""

    def __init__(self, tree: Mapping[str, Any]) -> None:
        self._roots: Dict[str, Mapping[str, Any]] = {}
        for root_name, node in tree.items():
            self._roots[str(HiveRoot(root_name))] = node
        self.open_handles: Set[int] = set()
        self.opened_total = 0

    # -- helpers ---------------------------------------------------------

    def _resolve_parent(self, parent: KeyParent) -> MemoryKey:
        if isinstance(parent, MemoryKey):
            if id(parent) not in self.open_handles:
                raise RegistryError(f"Key handle is not open: {parent.path}")
            return parent
        root = HiveRoot(parent)
        node = self._roots.get(str(root))
        if node is None:
            raise RegistryKeyNotFoundError(str(root), "hive root not loaded")
        return MemoryKey(str(root), node)

    @staticmethod
    def _find_child(node: Mapping[str, Any], name: str) -> Optional[tuple]:
        children = node.get("keys") or {}
        if name in children:
            return name, children[name]
        folded = name.casefold()
        for child_name, child in children.items():
            if child_name.casefold() == folded:
                return child_name, child
        return None

    # -- RegistryReader --------------------------------------------------

    def open_key(self, parent: KeyParent, path: str) -> MemoryKey:
        current = self._resolve_parent(parent)
        node = current.node
        full_path = current.path
        for part in [p for p in path.replace("/", "\\").split("\\") if p]:
            found = self._find_child(node, part)
            if found is None:
                raise RegistryKeyNotFoundError(join_path(current.path, path), f"failed at '{part}'")
            child_name, node = found
            full_path = join_path(full_path, child_name)

        key = MemoryKey(full_path, node)
        self.open_handles.add(id(key))
        self.opened_total += 1
        return key

    def close_key(self, key: MemoryKey) -> None:
        if id(key) not in self.open_handles:
            LOGGER.warning("Closing a key that is not open: %s", key.path)
            return
        self.open_handles.discard(id(key))

    def enumerate_keys(self, key: KeyParent) -> List[str]:
        node = self._resolve_parent(key).node
        return list((node.get("keys") or {}).keys())

    def enumerate_values(self, key: MemoryKey) -> List[str]:
        node = self._resolve_parent(key).node
        return list((node.get("values") or {}).keys())

    def read_value(self, key: MemoryKey, name: str) -> RegistryValue:
        current = self._resolve_parent(key)
        values = current.node.get("values") or {}
        if name in values:
            return _to_registry_value(values[name])
        folded = name.casefold()
        for value_name, raw in values.items():
            if value_name.casefold() == folded:
                return _to_registry_value(raw)
        raise RegistryValueNotFoundError(current.path, name)
