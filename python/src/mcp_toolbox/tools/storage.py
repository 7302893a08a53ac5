"""In-memory key-value storage tools.

This is the only mutable state shared between concurrent tool calls; every
operation holds the store's lock for its full read-modify-write.
"""

from __future__ import annotations

import threading
from typing import Any, Dict, List, Optional

from mcp_toolbox.core.errors import DomainError
from mcp_toolbox.core.format import ToolDescriptor, ToolParameter
from mcp_toolbox.core.registry import ToolEntry

_KEY = ToolParameter(name="key", type="string")

STORE = ToolDescriptor(
    name="store",
    description="Store a value with the given key in memory",
    parameters=(_KEY, ToolParameter(name="value", type="string")),
)
RETRIEVE = ToolDescriptor(
    name="retrieve",
    description="Retrieve a value by key from memory storage",
    parameters=(_KEY,),
)
DELETE = ToolDescriptor(
    name="delete",
    description="Delete a value by key from memory storage",
    parameters=(_KEY,),
)
LIST_KEYS = ToolDescriptor(name="listKeys", description="List all stored keys in memory")
CLEAR = ToolDescriptor(name="clear", description="Clear all stored data from memory")
COUNT = ToolDescriptor(name="count", description="Get the count of stored entries in memory")


def _require_key(args: Dict[str, Any]) -> str:
    key = args.get("key")
    if key is None or not key.strip():
        raise DomainError("Key cannot be empty")
    return key


class KeyValueStore:
    """Thread-safe string-to-string store."""

    def __init__(self) -> None:
        self._data: Dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def store(self, args: Dict[str, Any]) -> str:
        key = _require_key(args)
        value = args.get("value")
        if value is None:
            raise DomainError("Value cannot be null")
        with self._lock:
            self._data[key] = value
        return f"Stored value under key '{key}'"

    def retrieve(self, args: Dict[str, Any]) -> str:
        key = _require_key(args)
        with self._lock:
            value = self._data.get(key)
        if value is None:
            return f"No value found for key '{key}'"
        return value

    def delete(self, args: Dict[str, Any]) -> str:
        key = _require_key(args)
        with self._lock:
            removed = self._data.pop(key, None)
        if removed is None:
            return f"No value found for key '{key}'"
        return f"Deleted value for key '{key}'"

    def list_keys(self, args: Dict[str, Any]) -> str:
        with self._lock:
            keys = list(self._data)
        if not keys:
            return "No keys stored"
        return "Stored keys: " + ", ".join(keys)

    def clear(self, args: Dict[str, Any]) -> str:
        with self._lock:
            size = len(self._data)
            self._data.clear()
        return f"Cleared {size} entries from storage"

    def count(self, args: Dict[str, Any]) -> str:
        return f"Storage contains {len(self)} entries"

    def tools(self) -> List[ToolEntry]:
        return [
            (STORE, self.store),
            (RETRIEVE, self.retrieve),
            (DELETE, self.delete),
            (LIST_KEYS, self.list_keys),
            (CLEAR, self.clear),
            (COUNT, self.count),
        ]
