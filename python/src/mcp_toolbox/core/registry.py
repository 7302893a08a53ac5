"""Tool registry: holds the set of invocable tools and their metadata.

Tools are registered once at process start from an explicit list of
``(descriptor, handler)`` pairs. After that the registry is only read, so
lookups take no lock; registration itself is serialized.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, Iterable, List, Tuple

from mcp_toolbox.core.errors import DuplicateToolError, UnknownToolError
from mcp_toolbox.core.format import ToolDescriptor

logger = logging.getLogger(__name__)

ToolHandler = Callable[[Dict[str, Any]], Any]
ToolEntry = Tuple[ToolDescriptor, ToolHandler]


class ToolRegistry:
    """In-memory mapping of tool name to descriptor and handler.

    Iteration and :meth:`list` follow registration order.
    """

    def __init__(self) -> None:
        self._tools: Dict[str, ToolEntry] = {}
        self._lock = threading.Lock()

    def register(self, descriptor: ToolDescriptor, handler: ToolHandler) -> None:
        """Register a tool.

        Raises:
            DuplicateToolError: If a tool with the same name is already registered.
        """
        with self._lock:
            if descriptor.name in self._tools:
                raise DuplicateToolError(descriptor.name)
            self._tools[descriptor.name] = (descriptor, handler)
        logger.debug("Registered tool: %s", descriptor.name)

    def register_all(self, entries: Iterable[ToolEntry]) -> None:
        """Register every ``(descriptor, handler)`` pair in order."""
        for descriptor, handler in entries:
            self.register(descriptor, handler)

    def list(self) -> List[ToolDescriptor]:
        """Return all descriptors in registration order."""
        return [descriptor for descriptor, _ in self._tools.values()]

    def lookup(self, name: str) -> ToolHandler:
        """Return the handler registered under ``name``.

        Raises:
            UnknownToolError: If no such tool exists.
        """
        return self._entry(name)[1]

    def descriptor(self, name: str) -> ToolDescriptor:
        """Return the descriptor registered under ``name``.

        Raises:
            UnknownToolError: If no such tool exists.
        """
        return self._entry(name)[0]

    def _entry(self, name: str) -> ToolEntry:
        try:
            return self._tools[name]
        except KeyError:
            raise UnknownToolError(name) from None

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)
