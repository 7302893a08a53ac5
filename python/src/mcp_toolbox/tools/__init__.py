"""Built-in tool providers and the default registration list."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from mcp_toolbox.core.registry import ToolEntry
from mcp_toolbox.tools.calculator import Calculator
from mcp_toolbox.tools.clock import Clock
from mcp_toolbox.tools.files import DEFAULT_WORKSPACE, FileWorkspace
from mcp_toolbox.tools.storage import KeyValueStore


def default_tools(workspace: Optional[str | Path] = None) -> List[ToolEntry]:
    """Build the ``(descriptor, handler)`` pairs for every built-in tool.

    Args:
        workspace: Directory for the file tools. Defaults to DEFAULT_WORKSPACE.
    """
    entries: List[ToolEntry] = []
    entries.extend(Clock().tools())
    entries.extend(Calculator().tools())
    entries.extend(FileWorkspace(workspace).tools())
    entries.extend(KeyValueStore().tools())
    return entries


__all__ = [
    "Calculator",
    "Clock",
    "DEFAULT_WORKSPACE",
    "FileWorkspace",
    "KeyValueStore",
    "default_tools",
]
