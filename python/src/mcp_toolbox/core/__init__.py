"""Core protocol models, registry and executor."""

from mcp_toolbox.core.executor import ToolExecutor
from mcp_toolbox.core.format import (
    InvocationResult,
    TextContent,
    ToolDescriptor,
    ToolParameter,
)
from mcp_toolbox.core.registry import ToolRegistry

__all__ = [
    "InvocationResult",
    "TextContent",
    "ToolDescriptor",
    "ToolParameter",
    "ToolExecutor",
    "ToolRegistry",
]
