"""mcp-toolbox: Tool registry, dispatch protocol, stdio and HTTP+SSE transports."""

__version__ = "0.1.0"

from mcp_toolbox.core.executor import ToolExecutor
from mcp_toolbox.core.format import InvocationResult, ToolDescriptor, ToolParameter
from mcp_toolbox.core.registry import ToolRegistry
from mcp_toolbox.server import MCPServer
from mcp_toolbox.client import MCPClient, ToolClient

__all__ = [
    "InvocationResult",
    "ToolDescriptor",
    "ToolParameter",
    "ToolExecutor",
    "ToolRegistry",
    "MCPServer",
    "MCPClient",
    "ToolClient",
]
