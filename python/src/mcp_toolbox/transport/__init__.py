"""Transport bindings: stdio pipe and HTTP+SSE."""

from mcp_toolbox.transport.base import ClientTransport, MessageHandler, ServerTransport
from mcp_toolbox.transport.sse import SSEClientTransport, SSEServerTransport
from mcp_toolbox.transport.stdio import StdioClientTransport, StdioServerTransport

__all__ = [
    "ClientTransport",
    "MessageHandler",
    "ServerTransport",
    "SSEClientTransport",
    "SSEServerTransport",
    "StdioClientTransport",
    "StdioServerTransport",
]
