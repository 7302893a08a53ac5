"""MCPServer: routes request envelopes to the tool registry and executor.

The server is transport-agnostic: both bindings hand it decoded (or raw)
messages and write back whatever envelope it returns.

Usage:
    server = MCPServer.from_config(ServerConfig())

    # As stdio server (child process of the host):
    await server.serve_stdio()

    # As HTTP+SSE server:
    await server.serve_http(host="127.0.0.1", port=8080)

    # Programmatic usage:
    response = server.handle_request(request_dict)
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, Optional

from mcp_toolbox import __version__
from mcp_toolbox.config import ServerConfig
from mcp_toolbox.core.errors import (
    INVALID_ARGUMENT,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    TOOL_EXECUTION_ERROR,
)
from mcp_toolbox.core.executor import ToolExecutor
from mcp_toolbox.core.format import JSONRPCResponse, RequestId
from mcp_toolbox.core.registry import ToolRegistry
from mcp_toolbox.tools import default_tools
from mcp_toolbox.transport.sse import SSEServerTransport
from mcp_toolbox.transport.stdio import StdioServerTransport

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"

METHOD_ALIASES = {
    "tools/list": "listTools",
    "tools/call": "callTool",
}


class MCPServer:
    """Tool server shared by the stdio and HTTP+SSE bindings.

    Attributes:
        registry: The tools this server advertises
        executor: Runs tool calls against the registry
        name: Server name reported by ``initialize``
        version: Server version reported by ``initialize``
    """

    def __init__(
        self,
        registry: ToolRegistry,
        executor: Optional[ToolExecutor] = None,
        name: str = "mcp-toolbox",
        version: str = __version__,
    ) -> None:
        self.registry = registry
        self.executor = executor or ToolExecutor(registry)
        self.name = name
        self.version = version
        self._methods: Dict[str, Callable[[RequestId, Dict[str, Any]], JSONRPCResponse]] = {
            "initialize": self._initialize,
            "ping": self._ping,
            "listTools": self._list_tools,
            "callTool": self._call_tool,
        }
        logger.info(
            "MCPServer %s initialized with %d tools", name, len(registry)
        )

    @classmethod
    def from_config(cls, config: ServerConfig) -> MCPServer:
        """Build a server with the built-in tools registered."""
        registry = ToolRegistry()
        registry.register_all(default_tools(config.workspace))
        return cls(registry, name=config.server_name, version=config.server_version)

    def handle_line(self, line: str | bytes) -> Optional[dict[str, Any]]:
        """Decode one raw message and handle it.

        Returns:
            The response envelope dict, or None for notifications.
        """
        try:
            message = json.loads(line)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error("Invalid JSON message: %s", e)
            return JSONRPCResponse.failure(None, PARSE_ERROR, f"Parse error: {e}").to_wire()
        return self.handle_request(message)

    def handle_request(self, message: Any) -> Optional[dict[str, Any]]:
        """Handle a decoded request envelope.

        Never raises: malformed envelopes, unknown methods and tool failures
        all come back as error envelopes.

        Returns:
            The response envelope dict, or None for notifications.
        """
        if not isinstance(message, dict):
            return self._error(None, PARSE_ERROR, "Envelope must be a JSON object")

        msg_id = message.get("id")
        if msg_id is not None and (
            isinstance(msg_id, bool) or not isinstance(msg_id, (str, int, float))
        ):
            return self._error(None, PARSE_ERROR, "Envelope 'id' must be a string or number")

        method = message.get("method")
        if not isinstance(method, str) or not method:
            return self._error(msg_id, PARSE_ERROR, "Envelope 'method' must be a non-empty string")

        if msg_id is None:
            if method.startswith("notifications/"):
                logger.debug("Received notification: %s", method)
                return None
            return self._error(None, PARSE_ERROR, f"Request '{method}' is missing 'id'")

        params = message.get("params")
        if params is None:
            params = {}
        if not isinstance(params, dict):
            return self._error(msg_id, PARSE_ERROR, "Envelope 'params' must be an object")

        handler = self._methods.get(METHOD_ALIASES.get(method, method))
        if handler is None:
            logger.warning("Unknown method: %s (id=%s)", method, msg_id)
            return self._error(msg_id, METHOD_NOT_FOUND, f"Unknown method: {method}")

        logger.debug("Handling %s (id=%s)", method, msg_id)
        try:
            response = handler(msg_id, params)
        except Exception as e:
            # The envelope is valid here, so a raise is a server-side fault.
            logger.exception("Error handling %s: %s", method, e)
            response = JSONRPCResponse.failure(
                msg_id, TOOL_EXECUTION_ERROR, f"Internal error handling {method}: {e}"
            )
        return response.to_wire()

    def _initialize(self, msg_id: RequestId, params: Dict[str, Any]) -> JSONRPCResponse:
        return JSONRPCResponse.success(
            msg_id,
            {
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": {"tools": {}},
                "serverInfo": {"name": self.name, "version": self.version},
            },
        )

    def _ping(self, msg_id: RequestId, params: Dict[str, Any]) -> JSONRPCResponse:
        return JSONRPCResponse.success(msg_id, {})

    def _list_tools(self, msg_id: RequestId, params: Dict[str, Any]) -> JSONRPCResponse:
        tools = [descriptor.model_dump(mode="json") for descriptor in self.registry.list()]
        return JSONRPCResponse.success(msg_id, {"tools": tools})

    def _call_tool(self, msg_id: RequestId, params: Dict[str, Any]) -> JSONRPCResponse:
        name = params.get("name")
        if not isinstance(name, str) or not name:
            return JSONRPCResponse.failure(
                msg_id, INVALID_ARGUMENT, "callTool requires a string 'name'"
            )
        result = self.executor.execute(name, params.get("arguments"), request_id=msg_id)
        return result.to_response()

    def _error(self, msg_id: Optional[RequestId], code: str, message: str) -> dict[str, Any]:
        logger.error("Rejected envelope (id=%s): %s", msg_id, message)
        return JSONRPCResponse.failure(msg_id, code, message).to_wire()

    async def serve_stdio(self) -> None:
        """Serve newline-delimited envelopes on this process's stdin/stdout."""
        await StdioServerTransport(self).serve()

    async def serve_http(self, host: str = "127.0.0.1", port: int = 8080) -> None:
        """Serve envelopes over HTTP with an SSE notification stream."""
        await SSEServerTransport(self, host=host, port=port).serve()


__all__ = ["MCPServer", "PROTOCOL_VERSION"]
