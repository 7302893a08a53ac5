"""Client proxy used by host processes to discover and call remote tools.

Usage:
    async with MCPClient.over_http("http://localhost:8080") as client:
        tools = await client.list_tools()
        result = await client.call_tool("add", {"a": 1, "b": 2})

    # From plain threads (each call blocks its own thread):
    with ToolClient.over_stdio("mcp-toolbox", ["serve", "--stdio"]) as client:
        result = client.call_tool("sqrt", {"number": 16})
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import threading
from concurrent.futures import Future
from typing import Any, Coroutine, List, Mapping, Optional, TypeVar

from pydantic import ValidationError

from mcp_toolbox.core.errors import (
    PARSE_ERROR,
    ProtocolError,
    TransportError,
    TransportUnavailableError,
)
from mcp_toolbox.core.format import (
    InvocationRequest,
    InvocationResult,
    JSONRPCResponse,
    ToolDescriptor,
)
from mcp_toolbox.transport.base import ClientTransport
from mcp_toolbox.transport.sse import SSEClientTransport
from mcp_toolbox.transport.stdio import StdioClientTransport

logger = logging.getLogger(__name__)

T = TypeVar("T")


class MCPClient:
    """Async client proxy over any ClientTransport.

    Calls may be issued concurrently; each is correlated with its response
    by a per-client request id. No call is ever retried.
    """

    def __init__(self, transport: Optional[ClientTransport] = None) -> None:
        self.transport = transport
        self._ids = itertools.count(1)

    @classmethod
    def over_http(cls, server_url: str, **kwargs: Any) -> MCPClient:
        return cls(SSEClientTransport(server_url, **kwargs))

    @classmethod
    def over_stdio(
        cls,
        server_command: str,
        server_args: list[str] | None = None,
        **kwargs: Any,
    ) -> MCPClient:
        return cls(StdioClientTransport(server_command, server_args, **kwargs))

    @property
    def is_connected(self) -> bool:
        return self.transport is not None and self.transport.is_connected

    async def connect(self) -> None:
        """Open the underlying transport.

        Raises:
            TransportUnavailableError: If no transport is configured.
            TransportError: If the connection cannot be established.
        """
        await self._require_transport().connect()

    async def close(self) -> None:
        if self.transport is not None:
            await self.transport.close()

    async def __aenter__(self) -> MCPClient:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def initialize(self) -> dict[str, Any]:
        """Perform the handshake and return the server's info and capabilities.

        Raises:
            ProtocolError: If the server answers with an error envelope.
        """
        response = await self._request(
            "initialize", {"clientInfo": {"name": "mcp-toolbox-client"}}
        )
        if response.error is not None:
            raise ProtocolError(response.error.code, response.error.message)
        return response.result or {}

    async def list_tools(self) -> List[ToolDescriptor]:
        """Return the descriptors the remote registry holds, in registry order.

        Raises:
            TransportUnavailableError: If no transport/connection is configured.
            TransportError: If the call never completes.
            ProtocolError: If the server answers with an error or a malformed list.
        """
        response = await self._request("listTools", {})
        if response.error is not None:
            raise ProtocolError(response.error.code, response.error.message)

        tools = (response.result or {}).get("tools")
        if not isinstance(tools, list):
            raise ProtocolError(PARSE_ERROR, "listTools result is missing a 'tools' list")
        try:
            return [ToolDescriptor.model_validate(tool) for tool in tools]
        except ValidationError as e:
            raise ProtocolError(PARSE_ERROR, f"Invalid tool descriptor: {e}") from e

    async def call_tool(
        self, name: str, arguments: Optional[Mapping[str, Any]] = None
    ) -> InvocationResult:
        """Invoke a remote tool.

        Tool-level failures (unknown tool, bad arguments, domain errors) come
        back as a failed InvocationResult; only transport faults raise.

        Raises:
            TransportUnavailableError: If no transport/connection is configured.
            TransportError: If the call never completes.
        """
        request = InvocationRequest(
            id=next(self._ids), tool_name=name, arguments=dict(arguments or {})
        )
        logger.info("Calling tool '%s' with arguments: %s", name, request.arguments)
        raw = await self._send(request.to_envelope())
        response = self._parse_response(raw)
        try:
            result = InvocationResult.from_response(response)
        except ValueError as e:
            return InvocationResult.failure(PARSE_ERROR, str(e), response.id)

        if result.is_error:
            logger.info("Tool '%s' failed: %s", name, result.error.message)
        else:
            logger.info("Tool '%s' executed successfully", name)
        return result

    async def _request(self, method: str, params: dict[str, Any]) -> JSONRPCResponse:
        envelope = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        return self._parse_response(await self._send(envelope))

    async def _send(self, envelope: dict[str, Any]) -> dict[str, Any]:
        return await self._require_transport().request(envelope)

    def _require_transport(self) -> ClientTransport:
        if self.transport is None:
            raise TransportUnavailableError("No transport configured")
        return self.transport

    @staticmethod
    def _parse_response(raw: dict[str, Any]) -> JSONRPCResponse:
        try:
            return JSONRPCResponse.model_validate(raw)
        except ValidationError as e:
            raise TransportError(f"Malformed response envelope: {e}") from e


class ToolClient:
    """Blocking facade over MCPClient, safe to call from many threads.

    A private event loop runs on a background thread; each call blocks the
    calling thread until its own response arrives.
    """

    def __init__(self, transport: Optional[ClientTransport] = None) -> None:
        self._client = MCPClient(transport)
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @classmethod
    def over_http(cls, server_url: str, **kwargs: Any) -> ToolClient:
        return cls(SSEClientTransport(server_url, **kwargs))

    @classmethod
    def over_stdio(
        cls,
        server_command: str,
        server_args: list[str] | None = None,
        **kwargs: Any,
    ) -> ToolClient:
        return cls(StdioClientTransport(server_command, server_args, **kwargs))

    @property
    def is_connected(self) -> bool:
        return self._client.is_connected

    def connect(self) -> None:
        with self._lock:
            if self._loop is not None:
                raise RuntimeError("Client is already connected")
            loop = asyncio.new_event_loop()
            thread = threading.Thread(
                target=loop.run_forever, name="mcp-toolbox-client", daemon=True
            )
            thread.start()
            self._loop, self._thread = loop, thread
        try:
            self._run(self._client.connect())
        except BaseException:
            self._shutdown_loop()
            raise

    def close(self) -> None:
        if self._loop is None:
            return
        try:
            self._run(self._client.close())
        finally:
            self._shutdown_loop()

    def __enter__(self) -> ToolClient:
        self.connect()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def initialize(self) -> dict[str, Any]:
        return self._run(self._client.initialize())

    def list_tools(self) -> List[ToolDescriptor]:
        return self._run(self._client.list_tools())

    def call_tool(
        self, name: str, arguments: Optional[Mapping[str, Any]] = None
    ) -> InvocationResult:
        return self._run(self._client.call_tool(name, arguments))

    def _run(self, coro: Coroutine[Any, Any, T]) -> T:
        loop = self._loop
        if loop is None or loop.is_closed():
            coro.close()
            raise TransportUnavailableError("Client is not connected")
        future: Future[T] = asyncio.run_coroutine_threadsafe(coro, loop)
        return future.result()

    def _shutdown_loop(self) -> None:
        with self._lock:
            loop, thread = self._loop, self._thread
            self._loop, self._thread = None, None
        if loop is None:
            return
        loop.call_soon_threadsafe(loop.stop)
        if thread is not None:
            thread.join()
        loop.close()


__all__ = ["MCPClient", "ToolClient"]
