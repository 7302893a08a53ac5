"""HTTP+SSE transport: one HTTP exchange per envelope.

Server endpoints:
    POST /message  request envelope in, response envelope out (same exchange)
    GET  /sse      event stream for server-initiated notifications
    GET  /health   liveness check
    GET  /         service info

Tool results are always returned on the POST response; the event stream
only carries the ``endpoint`` event, keep-alives and broadcast notifications.
"""
from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any, Optional

import aiohttp
from aiohttp import web

from mcp_toolbox.core.errors import TransportError, TransportUnavailableError
from mcp_toolbox.transport.base import MessageHandler

logger = logging.getLogger(__name__)


class SSEServerTransport:
    """aiohttp server exposing a MessageHandler over HTTP.

    Each POST is handled on a worker thread, so concurrent requests run
    concurrently.
    """

    def __init__(
        self,
        handler: MessageHandler,
        host: str = "127.0.0.1",
        port: int = 8080,
        service_name: str = "mcp-toolbox",
        keepalive_interval: float = 30.0,
    ) -> None:
        """Initialize the HTTP+SSE server transport.

        Args:
            handler: Envelope router, usually an MCPServer.
            host: Host to bind the HTTP server to. Defaults to 127.0.0.1.
            port: Port to bind to. 0 picks a free port (see ``port`` after start).
            service_name: Name reported by /health and /.
            keepalive_interval: Seconds between SSE keep-alive comments.
        """
        self._handler = handler
        self._host = host
        self._port = port
        self._service_name = service_name
        self._keepalive_interval = keepalive_interval
        self._runner: web.AppRunner | None = None
        self._site: web.TCPSite | None = None
        self._sse_clients: list[web.StreamResponse] = []
        self._sse_tasks: set[asyncio.Task[Any]] = set()

    @property
    def transport_type(self) -> str:
        return "sse"

    @property
    def port(self) -> int:
        """The bound port once started, else the configured one."""
        if self._runner and self._runner.addresses:
            return self._runner.addresses[0][1]
        return self._port

    @property
    def url(self) -> str:
        return f"http://{self._host}:{self.port}"

    @property
    def sse_client_count(self) -> int:
        return len(self._sse_clients)

    def make_app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/message", self._handle_message)
        app.router.add_get("/sse", self._handle_sse)
        app.router.add_get("/health", self._handle_health)
        app.router.add_get("/", self._handle_root)
        return app

    async def start(self) -> None:
        """Bind and start the HTTP server.

        Raises:
            RuntimeError: If the server is already running.
            OSError: If the server cannot bind to the host/port.
        """
        if self._runner is not None:
            raise RuntimeError("Transport is already running")

        self._runner = web.AppRunner(self.make_app())
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, self._host, self._port)
        try:
            await self._site.start()
        except OSError:
            await self._runner.cleanup()
            self._runner = None
            raise
        logger.info("HTTP server listening on %s", self.url)

    async def stop(self) -> None:
        """Close SSE streams and shut down the HTTP server."""
        for task in list(self._sse_tasks):
            task.cancel()
        if self._sse_tasks:
            await asyncio.gather(*self._sse_tasks, return_exceptions=True)
        self._sse_tasks.clear()
        self._sse_clients.clear()

        if self._runner:
            await self._runner.cleanup()
            logger.info("HTTP server stopped")
        self._runner = None
        self._site = None

    async def serve(self) -> None:
        """Start and serve until cancelled."""
        await self.start()
        try:
            await asyncio.Event().wait()
        finally:
            await self.stop()

    async def broadcast(self, message: dict[str, Any]) -> int:
        """Push a notification envelope to every open event stream.

        Returns:
            Number of streams the event was written to.
        """
        return await self._broadcast_sse_event("message", json.dumps(message))

    async def _handle_message(self, request: web.Request) -> web.Response:
        """Handle POST /message: the response envelope is the HTTP response body."""
        body = await request.read()
        loop = asyncio.get_running_loop()
        response = await loop.run_in_executor(None, self._handler.handle_line, body)
        if response is None:
            return web.Response(status=202, text="Accepted")
        return web.json_response(response)

    async def _handle_sse(self, request: web.Request) -> web.StreamResponse:
        """Handle GET /sse: announce the POST endpoint, then keep the stream open."""
        response = web.StreamResponse()
        response.content_type = "text/event-stream"
        response.headers["Cache-Control"] = "no-cache"
        response.headers["Connection"] = "keep-alive"

        await response.prepare(request)
        task = asyncio.current_task()
        if task is not None:
            self._sse_tasks.add(task)

        endpoint_url = f"http://{request.host}/message"
        self._sse_clients.append(response)
        try:
            await response.write(f"event: endpoint\ndata: {endpoint_url}\n\n".encode("utf-8"))
            logger.info("SSE client connected, endpoint: %s", endpoint_url)
            while True:
                await asyncio.sleep(self._keepalive_interval)
                await response.write(b": keepalive\n\n")
        except (asyncio.CancelledError, ConnectionError, RuntimeError):
            pass
        finally:
            if response in self._sse_clients:
                self._sse_clients.remove(response)
            self._sse_tasks.discard(task)
            logger.info("SSE client disconnected")

        return response

    async def _handle_health(self, request: web.Request) -> web.Response:
        return web.json_response(
            {
                "status": "UP",
                "service": self._service_name,
                "timestamp": int(time.time() * 1000),
            }
        )

    async def _handle_root(self, request: web.Request) -> web.Response:
        return web.json_response(
            {
                "service": self._service_name,
                "transport": self.transport_type,
                "endpoints": {"health": "/health", "message": "/message", "sse": "/sse"},
            }
        )

    async def _broadcast_sse_event(self, event: str, data: str) -> int:
        dead_clients = []
        delivered = 0
        for client in self._sse_clients:
            try:
                await client.write(f"event: {event}\ndata: {data}\n\n".encode("utf-8"))
                delivered += 1
            except (ConnectionError, RuntimeError):
                dead_clients.append(client)

        for client in dead_clients:
            self._sse_clients.remove(client)
        return delivered


def normalize_server_url(server_url: str) -> str:
    """Strip a trailing slash and a trailing /sse or /message endpoint."""
    url = server_url.rstrip("/")
    for suffix in ("/sse", "/message"):
        if url.endswith(suffix):
            return url[: -len(suffix)]
    return url


class SSEClientTransport:
    """Posts envelopes to a tool server's /message endpoint."""

    def __init__(
        self,
        server_url: str,
        timeout: Optional[float] = None,
        verify_connection: bool = True,
    ) -> None:
        """Initialize the HTTP client transport.

        Args:
            server_url: Base URL of the server (e.g., "http://localhost:8080").
            timeout: Total seconds allowed per exchange. None (the default) waits
                indefinitely; callers apply their own deadline.
            verify_connection: Check GET /health when connecting.
        """
        self._server_url = normalize_server_url(server_url)
        self._timeout = timeout
        self._verify_connection = verify_connection
        self._session: aiohttp.ClientSession | None = None
        self._is_connected = False

    @property
    def is_connected(self) -> bool:
        return self._is_connected

    @property
    def transport_type(self) -> str:
        return "sse"

    @property
    def server_url(self) -> str:
        return self._server_url

    async def connect(self) -> None:
        """Open the HTTP session, optionally checking the server is reachable.

        Raises:
            RuntimeError: If the transport is already connected.
            TransportError: If the server cannot be reached.
        """
        if self._is_connected:
            raise RuntimeError("Transport is already connected")

        self._session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self._timeout)
        )
        if self._verify_connection:
            try:
                async with self._session.get(f"{self._server_url}/health") as resp:
                    if resp.status != 200:
                        raise aiohttp.ClientError(
                            f"Server health check returned status {resp.status}"
                        )
                    await resp.read()
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                await self.close()
                raise TransportError(
                    f"Cannot connect to server at {self._server_url}: {e}"
                ) from e

        self._is_connected = True
        logger.info("Connected to server at %s", self._server_url)

    async def close(self) -> None:
        self._is_connected = False
        if self._session:
            try:
                await self._session.close()
            except Exception as e:
                logger.error("Error closing client session: %s", e)
        self._session = None

    async def request(self, message: dict[str, Any]) -> dict[str, Any]:
        """POST one request envelope and return the response envelope."""
        if not self._is_connected or not self._session:
            raise TransportUnavailableError("Not connected to server")

        try:
            async with self._session.post(
                f"{self._server_url}/message", json=message
            ) as resp:
                if resp.status >= 300:
                    error_text = await resp.text()
                    raise TransportError(
                        f"Server returned status {resp.status}: {error_text}"
                    )
                response = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError(f"Failed to exchange message with server: {e!r}") from e
        except json.JSONDecodeError as e:
            raise TransportError(f"Server sent an undecodable response: {e}") from e

        if not isinstance(response, dict):
            raise TransportError(f"Server sent a non-object response: {response!r}")
        if response.get("id") != message.get("id"):
            raise TransportError(
                f"Response id {response.get('id')!r} does not match request id "
                f"{message.get('id')!r}"
            )
        logger.debug("Exchanged message with server: %s -> %s", message, response)
        return response
