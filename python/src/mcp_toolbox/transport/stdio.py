"""stdio transport: newline-delimited JSON envelopes over a process pipe.

Server side: the tool server runs as a child process of the host and reads
requests from stdin, writing one response line per request to stdout.

Client side: the host spawns the server process and multiplexes concurrent
calls over its stdin/stdout. Responses may arrive in any order and are
matched to their callers by ``id``.
"""
from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import IO, Any, Optional

from mcp_toolbox.core.errors import TransportError, TransportUnavailableError
from mcp_toolbox.transport.base import MessageHandler

logger = logging.getLogger(__name__)

# Upper bound for one envelope line read from the child process.
DEFAULT_LINE_LIMIT = 16 * 1024 * 1024


class StdioServerTransport:
    """Serves envelopes read from a text stream (stdin by default).

    Each request is handled on a worker thread, so slow tools do not hold up
    other requests on the same pipe. Response lines are written whole, one
    at a time.
    """

    def __init__(
        self,
        handler: MessageHandler,
        stdin: Optional[IO[str]] = None,
        stdout: Optional[IO[str]] = None,
    ) -> None:
        """Initialize the stdio server transport.

        Args:
            handler: Envelope router, usually an MCPServer.
            stdin: Stream to read request lines from. Defaults to sys.stdin.
            stdout: Stream to write response lines to. Defaults to sys.stdout.
        """
        self._handler = handler
        self._stdin = stdin or sys.stdin
        self._stdout = stdout or sys.stdout
        self._write_lock: Optional[asyncio.Lock] = None
        self._closed = False

    @property
    def transport_type(self) -> str:
        return "stdio"

    async def serve(self) -> None:
        """Read requests until EOF, then wait for in-flight requests to finish."""
        logger.info("Starting stdio server")
        loop = asyncio.get_running_loop()
        self._write_lock = asyncio.Lock()
        self._closed = False
        in_flight: set[asyncio.Task[None]] = set()

        try:
            while not self._closed:
                line = await loop.run_in_executor(None, self._stdin.readline)
                if not line:
                    logger.info("stdin closed")
                    break
                if not line.strip():
                    continue

                task = asyncio.create_task(self._dispatch(line))
                in_flight.add(task)
                task.add_done_callback(in_flight.discard)
        finally:
            if in_flight:
                await asyncio.gather(*in_flight, return_exceptions=True)
            logger.info("stdio server stopped")

    async def _dispatch(self, line: str) -> None:
        loop = asyncio.get_running_loop()
        response = await loop.run_in_executor(None, self._handler.handle_line, line)
        if response is not None:
            await self._write(response)

    async def _write(self, message: dict[str, Any]) -> None:
        if self._closed or self._write_lock is None:
            return
        json_line = json.dumps(message)
        loop = asyncio.get_running_loop()
        async with self._write_lock:
            try:
                await loop.run_in_executor(None, self._write_line, json_line)
                logger.debug("Sent response: %s", json_line)
            except (BrokenPipeError, OSError) as e:
                logger.error("Failed to write response, closing: %s", e)
                self._closed = True

    def _write_line(self, json_line: str) -> None:
        self._stdout.write(json_line + "\n")
        self._stdout.flush()


class StdioClientTransport:
    """Spawns a tool server as a subprocess and exchanges envelopes with it."""

    def __init__(
        self,
        server_command: str,
        server_args: list[str] | None = None,
        server_env: dict[str, str] | None = None,
        line_limit: int = DEFAULT_LINE_LIMIT,
    ) -> None:
        """Initialize the stdio client transport.

        Args:
            server_command: Path or name of the server executable.
            server_args: Command-line arguments to pass to the server. Defaults to empty list.
            server_env: Environment variables for the server process. If None, inherits
                from the current process.
            line_limit: Maximum size in bytes of one response line.
        """
        self._server_command = server_command
        self._server_args = server_args or []
        self._server_env = server_env
        self._line_limit = line_limit
        self._is_connected = False
        self._process: asyncio.subprocess.Process | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._write_lock: asyncio.Lock | None = None
        self._pending: dict[Any, asyncio.Future[dict[str, Any]]] = {}

    @property
    def is_connected(self) -> bool:
        return self._is_connected

    @property
    def transport_type(self) -> str:
        return "stdio"

    @property
    def pid(self) -> Optional[int]:
        return self._process.pid if self._process else None

    async def connect(self) -> None:
        """Spawn the server subprocess and start reading its responses.

        Raises:
            RuntimeError: If the transport is already connected.
            TransportError: If the server executable cannot be started.
        """
        if self._is_connected:
            raise RuntimeError("Transport is already connected")

        logger.info(
            "Starting subprocess: %s %s",
            self._server_command,
            " ".join(self._server_args),
        )
        try:
            self._process = await asyncio.create_subprocess_exec(
                self._server_command,
                *self._server_args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                env=self._server_env,
                limit=self._line_limit,
            )
        except OSError as e:
            logger.error("Failed to start server subprocess: %s", e)
            raise TransportError(f"Cannot start server '{self._server_command}': {e}") from e

        self._write_lock = asyncio.Lock()
        self._is_connected = True
        self._reader_task = asyncio.create_task(self._read_responses())
        logger.info("Server subprocess started (PID: %d)", self._process.pid)

    async def close(self) -> None:
        """Close the pipe and make sure the subprocess exits."""
        self._is_connected = False
        process = self._process

        if process and process.stdin and not process.stdin.is_closing():
            process.stdin.close()

        if process and process.returncode is None:
            try:
                await asyncio.wait_for(process.wait(), timeout=5.0)
            except asyncio.TimeoutError:
                logger.warning("Subprocess did not exit, terminating (PID: %d)", process.pid)
                process.terminate()
                try:
                    await asyncio.wait_for(process.wait(), timeout=2.0)
                except asyncio.TimeoutError:
                    logger.error("Subprocess did not terminate, killing (PID: %d)", process.pid)
                    process.kill()
                    await process.wait()

        if self._reader_task and not self._reader_task.done():
            self._reader_task.cancel()
            try:
                await self._reader_task
            except asyncio.CancelledError:
                pass

        self._fail_pending(TransportError("Transport closed"))

    async def request(self, message: dict[str, Any]) -> dict[str, Any]:
        """Write one request line and wait for the response with the same id."""
        if not self._is_connected or not self._process or not self._process.stdin:
            raise TransportUnavailableError("Not connected to server")

        msg_id = message.get("id")
        if msg_id is None:
            raise ValueError("Request envelope must carry an 'id'")
        if msg_id in self._pending:
            raise ValueError(f"Request id {msg_id!r} is already in flight")

        future: asyncio.Future[dict[str, Any]] = asyncio.get_running_loop().create_future()
        self._pending[msg_id] = future
        try:
            json_line = json.dumps(message)
            assert self._write_lock is not None
            async with self._write_lock:
                try:
                    self._process.stdin.write((json_line + "\n").encode("utf-8"))
                    await self._process.stdin.drain()
                except (BrokenPipeError, ConnectionResetError) as e:
                    self._is_connected = False
                    raise TransportError(f"Failed to send message to server: {e}") from e
            logger.debug("Sent request: %s", json_line)
            return await future
        finally:
            self._pending.pop(msg_id, None)

    async def _read_responses(self) -> None:
        """Route each response line to the caller waiting on its id."""
        assert self._process and self._process.stdout
        reason = "Server closed the pipe"
        try:
            while True:
                try:
                    line = await self._process.stdout.readline()
                except ValueError as e:
                    reason = f"Response line exceeds limit: {e}"
                    logger.error(reason)
                    return
                if not line:
                    logger.info("Server stdout closed")
                    return
                if not line.strip():
                    continue
                try:
                    message = json.loads(line.decode("utf-8"))
                except (json.JSONDecodeError, UnicodeDecodeError) as e:
                    logger.error("Failed to parse server message: %s", e)
                    continue
                if not isinstance(message, dict):
                    logger.error("Ignoring non-object server message: %r", message)
                    continue

                msg_id = message.get("id")
                future = None
                if isinstance(msg_id, (str, int, float)):
                    future = self._pending.get(msg_id)
                if future is None:
                    logger.warning("Dropping response with unknown id: %s", message)
                elif not future.done():
                    future.set_result(message)
        except asyncio.CancelledError:
            logger.debug("Response reader cancelled")
            raise
        finally:
            self._is_connected = False
            self._fail_pending(TransportError(reason))

    def _fail_pending(self, error: TransportError) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(error)
        self._pending.clear()
