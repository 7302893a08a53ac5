"""Transport capabilities shared by the stdio and HTTP+SSE bindings.

Both bindings carry the same envelope. They are interchangeable
implementations of the protocols below, selected once at startup.
"""
from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable


class MessageHandler(Protocol):
    """Server-side envelope router (implemented by MCPServer)."""

    def handle_line(self, line: str | bytes) -> Optional[dict[str, Any]]:
        """Decode and handle one raw message; None means no response."""
        ...

    def handle_request(self, message: Any) -> Optional[dict[str, Any]]:
        """Handle one decoded message; None means no response."""
        ...


@runtime_checkable
class ServerTransport(Protocol):
    """Carries envelopes from remote peers to a MessageHandler."""

    @property
    def transport_type(self) -> str:
        """Return a string identifier for this transport type (e.g., 'stdio', 'sse')."""
        ...

    async def serve(self) -> None:
        """Serve until the peer goes away or the task is cancelled."""
        ...


@runtime_checkable
class ClientTransport(Protocol):
    """Request/response exchange used by the client proxy."""

    @property
    def is_connected(self) -> bool:
        """Return whether the transport is currently connected and operational."""
        ...

    @property
    def transport_type(self) -> str:
        """Return a string identifier for this transport type (e.g., 'stdio', 'sse')."""
        ...

    async def connect(self) -> None:
        """Open the connection (spawn the process, open the HTTP session).

        Raises:
            TransportError: If the connection cannot be established.
        """
        ...

    async def close(self) -> None:
        """Close the connection. Safe to call multiple times; never raises."""
        ...

    async def request(self, message: dict[str, Any]) -> dict[str, Any]:
        """Send one request envelope and wait for the response with the same id.

        Raises:
            TransportUnavailableError: If not connected.
            TransportError: If the connection fails before the response arrives.
        """
        ...
