"""Exception hierarchy and wire error codes for mcp-toolbox.

Every module imports from here. The hierarchy is:

    ToolboxError
    ├── RegistryError
    │   ├── DuplicateToolError(name)
    │   └── UnknownToolError(name)
    ├── DomainError
    ├── ProtocolError(code, message)
    └── TransportError
        └── TransportUnavailableError

Error codes travel on the wire as plain strings in ``error.code``.
"""

from __future__ import annotations

TOOL_NOT_FOUND = "TOOL_NOT_FOUND"
INVALID_ARGUMENT = "INVALID_ARGUMENT"
TOOL_EXECUTION_ERROR = "TOOL_EXECUTION_ERROR"
PARSE_ERROR = "PARSE_ERROR"
METHOD_NOT_FOUND = "METHOD_NOT_FOUND"
TRANSPORT_ERROR = "TRANSPORT_ERROR"

ERROR_CODES = frozenset(
    {
        TOOL_NOT_FOUND,
        INVALID_ARGUMENT,
        TOOL_EXECUTION_ERROR,
        PARSE_ERROR,
        METHOD_NOT_FOUND,
        TRANSPORT_ERROR,
    }
)


class ToolboxError(Exception):
    """Base exception for all mcp-toolbox errors."""


# ─── Registry Errors ──────────────────────────────────────────


class RegistryError(ToolboxError):
    """Base for registry lookup/registration errors."""

    def __init__(self, name: str, message: str) -> None:
        self.name = name
        super().__init__(message)


class DuplicateToolError(RegistryError):
    """A tool with the same name is already registered."""

    def __init__(self, name: str) -> None:
        super().__init__(name, f"Tool already registered: {name}")


class UnknownToolError(RegistryError):
    """No tool is registered under the requested name."""

    def __init__(self, name: str) -> None:
        super().__init__(name, f"Tool not found: {name}")


# ─── Tool Errors ──────────────────────────────────────────────


class DomainError(ToolboxError):
    """Raised by a tool handler for an expected, user-facing failure.

    The message is sent back to the caller verbatim.
    """


class ProtocolError(ToolboxError):
    """The peer answered with an error envelope where a value was expected."""

    def __init__(self, code: str, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(f"[{code}] {message}")


# ─── Transport Errors ─────────────────────────────────────────


class TransportError(ToolboxError, ConnectionError):
    """The call never completed: connection reset, pipe closed, bad response."""

    code = TRANSPORT_ERROR


class TransportUnavailableError(TransportError):
    """No transport is configured or the connection was never opened."""
