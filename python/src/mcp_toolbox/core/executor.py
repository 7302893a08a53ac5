"""Tool executor: runs a registered tool and normalizes the outcome.

Every call produces an :class:`InvocationResult`; nothing raised by a
handler escapes :meth:`ToolExecutor.execute`.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from mcp_toolbox.core.errors import (
    INVALID_ARGUMENT,
    TOOL_EXECUTION_ERROR,
    TOOL_NOT_FOUND,
    DomainError,
    UnknownToolError,
)
from mcp_toolbox.core.format import (
    InvocationResult,
    RequestId,
    ToolDescriptor,
    ToolParameter,
)
from mcp_toolbox.core.registry import ToolRegistry

logger = logging.getLogger(__name__)


class ArgumentError(ValueError):
    """An argument is missing or cannot be converted to its declared type."""


def coerce_argument(param: ToolParameter, value: Any) -> Any:
    """Convert a raw wire value to the parameter's semantic type.

    Raises:
        ArgumentError: If the value cannot be converted.
    """
    if param.type == "number":
        if isinstance(value, bool):
            raise ArgumentError(f"Parameter '{param.name}' must be a number, got boolean")
        if isinstance(value, (int, float)):
            try:
                return float(value)
            except OverflowError:
                raise ArgumentError(
                    f"Parameter '{param.name}' is out of range for a number"
                ) from None
        if isinstance(value, str):
            try:
                return float(value.strip())
            except (ValueError, OverflowError):
                raise ArgumentError(
                    f"Parameter '{param.name}' must be a number, got {value!r}"
                ) from None
        raise ArgumentError(
            f"Parameter '{param.name}' must be a number, got {type(value).__name__}"
        )

    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    raise ArgumentError(
        f"Parameter '{param.name}' must be a string, got {type(value).__name__}"
    )


def bind_arguments(descriptor: ToolDescriptor, arguments: Any) -> Dict[str, Any]:
    """Validate ``arguments`` against the descriptor's parameter schema.

    Parameters not declared by the tool are dropped.

    Raises:
        ArgumentError: On a missing required parameter or an unconvertible value.
    """
    if arguments is None:
        arguments = {}
    if not isinstance(arguments, Mapping):
        raise ArgumentError(
            f"Arguments for '{descriptor.name}' must be an object, "
            f"got {type(arguments).__name__}"
        )

    bound: Dict[str, Any] = {}
    for param in descriptor.parameters:
        value = arguments.get(param.name)
        if value is None:
            if param.required:
                raise ArgumentError(f"Missing required parameter '{param.name}'")
            continue
        bound[param.name] = coerce_argument(param, value)
    return bound


def format_value(value: Any) -> str:
    """Render a handler's return value as text content."""
    if isinstance(value, str):
        return value
    return str(value)


class ToolExecutor:
    """Executes tools from a :class:`ToolRegistry`.

    The executor holds no per-call state and takes no locks; handlers that
    own shared state are responsible for their own synchronization.
    """

    def __init__(self, registry: ToolRegistry) -> None:
        self.registry = registry

    def execute(
        self,
        name: str,
        arguments: Optional[Mapping[str, Any]] = None,
        request_id: Optional[RequestId] = None,
    ) -> InvocationResult:
        """Run tool ``name`` with ``arguments``.

        Args:
            name: Registered tool name.
            arguments: Mapping of parameter name to number, string or null.
            request_id: Correlation id echoed on the result.

        Returns:
            A success result with one ``text`` block, or a failure result with
            ``TOOL_NOT_FOUND``, ``INVALID_ARGUMENT`` or ``TOOL_EXECUTION_ERROR``.
        """
        try:
            descriptor = self.registry.descriptor(name)
            handler = self.registry.lookup(name)
        except UnknownToolError:
            logger.warning("Call to unknown tool: %s", name)
            return InvocationResult.failure(
                TOOL_NOT_FOUND, f"Tool '{name}' is not registered", request_id
            )

        try:
            bound = bind_arguments(descriptor, arguments)
        except ArgumentError as e:
            logger.warning("Invalid arguments for %s: %s", name, e)
            return InvocationResult.failure(INVALID_ARGUMENT, str(e), request_id)

        logger.debug("Executing tool %s (id=%s) with %s", name, request_id, bound)
        try:
            value = handler(bound)
        except DomainError as e:
            logger.info("Tool %s failed: %s", name, e)
            return InvocationResult.failure(TOOL_EXECUTION_ERROR, str(e), request_id)
        except Exception as e:
            logger.exception("Unexpected error in tool %s: %s", name, e)
            return InvocationResult.failure(
                TOOL_EXECUTION_ERROR, str(e) or type(e).__name__, request_id
            )

        return InvocationResult.success(format_value(value), request_id)
