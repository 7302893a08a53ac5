"""Shared fixtures and test utilities for mcp-toolbox tests."""

import asyncio
import os
from pathlib import Path
from typing import Any, Dict, List

import pytest

from mcp_toolbox.core.errors import DomainError, TransportUnavailableError
from mcp_toolbox.core.executor import ToolExecutor
from mcp_toolbox.core.format import ToolDescriptor, ToolParameter
from mcp_toolbox.core.registry import ToolRegistry
from mcp_toolbox.server import MCPServer
from mcp_toolbox.tools import default_tools

SRC_DIR = Path(__file__).resolve().parents[1] / "src"


# ===== Registry / Executor Fixtures =====


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Empty directory for the file tools."""
    path = tmp_path / "workspace"
    path.mkdir()
    return path


@pytest.fixture
def registry(workspace: Path) -> ToolRegistry:
    """Registry holding every built-in tool."""
    registry = ToolRegistry()
    registry.register_all(default_tools(workspace))
    return registry


@pytest.fixture
def executor(registry: ToolRegistry) -> ToolExecutor:
    return ToolExecutor(registry)


@pytest.fixture
def server(registry: ToolRegistry) -> MCPServer:
    return MCPServer(registry, name="test-server", version="9.9.9")


@pytest.fixture
def echo_descriptor() -> ToolDescriptor:
    """Descriptor for a simple string echo tool."""
    return ToolDescriptor(
        name="echo",
        description="Echo tool",
        parameters=(ToolParameter(name="text", type="string"),),
    )


@pytest.fixture
def mixed_registry(echo_descriptor: ToolDescriptor) -> ToolRegistry:
    """Small registry with an optional parameter and failing tools."""

    def scale(args: Dict[str, Any]) -> float:
        return args["value"] * args.get("factor", 2.0)

    def fail(args: Dict[str, Any]) -> str:
        raise DomainError("Something went wrong: exactly this")

    def crash(args: Dict[str, Any]) -> str:
        raise RuntimeError("handler bug")

    registry = ToolRegistry()
    registry.register(echo_descriptor, lambda args: args["text"])
    registry.register(
        ToolDescriptor(
            name="scale",
            description="Scale a value",
            parameters=(
                ToolParameter(name="value", type="number"),
                ToolParameter(name="factor", type="number", required=False),
            ),
        ),
        scale,
    )
    registry.register(ToolDescriptor(name="fail", description="Always fails"), fail)
    registry.register(ToolDescriptor(name="crash", description="Has a bug"), crash)
    return registry


# ===== Transport Helpers =====


class LoopbackTransport:
    """In-process ClientTransport that hands envelopes straight to an MCPServer."""

    def __init__(self, server: MCPServer) -> None:
        self.server = server
        self.sent: List[Dict[str, Any]] = []
        self._is_connected = False

    @property
    def is_connected(self) -> bool:
        return self._is_connected

    @property
    def transport_type(self) -> str:
        return "loopback"

    async def connect(self) -> None:
        self._is_connected = True

    async def close(self) -> None:
        self._is_connected = False

    async def request(self, message: Dict[str, Any]) -> Dict[str, Any]:
        if not self._is_connected:
            raise TransportUnavailableError("Not connected to server")
        self.sent.append(message)
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.server.handle_request, message)


@pytest.fixture
def loopback(server: MCPServer) -> LoopbackTransport:
    return LoopbackTransport(server)


@pytest.fixture
def subprocess_env() -> Dict[str, str]:
    """Environment that lets a child interpreter import mcp_toolbox from source."""
    env = dict(os.environ)
    existing = env.get("PYTHONPATH")
    env["PYTHONPATH"] = str(SRC_DIR) + (os.pathsep + existing if existing else "")
    return env


@pytest.fixture
def stdio_server_args(workspace: Path) -> List[str]:
    """Arguments for spawning the real server in stdio mode via sys.executable."""
    return ["-m", "mcp_toolbox.cli", "serve", "--stdio", "--workspace", str(workspace)]
