"""Tests for MCPClient and the blocking ToolClient."""

import sys
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from mcp_toolbox.client import MCPClient, ToolClient
from mcp_toolbox.core.errors import (
    PARSE_ERROR,
    TOOL_EXECUTION_ERROR,
    TOOL_NOT_FOUND,
    ProtocolError,
    TransportError,
    TransportUnavailableError,
)
from mcp_toolbox.core.format import ToolDescriptor
from mcp_toolbox.transport.sse import SSEServerTransport


class ScriptedTransport:
    """Client transport that answers every request with a canned envelope."""

    def __init__(self, reply):
        self.reply = reply
        self.is_connected = False
        self.transport_type = "scripted"

    async def connect(self):
        self.is_connected = True

    async def close(self):
        self.is_connected = False

    async def request(self, message):
        return {"id": message["id"], **self.reply}


# ===== Async Client =====


class TestMCPClient:
    @pytest.mark.asyncio
    async def test_no_transport(self):
        client = MCPClient()
        assert not client.is_connected
        with pytest.raises(TransportUnavailableError):
            await client.connect()
        with pytest.raises(TransportUnavailableError):
            await client.call_tool("add", {"a": 1, "b": 2})

    @pytest.mark.asyncio
    async def test_not_connected(self, loopback):
        client = MCPClient(loopback)
        with pytest.raises(TransportUnavailableError):
            await client.list_tools()

    @pytest.mark.asyncio
    async def test_list_tools(self, loopback, registry):
        async with MCPClient(loopback) as client:
            tools = await client.list_tools()
        assert tools == registry.list()
        assert all(isinstance(t, ToolDescriptor) for t in tools)

    @pytest.mark.asyncio
    async def test_call_tool_success(self, loopback):
        async with MCPClient(loopback) as client:
            result = await client.call_tool("sqrt", {"number": 16})
        assert not result.is_error
        assert result.text == "4.0"

    @pytest.mark.asyncio
    async def test_tool_errors_are_results_not_exceptions(self, loopback):
        async with MCPClient(loopback) as client:
            missing = await client.call_tool("nonexistent", {})
            divided = await client.call_tool("divide", {"a": 10, "b": 0})
        assert missing.error.code == TOOL_NOT_FOUND
        assert divided.error.code == TOOL_EXECUTION_ERROR
        assert divided.error.message == "Cannot divide by zero"

    @pytest.mark.asyncio
    async def test_ids_are_unique(self, loopback):
        async with MCPClient(loopback) as client:
            await client.call_tool("count")
            await client.call_tool("count")
            await client.list_tools()
        ids = [message["id"] for message in loopback.sent]
        assert len(set(ids)) == 3

    @pytest.mark.asyncio
    async def test_initialize(self, loopback):
        async with MCPClient(loopback) as client:
            info = await client.initialize()
        assert info["serverInfo"]["name"] == "test-server"

    @pytest.mark.asyncio
    async def test_list_tools_error_envelope(self):
        transport = ScriptedTransport(
            {"error": {"code": "METHOD_NOT_FOUND", "message": "Unknown method"}}
        )
        async with MCPClient(transport) as client:
            with pytest.raises(ProtocolError) as exc_info:
                await client.list_tools()
        assert exc_info.value.code == "METHOD_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_list_tools_bad_result(self):
        transport = ScriptedTransport({"result": {"tools": "nope"}})
        async with MCPClient(transport) as client:
            with pytest.raises(ProtocolError):
                await client.list_tools()

    @pytest.mark.asyncio
    async def test_call_tool_missing_content(self):
        transport = ScriptedTransport({"result": {"value": 1}})
        async with MCPClient(transport) as client:
            result = await client.call_tool("add", {"a": 1, "b": 1})
        assert result.error.code == PARSE_ERROR

    @pytest.mark.asyncio
    async def test_malformed_envelope_is_transport_error(self):
        transport = ScriptedTransport({})
        async with MCPClient(transport) as client:
            with pytest.raises(TransportError):
                await client.call_tool("add", {"a": 1, "b": 1})

    @pytest.mark.asyncio
    async def test_over_http(self, server):
        transport = SSEServerTransport(server, port=0)
        await transport.start()
        try:
            async with MCPClient.over_http(transport.url) as client:
                result = await client.call_tool("add", {"a": 2, "b": 2})
        finally:
            await transport.stop()
        assert result.text == "4.0"

    @pytest.mark.asyncio
    async def test_over_stdio(self, stdio_server_args, subprocess_env):
        client = MCPClient.over_stdio(
            sys.executable, stdio_server_args, server_env=subprocess_env
        )
        async with client:
            await client.initialize()
            stored = await client.call_tool("store", {"key": "k", "value": "v"})
            retrieved = await client.call_tool("retrieve", {"key": "k"})
        assert stored.text == "Stored value under key 'k'"
        assert retrieved.text == "v"


# ===== Blocking Client =====


class TestToolClient:
    def test_not_connected(self, loopback):
        client = ToolClient(loopback)
        with pytest.raises(TransportUnavailableError):
            client.call_tool("add", {"a": 1, "b": 1})

    def test_round_trip(self, loopback):
        with ToolClient(loopback) as client:
            assert client.is_connected
            names = [tool.name for tool in client.list_tools()]
            result = client.call_tool("add", {"a": 1, "b": 2})
        assert "add" in names
        assert result.text == "3.0"
        assert not client.is_connected

    def test_close_is_idempotent(self, loopback):
        client = ToolClient(loopback)
        client.connect()
        client.close()
        client.close()

    def test_connect_twice_rejected(self, loopback):
        client = ToolClient(loopback)
        client.connect()
        try:
            with pytest.raises(RuntimeError):
                client.connect()
        finally:
            client.close()

    def test_failed_connect_releases_loop(self):
        client = ToolClient()
        with pytest.raises(TransportUnavailableError):
            client.connect()
        with pytest.raises(TransportUnavailableError):
            client.list_tools()

    def test_many_threads_share_one_client(self, loopback):
        with ToolClient(loopback) as client:
            with ThreadPoolExecutor(max_workers=8) as pool:
                futures = [
                    pool.submit(client.call_tool, "multiply", {"a": i, "b": 3})
                    for i in range(40)
                ]
                results = [f.result() for f in futures]

        for i, result in enumerate(results):
            assert result.text == str(float(i * 3))

    def test_concurrent_stores_visible_to_all_threads(self, loopback):
        with ToolClient(loopback) as client:
            barrier = threading.Barrier(4)

            def writer(n):
                barrier.wait()
                for j in range(10):
                    client.call_tool("store", {"key": f"t{n}-{j}", "value": str(j)})

            threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
            for t in threads:
                t.start()
            for t in threads:
                t.join()

            assert client.call_tool("count").text == "Storage contains 40 entries"
