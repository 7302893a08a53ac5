#!/usr/bin/env python3
"""
Call tools on an mcp-toolbox server from a plain script.

This script demonstrates how to:
1. Spawn a tool server as a child process over stdio
2. List the tools it advertises
3. Call tools from several threads at once with ToolClient
4. Tell tool-level failures apart from transport failures

Usage:
    python call_tools.py [workspace_dir]

Example:
    python call_tools.py /tmp/toolbox-workspace
"""

import sys
import tempfile
from concurrent.futures import ThreadPoolExecutor

from mcp_toolbox import ToolClient
from mcp_toolbox.core.errors import TransportError


def main(workspace: str) -> int:
    server_args = ["-m", "mcp_toolbox.cli", "serve", "--stdio", "--workspace", workspace]

    try:
        with ToolClient.over_stdio(sys.executable, server_args) as client:
            info = client.initialize()
            print(f"Connected to {info['serverInfo']['name']} {info['serverInfo']['version']}")

            tools = client.list_tools()
            print(f"\n{len(tools)} tools available:")
            for tool in tools:
                print(f"  - {tool.name}: {tool.description}")

            print("\nSquares computed concurrently:")
            with ThreadPoolExecutor(max_workers=4) as pool:
                results = list(
                    pool.map(
                        lambda n: client.call_tool("power", {"base": n, "exponent": 2}),
                        range(1, 6),
                    )
                )
            for n, result in enumerate(results, start=1):
                print(f"  {n}^2 = {result.text}")

            client.call_tool("writeFile", {"filename": "hello.txt", "content": "Hello!"})
            print("\n" + client.call_tool("readFile", {"filename": "hello.txt"}).text)

            failed = client.call_tool("divide", {"a": 1, "b": 0})
            print(f"\ndivide(1, 0) -> {failed.error.code}: {failed.error.message}")
    except TransportError as e:
        print(f"Transport failure: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    if len(sys.argv) > 1:
        sys.exit(main(sys.argv[1]))
    with tempfile.TemporaryDirectory() as tmp:
        sys.exit(main(tmp))
