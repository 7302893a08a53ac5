"""mcp-toolbox CLI: run a tool server, list its tools, call a tool."""

from __future__ import annotations

import asyncio
import json
import logging
import shlex
import sys
from typing import Any

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from mcp_toolbox import __version__
from mcp_toolbox.client import MCPClient
from mcp_toolbox.config import ServerConfig, load_config
from mcp_toolbox.core.errors import ProtocolError, TransportError
from mcp_toolbox.core.format import InvocationResult, ToolDescriptor
from mcp_toolbox.server import MCPServer

# stdout belongs to the envelope stream in stdio mode, so all human output
# goes to stderr.
console = Console(stderr=True)

LOG_LEVELS = ["debug", "info", "warning", "error"]


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS),
    default="warning",
    envvar="MCP_TOOLBOX_LOG_LEVEL",
    show_default=True,
    help="Logging verbosity (logs go to stderr)",
)
def cli(log_level: str) -> None:
    """mcp-toolbox - serve and call tools over stdio or HTTP+SSE."""
    _configure_logging(log_level)


@cli.command()
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    envvar="MCP_TOOLBOX_CONFIG",
    help="Path to a server config JSON file",
)
@click.option(
    "--stdio",
    is_flag=True,
    default=False,
    help="Serve on stdin/stdout as a child process instead of HTTP",
)
@click.option("--host", default=None, envvar="MCP_TOOLBOX_HOST", help="HTTP bind address")
@click.option("--port", type=int, default=None, envvar="MCP_TOOLBOX_PORT", help="HTTP port")
@click.option(
    "--workspace",
    type=click.Path(file_okay=False),
    default=None,
    envvar="MCP_TOOLBOX_WORKSPACE",
    help="Directory used by the file tools",
)
def serve(
    config_path: str | None,
    stdio: bool,
    host: str | None,
    port: int | None,
    workspace: str | None,
) -> None:
    """Run the tool server.

    Example:
        mcp-toolbox serve --port 8080
        mcp-toolbox serve --stdio --workspace /tmp/tools
    """
    try:
        config = load_config(config_path) if config_path else ServerConfig()
        config = config.with_overrides(
            transport="stdio" if stdio else None,
            host=host,
            port=port,
            workspace=workspace,
        )
    except (IOError, ValueError) as e:
        raise click.ClickException(f"Invalid configuration: {e}")

    server = MCPServer.from_config(config)
    tool_count = len(server.registry)

    try:
        if config.transport == "stdio":
            console.print(f"[bold cyan]Serving {tool_count} tools on stdio[/bold cyan]")
            asyncio.run(server.serve_stdio())
        else:
            console.print(f"[bold cyan]Serving {tool_count} tools[/bold cyan]")
            console.print(f"  URL: http://{config.host}:{config.port}/message")
            console.print("[yellow]Press Ctrl+C to stop[/yellow]")
            asyncio.run(server.serve_http(config.host, config.port))
    except KeyboardInterrupt:
        console.print("\n[yellow]Server interrupted by user[/yellow]")
        sys.exit(0)
    except OSError as e:
        raise click.ClickException(f"Server failed: {e}")


def _client_options(func: Any) -> Any:
    func = click.option(
        "--server-command",
        default=None,
        help='Spawn the server over stdio, e.g. "mcp-toolbox serve --stdio"',
    )(func)
    func = click.option(
        "--url",
        default=None,
        envvar="MCP_TOOLBOX_URL",
        help="Base URL of an HTTP tool server, e.g. http://localhost:8080",
    )(func)
    func = click.option(
        "--timeout",
        type=click.FloatRange(min=0, min_open=True),
        default=None,
        envvar="MCP_TOOLBOX_TIMEOUT",
        help="Seconds allowed per HTTP exchange (default: no limit)",
    )(func)
    return func


def _make_client(
    url: str | None, server_command: str | None, timeout: float | None = None
) -> MCPClient:
    if url and server_command:
        raise click.ClickException("Use either --url or --server-command, not both")
    if server_command:
        parts = shlex.split(server_command)
        if not parts:
            raise click.ClickException("--server-command is empty")
        return MCPClient.over_stdio(parts[0], parts[1:])
    if url:
        return MCPClient.over_http(url, timeout=timeout)
    raise click.ClickException("One of --url or --server-command is required")


def _parse_arguments(pairs: tuple[str, ...]) -> dict[str, Any]:
    """Parse key=value pairs; values that parse as JSON numbers/null stay typed."""
    arguments: dict[str, Any] = {}
    for pair in pairs:
        if "=" not in pair:
            raise click.ClickException(f"Invalid argument format: {pair}. Use key=value")
        key, raw = pair.split("=", 1)
        try:
            value = json.loads(raw)
        except json.JSONDecodeError:
            value = raw
        if not (value is None or isinstance(value, (int, float, str))) or isinstance(value, bool):
            value = raw
        arguments[key] = value
    return arguments


@cli.command("list-tools")
@_client_options
@click.option(
    "--format",
    type=click.Choice(["text", "json", "table"]),
    default="table",
    help="Output format",
)
def list_tools(
    url: str | None, server_command: str | None, timeout: float | None, format: str
) -> None:
    """List the tools a server advertises.

    Example:
        mcp-toolbox list-tools --url http://localhost:8080
        mcp-toolbox list-tools --server-command "mcp-toolbox serve --stdio"
    """
    client = _make_client(url, server_command, timeout)

    async def _run() -> list[ToolDescriptor]:
        async with client:
            return await client.list_tools()

    try:
        tools = asyncio.run(_run())
    except (TransportError, ProtocolError) as e:
        raise click.ClickException(f"Listing tools failed: {e}")

    if format == "json":
        click.echo(json.dumps([tool.model_dump(mode="json") for tool in tools], indent=2))
    elif format == "table":
        _output_tools_table(tools)
    else:
        for tool in tools:
            params = ", ".join(
                f"{p.name}: {p.type}" + ("" if p.required else "?") for p in tool.parameters
            )
            click.echo(f"{tool.name}({params}) - {tool.description}")


@cli.command()
@click.argument("name")
@click.option(
    "--arg",
    "-a",
    "args",
    multiple=True,
    help="Tool argument as key=value (can be specified multiple times)",
)
@_client_options
@click.option(
    "--format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format",
)
def call(
    name: str,
    args: tuple[str, ...],
    url: str | None,
    server_command: str | None,
    timeout: float | None,
    format: str,
) -> None:
    """Call a tool and print its result.

    Exits with code 1 when the tool reports an error.

    Example:
        mcp-toolbox call divide -a a=10 -a b=2 --url http://localhost:8080
    """
    arguments = _parse_arguments(args)
    client = _make_client(url, server_command, timeout)

    async def _run() -> InvocationResult:
        async with client:
            return await client.call_tool(name, arguments)

    try:
        result = asyncio.run(_run())
    except TransportError as e:
        raise click.ClickException(f"Tool call failed: {e}")

    if format == "json":
        click.echo(result.model_dump_json(exclude_none=True, indent=2))
    elif result.is_error:
        console.print(f"[bold red]{result.error.code}[/bold red]: {result.error.message}")
    else:
        click.echo(result.text)

    if result.is_error:
        sys.exit(1)


def _output_tools_table(tools: list[ToolDescriptor]) -> None:
    table = Table(title=f"{len(tools)} tools")
    table.add_column("Name", style="cyan")
    table.add_column("Parameters")
    table.add_column("Description")
    for tool in tools:
        params = ", ".join(
            f"{p.name}: {p.type}" + ("" if p.required else " (optional)")
            for p in tool.parameters
        )
        table.add_row(tool.name, params or "-", tool.description)
    Console().print(table)


if __name__ == "__main__":
    cli()
