"""CLI for the MCP blockchain metadata gateway."""

import asyncio
import json
from enum import StrEnum
from typing import Any

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.traceback import install

from mcp_blockchain_metadata.config import GatewaySettings, load_settings
from mcp_blockchain_metadata.core.models import ToolResult
from mcp_blockchain_metadata.data import get_chain_aliases, get_explorer_url, get_token_list_urls
from mcp_blockchain_metadata.logs import configure_logging
from mcp_blockchain_metadata.server.gateway import Gateway
from mcp_blockchain_metadata.sources.chains import known_chains

install(show_locals=False)

app = typer.Typer(
    name="mcp-blockchain-metadata",
    help="Serve token lists, mini-app endpoints and template metadata to MCP clients",
    add_completion=False,
)

console = Console()


class OutputFormat(StrEnum):
    """Output format options."""

    TABLE = "table"
    JSON = "json"


def _settings(**overrides: Any) -> GatewaySettings:
    settings = load_settings(**{key: value for key, value in overrides.items() if value is not None})
    configure_logging(settings.log_level, settings.environment)
    return settings


def _call_tool(settings: GatewaySettings, tool_name: str, arguments: dict[str, Any], status: str) -> ToolResult:
    """
    Run one tool call against a fresh gateway.

    Parameters
    ----------
    settings : GatewaySettings
        Runtime settings
    tool_name : str
        Registered tool name
    arguments : dict[str, Any]
        Tool arguments; None values are dropped
    status : str
        Spinner text shown while the call runs

    Returns
    -------
    ToolResult
        Tool result

    """

    async def _run() -> ToolResult:
        gateway = Gateway(settings)
        try:
            tool = gateway.tools[tool_name]
            return await tool.call({key: value for key, value in arguments.items() if value is not None})
        finally:
            await gateway.aclose()

    with Progress(SpinnerColumn(), TextColumn("[progress.description]{task.description}"), console=console) as progress:
        progress.add_task(status, total=None)
        return asyncio.run(_run())


def _exit_on_error(result: ToolResult) -> None:
    if result.is_error:
        console.print(f"[bold red]Error:[/bold red] {result.content[0].text}")
        raise typer.Exit(code=1)


def _print_text(result: ToolResult) -> None:
    for block in result.content:
        console.print(block.text)


def _output_json(result: ToolResult) -> None:
    payload = result.structured_content if result.structured_content is not None else result.to_response()
    console.print_json(json.dumps(payload))


@app.command()
def serve(
    host: str | None = typer.Option(None, "--host", help="Interface to bind (default from MCP_HOST)"),
    port: int | None = typer.Option(None, "--port", "-p", help="Port to listen on (default from MCP_PORT)"),
) -> None:
    """
    Run the HTTP transport.

    Examples:

        mcp-blockchain-metadata serve --port 3000
    """
    import uvicorn

    from mcp_blockchain_metadata.server.http import create_app

    settings = _settings(host=host, port=port)
    console.print(f"[bold cyan]Serving MCP on[/bold cyan] http://{settings.host}:{settings.port}/mcp")
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_config=None)


@app.command()
def stdio() -> None:
    """Run the stdio transport (newline-delimited JSON-RPC)."""
    from mcp_blockchain_metadata.server.stdio import run_stdio

    settings = _settings()
    asyncio.run(run_stdio(Gateway(settings)))


@app.command()
def tokens(
    protocol: str = typer.Argument(..., help="Protocol whose token list to fetch (e.g. lfj, uniswap)"),
    chain: str | None = typer.Option(None, "--chain", "-c", help="Chain id or alias"),
    query: str | None = typer.Option(None, "--query", "-q", help="Filter by name, symbol or address"),
    sort: str = typer.Option("none", "--sort", "-s", help="Sort by name, symbol or none"),
    order: str = typer.Option("asc", "--order", help="Sort order: asc or desc"),
    limit: int | None = typer.Option(None, "--limit", "-l", help="Maximum number of tokens"),
    format: OutputFormat = typer.Option(OutputFormat.TABLE, "--format", "-f", help="Output format"),
) -> None:
    """
    List the tokens of a protocol's token list.

    Examples:

        mcp-blockchain-metadata tokens lfj --chain avalanche --limit 10

        mcp-blockchain-metadata tokens uniswap --chain 1 --sort symbol --format json
    """
    arguments = {"protocol": protocol, "chainId": chain, "query": query, "sort": sort, "order": order, "limit": limit}
    result = _call_tool(_settings(), "get_protocol_tokens", arguments, f"Fetching {protocol} tokens...")
    _exit_on_error(result)

    if format == OutputFormat.JSON:
        _output_json(result)
        return

    token_list = (result.structured_content or {}).get("tokens", [])
    if not token_list:
        _print_text(result)
        return

    table = Table(title=f"{protocol} tokens", show_header=True, header_style="bold magenta")
    table.add_column("Symbol", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Chain", style="blue")
    table.add_column("Decimals", justify="right")
    table.add_column("Address", style="dim")
    for token in token_list:
        table.add_row(token["symbol"], token["name"], token["chainId"], str(token["decimals"]), token["address"])

    console.print(table)
    metadata = result.structured_content["metadata"]
    console.print(f"[bold]Showing {metadata['count']} of {metadata['total']} tokens[/bold]")


@app.command()
def endpoints(
    category: str = typer.Option("all", "--category", "-c", help="all, defi, gaming, nft or social"),
    state: str = typer.Option("all", "--state", "-s", help="all, trusted, pending or rejected"),
    query: str | None = typer.Option(None, "--query", "-q", help="Text searched in host, endpoint and category"),
    limit: int = typer.Option(50, "--limit", "-l", help="Maximum number of endpoints (1-100)"),
    format: OutputFormat = typer.Option(OutputFormat.TABLE, "--format", "-f", help="Output format"),
) -> None:
    """List mini-app endpoints from the repository."""
    arguments = {"category": category, "state": state, "query": query, "limit": limit}
    result = _call_tool(_settings(), "get_miniapp_endpoints", arguments, "Fetching repository...")
    _exit_on_error(result)

    if format == OutputFormat.JSON:
        _output_json(result)
        return

    endpoint_list = (result.structured_content or {}).get("endpoints", [])
    if not endpoint_list:
        _print_text(result)
        return

    table = Table(title="Mini-app endpoints", show_header=True, header_style="bold magenta")
    table.add_column("URL", style="cyan")
    table.add_column("Category", style="yellow")
    table.add_column("Status", style="green")
    for endpoint in endpoint_list:
        table.add_row(endpoint["fullUrl"], endpoint["categoryDisplay"], endpoint["verificationStatus"])
    console.print(table)


@app.command()
def templates(
    category: str | None = typer.Option(None, "--category", "-c", help="swap, staking or lending"),
    protocol: str | None = typer.Option(None, "--protocol", "-p", help="Template protocol (e.g. traderjoe)"),
    query: str | None = typer.Option(None, "--query", "-q", help="Text searched in template names and ids"),
    summary: bool = typer.Option(False, "--summary", help="Only basic template fields"),
) -> None:
    """
    Fetch template metadata.

    Without --category or --protocol, prints the template catalog help.
    """
    arguments = {
        "category": category,
        "protocol": protocol,
        "query": query,
        "format": "summary" if summary else "full",
    }
    result = _call_tool(_settings(), "get_metadata_of_template", arguments, "Fetching templates...")
    _exit_on_error(result)
    if result.structured_content and result.structured_content.get("templates"):
        _output_json(result)
    else:
        _print_text(result)


@app.command()
def list_protocols() -> None:
    """List protocols with a known token list."""
    table = Table(title="Token-list protocols", show_header=True, header_style="bold magenta")
    table.add_column("Protocol", style="cyan")
    table.add_column("Token list URL", style="green")

    for protocol, url in sorted(get_token_list_urls().items()):
        table.add_row(protocol, url)

    console.print(table)


@app.command()
def list_chains() -> None:
    """List known chain ids and their aliases."""
    table = Table(title="Supported Chains", show_header=True, header_style="bold magenta")
    table.add_column("Chain id", style="cyan")
    table.add_column("Aliases", style="green")
    table.add_column("Explorer", style="yellow")

    for chain_id, aliases in known_chains(get_chain_aliases()).items():
        explorer = get_explorer_url(chain_id, "")
        table.add_row(chain_id, ", ".join(aliases), explorer or "-")

    console.print(table)


if __name__ == "__main__":
    app()
