"""CLI for wallet portfolio."""

import asyncio
import json
from enum import StrEnum

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.traceback import install

from wallet_portfolio.config import Settings
from wallet_portfolio.core.engine import PortfolioEngine, parse_chain_id
from wallet_portfolio.core.models import NativeBalance, PortfolioSnapshot
from wallet_portfolio.core.registry import ChainRegistry
from wallet_portfolio.errors import ConfigError, PortfolioError, ValidationError
from wallet_portfolio.log import configure_logging

# Install rich traceback handler
install(show_locals=False)

app = typer.Typer(
    name="wallet-portfolio",
    help="Aggregate and price the token holdings of a wallet on EVM chains",
    add_completion=False,
)

console = Console()


class OutputFormat(StrEnum):
    """Output format options."""

    TABLE = "table"
    JSON = "json"


def _resolve_chain_id(registry: ChainRegistry, chain: str) -> int:
    """
    Resolve a chain given as id (decimal or hex) or as network/name text.

    Raises
    ------
    ConfigError
        If no registered chain matches

    """
    try:
        return parse_chain_id(chain)
    except ValidationError:
        matches = registry.search(chain)
        if not matches:
            msg = f"Unknown chain: {chain}"
            raise ConfigError(msg) from None
        exact = [match for match in matches if match.network.lower() == chain.strip().lower()]
        return (exact or matches)[0].chain_id


async def _fetch_portfolio(settings: Settings, address: str, chain: str, include_hidden: bool) -> PortfolioSnapshot:
    engine = PortfolioEngine.from_settings(settings)
    try:
        chain_id = _resolve_chain_id(engine.registry, chain)
        return await engine.get_wallet_portfolio(address, chain_id, include_hidden=include_hidden)
    finally:
        await engine.close()


async def _fetch_native(settings: Settings, address: str, chain: str) -> NativeBalance:
    engine = PortfolioEngine.from_settings(settings)
    try:
        chain_id = _resolve_chain_id(engine.registry, chain)
        return await engine.get_native_balance(address, chain_id)
    finally:
        await engine.close()


@app.command()
def portfolio(
    address: str = typer.Argument(..., help="Wallet address to query"),
    chain: str = typer.Option("1", "--chain", "-c", help="Chain id or network name"),
    hidden: bool = typer.Option(False, "--hidden", help="Include tokens outside the preset list"),
    format: OutputFormat = typer.Option(
        OutputFormat.TABLE,
        "--format",
        "-f",
        help="Output format",
    ),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug output"),
) -> None:
    """
    Get the priced token portfolio of a wallet on one chain.

    Examples:

        # Ethereum mainnet, preset tokens only
        wallet-portfolio portfolio 0xABC...

        # Base, including every token the wallet holds
        wallet-portfolio portfolio 0xABC... --chain base --hidden

        # Output as JSON
        wallet-portfolio portfolio 0xABC... --format json
    """
    settings = Settings()
    configure_logging("DEBUG" if debug else settings.log_level)

    console.print(f"\n[bold cyan]Fetching portfolio for:[/bold cyan] {address}")

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True,
        ) as progress:
            progress.add_task(f"Fetching balances on chain {chain}...", total=None)
            snapshot = asyncio.run(_fetch_portfolio(settings, address, chain, hidden))
    except PortfolioError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        if debug:
            raise
        raise typer.Exit(1)

    if format == OutputFormat.JSON:
        console.print_json(snapshot.model_dump_json())
    else:
        _output_table(snapshot)


@app.command()
def native(
    address: str = typer.Argument(..., help="Wallet address to query"),
    chain: str = typer.Option("1", "--chain", "-c", help="Chain id or network name"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug output"),
) -> None:
    """Get the native currency balance of a wallet."""
    settings = Settings()
    configure_logging("DEBUG" if debug else settings.log_level)

    try:
        balance = asyncio.run(_fetch_native(settings, address, chain))
    except PortfolioError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        if debug:
            raise
        raise typer.Exit(1)

    console.print(
        f"[bold]{balance.balance:,.6f} {balance.symbol}[/bold]"
        f"  @ ${balance.price:,.2f}  = [bold green]${balance.value:,.2f}[/bold green]"
    )


@app.command()
def list_chains() -> None:
    """List all supported chains."""
    registry = ChainRegistry.load_default()

    table = Table(title="Supported Chains", show_header=True, header_style="bold magenta")
    table.add_column("Chain ID", style="cyan", justify="right")
    table.add_column("Name", style="green")
    table.add_column("Network", style="blue")
    table.add_column("Native", style="yellow")
    table.add_column("Presets", justify="right")

    for chain in registry.list_chains():
        table.add_row(
            str(chain.chain_id),
            chain.name,
            chain.network,
            chain.native.symbol,
            str(len(chain.preset_tokens)),
        )

    console.print(table)


@app.command()
def list_presets(
    chain: str = typer.Argument(..., help="Chain id or network name"),
    format: OutputFormat = typer.Option(OutputFormat.TABLE, "--format", "-f", help="Output format"),
) -> None:
    """List the preset tokens of a chain."""
    registry = ChainRegistry.load_default()
    try:
        chain_config = registry.lookup(_resolve_chain_id(registry, chain))
    except PortfolioError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if format == OutputFormat.JSON:
        data = [token.model_dump(mode="json") for token in chain_config.preset_tokens]
        console.print_json(json.dumps(data))
        return

    table = Table(title=f"Preset Tokens on {chain_config.name}", show_header=True, header_style="bold magenta")
    table.add_column("Symbol", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Address", style="dim")
    table.add_column("Decimals", justify="right")

    for token in chain_config.preset_tokens:
        table.add_row(token.symbol, token.name, token.address, str(token.decimals))

    console.print(table)


def _output_table(snapshot: PortfolioSnapshot) -> None:
    """Output portfolio as rich table."""
    if snapshot.degraded:
        console.print("\n[yellow]Balance provider unavailable, showing empty portfolio[/yellow]")

    if not snapshot.tokens:
        console.print("\n[yellow]No tokens found[/yellow]")
        return

    address = snapshot.wallet_address
    table = Table(
        title=f"Portfolio for {address[:10]}...{address[-8:]} on {snapshot.chain_name}",
        show_header=True,
        header_style="bold magenta",
    )

    table.add_column("Token", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Balance", style="white", justify="right")
    table.add_column("Price", justify="right")
    table.add_column("USD Value", style="bold green", justify="right")
    table.add_column("24h", justify="right")

    for token in snapshot.tokens:
        price_str = f"${token.price:,.4f}" if token.price else "-"
        value_str = f"${token.value:,.2f}" if token.price else "-"
        change_style = "green" if token.price_change_24h >= 0 else "red"
        table.add_row(
            token.symbol,
            token.name,
            f"{token.balance:,.4f}",
            price_str,
            value_str,
            f"[{change_style}]{token.price_change_24h:+.2f}%[/{change_style}]",
        )

    console.print("\n")
    console.print(table)

    summary_table = Table(show_header=False, box=None)
    summary_table.add_column("Label", style="bold")
    summary_table.add_column("Value", style="bold green")

    summary_table.add_row("Total Value:", f"${snapshot.total_value:,.2f}")
    summary_table.add_row("24h Change:", f"${snapshot.total_change_24h:+,.2f}")
    summary_table.add_row("Tokens:", str(len(snapshot.tokens)))
    if snapshot.hidden_token_count and not snapshot.include_hidden:
        summary_table.add_row("Hidden:", f"{snapshot.hidden_token_count} (use --hidden to show)")

    console.print("\n")
    console.print(summary_table)
    console.print("\n")


if __name__ == "__main__":
    app()
