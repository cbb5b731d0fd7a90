"""coinledger CLI - Entry point for the cwl command."""

from __future__ import annotations

import sqlite3
import time
from typing import NoReturn, Optional

import typer
from pydantic import ValidationError
from rich.console import Console

from coinledger import __version__
from coinledger.cli.output import (
    print_history,
    print_positions,
    print_quotes,
    print_summary,
    print_trade_result,
    print_transaction_stats,
    print_transactions,
)
from coinledger.core.config import get_settings
from coinledger.core.logging import setup_logging
from coinledger.db.factory import create_sqlite_stores
from coinledger.ledger.errors import LedgerError
from coinledger.market.models import PriceFeedError
from coinledger.market.static import DEFAULT_PRICE_TABLE
from coinledger.models.wallet import WalletRecord
from coinledger.service import WalletService, build_price_feed

app = typer.Typer(
    name="cwl",
    help="coinledger - crypto wallet position tracking",
    add_completion=False,
)
console = Console()

OwnerOption = typer.Option("default", "--owner", "-o", help="Wallet owner")


def _get_service() -> WalletService:
    """Wire the service from settings."""
    settings = get_settings()
    stores = create_sqlite_stores(settings.database_path)
    return WalletService.from_config(settings, stores, price_feed=build_price_feed(settings))


def _get_wallet(service: WalletService, owner: str) -> WalletRecord:
    wallet = service.wallets.get_wallet_by_owner(owner)
    if wallet is None:
        console.print(f"[red]Error: no wallet for '{owner}'.[/red]")
        console.print(f"[yellow]Create one with: cwl init --owner {owner}[/yellow]")
        raise typer.Exit(1)
    return wallet


def _fail(error: Exception) -> NoReturn:
    if isinstance(error, ValidationError):
        reason = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in error.errors()
        )
    else:
        reason = str(error)
    console.print(f"[red]Order rejected: {reason}[/red]")
    raise typer.Exit(1)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold green]coinledger[/bold green] version {__version__}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(  # noqa: ARG001
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
    log_level: str = typer.Option("WARNING", "--log-level", help="Logging level"),
) -> None:
    """coinledger - crypto wallet position tracking."""
    setup_logging(log_level)
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    owner: str = OwnerOption,
    currency: str = typer.Option("USD", "--currency", "-c", help="Settlement currency"),
) -> None:
    """Create a wallet."""
    service = _get_service()
    try:
        wallet = service.wallets.create_wallet(owner, currency)
    except sqlite3.IntegrityError:
        console.print(f"[yellow]Wallet for '{owner}' already exists.[/yellow]")
        raise typer.Exit(1)
    except ValueError:
        console.print(f"[red]Unsupported currency: {currency}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Created wallet {wallet.id} for {owner} ({wallet.fiat_currency.value})[/green]")


@app.command()
def settings(
    owner: str = OwnerOption,
    currency: Optional[str] = typer.Option(None, "--currency", "-c", help="New settlement currency"),
) -> None:
    """Show or change wallet settings."""
    service = _get_service()
    wallet = _get_wallet(service, owner)
    if currency is not None:
        try:
            service.wallets.update_currency(wallet.id, currency)
        except ValueError:
            console.print(f"[red]Unsupported currency: {currency}[/red]")
            raise typer.Exit(1)
        wallet = service.wallets.get_wallet(wallet.id)
    console.print(f"Wallet {wallet.id} ({wallet.owner}): currency {wallet.fiat_currency.value}")


@app.command()
def buy(
    symbol: str = typer.Argument(..., help="Asset symbol (e.g. BTC)"),
    amount: str = typer.Argument(..., help="Quantity to buy"),
    price: str = typer.Option(..., "--price", "-p", help="Unit price"),
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Asset display name"),
    notes: Optional[str] = typer.Option(None, "--notes", help="Transaction notes"),
    owner: str = OwnerOption,
) -> None:
    """Buy an asset."""
    service = _get_service()
    wallet = _get_wallet(service, owner)
    if name is None:
        quote = DEFAULT_PRICE_TABLE.get(symbol.strip().upper())
        name = quote.name if quote else symbol.upper()
    try:
        result = service.buy(wallet.id, symbol, name, amount, price, notes=notes)
    except (LedgerError, ValidationError) as e:
        _fail(e)
    print_trade_result(result, console)


@app.command()
def sell(
    symbol: str = typer.Argument(..., help="Asset symbol (e.g. BTC)"),
    amount: str = typer.Argument(..., help="Quantity to sell"),
    price: str = typer.Option(..., "--price", "-p", help="Unit price"),
    notes: Optional[str] = typer.Option(None, "--notes", help="Transaction notes"),
    owner: str = OwnerOption,
) -> None:
    """Sell an asset."""
    service = _get_service()
    wallet = _get_wallet(service, owner)
    try:
        result = service.sell(wallet.id, symbol, amount, price, notes=notes)
    except (LedgerError, ValidationError) as e:
        _fail(e)
    print_trade_result(result, console)


@app.command()
def portfolio(owner: str = OwnerOption) -> None:
    """Show positions and totals."""
    service = _get_service()
    wallet = _get_wallet(service, owner)
    print_positions(service.positions(wallet.id), console)
    console.print()
    print_summary(service.summary(wallet.id), console)


@app.command()
def prices(
    symbols: Optional[str] = typer.Argument(None, help="Comma-separated symbols"),
) -> None:
    """Show current market prices."""
    service = _get_service()
    requested = (
        [s.strip() for s in symbols.split(",") if s.strip()]
        if symbols
        else list(DEFAULT_PRICE_TABLE)
    )
    try:
        quotes = service.get_quotes(requested)
    except PriceFeedError as e:
        console.print(f"[red]Price feed error: {e}[/red]")
        raise typer.Exit(1)
    source = getattr(service.price_feed, "last_source", None) or service.price_feed.source_name
    print_quotes(quotes, source, console)


@app.command()
def refresh(owner: str = OwnerOption) -> None:
    """Update held positions with current market prices."""
    service = _get_service()
    wallet = _get_wallet(service, owner)
    updated = service.refresh_prices(wallet.id)
    console.print(f"Updated {len(updated)} prices: {', '.join(updated) or '-'}")
    print_summary(service.summary(wallet.id), console)


@app.command()
def watch(
    owner: str = OwnerOption,
    interval: Optional[int] = typer.Option(None, "--interval", "-i", help="Seconds between refreshes"),
    iterations: Optional[int] = typer.Option(None, "--iterations", help="Stop after N refreshes"),
    snapshot: bool = typer.Option(False, "--snapshot/--no-snapshot", help="Record a snapshot each refresh"),
) -> None:
    """Poll prices and keep the wallet's valuation current."""
    service = _get_service()
    wallet = _get_wallet(service, owner)
    delay = interval or get_settings().price_poll_interval
    count = 0
    try:
        while iterations is None or count < iterations:
            if count:
                time.sleep(delay)
            service.refresh_prices(wallet.id)
            if snapshot:
                service.record_snapshot(wallet.id)
            summary = service.summary(wallet.id)
            console.print(
                f"[dim]{time.strftime('%H:%M:%S')}[/dim] value {summary.total_value:.2f} "
                f"P/L {summary.total_profit_loss:.2f}"
            )
            count += 1
    except KeyboardInterrupt:
        console.print("[yellow]Stopped.[/yellow]")


@app.command()
def snapshot(owner: str = OwnerOption) -> None:
    """Record a portfolio value snapshot."""
    service = _get_service()
    wallet = _get_wallet(service, owner)
    snap = service.record_snapshot(wallet.id)
    console.print(f"[green]Recorded snapshot: total value {snap.total_value:.2f}[/green]")


@app.command()
def history(
    days: int = typer.Option(30, "--days", "-d", help="Days of history", min=0),
    owner: str = OwnerOption,
) -> None:
    """Show portfolio value history."""
    service = _get_service()
    wallet = _get_wallet(service, owner)
    print_history(service.portfolio_history(wallet.id, days), console)


@app.command()
def transactions(
    owner: str = OwnerOption,
    type: Optional[str] = typer.Option(None, "--type", "-t", help="buy or sell"),
    symbol: Optional[str] = typer.Option(None, "--symbol", "-s", help="Filter by symbol"),
    limit: int = typer.Option(20, "--limit", "-n", help="Maximum rows"),
    page: int = typer.Option(1, "--page", help="Page number", min=1),
    stats: bool = typer.Option(False, "--stats", help="Show totals per type"),
) -> None:
    """List recorded transactions."""
    service = _get_service()
    wallet = _get_wallet(service, owner)
    store = service.transactions
    rows = store.list_transactions(
        wallet.id, type=type, symbol=symbol, limit=limit, offset=(page - 1) * limit
    )
    print_transactions(rows, console)
    total = store.count(wallet.id, type=type, symbol=symbol)
    pages = max(1, -(-total // limit))
    console.print(f"[dim]Page {page}/{pages} ({total} transactions)[/dim]")
    if stats:
        print_transaction_stats(store.stats(wallet.id), console)


if __name__ == "__main__":
    app()
