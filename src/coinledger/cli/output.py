"""Rich output formatting for CLI commands."""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

if TYPE_CHECKING:
    from coinledger.market.models import PriceQuote
    from coinledger.models.position import PortfolioSummary, Position
    from coinledger.models.snapshot import PortfolioSnapshot
    from coinledger.models.transaction import Transaction, TransactionStats
    from coinledger.service import TradeResult


def _format_money(value: Decimal | float) -> str:
    """Format a value as currency."""
    val = float(value) if isinstance(value, Decimal) else value
    return f"${val:,.2f}"


def _format_percent(value: Decimal | float, show_sign: bool = True) -> str:
    """Format an already-scaled percentage (9.09 -> +9.09%)."""
    val = float(value) if isinstance(value, Decimal) else value
    if show_sign and val >= 0:
        return f"+{val:.2f}%"
    return f"{val:.2f}%"


def _format_amount(value: Decimal | float) -> str:
    """Format an asset quantity."""
    val = float(value) if isinstance(value, Decimal) else value
    return f"{val:,.8f}".rstrip("0").rstrip(".")


def _pl_style(value: Decimal | float) -> str:
    return "green" if value >= 0 else "red"


def print_summary(summary: PortfolioSummary, console: Console) -> None:
    """Print wallet totals."""
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Label", style="dim")
    table.add_column("Value", justify="right")

    style = _pl_style(summary.total_profit_loss)
    table.add_row("Total Value:", _format_money(summary.total_value))
    table.add_row("Invested:", _format_money(summary.total_invested))
    table.add_row(
        "Profit/Loss:",
        f"[{style}]{_format_money(summary.total_profit_loss)} "
        f"({_format_percent(summary.total_profit_loss_pct)})[/{style}]",
    )
    console.print(table)


def print_positions(positions: list[Position], console: Console) -> None:
    """Print the position table."""
    if not positions:
        console.print("[yellow]No positions held.[/yellow]")
        return

    table = Table(title="Positions")
    table.add_column("Symbol", style="bold cyan")
    table.add_column("Name")
    table.add_column("Amount", justify="right")
    table.add_column("Avg Cost", justify="right")
    table.add_column("Price", justify="right")
    table.add_column("Value", justify="right")
    table.add_column("P/L", justify="right")
    table.add_column("P/L %", justify="right")

    for p in positions:
        style = _pl_style(p.profit_loss)
        table.add_row(
            p.symbol,
            p.name,
            _format_amount(p.amount),
            _format_money(p.average_cost),
            _format_money(p.current_price),
            _format_money(p.value),
            f"[{style}]{_format_money(p.profit_loss)}[/{style}]",
            f"[{style}]{_format_percent(p.profit_loss_pct)}[/{style}]",
        )
    console.print(table)


def print_trade_result(result: TradeResult, console: Console) -> None:
    """Print a completed buy or sell."""
    tx = result.transaction
    verb = "Bought" if tx.type == "buy" else "Sold"
    console.print(
        Panel(
            f"[bold green]{verb} {_format_amount(tx.amount)} {tx.symbol} "
            f"@ {_format_money(tx.price)}[/bold green]\n"
            f"Notional: {_format_money(tx.fiat_amount)}  Fee: {_format_money(tx.fee_amount)}\n"
            f"Hash: [dim]{tx.transaction_hash}[/dim]",
            expand=False,
        )
    )
    if result.position is None:
        console.print(f"[dim]{tx.symbol} position closed.[/dim]")
    print_summary(result.summary, console)


def print_quotes(quotes: dict[str, PriceQuote], source: str, console: Console) -> None:
    """Print market quotes."""
    table = Table(title=f"Prices ({source})")
    table.add_column("Symbol", style="bold cyan")
    table.add_column("Name")
    table.add_column("Price", justify="right")
    table.add_column("24h", justify="right")
    for symbol, quote in quotes.items():
        change = (
            f"[{_pl_style(quote.change_24h_pct)}]{_format_percent(quote.change_24h_pct)}"
            f"[/{_pl_style(quote.change_24h_pct)}]"
            if quote.change_24h_pct is not None
            else "-"
        )
        table.add_row(symbol, quote.name, _format_money(quote.price), change)
    console.print(table)


def print_history(history: list[PortfolioSnapshot], console: Console) -> None:
    """Print portfolio value history."""
    table = Table(title="Portfolio History")
    table.add_column("Timestamp")
    table.add_column("Total Value", justify="right")
    table.add_column("Positions", justify="right")
    for snap in history:
        table.add_row(
            snap.timestamp.strftime("%Y-%m-%d %H:%M"),
            _format_money(snap.total_value),
            str(len(snap.positions)),
        )
    console.print(table)


def print_transactions(transactions: list[Transaction], console: Console) -> None:
    """Print a transaction list."""
    if not transactions:
        console.print("[yellow]No transactions found.[/yellow]")
        return

    table = Table(title="Transactions")
    table.add_column("Date")
    table.add_column("Type")
    table.add_column("Symbol", style="bold cyan")
    table.add_column("Amount", justify="right")
    table.add_column("Price", justify="right")
    table.add_column("Total", justify="right")
    table.add_column("Fee", justify="right")
    table.add_column("Status")
    for tx in transactions:
        side_style = "green" if tx.type == "buy" else "red"
        table.add_row(
            tx.created_at.strftime("%Y-%m-%d %H:%M"),
            f"[{side_style}]{tx.type.upper()}[/{side_style}]",
            tx.symbol,
            _format_amount(tx.amount),
            _format_money(tx.price),
            _format_money(tx.fiat_amount),
            _format_money(tx.fee_amount),
            tx.status.value,
        )
    console.print(table)


def print_transaction_stats(stats: TransactionStats, console: Console) -> None:
    """Print per-type transaction totals."""
    table = Table(show_header=True, box=None, padding=(0, 2))
    table.add_column("Type", style="dim")
    table.add_column("Count", justify="right")
    table.add_column("Volume", justify="right")
    table.add_column("Fees", justify="right")
    for entry in stats.by_type:
        table.add_row(
            entry.type,
            str(entry.count),
            _format_money(entry.total_amount),
            _format_money(entry.total_fees),
        )
    table.add_row(
        "[bold]total[/bold]",
        str(stats.total_transactions),
        _format_money(stats.total_volume),
        _format_money(stats.total_fees),
    )
    console.print(table)
