"""Rich console rendering of feed query results."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Sequence

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .codec import RoundData
from .history import HistoricalSeries
from .phases import PhaseTraversal
from .queries import QueryResult, RoundContext
from .registry import OracleDescriptor
from .units import format_units


def _format_timestamp(timestamp: int) -> str:
    """Format a unix timestamp as UTC, or the raw number if out of range."""
    if timestamp == 0:
        return "-"
    try:
        return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime(
            "%Y-%m-%d %H:%M:%S UTC"
        )
    except (OverflowError, OSError, ValueError):
        return str(timestamp)


def _truncate_address(address: str) -> str:
    """Truncate address for display."""
    return f"{address[:10]}...{address[-4:]}"


def render_descriptor(
    oracle: OracleDescriptor, chain_name: str, console: Console | None = None
) -> None:
    console = console or Console()
    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column("Key", style="dim")
    table.add_column("Value", style="cyan")
    table.add_row("Name", oracle.name)
    table.add_row("Pair", f"{oracle.token}/{oracle.base}")
    table.add_row("Chain", chain_name)
    table.add_row("Proxy", oracle.proxy_address)
    table.add_row("Aggregator", oracle.aggregator_address or "-")
    table.add_row("Decimals", str(oracle.decimals))
    console.print(Panel(table, title="[bold]Oracle[/]", border_style="blue"))


def render_latest_answers(
    oracles: Sequence[OracleDescriptor],
    results: Sequence[QueryResult],
    chain_name: str,
    console: Console | None = None,
) -> None:
    """One row per pair; ``oracles`` and ``results`` are index-aligned."""
    console = console or Console()
    table = Table(title=f"Latest answers on {chain_name}")
    table.add_column("Pair", style="bold")
    table.add_column("Answer", justify="right")
    table.add_column("Price", justify="right", style="green")
    table.add_column("Oracle", style="dim")
    for oracle, result in zip(oracles, results):
        pair = f"{oracle.token}/{oracle.base}"
        if result.ok:
            table.add_row(
                pair,
                str(result.value),
                format_units(result.value, oracle.decimals),
                oracle.proxy_address,
            )
        else:
            table.add_row(
                pair, "-", f"[red]{result.error_message}[/]", oracle.proxy_address
            )
    console.print(table)


def _round_table(title: str) -> Table:
    table = Table(title=title)
    table.add_column("Round id", justify="right")
    table.add_column("Phase", justify="right")
    table.add_column("Agg. round", justify="right")
    table.add_column("Answer", justify="right")
    table.add_column("Price", justify="right", style="green")
    table.add_column("Started at")
    table.add_column("Updated at")
    table.add_column("Answered in", justify="right")
    return table


def _add_round_row(table: Table, round_data: RoundData, decimals: int) -> None:
    table.add_row(
        str(round_data.round_id),
        str(round_data.phase_id),
        str(round_data.aggregator_round_id),
        str(round_data.answer),
        round_data.formatted_answer(decimals),
        _format_timestamp(round_data.started_at),
        _format_timestamp(round_data.updated_at),
        str(round_data.answered_in_round),
    )


def render_rounds(
    results: Sequence[QueryResult],
    decimals: int,
    title: str,
    console: Console | None = None,
) -> None:
    console = console or Console()
    table = _round_table(title)
    for result in results:
        if result.ok:
            _add_round_row(table, result.value, decimals)
            continue
        context = result.context
        round_id = str(context.round_id) if isinstance(context, RoundContext) else "-"
        table.add_row(round_id, "", "", "", f"[red]{result.error_message}[/]")
    console.print(table)


def render_description(
    oracle: OracleDescriptor,
    result: QueryResult,
    chain_name: str,
    console: Console | None = None,
) -> None:
    console = console or Console()
    pair = f"{oracle.token}/{oracle.base}"
    if result.ok:
        console.print(f"In {chain_name} {pair} description is: [cyan]{result.value}[/]")
    else:
        console.print(
            f"[red]No description for {pair} ({oracle.proxy_address}): "
            f"{result.error_message}[/]"
        )


def render_phases(traversal: PhaseTraversal, console: Console | None = None) -> None:
    console = console or Console()
    table = Table(
        title=f"Phases of {traversal.proxy_address} (current phase {traversal.current_phase})"
    )
    table.add_column("Phase", justify="right")
    table.add_column("Aggregator")
    table.add_column("Version", justify="right")
    table.add_column("Round ids")
    for record in traversal.records:
        encoding = "composite" if record.version > 2 else "[yellow]legacy[/]"
        table.add_row(
            str(record.phase_id), record.aggregator_address, str(record.version), encoding
        )
    console.print(table)
    for failure in traversal.failures:
        console.print(
            f"[yellow]Skipped {failure.context.describe()}: {failure.error_message}[/]"
        )


def render_history(
    series: HistoricalSeries, decimals: int, console: Console | None = None
) -> None:
    console = console or Console()
    history_range = series.range
    summary = Table(show_header=False, box=None, padding=(0, 1))
    summary.add_column("Key", style="dim")
    summary.add_column("Value", style="cyan")
    summary.add_row("Proxy", history_range.proxy_address)
    summary.add_row("Latest round", str(history_range.proxy_round.round_id))
    summary.add_row(
        "Anchor",
        f"phase {history_range.anchor.phase_id} "
        f"{_truncate_address(history_range.anchor.aggregator_address)} "
        f"(v{history_range.anchor.version}, round {history_range.anchor_round.round_id})",
    )
    summary.add_row("Offset", str(history_range.offset))
    summary.add_row(
        "Range", f"{history_range.round_ids[0]}..{history_range.round_ids[-1]}"
    )
    console.print(Panel(summary, title="[bold]History[/]", border_style="blue"))
    render_rounds(series.rounds, decimals, title="Rounds (via proxy)", console=console)
