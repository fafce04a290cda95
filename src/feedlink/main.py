"""CLI entrypoint for feedlink."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Annotated, AsyncIterator, Awaitable, Callable

import typer
from pydantic import ValidationError

from .chains import ChainInfo
from .errors import (
    CallReverted,
    ConfigError,
    DecodeError,
    HistoryUnavailableError,
    TransportError,
)
from .feeds import FeedReader
from .formatter import (
    render_description,
    render_descriptor,
    render_history,
    render_latest_answers,
    render_phases,
    render_rounds,
)
from .history import fetch_history
from .logger import setup_logging
from .phases import traverse_phases
from .registry import OracleDescriptor, OracleRegistry
from .settings import FeedSettings
from .state import AppState

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    add_help_option=True,
    pretty_exceptions_enable=True,
    pretty_exceptions_short=True,
    pretty_exceptions_show_locals=False,
    rich_markup_mode="rich",
    help="Query price feed oracles, batched through Multicall3.",
)

ChainOption = Annotated[
    str, typer.Option("--chain", "-c", help="Chain name, alias or id (e.g. mainnet, 137).")
]
TokenOption = Annotated[str, typer.Option("--token", "-t", help="Token symbol, e.g. ETH.")]
BaseOption = Annotated[str, typer.Option("--base", "-b", help="Base symbol, e.g. USD.")]


def _build_logger() -> logging.Logger:
    """Build a logger instance."""
    return logging.getLogger("feedlink")


def _split(value: str) -> list[str]:
    """Split a comma-delimited option value, dropping empty items."""
    return [item.strip() for item in value.split(",") if item.strip()]


def _parse_round_ids(value: str) -> list[int]:
    items = _split(value)
    if not items:
        raise typer.BadParameter("at least one round id is required", param_hint="--round-id")
    try:
        round_ids = [int(item, 0) for item in items]
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--round-id") from e
    if any(round_id <= 0 for round_id in round_ids):
        raise typer.BadParameter("round ids must be positive", param_hint="--round-id")
    return round_ids


def _run(state: AppState, command: Callable[[], Awaitable[None]]) -> None:
    """Run an async command, mapping feed errors to exit codes."""
    try:
        asyncio.run(command())
    except ConfigError as e:
        state.logger.error("%s", e)
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(code=2) from e
    except (TransportError, CallReverted, DecodeError, HistoryUnavailableError) as e:
        state.logger.error("%s", e)
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e


@asynccontextmanager
async def _open_reader(state: AppState, chain: ChainInfo) -> AsyncIterator[FeedReader]:
    transport = state.transport(chain)
    try:
        yield FeedReader(transport, multicall_address=state.settings.multicall_address)
    finally:
        await transport.close()


async def _load_registry(state: AppState, chain: ChainInfo) -> OracleRegistry:
    return await asyncio.to_thread(state.registry, chain)


def _lookup(
    registry: OracleRegistry, chain: ChainInfo, token: str, base: str
) -> OracleDescriptor | None:
    oracle = registry.lookup(token, base)
    if oracle is None:
        typer.echo(f"No oracle found for {token.upper()}/{base.upper()} in {chain.name}")
    return oracle


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config_path: Annotated[
        Path | None,
        typer.Option(
            "--config",
            help="Path to a TOML config file (can include [feedlink] table).",
        ),
    ] = None,
    rpc_url: Annotated[
        str | None,
        typer.Option("--rpc-url", help="RPC endpoint; overrides the chain default."),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            help="Override logging verbosity (TRACE, DEBUG, INFO, WARNING, ERROR, CRITICAL).",
        ),
    ] = None,
    show_config: Annotated[
        bool,
        typer.Option(
            "--show-config",
            help="Print effective config (with secrets redacted) and exit.",
        ),
    ] = False,
):
    """Load configuration and logging shared by every command."""
    if config_path:
        os.environ["FEEDLINK_CONFIG"] = str(config_path)

    init_kwargs: dict[str, str] = {}
    if rpc_url is not None:
        init_kwargs["rpc_url"] = rpc_url
    if log_level is not None:
        init_kwargs["log_level"] = log_level.upper()

    try:
        settings = FeedSettings(**init_kwargs)
    except (ValidationError, ValueError) as e:
        raise typer.BadParameter(str(e)) from e

    setup_logging(settings.log_level)
    ctx.obj = AppState(settings=settings, logger=_build_logger())

    if show_config:
        typer.echo(json.dumps(settings.as_safe_dict(), indent=2))
        raise typer.Exit(code=0)

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(code=0)


@app.command("oracle")
def oracle_command(
    ctx: typer.Context, chain: ChainOption, token: TokenOption, base: BaseOption
):
    """Show the registry entry for a token/base pair."""
    state: AppState = ctx.obj

    async def command() -> None:
        chain_info = state.chain(chain)
        registry = await _load_registry(state, chain_info)
        oracle = _lookup(registry, chain_info, token, base)
        if oracle is not None:
            render_descriptor(oracle, chain_info.name)

    _run(state, command)


@app.command("latest-answer")
def latest_answer_command(
    ctx: typer.Context,
    chain: ChainOption,
    token: Annotated[
        str, typer.Option("--token", "-t", help="Comma-delimited token symbols.")
    ],
    base: Annotated[
        str,
        typer.Option(
            "--base", "-b", help="Comma-delimited base symbols; a single base applies to all tokens."
        ),
    ],
):
    """Latest answer for one or more pairs (batched when more than one)."""
    state: AppState = ctx.obj
    tokens = _split(token)
    bases = _split(base)
    if not tokens or len(bases) not in (1, len(tokens)):
        raise typer.BadParameter(
            f"got {len(tokens)} token(s) and {len(bases)} base(s); "
            "give one base or one base per token"
        )
    if len(bases) == 1:
        bases = bases * len(tokens)

    async def command() -> None:
        chain_info = state.chain(chain)
        registry = await _load_registry(state, chain_info)
        oracles = [
            oracle
            for oracle in (
                _lookup(registry, chain_info, t, b) for t, b in zip(tokens, bases)
            )
            if oracle is not None
        ]
        if not oracles:
            return
        async with _open_reader(state, chain_info) as reader:
            results = await reader.latest_answers(oracles)
        render_latest_answers(oracles, results, chain_info.name)

    _run(state, command)


@app.command("latest-round-data")
def latest_round_data_command(
    ctx: typer.Context, chain: ChainOption, token: TokenOption, base: BaseOption
):
    """Latest round data of a pair."""
    state: AppState = ctx.obj

    async def command() -> None:
        chain_info = state.chain(chain)
        registry = await _load_registry(state, chain_info)
        oracle = _lookup(registry, chain_info, token, base)
        if oracle is None:
            return
        async with _open_reader(state, chain_info) as reader:
            result = await reader.latest_round_data(oracle)
        render_rounds(
            [result],
            oracle.decimals,
            title=f"Latest round of {oracle.token}/{oracle.base} on {chain_info.name}",
        )

    _run(state, command)


@app.command("round-data")
def round_data_command(
    ctx: typer.Context,
    chain: ChainOption,
    token: TokenOption,
    base: BaseOption,
    round_id: Annotated[
        str,
        typer.Option("--round-id", "-r", help="Comma-delimited composite round ids."),
    ],
):
    """Round data for specific round ids, read through the proxy."""
    state: AppState = ctx.obj
    round_ids = _parse_round_ids(round_id)

    async def command() -> None:
        chain_info = state.chain(chain)
        registry = await _load_registry(state, chain_info)
        oracle = _lookup(registry, chain_info, token, base)
        if oracle is None:
            return
        async with _open_reader(state, chain_info) as reader:
            results = await reader.round_data(oracle.proxy_address, round_ids)
        render_rounds(
            results,
            oracle.decimals,
            title=f"Rounds of {oracle.token}/{oracle.base} on {chain_info.name}",
        )

    _run(state, command)


@app.command("description")
def description_command(
    ctx: typer.Context, chain: ChainOption, token: TokenOption, base: BaseOption
):
    """On-chain description of a pair's feed."""
    state: AppState = ctx.obj

    async def command() -> None:
        chain_info = state.chain(chain)
        registry = await _load_registry(state, chain_info)
        oracle = _lookup(registry, chain_info, token, base)
        if oracle is None:
            return
        async with _open_reader(state, chain_info) as reader:
            result = await reader.description(oracle)
        render_description(oracle, result, chain_info.name)

    _run(state, command)


@app.command("phases")
def phases_command(
    ctx: typer.Context, chain: ChainOption, token: TokenOption, base: BaseOption
):
    """Aggregators behind a pair's proxy, with their versions."""
    state: AppState = ctx.obj

    async def command() -> None:
        chain_info = state.chain(chain)
        registry = await _load_registry(state, chain_info)
        oracle = _lookup(registry, chain_info, token, base)
        if oracle is None:
            return
        async with _open_reader(state, chain_info) as reader:
            traversal = await traverse_phases(reader, oracle.proxy_address)
        render_phases(traversal)

    _run(state, command)


@app.command("history")
def history_command(
    ctx: typer.Context,
    chain: ChainOption,
    token: TokenOption,
    base: BaseOption,
    depth: Annotated[
        int | None,
        typer.Option("--depth", "-d", min=1, help="Number of most recent rounds to read."),
    ] = None,
):
    """Most recent rounds of a pair, anchored across phases."""
    state: AppState = ctx.obj
    history_depth = depth or state.settings.history_depth

    async def command() -> None:
        chain_info = state.chain(chain)
        registry = await _load_registry(state, chain_info)
        oracle = _lookup(registry, chain_info, token, base)
        if oracle is None:
            return
        async with _open_reader(state, chain_info) as reader:
            series = await fetch_history(reader, oracle.proxy_address, history_depth)
        render_phases(series.traversal)
        render_history(series, oracle.decimals)

    _run(state, command)


def run() -> None:
    """Entrypoint used by the console script."""
    app()


if __name__ == "__main__":
    run()
