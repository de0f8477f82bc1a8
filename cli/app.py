from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional

import typer

from cli.client import ApiClient, AsyncApiClient
from cli.config import CLIConfig, load_config
from cli.poller import DashboardPoller
from cli.render import TerminalRenderer, render_history, render_latest, render_status
from logging_config import configure_logging


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for reading skateway ice-safety conditions from the monitoring API.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        typer.secho("CLI state is uninitialized.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Monitoring API base URL (defaults to API_BASE_URL env or http://localhost:3000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each HTTP request.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, request_timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("latest")
def latest_command(ctx: typer.Context) -> None:
    """Show the latest aggregate window for every location."""
    state = _get_state(ctx)
    render_latest(state.client.get_latest())


@app.command("history")
def history_command(
    ctx: typer.Context,
    location: str = typer.Argument(..., help="Location name, e.g. \"Dow's Lake\"."),
    limit: Optional[int] = typer.Option(
        None,
        "--limit",
        "-n",
        min=1,
        help="Number of windows to fetch (server default 12).",
    ),
) -> None:
    """Show recent windows for one location, oldest first."""
    state = _get_state(ctx)
    render_history(state.client.get_history(location, limit))


@app.command("status")
def status_command(ctx: typer.Context) -> None:
    """Show the overall safety status across locations."""
    state = _get_state(ctx)
    render_status(state.client.get_status())


async def _watch(config: CLIConfig, location: str, interval: float, ticks: Optional[int]) -> None:
    client = AsyncApiClient(config)
    poller = DashboardPoller(client, TerminalRenderer(), location, interval=interval)
    try:
        await poller.start(max_ticks=ticks)
        await poller.wait()
    finally:
        await poller.stop()
        await client.aclose()


@app.command("watch")
def watch_command(
    ctx: typer.Context,
    location: Optional[str] = typer.Option(
        None,
        "--location",
        "-l",
        help="Location to chart (defaults to CLI_DEFAULT_LOCATION or Dow's Lake).",
    ),
    interval: Optional[float] = typer.Option(
        None,
        "--interval",
        help="Seconds between refreshes (defaults to CLI_REFRESH_INTERVAL or 30).",
    ),
    ticks: Optional[int] = typer.Option(
        None,
        "--ticks",
        min=0,
        help="Stop after this many refreshes instead of running until interrupted.",
    ),
) -> None:
    """Keep refreshing cards, status and history like the dashboard does."""
    state = _get_state(ctx)
    configure_logging("WARNING", console=True)
    selected = location or state.config.default_location
    refresh_interval = interval if interval is not None else state.config.refresh_interval
    typer.echo(f"Watching {state.config.base_url} every {refresh_interval}s (Ctrl-C to stop) ...")
    try:
        asyncio.run(_watch(state.config, selected, refresh_interval, ticks))
    except KeyboardInterrupt:
        typer.echo("Stopped.")
