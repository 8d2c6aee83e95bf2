#!/usr/bin/env python3
"""snitchctl, the administrative CLI of the reconciler."""

import logging
import pathlib
from typing import Any, Optional

import tabulate
import typer
from rich import print
from typing_extensions import Annotated

from snitchprot import config, core
from snitchprot.ctl import helpers
from snitchprot.errors import SnitchprotError
from snitchprot.helpers import setup_logging, unix_now
from snitchprot.services import store

logging.basicConfig()

app = typer.Typer(
    help="Little Snitch VPN profile reconciler.",
    no_args_is_help=True,
)


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Annotated[
        Optional[pathlib.Path],  # noqa: FA100
        typer.Option("--config", help="Configuration file to use."),
    ] = None,
) -> None:
    """Entrypoint for snitchctl commands."""
    ctx.obj = {"config": config_path}


@app.command()
def show(ctx: typer.Context) -> None:
    """Show the persisted reconciler record."""
    reconciler = helpers.get_reconciler(ctx)

    try:
        record = reconciler.read_record()
    except SnitchprotError as err:
        print(f"[red]Error:[/red] {err}")
        raise typer.Exit(code=1) from err

    output: list[dict[str, Any]] = [
        {
            "key": config.PREVIOUS_STATE_KEY,
            "value": record.previous_state or "-",
            "info": "",
        },
        {
            "key": config.LAST_REFRESH_TIME_KEY,
            "value": record.last_refresh_time
            if record.last_refresh_time is not None
            else "-",
            "info": helpers.format_age(record.last_refresh_time, unix_now()),
        },
    ]
    print(tabulate.tabulate(output, headers="keys"))


@app.command()
def probe(ctx: typer.Context) -> None:
    """Show the VPN connection state as observed right now."""
    reconciler = helpers.get_reconciler(ctx)
    try:
        state = reconciler.probe.probe()
    except SnitchprotError as err:
        print(f"[red]Error:[/red] {err}")
        raise typer.Exit(code=1) from err

    print(state.value)


@app.command()
def run(ctx: typer.Context) -> None:
    """Run a single reconciliation cycle."""
    settings = helpers.get_settings(ctx)
    setup_logging(settings)
    reconciler = core.Reconciler.from_settings(settings)
    try:
        result = reconciler.run_cycle()
    except SnitchprotError as err:
        print(f"[red]Error:[/red] {err}")
        raise typer.Exit(code=1) from err

    print(
        f"{result.decision.value}: '{result.previous_state}' -> "
        f"'{result.state.value}' at {result.timestamp}",
    )


@app.command()
def reset(
    ctx: typer.Context,
    yes: Annotated[bool, typer.Option("--yes", "-y")] = False,  # noqa: FBT002
) -> None:
    """Delete the persisted record, the next cycle applies the profile again."""
    if not yes:
        typer.confirm("Delete the persisted reconciler record?", abort=True)

    state_store = store.build_store(helpers.get_settings(ctx))
    try:
        state_store.delete(config.PREVIOUS_STATE_KEY)
        state_store.delete(config.LAST_REFRESH_TIME_KEY)
    except SnitchprotError as err:
        print(f"[red]Error:[/red] {err}")
        raise typer.Exit(code=1) from err

    print("Reconciler record deleted.")


if __name__ == "__main__":
    app()
