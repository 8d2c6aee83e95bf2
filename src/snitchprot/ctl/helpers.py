"""Shared functions used throughout the snitchctl CLI tool."""

from __future__ import annotations

from typing import TYPE_CHECKING

from snitchprot import config, core, helpers
from snitchprot.errors import SnitchprotError

if TYPE_CHECKING:
    import pathlib

    import typer


def get_settings(ctx: typer.Context) -> config.Settings:
    """Load the settings from the file given on the command line."""
    path: pathlib.Path | None = None
    if ctx.obj:
        path = ctx.obj.get("config")
    try:
        return helpers.load_settings(path)
    except SnitchprotError as err:
        ctx.fail(f"{err} ({err.__cause__})" if err.__cause__ else str(err))


def get_reconciler(ctx: typer.Context) -> core.Reconciler:
    """Create a reconciler from the command line settings."""
    return core.Reconciler.from_settings(get_settings(ctx))


def format_age(timestamp: int | None, now: int) -> str:
    """Format the age of a unix timestamp."""
    if timestamp is None:
        return "never"
    age = now - timestamp
    if age < 0:
        return f"{-age}s in the future"
    return f"{age}s ago"
