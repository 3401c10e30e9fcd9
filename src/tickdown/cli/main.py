"""CLI entry point for tickdown.

Uses Click to expose the ``tickdown`` command group.  Countdowns run on an
asyncio event loop and are persisted to a JSON store so they can be picked
up again after Ctrl-C.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, Callable, TypeVar

import click

import tickdown
from tickdown.core.session import NoSavedCountdownError, Session, format_remaining
from tickdown.core.store import JsonFileStore, StoreError
from tickdown.core.ticks import AsyncioTickSource, ManualTickSource
from tickdown.core.timer import DEFAULT_INTERVAL_MS, CountdownTimer, InvalidDuration

T = TypeVar("T")

_HANDLED_ERRORS = (InvalidDuration, NoSavedCountdownError, StoreError)

Begin = Callable[[Session, Callable[[int], Any], Callable[[], Any]], str]


def _run(action: Callable[[], T]) -> T:
    """Execute *action*, converting known errors to a CLI error.

    The message is printed to stderr and the process exits with code 1.
    """
    try:
        return action()
    except _HANDLED_ERRORS as exc:
        click.echo(str(exc), err=True)
        sys.exit(1)


def _idle_session(store: JsonFileStore) -> Session:
    """A session for commands that only read or reset the store."""
    return Session(CountdownTimer(ManualTickSource()), store)


def _countdown(store: JsonFileStore, interval_ms: int, begin: Begin) -> None:
    """Run a countdown to completion on a fresh event loop.

    On Ctrl-C the main task is cancelled while the loop is still running;
    the countdown is paused there, before asyncio's shutdown gets a chance
    to deliver another tick.
    """

    async def main() -> None:
        loop = asyncio.get_running_loop()
        finished = loop.create_future()
        session = Session(CountdownTimer(AsyncioTickSource(loop), interval_ms), store)
        message = begin(
            session,
            lambda remaining: click.echo(format_remaining(remaining)),
            lambda: finished.done() or finished.set_result(None),
        )
        click.echo(message)
        try:
            await finished
        finally:
            session.pause()

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        click.echo(f"\nStopped: {_idle_session(store).status()[0]}")
        return
    click.echo("Time's up!")


interval_option = click.option(
    "--interval-ms",
    type=click.IntRange(min=1),
    default=DEFAULT_INTERVAL_MS,
    show_default=True,
    help="Milliseconds between ticks.",
)


@click.group()
@click.version_option(version=tickdown.__version__, prog_name="tickdown")
@click.option(
    "--config-dir",
    type=click.Path(file_okay=False, path_type=Path),
    envvar="TICKDOWN_CONFIG_DIR",
    default=None,
    help="Directory holding the saved countdown (default: ~/.config/tickdown).",
)
@click.option("-v", "--verbose", is_flag=True, help="Log state transitions to stderr.")
@click.pass_context
def cli(ctx: click.Context, config_dir: Path | None, verbose: bool) -> None:
    """tickdown: a pausable countdown timer for the terminal."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")
    ctx.obj = JsonFileStore(config_dir)


@cli.command()
@click.argument("seconds", type=int)
@interval_option
@click.pass_obj
def run(store: JsonFileStore, seconds: int, interval_ms: int) -> None:
    """Count down SECONDS seconds.  Ctrl-C pauses and saves progress."""
    _run(lambda: _countdown(store, interval_ms, lambda s, t, e: s.start(seconds, t, e)))


@cli.command()
@interval_option
@click.pass_obj
def resume(store: JsonFileStore, interval_ms: int) -> None:
    """Continue the saved countdown."""
    _run(lambda: _countdown(store, interval_ms, lambda s, t, e: s.resume_saved(t, e)))


@cli.command()
@click.pass_obj
def status(store: JsonFileStore) -> None:
    """Show the saved countdown status."""
    message, exit_code = _run(lambda: _idle_session(store).status())
    click.echo(message)
    sys.exit(exit_code)


@cli.command()
@click.pass_obj
def clear(store: JsonFileStore) -> None:
    """Forget the saved countdown."""
    message = _run(lambda: _idle_session(store).stop())
    click.echo(message)
