"""CLI for the outputbuddy / ob commands."""

from __future__ import annotations

import sys
from typing import List, Optional

import typer

from . import __version__
from .config import OutputBuddyConfig
from .errors import LaunchError, OutputBuddyError
from .log import setup_logging
from .routes import build_router, parse_routes
from .runner import ChildRunner, ControlChannel, install_signal_handlers, restore_signal_handlers

USAGE = f"""outputbuddy {__version__} - Flexible output redirection with color preservation

Usage: outputbuddy [options] -- command [args...]

Default behavior (no options):
  Redirects both stdout and stderr to buddy.log AND displays on terminal

Options:
  2=file.log or stderr=file.log          - redirect stderr to file
  1=file.log or stdout=file.log          - redirect stdout to file
  2+1=file.log or stderr+stdout=file.log - redirect both to same file
  2 or stderr                            - show stderr on terminal
  1 or stdout                            - show stdout on terminal
  2+1 or stderr+stdout                   - show both on terminal
  --no-pty                               - disable PTY mode
  --keep-ansi                            - keep ANSI codes in files
  --version, -v                          - show version

Examples:
  ob -- python script.py                 - logs to buddy.log + terminal (default)
  ob 2+1=output.log 2+1 -- python script.py
  ob 2=err.log 1=out.log -- make
  ob 2=err.log 2 -- ./program
"""

app = typer.Typer(
    help="Route a command's stdout/stderr to the terminal and to clean log files",
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _fail(message: str, show_usage: bool = True) -> None:
    typer.echo(f"Error: {message}", err=True)
    if show_usage:
        typer.echo(USAGE, err=True)
    raise typer.Exit(1)


@app.command()
def run(
    ctx: typer.Context,
    routes: Optional[List[str]] = typer.Argument(None, help="Routing arguments, e.g. 2+1=out.log 1"),
    no_pty: bool = typer.Option(False, "--no-pty", help="Use plain pipes instead of a pseudo-terminal"),
    keep_ansi: bool = typer.Option(False, "--keep-ansi", help="Keep ANSI codes in files"),
    version: bool = typer.Option(False, "--version", "-v", help="Show version and exit"),
):
    """
    Run a command, mirroring its output to the terminal and to log files.

    Everything after `--` is the command to run.

    Examples:
        ob -- python script.py
        ob 2=err.log 1=out.log -- make
    """
    if version:
        typer.echo(f"outputbuddy version {__version__}")
        raise typer.Exit(0)

    command: Optional[List[str]] = ctx.obj
    if command is None:
        _fail("no -- separator found")
    if not command:
        _fail("no command specified after --")

    overrides = {}
    if no_pty:
        overrides["use_pty"] = False
    if keep_ansi:
        overrides["strip_ansi"] = False
    try:
        config = OutputBuddyConfig().model_copy(update=overrides)
    except ValueError as exc:
        _fail(f"invalid configuration: {exc}")
    setup_logging(config.log_level)

    try:
        specs = parse_routes(routes or [], default_log_file=config.default_log_file)
        router = build_router(specs, sanitize=config.strip_ansi)
    except OutputBuddyError as exc:
        _fail(str(exc))

    controls = ControlChannel()
    previous = install_signal_handlers(controls)
    try:
        with router:
            runner = ChildRunner(command, router, controls=controls, chunk_size=config.read_chunk_size)
            use_pty = config.use_pty and sys.stdout.isatty()
            exit_code = runner.run(use_pty=use_pty)
    except LaunchError as exc:
        _fail(str(exc), show_usage=False)
    finally:
        restore_signal_handlers(previous)

    raise typer.Exit(exit_code)


def split_command(argv: List[str]):
    """Split argv at the first ``--`` into (routing args, command or None)."""
    if "--" not in argv:
        return argv, None
    idx = argv.index("--")
    return argv[:idx], argv[idx + 1:]


def main(argv: Optional[List[str]] = None) -> None:
    """Console-script entry point.

    The command after ``--`` is split off before typer sees the arguments,
    otherwise click would fold it into the routing arguments.
    """
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        typer.echo(USAGE, err=True)
        sys.exit(1)
    route_args, command = split_command(args)
    app(args=route_args, obj=command, prog_name="outputbuddy")


if __name__ == "__main__":
    main()
