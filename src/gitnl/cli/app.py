# Copyright (c) gitnl contributors.
# Licensed under the MIT License.

"""Typer application definition for the gitnl CLI.

This module defines the main Typer app, global options and the argument
routing that makes ``gt <request>`` a shortcut for ``gt interactive``.
"""

from __future__ import annotations

import contextvars
import logging
import sys
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from gitnl import __version__

# gt command tree
app = typer.Typer(
    name="gt",
    help="gitnl - Run interactive git workflows from natural-language requests.",
    add_completion=False,
    no_args_is_help=True,
)

# errors go to stderr, command output to stdout
console = Console(stderr=True)
output_console = Console()

# Context variable for verbose mode (--verbose flag - show progress details)
verbose_mode: contextvars.ContextVar[bool] = contextvars.ContextVar(
    "verbose_mode", default=False
)

# Context variable for full verbose mode (untruncated sections)
full_mode: contextvars.ContextVar[bool] = contextvars.ContextVar(
    "full_mode", default=False
)

COMMANDS = frozenset(
    {"interactive", "workflow-help", "whelp", "message", "config", "scan", "examples"}
)
GLOBAL_OPTIONS = frozenset({"--verbose", "-V"})
INTERACTIVE_FLAGS = frozenset({"-i", "--interactive"})
MESSAGE_FLAGS = frozenset({"-m", "--generate-message"})


def is_verbose() -> bool:
    """Check if verbose mode is enabled (--verbose flag)."""
    return verbose_mode.get()


def is_full() -> bool:
    """Check if full verbose mode is enabled.

    When full mode is enabled, logged sections such as diffs and model
    prompts are shown untruncated.
    """
    return full_mode.get()


def format_error(error: Exception) -> Panel:
    """Render an exception as a red panel titled with its type.

    gitnl errors also show the config field or the refused command they
    carry, and their suggestion. Other exceptions show only the first line
    of their message.
    """
    from gitnl.exceptions import GitNLError

    content = Text()

    if isinstance(error, GitNLError):
        content.append(error.message, style="bold red")

        if getattr(error, "field_path", None):
            content.append("\n")
            content.append("📋 Field: ", style="yellow")
            content.append(error.field_path, style="cyan")

        if getattr(error, "command", None):
            content.append("\n")
            content.append("⌨ Command: ", style="yellow")
            content.append(error.command, style="cyan")

        if error.suggestion:
            content.append("\n\n")
            content.append("💡 Suggestion: ", style="green")
            content.append(error.suggestion, style="white")
        error_type = error.error_type
    else:
        content.append(str(error).split("\n")[0], style="bold red")
        error_type = type(error).__name__

    return Panel(
        content,
        title=f"[bold red]❌ {error_type}[/bold red]",
        border_style="red",
        padding=(1, 2),
    )


def print_error(error: Exception) -> None:
    """Print ``format_error(error)`` to stderr."""
    console.print(format_error(error))


def version_callback(value: bool) -> None:
    """Print the version and stop."""
    if value:
        output_console.print(f"gitnl v{__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            help="Print the version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-V",
            help="Show plan reasoning, timings, debug logs and untruncated output.",
        ),
    ] = False,
) -> None:
    """gitnl - Run interactive git workflows from natural-language requests."""
    verbose_mode.set(verbose)
    full_mode.set(verbose)
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        help="Path to the config file (default: $GITNL_CONFIG or ~/.gitnl/config.yaml).",
    ),
]


@app.command()
def interactive(
    text: Annotated[
        list[str],
        typer.Argument(help="What you want to do, in plain words."),
    ],
    yes: Annotated[
        bool,
        typer.Option(
            "--yes",
            "-y",
            help="Answer every prompt with its default (high-risk commands are refused).",
        ),
    ] = False,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            help="Show the resolved plan without running it.",
        ),
    ] = False,
    config: ConfigOption = None,
) -> None:
    """Plan and run a git workflow for a request.

    Each step asks whether to continue, skip it or exit; risky commands are
    classified and confirmed before they run.

    \b
    Examples:
        gt commit my changes
        gt 提交并推送
        gt interactive merge feature into main
        gt interactive --dry-run show code stats
    """
    import asyncio

    from gitnl.cli.run import run_interactive_async

    request = " ".join(text)
    try:
        code = asyncio.run(
            run_interactive_async(
                request,
                config_path=config,
                assume_yes=yes,
                dry_run=dry_run,
                console=output_console,
            )
        )
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        raise typer.Exit(code=1) from None
    except Exception as e:
        print_error(e)
        raise typer.Exit(code=1) from None

    if code:
        raise typer.Exit(code=code)


@app.command("workflow-help")
def workflow_help() -> None:
    """Show the available steps, the per-step decisions and examples."""
    from gitnl.cli.run import display_workflow_help

    display_workflow_help(output_console)


@app.command("whelp", hidden=True)
def whelp() -> None:
    """Alias for workflow-help."""
    workflow_help()


@app.command()
def message(
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Commit with the suggested message without asking."),
    ] = False,
    config: ConfigOption = None,
) -> None:
    """Suggest a commit message for the current changes."""
    import asyncio

    from gitnl.cli.run import generate_message_async

    try:
        code = asyncio.run(
            generate_message_async(config_path=config, assume_yes=yes, console=output_console)
        )
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        raise typer.Exit(code=1) from None
    except Exception as e:
        print_error(e)
        raise typer.Exit(code=1) from None

    if code:
        raise typer.Exit(code=code)


@app.command("config")
def config_command(
    key: Annotated[
        str | None,
        typer.Option("--key", help="Anthropic API key."),
    ] = None,
    model: Annotated[
        str | None,
        typer.Option("--model", help="Model used for planning, risk and commit messages."),
    ] = None,
    base_url: Annotated[
        str | None,
        typer.Option("--base-url", help="Custom API base URL."),
    ] = None,
    show: Annotated[
        bool,
        typer.Option("--show", help="Show the current configuration."),
    ] = False,
    config: ConfigOption = None,
) -> None:
    """View or update the model configuration."""
    from gitnl.config import default_config_path, load_config, mask_secret, update_config

    path = config or default_config_path()
    try:
        if key is None and model is None and base_url is None:
            settings = load_config(path)
        else:
            settings = update_config(path, api_key=key, model=model, base_url=base_url)
            output_console.print(f"[green]Configuration saved to {path}[/green]")
    except Exception as e:
        print_error(e)
        raise typer.Exit(code=1) from None

    if show or (key is None and model is None and base_url is None):
        table = Table(title="Current Configuration")
        table.add_column("Setting", style="cyan")
        table.add_column("Value")
        table.add_row("Config file", str(path))
        table.add_row("API key", mask_secret(settings.model.api_key))
        table.add_row("Model", settings.model.model)
        table.add_row("Base URL", settings.model.base_url or "default")
        table.add_row("Assume yes", str(settings.workflow.assume_yes))
        table.add_row("Default remote", settings.workflow.default_remote)
        output_console.print(table)


@app.command()
def scan(
    security: Annotated[
        bool,
        typer.Option("--security", "-s", help="Only look for security risks."),
    ] = False,
    quality: Annotated[
        bool,
        typer.Option("--quality", "-q", help="Only look for code quality issues."),
    ] = False,
    path: Annotated[
        Path,
        typer.Option("--path", "-p", help="File or directory to scan."),
    ] = Path("."),
) -> None:
    """Scan source files for security risks, quality issues and missing headers.

    \b
    Examples:
        gt scan
        gt scan -s -p src
    """
    from gitnl.cli.run import run_scan

    try:
        run_scan(path, security=security, quality=quality, console=output_console)
    except Exception as e:
        print_error(e)
        raise typer.Exit(code=1) from None


@app.command()
def examples() -> None:
    """Show example requests."""
    from gitnl.cli.run import display_examples

    display_examples(output_console)


def route_args(argv: list[str]) -> list[str]:
    """Route bare requests to the ``interactive`` command.

    ``gt commit my work`` becomes ``gt interactive commit my work``,
    ``gt -i commit`` becomes ``gt interactive commit`` and ``gt -m`` becomes
    ``gt message``. Global options in front of the request are kept in
    place.

    Example:
        >>> route_args(["-V", "提交"])
        ['-V', 'interactive', '提交']
        >>> route_args(["config", "--show"])
        ['config', '--show']
    """
    args = list(argv)
    position = 0
    while position < len(args) and args[position] in GLOBAL_OPTIONS:
        position += 1
    if position >= len(args):
        return args

    first = args[position]
    if first in INTERACTIVE_FLAGS:
        args[position] = "interactive"
    elif first in MESSAGE_FLAGS:
        args[position] = "message"
    elif first not in COMMANDS and not first.startswith("-"):
        args.insert(position, "interactive")
    return args


def main() -> None:
    """Console script entry point."""
    app(args=route_args(sys.argv[1:]), prog_name="gt")
