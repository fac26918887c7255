"""CLI argument parser and banner display."""

from __future__ import annotations

import argparse

from rich.console import Console
from rich.panel import Panel

from .. import __version__
from ..core import BotConfig, find_config_file


def print_banner(config: BotConfig, config_path: str) -> None:
    """Print a startup banner with configuration info."""
    console = Console()

    info = f"""[bold]Nisaba Bot[/bold] [green]v{__version__}[/]
An IRC relay for language-model completions.

[dim]----------------------------------------------------[/]
[bold]Config:[/bold]   [yellow]{config_path}[/]
[bold]Server:[/bold]   [yellow]{config.irc.server}:{config.irc.port}[/] (tls: {config.irc.use_ssl})
[bold]Channel:[/bold]  [yellow]{config.irc.channel}[/] as [yellow]{config.irc.nickname}[/]
[bold]API:[/bold]      [yellow]{config.api.url}[/] ({config.api.mode})
[bold]Debug:[/bold]    [{"red" if config.debug else "green"}]{config.debug}[/]
"""

    panel = Panel(
        info,
        title="[bold white]Startup[/]",
        border_style="blue",
        expand=False,
    )

    console.print(panel)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser.

    Returns:
        ArgumentParser instance
    """
    default_config = str(find_config_file())

    parser = argparse.ArgumentParser(
        prog="nisaba-bot",
        description="Nisaba Bot - relay IRC questions to a language model",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Generate a default config
  nisaba-bot init -o config/config.yaml

  # Validate it
  nisaba-bot check -c config/config.yaml

  # Start the bot with debug logging
  nisaba-bot start -c config/config.yaml --debug

  # Archive the current transcript
  nisaba-bot transcript save
        """,
    )

    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s v{__version__}",
        help="Show program's version number and exit",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Start command
    start_parser = subparsers.add_parser("start", help="Start the bot")
    start_parser.add_argument(
        "-c",
        "--config",
        default=default_config,
        help=f"Path to configuration file (default: {default_config})",
    )
    start_parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    # Init command
    init_parser = subparsers.add_parser("init", help="Generate a default configuration file")
    init_parser.add_argument(
        "-o",
        "--output",
        default="config/config.yaml",
        help="Output file path (default: config/config.yaml)",
    )
    init_parser.add_argument(
        "--force", action="store_true", help="Overwrite an existing file without asking"
    )

    # Check command
    check_parser = subparsers.add_parser("check", help="Validate a configuration file")
    check_parser.add_argument(
        "-c",
        "--config",
        default=default_config,
        help=f"Path to configuration file (default: {default_config})",
    )

    # Transcript command
    transcript_parser = subparsers.add_parser("transcript", help="Inspect or archive the transcript")
    transcript_parser.add_argument(
        "transcript_command",
        choices=["show", "clear", "archives", "save", "load"],
        help="Transcript operation",
    )
    transcript_parser.add_argument(
        "index",
        nargs="?",
        default="auto",
        help="Archive index for save/load (default: auto)",
    )
    transcript_parser.add_argument(
        "-c",
        "--config",
        default=default_config,
        help=f"Path to configuration file (default: {default_config})",
    )

    return parser
