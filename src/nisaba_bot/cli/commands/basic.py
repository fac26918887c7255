"""Basic CLI commands: start, init, check."""

from __future__ import annotations

import argparse
from pathlib import Path

import yaml
from rich.table import Table

from ...bot import NisabaBot
from ...core import ConfigurationError, IRCConfig
from ..base import BotConfig, console, load_config, logger
from ..parser import print_banner


def cmd_start(args: argparse.Namespace) -> int:
    """Handle start command.

    Args:
        args: Parsed arguments

    Returns:
        Exit code
    """
    config = load_config(args)
    if config is None:
        return 1

    print_banner(config, args.config)

    try:
        bot = NisabaBot(config)
        bot.start()
        return 0
    except KeyboardInterrupt:
        logger.info("Bot interrupted by user")
        return 0
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/] {e}")
        return 1
    except Exception as e:
        logger.error(f"Error running bot: {e}", exc_info=True)
        return 1


def default_config_document() -> dict:
    """Default configuration with placeholder connection settings."""
    config = BotConfig(irc=IRCConfig(server="irc.example.net", channel="#nisaba"))
    return config.model_dump(exclude_none=True)


def cmd_init(args: argparse.Namespace) -> int:
    """Handle init command.

    Args:
        args: Parsed arguments

    Returns:
        Exit code
    """
    output_path = Path(args.output)

    if output_path.exists() and not args.force:
        response = input(f"{output_path} already exists. Overwrite? (y/N): ")
        if response.lower() != "y":
            print("Cancelled.")
            return 0

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        yaml.safe_dump(
            default_config_document(),
            f,
            default_flow_style=False,
            allow_unicode=True,
            sort_keys=False,
        )

    print(f"✓ Configuration file created: {output_path}")
    print("\nNext steps:")
    print(f"1. Edit {output_path} and set irc.server and irc.channel")
    print("2. Point api.url at your completion endpoint")
    print(f"3. Start the bot: nisaba-bot start --config {output_path}")

    return 0


def cmd_check(args: argparse.Namespace) -> int:
    """Handle check command: validate a configuration and summarize it.

    Args:
        args: Parsed arguments

    Returns:
        Exit code
    """
    config = load_config(args)
    if config is None:
        return 1

    table = Table(title=f"Configuration: {args.config}", show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    table.add_row("irc.server", f"{config.irc.server}:{config.irc.port}")
    table.add_row("irc.channel", config.irc.channel)
    table.add_row("irc.nickname", config.irc.nickname)
    table.add_row("irc.use_ssl", str(config.irc.use_ssl))
    table.add_row("api.url", config.api.url)
    table.add_row("api.mode", config.api.mode)
    table.add_row("api.timeout", "none" if config.api.timeout is None else f"{config.api.timeout}s")
    table.add_row("api.parameter_keys", config.api.parameter_keys)
    table.add_row("chat.commands", str(config.chat.commands))
    table.add_row("chat.message_size", str(config.chat.message_size))
    table.add_row("chat.delay", f"{config.chat.delay}s")

    storage = config.storage
    for label, path in (
        ("transcript", storage.transcript_path),
        ("blocklist", storage.blocklist_path),
        ("system prompt", storage.system_prompt_path),
        ("reminder", storage.reminder_path),
        ("options", storage.options_path),
    ):
        state = "[green]present[/]" if path.exists() else "[dim]absent[/]"
        table.add_row(f"storage.{label}", f"{path} ({state})")

    console.print(table)
    console.print("[green]✓ Configuration is valid[/]")
    return 0
