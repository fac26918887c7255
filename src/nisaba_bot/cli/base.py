"""Base utilities and shared imports for CLI module."""

from __future__ import annotations

import argparse
from pathlib import Path

from rich.console import Console

from ..core import BotConfig, ConfigurationError, get_logger

logger = get_logger("cli")

console = Console()


def load_config(args: argparse.Namespace) -> BotConfig | None:
    """Load the configuration named by ``args.config``, reporting failures.

    Returns:
        The configuration, or None after printing why it could not be loaded
    """
    config_path = Path(args.config)
    if not config_path.exists():
        console.print(f"[red]Error:[/] Configuration file not found: {config_path}")
        console.print("Run 'nisaba-bot init' to create a default configuration.")
        return None

    try:
        config = BotConfig.from_file(config_path)
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/] {e}")
        return None

    if getattr(args, "debug", False):
        config.debug = True
    return config


__all__ = ["BotConfig", "Console", "Path", "console", "load_config", "logger"]
