"""CLI module for Nisaba Bot.

This module provides the command-line interface for the bot.
"""

from __future__ import annotations

from collections.abc import Sequence

from .commands import cmd_check, cmd_init, cmd_start, cmd_transcript
from .parser import build_parser, print_banner


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point.

    Args:
        argv: Optional sequence of CLI arguments (without the program name).

    Returns:
        Process exit code. 0 for success.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        raise SystemExit(0)

    handlers = {
        "start": cmd_start,
        "init": cmd_init,
        "check": cmd_check,
        "transcript": cmd_transcript,
    }

    handler = handlers.get(args.command)
    if handler is None:
        parser.print_help()
        return 1
    return handler(args)


__all__ = ["build_parser", "main", "print_banner"]
