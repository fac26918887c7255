"""CLI command handlers package."""

from .basic import cmd_check, cmd_init, cmd_start
from .transcript import cmd_transcript

__all__ = [
    "cmd_check",
    "cmd_init",
    "cmd_start",
    "cmd_transcript",
]
