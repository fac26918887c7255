"""Transcript inspection and archive commands."""

from __future__ import annotations

import argparse

from rich.table import Table

from ...chat.commands import parse_archive_index
from ...chat.session import build_transcript_store
from ...core import ConfigurationError, TranscriptError
from ..base import console, load_config


def cmd_transcript(args: argparse.Namespace) -> int:
    """Handle transcript subcommands.

    Args:
        args: Parsed arguments

    Returns:
        Exit code
    """
    config = load_config(args)
    if config is None:
        return 1

    try:
        store = build_transcript_store(config)
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/] {e}")
        return 1
    command = args.transcript_command

    try:
        if command == "show":
            if not store.exists:
                console.print(f"No transcript at {store.path}")
                return 0
            entries = store.load()
            table = Table(title=str(store.path), show_header=True, show_lines=True)
            table.add_column("#", justify="right", style="dim")
            table.add_column("Role", style="cyan")
            table.add_column("Content")
            for position, entry in enumerate(entries, start=1):
                table.add_row(str(position), entry.role.value, entry.content)
            console.print(table)
            console.print(f"{len(entries)} entries")

        elif command == "clear":
            if store.clear():
                console.print(f"[green]✓ Cleared {store.path}[/]")
            else:
                console.print(f"[yellow]No transcript at {store.path}[/]")

        elif command == "archives":
            indexes = store.archive_indexes()
            if not indexes:
                console.print("No archives.")
            for index in indexes:
                console.print(f"  {index}: {store.archive_path(index)}")

        elif command == "save":
            index = store.archive(parse_archive_index(args.index))
            console.print(f"[green]✓ Transcript saved as archive {index}[/]")

        elif command == "load":
            index = store.restore(parse_archive_index(args.index))
            console.print(f"[green]✓ Transcript restored from archive {index}[/]")

        else:
            console.print(f"[red]Unknown transcript command:[/] {command}")
            return 1

    except TranscriptError as e:
        console.print(f"[red]Error:[/] {e}")
        return 1

    return 0
