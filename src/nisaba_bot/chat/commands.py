"""Addressed-message parsing and ``!directive`` handling.

This module provides:
- match_address: recognise messages addressed to the bot by nickname
- parse_request: split the addressed remainder into a directive or a query
- CommandResult: outcome of a directive
- DirectiveHandler: the closed set of built-in directives
"""

from __future__ import annotations

import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from ..ai.transcript import AUTO_INDEX, MAX_ARCHIVE_INDEX, MIN_ARCHIVE_INDEX, TranscriptEntry
from ..core.exceptions import (
    ArchiveError,
    ParameterProfileError,
    ProfileError,
    TranscriptError,
)
from ..core.logger import get_logger

if TYPE_CHECKING:
    from .session import ChatSession

logger = get_logger("chat.commands")

DIRECTIVE_SIGIL = "!"

DIRECTIVES: dict[str, str] = {
    "clear": "Clear the conversation transcript",
    "system": "Add a system prompt to the transcript (usage: !system <text>)",
    "options": "Load generation options from options.<name>.json (usage: !options <name>)",
    "profile": "Switch to configuration profile <name> (usage: !profile <name>)",
    "save": "Save the transcript as an archive (usage: !save [index|auto])",
    "load": "Restore the transcript from an archive (usage: !load [index|auto])",
}

DISABLED_RESPONSE = "Commands are currently disabled."


@dataclass
class Request:
    """An addressed message after parsing.

    Attributes:
        kind: ``directive``, ``query`` or ``disabled`` (a ``!`` token while
            directives are turned off)
        name: Directive name without the sigil (empty for queries)
        argument: Directive argument, or the full query text
    """

    kind: Literal["directive", "query", "disabled"]
    name: str = ""
    argument: str = ""


def match_address(text: str, nickname: str) -> str | None:
    """Return the text after the bot's nickname, or None if not addressed.

    The nickname matches case-insensitively at the start of the message and
    may be followed by ``:`` or ``,``; it must end at a word boundary, so
    ``NisabaFan`` does not address ``Nisaba``.

    Example:
        ```python
        match_address("Bot: !clear", "bot")        # "!clear"
        match_address("bot, hello there", "bot")   # "hello there"
        match_address("robot, hi", "bot")          # None
        ```
    """
    pattern = re.compile(
        rf"^{re.escape(nickname)}(?:[:,]|(?=\s)|$)\s*(.*)$",
        re.IGNORECASE | re.DOTALL,
    )
    match = pattern.match(text.strip())
    if match is None:
        return None
    return match.group(1).strip()


def parse_request(remainder: str, commands_enabled: bool = True) -> Request:
    """Split an addressed remainder into a directive or a free-text query.

    Only known directive names are directives; any other ``!word`` is query
    text. While directives are disabled, every ``!``-prefixed first token is
    reported as ``disabled`` instead.
    """
    parts = remainder.split()
    if not parts:
        return Request(kind="query", argument="")

    first = parts[0]
    if first.startswith(DIRECTIVE_SIGIL):
        if not commands_enabled:
            return Request(kind="disabled", name=first[1:].lower())
        name = first[1:].lower()
        if name in DIRECTIVES:
            return Request(kind="directive", name=name, argument=" ".join(parts[1:]))

    return Request(kind="query", argument=remainder.strip())


def parse_archive_index(argument: str) -> int:
    """Parse a ``!save``/``!load`` argument; empty, ``auto`` and ``0`` mean automatic.

    Raises:
        ArchiveError: If the argument is not a number in range
    """
    value = argument.strip().lower()
    if value in ("", "auto"):
        return AUTO_INDEX
    try:
        index = int(value)
    except ValueError:
        raise ArchiveError(
            f"Archive index must be a number between {MIN_ARCHIVE_INDEX} and "
            f"{MAX_ARCHIVE_INDEX}, or 'auto'."
        ) from None
    if index != AUTO_INDEX and not MIN_ARCHIVE_INDEX <= index <= MAX_ARCHIVE_INDEX:
        raise ArchiveError(
            f"Archive index must be between {MIN_ARCHIVE_INDEX} and {MAX_ARCHIVE_INDEX}.",
            index=index,
        )
    return index


@dataclass
class CommandResult:
    """Result of directive execution.

    Attributes:
        success: Whether the directive executed successfully
        response: Response text for the requesting user
    """

    success: bool
    response: str


DirectiveFunc = Callable[[str], Awaitable[CommandResult]]


class DirectiveHandler:
    """Execute the built-in directives against a chat session.

    Directive faults (bad index, unknown profile, unreadable files) are
    answered inline; they never propagate to the caller.

    Example:
        ```python
        handler = DirectiveHandler(session)
        result = await handler.execute("save", "auto")
        print(result.response)   # "Transcript saved as archive 1."
        ```
    """

    def __init__(self, session: ChatSession) -> None:
        self.session = session
        self._handlers: dict[str, DirectiveFunc] = {
            "clear": self._handle_clear,
            "system": self._handle_system,
            "options": self._handle_options,
            "profile": self._handle_profile,
            "save": self._handle_save,
            "load": self._handle_load,
        }

    @property
    def names(self) -> list[str]:
        return list(self._handlers)

    async def execute(self, name: str, argument: str) -> CommandResult:
        """Run a directive by name."""
        handler = self._handlers.get(name)
        if handler is None:
            logger.debug("Unknown directive: %s", name)
            return CommandResult(False, f"Unknown command: !{name}")

        try:
            result = await handler(argument)
        except Exception as e:
            logger.error("Error executing directive !%s: %s", name, e, exc_info=True)
            return CommandResult(False, f"Error executing !{name}.")

        logger.debug("Directive executed: !%s (success=%s)", name, result.success)
        return result

    async def _handle_clear(self, argument: str) -> CommandResult:
        try:
            cleared = self.session.transcript.clear()
        except TranscriptError as e:
            logger.error("Failed to clear transcript: %s", e)
            cleared = False
        if not cleared:
            return CommandResult(False, "I can't clear my recent memory. It may already be empty.")
        return CommandResult(True, "My recent memory has been cleared.")

    async def _handle_system(self, argument: str) -> CommandResult:
        if not argument:
            return CommandResult(False, "Usage: !system <prompt>")
        try:
            self.session.transcript.append(TranscriptEntry.system(argument))
        except TranscriptError as e:
            logger.error("Failed to add system prompt: %s", e)
            return CommandResult(False, "I couldn't write that to my memory.")
        return CommandResult(True, "System prompt added.")

    async def _handle_options(self, argument: str) -> CommandResult:
        if not argument:
            return CommandResult(False, "Usage: !options <name>")
        file_name = self.session.config.storage.options_pattern.format(name=argument)
        try:
            self.session.load_parameters(argument)
        except ParameterProfileError as e:
            logger.warning("Failed to load options %s: %s", argument, e)
            return CommandResult(False, f"Failed to load options from '{file_name}'.")
        return CommandResult(True, f"Options loaded successfully from '{file_name}'.")

    async def _handle_profile(self, argument: str) -> CommandResult:
        if not argument:
            return CommandResult(False, "Usage: !profile <name>")
        try:
            await self.session.switch_profile(argument)
        except ProfileError as e:
            logger.warning("Failed to switch profile %s: %s", argument, e)
            return CommandResult(False, f"Failed to switch to profile '{argument}'.")
        return CommandResult(True, f"Switched to profile '{argument}'.")

    async def _handle_save(self, argument: str) -> CommandResult:
        try:
            index = self.session.transcript.archive(parse_archive_index(argument))
        except TranscriptError as e:
            return CommandResult(False, str(e) if isinstance(e, ArchiveError) else "Save failed.")
        return CommandResult(True, f"Transcript saved as archive {index}.")

    async def _handle_load(self, argument: str) -> CommandResult:
        try:
            index = self.session.transcript.restore(parse_archive_index(argument))
        except TranscriptError as e:
            return CommandResult(False, str(e) if isinstance(e, ArchiveError) else "Load failed.")
        return CommandResult(True, f"Transcript restored from archive {index}.")
