"""Per-connection chat session state.

Everything a handler may read or mutate lives on one ``ChatSession``:
settings, transcript handle, active parameters, block list and the
availability gate. There are no module-level singletons.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

from ..ai.client import CompletionClient
from ..ai.parameters import ParameterSet
from ..ai.transcript import TranscriptStore
from ..core.config import BotConfig
from ..core.exceptions import ConfigurationError, ParameterProfileError, ProfileError
from ..core.logger import get_logger
from .gate import AvailabilityGate

logger = get_logger("chat.session")

_PROFILE_NAME = re.compile(r"^[A-Za-z0-9_-]+$")


def is_valid_profile_name(name: str) -> bool:
    """Profile names are single path components of letters, digits, ``_`` and ``-``."""
    return bool(_PROFILE_NAME.match(name))


def read_optional_text(path: Path) -> str | None:
    """Read a text file that may be absent.

    Returns:
        File content with trailing whitespace removed, or None if missing or blank

    Raises:
        ConfigurationError: If the file exists but cannot be read
    """
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as exc:
        raise ConfigurationError(f"Cannot read {path}: {exc}", config_key=str(path)) from exc
    return content.rstrip() or None


def load_blocklist(path: Path) -> frozenset[str]:
    """Load newline-delimited blocked sender names; a missing file blocks nobody."""
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except FileNotFoundError:
        return frozenset()
    except OSError as exc:
        logger.error("Error reading block list %s: %s", path, exc)
        return frozenset()
    names = frozenset(line.strip() for line in lines if line.strip())
    if names:
        logger.info("Loaded %d blocked senders from %s", len(names), path)
    return names


def build_transcript_store(config: BotConfig) -> TranscriptStore:
    """Transcript store for ``config``, seeded with its system prompt."""
    seed = config.chat.system_prompt or read_optional_text(config.storage.system_prompt_path)
    return TranscriptStore(config.storage.transcript_path, seed_prompt=seed)


def _build_client(config: BotConfig) -> CompletionClient:
    reminder = config.chat.reminder or read_optional_text(config.storage.reminder_path)
    return CompletionClient.from_config(config.api, reminder=reminder)


def _load_default_parameters(config: BotConfig) -> ParameterSet:
    path = config.storage.options_path
    try:
        parameters = ParameterSet.from_file(path)
    except ParameterProfileError as exc:
        logger.info("No default options loaded: %s", exc)
        return ParameterSet()
    logger.info("Default options loaded from %s", path)
    return parameters


@dataclass
class ChatSession:
    """State shared by every handler of one bot connection.

    Attributes:
        config: Active configuration (replaced on profile switch)
        transcript: Transcript store for the active profile
        parameters: Active generation parameters
        client: Completion client for the active profile
        gate: Single-flight availability gate
        blocklist: Sender names ignored entirely
        profile: Name of the active configuration profile, if switched
    """

    config: BotConfig
    transcript: TranscriptStore
    parameters: ParameterSet
    client: CompletionClient
    gate: AvailabilityGate = field(default_factory=AvailabilityGate)
    blocklist: frozenset[str] = frozenset()
    profile: str | None = None

    @classmethod
    def from_config(cls, config: BotConfig) -> ChatSession:
        """Build a session from configuration, reading the bot's side files.

        Raises:
            ConfigurationError: If a side file exists but cannot be read
        """
        return cls(
            config=config,
            transcript=build_transcript_store(config),
            parameters=_load_default_parameters(config),
            client=_build_client(config),
            blocklist=load_blocklist(config.storage.blocklist_path),
        )

    @property
    def nickname(self) -> str:
        return self.config.irc.nickname

    def is_blocked(self, sender_name: str) -> bool:
        return sender_name in self.blocklist

    def load_parameters(self, name: str) -> Path:
        """Replace the active parameters with the named profile.

        Returns:
            Path of the profile file loaded

        Raises:
            ParameterProfileError: If the name is invalid or the profile cannot be loaded
        """
        if not is_valid_profile_name(name):
            raise ParameterProfileError(f"Invalid options profile name: {name!r}", profile=name)
        path = self.config.storage.options_profile_path(name)
        self.parameters = ParameterSet.from_file(path, profile=name)
        logger.info("Options loaded from %s", path)
        return path

    async def switch_profile(self, name: str) -> None:
        """Switch to a named configuration profile.

        The profile overlays the current configuration; the transcript,
        parameters and completion client are rebuilt from the result.
        Connection settings are unchanged.

        Raises:
            ProfileError: If the name is invalid or the profile cannot be applied
        """
        if not is_valid_profile_name(name):
            raise ProfileError(f"Invalid profile name: {name!r}", profile=name)

        config = self.config.with_profile(name)
        try:
            transcript = build_transcript_store(config)
            client = _build_client(config)
        except ConfigurationError as exc:
            raise ProfileError(str(exc), profile=name) from exc

        old_client = self.client
        self.config = config
        self.transcript = transcript
        self.client = client
        self.parameters = _load_default_parameters(config)
        self.blocklist = load_blocklist(config.storage.blocklist_path)
        self.profile = name
        await old_client.aclose()
        logger.info("Switched to profile %s (transcript %s)", name, transcript.path)

    async def aclose(self) -> None:
        await self.client.aclose()
