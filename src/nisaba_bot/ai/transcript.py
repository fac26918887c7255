"""Persistent conversation transcript stored as a JSON file.

The transcript is an ordered list of role-tagged entries. Every mutation
rewrites the whole file (read-modify-write); there is no append-only log.
Archives are sibling files carrying a numeric index, e.g. ``history.3.json``.
"""

from __future__ import annotations

import json
import os
import re
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, TypeAdapter, ValidationError

from ..core.exceptions import ArchiveError, TranscriptError
from ..core.logger import get_logger

logger = get_logger("ai.transcript")

MIN_ARCHIVE_INDEX = 1
MAX_ARCHIVE_INDEX = 9999
AUTO_INDEX = 0


class Role(str, Enum):
    """Transcript entry roles."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class TranscriptEntry(BaseModel):
    """A single transcript message.

    Attributes:
        role: Who produced the message
        content: Message text
    """

    model_config = {"frozen": True, "use_enum_values": False}

    role: Role
    content: str

    @classmethod
    def system(cls, content: str) -> TranscriptEntry:
        return cls(role=Role.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> TranscriptEntry:
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> TranscriptEntry:
        return cls(role=Role.ASSISTANT, content=content)

    def to_message(self) -> dict[str, str]:
        """Convert to the ``{role, content}`` shape used on disk and on the wire."""
        return {"role": self.role.value, "content": self.content}


_entries_adapter = TypeAdapter(list[TranscriptEntry])


class TranscriptStore:
    """File-backed transcript with indexed archives.

    Example:
        ```python
        store = TranscriptStore("config/history.json", seed_prompt="You are Nisaba.")
        store.append(TranscriptEntry.user("Hello!"))
        store.append(TranscriptEntry.assistant("Hi there!"))
        entries = store.load()

        index = store.archive()      # next free index
        store.clear()
        store.restore(index)         # back to where we were
        ```
    """

    def __init__(self, path: str | Path, seed_prompt: str | None = None) -> None:
        """Initialize the store.

        Args:
            path: Transcript file path
            seed_prompt: System prompt written as the first entry when the
                transcript is created
        """
        self.path = Path(path)
        self.seed_prompt = seed_prompt or None

    def __repr__(self) -> str:
        return f"<TranscriptStore path={self.path}>"

    def seed_entries(self) -> list[TranscriptEntry]:
        """Entries a fresh transcript starts with."""
        if self.seed_prompt:
            return [TranscriptEntry.system(self.seed_prompt)]
        return []

    @property
    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> list[TranscriptEntry]:
        """Read the transcript, creating it from the seed if absent.

        Raises:
            TranscriptError: If the file cannot be read or parsed
        """
        if not self.path.exists():
            self.save(self.seed_entries())
            logger.info("Created transcript %s", self.path)
        return self._read(self.path)

    def save(self, entries: list[TranscriptEntry]) -> None:
        """Replace the whole transcript with ``entries``."""
        self._write(self.path, entries)

    def append(self, *entries: TranscriptEntry) -> list[TranscriptEntry]:
        """Append entries and rewrite the file.

        Returns:
            The full transcript after the append
        """
        history = self.load()
        history.extend(entries)
        self.save(history)
        logger.debug("Appended %d entries to %s (now %d)", len(entries), self.path, len(history))
        return history

    def clear(self) -> bool:
        """Delete the transcript file; the next read re-seeds it.

        Returns:
            False if there was no transcript to clear
        """
        try:
            self.path.unlink()
        except FileNotFoundError:
            logger.debug("Transcript %s already absent", self.path)
            return False
        except OSError as exc:
            raise TranscriptError(f"Cannot remove transcript: {exc}", str(self.path)) from exc
        logger.info("Cleared transcript %s", self.path)
        return True

    def reset(self) -> None:
        """Rewrite the transcript with only its seed entries."""
        self.save(self.seed_entries())

    # Archives

    def archive_path(self, index: int) -> Path:
        """Path of the archive with the given index: ``base.<index>.ext``."""
        self._check_index(index)
        return self.path.with_name(f"{self.path.stem}.{index}{self.path.suffix}")

    def archive_indexes(self) -> list[int]:
        """Existing archive indexes, ascending."""
        pattern = re.compile(
            rf"^{re.escape(self.path.stem)}\.(\d+){re.escape(self.path.suffix)}$"
        )
        directory = self.path.parent
        if not directory.is_dir():
            return []
        indexes = []
        for candidate in directory.iterdir():
            match = pattern.match(candidate.name)
            if match:
                index = int(match.group(1))
                if MIN_ARCHIVE_INDEX <= index <= MAX_ARCHIVE_INDEX:
                    indexes.append(index)
        return sorted(indexes)

    def archive(self, index: int = AUTO_INDEX) -> int:
        """Copy the current transcript to an archive file.

        Args:
            index: Archive index, or ``AUTO_INDEX`` for the next free one

        Returns:
            The index written

        Raises:
            ArchiveError: If the index is out of range or no index is free
        """
        if index == AUTO_INDEX:
            index = self._next_free_index()
        self._check_index(index)
        self._write(self.archive_path(index), self.load())
        logger.info("Archived transcript %s as index %d", self.path, index)
        return index

    def restore(self, index: int = AUTO_INDEX) -> int:
        """Replace the current transcript with an archive.

        Args:
            index: Archive index, or ``AUTO_INDEX`` for the most recent one

        Returns:
            The index restored

        Raises:
            ArchiveError: If the index is out of range or the archive is missing
        """
        if index == AUTO_INDEX:
            existing = self.archive_indexes()
            if not existing:
                raise ArchiveError("There are no saved archives.")
            index = existing[-1]
        path = self.archive_path(index)
        if not path.exists():
            raise ArchiveError(f"Archive {index} does not exist.", index=index)
        self.save(self._read(path))
        logger.info("Restored transcript %s from index %d", self.path, index)
        return index

    def _next_free_index(self) -> int:
        existing = self.archive_indexes()
        if not existing:
            return MIN_ARCHIVE_INDEX
        if existing[-1] < MAX_ARCHIVE_INDEX:
            return existing[-1] + 1
        used = set(existing)
        for index in range(MIN_ARCHIVE_INDEX, MAX_ARCHIVE_INDEX + 1):
            if index not in used:
                return index
        raise ArchiveError("All archive slots are in use.")

    @staticmethod
    def _check_index(index: int) -> None:
        if not MIN_ARCHIVE_INDEX <= index <= MAX_ARCHIVE_INDEX:
            raise ArchiveError(
                f"Archive index must be between {MIN_ARCHIVE_INDEX} and {MAX_ARCHIVE_INDEX}.",
                index=index,
            )

    @staticmethod
    def _read(path: Path) -> list[TranscriptEntry]:
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise TranscriptError(f"Cannot read transcript: {exc}", str(path)) from exc
        if not raw.strip():
            return []
        try:
            data = json.loads(raw)
            # A transcript written as JSON null (empty history) loads as empty
            return _entries_adapter.validate_python(data or [])
        except (json.JSONDecodeError, ValidationError) as exc:
            raise TranscriptError(f"Cannot parse transcript {path}: {exc}", str(path)) from exc

    @staticmethod
    def _write(path: Path, entries: list[TranscriptEntry]) -> None:
        payload = json.dumps(
            [entry.to_message() for entry in entries], indent=2, ensure_ascii=False
        )
        tmp_path = path.with_name(f".{path.name}.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(payload + "\n", encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as exc:
            raise TranscriptError(f"Cannot write transcript: {exc}", str(path)) from exc
