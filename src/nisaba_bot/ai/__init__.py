"""Language-model integration: transcript, parameters and completion client."""

from .client import CompletionClient, CompletionResult
from .parameters import PAYLOAD_KEYS, ParameterSet
from .transcript import (
    AUTO_INDEX,
    MAX_ARCHIVE_INDEX,
    MIN_ARCHIVE_INDEX,
    Role,
    TranscriptEntry,
    TranscriptStore,
)

__all__ = [
    "CompletionClient",
    "CompletionResult",
    "ParameterSet",
    "PAYLOAD_KEYS",
    "Role",
    "TranscriptEntry",
    "TranscriptStore",
    "AUTO_INDEX",
    "MIN_ARCHIVE_INDEX",
    "MAX_ARCHIVE_INDEX",
]
