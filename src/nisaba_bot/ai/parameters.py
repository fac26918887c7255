"""Generation parameters merged into outbound completion payloads.

A parameter set is sparse: only fields that are set are sent. Profiles are
JSON objects with every field optional and are loaded wholesale.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, ValidationError

from ..core.exceptions import ParameterProfileError
from ..core.logger import get_logger

logger = get_logger("ai.parameters")

KeyStyle = Literal["snake", "compact"]


def payload_key(name: str, key_style: KeyStyle = "snake") -> str:
    """Payload key for the field ``name`` in the given style."""
    if key_style == "compact":
        return name.replace("_", "")
    return name


class ParameterSet(BaseModel):
    """Optional generation-tuning fields for the completion endpoint.

    Unknown keys in a profile are ignored. A field explicitly set to ``0`` or
    ``False`` is sent; only unset (``None``) fields are omitted.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    temperature: float | None = None
    top_k: int | None = None
    top_p: float | None = None
    min_p: float | None = None
    n_predict: int | None = None
    n_keep: int | None = None
    tfs_z: float | None = None
    typical_p: float | None = None
    repeat_penalty: float | None = None
    repeat_last_n: int | None = None
    presence_penalty: float | None = None
    frequency_penalty: float | None = None
    mirostat: int | None = None
    mirostat_tau: float | None = None
    mirostat_eta: float | None = None
    seed: int | None = None
    n_probs: int | None = None
    slot_id: int | None = None
    penalize_nl: bool | None = None
    ignore_eos: bool | None = None
    cache_prompt: bool | None = None
    penalty_prompt: str | None = None
    system_prompt: str | None = None

    def payload_fields(self, key_style: KeyStyle = "snake") -> dict[str, Any]:
        """Set fields keyed by their payload name, in declaration order.

        ``key_style="compact"`` drops the underscores (``top_k`` becomes
        ``topk``) for servers that expect the lower-cased run-together names.
        """
        fields: dict[str, Any] = {}
        for name in PAYLOAD_KEYS:
            value = getattr(self, name)
            if value is not None:
                fields[payload_key(name, key_style)] = value
        return fields

    def merge_into(self, payload: dict[str, Any], key_style: KeyStyle = "snake") -> dict[str, Any]:
        """Add every set field to ``payload`` and return it."""
        payload.update(self.payload_fields(key_style))
        return payload

    @property
    def is_empty(self) -> bool:
        return not self.payload_fields()

    @classmethod
    def from_file(cls, path: str | Path, profile: str | None = None) -> ParameterSet:
        """Load a parameter profile from a JSON file.

        Raises:
            ParameterProfileError: If the file is missing or invalid
        """
        profile_path = Path(path)
        try:
            with open(profile_path, encoding="utf-8") as handle:
                data = json.load(handle)
        except FileNotFoundError as exc:
            raise ParameterProfileError(
                f"Parameter profile not found: {profile_path}", profile=profile
            ) from exc
        except (OSError, json.JSONDecodeError) as exc:
            raise ParameterProfileError(
                f"Cannot read parameter profile {profile_path}: {exc}", profile=profile
            ) from exc

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ParameterProfileError(
                f"Parameter profile {profile_path} must be a JSON object", profile=profile
            )
        try:
            parameters = cls.model_validate(data)
        except ValidationError as exc:
            raise ParameterProfileError(
                f"Invalid parameter profile {profile_path}: {exc}", profile=profile
            ) from exc

        logger.debug("Loaded parameter profile %s: %s", profile_path, parameters.payload_fields())
        return parameters


# Payload key table; each key is also the ParameterSet attribute holding its value.
PAYLOAD_KEYS: tuple[str, ...] = (
    "temperature",
    "top_k",
    "top_p",
    "min_p",
    "n_predict",
    "n_keep",
    "tfs_z",
    "typical_p",
    "repeat_penalty",
    "repeat_last_n",
    "presence_penalty",
    "frequency_penalty",
    "mirostat",
    "mirostat_tau",
    "mirostat_eta",
    "seed",
    "n_probs",
    "slot_id",
    "penalize_nl",
    "ignore_eos",
    "cache_prompt",
    "penalty_prompt",
    "system_prompt",
)
