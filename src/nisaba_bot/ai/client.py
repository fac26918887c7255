"""Completion endpoint client.

Two request shapes are supported:

- ``chat``: OpenAI-style ``/v1/chat/completions``; the whole transcript is sent
  as ``messages`` and the round trip is recorded in the transcript.
- ``query``: llama.cpp-style ``/completion``; a single stateless prompt.

Failures never raise out of :meth:`CompletionClient.complete`; they come back
as a :class:`CompletionResult` whose text is an apology for the channel.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal

import httpx

from ..core.exceptions import (
    CompletionError,
    ModelResponseError,
    NisabaError,
    RequestEncodingError,
    ResponseDecodeError,
    ServiceStatusError,
    ServiceUnavailableError,
    TranscriptError,
)
from ..core.logger import get_logger
from .parameters import KeyStyle, ParameterSet
from .transcript import TranscriptEntry, TranscriptStore

if TYPE_CHECKING:
    from ..core.config import APIConfig

logger = get_logger("ai.client")

ApiMode = Literal["chat", "query"]

TRANSCRIPT_APOLOGY = "I can't reach my memory right now."


@dataclass
class CompletionResult:
    """Outcome of a completion round trip.

    Attributes:
        text: Reply text, or an apology when ``error`` is set
        error: The failure that produced the apology, if any
    """

    text: str
    error: NisabaError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class CompletionClient:
    """Send prompts to the completion endpoint and extract replies.

    Example:
        ```python
        client = CompletionClient("http://localhost:8080/v1/chat/completions")
        store = TranscriptStore("history.json")
        result = await client.complete(store, "What is cuneiform?", ParameterSet(temperature=0.7))
        print(result.text)
        await client.aclose()
        ```
    """

    def __init__(
        self,
        url: str,
        api_key: str = "null",
        mode: ApiMode = "chat",
        timeout: float | None = None,
        reminder: str | None = None,
        parameter_keys: KeyStyle = "snake",
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            url: Completion endpoint URL
            api_key: Bearer token for the Authorization header
            mode: Default request shape
            timeout: HTTP deadline in seconds; None waits indefinitely
            reminder: System text appended to the transcript after each reply
            parameter_keys: Key style of generation parameters in the payload
            http_client: Pre-built httpx client (tests inject one)
        """
        self.url = url
        self.api_key = api_key
        self.mode: ApiMode = mode
        self.timeout = timeout
        self.reminder = reminder or None
        self.parameter_keys: KeyStyle = parameter_keys
        self._client = http_client
        self._owns_client = http_client is None

    @classmethod
    def from_config(cls, api: APIConfig, reminder: str | None = None) -> CompletionClient:
        return cls(
            url=api.url,
            api_key=api.key,
            mode=api.mode,
            timeout=api.timeout,
            reminder=reminder,
            parameter_keys=api.parameter_keys,
        )

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True
        return self._client

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    async def complete(
        self,
        transcript: TranscriptStore | None,
        text: str,
        parameters: ParameterSet | None = None,
        mode: ApiMode | None = None,
    ) -> CompletionResult:
        """Run one completion round trip.

        In ``chat`` mode the user entry is written to the transcript before
        the request is sent, and the reply (plus reminder) after it returns.
        In ``query`` mode the transcript is not touched.

        Args:
            transcript: Transcript store (required in chat mode)
            text: New user text
            parameters: Generation parameters to merge into the payload
            mode: Override the client's default mode

        Returns:
            CompletionResult with the reply or an apology
        """
        mode = mode or self.mode
        parameters = parameters or ParameterSet()

        try:
            if mode == "chat":
                if transcript is None:
                    raise ValueError("chat mode requires a transcript")
                history = transcript.append(TranscriptEntry.user(text))
                payload = self.build_chat_payload(history, parameters, self.parameter_keys)
            else:
                payload = self.build_query_payload(text, parameters, self.parameter_keys)

            body = await self._post(payload)
            reply = self._extract_reply(body, mode)

            if mode == "chat" and transcript is not None:
                additions = [TranscriptEntry.assistant(reply)]
                if self.reminder:
                    additions.append(TranscriptEntry.system(self.reminder))
                transcript.append(*additions)

            return CompletionResult(text=reply)

        except CompletionError as exc:
            logger.warning("Completion failed (%s): %s", type(exc).__name__, exc)
            return CompletionResult(text=exc.apology, error=exc)
        except TranscriptError as exc:
            logger.error("Transcript unavailable during completion: %s", exc)
            return CompletionResult(text=TRANSCRIPT_APOLOGY, error=exc)

    @staticmethod
    def build_chat_payload(
        history: list[TranscriptEntry],
        parameters: ParameterSet,
        key_style: KeyStyle = "snake",
    ) -> dict[str, Any]:
        """Build a chat-completions request body from the whole transcript."""
        payload: dict[str, Any] = {
            "messages": [entry.to_message() for entry in history],
            "stream": False,
        }
        return parameters.merge_into(payload, key_style)

    @staticmethod
    def build_query_payload(
        prompt: str, parameters: ParameterSet, key_style: KeyStyle = "snake"
    ) -> dict[str, Any]:
        """Build a single-prompt completion request body."""
        payload: dict[str, Any] = {"prompt": prompt, "stream": False}
        return parameters.merge_into(payload, key_style)

    async def _post(self, payload: dict[str, Any]) -> Any:
        try:
            content = json.dumps(payload, ensure_ascii=False, allow_nan=False)
        except (TypeError, ValueError) as exc:
            raise RequestEncodingError(f"Cannot encode payload: {exc}") from exc

        logger.debug("Sending payload: %s", content)
        client = self._get_client()
        try:
            response = await client.post(
                self.url, content=content.encode("utf-8"), headers=self.headers
            )
        except httpx.RequestError as exc:
            raise ServiceUnavailableError(f"Request to {self.url} failed: {exc}", url=self.url) from exc

        logger.debug("Received response (%d): %s", response.status_code, response.text)

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise ServiceStatusError(
                f"Endpoint answered {response.status_code}", status_code=response.status_code
            ) from exc

        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ResponseDecodeError(f"Response is not JSON: {exc}", response.text) from exc

    @staticmethod
    def _extract_reply(body: Any, mode: ApiMode) -> str:
        if not isinstance(body, dict):
            raise ResponseDecodeError("Response is not a JSON object", json.dumps(body))

        if mode == "chat":
            choices = body.get("choices")
            if choices is None:
                raise ModelResponseError("Response has no choices", json.dumps(body))
            if not isinstance(choices, list):
                raise ResponseDecodeError("'choices' is not a list", json.dumps(body))
            if not choices:
                raise ModelResponseError("Response has no choices", json.dumps(body))
            first = choices[0]
            message = first.get("message") if isinstance(first, dict) else None
            content = message.get("content") if isinstance(message, dict) else None
        else:
            content = body.get("content")

        if content is not None and not isinstance(content, str):
            raise ResponseDecodeError("Reply content is not a string", json.dumps(body))
        if not content:
            raise ModelResponseError("Reply content is empty", json.dumps(body))
        return content
