"""Tests for the completion endpoint client."""

from __future__ import annotations

import json

import httpx
import pytest
from pytest_httpx import HTTPXMock

from nisaba_bot.ai.client import TRANSCRIPT_APOLOGY, CompletionClient
from nisaba_bot.ai.parameters import ParameterSet
from nisaba_bot.ai.transcript import TranscriptEntry, TranscriptStore
from nisaba_bot.core.config import APIConfig
from nisaba_bot.core.exceptions import (
    ModelResponseError,
    RequestEncodingError,
    ResponseDecodeError,
    ServiceStatusError,
    ServiceUnavailableError,
)

CHAT_URL = "http://llm.test/v1/chat/completions"
QUERY_URL = "http://llm.test/completion"


def chat_reply(content) -> dict:
    return {"choices": [{"index": 0, "message": {"role": "assistant", "content": content}}]}


@pytest.fixture
def store(tmp_path) -> TranscriptStore:
    return TranscriptStore(tmp_path / "history.json", seed_prompt="You are Nisaba.")


@pytest.fixture
async def client():
    client = CompletionClient(CHAT_URL, api_key="secret", reminder="Be brief.")
    yield client
    await client.aclose()


class TestChatMode:
    """Chat-completions round trips recorded in the transcript."""

    @pytest.mark.anyio
    async def test_reply_and_transcript(self, client, store, httpx_mock: HTTPXMock):
        httpx_mock.add_response(url=CHAT_URL, method="POST", json=chat_reply("Hello!"))

        result = await client.complete(store, "Hi there", ParameterSet(temperature=0.5))

        assert result.ok
        assert result.text == "Hello!"
        assert store.load() == [
            TranscriptEntry.system("You are Nisaba."),
            TranscriptEntry.user("Hi there"),
            TranscriptEntry.assistant("Hello!"),
            TranscriptEntry.system("Be brief."),
        ]

    @pytest.mark.anyio
    async def test_request_shape(self, client, store, httpx_mock: HTTPXMock):
        httpx_mock.add_response(url=CHAT_URL, method="POST", json=chat_reply("ok"))

        await client.complete(store, "Hi there", ParameterSet(temperature=0.5, top_k=40))

        request = httpx_mock.get_requests()[0]
        assert request.headers["Authorization"] == "Bearer secret"
        assert request.headers["Content-Type"] == "application/json"
        body = json.loads(request.content)
        assert body == {
            "messages": [
                {"role": "system", "content": "You are Nisaba."},
                {"role": "user", "content": "Hi there"},
            ],
            "stream": False,
            "temperature": 0.5,
            "top_k": 40,
        }

    @pytest.mark.anyio
    async def test_no_reminder_when_unset(self, store, httpx_mock: HTTPXMock):
        httpx_mock.add_response(url=CHAT_URL, method="POST", json=chat_reply("Hello!"))
        client = CompletionClient(CHAT_URL)

        await client.complete(store, "Hi")
        await client.aclose()

        assert store.load()[-1] == TranscriptEntry.assistant("Hello!")

    @pytest.mark.anyio
    async def test_user_entry_survives_failed_request(self, client, store, httpx_mock: HTTPXMock):
        httpx_mock.add_response(url=CHAT_URL, method="POST", status_code=500, text="boom")

        result = await client.complete(store, "Are you there?")

        assert not result.ok
        assert isinstance(result.error, ServiceStatusError)
        assert result.error.status_code == 500
        assert result.text == ServiceStatusError.apology
        assert store.load()[-1] == TranscriptEntry.user("Are you there?")

    @pytest.mark.anyio
    async def test_connection_failure(self, client, store, httpx_mock: HTTPXMock):
        httpx_mock.add_exception(httpx.ConnectError("refused"))

        result = await client.complete(store, "Hi")

        assert isinstance(result.error, ServiceUnavailableError)
        assert result.text == "Error sending request."

    @pytest.mark.anyio
    async def test_non_json_response(self, client, store, httpx_mock: HTTPXMock):
        httpx_mock.add_response(url=CHAT_URL, method="POST", text="<html>oops</html>")

        result = await client.complete(store, "Hi")

        assert isinstance(result.error, ResponseDecodeError)
        assert result.text == "Error parsing response."

    @pytest.mark.anyio
    @pytest.mark.parametrize(
        "body",
        [chat_reply(""), chat_reply(None), {"choices": []}, {"id": "x"}],
    )
    async def test_empty_reply(self, client, store, httpx_mock: HTTPXMock, body):
        httpx_mock.add_response(url=CHAT_URL, method="POST", json=body)

        result = await client.complete(store, "Hi")

        assert isinstance(result.error, ModelResponseError)
        assert result.text == "I have no answer for that."
        assert store.load()[-1] == TranscriptEntry.user("Hi")

    @pytest.mark.anyio
    async def test_unencodable_parameters(self, client, store, httpx_mock: HTTPXMock):
        result = await client.complete(store, "Hi", ParameterSet(temperature=float("nan")))

        assert isinstance(result.error, RequestEncodingError)
        assert result.text == "Error encoding request payload."
        assert httpx_mock.get_requests() == []

    @pytest.mark.anyio
    async def test_unreadable_transcript(self, client, store, httpx_mock: HTTPXMock):
        store.path.write_text("{corrupt", encoding="utf-8")

        result = await client.complete(store, "Hi")

        assert result.text == TRANSCRIPT_APOLOGY
        assert httpx_mock.get_requests() == []


class TestQueryMode:
    """Single-prompt completions that leave the transcript alone."""

    @pytest.mark.anyio
    async def test_query_reply(self, store, httpx_mock: HTTPXMock):
        httpx_mock.add_response(url=QUERY_URL, method="POST", json={"content": "42"})
        client = CompletionClient(QUERY_URL, mode="query")

        result = await client.complete(store, "Meaning of life?", ParameterSet(n_predict=16))
        await client.aclose()

        assert result.text == "42"
        body = json.loads(httpx_mock.get_requests()[0].content)
        assert body == {"prompt": "Meaning of life?", "stream": False, "n_predict": 16}
        assert not store.exists

    @pytest.mark.anyio
    async def test_mode_override(self, client, httpx_mock: HTTPXMock):
        httpx_mock.add_response(url=CHAT_URL, method="POST", json={"content": "direct"})

        result = await client.complete(None, "Hi", mode="query")

        assert result.text == "direct"

    @pytest.mark.anyio
    async def test_empty_query_content(self, store, httpx_mock: HTTPXMock):
        httpx_mock.add_response(url=QUERY_URL, method="POST", json={"content": ""})
        client = CompletionClient(QUERY_URL, mode="query")

        result = await client.complete(store, "Hi")
        await client.aclose()

        assert isinstance(result.error, ModelResponseError)


def test_payload_builders():
    history = [TranscriptEntry.user("x")]

    assert CompletionClient.build_chat_payload(history, ParameterSet()) == {
        "messages": [{"role": "user", "content": "x"}],
        "stream": False,
    }
    assert CompletionClient.build_query_payload("y", ParameterSet(seed=3)) == {
        "prompt": "y",
        "stream": False,
        "seed": 3,
    }


@pytest.mark.anyio
async def test_compact_parameter_keys(httpx_mock: HTTPXMock):
    httpx_mock.add_response(url=QUERY_URL, method="POST", json={"content": "ok"})
    api = APIConfig(url=QUERY_URL, mode="query", parameter_keys="compact")
    client = CompletionClient.from_config(api)

    await client.complete(None, "Hi", ParameterSet(top_k=40, n_predict=16))
    await client.aclose()

    body = json.loads(httpx_mock.get_requests()[0].content)
    assert body == {"prompt": "Hi", "stream": False, "topk": 40, "npredict": 16}
