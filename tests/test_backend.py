"""Tests for the OpenAI-compatible HTTP backend (mocked with respx)."""

from __future__ import annotations

import httpx
import pytest
import respx
from httpx import Response

from mnemo.backend import InferenceBackend, OpenAICompatibleBackend
from mnemo.config import BackendConfig

EMBEDDINGS_URL = "http://llm.test/v1/embeddings"
CHAT_URL = "http://llm.test/v1/chat/completions"


@pytest.fixture
def config() -> BackendConfig:
    return BackendConfig(
        embeddings_url=EMBEDDINGS_URL,
        chat_url=CHAT_URL,
        api_key="sk-test",
        embedding_model="test-embed",
        chat_model="test-chat",
        timeout=2.0,
    )


def test_satisfies_protocol(config: BackendConfig) -> None:
    assert isinstance(OpenAICompatibleBackend(config), InferenceBackend)


@pytest.mark.asyncio
@respx.mock
async def test_embed(config: BackendConfig) -> None:
    route = respx.post(EMBEDDINGS_URL).mock(
        return_value=Response(200, json={"data": [{"embedding": [0.1, 0.2, 0.3]}]})
    )

    async with OpenAICompatibleBackend(config) as backend:
        vector = await backend.embed("chose JWT")

    assert vector == [0.1, 0.2, 0.3]
    request = route.calls.last.request
    assert request.headers["Authorization"] == "Bearer sk-test"
    assert b'"model":"test-embed"' in request.content.replace(b" ", b"")


@pytest.mark.asyncio
@respx.mock
async def test_complete(config: BackendConfig) -> None:
    route = respx.post(CHAT_URL).mock(
        return_value=Response(200, json={"choices": [{"message": {"content": "JWT, for statelessness."}}]})
    )

    async with OpenAICompatibleBackend(config) as backend:
        text = await backend.complete("be brief", "why jwt?", max_tokens=50, temperature=0.1)

    assert text == "JWT, for statelessness."
    body = route.calls.last.request.read()
    assert b"be brief" in body
    assert b"why jwt?" in body


@pytest.mark.asyncio
@respx.mock
async def test_http_error_fails_soft(config: BackendConfig) -> None:
    respx.post(EMBEDDINGS_URL).mock(return_value=Response(503, text="overloaded"))
    respx.post(CHAT_URL).mock(return_value=Response(401, json={"error": "bad key"}))

    async with OpenAICompatibleBackend(config) as backend:
        assert await backend.embed("x") is None
        assert await backend.complete(None, "x") is None


@pytest.mark.asyncio
@respx.mock
async def test_timeout_fails_soft(config: BackendConfig) -> None:
    respx.post(EMBEDDINGS_URL).mock(side_effect=httpx.ReadTimeout("timed out"))

    async with OpenAICompatibleBackend(config) as backend:
        assert await backend.embed("x") is None


@pytest.mark.asyncio
@respx.mock
async def test_bad_json_fails_soft(config: BackendConfig) -> None:
    respx.post(EMBEDDINGS_URL).mock(return_value=Response(200, text="<html>proxy error</html>"))
    respx.post(CHAT_URL).mock(return_value=Response(200, json={"choices": []}))

    async with OpenAICompatibleBackend(config) as backend:
        assert await backend.embed("x") is None
        assert await backend.complete(None, "x") is None


@pytest.mark.asyncio
@respx.mock
async def test_empty_embedding_fails_soft(config: BackendConfig) -> None:
    respx.post(EMBEDDINGS_URL).mock(return_value=Response(200, json={"data": [{"embedding": []}]}))

    async with OpenAICompatibleBackend(config) as backend:
        assert await backend.embed("x") is None


@pytest.mark.asyncio
@respx.mock
async def test_injected_client_keeps_auth_and_stays_open(config: BackendConfig) -> None:
    route = respx.post(EMBEDDINGS_URL).mock(
        return_value=Response(200, json={"data": [{"embedding": [1.0]}]})
    )
    client = httpx.AsyncClient()

    backend = OpenAICompatibleBackend(config, client=client)
    await backend.embed("x")
    await backend.aclose()

    assert route.calls.last.request.headers["Authorization"] == "Bearer sk-test"
    assert not client.is_closed
    await client.aclose()


def test_missing_api_key_warns(caplog) -> None:
    with caplog.at_level("WARNING"):
        OpenAICompatibleBackend(BackendConfig(api_key=""))
    assert "No backend API key" in caplog.text
