"""OpenAI-compatible HTTP backend (LiteLLM, vLLM, Mistral, Ollama, ...)."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from mnemo.config import BackendConfig
from mnemo.errors import BackendUnavailable

logger = logging.getLogger(__name__)


class OpenAICompatibleBackend:
    """Talks to ``/v1/embeddings`` and ``/v1/chat/completions`` endpoints.

    Usage:
        async with OpenAICompatibleBackend(config.backend) as backend:
            vector = await backend.embed("chose JWT for auth")
    """

    def __init__(self, config: BackendConfig, client: httpx.AsyncClient | None = None) -> None:
        self.config = config
        if not config.api_key:
            logger.warning("No backend API key configured; requests are sent unauthenticated")
        headers = {"Content-Type": "application/json"}
        if config.api_key:
            headers["Authorization"] = f"Bearer {config.api_key}"
        self._headers = headers
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=config.timeout)

    @property
    def name(self) -> str:
        return "openai_compat"

    async def __aenter__(self) -> OpenAICompatibleBackend:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _post(self, url: str, payload: dict[str, Any]) -> Any:
        try:
            response = await self._client.post(url, json=payload, headers=self._headers)
        except httpx.HTTPError as e:
            raise BackendUnavailable(f"request to {url} failed: {e}") from e
        if response.is_error:
            raise BackendUnavailable(
                f"{url} returned {response.status_code}: {response.text[:200]}"
            )
        try:
            return response.json()
        except ValueError as e:
            raise BackendUnavailable(f"{url} returned invalid JSON") from e

    async def embed(self, text: str) -> list[float] | None:
        try:
            data = await self._post(
                self.config.embeddings_url,
                {"model": self.config.embedding_model, "input": text},
            )
            embedding = data["data"][0]["embedding"]
            if not isinstance(embedding, list) or not embedding:
                raise BackendUnavailable("empty embedding in response")
            return [float(x) for x in embedding]
        except BackendUnavailable as e:
            logger.error("Embedding request failed: %s", e)
        except (KeyError, IndexError, TypeError, ValueError) as e:
            logger.error("Unexpected embeddings response format: %s", e)
        return None

    async def complete(
        self,
        system_prompt: str | None,
        user_prompt: str,
        *,
        max_tokens: int = 1000,
        temperature: float = 0.3,
    ) -> str | None:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_prompt})

        try:
            data = await self._post(
                self.config.chat_url,
                {
                    "model": self.config.chat_model,
                    "messages": messages,
                    "max_tokens": max_tokens,
                    "temperature": temperature,
                },
            )
            content = data["choices"][0]["message"]["content"]
            if not isinstance(content, str):
                raise BackendUnavailable("completion content is not text")
            return content
        except BackendUnavailable as e:
            logger.error("Chat completion failed: %s", e)
        except (KeyError, IndexError, TypeError) as e:
            logger.error("Unexpected chat response format: %s", e)
        return None
