"""Inference backend protocol."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class InferenceBackend(Protocol):
    """Embedding + chat completion service. Every method fails soft."""

    @property
    def name(self) -> str: ...

    async def embed(self, text: str) -> list[float] | None:
        """Return a fixed-length vector for ``text``, or None on any failure."""
        ...

    async def complete(
        self,
        system_prompt: str | None,
        user_prompt: str,
        *,
        max_tokens: int = 1000,
        temperature: float = 0.3,
    ) -> str | None:
        """Return the completion text, or None on any failure."""
        ...

    async def aclose(self) -> None: ...
