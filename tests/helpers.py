"""Test doubles shared across suites: an in-process inference backend and a controllable clock."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from mnemo.config import BackendConfig
from mnemo.memory.gateway import EmbeddingGateway

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
DIMENSIONS = 16


def bag_of_words_vector(text: str) -> list[float]:
    vector = [0.0] * DIMENSIONS
    for word in text.lower().split():
        vector[sum(ord(c) for c in word) % DIMENSIONS] += 1.0
    return vector


class FakeBackend:
    """Deterministic backend; ``online=False`` makes every call fail soft."""

    def __init__(self, online: bool = True, completion: str | None = None) -> None:
        self.online = online
        self.completion = completion
        self.embed_calls: list[str] = []
        self.complete_calls: list[tuple[str | None, str]] = []
        self.closed = False

    @property
    def name(self) -> str:
        return "fake"

    async def embed(self, text: str) -> list[float] | None:
        self.embed_calls.append(text)
        if not self.online:
            return None
        return bag_of_words_vector(text)

    async def complete(self, system_prompt, user_prompt, *, max_tokens=1000, temperature=0.3):
        self.complete_calls.append((system_prompt, user_prompt))
        if not self.online:
            return None
        return self.completion

    async def aclose(self) -> None:
        self.closed = True


class Clock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now




def make_gateway(backend, max_tokens: int = 8000) -> EmbeddingGateway:
    return EmbeddingGateway(backend, BackendConfig(max_tokens=max_tokens))
