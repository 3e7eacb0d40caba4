"""Mnemo facade: wires storage, gateway, ingestion and search from one config.

Responsibilities:
1. Build the inference backend (or accept an injected one)
2. Share one MemoryStore between the write and read paths
3. Expose save / search / ask / explore / cluster as the public surface
4. Own backend lifetime (aclose, async context manager)
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import datetime

from mnemo.backend.base import InferenceBackend
from mnemo.backend.openai_compat import OpenAICompatibleBackend
from mnemo.config import MnemoConfig
from mnemo.memory.gateway import EmbeddingGateway
from mnemo.memory.ingest import IngestionPipeline
from mnemo.memory.models import Memory, utc_now
from mnemo.memory.store import MemoryStore
from mnemo.search.clusters import Cluster, cluster_memories
from mnemo.search.engine import Answer, SearchEngine, format_results
from mnemo.search.ranking import RankedResult

logger = logging.getLogger(__name__)

__all__ = ["Mnemo", "format_results"]


class Mnemo:
    """Session memory engine: the one object callers hold."""

    def __init__(
        self,
        config: MnemoConfig,
        backend: InferenceBackend | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.config = config
        self._owns_backend = backend is None
        self.backend = backend or OpenAICompatibleBackend(config.backend)
        self.store = MemoryStore(config.memory_dir, persisted_cap=config.memory.persisted_cap)
        self.gateway = EmbeddingGateway(self.backend, config.backend)
        self.pipeline = IngestionPipeline(self.store, self.gateway, config.memory, clock=clock)
        self.engine = SearchEngine(self.store, self.gateway, clock=clock)
        self.clock = clock
        logger.debug("Mnemo ready: memory_dir=%s backend=%s", config.memory_dir, self.backend.name)

    # ── Write path ────────────────────────────────────────────

    async def save_memory(self, content: str) -> Memory:
        """Store a session narrative; raises EmptyContentError on blank content."""
        return await self.pipeline.save_memory(content)

    # ── Read path ─────────────────────────────────────────────

    async def search(self, query: str, limit: int = 5) -> list[RankedResult]:
        return await self.engine.search(query, limit)

    async def ask(self, question: str, limit: int = 5) -> Answer:
        return await self.engine.answer(question, limit)

    async def explore(self, query: str = "") -> list[Cluster]:
        return await self.engine.explore(query)

    def cluster(self, memories: Sequence[Memory], query: str) -> list[Cluster]:
        return cluster_memories(memories, query, now=self.clock())

    async def count(self) -> int:
        return len(await self.store.load())

    # ── Lifecycle ─────────────────────────────────────────────

    async def aclose(self) -> None:
        if self._owns_backend:
            await self.backend.aclose()

    async def __aenter__(self) -> Mnemo:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
