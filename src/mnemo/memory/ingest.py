"""Write path: validate → analyze → consolidate or create → cap → persist."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timedelta

from mnemo.config import MemoryConfig
from mnemo.errors import EmptyContentError
from mnemo.memory.analysis import ContentAnalysis, analyze_content, annotate
from mnemo.memory.gateway import EmbeddingGateway
from mnemo.memory.models import Memory, utc_now
from mnemo.memory.store import MemoryStore, newest_first, next_session_id
from mnemo.similarity import word_overlap

logger = logging.getLogger(__name__)

CONTINUATION_MARKER = "\n\n--- CONTINUED ---\n\n"


class IngestionPipeline:
    """Turns raw content into a stored Memory, merging near-duplicates from the last half hour."""

    def __init__(
        self,
        store: MemoryStore,
        gateway: EmbeddingGateway,
        config: MemoryConfig | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.gateway = gateway
        self.config = config or MemoryConfig()
        self.clock = clock
        self.working_set: list[Memory] = []

    async def save_memory(self, content: str) -> Memory:
        if not content or not content.strip():
            raise EmptyContentError()

        analysis = analyze_content(content)
        logger.debug(
            "Classified memory as %s (importance %.2f)",
            analysis.category.value,
            analysis.importance,
        )

        async with self.store.lock:
            existing = await self.store.load()
            now = self.clock()

            target = self.find_consolidation_target(content, existing, now)
            if target is not None:
                memory = await self._consolidate(target, content, now)
                updated = [memory if m.id == target.id else m for m in existing]
            else:
                memory = await self._create(content, analysis, existing, now)
                updated = [memory, *existing]

            self.working_set = self.enforce_capacity(updated)
            await self.store.save(self.working_set)

        return memory

    # ── Consolidation ─────────────────────────────────────────

    def find_consolidation_target(
        self, content: str, existing: list[Memory], now: datetime
    ) -> Memory | None:
        window = timedelta(minutes=self.config.consolidation_window_minutes)
        for memory in existing:
            if now - memory.created >= window:
                continue
            similarity = word_overlap(content, memory.content)
            if similarity > self.config.consolidation_threshold:
                logger.info("Consolidating into memory %s (overlap %.2f)", memory.id, similarity)
                return memory
        return None

    async def _consolidate(self, target: Memory, content: str, now: datetime) -> Memory:
        combined = f"{target.content}{CONTINUATION_MARKER}{content}"
        embedding = await self.gateway.embed(combined, target.metadata)
        if embedding is None:
            logger.info("No embedding for consolidated memory %s, keeping previous", target.id)
        return replace(
            target,
            content=combined,
            created=now,
            embedding=embedding or target.embedding,
            embedding_model=self.gateway.embedding_model if embedding else target.embedding_model,
        )

    # ── Creation ──────────────────────────────────────────────

    async def _create(
        self,
        content: str,
        analysis: ContentAnalysis,
        existing: list[Memory],
        now: datetime,
    ) -> Memory:
        processed = annotate(content, analysis)
        metadata = await self.gateway.extract_metadata(processed, analysis.themes)
        embedding = await self.gateway.embed(processed, metadata)
        if embedding is None:
            logger.info("Embedding backend unavailable, storing memory without embedding")

        session_window = timedelta(minutes=self.config.session_window_minutes)
        return Memory(
            id=str(uuid.uuid4()),
            content=processed,
            created=now,
            session_id=next_session_id(existing, now, session_window),
            embedding=embedding,
            embedding_model=self.gateway.embedding_model if embedding else None,
            metadata=metadata,
        )

    # ── Capacity ──────────────────────────────────────────────

    def enforce_capacity(self, memories: list[Memory]) -> list[Memory]:
        """Past ``working_cap`` entries, keep only the ``working_keep`` most recent."""
        ordered = newest_first(memories)
        if len(ordered) <= self.config.working_cap:
            return ordered
        logger.info(
            "Working set at %d memories, trimming to %d most recent",
            len(ordered),
            self.config.working_keep,
        )
        return ordered[: self.config.working_keep]
