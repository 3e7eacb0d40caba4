"""Read path: load → analyze → embed → score → rank, plus RAG answers and exploration."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from mnemo.memory.gateway import NO_MEMORIES_ANSWER, EmbeddingGateway, time_ago
from mnemo.memory.models import utc_now
from mnemo.memory.store import MemoryStore
from mnemo.search.clusters import Cluster, cluster_memories
from mnemo.search.query import analyze_query
from mnemo.search.ranking import RankedResult, ScoredMemory, rank
from mnemo.search.scoring import WeightPolicy, combine, matched_terms, score_memory

logger = logging.getLogger(__name__)


@dataclass
class Answer:
    text: str
    results: list[RankedResult] = field(default_factory=list)
    synthesized: bool = False


NO_MEMORIES_STORED = "No memories stored yet."
NO_MATCHES = "No memories matched the query."


def format_results(results: list[RankedResult], now: datetime, total: int | None = None) -> str:
    """Plain listing of ranked results.

    ``total`` is the number of stored memories; when given and there are no
    results, the message tells an empty store apart from a query that matched
    nothing.
    """
    if not results:
        return NO_MEMORIES_STORED if not total else NO_MATCHES
    lines = []
    for i, result in enumerate(results, start=1):
        stamp = time_ago(result.memory.created, now)
        lines.append(f"{i}. ({stamp}, relevance {result.relevance_score:.2f}) {result.memory.content}")
    return "\n\n".join(lines)


class SearchEngine:
    def __init__(
        self,
        store: MemoryStore,
        gateway: EmbeddingGateway,
        policy: WeightPolicy | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.gateway = gateway
        self.policy = policy or WeightPolicy()
        self.clock = clock

    async def search(self, query: str, limit: int = 5) -> list[RankedResult]:
        memories = await self.store.load()
        if not memories or limit < 1:
            return []

        if not query or not query.strip():
            return [
                RankedResult(memory=m, relevance_score=1.0, matched_terms=[], used_embeddings=False)
                for m in memories[:limit]
            ]

        analysis = analyze_query(query)
        logger.debug(
            "Query %r: intent=%s focus=%s temporal=%s domains=%s",
            analysis.original,
            analysis.intent.value,
            analysis.focus.value,
            analysis.temporal_context.value,
            ",".join(analysis.domain_hints) or "-",
        )

        query_embedding = await self.gateway.embed_query(analysis.enhanced_query)
        used_embeddings = query_embedding is not None
        if not used_embeddings:
            logger.info("Query embedding unavailable, ranking by keywords only")

        now = self.clock()
        weights = self.policy.weights_for(analysis)
        candidates = []
        for memory in memories:
            breakdown = score_memory(memory, analysis, query_embedding, now)
            candidates.append(
                ScoredMemory(
                    memory=memory,
                    score=combine(breakdown, weights),
                    matched_terms=matched_terms(memory.content.lower(), analysis),
                    breakdown=breakdown,
                )
            )

        results = rank(candidates, analysis, limit, used_embeddings)
        logger.info("Search %r returned %d of %d memories", analysis.original, len(results), len(memories))
        return results

    async def answer(self, query: str, limit: int = 5) -> Answer:
        """Answer a question from stored memories, falling back to the raw result list."""
        results = await self.search(query, limit)
        if not results:
            return Answer(text=NO_MEMORIES_ANSWER)

        now = self.clock()
        text = await self.gateway.answer(query, [r.memory for r in results], now)
        if text:
            return Answer(text=text, results=results, synthesized=True)

        logger.info("Answer synthesis unavailable, returning result list")
        return Answer(text=format_results(results, now), results=results)

    async def explore(self, query: str) -> list[Cluster]:
        memories = await self.store.load()
        return cluster_memories(memories, query, now=self.clock())
