"""Ranker: threshold, graceful fallback, deduplication and normalization."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from mnemo.memory.models import Memory
from mnemo.search.query import Focus, QueryAnalysis
from mnemo.search.scoring import ScoreBreakdown
from mnemo.similarity import set_overlap

logger = logging.getLogger(__name__)

BASE_THRESHOLD = 15.0
BROAD_THRESHOLD = 10.0
SPECIFIC_THRESHOLD = 25.0

FALLBACK_COUNT = 2
FALLBACK_FLOOR = 0.1

SAME_SESSION_DUPLICATE = 0.85
CROSS_SESSION_DUPLICATE = 0.75
DUPLICATE_SCORE_RATIO = 0.9


@dataclass
class ScoredMemory:
    """A memory with its raw (unnormalized) relevance."""

    memory: Memory
    score: float
    matched_terms: list[str] = field(default_factory=list)
    breakdown: ScoreBreakdown = field(default_factory=ScoreBreakdown)


@dataclass
class RankedResult:
    memory: Memory
    relevance_score: float
    matched_terms: list[str]
    used_embeddings: bool

    def to_dict(self) -> dict:
        return {
            "memory": self.memory.to_dict(),
            "relevanceScore": self.relevance_score,
            "matchedTerms": list(self.matched_terms),
            "usedEmbeddings": self.used_embeddings,
        }


def relevance_threshold(scores: Sequence[float], focus: Focus) -> float:
    if not scores:
        return 0.0

    base = BASE_THRESHOLD
    if focus is Focus.BROAD:
        base = BROAD_THRESHOLD
    elif focus is Focus.SPECIFIC:
        base = SPECIFIC_THRESHOLD

    top = max(scores)
    average = sum(scores) / len(scores)
    if top > average * 3:
        return max(base, average * 0.3)
    return base


def _long_words(text: str) -> set[str]:
    return {word for word in text.lower().split() if len(word) > 3}


def _query_relevant(words: set[str], expanded_terms: Sequence[str]) -> set[str]:
    return {word for word in words if any(term in word or word in term for term in expanded_terms)}


def content_similarity(a: str, b: str, expanded_terms: Sequence[str]) -> float:
    """60% raw word overlap plus 40% overlap restricted to query-relevant words."""
    words_a, words_b = _long_words(a), _long_words(b)
    relevant_a = _query_relevant(words_a, expanded_terms)
    relevant_b = _query_relevant(words_b, expanded_terms)
    relevant = set_overlap(relevant_a, relevant_b) if relevant_a and relevant_b else 0.0
    return set_overlap(words_a, words_b) * 0.6 + relevant * 0.4


def deduplicate(candidates: Sequence[ScoredMemory], expanded_terms: Sequence[str]) -> list[ScoredMemory]:
    """Drop near-duplicates of already accepted candidates; input must be sorted by score."""
    accepted: list[ScoredMemory] = []
    for candidate in candidates:
        duplicate_of = None
        for kept in accepted:
            similarity = content_similarity(candidate.memory.content, kept.memory.content, expanded_terms)
            if similarity > SAME_SESSION_DUPLICATE and candidate.memory.session_id == kept.memory.session_id:
                duplicate_of = kept
                break
            if similarity > CROSS_SESSION_DUPLICATE and candidate.score < kept.score * DUPLICATE_SCORE_RATIO:
                duplicate_of = kept
                break
        if duplicate_of is None:
            accepted.append(candidate)
        else:
            logger.debug("Dropped %s as near-duplicate of %s", candidate.memory.id, duplicate_of.memory.id)
    return accepted


def _normalized(top: float, score: float, floor: float = 0.0) -> float:
    if top <= 0:
        return 1.0
    return max(score / top, floor)


def rank(
    candidates: Sequence[ScoredMemory],
    analysis: QueryAnalysis,
    limit: int,
    used_embeddings: bool,
) -> list[RankedResult]:
    """Order scored memories into at most ``limit`` results; the top one scores exactly 1.0."""
    if limit < 1 or not candidates:
        return []

    ordered = sorted(candidates, key=lambda c: c.score, reverse=True)
    threshold = relevance_threshold([c.score for c in ordered], analysis.focus)
    survivors = [c for c in ordered if c.score >= threshold]

    if not survivors:
        best = ordered[: min(FALLBACK_COUNT, limit)]
        logger.debug("Nothing above threshold %.1f, returning %d best attempts", threshold, len(best))
        top = best[0].score
        return [
            RankedResult(
                memory=c.memory,
                relevance_score=_normalized(top, c.score, FALLBACK_FLOOR),
                matched_terms=c.matched_terms,
                used_embeddings=used_embeddings,
            )
            for c in best
        ]

    kept = deduplicate(survivors, analysis.expanded_terms)[:limit]
    top = kept[0].score
    return [
        RankedResult(
            memory=c.memory,
            relevance_score=_normalized(top, c.score),
            matched_terms=c.matched_terms,
            used_embeddings=used_embeddings,
        )
        for c in kept
    ]
