"""Hybrid scorer: five independent relevance signals and their weighted sum.

Each ``*_score`` function is pure and unbounded above; ``WeightPolicy`` turns
the five into one raw relevance number. Scores are only meaningful relative
to each other within a single query.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime

from mnemo.memory.models import Memory, MemoryMetadata
from mnemo.search.query import Focus, Intent, QueryAnalysis, TechnicalLevel, TemporalContext
from mnemo.similarity import cosine_similarity, edit_distance

SECONDS_PER_DAY = 86400

INTENT_CONTENT_INDICATORS: dict[Intent, tuple[str, ...]] = {
    Intent.FACTUAL: ("is", "was", "has", "contains", "includes", "defined"),
    Intent.PROCEDURAL: ("how", "step", "process", "method", "implement", "create"),
    Intent.TEMPORAL: ("when", "date", "time", "recent", "current", "last"),
    Intent.CONCEPTUAL: ("concept", "idea", "approach", "strategy", "design"),
    Intent.DIAGNOSTIC: ("problem", "issue", "error", "fix", "solve", "debug"),
}

# category -> (intent that earns the full bonus, full bonus, partial bonus)
CATEGORY_INTENT_BONUS: dict[str, tuple[Intent, float, float]] = {
    "decision": (Intent.FACTUAL, 10.0, 5.0),
    "implementation": (Intent.PROCEDURAL, 10.0, 5.0),
    "problem_solving": (Intent.DIAGNOSTIC, 10.0, 5.0),
    "learning": (Intent.CONCEPTUAL, 10.0, 5.0),
}

MAX_MATCHED_TERMS = 8
NO_MATCH_LABEL = "semantic match"


def days_since(created: datetime, now: datetime) -> float:
    return (now - created).total_seconds() / SECONDS_PER_DAY


# ── Individual scores ─────────────────────────────────────


def semantic_score(query_embedding: list[float] | None, memory_embedding: list[float] | None) -> float:
    if not query_embedding or not memory_embedding:
        return 0.0
    return max(cosine_similarity(query_embedding, memory_embedding), 0.0) * 100


def keyword_score(content_lower: str, analysis: QueryAnalysis) -> float:
    score = 0.0
    terms = analysis.terms

    if analysis.lowered and analysis.lowered in content_lower:
        score += 50
    if len(terms) > 1 and all(term in content_lower for term in terms):
        score += 40

    length = len(content_lower)
    for term in terms:
        occurrences = len(re.findall(rf"\b{re.escape(term)}\b", content_lower))
        if not occurrences:
            continue
        score += 15
        score += min(occurrences * 3, 10)
        first = content_lower.find(term)
        if first < length * 0.1:
            score += 5
        elif first < length * 0.3:
            score += 3
        score += min(len(term), 8)

    for term in analysis.expanded_terms:
        if term not in terms and term in content_lower:
            score += 5

    long_terms = [term for term in terms if len(term) > 4]
    if long_terms:
        words = [word for word in content_lower.split() if len(word) > 4]
        for term in long_terms:
            for word in words:
                if word == term:
                    continue
                if word in term or term in word:
                    score += 3
                if edit_distance(word, term) <= 2:
                    score += 2

    return score


def context_score(memory: Memory, analysis: QueryAnalysis) -> float:
    content = memory.content.lower()
    metadata = memory.metadata

    score = 8.0 * sum(1 for ind in INTENT_CONTENT_INDICATORS[analysis.intent] if ind in content)

    for domain in analysis.domain_hints:
        if domain in content:
            score += 10
        if metadata is not None and metadata.domain == domain:
            score += 15

    if metadata is not None and metadata.category in CATEGORY_INTENT_BONUS:
        intent, full, partial = CATEGORY_INTENT_BONUS[metadata.category]
        score += full if analysis.intent is intent else partial

    return score


def temporal_score(created: datetime, now: datetime, context: TemporalContext) -> float:
    days = days_since(created, now)
    if context is TemporalContext.RECENT:
        if days < 1:
            return 20.0
        if days < 7:
            return 15.0
        if days < 30:
            return 10.0
        return 0.0
    if context is TemporalContext.HISTORICAL:
        if days > 90:
            return 15.0
        if days > 30:
            return 10.0
        return 5.0
    if days < 1:
        return 10.0
    if days < 7:
        return 8.0
    if days < 30:
        return 5.0
    if days < 90:
        return 3.0
    return 1.0


def _contains_either_way(value: str, terms: tuple[str, ...]) -> bool:
    value = value.lower()
    return any(term in value or value in term for term in terms)


def metadata_score(metadata: MemoryMetadata | None, analysis: QueryAnalysis) -> float:
    if metadata is None:
        return 0.0

    score = 6.0 * sum(1 for topic in metadata.topics if _contains_either_way(topic, analysis.expanded_terms))
    score += 8.0 * sum(1 for entity in metadata.entities if _contains_either_way(entity, analysis.terms))
    score += 5.0 * sum(1 for action in metadata.key_actions if action.lower() in analysis.expanded_terms)
    if analysis.technical_level is TechnicalLevel.ADVANCED and metadata.domain == "technology":
        score += 5
    return score


def matched_terms(content_lower: str, analysis: QueryAnalysis) -> list[str]:
    matched = [term for term in analysis.terms if term in content_lower]
    for term in analysis.expanded_terms:
        if term not in matched and term in content_lower:
            matched.append(term)
    return matched[:MAX_MATCHED_TERMS] or [NO_MATCH_LABEL]


# ── Combination ───────────────────────────────────────────


@dataclass(frozen=True)
class ScoreBreakdown:
    semantic: float = 0.0
    keyword: float = 0.0
    context: float = 0.0
    temporal: float = 0.0
    metadata: float = 0.0


@dataclass(frozen=True)
class ScoreWeights:
    semantic: float = 0.35
    keyword: float = 0.30
    context: float = 0.15
    temporal: float = 0.10
    metadata: float = 0.10

    def __add__(self, other: ScoreWeights) -> ScoreWeights:
        return ScoreWeights(
            semantic=self.semantic + other.semantic,
            keyword=self.keyword + other.keyword,
            context=self.context + other.context,
            temporal=self.temporal + other.temporal,
            metadata=self.metadata + other.metadata,
        )


@dataclass(frozen=True)
class WeightPolicy:
    """Base weights plus additive deltas keyed by query characteristics."""

    base: ScoreWeights = ScoreWeights()
    specific_focus: ScoreWeights = ScoreWeights(semantic=-0.05, keyword=0.10, context=0.0, temporal=0.0, metadata=0.05)
    contextual_focus: ScoreWeights = ScoreWeights(semantic=0.10, keyword=-0.10, context=0.10, temporal=0.0, metadata=0.0)
    temporal_query: ScoreWeights = ScoreWeights(semantic=-0.05, keyword=-0.05, context=0.0, temporal=0.10, metadata=0.0)
    domain_hinted: ScoreWeights = ScoreWeights(semantic=-0.05, keyword=-0.05, context=0.05, temporal=0.0, metadata=0.05)

    def weights_for(self, analysis: QueryAnalysis) -> ScoreWeights:
        weights = self.base
        if analysis.focus is Focus.SPECIFIC:
            weights = weights + self.specific_focus
        elif analysis.focus is Focus.CONTEXTUAL:
            weights = weights + self.contextual_focus
        if analysis.temporal_context is not TemporalContext.ANY:
            weights = weights + self.temporal_query
        if analysis.domain_hints:
            weights = weights + self.domain_hinted
        return weights


def combine(breakdown: ScoreBreakdown, weights: ScoreWeights) -> float:
    return (
        breakdown.semantic * weights.semantic
        + breakdown.keyword * weights.keyword
        + breakdown.context * weights.context
        + breakdown.temporal * weights.temporal
        + breakdown.metadata * weights.metadata
    )


def score_memory(
    memory: Memory,
    analysis: QueryAnalysis,
    query_embedding: list[float] | None,
    now: datetime,
) -> ScoreBreakdown:
    content_lower = memory.content.lower()
    return ScoreBreakdown(
        semantic=semantic_score(query_embedding, memory.embedding),
        keyword=keyword_score(content_lower, analysis),
        context=context_score(memory, analysis),
        temporal=temporal_score(memory.created, now, analysis.temporal_context),
        metadata=metadata_score(memory.metadata, analysis),
    )
