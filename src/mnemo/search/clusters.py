"""Cluster synthesizer: thematic grouping of memories, independent of ranking.

Clusters are derived on demand and never persisted. A memory's tags are its
metadata topics; its category is the metadata category, or the local
classifier's verdict when the memory carries no metadata.
"""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime

from mnemo.memory.analysis import classify
from mnemo.memory.models import Memory, utc_now
from mnemo.search.query import expand_search_terms
from mnemo.similarity import cosine_similarity, string_similarity, tfidf

SECONDS_PER_DAY = 86400

DEFAULT_THRESHOLD = 0.2
SHARED_TAG_BOOST = 0.2
SAME_CATEGORY_BOOST = 0.15
PROXIMITY_BOOST = 0.1
PROXIMITY_DAYS = 7
RELATED_DAYS = 3

CATEGORY_RELEVANCE_BONUS = {"decision": 5.0}

_NON_WORD = re.compile(r"[^\w\s]")
_SENTENCE_SPLIT = re.compile(r"[.!?]+")


@dataclass
class Cluster:
    theme: str
    memories: list[Memory]
    key_terms: list[str]
    synthesized_content: str
    relevance_score: float
    category: str

    def to_dict(self) -> dict:
        return {
            "theme": self.theme,
            "memories": [m.to_dict() for m in self.memories],
            "keyTerms": list(self.key_terms),
            "synthesizedContent": self.synthesized_content,
            "relevanceScore": self.relevance_score,
            "category": self.category,
        }


@dataclass
class _Item:
    memory: Memory
    tags: list[str] = field(default_factory=list)
    category: str = "reflection"

    @classmethod
    def of(cls, memory: Memory) -> _Item:
        if memory.metadata is not None:
            return cls(memory, list(memory.metadata.topics), memory.metadata.category)
        return cls(memory, [], classify(memory.content).value)

    @property
    def content(self) -> str:
        return self.memory.content


def _days_apart(a: datetime, b: datetime) -> float:
    return abs((a - b).total_seconds()) / SECONDS_PER_DAY


def _capitalize(text: str) -> str:
    return text[:1].upper() + text[1:]


# ── Similarity ────────────────────────────────────────────


def similarity_matrix(items: Sequence[_Item]) -> list[list[float]]:
    vectors = tfidf([f"{item.content} {' '.join(item.tags)}" for item in items])
    size = len(items)
    matrix = [[1.0] * size for _ in range(size)]
    for i in range(size):
        for j in range(size):
            if i == j:
                continue
            a, b = items[i], items[j]
            similarity = cosine_similarity(vectors[i], vectors[j])
            shared = set(a.tags) & set(b.tags)
            if shared:
                similarity += SHARED_TAG_BOOST * len(shared) / max(len(a.tags), len(b.tags))
            if a.category == b.category:
                similarity += SAME_CATEGORY_BOOST
            days = _days_apart(a.memory.created, b.memory.created)
            if days < PROXIMITY_DAYS:
                similarity += PROXIMITY_BOOST * (1 - days / PROXIMITY_DAYS)
            matrix[i][j] = min(similarity, 1.0)
    return matrix


def _related(a: _Item, b: _Item, similarity: float, threshold: float) -> bool:
    return (
        similarity > threshold
        or bool(set(a.tags) & set(b.tags))
        or a.category == b.category
        or _days_apart(a.memory.created, b.memory.created) < RELATED_DAYS
    )


# ── Per-cluster derivations ───────────────────────────────


def extract_key_terms(items: Sequence[_Item], max_terms: int = 5) -> list[str]:
    text = " ".join(f"{item.content} {' '.join(item.tags)}" for item in items)
    words = [word for word in _NON_WORD.sub(" ", text.lower()).split() if len(word) > 3]
    return [word for word, _ in Counter(words).most_common(max_terms)]


def dominant_category(items: Sequence[_Item]) -> str:
    return Counter(item.category for item in items).most_common(1)[0][0]


def _single_theme(item: _Item) -> str:
    if item.tags:
        return _capitalize(item.tags[0])
    return _NON_WORD.sub("", " ".join(item.content.split(" ")[:3]))


def cluster_theme(items: Sequence[_Item]) -> str:
    if len(items) == 1:
        return _single_theme(items[0])
    common = [tag for tag in items[0].tags if all(tag in item.tags for item in items)]
    if common:
        return _capitalize(common[0])
    return f"{_capitalize(dominant_category(items))} Cluster"


def _excerpt(content: str, expanded_terms: list[str]) -> str:
    if not expanded_terms:
        return content[:100] + "..." if len(content) > 100 else content
    sentences = [s for s in _SENTENCE_SPLIT.split(content) if len(s.strip()) > 10]
    relevant = [s for s in sentences if any(term in s.lower() for term in expanded_terms)]
    if relevant:
        return ". ".join(relevant).strip() + "."
    return content[:120] + "..." if len(content) > 120 else content


def synthesize(items: Sequence[_Item], theme: str, query: str = "") -> str:
    if not items:
        return ""
    if len(items) == 1:
        return items[0].content

    expanded_terms = expand_search_terms(query) if query else []
    by_category: dict[str, list[_Item]] = {}
    for item in items:
        by_category.setdefault(item.category, []).append(item)

    lines = [theme.upper(), ""]
    for category, members in by_category.items():
        if len(members) == 1:
            lines += [f"- {category.upper()}: {members[0].content}", ""]
            continue
        lines.append(f"- {category.upper()}:")
        for index, member in enumerate(members, start=1):
            lines.append(f"  {index}. {_excerpt(member.content, expanded_terms)}")
        lines.append("")

    tags = list(dict.fromkeys(tag for item in items for tag in item.tags))
    if tags:
        lines.append(f"Tags: {', '.join(tags[:8])}")

    dates = [item.memory.created for item in items]
    oldest, newest = min(dates), max(dates)
    if oldest != newest:
        lines.append(f"Timespan: {oldest.date().isoformat()} - {newest.date().isoformat()}")
    else:
        lines.append(f"Created: {oldest.date().isoformat()}")

    return "\n".join(lines).strip()


def cluster_relevance(items: Sequence[_Item], query: str, now: datetime) -> float:
    """Multi-pass match score for a cluster, normalized into [0, 1]."""
    if not query or not query.strip() or query == "*":
        return 1.0

    expanded_terms = expand_search_terms(query)
    terms = [term for term in query.lower().split() if len(term) > 1]

    total = 0.0
    possible = 0.0
    for item in items:
        content = item.content.lower()
        tags = " ".join(item.tags).lower()
        category = item.category.lower()
        words = content.split()

        for term in terms:
            total += 15 * len(re.findall(rf"\b{re.escape(term)}\b", content))
            if term in tags:
                total += 20
            if term in category:
                total += 12
            possible += 47

        for term in expanded_terms:
            if term in terms:
                continue
            if term in content:
                total += 8
            if term in tags:
                total += 10
            possible += 18

        for term in terms:
            if len(term) > 3:
                for word in words:
                    if len(word) <= 3:
                        continue
                    if word in term or term in word:
                        total += 3
                    if string_similarity(word, term) > 0.7:
                        total += 5
            possible += 8

        days = (now - item.memory.created).total_seconds() / SECONDS_PER_DAY
        if days < 1:
            total += 15
        elif days < 7:
            total += 10
        elif days < 30:
            total += 5
        total += CATEGORY_RELEVANCE_BONUS.get(item.category, 0.0)
        possible += 20

    if len(items) > 1:
        total += min(len(items) * 2, 10)
        possible += 10

    return min(total / max(possible, 1.0), 1.0)


# ── Entry point ───────────────────────────────────────────


def cluster_memories(
    memories: Sequence[Memory],
    query: str,
    threshold: float = DEFAULT_THRESHOLD,
    now: datetime | None = None,
) -> list[Cluster]:
    """Group memories greedily by similarity and return clusters by descending relevance."""
    if not memories:
        return []
    now = now or utc_now()
    items = [_Item.of(memory) for memory in memories]

    if len(items) == 1:
        return [
            Cluster(
                theme=_single_theme(items[0]),
                memories=[items[0].memory],
                key_terms=extract_key_terms(items),
                synthesized_content=items[0].content,
                relevance_score=cluster_relevance(items, query, now),
                category=items[0].category,
            )
        ]

    matrix = similarity_matrix(items)
    visited: set[int] = set()
    clusters: list[Cluster] = []
    for i, seed in enumerate(items):
        if i in visited:
            continue
        visited.add(i)
        members = [seed]
        for j in range(i + 1, len(items)):
            if j not in visited and _related(seed, items[j], matrix[i][j], threshold):
                members.append(items[j])
                visited.add(j)

        theme = cluster_theme(members)
        clusters.append(
            Cluster(
                theme=theme,
                memories=[member.memory for member in members],
                key_terms=extract_key_terms(members),
                synthesized_content=synthesize(members, theme, query),
                relevance_score=cluster_relevance(members, query, now),
                category=dominant_category(members),
            )
        )

    return sorted(clusters, key=lambda c: c.relevance_score, reverse=True)
