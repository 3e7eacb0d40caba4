"""Content classification for incoming memories.

Indicator tables are plain data; ``category_scores`` is the single scoring
function over them, so each table can be tested on its own.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum


class Category(str, Enum):
    """Memory categories, in tie-breaking order."""

    DISCOVERY = "discovery"
    DECISION = "decision"
    IMPLEMENTATION = "implementation"
    PROBLEM_SOLVING = "problem_solving"
    LEARNING = "learning"
    PLANNING = "planning"
    REFLECTION = "reflection"


CATEGORY_INDICATORS: dict[Category, tuple[str, ...]] = {
    Category.DISCOVERY: (
        "discovered", "found", "realized", "noticed", "learned that", "figured out", "breakthrough",
    ),
    Category.DECISION: (
        "decided", "chose", "selected", "picked", "went with", "concluded", "determined",
    ),
    Category.IMPLEMENTATION: (
        "implemented", "built", "created", "developed", "coded", "added", "integrated",
    ),
    Category.PROBLEM_SOLVING: (
        "fixed", "solved", "resolved", "debugged", "troubleshot", "worked around", "issue",
    ),
    Category.LEARNING: (
        "learned", "understood", "grasped", "studied", "researched", "explored", "investigated",
    ),
    Category.PLANNING: (
        "planning", "will", "going to", "next steps", "roadmap", "strategy", "approach",
    ),
    Category.REFLECTION: (
        "thinking", "considering", "reflecting", "analyzing", "reviewing", "evaluating",
    ),
}

SIGNIFICANCE_TERMS = (
    "architecture", "security", "performance", "scalability",
    "user experience", "critical", "major", "significant",
)

CATEGORY_IMPORTANCE_BOOST: dict[Category, float] = {
    Category.DECISION: 0.2,
    Category.PROBLEM_SOLVING: 0.2,
    Category.DISCOVERY: 0.15,
}

TECHNICAL_THEMES = (
    "authentication", "database", "api", "frontend", "backend", "security", "performance",
    "testing", "deployment", "architecture", "design", "user interface", "user experience",
    "integration", "configuration", "optimization", "debugging", "documentation",
)

_THEME_STOP_WORDS = {"that", "this", "with", "from", "they", "were", "been"}


@dataclass
class ContentAnalysis:
    category: Category
    importance: float
    themes: list[str] = field(default_factory=list)


def category_scores(content: str) -> dict[Category, int]:
    """Count indicator-phrase hits per category."""
    lowered = content.lower()
    return {
        category: sum(1 for phrase in phrases if phrase in lowered)
        for category, phrases in CATEGORY_INDICATORS.items()
    }


def classify(content: str) -> Category:
    """Category with the most hits; first-declared wins ties, no hits means reflection."""
    best = Category.REFLECTION
    best_hits = 0
    for category, hits in category_scores(content).items():
        if hits > best_hits:
            best, best_hits = category, hits
    return best


def importance(content: str, category: Category) -> float:
    lowered = content.lower()
    score = 0.5
    score += 0.1 * sum(1 for term in SIGNIFICANCE_TERMS if term in lowered)
    score += CATEGORY_IMPORTANCE_BOOST.get(category, 0.0)
    if len(content) > 200:
        score += 0.1
    if len(content) > 500:
        score += 0.1
    return min(score, 1.0)


def extract_themes(content: str) -> list[str]:
    lowered = content.lower()
    found = [term for term in TECHNICAL_THEMES if term in lowered]

    counts = Counter(word for word in lowered.split() if len(word) > 4)
    repeated = [
        word
        for word, count in counts.most_common()
        if count > 1 and word not in _THEME_STOP_WORDS
    ][:3]
    return (found + repeated)[:5]


def analyze_content(content: str) -> ContentAnalysis:
    category = classify(content)
    return ContentAnalysis(
        category=category,
        importance=importance(content, category),
        themes=extract_themes(content),
    )


def annotate(content: str, analysis: ContentAnalysis) -> str:
    """Prefix a ``[CATEGORY]`` tag on medium-importance content that doesn't name its category."""
    if analysis.importance > 0.8:
        return content
    if analysis.importance > 0.6 and analysis.category.value not in content.lower():
        return f"[{analysis.category.value.upper()}] {content}"
    return content
