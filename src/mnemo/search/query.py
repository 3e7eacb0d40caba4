"""Query analysis: terms, synonym expansion and query classification.

Every classifier is a lookup over one of the tables below; the tables are the
policy, the functions only count matches.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum


class Intent(str, Enum):
    """What the caller is after, in tie-breaking priority order."""

    FACTUAL = "factual"
    PROCEDURAL = "procedural"
    TEMPORAL = "temporal"
    CONCEPTUAL = "conceptual"
    DIAGNOSTIC = "diagnostic"


class Focus(str, Enum):
    SPECIFIC = "specific"
    BROAD = "broad"
    CONTEXTUAL = "contextual"


class TemporalContext(str, Enum):
    RECENT = "recent"
    HISTORICAL = "historical"
    ANY = "any"


class TechnicalLevel(str, Enum):
    BASIC = "basic"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


STOP_WORDS = frozenset({
    "a", "an", "and", "are", "as", "at", "be", "by", "for", "from", "has", "he", "in", "is", "it",
    "its", "of", "on", "that", "the", "to", "was", "were", "will", "with", "would", "could", "should",
})

SYNONYMS: dict[str, tuple[str, ...]] = {
    # Technical
    "api": ("endpoint", "service", "interface", "rest", "graphql", "webhook"),
    "auth": ("authentication", "authorization", "login", "security", "token", "oauth", "jwt"),
    "db": ("database", "data", "storage", "persistence", "sql", "nosql", "mongo", "postgres"),
    "config": ("configuration", "settings", "setup", "environment", "env", "variables"),
    "deploy": ("deployment", "production", "release", "publish", "build", "ci/cd"),
    "test": ("testing", "spec", "validation", "verify", "unit", "integration", "e2e"),
    "bug": ("error", "issue", "problem", "fix", "debug", "troubleshoot", "exception"),
    "perf": ("performance", "optimization", "speed", "efficiency", "latency", "throughput"),
    "ui": ("interface", "frontend", "component", "design", "user", "experience", "ux"),
    "backend": ("server", "service", "api", "microservice", "architecture"),
    # Business
    "meeting": ("discussion", "call", "conference", "sync", "standup", "review"),
    "project": ("work", "task", "initiative", "feature", "development"),
    "plan": ("strategy", "roadmap", "approach", "timeline", "schedule"),
    "decision": ("choice", "selection", "determination", "resolution", "conclusion"),
    "analysis": ("evaluation", "assessment", "review", "examination", "study"),
    # Actions
    "implement": ("build", "create", "develop", "code", "construct"),
    "learn": ("study", "understand", "research", "explore", "investigate"),
    "solve": ("fix", "resolve", "address", "handle", "tackle"),
    "improve": ("enhance", "optimize", "refactor", "upgrade", "better"),
}

# Lighter table used by cluster relevance
CLUSTER_SYNONYMS: dict[str, tuple[str, ...]] = {
    "api": ("endpoint", "service", "interface", "rest"),
    "auth": ("authentication", "login", "security", "token"),
    "db": ("database", "data", "storage", "persistence"),
    "config": ("configuration", "settings", "setup", "environment"),
    "deploy": ("deployment", "production", "release", "publish"),
    "test": ("testing", "spec", "validation", "verify"),
    "bug": ("error", "issue", "problem", "fix"),
    "perf": ("performance", "optimization", "speed", "efficiency"),
}

INTENT_INDICATORS: dict[Intent, tuple[str, ...]] = {
    Intent.FACTUAL: ("what", "who", "where", "which", "is", "are", "was", "were"),
    Intent.PROCEDURAL: ("how", "why", "when", "steps", "process", "method", "approach", "way"),
    Intent.TEMPORAL: ("recent", "last", "latest", "current", "new", "today", "yesterday", "ago"),
    Intent.CONCEPTUAL: ("concept", "idea", "pattern", "strategy", "design", "architecture", "principle"),
    Intent.DIAGNOSTIC: ("problem", "issue", "error", "bug", "fix", "solve", "debug", "troubleshoot"),
}

CONTEXTUAL_INDICATORS = ("related", "similar", "like", "compared", "versus", "difference", "between")

RECENT_INDICATORS = ("recent", "latest", "new", "current", "today", "yesterday", "this week")
HISTORICAL_INDICATORS = ("old", "previous", "past", "before", "earlier", "last month", "last year")

BASIC_TERMS = ("start", "begin", "intro", "basic", "simple", "easy")
ADVANCED_TERMS = (
    "architecture", "optimization", "scaling", "performance", "security", "enterprise", "production",
)

DOMAIN_KEYWORDS: dict[str, tuple[str, ...]] = {
    "web": ("html", "css", "javascript", "react", "vue", "angular", "frontend", "browser"),
    "backend": ("server", "api", "database", "node", "python", "java", "microservice"),
    "mobile": ("ios", "android", "react-native", "flutter", "mobile", "app"),
    "devops": ("docker", "kubernetes", "ci/cd", "deployment", "infrastructure", "cloud"),
    "data": ("database", "sql", "analytics", "etl", "pipeline", "warehouse"),
    "security": ("auth", "encryption", "vulnerability", "penetration", "security"),
    "design": ("ui", "ux", "design", "prototype", "wireframe", "mockup"),
    "business": ("requirements", "stakeholder", "meeting", "project", "timeline"),
    "testing": ("test", "qa", "automation", "selenium", "jest", "cypress"),
}

_TERM_SPLIT = re.compile(r"[\s\-_,.]+")
_NON_WORD = re.compile(r"[^\w]")


@dataclass(frozen=True)
class QueryAnalysis:
    original: str
    terms: tuple[str, ...]
    expanded_terms: tuple[str, ...]
    intent: Intent
    focus: Focus
    temporal_context: TemporalContext
    technical_level: TechnicalLevel
    domain_hints: tuple[str, ...]
    enhanced_query: str

    @property
    def lowered(self) -> str:
        return self.original.lower()


def extract_terms(query: str) -> list[str]:
    terms: list[str] = []
    for raw in _TERM_SPLIT.split(query.lower()):
        term = _NON_WORD.sub("", raw)
        if len(term) > 2 and term not in STOP_WORDS and term not in terms:
            terms.append(term)
    return terms


def _expand(terms: list[str], table: dict[str, tuple[str, ...]], substring_min: int | None) -> dict[str, None]:
    expanded: dict[str, None] = dict.fromkeys(terms)
    for term in terms:
        if term in table:
            expanded.update(dict.fromkeys(table[term]))
        for key, synonyms in table.items():
            if term in synonyms:
                expanded[key] = None
                expanded.update(dict.fromkeys(synonyms))
            elif substring_min is not None and len(term) > substring_min and (key in term or term in key):
                expanded[key] = None
                expanded.update(dict.fromkeys(synonyms))
    return expanded


def expand_terms(terms: list[str]) -> list[str]:
    """Terms plus their synonym groups, both directions; long terms also match keys by containment."""
    return list(_expand(terms, SYNONYMS, substring_min=6))


def expand_search_terms(query: str) -> list[str]:
    """Looser expansion for cluster relevance: adds 75% prefixes of terms over 4 chars."""
    base = [term for term in query.lower().split() if len(term) > 1]
    expanded = dict.fromkeys(base)
    for term in base:
        if len(term) > 4:
            expanded[term[: -(-len(term) * 3 // 4)]] = None
    expanded.update(_expand(base, CLUSTER_SYNONYMS, substring_min=None))
    return list(expanded)


def detect_intent(query_lower: str) -> Intent:
    best, best_hits = Intent.FACTUAL, 0
    for intent, indicators in INTENT_INDICATORS.items():
        hits = sum(1 for indicator in indicators if indicator in query_lower)
        if hits > best_hits:
            best, best_hits = intent, hits
    return best


def detect_focus(terms: list[str], query_lower: str) -> Focus:
    if len(terms) >= 3 and any(len(term) > 8 for term in terms):
        return Focus.SPECIFIC
    if any(indicator in query_lower for indicator in CONTEXTUAL_INDICATORS):
        return Focus.CONTEXTUAL
    return Focus.BROAD


def detect_temporal_context(query_lower: str) -> TemporalContext:
    if any(indicator in query_lower for indicator in RECENT_INDICATORS):
        return TemporalContext.RECENT
    if any(indicator in query_lower for indicator in HISTORICAL_INDICATORS):
        return TemporalContext.HISTORICAL
    return TemporalContext.ANY


def detect_technical_level(terms: list[str], query_lower: str) -> TechnicalLevel:
    if any(term in query_lower for term in BASIC_TERMS):
        return TechnicalLevel.BASIC
    if any(term in query_lower for term in ADVANCED_TERMS) or len(terms) > 5:
        return TechnicalLevel.ADVANCED
    return TechnicalLevel.INTERMEDIATE


def detect_domains(terms: list[str], query_lower: str) -> list[str]:
    return [
        domain
        for domain, keywords in DOMAIN_KEYWORDS.items()
        if any(keyword in terms or keyword in query_lower for keyword in keywords)
    ]


def build_enhanced_query(
    original: str, expanded_terms: list[str], intent: Intent, domain_hints: list[str]
) -> str:
    """Embedding input only, never shown to the caller."""
    enhanced = original
    if intent is not Intent.FACTUAL:
        enhanced = f"{intent.value} query: {enhanced}"
    if domain_hints:
        enhanced += f" (domains: {', '.join(domain_hints)})"
    lowered = original.lower()
    extra = [term for term in expanded_terms if term not in lowered][:5]
    if extra:
        enhanced += f" related: {', '.join(extra)}"
    return enhanced


def analyze_query(query: str) -> QueryAnalysis:
    original = query.strip()
    lowered = original.lower()
    terms = extract_terms(original)
    expanded = expand_terms(terms)
    intent = detect_intent(lowered)
    domains = detect_domains(terms, lowered)
    return QueryAnalysis(
        original=original,
        terms=tuple(terms),
        expanded_terms=tuple(expanded),
        intent=intent,
        focus=detect_focus(terms, lowered),
        temporal_context=detect_temporal_context(lowered),
        technical_level=detect_technical_level(terms, lowered),
        domain_hints=tuple(domains),
        enhanced_query=build_enhanced_query(original, expanded, intent, domains),
    )
