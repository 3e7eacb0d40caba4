"""Tests for the hybrid scorer and the ranker."""

from __future__ import annotations

from datetime import timedelta

import pytest

from mnemo.memory.models import Memory, MemoryMetadata
from mnemo.search.query import Focus, TemporalContext, analyze_query
from mnemo.search.ranking import (
    ScoredMemory,
    content_similarity,
    deduplicate,
    rank,
    relevance_threshold,
)
from mnemo.search.scoring import (
    NO_MATCH_LABEL,
    ScoreBreakdown,
    ScoreWeights,
    WeightPolicy,
    combine,
    context_score,
    keyword_score,
    matched_terms,
    metadata_score,
    semantic_score,
    temporal_score,
)

from tests.helpers import T0


def memory(content: str, *, id: str = "m", session: str = "s", days_ago: float = 0, metadata=None) -> Memory:
    return Memory(
        id=id,
        content=content,
        created=T0 - timedelta(days=days_ago),
        session_id=session,
        metadata=metadata,
    )


# ── Scores ────────────────────────────────────────────────


class TestSemanticScore:
    def test_absent_embedding(self):
        assert semantic_score(None, [1.0]) == 0.0
        assert semantic_score([1.0], None) == 0.0

    def test_scaled_cosine(self):
        assert semantic_score([1.0, 2.0], [1.0, 2.0]) == pytest.approx(100.0)

    def test_negative_similarity_clamped(self):
        assert semantic_score([1.0, 0.0], [-1.0, 0.0]) == 0.0


class TestKeywordScore:
    def test_terms_presence_frequency_and_length(self):
        analysis = analyze_query("jwt auth")
        # all terms +40; jwt 15+3+3; auth 15+3+4
        assert keyword_score("chose jwt for auth", analysis) == 83

    def test_exact_phrase_bonus(self):
        analysis = analyze_query("jwt auth")
        with_phrase = keyword_score("jwt auth everywhere", analysis)
        without = keyword_score("auth everywhere with jwt", analysis)
        assert with_phrase - without >= 50

    def test_expanded_terms_count_lower(self):
        analysis = analyze_query("auth")
        assert keyword_score("we rotated the jwt signing token", analysis) == 10

    def test_unrelated_content(self):
        assert keyword_score("lunch was good", analyze_query("deployment pipeline")) == 0


class TestContextScore:
    def test_category_bonus_keyed_by_intent(self):
        analysis = analyze_query("authentication decision")  # factual
        decided = memory("chose jwt", metadata=MemoryMetadata(category="decision"))
        built = memory("chose jwt", metadata=MemoryMetadata(category="implementation"))
        assert context_score(decided, analysis) == 10
        assert context_score(built, analysis) == 5

    def test_domain_hint_in_content_and_metadata(self):
        analysis = analyze_query("auth security")
        tagged = memory("security review", metadata=MemoryMetadata(domain="security"))
        assert context_score(tagged, analysis) == 10 + 15

    def test_without_metadata_only_content_counts(self):
        analysis = analyze_query("how to debug the crash")
        assert context_score(memory("fixed the crash"), analysis) == 8  # "fix"


class TestTemporalScore:
    @pytest.mark.parametrize(
        "context,days,expected",
        [
            (TemporalContext.RECENT, 0.5, 20),
            (TemporalContext.RECENT, 3, 15),
            (TemporalContext.RECENT, 20, 10),
            (TemporalContext.RECENT, 40, 0),
            (TemporalContext.HISTORICAL, 100, 15),
            (TemporalContext.HISTORICAL, 40, 10),
            (TemporalContext.HISTORICAL, 1, 5),
            (TemporalContext.ANY, 0.5, 10),
            (TemporalContext.ANY, 3, 8),
            (TemporalContext.ANY, 20, 5),
            (TemporalContext.ANY, 60, 3),
            (TemporalContext.ANY, 200, 1),
        ],
    )
    def test_decay_shape(self, context, days, expected):
        assert temporal_score(T0 - timedelta(days=days), T0, context) == expected


class TestMetadataScore:
    def test_absent_metadata(self):
        assert metadata_score(None, analyze_query("auth")) == 0.0

    def test_topics_entities_actions(self):
        analysis = analyze_query("auth0 login flow")
        metadata = MemoryMetadata(
            topics=["login", "caching"],
            entities=["Auth0"],
            key_actions=["login"],
            domain="general",
        )
        assert metadata_score(metadata, analysis) == 6 + 8 + 5

    def test_advanced_technology_bonus(self):
        analysis = analyze_query("kubernetes scaling")
        assert metadata_score(MemoryMetadata(domain="technology"), analysis) == 5


class TestMatchedTerms:
    def test_terms_then_expansions(self):
        analysis = analyze_query("auth")
        assert matched_terms("auth via jwt token", analysis) == ["auth", "token", "jwt"]

    def test_no_match_label(self):
        assert matched_terms("lunch", analyze_query("deployment")) == [NO_MATCH_LABEL]


class TestWeightPolicy:
    def test_base_weights(self):
        weights = WeightPolicy().weights_for(analyze_query("caching"))
        assert weights == ScoreWeights()

    def test_domain_hints_shift_weights(self):
        weights = WeightPolicy().weights_for(analyze_query("authentication decision"))
        assert weights.semantic == pytest.approx(0.30)
        assert weights.keyword == pytest.approx(0.25)
        assert weights.context == pytest.approx(0.20)
        assert weights.metadata == pytest.approx(0.15)

    def test_specific_recent_query(self):
        analysis = analyze_query("recent postgres replication configuration")
        assert analysis.focus is Focus.SPECIFIC
        assert analysis.domain_hints == ()
        weights = WeightPolicy().weights_for(analysis)
        assert weights.keyword == pytest.approx(0.30 + 0.10 - 0.05)
        assert weights.temporal == pytest.approx(0.20)

    def test_substring_domain_hint_adds_its_delta(self):
        analysis = analyze_query("latest postgres replication configuration")
        assert analysis.domain_hints == ("testing",)  # "latest" contains "test"
        weights = WeightPolicy().weights_for(analysis)
        assert weights.keyword == pytest.approx(0.30 + 0.10 - 0.05 - 0.05)
        assert weights.metadata == pytest.approx(0.10 + 0.05 + 0.05)

    def test_policy_is_swappable(self):
        keyword_only = WeightPolicy(base=ScoreWeights(0.0, 1.0, 0.0, 0.0, 0.0))
        weights = keyword_only.weights_for(analyze_query("caching"))
        assert combine(ScoreBreakdown(semantic=90, keyword=12), weights) == 12


# ── Ranking ───────────────────────────────────────────────


class TestThreshold:
    def test_focus_bases(self):
        assert relevance_threshold([20, 20], Focus.BROAD) == 10
        assert relevance_threshold([20, 20], Focus.CONTEXTUAL) == 15
        assert relevance_threshold([20, 20], Focus.SPECIFIC) == 25

    def test_variance_raises_floor(self):
        assert relevance_threshold([300, 0, 0, 0], Focus.BROAD) == pytest.approx(22.5)

    def test_empty(self):
        assert relevance_threshold([], Focus.BROAD) == 0.0


class TestDeduplicate:
    def test_identical_content(self):
        assert content_similarity("alpha beta gamma", "alpha beta gamma", ["alpha"]) == pytest.approx(1.0)

    def test_same_session_near_duplicates_dropped(self):
        a = ScoredMemory(memory("fixed cache eviction bug in worker", id="a"), 50)
        b = ScoredMemory(memory("fixed cache eviction bug in worker", id="b"), 49)
        assert [c.memory.id for c in deduplicate([a, b], ["cache"])] == ["a"]

    def test_other_session_kept_when_scores_close(self):
        a = ScoredMemory(memory("fixed cache eviction bug in worker", id="a", session="s1"), 50)
        b = ScoredMemory(memory("fixed cache eviction bug in worker", id="b", session="s2"), 49)
        assert len(deduplicate([a, b], ["cache"])) == 2

    def test_other_session_dropped_when_much_weaker(self):
        a = ScoredMemory(memory("fixed cache eviction bug in worker", id="a", session="s1"), 50)
        b = ScoredMemory(memory("fixed cache eviction bug in worker", id="b", session="s2"), 30)
        assert [c.memory.id for c in deduplicate([a, b], ["cache"])] == ["a"]


class TestRank:
    def test_normalized_sorted_and_limited(self):
        analysis = analyze_query("caching")
        candidates = [
            ScoredMemory(memory(f"distinct note number{i} text{i}", id=f"m{i}", session=f"s{i}"), score)
            for i, score in enumerate([12, 40, 25, 30])
        ]
        results = rank(candidates, analysis, limit=3, used_embeddings=True)

        assert [r.memory.id for r in results] == ["m1", "m3", "m2"]
        assert results[0].relevance_score == 1.0
        assert results[1].relevance_score == pytest.approx(0.75)
        assert all(r.used_embeddings for r in results)

    def test_graceful_fallback(self):
        analysis = analyze_query("caching")
        candidates = [
            ScoredMemory(memory("one", id="a"), 1.0),
            ScoredMemory(memory("two", id="b"), 3.5),
            ScoredMemory(memory("three", id="c"), 0.2),
        ]
        results = rank(candidates, analysis, limit=5, used_embeddings=False)

        assert [r.memory.id for r in results] == ["b", "a"]
        assert results[0].relevance_score == 1.0
        assert results[1].relevance_score == pytest.approx(1.0 / 3.5)

    def test_fallback_floor(self):
        analysis = analyze_query("caching")
        candidates = [ScoredMemory(memory("one", id="a"), 5.0), ScoredMemory(memory("two", id="b"), 0.01)]
        results = rank(candidates, analysis, limit=5, used_embeddings=False)
        assert results[1].relevance_score == 0.1

    def test_fallback_respects_limit(self):
        analysis = analyze_query("caching")
        candidates = [ScoredMemory(memory("one", id="a"), 1.0), ScoredMemory(memory("two", id="b"), 2.0)]
        assert len(rank(candidates, analysis, limit=1, used_embeddings=False)) == 1

    def test_all_zero_scores_tie_at_one(self):
        analysis = analyze_query("caching")
        candidates = [ScoredMemory(memory("one", id="a"), 0.0), ScoredMemory(memory("two", id="b"), 0.0)]
        results = rank(candidates, analysis, limit=5, used_embeddings=False)
        assert [r.relevance_score for r in results] == [1.0, 1.0]

    def test_non_positive_limit(self):
        candidates = [ScoredMemory(memory("one"), 50.0)]
        assert rank(candidates, analyze_query("caching"), limit=0, used_embeddings=False) == []
