"""Read path: query analysis, hybrid scoring, ranking and clustering.

    query     QueryAnalysis from a raw query string
    scoring   five scores per memory + WeightPolicy
    ranking   threshold, fallback, dedup, normalization
    engine    SearchEngine tying the above to the store and gateway
    clusters  thematic grouping, independent of ranking
"""

from mnemo.search.clusters import Cluster, cluster_memories
from mnemo.search.engine import Answer, SearchEngine
from mnemo.search.query import QueryAnalysis, analyze_query
from mnemo.search.ranking import RankedResult
from mnemo.search.scoring import WeightPolicy

__all__ = [
    "Answer",
    "Cluster",
    "QueryAnalysis",
    "RankedResult",
    "SearchEngine",
    "WeightPolicy",
    "analyze_query",
    "cluster_memories",
]
