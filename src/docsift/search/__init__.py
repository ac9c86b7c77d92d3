"""Search helpers for processed documents."""

from .highlight import highlight_snippet
from .keyword import KeywordIndex, KeywordMatch
from .query import HybridSearchEngine, SearchHit, SearchPage
from .ranker import RankedDocument, fuse_scores
from .semantic import SemanticMatch, SemanticMatcher, cosine_similarity
from .similar import SimilarDocument, SimilarityRecommender

__all__ = [
    "highlight_snippet",
    "KeywordIndex",
    "KeywordMatch",
    "HybridSearchEngine",
    "SearchHit",
    "SearchPage",
    "RankedDocument",
    "fuse_scores",
    "SemanticMatch",
    "SemanticMatcher",
    "cosine_similarity",
    "SimilarDocument",
    "SimilarityRecommender",
]
