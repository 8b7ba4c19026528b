"""Recommendation generation and AI review insights."""

from reputation.modules.recommendations.engine import (
    STATIC_RECOMMENDATIONS,
    HeuristicInsight,
    ParsedInsight,
    RecommendationEngine,
    StructuredInsight,
    parse_response,
)

__all__ = [
    "STATIC_RECOMMENDATIONS",
    "HeuristicInsight",
    "ParsedInsight",
    "RecommendationEngine",
    "StructuredInsight",
    "parse_response",
]
