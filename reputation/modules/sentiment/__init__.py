"""Lexicon-based sentiment classification of review text."""

from reputation.modules.sentiment.scorer import SentimentResult, SentimentScorer

__all__ = [
    "SentimentResult",
    "SentimentScorer",
]
