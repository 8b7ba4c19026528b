"""Review aggregation across platforms."""

from reputation.modules.reviews.aggregator import ReviewAggregator, empty_summary

__all__ = [
    "ReviewAggregator",
    "empty_summary",
]
