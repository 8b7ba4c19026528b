"""Review collection across platforms, persistence, and sentiment summaries."""

import asyncio
import logging
from typing import Iterable, Optional

from reputation.exceptions import NoReviewsError
from reputation.integrations.review_sources import ReviewSource, default_sources
from reputation.modules.recommendations.engine import (
    DEFAULT_INSIGHTS,
    DEFAULT_THEMES,
    STATIC_RECOMMENDATIONS,
    RecommendationEngine,
)
from reputation.modules.sentiment.scorer import SentimentScorer
from reputation.modules.types import (
    ReviewCollection,
    ReviewRecord,
    SentimentLabel,
    SentimentSummary,
)
from reputation.store import Store
from reputation.utils.helpers import round_half_up
from reputation.utils.resilience import DegradationTracker, default_tracker

logger = logging.getLogger(__name__)


def empty_summary() -> SentimentSummary:
    """Summary for a company with no collected reviews (sentiment score 50)."""
    return SentimentSummary(
        total_reviews=0,
        average_rating=0.0,
        distribution={"positive": 0.0, "negative": 0.0, "neutral": 100.0},
        counts={"positive": 0, "negative": 0, "neutral": 0},
        ai_insights=DEFAULT_INSIGHTS,
        themes=list(DEFAULT_THEMES),
        recommendations=list(STATIC_RECOMMENDATIONS),
    )


class ReviewAggregator:
    """Collect reviews from every configured platform and summarize them.

    Usage::

        aggregator = ReviewAggregator(store, engine)
        collection = await aggregator.collect("Acme", "Austin, TX")
        summary = await aggregator.summarize_sentiment(collection.reviews)
    """

    def __init__(
        self,
        store: Store,
        engine: RecommendationEngine,
        scorer: Optional[SentimentScorer] = None,
        sources: Optional[dict[str, ReviewSource]] = None,
        tracker: Optional[DegradationTracker] = None,
    ):
        self.store = store
        self.engine = engine
        self.scorer = scorer or SentimentScorer()
        self.sources = sources if sources is not None else default_sources()
        self.tracker = tracker or default_tracker

    # ------------------------------------------------------------------
    # Collection
    # ------------------------------------------------------------------

    async def _fetch_platform(
        self, name: str, company_name: str, location: str
    ) -> list[ReviewRecord]:
        source = self.sources.get(name)
        if source is None:
            raise LookupError(f"Unknown review platform: {name}")
        if not source.is_configured:
            logger.info("Review platform %s is not configured; skipping", name)
            return []
        return await source.fetch(company_name, location)

    async def collect(
        self,
        company_name: str,
        location: str = "",
        platforms: Optional[Iterable[str]] = None,
    ) -> ReviewCollection:
        """Fetch reviews from each platform concurrently.

        A platform that is unknown, unconfigured, or fails contributes no
        reviews; the error is logged and counted, never raised.
        """
        names = list(platforms) if platforms is not None else list(self.sources)
        results = await asyncio.gather(
            *(self._fetch_platform(name, company_name, location) for name in names),
            return_exceptions=True,
        )

        collection = ReviewCollection(
            company_name=company_name, location=location, platforms=names
        )
        for name, result in zip(names, results):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                self.tracker.record(f"collect_reviews.{name}", result)
                collection.failed_platforms.append(name)
                continue
            collection.reviews.extend(result)

        for review in collection.reviews:
            if review.sentiment is None:
                outcome = self.scorer.classify(review.text)
                review.sentiment = outcome.label
                review.sentiment_score = outcome.score

        logger.info(
            "Collected %d reviews for %s from %s (failed: %s)",
            collection.total_reviews, company_name, names, collection.failed_platforms or "none",
        )
        return collection

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def persist(
        self, reviews: list[ReviewRecord], company_id: int, company_name: str
    ) -> list[ReviewRecord]:
        """Store reviews, reusing existing rows.  Raises StorageError on outage."""
        return await self.store.save_reviews(reviews, company_id, company_name)

    # ------------------------------------------------------------------
    # Summaries
    # ------------------------------------------------------------------

    def label_for(self, review: ReviewRecord) -> SentimentLabel:
        """Stored label when present, otherwise a fresh local classification."""
        if review.sentiment is not None:
            return review.sentiment
        return self.scorer.classify(review.text).label

    async def summarize_sentiment(self, reviews: list[ReviewRecord]) -> SentimentSummary:
        """Counts, distribution and average rating plus the AI corpus narrative.

        Raises:
            NoReviewsError: If *reviews* is empty.
        """
        if not reviews:
            raise NoReviewsError("No reviews provided for analysis")

        insight = (await self.engine.analyze_reviews(reviews)).to_payload()

        counts = {label.value: 0 for label in SentimentLabel}
        for review in reviews:
            counts[self.label_for(review).value] += 1

        total = len(reviews)
        distribution = {
            label: round_half_up(count / total * 100, 1)
            for label, count in counts.items()
        }
        average = round_half_up(sum(r.rating or 0 for r in reviews) / total, 2)

        return SentimentSummary(
            total_reviews=total,
            average_rating=average,
            distribution=distribution,
            counts=counts,
            ai_insights=insight["insights"],
            themes=insight["themes"],
            recommendations=insight["recommendations"],
        )
