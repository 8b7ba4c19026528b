"""Comprehensive analysis orchestrator.

Runs one reputation analysis for a company:

1. resolve the company identity (stored, or transient when storage is down);
2. return the newest stored analysis if it is still fresh;
3. score SEO and collect reviews concurrently, each bounded by a timeout
   and degraded to its fallback on failure;
4. persist reviews, summarize sentiment, refresh the company's metrics;
5. generate recommendations, compute the composite score and charts;
6. persist the analysis and return it.

Only the company lookup can fail the run; every other collaborator failure
degrades through :func:`~reputation.utils.resilience.best_effort`.  Two runs
for the same company at the same time are not serialized: both compute and
the later save wins.
"""

import asyncio
import logging
from dataclasses import replace
from datetime import timedelta
from typing import Iterable, Optional

from reputation.exceptions import AggregateFailure, ValidationError
from reputation.models import Company
from reputation.modules.analysis.charts import build_charts
from reputation.modules.analysis.company import (
    CompanyResolver,
    apply_metrics,
    company_snapshot,
)
from reputation.modules.recommendations.engine import (
    STATIC_RECOMMENDATIONS,
    RecommendationEngine,
)
from reputation.modules.reviews.aggregator import ReviewAggregator, empty_summary
from reputation.modules.seo.scorer import SEOScorer, default_result
from reputation.modules.types import ReputationAnalysis, ReviewCollection
from reputation.store import Store
from reputation.utils.helpers import utcnow, weighted_score
from reputation.utils.resilience import DegradationTracker, best_effort, default_tracker

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
SEO_WEIGHT = 0.30
SENTIMENT_WEIGHT = 0.40
VOLUME_WEIGHT = 0.30
REVIEW_SATURATION = 100

DEFAULT_FRESHNESS_MINUTES = 60
DEFAULT_BRANCH_TIMEOUT = 30.0


def review_volume_score(total_reviews: int) -> float:
    """0-100, saturating at :data:`REVIEW_SATURATION` reviews."""
    return min(100.0, total_reviews / REVIEW_SATURATION * 100)


def composite_score(seo_score: float, sentiment_score: float, total_reviews: int) -> int:
    score = weighted_score([
        (SEO_WEIGHT, seo_score),
        (SENTIMENT_WEIGHT, sentiment_score),
        (VOLUME_WEIGHT, review_volume_score(total_reviews)),
    ])
    return max(0, min(100, score))


class ComprehensiveAnalysisOrchestrator:
    """Coordinates the SEO, review, sentiment and recommendation components.

    Args:
        store: Persistence layer.
        seo_scorer: Website scorer.
        aggregator: Review collection and sentiment summaries.
        engine: Recommendation generation.
        resolver: Company lookup; built from *store* when omitted.
        freshness_minutes: Age under which a stored analysis is reused.
        branch_timeout: Default per-branch bound for the SEO/review fan-out.
        platforms: Review platforms to query (``None`` means all).
        tracker: Where swallowed failures are counted.
    """

    def __init__(
        self,
        store: Store,
        seo_scorer: SEOScorer,
        aggregator: ReviewAggregator,
        engine: RecommendationEngine,
        resolver: Optional[CompanyResolver] = None,
        freshness_minutes: float = DEFAULT_FRESHNESS_MINUTES,
        branch_timeout: float = DEFAULT_BRANCH_TIMEOUT,
        platforms: Optional[Iterable[str]] = None,
        tracker: Optional[DegradationTracker] = None,
    ):
        self.store = store
        self.seo_scorer = seo_scorer
        self.aggregator = aggregator
        self.engine = engine
        self.tracker = tracker or default_tracker
        self.resolver = resolver or CompanyResolver(store, self.tracker)
        self.freshness = timedelta(minutes=freshness_minutes)
        self.branch_timeout = branch_timeout
        self.platforms = list(platforms) if platforms is not None else None

    async def run_analysis(
        self,
        company_name: str,
        location: str = "",
        website: str = "",
        branch_timeout: Optional[float] = None,
    ) -> ReputationAnalysis:
        """Run (or replay from cache) a comprehensive analysis.

        Raises:
            ValidationError: Passed through from input checks.
            AggregateFailure: On any failure that could not be degraded.
        """
        try:
            return await self._run(company_name, location, website, branch_timeout)
        except (ValidationError, AggregateFailure):
            raise
        except Exception as exc:
            logger.error("Comprehensive analysis failed for %s: %s", company_name, exc, exc_info=True)
            raise AggregateFailure(f"Analysis failed: {exc}") from exc

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _cached(self, company: Company) -> Optional[ReputationAnalysis]:
        if company.id is None:
            return None
        payload = await best_effort(
            "find_recent_analysis",
            self.store.find_recent_analysis(company.id, self.freshness),
            None,
            tracker=self.tracker,
        )
        if payload is None:
            return None
        try:
            return ReputationAnalysis.from_dict(payload)
        except (KeyError, TypeError, ValueError) as exc:
            self.tracker.record("load_cached_analysis", exc)
            return None

    async def _run(
        self,
        company_name: str,
        location: str,
        website: str,
        branch_timeout: Optional[float],
    ) -> ReputationAnalysis:
        company = await self.resolver.resolve(company_name, location, website)

        cached = await self._cached(company)
        if cached is not None:
            logger.info("Returning cached analysis for %s (%s)", company_name, cached.timestamp)
            return cached

        timeout = branch_timeout if branch_timeout is not None else self.branch_timeout
        seo, collection = await asyncio.gather(
            best_effort(
                "seo_branch",
                self.seo_scorer.score(company_name, website),
                default_result(),
                timeout=timeout,
                tracker=self.tracker,
            ),
            best_effort(
                "reviews_branch",
                self.aggregator.collect(company_name, location, self.platforms),
                ReviewCollection(company_name=company_name, location=location),
                timeout=timeout,
                tracker=self.tracker,
            ),
        )

        reviews = collection.reviews
        if reviews and company.id is not None:
            reviews = await best_effort(
                "save_reviews",
                self.aggregator.persist(reviews, company.id, company_name),
                reviews,
                tracker=self.tracker,
            )

        summary = (
            await self.aggregator.summarize_sentiment(reviews) if reviews else empty_summary()
        )

        apply_metrics(
            company,
            summary.total_reviews,
            summary.average_rating,
            {review.platform.value for review in reviews},
        )
        snapshot = company_snapshot(company)
        if company.id is not None:
            await best_effort(
                "save_company", self.store.save_company(company), company, tracker=self.tracker
            )

        recommendations = await best_effort(
            "recommend",
            self.engine.recommend({
                "seo_score": seo.overall_score,
                "sentiment": summary.distribution,
                "review_count": collection.total_reviews,
                "average_rating": summary.average_rating,
            }),
            list(STATIC_RECOMMENDATIONS),
            tracker=self.tracker,
        )

        sentiment_score = summary.sentiment_score
        metrics = {
            "total_reviews": collection.total_reviews,
            "average_rating": summary.average_rating,
            "seo_score": seo.overall_score,
            "sentiment_score": sentiment_score,
            "response_rate": company.response_rate or 0.0,
        }

        analysis = ReputationAnalysis(
            company_name=company_name,
            location=location,
            website=website,
            timestamp=utcnow(),
            overall_score=composite_score(
                seo.overall_score, sentiment_score, collection.total_reviews
            ),
            company=snapshot,
            seo=seo,
            sentiment=summary,
            metrics=metrics,
            recommendations=list(recommendations),
            charts=build_charts(summary, reviews, seo),
        )

        if company.id is not None:
            persisted = await best_effort(
                "save_analysis",
                self.store.save_analysis(analysis, company.id),
                analysis.timestamp,
                tracker=self.tracker,
            )
            if persisted != analysis.timestamp:
                analysis = replace(analysis, timestamp=persisted)

        logger.info(
            "Analysis for %s: overall %d (seo %d, sentiment %.1f, %d reviews)",
            company_name, analysis.overall_score, seo.overall_score,
            sentiment_score, collection.total_reviews,
        )
        return analysis
