"""SEO scorer: weighted composite, letter grade and rule-based advice."""

import logging
from typing import Optional
from urllib.parse import urljoin

from reputation.exceptions import FetchError
from reputation.integrations.page_fetcher import PageFetcher
from reputation.modules.seo.signals import default_breakdown, extract_breakdown
from reputation.modules.types import SEOBreakdown, SEOResult
from reputation.utils.helpers import weighted_score
from reputation.utils.validators import has_scheme

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
WEIGHTS: dict[str, float] = {
    "on_page": 0.30,
    "technical": 0.25,
    "content": 0.25,
    "backlinks": 0.15,
    "social": 0.05,
}

GRADE_BANDS: list[tuple[int, str]] = [
    (90, "A+"),
    (80, "A"),
    (70, "B"),
    (60, "C"),
    (50, "D"),
]

ALL_GOOD_MESSAGE = "Your SEO looks good! Keep maintaining it."


def compute_overall(breakdown: SEOBreakdown) -> int:
    return weighted_score([
        (WEIGHTS["on_page"], breakdown.on_page.score),
        (WEIGHTS["technical"], breakdown.technical.score),
        (WEIGHTS["content"], breakdown.content.score),
        (WEIGHTS["backlinks"], breakdown.backlinks.score),
        (WEIGHTS["social"], breakdown.social.score),
    ])


def grade_for(score: float) -> str:
    for threshold, grade in GRADE_BANDS:
        if score >= threshold:
            return grade
    return "F"


def build_recommendations(breakdown: SEOBreakdown) -> list[str]:
    """Apply the advice rules in their fixed order."""
    recs: list[str] = []
    on_page = breakdown.on_page
    if on_page.score < 80:
        if not on_page.title_exists:
            recs.append("Add a title tag (50-60 characters recommended)")
        if not on_page.meta_description_exists:
            recs.append("Add a meta description (120-160 characters recommended)")
        if on_page.h1_count != 1:
            recs.append("Ensure you have exactly one H1 tag on the page")
        if not on_page.images_optimized:
            recs.append("Add alt text to all images for better SEO")

    technical = breakdown.technical
    if technical.score < 80:
        if not technical.ssl_certificate:
            recs.append("Install SSL certificate (HTTPS) for better security and SEO")
        if technical.page_speed < 80:
            recs.append("Optimize page loading speed - compress images and minify code")
        if not technical.mobile_friendly:
            recs.append("Add viewport meta tag for mobile responsiveness")

    content = breakdown.content
    if content.score < 75:
        if content.content_length < 300:
            recs.append("Increase content length to at least 300 words")
        if content.keyword_density < 1:
            recs.append("Improve keyword density (aim for 1-3%)")

    if breakdown.backlinks.domain_authority < 40:
        recs.append("Build more high-quality backlinks to improve domain authority")

    return recs or [ALL_GOOD_MESSAGE]


def result_for(breakdown: SEOBreakdown, is_default: bool = False) -> SEOResult:
    overall = compute_overall(breakdown)
    return SEOResult(
        overall_score=overall,
        grade=grade_for(overall),
        breakdown=breakdown,
        recommendations=build_recommendations(breakdown),
        is_default=is_default,
    )


def default_result() -> SEOResult:
    """The neutral result (overall 50, grade D)."""
    return result_for(default_breakdown(), is_default=True)


class SEOScorer:
    """Score a company's website across five SEO dimensions.

    Usage::

        scorer = SEOScorer()
        result = await scorer.score("Acme", "https://acme.example")
    """

    def __init__(self, fetcher: Optional[PageFetcher] = None, check_robots: bool = True):
        self.fetcher = fetcher or PageFetcher()
        self.check_robots = check_robots

    async def score(self, company_name: str, website: Optional[str] = None) -> SEOResult:
        """Fetch *website* and score it; unknown or unreachable sites get the default."""
        if not has_scheme(website):
            logger.info("No usable website for %s; using default SEO breakdown", company_name)
            return default_result()

        url = website.strip()
        try:
            page = await self.fetcher.fetch_page(url)
        except FetchError as exc:
            logger.warning("SEO fetch failed for %s: %s", url, exc)
            return default_result()

        has_robots = False
        if self.check_robots:
            has_robots = await self.fetcher.exists(urljoin(page["url"], "/robots.txt"))

        breakdown = extract_breakdown(
            page["html"], page["url"], company_name, has_robots_txt=has_robots
        )
        result = result_for(breakdown)
        logger.info(
            "SEO score for %s (%s): %d (%s)",
            company_name, url, result.overall_score, result.grade,
        )
        return result

    async def close(self) -> None:
        await self.fetcher.close()
