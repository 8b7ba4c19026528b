"""Tests for SEO signal extraction and scoring."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from reputation.exceptions import FetchError
from reputation.modules.seo import SEOScorer, default_breakdown, default_result, extract_breakdown
from reputation.modules.seo.scorer import (
    ALL_GOOD_MESSAGE,
    build_recommendations,
    compute_overall,
    grade_for,
)
from reputation.modules.types import SEOBreakdown

META = ("Fresh coffee " * 10).strip()

SENTENCE = "We roast small batches of beans every morning for our guests. "
HISTORY = "Acme Coffee has served the city since 1998. "

GOOD_HTML = (
    "<html><head>"
    "<title>Acme Coffee | Fresh Roasts</title>"
    f'<meta name="description" content="{META}">'
    '<meta name="viewport" content="width=device-width, initial-scale=1">'
    "</head><body>"
    "<h1>Welcome to Acme Coffee</h1><h2>Our Roasts</h2>"
    '<img src="/a.jpg" alt="Beans"><img src="/b.jpg" alt="Cup">'
    + "".join(f'<a href="/page-{i}">Page {i}</a>' for i in range(1, 12))
    + '<a href="/sitemap.xml">Sitemap</a>'
    '<a href="https://facebook.com/acme">Facebook</a>'
    '<a href="https://linkedin.com/company/acme">LinkedIn</a>'
    "<p>" + SENTENCE * 28 + HISTORY * 3 + "</p>"
    "</body></html>"
)

BARE_HTML = "<html><body><p>Hello</p></body></html>"


def _fetcher(html=GOOD_HTML, url="https://acme.example/", robots=True, error=None):
    fetcher = MagicMock()
    if error is not None:
        fetcher.fetch_page = AsyncMock(side_effect=error)
    else:
        fetcher.fetch_page = AsyncMock(return_value={"html": html, "status_code": 200, "url": url})
    fetcher.exists = AsyncMock(return_value=robots)
    fetcher.close = AsyncMock()
    return fetcher


class TestGrades:

    @pytest.mark.parametrize("score, grade", [
        (100, "A+"), (90, "A+"), (89, "A"), (80, "A"), (79, "B"),
        (70, "B"), (69, "C"), (60, "C"), (59, "D"), (50, "D"), (49, "F"), (0, "F"),
    ])
    def test_grade_bands(self, score, grade):
        assert grade_for(score) == grade


class TestDefaultResult:

    def test_default_is_neutral(self):
        result = default_result()
        assert result.overall_score == 50
        assert result.grade == "D"
        assert result.is_default is True

    def test_default_recommendations(self):
        recs = default_result().recommendations
        assert len(recs) == 9
        assert recs[0] == "Add a title tag (50-60 characters recommended)"
        assert "Build more high-quality backlinks to improve domain authority" not in recs

    def test_default_breakdown_scores(self):
        breakdown = default_breakdown()
        assert breakdown.on_page.score == 50
        assert breakdown.technical.score == 50
        assert breakdown.content.score == 50
        assert breakdown.backlinks.score == 50
        assert breakdown.social.score == 50.0


class TestExtractBreakdown:

    def test_well_built_page(self):
        breakdown = extract_breakdown(
            GOOD_HTML, "https://acme.example/", "Acme Coffee", has_robots_txt=True
        )
        assert breakdown.on_page.score == 100
        assert breakdown.on_page.h1_count == 1
        assert breakdown.on_page.internal_links == 12
        assert breakdown.on_page.heading_structure == "Good"
        assert breakdown.on_page.images_optimized is True
        assert breakdown.technical.score == 100
        assert breakdown.technical.ssl_certificate is True
        assert breakdown.technical.sitemap is True
        assert breakdown.content.content_length >= 300
        assert 1 <= breakdown.content.keyword_density <= 3
        assert breakdown.content.readability == "Good"
        assert breakdown.content.score == 100
        assert breakdown.social.facebook_signal == 100
        assert breakdown.social.twitter_signal == 0
        assert breakdown.social.linkedin_signal == 30
        assert breakdown.social.score == 13.0
        assert breakdown.backlinks.score == 50
        assert breakdown.backlinks.domain_authority == 0

    def test_bare_page(self):
        breakdown = extract_breakdown(BARE_HTML, "http://acme.example/", "Acme")
        assert breakdown.on_page.score == 0
        assert breakdown.on_page.heading_structure == "Poor"
        assert breakdown.technical.score == 30
        assert breakdown.technical.ssl_certificate is False
        assert breakdown.content.score == 35
        assert breakdown.social.score == 0.0
        assert compute_overall(breakdown) == 24

    def test_long_title_gets_partial_credit(self):
        html = "<html><head><title>" + "x" * 80 + "</title></head><body></body></html>"
        breakdown = extract_breakdown(html, "https://a.example/", "A")
        assert breakdown.on_page.score == 10
        assert breakdown.on_page.title_length == 80
        assert len(breakdown.on_page.title) == 60


class TestRecommendations:

    def test_all_good_message(self):
        breakdown = SEOBreakdown()
        breakdown.on_page.score = 90
        breakdown.technical.score = 90
        breakdown.content.score = 80
        breakdown.backlinks.domain_authority = 60
        assert build_recommendations(breakdown) == [ALL_GOOD_MESSAGE]

    def test_only_backlink_advice_for_good_page(self):
        breakdown = extract_breakdown(
            GOOD_HTML, "https://acme.example/", "Acme Coffee", has_robots_txt=True
        )
        assert build_recommendations(breakdown) == [
            "Build more high-quality backlinks to improve domain authority"
        ]


class TestSEOScorer:

    @pytest.mark.asyncio
    async def test_scores_fetched_page(self):
        fetcher = _fetcher()
        result = await SEOScorer(fetcher).score("Acme Coffee", "https://acme.example/")
        assert result.overall_score == 88
        assert result.grade == "A"
        assert result.is_default is False
        fetcher.exists.assert_awaited_once_with("https://acme.example/robots.txt")

    @pytest.mark.asyncio
    async def test_missing_website_uses_default(self):
        fetcher = _fetcher()
        result = await SEOScorer(fetcher).score("Acme", "")
        assert result.overall_score == 50
        assert result.is_default is True
        fetcher.fetch_page.assert_not_called()

    @pytest.mark.asyncio
    async def test_schemeless_website_uses_default(self):
        fetcher = _fetcher()
        result = await SEOScorer(fetcher).score("Acme", "acme.example")
        assert result.is_default is True
        fetcher.fetch_page.assert_not_called()

    @pytest.mark.asyncio
    async def test_fetch_error_uses_default(self):
        fetcher = _fetcher(error=FetchError("HTTP 500", url="https://acme.example", status_code=500))
        result = await SEOScorer(fetcher).score("Acme", "https://acme.example")
        assert result.overall_score == 50
        assert result.grade == "D"

    @pytest.mark.asyncio
    async def test_robots_probe_can_be_disabled(self):
        fetcher = _fetcher()
        result = await SEOScorer(fetcher, check_robots=False).score(
            "Acme Coffee", "https://acme.example/"
        )
        fetcher.exists.assert_not_called()
        assert result.breakdown.technical.robots_txt is False
        assert result.breakdown.technical.score == 90

    @pytest.mark.asyncio
    async def test_close_closes_fetcher(self):
        fetcher = _fetcher()
        await SEOScorer(fetcher).close()
        fetcher.close.assert_awaited_once()
