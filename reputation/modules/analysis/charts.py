"""Chart-ready projections of an analysis.

Pure functions of the sentiment summary, the review list and the SEO result;
the output is plain lists of dicts a front end can feed to any chart library.
"""

from collections import defaultdict
from typing import Any, Iterable

from reputation.modules.types import ReviewRecord, SEOResult, SentimentLabel, SentimentSummary
from reputation.utils.helpers import parse_datetime, round_half_up

GREEN = "#10b981"
AMBER = "#f59e0b"
RED = "#ef4444"


def sentiment_chart(summary: SentimentSummary) -> list[dict[str, Any]]:
    dist = summary.distribution
    return [
        {"name": "Positive", "value": dist.get("positive", 0.0), "fill": GREEN},
        {"name": "Neutral", "value": dist.get("neutral", 0.0), "fill": AMBER},
        {"name": "Negative", "value": dist.get("negative", 0.0), "fill": RED},
    ]


def _rating_fill(stars: int) -> str:
    if stars >= 4:
        return GREEN
    if stars >= 3:
        return AMBER
    return RED


def rating_chart(reviews: Iterable[ReviewRecord]) -> list[dict[str, Any]]:
    """Five buckets, 1 to 5 stars.  Ratings outside 1-5 after rounding are dropped."""
    counts = {stars: 0 for stars in range(1, 6)}
    for review in reviews:
        if review.rating is None:
            continue
        stars = round_half_up(review.rating)
        if stars in counts:
            counts[stars] += 1
    return [
        {
            "name": f"{stars} Star" if stars == 1 else f"{stars} Stars",
            "value": count,
            "fill": _rating_fill(stars),
        }
        for stars, count in counts.items()
    ]


def seo_chart(seo: SEOResult) -> list[dict[str, Any]]:
    breakdown = seo.breakdown
    return [
        {"name": "On-Page SEO", "value": breakdown.on_page.score, "fill": "#3b82f6"},
        {"name": "Technical SEO", "value": breakdown.technical.score, "fill": "#8b5cf6"},
        {"name": "Content SEO", "value": breakdown.content.score, "fill": "#ec4899"},
        {"name": "Backlinks", "value": breakdown.backlinks.domain_authority or 0, "fill": AMBER},
    ]


def timeline_chart(reviews: Iterable[ReviewRecord]) -> list[dict[str, Any]]:
    """Per-month sentiment counts, months ascending.

    The review date is used when present (an unparsable one excludes the
    review); otherwise the storage timestamp.  Unlabelled reviews count as
    neutral.
    """
    months: dict[str, dict[str, int]] = defaultdict(
        lambda: {label.value: 0 for label in SentimentLabel}
    )
    for review in reviews:
        when = parse_datetime(review.date) if review.date else review.created_at
        if when is None:
            continue
        label = review.sentiment or SentimentLabel.NEUTRAL
        months[f"{when.year:04d}-{when.month:02d}"][label.value] += 1

    return [
        {
            "month": month,
            "positive": months[month]["positive"],
            "negative": months[month]["negative"],
            "neutral": months[month]["neutral"],
        }
        for month in sorted(months)
    ]


def build_charts(
    summary: SentimentSummary, reviews: list[ReviewRecord], seo: SEOResult
) -> dict[str, list[dict[str, Any]]]:
    return {
        "sentiment_distribution": sentiment_chart(summary),
        "rating_distribution": rating_chart(reviews),
        "seo_breakdown": seo_chart(seo),
        "timeline": timeline_chart(reviews),
    }
