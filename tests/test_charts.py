"""Tests for chart projections."""

from datetime import datetime, timezone

from reputation.modules.analysis.charts import (
    AMBER,
    GREEN,
    RED,
    build_charts,
    rating_chart,
    seo_chart,
    sentiment_chart,
    timeline_chart,
)
from reputation.modules.reviews import empty_summary
from reputation.modules.seo import default_result
from reputation.modules.types import Platform, ReviewRecord, SentimentLabel


def _review(rating, date=None, sentiment=None, created_at=None):
    return ReviewRecord(
        platform=Platform.GOOGLE,
        rating=rating,
        text="text",
        date=date,
        sentiment=sentiment,
        created_at=created_at,
    )


class TestRatingChart:

    def test_five_ascending_buckets(self):
        chart = rating_chart([_review(5), _review(4.5), _review(1), _review(2.4)])
        assert [entry["name"] for entry in chart] == [
            "1 Star", "2 Stars", "3 Stars", "4 Stars", "5 Stars",
        ]
        assert [entry["value"] for entry in chart] == [1, 1, 0, 0, 2]
        assert [entry["fill"] for entry in chart] == [RED, RED, AMBER, GREEN, GREEN]

    def test_out_of_range_ratings_dropped(self):
        chart = rating_chart([_review(0), _review(0.2)])
        assert sum(entry["value"] for entry in chart) == 0


class TestSentimentChart:

    def test_order_and_values(self):
        chart = sentiment_chart(empty_summary())
        assert [entry["name"] for entry in chart] == ["Positive", "Neutral", "Negative"]
        assert chart[1]["value"] == 100.0


class TestSeoChart:

    def test_backlinks_use_domain_authority(self):
        chart = seo_chart(default_result())
        assert [entry["value"] for entry in chart] == [50, 50, 50, 50]


class TestTimelineChart:

    def test_groups_by_month_ascending(self):
        reviews = [
            _review(5, "2024-03-10T10:00:00Z", SentimentLabel.POSITIVE),
            _review(1, "2024-01-02T10:00:00Z", SentimentLabel.NEGATIVE),
            _review(3, "2024-03-20", None),
        ]
        assert timeline_chart(reviews) == [
            {"month": "2024-01", "positive": 0, "negative": 1, "neutral": 0},
            {"month": "2024-03", "positive": 1, "negative": 0, "neutral": 1},
        ]

    def test_falls_back_to_created_at(self):
        created = datetime(2023, 12, 5, tzinfo=timezone.utc)
        chart = timeline_chart([_review(4, None, SentimentLabel.POSITIVE, created)])
        assert chart == [{"month": "2023-12", "positive": 1, "negative": 0, "neutral": 0}]

    def test_unparsable_date_excluded(self):
        created = datetime(2023, 12, 5, tzinfo=timezone.utc)
        assert timeline_chart([_review(4, "last week", None, created)]) == []


class TestBuildCharts:

    def test_keys(self):
        charts = build_charts(empty_summary(), [], default_result())
        assert set(charts) == {
            "sentiment_distribution", "rating_distribution", "seo_breakdown", "timeline",
        }
        assert charts["timeline"] == []
