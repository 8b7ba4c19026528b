"""Domain types shared by the scorers, the aggregator and the orchestrator.

These are plain dataclasses; the SQLAlchemy rows in :mod:`reputation.models`
are only touched by :mod:`reputation.store`.  Every type that is part of the
public response has a ``to_dict``/``from_dict`` pair whose round trip is exact,
which is what lets a cached analysis be replayed byte-for-byte.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from reputation.utils.helpers import clamp_score, parse_datetime


class Platform(str, Enum):
    GOOGLE = "google"
    YELP = "yelp"
    REDDIT = "reddit"
    TRIPADVISOR = "tripadvisor"
    FACEBOOK = "facebook"
    TRUSTPILOT = "trustpilot"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Any) -> "Platform":
        """Map a free-form platform name onto the enum (unknown -> OTHER)."""
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.OTHER


class SentimentLabel(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


# ---------------------------------------------------------------------------
# Reviews
# ---------------------------------------------------------------------------

@dataclass
class ReviewRecord:
    """A single review as fetched from a platform or loaded from storage."""

    platform: Platform
    rating: float
    text: str
    author: str = "Anonymous"
    date: Optional[str] = None
    sentiment: Optional[SentimentLabel] = None
    sentiment_score: Optional[float] = None
    verified: bool = False
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    location: Optional[str] = None
    url: Optional[str] = None
    extra: dict[str, Any] = field(default_factory=dict)

    def dedup_key(self, company_id: Any) -> tuple:
        """Identity used to avoid storing the same review twice."""
        return (company_id, self.platform.value, self.text, self.date)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "platform": self.platform.value,
            "author": self.author,
            "rating": self.rating,
            "text": self.text,
            "date": self.date,
            "sentiment": self.sentiment.value if self.sentiment else None,
            "sentiment_score": self.sentiment_score,
            "verified": self.verified,
            "location": self.location,
            "url": self.url,
        }


@dataclass
class ReviewCollection:
    """Result of fanning out to every requested review platform."""

    company_name: str
    location: str
    reviews: list[ReviewRecord] = field(default_factory=list)
    platforms: list[str] = field(default_factory=list)
    failed_platforms: list[str] = field(default_factory=list)

    @property
    def total_reviews(self) -> int:
        return len(self.reviews)


# ---------------------------------------------------------------------------
# SEO
# ---------------------------------------------------------------------------

@dataclass
class OnPageSignals:
    score: int = 0
    title_exists: bool = False
    title_length: int = 0
    title: str = ""
    meta_description_exists: bool = False
    meta_description_length: int = 0
    meta_description: str = ""
    h1_count: int = 0
    h2_count: int = 0
    heading_structure: str = "Poor"
    images_total: int = 0
    images_with_alt: int = 0
    images_optimized: bool = False
    internal_links: int = 0


@dataclass
class TechnicalSignals:
    score: int = 0
    ssl_certificate: bool = False
    mobile_friendly: bool = False
    sitemap: bool = False
    robots_txt: bool = False
    page_speed: int = 0


@dataclass
class ContentSignals:
    score: int = 0
    keyword_density: float = 0.0
    content_length: int = 0
    readability: str = "Unknown"


@dataclass
class BacklinkSignals:
    # Authority is a stub until a backlink provider is wired in; ``score`` is
    # what the composite uses (neutral 50 while authority is unknown).
    score: int = 50
    count: int = 0
    quality: str = "Unknown"
    domain_authority: int = 0


@dataclass
class SocialSignals:
    score: float = 0.0
    facebook_signal: int = 0
    twitter_signal: int = 0
    linkedin_signal: int = 0


@dataclass
class SEOBreakdown:
    on_page: OnPageSignals = field(default_factory=OnPageSignals)
    technical: TechnicalSignals = field(default_factory=TechnicalSignals)
    content: ContentSignals = field(default_factory=ContentSignals)
    backlinks: BacklinkSignals = field(default_factory=BacklinkSignals)
    social: SocialSignals = field(default_factory=SocialSignals)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SEOBreakdown":
        return cls(
            on_page=OnPageSignals(**data.get("on_page", {})),
            technical=TechnicalSignals(**data.get("technical", {})),
            content=ContentSignals(**data.get("content", {})),
            backlinks=BacklinkSignals(**data.get("backlinks", {})),
            social=SocialSignals(**data.get("social", {})),
        )


@dataclass
class SEOResult:
    overall_score: int
    grade: str
    breakdown: SEOBreakdown
    recommendations: list[str] = field(default_factory=list)
    is_default: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "overall_score": self.overall_score,
            "grade": self.grade,
            "breakdown": self.breakdown.to_dict(),
            "recommendations": list(self.recommendations),
            "is_default": self.is_default,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SEOResult":
        return cls(
            overall_score=data["overall_score"],
            grade=data["grade"],
            breakdown=SEOBreakdown.from_dict(data.get("breakdown", {})),
            recommendations=list(data.get("recommendations", [])),
            is_default=data.get("is_default", False),
        )


# ---------------------------------------------------------------------------
# Sentiment
# ---------------------------------------------------------------------------

@dataclass
class SentimentSummary:
    """Aggregate sentiment statistics over a review set."""

    total_reviews: int
    average_rating: float
    distribution: dict[str, float]
    counts: dict[str, int]
    ai_insights: Any = None
    themes: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)

    @property
    def sentiment_score(self) -> float:
        """0-100 transform of the distribution; negatives weigh 1.5x."""
        positive = self.distribution.get("positive", 0.0)
        negative = self.distribution.get("negative", 0.0)
        return clamp_score(positive - negative * 1.5 + 50)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_reviews": self.total_reviews,
            "average_rating": f"{self.average_rating:.2f}",
            "sentiment_distribution": dict(self.distribution),
            "sentiment_counts": dict(self.counts),
            "ai_insights": self.ai_insights,
            "themes": list(self.themes),
            "recommendations": list(self.recommendations),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SentimentSummary":
        return cls(
            total_reviews=data["total_reviews"],
            average_rating=float(data["average_rating"]),
            distribution=dict(data["sentiment_distribution"]),
            counts=dict(data["sentiment_counts"]),
            ai_insights=data.get("ai_insights"),
            themes=list(data.get("themes", [])),
            recommendations=list(data.get("recommendations", [])),
        )


# ---------------------------------------------------------------------------
# Aggregate root
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ReputationAnalysis:
    """One orchestration run's result.  Never mutated after construction."""

    company_name: str
    location: str
    website: str
    timestamp: datetime
    overall_score: int
    company: dict[str, Any]
    seo: SEOResult
    sentiment: SentimentSummary
    metrics: dict[str, Any]
    recommendations: list[str]
    charts: dict[str, list[dict[str, Any]]]

    def to_dict(self) -> dict[str, Any]:
        """The public response shape."""
        return {
            "company_name": self.company_name,
            "location": self.location,
            "website": self.website,
            "timestamp": self.timestamp.isoformat(),
            "overall_score": self.overall_score,
            "company": self.company,
            "seo": self.seo.to_dict(),
            "sentiment": self.sentiment.to_dict(),
            "metrics": dict(self.metrics),
            "recommendations": list(self.recommendations),
            "charts": {name: list(entries) for name, entries in self.charts.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ReputationAnalysis":
        timestamp = parse_datetime(data["timestamp"])
        if timestamp is None:
            raise ValueError(f"Invalid analysis timestamp: {data['timestamp']!r}")
        return cls(
            company_name=data["company_name"],
            location=data["location"],
            website=data["website"],
            timestamp=timestamp,
            overall_score=data["overall_score"],
            company=data["company"],
            seo=SEOResult.from_dict(data["seo"]),
            sentiment=SentimentSummary.from_dict(data["sentiment"]),
            metrics=dict(data["metrics"]),
            recommendations=list(data["recommendations"]),
            charts={name: list(entries) for name, entries in data["charts"].items()},
        )
