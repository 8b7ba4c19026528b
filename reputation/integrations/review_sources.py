"""Review platform clients: Google Places, Yelp Fusion and Reddit.

Each source turns a company name (and optional location) into a list of
:class:`~reputation.modules.types.ReviewRecord`.  Sources only fetch; the
aggregator classifies sentiment.  Any transport or API failure surfaces as
:class:`~reputation.exceptions.ProviderError`.
"""

import logging
import os
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from reputation.exceptions import ProviderError
from reputation.modules.types import Platform, ReviewRecord
from reputation.utils.helpers import round_half_up
from reputation.utils.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

GOOGLE_TEXTSEARCH_URL = "https://maps.googleapis.com/maps/api/place/textsearch/json"
GOOGLE_DETAILS_URL = "https://maps.googleapis.com/maps/api/place/details/json"
YELP_SEARCH_URL = "https://api.yelp.com/v3/businesses/search"
YELP_REVIEWS_URL = "https://api.yelp.com/v3/businesses/{business_id}/reviews"
REDDIT_TOKEN_URL = "https://www.reddit.com/api/v1/access_token"
REDDIT_API_URL = "https://oauth.reddit.com"

DEFAULT_REDDIT_USER_AGENT = "ORM-Review-Tool/1.0"
REDDIT_TEXT_LIMIT = 1000
REDDIT_COMMENTS_PER_POST = 5


def _epoch_to_iso(value: Any) -> Optional[str]:
    try:
        return datetime.fromtimestamp(float(value), tz=timezone.utc).isoformat()
    except (TypeError, ValueError, OverflowError, OSError):
        return None


class ReviewSource(ABC):
    """Base class: shared HTTP client, rate limiter and error mapping."""

    platform: Platform

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        request_timeout: float = 15.0,
        requests_per_minute: int = 30,
    ):
        self._client = client
        self._owns_client = client is None
        self._timeout = request_timeout
        self._limiter = RateLimiter(requests_per_minute, name=self.platform.value)

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        """True when the credentials this source needs are present."""

    @abstractmethod
    async def fetch(self, company_name: str, location: str = "") -> list[ReviewRecord]:
        """Return the platform's reviews for the company (possibly empty)."""

    def _http(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self._timeout)
            self._owns_client = True
        return self._client

    async def _request(self, method: str, url: str, **kwargs) -> Any:
        """Rate-limited request returning decoded JSON."""
        await self._limiter.acquire()
        try:
            response = await self._http().request(method, url, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as exc:
            raise ProviderError(
                f"{self.platform.value} API returned {exc.response.status_code}",
                provider=self.platform.value,
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise ProviderError(
                f"{self.platform.value} request failed: {exc}",
                provider=self.platform.value,
            ) from exc

    async def close(self) -> None:
        if self._owns_client and self._client is not None and not self._client.is_closed:
            await self._client.aclose()


# ---------------------------------------------------------------------------
# Google Places
# ---------------------------------------------------------------------------

class GooglePlacesSource(ReviewSource):
    """Places text search for the business, then its details (up to 5 reviews)."""

    platform = Platform.GOOGLE

    def __init__(self, api_key: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self._api_key = api_key if api_key is not None else os.getenv("GOOGLE_PLACES_API_KEY", "")

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    async def fetch(self, company_name: str, location: str = "") -> list[ReviewRecord]:
        query = f"{company_name} {location}".strip()
        search = await self._request(
            "GET", GOOGLE_TEXTSEARCH_URL, params={"query": query, "key": self._api_key}
        )
        results = search.get("results") or []
        if not results:
            return []
        place_id = results[0].get("place_id")

        details = await self._request(
            "GET",
            GOOGLE_DETAILS_URL,
            params={
                "place_id": place_id,
                "fields": "name,rating,user_ratings_total,reviews",
                "key": self._api_key,
            },
        )
        raw_reviews = (details.get("result") or {}).get("reviews") or []
        return [
            ReviewRecord(
                platform=self.platform,
                author=r.get("author_name") or "Anonymous",
                rating=float(r.get("rating") or 0),
                text=r.get("text") or "",
                date=_epoch_to_iso(r.get("time")),
                location=location or None,
                url=r.get("author_url"),
                extra={"external_id": f"google-{place_id}-{index}"},
            )
            for index, r in enumerate(raw_reviews)
        ]


# ---------------------------------------------------------------------------
# Yelp
# ---------------------------------------------------------------------------

class YelpSource(ReviewSource):
    """Yelp Fusion business search, then the business's reviews."""

    platform = Platform.YELP

    def __init__(self, api_key: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self._api_key = api_key if api_key is not None else os.getenv("YELP_API_KEY", "")

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    async def fetch(self, company_name: str, location: str = "") -> list[ReviewRecord]:
        headers = {"Authorization": f"Bearer {self._api_key}"}
        search = await self._request(
            "GET",
            YELP_SEARCH_URL,
            headers=headers,
            params={"term": company_name, "location": location or "United States", "limit": 1},
        )
        businesses = search.get("businesses") or []
        if not businesses:
            return []
        business_id = businesses[0].get("id")

        payload = await self._request(
            "GET", YELP_REVIEWS_URL.format(business_id=business_id), headers=headers
        )
        return [
            ReviewRecord(
                platform=self.platform,
                author=(r.get("user") or {}).get("name") or "Anonymous",
                rating=float(r.get("rating") or 0),
                text=r.get("text") or "",
                date=r.get("time_created"),
                location=location or None,
                url=r.get("url"),
                extra={"external_id": f"yelp-{business_id}-{index}"},
            )
            for index, r in enumerate(payload.get("reviews") or [])
        ]


# ---------------------------------------------------------------------------
# Reddit
# ---------------------------------------------------------------------------

def reddit_rating(upvote_ratio: Any) -> int:
    """Map an upvote ratio (0-1, default 0.5) onto a 1-5 star rating."""
    try:
        ratio = float(upvote_ratio)
    except (TypeError, ValueError):
        ratio = 0.5
    return round_half_up(ratio * 4 + 1)


class RedditSource(ReviewSource):
    """Reddit posts mentioning the company, plus their top comments."""

    platform = Platform.REDDIT

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        user_agent: Optional[str] = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self._client_id = client_id if client_id is not None else os.getenv("REDDIT_CLIENT_ID", "")
        self._client_secret = (
            client_secret if client_secret is not None else os.getenv("REDDIT_CLIENT_SECRET", "")
        )
        self._user_agent = user_agent or os.getenv("REDDIT_USER_AGENT") or DEFAULT_REDDIT_USER_AGENT

    @property
    def is_configured(self) -> bool:
        return bool(self._client_id and self._client_secret)

    async def _access_token(self) -> str:
        payload = await self._request(
            "POST",
            REDDIT_TOKEN_URL,
            data={"grant_type": "client_credentials"},
            auth=(self._client_id, self._client_secret),
            headers={"User-Agent": self._user_agent},
        )
        token = payload.get("access_token")
        if not token:
            raise ProviderError("Failed to authenticate with Reddit API", provider="reddit")
        return token

    def _record(self, data: dict, text: str, permalink: str, is_comment: bool) -> ReviewRecord:
        return ReviewRecord(
            platform=self.platform,
            author=data.get("author") or "Anonymous",
            rating=float(reddit_rating(data.get("upvote_ratio", 0.5))),
            text=text[:REDDIT_TEXT_LIMIT],
            date=_epoch_to_iso(data.get("created_utc")),
            url=f"https://reddit.com{permalink}" if permalink else None,
            extra={
                "external_id": f"reddit-{'comment-' if is_comment else ''}{data.get('id')}",
                "subreddit": data.get("subreddit"),
                "upvotes": data.get("ups") or 0,
                "is_comment": is_comment,
            },
        )

    async def fetch(self, company_name: str, location: str = "") -> list[ReviewRecord]:
        token = await self._access_token()
        headers = {"Authorization": f"Bearer {token}", "User-Agent": self._user_agent}
        search = await self._request(
            "GET",
            f"{REDDIT_API_URL}/search",
            headers=headers,
            params={"q": company_name, "type": "link", "sort": "relevance", "limit": 25},
        )
        posts = ((search.get("data") or {}).get("children")) or []

        records: list[ReviewRecord] = []
        for post in posts:
            data = post.get("data") or {}
            permalink = data.get("permalink") or ""
            text = data.get("selftext") or data.get("title") or ""
            if text:
                records.append(self._record(data, text, permalink, is_comment=False))
            if data.get("num_comments", 0) > 0 and permalink:
                records.extend(await self._top_comments(permalink, headers, data))
        return records

    async def _top_comments(self, permalink: str, headers: dict, post: dict) -> list[ReviewRecord]:
        try:
            listing = await self._request("GET", f"{REDDIT_API_URL}{permalink}.json", headers=headers)
        except ProviderError as exc:
            logger.debug("Skipping comments for %s: %s", permalink, exc)
            return []
        if not isinstance(listing, list) or len(listing) < 2:
            return []
        children = ((listing[1] or {}).get("data") or {}).get("children") or []

        comments: list[ReviewRecord] = []
        for child in children[:REDDIT_COMMENTS_PER_POST]:
            data = dict(child.get("data") or {})
            body = data.get("body") or ""
            if not body or body.startswith("[deleted]"):
                continue
            data.setdefault("subreddit", post.get("subreddit"))
            comments.append(self._record(data, body, permalink, is_comment=True))
        return comments


def default_sources(settings: Optional[dict[str, Any]] = None) -> dict[str, ReviewSource]:
    """Build every registered source from the ``review_sources`` settings section."""
    settings = settings or {}
    common = {
        "request_timeout": float(settings.get("request_timeout", 15)),
        "requests_per_minute": int(settings.get("requests_per_minute", 30)),
    }
    return {
        Platform.GOOGLE.value: GooglePlacesSource(**common),
        Platform.YELP.value: YelpSource(**common),
        Platform.REDDIT.value: RedditSource(
            user_agent=settings.get("reddit_user_agent"), **common
        ),
    }
