"""Company identity resolution with an in-memory fallback when storage is down."""

import logging
from typing import Any, Iterable, Optional

from reputation.exceptions import AggregateFailure, StorageError
from reputation.models import Company
from reputation.store import Store
from reputation.utils.helpers import normalize_company_name, utcnow
from reputation.utils.resilience import DegradationTracker, default_tracker

logger = logging.getLogger(__name__)

DEFAULT_INDUSTRY = "General Business"


def transient_company(name: str, location: str = "", website: str = "") -> Company:
    """An unsaved company (``id`` is None) used when storage is unavailable."""
    return Company(
        id=None,
        name=name,
        name_key=normalize_company_name(name),
        location=location or None,
        website=website or None,
        industry=DEFAULT_INDUSTRY,
        established=None,
        has_website=bool(website),
        review_platforms=[],
        total_reviews=0,
        average_rating=0.0,
        response_rate=0.0,
        last_analyzed=None,
    )


def apply_metrics(
    company: Company, total_reviews: int, average_rating: float, platforms: Iterable[str]
) -> Company:
    """Refresh the rolling metrics in place after an analysis run."""
    company.total_reviews = total_reviews
    company.average_rating = average_rating
    company.review_platforms = sorted(set(company.review_platforms or []) | set(platforms))
    company.last_analyzed = utcnow()
    return company


def company_snapshot(company: Company) -> dict[str, Any]:
    """JSON-safe view of the company embedded in every analysis response."""
    return {
        "id": company.id,
        "name": company.name,
        "location": company.location,
        "website": company.website,
        "industry": company.industry or DEFAULT_INDUSTRY,
        "established": company.established,
        "online_presence": {
            "has_website": bool(company.has_website),
            "review_platforms": list(company.review_platforms or []),
        },
        "metrics": {
            "total_reviews": company.total_reviews or 0,
            "average_rating": company.average_rating or 0.0,
            "response_rate": company.response_rate or 0.0,
        },
        "last_analyzed": company.last_analyzed.isoformat() if company.last_analyzed else None,
    }


class CompanyResolver:
    """Find or create the company an analysis is about."""

    def __init__(self, store: Store, tracker: Optional[DegradationTracker] = None):
        self.store = store
        self.tracker = tracker or default_tracker

    async def resolve(self, name: str, location: str = "", website: str = "") -> Company:
        """Return the stored company, creating it if needed.

        Missing website and location are filled in locally; the caller saves
        the company once at the end of the run.  When storage fails, an
        unsaved company is returned instead.

        Raises:
            AggregateFailure: If not even a transient company can be built.
        """
        try:
            company = await self.store.find_company(name)
            if company is None:
                return await self.store.create_company(name, location, website)
        except StorageError as exc:
            self.tracker.record("resolve_company", exc)
            try:
                return transient_company(name, location, website)
            except Exception as inner:
                raise AggregateFailure(f"Could not establish company identity for {name!r}") from inner

        if website and not company.website:
            company.website = website
            company.has_website = True
        if location and not company.location:
            company.location = location
        return company

    async def search(self, query: str, limit: int = 10) -> list[dict[str, Any]]:
        companies = await self.store.search_companies(query, limit=limit)
        return [
            {"id": c.id, "name": c.name, "location": c.location, "type": "Business"}
            for c in companies
        ]
