"""Persistence for companies, reviews and analyses.

Methods are ``async`` so callers can await them alongside network I/O, but
the work runs synchronously on a short-lived SQLAlchemy session.  Every
SQLAlchemy error is re-raised as :class:`~reputation.exceptions.StorageError`.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, Generator, Iterable, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import DataError, IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from reputation.database import get_session
from reputation.exceptions import StorageError
from reputation.models import Analysis, Company, Review
from reputation.modules.types import (
    Platform,
    ReputationAnalysis,
    ReviewRecord,
    SentimentLabel,
)
from reputation.utils.helpers import normalize_company_name, utcnow

logger = logging.getLogger(__name__)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; everything is stored in UTC.
    if value is None:
        return None
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


_IDENTITY_COLUMNS = (Review.company_id, Review.platform, Review.text, Review.date)


def _identity_filter(key: tuple) -> list:
    """WHERE clauses matching a :meth:`ReviewRecord.dedup_key` (NULL-safe)."""
    return [
        column.is_(None) if value is None else column == value
        for column, value in zip(_IDENTITY_COLUMNS, key)
    ]


def review_to_record(row: Review) -> ReviewRecord:
    return ReviewRecord(
        id=row.id,
        platform=Platform.parse(row.platform),
        author=row.author or "Anonymous",
        rating=row.rating,
        text=row.text,
        date=row.date,
        sentiment=SentimentLabel(row.sentiment) if row.sentiment else None,
        sentiment_score=row.sentiment_score,
        verified=bool(row.verified),
        created_at=_as_utc(row.created_at),
        location=row.location,
        url=row.url,
    )


class Store:
    """SQLAlchemy-backed repository used by the analysis components."""

    @contextmanager
    def _session(self, operation: str) -> Generator[Session, None, None]:
        try:
            with get_session() as session:
                yield session
        except SQLAlchemyError as exc:
            logger.error("Storage operation %s failed: %s", operation, exc)
            raise StorageError(f"{operation} failed: {exc}") from exc

    # ------------------------------------------------------------------
    # Companies
    # ------------------------------------------------------------------

    async def find_company(self, name: str) -> Optional[Company]:
        """Exact (case-insensitive) name match first, then normalised-key match.

        Among several matches the company analyzed most recently wins, then
        the lowest id.
        """
        with self._session("find_company") as session:
            candidates = session.scalars(
                select(Company).where(func.lower(Company.name) == name.strip().lower())
            ).all()
            if not candidates:
                key = normalize_company_name(name)
                if not key:
                    return None
                candidates = session.scalars(
                    select(Company).where(Company.name_key == key)
                ).all()
            if not candidates:
                return None
            if len(candidates) == 1:
                return candidates[0]

            ids = [c.id for c in candidates]
            latest = dict(
                session.execute(
                    select(Analysis.company_id, func.max(Analysis.created_at))
                    .where(Analysis.company_id.in_(ids))
                    .group_by(Analysis.company_id)
                ).all()
            )

        def rank(company: Company) -> tuple:
            last = _as_utc(latest.get(company.id))
            return (last is None, -(last.timestamp()) if last else 0.0, company.id)

        return sorted(candidates, key=rank)[0]

    async def create_company(
        self, name: str, location: str = "", website: str = ""
    ) -> Company:
        company = Company(
            name=name,
            name_key=normalize_company_name(name),
            location=location or None,
            website=website or None,
            has_website=bool(website),
            review_platforms=[],
            total_reviews=0,
            average_rating=0.0,
            response_rate=0.0,
        )
        with self._session("create_company") as session:
            session.add(company)
            session.flush()
        logger.info("Created company %s (id=%s)", name, company.id)
        return company

    async def save_company(self, company: Company) -> Company:
        with self._session("save_company") as session:
            merged = session.merge(company)
            session.flush()
        return merged

    async def search_companies(self, query: str, limit: int = 20) -> list[Company]:
        pattern = f"%{query.strip()}%"
        key_pattern = f"%{normalize_company_name(query)}%"
        with self._session("search_companies") as session:
            return list(
                session.scalars(
                    select(Company)
                    .where(or_(Company.name.ilike(pattern), Company.name_key.like(key_pattern)))
                    .order_by(Company.name, Company.id)
                    .limit(limit)
                ).all()
            )

    # ------------------------------------------------------------------
    # Analyses
    # ------------------------------------------------------------------

    async def find_recent_analysis(
        self, company_id: int, max_age: timedelta
    ) -> Optional[dict[str, Any]]:
        """Payload of the newest analysis if it is younger than *max_age*."""
        with self._session("find_recent_analysis") as session:
            row = session.scalars(
                select(Analysis)
                .where(Analysis.company_id == company_id)
                .order_by(Analysis.created_at.desc(), Analysis.id.desc())
                .limit(1)
            ).first()
            if row is None:
                return None
            created = _as_utc(row.created_at)
            payload = row.payload_json
        if utcnow() - created > max_age:
            return None
        return payload

    async def save_analysis(self, analysis: ReputationAnalysis, company_id: int) -> datetime:
        """Append an analysis row and return its persisted timestamp."""
        row = Analysis(
            company_id=company_id,
            company_name=analysis.company_name,
            location=analysis.location or None,
            website=analysis.website or None,
            overall_score=analysis.overall_score,
            seo_score=analysis.seo.overall_score,
            sentiment_score=analysis.metrics.get("sentiment_score", 0.0),
            total_reviews=analysis.sentiment.total_reviews,
            payload_json=analysis.to_dict(),
            created_at=analysis.timestamp,
        )
        with self._session("save_analysis") as session:
            session.add(row)
        return analysis.timestamp

    async def list_analyses(self, company_id: int, limit: int = 10) -> list[Analysis]:
        with self._session("list_analyses") as session:
            return list(
                session.scalars(
                    select(Analysis)
                    .where(Analysis.company_id == company_id)
                    .order_by(Analysis.created_at.desc(), Analysis.id.desc())
                    .limit(limit)
                ).all()
            )

    # ------------------------------------------------------------------
    # Reviews
    # ------------------------------------------------------------------

    async def save_reviews(
        self, reviews: Iterable[ReviewRecord], company_id: int, company_name: str
    ) -> list[ReviewRecord]:
        """Insert new reviews, reusing rows whose identity key already exists.

        Each review is written in its own transaction; one that the database
        rejects is logged and skipped.  Any other database failure aborts the
        batch with :class:`StorageError`.
        """
        reviews = list(reviews)
        saved: list[ReviewRecord] = []
        for review in reviews:
            try:
                with get_session() as session:
                    row = session.scalars(
                        select(Review).where(*_identity_filter(review.dedup_key(company_id)))
                    ).first()
                    if row is None:
                        row = Review(
                            company_id=company_id,
                            company_name=company_name,
                            platform=review.platform.value,
                            author=review.author,
                            rating=review.rating,
                            text=review.text,
                            date=review.date,
                            sentiment=review.sentiment.value if review.sentiment else None,
                            sentiment_score=review.sentiment_score,
                            location=review.location,
                            url=review.url,
                            verified=review.verified,
                        )
                        session.add(row)
                        session.flush()
                    saved.append(review_to_record(row))
            except (IntegrityError, DataError) as exc:
                logger.warning("Skipping review on %s: %s", review.platform.value, exc)
            except SQLAlchemyError as exc:
                logger.error("Storage operation save_reviews failed: %s", exc)
                raise StorageError(f"save_reviews failed: {exc}") from exc
        logger.info("Persisted %d/%d reviews for company %s", len(saved), len(reviews), company_id)
        return saved

    async def get_stored_reviews(self, company_name: str, limit: int = 100) -> list[ReviewRecord]:
        """Stored reviews for a company, newest review date first."""
        with self._session("get_stored_reviews") as session:
            rows = session.scalars(
                select(Review)
                .where(func.lower(Review.company_name) == company_name.strip().lower())
                .order_by(Review.date.desc(), Review.id.desc())
                .limit(limit)
            ).all()
            return [review_to_record(row) for row in rows]

