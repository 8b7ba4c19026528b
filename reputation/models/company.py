"""Company SQLAlchemy model: identity, online presence and rolling metrics."""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, Float, Integer, JSON, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from reputation.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Company(Base):
    """A business whose reputation is analyzed."""

    __tablename__ = "companies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    name_key: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    website: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
    industry: Mapped[str] = mapped_column(String(255), default="General Business")
    established: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # Online presence
    has_website: Mapped[bool] = mapped_column(Boolean, default=False)
    review_platforms: Mapped[list] = mapped_column(JSON, default=list)

    # Rolling metrics, refreshed after every analysis
    total_reviews: Mapped[int] = mapped_column(Integer, default=0)
    average_rating: Mapped[float] = mapped_column(Float, default=0.0)
    response_rate: Mapped[float] = mapped_column(Float, default=0.0)

    last_analyzed: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    reviews: Mapped[list["Review"]] = relationship(  # noqa: F821
        back_populates="company", lazy="select"
    )
    analyses: Mapped[list["Analysis"]] = relationship(  # noqa: F821
        back_populates="company", lazy="select"
    )

    def __repr__(self) -> str:
        return f"<Company id={self.id} name={self.name!r} location={self.location!r}>"
