"""SQLAlchemy ORM models. Importing this package registers every table on Base.metadata."""

from reputation.models.company import Company
from reputation.models.review import Review
from reputation.models.analysis import Analysis

__all__ = [
    "Company",
    "Review",
    "Analysis",
]
