"""Shared pytest fixtures for the Online Reputation Analyzer tests."""

import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

# Ensure project root is on sys.path so 'reputation' is importable.
_project_root = str(Path(__file__).resolve().parent.parent)
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)


@pytest.fixture(autouse=True)
def _reset_db_engine():
    """Autouse fixture: reset the global DB engine before and after every test.

    This prevents cross-test pollution when tests create their own in-memory
    databases.
    """
    from reputation.database import reset_engine
    reset_engine()
    yield
    reset_engine()


@pytest.fixture()
def tracker():
    """A fresh degradation tracker per test."""
    from reputation.utils.resilience import DegradationTracker
    return DegradationTracker()


@pytest.fixture()
def lexicon():
    """Small deterministic lexicon so sentiment tests do not depend on VADER values."""
    return {
        "great": 3.0,
        "good": 2.0,
        "friendly": 2.0,
        "love": 3.0,
        "bad": -2.5,
        "terrible": -3.0,
        "slow": -1.0,
        "rude": -2.0,
    }


@pytest.fixture()
def scorer(lexicon):
    from reputation.modules.sentiment import SentimentScorer
    return SentimentScorer(lexicon=lexicon)


@pytest.fixture()
def test_db():
    """Provide an in-memory SQLite database with all tables created.

    Yields a database URL string. The engine is automatically torn down
    after the test by the autouse ``_reset_db_engine`` fixture.
    """
    from reputation.database import reset_engine, init_db
    reset_engine()
    db_url = "sqlite:///:memory:"
    init_db(database_url=db_url, echo=False)
    yield db_url


@pytest.fixture()
def mock_llm_client():
    """Return a mock LLMClient that returns canned responses."""
    client = MagicMock()
    client.is_available = True
    client.provider_names = ["openai"]
    client.generate_text = AsyncMock(return_value=(
        "1. Reply to every Google review within 24 hours\n"
        "2. Improve wait times at peak hours\n"
        "3. Showcase five-star reviews on the website\n"
    ))
    client.get_usage_summary = MagicMock(return_value={
        "total_requests": 0,
        "total_cost_usd": 0.0,
    })
    return client


@pytest.fixture()
def mock_store():
    """Store double whose every method succeeds with empty results."""
    store = MagicMock()
    store.find_company = AsyncMock(return_value=None)
    store.create_company = AsyncMock()
    store.save_company = AsyncMock(side_effect=lambda company: company)
    store.search_companies = AsyncMock(return_value=[])
    store.find_recent_analysis = AsyncMock(return_value=None)
    store.save_analysis = AsyncMock(side_effect=lambda analysis, company_id: analysis.timestamp)
    store.save_reviews = AsyncMock(side_effect=lambda reviews, company_id, name: list(reviews))
    store.get_stored_reviews = AsyncMock(return_value=[])
    return store


@pytest.fixture()
def mock_source():
    """Factory for review-source doubles returning canned reviews."""
    def _make(reviews=None, error=None, configured=True):
        source = MagicMock()
        source.is_configured = configured
        if error is not None:
            source.fetch = AsyncMock(side_effect=error)
        else:
            source.fetch = AsyncMock(return_value=list(reviews or []))
        source.close = AsyncMock()
        return source
    return _make
