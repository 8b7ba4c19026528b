"""Application entry point for the Online Reputation Analyzer."""

import logging
import os
from pathlib import Path
from typing import Any, Iterable, Optional

import yaml
from dotenv import load_dotenv
from sqlalchemy.exc import SQLAlchemyError

from reputation.exceptions import AggregateFailure, ValidationError
from reputation.integrations.llm_client import LLMClient, LLMConfig
from reputation.integrations.page_fetcher import PageFetcher
from reputation.integrations.review_sources import default_sources
from reputation.modules.analysis import CompanyResolver, ComprehensiveAnalysisOrchestrator
from reputation.modules.recommendations import RecommendationEngine
from reputation.modules.reviews import ReviewAggregator
from reputation.modules.sentiment import SentimentResult, SentimentScorer
from reputation.modules.seo import SEOScorer
from reputation.modules.types import ReviewCollection, ReviewRecord, SEOResult
from reputation.store import Store
from reputation.utils.resilience import default_tracker
from reputation.utils.validators import require_company_name

logger = logging.getLogger(__name__)


class ReputationApp:
    """Central application class that wires together every component.

    Usage::

        app = ReputationApp()
        app.initialize()
        result = await app.comprehensive_analysis("Acme Coffee", "Austin, TX")
        await app.close()
    """

    def __init__(
        self,
        config_path: str = "config/settings.yaml",
        env_path: str = ".env",
    ):
        self._config_path = config_path
        self._env_path = env_path
        self.config: dict[str, Any] = {}
        self._initialized = False
        self._database_ready = False

        self.store: Optional[Store] = None
        self.scorer: Optional[SentimentScorer] = None
        self.seo_scorer: Optional[SEOScorer] = None
        self.engine: Optional[RecommendationEngine] = None
        self.aggregator: Optional[ReviewAggregator] = None
        self.resolver: Optional[CompanyResolver] = None
        self.orchestrator: Optional[ComprehensiveAnalysisOrchestrator] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        """Load configuration and environment, initialise the DB, build components."""
        if self._initialized:
            return

        env_file = Path(self._env_path)
        if env_file.exists():
            load_dotenv(env_file)
            logger.info("Loaded environment from %s", self._env_path)

        self.config = self._load_config()

        data_dir = self.config.get("app", {}).get("data_dir", "")
        if data_dir:
            Path(data_dir).mkdir(parents=True, exist_ok=True)

        from reputation.database import init_db
        db_cfg = self.config.get("database", {})
        try:
            init_db(
                database_url=os.getenv("DATABASE_URL") or db_cfg.get("url"),
                echo=db_cfg.get("echo", False),
            )
            self._database_ready = True
        except SQLAlchemyError as exc:
            # Analyses still run without storage; they just are not cached.
            logger.error("Database initialisation failed: %s", exc)

        self._build_components()
        self._initialized = True
        logger.info("ReputationApp initialised.")

    def _load_config(self) -> dict[str, Any]:
        """Load the YAML configuration file."""
        config_file = Path(self._config_path)
        if not config_file.exists():
            logger.warning("Config file not found: %s; using defaults.", self._config_path)
            return {}
        with open(config_file, "r", encoding="utf-8") as fh:
            config = yaml.safe_load(fh) or {}
        logger.info("Configuration loaded from %s", self._config_path)
        return config

    def _build_components(self) -> None:
        analysis_cfg = self.config.get("analysis", {})
        seo_cfg = self.config.get("seo", {})
        fetcher_kwargs = {"request_timeout": seo_cfg.get("request_timeout", 15)}
        if seo_cfg.get("user_agent"):
            fetcher_kwargs["user_agent"] = seo_cfg["user_agent"]

        self.store = Store()
        self.scorer = SentimentScorer()
        self.seo_scorer = SEOScorer(
            PageFetcher(**fetcher_kwargs),
            check_robots=seo_cfg.get("check_robots", True),
        )
        self.engine = RecommendationEngine(
            client=LLMClient(LLMConfig.from_settings(self.config.get("llm", {})))
        )
        self.aggregator = ReviewAggregator(
            self.store,
            self.engine,
            scorer=self.scorer,
            sources=default_sources(self.config.get("review_sources", {})),
            tracker=default_tracker,
        )
        self.resolver = CompanyResolver(self.store, default_tracker)
        self.orchestrator = ComprehensiveAnalysisOrchestrator(
            self.store,
            self.seo_scorer,
            self.aggregator,
            self.engine,
            resolver=self.resolver,
            freshness_minutes=analysis_cfg.get("freshness_minutes", 60),
            branch_timeout=analysis_cfg.get("branch_timeout_seconds", 30),
            platforms=analysis_cfg.get("platforms"),
            tracker=default_tracker,
        )

    async def close(self) -> None:
        """Release HTTP sessions held by the fetcher and review sources."""
        if self.seo_scorer is not None:
            await self.seo_scorer.close()
        if self.aggregator is not None:
            for source in self.aggregator.sources.values():
                await source.close()

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            raise RuntimeError("Call initialize() before using the application.")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def comprehensive_analysis(
        self,
        company_name: str,
        location: str = "",
        website: str = "",
        branch_timeout: Optional[float] = None,
    ) -> dict[str, Any]:
        """Run the full analysis and return the response dict.

        Raises:
            ValidationError: If *company_name* is blank.
            AggregateFailure: If the analysis could not be produced at all.
        """
        name = require_company_name(company_name)
        self._ensure_initialized()
        try:
            analysis = await self.orchestrator.run_analysis(
                name, (location or "").strip(), (website or "").strip(),
                branch_timeout=branch_timeout,
            )
        except (ValidationError, AggregateFailure):
            raise
        except Exception as exc:
            raise AggregateFailure(f"Analysis failed: {exc}") from exc
        return analysis.to_dict()

    async def score_seo(self, company_name: str, website: str = "") -> SEOResult:
        name = require_company_name(company_name)
        self._ensure_initialized()
        return await self.seo_scorer.score(name, website)

    async def collect_reviews(
        self,
        company_name: str,
        location: str = "",
        platforms: Optional[Iterable[str]] = None,
    ) -> ReviewCollection:
        name = require_company_name(company_name)
        self._ensure_initialized()
        return await self.aggregator.collect(name, location, platforms)

    def classify_sentiment(self, text: str) -> SentimentResult:
        scorer = self.scorer or SentimentScorer()
        return scorer.classify(text)

    async def search_companies(self, query: str) -> list[dict[str, Any]]:
        self._ensure_initialized()
        return await self.resolver.search(query)

    async def stored_reviews(self, company_name: str, limit: int = 100) -> list[ReviewRecord]:
        self._ensure_initialized()
        return await self.store.get_stored_reviews(company_name, limit=limit)

    async def analysis_history(self, company_name: str, limit: int = 10) -> list[dict[str, Any]]:
        """Summary rows of past analyses, newest first (empty for unknown companies)."""
        self._ensure_initialized()
        company = await self.store.find_company(company_name)
        if company is None:
            return []
        rows = await self.store.list_analyses(company.id, limit=limit)
        return [
            {
                "id": row.id,
                "created_at": row.created_at.isoformat() if row.created_at else None,
                "overall_score": row.overall_score,
                "seo_score": row.seo_score,
                "sentiment_score": row.sentiment_score,
                "total_reviews": row.total_reviews,
            }
            for row in rows
        ]

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def get_status(self) -> dict[str, dict[str, Any]]:
        """Return health status of storage, AI providers and review sources."""
        self._ensure_initialized()
        status: dict[str, dict[str, Any]] = {}

        if not self._database_ready:
            status["database"] = {"status": "error", "details": "initialisation failed"}
        else:
            try:
                from reputation.database import get_session
                from sqlalchemy import text
                with get_session() as session:
                    session.execute(text("SELECT 1"))
                status["database"] = {"status": "ok", "details": "connected"}
            except SQLAlchemyError as exc:
                status["database"] = {"status": "error", "details": str(exc)}

        usage = self.engine.client.get_usage_summary()
        providers = usage["providers"]
        status["llm"] = {
            "status": "ok" if providers else "warning",
            "details": (
                f"providers: {', '.join(providers) or 'none configured (static fallback)'}; "
                f"{usage['total_requests']} requests, ${usage['total_cost_usd']:.4f}"
            ),
        }

        for name, source in self.aggregator.sources.items():
            status[f"reviews:{name}"] = {
                "status": "ok" if source.is_configured else "warning",
                "details": "configured" if source.is_configured else "credentials missing",
            }

        degraded = default_tracker.snapshot()
        status["degradations"] = {
            "status": "warning" if degraded else "ok",
            "details": ", ".join(f"{k}={v}" for k, v in sorted(degraded.items())) or "none",
        }

        status["config"] = {
            "status": "ok" if self.config else "warning",
            "details": f"{len(self.config)} sections loaded" if self.config else "no config",
        }
        return status
