"""Integration tests for the Online Reputation Analyzer.

Covers database setup, module imports, text processing utilities,
configuration loading, the application facade, CLI smoke tests, and
syntax validation of every Python file in the project.
"""

import ast
import importlib
import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

# ---------------------------------------------------------------------------
# Project root (conftest.py already puts it on sys.path)
# ---------------------------------------------------------------------------
PROJECT_ROOT = Path(__file__).resolve().parent.parent


# ===========================================================================
# 1. Database setup
# ===========================================================================
class TestDatabaseSetup:
    """Verify that the database can be initialised with in-memory SQLite."""

    def test_init_db_creates_tables(self, test_db):
        """init_db with in-memory SQLite should create all expected tables."""
        from reputation.database import get_engine
        from sqlalchemy import inspect

        table_names = inspect(get_engine()).get_table_names()
        for table in ("companies", "reviews", "analyses"):
            assert table in table_names, (
                "Missing table: " + table + ". Found: " + str(table_names)
            )

    def test_get_session_context_manager(self, test_db):
        """get_session should yield a usable Session object."""
        from reputation.database import get_session
        from sqlalchemy import text as sa_text

        with get_session() as session:
            row = session.execute(sa_text("SELECT 1")).fetchone()
            assert row is not None
            assert row[0] == 1

    def test_review_identity_constraint(self, test_db):
        from reputation.database import get_session
        from reputation.models import Company, Review
        from sqlalchemy.exc import IntegrityError

        with get_session() as session:
            company = Company(name="Acme", name_key="acme")
            session.add(company)
            session.flush()
            company_id = company.id

        def _row():
            return Review(company_id=company_id, company_name="Acme", platform="google",
                          rating=5.0, text="Great", date="2024-01-01")

        with get_session() as session:
            session.add(_row())
        with pytest.raises(IntegrityError):
            with get_session() as session:
                session.add(_row())


# ===========================================================================
# 2. Module imports
# ===========================================================================
class TestModuleImports:
    """Every public module should import and expose its main classes."""

    @pytest.mark.parametrize("module_path, class_names", [
        ("reputation.models", ["Company", "Review", "Analysis"]),
        ("reputation.modules.sentiment", ["SentimentScorer", "SentimentResult"]),
        ("reputation.modules.seo", ["SEOScorer"]),
        ("reputation.modules.reviews", ["ReviewAggregator"]),
        ("reputation.modules.recommendations", ["RecommendationEngine"]),
        ("reputation.modules.analysis", ["ComprehensiveAnalysisOrchestrator", "CompanyResolver"]),
        ("reputation.integrations.llm_client", ["LLMClient", "LLMConfig"]),
        ("reputation.integrations.page_fetcher", ["PageFetcher"]),
        ("reputation.integrations.review_sources", ["GooglePlacesSource", "YelpSource", "RedditSource"]),
        ("reputation.store", ["Store"]),
        ("reputation.app", ["ReputationApp"]),
    ])
    def test_module_importable(self, module_path, class_names):
        mod = importlib.import_module(module_path)
        for name in class_names:
            assert hasattr(mod, name), module_path + " has no " + name


# ===========================================================================
# 3. Text processing
# ===========================================================================
class TestTextProcessing:

    def test_count_words(self):
        from reputation.utils.text_processing import count_words
        assert count_words("one two  three") == 3
        assert count_words("") == 0

    def test_tokenize(self):
        from reputation.utils.text_processing import tokenize
        assert tokenize("Don't STOP, believing!") == ["don't", "stop", "believing"]

    def test_mention_density(self):
        from reputation.utils.text_processing import calculate_mention_density
        result = calculate_mention_density("Acme Coffee is near Acme Coffee Park", "acme coffee")
        assert result["count"] == 2
        assert result["total_words"] == 7
        assert result["density_pct"] == 28.57

    def test_readability(self):
        from reputation.utils.text_processing import classify_readability
        short = classify_readability("Short one. Another short one!")
        assert short["label"] == "Good"
        assert short["sentence_count"] == 2
        long_sentence = " ".join(["word"] * 25) + "."
        assert classify_readability(long_sentence)["label"] == "Difficult"


# ===========================================================================
# 4. Settings YAML
# ===========================================================================
class TestSettingsYaml:
    """Configuration file should be loadable."""

    def _load(self):
        import yaml
        with open(PROJECT_ROOT / "config" / "settings.yaml") as fh:
            return yaml.safe_load(fh)

    def test_settings_file_exists(self):
        settings_path = PROJECT_ROOT / "config" / "settings.yaml"
        assert settings_path.exists(), "config/settings.yaml not found"

    def test_settings_has_required_sections(self):
        config = self._load()
        for section in ("app", "database", "llm", "analysis", "seo", "review_sources"):
            assert section in config, "Missing config section: " + section

    def test_settings_app_name(self):
        assert self._load()["app"]["name"] == "Online Reputation Analyzer"

    def test_llm_section_builds_config(self):
        from reputation.integrations.llm_client import LLMConfig
        config = LLMConfig.from_settings(self._load()["llm"])
        assert config.primary.model == "gpt-4o-mini"
        assert config.fallback.model == "gemini-2.0-flash"


# ===========================================================================
# 5. Application facade
# ===========================================================================
class TestReputationApp:

    def _app(self, tmp_path, monkeypatch):
        from reputation.app import ReputationApp
        monkeypatch.setenv("DATABASE_URL", "sqlite:///:memory:")
        for key in ("OPENAI_API_KEY", "GEMINI_API_KEY", "GOOGLE_PLACES_API_KEY",
                    "YELP_API_KEY", "REDDIT_CLIENT_ID", "REDDIT_CLIENT_SECRET"):
            monkeypatch.delenv(key, raising=False)
        return ReputationApp(
            config_path=str(tmp_path / "missing.yaml"),
            env_path=str(tmp_path / "missing.env"),
        )

    @pytest.mark.asyncio
    async def test_blank_name_rejected(self, tmp_path, monkeypatch):
        from reputation.exceptions import ValidationError
        app = self._app(tmp_path, monkeypatch)
        with pytest.raises(ValidationError, match="Company name is required"):
            await app.comprehensive_analysis("   ")

    @pytest.mark.asyncio
    async def test_uninitialized_app_refuses_work(self, tmp_path, monkeypatch):
        app = self._app(tmp_path, monkeypatch)
        with pytest.raises(RuntimeError):
            await app.comprehensive_analysis("Acme")

    @pytest.mark.asyncio
    async def test_offline_analysis(self, tmp_path, monkeypatch):
        """No keys and no website: every branch falls back, the run still succeeds."""
        app = self._app(tmp_path, monkeypatch)
        app.initialize()
        try:
            result = await app.comprehensive_analysis("Acme Coffee", "Austin, TX")
        finally:
            await app.close()

        assert result["company_name"] == "Acme Coffee"
        assert result["seo"]["overall_score"] == 50
        assert result["metrics"]["total_reviews"] == 0
        assert result["overall_score"] == 35
        assert result["company"]["id"] is not None
        json.dumps(result)

    @pytest.mark.asyncio
    async def test_second_run_is_cached(self, tmp_path, monkeypatch):
        app = self._app(tmp_path, monkeypatch)
        app.initialize()
        try:
            first = await app.comprehensive_analysis("Acme Coffee")
            with patch.object(app.seo_scorer, "score", new=AsyncMock()) as score:
                second = await app.comprehensive_analysis("Acme Coffee")
                score.assert_not_called()
        finally:
            await app.close()
        assert second == first

    @pytest.mark.asyncio
    async def test_analysis_history(self, tmp_path, monkeypatch):
        app = self._app(tmp_path, monkeypatch)
        app.initialize()
        try:
            assert await app.analysis_history("Acme Coffee") == []
            await app.comprehensive_analysis("Acme Coffee")
            history = await app.analysis_history("Acme Coffee")
        finally:
            await app.close()
        assert len(history) == 1
        assert history[0]["overall_score"] == 35
        assert history[0]["seo_score"] == 50

    def test_status(self, tmp_path, monkeypatch):
        app = self._app(tmp_path, monkeypatch)
        app.initialize()
        status = app.get_status()
        assert status["database"]["status"] == "ok"
        assert status["llm"]["status"] == "warning"
        assert status["reviews:google"]["details"] == "credentials missing"


# ===========================================================================
# 6. CLI commands (smoke test via CliRunner)
# ===========================================================================
class TestCLICommands:
    """CLI help should work for all registered commands."""

    def _get_runner_and_app(self):
        from typer.testing import CliRunner
        from reputation.cli import app
        return CliRunner(), app

    def test_main_help(self):
        runner, cli_app = self._get_runner_and_app()
        result = runner.invoke(cli_app, ["--help"])
        assert result.exit_code == 0
        assert "Online Reputation Analyzer" in result.output

    @pytest.mark.parametrize("command", [
        "analyze",
        "seo",
        "reviews",
        "sentiment",
        "search",
        "history",
        "init-db",
        "status",
    ])
    def test_command_help(self, command):
        runner, cli_app = self._get_runner_and_app()
        result = runner.invoke(cli_app, [command, "--help"])
        assert result.exit_code == 0, (
            "Command '" + command + "' --help failed with exit code "
            + str(result.exit_code) + ": " + result.output
        )

    def test_sentiment_command(self):
        runner, cli_app = self._get_runner_and_app()
        result = runner.invoke(cli_app, ["sentiment", "This place is excellent and wonderful"])
        assert result.exit_code == 0
        assert "positive" in result.output

    def test_sentiment_batch_summary(self):
        runner, cli_app = self._get_runner_and_app()
        result = runner.invoke(cli_app, ["sentiment", "excellent and wonderful", "awful and horrible"])
        assert result.exit_code == 0
        assert "2 texts: 1 positive, 0 neutral, 1 negative" in result.output

    def test_analyze_rejects_blank_name(self):
        runner, cli_app = self._get_runner_and_app()
        result = runner.invoke(cli_app, ["analyze", "  "])
        assert result.exit_code == 1
        assert "Company name is required" in result.output


# ===========================================================================
# 7. All Python files syntax validation
# ===========================================================================
class TestAllPythonFilesSyntax:
    """Every .py file in reputation/ and tests/ should pass ast.parse."""

    def _collect_python_files(self):
        files = []
        for directory in ("reputation", "tests"):
            base = PROJECT_ROOT / directory
            if base.exists():
                for py_file in base.rglob("*.py"):
                    parts = py_file.parts
                    if "venv" in parts or "__pycache__" in parts:
                        continue
                    files.append(py_file)
        return sorted(files)

    def test_all_python_files_parse(self):
        py_files = self._collect_python_files()
        assert len(py_files) > 0, "No Python files found"
        errors = []
        for py_file in py_files:
            try:
                ast.parse(py_file.read_text(encoding="utf-8"))
            except SyntaxError as exc:
                rel = py_file.relative_to(PROJECT_ROOT)
                errors.append(str(rel) + ": " + str(exc))
        if errors:
            msg = "Python syntax errors found in " + str(len(errors)) + " files:\n"
            msg += "\n".join(errors[:20])
            pytest.fail(msg)


# ===========================================================================
# 8. Requirements / key packages importable
# ===========================================================================
class TestRequirementsInstallable:
    """Key packages from requirements.txt should be importable."""

    @pytest.mark.parametrize("package", [
        "typer",
        "rich",
        "sqlalchemy",
        "yaml",  # PyYAML
        "dotenv",  # python-dotenv
        "aiohttp",
        "httpx",
        "bs4",   # beautifulsoup4
        "openai",
        "vaderSentiment",
    ])
    def test_package_importable(self, package):
        try:
            importlib.import_module(package)
        except ImportError:
            pytest.skip("Package not installed: " + package)
