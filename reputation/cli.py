"""Typer CLI application for the Online Reputation Analyzer.

Provides commands for the comprehensive analysis and for each of its parts:
SEO scoring, review collection, sentiment classification, and lookups of
stored companies and reviews.
"""

import asyncio
import json
import logging
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from reputation.utils.helpers import truncate_text
from reputation.utils.validators import validate_url

console = Console()
app = typer.Typer(
    name="reputation",
    help="Online Reputation Analyzer -- SEO, reviews and AI insights in one score.",
    add_completion=False,
    no_args_is_help=True,
)


def _setup_logging(verbose: bool = False) -> None:
    """Configure logging level and format."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _run_async(coro):
    """Run an async coroutine from synchronous CLI context."""
    return asyncio.run(coro)


def _get_app():
    """Lazy-import, initialise and return a ReputationApp."""
    from reputation.app import ReputationApp
    instance = ReputationApp()
    instance.initialize()
    return instance


def _with_app(func):
    """Run ``func(app)`` on an initialised app and always close it."""
    async def _runner():
        instance = _get_app()
        try:
            return await func(instance)
        finally:
            await instance.close()
    return _run_async(_runner())


def _score_style(score: float) -> str:
    if score >= 70:
        return "green"
    if score >= 50:
        return "yellow"
    return "red"


def _fail(message: str) -> None:
    console.print("[red]✘[/red] " + message)
    raise typer.Exit(code=1)


def _check_website(website: str) -> None:
    if not website:
        return
    ok, error = validate_url(website)
    if not ok:
        console.print("[yellow]⚠[/yellow] " + error + " The default SEO score will be used.")


def _require_name(name: str) -> str:
    """Validate the company name before any storage is opened."""
    from reputation.exceptions import ValidationError
    from reputation.utils.validators import require_company_name
    try:
        return require_company_name(name)
    except ValidationError as exc:
        _fail(str(exc))


# ------------------------------------------------------------------
# analyze
# ------------------------------------------------------------------
@app.command()
def analyze(
    name: str = typer.Argument(..., help="Company name."),
    location: str = typer.Option("", "--location", "-l", help="City / region."),
    website: str = typer.Option("", "--website", "-w", help="Company website (http/https)."),
    as_json: bool = typer.Option(False, "--json", help="Print the raw JSON response."),
    timeout: Optional[float] = typer.Option(None, "--timeout", "-t", help="Per-branch timeout in seconds."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Run the comprehensive reputation analysis for a company."""
    from reputation.exceptions import AggregateFailure, ValidationError

    _setup_logging(verbose)
    name = _require_name(name)
    _check_website(website)
    try:
        with Progress(SpinnerColumn(), TextColumn("[progress.description]{task.description}"),
                      console=console, transient=True) as progress:
            progress.add_task(description="Analyzing " + name + "...", total=None)
            result = _with_app(
                lambda a: a.comprehensive_analysis(name, location, website, branch_timeout=timeout)
            )
    except ValidationError as exc:
        _fail(str(exc))
    except AggregateFailure as exc:
        _fail("Analysis failed: " + str(exc))

    if as_json:
        console.print_json(json.dumps(result))
        return

    score = result["overall_score"]
    console.print(Panel(
        f"[bold]{result['company_name']}[/bold]  {result['location'] or ''}\n"
        f"Reputation score: [bold {_score_style(score)}]{score}/100[/bold {_score_style(score)}]\n"
        f"Analyzed at {result['timestamp']}",
        title="Reputation Analysis",
    ))

    metrics = result["metrics"]
    table = Table(title="Metrics", show_header=True, header_style="bold magenta")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("SEO score", f"{metrics['seo_score']} ({result['seo']['grade']})")
    table.add_row("Sentiment score", f"{metrics['sentiment_score']:.1f}")
    table.add_row("Total reviews", str(metrics["total_reviews"]))
    table.add_row("Average rating", f"{metrics['average_rating']:.2f}")
    table.add_row("Response rate", f"{metrics['response_rate']}")
    console.print(table)

    dist = result["sentiment"]["sentiment_distribution"]
    console.print(
        f"Sentiment: [green]{dist['positive']}% positive[/green], "
        f"[yellow]{dist['neutral']}% neutral[/yellow], "
        f"[red]{dist['negative']}% negative[/red]"
    )

    console.print("\n[bold]Recommendations[/bold]")
    for i, rec in enumerate(result["recommendations"], 1):
        console.print(f"  {i}. {rec}")


# ------------------------------------------------------------------
# seo
# ------------------------------------------------------------------
@app.command()
def seo(
    name: str = typer.Argument(..., help="Company name."),
    website: str = typer.Option("", "--website", "-w", help="Website to score."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Score a company's website for SEO."""
    from reputation.exceptions import ValidationError

    _setup_logging(verbose)
    name = _require_name(name)
    _check_website(website)
    try:
        result = _with_app(lambda a: a.score_seo(name, website))
    except ValidationError as exc:
        _fail(str(exc))

    label = " (default: no reachable website)" if result.is_default else ""
    console.print(Panel(
        f"SEO score: [bold {_score_style(result.overall_score)}]{result.overall_score}[/bold {_score_style(result.overall_score)}]"
        f"  grade [bold]{result.grade}[/bold]{label}",
        title="SEO: " + name,
    ))
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Dimension", style="cyan")
    table.add_column("Score", justify="right")
    b = result.breakdown
    table.add_row("On-Page", str(b.on_page.score))
    table.add_row("Technical", str(b.technical.score))
    table.add_row("Content", str(b.content.score))
    table.add_row("Backlinks", str(b.backlinks.score))
    table.add_row("Social", str(b.social.score))
    console.print(table)
    for rec in result.recommendations:
        console.print("  • " + rec)


# ------------------------------------------------------------------
# reviews
# ------------------------------------------------------------------
@app.command()
def reviews(
    name: str = typer.Argument(..., help="Company name."),
    location: str = typer.Option("", "--location", "-l", help="City / region."),
    platform: Optional[list[str]] = typer.Option(None, "--platform", "-p", help="Platform (repeatable)."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Collect reviews from the configured platforms."""
    from reputation.exceptions import ValidationError

    _setup_logging(verbose)
    name = _require_name(name)
    try:
        collection = _with_app(lambda a: a.collect_reviews(name, location, platform or None))
    except ValidationError as exc:
        _fail(str(exc))

    table = Table(title=f"Reviews for {name} ({collection.total_reviews})",
                  show_header=True, header_style="bold magenta")
    table.add_column("Platform", style="cyan")
    table.add_column("Rating", justify="right")
    table.add_column("Sentiment")
    table.add_column("Text", max_width=70)
    for review in collection.reviews:
        label = review.sentiment.value if review.sentiment else "-"
        table.add_row(review.platform.value, f"{review.rating:g}", label, truncate_text(review.text, 140))
    console.print(table)
    if collection.failed_platforms:
        console.print("[yellow]⚠[/yellow] Failed platforms: " + ", ".join(collection.failed_platforms))


# ------------------------------------------------------------------
# sentiment
# ------------------------------------------------------------------
@app.command()
def sentiment(
    texts: list[str] = typer.Argument(..., help="One or more texts to classify."),
) -> None:
    """Classify the sentiment of one or more texts."""
    from reputation.modules.sentiment import SentimentScorer

    batch = SentimentScorer().classify_batch(texts)
    for text, result in zip(texts, batch["results"]):
        colour = {"positive": "green", "negative": "red"}.get(result.label.value, "yellow")
        console.print(f"[{colour}]{result.label.value}[/{colour}]  score={result.score}  "
                      f"comparative={result.comparative}  {truncate_text(text, 60)}")
    if len(texts) > 1:
        summary = batch["summary"]
        console.print(
            f"\n{summary['total']} texts: {summary['positive']} positive, "
            f"{summary['neutral']} neutral, {summary['negative']} negative "
            f"(average score {summary['average_score']})"
        )


# ------------------------------------------------------------------
# search / history
# ------------------------------------------------------------------
@app.command()
def search(
    name: str = typer.Argument(..., help="Company name or fragment."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Search stored companies."""
    from reputation.exceptions import StorageError

    _setup_logging(verbose)
    try:
        results = _with_app(lambda a: a.search_companies(name))
    except StorageError as exc:
        _fail("Storage unavailable: " + str(exc))

    if not results:
        console.print("No stored companies match " + repr(name) + ".")
        return
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("ID", justify="right")
    table.add_column("Name", style="cyan")
    table.add_column("Location")
    for row in results:
        table.add_row(str(row["id"]), row["name"], row["location"] or "-")
    console.print(table)


@app.command()
def history(
    name: str = typer.Argument(..., help="Company name."),
    limit: int = typer.Option(20, "--limit", "-n", help="Maximum reviews to show."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """List past analyses and stored reviews for a company."""
    from reputation.exceptions import StorageError

    _setup_logging(verbose)

    async def _load(a):
        return await a.analysis_history(name), await a.stored_reviews(name, limit=limit)

    try:
        analyses, stored = _with_app(_load)
    except StorageError as exc:
        _fail("Storage unavailable: " + str(exc))

    runs = Table(title=f"Analyses: {name}", show_header=True, header_style="bold magenta")
    runs.add_column("When")
    runs.add_column("Overall", justify="right")
    runs.add_column("SEO", justify="right")
    runs.add_column("Sentiment", justify="right")
    runs.add_column("Reviews", justify="right")
    for row in analyses:
        runs.add_row(
            row["created_at"][:16] if row["created_at"] else "-",
            str(row["overall_score"]),
            str(row["seo_score"]),
            f"{row['sentiment_score']:.1f}",
            str(row["total_reviews"]),
        )
    console.print(runs)

    table = Table(title=f"Stored reviews: {name}", show_header=True, header_style="bold magenta")
    table.add_column("Date")
    table.add_column("Platform", style="cyan")
    table.add_column("Rating", justify="right")
    table.add_column("Sentiment")
    table.add_column("Text", max_width=70)
    for review in stored:
        table.add_row(
            (review.date or "-")[:10],
            review.platform.value,
            f"{review.rating:g}",
            review.sentiment.value if review.sentiment else "-",
            truncate_text(review.text, 140),
        )
    console.print(table)


# ------------------------------------------------------------------
# init-db / status
# ------------------------------------------------------------------
@app.command("init-db")
def init_db_command(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Create the database tables."""
    from reputation.database import init_db

    _setup_logging(verbose)
    try:
        init_db()
    except Exception as exc:
        _fail("Database error: " + str(exc))
    console.print("[green]✔[/green] Database tables created.")


@app.command()
def status(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Show storage, AI provider and review source status."""
    _setup_logging(verbose)
    instance = _get_app()
    table = Table(title="Reputation Analyzer Status", show_header=True, header_style="bold magenta")
    table.add_column("Component", style="cyan", min_width=20)
    table.add_column("Status", min_width=10)
    table.add_column("Details", max_width=60)
    icons = {
        "ok": "[green]✔ OK[/green]",
        "warning": "[yellow]⚠ Warning[/yellow]",
        "error": "[red]✘ Error[/red]",
    }
    for component, info in instance.get_status().items():
        table.add_row(component, icons.get(info["status"], info["status"]), info["details"])
    console.print(table)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
