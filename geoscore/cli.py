"""Typer CLI for GEO Score.

Commands:
    geoscore analyze URL   score a single page
    geoscore report URL    score up to 20 pages of a site and build an action plan
    geoscore serve         run the HTTP API
"""

import asyncio

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from geoscore.core.logging import configure_logging
from geoscore.engines.base import ActionItem, ErrorReport, PageAnalysis, SiteReport

console = Console()
app = typer.Typer(
    name="geoscore",
    help="GEO Score -- how ready is your site for AI crawlers and answer engines?",
    add_completion=False,
    no_args_is_help=True,
)

PRIORITY_STYLE = {"high": "red", "medium": "yellow", "low": "cyan"}
LEVEL_STYLE = {"critical": "red", "poor": "yellow", "average": "cyan", "good": "green"}


def _setup_logging(verbose: bool = False) -> None:
    configure_logging(level="DEBUG" if verbose else "WARNING", fmt="console")


def _run_async(coro):
    """Run an async coroutine from synchronous CLI context."""
    return asyncio.run(coro)


def _get_service():
    """Lazy-import and return an AnalysisService instance."""
    from geoscore.services.analyzer import AnalysisService
    return AnalysisService()


def _with_spinner(description: str, coro, enabled: bool = True):
    if not enabled:
        return _run_async(coro)
    with Progress(SpinnerColumn(), TextColumn("[progress.description]{task.description}"), console=console) as progress:
        progress.add_task(description=description, total=None)
        return _run_async(coro)


def _score_style(score: int) -> str:
    if score >= 70:
        return "green"
    if score >= 50:
        return "cyan"
    if score >= 30:
        return "yellow"
    return "red"


def _print_error(report: ErrorReport) -> None:
    console.print(f"[red]✘ {report.code}[/red]: {report.message}")
    if report.remediation_url:
        console.print(f"See {report.remediation_url}")


def _print_page(analysis: PageAnalysis, verbose: bool) -> None:
    style = _score_style(analysis.score)
    console.print(Panel(
        f"[bold {style}]{analysis.score}/100[/bold {style}]",
        title=f"GEO Score: {analysis.url}",
        expand=False,
    ))

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Category", style="cyan", min_width=22)
    table.add_column("Score", justify="right")
    table.add_column("Issues", justify="right")
    for result in analysis.category_results:
        table.add_row(
            result.category.value.replace("_", " ").title(),
            f"{result.score}/{result.max_score}",
            str(len(result.issues)),
        )
    console.print(table)

    recommendations = analysis.recommendations if verbose else analysis.recommendations[:3]
    if recommendations:
        console.print("\n[bold]Recommendations[/bold]")
    for rec in recommendations:
        color = PRIORITY_STYLE[rec.priority.value]
        console.print(f"  [{color}]{rec.priority.value.upper():<6}[/{color}] {rec.action}")
    hidden = len(analysis.recommendations) - len(recommendations)
    if hidden > 0:
        console.print(f"  ... {hidden} more (use --verbose)")


def _print_tier(title: str, items: list[ActionItem]) -> None:
    if not items:
        return
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("Action", max_width=70)
    table.add_column("Pages", justify="right")
    table.add_column("Time")
    table.add_column("Impact", justify="right")
    for item in items:
        table.add_row(item.action, str(item.affected_pages), item.estimated_time, "★" * item.impact)
    console.print(table)


def _print_report(report: SiteReport) -> None:
    summary = report.summary
    level_color = LEVEL_STYLE[summary.score_level.value]
    console.print(Panel(
        f"Average [bold]{summary.average_score}/100[/bold] "
        f"([{level_color}]{summary.score_level.value}[/{level_color}])\n"
        f"Range {summary.lowest_score}-{summary.highest_score}, "
        f"potential {summary.potential_score} (+{summary.possible_gain})\n"
        f"Pages: {report.pages_successful} analyzed, {report.pages_failed} failed "
        f"via {report.discovery_method.value}",
        title=f"GEO Report: {report.url}",
        expand=False,
    ))

    if report.problem_pages:
        table = Table(title="Problem Pages", show_header=True, header_style="bold magenta")
        table.add_column("URL", style="cyan", max_width=60)
        table.add_column("Score", justify="right")
        table.add_column("Main issues", max_width=60)
        for page in report.problem_pages:
            table.add_row(page.url, str(page.score), "; ".join(page.main_issues))
        console.print(table)

    plan = report.action_plan
    _print_tier("Critical", plan.critical)
    _print_tier("Important", plan.important)
    _print_tier("Improvements", plan.improvements)


# ------------------------------------------------------------------
# analyze
# ------------------------------------------------------------------
@app.command()
def analyze(
    url: str = typer.Argument(..., help="Page to analyze (e.g. example.com)."),
    as_json: bool = typer.Option(False, "--json", help="Print the raw JSON result."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show every recommendation and debug logs."),
) -> None:
    """Score a single page for AI-crawler readiness."""
    _setup_logging(verbose)
    service = _get_service()
    result = _with_spinner("Analyzing page...", service.analyze_url(url), enabled=not as_json)

    if as_json:
        typer.echo(result.model_dump_json(indent=2))
    elif isinstance(result, ErrorReport):
        _print_error(result)
    else:
        _print_page(result, verbose)

    if isinstance(result, ErrorReport):
        raise typer.Exit(code=1)


# ------------------------------------------------------------------
# report
# ------------------------------------------------------------------
@app.command()
def report(
    url: str = typer.Argument(..., help="Site to analyze (any URL on the site)."),
    as_json: bool = typer.Option(False, "--json", help="Print the raw JSON report."),
    require_sitemap: bool = typer.Option(
        False, "--require-sitemap", help="Fail instead of crawling the homepage when no sitemap exists."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Score up to 20 pages of a site and build a prioritized action plan."""
    _setup_logging(verbose)
    service = _get_service()
    fallback = False if require_sitemap else None
    result = _with_spinner(
        "Discovering and analyzing pages...",
        service.analyze_site(url, fallback_crawl=fallback),
        enabled=not as_json,
    )

    if as_json:
        typer.echo(result.model_dump_json(indent=2))
    elif isinstance(result, ErrorReport):
        _print_error(result)
    else:
        _print_report(result)

    if isinstance(result, ErrorReport):
        raise typer.Exit(code=1)


# ------------------------------------------------------------------
# serve
# ------------------------------------------------------------------
@app.command()
def serve(
    host: str = typer.Option(None, "--host", help="Bind address (defaults to HOST)."),
    port: int = typer.Option(None, "--port", help="Bind port (defaults to PORT)."),
) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    from geoscore.core.config import get_settings

    settings = get_settings()
    uvicorn.run(
        "geoscore.main:app",
        host=host or settings.HOST,
        port=port or settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    app()
