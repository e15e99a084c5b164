"""CLI entry point for stackhumans."""

import asyncio
import json
import logging
from pathlib import Path

# Load .env file if it exists
from dotenv import load_dotenv
load_dotenv()

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from stackhumans.adapters.base import parse_repo_url
from stackhumans.adapters.manifest import parse_package_json
from stackhumans.analyzers.pipeline import ContributorPipeline
from stackhumans.config import Settings
from stackhumans.models.errors import StackHumansError
from stackhumans.models.schemas import AnalysisResult

app = typer.Typer(help="Find the humans behind your npm dependencies.")

console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _contributors_table(title: str, result: AnalysisResult, limit: int) -> Table:
    table = Table(title=title)
    table.add_column("Rank", style="dim", width=6)
    table.add_column("Login", style="cyan")
    table.add_column("Contributions", justify="right", style="green")
    table.add_column("Score", justify="right")
    table.add_column("Repositories", style="white", max_width=50)

    for i, c in enumerate(result.contributors[:limit], 1):
        repos = ", ".join(c.repos[:3])
        if len(c.repos) > 3:
            repos += f" +{len(c.repos) - 3}"
        table.add_row(str(i), c.login, f"{c.contributions:,}", f"{c.score:.1f}", repos)
    return table


def _packages_table(title: str, result: AnalysisResult, limit: int) -> Table:
    table = Table(title=title)
    table.add_column("Package", style="cyan")
    table.add_column("Weekly Downloads", justify="right", style="green")
    table.add_column("Humans", justify="right")
    table.add_column("Top Contributors", style="white", max_width=50)

    for p in result.by_package[:limit]:
        top = ", ".join(c.login for c in p.contributors[:3])
        table.add_row(p.name, f"{p.downloads:,}", str(p.total_contributors), top or "-")
    return table


def _settings(concurrency: int | None, max_repos: int | None) -> Settings:
    overrides = {}
    if concurrency is not None:
        overrides["github_concurrency"] = concurrency
    if max_repos is not None:
        overrides["max_repositories"] = max_repos
    return Settings.from_env(**overrides)


@app.command()
def analyze(
    manifest: Path = typer.Argument(Path("package.json"), help="Path to package.json"),
    limit: int = typer.Option(20, "--limit", "-n", help="Contributors to show per category"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Output JSON file"),
    concurrency: int | None = typer.Option(None, "--concurrency", "-c", help="GitHub requests in flight"),
    max_repos: int | None = typer.Option(None, "--max-repos", help="Maximum repositories to query"),
) -> None:
    """Analyze the contributors behind a package.json."""
    asyncio.run(_analyze(manifest, limit, output, _settings(concurrency, max_repos)))


async def _analyze(manifest: Path, limit: int, output: Path | None, settings: Settings) -> None:
    """Async implementation of analyze."""
    try:
        parsed = parse_package_json(manifest.read_text())
    except OSError as e:
        console.print(f"[red]Could not read {manifest}: {e}[/red]")
        raise typer.Exit(1)
    except StackHumansError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        progress.add_task(f"Analyzing {len(parsed.all)} packages...", total=None)
        try:
            async with ContributorPipeline(settings=settings) as pipeline:
                analysis = await pipeline.analyze_categories(
                    parsed.dependencies, parsed.dev_dependencies
                )
        except StackHumansError as e:
            progress.stop()
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(1)

    summary = analysis.summary
    console.print()
    console.print(
        f"[bold]{summary.total_humans:,}[/bold] humans behind your dependencies "
        f"([cyan]{summary.stack_humans:,}[/cyan] in {summary.stack_packages} runtime packages, "
        f"[cyan]{summary.tools_humans:,}[/cyan] in {summary.tools_packages} dev packages)"
    )
    console.print()

    if analysis.stack.contributors:
        console.print(_contributors_table("Stack", analysis.stack, limit))
    if analysis.tools.contributors:
        console.print(_contributors_table("Tools", analysis.tools, limit))

    if output:
        output.write_text(json.dumps(analysis.model_dump(mode="json"), indent=2))
        console.print(f"\n[green]Saved to {output}[/green]")


@app.command()
def packages(
    names: list[str] = typer.Argument(..., help="npm package names"),
    limit: int = typer.Option(20, "--limit", "-n", help="Rows to show"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Output JSON file"),
    concurrency: int | None = typer.Option(None, "--concurrency", "-c", help="GitHub requests in flight"),
    max_repos: int | None = typer.Option(None, "--max-repos", help="Maximum repositories to query"),
) -> None:
    """Analyze the contributors behind explicit package names."""
    asyncio.run(_packages(names, limit, output, _settings(concurrency, max_repos)))


async def _packages(names: list[str], limit: int, output: Path | None, settings: Settings) -> None:
    """Async implementation of packages."""
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        progress.add_task(f"Analyzing {len(names)} packages...", total=None)
        try:
            async with ContributorPipeline(settings=settings) as pipeline:
                result = await pipeline.analyze(names)
        except StackHumansError as e:
            progress.stop()
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(1)

    console.print(_contributors_table("Contributors", result, limit))
    console.print()
    console.print(_packages_table("Packages", result, limit))

    if output:
        output.write_text(json.dumps(result.model_dump(mode="json"), indent=2))
        console.print(f"\n[green]Saved to {output}[/green]")


@app.command()
def parse_url(
    url: str = typer.Argument(..., help="Repository URL or owner/repo"),
) -> None:
    """Show how a repository URL resolves."""
    repo = parse_repo_url(url)
    if repo is None:
        console.print(f"[red]Not a GitHub repository: {url}[/red]")
        raise typer.Exit(1)
    console.print(f"[cyan]{repo.full_name}[/cyan] [dim](key: {repo.key})[/dim]")


@app.command()
def version() -> None:
    """Show version information."""
    from stackhumans import __version__

    console.print(f"stackhumans v{__version__}")


if __name__ == "__main__":
    app()
