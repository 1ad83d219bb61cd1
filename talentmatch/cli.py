"""
TalentMatch Command Line Interface

Provides CLI commands for setting up the database, indexing candidate
profiles and job postings, and running matches and semantic searches.
"""

import asyncio
import json
from pathlib import Path
from typing import Any, Optional

import typer
from pydantic import ValidationError
from pymongo.errors import PyMongoError
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from talentmatch.utils.exceptions import InvalidQuery, MatchingFailed, TalentMatchError

app = typer.Typer(
    name="talentmatch",
    help="Semantic candidate/job matching with LLM re-ranking",
    add_completion=False,
)
console = Console()


def _load_records(path: Path) -> list[dict[str, Any]]:
    """Read JSON records from a file (object or list) or a directory of such files."""
    files = sorted(path.glob("*.json")) if path.is_dir() else [path]
    records: list[dict[str, Any]] = []
    for file_path in files:
        with open(file_path, encoding="utf-8") as f:
            data = json.load(f)
        records.extend(data if isinstance(data, list) else [data])
    return records


def _read_text(text: Optional[str], file: Optional[Path]) -> str:
    if file is not None:
        if not file.exists():
            console.print(f"[red]Error: File not found: {file}[/red]")
            raise typer.Exit(1)
        return file.read_text(encoding="utf-8")
    return text or ""


def _score_style(score: float) -> str:
    from talentmatch.utils.constants import MatchScoreLevel

    return {
        MatchScoreLevel.EXCELLENT: "bold green",
        MatchScoreLevel.GOOD: "green",
        MatchScoreLevel.FAIR: "yellow",
        MatchScoreLevel.POOR: "red",
    }[MatchScoreLevel.from_score(score)]


@app.command()
def version():
    """Show application version."""
    from talentmatch import __app_name__, __version__

    console.print(f"[bold blue]{__app_name__}[/bold blue] version [green]{__version__}[/green]")


@app.command()
def info():
    """Show system information and configuration."""
    from talentmatch.utils.config import get_settings

    settings = get_settings()

    table = Table(title="TalentMatch Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Environment", settings.environment)
    table.add_row("Database Name", settings.database.name)
    table.add_row("Candidates Collection", settings.database.candidates_collection)
    table.add_row("Vector Store", settings.vector_store.provider)
    table.add_row("Embedding Provider", settings.ml.embedding_provider)
    table.add_row("Embedding Model", settings.ml.embedding_model)
    table.add_row("Embedding Dimension", str(settings.ml.embedding_dimension))
    table.add_row("LLM Model", settings.llm.model)
    table.add_row("Re-rank Batch Size", str(settings.matching.rerank_batch_size))
    table.add_row("Log Level", settings.logging.level)

    console.print(table)


@app.command()
def init_db():
    """Create database indexes, including the vector search indexes."""
    from talentmatch.data.database import DatabaseManager
    from talentmatch.utils.config import get_settings

    console.print("[yellow]Initializing database...[/yellow]")
    settings = get_settings()
    db_manager = DatabaseManager(settings)

    try:
        console.print("  Checking database connection...")
        if not db_manager.check_sync_connection():
            console.print("[red]Error: Could not connect to MongoDB.[/red]")
            console.print("[dim]Make sure MongoDB is running and connection settings are correct.[/dim]")
            raise typer.Exit(1)
        console.print("  [green]✓[/green] Connected to MongoDB")

        console.print("  Creating indexes...")
        asyncio.run(db_manager.ensure_indexes())
        console.print("  [green]✓[/green] Indexes created")

        if settings.vector_store.provider == "mongodb":
            console.print("  Creating vector search indexes...")
            created = db_manager.ensure_vector_indexes()
            console.print(f"  [green]✓[/green] Vector indexes ready ({len(created)} created)")

        console.print("\n[green]Database initialized successfully![/green]")
    except PyMongoError as e:
        console.print(f"[red]Error initializing database: {e}[/red]")
        raise typer.Exit(1)
    finally:
        db_manager.close_all()


def _index_records(path: Path, kind: str) -> None:
    from talentmatch.core.indexing.profile_indexer import create_profile_indexer
    from talentmatch.data.models import CandidateProfile, JobPosting

    if not path.exists():
        console.print(f"[red]Error: Path does not exist: {path}[/red]")
        raise typer.Exit(1)

    try:
        records = _load_records(path)
    except json.JSONDecodeError as e:
        console.print(f"[red]Error: Invalid JSON in {path}: {e}[/red]")
        raise typer.Exit(1)

    if not records:
        console.print("[yellow]No records found.[/yellow]")
        raise typer.Exit(0)

    console.print(f"Found [cyan]{len(records)}[/cyan] {kind} record(s)")
    indexer = create_profile_indexer()
    model_class = CandidateProfile if kind == "candidate" else JobPosting
    index_one = indexer.index_candidate if kind == "candidate" else indexer.index_job
    store = indexer.candidate_store if kind == "candidate" else indexer.job_store

    success_count = 0
    errors: list[tuple[int, str]] = []

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
        console=console,
    ) as progress:
        task = progress.add_task(f"Indexing {kind}s...", total=len(records))
        for i, record in enumerate(records, 1):
            try:
                index_one(model_class.model_validate(record), persist=False)
                success_count += 1
            except (ValidationError, TalentMatchError, PyMongoError) as e:
                errors.append((i, str(e).splitlines()[0]))
            progress.update(task, advance=1)

    store.persist()

    console.print()
    console.print("[bold]Index Summary:[/bold]")
    console.print(f"  [green]✓ Indexed:[/green] {success_count}")
    console.print(f"  [red]✗ Errors:[/red] {len(errors)}")
    for record_no, message in errors[:10]:
        console.print(f"  [dim]record {record_no}:[/dim] {message}")
    if len(errors) > 10:
        console.print(f"  [dim]... and {len(errors) - 10} more errors[/dim]")

    if errors and not success_count:
        raise typer.Exit(1)


@app.command()
def index_candidates(
    path: Path = typer.Argument(..., help="JSON file or directory of candidate profiles"),
):
    """Embed and store candidate profiles."""
    _index_records(path, "candidate")


@app.command()
def index_jobs(
    path: Path = typer.Argument(..., help="JSON file or directory of job postings"),
):
    """Embed and store job postings."""
    _index_records(path, "job")


@app.command()
def set_status(
    candidate_id: str = typer.Argument(..., help="Candidate ID"),
    status: str = typer.Argument(..., help="New status: active, inactive or archived"),
):
    """Change a candidate's status (candidates are never deleted)."""
    from talentmatch.core.indexing.profile_indexer import create_profile_indexer
    from talentmatch.utils.constants import CandidateStatus

    try:
        new_status = CandidateStatus(status.lower())
    except ValueError:
        valid = ", ".join(s.value for s in CandidateStatus)
        console.print(f"[red]Error: Invalid status '{status}'. Use one of: {valid}[/red]")
        raise typer.Exit(1)

    updated = create_profile_indexer().set_candidate_status(candidate_id, new_status)
    if updated is None:
        console.print(f"[red]Error: Candidate not found: {candidate_id}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] Candidate {candidate_id} is now [cyan]{new_status.value}[/cyan]")


@app.command()
def match(
    job_text: Optional[str] = typer.Option(None, "--job", "-j", help="Job description text"),
    job_file: Optional[Path] = typer.Option(None, "--job-file", "-f", help="File with the job description"),
    job_id: Optional[str] = typer.Option(None, "--job-id", help="ID of a stored job posting"),
    company: str = typer.Option("", "--company", "-c", help="Company information"),
    semantic_count: int = typer.Option(20, "--semantic", "-s", help="Candidates retrieved semantically"),
    final_count: int = typer.Option(5, "--top", "-n", help="Candidates kept after re-ranking"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw JSON response"),
):
    """Find the best candidates for a job."""
    from talentmatch.core.matching.orchestrator import create_matching_orchestrator
    from talentmatch.data.models import JobQuery

    query = JobQuery(
        job_description_text=_read_text(job_text, job_file),
        company_information=company,
        semantic_search_result_count=semantic_count,
        final_result_count=final_count,
        job_id=job_id,
    )

    try:
        response = create_matching_orchestrator().match(query)
    except InvalidQuery as e:
        console.print(f"[red]Error: {e.message}[/red]")
        raise typer.Exit(1)
    except MatchingFailed as e:
        console.print(f"[red]{e.user_message}[/red]")
        console.print(f"[dim]{e.stage}: {e.error_kind}[/dim]")
        raise typer.Exit(1)

    if as_json:
        console.print_json(data=response.to_payload())
        return

    console.print(f"[bold]{response.job_title_used}[/bold]")
    console.print(f"[dim]{response.search_summary}[/dim]\n")
    if not response.results:
        return

    table = Table(title=f"Top {len(response.results)} Matches")
    table.add_column("Rank", style="dim", width=4)
    table.add_column("Candidate", style="cyan")
    table.add_column("Title")
    table.add_column("LLM Score", justify="right")
    table.add_column("Semantic", justify="right")
    table.add_column("Level", justify="center")

    for rank, result in enumerate(response.results, 1):
        style = _score_style(result.llm_match_score)
        table.add_row(
            str(rank),
            result.full_name,
            result.current_title,
            f"[{style}]{result.llm_match_score:.0%}[/{style}]",
            f"{result.semantic_match_score:.0%}",
            result.score_level.value,
        )
    console.print(table)

    for rank, result in enumerate(response.results, 1):
        console.print(f"\n[bold]{rank}. {result.full_name}[/bold] [dim]({result.candidate_id})[/dim]")
        console.print(result.llm_justification)


@app.command()
def search(
    query: str = typer.Argument(..., help="Natural-language description of the talent wanted"),
    count: int = typer.Option(5, "--count", "-n", help="Number of candidates to return"),
):
    """Search candidates semantically, without LLM re-ranking."""
    from talentmatch.core.matching.semantic_search import create_talent_search

    try:
        response = create_talent_search().search(query, count)
    except InvalidQuery as e:
        console.print(f"[red]Error: {e.message}[/red]")
        raise typer.Exit(1)
    except TalentMatchError as e:
        console.print(f"[red]Search failed: {e.message}[/red]")
        raise typer.Exit(1)

    console.print(f"[dim]{response.search_summary}[/dim]")
    if not response.matched_candidates:
        return

    table = Table(title="Matching Candidates")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Title")
    table.add_column("Skills")
    table.add_column("Score", justify="right", style="green")
    for candidate in response.matched_candidates:
        table.add_row(
            candidate.candidate_id,
            candidate.full_name,
            candidate.current_title,
            ", ".join(candidate.top_skills[:5]),
            f"{candidate.match_score:.0%}" if candidate.match_score is not None else "N/A",
        )
    console.print(table)


@app.command()
def recommend_jobs(
    profile_text: Optional[str] = typer.Option(None, "--profile", "-p", help="Candidate profile text"),
    profile_file: Optional[Path] = typer.Option(None, "--profile-file", "-f", help="File with the profile"),
    count: int = typer.Option(5, "--count", "-n", help="Number of jobs to return"),
):
    """Recommend open jobs for a candidate profile."""
    from talentmatch.core.matching.semantic_search import create_job_recommender

    text = _read_text(profile_text, profile_file)
    try:
        response = create_job_recommender().recommend(text, count)
    except InvalidQuery as e:
        console.print(f"[red]Error: {e.message}[/red]")
        raise typer.Exit(1)
    except TalentMatchError as e:
        console.print(f"[red]Recommendation failed: {e.message}[/red]")
        raise typer.Exit(1)

    console.print(f"[dim]{response.reasoning}[/dim]")
    if not response.recommended_jobs:
        return

    table = Table(title="Recommended Jobs")
    table.add_column("ID", style="dim")
    table.add_column("Title", style="cyan")
    table.add_column("Company")
    table.add_column("Location")
    table.add_column("Score", justify="right", style="green")
    for job in response.recommended_jobs:
        table.add_row(
            job.job_id,
            job.title,
            job.company_name,
            job.location or "N/A",
            f"{job.match_score:.0%}" if job.match_score is not None else "N/A",
        )
    console.print(table)


if __name__ == "__main__":
    app()
