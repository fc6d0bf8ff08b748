"""Command line interface for GuideRAG."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from guiderag.config import AppConfig
from guiderag.index.builder import build_index
from guiderag.index.search import retrieve_top_k
from guiderag.index.storage import save_index
from guiderag.ingestion.loader import read_documents
from guiderag.models import Index
from guiderag.service import GuideService

console = Console()
app = typer.Typer(help="GuideRAG - term-weight retrieval and prompt building over local guides")

SWEEP_THRESHOLDS = (0.0, 0.01, 0.02, 0.05, 0.08, 0.12, 0.2)


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _config(
    data: Optional[Path], priority: Optional[List[str]], threshold: Optional[float] = None
) -> AppConfig:
    return AppConfig.from_env(
        data_dir=data,
        priority_bases=tuple(priority) if priority else None,
        threshold=threshold,
    )


def _build(config: AppConfig, data_dir: Path) -> Index:
    return build_index(
        read_documents(data_dir),
        priority_names=config.priority_bases,
        max_tokens=config.chunk_tokens,
        min_chars=config.min_chunk_chars,
        vocab_limit=config.vocab_limit,
    )


@app.command()
def index(
    data: Path = typer.Argument(..., help="Directory containing guide files.", resolve_path=True),
    snapshot: Optional[Path] = typer.Option(None, "--snapshot", help="Write the index snapshot here"),
    priority: Optional[List[str]] = typer.Option(
        None, "--priority", "-p", help="Guide base name to boost (repeatable)"
    ),
    chunk_tokens: int = typer.Option(AppConfig().chunk_tokens, help="Tokens per chunk"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Build the term-weight index for a guide directory."""
    _setup_logging(verbose)
    if not data.is_dir():
        raise typer.BadParameter(f"Guide directory not found: {data}")

    config = _config(data, priority)
    documents = read_documents(data)
    if not documents:
        console.print("[yellow]No readable guides found.[/yellow]")

    built = build_index(
        documents,
        priority_names=config.priority_bases,
        max_tokens=chunk_tokens,
        min_chars=config.min_chunk_chars,
        vocab_limit=config.vocab_limit,
    )
    console.print(
        f"Guides: {len(documents)}, chunks: {len(built)}, terms: {len(built.vocabulary)}, "
        f"priority: {', '.join(sorted(built.priority_bases)) or '-'}"
    )
    if snapshot is not None:
        save_index(built, snapshot)
        console.print(f"Snapshot written to [bold]{snapshot}[/bold]")


@app.command()
def search(
    query: str = typer.Argument(..., help="Query text"),
    data: Optional[Path] = typer.Option(None, "--data", help="Guide directory"),
    top_k: int = typer.Option(AppConfig().top_k, help="Number of results to display"),
    threshold: Optional[float] = typer.Option(None, help="Minimum boosted score"),
    priority: Optional[List[str]] = typer.Option(
        None, "--priority", "-p", help="Guide base name to boost (repeatable)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Rank guide chunks for a query."""
    _setup_logging(verbose)
    config = _config(data, priority, threshold)
    data_dir = config.resolve_data_dir(Path.cwd())

    built = _build(config, data_dir)
    results = retrieve_top_k(
        built, query, top_k, threshold=config.threshold, boost=config.priority_boost
    )
    if not results:
        console.print("[yellow]No matches found.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Score")
    table.add_column("Guide")
    table.add_column("Snippet")
    for result in results:
        table.add_row(f"{result.score:.4f}", result.filename, result.snippet[:180])
    console.print(table)


@app.command()
def sweep(
    queries: List[str] = typer.Argument(..., help="Queries to try"),
    data: Optional[Path] = typer.Option(None, "--data", help="Guide directory"),
    threshold: Optional[List[float]] = typer.Option(
        None, "--threshold", "-t", help="Threshold to try (repeatable)"
    ),
    top_k: int = typer.Option(AppConfig().top_k, help="Results per query"),
    priority: Optional[List[str]] = typer.Option(
        None, "--priority", "-p", help="Guide base name to boost (repeatable)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Count retrieved chunks per query across thresholds to calibrate the cut-off."""
    _setup_logging(verbose)
    config = _config(data, priority)
    built = _build(config, config.resolve_data_dir(Path.cwd()))
    thresholds = sorted(set(threshold)) if threshold else list(SWEEP_THRESHOLDS)

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Threshold")
    for position in range(1, len(queries) + 1):
        table.add_column(f"Q{position}", justify="right")
    table.add_column("Total", justify="right")

    answered: dict[float, int] = {}
    for value in thresholds:
        counts = [
            len(retrieve_top_k(built, query, top_k, threshold=value, boost=config.priority_boost))
            for query in queries
        ]
        answered[value] = sum(1 for count in counts if count)
        table.add_row(f"{value:g}", *(str(count) for count in counts), str(sum(counts)))

    console.print(f"Chunks: {len(built)}, queries: {len(queries)}")
    console.print(table)
    for position, query in enumerate(queries, start=1):
        console.print(f"Q{position}: {query}", markup=False)

    # Highest threshold that still answers a majority of the queries.
    majority = len(queries) // 2 + 1
    viable = [value for value in thresholds if answered[value] >= majority]
    if viable:
        console.print(f"Recommended threshold: [bold]{max(viable):g}[/bold]")
    else:
        console.print("[yellow]No threshold answers most queries.[/yellow]")


@app.command()
def prompt(
    text: str = typer.Argument(..., help="Request to turn into a prompt"),
    data: Optional[Path] = typer.Option(None, "--data", help="Guide directory"),
    priority: Optional[List[str]] = typer.Option(
        None, "--priority", "-p", help="Guide base name to boost (repeatable)"
    ),
    compact: bool = typer.Option(False, "--compact", help="Print the compact prompt"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Build a paste-ready prompt from a request and the guides."""
    _setup_logging(verbose)
    service = GuideService(_config(data, priority))
    service.start(watch=False)
    bundle = service.build_prompt(text)

    console.print(
        f"Task: [bold]{bundle.task.value}[/bold] ({bundle.classification.source}), "
        f"model: {bundle.model_recommendation}, retrieved: {len(bundle.retrieved)}"
    )
    console.print(bundle.final_prompt if compact else bundle.professional_prompt, markup=False)


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(3000, help="Server port"),
    data: Optional[Path] = typer.Option(None, "--data", help="Guide directory"),
    snapshot: Optional[Path] = typer.Option(None, "--snapshot", help="Index snapshot path"),
    priority: Optional[List[str]] = typer.Option(
        None, "--priority", "-p", help="Guide base name to boost (repeatable)"
    ),
) -> None:
    """Start the HTTP API."""
    try:
        import uvicorn
    except ImportError as exc:  # pragma: no cover
        raise typer.BadParameter("uvicorn is not installed.") from exc

    from guiderag.web.app import create_app

    config = _config(data, priority)
    if snapshot is not None:
        config.snapshot_path = snapshot
    data_dir = config.resolve_data_dir(Path.cwd())
    if not data_dir.exists():
        console.print(f"[yellow]Warning: guide directory {data_dir} not found.[/yellow]")

    console.print(f"Starting GuideRAG on http://{host}:{port} (guides: {data_dir})")
    uvicorn.run(create_app(config), host=host, port=port, reload=False, log_level="info")
