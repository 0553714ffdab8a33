"""Command line interface for DocVault."""

from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import List

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from docvault.config import AppConfig
from docvault.errors import DocVaultError, GeminiError
from docvault.ingestion.loaders import TEXT_EXTENSIONS, DocumentProcessor
from docvault.llm.gemini import GeminiClient
from docvault.rag import RAGService
from docvault.utils.files import iter_document_paths

console = Console()
app = typer.Typer(help="DocVault - hybrid retrieval over your documents")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _ingest(service: RAGService, inputs: List[Path]) -> int:
    """Ingest every supported file under ``inputs``; returns the number ingested."""
    processor = DocumentProcessor(service)
    paths = list(iter_document_paths(inputs, TEXT_EXTENSIONS))
    ingested = 0
    for path in paths:
        try:
            result = processor.process_path(path)
        except DocVaultError as exc:
            console.print(f"[yellow]Skipped {path.name}: {escape(str(exc))}[/yellow]")
            continue
        if result.success:
            ingested += 1
        else:
            console.print(f"[red]Failed {path.name}: {escape(result.error or '')}[/red]")
    return ingested


@app.command()
def ask(
    query: str = typer.Argument(..., help="Question to answer"),
    inputs: List[Path] = typer.Argument(..., help="Files or folders to ingest.", resolve_path=True),
    top_k: int = typer.Option(AppConfig().top_k, help="Number of chunks to retrieve"),
    chunk_size: int = typer.Option(AppConfig().chunk_size, help="Chunk size in tokens"),
    overlap: int = typer.Option(AppConfig().chunk_overlap, help="Chunk overlap in tokens"),
    generate: bool = typer.Option(False, "--generate", "-g", help="Ask Gemini for an answer"),
    show_prompt: bool = typer.Option(False, "--show-prompt", help="Print the augmented prompt"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Ingest documents and retrieve the chunks most relevant to QUERY."""
    _setup_logging(verbose)
    try:
        config = replace(
            AppConfig.from_env(), chunk_size=chunk_size, chunk_overlap=overlap, top_k=top_k
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    service = RAGService(config)
    if not _ingest(service, inputs):
        console.print("[yellow]No documents ingested.[/yellow]")
        raise typer.Exit(code=1)

    result = service.process_query(query)
    if not result.retrieved_chunks:
        console.print("[yellow]No matches found.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Rank")
    table.add_column("Score")
    table.add_column("Document")
    table.add_column("Chunk")
    table.add_column("Snippet")

    for item in result.retrieved_chunks:
        snippet = item.chunk.text.replace("\n", " ")
        table.add_row(
            str(item.rank),
            f"{item.score:.4f}",
            item.chunk.file_name,
            str(item.chunk.chunk_index),
            snippet[:180],
        )
    console.print(table)

    if show_prompt:
        console.print(result.augmented_prompt, markup=False)

    if generate:
        try:
            with GeminiClient.from_config(config) as client:
                answer = client.answer(result)
        except GeminiError as exc:
            console.print(f"[red]Answer generation failed: {escape(str(exc))}[/red]")
            raise typer.Exit(code=1) from exc
        console.print(f"\n[bold]{answer.provider} ({answer.model})[/bold]")
        console.print(answer.text, markup=False)


@app.command()
def stats(
    inputs: List[Path] = typer.Argument(..., help="Files or folders to ingest.", resolve_path=True),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Ingest documents and report store statistics."""
    _setup_logging(verbose)
    service = RAGService(AppConfig.from_env())
    _ingest(service, inputs)
    counts = service.get_stats()
    console.print(
        f"Documents: {counts['documents']}, chunks: {counts['chunks']}, "
        f"vectors: {counts['vectors']}"
    )


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(8000, help="Server port"),
) -> None:
    """Start the HTTP API."""
    try:
        import uvicorn
    except ImportError as exc:  # pragma: no cover
        raise typer.BadParameter(
            "uvicorn is not installed. Install the web extras with \"python -m pip install '.[web]'\""
        ) from exc

    console.print(f"Starting DocVault API on http://{host}:{port}")
    uvicorn.run(
        "docvault.web.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=False,
        log_level="info",
    )
