"""CLI command for indexing a directory for semantic search."""

import sys
import time
from pathlib import Path

import click
from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)

from ..config import get_config_manager
from ..exceptions import EmbeddingError, IndexRebuildRequired
from ..scanner import index_directory
from ..semantic_index import SemanticIndex
from ..utils.logging import get_logger

console = Console()
logger = get_logger(__name__)


@click.command(name="index")
@click.argument(
    "path",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
)
@click.option(
    "--project",
    "-p",
    default=None,
    help="Configured project whose index should be updated",
)
@click.option(
    "--index-path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Index file to write (overrides config)",
)
@click.option(
    "--force",
    "-f",
    is_flag=True,
    help="Re-index files even if their modification time is unchanged",
)
@click.option(
    "--clean",
    is_flag=True,
    help="Delete the existing index before indexing",
)
@click.pass_context
def index_command(
    ctx,
    path: Path,
    project: str | None,
    index_path: Path | None,
    force: bool,
    clean: bool,
):
    """
    Index files for semantic search.

    Scans PATH for supported files, splits them into chunks, embeds each chunk
    and stores the result in the index. Unchanged files are skipped.

    \b
    Examples:
        projectrag index ./my-project
        projectrag index ./my-project --force
        projectrag index ./docs --index-path ./docs-index.json --clean
    """
    console.print("\n[bold cyan]projectrag indexer[/bold cyan]\n")

    start_time = time.time()

    try:
        config_manager = get_config_manager(ctx.obj.get("config_path"))
        config = config_manager.load(create_if_missing=True)

        project_settings = None
        if project:
            project_settings = config.get_project(project)
            if project_settings is None:
                console.print(f"[bold red]✗ Unknown project:[/bold red] {project}")
                sys.exit(1)

        index = SemanticIndex.from_config(
            config, project_settings, index_path=index_path, shared=True
        )

        console.print(f"[cyan]Scanning:[/cyan] {path}")
        console.print(f"[cyan]Index:[/cyan] {index.index_path}")
        console.print(f"[cyan]Model:[/cyan] {index.embedder.model_name}")
        console.print(f"[cyan]Force re-index:[/cyan] {'Yes' if force else 'No'}")
        console.print()

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=console,
        ) as progress:
            task = progress.add_task("[cyan]Indexing files...", total=None)

            def on_progress(done: int, total: int, current: str | None):
                progress.update(task, completed=done, total=total)

            result = index_directory(
                index,
                path,
                force=force,
                clean=clean,
                extensions=config.scan.extensions,
                skip_dirs=config.scan.skip_dirs,
                max_size_mb=config.scan.max_file_size_mb,
                on_progress=on_progress,
            )

        elapsed = time.time() - start_time
        stats = index.stats()

        console.print()
        console.print("[bold cyan]Indexing Summary[/bold cyan]")
        console.print(f"  [green]Indexed:[/green]         {result.indexed}")
        console.print(f"  [yellow]Unchanged:[/yellow]       {result.skipped}")
        console.print(f"  [dim]Removed (stale):[/dim] {result.removed}")
        console.print(f"  [red]Errors:[/red]          {result.error_count}")
        console.print(f"  [dim]Time elapsed:[/dim]    {elapsed:.1f}s")

        if result.errors and len(result.errors) <= 10:
            console.print("\n[red]Errors:[/red]")
            for file_path, error in result.errors:
                console.print(f"  • {Path(file_path).name}: {error[:60]}")
        elif result.errors:
            console.print(f"\n[red]{result.error_count} errors occurred. Check logs for details.[/red]")

        console.print(
            f"\n[bold]Index:[/bold] {stats.total_files} files, {stats.total_chunks} chunks"
        )
        if stats.total_chunks > 0:
            console.print(
                "\n[green]✓ Indexing complete![/green] "
                'Try: [cyan]projectrag search "your query"[/cyan]'
            )

    except IndexRebuildRequired as e:
        console.print(f"[bold red]✗ {e}[/bold red]")
        console.print("[yellow]Run again with[/yellow] [cyan]--clean[/cyan] [yellow]to rebuild.[/yellow]")
        sys.exit(1)
    except EmbeddingError as e:
        console.print(f"[bold red]✗ Embedding model unavailable:[/bold red] {e}")
        sys.exit(1)
    except ValueError as e:
        console.print(f"[bold red]✗ Error:[/bold red] {e}")
        logger.exception("Index command error")
        sys.exit(1)
