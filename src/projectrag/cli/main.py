"""Main CLI interface for projectrag using Click."""

import sys
import time
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from ..config import get_config_manager
from ..index.store import IndexStore
from ..retrieval import sources_from_config
from ..utils.logging import get_logger, setup_logging
from .index import index_command
from .search import search_command

console = Console()
logger = get_logger(__name__)


def format_age(seconds: float | None) -> str:
    """Format an index age in human-readable form."""
    if seconds is None:
        return "never"
    if seconds < 60:
        return f"{int(seconds)}s"
    elif seconds < 3600:
        return f"{int(seconds // 60)}m"
    elif seconds < 86400:
        return f"{seconds / 3600:.1f}h"
    else:
        return f"{seconds / 86400:.1f}d"


@click.group()
@click.version_option(version="0.1.0", prog_name="projectrag")
@click.option(
    "--config",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to configuration file",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, config: Path | None, verbose: bool):
    """
    projectrag - semantic search over your project's files.

    Index a directory once, then find fragments by meaning rather than keyword.
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config

    try:
        settings = get_config_manager(config).load(create_if_missing=True).logging
        setup_logging(
            level="DEBUG" if verbose else settings.level,
            log_dir=settings.log_dir,
            max_bytes=settings.max_bytes,
            backup_count=settings.backup_count,
            console_enabled=settings.console_enabled,
            file_enabled=settings.file_enabled,
        )
    except ValueError as e:
        console.print(f"[bold yellow]Warning:[/bold yellow] {e}")
        setup_logging(level="DEBUG" if verbose else "WARNING")


cli.add_command(index_command)
cli.add_command(search_command)


@cli.command()
@click.pass_context
def status(ctx):
    """
    Show index statistics and freshness.

    Lists every configured index with its file and chunk counts and the time
    since its last full index.
    """
    console.print("\n[bold cyan]projectrag status[/bold cyan]\n")

    try:
        config = get_config_manager(ctx.obj.get("config_path")).load(create_if_missing=True)

        table = Table(title="Indexes", show_header=True, header_style="bold cyan")
        table.add_column("Project", style="cyan")
        table.add_column("Files", justify="right")
        table.add_column("Chunks", justify="right")
        table.add_column("Model")
        table.add_column("Last full index", justify="right")
        table.add_column("Path", style="dim")

        for source in sources_from_config(config):
            if not Path(source.index_path).exists():
                table.add_row(source.name, "-", "-", source.model_name, "never", str(source.index_path))
                continue

            store = IndexStore.load(source.index_path)
            stats = store.stats()
            age = None
            if store.last_full_index is not None:
                age = max(0.0, time.time() - store.last_full_index)

            model = store.model_name or source.model_name
            if store.model_name and store.model_name != source.model_name:
                model = f"[red]{store.model_name} (rebuild required)[/red]"

            table.add_row(
                source.name,
                str(stats.total_files),
                str(stats.total_chunks),
                model,
                format_age(age),
                str(source.index_path),
            )

        console.print(table)

        manager = get_config_manager(ctx.obj.get("config_path"))
        console.print(f"\n[cyan]Config:[/cyan] {manager.config_path or '(defaults)'}")

    except ValueError as e:
        console.print(f"[bold red]✗ Error:[/bold red] {e}")
        logger.exception("Status command error")
        sys.exit(1)


@cli.group(name="config")
def config_group():
    """Manage projectrag configuration."""
    pass


@config_group.command(name="show")
@click.pass_context
def config_show(ctx):
    """Display current configuration."""
    console.print("\n[bold cyan]projectrag configuration[/bold cyan]\n")

    try:
        config_manager = get_config_manager(ctx.obj.get("config_path"))
        config = config_manager.load(create_if_missing=True)

        console.print("[bold]Embedding:[/bold]")
        console.print(f"  Model: {config.embedding.model_name}")
        console.print(f"  Chunk Size: {config.embedding.chunk_size}")
        console.print(f"  Chunk Overlap: {config.embedding.chunk_overlap}")
        console.print(f"  Min Chunk Length: {config.embedding.min_chunk_length}")

        console.print("\n[bold]Scan:[/bold]")
        console.print(f"  Extensions: {', '.join(config.scan.extensions)}")
        console.print(f"  Skip Dirs: {', '.join(config.scan.skip_dirs)}")
        console.print(f"  Max File Size: {config.scan.max_file_size_mb}MB")

        console.print("\n[bold]Search:[/bold]")
        console.print(f"  Limit: {config.search.limit}")
        console.print(f"  Min Score: {config.search.min_score}")
        console.print(f"  Max Tokens: {config.search.max_tokens or 'unlimited'}")

        console.print(f"\n[bold]Default Index:[/bold] {config.index_path}")

        if config.projects:
            console.print("\n[bold]Projects:[/bold]")
            for project in config.projects:
                enabled = "[green]on[/green]" if project.semantic_search_enabled else "[yellow]off[/yellow]"
                console.print(f"  • {project.name} ({enabled}): {project.path}")

        console.print(f"\n[dim]Config file: {config_manager.config_path or '(defaults)'}[/dim]")

    except ValueError as e:
        console.print(f"[bold red]✗ Error:[/bold red] {e}")
        logger.exception("Config show error")
        sys.exit(1)


@config_group.command(name="init")
@click.argument(
    "path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=Path("projectrag.yaml"),
)
@click.pass_context
def config_init(ctx, path: Path):
    """Write a configuration file with default settings to PATH."""
    if path.exists():
        console.print(f"[yellow]⚠ {path} already exists, leaving it unchanged[/yellow]")
        return

    config_manager = get_config_manager(ctx.obj.get("config_path"))
    config = config_manager.load(create_if_missing=True)
    config_manager.save(config, path)
    console.print(f"✓ Created configuration: [green]{path}[/green]")


if __name__ == "__main__":
    cli()
