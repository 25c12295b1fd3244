"""Search CLI command for finding file fragments by meaning."""

import json
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..config import get_config_manager
from ..retrieval import ProjectSource, RetrievalHit, search_projects, sources_from_config
from ..utils.logging import get_logger

logger = get_logger(__name__)
console = Console()


def get_relevance_color(score: float) -> str:
    """Get color based on similarity score."""
    if score >= 0.6:
        return "green"
    elif score >= 0.3:
        return "yellow"
    else:
        return "red"


def format_line_range(hit: RetrievalHit) -> str:
    """Format a hit's line range as ``L3-L9`` (empty if unknown)."""
    if hit.line_start is None:
        return ""
    if hit.line_end is None or hit.line_end == hit.line_start:
        return f"L{hit.line_start}"
    return f"L{hit.line_start}-L{hit.line_end}"


def make_snippet(content: str, max_length: int = 300) -> str:
    """Shorten content for display, breaking at a word boundary when possible."""
    snippet = content[:max_length].strip()
    if len(content) > max_length:
        last_space = snippet.rfind(" ")
        if last_space > max_length * 3 // 4:
            snippet = snippet[:last_space]
        snippet += "..."
    return snippet


def format_result_rich(hit: RetrievalHit, index: int) -> Panel:
    """Format a single search hit as a Rich panel."""
    score_color = get_relevance_color(hit.score)

    header = Text()
    header.append(f"{index}. ", style="dim")
    header.append(hit.file, style="bold")
    lines = format_line_range(hit)
    if lines:
        header.append(f":{lines}", style="dim")
    header.append(f"  {hit.score:.3f}", style=score_color)

    content = Text()
    content.append(f"project: {hit.project}", style="dim")
    content.append("\n\n")
    content.append(make_snippet(hit.content), style="dim italic")

    return Panel(
        content,
        title=header,
        title_align="left",
        border_style=score_color,
        padding=(0, 1),
    )


def format_results_table(hits: list[RetrievalHit]) -> Table:
    """Format hits as a compact Rich table."""
    table = Table(show_header=True, header_style="bold", expand=True)
    table.add_column("#", style="dim", width=3)
    table.add_column("Score", width=7)
    table.add_column("Project", width=12)
    table.add_column("File", style="bold", no_wrap=True, overflow="ellipsis")
    table.add_column("Lines", width=12)

    for i, hit in enumerate(hits, 1):
        score_color = get_relevance_color(hit.score)
        table.add_row(
            str(i),
            f"[{score_color}]{hit.score:.3f}[/{score_color}]",
            hit.project,
            hit.file,
            format_line_range(hit),
        )

    return table


@click.command(name="search")
@click.argument("query", nargs=-1, required=True)
@click.option(
    "--project",
    "-p",
    default=None,
    help="Only search this configured project",
)
@click.option(
    "--index-path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Search this index file instead of the configured ones",
)
@click.option(
    "--limit",
    "-n",
    type=int,
    default=None,
    help="Maximum number of results (default from config)",
)
@click.option(
    "--min-score",
    type=click.FloatRange(0.0, 1.0),
    default=None,
    help="Minimum similarity score (default from config)",
)
@click.option(
    "--max-tokens",
    type=click.IntRange(min=1),
    default=None,
    help="Stop adding results once this many tokens are returned",
)
@click.option(
    "--json",
    "output_json",
    is_flag=True,
    help="Output results as JSON",
)
@click.option(
    "--compact",
    is_flag=True,
    help="Show compact table view instead of detailed panels",
)
@click.pass_context
def search_command(
    ctx,
    query: tuple,
    project: str | None,
    index_path: Path | None,
    limit: int | None,
    min_score: float | None,
    max_tokens: int | None,
    output_json: bool,
    compact: bool,
):
    """
    Find indexed fragments that match QUERY by meaning.

    The words of QUERY are joined into one natural language query.

    \b
    Examples:
        projectrag search how are embeddings normalized
        projectrag search "retry policy" --project api --limit 5
        projectrag search database migrations --json --max-tokens 2000
    """
    query_str = " ".join(query).strip()

    if len(query_str) < 2:
        console.print("[bold red]Error:[/bold red] Query needs at least 2 characters")
        sys.exit(1)

    try:
        config = get_config_manager(ctx.obj.get("config_path")).load(create_if_missing=True)
    except ValueError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        sys.exit(1)

    if index_path is not None:
        sources = [
            ProjectSource(
                name=index_path.stem,
                index_path=index_path,
                model_name=config.embedding.model_name,
            )
        ]
    else:
        sources = sources_from_config(config)

    if not any(Path(s.index_path).exists() for s in sources):
        console.print(
            Panel(
                "[yellow]No files have been indexed yet.[/yellow]\n\n"
                "Run [bold]projectrag index <path>[/bold] to index your files first.",
                title="Empty Index",
                border_style="yellow",
            )
        )
        sys.exit(0)

    if not output_json:
        console.print(f"[dim]Searching for:[/dim] [bold]{query_str}[/bold]\n")

    response = search_projects(
        query_str,
        sources,
        project=project,
        limit=limit or config.search.limit,
        min_score=min_score if min_score is not None else config.search.min_score,
        max_tokens=max_tokens or config.search.max_tokens,
    )

    if output_json:
        click.echo(json.dumps(response.to_dict(), indent=2))
        return

    if not response.results:
        console.print("[yellow]No matching fragments found.[/yellow]")
        console.print(
            "[dim]Describe what the code does rather than naming it, "
            "or lower --min-score.[/dim]"
        )
        return

    if compact:
        console.print(format_results_table(response.results))
    else:
        for i, hit in enumerate(response.results, 1):
            console.print(format_result_rich(hit, i))
            console.print()

    footer = f"Found {len(response.results)} result(s), ~{response.token_count} tokens"
    if response.truncated:
        footer += " (truncated by token budget)"
    console.print(f"[dim]{footer}[/dim]")
    if response.index_age_seconds is not None:
        console.print(f"[dim]Index age: {response.index_age_seconds}s[/dim]")
    if response.advisory_message:
        console.print(f"[yellow]{response.advisory_message}[/yellow]")
