"""Retrieval across several project indexes with scoping and token budgets."""

import math
from collections.abc import Callable, Iterable
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import TypeVar

from .config.models import DEFAULT_EMBEDDING_MODEL, ProjectRAGConfig, ProjectSettings
from .jobs import IndexingJobManager, indexing_jobs
from .semantic_index import SemanticIndex, get_shared_index
from .utils.logging import get_logger

logger = get_logger(__name__)

ADVISORY_MESSAGE = "Indexing in progress; results may be stale/incomplete."

T = TypeVar("T")


def estimate_tokens(text: str) -> int:
    """Rough token count: one token per four characters."""
    return math.ceil(len(text) / 4)


def apply_token_budget(
    items: list[T],
    max_tokens: int | None,
    get_content: Callable[[T], str],
) -> tuple[list[T], bool, int]:
    """
    Keep leading items while their combined token estimate fits the budget.

    Returns:
        Tuple of (kept items, whether any were dropped, tokens in kept items)
    """
    if not max_tokens or max_tokens <= 0:
        return list(items), False, sum(estimate_tokens(get_content(i)) for i in items)

    kept: list[T] = []
    token_count = 0
    for item in items:
        tokens = estimate_tokens(get_content(item))
        if token_count + tokens > max_tokens:
            return kept, True, token_count
        kept.append(item)
        token_count += tokens
    return kept, False, token_count


@dataclass
class ProjectSource:
    """Where one project's index lives."""

    name: str
    index_path: Path
    root: Path | None = None
    model_name: str = DEFAULT_EMBEDDING_MODEL
    enabled: bool = True

    @classmethod
    def from_settings(cls, project: ProjectSettings, config: ProjectRAGConfig) -> "ProjectSource":
        """Build a source from a configured project."""
        return cls(
            name=project.name,
            index_path=project.get_index_path(),
            root=project.path,
            model_name=config.model_for(project),
            enabled=project.semantic_search_enabled,
        )


def sources_from_config(config: ProjectRAGConfig) -> list[ProjectSource]:
    """Sources for every configured project, or the default index if there are none."""
    if config.projects:
        return [ProjectSource.from_settings(p, config) for p in config.projects]
    return [
        ProjectSource(
            name="default",
            index_path=config.index_path,
            model_name=config.embedding.model_name,
        )
    ]


@dataclass
class RetrievalHit:
    """One chunk returned to the caller."""

    project: str
    file: str
    content: str
    score: float
    line_start: int | None = None
    line_end: int | None = None


@dataclass
class RetrievalResponse:
    """Ranked hits plus budget and freshness information."""

    results: list[RetrievalHit] = field(default_factory=list)
    token_count: int = 0
    truncated: bool = False
    index_age_seconds: int | None = None
    last_indexed_at: str | None = None
    indexing_in_progress: bool | None = None
    advisory_message: str | None = None

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dict, leaving out unset fields."""
        data = asdict(self)
        return {key: value for key, value in data.items() if value is not None}


def _display_path(file_path: str, root: Path | None) -> str:
    path = Path(file_path)
    if root is not None:
        root = Path(root).resolve()
        if path.is_relative_to(root):
            return path.relative_to(root).as_posix()
    return file_path


def _open_index(source: ProjectSource) -> SemanticIndex:
    return get_shared_index(source.index_path, model_name=source.model_name)


def search_projects(
    query: str,
    sources: Iterable[ProjectSource],
    project: str | None = None,
    limit: int = 10,
    min_score: float = 0.0,
    max_tokens: int | None = None,
    jobs: IndexingJobManager | None = None,
    open_index: Callable[[ProjectSource], SemanticIndex] = _open_index,
) -> RetrievalResponse:
    """
    Search the indexes of several projects and merge the results.

    A project whose index is missing is skipped. A project whose search fails
    (model unavailable, index needing a rebuild, unreadable files) is logged
    and contributes no results; the other projects still answer.

    Args:
        query: Natural language query
        sources: Projects to search
        project: Only search the project with this name
        limit: Maximum number of results overall
        min_score: Minimum similarity score
        max_tokens: Token budget for the returned content
        jobs: Job manager consulted for in-progress indexing (defaults to the
            process-wide one)
        open_index: Opens the index for a source (defaults to the shared
            process-wide index for its path and model)

    Returns:
        RetrievalResponse; freshness fields are set only when ``project`` is given
    """
    if jobs is None:
        jobs = indexing_jobs

    hits: list[RetrievalHit] = []
    opened: dict[str, SemanticIndex] = {}

    for source in sources:
        if project and source.name != project:
            continue
        if not source.enabled:
            logger.debug(f"Semantic search not enabled for project '{source.name}'")
            continue
        if not Path(source.index_path).exists():
            logger.debug(f"No index for project '{source.name}' at {source.index_path}")
            continue

        try:
            index = open_index(source)
            opened[source.name] = index
            results = index.search(query, limit=limit, min_score=min_score)
        except Exception:
            logger.exception(f"Semantic search failed for project '{source.name}'")
            continue

        for r in results:
            hits.append(
                RetrievalHit(
                    project=source.name,
                    file=_display_path(r.file_path, source.root),
                    content=r.content,
                    score=r.score,
                    line_start=r.line_start,
                    line_end=r.line_end,
                )
            )

    hits.sort(key=lambda h: h.score, reverse=True)
    hits = [h for h in hits if h.score >= min_score][:limit]
    hits, truncated, token_count = apply_token_budget(hits, max_tokens, lambda h: h.content)

    response = RetrievalResponse(results=hits, token_count=token_count, truncated=truncated)

    if project:
        in_progress = jobs.is_running(project)
        response.indexing_in_progress = in_progress
        response.advisory_message = ADVISORY_MESSAGE if in_progress else None
        index = opened.get(project)
        if index is not None:
            age = index.index_age_seconds()
            last = index.last_indexed_at()
            if age is not None and last is not None:
                response.index_age_seconds = int(age)
                response.last_indexed_at = last.isoformat()

    return response
