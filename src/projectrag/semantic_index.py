"""Semantic index facade: one persisted store with its indexer and search engine."""

import threading
import time
from datetime import datetime, timezone
from pathlib import Path

from .config.models import DEFAULT_EMBEDDING_MODEL, ProjectRAGConfig, ProjectSettings
from .embeddings import Embedder, get_embedding_provider
from .index.chunker import Chunker
from .index.indexer import Indexer
from .index.store import IndexStats, IndexStore
from .search.engine import SearchEngine, SearchResult
from .utils.logging import get_logger

logger = get_logger(__name__)


class SemanticIndex:
    """
    A semantic index persisted at one path.

    Owns the in-memory IndexStore and serializes every operation on it with a
    single re-entrant lock, so a search never sees a half-applied update.
    Nothing coordinates separate processes: two processes writing the same
    path overwrite each other's changes.
    """

    def __init__(
        self,
        index_path: Path | str,
        embedder: Embedder | None = None,
        model_name: str | None = None,
        chunker: Chunker | None = None,
    ):
        """
        Open (or create) the index stored at ``index_path``.

        Args:
            index_path: Location of the persisted index file
            embedder: Embedding provider; defaults to the shared provider for
                ``model_name``
            model_name: Model used when no embedder is given
            chunker: Chunker for splitting file content
        """
        self.index_path = Path(index_path)
        self.embedder = embedder or get_embedding_provider(model_name or DEFAULT_EMBEDDING_MODEL)
        self.store = IndexStore.load(self.index_path)
        self.indexer = Indexer(self.store, self.index_path, self.embedder, chunker)
        self.engine = SearchEngine(self.store, self.embedder)
        self._lock = threading.RLock()

    @classmethod
    def from_config(
        cls,
        config: ProjectRAGConfig,
        project: ProjectSettings | None = None,
        embedder: Embedder | None = None,
        index_path: Path | str | None = None,
        shared: bool = False,
    ) -> "SemanticIndex":
        """
        Open the index for ``project`` (or the default index) as configured.

        With ``shared`` the process-wide instance from ``get_shared_index`` is
        returned; ``embedder`` is then ignored.
        """
        if index_path is None:
            index_path = project.get_index_path() if project else config.index_path
        model_name = config.model_for(project)
        chunker = Chunker(
            chunk_size=config.embedding.chunk_size,
            chunk_overlap=config.embedding.chunk_overlap,
            min_chunk_length=config.embedding.min_chunk_length,
        )
        if shared:
            return get_shared_index(index_path, model_name=model_name, chunker=chunker)
        return cls(index_path, embedder=embedder, model_name=model_name, chunker=chunker)

    def index_file(
        self,
        file_path: str,
        content: str,
        mtime: float | None = None,
        cancel_event: threading.Event | None = None,
        force: bool = False,
    ) -> bool:
        """Index a file; see ``Indexer.index_file``."""
        with self._lock:
            return self.indexer.index_file(file_path, content, mtime, cancel_event, force)

    def remove_file(self, file_path: str):
        """Remove a file and its chunks; a no-op for unknown files."""
        with self._lock:
            self.indexer.remove_file(file_path)

    def mark_full_index(self):
        """Record the completion time of a full pass over the file tree."""
        with self._lock:
            self.indexer.mark_full_index()

    def needs_reindex(self, file_path: str, mtime: float | None) -> bool:
        """Check whether the file would be re-indexed for this mtime."""
        with self._lock:
            return self.indexer.needs_reindex(file_path, mtime)

    def indexed_files(self) -> list[str]:
        """Paths of every indexed file."""
        with self._lock:
            return self.store.indexed_files()

    def search(self, query: str, limit: int = 10, min_score: float = 0.0) -> list[SearchResult]:
        """Rank stored chunks against ``query``; see ``SearchEngine.search``."""
        with self._lock:
            return self.engine.search(query, limit=limit, min_score=min_score)

    def stats(self) -> IndexStats:
        """Exact file and chunk counts."""
        with self._lock:
            return self.store.stats()

    def index_age_seconds(self) -> float | None:
        """Seconds since the last full index, or None if there never was one."""
        with self._lock:
            last = self.store.last_full_index
        if last is None:
            return None
        return max(0.0, time.time() - last)

    def last_indexed_at(self) -> datetime | None:
        """Time of the last full index (UTC), or None if there never was one."""
        with self._lock:
            last = self.store.last_full_index
        if last is None:
            return None
        return datetime.fromtimestamp(last, tz=timezone.utc)

    def clear(self):
        """Delete the persisted index and empty the in-memory store."""
        with self._lock:
            self.store.clear()
            self.index_path.unlink(missing_ok=True)
            logger.info(f"Cleared index at {self.index_path}")


_shared_indexes: dict[tuple[Path, str], SemanticIndex] = {}
_shared_lock = threading.Lock()


def get_shared_index(
    index_path: Path | str,
    model_name: str | None = None,
    chunker: Chunker | None = None,
) -> SemanticIndex:
    """
    Get the process-wide index for a path and model.

    Every caller asking for the same index (CLI commands, searches and
    background jobs) gets the same instance, so they share one in-memory store
    and one lock and the file is read only once. ``chunker`` only applies when
    the index is first opened.
    """
    model_name = model_name or DEFAULT_EMBEDDING_MODEL
    key = (Path(index_path).resolve(), model_name)
    with _shared_lock:
        index = _shared_indexes.get(key)
        if index is None:
            index = SemanticIndex(index_path, model_name=model_name, chunker=chunker)
            _shared_indexes[key] = index
        return index


def reset_shared_indexes():
    """Forget shared indexes (tests)."""
    with _shared_lock:
        _shared_indexes.clear()
