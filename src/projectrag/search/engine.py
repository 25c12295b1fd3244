"""Search engine ranking stored chunks by similarity to a query."""

from dataclasses import dataclass

import numpy as np

from ..embeddings import Embedder
from ..index.store import Chunk, IndexStore
from ..utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class SearchResult:
    """A single matching chunk with its relevance score."""

    file_path: str
    content: str
    score: float  # cosine similarity, 1.0 is identical
    position: int = 0
    line_start: int | None = None
    line_end: int | None = None

    @classmethod
    def from_chunk(cls, chunk: Chunk, score: float) -> "SearchResult":
        """Create a SearchResult from a stored chunk."""
        return cls(
            file_path=chunk.file_path,
            content=chunk.content,
            score=score,
            position=chunk.position,
            line_start=chunk.line_start,
            line_end=chunk.line_end,
        )


class SearchEngine:
    """
    Exact nearest-neighbour search over every chunk in an IndexStore.

    Stored vectors and the query vector are unit length, so the dot product
    is the cosine similarity. Every search is a linear scan.
    """

    def __init__(self, store: IndexStore, embedder: Embedder):
        """
        Initialize the search engine.

        Args:
            store: Store to search
            embedder: Provider used to embed queries
        """
        self.store = store
        self.embedder = embedder

    def search(self, query: str, limit: int = 10, min_score: float = 0.0) -> list[SearchResult]:
        """
        Find the chunks most similar to ``query``.

        Args:
            query: Natural language query
            limit: Maximum number of results
            min_score: Results scoring below this are dropped

        Returns:
            Results sorted by descending score; equal scores keep index order

        Raises:
            EmbeddingError: If the query cannot be embedded
            IndexRebuildRequired: If the index was built with another model
        """
        if limit <= 0:
            return []

        if not query or not query.strip():
            logger.warning("Empty search query provided")
            return []

        chunks = self.store.all_chunks()
        if not chunks:
            logger.info("Search attempted on empty index")
            return []

        self.store.check_compatible(self.embedder.model_name)
        query_vector = np.asarray(self.embedder.embed(query.strip()), dtype=np.float64)
        self.store.check_compatible(self.embedder.model_name, int(query_vector.shape[0]))

        matrix = np.asarray([chunk.embedding for chunk in chunks], dtype=np.float64)
        scores = matrix @ query_vector

        order = np.argsort(-scores, kind="stable")

        results = []
        for i in order:
            score = float(scores[i])
            if score < min_score:
                break
            results.append(SearchResult.from_chunk(chunks[i], score))
            if len(results) >= limit:
                break

        logger.debug(
            f"Search for '{query}' returned {len(results)} of {len(chunks)} chunks"
            + (f", top score {results[0].score:.4f}" if results else "")
        )
        return results
