"""
projectrag - embedded semantic indexing and search for project files.

Splits files into overlapping chunks, embeds them with a sentence-transformers
model, keeps the vectors in a single JSON index per project and answers
natural language queries by cosine similarity.
"""

__version__ = "0.1.0"
__license__ = "MIT"

from .config import get_config
from .embeddings import EmbeddingProvider, get_embedding_provider
from .exceptions import (
    EmbeddingError,
    IndexingCancelled,
    IndexRebuildRequired,
    ProjectRAGError,
)
from .index import Chunk, Chunker, FileRecord, IndexStats, IndexStore
from .search import SearchResult
from .semantic_index import SemanticIndex, get_shared_index
from .utils.logging import get_logger

__all__ = [
    "get_config",
    "get_logger",
    # Embeddings
    "EmbeddingProvider",
    "get_embedding_provider",
    # Index
    "SemanticIndex",
    "get_shared_index",
    "Chunker",
    "Chunk",
    "FileRecord",
    "IndexStats",
    "IndexStore",
    "SearchResult",
    # Errors
    "ProjectRAGError",
    "EmbeddingError",
    "IndexRebuildRequired",
    "IndexingCancelled",
]
