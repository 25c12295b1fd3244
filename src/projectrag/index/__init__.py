"""Chunking, storage and incremental indexing of file content."""

from .chunker import MIN_CHUNK_LENGTH, Chunker, ChunkSpan
from .indexer import Indexer
from .store import INDEX_VERSION, Chunk, FileRecord, IndexStats, IndexStore

__all__ = [
    "MIN_CHUNK_LENGTH",
    "Chunker",
    "ChunkSpan",
    "Indexer",
    "INDEX_VERSION",
    "Chunk",
    "FileRecord",
    "IndexStats",
    "IndexStore",
]
