"""Search module for similarity search over the semantic index."""

from .engine import SearchEngine, SearchResult

__all__ = [
    "SearchEngine",
    "SearchResult",
]
