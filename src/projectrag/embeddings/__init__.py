"""Embeddings module for generating vector representations of text."""

from .provider import (
    Embedder,
    EmbeddingProvider,
    get_embedding_provider,
    reset_embedding_providers,
)

__all__ = [
    "Embedder",
    "EmbeddingProvider",
    "get_embedding_provider",
    "reset_embedding_providers",
]
