"""Embedding provider turning text into normalized vectors with sentence-transformers."""

import threading
from typing import ClassVar, Protocol

from ..config.models import DEFAULT_EMBEDDING_MODEL
from ..exceptions import EmbeddingError
from ..utils.logging import get_logger

logger = get_logger(__name__)


class Embedder(Protocol):
    """What the index needs from an embedding provider."""

    model_name: str

    @property
    def dimension(self) -> int: ...

    def embed(self, text: str) -> list[float]: ...


class EmbeddingProvider:
    """
    Generates L2-normalized vector embeddings using sentence-transformers.

    Features:
    - Uses all-MiniLM-L6-v2 by default (384 dimensions, ~80MB)
    - Loads the model lazily on first use
    - Caches loaded models at class level so each model loads once per process
    - Normalizes every vector so dot product equals cosine similarity
    """

    _model_cache: ClassVar[dict] = {}
    _load_lock: ClassVar[threading.Lock] = threading.Lock()

    def __init__(self, model_name: str = DEFAULT_EMBEDDING_MODEL):
        """
        Initialize the embedding provider.

        Args:
            model_name: Name of the sentence-transformers model to use
        """
        self.model_name = model_name

    def _get_model(self):
        """
        Get the sentence transformer model, loading it on first use.

        Raises:
            EmbeddingError: If the model cannot be loaded.
        """
        with self._load_lock:
            if self.model_name not in self._model_cache:
                logger.info(f"Loading embedding model: {self.model_name}")
                try:
                    from sentence_transformers import SentenceTransformer

                    self._model_cache[self.model_name] = SentenceTransformer(self.model_name)
                except Exception as e:
                    logger.error(f"Failed to load embedding model {self.model_name}: {e}")
                    raise EmbeddingError(
                        f"Failed to load embedding model {self.model_name}: {e}"
                    ) from e
                logger.info(f"Embedding model loaded: {self.model_name}")

            return self._model_cache[self.model_name]

    def embed(self, text: str) -> list[float]:
        """
        Generate a normalized embedding vector for the given text.

        Args:
            text: The text to embed

        Returns:
            Embedding as a list of floats with unit Euclidean norm

        Raises:
            EmbeddingError: If the model fails to load or encode
        """
        return self.embed_batch([text])[0]

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """
        Generate normalized embeddings for several texts in one model call.

        Args:
            texts: Texts to embed

        Returns:
            One embedding per input text, in order
        """
        if not texts:
            return []

        model = self._get_model()
        try:
            vectors = model.encode(
                texts,
                convert_to_numpy=True,
                normalize_embeddings=True,
                show_progress_bar=False,
            )
        except Exception as e:
            logger.error(f"Failed to generate embedding: {e}")
            raise EmbeddingError(f"Failed to generate embedding: {e}") from e

        return [vector.tolist() for vector in vectors]

    @property
    def dimension(self) -> int:
        """Get the dimension of embeddings produced by the model."""
        return self._get_model().get_sentence_embedding_dimension()

    @classmethod
    def clear_model_cache(cls):
        """Clear the model cache (useful for testing or memory management)."""
        cls._model_cache.clear()
        logger.info("Embedding model cache cleared")


_providers: dict[str, EmbeddingProvider] = {}
_providers_lock = threading.Lock()


def get_embedding_provider(model_name: str = DEFAULT_EMBEDDING_MODEL) -> EmbeddingProvider:
    """
    Get the shared provider for a model.

    The same instance is returned for every call with the same model name for
    the lifetime of the process; the model itself loads on the first embed.
    """
    with _providers_lock:
        provider = _providers.get(model_name)
        if provider is None:
            provider = EmbeddingProvider(model_name)
            _providers[model_name] = provider
        return provider


def reset_embedding_providers():
    """Forget shared providers (tests)."""
    with _providers_lock:
        _providers.clear()
