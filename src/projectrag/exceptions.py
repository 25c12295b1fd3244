"""Exception types raised by the semantic index."""


class ProjectRAGError(Exception):
    """Base class for projectrag errors."""


class EmbeddingError(ProjectRAGError):
    """The embedding model could not be loaded or failed to encode text.

    Callers are expected to catch this and fall back to a non-semantic search
    path instead of aborting.
    """


class IndexRebuildRequired(ProjectRAGError):
    """The persisted index was built with a different model or dimension."""

    def __init__(
        self,
        stored_model: str | None,
        stored_dimension: int | None,
        model_name: str,
        dimension: int,
    ):
        self.stored_model = stored_model
        self.stored_dimension = stored_dimension
        self.model_name = model_name
        self.dimension = dimension
        super().__init__(
            f"Index was built with {stored_model!r} ({stored_dimension} dims) but the "
            f"active model is {model_name!r} ({dimension} dims); rebuild the index"
        )


class IndexingCancelled(ProjectRAGError):
    """Indexing was cancelled cooperatively before it finished."""
