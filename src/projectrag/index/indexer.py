"""Incremental indexing of single files into an IndexStore."""

import threading
import time
from pathlib import Path

from ..embeddings import Embedder
from ..exceptions import IndexingCancelled
from ..utils.logging import get_logger
from .chunker import Chunker
from .store import Chunk, IndexStore

logger = get_logger(__name__)


class Indexer:
    """
    Chunks, embeds and stores files, skipping ones that have not changed.

    A file is unchanged when the caller supplies a modification time equal to
    the one recorded at its last indexing. This is an mtime comparison, not a
    content hash: a rewrite that keeps the same mtime goes unnoticed.
    """

    def __init__(
        self,
        store: IndexStore,
        index_path: Path | str,
        embedder: Embedder,
        chunker: Chunker | None = None,
    ):
        """
        Initialize the indexer.

        Args:
            store: Store to mutate
            index_path: Where the store is persisted after each mutation
            embedder: Provider used to embed chunks
            chunker: Chunker used to split file content
        """
        self.store = store
        self.index_path = Path(index_path)
        self.embedder = embedder
        self.chunker = chunker or Chunker()

    def needs_reindex(self, file_path: str, mtime: float | None) -> bool:
        """Check whether ``index_file`` with this mtime would do any work."""
        record = self.store.get(str(file_path))
        if record is None or mtime is None:
            return True
        return record.mtime != mtime

    def index_file(
        self,
        file_path: str,
        content: str,
        mtime: float | None = None,
        cancel_event: threading.Event | None = None,
        force: bool = False,
    ) -> bool:
        """
        Index one file.

        Args:
            file_path: Key of the file in the index
            content: Full text of the file
            mtime: Modification time; equal to the stored one means skip
            cancel_event: Checked between chunks; when set, indexing stops
            force: Re-index even if the mtime is unchanged

        Returns:
            True if the file was (re)indexed, False if it was skipped

        Raises:
            EmbeddingError: If the embedding provider fails
            IndexRebuildRequired: If the index was built with another model
            IndexingCancelled: If ``cancel_event`` was set; the index is unchanged
        """
        file_path = str(file_path)

        if not force and not self.needs_reindex(file_path, mtime):
            logger.debug(f"Skipping unchanged file: {file_path}")
            return False

        self.store.check_compatible(self.embedder.model_name)

        chunks: list[Chunk] = []
        for position, span in enumerate(self.chunker.chunk_with_lines(content or "")):
            if cancel_event is not None and cancel_event.is_set():
                raise IndexingCancelled(f"Indexing of {file_path} cancelled")

            chunks.append(
                Chunk(
                    chunk_id=Chunk.make_id(file_path, position),
                    file_path=file_path,
                    content=span.content,
                    embedding=self.embedder.embed(span.content),
                    position=position,
                    line_start=span.line_start,
                    line_end=span.line_end,
                )
            )

        self.store.upsert_file(file_path, mtime, chunks, model_name=self.embedder.model_name)
        self.store.save(self.index_path)

        logger.debug(f"Indexed {file_path}: {len(chunks)} chunk(s)")
        return True

    def remove_file(self, file_path: str):
        """Remove a file and its chunks. Removing an unknown file does nothing."""
        file_path = str(file_path)
        if self.store.get(file_path) is None:
            return

        removed = self.store.remove_file(file_path)
        self.store.save(self.index_path)
        logger.info(f"Removed {file_path} from index ({removed} chunk(s))")

    def mark_full_index(self):
        """Record that a full pass over the file tree just finished."""
        self.store.last_full_index = time.time()
        self.store.save(self.index_path)
