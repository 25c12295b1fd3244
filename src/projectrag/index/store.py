"""Persisted index of files, chunks and their embeddings."""

import json
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from ..exceptions import IndexRebuildRequired
from ..utils.logging import get_logger

logger = get_logger(__name__)

INDEX_VERSION = "1.0.0"


@dataclass
class Chunk:
    """A slice of one file's text plus its embedding."""

    chunk_id: str
    file_path: str
    content: str
    embedding: list[float]
    position: int
    line_start: int | None = None
    line_end: int | None = None

    @staticmethod
    def make_id(file_path: str, position: int) -> str:
        """Build the identifier of the chunk at ``position`` in ``file_path``."""
        return f"{file_path}#{position}"

    def to_dict(self) -> dict:
        """Convert to the JSON representation."""
        return {
            "id": self.chunk_id,
            "file_path": self.file_path,
            "content": self.content,
            "embedding": self.embedding,
            "position": self.position,
            "line_start": self.line_start,
            "line_end": self.line_end,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Chunk":
        """Create from the JSON representation."""
        return cls(
            chunk_id=str(data["id"]),
            file_path=str(data["file_path"]),
            content=str(data["content"]),
            embedding=[float(x) for x in data["embedding"]],
            position=int(data["position"]),
            line_start=data.get("line_start"),
            line_end=data.get("line_end"),
        )


@dataclass
class FileRecord:
    """Per-file bookkeeping: when it was indexed and which chunks it owns."""

    file_path: str
    mtime: float | None
    chunk_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to the JSON representation."""
        return {
            "file_path": self.file_path,
            "mtime": self.mtime,
            "chunk_ids": list(self.chunk_ids),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FileRecord":
        """Create from the JSON representation."""
        mtime = data.get("mtime")
        return cls(
            file_path=str(data["file_path"]),
            mtime=float(mtime) if mtime is not None else None,
            chunk_ids=[str(c) for c in data.get("chunk_ids", [])],
        )


@dataclass(frozen=True)
class IndexStats:
    """Aggregate counts over an index."""

    total_chunks: int
    total_files: int


class IndexStore:
    """
    In-memory index of File Records and Chunks with JSON persistence.

    Chunks are kept in insertion order. Every chunk belongs to exactly one
    File Record and every embedding has the same dimension. The store does no
    locking of its own; ``SemanticIndex`` serializes access to it.
    """

    def __init__(
        self,
        model_name: str | None = None,
        dimension: int | None = None,
        last_full_index: float | None = None,
    ):
        self.model_name = model_name
        self.dimension = dimension
        self.last_full_index = last_full_index
        self.files: dict[str, FileRecord] = {}
        self.chunks: dict[str, Chunk] = {}

    @classmethod
    def load(cls, path: Path | str) -> "IndexStore":
        """
        Load an index from disk.

        A missing file gives an empty index. So does a file that cannot be read
        or parsed; the problem is logged and the caller can re-index.
        """
        path = Path(path)
        if not path.exists():
            logger.debug(f"No index at {path}, starting empty")
            return cls()

        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            store = cls._from_payload(data)
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Index at {path} is unreadable, starting empty: {e}")
            return cls()

        logger.info(
            f"Loaded index from {path}: {len(store.files)} files, {len(store.chunks)} chunks"
        )
        return store

    @classmethod
    def _from_payload(cls, data: dict) -> "IndexStore":
        if not isinstance(data, dict):
            raise ValueError("index payload is not an object")

        dimension = data.get("dimension")
        last_full_index = data.get("last_full_index")
        if isinstance(last_full_index, bool) or not isinstance(
            last_full_index, (int, float, type(None))
        ):
            raise ValueError(f"last_full_index is not a timestamp: {last_full_index!r}")

        store = cls(
            model_name=data.get("model_name"),
            dimension=int(dimension) if dimension is not None else None,
            last_full_index=float(last_full_index) if last_full_index is not None else None,
        )

        for item in data.get("chunks", []):
            chunk = Chunk.from_dict(item)
            if store.dimension is None:
                store.dimension = len(chunk.embedding)
            if len(chunk.embedding) != store.dimension:
                raise ValueError(f"chunk {chunk.chunk_id} has the wrong dimension")
            if chunk.chunk_id in store.chunks:
                raise ValueError(f"chunk {chunk.chunk_id} appears twice")
            store.chunks[chunk.chunk_id] = chunk

        owned: set[str] = set()
        for item in data.get("files", []):
            record = FileRecord.from_dict(item)
            if record.file_path in store.files:
                raise ValueError(f"file {record.file_path} appears twice")
            for chunk_id in record.chunk_ids:
                chunk = store.chunks.get(chunk_id)
                if chunk is None:
                    raise ValueError(f"file {record.file_path} references missing chunks")
                if chunk.file_path != record.file_path:
                    raise ValueError(f"chunk {chunk_id} belongs to {chunk.file_path}")
                if chunk_id in owned:
                    raise ValueError(f"chunk {chunk_id} is listed twice")
                owned.add(chunk_id)
            store.files[record.file_path] = record

        if owned != set(store.chunks):
            raise ValueError("index contains chunks without an owning file")

        return store

    def to_payload(self) -> dict:
        """Convert the whole index to its JSON representation."""
        return {
            "version": INDEX_VERSION,
            "model_name": self.model_name,
            "dimension": self.dimension,
            "last_full_index": self.last_full_index,
            "files": [record.to_dict() for record in self.files.values()],
            "chunks": [chunk.to_dict() for chunk in self.chunks.values()],
        }

    def save(self, path: Path | str):
        """
        Write the index to disk atomically.

        The payload goes to a temporary file in the target directory which then
        replaces the target, so a crash never leaves a half-written index.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        tmp = tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        )
        try:
            with tmp:
                json.dump(self.to_payload(), tmp)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp.name, path)
        except BaseException:
            logger.error(f"Failed to save index to {path}")
            Path(tmp.name).unlink(missing_ok=True)
            raise

        logger.debug(f"Saved index to {path} ({len(self.chunks)} chunks)")

    def get(self, file_path: str) -> FileRecord | None:
        """Get the record for a file, if it is indexed."""
        return self.files.get(file_path)

    def check_compatible(self, model_name: str, dimension: int | None = None):
        """
        Ensure vectors from ``model_name`` can be mixed with the stored ones.

        An index without chunks is compatible with anything.

        Raises:
            IndexRebuildRequired: If the stored model or dimension differs.
        """
        if not self.chunks:
            return
        model_differs = self.model_name is not None and self.model_name != model_name
        dimension_differs = (
            dimension is not None and self.dimension is not None and self.dimension != dimension
        )
        if model_differs or dimension_differs:
            raise IndexRebuildRequired(
                stored_model=self.model_name,
                stored_dimension=self.dimension,
                model_name=model_name,
                dimension=dimension if dimension is not None else self.dimension,
            )

    def upsert_file(
        self,
        file_path: str,
        mtime: float | None,
        chunks: list[Chunk],
        model_name: str | None = None,
    ):
        """
        Replace everything stored for a file with ``chunks``.

        Raises:
            IndexRebuildRequired: If a chunk's dimension differs from the index's.
        """
        dimensions = {len(chunk.embedding) for chunk in chunks}
        if len(dimensions) > 1:
            raise ValueError(f"chunks for {file_path} have mixed dimensions: {dimensions}")

        if dimensions:
            dimension = dimensions.pop()
            self.check_compatible(model_name or self.model_name or "", dimension)
            self.dimension = dimension
        if model_name:
            self.model_name = model_name

        self.remove_file(file_path)
        for chunk in chunks:
            self.chunks[chunk.chunk_id] = chunk
        self.files[file_path] = FileRecord(
            file_path=file_path,
            mtime=mtime,
            chunk_ids=[chunk.chunk_id for chunk in chunks],
        )

    def remove_file(self, file_path: str) -> int:
        """
        Delete a file's record and all of its chunks.

        Returns:
            Number of chunks removed (0 if the file was not indexed)
        """
        record = self.files.pop(file_path, None)
        if record is None:
            return 0
        for chunk_id in record.chunk_ids:
            self.chunks.pop(chunk_id, None)
        if not self.chunks:
            self.dimension = None
        return len(record.chunk_ids)

    def all_chunks(self) -> list[Chunk]:
        """All chunks in insertion order."""
        return list(self.chunks.values())

    def indexed_files(self) -> list[str]:
        """Paths of every indexed file."""
        return list(self.files)

    def stats(self) -> IndexStats:
        """Count files and chunks."""
        return IndexStats(total_chunks=len(self.chunks), total_files=len(self.files))

    def clear(self):
        """Drop all files, chunks and metadata."""
        self.files.clear()
        self.chunks.clear()
        self.model_name = None
        self.dimension = None
        self.last_full_index = None
