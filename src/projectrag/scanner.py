"""Directory scanning and bulk (full) indexing of a file tree."""

import os
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path

from .config.models import DEFAULT_EXTENSIONS, DEFAULT_SKIP_DIRS
from .exceptions import EmbeddingError, IndexingCancelled, IndexRebuildRequired
from .semantic_index import SemanticIndex
from .utils.logging import get_logger

logger = get_logger(__name__)

INDEXABLE_EXTENSIONS = frozenset(DEFAULT_EXTENSIONS)
SKIP_DIRS = frozenset(DEFAULT_SKIP_DIRS)

TEXT_ENCODINGS = ["utf-8", "utf-8-sig", "latin-1"]

ProgressCallback = Callable[[int, int, str | None], None]


def should_skip_path(
    path: Path,
    root: Path | None = None,
    skip_dirs: Iterable[str] = SKIP_DIRS,
) -> bool:
    """
    Check if a path should be skipped.

    Hidden files and folders, and anything inside a skip-listed directory, are
    skipped. Only the part of the path below ``root`` is considered.
    """
    if root is not None and path.is_relative_to(root):
        path = path.relative_to(root)

    skip_dirs = set(skip_dirs)
    for part in path.parts:
        if part.startswith(".") and part not in {".", ".."}:
            return True
        if part in skip_dirs:
            return True
    return False


def collect_files(
    root_path: Path,
    extensions: Iterable[str] = INDEXABLE_EXTENSIONS,
    skip_dirs: Iterable[str] = SKIP_DIRS,
    max_size_mb: int = 5,
) -> list[Path]:
    """
    Collect indexable files under a directory.

    Args:
        root_path: Root directory to scan
        extensions: Extensions (with leading dot) to include
        skip_dirs: Directory names never descended into
        max_size_mb: Larger files are left out

    Returns:
        Sorted list of absolute file paths
    """
    root_path = Path(root_path).resolve()
    extensions = {e.lower() for e in extensions}
    skip_dirs = set(skip_dirs)
    max_size_bytes = max_size_mb * 1024 * 1024

    files: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root_path):
        dirnames[:] = [d for d in dirnames if not d.startswith(".") and d not in skip_dirs]

        for filename in filenames:
            if filename.startswith("."):
                continue
            path = Path(dirpath) / filename
            if path.suffix.lower() not in extensions:
                continue
            try:
                if not path.is_file() or path.stat().st_size > max_size_bytes:
                    continue
            except OSError:
                continue
            files.append(path)

    return sorted(files)


def read_text(file_path: Path) -> str | None:
    """
    Read a text file, trying a few common encodings.

    Returns:
        File content, or None if it cannot be read or decoded
    """
    for encoding in TEXT_ENCODINGS:
        try:
            with open(file_path, encoding=encoding) as f:
                return f.read()
        except UnicodeDecodeError:
            continue
        except OSError as e:
            logger.warning(f"Could not read {file_path}: {e}")
            return None
    return None


@dataclass
class DirectoryIndexResult:
    """Outcome of indexing a directory."""

    root: Path
    total: int = 0
    indexed: int = 0
    skipped: int = 0
    removed: int = 0
    errors: list[tuple[str, str]] = field(default_factory=list)
    cancelled: bool = False

    @property
    def error_count(self) -> int:
        return len(self.errors)


def _remove_stale_files(index: SemanticIndex, root: Path, wanted: set[str]) -> int:
    """Drop indexed files under ``root`` that were deleted or are now excluded."""
    removed = 0
    for file_path in index.indexed_files():
        path = Path(file_path)
        if not path.is_absolute() or not path.is_relative_to(root):
            continue
        if file_path not in wanted:
            index.remove_file(file_path)
            removed += 1
    return removed


def index_directory(
    index: SemanticIndex,
    root: Path | str,
    force: bool = False,
    clean: bool = False,
    extensions: Iterable[str] = INDEXABLE_EXTENSIONS,
    skip_dirs: Iterable[str] = SKIP_DIRS,
    max_size_mb: int = 5,
    cancel_event: threading.Event | None = None,
    on_progress: ProgressCallback | None = None,
) -> DirectoryIndexResult:
    """
    Index every qualifying file under ``root`` (a full index).

    Unchanged files are skipped by mtime unless ``force`` is set. Files that
    were indexed under ``root`` but are gone or no longer qualify are removed.
    The full-index timestamp is updated only if the pass was not cancelled.

    Args:
        index: Index to update
        root: Directory to scan
        force: Re-index every file regardless of mtime
        clean: Wipe the index before scanning
        extensions: Extensions to index
        skip_dirs: Directory names to skip
        max_size_mb: Maximum file size to index
        cancel_event: Checked between files and between chunks
        on_progress: Called with (done, total, current file) as files finish

    Returns:
        Counts of indexed, skipped, removed and failed files

    Raises:
        EmbeddingError: If the embedding model is unavailable
        IndexRebuildRequired: If the index was built with another model
    """
    root = Path(root).resolve()
    result = DirectoryIndexResult(root=root)

    if clean:
        logger.info(f"Cleaning index {index.index_path}")
        index.clear()

    files = collect_files(root, extensions, skip_dirs, max_size_mb)
    result.total = len(files)
    if on_progress:
        on_progress(0, result.total, None)

    result.removed = _remove_stale_files(index, root, {str(p) for p in files})
    if result.removed:
        logger.info(f"Removed {result.removed} stale file(s) from index")

    for done, path in enumerate(files, 1):
        if cancel_event is not None and cancel_event.is_set():
            result.cancelled = True
            break

        file_path = str(path)
        try:
            content = read_text(path)
            if content is None:
                result.errors.append((file_path, "Could not read file"))
                continue

            mtime = path.stat().st_mtime
            if index.index_file(file_path, content, mtime, cancel_event, force=force):
                result.indexed += 1
            else:
                result.skipped += 1

        except IndexingCancelled:
            result.cancelled = True
            break
        except (EmbeddingError, IndexRebuildRequired):
            raise
        except Exception as e:
            result.errors.append((file_path, str(e)))
            logger.exception(f"Error indexing {file_path}")
        finally:
            if on_progress:
                on_progress(done, result.total, file_path)

    if result.cancelled:
        logger.warning(f"Indexing of {root} cancelled after {result.indexed} file(s)")
        return result

    index.mark_full_index()

    stats = index.stats()
    logger.info(
        f"Indexed {result.indexed} file(s), skipped {result.skipped} unchanged, "
        f"{result.error_count} error(s). Index: {stats.total_files} files, "
        f"{stats.total_chunks} chunks"
    )
    return result
