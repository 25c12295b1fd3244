"""Text chunking into overlapping, boundary-aligned segments."""

from bisect import bisect_left
from collections.abc import Iterator
from dataclasses import dataclass

MIN_CHUNK_LENGTH = 50


@dataclass(frozen=True)
class ChunkSpan:
    """A chunk of text with the 1-based line range it covers."""

    content: str
    line_start: int
    line_end: int


class Chunker:
    """
    Splits text into overlapping windows for embedding.

    Windows are at most ``chunk_size`` characters. A window ends at the last
    paragraph break, or failing that the last line break, found in its second
    half; otherwise it is cut hard at ``chunk_size``. Consecutive windows share
    ``chunk_overlap`` characters. Segments of ``min_chunk_length`` characters
    or fewer (after stripping) are dropped, so short inputs may yield nothing.
    """

    def __init__(
        self,
        chunk_size: int = 1000,
        chunk_overlap: int = 100,
        min_chunk_length: int = MIN_CHUNK_LENGTH,
    ):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if chunk_overlap < 0 or chunk_overlap >= chunk_size:
            raise ValueError("chunk_overlap must be in [0, chunk_size)")
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.min_chunk_length = min_chunk_length

    def chunk(self, text: str) -> Iterator[str]:
        """Yield the content of each chunk of ``text``."""
        for span in self.chunk_with_lines(text):
            yield span.content

    def chunk_with_lines(self, text: str) -> Iterator[ChunkSpan]:
        """Yield each chunk of ``text`` together with its line range."""
        if not text:
            return

        newlines = [i for i, ch in enumerate(text) if ch == "\n"]
        length = len(text)
        start = 0

        while start < length:
            end = start + self.chunk_size
            if end >= length:
                end = length
            else:
                end = self._find_boundary(text, start, end)

            segment = text[start:end]
            content = segment.strip()
            if len(content) > self.min_chunk_length:
                content_start = start + (len(segment) - len(segment.lstrip()))
                content_end = content_start + len(content) - 1
                yield ChunkSpan(
                    content=content,
                    line_start=bisect_left(newlines, content_start) + 1,
                    line_end=bisect_left(newlines, content_end) + 1,
                )

            if end == length:
                break

            start = max(end - self.chunk_overlap, start + 1)

    def _find_boundary(self, text: str, start: int, end: int) -> int:
        """Pick where a window starting at ``start`` should end."""
        midpoint = start + self.chunk_size // 2

        paragraph = text.rfind("\n\n", start, end)
        if paragraph > midpoint:
            return paragraph

        line = text.rfind("\n", start, end)
        if line > midpoint:
            return line

        return end
