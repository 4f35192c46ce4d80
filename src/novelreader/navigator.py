"""Chunked, wrap-around navigation over a document's text.

The reading position moves one chunk at a time. Advancing past the end wraps
to offset 0. Retreating before the start lands on the last page-aligned
offset, ``(ceil(length / chunk_size) - 1) * chunk_size``, which is not
``length - chunk_size`` when the length is not a multiple of the chunk size.
"""

import math
import re

from .document import Checkpoint, Document, ReaderError

DEFAULT_CHUNK_SIZE = 80
DEFAULT_DISPLAY_WIDTH = 50
ELLIPSIS = "..."

_WHITESPACE_RE = re.compile(r"\s+")


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text)


def truncate(text: str, width: int) -> str:
    """Cut text to width characters, ending with an ellipsis when cut."""
    if len(text) <= width:
        return text
    return text[: width - len(ELLIPSIS)] + ELLIPSIS


def total_pages(length: int, chunk_size: int) -> int:
    """Number of pages for a text of length; empty text has one page."""
    return max(1, math.ceil(length / chunk_size))


class Navigator:
    """Moves document cursors by a fixed chunk size.

    Args:
        chunk_size: Characters per page. Must be positive.
        display_width: Maximum width of a rendered chunk.
        name_width: Maximum width of the file name in the status line;
            0 keeps the whole base name.
    """

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        display_width: int = DEFAULT_DISPLAY_WIDTH,
        name_width: int = 0,
    ) -> None:
        if isinstance(chunk_size, bool) or not isinstance(chunk_size, int):
            raise ReaderError(f"chunk_size must be an integer, got {chunk_size!r}")
        if chunk_size <= 0:
            raise ReaderError("chunk_size must be positive")
        if display_width <= len(ELLIPSIS):
            raise ReaderError(f"display width must be greater than {len(ELLIPSIS)}")
        if name_width < 0:
            raise ReaderError("name_width must be non-negative")
        self.chunk_size = chunk_size
        self.display_width = display_width
        self.name_width = name_width

    def advance(self, document: Document) -> Checkpoint:
        """Move to the next chunk, wrapping to the start after the last one."""
        cursor = document.cursor + self.chunk_size
        if cursor >= document.length:
            cursor = 0
        document.cursor = cursor
        return Checkpoint.position(document)

    def retreat(self, document: Document) -> Checkpoint:
        """Move to the previous chunk, wrapping to the last page offset."""
        cursor = document.cursor - self.chunk_size
        if cursor < 0:
            pages = total_pages(document.length, self.chunk_size)
            cursor = (pages - 1) * self.chunk_size
        document.cursor = cursor
        return Checkpoint.position(document)

    def current_chunk(self, document: Document) -> str:
        """Render the chunk at the cursor as a single display line."""
        end = min(document.cursor + self.chunk_size, document.length)
        chunk = document.text[document.cursor : end]
        return truncate(collapse_whitespace(chunk), self.display_width)

    def short_name(self, document: Document) -> str:
        name = document.name
        if self.name_width and len(name) > self.name_width:
            return name[: self.name_width]
        return name

    def status_line(self, document: Document) -> str:
        """Format ``[<name>] <chunk>`` for the document."""
        return f"[{self.short_name(document)}] {self.current_chunk(document)}"

    def page_info(self, document: Document) -> tuple[int, int]:
        """Return the 1-based page of the cursor and the page count."""
        pages = total_pages(document.length, self.chunk_size)
        page = min(document.cursor // self.chunk_size + 1, pages)
        return page, pages
