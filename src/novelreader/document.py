"""Document model and error types for novelreader."""

from __future__ import annotations

import re
from dataclasses import dataclass


class ReaderError(Exception):
    """Base exception for novelreader errors."""

    pass


class DocumentNotFoundError(ReaderError):
    """Raised when a path or name does not match any loaded document."""

    pass


class TermNotFoundError(ReaderError):
    """Raised when a search term does not occur anywhere in a document."""

    pass


class NoActiveDocumentError(ReaderError):
    """Raised when an operation needs an active document and none is selected."""

    pass


_SEPARATOR_RE = re.compile(r"[\\/]")


@dataclass
class Document:
    """A decoded text document with its reading cursor.

    ``path`` and ``text`` never change after creation; only ``cursor`` moves.
    """

    path: str
    text: str
    cursor: int = 0
    encoding: str = "utf-8"

    @property
    def name(self) -> str:
        """Base name of the path, split on either separator."""
        return _SEPARATOR_RE.split(self.path)[-1]

    @property
    def length(self) -> int:
        return len(self.text)

    def is_valid_cursor(self, value: object) -> bool:
        """Check that value can be used as this document's cursor."""
        if isinstance(value, bool) or not isinstance(value, int):
            return False
        return 0 <= value < max(1, self.length)


@dataclass(frozen=True)
class Checkpoint:
    """Description of state that changed and must be persisted.

    Attributes:
        positions: (path, cursor) pairs to write as last-read positions.
        snapshot: Whether the full registry snapshot must be rewritten.
    """

    positions: tuple[tuple[str, int], ...] = ()
    snapshot: bool = False

    @classmethod
    def position(cls, document: Document) -> Checkpoint:
        return cls(positions=((document.path, document.cursor),))

    def merge(self, other: Checkpoint) -> Checkpoint:
        return Checkpoint(
            positions=self.positions + other.positions,
            snapshot=self.snapshot or other.snapshot,
        )

    def __bool__(self) -> bool:
        return bool(self.positions) or self.snapshot
