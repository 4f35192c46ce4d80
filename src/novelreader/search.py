"""Literal substring search relative to a document's cursor."""

from dataclasses import dataclass

from .document import Checkpoint, Document, TermNotFoundError


@dataclass(frozen=True)
class Match:
    """A successful search.

    Attributes:
        path: Path of the searched document.
        index: Start offset of the match; the document cursor now points here.
        advanced: True if the match lies after the previous cursor, False if
            the search wrapped around to the start of the text.
    """

    path: str
    index: int
    advanced: bool

    def checkpoint(self) -> Checkpoint:
        return Checkpoint(positions=((self.path, self.index),))


def _find(text: str, term: str, start: int) -> int:
    # An empty term matches at start while start is inside the text, so the
    # cursor never lands on len(text).
    if not term:
        return start if start < len(text) else -1
    return text.find(term, start)


def search(document: Document, term: str) -> Match:
    """Find term after the cursor, falling back to a scan from the start.

    The forward scan starts at ``cursor + 1`` so that repeating a search
    moves to the next occurrence instead of the one already shown. The
    match is case-sensitive and the cursor is set to the match offset
    without page alignment.

    Raises:
        TermNotFoundError: If term occurs nowhere in the text. The cursor
            is left unchanged.
    """
    index = _find(document.text, term, document.cursor + 1)
    advanced = index != -1
    if not advanced:
        index = _find(document.text, term, 0)
        if index == -1 and not term:
            index = 0
    if index == -1:
        raise TermNotFoundError(f"Text '{term}' not found in {document.name}")
    document.cursor = index
    return Match(path=document.path, index=index, advanced=advanced)
