"""Registry of loaded documents with a single active selection."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass

from .decoder import EncodingPolicy, decode_bytes
from .document import Checkpoint, Document, DocumentNotFoundError
from .store import RegistryState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoadResult:
    """Outcome of loading a path into the registry."""

    document: Document
    created: bool
    checkpoint: Checkpoint


class Registry:
    """Ordered, path-unique collection of documents.

    Documents keep their load order. ``active_index`` is -1 while nothing
    is selected and becomes 0 when the first document is loaded.
    """

    def __init__(
        self, documents: list[Document] | None = None, active_index: int = -1
    ) -> None:
        self._documents: list[Document] = []
        self._by_path: dict[str, Document] = {}
        for document in documents or []:
            if document.path in self._by_path:
                logger.warning("Ignoring duplicate document: %s", document.path)
                continue
            self._documents.append(document)
            self._by_path[document.path] = document
        if not -1 <= active_index < len(self._documents):
            active_index = 0 if self._documents else -1
        self.active_index = active_index

    @classmethod
    def from_state(cls, state: RegistryState) -> Registry:
        return cls(list(state.documents), state.active_index)

    def state(self) -> RegistryState:
        return RegistryState(
            documents=tuple(self._documents), active_index=self.active_index
        )

    @property
    def documents(self) -> list[Document]:
        return list(self._documents)

    def __len__(self) -> int:
        return len(self._documents)

    def __iter__(self) -> Iterator[Document]:
        return iter(self._documents)

    def __contains__(self, path: object) -> bool:
        return path in self._by_path

    def load(
        self,
        path: str,
        data: bytes,
        policy: EncodingPolicy | str = EncodingPolicy.UTF8,
    ) -> LoadResult:
        """Decode and append a document unless path is already loaded.

        Args:
            path: Unique identifier of the document.
            data: Raw bytes of the document.
            policy: Encoding policy applied if the document is new.

        Returns:
            LoadResult; ``created`` is False when path was already present,
            in which case nothing is decoded and no cursor changes.
        """
        existing = self._by_path.get(path)
        if existing is not None:
            logger.debug("Already loaded: %s", path)
            return LoadResult(existing, False, Checkpoint(snapshot=True))

        decoded = decode_bytes(data, policy)
        document = Document(path=path, text=decoded.text, encoding=decoded.encoding)
        self._documents.append(document)
        self._by_path[path] = document
        if self.active_index == -1:
            self.active_index = 0
        logger.info(
            "Loaded %s (%d chars, %s)", path, document.length, decoded.encoding
        )
        return LoadResult(document, True, Checkpoint(snapshot=True))

    def get(self, path: str) -> Document:
        """Return the document loaded from path.

        Raises:
            DocumentNotFoundError: If path is not loaded.
        """
        try:
            return self._by_path[path]
        except KeyError:
            raise DocumentNotFoundError(f"Document not loaded: {path}") from None

    def resolve(self, name: str) -> Document:
        """Find a document by exact path or by unique base name.

        Raises:
            DocumentNotFoundError: If nothing matches or the base name is
                shared by several documents.
        """
        if name in self._by_path:
            return self._by_path[name]
        matches = [d for d in self._documents if d.name == name]
        if len(matches) == 1:
            return matches[0]
        if matches:
            paths = ", ".join(d.path for d in matches)
            raise DocumentNotFoundError(f"'{name}' is ambiguous: {paths}")
        raise DocumentNotFoundError(f"Document not loaded: {name}")

    def active(self) -> Document | None:
        if 0 <= self.active_index < len(self._documents):
            return self._documents[self.active_index]
        return None

    def switch_to(self, path: str, saved_cursor: int | None = None) -> Checkpoint:
        """Make the document at path active.

        Args:
            path: Path of a loaded document.
            saved_cursor: Last persisted cursor of the target. Ignored when
                missing or out of range, in which case the cursor resets to 0.

        Returns:
            Checkpoint with the previous active document's position and a
            registry snapshot.

        Raises:
            DocumentNotFoundError: If path is not loaded. Nothing changes.
        """
        target = self.get(path)
        checkpoint = Checkpoint(snapshot=True)
        previous = self.active()
        if previous is not None:
            checkpoint = Checkpoint.position(previous).merge(checkpoint)

        self.active_index = self._documents.index(target)
        if saved_cursor is not None and target.is_valid_cursor(saved_cursor):
            target.cursor = saved_cursor
        else:
            if saved_cursor is not None:
                logger.warning(
                    "Discarding saved position %r for %s", saved_cursor, path
                )
            target.cursor = 0
        logger.info("Switched to %s at %d", path, target.cursor)
        return checkpoint
