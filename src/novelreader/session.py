"""Reading session: a registry, a navigator and their persistence.

A Session is the single owner of reader state. Core operations return a
Checkpoint describing what changed; the session writes it through the
PositionStore after every mutation.
"""

from __future__ import annotations

import logging

from .decoder import EncodingPolicy
from .document import Checkpoint, Document, NoActiveDocumentError
from .navigator import Navigator
from .registry import LoadResult, Registry
from .search import Match, search
from .store import MemoryStore, PositionStore

logger = logging.getLogger(__name__)


class Session:
    """One logical reader session.

    Not safe for concurrent use: cursor updates are read-modify-write, so
    callers sharing a session must serialize access.
    """

    def __init__(
        self,
        registry: Registry | None = None,
        navigator: Navigator | None = None,
        store: PositionStore | None = None,
        policy: EncodingPolicy | str = EncodingPolicy.UTF8,
    ) -> None:
        self.registry = registry if registry is not None else Registry()
        self.navigator = navigator if navigator is not None else Navigator()
        self.store = store if store is not None else PositionStore(MemoryStore())
        self.policy = EncodingPolicy.parse(policy)
        # Registry state last written as a snapshot; None when never written
        self._saved: tuple | None = None

    @classmethod
    def restore(
        cls,
        store: PositionStore,
        navigator: Navigator | None = None,
        policy: EncodingPolicy | str = EncodingPolicy.UTF8,
    ) -> Session:
        """Rebuild a session from persisted state.

        Per-document saved positions take precedence over the cursors in
        the registry snapshot. With no snapshot the registry starts empty.
        """
        state = store.load_registry_snapshot()
        registry = Registry.from_state(state) if state is not None else Registry()
        for document in registry:
            saved = store.load_position(document.path)
            if saved is None:
                continue
            if document.is_valid_cursor(saved):
                document.cursor = saved
            else:
                logger.warning(
                    "Discarding saved position %d for %s", saved, document.path
                )
        logger.debug("Restored %d document(s)", len(registry))
        session = cls(
            registry=registry, navigator=navigator, store=store, policy=policy
        )
        session._saved = session._signature()
        return session

    def _signature(self) -> tuple:
        return (
            self.registry.active_index,
            tuple((d.path, d.cursor) for d in self.registry),
        )

    def _commit(self, checkpoint: Checkpoint) -> None:
        if checkpoint:
            self.store.apply(checkpoint, self.registry)
        if checkpoint.snapshot:
            self._saved = self._signature()

    def active(self) -> Document | None:
        return self.registry.active()

    def require_active(self) -> Document:
        """Return the active document.

        Raises:
            NoActiveDocumentError: If no document is loaded or selected.
        """
        document = self.registry.active()
        if document is None:
            raise NoActiveDocumentError(
                "No document is loaded. Open a document first."
            )
        return document

    def open(self, path: str, data: bytes) -> LoadResult:
        """Load raw bytes under path with the session's encoding policy."""
        result = self.registry.load(path, data, self.policy)
        self._commit(result.checkpoint)
        return result

    def next_page(self) -> Document:
        document = self.require_active()
        self._commit(self.navigator.advance(document))
        return document

    def previous_page(self) -> Document:
        document = self.require_active()
        self._commit(self.navigator.retreat(document))
        return document

    def search(self, term: str) -> Match:
        """Move the active document's cursor to the next occurrence of term.

        Raises:
            NoActiveDocumentError: If no document is active.
            TermNotFoundError: If term is absent; the cursor does not move.
        """
        match = search(self.require_active(), term)
        self._commit(match.checkpoint())
        return match

    def switch_to(self, name: str) -> Document:
        """Activate the document matching name (a path or a unique base name).

        The previously active document's position is persisted first, then
        the target's saved position is restored.

        Raises:
            DocumentNotFoundError: If name matches no loaded document.
        """
        target = self.registry.resolve(name)
        previous = self.registry.active()
        if previous is target:
            saved = target.cursor
        else:
            saved = self.store.load_position(target.path)
        self._commit(self.registry.switch_to(target.path, saved))
        return target

    def status_line(self) -> str:
        return self.navigator.status_line(self.require_active())

    def close(self) -> None:
        """Write a final registry snapshot unless nothing changed."""
        signature = self._signature()
        if signature == self._saved:
            return
        self.store.save_registry_snapshot(self.registry)
        self._saved = signature
