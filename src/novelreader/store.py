"""Durable reading positions over a string-keyed key-value store.

The store is the only place novelreader touches persistent storage. Writes
are fire-and-forget: failures are logged, never raised. Reads are
best-effort: missing or malformed values read as "no saved value".

Keys:
    reader.documents          list of {path, text, cursor, encoding}
    reader.active_index       index of the active document, -1 for none
    reader.position.<path>    last cursor of one document
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from contextlib import AbstractContextManager, contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterator, Protocol

from .document import Checkpoint, Document

if TYPE_CHECKING:
    from .registry import Registry

logger = logging.getLogger(__name__)

DOCUMENTS_KEY = "reader.documents"
ACTIVE_INDEX_KEY = "reader.active_index"
POSITION_KEY_PREFIX = "reader.position."


def position_key(path: str) -> str:
    return f"{POSITION_KEY_PREFIX}{path}"


class KeyValueStore(Protocol):
    """String-keyed get/set persistence substrate."""

    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...

    def update(self, values: dict[str, Any]) -> None: ...

    def batch(self) -> AbstractContextManager[None]: ...


class MemoryStore:
    """Dict-backed store; nothing survives the process."""

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self.data: dict[str, Any] = dict(data or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.data[key] = value

    def update(self, values: dict[str, Any]) -> None:
        self.data.update(values)

    @contextmanager
    def batch(self) -> Iterator[None]:
        yield


class JsonFileStore:
    """Store persisted as a single JSON object in a file.

    The file is read lazily on first access. Every write rewrites the whole
    file through a temporary file and ``os.replace`` so a crash never leaves
    a half-written state file. Inside ``batch()`` writes only update memory
    and the file is rewritten once when the outermost batch exits.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._data: dict[str, Any] | None = None
        self._depth = 0
        self._dirty = False

    def _load(self) -> dict[str, Any]:
        if self._data is not None:
            return self._data
        self._data = {}
        if not self.path.is_file():
            return self._data
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Cannot read state file %s: %s", self.path, e)
            return self._data
        if isinstance(data, dict):
            self._data = data
        else:
            logger.warning("Ignoring malformed state file: %s", self.path)
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        return self._load().get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.update({key: value})

    def update(self, values: dict[str, Any]) -> None:
        self._load().update(values)
        self._dirty = True
        if not self._depth:
            self.flush()

    def flush(self) -> None:
        """Write pending changes to the file."""
        data = self._load()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        self._dirty = False

    @contextmanager
    def batch(self) -> Iterator[None]:
        """Defer file writes until the outermost batch exits."""
        self._depth += 1
        try:
            yield
        finally:
            self._depth -= 1
            if not self._depth and self._dirty:
                try:
                    self.flush()
                except (OSError, TypeError, ValueError) as e:
                    logger.warning("Cannot write state file %s: %s", self.path, e)


@dataclass(frozen=True)
class RegistryState:
    """Serializable snapshot of a registry."""

    documents: tuple[Document, ...] = ()
    active_index: int = -1


def _document_to_dict(document: Document) -> dict[str, Any]:
    return {
        "path": document.path,
        "text": document.text,
        "cursor": document.cursor,
        "encoding": document.encoding,
    }


def _document_from_dict(data: Any) -> Document | None:
    if not isinstance(data, dict):
        return None
    path = data.get("path")
    text = data.get("text")
    if not isinstance(path, str) or not isinstance(text, str):
        return None
    document = Document(
        path=path, text=text, encoding=str(data.get("encoding") or "utf-8")
    )
    cursor = data.get("cursor", 0)
    if document.is_valid_cursor(cursor):
        document.cursor = cursor
    return document


class PositionStore:
    """Reads and writes reader state through a KeyValueStore."""

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    def _write(self, values: dict[str, Any]) -> None:
        try:
            self.store.update(values)
        except (OSError, TypeError, ValueError) as e:
            logger.warning("Cannot persist %s: %s", ", ".join(values), e)

    def checkpoint_position(self, path: str, cursor: int) -> None:
        self._write({position_key(path): cursor})

    def load_position(self, path: str) -> int | None:
        """Return the saved cursor for path, or None if there is none."""
        value = self.store.get(position_key(path))
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            return None
        return value

    def _snapshot_values(self, registry: Registry) -> dict[str, Any]:
        state = registry.state()
        return {
            DOCUMENTS_KEY: [_document_to_dict(d) for d in state.documents],
            ACTIVE_INDEX_KEY: state.active_index,
        }

    def save_registry_snapshot(self, registry: Registry) -> None:
        self._write(self._snapshot_values(registry))

    def load_registry_snapshot(self) -> RegistryState | None:
        """Return the saved registry, or None if nothing was saved."""
        raw_documents = self.store.get(DOCUMENTS_KEY)
        if not isinstance(raw_documents, list):
            return None

        documents: list[Document] = []
        for item in raw_documents:
            document = _document_from_dict(item)
            if document is None:
                logger.warning("Skipping malformed saved document: %r", item)
                continue
            documents.append(document)

        active_index = self.store.get(ACTIVE_INDEX_KEY, -1)
        if (
            isinstance(active_index, bool)
            or not isinstance(active_index, int)
            or not -1 <= active_index < len(documents)
        ):
            active_index = 0 if documents else -1
        return RegistryState(documents=tuple(documents), active_index=active_index)

    def apply(self, checkpoint: Checkpoint, registry: Registry) -> None:
        """Persist everything a checkpoint describes in a single write."""
        values = {position_key(path): cursor for path, cursor in checkpoint.positions}
        if checkpoint.snapshot:
            values.update(self._snapshot_values(registry))
        if values:
            self._write(values)
