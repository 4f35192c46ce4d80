"""novelreader - Page through plain-text novels with remembered positions."""

__version__ = "0.1.0"

from .decoder import EncodingPolicy, decode, decode_bytes
from .document import (
    Checkpoint,
    Document,
    DocumentNotFoundError,
    NoActiveDocumentError,
    ReaderError,
    TermNotFoundError,
)
from .navigator import Navigator
from .registry import LoadResult, Registry
from .search import Match, search
from .session import Session
from .store import JsonFileStore, MemoryStore, PositionStore, RegistryState

__all__ = [
    "EncodingPolicy",
    "decode",
    "decode_bytes",
    "Checkpoint",
    "Document",
    "ReaderError",
    "DocumentNotFoundError",
    "NoActiveDocumentError",
    "TermNotFoundError",
    "Navigator",
    "Registry",
    "LoadResult",
    "Match",
    "search",
    "Session",
    "JsonFileStore",
    "MemoryStore",
    "PositionStore",
    "RegistryState",
    "__version__",
]
