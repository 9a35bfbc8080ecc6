"""
JSON-file document store.

Provides:
- Collection file encoding and defaults (codec.py)
- Explicit per-instance container cache (cache.py)
- CRUD + pagination with per-collection locking (document_store.py)
- Error taxonomy (errors.py)
"""

from .cache import CollectionCache
from .codec import CollectionCodec, CollectionSpec, KNOWN_COLLECTIONS, resolve_spec
from .document_store import DocumentStore, Page, generate_record_id
from .errors import (
    ConflictError,
    MalformedCollectionError,
    RecordNotFoundError,
    StorageError,
    StorageIOError,
)

__all__ = [
    "CollectionCache",
    "CollectionCodec",
    "CollectionSpec",
    "KNOWN_COLLECTIONS",
    "resolve_spec",
    "DocumentStore",
    "Page",
    "generate_record_id",
    "ConflictError",
    "MalformedCollectionError",
    "RecordNotFoundError",
    "StorageError",
    "StorageIOError",
]
