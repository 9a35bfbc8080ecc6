"""
Error taxonomy for the JSON document store.

- RecordNotFoundError: record absent where presence was required
- MalformedCollectionError: collection file exists but cannot be parsed
- StorageIOError: filesystem read/write/permission failure
- ConflictError: reserved; concurrent-write loss is prevented by per-collection
  locks and is never reported through this class
"""

from __future__ import annotations


class StorageError(RuntimeError):
    pass


class RecordNotFoundError(StorageError):
    def __init__(self, collection: str, record_id: str) -> None:
        super().__init__(f"Record with id {record_id} not found in {collection}")
        self.collection = collection
        self.record_id = record_id


class MalformedCollectionError(StorageError):
    pass


class StorageIOError(StorageError):
    pass


class ConflictError(StorageError):
    pass
