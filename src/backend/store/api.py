"""
API routes for record collections.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from .codec import resolve_spec
from .document_store import DocumentStore
from .errors import RecordNotFoundError, StorageError


logger = logging.getLogger(__name__)

# Collections served through this router; the admin document is not.
PUBLIC_COLLECTIONS = ("technicians", "announcements", "customer-service")


class PageOut(BaseModel):
    data: list[dict[str, Any]]
    total: int
    page: int
    limit: int


class RecordOut(BaseModel):
    success: bool = True
    data: dict[str, Any]


class DeleteOut(BaseModel):
    success: bool = True
    id: str


def _collection_or_404(collection: str) -> str:
    try:
        key = resolve_spec(collection).key
    except ValueError as exc:
        raise HTTPException(status_code=404, detail="集合不存在") from exc
    if key not in PUBLIC_COLLECTIONS:
        raise HTTPException(status_code=404, detail="集合不存在")
    return key


def _storage_error(exc: StorageError) -> HTTPException:
    logger.error("Storage failure: %s", exc)
    return HTTPException(status_code=500, detail="存储服务内部错误")


def create_collections_router(*, store: DocumentStore) -> APIRouter:
    router = APIRouter(prefix="/api/collections", tags=["collections"])

    @router.get("/{collection}", response_model=PageOut)
    def list_records(
        collection: str,
        page: int = Query(default=1, ge=1),
        limit: int = Query(default=10, ge=1, le=100),
        is_active: Optional[bool] = Query(default=None, alias="isActive"),
    ) -> PageOut:
        key = _collection_or_404(collection)

        def matches(record: dict[str, Any]) -> bool:
            return is_active is None or bool(record.get("isActive")) == is_active

        try:
            result = store.find_with_pagination(key, page, limit, matches)
        except StorageError as exc:
            raise _storage_error(exc) from exc
        return PageOut(**result.to_public_dict())

    @router.get("/{collection}/{record_id}", response_model=RecordOut)
    def get_record(collection: str, record_id: str) -> RecordOut:
        key = _collection_or_404(collection)
        try:
            record = store.find_by_id(key, record_id)
        except StorageError as exc:
            raise _storage_error(exc) from exc
        if record is None:
            raise HTTPException(status_code=404, detail="记录不存在")
        return RecordOut(data=record)

    @router.post("/{collection}", response_model=RecordOut)
    def create_record(collection: str, body: dict[str, Any]) -> RecordOut:
        key = _collection_or_404(collection)
        try:
            record = store.create(key, body)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except StorageError as exc:
            raise _storage_error(exc) from exc
        return RecordOut(data=record)

    @router.put("/{collection}/{record_id}", response_model=RecordOut)
    def update_record(collection: str, record_id: str, body: dict[str, Any]) -> RecordOut:
        key = _collection_or_404(collection)
        # media is owned by the reconciler
        body = {k: v for k, v in body.items() if k != "media"}
        if not body:
            raise HTTPException(status_code=400, detail="请求体不能为空")
        try:
            record = store.update(key, record_id, body)
        except RecordNotFoundError as exc:
            raise HTTPException(status_code=404, detail="记录不存在") from exc
        except StorageError as exc:
            raise _storage_error(exc) from exc
        return RecordOut(data=record)

    @router.delete("/{collection}/{record_id}", response_model=DeleteOut)
    def delete_record(collection: str, record_id: str) -> DeleteOut:
        key = _collection_or_404(collection)
        try:
            store.delete(key, record_id)
        except RecordNotFoundError as exc:
            raise HTTPException(status_code=404, detail="记录不存在") from exc
        except StorageError as exc:
            raise _storage_error(exc) from exc
        return DeleteOut(id=record_id)

    return router
