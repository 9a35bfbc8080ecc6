"""
API routes for the entity media tree.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, File, Form, HTTPException, UploadFile
from pydantic import BaseModel, Field

from src.backend.store import StorageError

from .layout import InvalidMediaPathError
from .reconciler import EntityNotFoundError, MediaReconciler
from .uploads import MediaUploads, UploadRejectedError


logger = logging.getLogger(__name__)


class SyncOut(BaseModel):
    success: bool
    message: str
    scanned_folders: int
    updated_entities: int
    skipped_folders: list[str]
    failures: list[dict[str, str]]


class FolderOut(BaseModel):
    folder_name: str
    media_count: int
    files: list[str]


class DeleteMediaIn(BaseModel):
    """Request body for deleting one media file."""
    entity_id: str = Field(min_length=1)
    media_path: str = Field(min_length=1)


class DeleteOut(BaseModel):
    success: bool
    changed: bool = False


class UploadOut(BaseModel):
    success: bool
    data: dict[str, Any]


def _internal_error(action: str, exc: Exception) -> HTTPException:
    logger.error("%s failed: %s", action, exc)
    return HTTPException(status_code=500, detail=f"{action}失败")


def create_media_router(*, reconciler: MediaReconciler, uploads: MediaUploads) -> APIRouter:
    """
    Create the media API router.

    Args:
        reconciler: Folder/record reconciler.
        uploads: Upload storage.

    Returns:
        FastAPI router with media endpoints.
    """
    router = APIRouter(prefix="/api/media", tags=["media"])

    @router.post("/sync", response_model=SyncOut)
    def sync_media() -> SyncOut:
        """Rebuild every entity's media list from the upload tree."""
        try:
            result = reconciler.sync_all()
        except (OSError, StorageError) as exc:
            raise _internal_error("同步媒体文件", exc) from exc

        return SyncOut(
            success=not result.failures,
            message=f"已同步 {result.updated_entities} 条记录的媒体文件",
            **result.to_dict(),
        )

    @router.get("/folders", response_model=list[FolderOut])
    def list_folders() -> list[FolderOut]:
        try:
            inventory = reconciler.scanner.folder_inventory()
        except OSError as exc:
            raise _internal_error("读取媒体目录", exc) from exc
        return [FolderOut(**info.to_public_dict()) for info in inventory]

    @router.get("/stats")
    def media_stats() -> dict[str, Any]:
        try:
            return reconciler.media_stats()
        except (OSError, StorageError) as exc:
            raise _internal_error("统计媒体文件", exc) from exc

    @router.post("/delete", response_model=DeleteOut)
    def delete_media(body: DeleteMediaIn) -> DeleteOut:
        try:
            changed = reconciler.delete_media(body.entity_id, body.media_path)
        except EntityNotFoundError as exc:
            raise HTTPException(status_code=404, detail="记录不存在") from exc
        except InvalidMediaPathError as exc:
            raise HTTPException(status_code=400, detail="媒体路径无效") from exc
        except (OSError, StorageError) as exc:
            raise _internal_error("删除媒体文件", exc) from exc
        return DeleteOut(success=True, changed=changed)

    @router.delete("/entities/{entity_id}", response_model=DeleteOut)
    def delete_entity(entity_id: str) -> DeleteOut:
        try:
            reconciler.delete_entity(entity_id)
        except EntityNotFoundError as exc:
            raise HTTPException(status_code=404, detail="记录不存在") from exc
        except StorageError as exc:
            raise _internal_error("删除记录", exc) from exc
        return DeleteOut(success=True, changed=True)

    @router.post("/upload", response_model=UploadOut)
    async def upload_media(
        file: UploadFile = File(...),
        owner_name: str = Form(..., min_length=1),
    ) -> UploadOut:
        content = await file.read()
        try:
            stored = uploads.store_upload(
                owner_name,
                file.filename or "",
                content,
                file.content_type,
            )
        except (UploadRejectedError, InvalidMediaPathError) as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except OSError as exc:
            raise _internal_error("上传文件", exc) from exc
        return UploadOut(success=True, data=stored.to_public_dict())

    return router
