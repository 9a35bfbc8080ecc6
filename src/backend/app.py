from __future__ import annotations

from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from .media import MediaLayout, MediaReconciler, MediaUploads, ThumbnailSynthesizer
from .media.api import create_media_router
from .settings.models import StorageSettings
from .settings.store import SettingsStore
from .store import DocumentStore
from .store.api import create_collections_router


def _repo_root() -> Path:
    return Path(__file__).resolve().parents[2]


def create_app(*, repo_root: Optional[Path] = None, settings: Optional[StorageSettings] = None) -> FastAPI:
    repo_root = Path(repo_root) if repo_root is not None else _repo_root()
    settings_store = SettingsStore(path=repo_root / "data" / "config.json")
    if settings is None:
        settings = settings_store.load()
        if not settings_store.exists():
            settings_store.save(settings)

    data_dir = settings.resolve_data_dir(repo_root)
    public_root = settings.resolve_public_root(repo_root)
    public_root.mkdir(parents=True, exist_ok=True)

    store = DocumentStore(data_dir=data_dir)
    layout = MediaLayout(public_root, uploads_dir=settings.uploads_dir)
    synthesizer = ThumbnailSynthesizer(deterministic_names=settings.deterministic_thumbnail_names)
    reconciler = MediaReconciler(
        store=store,
        layout=layout,
        synthesizer=synthesizer,
        collection=settings.entity_collection,
        name_field=settings.entity_name_field,
    )
    uploads = MediaUploads(
        layout=layout,
        synthesizer=synthesizer,
        max_upload_bytes=settings.max_upload_bytes,
        max_image_bytes=settings.max_image_bytes,
    )

    app = FastAPI(title="technician-site-storage")
    app.include_router(create_collections_router(store=store))
    app.include_router(create_media_router(reconciler=reconciler, uploads=uploads))

    app.state.settings_store = settings_store
    app.state.settings = settings
    app.state.store = store
    app.state.layout = layout
    app.state.reconciler = reconciler
    app.state.uploads = uploads
    app.state.repo_root = repo_root

    # Serve originals and thumbnails under their public URLs (/uploads/...)
    app.mount("/", StaticFiles(directory=str(public_root)), name="public")
    return app
