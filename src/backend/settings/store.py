from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Optional

from .models import StorageSettings


logger = logging.getLogger(__name__)


class SettingsStore:
    """
    Storage settings persisted as ``data/config.json``.

    A missing or unreadable file means defaults; the file is only written by
    ``save`` (``create_app`` seeds it on first start).
    """

    def __init__(self, *, path: Path) -> None:
        self._path = Path(path)
        self._lock = threading.RLock()

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.is_file()

    def load(self) -> StorageSettings:
        with self._lock:
            raw = self._read_raw()
            if raw is None:
                return StorageSettings()
            return StorageSettings.from_persist_dict(raw)

    def save(self, settings: StorageSettings) -> None:
        text = json.dumps(settings.to_persist_dict(), ensure_ascii=False, indent=2) + "\n"

        with self._lock:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
            tmp_path.write_text(text, encoding="utf-8")
            tmp_path.replace(self._path)
        logger.info("Saved storage settings to %s", self._path)

    def _read_raw(self) -> Optional[dict[str, Any]]:
        if not self._path.exists():
            return None

        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable settings file %s: %s", self._path, exc)
            return None

        if not isinstance(raw, dict):
            logger.warning("Ignoring settings file %s: top level is not an object", self._path)
            return None
        return raw
