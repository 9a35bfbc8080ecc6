"""
End-to-end tests for the HTTP surface (collections + media routes).
"""

import tempfile
import unittest
from pathlib import Path

from fastapi.testclient import TestClient

from src.backend.app import create_app


class ApiTestCase(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.repo_root = Path(self._tmp.name)
        self.app = create_app(repo_root=self.repo_root)
        self.client = TestClient(self.app)
        self.entity_root = self.repo_root / "public" / "uploads" / "technicians"

    def tearDown(self):
        self.client.close()
        self._tmp.cleanup()

    def create_technician(self, nickname: str) -> dict:
        resp = self.client.post("/api/collections/technicians", json={"nickname": nickname, "isActive": True})
        assert resp.status_code == 200, resp.text
        return resp.json()["data"]

    def add_files(self, folder: str, *names: str) -> Path:
        path = self.entity_root / folder
        path.mkdir(parents=True, exist_ok=True)
        for name in names:
            (path / name).write_bytes(b"x")
        return path


class TestCollectionsApi(ApiTestCase):
    def test_create_list_update_delete(self):
        ana = self.create_technician("Ana")

        listing = self.client.get("/api/collections/technicians", params={"page": 1, "limit": 10}).json()
        assert listing == {"data": [ana], "total": 1, "page": 1, "limit": 10}

        resp = self.client.put(f"/api/collections/technicians/{ana['id']}", json={"age": 30, "media": [{"path": "/x"}]})
        assert resp.status_code == 200
        assert resp.json()["data"]["age"] == 30
        assert "media" not in resp.json()["data"]

        assert self.client.delete(f"/api/collections/technicians/{ana['id']}").status_code == 200
        assert self.client.get(f"/api/collections/technicians/{ana['id']}").status_code == 404

    def test_is_active_filter(self):
        self.create_technician("Ana")
        self.client.post("/api/collections/technicians", json={"nickname": "Bo", "isActive": False})

        listing = self.client.get("/api/collections/technicians", params={"isActive": "false"}).json()

        assert listing["total"] == 1
        assert listing["data"][0]["nickname"] == "Bo"

    def test_admin_and_unknown_collections_are_not_exposed(self):
        assert self.client.get("/api/collections/admin").status_code == 404
        assert self.client.get("/api/collections/secrets").status_code == 404

    def test_update_unknown_record(self):
        resp = self.client.put("/api/collections/technicians/missing", json={"age": 1})
        assert resp.status_code == 404

    def test_malformed_file_is_a_server_error(self):
        data_dir = self.repo_root / "data"
        data_dir.mkdir(parents=True, exist_ok=True)
        (data_dir / "announcements.json").write_text("{oops", encoding="utf-8")

        resp = self.client.get("/api/collections/announcements")

        assert resp.status_code == 500
        assert resp.json()["detail"] == "存储服务内部错误"


class TestMediaApi(ApiTestCase):
    def test_sync_then_delete_media(self):
        ana = self.create_technician("Ana")
        folder = self.add_files("Ana", "photo.jpg", "clip.mp4")

        sync = self.client.post("/api/media/sync").json()
        assert sync["success"] is True
        assert sync["updated_entities"] == 1
        assert sync["message"] == "已同步 1 条记录的媒体文件"

        record = self.client.get(f"/api/collections/technicians/{ana['id']}").json()["data"]
        assert [m["path"] for m in record["media"]] == [
            "/uploads/technicians/Ana/clip.mp4",
            "/uploads/technicians/Ana/photo.jpg",
        ]

        resp = self.client.post(
            "/api/media/delete",
            json={"entity_id": ana["id"], "media_path": "/uploads/technicians/Ana/photo.jpg"},
        )
        assert resp.json() == {"success": True, "changed": True}
        assert not (folder / "photo.jpg").exists()

        resp = self.client.post(
            "/api/media/delete",
            json={"entity_id": ana["id"], "media_path": "/uploads/technicians/Ana/photo.jpg"},
        )
        assert resp.json() == {"success": True, "changed": False}

    def test_delete_media_errors(self):
        ana = self.create_technician("Ana")

        bad_path = self.client.post(
            "/api/media/delete",
            json={"entity_id": ana["id"], "media_path": "/uploads/../../etc/passwd"},
        )
        missing = self.client.post(
            "/api/media/delete",
            json={"entity_id": "missing", "media_path": "/uploads/technicians/Ana/a.jpg"},
        )

        assert bad_path.status_code == 400
        assert missing.status_code == 404

    def test_delete_entity(self):
        ana = self.create_technician("Ana")
        folder = self.add_files("Ana", "photo.jpg")

        assert self.client.delete(f"/api/media/entities/{ana['id']}").status_code == 200
        assert not folder.exists()
        assert self.client.delete(f"/api/media/entities/{ana['id']}").status_code == 404

    def test_folders_and_stats(self):
        self.create_technician("Ana")
        self.add_files("Ana", "photo.jpg", "clip.mp4")
        self.client.post("/api/media/sync")

        folders = self.client.get("/api/media/folders").json()
        stats = self.client.get("/api/media/stats").json()

        assert folders == [{"folder_name": "Ana", "media_count": 2, "files": ["clip.mp4", "photo.jpg"]}]
        assert stats["files"] == {"total": 2, "images": 1, "videos": 1}
        assert stats["entities"]["with_media"] == 1

    def test_upload_and_serve(self):
        resp = self.client.post(
            "/api/media/upload",
            data={"owner_name": "Ana"},
            files={"file": ("clip.mp4", b"\x00\x00\x00\x18ftypmp42", "video/mp4")},
        )
        assert resp.status_code == 200, resp.text
        data = resp.json()["data"]
        assert data["fileUrl"] == "/uploads/technicians/Ana/clip.mp4"

        served = self.client.get(data["fileUrl"])
        assert served.status_code == 200
        assert served.content == b"\x00\x00\x00\x18ftypmp42"

    def test_upload_rejects_unsupported_type(self):
        resp = self.client.post(
            "/api/media/upload",
            data={"owner_name": "Ana"},
            files={"file": ("notes.txt", b"hello", "text/plain")},
        )
        assert resp.status_code == 400


if __name__ == "__main__":
    unittest.main()
