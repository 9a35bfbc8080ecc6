"""
Tests for the JSON document store.

Covers:
1. create/find round-trip, including a fresh store over the same files
2. Pagination over filtered sets, out-of-range pages
3. id/createdAt immutability and updatedAt refresh on update
4. NotFound on update/delete of unknown ids
5. Cache isolation (returned records are copies, failed writes keep the cache)
6. Per-collection locking under concurrent writers
"""

import tempfile
import threading
import unittest
from pathlib import Path
from unittest.mock import patch

from src.backend.store import (
    CollectionCache,
    DocumentStore,
    RecordNotFoundError,
    StorageIOError,
)


class StoreTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.data_dir = Path(self._tmp.name) / "data"
        self.store = DocumentStore(data_dir=self.data_dir)

    def tearDown(self) -> None:
        self._tmp.cleanup()


class TestCreateAndFind(StoreTestCase):
    def test_create_assigns_id_and_equal_timestamps(self) -> None:
        record = self.store.create("technicians", {"nickname": "Ana", "cities": ["a"]})

        self.assertTrue(record["id"])
        self.assertEqual(record["createdAt"], record["updatedAt"])
        self.assertTrue(record["createdAt"].endswith("Z"))

        page = self.store.find_with_pagination("technicians", 1, 10)
        self.assertEqual(
            page.to_public_dict(),
            {"data": [record], "total": 1, "page": 1, "limit": 10},
        )

    def test_find_by_id_round_trips_through_a_fresh_store(self) -> None:
        record = self.store.create("technicians", {"nickname": "Ana", "age": 25})

        self.assertEqual(self.store.find_by_id("technicians", record["id"]), record)

        fresh = DocumentStore(data_dir=self.data_dir)
        self.assertEqual(fresh.find_by_id("technicians", record["id"]), record)

    def test_find_by_id_unknown_returns_none(self) -> None:
        self.assertIsNone(self.store.find_by_id("technicians", "missing"))

    def test_explicit_id_is_kept_and_must_be_unique(self) -> None:
        record = self.store.create("announcements", {"id": "a1", "title": "Hi"})
        self.assertEqual(record["id"], "a1")

        with self.assertRaises(ValueError):
            self.store.create("announcements", {"id": "a1", "title": "Again"})

    def test_generated_ids_are_unique(self) -> None:
        ids = {self.store.create("announcements", {"n": i})["id"] for i in range(50)}
        self.assertEqual(len(ids), 50)

    def test_find_all_keeps_insertion_order_and_filters(self) -> None:
        for name, active in [("c", True), ("a", False), ("b", True)]:
            self.store.create("technicians", {"nickname": name, "isActive": active})

        names = [r["nickname"] for r in self.store.find_all("technicians")]
        self.assertEqual(names, ["c", "a", "b"])

        active = [r["nickname"] for r in self.store.find_all("technicians", lambda r: r["isActive"])]
        self.assertEqual(active, ["c", "b"])

    def test_record_operations_reject_singleton_collection(self) -> None:
        with self.assertRaises(ValueError):
            self.store.create("admin", {"username": "x"})

        admin = self.store.read_container("admin")["admin"]
        self.assertEqual(admin["username"], "admin")

    def test_singleton_document_round_trips_through_write_container(self) -> None:
        container = self.store.read_container("admin")
        container["admin"]["loginAttempts"] = 3
        container["admin"]["lockedUntil"] = "2026-01-13T12:00:00.000Z"

        self.store.write_container("admin", container)
        container["admin"]["loginAttempts"] = 99

        self.assertEqual(self.store.read_container("admin")["admin"]["loginAttempts"], 3)
        fresh = DocumentStore(data_dir=self.data_dir)
        admin = fresh.read_container("admin")["admin"]
        self.assertEqual(admin["loginAttempts"], 3)
        self.assertEqual(admin["lockedUntil"], "2026-01-13T12:00:00.000Z")
        self.assertEqual(admin["username"], "admin")


class TestPagination(StoreTestCase):
    def test_third_page_of_twenty_five(self) -> None:
        for i in range(1, 26):
            self.store.create("technicians", {"nickname": f"t{i}"})

        page = self.store.find_with_pagination("technicians", 3, 10)

        self.assertEqual(page.total, 25)
        self.assertEqual(len(page.records), 5)
        self.assertEqual([r["nickname"] for r in page.records], [f"t{i}" for i in range(21, 26)])

    def test_pages_concatenate_to_find_all(self) -> None:
        for i in range(23):
            self.store.create("technicians", {"nickname": f"t{i}", "isNew": i % 3 == 0})

        def predicate(record):
            return not record["isNew"]

        expected = self.store.find_all("technicians", predicate)
        for page_size in (1, 4, 7, 100):
            with self.subTest(page_size=page_size):
                collected = []
                page_number = 1
                while True:
                    page = self.store.find_with_pagination("technicians", page_number, page_size, predicate)
                    self.assertEqual(page.total, len(expected))
                    collected.extend(page.records)
                    if len(collected) >= page.total:
                        break
                    page_number += 1
                self.assertEqual(collected, expected)

    def test_out_of_range_page_is_empty_with_total(self) -> None:
        for i in range(3):
            self.store.create("technicians", {"nickname": f"t{i}"})

        page = self.store.find_with_pagination("technicians", 5, 10)
        self.assertEqual(page.records, [])
        self.assertEqual(page.total, 3)

    def test_invalid_page_arguments(self) -> None:
        with self.assertRaises(ValueError):
            self.store.find_with_pagination("technicians", 0, 10)
        with self.assertRaises(ValueError):
            self.store.find_with_pagination("technicians", 1, 0)


class TestUpdateAndDelete(StoreTestCase):
    def test_update_merges_shallowly_and_keeps_identity(self) -> None:
        record = self.store.create("technicians", {"nickname": "Ana", "media": [{"path": "/a"}], "age": 20})

        previous = record["updatedAt"]
        for age in (21, 22, 23):
            updated = self.store.update(
                "technicians",
                record["id"],
                {"age": age, "id": "hijack", "createdAt": "1970-01-01T00:00:00.000Z"},
            )
            self.assertEqual(updated["id"], record["id"])
            self.assertEqual(updated["createdAt"], record["createdAt"])
            self.assertGreaterEqual(updated["updatedAt"], previous)
            previous = updated["updatedAt"]

        stored = self.store.find_by_id("technicians", record["id"])
        self.assertEqual(stored["age"], 23)
        self.assertEqual(stored["media"], [{"path": "/a"}])
        self.assertEqual(stored["nickname"], "Ana")

    def test_update_replaces_nested_values_wholesale(self) -> None:
        record = self.store.create("technicians", {"nickname": "Ana", "media": [{"path": "/a"}, {"path": "/b"}]})

        self.store.update("technicians", record["id"], {"media": [{"path": "/c"}]})

        self.assertEqual(self.store.find_by_id("technicians", record["id"])["media"], [{"path": "/c"}])

    def test_update_unknown_id_raises(self) -> None:
        with self.assertRaises(RecordNotFoundError):
            self.store.update("technicians", "missing", {"age": 1})

    def test_delete_removes_record(self) -> None:
        keep = self.store.create("announcements", {"title": "keep"})
        drop = self.store.create("announcements", {"title": "drop"})

        self.store.delete("announcements", drop["id"])

        self.assertIsNone(self.store.find_by_id("announcements", drop["id"]))
        self.assertEqual(self.store.find_all("announcements"), [keep])

        with self.assertRaises(RecordNotFoundError):
            self.store.delete("announcements", drop["id"])


class TestCacheBehaviour(StoreTestCase):
    def test_returned_records_do_not_alias_the_cache(self) -> None:
        record = self.store.create("technicians", {"nickname": "Ana", "cities": ["a"]})

        fetched = self.store.find_by_id("technicians", record["id"])
        fetched["cities"].append("b")
        fetched["nickname"] = "Changed"

        again = self.store.find_by_id("technicians", record["id"])
        self.assertEqual(again["cities"], ["a"])
        self.assertEqual(again["nickname"], "Ana")

    def test_reads_come_from_cache_until_cleared(self) -> None:
        self.store.create("technicians", {"nickname": "Ana"})
        (self.data_dir / "technicians.json").write_text('{"technicians": []}', encoding="utf-8")

        self.assertEqual(len(self.store.find_all("technicians")), 1)

        self.store.clear_cache()
        self.assertEqual(self.store.find_all("technicians"), [])

    def test_failed_write_leaves_cache_untouched(self) -> None:
        record = self.store.create("technicians", {"nickname": "Ana"})

        with patch.object(self.store.codec, "write", side_effect=StorageIOError("disk full")):
            with self.assertRaises(StorageIOError):
                self.store.update("technicians", record["id"], {"nickname": "Bea"})

        self.assertEqual(self.store.find_by_id("technicians", record["id"])["nickname"], "Ana")

    def test_injected_caches_are_isolated(self) -> None:
        cache_a = CollectionCache()
        store_a = DocumentStore(data_dir=self.data_dir, cache=cache_a)
        store_a.create("technicians", {"nickname": "Ana"})

        self.assertIn("technicians", cache_a)
        self.assertEqual(len(self.store.cache), 0)


class TestConcurrentWriters(StoreTestCase):
    def test_concurrent_creates_do_not_lose_records(self) -> None:
        errors = []

        def worker(n: int) -> None:
            try:
                for i in range(20):
                    self.store.create("technicians", {"nickname": f"w{n}-{i}"})
            except Exception as exc:  # noqa: BLE001 - surface in the main thread
                errors.append(exc)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(errors, [])
        self.assertEqual(len(self.store.find_all("technicians")), 160)

        fresh = DocumentStore(data_dir=self.data_dir)
        self.assertEqual(len(fresh.find_all("technicians")), 160)


if __name__ == "__main__":
    unittest.main()
