from __future__ import annotations

from pathlib import Path

from storage_logger.blobs import BlobStore
from storage_logger.kv import KeyValueStore


def test_blob_write_read_delete(blobs: BlobStore) -> None:
    assert blobs.write("A.jpg", b"one") is True
    assert blobs.exists("A.jpg")
    assert blobs.read("A.jpg") == b"one"
    assert blobs.list() == ["A.jpg"]

    assert blobs.delete("A.jpg") is True
    assert blobs.delete("A.jpg") is False
    assert blobs.read("A.jpg") is None
    assert blobs.read(None) is None


def test_blob_rejects_path_traversal(blobs: BlobStore, tmp_path: Path) -> None:
    assert blobs.write("../escape.jpg", b"x") is False
    assert blobs.write("", b"x") is False
    assert not (tmp_path / "escape.jpg").exists()
    assert blobs.read("../store.json") is None
    assert blobs.path_for("nested/name.jpg") is None


def test_blob_clear(blobs: BlobStore) -> None:
    for name in ("A.jpg", "B.jpg", "C.jpg"):
        blobs.write(name, name.encode())
    assert blobs.clear() == 3
    assert blobs.list() == []
    assert blobs.clear() == 0


def test_kv_round_trip(kv: KeyValueStore, tmp_path: Path) -> None:
    assert kv.get("entries") is None
    assert kv.get("counterForAd", 1) == 1
    kv.set("entries", [{"id": "a"}])
    kv.set("counterForAd", 3)
    assert sorted(kv.keys()) == ["counterForAd", "entries"]

    reopened = KeyValueStore(tmp_path / "store.json")
    assert reopened.get("entries") == [{"id": "a"}]
    reopened.delete("entries")
    reopened.delete("missing")
    assert kv.get("entries") is None
    assert not (tmp_path / "store.tmp").exists()


def test_kv_tolerates_non_object_file(tmp_path: Path) -> None:
    path = tmp_path / "store.json"
    path.write_text("[1, 2, 3]", encoding="utf-8")
    store = KeyValueStore(path)
    assert store.get("entries") is None
    store.set("entries", [])
    assert store.get("entries") == []
