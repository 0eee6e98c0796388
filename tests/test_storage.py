import json
import os
import threading

import pytest

from detecporc.database import DEFAULT_POINTS, JsonDocumentStore, next_id
from detecporc.errors import StorageError


def test_next_id():
    assert next_id([]) == 1
    assert next_id([{"id": 3}, {"id": 7}, {"id": 5}]) == 8


def test_missing_file_reads_default(tmp_path):
    store = JsonDocumentStore(tmp_path / "points.json", default=DEFAULT_POINTS)
    assert store.read() == DEFAULT_POINTS
    assert not store.exists()


def test_ensure_seeds_once(tmp_path):
    store = JsonDocumentStore(tmp_path / "points.json", default=DEFAULT_POINTS)
    assert store.ensure() is True
    store.write([])
    assert store.ensure() is False
    assert store.read() == []


def test_read_tolerates_bom(tmp_path):
    path = tmp_path / "points.json"
    path.write_bytes(b"\xef\xbb\xbf" + json.dumps([{"id": 1}]).encode("utf-8"))
    assert JsonDocumentStore(path).read() == [{"id": 1}]


def test_write_is_pretty_printed(tmp_path):
    store = JsonDocumentStore(tmp_path / "points.json")
    store.write([{"id": 1, "name": "Porc Express"}])
    text = (tmp_path / "points.json").read_text(encoding="utf-8")
    assert text.startswith("[\n  {")


def test_malformed_json_is_storage_error(tmp_path):
    path = tmp_path / "points.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(StorageError):
        JsonDocumentStore(path).read()


def test_non_array_is_storage_error(tmp_path):
    path = tmp_path / "points.json"
    path.write_text('{"id": 1}', encoding="utf-8")
    with pytest.raises(StorageError):
        JsonDocumentStore(path).read()


def test_failed_write_keeps_previous_snapshot(tmp_path, monkeypatch):
    store = JsonDocumentStore(tmp_path / "points.json")
    store.write([{"id": 1}])

    def broken_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(os, "replace", broken_replace)
    with pytest.raises(StorageError):
        store.mutate(lambda docs: docs.append({"id": 2}))

    monkeypatch.undo()
    assert store.read() == [{"id": 1}]
    assert [p.name for p in tmp_path.iterdir()] == ["points.json"]


def test_failed_change_writes_nothing(tmp_path):
    store = JsonDocumentStore(tmp_path / "points.json")
    store.write([{"id": 1}])

    def change(docs):
        docs.clear()
        raise ValueError("boom")

    with pytest.raises(ValueError):
        store.mutate(change)
    assert store.read() == [{"id": 1}]


def test_concurrent_mutations_are_serialized(tmp_path):
    store = JsonDocumentStore(tmp_path / "points.json")

    def append(docs):
        docs.append({"id": next_id(docs)})

    threads = [threading.Thread(target=store.mutate, args=(append,)) for _ in range(20)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(doc["id"] for doc in store.read()) == list(range(1, 21))
