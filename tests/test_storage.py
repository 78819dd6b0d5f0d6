import json

import pytest

from storage import JsonFileStorage, MemoryStorage, StorageError


def test_memory_storage_contract():
    storage = MemoryStorage()
    storage.set_item("a", "1")
    assert storage.get_item("a") == "1"
    assert storage.keys() == ["a"]
    storage.remove_item("a")
    assert storage.get_item("a") is None


def test_listeners_receive_key_and_origin():
    storage = MemoryStorage()
    seen = []
    unsubscribe = storage.subscribe(lambda key, origin: seen.append((key, origin)))
    storage.set_item("cart", "[]", origin="tab-1")
    storage.remove_item("cart")
    storage.remove_item("cart")
    unsubscribe()
    storage.set_item("cart", "[]")
    assert seen == [("cart", "tab-1"), ("cart", None)]


def test_file_storage_survives_reopen(tmp_path):
    path = tmp_path / "state" / "local.json"
    JsonFileStorage(path).set_item("cart", '[{"x": 1}]')
    assert JsonFileStorage(path).get_item("cart") == '[{"x": 1}]'
    assert json.loads(path.read_text()) == {"cart": '[{"x": 1}]'}


def test_file_storage_discards_unreadable_file(tmp_path):
    path = tmp_path / "local.json"
    path.write_text("not json at all")
    storage = JsonFileStorage(path)
    assert storage.keys() == []
    storage.set_item("k", "v")
    assert JsonFileStorage(path).get_item("k") == "v"


def test_file_storage_write_failure_raises_storage_error(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("a file where a directory should be")
    storage = JsonFileStorage(blocker / "local.json")
    with pytest.raises(StorageError):
        storage.set_item("k", "v")
    assert storage.get_item("k") is None


def test_failed_replace_leaves_no_temp_file(tmp_path, monkeypatch):
    storage = JsonFileStorage(tmp_path / "local.json")
    storage.set_item("k", "v1")

    def fail_replace(src, dst):
        raise OSError("read-only file system")

    monkeypatch.setattr("storage.os.replace", fail_replace)
    with pytest.raises(StorageError):
        storage.set_item("k", "v2")

    assert sorted(p.name for p in tmp_path.iterdir()) == ["local.json"]
    assert storage.get_item("k") == "v1"
    assert json.loads((tmp_path / "local.json").read_text()) == {"k": "v1"}
