from __future__ import annotations

import json
from uuid import UUID

import pytest

from classifieds_watcher.infra.storage import DeserializationError, JsonDataStorage

KEY = UUID("00000000-0000-0000-0000-000000000001")


def test_save_and_load_roundtrip(tmp_path) -> None:
    storage = JsonDataStorage()
    path = tmp_path / "nested" / "links.json"
    storage.save({KEY: ["https://example.com/a"]}, path, dict[UUID, list[str]])
    assert json.loads(path.read_text(encoding="utf-8")) == {str(KEY): ["https://example.com/a"]}
    assert storage.load(path, dict[UUID, list[str]]) == {KEY: ["https://example.com/a"]}
    assert not path.with_name("links.json.tmp").exists()


def test_load_missing_file_raises_file_not_found(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        JsonDataStorage().load(tmp_path / "missing.json", dict[UUID, list[str]])


def test_shape_mismatch_raises_deserialization_error(tmp_path) -> None:
    path = tmp_path / "links.json"
    path.write_text(json.dumps({str(KEY): [{"uri": "x"}]}), encoding="utf-8")
    with pytest.raises(DeserializationError) as excinfo:
        JsonDataStorage().load(path, dict[UUID, list[str]])
    assert str(excinfo.value).startswith("Error converting value")


def test_malformed_json_is_not_a_deserialization_error(tmp_path) -> None:
    path = tmp_path / "links.json"
    path.write_text("[", encoding="utf-8")
    with pytest.raises(json.JSONDecodeError):
        JsonDataStorage().load(path, dict[UUID, list[str]])


def test_failed_save_keeps_previous_file(tmp_path, monkeypatch) -> None:
    storage = JsonDataStorage()
    path = tmp_path / "links.json"
    storage.save({KEY: ["a"]}, path, dict[UUID, list[str]])

    def broken_replace(*_args, **_kwargs):
        raise OSError("rename failed")

    monkeypatch.setattr("classifieds_watcher.infra.storage.os.replace", broken_replace)
    with pytest.raises(OSError):
        storage.save({KEY: ["b"]}, path, dict[UUID, list[str]])
    assert storage.load(path, dict[UUID, list[str]]) == {KEY: ["a"]}
    assert not path.with_name("links.json.tmp").exists()
