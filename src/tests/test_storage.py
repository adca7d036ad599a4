"""Tests for storage.py module."""

import json
import os
from unittest.mock import patch

import pytest

import storage
from errors import StorageReadError, StorageWriteError


class TestInitStorage:
    """Tests for data directory bootstrap."""

    def test_creates_directory_and_default_files(self, tmp_path):
        data_dir = str(tmp_path / "nested" / "data")

        storage.init_storage(data_dir)

        with open(os.path.join(data_dir, storage.HISTORY_FILENAME)) as f:
            assert json.load(f) == {"samples": []}
        with open(os.path.join(data_dir, storage.STATS_FILENAME)) as f:
            stats = json.load(f)
        assert stats["players"] == {}
        assert stats["updatedAt"].endswith("Z")

    def test_existing_files_are_not_overwritten(self, data_dir, stats_path):
        existing = {"players": {"alice": {"kills": 3}}, "updatedAt": "2024-01-01T00:00:00.000Z"}
        with open(stats_path, "w") as f:
            json.dump(existing, f)

        storage.init_storage(data_dir)

        with open(stats_path) as f:
            assert json.load(f) == existing


class TestReadJson:
    """Tests for read_json error mapping."""

    def test_missing_file_raises_storage_read_error(self, tmp_path):
        path = str(tmp_path / "absent.json")

        with pytest.raises(StorageReadError) as exc_info:
            storage.read_json(path)

        assert exc_info.value.path == path

    def test_corrupt_file_raises_storage_read_error(self, tmp_path):
        path = tmp_path / "corrupt.json"
        path.write_text('{"samples": [')

        with pytest.raises(StorageReadError) as exc_info:
            storage.read_json(str(path))

        assert "Corrupt JSON" in str(exc_info.value)


class TestWriteJsonAtomic:
    """Tests for atomic replacement."""

    def test_write_replaces_content_and_leaves_no_temp_file(self, tmp_path):
        path = str(tmp_path / "doc.json")

        storage.write_json_atomic(path, {"a": 1})
        storage.write_json_atomic(path, {"a": 2})

        with open(path) as f:
            assert json.load(f) == {"a": 2}
        assert not os.path.exists(f"{path}.tmp")

    def test_failed_replace_keeps_previous_content(self, tmp_path):
        path = str(tmp_path / "doc.json")
        storage.write_json_atomic(path, {"a": 1})

        with patch("storage.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(StorageWriteError):
                storage.write_json_atomic(path, {"a": 2})

        with open(path) as f:
            assert json.load(f) == {"a": 1}
        assert not os.path.exists(f"{path}.tmp")

    def test_unserializable_data_raises_storage_write_error(self, tmp_path):
        path = str(tmp_path / "doc.json")
        storage.write_json_atomic(path, {"a": 1})

        with pytest.raises(StorageWriteError):
            storage.write_json_atomic(path, {"a": object()})

        with open(path) as f:
            assert json.load(f) == {"a": 1}


def test_resource_lock_is_shared_per_path(tmp_path):
    path = str(tmp_path / "doc.json")

    assert storage.resource_lock(path) is storage.resource_lock(path)
    assert storage.resource_lock(path) is not storage.resource_lock(str(tmp_path / "other.json"))
