"""
Tests for FileStorage — local JSON file storage provider
"""

from unittest.mock import patch

import pytest
from hypothesis import given, settings, strategies as st

from src.state.infrastructure.persistence.exceptions import CorruptionError
from src.state.infrastructure.persistence.file_storage import FileStorage
from src.state.infrastructure.persistence.storage_provider import StorageProvider


class TestFileStorage:

    def test_is_storage_provider(self, tmp_path):
        assert isinstance(FileStorage(tmp_path, "Sqrl-config"), StorageProvider)

    def test_load_missing_file_returns_none(self, tmp_path):
        assert FileStorage(tmp_path, "Sqrl-config").load() is None

    def test_save_then_load(self, tmp_path):
        storage = FileStorage(tmp_path / "nested" / "dir", "Sqrl-config")
        storage.save('{"settings": {}}')
        assert storage.load() == '{"settings": {}}'
        assert storage.path.name == "Sqrl-config.json"

    def test_save_overwrites_and_leaves_no_temp_files(self, tmp_path):
        storage = FileStorage(tmp_path, "Sqrl-config")
        storage.save("first")
        storage.save("second")
        assert storage.load() == "second"
        assert [p.name for p in tmp_path.iterdir()] == ["Sqrl-config.json"]

    def test_failed_write_keeps_previous_content(self, tmp_path):
        storage = FileStorage(tmp_path, "Sqrl-config")
        storage.save("good")

        with patch("src.state.infrastructure.persistence.file_storage.os.replace",
                   side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                storage.save("bad")

        assert storage.load() == "good"
        assert [p.name for p in tmp_path.iterdir()] == ["Sqrl-config.json"]

    def test_undecodable_file_raises_corruption(self, tmp_path):
        storage = FileStorage(tmp_path, "Sqrl-config")
        storage.path.write_bytes(b"\xff\xfe\x00garbage\xff")
        with pytest.raises(CorruptionError):
            storage.load()

    def test_clear(self, tmp_path):
        storage = FileStorage(tmp_path, "Sqrl-config")
        assert storage.clear() is False
        storage.save("x")
        assert storage.clear() is True
        assert storage.load() is None

    @pytest.mark.parametrize("key", ["", "a/b"])
    def test_invalid_key_rejected(self, tmp_path, key):
        with pytest.raises(ValueError):
            FileStorage(tmp_path, key)

    @settings(max_examples=30, deadline=None)
    @given(raw=st.text(max_size=200))
    def test_text_round_trip(self, tmp_path_factory, raw):
        storage = FileStorage(tmp_path_factory.mktemp("store"), "k")
        storage.save(raw)
        assert storage.load() == raw
