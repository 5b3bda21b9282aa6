"""Unit tests for the MediaStorage filesystem layer."""

import pytest

from ballstats.exceptions import LocalWriteError
from ballstats.storage import MediaStorage

JPEG = b"\xff\xd8\xff\xe0fake-jpeg-bytes\xff\xd9"


class TestSaveAndLoad:
    """Tests for saving bytes and reading them back by locator."""

    def test_save_returns_file_locator(self, tmp_path):
        storage = MediaStorage(tmp_path)
        locator = storage.save(JPEG, "misc/a.bin")
        assert locator.startswith("file://")
        assert (tmp_path / "misc" / "a.bin").read_bytes() == JPEG

    def test_load_by_locator(self, tmp_path):
        storage = MediaStorage(tmp_path)
        locator = storage.save(JPEG, "misc/a.bin")
        assert storage.load(locator) == JPEG

    def test_save_overwrites_same_key(self, tmp_path):
        storage = MediaStorage(tmp_path)
        storage.save(b"one", "k.bin")
        locator = storage.save(b"two", "k.bin")
        assert storage.load(locator) == b"two"

    def test_path_with_spaces(self, tmp_path):
        storage = MediaStorage(tmp_path / "my media")
        locator = storage.save(JPEG, "a b.jpg")
        assert storage.load(locator) == JPEG


class TestMediaKinds:
    """Tests for avatar and logo naming."""

    def test_player_avatar(self, tmp_path):
        storage = MediaStorage(tmp_path)
        locator = storage.save_player_avatar(JPEG, "p1")
        files = list((tmp_path / "player_avatars").iterdir())
        assert len(files) == 1
        assert files[0].name.startswith("player_p1_")
        assert files[0].suffix == ".jpg"
        assert storage.load(locator) == JPEG

    def test_team_logo(self, tmp_path):
        storage = MediaStorage(tmp_path)
        locator = storage.save_team_logo(JPEG, "t1")
        files = list((tmp_path / "team_logos").iterdir())
        assert [f.name[:8] for f in files] == ["team_t1_"]
        assert locator == files[0].resolve().as_uri()

    def test_unknown_kind(self, tmp_path):
        with pytest.raises(ValueError, match="Unknown media kind"):
            MediaStorage(tmp_path).save_media(JPEG, "banner", "x")


class TestExists:
    """Tests for the exists() check."""

    def test_exists_true(self, tmp_path):
        storage = MediaStorage(tmp_path)
        assert storage.exists(storage.save(JPEG, "a.jpg"))

    def test_exists_false_for_missing_file(self, tmp_path):
        storage = MediaStorage(tmp_path)
        assert not storage.exists((tmp_path / "nope.jpg").as_uri())

    def test_exists_false_for_remote_url(self, tmp_path):
        assert not MediaStorage(tmp_path).exists("https://example.com/a.jpg")


class TestErrors:
    """Tests for invalid keys, locators and write failures."""

    @pytest.mark.parametrize("key", ["", "/etc/passwd", "../escape.jpg", "a/../../b.jpg"])
    def test_invalid_key(self, tmp_path, key):
        with pytest.raises(ValueError, match="Invalid media key"):
            MediaStorage(tmp_path).save(JPEG, key)

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            MediaStorage(tmp_path).load((tmp_path / "nope.jpg").as_uri())

    def test_load_remote_url(self, tmp_path):
        with pytest.raises(ValueError, match="Not a local file locator"):
            MediaStorage(tmp_path).load("https://example.com/a.jpg")

    def test_write_failure(self, tmp_path):
        """A file where the media directory should be makes the write fail."""
        blocker = tmp_path / "blocked"
        blocker.write_text("not a directory")
        storage = MediaStorage(blocker)
        with pytest.raises(LocalWriteError):
            storage.save(JPEG, "a.jpg")
