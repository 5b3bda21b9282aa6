"""Filesystem storage for media blobs (player avatars, team logos).

Saves raw bytes under a caller-chosen key and hands back a ``file://``
locator that can be stored on a document and loaded later::

    base_dir/
      player_avatars/
        player_{player_id}_{epoch}.jpg
      team_logos/
        team_{team_id}_{epoch}.jpg
"""

import logging
import time
from pathlib import Path, PurePosixPath
from urllib.parse import unquote, urlparse

from ballstats.exceptions import LocalWriteError

logger = logging.getLogger(__name__)


class MediaStorage:
    """Bytes save/load/exists filesystem layer.

    Usage::

        media = MediaStorage("data/media")
        locator = media.save_player_avatar(jpeg_bytes, player_id="abc")
        jpeg_bytes = media.load(locator)
    """

    # Media kind -> (subdirectory, filename template)
    KINDS: dict[str, tuple[str, str]] = {
        "player_avatar": ("player_avatars", "player_{owner_id}_{stamp}.jpg"),
        "team_logo": ("team_logos", "team_{owner_id}_{stamp}.jpg"),
    }

    def __init__(self, base_dir: str | Path) -> None:
        self.base_dir = Path(base_dir)

    def save(self, data: bytes, key: str) -> str:
        """Write ``data`` under ``key`` (a relative path) and return its locator.

        Raises:
            ValueError: If ``key`` is absolute or escapes the base directory.
            LocalWriteError: If the file cannot be written.
        """
        file_path = self._build_path(key)
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_path.write_bytes(data)
        except OSError as e:
            logger.error("Failed to write media %s: %s", file_path, e)
            raise LocalWriteError(f"Failed to save {key}: {e}") from e
        logger.debug("Saved %d bytes to %s", len(data), file_path)
        return file_path.resolve().as_uri()

    def save_media(self, data: bytes, kind: str, owner_id: str) -> str:
        """Save a media file of a known kind with a timestamped filename."""
        if kind not in self.KINDS:
            raise ValueError(
                f"Unknown media kind {kind!r}. "
                f"Valid kinds: {list(self.KINDS.keys())}"
            )
        subdir, template = self.KINDS[kind]
        filename = template.format(owner_id=owner_id, stamp=int(time.time()))
        return self.save(data, f"{subdir}/{filename}")

    def save_player_avatar(self, data: bytes, player_id: str) -> str:
        return self.save_media(data, "player_avatar", player_id)

    def save_team_logo(self, data: bytes, team_id: str) -> str:
        return self.save_media(data, "team_logo", team_id)

    def load(self, locator: str) -> bytes:
        """Read bytes back from a locator returned by ``save``.

        Raises:
            ValueError: If the locator is not a ``file://`` URI.
            FileNotFoundError: If the file does not exist.
        """
        file_path = self._locator_path(locator)
        if not file_path.exists():
            raise FileNotFoundError(f"No media stored at {locator}")
        return file_path.read_bytes()

    def exists(self, locator: str) -> bool:
        """Check whether the file behind a locator exists on disk."""
        try:
            return self._locator_path(locator).exists()
        except ValueError:
            return False

    def _build_path(self, key: str) -> Path:
        rel = PurePosixPath(key)
        if not key or rel.is_absolute() or ".." in rel.parts:
            raise ValueError(f"Invalid media key {key!r}")
        return self.base_dir.joinpath(*rel.parts)

    @staticmethod
    def _locator_path(locator: str) -> Path:
        parsed = urlparse(locator)
        if parsed.scheme != "file":
            raise ValueError(f"Not a local file locator: {locator!r}")
        return Path(unquote(parsed.path))
