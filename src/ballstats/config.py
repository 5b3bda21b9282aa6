"""Application configuration with sensible defaults for local use."""

from dataclasses import dataclass
from pathlib import Path

# Collection names in the document store
MATCHES = "matches"
PLAYER_PROFILES = "player_profiles"
TEAMS = "teams"


@dataclass
class AppConfig:
    """Configuration for a ballstats installation.

    All paths live under ``data_dir`` unless overridden.
    """

    # Persistent data storage
    data_dir: str = "data"
    db_path: str = "data/ballstats.db"

    # Avatars and team logos
    media_dir: str = "data/media"

    # player-id -> team-id binding map (JSON object)
    bindings_path: str = "data/bindings.json"

    # Players required on each side before a match can start
    min_players_per_side: int = 2

    @classmethod
    def from_data_dir(cls, data_dir: str | Path, **overrides) -> "AppConfig":
        """Build a config with every path rooted at ``data_dir``."""
        base = Path(data_dir)
        values = {
            "data_dir": str(base),
            "db_path": str(base / "ballstats.db"),
            "media_dir": str(base / "media"),
            "bindings_path": str(base / "bindings.json"),
        }
        values.update(overrides)
        return cls(**values)
