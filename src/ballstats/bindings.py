"""Local key-value store for player -> team bindings.

Team membership is kept in two places: the ``player_ids`` array on each
team document and this local map.  The service reconciles the two by
taking their union.  Stored as a single JSON object::

    {"<player_id>": "<team_id>", ...}
"""

import json
import logging
from pathlib import Path

from ballstats.exceptions import LocalWriteError

logger = logging.getLogger(__name__)


class BindingStore:
    """JSON-file backed player-id -> team-id map.

    A player belongs to at most one team here; binding again moves them.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def bind(self, player_id: str, team_id: str) -> None:
        bindings = self.all()
        bindings[player_id] = team_id
        self._write(bindings)

    def unbind(self, player_id: str, team_id: str) -> bool:
        """Remove the binding only if the player is bound to ``team_id``.

        Returns:
            True if a binding was removed.
        """
        bindings = self.all()
        if bindings.get(player_id) != team_id:
            return False
        del bindings[player_id]
        self._write(bindings)
        return True

    def team_player_ids(self, team_id: str) -> list[str]:
        """Return the ids of players bound to ``team_id``, sorted."""
        return sorted(p for p, t in self.all().items() if t == team_id)

    def team_of(self, player_id: str) -> str | None:
        return self.all().get(player_id)

    def all(self) -> dict[str, str]:
        """Return the full binding map (empty if missing or unreadable)."""
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable bindings file %s: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed bindings file %s", self.path)
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _write(self, bindings: dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp.write_text(json.dumps(bindings, sort_keys=True), encoding="utf-8")
            tmp.replace(self.path)
        except OSError as e:
            raise LocalWriteError(f"Failed to save bindings to {self.path}: {e}") from e
