"""Pydantic v2 models for persistent player profiles."""

from datetime import datetime

from pydantic import BaseModel, Field

from .match import Player, utcnow


class PlayerStats(BaseModel):
    """Cumulative per-player counters.  Maintained by hand, not derived."""

    total_matches: int = Field(default=0, ge=0)
    wins: int = Field(default=0, ge=0)
    losses: int = Field(default=0, ge=0)
    serve_count: int = Field(default=0, ge=0)
    forehand_count: int = Field(default=0, ge=0)
    backhand_count: int = Field(default=0, ge=0)
    score_count: int = Field(default=0, ge=0)
    error_count: int = Field(default=0, ge=0)

    @property
    def win_rate(self) -> float:
        if self.total_matches == 0:
            return 0.0
        return self.wins / self.total_matches


class PlayerProfile(BaseModel):
    """A player record that lives independently of any single match."""

    id: str | None = None
    name: str = Field(min_length=1)
    position: str = ""
    age: int | None = Field(default=None, ge=0)
    nationality: str | None = None
    avatar_url: str | None = None
    bio: str | None = None
    stats: PlayerStats = Field(default_factory=PlayerStats)
    created_at: datetime = Field(default_factory=utcnow)

    @classmethod
    def from_player(cls, player: Player) -> "PlayerProfile":
        """Promote a match roster entry to a profile, keeping its id."""
        return cls(id=player.id, name=player.name, position=player.position)
