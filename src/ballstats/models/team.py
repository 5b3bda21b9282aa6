"""Pydantic v2 models for persistent teams."""

from datetime import date, datetime

from pydantic import BaseModel, Field

from .match import utcnow


class TeamStats(BaseModel):
    total_matches: int = Field(default=0, ge=0)
    wins: int = Field(default=0, ge=0)
    losses: int = Field(default=0, ge=0)
    draws: int = Field(default=0, ge=0)
    total_points: int = Field(default=0, ge=0)

    @property
    def win_rate(self) -> float:
        if self.total_matches == 0:
            return 0.0
        return self.wins / self.total_matches


class Team(BaseModel):
    """A team record with membership and participated-match lists."""

    id: str | None = None
    name: str = Field(min_length=1)
    logo: str | None = None  # media locator
    description: str | None = None
    founded_date: date | None = None
    coach: str | None = None
    player_ids: list[str] = Field(default_factory=list)
    match_ids: list[str] = Field(default_factory=list)
    stats: TeamStats = Field(default_factory=TeamStats)
    created_at: datetime = Field(default_factory=utcnow)
