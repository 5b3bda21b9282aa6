"""Pydantic v2 models for a match, its rosters and its event log.

Match holds copies of Player snapshots (not references to profiles) and an
ordered event log.  List order is append order, which the rule validator
also treats as chronological order.
"""

import warnings
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, model_validator
from typing_extensions import Self


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MatchStatus(str, Enum):
    """Match lifecycle.  Only moves forward: created -> inProgress -> finished."""

    CREATED = "created"
    IN_PROGRESS = "inProgress"
    FINISHED = "finished"


class EventType(str, Enum):
    SERVE = "serve"
    FOREHAND = "forehand"
    BACKHAND = "backhand"
    SCORE_POINT = "scorePoint"
    ERROR = "error"


# Event types that count as a hit for sequencing rules
HIT_TYPES = frozenset({EventType.FOREHAND, EventType.BACKHAND})


class Side(str, Enum):
    """Which half of a match a roster operation targets."""

    A = "A"
    B = "B"


class Score(BaseModel):
    team_a: int = Field(default=0, ge=0)
    team_b: int = Field(default=0, ge=0)


class Player(BaseModel):
    """Roster entry on one side of a match.

    Two players are equal when both carry an id and the ids match; if
    either id is missing, name and position are compared instead.
    """

    id: str | None = None
    name: str = Field(min_length=1)
    position: str = ""

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Player):
            return NotImplemented
        if self.id is not None and other.id is not None:
            return self.id == other.id
        return self.name == other.name and self.position == other.position


class MatchEvent(BaseModel):
    """One timestamped action recorded against a match."""

    id: str | None = None
    type: EventType
    player_id: str
    player_name: str = ""
    team_id: str  # team name the acting player plays for
    timestamp: datetime = Field(default_factory=utcnow)
    description: str = ""

    @property
    def is_hit(self) -> bool:
        return self.type in HIT_TYPES

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MatchEvent):
            return NotImplemented
        if self.id is not None and other.id is not None:
            return self.id == other.id
        return (
            self.type == other.type
            and self.player_id == other.player_id
            and self.team_id == other.team_id
            and self.timestamp == other.timestamp
        )


class Match(BaseModel):
    """A recorded contest between two named teams."""

    id: str | None = None
    team_a: str = Field(min_length=1)
    team_b: str = Field(min_length=1)
    players_a: list[Player] = Field(default_factory=list)
    players_b: list[Player] = Field(default_factory=list)
    score: Score = Field(default_factory=Score)
    events: list[MatchEvent] = Field(default_factory=list)
    status: MatchStatus = MatchStatus.CREATED
    created_at: datetime = Field(default_factory=utcnow)

    def roster(self, side: Side) -> list[Player]:
        return self.players_a if side is Side.A else self.players_b

    def team_name(self, side: Side) -> str:
        return self.team_a if side is Side.A else self.team_b

    @model_validator(mode="after")
    def check_distinct_teams(self) -> Self:
        """Score events are credited by team name, so the two must differ."""
        if self.team_a == self.team_b:
            raise ValueError(f"team_a and team_b must differ (both {self.team_a!r})")
        return self

    @model_validator(mode="after")
    def warn_score_mismatch(self) -> Self:
        """Score should equal the scorePoint events credited to each team.

        Soft check: documents written by older clients may carry a score
        without the matching events, so they are loaded with a warning.
        """
        scored_a = scored_b = 0
        for event in self.events:
            if event.type is not EventType.SCORE_POINT:
                continue
            if event.team_id == self.team_a:
                scored_a += 1
            elif event.team_id == self.team_b:
                scored_b += 1
        if (scored_a, scored_b) != (self.score.team_a, self.score.team_b):
            warnings.warn(
                f"Score {self.score.team_a}-{self.score.team_b} does not match "
                f"event log ({scored_a}-{scored_b}) for match {self.id}",
                stacklevel=2,
            )
        return self
