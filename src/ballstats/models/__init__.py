"""Pydantic v2 models for every ballstats entity type.

Re-exports all model classes for convenient import::

    from ballstats.models import Match, MatchEvent, Player, ...
"""

from .match import (
    HIT_TYPES,
    EventType,
    Match,
    MatchEvent,
    MatchStatus,
    Player,
    Score,
    Side,
)
from .player_profile import PlayerProfile, PlayerStats
from .team import Team, TeamStats

__all__ = [
    "HIT_TYPES",
    "EventType",
    "Match",
    "MatchEvent",
    "MatchStatus",
    "Player",
    "Score",
    "Side",
    "PlayerProfile",
    "PlayerStats",
    "Team",
    "TeamStats",
]
