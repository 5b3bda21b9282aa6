"""Match rule validator: event sequencing and status transitions.

The one place that decides whether an event may be appended to a match or
the match may change status.  Both the CLI (to show guidance before doing
anything) and the service layer (before writing) call into this module.

Usage::

    from ballstats.validation import append_event, check_event

    reason = check_event(match, EventType.FOREHAND)
    if reason is None:
        match = append_event(match, event)
"""

import logging
import uuid
from collections.abc import Sequence

from ballstats.exceptions import EventRejected, RosterLocked, TransitionRejected
from ballstats.models import HIT_TYPES, EventType, Match, MatchEvent, MatchStatus

logger = logging.getLogger(__name__)

MIN_PLAYERS_PER_SIDE = 2

# Allowed forward moves of the status machine
_NEXT_STATUS = {
    MatchStatus.CREATED: MatchStatus.IN_PROGRESS,
    MatchStatus.IN_PROGRESS: MatchStatus.FINISHED,
}


# ---------------------------------------------------------------------------
# Event log predicates
# ---------------------------------------------------------------------------

def can_record_hit(events: Sequence[MatchEvent]) -> bool:
    """A hit is legal once any serve has been recorded."""
    return any(e.type is EventType.SERVE for e in events)


def can_record_score(events: Sequence[MatchEvent]) -> bool:
    """A score must directly follow a hit.

    Logs of zero or one event are not constrained.
    """
    if len(events) <= 1:
        return True
    return events[-1].is_hit


def check_event(match: Match, event_type: EventType) -> str | None:
    """Return why ``event_type`` cannot be appended now, or None if it can."""
    if match.status is not MatchStatus.IN_PROGRESS:
        return (
            f"Events can only be recorded while the match is in progress "
            f"(status is {match.status.value})"
        )
    if event_type in HIT_TYPES:
        if not can_record_hit(match.events):
            return "There must be a serve action before recording a hit"
    elif event_type is EventType.SCORE_POINT:
        if not can_record_score(match.events):
            return "A score can only be recorded after a hit action"
    return None


def append_event(match: Match, event: MatchEvent) -> Match:
    """Return a copy of ``match`` with ``event`` appended and the score updated.

    A scorePoint credits whichever team name equals ``event.team_id``; an
    unknown team id is recorded but moves neither counter.

    Raises:
        EventRejected: The event breaks the sequencing rules or the match
            is not in progress.  ``match`` is left untouched.
    """
    reason = check_event(match, event.type)
    if reason is not None:
        raise EventRejected(reason, collection="matches", doc_id=match.id)

    if event.id is None:
        event = event.model_copy(update={"id": uuid.uuid4().hex})

    updated = match.model_copy(deep=True)
    updated.events.append(event)

    if event.type is EventType.SCORE_POINT:
        if event.team_id == updated.team_a:
            updated.score.team_a += 1
        elif event.team_id == updated.team_b:
            updated.score.team_b += 1
        else:
            logger.warning(
                "Score event %s for unknown team %r on match %s",
                event.id,
                event.team_id,
                match.id,
            )
    return updated


# ---------------------------------------------------------------------------
# Status machine
# ---------------------------------------------------------------------------

def can_start(match: Match, min_players: int = MIN_PLAYERS_PER_SIDE) -> bool:
    return (
        match.status is MatchStatus.CREATED
        and len(match.players_a) >= min_players
        and len(match.players_b) >= min_players
    )


def can_finish(match: Match) -> bool:
    return match.status is MatchStatus.IN_PROGRESS


def check_transition(
    match: Match,
    target: MatchStatus,
    min_players: int = MIN_PLAYERS_PER_SIDE,
) -> str | None:
    """Return why ``match`` cannot move to ``target``, or None if it can."""
    if _NEXT_STATUS.get(match.status) is not target:
        return (
            f"Cannot change match status from {match.status.value} "
            f"to {target.value}"
        )
    if target is MatchStatus.IN_PROGRESS and not can_start(match, min_players):
        return f"Each team needs at least {min_players} players to start the match"
    return None


def transition(
    match: Match,
    target: MatchStatus,
    min_players: int = MIN_PLAYERS_PER_SIDE,
) -> Match:
    """Return a copy of ``match`` moved to ``target``.

    Raises:
        TransitionRejected: The move is not a legal forward step.
    """
    reason = check_transition(match, target, min_players)
    if reason is not None:
        raise TransitionRejected(reason, collection="matches", doc_id=match.id)
    return match.model_copy(update={"status": target}, deep=True)


def check_roster_change(match: Match) -> str | None:
    """Rosters are frozen once the match has started."""
    if match.status is not MatchStatus.CREATED:
        return (
            f"Players can only be changed before the match starts "
            f"(status is {match.status.value})"
        )
    return None


def ensure_roster_open(match: Match) -> None:
    """Raise RosterLocked if the rosters of ``match`` can no longer change."""
    reason = check_roster_change(match)
    if reason is not None:
        raise RosterLocked(reason, collection="matches", doc_id=match.id)
