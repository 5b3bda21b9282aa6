"""Plain-text match summary and score timeline.

``format_share_text`` renders a match the way it is shared from the match
screen; ``score_timeline`` gives the running score after every point, for
charting.
"""

from dataclasses import dataclass
from datetime import datetime

from ballstats.models import EventType, Match, MatchStatus, Player

STATUS_LABELS = {
    MatchStatus.CREATED: "Not Started",
    MatchStatus.IN_PROGRESS: "In Progress",
    MatchStatus.FINISHED: "Completed",
}

ACTION_LABELS = {
    EventType.SERVE: "Serve",
    EventType.FOREHAND: "Forehand",
    EventType.BACKHAND: "Backhand",
    EventType.SCORE_POINT: "Score",
    EventType.ERROR: "Error",
}


@dataclass(frozen=True)
class ScorePoint:
    """Running score after one scorePoint event (or the 0-0 start)."""

    timestamp: datetime
    team_a: int
    team_b: int


def score_timeline(match: Match) -> list[ScorePoint]:
    """Running (team_a, team_b) totals, starting at 0-0.

    One point per scorePoint event in log order.  Events for a team id
    matching neither team repeat the previous totals.
    """
    points = [ScorePoint(match.created_at, 0, 0)]
    score_a = score_b = 0
    for event in match.events:
        if event.type is not EventType.SCORE_POINT:
            continue
        if event.team_id == match.team_a:
            score_a += 1
        elif event.team_id == match.team_b:
            score_b += 1
        points.append(ScorePoint(event.timestamp, score_a, score_b))
    return points


def _roster_lines(team: str, players: list[Player]) -> list[str]:
    lines = ["", f"{team}:"]
    if not players:
        lines.append("No players")
    for number, player in enumerate(players, start=1):
        lines.append(f"{number}. {player.name} ({player.position})")
    return lines


def format_share_text(match: Match) -> str:
    """Render a match as a shareable multi-line summary."""
    lines = [
        f"Match Details: {match.team_a} vs {match.team_b}",
        f"Date: {match.created_at:%b %d, %Y %H:%M}",
        f"Status: {STATUS_LABELS[match.status]}",
        f"Score: {match.score.team_a} - {match.score.team_b}",
        "",
        "Teams:",
    ]
    lines += _roster_lines(match.team_a, match.players_a)
    lines += _roster_lines(match.team_b, match.players_b)

    lines += ["", "Match Records:"]
    if not match.events:
        lines.append("No records yet")
    # Newest first
    for event in sorted(match.events, key=lambda e: e.timestamp, reverse=True):
        team = match.team_a if event.team_id == match.team_a else match.team_b
        lines.append(
            f"{event.timestamp:%H:%M:%S} - {event.player_name} ({team}): "
            f"{ACTION_LABELS[event.type]}"
        )
    return "\n".join(lines)
