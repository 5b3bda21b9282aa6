"""CLI entry point for ballstats.

Provides ``main()`` as the entry point for the ``ballstats`` console
script.  Each sub-command opens the data directory, runs one operation
through BallService and prints the result.

Usage::

    ballstats match create Tigers Sharks
    ballstats player add <match-id> A "Li Wei" --position attacker
    ballstats match start <match-id>
    ballstats event add <match-id> A <player-id> serve
    ballstats match show <match-id> --share
"""

import argparse
import logging
import sqlite3
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from pydantic import ValidationError

from ballstats import validation
from ballstats.bindings import BindingStore
from ballstats.config import AppConfig
from ballstats.db import Database
from ballstats.exceptions import (
    BallAppError,
    NotFound,
    StorageFailure,
    ValidationRejected,
)
from ballstats.logging_config import setup_logging
from ballstats.models import (
    EventType,
    Match,
    MatchEvent,
    Player,
    PlayerProfile,
    Side,
    Team,
)
from ballstats.report import format_share_text, score_timeline
from ballstats.repository import DocumentStore
from ballstats.service import BallService
from ballstats.storage import MediaStorage

logger = logging.getLogger(__name__)

EXIT_ERROR = 1
EXIT_REJECTED = 2


@contextmanager
def open_service(config: AppConfig) -> Iterator[BallService]:
    """Create every collaborator for one run and close them afterwards.

    Raises:
        StorageFailure: The database cannot be opened or migrated.
    """
    db = Database(config.db_path)
    try:
        db.initialize()
    except sqlite3.Error as e:
        db.close()
        logger.error("Cannot open database %s: %s", config.db_path, e)
        raise StorageFailure(f"Cannot open database {config.db_path}: {e}") from e
    try:
        yield BallService(
            DocumentStore(db.conn),
            MediaStorage(config.media_dir),
            BindingStore(config.bindings_path),
            min_players=config.min_players_per_side,
        )
    finally:
        db.close()


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------

def _match_line(match: Match) -> str:
    return (
        f"{match.id}  {match.team_a} vs {match.team_b}  "
        f"{match.score.team_a}-{match.score.team_b}  [{match.status.value}]"
    )


def _print_match(match: Match) -> None:
    print(_match_line(match))
    for side in Side:
        print(f"  {match.team_name(side)}:")
        for player in match.roster(side):
            print(f"    {player.id}  {player.name} ({player.position})")
    print(f"  events: {len(match.events)}")
    for event in match.events:
        print(
            f"    {event.timestamp:%H:%M:%S}  {event.type.value:<10} "
            f"{event.player_name} ({event.team_id})"
        )


def _print_team(team: Team) -> None:
    print(f"{team.id}  {team.name}  coach={team.coach or '-'}")
    print(f"  players: {', '.join(team.player_ids) or '-'}")
    print(f"  matches: {', '.join(team.match_ids) or '-'}")
    print(
        f"  record: {team.stats.wins}W {team.stats.losses}L {team.stats.draws}D "
        f"(win rate {team.stats.win_rate:.0%})"
    )


# ---------------------------------------------------------------------------
# Match commands
# ---------------------------------------------------------------------------

def cmd_match_create(service: BallService, args: argparse.Namespace) -> int:
    match = service.create_match(args.team_a, args.team_b)
    service.save_match(match)
    print(match.id)
    return 0


def cmd_match_list(service: BallService, args: argparse.Namespace) -> int:
    for match in service.list_matches():
        print(_match_line(match))
    return 0


def cmd_match_show(service: BallService, args: argparse.Namespace) -> int:
    match = service.get_match(args.match_id)
    if args.share:
        print(format_share_text(match))
    else:
        _print_match(match)
    return 0


def cmd_match_start(service: BallService, args: argparse.Namespace) -> int:
    print(_match_line(service.start_match(args.match_id)))
    return 0


def cmd_match_finish(service: BallService, args: argparse.Namespace) -> int:
    print(_match_line(service.finish_match(args.match_id)))
    return 0


def cmd_match_delete(service: BallService, args: argparse.Namespace) -> int:
    service.delete_match(args.match_id)
    return 0


def cmd_match_timeline(service: BallService, args: argparse.Namespace) -> int:
    match = service.get_match(args.match_id)
    for point in score_timeline(match):
        print(f"{point.timestamp:%H:%M:%S}  {point.team_a}-{point.team_b}")
    return 0


# ---------------------------------------------------------------------------
# Roster and event commands
# ---------------------------------------------------------------------------

def cmd_player_add(service: BallService, args: argparse.Namespace) -> int:
    player = Player(name=args.name, position=args.position)
    added = service.add_player(args.match_id, player, Side(args.side))
    print(added.id)
    return 0


def cmd_player_remove(service: BallService, args: argparse.Namespace) -> int:
    service.remove_player(args.match_id, args.player_id, Side(args.side))
    return 0


def cmd_event_add(service: BallService, args: argparse.Namespace) -> int:
    match = service.get_match(args.match_id)
    side = Side(args.side)
    event_type = EventType(args.type)

    # Guidance first: nothing is written for a rejected event.
    reason = validation.check_event(match, event_type)
    if reason is not None:
        print(f"Rejected: {reason}", file=sys.stderr)
        return EXIT_REJECTED

    player = next((p for p in match.roster(side) if p.id == args.player_id), None)
    if player is None:
        raise NotFound(
            f"Player {args.player_id} is not on {match.team_name(side)}",
            collection="matches",
            doc_id=match.id,
        )

    event = MatchEvent(
        type=event_type,
        player_id=args.player_id,
        player_name=player.name,
        team_id=match.team_name(side),
        description=args.description,
    )
    updated = service.add_event(args.match_id, event)
    print(_match_line(updated))
    return 0


# ---------------------------------------------------------------------------
# Profile commands
# ---------------------------------------------------------------------------

def cmd_profile_create(service: BallService, args: argparse.Namespace) -> int:
    profile = PlayerProfile(
        name=args.name,
        position=args.position,
        age=args.age,
        nationality=args.nationality,
        bio=args.bio,
    )
    print(service.save_player_profile(profile))
    return 0


def cmd_profile_list(service: BallService, args: argparse.Namespace) -> int:
    for profile in service.list_player_profiles():
        print(f"{profile.id}  {profile.name} ({profile.position})")
    return 0


def cmd_profile_show(service: BallService, args: argparse.Namespace) -> int:
    profile = service.get_player_profile(args.player_id)
    if profile is None:
        raise NotFound(f"Player {args.player_id} not found", doc_id=args.player_id)
    print(profile.model_dump_json(indent=2))
    return 0


def cmd_profile_delete(service: BallService, args: argparse.Namespace) -> int:
    service.delete_player_profile(args.player_id)
    return 0


def cmd_profile_avatar(service: BallService, args: argparse.Namespace) -> int:
    print(service.update_player_avatar(args.player_id, Path(args.image).read_bytes()))
    return 0


# ---------------------------------------------------------------------------
# Team commands
# ---------------------------------------------------------------------------

def cmd_team_create(service: BallService, args: argparse.Namespace) -> int:
    team = Team(name=args.name, coach=args.coach, description=args.description)
    print(service.save_team(team))
    return 0


def cmd_team_list(service: BallService, args: argparse.Namespace) -> int:
    for team in service.list_teams():
        print(f"{team.id}  {team.name}  ({len(team.player_ids)} players)")
    return 0


def cmd_team_show(service: BallService, args: argparse.Namespace) -> int:
    team = service.get_team(args.team_id)
    if team is None:
        raise NotFound(f"Team {args.team_id} not found", doc_id=args.team_id)
    _print_team(team)
    for profile in service.get_team_players(args.team_id):
        print(f"    {profile.id}  {profile.name} ({profile.position})")
    for match in service.get_team_matches(args.team_id):
        print(f"    {_match_line(match)}")
    return 0


def cmd_team_delete(service: BallService, args: argparse.Namespace) -> int:
    service.delete_team(args.team_id)
    return 0


def cmd_team_logo(service: BallService, args: argparse.Namespace) -> int:
    print(service.update_team_logo(args.team_id, Path(args.image).read_bytes()))
    return 0


def cmd_team_add_player(service: BallService, args: argparse.Namespace) -> int:
    service.add_player_to_team(args.team_id, args.player_id)
    return 0


def cmd_team_remove_player(service: BallService, args: argparse.Namespace) -> int:
    service.remove_player_from_team(args.team_id, args.player_id)
    return 0


def cmd_team_add_match(service: BallService, args: argparse.Namespace) -> int:
    service.add_match_to_team(args.team_id, args.match_id)
    return 0


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the ballstats CLI."""
    parser = argparse.ArgumentParser(
        prog="ballstats",
        description="Record matches, rosters and live match events",
    )
    parser.add_argument(
        "--data-dir",
        type=str,
        default="data",
        help="Data directory for the database, media and logs (default: data)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Show debug logging on the console",
    )
    groups = parser.add_subparsers(dest="group", required=True)

    # match
    match = groups.add_parser("match", help="Create and manage matches")
    match_cmds = match.add_subparsers(dest="action", required=True)

    p = match_cmds.add_parser("create", help="Create a match between two teams")
    p.add_argument("team_a")
    p.add_argument("team_b")
    p.set_defaults(handler=cmd_match_create)

    p = match_cmds.add_parser("list", help="List matches, newest first")
    p.set_defaults(handler=cmd_match_list)

    p = match_cmds.add_parser("show", help="Show a match")
    p.add_argument("match_id")
    p.add_argument("--share", action="store_true", help="Print the shareable summary")
    p.set_defaults(handler=cmd_match_show)

    for action, handler, help_text in (
        ("start", cmd_match_start, "Start a match (needs full rosters)"),
        ("finish", cmd_match_finish, "Finish a match in progress"),
        ("delete", cmd_match_delete, "Delete a match"),
        ("timeline", cmd_match_timeline, "Print the running score"),
    ):
        p = match_cmds.add_parser(action, help=help_text)
        p.add_argument("match_id")
        p.set_defaults(handler=handler)

    # player (match roster)
    player = groups.add_parser("player", help="Edit match rosters")
    player_cmds = player.add_subparsers(dest="action", required=True)

    p = player_cmds.add_parser("add", help="Add a player to one side")
    p.add_argument("match_id")
    p.add_argument("side", choices=[s.value for s in Side])
    p.add_argument("name")
    p.add_argument("--position", default="")
    p.set_defaults(handler=cmd_player_add)

    p = player_cmds.add_parser("remove", help="Remove a player from one side")
    p.add_argument("match_id")
    p.add_argument("side", choices=[s.value for s in Side])
    p.add_argument("player_id")
    p.set_defaults(handler=cmd_player_remove)

    # event
    event = groups.add_parser("event", help="Record match events")
    event_cmds = event.add_subparsers(dest="action", required=True)

    p = event_cmds.add_parser("add", help="Record an action by a rostered player")
    p.add_argument("match_id")
    p.add_argument("side", choices=[s.value for s in Side])
    p.add_argument("player_id")
    p.add_argument("type", choices=[t.value for t in EventType])
    p.add_argument("--description", default="")
    p.set_defaults(handler=cmd_event_add)

    # profile
    profile = groups.add_parser("profile", help="Manage player profiles")
    profile_cmds = profile.add_subparsers(dest="action", required=True)

    p = profile_cmds.add_parser("create", help="Create a player profile")
    p.add_argument("name")
    p.add_argument("--position", default="")
    p.add_argument("--age", type=int, default=None)
    p.add_argument("--nationality", default=None)
    p.add_argument("--bio", default=None)
    p.set_defaults(handler=cmd_profile_create)

    p = profile_cmds.add_parser("list", help="List player profiles")
    p.set_defaults(handler=cmd_profile_list)

    for action, handler in (("show", cmd_profile_show), ("delete", cmd_profile_delete)):
        p = profile_cmds.add_parser(action)
        p.add_argument("player_id")
        p.set_defaults(handler=handler)

    p = profile_cmds.add_parser("avatar", help="Set a profile avatar from an image file")
    p.add_argument("player_id")
    p.add_argument("image")
    p.set_defaults(handler=cmd_profile_avatar)

    # team
    team = groups.add_parser("team", help="Manage teams")
    team_cmds = team.add_subparsers(dest="action", required=True)

    p = team_cmds.add_parser("create", help="Create a team")
    p.add_argument("name")
    p.add_argument("--coach", default=None)
    p.add_argument("--description", default=None)
    p.set_defaults(handler=cmd_team_create)

    p = team_cmds.add_parser("list", help="List teams")
    p.set_defaults(handler=cmd_team_list)

    for action, handler in (("show", cmd_team_show), ("delete", cmd_team_delete)):
        p = team_cmds.add_parser(action)
        p.add_argument("team_id")
        p.set_defaults(handler=handler)

    p = team_cmds.add_parser("logo", help="Set a team logo from an image file")
    p.add_argument("team_id")
    p.add_argument("image")
    p.set_defaults(handler=cmd_team_logo)

    for action, handler in (
        ("add-player", cmd_team_add_player),
        ("remove-player", cmd_team_remove_player),
    ):
        p = team_cmds.add_parser(action)
        p.add_argument("team_id")
        p.add_argument("player_id")
        p.set_defaults(handler=handler)

    p = team_cmds.add_parser("add-match", help="Link a match to a team")
    p.add_argument("team_id")
    p.add_argument("match_id")
    p.set_defaults(handler=cmd_team_add_match)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Entry point for the ballstats console script.  Returns the exit code."""
    args = build_parser().parse_args(argv)
    setup_logging(
        data_dir=args.data_dir,
        console_level=logging.DEBUG if args.verbose else logging.WARNING,
    )
    config = AppConfig.from_data_dir(args.data_dir)
    logger.debug("Running %s %s (data_dir=%s)", args.group, args.action, args.data_dir)

    try:
        with open_service(config) as service:
            return args.handler(service, args)
    except ValidationRejected as e:
        print(f"Rejected: {e}", file=sys.stderr)
        return EXIT_REJECTED
    except ValidationError as e:
        # Bad command arguments, e.g. an empty team name
        for error in e.errors():
            field = ".".join(str(part) for part in error["loc"]) or e.title
            print(f"Rejected: {field}: {error['msg']}", file=sys.stderr)
        return EXIT_REJECTED
    except BallAppError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
