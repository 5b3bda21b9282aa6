"""Data-mutation path for matches, rosters, events, profiles and teams.

BallService is constructed once at startup with its collaborators (the
document store, media storage and the local binding map) and passed to
whatever needs it.  Every rule check goes through ballstats.validation so
the CLI and the write path can never disagree.

Read methods decode documents into pydantic models.  Soft model warnings
are logged; list reads skip documents that fail to decode.
"""

import logging
import uuid
import warnings
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from ballstats import validation
from ballstats.bindings import BindingStore
from ballstats.config import MATCHES, PLAYER_PROFILES, TEAMS
from ballstats.exceptions import NotFound
from ballstats.models import (
    Match,
    MatchEvent,
    MatchStatus,
    Player,
    PlayerProfile,
    Score,
    Side,
    Team,
)
from ballstats.repository import DocumentStore
from ballstats.storage import MediaStorage

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _decode(model_cls: type[ModelT], doc: dict) -> ModelT:
    """Validate a stored document, logging any soft-validation warnings."""
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        model = model_cls.model_validate(doc)
    for w in caught:
        logger.warning(
            "Validation warning for %s %s: %s",
            model_cls.__name__,
            doc.get("id"),
            w.message,
        )
    return model


def _decode_all(model_cls: type[ModelT], docs: list[dict]) -> list[ModelT]:
    models: list[ModelT] = []
    for doc in docs:
        try:
            models.append(_decode(model_cls, doc))
        except ValidationError as e:
            logger.error(
                "Skipping undecodable %s %s: %s", model_cls.__name__, doc.get("id"), e
            )
    return models


def _dump(model: BaseModel) -> dict:
    return model.model_dump(mode="json", exclude={"id"})


def _merge_ids(primary: list[str], extra: list[str]) -> list[str]:
    """Union of two id lists, keeping the order of ``primary`` first."""
    merged = list(dict.fromkeys(primary))
    merged.extend(i for i in extra if i not in merged)
    return merged


class BallService:
    """Match, profile and team operations over injected storage.

    Usage::

        service = BallService(DocumentStore(db.conn), MediaStorage(media_dir),
                              BindingStore(bindings_path))
        match = service.create_match("Tigers", "Sharks")
        match_id = service.save_match(match)
    """

    def __init__(
        self,
        store: DocumentStore,
        media: MediaStorage,
        bindings: BindingStore,
        min_players: int = validation.MIN_PLAYERS_PER_SIDE,
    ) -> None:
        self.store = store
        self.media = media
        self.bindings = bindings
        self.min_players = min_players

    # ------------------------------------------------------------------
    # Matches
    # ------------------------------------------------------------------

    def create_match(self, team_a: str, team_b: str) -> Match:
        """Build a new, unsaved match with empty rosters and a 0-0 score."""
        return Match(team_a=team_a, team_b=team_b, score=Score())

    def save_match(self, match: Match) -> str:
        """Write a whole match.  Returns its id (assigned on first save)."""
        if match.id is not None:
            self.store.set(MATCHES, match.id, _dump(match))
            return match.id
        match_id = self.store.add(MATCHES, _dump(match))
        match.id = match_id
        logger.info("Created match %s: %s vs %s", match_id, match.team_a, match.team_b)
        return match_id

    def get_match(self, match_id: str) -> Match:
        """Load a match.

        Raises:
            NotFound: No match with this id, or the stored document is
                not a valid match.
        """
        doc = self.store.get(MATCHES, match_id)
        if doc is None:
            raise NotFound(f"Match {match_id} not found", collection=MATCHES, doc_id=match_id)
        try:
            return _decode(Match, doc)
        except ValidationError as e:
            logger.error("Stored match %s is invalid: %s", match_id, e)
            raise NotFound(
                f"Match {match_id} not found", collection=MATCHES, doc_id=match_id
            ) from e

    def list_matches(self) -> list[Match]:
        """Return all matches, newest first."""
        return _decode_all(Match, self.store.query(MATCHES, order_by="created_at"))

    def update_match_status(self, match_id: str, status: MatchStatus) -> Match:
        """Move a match forward in its lifecycle.

        Raises:
            NotFound: Unknown match id.
            TransitionRejected: Not a legal forward step (nothing written).
        """
        match = self.get_match(match_id)
        updated = validation.transition(match, status, self.min_players)
        self.store.update_fields(MATCHES, match_id, {"status": updated.status.value})
        logger.info("Match %s: %s -> %s", match_id, match.status.value, status.value)
        return updated

    def start_match(self, match_id: str) -> Match:
        return self.update_match_status(match_id, MatchStatus.IN_PROGRESS)

    def finish_match(self, match_id: str) -> Match:
        return self.update_match_status(match_id, MatchStatus.FINISHED)

    def delete_match(self, match_id: str) -> None:
        if not self.store.delete(MATCHES, match_id):
            raise NotFound(f"Match {match_id} not found", collection=MATCHES, doc_id=match_id)
        logger.info("Deleted match %s", match_id)

    # ------------------------------------------------------------------
    # Rosters
    # ------------------------------------------------------------------

    def add_player(self, match_id: str, player: Player, side: Side) -> Player:
        """Append a player to one side's roster.

        The player always gets a fresh id so that two entries with the same
        name stay distinct.

        Raises:
            NotFound: Unknown match id.
            RosterLocked: The match has already started.
        """
        match = self.get_match(match_id)
        validation.ensure_roster_open(match)

        added = player.model_copy(update={"id": uuid.uuid4().hex})
        match.roster(side).append(added)
        self.save_match(match)
        logger.info(
            "Added player %s (%s) to %s in match %s",
            added.name, added.id, match.team_name(side), match_id,
        )
        return added

    def remove_player(self, match_id: str, player_id: str, side: Side) -> Match:
        """Remove a player from one side's roster by id.

        Raises:
            NotFound: Unknown match id.
            RosterLocked: The match has already started.
        """
        match = self.get_match(match_id)
        validation.ensure_roster_open(match)

        roster = match.roster(side)
        kept = [p for p in roster if p.id != player_id]
        if len(kept) == len(roster):
            logger.warning("Player %s is not on side %s of match %s", player_id, side.value, match_id)
            return match
        roster[:] = kept
        self.save_match(match)
        return match

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def add_event(self, match_id: str, event: MatchEvent) -> Match:
        """Validate and append an event, then write the match back.

        Raises:
            NotFound: Unknown match id.
            EventRejected: The event breaks the sequencing rules (nothing
                written).
        """
        match = self.get_match(match_id)
        updated = validation.append_event(match, event)
        self.save_match(updated)
        logger.info(
            "Match %s: %s by %s (%s), score %d-%d",
            match_id, event.type.value, event.player_name or event.player_id,
            event.team_id, updated.score.team_a, updated.score.team_b,
        )
        return updated

    # ------------------------------------------------------------------
    # Player profiles
    # ------------------------------------------------------------------

    def list_player_profiles(self) -> list[PlayerProfile]:
        return _decode_all(PlayerProfile, self.store.query(PLAYER_PROFILES))

    def get_player_profile(self, player_id: str) -> PlayerProfile | None:
        """Load a profile, or None if there is none under this id.

        Raises:
            NotFound: The stored document is not a valid profile.
        """
        doc = self.store.get(PLAYER_PROFILES, player_id)
        if doc is None:
            return None
        try:
            return _decode(PlayerProfile, doc)
        except ValidationError as e:
            logger.error("Stored player %s is invalid: %s", player_id, e)
            raise NotFound(
                f"Player {player_id} not found", collection=PLAYER_PROFILES, doc_id=player_id
            ) from e

    def save_player_profile(self, profile: PlayerProfile) -> str:
        if profile.id is not None:
            self.store.set(PLAYER_PROFILES, profile.id, _dump(profile))
            return profile.id
        profile.id = self.store.add(PLAYER_PROFILES, _dump(profile))
        return profile.id

    def delete_player_profile(self, player_id: str) -> None:
        if not self.store.delete(PLAYER_PROFILES, player_id):
            raise NotFound(
                f"Player {player_id} not found", collection=PLAYER_PROFILES, doc_id=player_id
            )

    def update_player_avatar(self, player_id: str, image_data: bytes) -> str:
        """Store avatar bytes locally and point the profile at them.

        Returns:
            The media locator.  The profile is updated only if it exists.
        """
        locator = self.media.save_player_avatar(image_data, player_id)
        if not self.store.update_fields(PLAYER_PROFILES, player_id, {"avatar_url": locator}):
            logger.warning("Avatar saved for unknown player %s", player_id)
        return locator

    def create_profile_from_player(self, player: Player) -> PlayerProfile:
        return PlayerProfile.from_player(player)

    # ------------------------------------------------------------------
    # Teams
    # ------------------------------------------------------------------

    def list_teams(self) -> list[Team]:
        return _decode_all(Team, self.store.query(TEAMS))

    def get_team(self, team_id: str) -> Team | None:
        doc = self.store.get(TEAMS, team_id)
        if doc is None:
            return None
        try:
            return _decode(Team, doc)
        except ValidationError as e:
            logger.error("Stored team %s is invalid: %s", team_id, e)
            raise NotFound(f"Team {team_id} not found", collection=TEAMS, doc_id=team_id) from e

    def _require_team(self, team_id: str) -> Team:
        team = self.get_team(team_id)
        if team is None:
            raise NotFound(f"Team {team_id} not found", collection=TEAMS, doc_id=team_id)
        return team

    def save_team(self, team: Team) -> str:
        if team.id is not None:
            self.store.set(TEAMS, team.id, _dump(team))
            return team.id
        team.id = self.store.add(TEAMS, _dump(team))
        return team.id

    def delete_team(self, team_id: str) -> None:
        if not self.store.delete(TEAMS, team_id):
            raise NotFound(f"Team {team_id} not found", collection=TEAMS, doc_id=team_id)

    def update_team_logo(self, team_id: str, image_data: bytes) -> str:
        locator = self.media.save_team_logo(image_data, team_id)
        if not self.store.update_fields(TEAMS, team_id, {"logo": locator}):
            logger.warning("Logo saved for unknown team %s", team_id)
        return locator

    def add_player_to_team(self, team_id: str, player_id: str) -> Team:
        """Bind a player to a team locally and merge the binding into the team.

        Raises:
            NotFound: Unknown team id (nothing is bound).
        """
        team = self._require_team(team_id)
        self.bindings.bind(player_id, team_id)
        team.player_ids = _merge_ids(team.player_ids, self.bindings.team_player_ids(team_id))
        self.save_team(team)
        return team

    def remove_player_from_team(self, team_id: str, player_id: str) -> Team:
        """Unbind a player and drop them from the team's member list."""
        team = self._require_team(team_id)
        self.bindings.unbind(player_id, team_id)
        remaining = [p for p in team.player_ids if p != player_id]
        team.player_ids = _merge_ids(remaining, self.bindings.team_player_ids(team_id))
        self.save_team(team)
        return team

    def get_team_players(self, team_id: str) -> list[PlayerProfile]:
        """Profiles of every member, from both the team document and bindings.

        Ids with no stored profile, or an invalid one, are skipped.
        """
        player_ids = self.bindings.team_player_ids(team_id)
        team = self.get_team(team_id)
        if team is not None:
            player_ids = _merge_ids(team.player_ids, player_ids)

        players = []
        for player_id in player_ids:
            try:
                profile = self.get_player_profile(player_id)
            except NotFound:
                continue
            if profile is not None:
                players.append(profile)
        return players

    def add_match_to_team(self, team_id: str, match_id: str) -> Team:
        """Record that a team took part in a match.

        Raises:
            NotFound: Unknown team or match id.
        """
        team = self._require_team(team_id)
        self.get_match(match_id)
        if match_id not in team.match_ids:
            team.match_ids.append(match_id)
            self.save_team(team)
        return team

    def get_team_matches(self, team_id: str) -> list[Match]:
        """Matches listed on a team; ids that no longer resolve are skipped."""
        team = self.get_team(team_id)
        if team is None:
            return []

        matches = []
        for match_id in team.match_ids:
            try:
                matches.append(self.get_match(match_id))
            except NotFound:
                logger.warning("Team %s lists missing match %s", team_id, match_id)
        return matches
