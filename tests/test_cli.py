"""Tests for the ballstats CLI: argument parsing and end-to-end commands.

End-to-end tests run ``main()`` against a temporary data directory and
read the printed ids back from stdout.
"""

import logging
import sqlite3

import pytest

from ballstats.cli import EXIT_ERROR, EXIT_REJECTED, build_parser, main
from ballstats.config import AppConfig


class TestBuildParser:
    """Tests for CLI argument parsing."""

    def test_default_data_dir(self):
        args = build_parser().parse_args(["match", "list"])
        assert args.data_dir == "data"
        assert args.verbose is False
        assert (args.group, args.action) == ("match", "list")

    def test_custom_data_dir(self):
        args = build_parser().parse_args(["--data-dir", "/tmp/balls", "match", "list"])
        assert args.data_dir == "/tmp/balls"

    def test_event_add(self):
        args = build_parser().parse_args(
            ["event", "add", "m1", "B", "p1", "scorePoint", "--description", "ace"]
        )
        assert args.side == "B"
        assert args.type == "scorePoint"
        assert args.description == "ace"

    def test_invalid_event_type(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["event", "add", "m1", "A", "p1", "dunk"])

    def test_invalid_side(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["player", "add", "m1", "C", "Ann"])

    def test_group_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestAppConfig:
    """Tests for path derivation from the data directory."""

    def test_from_data_dir(self, tmp_path):
        config = AppConfig.from_data_dir(tmp_path)
        assert config.db_path == str(tmp_path / "ballstats.db")
        assert config.media_dir == str(tmp_path / "media")
        assert config.bindings_path == str(tmp_path / "bindings.json")
        assert config.min_players_per_side == 2

    def test_overrides(self, tmp_path):
        config = AppConfig.from_data_dir(tmp_path, min_players_per_side=3)
        assert config.min_players_per_side == 3


class TestCommands:
    """End-to-end command runs against a temporary data directory."""

    @pytest.fixture
    def run(self, tmp_path, capsys):
        def _run(*argv):
            code = main(["--data-dir", str(tmp_path), *argv])
            out, err = capsys.readouterr()
            return code, out.strip(), err.strip()
        yield _run
        # main() installs root handlers; drop them so later tests do not
        # write to this test's captured streams.
        root = logging.getLogger()
        for handler in root.handlers[:]:
            root.removeHandler(handler)
            handler.close()

    @pytest.fixture
    def match_id(self, run):
        code, out, _ = run("match", "create", "Tigers", "Sharks")
        assert code == 0
        return out

    def add_players(self, run, match_id):
        ids = {}
        for side in ("A", "B"):
            ids[side] = [run("player", "add", match_id, side, f"{side}{i}")[1] for i in range(2)]
        return ids

    def test_create_and_list(self, run, match_id):
        code, out, _ = run("match", "list")
        assert code == 0
        assert match_id in out
        assert "Tigers vs Sharks  0-0  [created]" in out

    def test_logs_written(self, run, match_id, tmp_path):
        assert list((tmp_path / "logs").glob("ballstats-*.log"))

    def test_start_rejected_with_short_rosters(self, run, match_id):
        run("player", "add", match_id, "A", "Ann")
        code, _, err = run("match", "start", match_id)
        assert code == EXIT_REJECTED
        assert "at least 2 players" in err

    def test_full_rally(self, run, match_id):
        ids = self.add_players(run, match_id)
        assert run("match", "start", match_id)[0] == 0

        a0 = ids["A"][0]
        assert run("event", "add", match_id, "A", a0, "serve")[0] == 0
        assert run("event", "add", match_id, "A", a0, "forehand")[0] == 0
        code, out, _ = run("event", "add", match_id, "A", a0, "scorePoint")
        assert code == 0
        assert "1-0" in out

        code, out, _ = run("match", "show", match_id, "--share")
        assert "Score: 1 - 0" in out
        assert "A0 (Tigers): Score" in out

        code, out, _ = run("match", "timeline", match_id)
        assert out.splitlines()[-1].endswith("1-0")

    def test_hit_without_serve_rejected(self, run, match_id):
        ids = self.add_players(run, match_id)
        run("match", "start", match_id)
        code, _, err = run("event", "add", match_id, "B", ids["B"][0], "backhand")
        assert code == EXIT_REJECTED
        assert "serve" in err
        _, out, _ = run("match", "show", match_id)
        assert "events: 0" in out

    def test_event_for_player_not_on_roster(self, run, match_id):
        self.add_players(run, match_id)
        run("match", "start", match_id)
        code, _, err = run("event", "add", match_id, "A", "ghost", "serve")
        assert code == EXIT_ERROR
        assert "ghost" in err

    def test_missing_match(self, run):
        code, _, err = run("match", "show", "nope")
        assert code == EXIT_ERROR
        assert "not found" in err

    def test_profiles_and_teams(self, run, tmp_path):
        _, player_id, _ = run("profile", "create", "Ann", "--position", "setter", "--age", "24")
        _, team_id, _ = run("team", "create", "Tigers", "--coach", "Kim")
        assert run("team", "add-player", team_id, player_id)[0] == 0

        code, out, _ = run("team", "show", team_id)
        assert code == 0
        assert "Ann (setter)" in out

        image = tmp_path / "avatar.jpg"
        image.write_bytes(b"jpeg")
        code, out, _ = run("profile", "avatar", player_id, str(image))
        assert code == 0
        assert out.startswith("file://")

        _, out, _ = run("profile", "show", player_id)
        assert '"avatar_url": "file://' in out

    def test_missing_image_file(self, run):
        _, player_id, _ = run("profile", "create", "Ann")
        code, _, err = run("profile", "avatar", player_id, "/nonexistent/a.jpg")
        assert code == EXIT_ERROR

    def test_empty_team_name_rejected(self, run):
        code, _, err = run("match", "create", "", "Sharks")
        assert code == EXIT_REJECTED
        assert "team_a" in err
        assert run("match", "list")[1] == ""

    def test_same_team_twice_rejected(self, run):
        code, _, err = run("match", "create", "Tigers", "Tigers")
        assert code == EXIT_REJECTED
        assert "must differ" in err

    def test_negative_age_rejected(self, run):
        code, _, err = run("profile", "create", "Ann", "--age", "-1")
        assert code == EXIT_REJECTED
        assert "age" in err
        assert run("profile", "list")[1] == ""

    def test_invalid_stored_profile(self, run, tmp_path):
        run("profile", "list")
        conn = sqlite3.connect(tmp_path / "ballstats.db")
        with conn:
            conn.execute(
                "INSERT INTO documents (collection, doc_id, data, written_at) "
                "VALUES ('player_profiles', 'p1', '{\"name\": \"\"}', '2026-01-01')"
            )
        conn.close()
        code, _, err = run("profile", "show", "p1")
        assert code == EXIT_ERROR
        assert "not found" in err

    def test_corrupt_database_file(self, run, tmp_path):
        (tmp_path / "ballstats.db").write_bytes(b"this is not sqlite\x00" * 256)
        code, _, err = run("match", "list")
        assert code == EXIT_ERROR
        assert "Cannot open database" in err
