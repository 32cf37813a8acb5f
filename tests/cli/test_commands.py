"""Tests for the thotnet operator CLI."""

from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from thotnet.cli.commands import app
from thotnet.db import auth_repository, badges_repository, courses_repository, profiles_repository
from thotnet.db.database import Database

runner = CliRunner()


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "cli.db")


def simple_payload():
    return {
        "title": "Diffusion Models",
        "description": "Denoising step by step.",
        "modules": [
            {"title": f"Step {i}", "content": f"Step {i} removes a little noise.", "estimatedMinutes": 10}
            for i in range(1, 4)
        ],
    }


class TestDatabaseCommands:
    """Tests for init-db, seed-badges and recalc-levels."""

    def test_init_db(self, db_path):
        result = runner.invoke(app, ["init-db", "--db", db_path])
        assert result.exit_code == 0
        assert "Schema ready" in result.stdout

    def test_seed_badges(self, db_path):
        result = runner.invoke(app, ["seed-badges", "--db", db_path])

        assert result.exit_code == 0
        assert "badges seeded" in result.stdout
        assert len(badges_repository.list_badges(Database(db_path))) > 10

    def test_recalc_levels(self, db_path):
        db = Database(db_path)
        db.init_schema()
        profiles_repository.ensure_profile(db, "u1")
        with db.connect() as conn:
            conn.execute("UPDATE user_profiles SET total_xp = 400, level = 1 WHERE id = 'u1'")

        result = runner.invoke(app, ["recalc-levels", "--db", db_path])

        assert result.exit_code == 0
        assert "1 profiles updated" in result.stdout
        assert profiles_repository.get_profile(db, "u1").level == 3


class TestIssueToken:
    """Tests for issue-token."""

    def test_prints_working_token(self, db_path):
        result = runner.invoke(app, ["issue-token", "alice", "--name", "Alice", "--db", db_path])

        assert result.exit_code == 0
        token = result.stdout.strip().splitlines()[-1]
        db = Database(db_path)
        assert auth_repository.get_session_user(db, token) == "alice"
        assert profiles_repository.get_profile(db, "alice").display_name == "Alice"


class TestLeaderboardCommand:
    """Tests for leaderboard."""

    def test_empty(self, db_path):
        result = runner.invoke(app, ["leaderboard", "--db", db_path])
        assert result.exit_code == 0
        assert "No ranked users yet" in result.stdout

    def test_table(self, db_path):
        db = Database(db_path)
        db.init_schema()
        profiles_repository.ensure_profile(db, "u1", display_name="Lovelace")
        with db.connect() as conn:
            conn.execute("UPDATE user_profiles SET total_xp = 250 WHERE id = 'u1'")

        result = runner.invoke(app, ["leaderboard", "--db", db_path])

        assert result.exit_code == 0
        assert "Lovelace" in result.stdout
        assert "250" in result.stdout

    def test_unknown_period(self, db_path):
        result = runner.invoke(app, ["leaderboard", "--period", "year", "--db", db_path])
        assert result.exit_code == 1


class TestGenerateCourse:
    """Tests for generate-course."""

    def test_generates_with_configured_chain(self, db_path):
        llm = MagicMock()
        llm.providers = ["mock"]
        llm.simple_json.return_value = simple_payload()

        with patch("thotnet.cli.commands.ProviderChain") as MockChain:
            MockChain.from_config.return_value = llm
            result = runner.invoke(
                app, ["generate-course", "diffusion models", "--duration", "short", "--user", "u1", "--db", db_path]
            )

        assert result.exit_code == 0
        assert "Diffusion Models" in result.stdout
        courses, total = courses_repository.list_courses(Database(db_path))
        assert total == 1
        assert courses[0].created_by == "u1"

    def test_no_provider(self, db_path):
        llm = MagicMock()
        llm.providers = []

        with patch("thotnet.cli.commands.ProviderChain") as MockChain:
            MockChain.from_config.return_value = llm
            result = runner.invoke(app, ["generate-course", "diffusion", "--db", db_path])

        assert result.exit_code == 1
        assert "No LLM provider configured" in result.stdout

    def test_bad_difficulty(self, db_path):
        result = runner.invoke(app, ["generate-course", "diffusion", "--difficulty", "expert", "--db", db_path])
        assert result.exit_code == 1
