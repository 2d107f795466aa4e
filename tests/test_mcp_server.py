"""Tests for the MCP server tool functions."""
from unittest.mock import MagicMock, patch

import pytest

from fitrank.achievements import DEFAULT_CATALOG
from fitrank.db import Database
from fitrank.errors import StoreError
from fitrank.mcp_server import (
    get_achievements,
    get_summary,
    record_progress,
    record_social,
    record_workout,
)

USER = "user-1"


@pytest.fixture
def db_path(tmp_path):
    path = tmp_path / "test.db"
    database = Database(db_path=path)
    database.seed_catalog(DEFAULT_CATALOG)
    database.close()
    return path


@pytest.fixture
def get_db(db_path):
    with patch("fitrank.mcp_server._get_db", side_effect=lambda: Database(db_path=db_path)) as mock_get_db:
        yield mock_get_db


class TestNotSignedIn:
    @patch("fitrank.mcp_server.get_current_user", return_value=None)
    @patch("fitrank.mcp_server._get_db")
    def test_tools_require_user(self, mock_get_db, _mock_user):
        assert "error" in get_achievements()
        assert "error" in get_summary()
        assert "error" in record_social("like", 1)
        mock_get_db.assert_not_called()


class TestReadTools:
    def test_get_achievements_lists_catalog(self, get_db):
        result = get_achievements(user_id=USER)
        assert result["total_count"] == len(DEFAULT_CATALOG)
        assert result["unlocked_count"] == 0
        assert result["achievements"][0]["name"] == "First Workout"
        assert result["achievements"][0]["completed"] is False

    @patch("fitrank.mcp_server.get_current_user", return_value=USER)
    def test_uses_signed_in_user(self, _mock_user, get_db):
        record_progress("weight", goal_achieved=True)
        summary = get_summary()
        assert summary["completed"] == 1
        assert summary["points"] == 200

    def test_store_failure_reported(self):
        mock_db = MagicMock()
        mock_db.fetch_catalog.side_effect = StoreError("locked")
        with patch("fitrank.mcp_server._get_db", return_value=mock_db):
            result = get_summary(user_id=USER)
        assert "error" in result
        mock_db.close.assert_called_once()


class TestRecordTools:
    def test_record_workout_unlocks(self, get_db):
        result = record_workout(1800, 3, 3, completed_at="2026-01-15T12:00:00", user_id=USER)
        unlocked = {a["name"] for a in result["unlocked"]}
        assert unlocked == {"First Workout", "Perfect Form"}
        assert result["failed"] == []

    def test_record_workout_bad_timestamp(self, get_db):
        assert "error" in record_workout(60, 1, 1, completed_at="soon", user_id=USER)
        get_db.assert_not_called()

    def test_record_workout_invalid_counts(self, get_db):
        result = record_workout(60, 5, 1, completed_at="2026-01-15T12:00:00", user_id=USER)
        assert "error" in result

    def test_record_social_unknown_kind(self, get_db):
        assert "error" in record_social("share", 1, user_id=USER)

    def test_record_social_accumulates(self, get_db):
        record_social("like", 3, user_id=USER)
        result = record_social("like", 2, user_id=USER)
        (update,) = result["updated"]
        assert update["name"] == "Community Leader"
        assert update["current"] == 5
