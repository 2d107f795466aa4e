"""Tests for the config module."""
import json
from pathlib import Path

from fitrank.config import (
    clear_current_user,
    get_current_user,
    get_db_path,
    load_config,
    notifications_enabled,
    save_config,
    set_current_user,
)


class TestLoadConfig:
    def test_missing_file_returns_empty(self, tmp_path):
        assert load_config(tmp_path / "nonexistent.json") == {}

    def test_invalid_json_returns_empty(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("not json", encoding="utf-8")
        assert load_config(path) == {}

    def test_non_object_json_returns_empty(self, tmp_path):
        path = tmp_path / "list.json"
        path.write_text("[1, 2]", encoding="utf-8")
        assert load_config(path) == {}

    def test_loads_valid_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text('{"key": "value"}', encoding="utf-8")
        assert load_config(path) == {"key": "value"}


class TestSaveConfig:
    def test_creates_parent_dirs(self, tmp_path):
        path = tmp_path / "sub" / "dir" / "config.json"
        save_config({"nested": True}, path)
        assert json.loads(path.read_text()) == {"nested": True}


class TestCurrentUser:
    def test_nobody_signed_in(self, tmp_path):
        assert get_current_user(tmp_path / "config.json") is None

    def test_sign_in_and_out(self, tmp_path):
        path = tmp_path / "config.json"
        set_current_user("user-42", path)
        assert get_current_user(path) == "user-42"
        clear_current_user(path)
        assert get_current_user(path) is None

    def test_sign_out_preserves_other_keys(self, tmp_path):
        path = tmp_path / "config.json"
        save_config({"db_path": "/data/fit.db", "user_id": "u1"}, path)
        clear_current_user(path)
        assert load_config(path) == {"db_path": "/data/fit.db"}


class TestSettings:
    def test_db_path_default_none(self, tmp_path):
        assert get_db_path(tmp_path / "config.json") is None

    def test_db_path_configured(self, tmp_path):
        path = tmp_path / "config.json"
        save_config({"db_path": "/data/fit.db"}, path)
        assert get_db_path(path) == Path("/data/fit.db")

    def test_notifications_default_on(self, tmp_path):
        assert notifications_enabled(tmp_path / "config.json") is True

    def test_notifications_disabled(self, tmp_path):
        path = tmp_path / "config.json"
        save_config({"notifications": False}, path)
        assert notifications_enabled(path) is False
