"""Configuration file management for fitrank.

Reads and writes ~/.fitrank/config.json for settings that don't belong in the DB
(the database location, the signed-in user, notification preferences).
"""
from __future__ import annotations

import json
from pathlib import Path

DEFAULT_CONFIG_PATH: Path = Path.home() / ".fitrank" / "config.json"


def load_config(config_path: Path | None = None) -> dict:
    """Load config from JSON file. Returns {} if file missing or invalid."""
    path = config_path or DEFAULT_CONFIG_PATH
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError):
        return {}
    return data if isinstance(data, dict) else {}


def save_config(data: dict, config_path: Path | None = None) -> None:
    """Write config dict to JSON file. Creates parent dirs if needed."""
    path = config_path or DEFAULT_CONFIG_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")


def get_db_path(config_path: Path | None = None) -> Path | None:
    """Return the configured database path, or None to use the default."""
    raw = load_config(config_path).get("db_path")
    if raw:
        return Path(raw).expanduser()
    return None


def get_current_user(config_path: Path | None = None) -> str | None:
    """Return the signed-in user id, or None if nobody is signed in."""
    user_id = load_config(config_path).get("user_id")
    return str(user_id) if user_id else None


def set_current_user(user_id: str, config_path: Path | None = None) -> None:
    """Persist the signed-in user id."""
    config = load_config(config_path)
    config["user_id"] = user_id
    save_config(config, config_path)


def clear_current_user(config_path: Path | None = None) -> None:
    """Sign out. Other config keys are kept."""
    config = load_config(config_path)
    config.pop("user_id", None)
    save_config(config, config_path)


def notifications_enabled(config_path: Path | None = None) -> bool:
    """Whether unlock notices should be shown (default: true)."""
    return bool(load_config(config_path).get("notifications", True))
