"""MCP server for fitrank.

Exposes achievement progress and event recording as MCP tools.
Run via: python3 -m fitrank.mcp_server
"""
from __future__ import annotations

from datetime import datetime
from typing import Any

from mcp.server.fastmcp import FastMCP

from fitrank.achievements import get_closest_achievements
from fitrank.config import get_current_user, get_db_path
from fitrank.engine import AchievementEngine, EvaluationResult
from fitrank.errors import FitrankError
from fitrank.events import DomainEvent, ProgressEvent, SocialEvent, WorkoutEvent

mcp = FastMCP(name="fitrank")

_NOT_SIGNED_IN = {"error": "Not signed in. Run: fitrank login --user <id>"}


def _get_db():
    from fitrank.db import Database
    return Database(get_db_path())


def _resolve_user(user_id: str | None) -> str | None:
    return user_id or get_current_user()


def _result_dict(result: EvaluationResult) -> dict[str, Any]:
    return {
        "user_id": result.user_id,
        "updated": [
            {
                "name": u.definition.name,
                "current": u.progress.current,
                "target": u.progress.target,
                "completed": u.progress.completed,
            }
            for u in result.updates
        ],
        "unlocked": [
            {"name": d.name, "description": d.description, "points": d.points}
            for d in result.unlocked
        ],
        "failed": [f.definition.name for f in result.failures],
    }


def _record(user_id: str | None, event: DomainEvent) -> dict[str, Any]:
    uid = _resolve_user(user_id)
    if uid is None:
        return dict(_NOT_SIGNED_IN)
    db = _get_db()
    try:
        return _result_dict(AchievementEngine(db).evaluate(uid, event))
    except FitrankError as exc:
        return {"error": f"Failed to update achievements: {exc}"}
    finally:
        db.close()


@mcp.tool()
def get_achievements(user_id: str | None = None) -> dict[str, Any]:
    """List every achievement with the user's progress."""
    uid = _resolve_user(user_id)
    if uid is None:
        return dict(_NOT_SIGNED_IN)
    db = _get_db()
    try:
        overview = AchievementEngine(db).get_overview(uid)
        by_id = {p.achievement_id: p for p in overview.progress}
        achievements = []
        for definition in overview.catalog:
            row = by_id.get(definition.id)
            achievements.append({
                "id": definition.id,
                "name": definition.name,
                "description": definition.description,
                "category": definition.category.value,
                "points": definition.points,
                "current": row.current if row else 0,
                "target": definition.target,
                "completed": bool(row and row.completed),
                "earned_at": row.earned_at if row else None,
            })
        return {
            "achievements": achievements,
            "total_count": overview.summary.total,
            "unlocked_count": overview.summary.completed,
        }
    except FitrankError as exc:
        return {"error": f"Failed to load achievements: {exc}"}
    finally:
        db.close()


@mcp.tool()
def get_summary(user_id: str | None = None) -> dict[str, Any]:
    """Totals: unlocked count, points earned, next milestone and closest achievements."""
    uid = _resolve_user(user_id)
    if uid is None:
        return dict(_NOT_SIGNED_IN)
    db = _get_db()
    try:
        overview = AchievementEngine(db).get_overview(uid)
        closest = get_closest_achievements(overview.catalog, overview.progress)
        return {
            "total": overview.summary.total,
            "completed": overview.summary.completed,
            "points": overview.summary.points,
            "next_milestone": overview.summary.next_milestone,
            "closest": [{"name": d.name, "progress": round(f, 3)} for d, f in closest],
        }
    except FitrankError as exc:
        return {"error": f"Failed to load achievements: {exc}"}
    finally:
        db.close()


@mcp.tool()
def record_workout(
    duration_seconds: int,
    exercises_completed: int,
    total_exercises: int,
    completed_at: str | None = None,
    is_shared: bool = False,
    user_id: str | None = None,
) -> dict[str, Any]:
    """Record a completed workout. completed_at is ISO-8601 (default: now)."""
    try:
        when = datetime.fromisoformat(completed_at) if completed_at else datetime.now()
    except ValueError:
        return {"error": f"Invalid completed_at: {completed_at!r}"}
    event = WorkoutEvent(
        duration_seconds=duration_seconds,
        exercises_completed=exercises_completed,
        total_exercises=total_exercises,
        completed_at=when,
        is_shared=is_shared,
    )
    return _record(user_id, event)


@mcp.tool()
def record_social(kind: str, count: int = 1, user_id: str | None = None) -> dict[str, Any]:
    """Record received likes ("like") or inspirations ("inspire")."""
    try:
        event = SocialEvent(kind=kind, count=count)
    except FitrankError as exc:
        return {"error": str(exc)}
    return _record(user_id, event)


@mcp.tool()
def record_progress(kind: str, goal_achieved: bool = False, user_id: str | None = None) -> dict[str, Any]:
    """Record a progress entry: "weight", "measurements" or "daily"."""
    try:
        event = ProgressEvent(kind=kind, goal_achieved=goal_achieved)
    except FitrankError as exc:
        return {"error": str(exc)}
    return _record(user_id, event)


if __name__ == "__main__":
    mcp.run()
