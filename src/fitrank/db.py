"""SQLite store for achievement definitions and per-user progress."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import date
from pathlib import Path
from typing import Iterator

from fitrank.achievements import AchievementDef, Category, RuleKind, UserAchievementProgress
from fitrank.errors import StoreError

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path.home() / ".fitrank" / "data.db"


@contextmanager
def _store_errors(action: str) -> Iterator[None]:
    try:
        yield
    except (sqlite3.Error, ValueError) as exc:
        raise StoreError(f"{action} failed: {exc}") from exc


def _row_to_definition(row: sqlite3.Row) -> AchievementDef:
    return AchievementDef(
        id=row["id"],
        name=row["name"],
        description=row["description"],
        category=Category(row["category"]),
        target=row["target"],
        points=row["points"],
        rule=RuleKind.parse(row["rule"]) or RuleKind.from_name(row["name"]),
    )


def _row_to_progress(row: sqlite3.Row) -> UserAchievementProgress:
    last = row["last_workout_date"]
    return UserAchievementProgress(
        user_id=row["user_id"],
        achievement_id=row["achievement_id"],
        current=row["current"],
        target=row["target"],
        completed=bool(row["completed"]),
        earned_at=row["earned_at"],
        streak=row["streak"],
        last_workout_date=date.fromisoformat(last) if last else None,
    )


class Database:
    """SQLite database manager with WAL mode.

    The connection runs in autocommit mode; multi-statement work goes
    through user_transaction() or the per-write savepoint in upsert_progress().
    """

    def __init__(self, db_path: Path | None = None, timeout: float = 10.0) -> None:
        self.db_path = db_path or DEFAULT_DB_PATH
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(str(self.db_path), isolation_level=None, timeout=timeout)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA journal_mode=WAL")
        self.init_db()

    def init_db(self) -> None:
        """Create tables if they do not exist."""
        self.conn.executescript("""
            CREATE TABLE IF NOT EXISTS achievement_definitions (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL UNIQUE,
                description TEXT NOT NULL DEFAULT '',
                category TEXT NOT NULL,
                target REAL NOT NULL CHECK (target > 0),
                points INTEGER NOT NULL DEFAULT 0 CHECK (points >= 0),
                rule TEXT,
                position INTEGER NOT NULL DEFAULT 0
            );

            CREATE TABLE IF NOT EXISTS user_achievement_progress (
                user_id TEXT NOT NULL,
                achievement_id TEXT NOT NULL,
                current REAL NOT NULL DEFAULT 0 CHECK (current >= 0),
                target REAL NOT NULL,
                completed INTEGER NOT NULL DEFAULT 0,
                earned_at TEXT,
                streak INTEGER,
                last_workout_date TEXT,
                PRIMARY KEY (user_id, achievement_id)
            );
        """)

    def seed_catalog(self, definitions: list[AchievementDef]) -> None:
        """Insert or update definitions; list order becomes catalog order."""
        with _store_errors("seeding catalog"), self.user_transaction():
            for position, definition in enumerate(definitions):
                self.conn.execute(
                    "INSERT INTO achievement_definitions "
                    "(id, name, description, category, target, points, rule, position) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?) "
                    "ON CONFLICT(id) DO UPDATE SET name = excluded.name, "
                    "description = excluded.description, category = excluded.category, "
                    "target = excluded.target, points = excluded.points, "
                    "rule = excluded.rule, position = excluded.position",
                    (
                        definition.id,
                        definition.name,
                        definition.description,
                        definition.category.value,
                        definition.target,
                        definition.points,
                        definition.rule.value if definition.rule else None,
                        position,
                    ),
                )
        logger.debug("Seeded %d achievement definitions", len(definitions))

    def fetch_catalog(self) -> list[AchievementDef]:
        """Return all definitions in catalog order."""
        with _store_errors("fetching catalog"):
            rows = self.conn.execute(
                "SELECT * FROM achievement_definitions ORDER BY position, id"
            ).fetchall()
            return [_row_to_definition(row) for row in rows]

    def fetch_progress(self, user_id: str) -> list[UserAchievementProgress]:
        """Return all progress rows for a user."""
        with _store_errors("fetching progress"):
            rows = self.conn.execute(
                "SELECT * FROM user_achievement_progress WHERE user_id = ? ORDER BY achievement_id",
                (user_id,),
            ).fetchall()
            return [_row_to_progress(row) for row in rows]

    def get_progress(self, user_id: str, achievement_id: str) -> UserAchievementProgress | None:
        """Get a single progress row by its composite key."""
        with _store_errors("fetching progress"):
            row = self.conn.execute(
                "SELECT * FROM user_achievement_progress WHERE user_id = ? AND achievement_id = ?",
                (user_id, achievement_id),
            ).fetchone()
            return _row_to_progress(row) if row else None

    def upsert_progress(self, progress: UserAchievementProgress) -> None:
        """Insert or update a progress row by (user_id, achievement_id).

        Completion never reverts and a stored earned_at is never overwritten,
        whatever the caller passes. A failed write is rolled back on its own.
        """
        with _store_errors(f"writing progress for {progress.achievement_id}"):
            self.conn.execute("SAVEPOINT upsert_progress")
            try:
                self.conn.execute(
                    "INSERT INTO user_achievement_progress "
                    "(user_id, achievement_id, current, target, completed, earned_at, "
                    "streak, last_workout_date) VALUES (?, ?, ?, ?, ?, ?, ?, ?) "
                    "ON CONFLICT(user_id, achievement_id) DO UPDATE SET "
                    "current = excluded.current, "
                    "target = excluded.target, "
                    "completed = MAX(user_achievement_progress.completed, excluded.completed), "
                    "earned_at = COALESCE(user_achievement_progress.earned_at, excluded.earned_at), "
                    "streak = COALESCE(excluded.streak, user_achievement_progress.streak), "
                    "last_workout_date = COALESCE(excluded.last_workout_date, "
                    "user_achievement_progress.last_workout_date)",
                    (
                        progress.user_id,
                        progress.achievement_id,
                        progress.current,
                        progress.target,
                        int(progress.completed),
                        progress.earned_at,
                        progress.streak,
                        progress.last_workout_date.isoformat() if progress.last_workout_date else None,
                    ),
                )
            except sqlite3.Error:
                self.conn.execute("ROLLBACK TO SAVEPOINT upsert_progress")
                self.conn.execute("RELEASE SAVEPOINT upsert_progress")
                raise
            self.conn.execute("RELEASE SAVEPOINT upsert_progress")

    @contextmanager
    def user_transaction(self) -> Iterator[None]:
        """Hold the database write lock for the duration of the block.

        Uses BEGIN IMMEDIATE so two evaluations (from any process) cannot
        interleave their read-then-write of progress rows. Nested use joins
        the outer transaction.
        """
        if self.conn.in_transaction:
            yield
            return
        with _store_errors("starting transaction"):
            self.conn.execute("BEGIN IMMEDIATE")
        try:
            yield
        except BaseException:
            if self.conn.in_transaction:
                self.conn.execute("ROLLBACK")
            raise
        try:
            with _store_errors("committing transaction"):
                self.conn.execute("COMMIT")
        except StoreError:
            if self.conn.in_transaction:
                self.conn.execute("ROLLBACK")
            raise

    def close(self) -> None:
        """Close the database connection."""
        self.conn.close()
