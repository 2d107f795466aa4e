"""Tests for the SQLite store."""

from datetime import date

import pytest

from fitrank.achievements import DEFAULT_CATALOG, AchievementDef, Category, RuleKind, UserAchievementProgress
from fitrank.db import Database
from fitrank.errors import StoreError


@pytest.fixture
def db(tmp_path):
    """Create a temporary database for testing."""
    db_path = tmp_path / "test.db"
    database = Database(db_path=db_path)
    yield database
    database.close()


def _row(achievement_id="first_workout", current=1.0, target=1.0, completed=False, earned_at=None, **extra):
    return UserAchievementProgress(
        user_id="u1",
        achievement_id=achievement_id,
        current=current,
        target=target,
        completed=completed,
        earned_at=earned_at,
        **extra,
    )


class TestDatabaseCreation:
    def test_creates_parent_directories(self, tmp_path):
        db_path = tmp_path / "a" / "b" / "test.db"
        database = Database(db_path=db_path)
        assert db_path.exists()
        database.close()

    def test_tables_exist(self, db):
        cursor = db.conn.execute("SELECT name FROM sqlite_master WHERE type='table' ORDER BY name")
        tables = {row["name"] for row in cursor.fetchall()}
        assert {"achievement_definitions", "user_achievement_progress"} <= tables

    def test_wal_mode_enabled(self, db):
        result = db.conn.execute("PRAGMA journal_mode").fetchone()
        assert result[0] == "wal"


class TestCatalog:
    def test_empty_catalog(self, db):
        assert db.fetch_catalog() == []

    def test_seed_and_fetch_preserves_order(self, db):
        db.seed_catalog(DEFAULT_CATALOG)
        assert db.fetch_catalog() == DEFAULT_CATALOG

    def test_reseed_updates_definition(self, db):
        db.seed_catalog(DEFAULT_CATALOG)
        first = DEFAULT_CATALOG[0]
        changed = AchievementDef(
            id=first.id, name=first.name, description="New copy", category=first.category,
            target=first.target, points=99, rule=first.rule,
        )
        db.seed_catalog([changed] + DEFAULT_CATALOG[1:])
        fetched = db.fetch_catalog()
        assert len(fetched) == len(DEFAULT_CATALOG)
        assert fetched[0].points == 99
        assert fetched[0].description == "New copy"

    def test_unknown_stored_rule_reads_as_none(self, db):
        db.conn.execute(
            "INSERT INTO achievement_definitions (id, name, category, target, points, rule) "
            "VALUES ('legend', 'Legend', 'special', 1, 500, 'mystery_rule')"
        )
        (definition,) = db.fetch_catalog()
        assert definition.rule is None
        assert definition.category is Category.SPECIAL

    def test_name_only_row_gets_rule_from_name(self, db):
        db.conn.execute(
            "INSERT INTO achievement_definitions (id, name, category, target, points) "
            "VALUES ('fw', 'First Workout', 'workout', 1, 10)"
        )
        (definition,) = db.fetch_catalog()
        assert definition.rule is RuleKind.FIRST_WORKOUT

    def test_invalid_category_raises_store_error(self, db):
        db.conn.execute(
            "INSERT INTO achievement_definitions (id, name, category, target, points) "
            "VALUES ('odd', 'Odd', 'cardio', 1, 0)"
        )
        with pytest.raises(StoreError):
            db.fetch_catalog()

    def test_definition_without_rule_round_trips(self, db):
        definition = AchievementDef(
            id="founder", name="Founder", description="", category=Category.SPECIAL,
            target=1, points=0, rule=None,
        )
        db.seed_catalog([definition])
        assert db.fetch_catalog() == [definition]


class TestProgress:
    def test_no_rows(self, db):
        assert db.fetch_progress("u1") == []
        assert db.get_progress("u1", "first_workout") is None

    def test_insert_then_update(self, db):
        db.upsert_progress(_row(current=1, target=5))
        db.upsert_progress(_row(current=2, target=5))
        row = db.get_progress("u1", "first_workout")
        assert row.current == 2
        assert row.completed is False
        assert len(db.fetch_progress("u1")) == 1

    def test_rows_scoped_to_user(self, db):
        db.upsert_progress(_row())
        assert db.fetch_progress("someone-else") == []

    def test_streak_fields_round_trip(self, db):
        db.upsert_progress(_row(streak=3, last_workout_date=date(2026, 1, 15)))
        row = db.get_progress("u1", "first_workout")
        assert row.streak == 3
        assert row.last_workout_date == date(2026, 1, 15)

    def test_completion_never_reverts(self, db):
        db.upsert_progress(_row(completed=True, earned_at="2026-01-15T12:00:00+00:00"))
        db.upsert_progress(_row(completed=False, earned_at=None))
        row = db.get_progress("u1", "first_workout")
        assert row.completed is True
        assert row.earned_at == "2026-01-15T12:00:00+00:00"

    def test_earned_at_never_overwritten(self, db):
        db.upsert_progress(_row(completed=True, earned_at="2026-01-15T12:00:00+00:00"))
        db.upsert_progress(_row(completed=True, earned_at="2026-02-01T08:00:00+00:00"))
        row = db.get_progress("u1", "first_workout")
        assert row.earned_at == "2026-01-15T12:00:00+00:00"

    def test_failed_write_raises_store_error_and_leaves_no_row(self, db):
        with pytest.raises(StoreError):
            db.upsert_progress(_row(current=-1))
        assert db.get_progress("u1", "first_workout") is None
        db.upsert_progress(_row(current=1))
        assert db.get_progress("u1", "first_workout").current == 1


class TestUserTransaction:
    def test_commits_on_success(self, db, tmp_path):
        with db.user_transaction():
            db.upsert_progress(_row())
        other = Database(db_path=tmp_path / "test.db")
        try:
            assert other.get_progress("u1", "first_workout") is not None
        finally:
            other.close()

    def test_rolls_back_on_error(self, db):
        with pytest.raises(RuntimeError):
            with db.user_transaction():
                db.upsert_progress(_row())
                raise RuntimeError("boom")
        assert db.get_progress("u1", "first_workout") is None

    def test_error_after_inner_rollback_propagates(self, db):
        with pytest.raises(RuntimeError, match="boom"):
            with db.user_transaction():
                db.conn.execute("ROLLBACK")
                raise RuntimeError("boom")
        assert not db.conn.in_transaction

    def test_failed_commit_rolls_back(self, db):
        db.conn.execute("PRAGMA foreign_keys = ON")
        db.conn.executescript("""
            CREATE TABLE parent (id INTEGER PRIMARY KEY);
            CREATE TABLE child (
                parent_id INTEGER REFERENCES parent(id) DEFERRABLE INITIALLY DEFERRED
            );
        """)
        with pytest.raises(StoreError, match="committing transaction"):
            with db.user_transaction():
                db.upsert_progress(_row())
                db.conn.execute("INSERT INTO child (parent_id) VALUES (1)")
        assert not db.conn.in_transaction
        assert db.get_progress("u1", "first_workout") is None
        assert db.conn.execute("SELECT COUNT(*) FROM child").fetchone()[0] == 0

    def test_failed_write_inside_transaction_keeps_other_writes(self, db):
        with db.user_transaction():
            db.upsert_progress(_row("a"))
            with pytest.raises(StoreError):
                db.upsert_progress(_row("b", current=-5))
            db.upsert_progress(_row("c"))
        ids = [row.achievement_id for row in db.fetch_progress("u1")]
        assert ids == ["a", "c"]

    def test_nested_transaction_joins_outer(self, db):
        with db.user_transaction():
            with db.user_transaction():
                db.upsert_progress(_row())
            assert db.conn.in_transaction
        assert not db.conn.in_transaction
