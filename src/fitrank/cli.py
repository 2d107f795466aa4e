"""CLI commands for fitrank."""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime

from rich.logging import RichHandler

from fitrank.achievements import DEFAULT_CATALOG, get_closest_achievements
from fitrank.config import (
    clear_current_user,
    get_current_user,
    get_db_path,
    notifications_enabled,
    set_current_user,
)
from fitrank.db import Database
from fitrank.display import (
    console,
    print_achievements,
    print_error,
    print_evaluation_result,
    print_not_signed_in,
    print_summary,
    print_unlock_notice,
)
from fitrank.engine import AchievementEngine, EvaluationResult
from fitrank.errors import FitrankError
from fitrank.events import ProgressEvent, ProgressKind, SocialEvent, SocialKind, WorkoutEvent

logger = logging.getLogger(__name__)

_READ_COMMANDS = {None, "achievements", "summary", "whoami"}


def build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    parser = argparse.ArgumentParser(
        prog="fitrank",
        description="Track fitness achievements",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("seed", help="Install the default achievement catalog")
    login_p = subparsers.add_parser("login", help="Sign in as a user")
    login_p.add_argument("--user", "-u", required=True, help="User id")
    subparsers.add_parser("logout", help="Sign out")
    subparsers.add_parser("whoami", help="Show the signed-in user")
    subparsers.add_parser("achievements", help="List all achievements with progress")
    subparsers.add_parser("summary", help="Show achievement totals")

    workout_p = subparsers.add_parser("workout", help="Record a completed workout")
    workout_p.add_argument("--duration", type=int, required=True, help="Duration in seconds")
    workout_p.add_argument("--exercises", type=int, required=True, help="Exercises completed")
    workout_p.add_argument("--total", type=int, required=True, help="Exercises in the workout")
    workout_p.add_argument("--at", default=None, help="Completion time (ISO-8601, default: now)")
    workout_p.add_argument("--shared", action="store_true", help="Workout was shared")

    for kind in SocialKind:
        social_p = subparsers.add_parser(kind.value, help=f"Record received {kind.value}s")
        social_p.add_argument("--count", type=int, default=1)

    progress_p = subparsers.add_parser("progress", help="Record a progress entry")
    progress_p.add_argument("kind", choices=[k.value for k in ProgressKind])
    progress_p.add_argument("--goal-achieved", action="store_true", help="Weight goal reached")
    return parser


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def make_engine(db: Database) -> AchievementEngine:
    notifier = print_unlock_notice if notifications_enabled() else None
    return AchievementEngine(db, notifier=notifier)


def _report(result: EvaluationResult) -> EvaluationResult:
    print_evaluation_result(
        updated=len(result.updates),
        unlocked=result.unlocked,
        failed=[f.definition.name for f in result.failures],
    )
    return result


def do_seed(db: Database) -> int:
    """Install or refresh the default catalog. Returns the number of definitions."""
    db.seed_catalog(DEFAULT_CATALOG)
    console.print(f"  Seeded {len(DEFAULT_CATALOG)} achievements.")
    return len(DEFAULT_CATALOG)


def do_workout(
    engine: AchievementEngine,
    user_id: str | None,
    duration: int,
    exercises: int,
    total: int,
    at: str | None = None,
    shared: bool = False,
) -> EvaluationResult:
    """Record a workout and report achievement changes."""
    try:
        completed_at = datetime.fromisoformat(at) if at else datetime.now()
    except ValueError:
        raise FitrankError(f"Invalid completion time: {at!r}") from None
    event = WorkoutEvent(
        duration_seconds=duration,
        exercises_completed=exercises,
        total_exercises=total,
        completed_at=completed_at,
        is_shared=shared,
    )
    return _report(engine.record_workout_event(user_id, event))


def do_social(engine: AchievementEngine, user_id: str | None, kind: str, count: int) -> EvaluationResult:
    """Record likes or inspirations and report achievement changes."""
    return _report(engine.record_social_event(user_id, SocialEvent(kind=kind, count=count)))


def do_progress(
    engine: AchievementEngine, user_id: str | None, kind: str, goal_achieved: bool = False
) -> EvaluationResult:
    """Record a progress entry and report achievement changes."""
    event = ProgressEvent(kind=kind, goal_achieved=goal_achieved)
    return _report(engine.record_progress_event(user_id, event))


def do_achievements(engine: AchievementEngine, user_id: str) -> None:
    """Show all achievements with progress."""
    overview = engine.get_overview(user_id)
    print_achievements(overview.catalog, overview.progress)


def do_summary(engine: AchievementEngine, user_id: str) -> None:
    """Show totals and the closest locked achievements."""
    overview = engine.get_overview(user_id)
    closest = get_closest_achievements(overview.catalog, overview.progress)
    print_summary(overview.summary, closest)


def run_command(args: argparse.Namespace, db: Database) -> None:
    command = args.command or "summary"

    if command == "seed":
        do_seed(db)
        return
    if command == "login":
        set_current_user(args.user)
        console.print(f"  Signed in as [bold]{args.user}[/]")
        return
    if command == "logout":
        clear_current_user()
        console.print("  Signed out.")
        return

    user_id = get_current_user()
    if user_id is None:
        print_not_signed_in()
        return
    engine = make_engine(db)

    if command == "whoami":
        console.print(f"  {user_id}")
    elif command == "achievements":
        do_achievements(engine, user_id)
    elif command == "summary":
        do_summary(engine, user_id)
    elif command == "workout":
        do_workout(
            engine, user_id,
            duration=args.duration, exercises=args.exercises, total=args.total,
            at=args.at, shared=args.shared,
        )
    elif command in {k.value for k in SocialKind}:
        do_social(engine, user_id, kind=command, count=args.count)
    elif command == "progress":
        do_progress(engine, user_id, kind=args.kind, goal_achieved=args.goal_achieved)


def main(argv: list[str] | None = None) -> None:
    """Entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    db = Database(get_db_path())
    try:
        run_command(args, db)
    except FitrankError as exc:
        logger.debug("Command %s failed", args.command, exc_info=exc)
        if args.command in _READ_COMMANDS:
            print_error("Failed to load achievements")
        else:
            print_error("Failed to update achievements")
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
