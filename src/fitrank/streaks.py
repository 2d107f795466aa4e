"""Consecutive-day workout streak tracking for fitrank."""

from __future__ import annotations

from datetime import date, timedelta


def advance_streak(
    streak: int | None, last_workout_date: date | None, workout_date: date
) -> tuple[int, date]:
    """Advance a stored streak by one workout.

    Rules:
    - No previous workout: streak starts at 1
    - Same day as the last workout: unchanged
    - Day after the last workout: streak + 1
    - Back-dated workout (before the last one): unchanged
    - Any larger gap: streak resets to 1

    Returns (new_streak, new_last_workout_date).
    """
    if not streak or last_workout_date is None:
        return 1, workout_date

    if workout_date <= last_workout_date:
        return streak, last_workout_date

    if workout_date - last_workout_date == timedelta(days=1):
        return streak + 1, workout_date

    return 1, workout_date
