"""Rule table mapping each RuleKind to its progress computation.

Every rule receives the event and the user's existing progress row (or
None) and returns a RuleOutcome when the event advances the achievement,
or None when the event is of the wrong shape or does not qualify.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional

from fitrank.achievements import AchievementDef, RuleKind, UserAchievementProgress
from fitrank.events import (
    DomainEvent,
    ProgressEvent,
    ProgressKind,
    SocialEvent,
    SocialKind,
    WorkoutEvent,
)
from fitrank.streaks import advance_streak


@dataclass(frozen=True)
class RuleOutcome:
    current: float
    streak: int | None = None
    last_workout_date: date | None = None


Rule = Callable[[DomainEvent, Optional[UserAchievementProgress]], Optional[RuleOutcome]]

EARLY_BIRD_BEFORE_HOUR = 8
NIGHT_OWL_FROM_HOUR = 20
WEEKEND_DAYS = {5, 6}  # date.weekday(): Saturday, Sunday


def _current(existing: UserAchievementProgress | None) -> float:
    return existing.current if existing else 0


def _workout_rule(
    qualifies: Callable[[WorkoutEvent], bool],
    compute: Callable[[WorkoutEvent, float], float],
) -> Rule:
    def rule(event: DomainEvent, existing: UserAchievementProgress | None) -> RuleOutcome | None:
        if not isinstance(event, WorkoutEvent) or not qualifies(event):
            return None
        return RuleOutcome(current=compute(event, _current(existing)))

    return rule


def _always(event: WorkoutEvent) -> bool:
    return True


def _consistency_king(
    event: DomainEvent, existing: UserAchievementProgress | None
) -> RuleOutcome | None:
    if not isinstance(event, WorkoutEvent):
        return None
    streak, last_date = advance_streak(
        existing.streak if existing else None,
        existing.last_workout_date if existing else None,
        event.completed_at.date(),
    )
    return RuleOutcome(
        current=max(streak, _current(existing)),
        streak=streak,
        last_workout_date=last_date,
    )


def _social_rule(kind: SocialKind) -> Rule:
    def rule(event: DomainEvent, existing: UserAchievementProgress | None) -> RuleOutcome | None:
        if not isinstance(event, SocialEvent) or event.kind != kind:
            return None
        return RuleOutcome(current=_current(existing) + event.count)

    return rule


def _progress_rule(kind: ProgressKind, single_fire: bool = False) -> Rule:
    def rule(event: DomainEvent, existing: UserAchievementProgress | None) -> RuleOutcome | None:
        if not isinstance(event, ProgressEvent) or event.kind != kind:
            return None
        if single_fire:
            return RuleOutcome(current=1) if event.goal_achieved else None
        return RuleOutcome(current=_current(existing) + 1)

    return rule


RULES: dict[RuleKind, Rule] = {
    RuleKind.FIRST_WORKOUT: _workout_rule(_always, lambda e, cur: 1),
    RuleKind.WORKOUT_WARRIOR: _workout_rule(_always, lambda e, cur: cur + 1),
    RuleKind.EXERCISE_MASTER: _workout_rule(_always, lambda e, cur: cur + e.exercises_completed),
    RuleKind.PERFECT_FORM: _workout_rule(
        lambda e: e.exercises_completed == e.total_exercises, lambda e, cur: 1
    ),
    RuleKind.CONSISTENCY_KING: _consistency_king,
    RuleKind.TIME_CHAMPION: _workout_rule(_always, lambda e, cur: cur + e.duration_seconds),
    RuleKind.EARLY_BIRD: _workout_rule(
        lambda e: e.completed_at.hour < EARLY_BIRD_BEFORE_HOUR, lambda e, cur: cur + 1
    ),
    RuleKind.NIGHT_OWL: _workout_rule(
        lambda e: e.completed_at.hour >= NIGHT_OWL_FROM_HOUR, lambda e, cur: cur + 1
    ),
    RuleKind.WEEKEND_WARRIOR: _workout_rule(
        lambda e: e.completed_at.weekday() in WEEKEND_DAYS, lambda e, cur: cur + 1
    ),
    RuleKind.SOCIAL_BUTTERFLY: _workout_rule(lambda e: e.is_shared, lambda e, cur: cur + 1),
    RuleKind.COMMUNITY_LEADER: _social_rule(SocialKind.LIKE),
    RuleKind.MOTIVATOR: _social_rule(SocialKind.INSPIRE),
    RuleKind.PROGRESS_TRACKER: _progress_rule(ProgressKind.DAILY),
    RuleKind.WEIGHT_GOAL_ACHIEVER: _progress_rule(ProgressKind.WEIGHT, single_fire=True),
    RuleKind.MEASUREMENT_MASTER: _progress_rule(ProgressKind.MEASUREMENTS),
}


def apply_rule(
    definition: AchievementDef,
    event: DomainEvent,
    existing: UserAchievementProgress | None,
) -> RuleOutcome | None:
    """Run the definition's rule against an event. Definitions without a known rule never match."""
    if definition.rule is None:
        return None
    rule = RULES.get(definition.rule)
    if rule is None:
        return None
    return rule(event, existing)
