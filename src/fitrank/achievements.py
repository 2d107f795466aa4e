"""Achievement definitions, progress rows and catalog summaries for fitrank."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum


class Category(str, Enum):
    WORKOUT = "workout"
    NUTRITION = "nutrition"
    PROGRESS = "progress"
    SOCIAL = "social"
    SPECIAL = "special"


class RuleKind(str, Enum):
    FIRST_WORKOUT = "first_workout"
    WORKOUT_WARRIOR = "workout_warrior"
    EXERCISE_MASTER = "exercise_master"
    PERFECT_FORM = "perfect_form"
    CONSISTENCY_KING = "consistency_king"
    TIME_CHAMPION = "time_champion"
    EARLY_BIRD = "early_bird"
    NIGHT_OWL = "night_owl"
    WEEKEND_WARRIOR = "weekend_warrior"
    SOCIAL_BUTTERFLY = "social_butterfly"
    COMMUNITY_LEADER = "community_leader"
    MOTIVATOR = "motivator"
    PROGRESS_TRACKER = "progress_tracker"
    WEIGHT_GOAL_ACHIEVER = "weight_goal_achiever"
    MEASUREMENT_MASTER = "measurement_master"

    @classmethod
    def from_name(cls, name: str) -> RuleKind | None:
        """Map a legacy display name ("First Workout") to its rule, or None."""
        key = name.strip().lower().replace(" ", "_")
        try:
            return cls(key)
        except ValueError:
            return None

    @classmethod
    def parse(cls, value: str | None) -> RuleKind | None:
        """Parse a stored rule value. Unknown values map to None."""
        if not value:
            return None
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass(frozen=True)
class AchievementDef:
    id: str
    name: str
    description: str
    category: Category
    target: float
    points: int
    rule: RuleKind | None

    def __post_init__(self) -> None:
        if self.target <= 0:
            raise ValueError(f"achievement {self.id!r}: target must be positive, got {self.target}")
        if self.points < 0:
            raise ValueError(f"achievement {self.id!r}: points must be non-negative, got {self.points}")


@dataclass
class UserAchievementProgress:
    user_id: str
    achievement_id: str
    current: float
    target: float
    completed: bool
    earned_at: str | None  # ISO-8601 timestamp or None
    streak: int | None = None
    last_workout_date: date | None = None


@dataclass
class AchievementSummary:
    total: int
    completed: int
    points: int
    next_milestone: str


ALL_COMPLETED = "All achievements completed!"


def _define(
    rule: RuleKind,
    name: str,
    description: str,
    category: Category,
    target: float,
    points: int,
) -> AchievementDef:
    return AchievementDef(
        id=rule.value,
        name=name,
        description=description,
        category=category,
        target=target,
        points=points,
        rule=rule,
    )


DEFAULT_CATALOG: list[AchievementDef] = [
    _define(RuleKind.FIRST_WORKOUT, "First Workout",
            "Complete your first workout", Category.WORKOUT, 1, 10),
    _define(RuleKind.WORKOUT_WARRIOR, "Workout Warrior",
            "Complete 50 workouts", Category.WORKOUT, 50, 100),
    _define(RuleKind.EXERCISE_MASTER, "Exercise Master",
            "Complete 500 exercises", Category.WORKOUT, 500, 150),
    _define(RuleKind.PERFECT_FORM, "Perfect Form",
            "Finish every exercise in a workout", Category.WORKOUT, 1, 25),
    _define(RuleKind.CONSISTENCY_KING, "Consistency King",
            "Work out 7 days in a row", Category.WORKOUT, 7, 75),
    _define(RuleKind.TIME_CHAMPION, "Time Champion",
            "Train for a total of 10 hours", Category.WORKOUT, 36_000, 100),
    _define(RuleKind.EARLY_BIRD, "Early Bird",
            "Finish 10 workouts before 8 AM", Category.WORKOUT, 10, 50),
    _define(RuleKind.NIGHT_OWL, "Night Owl",
            "Finish 10 workouts after 8 PM", Category.WORKOUT, 10, 50),
    _define(RuleKind.WEEKEND_WARRIOR, "Weekend Warrior",
            "Finish 10 workouts on a weekend", Category.WORKOUT, 10, 50),
    _define(RuleKind.SOCIAL_BUTTERFLY, "Social Butterfly",
            "Share 5 workouts with the community", Category.SOCIAL, 5, 30),
    _define(RuleKind.COMMUNITY_LEADER, "Community Leader",
            "Receive 100 likes on your posts", Category.SOCIAL, 100, 100),
    _define(RuleKind.MOTIVATOR, "Motivator",
            "Inspire other members 50 times", Category.SOCIAL, 50, 75),
    _define(RuleKind.PROGRESS_TRACKER, "Progress Tracker",
            "Log your daily progress 30 times", Category.PROGRESS, 30, 60),
    _define(RuleKind.WEIGHT_GOAL_ACHIEVER, "Weight Goal Achiever",
            "Reach your target weight", Category.PROGRESS, 1, 200),
    _define(RuleKind.MEASUREMENT_MASTER, "Measurement Master",
            "Record body measurements 10 times", Category.PROGRESS, 10, 40),
]


def progress_fraction(current: float, target: float) -> float:
    """Return current/target clamped to [0.0, 1.0]."""
    if target <= 0:
        return 0.0
    return max(0.0, min(current / target, 1.0))


def _progress_by_id(progress: list[UserAchievementProgress]) -> dict[str, UserAchievementProgress]:
    return {p.achievement_id: p for p in progress}


def summarize(
    catalog: list[AchievementDef], progress: list[UserAchievementProgress]
) -> AchievementSummary:
    """Totals for an achievements overview.

    Points only count for completed rows whose definition is still in the
    catalog. The next milestone is the first catalog entry not yet completed.
    """
    by_id = {d.id: d for d in catalog}
    completed_ids = {p.achievement_id for p in progress if p.completed}
    points = sum(by_id[a].points for a in completed_ids if a in by_id)
    next_def = next((d for d in catalog if d.id not in completed_ids), None)
    return AchievementSummary(
        total=len(catalog),
        completed=len(completed_ids & set(by_id)),
        points=points,
        next_milestone=next_def.name if next_def else ALL_COMPLETED,
    )


def get_closest_achievements(
    catalog: list[AchievementDef],
    progress: list[UserAchievementProgress],
    n: int = 3,
) -> list[tuple[AchievementDef, float]]:
    """Return the N locked achievements with the highest progress fraction."""
    by_id = _progress_by_id(progress)
    in_progress: list[tuple[AchievementDef, float]] = []
    for definition in catalog:
        row = by_id.get(definition.id)
        if row and row.completed:
            continue
        current = row.current if row else 0
        in_progress.append((definition, progress_fraction(current, definition.target)))
    in_progress.sort(key=lambda item: item[1], reverse=True)
    return in_progress[:n]


def group_by_category(catalog: list[AchievementDef]) -> dict[Category, list[AchievementDef]]:
    """Group definitions by category, keeping catalog order within and across groups."""
    groups: dict[Category, list[AchievementDef]] = {}
    for definition in catalog:
        groups.setdefault(definition.category, []).append(definition)
    return groups
