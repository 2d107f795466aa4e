"""Domain events that can advance achievement progress."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Union

from fitrank.errors import InvalidEventError


class ProgressKind(str, Enum):
    WEIGHT = "weight"
    MEASUREMENTS = "measurements"
    DAILY = "daily"


class SocialKind(str, Enum):
    LIKE = "like"
    INSPIRE = "inspire"


def _coerce_kind(enum_cls: type[Enum], value: object) -> Enum:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        choices = ", ".join(m.value for m in enum_cls)
        raise InvalidEventError(f"unknown kind {value!r} (expected one of: {choices})") from None


@dataclass(frozen=True)
class WorkoutEvent:
    duration_seconds: float
    exercises_completed: int
    total_exercises: int
    completed_at: datetime
    is_shared: bool = False


@dataclass(frozen=True)
class ProgressEvent:
    kind: ProgressKind
    goal_achieved: bool | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", _coerce_kind(ProgressKind, self.kind))


@dataclass(frozen=True)
class SocialEvent:
    kind: SocialKind
    count: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", _coerce_kind(SocialKind, self.kind))


DomainEvent = Union[WorkoutEvent, ProgressEvent, SocialEvent]


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _validate_workout(event: WorkoutEvent) -> None:
    if not isinstance(event.duration_seconds, (int, float)) or isinstance(event.duration_seconds, bool):
        raise InvalidEventError("workout duration must be a number of seconds")
    if event.duration_seconds < 0:
        raise InvalidEventError(f"workout duration must not be negative, got {event.duration_seconds}")
    if not _is_int(event.exercises_completed) or not _is_int(event.total_exercises):
        raise InvalidEventError("exercise counts must be integers")
    if event.exercises_completed < 0 or event.total_exercises < 0:
        raise InvalidEventError("exercise counts must not be negative")
    if event.exercises_completed > event.total_exercises:
        raise InvalidEventError(
            f"completed {event.exercises_completed} of only {event.total_exercises} exercises"
        )
    if not isinstance(event.completed_at, datetime):
        raise InvalidEventError("workout completed_at must be a datetime")


def validate_event(event: object) -> DomainEvent:
    """Check an event's shape and return it unchanged.

    Raises InvalidEventError for anything that is not a well-formed
    WorkoutEvent, ProgressEvent or SocialEvent.
    """
    if isinstance(event, WorkoutEvent):
        _validate_workout(event)
    elif isinstance(event, ProgressEvent):
        if not isinstance(event.kind, ProgressKind):
            raise InvalidEventError(f"unknown progress kind {event.kind!r}")
        if event.goal_achieved is not None and not isinstance(event.goal_achieved, bool):
            raise InvalidEventError("goal_achieved must be a boolean")
    elif isinstance(event, SocialEvent):
        if not isinstance(event.kind, SocialKind):
            raise InvalidEventError(f"unknown social kind {event.kind!r}")
        if not _is_int(event.count) or event.count <= 0:
            raise InvalidEventError(f"social count must be a positive integer, got {event.count!r}")
    else:
        raise InvalidEventError(f"unsupported event type: {type(event).__name__}")
    return event
