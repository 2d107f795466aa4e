"""Achievement evaluation engine.

Given one domain event for a user, walks the achievement catalog, applies
each definition's rule, persists the updated progress rows and notifies
about achievements that were just unlocked.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable

from fitrank.achievements import (
    AchievementDef,
    AchievementSummary,
    UserAchievementProgress,
    summarize,
)
from fitrank.db import Database
from fitrank.errors import CatalogFetchError, ProgressFetchError, StoreError
from fitrank.events import (
    DomainEvent,
    ProgressEvent,
    SocialEvent,
    WorkoutEvent,
    validate_event,
)
from fitrank.rules import apply_rule

logger = logging.getLogger(__name__)

Notifier = Callable[[AchievementDef], None]


@dataclass
class ProgressUpdate:
    definition: AchievementDef
    progress: UserAchievementProgress
    just_completed: bool


@dataclass
class WriteFailure:
    definition: AchievementDef
    error: StoreError


@dataclass
class EvaluationResult:
    user_id: str | None
    updates: list[ProgressUpdate] = field(default_factory=list)
    failures: list[WriteFailure] = field(default_factory=list)

    @property
    def unlocked(self) -> list[AchievementDef]:
        """Definitions unlocked by this evaluation, in catalog order."""
        return [u.definition for u in self.updates if u.just_completed]

    @property
    def ok(self) -> bool:
        return not self.failures


@dataclass
class AchievementOverview:
    catalog: list[AchievementDef]
    progress: list[UserAchievementProgress]
    summary: AchievementSummary


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AchievementEngine:
    """Evaluates domain events against the achievement catalog.

    store: a Database (or anything with the same fetch/upsert/transaction API)
    notifier: called once per unlocked achievement, after all writes
    clock: returns the timestamp stored as earned_at
    """

    def __init__(
        self,
        store: Database,
        notifier: Notifier | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store
        self.notifier = notifier
        self.clock = clock or _utcnow

    def evaluate(self, user_id: str | None, event: DomainEvent) -> EvaluationResult:
        """Apply one event to every matching achievement for a user.

        No user means nothing to do: returns an empty result without touching
        the store. Fetch failures raise EvaluationError subclasses before any
        write. A failed write for one definition is recorded in the result
        and the remaining definitions are still evaluated.
        """
        result = EvaluationResult(user_id=user_id)
        if not user_id:
            logger.debug("No signed-in user; skipping achievement evaluation")
            return result

        validate_event(event)

        with self.store.user_transaction():
            try:
                existing_rows = self.store.fetch_progress(user_id)
            except StoreError as exc:
                raise ProgressFetchError(f"could not load progress for {user_id}") from exc
            try:
                catalog = self.store.fetch_catalog()
            except StoreError as exc:
                raise CatalogFetchError("could not load achievement catalog") from exc

            by_id = {row.achievement_id: row for row in existing_rows}
            now = self.clock().isoformat()

            for definition in catalog:
                update = self._evaluate_definition(user_id, definition, by_id.get(definition.id), event, now)
                if update is None:
                    continue
                try:
                    self.store.upsert_progress(update.progress)
                except StoreError as exc:
                    logger.warning("Failed to update %r for %s: %s", definition.name, user_id, exc)
                    result.failures.append(WriteFailure(definition=definition, error=exc))
                    continue
                result.updates.append(update)

        for definition in result.unlocked:
            logger.info("User %s unlocked achievement: %s (+%d points)", user_id, definition.name, definition.points)
            self._notify(definition)

        return result

    def _evaluate_definition(
        self,
        user_id: str,
        definition: AchievementDef,
        existing: UserAchievementProgress | None,
        event: DomainEvent,
        now: str,
    ) -> ProgressUpdate | None:
        if definition.rule is None:
            logger.debug("Achievement %r has no known rule; never matches", definition.name)
            return None

        outcome = apply_rule(definition, event, existing)
        if outcome is None:
            return None

        was_completed = bool(existing and existing.completed)
        completed = was_completed or outcome.current >= definition.target
        just_completed = completed and not was_completed

        if just_completed:
            earned_at = now
        else:
            earned_at = existing.earned_at if existing else None

        progress = UserAchievementProgress(
            user_id=user_id,
            achievement_id=definition.id,
            current=outcome.current,
            target=definition.target,
            completed=completed,
            earned_at=earned_at,
            streak=outcome.streak if outcome.streak is not None else (existing.streak if existing else None),
            last_workout_date=(
                outcome.last_workout_date
                if outcome.last_workout_date is not None
                else (existing.last_workout_date if existing else None)
            ),
        )
        return ProgressUpdate(definition=definition, progress=progress, just_completed=just_completed)

    def _notify(self, definition: AchievementDef) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier(definition)
        except Exception:
            logger.exception("Unlock notification for %r failed", definition.name)

    def record_workout_event(self, user_id: str | None, event: WorkoutEvent) -> EvaluationResult:
        """Evaluate achievements after a completed workout."""
        return self.evaluate(user_id, event)

    def record_social_event(self, user_id: str | None, event: SocialEvent) -> EvaluationResult:
        """Evaluate achievements after likes or inspirations."""
        return self.evaluate(user_id, event)

    def record_progress_event(self, user_id: str | None, event: ProgressEvent) -> EvaluationResult:
        """Evaluate achievements after a progress entry."""
        return self.evaluate(user_id, event)

    def get_overview(self, user_id: str) -> AchievementOverview:
        """Catalog, the user's progress rows and summary totals."""
        catalog = self.store.fetch_catalog()
        progress = self.store.fetch_progress(user_id)
        return AchievementOverview(catalog=catalog, progress=progress, summary=summarize(catalog, progress))
