"""Meal logging service."""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from bolus_tracker.domain.analysis import MealAnalysis, MealAnalysisRequest
from bolus_tracker.domain.meals import MealLogEntry, MealLogRecord

_logger = logging.getLogger(__name__)

ALL_MEAL_TYPES = "todos"


class MealLogWriteError(RuntimeError):
    """A meal log entry could not be stored."""


class MealNotFoundError(LookupError):
    """No meal log entry with the given id."""


class MealAccessDeniedError(PermissionError):
    """The meal log entry belongs to another user."""


class MealLogRepository(Protocol):
    """Persistence interface for meal logs."""

    def append(self, entry: MealLogEntry) -> UUID:
        """Store a new entry and return its id."""

    def list_entries(
        self,
        user_id: UUID,
        start: datetime | None,
        end: datetime | None,
        meal_type: str | None,
    ) -> list[MealLogRecord]:
        """Return entries newest first, optionally filtered."""

    def get_owner(self, meal_id: UUID) -> UUID | None:
        """Return the owner of an entry, or None when missing."""

    def delete(self, meal_id: UUID) -> None:
        """Delete an entry."""


@dataclass
class MealLogService:
    """Service that builds and persists meal log entries."""

    repository: MealLogRepository

    def build_entry(
        self,
        user_id: UUID,
        analysis: MealAnalysis,
        request: MealAnalysisRequest,
        photo_url: str | None = None,
    ) -> MealLogEntry:
        """Create the log entry for an analyzed meal."""
        return MealLogEntry(
            user_id=user_id,
            logged_at=datetime.now(tz=UTC),
            meal_type=request.meal_type or "outro",
            description=analysis.summary or (request.text or "").strip(),
            glucose_mgdl=request.glucose_mgdl,
            carbohydrate_g=analysis.macros.carbohydrate_g,
            protein_fat_equivalent_g=analysis.doses.protein_fat_equivalent_g,
            fast_total_units=analysis.doses.fast_total_units,
            deferred_or_regular_units=analysis.doses.deferred_or_regular_units,
            narrative_html=analysis.narrative,
            photo_url=photo_url,
        )

    def record(self, entry: MealLogEntry) -> UUID:
        """Store an entry, retrying once without the explanation markup."""
        try:
            return self.repository.append(entry)
        except Exception as exc:
            _logger.warning(
                "Meal log write failed, retrying without narrative: %s",
                exc,
                extra={"user_id": str(entry.user_id)},
            )
            first_error = exc
        try:
            return self.repository.append(entry.without_narrative())
        except Exception as exc:
            _logger.exception("Meal log write failed after retry")
            raise MealLogWriteError(str(first_error)) from exc

    def list_meals(
        self,
        user_id: UUID,
        start: datetime | None = None,
        end: datetime | None = None,
        meal_type: str | None = None,
    ) -> list[MealLogRecord]:
        """Return the user's meals, newest first."""
        if meal_type == ALL_MEAL_TYPES:
            meal_type = None
        return self.repository.list_entries(user_id, start, end, meal_type)

    def delete_meal(self, meal_id: UUID, user_id: UUID) -> None:
        """Delete a meal owned by the user."""
        owner = self.repository.get_owner(meal_id)
        if owner is None:
            raise MealNotFoundError(str(meal_id))
        if owner != user_id:
            raise MealAccessDeniedError(str(meal_id))
        self.repository.delete(meal_id)
