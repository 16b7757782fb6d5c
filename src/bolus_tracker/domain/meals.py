"""Domain models for meal logging."""

from dataclasses import dataclass, replace
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True)
class MealLogEntry:
    """A meal log row as written to the store."""

    user_id: UUID
    logged_at: datetime
    meal_type: str
    description: str
    glucose_mgdl: float
    carbohydrate_g: float
    protein_fat_equivalent_g: float
    fast_total_units: int
    deferred_or_regular_units: int
    narrative_html: str | None = None
    photo_url: str | None = None

    def without_narrative(self) -> "MealLogEntry":
        """Return a copy without the rendered explanation."""
        return replace(self, narrative_html=None)


@dataclass(frozen=True)
class MealLogRecord:
    """A stored meal log row with its id."""

    id: UUID
    entry: MealLogEntry
