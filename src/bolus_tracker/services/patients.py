"""Patient settings service."""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from bolus_tracker.domain.profile import PatientProfile, resolve_profile


class PatientSettingsRepository(Protocol):
    """Persistence interface for patient settings."""

    def get(self, user_id: UUID) -> dict[str, object] | None:
        """Return the stored settings row for a user."""

    def upsert(self, user_id: UUID, settings: dict[str, object]) -> None:
        """Create or replace a user's settings."""


@dataclass
class PatientSettingsService:
    """Service for reading and saving patient settings."""

    repository: PatientSettingsRepository

    def get_settings(self, user_id: UUID) -> dict[str, object] | None:
        """Return raw stored settings, if any."""
        return self.repository.get(user_id)

    def save_settings(self, user_id: UUID, settings: dict[str, object]) -> None:
        """Persist settings, stamping the update time."""
        payload = {
            key: value for key, value in settings.items() if key != "user_id"
        }
        payload["updated_at"] = datetime.now(tz=UTC).isoformat()
        self.repository.upsert(user_id, payload)

    def get_profile(
        self, user_id: UUID, strategy_override: str | None = None
    ) -> PatientProfile:
        """Return the dosing profile, using defaults for missing values."""
        return resolve_profile(self.repository.get(user_id), strategy_override)
