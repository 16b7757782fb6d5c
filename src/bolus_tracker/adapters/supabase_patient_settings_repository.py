"""Supabase repository for patient settings."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from bolus_tracker.services.patients import PatientSettingsRepository


@dataclass
class SupabasePatientSettingsRepository(PatientSettingsRepository):
    """Supabase implementation for patient settings."""

    client: Client

    def get(self, user_id: UUID) -> dict[str, object] | None:
        """Return the stored settings row for a user."""
        response = (
            self.client.table("patient_settings")
            .select("*")
            .eq("user_id", str(user_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return response.data[0]

    def upsert(self, user_id: UUID, settings: dict[str, object]) -> None:
        """Create or replace the user's settings row."""
        self.client.table("patient_settings").upsert(
            {**settings, "user_id": str(user_id)}, on_conflict="user_id"
        ).execute()
