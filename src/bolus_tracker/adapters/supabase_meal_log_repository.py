"""Supabase repository for meal logs."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from bolus_tracker.domain.meals import MealLogEntry, MealLogRecord
from bolus_tracker.services.meals import MealLogRepository

_TABLE = "refeicoes"


@dataclass
class SupabaseMealLogRepository(MealLogRepository):
    """Supabase implementation for meal logs."""

    client: Client

    def append(self, entry: MealLogEntry) -> UUID:
        """Insert a meal log row and return its id."""
        payload: dict[str, object] = {
            "user_id": str(entry.user_id),
            "data_hora": entry.logged_at.isoformat(),
            "tipo": entry.meal_type,
            "descricao": entry.description,
            "glicemia": entry.glucose_mgdl,
            "cho_total_g": entry.carbohydrate_g,
            "pg_cho_equiv_g": entry.protein_fat_equivalent_g,
            "dose_rapida_total": entry.fast_total_units,
            "dose_regular_pg": entry.deferred_or_regular_units,
            "foto_url": entry.photo_url,
        }
        if entry.narrative_html is not None:
            payload["descricao_model"] = entry.narrative_html
        response = self.client.table(_TABLE).insert(payload).execute()
        if not response.data:
            raise RuntimeError("Failed to create meal log")
        return UUID(response.data[0]["id"])

    def list_entries(
        self,
        user_id: UUID,
        start: datetime | None,
        end: datetime | None,
        meal_type: str | None,
    ) -> list[MealLogRecord]:
        """Return meal logs newest first."""
        query = (
            self.client.table(_TABLE)
            .select("*")
            .eq("user_id", str(user_id))
            .order("data_hora", desc=True)
        )
        if start is not None:
            query = query.gte("data_hora", start.isoformat())
        if end is not None:
            query = query.lte("data_hora", end.isoformat())
        if meal_type:
            query = query.eq("tipo", meal_type)
        response = query.execute()
        return [_parse_row(row) for row in response.data or []]

    def get_owner(self, meal_id: UUID) -> UUID | None:
        """Return the owner of a meal log row."""
        response = (
            self.client.table(_TABLE)
            .select("id, user_id")
            .eq("id", str(meal_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return UUID(str(response.data[0]["user_id"]).strip())

    def delete(self, meal_id: UUID) -> None:
        """Delete a meal log row."""
        self.client.table(_TABLE).delete().eq("id", str(meal_id)).execute()


def _parse_row(row: dict[str, object]) -> MealLogRecord:
    return MealLogRecord(
        id=UUID(str(row["id"])),
        entry=MealLogEntry(
            user_id=UUID(str(row["user_id"])),
            logged_at=datetime.fromisoformat(str(row["data_hora"])),
            meal_type=str(row.get("tipo") or "outro"),
            description=str(row.get("descricao") or ""),
            glucose_mgdl=float(row.get("glicemia") or 0.0),
            carbohydrate_g=float(row.get("cho_total_g") or 0.0),
            protein_fat_equivalent_g=float(row.get("pg_cho_equiv_g") or 0.0),
            fast_total_units=int(row.get("dose_rapida_total") or 0),
            deferred_or_regular_units=int(row.get("dose_regular_pg") or 0),
            narrative_html=row.get("descricao_model"),
            photo_url=row.get("foto_url"),
        ),
    )
