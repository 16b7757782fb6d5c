"""Latest glucose from the patient's Nightscout site."""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from bolus_tracker.domain.glucose import GlucoseReading
from bolus_tracker.domain.numbers import round_half_up
from bolus_tracker.services.patients import PatientSettingsService

_VALUE_KEYS = ("sgv", "mgdl", "glucose")


class GlucoseMonitorNotConfiguredError(LookupError):
    """The patient has no Nightscout URL configured."""


class GlucoseDataUnavailableError(RuntimeError):
    """Nightscout returned no usable entry."""


class NightscoutClient(Protocol):
    """Interface for the Nightscout entries API."""

    async def latest_entries(
        self, base_url: str, api_secret: str | None
    ) -> list[dict[str, object]]:
        """Return the most recent sensor entries."""


@dataclass
class GlucoseService:
    """Fetches the latest sensor glucose for a patient."""

    client: NightscoutClient
    patient_settings: PatientSettingsService

    async def latest(self, user_id: UUID) -> GlucoseReading:
        """Return the latest reading from the patient's Nightscout site."""
        settings = self.patient_settings.get_settings(user_id) or {}
        base_url = str(settings.get("nightscout_url") or "").strip()
        if not base_url:
            raise GlucoseMonitorNotConfiguredError(str(user_id))
        api_secret = str(settings.get("nightscout_api_secret") or "").strip() or None
        entries = await self.client.latest_entries(base_url, api_secret)
        if not entries:
            raise GlucoseDataUnavailableError("No Nightscout entries")
        return parse_entry(entries[0])


def parse_entry(entry: dict[str, object]) -> GlucoseReading:
    """Convert a Nightscout entry into a reading."""
    value = next(
        (entry[key] for key in _VALUE_KEYS if entry.get(key) is not None), None
    )
    if value is None:
        raise GlucoseDataUnavailableError("Nightscout entry has no glucose value")
    try:
        mgdl = round_half_up(float(value))
    except (TypeError, ValueError, ArithmeticError) as exc:
        raise GlucoseDataUnavailableError(
            f"Nightscout glucose value is not numeric: {value!r}"
        ) from exc
    trend = entry.get("direction") or entry.get("trend")
    return GlucoseReading(
        mgdl=mgdl,
        trend=str(trend) if trend is not None else None,
        read_at=_parse_timestamp(entry.get("dateString") or entry.get("date")),
    )


def _parse_timestamp(raw: object) -> datetime:
    try:
        if isinstance(raw, int | float):
            return datetime.fromtimestamp(raw / 1000, tz=UTC)
        if isinstance(raw, str) and raw:
            parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    except (ValueError, OverflowError, OSError) as exc:
        raise GlucoseDataUnavailableError(
            f"Nightscout timestamp is invalid: {raw!r}"
        ) from exc
    raise GlucoseDataUnavailableError("Nightscout entry has no timestamp")
