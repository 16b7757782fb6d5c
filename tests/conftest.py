"""Shared test fixtures."""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID, uuid4

import pytest

from bolus_tracker.config import Settings
from bolus_tracker.containers import AppContainer
from bolus_tracker.domain.meals import MealLogEntry, MealLogRecord
from bolus_tracker.services.analysis import (
    MealAnalysisService,
    ModelClient,
    ModelUnavailableError,
    UserContent,
)
from bolus_tracker.services.glucose import GlucoseService, NightscoutClient
from bolus_tracker.services.meals import MealLogRepository, MealLogService
from bolus_tracker.services.patients import (
    PatientSettingsRepository,
    PatientSettingsService,
)
from bolus_tracker.services.photos import PhotoService, PhotoStorage

USER_ID = UUID("11111111-1111-1111-1111-111111111111")

MODEL_ANSWER = """```html
<div class="details-clean">
  <h3>🍽️ Refeição informada</h3>
  <table class="gc-table">
    <thead>
      <tr><th>Alimento</th><th>Quantidade</th><th>CHO</th>
      <th>kcal aprox</th><th>Proteína</th><th>Gordura</th></tr>
    </thead>
    <tbody>
      <tr><td>Arroz</td><td>150 g</td><td>42 g</td><td>~190 kcal</td>
      <td>4 g</td><td>0,5 g</td></tr>
      <tr><td>Frango</td><td>120 g</td><td>0 g</td><td>~200 kcal</td>
      <td>26 g</td><td>19,5 g</td></tr>
    </tbody>
  </table>

  <h3>📊 Totais</h3>
  <ul>
    <li><b>Carboidratos:</b> 42 + 18 = <b>60 g CHO</b></li>
    <li><b>Proteínas:</b> 30 g</li>
    <li><b>Gorduras:</b> 20 g</li>
    <li><b>Proteínas + Gorduras (equivalente CHO):</b> <b>7,5 g CHO</b></li>
  </ul>

  <h3>💉 Insulina</h3>
  <ul>
    <li><b>Fiasp (cho):</b> 60 ÷ 10 = 6,0U ⇒ <b>6U</b></li>
    <li><b>Correção (glicemia):</b> (180 – 100) ÷ 50 = 1,6U ⇒ <b>2U</b></li>
    <li><b>Insulina R (proteína/gordura):</b> 7,5 ÷ 10 = 0,75U ⇒ <b>1U</b></li>
    <li><b>Total bolus:</b> Fiasp(6U+2U) + Regular(1U) = <b>9U</b></li>
  </ul>

  <h3>✅ Resumo da dose</h3>
  <ul>
    <li><b>Fiasp:</b> 6U + 2U = <b>8U</b></li>
    <li><b>Insulina R:</b> 1U</li>
    <li><b>Total bolus:</b> 8U + 1U = <b>9U</b></li>
  </ul>

  <pre>{"carbo_g": 60, "proteina_g": 30, "gordura_g": 20,
  "pg_cho_equiv_g": 0, "kcal_total": 640, "resumo": "arroz e frango"}</pre>
</div>
```"""


@dataclass
class FakeModelClient(ModelClient):
    """Fake model client returning a fixed answer."""

    answer: str = MODEL_ANSWER
    calls: list[tuple[str, UserContent]] = field(default_factory=list)

    async def complete(self, system_prompt: str, user_content: UserContent) -> str:
        self.calls.append((system_prompt, user_content))
        return self.answer


@dataclass
class UnavailableModelClient(ModelClient):
    """Fake model client that always fails."""

    async def complete(self, system_prompt: str, user_content: UserContent) -> str:
        raise ModelUnavailableError("model offline")


@dataclass
class InMemoryPatientSettingsRepository(PatientSettingsRepository):
    """In-memory patient settings repository for tests."""

    rows: dict[UUID, dict[str, object]] = field(default_factory=dict)

    def get(self, user_id: UUID) -> dict[str, object] | None:
        return self.rows.get(user_id)

    def upsert(self, user_id: UUID, settings: dict[str, object]) -> None:
        self.rows[user_id] = {**settings, "user_id": str(user_id)}


@dataclass
class InMemoryMealLogRepository(MealLogRepository):
    """In-memory meal log repository for tests."""

    records: dict[UUID, MealLogRecord] = field(default_factory=dict)
    failures: int = 0
    attempts: list[MealLogEntry] = field(default_factory=list)

    def append(self, entry: MealLogEntry) -> UUID:
        self.attempts.append(entry)
        if self.failures > 0:
            self.failures -= 1
            raise RuntimeError("column descricao_model does not exist")
        meal_id = uuid4()
        self.records[meal_id] = MealLogRecord(id=meal_id, entry=entry)
        return meal_id

    def list_entries(
        self,
        user_id: UUID,
        start: datetime | None,
        end: datetime | None,
        meal_type: str | None,
    ) -> list[MealLogRecord]:
        records = [
            record
            for record in self.records.values()
            if record.entry.user_id == user_id
            and (start is None or record.entry.logged_at >= start)
            and (end is None or record.entry.logged_at <= end)
            and (meal_type is None or record.entry.meal_type == meal_type)
        ]
        return sorted(records, key=lambda record: record.entry.logged_at, reverse=True)

    def get_owner(self, meal_id: UUID) -> UUID | None:
        record = self.records.get(meal_id)
        return record.entry.user_id if record else None

    def delete(self, meal_id: UUID) -> None:
        self.records.pop(meal_id, None)


@dataclass
class FakePhotoStorage(PhotoStorage):
    """Fake object storage that records uploads."""

    uploads: list[tuple[str, bytes, str]] = field(default_factory=list)
    fail: bool = False

    def upload(self, path: str, content: bytes, content_type: str) -> str | None:
        if self.fail:
            raise RuntimeError("bucket not found")
        self.uploads.append((path, content, content_type))
        return f"https://storage.test/{path}"


@dataclass
class FakeNightscoutClient(NightscoutClient):
    """Fake Nightscout client with canned entries."""

    entries: list[dict[str, object]] = field(
        default_factory=lambda: [
            {
                "sgv": 142,
                "direction": "Flat",
                "dateString": "2024-05-01T12:00:00.000Z",
            }
        ]
    )
    requests: list[tuple[str, str | None]] = field(default_factory=list)

    async def latest_entries(
        self, base_url: str, api_secret: str | None
    ) -> list[dict[str, object]]:
        self.requests.append((base_url, api_secret))
        return self.entries


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="header.payload.signature",
        openai_api_key="openai-key",
    )


@pytest.fixture
def patient_repository() -> InMemoryPatientSettingsRepository:
    return InMemoryPatientSettingsRepository(
        rows={
            USER_ID: {
                "user_id": str(USER_ID),
                "icr": 10,
                "isf": 50,
                "target": 100,
                "insulina_rapida": "Fiasp",
                "pg_strategy": "regular_now",
                "pct_cal_pf": 100,
                "nightscout_url": "https://ns.example.com",
                "nightscout_api_secret": "secret",
            }
        }
    )


@pytest.fixture
def meal_repository() -> InMemoryMealLogRepository:
    return InMemoryMealLogRepository()


@pytest.fixture
def model_client() -> FakeModelClient:
    return FakeModelClient()


@pytest.fixture
def photo_storage() -> FakePhotoStorage:
    return FakePhotoStorage()


@pytest.fixture
def container(  # noqa: PLR0913
    settings: Settings,
    patient_repository: InMemoryPatientSettingsRepository,
    meal_repository: InMemoryMealLogRepository,
    model_client: FakeModelClient,
    photo_storage: FakePhotoStorage,
) -> AppContainer:
    patient_settings_service = PatientSettingsService(patient_repository)

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        patient_settings_service=patient_settings_service,
        meal_analysis_service=MealAnalysisService(client=model_client),
        meal_log_service=MealLogService(meal_repository),
        photo_service=PhotoService(photo_storage),
        glucose_service=GlucoseService(
            client=FakeNightscoutClient(),
            patient_settings=patient_settings_service,
        ),
        close_resources=close_resources,
    )
