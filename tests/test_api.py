"""Tests for the HTTP API."""

from uuid import uuid4

from fastapi.testclient import TestClient

from bolus_tracker.api.app import create_app
from bolus_tracker.containers import AppContainer
from tests.conftest import USER_ID

IMAGE_DATA_URL = "data:image/jpeg;base64,ZmFrZQ=="


def _client(container: AppContainer) -> TestClient:
    return TestClient(create_app(container))


def test_health(container: AppContainer) -> None:
    response = _client(container).get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_patient_settings_roundtrip(
    container: AppContainer, patient_repository
) -> None:
    client = _client(container)
    user_id = uuid4()

    saved = client.post(
        "/api/patients",
        json={"user_id": str(user_id), "settings": {"icr": 8, "isf": 35}},
    )
    fetched = client.get(f"/api/patients/{user_id}")

    assert saved.json() == {"ok": True}
    assert fetched.json()["data"]["icr"] == 8
    assert "updated_at" in patient_repository.rows[user_id]


def test_analyze_text_meal(container: AppContainer, meal_repository) -> None:
    response = _client(container).post(
        "/api/meals/analyze",
        json={
            "user_id": str(USER_ID),
            "message": "arroz e frango",
            "glucose_mgdl": 180,
            "meal_type": "almoco",
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["degraded"] is False
    assert body["config"]["fast_insulin"] == "Fiasp"
    assert body["config"]["pg_strategy"] == "regular_now"
    assert body["totals"]["carbohydrate_g"] == 60
    assert body["totals"]["protein_fat_equivalent_g"] == 13.8
    assert body["doses"]["carb_dose_units"] == 6.0
    assert body["doses"]["correction_dose_units"] == 1.6
    assert body["doses"]["fast_total_units"] == 8
    assert body["doses"]["deferred_or_regular_units"] == 1
    assert body["doses"]["immediate_units"] == 9
    assert "13,8 g CHO" in body["details_html"]
    stored = next(iter(meal_repository.records.values())).entry
    assert stored.user_id == USER_ID
    assert stored.meal_type == "almoco"
    assert stored.fast_total_units == 8
    assert body["meal_id"] in {str(meal_id) for meal_id in meal_repository.records}


def test_analyze_with_split_strategy(container: AppContainer) -> None:
    response = _client(container).post(
        "/api/meals/analyze",
        json={
            "user_id": str(USER_ID),
            "message": "arroz e frango",
            "glucose_mgdl": 180,
            "pg_strategy": "split_rapid",
        },
    )

    body = response.json()
    assert body["config"]["pg_strategy"] == "split_rapid"
    assert body["doses"]["deferred"] is True
    assert body["doses"]["immediate_units"] == 8
    assert body["doses"]["total_bolus_units"] == 9


def test_analyze_rejects_negative_glucose(container: AppContainer) -> None:
    response = _client(container).post(
        "/api/meals/analyze",
        json={"user_id": str(USER_ID), "message": "pão", "glucose_mgdl": -1},
    )

    assert response.status_code == 422


def test_analyze_returns_500_when_log_write_fails(
    container: AppContainer, meal_repository
) -> None:
    meal_repository.failures = 2

    response = _client(container).post(
        "/api/meals/analyze",
        json={"user_id": str(USER_ID), "message": "pão", "glucose_mgdl": 100},
    )

    assert response.status_code == 500
    assert meal_repository.records == {}


def test_analyze_image_meal_stores_photo(
    container: AppContainer, photo_storage, model_client
) -> None:
    response = _client(container).post(
        "/api/meals/analyze-image",
        json={
            "user_id": str(USER_ID),
            "glucose_mgdl": 120,
            "image_data_url": IMAGE_DATA_URL,
        },
    )

    body = response.json()
    assert response.status_code == 200
    assert len(photo_storage.uploads) == 1
    assert body["input"]["photo_url"].startswith("https://storage.test/refeicoes/")
    assert isinstance(model_client.calls[0][1], list)


def test_list_and_delete_meals(container: AppContainer) -> None:
    client = _client(container)
    created = client.post(
        "/api/meals/analyze",
        json={"user_id": str(USER_ID), "message": "pão", "glucose_mgdl": 100},
    ).json()
    meal_id = created["meal_id"]

    listed = client.get(
        "/api/meals", params={"user_id": str(USER_ID), "meal_type": "todos"}
    ).json()
    owner = {"user_id": str(USER_ID)}
    forbidden = client.delete(f"/api/meals/{meal_id}", params={"user_id": str(uuid4())})
    missing = client.delete(f"/api/meals/{uuid4()}", params=owner)
    deleted = client.delete(f"/api/meals/{meal_id}", params=owner)
    after = client.get("/api/meals", params={"user_id": str(USER_ID)}).json()

    assert [row["id"] for row in listed["data"]] == [meal_id]
    assert listed["data"][0]["fast_total_units"] == 6
    assert forbidden.status_code == 403
    assert missing.status_code == 404
    assert deleted.json() == {"ok": True, "deleted": meal_id}
    assert after["data"] == []


def test_latest_glucose(container: AppContainer) -> None:
    client = _client(container)

    found = client.get(f"/api/glucose/latest/{USER_ID}")
    unconfigured = client.get(f"/api/glucose/latest/{uuid4()}")

    assert found.json()["data"] == {
        "mgdl": 142,
        "trend": "Flat",
        "date": "2024-05-01T12:00:00+00:00",
    }
    assert unconfigured.status_code == 404


def test_analyze_rounds_dose_halves_up(
    container: AppContainer, model_client
) -> None:
    model_client.answer = '<pre>{"carbo_g": 2.5, "resumo": "bolacha"}</pre>'

    response = _client(container).post(
        "/api/meals/analyze",
        json={"user_id": str(USER_ID), "message": "bolacha", "glucose_mgdl": 112.5},
    )

    doses = response.json()["doses"]
    assert doses["carb_dose_units"] == 0.3
    assert doses["correction_dose_units"] == 0.3


def test_latest_glucose_with_malformed_entry(container: AppContainer) -> None:
    container.glucose_service.client.entries = [
        {"sgv": "alto", "dateString": "2024-05-01T12:00:00.000Z"}
    ]

    response = _client(container).get(f"/api/glucose/latest/{USER_ID}")

    assert response.status_code == 404
