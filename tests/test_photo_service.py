"""Tests for meal photo storage."""

from bolus_tracker.services.photos import PhotoService, parse_data_url
from tests.conftest import USER_ID, FakePhotoStorage


def test_parse_data_url() -> None:
    image = parse_data_url("data:image/png;base64,ZmFrZQ==")

    assert image is not None
    assert image.mime_type == "image/png"
    assert image.content == b"fake"
    assert image.extension == "png"
    assert parse_data_url("https://example.com/a.png") is None
    assert parse_data_url(None) is None


def test_store_meal_photo_uploads_under_user_prefix() -> None:
    storage = FakePhotoStorage()
    service = PhotoService(storage)

    url = service.store_meal_photo(USER_ID, "data:image/jpeg;base64,ZmFrZQ==")

    path, content, content_type = storage.uploads[0]
    assert path.startswith(f"refeicoes/{USER_ID}/")
    assert path.endswith(".jpeg")
    assert content == b"fake"
    assert content_type == "image/jpeg"
    assert url == f"https://storage.test/{path}"


def test_store_meal_photo_failures_return_none() -> None:
    failing = PhotoService(FakePhotoStorage(fail=True))
    storage = FakePhotoStorage()

    assert failing.store_meal_photo(USER_ID, "data:image/png;base64,ZmFrZQ==") is None
    assert PhotoService(storage).store_meal_photo(USER_ID, "not a data url") is None
    assert storage.uploads == []
