"""Pydantic models for API request payloads."""

from uuid import UUID

from pydantic import BaseModel, Field


class PatientSettingsUpdate(BaseModel):
    """Patient settings save payload."""

    user_id: UUID
    settings: dict[str, object]


class MealTextRequest(BaseModel):
    """Text meal analysis payload."""

    user_id: UUID
    glucose_mgdl: float = Field(ge=0)
    message: str = ""
    meal_type: str = "outro"
    pg_strategy: str | None = None


class MealImageRequest(BaseModel):
    """Photo meal analysis payload."""

    user_id: UUID
    glucose_mgdl: float = Field(ge=0)
    image_data_url: str = Field(min_length=1)
    message: str | None = None
    meal_type: str = "outro"
    pg_strategy: str | None = None
