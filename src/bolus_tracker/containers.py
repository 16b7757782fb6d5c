"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from bolus_tracker.adapters.nightscout_client import HttpxNightscoutClient
from bolus_tracker.adapters.openai_chat_client import OpenAIChatClient
from bolus_tracker.adapters.supabase_meal_log_repository import (
    SupabaseMealLogRepository,
)
from bolus_tracker.adapters.supabase_patient_settings_repository import (
    SupabasePatientSettingsRepository,
)
from bolus_tracker.adapters.supabase_photo_storage import SupabasePhotoStorage
from bolus_tracker.config import Settings
from bolus_tracker.domain.conversion import get_conversion_rule
from bolus_tracker.services.analysis import MealAnalysisService
from bolus_tracker.services.glucose import GlucoseService
from bolus_tracker.services.meals import MealLogService
from bolus_tracker.services.patients import PatientSettingsService
from bolus_tracker.services.photos import PhotoService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    patient_settings_service: PatientSettingsService
    meal_analysis_service: MealAnalysisService
    meal_log_service: MealLogService
    photo_service: PhotoService
    glucose_service: GlucoseService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    conversion_rule = get_conversion_rule(resolved_settings.protein_fat_rule)
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    patient_settings_service = PatientSettingsService(
        SupabasePatientSettingsRepository(supabase_client)
    )
    meal_log_service = MealLogService(SupabaseMealLogRepository(supabase_client))
    photo_storage = SupabasePhotoStorage(
        supabase_client, bucket=resolved_settings.meal_photo_bucket
    )
    photo_service = PhotoService(photo_storage)
    openai_client = (
        OpenAIChatClient.create(
            api_key=resolved_settings.openai_api_key,
            model=resolved_settings.openai_model,
            temperature=resolved_settings.openai_temperature,
            project=resolved_settings.openai_project,
        )
        if resolved_settings.openai_api_key
        else None
    )
    meal_analysis_service = MealAnalysisService(
        client=openai_client,
        text_timeout_seconds=resolved_settings.text_analysis_timeout_seconds,
        image_timeout_seconds=resolved_settings.image_analysis_timeout_seconds,
        conversion_rule=conversion_rule,
    )
    nightscout_client = HttpxNightscoutClient.create()
    glucose_service = GlucoseService(
        client=nightscout_client,
        patient_settings=patient_settings_service,
    )

    async def close_resources() -> None:
        await nightscout_client.close()
        if openai_client is not None:
            await openai_client.close()

    return AppContainer(
        settings=resolved_settings,
        patient_settings_service=patient_settings_service,
        meal_analysis_service=meal_analysis_service,
        meal_log_service=meal_log_service,
        photo_service=photo_service,
        glucose_service=glucose_service,
        close_resources=close_resources,
    )
