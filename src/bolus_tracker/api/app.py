"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from uuid import UUID

import httpx
from fastapi import FastAPI, HTTPException, Request, status

from bolus_tracker.api.models import (
    MealImageRequest,
    MealTextRequest,
    PatientSettingsUpdate,
)
from bolus_tracker.app_logging import configure_logging
from bolus_tracker.containers import AppContainer
from bolus_tracker.domain.analysis import MealAnalysis, MealAnalysisRequest
from bolus_tracker.domain.meals import MealLogRecord
from bolus_tracker.domain.numbers import round_one_decimal
from bolus_tracker.services.glucose import (
    GlucoseDataUnavailableError,
    GlucoseMonitorNotConfiguredError,
)
from bolus_tracker.services.meals import (
    MealAccessDeniedError,
    MealLogWriteError,
    MealNotFoundError,
)


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/api/patients/{user_id}")
    async def get_patient(user_id: UUID, request: Request) -> dict[str, object]:
        """Return stored patient settings."""
        state_container: AppContainer = request.app.state.container
        data = state_container.patient_settings_service.get_settings(user_id)
        return {"ok": True, "data": data}

    @app.post("/api/patients")
    async def save_patient(
        payload: PatientSettingsUpdate, request: Request
    ) -> dict[str, object]:
        """Create or update patient settings."""
        state_container: AppContainer = request.app.state.container
        state_container.patient_settings_service.save_settings(
            payload.user_id, payload.settings
        )
        return {"ok": True}

    @app.get("/api/glucose/latest/{user_id}")
    async def latest_glucose(user_id: UUID, request: Request) -> dict[str, object]:
        """Return the latest sensor glucose from Nightscout."""
        state_container: AppContainer = request.app.state.container
        try:
            reading = await state_container.glucose_service.latest(user_id)
        except GlucoseMonitorNotConfiguredError as exc:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Nightscout not configured",
            ) from exc
        except GlucoseDataUnavailableError as exc:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("Nightscout request failed: %s", exc)
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Nightscout request failed",
            ) from exc
        return {
            "ok": True,
            "data": {
                "mgdl": reading.mgdl,
                "trend": reading.trend,
                "date": reading.read_at.isoformat(),
            },
        }

    @app.post("/api/meals/analyze")
    async def analyze_text_meal(
        payload: MealTextRequest, request: Request
    ) -> dict[str, object]:
        """Analyze a text meal description and log it."""
        state_container: AppContainer = request.app.state.container
        analysis_request = MealAnalysisRequest(
            glucose_mgdl=payload.glucose_mgdl,
            meal_type=payload.meal_type,
            text=payload.message,
            strategy_override=payload.pg_strategy,
        )
        return await _analyze_and_record(
            state_container, logger, payload.user_id, analysis_request, None
        )

    @app.post("/api/meals/analyze-image")
    async def analyze_image_meal(
        payload: MealImageRequest, request: Request
    ) -> dict[str, object]:
        """Analyze a meal photo, store the photo and log the meal."""
        state_container: AppContainer = request.app.state.container
        analysis_request = MealAnalysisRequest(
            glucose_mgdl=payload.glucose_mgdl,
            meal_type=payload.meal_type,
            text=payload.message,
            image_data_url=payload.image_data_url,
            strategy_override=payload.pg_strategy,
        )
        photo_url = state_container.photo_service.store_meal_photo(
            payload.user_id, payload.image_data_url
        )
        return await _analyze_and_record(
            state_container, logger, payload.user_id, analysis_request, photo_url
        )

    @app.get("/api/meals")
    async def list_meals(  # noqa: PLR0913
        request: Request,
        user_id: UUID,
        start: datetime | None = None,
        end: datetime | None = None,
        meal_type: str | None = None,
    ) -> dict[str, object]:
        """Return the user's meal log, newest first."""
        state_container: AppContainer = request.app.state.container
        records = state_container.meal_log_service.list_meals(
            user_id, start=start, end=end, meal_type=meal_type
        )
        return {"ok": True, "data": [_format_record(record) for record in records]}

    @app.delete("/api/meals/{meal_id}")
    async def delete_meal(
        meal_id: UUID, user_id: UUID, request: Request
    ) -> dict[str, object]:
        """Delete a meal owned by the user."""
        state_container: AppContainer = request.app.state.container
        try:
            state_container.meal_log_service.delete_meal(meal_id, user_id)
        except MealNotFoundError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND) from exc
        except MealAccessDeniedError as exc:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN) from exc
        return {"ok": True, "deleted": str(meal_id)}

    return app


async def _analyze_and_record(
    state_container: AppContainer,
    logger: logging.Logger,
    user_id: UUID,
    analysis_request: MealAnalysisRequest,
    photo_url: str | None,
) -> dict[str, object]:
    """Run the analysis, persist the log entry and build the response."""
    profile = state_container.patient_settings_service.get_profile(user_id)
    analysis = await state_container.meal_analysis_service.analyze(
        analysis_request, profile
    )
    entry = state_container.meal_log_service.build_entry(
        user_id, analysis, analysis_request, photo_url
    )
    try:
        meal_id = state_container.meal_log_service.record(entry)
    except MealLogWriteError as exc:
        logger.exception("Failed to save meal", extra={"user_id": str(user_id)})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save meal",
        ) from exc
    return _format_analysis(analysis, analysis_request, meal_id, photo_url)


def _format_analysis(
    analysis: MealAnalysis,
    analysis_request: MealAnalysisRequest,
    meal_id: UUID,
    photo_url: str | None,
) -> dict[str, object]:
    """Build the analysis response body."""
    profile = analysis.profile
    macros = analysis.macros
    doses = analysis.doses
    return {
        "ok": True,
        "meal_id": str(meal_id),
        "degraded": analysis.degraded,
        "warnings": analysis.warnings,
        "input": {
            "description": analysis.summary,
            "glucose_mgdl": analysis_request.glucose_mgdl,
            "photo_url": photo_url,
        },
        "config": {
            "fast_insulin": profile.fast_insulin,
            "carb_ratio": profile.carb_ratio,
            "sensitivity": profile.sensitivity,
            "target_mgdl": profile.target_mgdl,
            "protein_percent": profile.protein_percent,
            "pg_strategy": profile.strategy.value,
        },
        "totals": {
            "carbohydrate_g": macros.carbohydrate_g,
            "protein_g": macros.protein_g,
            "fat_g": macros.fat_g,
            "protein_fat_equivalent_g": doses.protein_fat_equivalent_g,
            "gross_carbohydrate_g": macros.gross_carbohydrate_g,
            "fiber_g": macros.fiber_g,
            "sugar_alcohol_g": macros.sugar_alcohol_g,
            "kcal_total": macros.kcal_total,
        },
        "doses": {
            "carb_dose_units": round_one_decimal(doses.carb_dose_units),
            "correction_dose_units": round_one_decimal(doses.correction_dose_units),
            "protein_fat_dose_units": round_one_decimal(doses.protein_fat_dose_units),
            "fast_total_units": doses.fast_total_units,
            "deferred_or_regular_units": doses.deferred_or_regular_units,
            "immediate_units": doses.immediate_units,
            "total_bolus_units": doses.total_bolus_units,
            "deferred": doses.is_deferred,
        },
        "details_html": analysis.narrative,
    }


def _format_record(record: MealLogRecord) -> dict[str, object]:
    """Serialize a stored meal log row."""
    entry = record.entry
    return {
        "id": str(record.id),
        "logged_at": entry.logged_at.isoformat(),
        "meal_type": entry.meal_type,
        "description": entry.description,
        "glucose_mgdl": entry.glucose_mgdl,
        "carbohydrate_g": entry.carbohydrate_g,
        "protein_fat_equivalent_g": entry.protein_fat_equivalent_g,
        "fast_total_units": entry.fast_total_units,
        "deferred_or_regular_units": entry.deferred_or_regular_units,
        "details_html": entry.narrative_html,
        "photo_url": entry.photo_url,
    }
