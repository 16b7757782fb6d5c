"""Meal analysis: model call, macro extraction, doses and narrative."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Protocol

from bolus_tracker.domain.analysis import (
    MealAnalysis,
    MealAnalysisRequest,
    MealExtractionResult,
)
from bolus_tracker.domain.conversion import ConversionRule, kcal_split_div10
from bolus_tracker.domain.profile import PatientProfile
from bolus_tracker.services.doses import compute_doses
from bolus_tracker.services.macros import extract_macros, strip_fences
from bolus_tracker.services.narrative import reconcile_narrative
from bolus_tracker.services.prompts import (
    build_image_prompt,
    build_system_prompt,
    build_text_prompt,
)

_logger = logging.getLogger(__name__)

ANALYSIS_UNAVAILABLE_HTML = "<em>Análise automática indisponível.</em>"
PHOTO_SUMMARY = "[foto]"

UserContent = str | list[dict[str, object]]


class ModelError(Exception):
    """Base error for language model failures."""


class ModelTimeoutError(ModelError):
    """The model did not answer in time."""


class ModelUnavailableError(ModelError):
    """The model could not be reached or refused the request."""


class ModelClient(Protocol):
    """Interface for chat completion models."""

    async def complete(self, system_prompt: str, user_content: UserContent) -> str:
        """Return the model's text answer."""


@dataclass
class MealAnalysisService:
    """Turns a meal description into macros, doses and an explanation."""

    client: ModelClient | None
    text_timeout_seconds: float = 45.0
    image_timeout_seconds: float = 60.0
    conversion_rule: ConversionRule = kcal_split_div10

    async def analyze(
        self, request: MealAnalysisRequest, profile: PatientProfile
    ) -> MealAnalysis:
        """Analyze a meal; model failures degrade to a manual-entry result."""
        profile = profile.with_strategy(request.strategy_override)
        fallback_summary = _fallback_summary(request)

        raw = await self._ask_model(request, profile)
        if raw is None:
            return self._degraded(request, profile, fallback_summary)

        macros = extract_macros(
            raw,
            protein_percent=profile.protein_percent,
            rule=self.conversion_rule,
            fallback_summary=fallback_summary,
        )
        doses = compute_doses(macros, request.glucose_mgdl, profile)
        narrative = reconcile_narrative(strip_fences(raw), doses, profile, macros)
        warnings = []
        if macros.carbohydrate_g <= 0 and macros.protein_fat_equivalent_g <= 0:
            warnings.append("Nenhum macronutriente reconhecido na resposta.")
        return MealAnalysis(
            macros=macros,
            doses=doses,
            narrative=narrative,
            summary=macros.summary or fallback_summary,
            profile=profile,
            warnings=warnings,
        )

    async def _ask_model(
        self, request: MealAnalysisRequest, profile: PatientProfile
    ) -> str | None:
        if self.client is None:
            _logger.warning("No model client configured; skipping analysis")
            return None
        if request.has_image:
            timeout = self.image_timeout_seconds
            content: UserContent = [
                {
                    "type": "text",
                    "text": build_image_prompt(
                        request.glucose_mgdl, request.meal_type, request.text
                    ),
                },
                {"type": "image_url", "image_url": {"url": request.image_data_url}},
            ]
        else:
            timeout = self.text_timeout_seconds
            content = build_text_prompt(
                (request.text or "").strip(), request.glucose_mgdl, request.meal_type
            )
        try:
            return await asyncio.wait_for(
                self.client.complete(build_system_prompt(profile), content),
                timeout=timeout,
            )
        except TimeoutError:
            _logger.warning(
                "Meal analysis timed out", extra={"timeout_seconds": timeout}
            )
        except ModelError as exc:
            _logger.warning("Meal analysis model failure: %s", exc)
        return None

    def _degraded(
        self,
        request: MealAnalysisRequest,
        profile: PatientProfile,
        summary: str,
    ) -> MealAnalysis:
        macros = MealExtractionResult.empty(summary)
        return MealAnalysis(
            macros=macros,
            doses=compute_doses(macros, request.glucose_mgdl, profile),
            narrative=ANALYSIS_UNAVAILABLE_HTML,
            summary=summary,
            profile=profile,
            degraded=True,
        )


def _fallback_summary(request: MealAnalysisRequest) -> str:
    text = (request.text or "").strip()
    if request.has_image:
        return text or PHOTO_SUMMARY
    return text
