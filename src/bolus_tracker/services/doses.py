"""Insulin dose calculation."""

from bolus_tracker.domain.analysis import DoseBreakdown, MealExtractionResult
from bolus_tracker.domain.numbers import round_half_up
from bolus_tracker.domain.profile import PatientProfile


def compute_doses(
    extraction: MealExtractionResult, glucose_mgdl: float, profile: PatientProfile
) -> DoseBreakdown:
    """Compute carbohydrate, correction and protein+fat doses.

    The protein+fat dose is always computed. The profile strategy only
    decides whether it is given now as regular insulin or later as
    fast-acting insulin.
    """
    carb_dose = extraction.carbohydrate_g / profile.carb_ratio
    correction_dose = max(
        0.0, (glucose_mgdl - profile.target_mgdl) / profile.sensitivity
    )
    protein_fat_dose = extraction.protein_fat_equivalent_g / profile.carb_ratio
    return DoseBreakdown(
        carb_dose_units=carb_dose,
        correction_dose_units=correction_dose,
        protein_fat_equivalent_g=extraction.protein_fat_equivalent_g,
        protein_fat_dose_units=protein_fat_dose,
        fast_total_units=round_half_up(carb_dose + correction_dose),
        deferred_or_regular_units=round_half_up(protein_fat_dose),
        strategy=profile.strategy,
    )
