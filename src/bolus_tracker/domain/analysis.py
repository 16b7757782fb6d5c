"""Models for meal analysis and dose calculation."""

from dataclasses import dataclass, field

from bolus_tracker.domain.profile import PatientProfile, ProteinFatStrategy


@dataclass(frozen=True)
class MealExtractionResult:
    """Macro estimate recovered from the model output."""

    carbohydrate_g: float = 0.0
    protein_g: float = 0.0
    fat_g: float = 0.0
    summary: str = ""
    protein_fat_equivalent_g: float = 0.0
    gross_carbohydrate_g: float | None = None
    fiber_g: float | None = None
    sugar_alcohol_g: float | None = None
    kcal_total: float | None = None
    protein_parts: tuple[float, ...] = ()
    fat_parts: tuple[float, ...] = ()

    @classmethod
    def empty(cls, summary: str = "") -> "MealExtractionResult":
        """Return a result with every numeric field at zero."""
        return cls(summary=summary)


@dataclass(frozen=True)
class DoseBreakdown:
    """Insulin doses derived from a meal estimate."""

    carb_dose_units: float
    correction_dose_units: float
    protein_fat_equivalent_g: float
    protein_fat_dose_units: float
    fast_total_units: int
    deferred_or_regular_units: int
    strategy: ProteinFatStrategy = ProteinFatStrategy.REGULAR_NOW

    @property
    def is_deferred(self) -> bool:
        return self.strategy == ProteinFatStrategy.SPLIT_RAPID

    @property
    def immediate_units(self) -> int:
        """Units to inject now: fast-acting plus regular when not deferred."""
        if self.is_deferred:
            return self.fast_total_units
        return self.fast_total_units + self.deferred_or_regular_units

    @property
    def total_bolus_units(self) -> int:
        return self.fast_total_units + self.deferred_or_regular_units


@dataclass(frozen=True)
class MealAnalysisRequest:
    """Input for a single meal analysis."""

    glucose_mgdl: float
    meal_type: str = "outro"
    text: str | None = None
    image_data_url: str | None = None
    strategy_override: str | None = None

    @property
    def has_image(self) -> bool:
        return bool(self.image_data_url)


@dataclass(frozen=True)
class MealAnalysis:
    """Result of a meal analysis, ready to display and persist."""

    macros: MealExtractionResult
    doses: DoseBreakdown
    narrative: str
    summary: str
    profile: PatientProfile
    degraded: bool = False
    warnings: list[str] = field(default_factory=list)
