"""Patient dosing parameters and their defaults."""

from collections.abc import Mapping
from dataclasses import dataclass, replace
from enum import StrEnum

from bolus_tracker.domain.numbers import parse_locale_number


class ProteinFatStrategy(StrEnum):
    """How the protein+fat dose is delivered."""

    REGULAR_NOW = "regular_now"
    SPLIT_RAPID = "split_rapid"

    @classmethod
    def parse(cls, raw: object) -> "ProteinFatStrategy | None":
        """Map stored or API values to a strategy, or None when unrecognized."""
        if isinstance(raw, cls):
            return raw
        value = str(raw or "").strip().lower()
        return _STRATEGY_ALIASES.get(value)


_STRATEGY_ALIASES = {
    "regular_now": ProteinFatStrategy.REGULAR_NOW,
    "apply-regular-now": ProteinFatStrategy.REGULAR_NOW,
    "split_rapid": ProteinFatStrategy.SPLIT_RAPID,
    "split-to-rapid-later": ProteinFatStrategy.SPLIT_RAPID,
}


@dataclass(frozen=True)
class PatientProfile:
    """Per-patient parameters used by the dose calculator."""

    carb_ratio: float
    sensitivity: float
    target_mgdl: float
    fast_insulin: str
    strategy: ProteinFatStrategy
    protein_percent: float

    def with_strategy(self, override: object) -> "PatientProfile":
        """Return a copy using the override strategy when it is recognized."""
        strategy = ProteinFatStrategy.parse(override)
        if strategy is None or strategy == self.strategy:
            return self
        return replace(self, strategy=strategy)


PROFILE_DEFAULTS = PatientProfile(
    carb_ratio=10.0,
    sensitivity=50.0,
    target_mgdl=100.0,
    fast_insulin="default fast-acting",
    strategy=ProteinFatStrategy.REGULAR_NOW,
    protein_percent=100.0,
)

# Stored column names, newest first.
_RATIO_KEYS = ("icr", "insulina_cho", "carb_ratio")
_SENSITIVITY_KEYS = ("isf", "glicose_insulina", "sensitivity")
_TARGET_KEYS = ("target", "target_mgdl")
_PRODUCT_KEYS = ("insulina_rapida", "fast_insulin")
_STRATEGY_KEYS = ("pg_strategy", "strategy")
_PROTEIN_PERCENT_KEYS = ("pct_cal_pf", "protein_percent")


def resolve_profile(
    raw: Mapping[str, object] | None, strategy_override: object = None
) -> PatientProfile:
    """Build a complete profile from stored settings, filling in defaults."""
    settings = raw or {}
    strategy = (
        ProteinFatStrategy.parse(strategy_override)
        or ProteinFatStrategy.parse(_first_present(settings, _STRATEGY_KEYS))
        or PROFILE_DEFAULTS.strategy
    )
    product = str(_first_present(settings, _PRODUCT_KEYS) or "").strip()
    protein_percent = _first_present(settings, _PROTEIN_PERCENT_KEYS)
    return PatientProfile(
        carb_ratio=_positive(settings, _RATIO_KEYS, PROFILE_DEFAULTS.carb_ratio),
        sensitivity=_positive(
            settings, _SENSITIVITY_KEYS, PROFILE_DEFAULTS.sensitivity
        ),
        target_mgdl=_positive(settings, _TARGET_KEYS, PROFILE_DEFAULTS.target_mgdl),
        fast_insulin=product or PROFILE_DEFAULTS.fast_insulin,
        strategy=strategy,
        protein_percent=(
            PROFILE_DEFAULTS.protein_percent
            if protein_percent in (None, "")
            else min(100.0, max(0.0, parse_locale_number(protein_percent)))
        ),
    )


def _first_present(settings: Mapping[str, object], keys: tuple[str, ...]) -> object:
    for key in keys:
        value = settings.get(key)
        if value not in (None, ""):
            return value
    return None


def _positive(
    settings: Mapping[str, object], keys: tuple[str, ...], default: float
) -> float:
    for key in keys:
        value = parse_locale_number(settings.get(key))
        if value > 0:
            return value
    return default
