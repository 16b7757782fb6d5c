"""Protein+fat to carbohydrate-equivalent conversion rules.

The rule changed several times. ``kcal_split_div10`` is the current one;
the older rules stay available by name so historical log entries can be
compared against what they would produce. Stored equivalents are final and
are never recomputed.
"""

from collections.abc import Callable
from dataclasses import dataclass

ConversionRule = Callable[[float, float, float], float]

PROTEIN_KCAL_PER_G = 4.0
FAT_KCAL_PER_G = 9.0
FAT_CALORIE_FRACTION = 0.10
CANONICAL_RULE = "kcal_split_div10"


@dataclass(frozen=True)
class ProteinFatBreakdown:
    """Intermediate calorie figures shown in the meal explanation."""

    protein_kcal: float
    fat_kcal: float
    protein_kcal_counted: float
    fat_kcal_counted: float

    @property
    def counted_kcal(self) -> float:
        return self.protein_kcal_counted + self.fat_kcal_counted


def protein_fat_breakdown(
    protein_g: float, fat_g: float, protein_percent: float
) -> ProteinFatBreakdown:
    """Split protein/fat grams into total and counted calories."""
    protein_kcal = protein_g * PROTEIN_KCAL_PER_G
    fat_kcal = fat_g * FAT_KCAL_PER_G
    return ProteinFatBreakdown(
        protein_kcal=protein_kcal,
        fat_kcal=fat_kcal,
        protein_kcal_counted=protein_kcal * protein_percent / 100,
        fat_kcal_counted=fat_kcal * FAT_CALORIE_FRACTION,
    )


def kcal_split_div10(protein_g: float, fat_g: float, protein_percent: float) -> float:
    """Counted protein and fat calories divided by 10."""
    return protein_fat_breakdown(protein_g, fat_g, protein_percent).counted_kcal / 10


def kcal_split_div4(protein_g: float, fat_g: float, protein_percent: float) -> float:
    """Earlier revision: counted calories divided by 4."""
    return protein_fat_breakdown(protein_g, fat_g, protein_percent).counted_kcal / 4


def fixed_fraction(protein_g: float, fat_g: float, protein_percent: float) -> float:
    """First revision: a fixed gram fraction per macro."""
    return protein_g * protein_percent / 100 + fat_g * 0.225


CONVERSION_RULES: dict[str, ConversionRule] = {
    CANONICAL_RULE: kcal_split_div10,
    "kcal_split_div4": kcal_split_div4,
    "fixed_fraction": fixed_fraction,
}


def get_conversion_rule(name: str | None = None) -> ConversionRule:
    """Return a conversion rule by name, defaulting to the canonical rule."""
    key = (name or CANONICAL_RULE).strip().lower()
    try:
        return CONVERSION_RULES[key]
    except KeyError:
        known = ", ".join(sorted(CONVERSION_RULES))
        raise ValueError(
            f"Unknown protein/fat rule {name!r} (expected one of: {known})"
        ) from None
