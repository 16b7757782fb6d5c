"""Tests for protein+fat conversion rules."""

import pytest

from bolus_tracker.domain.conversion import (
    fixed_fraction,
    get_conversion_rule,
    kcal_split_div4,
    kcal_split_div10,
    protein_fat_breakdown,
)


def test_kcal_split_div10_counts_protein_percent_and_tenth_of_fat() -> None:
    assert kcal_split_div10(20, 10, 50) == pytest.approx(4.9)
    assert kcal_split_div10(30, 20, 100) == pytest.approx(13.8)
    assert kcal_split_div10(0, 0, 100) == 0.0


def test_breakdown_exposes_intermediate_calories() -> None:
    breakdown = protein_fat_breakdown(30, 20, 100)

    assert breakdown.protein_kcal == 120
    assert breakdown.fat_kcal == 180
    assert breakdown.protein_kcal_counted == 120
    assert breakdown.fat_kcal_counted == pytest.approx(18)
    assert breakdown.counted_kcal == pytest.approx(138)


def test_historical_rules() -> None:
    assert kcal_split_div4(20, 10, 50) == pytest.approx(12.25)
    assert fixed_fraction(20, 10, 50) == pytest.approx(12.25)
    assert fixed_fraction(30, 20, 100) == pytest.approx(34.5)


def test_get_conversion_rule() -> None:
    assert get_conversion_rule() is kcal_split_div10
    assert get_conversion_rule(" Fixed_Fraction ") is fixed_fraction
    with pytest.raises(ValueError, match="Unknown protein/fat rule"):
        get_conversion_rule("div3")
