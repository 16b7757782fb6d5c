"""Rewrite the model's explanation so its numbers match the computed doses.

The model's arithmetic is not trusted. Known lines are replaced in place
with values from the dose calculator. Anything whose anchor cannot be found
is left untouched.
"""

import json
import logging
import re

from bolus_tracker.domain.analysis import DoseBreakdown, MealExtractionResult
from bolus_tracker.domain.conversion import protein_fat_breakdown
from bolus_tracker.domain.numbers import (
    format_decimal,
    format_grams,
    round_half_up,
    round_one_decimal,
)
from bolus_tracker.domain.profile import PatientProfile
from bolus_tracker.services.macros import (
    extract_macros,
    find_data_block,
    strip_fences,
)

_logger = logging.getLogger(__name__)

_FLAGS = re.IGNORECASE

# Every protein+fat item format the model has produced over time.
_PROTEIN_FAT_ITEMS = (
    re.compile(r"\s*<li>\s*<b>\s*Prote[ií]nas\s*:[\s\S]*?</li>", _FLAGS),
    re.compile(r"\s*<li>\s*<b>\s*Gorduras\s*:[\s\S]*?</li>", _FLAGS),
    re.compile(
        r"\s*<li>\s*<b>\s*Prote[ií]nas\s*\+\s*Gorduras\s*"
        r"\(equivalente\s*CHO\)\s*:[\s\S]*?</li>",
        _FLAGS,
    ),
    re.compile(
        r"\s*<li>\s*<b>\s*Prote[ií]nas\s*\+\s*Gorduras\s*:[\s\S]*?</li>", _FLAGS
    ),
)
_CARBOHYDRATE_ITEM = re.compile(r"<li>\s*<b>\s*Carboidratos\s*:[\s\S]*?</li>", _FLAGS)
_TOTALS_LIST = re.compile(r"<h3>[^<]*Totais[^<]*</h3>\s*<ul[^>]*>", _FLAGS)
_DOSE_LINE = re.compile(
    r"<li>\s*<[bi]>\s*(?:Insulina\s+R\s*\(prote[ií]na\s*/\s*gordura\)"
    r"|Prote[ií]na\s*/\s*gordura\s+ser[áa]\s+aplicada)[\s\S]*?</li>",
    _FLAGS,
)
_SUMMARY_DOSE_LINE = re.compile(
    r"<li>\s*<b>\s*(?:Insulina\s+R|[^<]*\(p/g\s+em\s+2\s*[–-]\s*3\s*h\))"
    r"\s*:?\s*</b>[\s\S]*?</li>",
    _FLAGS,
)
_TOTAL_BOLUS_LINE = re.compile(r"<li>\s*<b>\s*Total\s+bolus\s*:?[\s\S]*?</li>", _FLAGS)


def reconcile_narrative(
    markup: str,
    doses: DoseBreakdown,
    profile: PatientProfile,
    macros: MealExtractionResult | None = None,
) -> str:
    """Patch dose lines, the protein+fat block and the data block.

    Applying it twice yields the same markup as applying it once.
    """
    if macros is None:
        macros = extract_macros(markup, protein_percent=profile.protein_percent)
    out = strip_protein_fat_items(strip_fences(markup))
    out = insert_protein_fat_block(out, protein_fat_block(macros, doses, profile))
    out = patch_dose_lines(out, doses, profile)
    out = patch_total_bolus(out, doses)
    return patch_data_block(out, doses)


def strip_protein_fat_items(markup: str) -> str:
    """Remove every model-written protein+fat list item."""
    for pattern in _PROTEIN_FAT_ITEMS:
        markup = pattern.sub("", markup)
    return markup


def insert_protein_fat_block(markup: str, block: str) -> str:
    """Insert the block after the carbohydrate item or atop the totals list."""
    if _CARBOHYDRATE_ITEM.search(markup):
        return _CARBOHYDRATE_ITEM.sub(
            lambda match: f"{match.group(0)}\n{block}", markup, count=1
        )
    if _TOTALS_LIST.search(markup):
        return _TOTALS_LIST.sub(
            lambda match: f"{match.group(0)}\n{block}", markup, count=1
        )
    _logger.info("No totals anchor found; protein+fat block not inserted")
    return markup


def protein_fat_block(
    macros: MealExtractionResult, doses: DoseBreakdown, profile: PatientProfile
) -> str:
    """Render the single canonical protein+fat list item."""
    equivalent = format_decimal(doses.protein_fat_equivalent_g)
    if macros.protein_g <= 0 and macros.fat_g <= 0:
        return (
            "<li><b>Proteínas + Gorduras:</b> "
            f"<b>{equivalent} g CHO</b></li>"
        )
    breakdown = protein_fat_breakdown(
        macros.protein_g, macros.fat_g, profile.protein_percent
    )
    protein_kcal_counted = format_decimal(breakdown.protein_kcal_counted)
    fat_kcal_counted = format_decimal(breakdown.fat_kcal_counted)
    counted = format_decimal(breakdown.counted_kcal)
    protein_kcal = round_half_up(breakdown.protein_kcal)
    fat_kcal = round_half_up(breakdown.fat_kcal)
    percent = f"{profile.protein_percent:g}"
    by_ten = round_one_decimal(breakdown.counted_kcal / 10)
    if by_ten == round_one_decimal(doses.protein_fat_equivalent_g):
        conversion = "kcal ÷10 ="
    else:
        conversion = "kcal ⇒"
    return "".join(
        [
            "<li>",
            "<b>Proteínas + Gorduras:</b><br>",
            f"Proteína: {_sum_text(macros.protein_parts, macros.protein_g)} ×4 = "
            f"{protein_kcal} kcal × {percent}% = {protein_kcal_counted} kcal<br>",
            f"Gordura: {_sum_text(macros.fat_parts, macros.fat_g)} ×9 = "
            f"{fat_kcal} kcal × 10% = {fat_kcal_counted} kcal<br>",
            f"Carboidratos (p+g) = {protein_kcal_counted} + {fat_kcal_counted} = "
            f"{counted} {conversion} <b>{equivalent} g CHO</b>",
            "</li>",
        ]
    )


def patch_dose_lines(
    markup: str, doses: DoseBreakdown, profile: PatientProfile
) -> str:
    """Rewrite the regular/deferred protein+fat dose lines."""
    units = doses.deferred_or_regular_units
    arithmetic = (
        f"{format_decimal(doses.protein_fat_equivalent_g)} ÷ "
        f"{profile.carb_ratio:g} = {format_decimal(doses.protein_fat_dose_units)}U "
        f"⇒ <b>{units}U</b>"
    )
    if doses.is_deferred:
        dose_line = (
            "<li><i>Proteína/gordura será aplicada com insulina "
            f"{profile.fast_insulin} em 2–3 horas:</i> {arithmetic}</li>"
        )
        summary_line = (
            f"<li><b>{profile.fast_insulin} (p/g em 2–3h):</b> {units}U</li>"
        )
    else:
        dose_line = f"<li><b>Insulina R (proteína/gordura):</b> {arithmetic}</li>"
        summary_line = f"<li><b>Insulina R:</b> {units}U</li>"
    markup = _DOSE_LINE.sub(lambda _: dose_line, markup)
    return _SUMMARY_DOSE_LINE.sub(lambda _: summary_line, markup)


def patch_total_bolus(markup: str, doses: DoseBreakdown) -> str:
    """Rewrite every total bolus line as fast + protein/fat = total."""
    later = " (em 2–3h)" if doses.is_deferred else ""
    line = (
        f"<li><b>Total bolus:</b> {doses.fast_total_units}U + "
        f"{doses.deferred_or_regular_units}U{later} = "
        f"<b>{doses.total_bolus_units}U</b></li>"
    )
    return _TOTAL_BOLUS_LINE.sub(lambda _: line, markup)


def patch_data_block(markup: str, doses: DoseBreakdown) -> str:
    """Write the computed equivalent and doses into the trailing data block."""
    match = find_data_block(markup)
    if match is None:
        return markup
    try:
        payload = json.loads(match.group(1))
    except ValueError:
        _logger.warning("Data block left unpatched: invalid JSON")
        return markup
    if not isinstance(payload, dict):
        return markup
    payload["pg_cho_equiv_g"] = round_one_decimal(doses.protein_fat_equivalent_g)
    payload["dose_rapida_total"] = doses.fast_total_units
    payload["dose_regular_pg"] = doses.deferred_or_regular_units
    block = f"<pre>{json.dumps(payload, ensure_ascii=False)}</pre>"
    return markup[: match.start()] + block + markup[match.end() :]


def _sum_text(parts: tuple[float, ...], total: float) -> str:
    if len(parts) > 1:
        joined = " + ".join(format_grams(part) for part in parts)
        return f"{joined} = {format_grams(total)}g"
    return f"{format_grams(total)}g"
