"""Recover macro totals from the model's HTML answer."""

import json
import logging
import re

from bolus_tracker.domain.analysis import MealExtractionResult
from bolus_tracker.domain.conversion import ConversionRule, kcal_split_div10
from bolus_tracker.domain.numbers import first_number, parse_locale_number

_logger = logging.getLogger(__name__)

_FENCES = re.compile(r"```html|```", re.IGNORECASE)
_DATA_BLOCK = re.compile(r"<pre[^>]*>\s*(\{[\s\S]*?\})\s*</pre>", re.IGNORECASE)
_TBODY = re.compile(r"<tbody[^>]*>[\s\S]*?</tbody>", re.IGNORECASE)
_ROW = re.compile(r"<tr[\s\S]*?</tr>", re.IGNORECASE)
_CELL = re.compile(r"<td[^>]*>([\s\S]*?)</td>", re.IGNORECASE)
_TAG = re.compile(r"<[^>]+>")
_INLINE_TAG = re.compile(r"</?(?:b|strong|i|em|span|u|small)\b[^>]*>", re.IGNORECASE)
_PROTEIN_TOTAL = re.compile(
    r"(?:prote[ií]nas?|proteins?)(?:\s+total)?\s*[:\-]?\s*([\d.,]+)\s*g",
    re.IGNORECASE,
)
_FAT_TOTAL = re.compile(
    r"(?<!\+ )(?<!\+)(?:gorduras?|fats?)(?:\s+total)?\s*[:\-]?\s*([\d.,]+)\s*g",
    re.IGNORECASE,
)

_PROTEIN_COLUMN = 4
_FAT_COLUMN = 5
_MIN_TABLE_CELLS = 6

# Accepted data block keys per field, in priority order.
CARBOHYDRATE_KEYS = ("carbo_g", "carbo_liquido_g", "carbo_liquidos_g", "cho_g")
GROSS_CARBOHYDRATE_KEYS = ("carbo_totais_g", "carbo_total_g", "cho_totais_g")
FIBER_KEYS = ("fibras_g", "fibra_g", "fiber_g")
SUGAR_ALCOHOL_KEYS = ("poliois_g", "poliol_g", "sugar_alcohol_g")
EQUIVALENT_KEYS = ("pg_cho_equiv_g", "pg_cho_equiv", "pg_eq_g", "pg_eq", "pg_cho_g")
KCAL_KEYS = ("kcal_total", "kcal", "calorias")
PROTEIN_KEYS = ("proteina_g", "proteinas_g", "prot_g", "protein_g")
FAT_KEYS = ("gordura_g", "gorduras_g", "gord_g", "fat_g")
SUMMARY_KEYS = ("resumo", "summary", "descricao")


def strip_fences(raw: str | None) -> str:
    """Remove Markdown code fences the model sometimes adds."""
    return _FENCES.sub("", str(raw or "")).strip()


def find_data_block(markup: str) -> re.Match[str] | None:
    """Return the last <pre>{...}</pre> block in the markup."""
    matches = list(_DATA_BLOCK.finditer(markup))
    return matches[-1] if matches else None


def read_data_block(markup: str) -> dict[str, object]:
    """Parse the trailing data block, or return an empty dict."""
    match = find_data_block(markup)
    if match is None:
        return {}
    try:
        payload = json.loads(match.group(1))
    except ValueError:
        _logger.warning("Meal data block is not valid JSON")
        return {}
    return payload if isinstance(payload, dict) else {}


def scan_table(markup: str) -> tuple[list[float], list[float]]:
    """Return per-row protein and fat grams from the items table."""
    protein_parts: list[float] = []
    fat_parts: list[float] = []
    for body in _TBODY.findall(markup):
        for row in _ROW.findall(body):
            cells = _CELL.findall(row)
            if len(cells) < _MIN_TABLE_CELLS:
                continue
            protein = first_number(_TAG.sub("", cells[_PROTEIN_COLUMN]))
            fat = first_number(_TAG.sub("", cells[_FAT_COLUMN]))
            if protein:
                protein_parts.append(protein)
            if fat:
                fat_parts.append(fat)
    return protein_parts, fat_parts


def extract_macros(
    raw: str | None,
    *,
    protein_percent: float = 100.0,
    rule: ConversionRule = kcal_split_div10,
    fallback_summary: str = "",
) -> MealExtractionResult:
    """Recover carbohydrate, protein and fat totals from model output.

    Reads the trailing data block first, then narrative totals, then the
    items table. Never raises; on failure every numeric field is zero.
    """
    try:
        return _extract(raw, protein_percent, rule, fallback_summary)
    except Exception:
        _logger.exception("Macro extraction failed")
        return MealExtractionResult.empty(fallback_summary)


def _extract(
    raw: str | None,
    protein_percent: float,
    rule: ConversionRule,
    fallback_summary: str,
) -> MealExtractionResult:
    markup = strip_fences(raw)
    block = read_data_block(markup)

    protein_g = _pick(block, PROTEIN_KEYS) or 0.0
    fat_g = _pick(block, FAT_KEYS) or 0.0
    protein_parts: tuple[float, ...] = ()
    fat_parts: tuple[float, ...] = ()

    if not (protein_g > 0 and fat_g > 0):
        text = _INLINE_TAG.sub("", markup)
        if protein_g <= 0 and (match := _PROTEIN_TOTAL.search(text)):
            protein_g = parse_locale_number(match.group(1))
        if fat_g <= 0 and (match := _FAT_TOTAL.search(text)):
            fat_g = parse_locale_number(match.group(1))

    if not (protein_g > 0 and fat_g > 0):
        table_protein, table_fat = scan_table(markup)
        if protein_g <= 0 and table_protein:
            protein_g = sum(table_protein)
            protein_parts = tuple(table_protein)
        if fat_g <= 0 and table_fat:
            fat_g = sum(table_fat)
            fat_parts = tuple(table_fat)

    equivalent = _pick(block, EQUIVALENT_KEYS) or 0.0
    if equivalent <= 0 and (protein_g > 0 or fat_g > 0):
        equivalent = rule(protein_g, fat_g, protein_percent)

    summary = str(_first_value(block, SUMMARY_KEYS) or "").strip()
    return MealExtractionResult(
        carbohydrate_g=max(0.0, _pick(block, CARBOHYDRATE_KEYS) or 0.0),
        protein_g=max(0.0, protein_g),
        fat_g=max(0.0, fat_g),
        summary=summary or fallback_summary,
        protein_fat_equivalent_g=max(0.0, equivalent),
        gross_carbohydrate_g=_pick(block, GROSS_CARBOHYDRATE_KEYS),
        fiber_g=_pick(block, FIBER_KEYS),
        sugar_alcohol_g=_pick(block, SUGAR_ALCOHOL_KEYS),
        kcal_total=_pick(block, KCAL_KEYS),
        protein_parts=protein_parts,
        fat_parts=fat_parts,
    )


def _first_value(block: dict[str, object], keys: tuple[str, ...]) -> object:
    for key in keys:
        if key in block:
            return block[key]
    return None


def _pick(block: dict[str, object], keys: tuple[str, ...]) -> float | None:
    """Return the first aliased key present, parsed as a number."""
    for key in keys:
        if key in block:
            return parse_locale_number(block[key])
    return None
