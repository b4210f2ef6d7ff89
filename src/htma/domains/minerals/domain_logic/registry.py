"""Reference range registry: every threshold the engine classifies against.

Recalibration is a data change made here (plus a version bump in
``versions.py``), never a logic change in the classifiers.
"""

from __future__ import annotations

from htma.domains.minerals.domain_logic.models import (
    ElementCategory,
    ElementReference,
    Grade,
    RatioDefinition,
    ReferenceRange,
    ReferenceRangeTable,
)
from htma.domains.minerals.domain_logic.versions import CURRENT_VERSIONS

REFERENCE_STANDARD = "TEI (Trace Elements Inc.)"


# ---------------------------------------------------------------------------
# Minerals (mg%)
# ---------------------------------------------------------------------------

MINERAL_RANGES: tuple[ReferenceRange, ...] = (
    ReferenceRange("Ca", "Calcium", 35, 45, display_order=1),
    ReferenceRange("Mg", "Magnesium", 4, 8, display_order=2),
    ReferenceRange("Na", "Sodium", 20, 30, display_order=3),
    ReferenceRange("K", "Potassium", 8, 12, display_order=4),
    ReferenceRange("P", "Phosphorus", 14, 18, display_order=5),
    ReferenceRange("Cu", "Copper", 2.0, 3.0, display_order=6),
    ReferenceRange("Zn", "Zinc", 12, 18, display_order=7),
    ReferenceRange("Fe", "Iron", 1.5, 2.5, display_order=8),
    ReferenceRange("Mn", "Manganese", 0.04, 0.08, display_order=9),
    ReferenceRange("Cr", "Chromium", 0.06, 0.1, display_order=10),
    ReferenceRange("Se", "Selenium", 0.08, 0.12, display_order=11),
    ReferenceRange("B", "Boron", 0.2, 0.3, display_order=12),
    ReferenceRange("Co", "Cobalt", 0.004, 0.006, display_order=13),
    ReferenceRange("Mo", "Molybdenum", 0.04, 0.06, display_order=14),
    ReferenceRange("S", "Sulfur", 4000, 5000, display_order=15),
)

MINERAL_SYMBOLS: tuple[str, ...] = tuple(r.symbol for r in MINERAL_RANGES)

# Lowercase full names accepted as input aliases ("calcium" -> "Ca")
MINERAL_NAME_ALIASES: dict[str, str] = {r.name.lower(): r.symbol for r in MINERAL_RANGES}


# ---------------------------------------------------------------------------
# Toxic and additional elements (display only, never scored)
# ---------------------------------------------------------------------------

_TOXIC = ElementCategory.TOXIC
_ADDITIONAL = ElementCategory.ADDITIONAL

TOXIC_ELEMENT_REFERENCES: tuple[ElementReference, ...] = (
    ElementReference("Sb", "Antimony", _TOXIC, 0.06, display_order=1),
    ElementReference("As", "Arsenic", _TOXIC, 0.08, display_order=2),
    ElementReference("Hg", "Mercury", _TOXIC, 0.8, display_order=3),
    ElementReference("Be", "Beryllium", _TOXIC, 0.02, display_order=4),
    ElementReference("Cd", "Cadmium", _TOXIC, 0.06, display_order=5),
    ElementReference("Pb", "Lead", _TOXIC, 0.6, display_order=6),
    ElementReference("Al", "Aluminum", _TOXIC, 1.0, display_order=7),
)

ADDITIONAL_ELEMENT_REFERENCES: tuple[ElementReference, ...] = (
    ElementReference("Ge", "Germanium", _ADDITIONAL, display_order=1),
    ElementReference("Ba", "Barium", _ADDITIONAL, display_order=2),
    ElementReference("Bi", "Bismuth", _ADDITIONAL, display_order=3),
    ElementReference("Rb", "Rubidium", _ADDITIONAL, display_order=4),
    ElementReference("Li", "Lithium", _ADDITIONAL, display_order=5),
    ElementReference("Ni", "Nickel", _ADDITIONAL, display_order=6),
    ElementReference("Pt", "Platinum", _ADDITIONAL, display_order=7),
    ElementReference("Ti", "Titanium", _ADDITIONAL, display_order=8),
    ElementReference("V", "Vanadium", _ADDITIONAL, display_order=9),
    ElementReference("Sr", "Strontium", _ADDITIONAL, display_order=10),
    ElementReference("Sn", "Tin", _ADDITIONAL, display_order=11),
    ElementReference("W", "Tungsten", _ADDITIONAL, display_order=12),
    ElementReference("Zr", "Zirconium", _ADDITIONAL, display_order=13),
)

# Lowercase symbol or name -> reference, for input keys
_ELEMENT_LOOKUP: dict[str, ElementReference] = {
    key: ref
    for ref in TOXIC_ELEMENT_REFERENCES + ADDITIONAL_ELEMENT_REFERENCES
    for key in (ref.symbol.lower(), ref.name.lower())
}


# ---------------------------------------------------------------------------
# Ratios
# ---------------------------------------------------------------------------

RATIO_DEFINITIONS: tuple[RatioDefinition, ...] = (
    RatioDefinition(
        name="Ca/Mg",
        numerator="Ca",
        denominator="Mg",
        min_ideal=6.0,
        max_ideal=7.5,
        display_order=1,
        significance="Thyroid and metabolic rate",
        low_text="Lower Ca/Mg ratio is commonly associated with faster metabolic patterns.",
        optimal_text="Ca/Mg ratio is within the ideal range for metabolic balance.",
        high_text="Higher Ca/Mg ratio is commonly associated with slower metabolic patterns.",
    ),
    RatioDefinition(
        name="Na/K",
        numerator="Na",
        denominator="K",
        min_ideal=2.0,
        max_ideal=3.0,
        display_order=2,
        significance="Adrenal function and stress response",
        low_text="Lower Na/K ratio is commonly associated with prolonged stress patterns.",
        optimal_text="Na/K ratio is within the ideal range for stress response balance.",
        high_text="Higher Na/K ratio is commonly associated with acute stress patterns.",
    ),
    RatioDefinition(
        name="Ca/P",
        numerator="Ca",
        denominator="P",
        min_ideal=2.4,
        max_ideal=2.8,
        display_order=3,
        significance="Bone metabolism and parathyroid function",
        low_text="Lower Ca/P ratio is commonly associated with faster mineral turnover patterns.",
        optimal_text="Ca/P ratio is within the ideal range for mineral turnover.",
        high_text="Higher Ca/P ratio is commonly associated with slower mineral turnover patterns.",
    ),
    RatioDefinition(
        name="Zn/Cu",
        numerator="Zn",
        denominator="Cu",
        min_ideal=5.0,
        max_ideal=7.0,
        display_order=4,
        significance="Immune function and hormonal balance",
        low_text="Lower Zn/Cu ratio is commonly associated with relative copper dominance.",
        optimal_text="Zn/Cu ratio is within the ideal range for zinc and copper balance.",
        high_text="Higher Zn/Cu ratio is commonly associated with relative zinc dominance.",
    ),
    RatioDefinition(
        name="Fe/Cu",
        numerator="Fe",
        denominator="Cu",
        min_ideal=0.6,
        max_ideal=1.0,
        display_order=5,
        significance="Oxygen transport and energy production",
        low_text="Lower Fe/Cu ratio is commonly associated with relative copper dominance over iron.",
        optimal_text="Fe/Cu ratio is within the ideal range for iron and copper balance.",
        high_text="Higher Fe/Cu ratio is commonly associated with relative iron dominance over copper.",
    ),
    RatioDefinition(
        name="Ca/K",
        numerator="Ca",
        denominator="K",
        min_ideal=3.5,
        max_ideal=4.5,
        display_order=6,
        significance="Thyroid activity and metabolic rate",
        low_text="Lower Ca/K ratio is commonly associated with faster thyroid activity patterns.",
        optimal_text="Ca/K ratio is within the ideal range for thyroid activity balance.",
        high_text="Higher Ca/K ratio is commonly associated with slower thyroid activity patterns.",
    ),
)

RATIO_NAMES: tuple[str, ...] = tuple(r.name for r in RATIO_DEFINITIONS)


TEI_REFERENCE_TABLE = ReferenceRangeTable(
    version=CURRENT_VERSIONS.reference_range_version,
    name="TEI Standard Ranges",
    standard=REFERENCE_STANDARD,
    minerals=MINERAL_RANGES,
    ratios=RATIO_DEFINITIONS,
)


# ---------------------------------------------------------------------------
# Status policy thresholds
# ---------------------------------------------------------------------------

FUZZED_LOW_MULTIPLIER = 0.7
FUZZED_HIGH_MULTIPLIER = 1.3


# ---------------------------------------------------------------------------
# Health score semantics
# ---------------------------------------------------------------------------

HEALTH_SCORE_WEIGHTS = {
    "minerals": 0.6,
    "ratios": 0.3,
    "red_flags": 0.1,
}

MINERAL_POINTS = 4                  # 15 minerals x 4 = 60
RATIO_POINTS = 5                    # 6 ratios x 5 = 30
RED_FLAG_POOL = 10

SEVERE_DEFICIENCY_MULTIPLIER = 0.5
SEVERE_EXCESS_MULTIPLIER = 1.5
SEVERE_MINERAL_PENALTY = 2
CRITICAL_RATIO_PENALTY = 1

# Ratio name -> (critical_below, critical_above); strictly outside is critical
CRITICAL_RATIO_BOUNDS: dict[str, tuple[float, float]] = {
    "Ca/Mg": (4.0, 10.0),
    "Na/K": (1.5, 4.0),
    "Zn/Cu": (3.0, 10.0),
}

# (grade, minimum total score, interpretation), highest first
GRADE_BANDS: tuple[tuple[Grade, int, str], ...] = (
    (Grade.A, 90, "Optimal mineral balance"),
    (Grade.B, 75, "Minor mineral imbalances"),
    (Grade.C, 60, "Moderate mineral imbalance patterns"),
    (Grade.D, 45, "Significant mineral imbalance patterns"),
    (Grade.F, 0, "Severe mineral imbalance patterns"),
)

SHORT_DISCLAIMER = "Health Score reflects mineral balance patterns only. Not diagnostic."


# ---------------------------------------------------------------------------
# Oxidation classifier thresholds
# ---------------------------------------------------------------------------

# The oxidation classifier judges Ca/Mg/Na/K against wider bands than scoring.
OXIDATION_MINERAL_RANGES: dict[str, ReferenceRange] = {
    "Ca": ReferenceRange("Ca", "Calcium", 35, 55, display_order=1),
    "Mg": ReferenceRange("Mg", "Magnesium", 4.0, 7.0, display_order=2),
    "Na": ReferenceRange("Na", "Sodium", 20, 50, display_order=3),
    "K": ReferenceRange("K", "Potassium", 8, 18, display_order=4),
}

# key -> (label, numerator, denominator, fast cutoff, slow cutoff, role).
# Cutoffs are inclusive. When fast < slow the ratio signals "fast" at or
# below the fast cutoff; otherwise at or above it.
OXIDATION_RATIO_THRESHOLDS: dict[str, tuple[str, str, str, float, float, str]] = {
    "ca_k": ("Ca/K", "Ca", "K", 2.5, 10.0, "thyroid"),
    "na_k": ("Na/K", "Na", "K", 2.8, 1.8, "adrenal"),
    "ca_mg": ("Ca/Mg", "Ca", "Mg", 6.0, 10.0, "metabolic"),
}

THRESHOLD_PROXIMITY = 0.05


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

def get_mineral_range(symbol: str) -> ReferenceRange | None:
    return TEI_REFERENCE_TABLE.mineral(symbol)


def get_ratio_definition(name: str) -> RatioDefinition | None:
    for definition in RATIO_DEFINITIONS:
        if definition.name == name:
            return definition
    return None


def get_toxic_element_reference(symbol: str) -> ElementReference | None:
    for ref in TOXIC_ELEMENT_REFERENCES:
        if ref.symbol == symbol:
            return ref
    return None


def get_additional_element_reference(symbol: str) -> ElementReference | None:
    for ref in ADDITIONAL_ELEMENT_REFERENCES:
        if ref.symbol == symbol:
            return ref
    return None


def resolve_element(key: str) -> ElementReference | None:
    """Toxic or additional element for an input key ("Pb", "pb", "lead")."""
    return _ELEMENT_LOOKUP.get(key.strip().lower())
