"""Oxidation pattern classifier.

Combines the statuses of Ca, Mg, Na and K with three ratio signals
(Ca/K "thyroid", Na/K "adrenal", Ca/Mg "metabolic") into one of four
pattern labels: fast, slow, mixed or balanced.

Six directional signals vote: Ca, Na and K statuses plus the three ratio
signals. Mg only counts toward the balanced check.

Decision order:

1. **mixed** when fast- and slow-leaning signals are both present and
   neither side leads by more than one.
2. **fast** / **slow** when that side has at least 3 signals and leads.
3. **balanced** when at least 3 of 4 minerals are optimal and at least 2
   of 3 ratios lie inside their closed band. A ratio exactly on a cutoff
   votes for its direction and also counts as inside the band.
4. Otherwise a majority (2+) of the ratio signals decides; with no ratio
   majority the pattern is **mixed**.

This is pattern classification only. It never names a condition.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from typing import Any

from htma.domains.minerals.domain_logic.models import (
    OxidationClassification,
    OxidationConfidence,
    OxidationIndicators,
    OxidationMetadata,
    OxidationType,
    RatioSignal,
    Status,
    StatusPolicy,
)
from htma.domains.minerals.domain_logic.registry import (
    OXIDATION_MINERAL_RANGES,
    OXIDATION_RATIO_THRESHOLDS,
    THRESHOLD_PROXIMITY,
)
from htma.domains.minerals.domain_logic.status import classify, safe_ratio
from htma.domains.minerals.domain_logic.versions import CURRENT_VERSIONS, EngineVersions

logger = logging.getLogger(__name__)


INTERPRETATIONS: dict[OxidationType, str] = {
    OxidationType.SLOW: (
        "Pattern commonly associated with slower metabolic activity and reduced stress response."
    ),
    OxidationType.FAST: (
        "Pattern commonly associated with higher metabolic activity and increased sympathetic drive."
    ),
    OxidationType.MIXED: "Mixed metabolic signals suggesting adaptive or transitional patterns.",
    OxidationType.BALANCED: "Balanced mineral relationships with no dominant oxidation pattern.",
}

TYPE_LABELS: dict[OxidationType, str] = {
    OxidationType.FAST: "Fast Oxidizer",
    OxidationType.SLOW: "Slow Oxidizer",
    OxidationType.MIXED: "Mixed Oxidizer",
    OxidationType.BALANCED: "Balanced Oxidizer",
}

CONFIDENCE_DESCRIPTIONS: dict[OxidationConfidence, str] = {
    OxidationConfidence.HIGH: "Strong agreement across indicators (5-6 of 6)",
    OxidationConfidence.MODERATE: "Partial agreement across indicators (3-4 of 6)",
    OxidationConfidence.LOW: "Conflicting or unclear indicators",
}

INSUFFICIENT_DATA_INTERPRETATION = "Classification unavailable - insufficient mineral data"

# Mineral status -> the direction it supports. Mg is neutral.
_MINERAL_DIRECTIONS: dict[str, dict[Status, OxidationType]] = {
    "Ca": {Status.HIGH: OxidationType.SLOW, Status.LOW: OxidationType.FAST},
    "Na": {Status.HIGH: OxidationType.FAST, Status.LOW: OxidationType.SLOW},
    "K": {Status.HIGH: OxidationType.FAST, Status.LOW: OxidationType.SLOW},
}

_MINERAL_NOTES: dict[str, dict[Status, str]] = {
    "Ca": {Status.HIGH: "Ca elevated (supports slow)", Status.LOW: "Ca low (supports fast)"},
    "Na": {Status.HIGH: "Na elevated (supports fast)", Status.LOW: "Na low (supports slow)"},
    "K": {Status.HIGH: "K elevated (supports fast)", Status.LOW: "K low (supports slow)"},
}


def _num(val, default: float = 0.0) -> float:
    """Safely convert to float, returning default for None or non-numeric."""
    if val is None:
        return default
    try:
        return float(val)
    except (TypeError, ValueError, OverflowError):
        return default


# ---------------------------------------------------------------------------
# Signals
# ---------------------------------------------------------------------------

def ratio_signal(key: str, ratio: float) -> RatioSignal:
    """Signal for one oxidation ratio. Both cutoffs are inclusive."""
    _, _, _, fast, slow, _ = OXIDATION_RATIO_THRESHOLDS[key]
    if fast < slow:
        if ratio <= fast:
            return RatioSignal.FAST
        if ratio >= slow:
            return RatioSignal.SLOW
    else:
        if ratio >= fast:
            return RatioSignal.FAST
        if ratio <= slow:
            return RatioSignal.SLOW
    return RatioSignal.OPTIMAL


def ratio_in_band(key: str, ratio: float) -> bool:
    """True when the ratio lies between its two cutoffs, both included."""
    _, _, _, fast, slow, _ = OXIDATION_RATIO_THRESHOLDS[key]
    return min(fast, slow) <= ratio <= max(fast, slow)


def _signal_direction(signal: RatioSignal) -> OxidationType | None:
    if signal is RatioSignal.FAST:
        return OxidationType.FAST
    if signal is RatioSignal.SLOW:
        return OxidationType.SLOW
    return None


def _decide(
    statuses: Mapping[str, Status],
    signals: Mapping[str, RatioSignal],
    ratios: Mapping[str, float],
) -> tuple[OxidationType, int]:
    """Apply the decision order. Returns (type, alignment score 0-6)."""
    mineral_votes = [_MINERAL_DIRECTIONS[s].get(statuses[s]) for s in ("Ca", "Na", "K")]
    votes = mineral_votes + [_signal_direction(signals[k]) for k in ("ca_k", "na_k", "ca_mg")]
    fast = votes.count(OxidationType.FAST)
    slow = votes.count(OxidationType.SLOW)

    if fast and slow and abs(fast - slow) <= 1:
        return OxidationType.MIXED, max(fast, slow)

    if slow >= 3 and slow > fast:
        return OxidationType.SLOW, slow
    if fast >= 3 and fast > slow:
        return OxidationType.FAST, fast

    optimal_minerals = sum(1 for status in statuses.values() if status is Status.OPTIMAL)
    in_band = sum(1 for key, value in ratios.items() if ratio_in_band(key, value))
    if optimal_minerals >= 3 and in_band >= 2:
        return OxidationType.BALANCED, mineral_votes.count(None) + in_band

    ratio_votes = [_signal_direction(s) for s in signals.values()]
    if ratio_votes.count(OxidationType.FAST) >= 2:
        return OxidationType.FAST, fast
    if ratio_votes.count(OxidationType.SLOW) >= 2:
        return OxidationType.SLOW, slow
    return OxidationType.MIXED, max(fast, slow)


def _confidence(alignment: int) -> OxidationConfidence:
    if alignment >= 5:
        return OxidationConfidence.HIGH
    if alignment >= 3:
        return OxidationConfidence.MODERATE
    return OxidationConfidence.LOW


# ---------------------------------------------------------------------------
# Explanation + warnings
# ---------------------------------------------------------------------------

def _ratio_line(key: str, ratio: float, signal: RatioSignal) -> str:
    label, _, _, fast, slow, _ = OXIDATION_RATIO_THRESHOLDS[key]
    fast_op, slow_op = ("<=", ">=") if fast < slow else (">=", "<=")
    if signal is RatioSignal.FAST:
        return f"{label} ratio {ratio:.1f} indicates fast ({fast_op} {fast:g})"
    if signal is RatioSignal.SLOW:
        return f"{label} ratio {ratio:.1f} indicates slow ({slow_op} {slow:g})"
    low, high = sorted((fast, slow))
    return f"{label} ratio {ratio:.1f} is optimal ({low:g}-{high:g})"


def _explain(
    oxidation_type: OxidationType,
    statuses: Mapping[str, Status],
    signals: Mapping[str, RatioSignal],
    ratios: Mapping[str, float],
) -> str:
    ratio_lines = [_ratio_line(key, ratios[key], signals[key]) for key in OXIDATION_RATIO_THRESHOLDS]
    parts = [
        f"Classified as {oxidation_type.value.upper()} oxidizer based on ratio signals: "
        + "; ".join(ratio_lines)
    ]

    mineral_lines = [
        _MINERAL_NOTES[symbol][statuses[symbol]]
        for symbol in ("Ca", "Na", "K")
        if statuses[symbol] in _MINERAL_NOTES[symbol]
    ]
    if mineral_lines:
        parts.append("Mineral status: " + "; ".join(mineral_lines))

    if oxidation_type is OxidationType.BALANCED:
        parts.append("All or most indicators within optimal ranges")
    elif oxidation_type is OxidationType.MIXED:
        parts.append("Conflicting signals suggest adaptive or transitional metabolic state")

    return ". ".join(parts) + "."


def threshold_warnings(ratios: Mapping[str, float]) -> tuple[str, ...]:
    """Advisory notes for ratios within 5% of any cutoff they were compared against."""
    warnings: list[str] = []
    for key, (label, _, _, fast, slow, _) in OXIDATION_RATIO_THRESHOLDS.items():
        value = ratios[key]
        for kind, cutoff in (("fast", fast), ("slow", slow)):
            if abs(value - cutoff) / cutoff <= THRESHOLD_PROXIMITY:
                warnings.append(
                    f"{label} ratio ({value:.2f}) is within 5% of {kind} threshold ({cutoff:g})"
                )
    return tuple(warnings)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def _insufficient(
    calcium: float,
    magnesium: float,
    sodium: float,
    potassium: float,
    versions: EngineVersions,
) -> OxidationClassification:
    return OxidationClassification(
        type=OxidationType.BALANCED,
        confidence=OxidationConfidence.LOW,
        indicators=OxidationIndicators(
            calcium_status=Status.OPTIMAL,
            magnesium_status=Status.OPTIMAL,
            sodium_status=Status.OPTIMAL,
            potassium_status=Status.OPTIMAL,
            ca_k_signal=RatioSignal.OPTIMAL,
            na_k_signal=RatioSignal.OPTIMAL,
            ca_mg_signal=RatioSignal.OPTIMAL,
        ),
        explanation=(
            "Cannot classify oxidation type: one or more required minerals "
            "(Ca, Mg, Na, K) are missing or invalid."
        ),
        interpretation=INSUFFICIENT_DATA_INTERPRETATION,
        threshold_warnings=("Incomplete mineral data provided",),
        metadata=OxidationMetadata(
            calcium=calcium,
            magnesium=magnesium,
            sodium=sodium,
            potassium=potassium,
            ca_k=0.0,
            na_k=0.0,
            ca_mg=0.0,
            alignment_score=0,
        ),
        insufficient_data=True,
        versions=versions,
    )


def classify_oxidation(
    calcium: Any,
    magnesium: Any,
    sodium: Any,
    potassium: Any,
    *,
    mineral_policy: StatusPolicy = StatusPolicy.STRICT,
    versions: EngineVersions = CURRENT_VERSIONS,
) -> OxidationClassification:
    """Classify the oxidation pattern of one panel.

    Args:
        calcium, magnesium, sodium, potassium: Raw mineral values (mg%).
        mineral_policy: Status policy applied to the four minerals against
            the oxidation bands.
        versions: Version tags stamped on the result.

    Returns:
        A complete ``OxidationClassification``. Missing or non-positive
        input yields a typed insufficient-data result instead of an error.
    """
    values = {
        "Ca": _num(calcium),
        "Mg": _num(magnesium),
        "Na": _num(sodium),
        "K": _num(potassium),
    }
    if any(not math.isfinite(v) or v <= 0 for v in values.values()):
        logger.warning("Oxidation classification skipped: missing or non-positive Ca/Mg/Na/K")
        return _insufficient(values["Ca"], values["Mg"], values["Na"], values["K"], versions)

    statuses = {
        symbol: classify(values[symbol], ref.min_ideal, ref.max_ideal, mineral_policy)
        for symbol, ref in OXIDATION_MINERAL_RANGES.items()
    }
    ratios = {
        key: safe_ratio(values[numerator], values[denominator])
        for key, (_, numerator, denominator, _, _, _) in OXIDATION_RATIO_THRESHOLDS.items()
    }
    signals = {key: ratio_signal(key, value) for key, value in ratios.items()}

    oxidation_type, alignment = _decide(statuses, signals, ratios)
    confidence = _confidence(alignment)
    logger.debug(
        "Oxidation classified as %s (alignment %d, confidence %s)",
        oxidation_type.value,
        alignment,
        confidence.value,
    )

    return OxidationClassification(
        type=oxidation_type,
        confidence=confidence,
        indicators=OxidationIndicators(
            calcium_status=statuses["Ca"],
            magnesium_status=statuses["Mg"],
            sodium_status=statuses["Na"],
            potassium_status=statuses["K"],
            ca_k_signal=signals["ca_k"],
            na_k_signal=signals["na_k"],
            ca_mg_signal=signals["ca_mg"],
        ),
        explanation=_explain(oxidation_type, statuses, signals, ratios),
        interpretation=INTERPRETATIONS[oxidation_type],
        threshold_warnings=threshold_warnings(ratios),
        metadata=OxidationMetadata(
            calcium=values["Ca"],
            magnesium=values["Mg"],
            sodium=values["Na"],
            potassium=values["K"],
            ca_k=ratios["ca_k"],
            na_k=ratios["na_k"],
            ca_mg=ratios["ca_mg"],
            alignment_score=alignment,
        ),
        versions=versions,
    )


def classify_panel_oxidation(
    values: Mapping[str, Any],
    *,
    mineral_policy: StatusPolicy = StatusPolicy.STRICT,
    versions: EngineVersions = CURRENT_VERSIONS,
) -> OxidationClassification:
    """Classify from a symbol -> value mapping (e.g. ``HTMAPanel.values``)."""
    return classify_oxidation(
        values.get("Ca"),
        values.get("Mg"),
        values.get("Na"),
        values.get("K"),
        mineral_policy=mineral_policy,
        versions=versions,
    )


def oxidation_type_label(oxidation_type: OxidationType) -> str:
    return TYPE_LABELS[OxidationType(oxidation_type)]


def confidence_description(confidence: OxidationConfidence) -> str:
    return CONFIDENCE_DESCRIPTIONS[OxidationConfidence(confidence)]
