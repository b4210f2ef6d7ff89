"""Interpretive confidence scoring.

Rates how well the abnormal markers of a panel support an interpretation.
The score annotates results; it never changes a health score or an
oxidation classification.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from htma.domains.minerals.domain_logic.models import (
    ConfidenceLevel,
    ConfidenceScore,
    EvidenceItem,
    EvidenceType,
    MineralResult,
    OxidationClassification,
    OxidationType,
    RatioResult,
    Status,
)
from htma.domains.minerals.domain_logic.versions import CURRENT_VERSIONS, EngineVersions

RATIO_WEIGHT_MULTIPLIER = 1.2
CORROBORATION_WEIGHT = 0.3
PANEL_MAX_WEIGHT = 5.0
INSIGHT_MAX_WEIGHT = 3.0

_OXIDATION_WEIGHTS = {
    OxidationType.FAST: 0.8,
    OxidationType.SLOW: 0.8,
    OxidationType.MIXED: 0.5,
}


def deviation_percent(value: float, min_ideal: float, max_ideal: float) -> float:
    """Percent outside the ideal band; 0 inside it."""
    if value < min_ideal:
        return (min_ideal - value) / min_ideal * 100
    if value > max_ideal:
        return (value - max_ideal) / max_ideal * 100
    return 0.0


def deviation_weight(deviation: float) -> float:
    if deviation >= 50:
        return 1.0
    if deviation >= 30:
        return 0.7
    if deviation >= 15:
        return 0.5
    return 0.3


def confidence_level(score: float) -> ConfidenceLevel:
    if score >= 70:
        return ConfidenceLevel.HIGH
    if score >= 40:
        return ConfidenceLevel.MODERATE
    return ConfidenceLevel.LOW


def _abnormal(items):
    return [i for i in items if i.status is not Status.OPTIMAL]


def has_corroboration(
    minerals: Sequence[MineralResult],
    ratios: Sequence[RatioResult],
) -> bool:
    """Whether independent markers point the same way.

    True when an abnormal ratio is built from an abnormal mineral (given at
    least two abnormal minerals), or with 3+ abnormal ratios, or with 5+
    abnormal minerals.
    """
    abnormal_minerals = _abnormal(minerals)
    abnormal_ratios = _abnormal(ratios)
    if len(abnormal_minerals) >= 2 and abnormal_ratios:
        symbols = {m.symbol for m in abnormal_minerals}
        if any(r.numerator in symbols or r.denominator in symbols for r in abnormal_ratios):
            return True
    return len(abnormal_ratios) >= 3 or len(abnormal_minerals) >= 5


def calculate_confidence_score(
    minerals: Sequence[MineralResult],
    ratios: Sequence[RatioResult],
    oxidation: OxidationClassification | None = None,
    *,
    versions: EngineVersions = CURRENT_VERSIONS,
) -> ConfidenceScore:
    """Confidence that a panel-level interpretation is well supported.

    Args:
        minerals: Classified minerals.
        ratios: Classified ratios.
        oxidation: Optional oxidation classification; a non-balanced pattern
            adds evidence.
        versions: Version tags stamped on the result.
    """
    evidence: list[EvidenceItem] = []

    abnormal_minerals = _abnormal(minerals)
    for mineral in abnormal_minerals:
        weight = deviation_weight(deviation_percent(mineral.value, mineral.min_ideal, mineral.max_ideal))
        evidence.append(EvidenceItem(
            type=EvidenceType.MINERAL,
            description=(
                f"{mineral.name} ({mineral.symbol}) is {mineral.status.value.lower()} "
                f"({mineral.value:g} {mineral.unit})"
            ),
            weight=weight,
        ))

    abnormal_ratios = _abnormal(ratios)
    for ratio in abnormal_ratios:
        weight = deviation_weight(deviation_percent(ratio.value, ratio.min_ideal, ratio.max_ideal))
        evidence.append(EvidenceItem(
            type=EvidenceType.RATIO,
            description=(
                f"{ratio.name} ratio is {ratio.status.value.lower()} ({ratio.value:.2f}) - "
                f"{ratio.significance}"
            ),
            weight=weight * RATIO_WEIGHT_MULTIPLIER,
        ))

    if (
        oxidation is not None
        and not oxidation.insufficient_data
        and oxidation.type in _OXIDATION_WEIGHTS
    ):
        evidence.append(EvidenceItem(
            type=EvidenceType.OXIDATION,
            description=(
                f"{oxidation.type.value} oxidation pattern detected "
                f"(Ca/K: {oxidation.metadata.ca_k:.2f}, Na/K: {oxidation.metadata.na_k:.2f})"
            ),
            weight=_OXIDATION_WEIGHTS[oxidation.type],
        ))

    corroborated = has_corroboration(minerals, ratios)
    if corroborated:
        evidence.append(EvidenceItem(
            type=EvidenceType.PATTERN,
            description="Multiple independent markers show consistent patterns",
            weight=CORROBORATION_WEIGHT,
        ))

    abnormal_count = len(abnormal_minerals) + len(abnormal_ratios)
    raw = min(100.0, sum(e.weight for e in evidence) / PANEL_MAX_WEIGHT * 100)
    if abnormal_count == 0:
        score = min(raw, 30.0)
    elif abnormal_count == 1:
        score = min(raw, 60.0)
    elif abnormal_count >= 5 and corroborated:
        score = min(100.0, raw * 1.15)
    else:
        score = raw

    return ConfidenceScore(
        level=confidence_level(score),
        score=round(score),
        evidence=tuple(evidence),
        abnormal_count=abnormal_count,
        has_corroboration=corroborated,
        versions=versions,
    )


# ---------------------------------------------------------------------------
# Insight confidence
# ---------------------------------------------------------------------------

def _mentions_mineral(text: str, mineral: MineralResult) -> bool:
    if re.search(rf"\b{re.escape(mineral.name)}\b", text, re.IGNORECASE):
        return True
    return re.search(rf"\b{re.escape(mineral.symbol)}\b", text) is not None


def _mentions_ratio(text: str, ratio: RatioResult) -> bool:
    pattern = rf"\b{re.escape(ratio.numerator)}\s*[/:]\s*{re.escape(ratio.denominator)}\b"
    return re.search(pattern, text, re.IGNORECASE) is not None


def insight_confidence(
    text: str,
    minerals: Sequence[MineralResult],
    ratios: Sequence[RatioResult],
    *,
    versions: EngineVersions = CURRENT_VERSIONS,
) -> ConfidenceScore:
    """Confidence for an externally generated insight sentence.

    Only abnormal markers the text actually mentions count as evidence.
    Text citing no abnormal marker scores a flat 20.
    """
    evidence: list[EvidenceItem] = []

    for mineral in _abnormal(minerals):
        if not _mentions_mineral(text, mineral):
            continue
        evidence.append(EvidenceItem(
            type=EvidenceType.MINERAL,
            description=f"{mineral.name} supports this insight ({mineral.status.value.lower()})",
            weight=deviation_weight(
                deviation_percent(mineral.value, mineral.min_ideal, mineral.max_ideal)
            ),
        ))

    for ratio in _abnormal(ratios):
        if not _mentions_ratio(text, ratio):
            continue
        evidence.append(EvidenceItem(
            type=EvidenceType.RATIO,
            description=f"{ratio.name} ratio supports this insight ({ratio.status.value.lower()})",
            weight=deviation_weight(
                deviation_percent(ratio.value, ratio.min_ideal, ratio.max_ideal)
            ) * RATIO_WEIGHT_MULTIPLIER,
        ))

    count = len(evidence)
    raw = min(100.0, sum(e.weight for e in evidence) / INSIGHT_MAX_WEIGHT * 100)
    if count == 0:
        score = 20.0
    elif count == 1:
        score = min(raw, 55.0)
    elif count >= 3:
        score = min(100.0, raw * 1.1)
    else:
        score = raw

    return ConfidenceScore(
        level=confidence_level(score),
        score=round(score),
        evidence=tuple(evidence),
        abnormal_count=count,
        has_corroboration=count >= 2,
        versions=versions,
    )
