"""Oxidation delta: how the oxidation pattern moved between two tests.

Distance to balanced is 0 for a balanced pattern, 2 for mixed, and
``(3 + 0.5 * alignment) * confidence multiplier`` for fast or slow, so a
strongly supported fast/slow pattern sits furthest from balance.
"""

from __future__ import annotations

from htma.domains.minerals.domain_logic.models import (
    BalanceDirection,
    DistanceToBalanced,
    IndicatorChange,
    IndicatorImpact,
    OxidationClassification,
    OxidationConfidence,
    OxidationDelta,
    OxidationType,
    PatternChange,
    PatternChangeType,
    RatioSignal,
    Status,
)
from htma.domains.minerals.domain_logic.versions import CURRENT_VERSIONS, EngineVersions

_CONFIDENCE_MULTIPLIERS = {
    OxidationConfidence.HIGH: 1.2,
    OxidationConfidence.MODERATE: 1.0,
    OxidationConfidence.LOW: 0.8,
}

_STABLE_DISTANCE_CHANGE = 0.3

_MAJOR_SHIFTS: dict[tuple[OxidationType, OxidationType], str] = {
    (OxidationType.FAST, OxidationType.SLOW): (
        "Pattern shifted from Fast to Slow Oxidation, a significant metabolic milestone"
    ),
    (OxidationType.SLOW, OxidationType.FAST): (
        "Pattern shifted from Slow to Fast Oxidation, a significant metabolic milestone"
    ),
    (OxidationType.FAST, OxidationType.BALANCED): (
        "Pattern shifted from Fast to Balanced, moving toward metabolic equilibrium"
    ),
    (OxidationType.SLOW, OxidationType.BALANCED): (
        "Pattern shifted from Slow to Balanced, moving toward metabolic equilibrium"
    ),
}


def distance_to_balanced(oxidation: OxidationClassification) -> float:
    if oxidation.type is OxidationType.BALANCED:
        return 0.0
    if oxidation.type is OxidationType.MIXED:
        return 2.0
    base = 3 + oxidation.metadata.alignment_score * 0.5
    return round(base * _CONFIDENCE_MULTIPLIERS[oxidation.confidence], 1)


def _direction(change: float) -> BalanceDirection:
    if abs(change) < _STABLE_DISTANCE_CHANGE:
        return BalanceDirection.STABLE
    if change < 0:
        return BalanceDirection.TOWARD_BALANCED
    return BalanceDirection.AWAY_FROM_BALANCED


def _pattern_change(previous: OxidationType, current: OxidationType) -> PatternChange:
    if previous is current:
        return PatternChange(
            type=PatternChangeType.STABLE,
            is_milestone=False,
            description=f"Oxidation pattern remained {current.value}",
        )
    if (previous, current) in _MAJOR_SHIFTS:
        return PatternChange(
            type=PatternChangeType.MAJOR_SHIFT,
            is_milestone=True,
            description=_MAJOR_SHIFTS[(previous, current)],
        )
    return PatternChange(
        type=PatternChangeType.MINOR_ADJUSTMENT,
        # Newly balanced is a milestone even from a mixed pattern
        is_milestone=current is OxidationType.BALANCED,
        description=f"Pattern adjusted from {previous.value} to {current.value}",
    )


# ---------------------------------------------------------------------------
# Key indicator changes
# ---------------------------------------------------------------------------

def _impact(before: Status | RatioSignal, after: Status | RatioSignal) -> IndicatorImpact:
    if after in (Status.OPTIMAL, RatioSignal.OPTIMAL):
        return IndicatorImpact.POSITIVE
    if before in (Status.OPTIMAL, RatioSignal.OPTIMAL):
        return IndicatorImpact.NEGATIVE
    return IndicatorImpact.NEUTRAL


def _label(value: Status | RatioSignal) -> str:
    return value.value.lower()


def key_indicator_changes(
    previous: OxidationClassification,
    current: OxidationClassification,
) -> tuple[IndicatorChange, ...]:
    prev, curr = previous.indicators, current.indicators
    candidates = (
        ("Ca/K Ratio", prev.ca_k_signal, curr.ca_k_signal,
         "Ca/K signal changed ({0} -> {1}), associated with thyroid activity patterns"),
        ("Na/K Ratio", prev.na_k_signal, curr.na_k_signal,
         "Na/K signal changed ({0} -> {1}), associated with adrenal activity patterns"),
        ("Ca/Mg Ratio", prev.ca_mg_signal, curr.ca_mg_signal,
         "Ca/Mg signal changed ({0} -> {1}), associated with metabolic rate patterns"),
        ("Calcium", prev.calcium_status, curr.calcium_status,
         "Calcium status changed ({0} -> {1})"),
        ("Sodium", prev.sodium_status, curr.sodium_status,
         "Sodium status changed ({0} -> {1})"),
    )
    changes = []
    for indicator, before, after, template in candidates:
        if before is after:
            continue
        changes.append(IndicatorChange(
            indicator=indicator,
            from_value=_label(before),
            to_value=_label(after),
            impact=_impact(before, after),
            note=template.format(_label(before), _label(after)),
        ))
    return tuple(changes)


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------

def _summary(
    pattern_change: PatternChange,
    direction: BalanceDirection,
    previous: OxidationType,
    current: OxidationType,
) -> str:
    if pattern_change.type is PatternChangeType.STABLE:
        if current is OxidationType.BALANCED:
            return "Oxidation pattern remained balanced, suggesting stable metabolic equilibrium."
        return (
            f"Oxidation pattern remained {current.value}, indicating consistent "
            "metabolic patterns between tests."
        )
    if pattern_change.is_milestone:
        if direction is BalanceDirection.TOWARD_BALANCED:
            direction_text = "This represents progress toward metabolic balance."
        elif direction is BalanceDirection.AWAY_FROM_BALANCED:
            direction_text = "This indicates a shift in metabolic pattern."
        else:
            direction_text = "Metabolic pattern has shifted."
        return (
            f"{pattern_change.description}. {direction_text} Pattern changes like this can "
            "reflect adjustments in thyroid and adrenal activity relationships over time."
        )
    return (
        f"Oxidation pattern adjusted from {previous.value} to {current.value}, "
        "suggesting evolving metabolic patterns."
    )


def _baseline(
    current: OxidationClassification,
    versions: EngineVersions,
) -> OxidationDelta:
    if current.insufficient_data:
        description = "Oxidation pattern unavailable - insufficient mineral data"
        summary = (
            "Oxidation pattern could not be classified for this test, "
            "so no pattern change is reported."
        )
    else:
        description = f"Initial oxidation pattern established: {current.type.value}"
        summary = (
            f"Initial oxidation pattern identified as {current.type.value}. This establishes "
            "a baseline for tracking metabolic pattern changes in future tests."
        )
    return OxidationDelta(
        previous_type=None,
        current_type=current.type,
        pattern_change=PatternChange(
            type=PatternChangeType.NEW_TEST,
            is_milestone=False,
            description=description,
        ),
        distance_to_balanced=DistanceToBalanced(
            previous=None,
            current=distance_to_balanced(current),
            change=0.0,
            direction=BalanceDirection.STABLE,
        ),
        key_changes=(),
        reached_balanced=False,
        summary=summary,
        versions=versions,
    )


def analyze_oxidation_delta(
    previous: OxidationClassification | None,
    current: OxidationClassification,
    *,
    versions: EngineVersions = CURRENT_VERSIONS,
) -> OxidationDelta:
    """Compare two oxidation classifications, oldest first.

    Without a usable previous classification (none given, or either side
    lacked the data to classify) the result is a ``new_test`` baseline.
    """
    if previous is None or previous.insufficient_data or current.insufficient_data:
        return _baseline(current, versions)

    previous_distance = distance_to_balanced(previous)
    current_distance = distance_to_balanced(current)
    change = round(current_distance - previous_distance, 1)
    direction = _direction(change)
    pattern_change = _pattern_change(previous.type, current.type)

    return OxidationDelta(
        previous_type=previous.type,
        current_type=current.type,
        pattern_change=pattern_change,
        distance_to_balanced=DistanceToBalanced(
            previous=previous_distance,
            current=current_distance,
            change=change,
            direction=direction,
        ),
        key_changes=key_indicator_changes(previous, current),
        reached_balanced=(
            current.type is OxidationType.BALANCED and previous.type is not OxidationType.BALANCED
        ),
        summary=_summary(pattern_change, direction, previous.type, current.type),
        versions=versions,
    )
