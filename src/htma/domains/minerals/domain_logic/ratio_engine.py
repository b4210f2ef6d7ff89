"""Ratio engine: the six tracked mineral ratios, strict-policy status."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from htma.domains.minerals.domain_logic.models import RatioDefinition, RatioResult, Status
from htma.domains.minerals.domain_logic.registry import RATIO_DEFINITIONS, get_ratio_definition
from htma.domains.minerals.domain_logic.status import classify_ratio, safe_ratio
from htma.domains.minerals.domain_logic.versions import CURRENT_VERSIONS, EngineVersions


def _num(val, default: float = 0.0) -> float:
    """Safely convert to float, returning default for None or non-numeric."""
    if val is None:
        return default
    try:
        return float(val)
    except (TypeError, ValueError, OverflowError):
        return default


def calculate_ratio_result(
    definition: RatioDefinition,
    values: Mapping[str, Any],
    *,
    versions: EngineVersions = CURRENT_VERSIONS,
) -> RatioResult:
    numerator_value = _num(values.get(definition.numerator))
    denominator_value = _num(values.get(definition.denominator))
    value = safe_ratio(numerator_value, denominator_value)
    status = classify_ratio(value, definition.min_ideal, definition.max_ideal)
    return RatioResult(
        name=definition.name,
        numerator=definition.numerator,
        denominator=definition.denominator,
        numerator_value=numerator_value,
        denominator_value=denominator_value,
        value=value,
        min_ideal=definition.min_ideal,
        max_ideal=definition.max_ideal,
        status=status,
        significance=definition.significance,
        interpretation=definition.interpretation_for(status),
        versions=versions,
    )


def calculate_all_ratios(
    values: Mapping[str, Any],
    *,
    versions: EngineVersions = CURRENT_VERSIONS,
) -> tuple[RatioResult, ...]:
    """All six ratios in display order."""
    return tuple(
        calculate_ratio_result(definition, values, versions=versions)
        for definition in RATIO_DEFINITIONS
    )


def get_ratio(
    name: str,
    values: Mapping[str, Any],
    *,
    versions: EngineVersions = CURRENT_VERSIONS,
) -> RatioResult | None:
    definition = get_ratio_definition(name)
    if definition is None:
        return None
    return calculate_ratio_result(definition, values, versions=versions)


def non_optimal_ratios(
    values: Mapping[str, Any],
    *,
    versions: EngineVersions = CURRENT_VERSIONS,
) -> tuple[RatioResult, ...]:
    return tuple(
        r for r in calculate_all_ratios(values, versions=versions)
        if r.status is not Status.OPTIMAL
    )


def has_required_minerals(values: Mapping[str, Any]) -> bool:
    """True when every mineral used by a ratio is present as a number."""
    required = {d.numerator for d in RATIO_DEFINITIONS} | {d.denominator for d in RATIO_DEFINITIONS}
    return all(
        isinstance(values.get(symbol), (int, float)) and not isinstance(values.get(symbol), bool)
        for symbol in required
    )
