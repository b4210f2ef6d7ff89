"""Status classification policies.

Two policies coexist:

* ``fuzzed`` tolerates a 30% margin around the ideal band. Mineral-level
  scoring was calibrated against it.
* ``strict`` uses the ideal band as-is. Ratio status uses it, and so do
  the display-only toxic elements against their upper reference limit.

Callers pick a policy by name; nothing here merges the two.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence

from htma.domains.minerals.domain_logic.models import (
    ElementCategory,
    ElementReference,
    ElementResult,
    MineralReading,
    MineralResult,
    ReferenceRange,
    Status,
    StatusPolicy,
)
from htma.domains.minerals.domain_logic.registry import (
    FUZZED_HIGH_MULTIPLIER,
    FUZZED_LOW_MULTIPLIER,
    MINERAL_RANGES,
    resolve_element,
)


def _num(val, default: float = 0.0) -> float:
    """Safely convert to float, returning default for None or non-numeric."""
    if val is None:
        return default
    try:
        return float(val)
    except (TypeError, ValueError, OverflowError):
        return default


def classify_fuzzed(value: float, min_ideal: float, max_ideal: float) -> Status:
    if value < min_ideal * FUZZED_LOW_MULTIPLIER:
        return Status.LOW
    if value > max_ideal * FUZZED_HIGH_MULTIPLIER:
        return Status.HIGH
    return Status.OPTIMAL


def classify_strict(value: float, min_ideal: float, max_ideal: float) -> Status:
    if value < min_ideal:
        return Status.LOW
    if value > max_ideal:
        return Status.HIGH
    return Status.OPTIMAL


_POLICIES: dict[StatusPolicy, Callable[[float, float, float], Status]] = {
    StatusPolicy.FUZZED: classify_fuzzed,
    StatusPolicy.STRICT: classify_strict,
}


def classify(
    value: float,
    min_ideal: float,
    max_ideal: float,
    policy: StatusPolicy = StatusPolicy.STRICT,
) -> Status:
    """Classify ``value`` against ``[min_ideal, max_ideal]`` under a named policy."""
    return _POLICIES[StatusPolicy(policy)](value, min_ideal, max_ideal)


# ---------------------------------------------------------------------------
# Ratios
# ---------------------------------------------------------------------------

def safe_ratio(numerator: float, denominator: float) -> float:
    """Divide, returning 0 when the denominator is 0."""
    if denominator == 0:
        return 0.0
    return numerator / denominator


def classify_ratio(value: float, min_ideal: float, max_ideal: float) -> Status:
    """Strict policy, with a zero ratio (guarded division) always Low."""
    if value == 0:
        return Status.LOW
    return classify_strict(value, min_ideal, max_ideal)


# ---------------------------------------------------------------------------
# Minerals
# ---------------------------------------------------------------------------

def classify_mineral(
    value: float,
    reference: ReferenceRange,
    policy: StatusPolicy = StatusPolicy.FUZZED,
) -> MineralResult:
    value = _num(value)
    return MineralResult(
        symbol=reference.symbol,
        name=reference.name,
        value=value,
        unit=reference.unit,
        min_ideal=reference.min_ideal,
        max_ideal=reference.max_ideal,
        status=classify(value, reference.min_ideal, reference.max_ideal, policy),
        policy=StatusPolicy(policy),
    )


def classify_minerals(
    values: Mapping[str, float],
    policy: StatusPolicy = StatusPolicy.FUZZED,
) -> tuple[MineralResult, ...]:
    """Classify all fifteen minerals in registry order. Missing values are 0."""
    return tuple(
        classify_mineral(values.get(ref.symbol, 0.0), ref, policy)
        for ref in MINERAL_RANGES
    )


# ---------------------------------------------------------------------------
# Toxic and additional elements
# ---------------------------------------------------------------------------

def classify_element(value: float, reference: ElementReference) -> ElementResult:
    """Strict status against ``0..reference_high``; no status without a limit."""
    value = _num(value)
    status = None
    if reference.reference_high is not None:
        status = classify_strict(value, 0.0, reference.reference_high)
    return ElementResult(
        symbol=reference.symbol,
        name=reference.name,
        category=reference.category,
        value=value,
        unit=reference.unit,
        reference_high=reference.reference_high,
        status=status,
    )


def classify_elements(
    elements: Sequence[MineralReading],
) -> tuple[tuple[ElementResult, ...], tuple[ElementResult, ...]]:
    """Split captured elements into (toxic, additional), each in display order."""
    resolved = [(resolve_element(reading.symbol), reading) for reading in elements]
    known = sorted(
        ((ref, reading) for ref, reading in resolved if ref is not None),
        key=lambda pair: pair[0].display_order,
    )
    toxic = tuple(
        classify_element(reading.value, ref)
        for ref, reading in known if ref.category is ElementCategory.TOXIC
    )
    additional = tuple(
        classify_element(reading.value, ref)
        for ref, reading in known if ref.category is ElementCategory.ADDITIONAL
    )
    return toxic, additional
