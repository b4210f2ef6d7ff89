"""Health score calculator: weighted 0-100 mineral balance score.

Components:
  minerals  (0-60)  4 points per mineral Optimal under the fuzzed policy
  ratios    (0-30)  5 points per ratio Optimal under the strict policy
  red flags (0-10)  10 minus penalties for severe findings, floored at 0

The calculator is total: missing values are 0 and nothing raises.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping, Sequence
from typing import Any

from htma.domains.minerals.domain_logic.models import (
    Grade,
    HealthScoreBreakdown,
    MineralResult,
    RatioResult,
    RedFlag,
    RedFlagKind,
    Status,
    StatusCounts,
    StatusPolicy,
)
from htma.domains.minerals.domain_logic.ratio_engine import calculate_all_ratios
from htma.domains.minerals.domain_logic.registry import (
    CRITICAL_RATIO_BOUNDS,
    CRITICAL_RATIO_PENALTY,
    GRADE_BANDS,
    MINERAL_POINTS,
    MINERAL_RANGES,
    RATIO_POINTS,
    RED_FLAG_POOL,
    SEVERE_DEFICIENCY_MULTIPLIER,
    SEVERE_EXCESS_MULTIPLIER,
    SEVERE_MINERAL_PENALTY,
)
from htma.domains.minerals.domain_logic.status import classify_minerals
from htma.domains.minerals.domain_logic.versions import CURRENT_VERSIONS, EngineVersions

logger = logging.getLogger(__name__)


def _num(val, default: float = 0.0) -> float:
    """Safely convert to a finite float, returning default otherwise."""
    if val is None:
        return default
    try:
        value = float(val)
    except (TypeError, ValueError, OverflowError):
        return default
    return value if math.isfinite(value) else default


def _clamp(value: int, lo: int = 0, hi: int = 100) -> int:
    """Clamp a value to [lo, hi]."""
    return max(lo, min(hi, value))


# ---------------------------------------------------------------------------
# Grades
# ---------------------------------------------------------------------------

def grade_for(total_score: float) -> Grade:
    for grade, floor, _ in GRADE_BANDS:
        if total_score >= floor:
            return grade
    return Grade.F


def grade_interpretation(grade: Grade) -> str:
    for band_grade, _, interpretation in GRADE_BANDS:
        if band_grade is Grade(grade):
            return interpretation
    return GRADE_BANDS[-1][2]


# ---------------------------------------------------------------------------
# Red flags
# ---------------------------------------------------------------------------

def detect_red_flags(
    values: Mapping[str, Any],
    ratios: Sequence[RatioResult],
) -> tuple[RedFlag, ...]:
    """Severe mineral deviations and critical ratio imbalances, in registry order."""
    flags: list[RedFlag] = []

    for ref in MINERAL_RANGES:
        value = values.get(ref.symbol) or 0.0
        if value < ref.min_ideal * SEVERE_DEFICIENCY_MULTIPLIER:
            flags.append(RedFlag(
                kind=RedFlagKind.SEVERE_DEFICIENCY,
                subject=ref.symbol,
                penalty=SEVERE_MINERAL_PENALTY,
                message=f"Severe {ref.name} deficiency",
            ))
        elif value > ref.max_ideal * SEVERE_EXCESS_MULTIPLIER:
            flags.append(RedFlag(
                kind=RedFlagKind.SEVERE_EXCESS,
                subject=ref.symbol,
                penalty=SEVERE_MINERAL_PENALTY,
                message=f"Severe {ref.name} excess",
            ))

    by_name = {r.name: r for r in ratios}
    for name, (below, above) in CRITICAL_RATIO_BOUNDS.items():
        ratio = by_name.get(name)
        if ratio is None:
            continue
        if ratio.value > above or ratio.value < below:
            flags.append(RedFlag(
                kind=RedFlagKind.CRITICAL_RATIO,
                subject=name,
                penalty=CRITICAL_RATIO_PENALTY,
                message=f"Critical {name} imbalance",
            ))

    return tuple(flags)


def _status_counts(
    minerals: Sequence[MineralResult],
    ratios: Sequence[RatioResult],
) -> StatusCounts:
    return StatusCounts(
        minerals_optimal=sum(1 for m in minerals if m.status is Status.OPTIMAL),
        minerals_low=sum(1 for m in minerals if m.status is Status.LOW),
        minerals_high=sum(1 for m in minerals if m.status is Status.HIGH),
        ratios_optimal=sum(1 for r in ratios if r.status is Status.OPTIMAL),
        ratios_low=sum(1 for r in ratios if r.status is Status.LOW),
        ratios_high=sum(1 for r in ratios if r.status is Status.HIGH),
    )


# ---------------------------------------------------------------------------
# Score
# ---------------------------------------------------------------------------

def calculate_health_score(
    values: Mapping[str, Any],
    *,
    versions: EngineVersions = CURRENT_VERSIONS,
) -> HealthScoreBreakdown:
    """Score one panel's values (e.g. ``HTMAPanel.values``).

    Args:
        values: Mineral symbol -> value. Missing symbols count as 0.
        versions: Version tags stamped on the result.

    Returns:
        ``HealthScoreBreakdown`` with components, grade and red flags.
    """
    numeric = {ref.symbol: _num(values.get(ref.symbol)) for ref in MINERAL_RANGES}
    minerals = classify_minerals(numeric, StatusPolicy.FUZZED)
    ratios = calculate_all_ratios(numeric, versions=versions)

    mineral_score = MINERAL_POINTS * sum(1 for m in minerals if m.status is Status.OPTIMAL)
    ratio_score = RATIO_POINTS * sum(1 for r in ratios if r.status is Status.OPTIMAL)

    red_flags = detect_red_flags(numeric, ratios)
    penalty = sum(flag.penalty for flag in red_flags)
    red_flag_score = max(0, RED_FLAG_POOL - penalty)

    total = _clamp(mineral_score + ratio_score + red_flag_score)
    grade = grade_for(total)
    logger.debug(
        "Health score %d (minerals %d, ratios %d, red flags %d) grade %s",
        total,
        mineral_score,
        ratio_score,
        red_flag_score,
        grade.value,
    )

    return HealthScoreBreakdown(
        total_score=total,
        mineral_score=mineral_score,
        ratio_score=ratio_score,
        red_flag_score=red_flag_score,
        grade=grade,
        interpretation=grade_interpretation(grade),
        status_counts=_status_counts(minerals, ratios),
        red_flags=red_flags,
        critical_issues=tuple(flag.message for flag in red_flags),
        versions=versions,
    )
