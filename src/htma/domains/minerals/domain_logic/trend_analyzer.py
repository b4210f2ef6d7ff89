"""Longitudinal trend analysis across three or more HTMA panels.

Overall direction comes from the total score change and the signs of the
period-over-period deltas. Per-mineral direction compares each mineral's
distance from its ideal band across the two most recent panels; the
secondary pattern label looks at the whole history.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from htma.domains.minerals.domain_logic.health_score import calculate_health_score
from htma.domains.minerals.domain_logic.models import (
    HealthScoreBreakdown,
    HTMAPanel,
    MineralPattern,
    MineralTrend,
    ReferenceRange,
    TrendDirection,
    TrendExplanation,
    TrendOverall,
    TrendStrength,
    TrendTimespan,
)
from htma.domains.minerals.domain_logic.registry import MINERAL_RANGES
from htma.domains.minerals.domain_logic.versions import CURRENT_VERSIONS, EngineVersions

logger = logging.getLogger(__name__)

MIN_PANELS = 3
STABLE_SCORE_CHANGE = 3         # |total change| below this is stable
VOLATILE_SCORE_CHANGE = 8       # mixed-sign deltas below this are volatile
VOLATILE_SWING = 8              # a rise and a fall both at least this large are volatile
DISTANCE_TOLERANCE = 0.01       # band-distance change treated as no change
MAX_INSIGHTS = 5

_HEADLINE_TEXT = {
    TrendDirection.IMPROVING: "improving steadily",
    TrendDirection.STABLE: "remaining stable",
    TrendDirection.DECLINING: "showing decline",
    TrendDirection.VOLATILE: "fluctuating",
}


# ---------------------------------------------------------------------------
# Overall score trend
# ---------------------------------------------------------------------------

def _strength(avg_change: float) -> TrendStrength:
    magnitude = abs(avg_change)
    if magnitude < 2.5:
        return TrendStrength.WEAK
    if magnitude < 7.5:
        return TrendStrength.MODERATE
    return TrendStrength.STRONG


def score_trend(scores: Sequence[int]) -> TrendOverall:
    """Direction, strength and consistency of a chronological score series."""
    deltas = [b - a for a, b in zip(scores, scores[1:])]
    total = scores[-1] - scores[0]
    avg = sum(deltas) / len(deltas) if deltas else 0.0
    positive = sum(1 for d in deltas if d > 0)
    negative = sum(1 for d in deltas if d < 0)
    # Smaller of the largest rise and the largest fall; 0 unless signs are mixed.
    swing = min(max(deltas), -min(deltas)) if positive and negative else 0

    if swing >= VOLATILE_SWING:
        direction = TrendDirection.VOLATILE
    elif abs(total) < STABLE_SCORE_CHANGE:
        direction = TrendDirection.STABLE
    elif positive and negative and abs(total) < VOLATILE_SCORE_CHANGE:
        direction = TrendDirection.VOLATILE
    elif total > 0:
        direction = TrendDirection.IMPROVING
    else:
        direction = TrendDirection.DECLINING

    if not deltas:
        consistency = 1.0
    elif direction is TrendDirection.IMPROVING:
        consistency = positive / len(deltas)
    elif direction is TrendDirection.DECLINING:
        consistency = negative / len(deltas)
    elif direction is TrendDirection.STABLE:
        consistency = sum(1 for d in deltas if abs(d) < STABLE_SCORE_CHANGE) / len(deltas)
    else:
        consistency = max(positive, negative) / len(deltas)

    return TrendOverall(
        direction=direction,
        strength=_strength(
            sum(abs(d) for d in deltas) / len(deltas)
            if direction is TrendDirection.VOLATILE else avg
        ),
        consistency=round(consistency, 2),
        score_delta=total,
        avg_change_per_period=round(avg, 1),
    )


# ---------------------------------------------------------------------------
# Mineral trends
# ---------------------------------------------------------------------------

def band_distance(value: float, reference: ReferenceRange) -> float:
    """Relative distance outside the ideal band; 0 inside it."""
    if value < reference.min_ideal:
        return (reference.min_ideal - value) / reference.min_ideal
    if value > reference.max_ideal:
        return (value - reference.max_ideal) / reference.max_ideal
    return 0.0


def _step(before: float, after: float) -> int:
    """-1 moved closer to band, +1 moved further, 0 unchanged."""
    change = after - before
    if change < -DISTANCE_TOLERANCE:
        return -1
    if change > DISTANCE_TOLERANCE:
        return 1
    return 0


def _pattern(steps: Sequence[int]) -> MineralPattern:
    moving = [s for s in steps if s != 0]
    if not moving or all(s == moving[0] for s in moving):
        return MineralPattern.CONSISTENT
    midpoint = len(steps) // 2
    first_improving = sum(1 for s in steps[:midpoint] if s < 0)
    second_improving = sum(1 for s in steps[midpoint:] if s < 0)
    if first_improving > second_improving:
        return MineralPattern.IMPROVING_THEN_DECLINING
    if second_improving > first_improving:
        return MineralPattern.DECLINING_THEN_IMPROVING
    return MineralPattern.ERRATIC


def mineral_trend(reference: ReferenceRange, values: Sequence[float]) -> MineralTrend:
    distances = [band_distance(v, reference) for v in values]
    steps = [_step(a, b) for a, b in zip(distances, distances[1:])]
    latest = steps[-1] if steps else 0

    if latest < 0:
        direction = TrendDirection.IMPROVING
        note = f"{reference.name} moved closer to its ideal range"
    elif latest > 0:
        direction = TrendDirection.DECLINING
        note = f"{reference.name} moved further from its ideal range"
    else:
        direction = TrendDirection.STABLE
        if distances and distances[-1] == 0:
            note = f"{reference.name} held within its ideal range"
        else:
            note = f"{reference.name} held steady relative to its ideal range"

    pattern = _pattern(steps)
    if pattern is not MineralPattern.CONSISTENT:
        note += f" ({pattern.value.replace('-', ' ')} across {len(values)} analyses)"

    return MineralTrend(
        symbol=reference.symbol,
        name=reference.name,
        direction=direction,
        pattern=pattern,
        note=note,
    )


def _priority(trend: MineralTrend) -> int:
    if trend.direction is TrendDirection.DECLINING:
        return 0
    if trend.pattern is not MineralPattern.CONSISTENT:
        return 1
    if trend.direction is TrendDirection.IMPROVING:
        return 2
    return 3


# ---------------------------------------------------------------------------
# Text
# ---------------------------------------------------------------------------

def _names(trends: Sequence[MineralTrend], direction: TrendDirection, limit: int = 3) -> list[str]:
    return [t.name for t in trends if t.direction is direction][:limit]


def _summary(overall: TrendOverall, trends: Sequence[MineralTrend]) -> str:
    avg = abs(overall.avg_change_per_period)
    if overall.direction is TrendDirection.IMPROVING:
        summary = (
            f"Your health score has improved by {abs(overall.score_delta)} points, "
            f"with an average gain of {avg:.1f} points per test."
        )
        improving = _names(trends, TrendDirection.IMPROVING)
        if improving:
            summary += f" Key improvements: {', '.join(improving)}."
        return summary
    if overall.direction is TrendDirection.DECLINING:
        summary = (
            f"Your health score has declined by {abs(overall.score_delta)} points, "
            f"with an average decrease of {avg:.1f} points per test."
        )
        declining = _names(trends, TrendDirection.DECLINING)
        if declining:
            summary += f" Areas needing attention: {', '.join(declining)}."
        return summary
    if overall.direction is TrendDirection.STABLE:
        return (
            f"Your health score has remained relatively stable ({overall.score_delta} point change). "
            "This consistency suggests the current mineral balance is being maintained."
        )
    return (
        f"Your health score has shown volatility, changing by an average of {avg:.1f} "
        "points between tests. This variability may reflect recent protocol or lifestyle changes."
    )


def _insights(overall: TrendOverall, trends: Sequence[MineralTrend]) -> tuple[str, ...]:
    pct = f"{overall.consistency * 100:.0f}%"
    if overall.direction is TrendDirection.IMPROVING:
        label = "Strong" if overall.consistency >= 0.8 else "Moderate"
        insights = [f"Consistent improvement: {label} upward trajectory with {pct} consistency"]
    elif overall.direction is TrendDirection.DECLINING:
        insights = [f"Declining trend: {pct} of tests showed decrease"]
    elif overall.direction is TrendDirection.STABLE:
        insights = [f"Maintained balance: Score variance within {abs(overall.score_delta)} points"]
    else:
        insights = [f"Volatile pattern: Score fluctuated with {pct} directional consistency"]

    improving = _names(trends, TrendDirection.IMPROVING)
    if improving:
        insights.append(f"Improving minerals: {', '.join(improving)}")
    declining = _names(trends, TrendDirection.DECLINING)
    if declining:
        insights.append(f"Declining minerals: {', '.join(declining)}")
    fluctuating = [t.name for t in trends if t.pattern is not MineralPattern.CONSISTENT][:2]
    if fluctuating:
        insights.append(f"Fluctuating: {', '.join(fluctuating)} showing variable patterns")
    if overall.direction is not TrendDirection.STABLE:
        insights.append(
            f"Average change: {abs(overall.avg_change_per_period):.1f} points per test period"
        )
    return tuple(insights[:MAX_INSIGHTS])


def _timespan(panels: Sequence[HTMAPanel]) -> TrendTimespan:
    first, last = panels[0].taken_at, panels[-1].taken_at
    stamps = [p.taken_at for p in panels]
    avg_days = None
    if all(s is not None for s in stamps):
        gaps = [(b - a).total_seconds() / 86400 for a, b in zip(stamps, stamps[1:])]
        avg_days = round(sum(gaps) / len(gaps))
    return TrendTimespan(
        first_date=first.isoformat() if first else None,
        last_date=last.isoformat() if last else None,
        period_count=len(panels) - 1,
        avg_days_between=avg_days,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def analyze_trends(
    panels: Sequence[HTMAPanel],
    *,
    scores: Sequence[HealthScoreBreakdown] | None = None,
    versions: EngineVersions = CURRENT_VERSIONS,
) -> TrendExplanation | None:
    """Analyze a history of panels, oldest first.

    Args:
        panels: Three or more panels. When every panel carries ``taken_at``
            they are sorted chronologically; otherwise the given order is used.
        scores: Precomputed breakdowns aligned with ``panels`` (recomputed if absent).
        versions: Version tags stamped on the result.

    Returns:
        ``TrendExplanation``, or None with fewer than three panels.
    """
    if len(panels) < MIN_PANELS:
        logger.debug("Trend analysis needs %d panels, got %d", MIN_PANELS, len(panels))
        return None

    if scores is not None and len(scores) != len(panels):
        logger.warning("Ignoring %d precomputed scores for %d panels", len(scores), len(panels))
        scores = None
    paired = list(zip(panels, scores or [None] * len(panels)))
    if all(p.taken_at is not None for p in panels):
        paired.sort(key=lambda item: item[0].taken_at)

    ordered = [p for p, _ in paired]
    totals = [
        (s or calculate_health_score(p.values, versions=versions)).total_score
        for p, s in paired
    ]

    overall = score_trend(totals)
    trends = sorted(
        (mineral_trend(ref, [p.value(ref.symbol) for p in ordered]) for ref in MINERAL_RANGES),
        key=_priority,
    )

    return TrendExplanation(
        overall=overall,
        headline=f"Health Score {_HEADLINE_TEXT[overall.direction]} over {len(ordered)} analyses",
        summary=_summary(overall, trends),
        key_insights=_insights(overall, trends),
        mineral_trends=tuple(trends),
        timespan=_timespan(ordered),
        versions=versions,
    )
