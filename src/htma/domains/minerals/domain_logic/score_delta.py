"""Score delta explainer: why the health score moved between two panels.

A mineral contributes +/-4 and a ratio +/-5 only when its status crosses
into or out of Optimal; Low <-> High moves are reported with impact 0.
Changed indicators are ranked by absolute impact and sorted into primary
drivers, secondary contributors and offsetting factors.
"""

from __future__ import annotations

import logging

from htma.domains.minerals.domain_logic.health_score import calculate_health_score
from htma.domains.minerals.domain_logic.models import (
    DeltaDirection,
    DriverKind,
    HealthScoreBreakdown,
    HTMAPanel,
    ScoreComponentDelta,
    ScoreDeltaExplanation,
    ScoreDriver,
    Status,
    StatusPolicy,
)
from htma.domains.minerals.domain_logic.oxidation import classify_panel_oxidation
from htma.domains.minerals.domain_logic.oxidation_delta import analyze_oxidation_delta
from htma.domains.minerals.domain_logic.ratio_engine import calculate_all_ratios
from htma.domains.minerals.domain_logic.registry import MINERAL_POINTS, RATIO_POINTS
from htma.domains.minerals.domain_logic.status import classify_minerals
from htma.domains.minerals.domain_logic.versions import CURRENT_VERSIONS, EngineVersions

logger = logging.getLogger(__name__)

# Score changes within +/-2 are treated as noise
DIRECTION_DEAD_ZONE = 2
TOP_DRIVER_COUNT = 6
MINIMAL_CHANGES_DRIVER = "Minimal changes across all minerals and ratios"


def _direction(delta: int) -> DeltaDirection:
    if delta > DIRECTION_DEAD_ZONE:
        return DeltaDirection.IMPROVED
    if delta < -DIRECTION_DEAD_ZONE:
        return DeltaDirection.DECLINED
    return DeltaDirection.UNCHANGED


def _impact(before: Status, after: Status, points: int) -> int:
    if before is after:
        return 0
    if after is Status.OPTIMAL:
        return points
    if before is Status.OPTIMAL:
        return -points
    return 0


def collect_drivers(previous: HTMAPanel, current: HTMAPanel) -> tuple[ScoreDriver, ...]:
    """Every mineral/ratio whose status changed, ranked by absolute impact.

    The sort is stable, so equal impacts keep registry order (minerals first).
    """
    drivers: list[ScoreDriver] = []

    before_minerals = classify_minerals(previous.values, StatusPolicy.FUZZED)
    after_minerals = classify_minerals(current.values, StatusPolicy.FUZZED)
    for before, after in zip(before_minerals, after_minerals):
        if before.status is after.status:
            continue
        drivers.append(ScoreDriver(
            kind=DriverKind.MINERAL,
            key=after.symbol,
            name=after.name,
            from_status=before.status,
            to_status=after.status,
            impact=_impact(before.status, after.status, MINERAL_POINTS),
            description=f"{after.name}: {before.status.value} → {after.status.value}",
        ))

    before_ratios = calculate_all_ratios(previous.values)
    after_ratios = calculate_all_ratios(current.values)
    for before, after in zip(before_ratios, after_ratios):
        if before.status is after.status:
            continue
        drivers.append(ScoreDriver(
            kind=DriverKind.RATIO,
            key=after.name,
            name=after.name,
            from_status=before.status,
            to_status=after.status,
            impact=_impact(before.status, after.status, RATIO_POINTS),
            description=f"{after.name} ratio: {before.status.value} → {after.status.value}",
        ))

    drivers.sort(key=lambda d: abs(d.impact), reverse=True)
    return tuple(drivers)


def categorize_drivers(
    drivers: tuple[ScoreDriver, ...],
    direction: DeltaDirection,
) -> tuple[tuple[str, ...], tuple[str, ...], tuple[str, ...]]:
    """Split ranked drivers into (primary, secondary, offsetting) descriptions."""
    primary: list[str] = []
    secondary: list[str] = []
    offsetting: list[str] = []

    for index, driver in enumerate(drivers):
        magnitude = abs(driver.impact)
        matches = (
            (direction is DeltaDirection.IMPROVED and driver.impact > 0)
            or (direction is DeltaDirection.DECLINED and driver.impact < 0)
        )
        if index < 3 and matches and magnitude >= 4:
            primary.append(driver.description)
        elif index < 6 and matches and magnitude >= 2:
            secondary.append(driver.description)
        elif not matches and magnitude >= 3:
            offsetting.append(driver.description)

    if not drivers:
        primary.append(MINIMAL_CHANGES_DRIVER)
    elif not primary:
        top = drivers[0].description
        primary.append(top)
        if top in offsetting:
            offsetting.remove(top)

    return tuple(primary), tuple(secondary), tuple(offsetting)


def _headline(delta: int) -> str:
    if delta >= 1:
        return f"Health Score improved by +{delta}"
    if delta <= -1:
        return f"Health Score declined by {delta}"
    return "Health Score stayed about the same"


def _summary(drivers: tuple[ScoreDriver, ...], delta: int) -> str:
    improved = [d for d in drivers if d.impact > 0][:2]
    worsened = [d for d in drivers if d.impact < 0][:1]

    parts = []
    if improved:
        parts.append(
            "Main improvements: "
            + ", ".join(f"{d.key} moved toward optimal" for d in improved)
            + "."
        )
    if worsened:
        parts.append(f"Main limiter: {worsened[0].key} moved away from optimal.")
    if not parts:
        parts.append("No major drivers detected; changes were small across minerals/ratios.")
    parts.append(f"Net change: {'+' if delta >= 0 else ''}{delta} points.")
    return " ".join(parts)


def explain_score_change(
    previous: HTMAPanel,
    current: HTMAPanel,
    *,
    previous_score: HealthScoreBreakdown | None = None,
    current_score: HealthScoreBreakdown | None = None,
    versions: EngineVersions = CURRENT_VERSIONS,
) -> ScoreDeltaExplanation | None:
    """Explain the health score change from ``previous`` to ``current``.

    Args:
        previous: The older panel.
        current: The newer panel.
        previous_score: Precomputed breakdown for ``previous`` (recomputed if absent).
        current_score: Precomputed breakdown for ``current`` (recomputed if absent).
        versions: Version tags stamped on the result.

    Returns:
        ``ScoreDeltaExplanation``, or None when both panels are timestamped
        and ``current`` predates ``previous``.
    """
    if (
        previous.taken_at is not None
        and current.taken_at is not None
        and current.taken_at < previous.taken_at
    ):
        logger.warning(
            "Score delta unavailable: current panel (%s) predates previous panel (%s)",
            current.taken_at.isoformat(),
            previous.taken_at.isoformat(),
        )
        return None

    before = previous_score or calculate_health_score(previous.values, versions=versions)
    after = current_score or calculate_health_score(current.values, versions=versions)

    delta = after.total_score - before.total_score
    direction = _direction(delta)
    drivers = collect_drivers(previous, current)
    primary, secondary, offsetting = categorize_drivers(drivers, direction)

    oxidation_delta = analyze_oxidation_delta(
        classify_panel_oxidation(previous.values, versions=versions),
        classify_panel_oxidation(current.values, versions=versions),
        versions=versions,
    )

    return ScoreDeltaExplanation(
        score_delta=delta,
        direction=direction,
        previous_score=before.total_score,
        current_score=after.total_score,
        primary_drivers=primary,
        secondary_contributors=secondary,
        offsetting_factors=offsetting,
        top_drivers=drivers[:TOP_DRIVER_COUNT],
        all_drivers=drivers,
        breakdown=ScoreComponentDelta(
            mineral_score_delta=after.mineral_score - before.mineral_score,
            ratio_score_delta=after.ratio_score - before.ratio_score,
            red_flag_score_delta=after.red_flag_score - before.red_flag_score,
        ),
        headline=_headline(delta),
        summary=_summary(drivers, delta),
        oxidation_delta=oxidation_delta,
        versions=versions,
    )
