"""Reference range table comparison.

When a reference table is recalibrated, historical analyses keep the table
version they were computed with. These helpers describe what changed
between two tables and how a given reading would be reclassified.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from htma.domains.minerals.domain_logic.models import ReferenceRange, ReferenceRangeTable, Status
from htma.domains.minerals.domain_logic.status import classify_strict


class ImpactLevel(str, Enum):
    NONE = "none"
    MINOR = "minor"
    MODERATE = "moderate"
    MAJOR = "major"


class RangeChangeType(str, Enum):
    MIN_INCREASED = "min_increased"
    MIN_DECREASED = "min_decreased"
    MAX_INCREASED = "max_increased"
    MAX_DECREASED = "max_decreased"
    RANGE_WIDENED = "range_widened"
    RANGE_NARROWED = "range_narrowed"
    RANGE_SHIFTED = "range_shifted"
    UNCHANGED = "unchanged"


@dataclass(frozen=True)
class MineralComparison:
    symbol: str
    name: str
    changed: bool
    impact_level: ImpactLevel
    change_type: RangeChangeType | None = None   # None for added/removed minerals
    old_min: float | None = None
    new_min: float | None = None
    old_max: float | None = None
    new_max: float | None = None
    min_change_percent: float | None = None
    max_change_percent: float | None = None


@dataclass(frozen=True)
class TableComparison:
    from_version: str
    to_version: str
    total_changes: int
    minerals_changed: tuple[str, ...]
    changes: tuple[MineralComparison, ...]
    summary: str


@dataclass(frozen=True)
class RangeChangeImpact:
    symbol: str
    value: float
    old_status: Status
    new_status: Status
    status_changed: bool
    description: str


def detect_range_change(old: ReferenceRange, new: ReferenceRange) -> RangeChangeType:
    min_changed = old.min_ideal != new.min_ideal
    max_changed = old.max_ideal != new.max_ideal
    if not min_changed and not max_changed:
        return RangeChangeType.UNCHANGED
    if min_changed and not max_changed:
        return RangeChangeType.MIN_INCREASED if new.min_ideal > old.min_ideal else RangeChangeType.MIN_DECREASED
    if max_changed and not min_changed:
        return RangeChangeType.MAX_INCREASED if new.max_ideal > old.max_ideal else RangeChangeType.MAX_DECREASED

    old_width = old.max_ideal - old.min_ideal
    new_width = new.max_ideal - new.min_ideal
    if new_width > old_width:
        return RangeChangeType.RANGE_WIDENED
    if new_width < old_width:
        return RangeChangeType.RANGE_NARROWED
    return RangeChangeType.RANGE_SHIFTED


def _percent_change(old: float, new: float) -> float:
    if old == 0:
        return 0.0 if new == 0 else 100.0
    return (new - old) / old * 100


def _impact_level(largest_percent: float) -> ImpactLevel:
    if largest_percent >= 20:
        return ImpactLevel.MAJOR
    if largest_percent >= 10:
        return ImpactLevel.MODERATE
    return ImpactLevel.MINOR


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'s' if count != 1 else ''}"


def _summary(changes: tuple[MineralComparison, ...]) -> str:
    changed = [c for c in changes if c.changed]
    if not changed:
        return "No changes to reference ranges"
    parts = []
    for level in (ImpactLevel.MAJOR, ImpactLevel.MODERATE, ImpactLevel.MINOR):
        count = sum(1 for c in changed if c.impact_level is level)
        if count:
            parts.append(_plural(count, f"{level.value} change"))
    return f"{_plural(len(changed), 'total change')}: {', '.join(parts)}"


def compare_reference_tables(old: ReferenceRangeTable, new: ReferenceRangeTable) -> TableComparison:
    """Per-mineral differences from ``old`` to ``new``.

    Added or removed minerals are always major changes.
    """
    old_ranges = {r.symbol: r for r in old.minerals}
    new_ranges = {r.symbol: r for r in new.minerals}
    changes: list[MineralComparison] = []

    for symbol, new_range in new_ranges.items():
        old_range = old_ranges.get(symbol)
        if old_range is None:
            changes.append(MineralComparison(
                symbol=symbol,
                name=new_range.name,
                changed=True,
                impact_level=ImpactLevel.MAJOR,
                new_min=new_range.min_ideal,
                new_max=new_range.max_ideal,
            ))
            continue

        change_type = detect_range_change(old_range, new_range)
        if change_type is RangeChangeType.UNCHANGED:
            changes.append(MineralComparison(
                symbol=symbol,
                name=new_range.name,
                changed=False,
                impact_level=ImpactLevel.NONE,
                change_type=change_type,
            ))
            continue

        min_pct = _percent_change(old_range.min_ideal, new_range.min_ideal)
        max_pct = _percent_change(old_range.max_ideal, new_range.max_ideal)
        changes.append(MineralComparison(
            symbol=symbol,
            name=new_range.name,
            changed=True,
            impact_level=_impact_level(max(abs(min_pct), abs(max_pct))),
            change_type=change_type,
            old_min=old_range.min_ideal,
            new_min=new_range.min_ideal,
            old_max=old_range.max_ideal,
            new_max=new_range.max_ideal,
            min_change_percent=round(min_pct, 2),
            max_change_percent=round(max_pct, 2),
        ))

    for symbol, old_range in old_ranges.items():
        if symbol not in new_ranges:
            changes.append(MineralComparison(
                symbol=symbol,
                name=old_range.name,
                changed=True,
                impact_level=ImpactLevel.MAJOR,
                old_min=old_range.min_ideal,
                old_max=old_range.max_ideal,
            ))

    result = tuple(changes)
    changed_symbols = tuple(c.symbol for c in result if c.changed)
    return TableComparison(
        from_version=old.version,
        to_version=new.version,
        total_changes=len(changed_symbols),
        minerals_changed=changed_symbols,
        changes=result,
        summary=_summary(result),
    )


def analyze_range_change_impact(
    symbol: str,
    value: float,
    old: ReferenceRange,
    new: ReferenceRange,
) -> RangeChangeImpact:
    """How one reading's strict-band status changes under a new range."""
    old_status = classify_strict(value, old.min_ideal, old.max_ideal)
    new_status = classify_strict(value, new.min_ideal, new.max_ideal)
    changed = old_status is not new_status
    if changed:
        description = (
            f"Status changed from {old_status.value.lower()} to {new_status.value.lower()} "
            "due to updated reference ranges"
        )
    else:
        description = f"Status remains {old_status.value.lower()} under both versions"
    return RangeChangeImpact(
        symbol=symbol,
        value=value,
        old_status=old_status,
        new_status=new_status,
        status_changed=changed,
        description=description,
    )
