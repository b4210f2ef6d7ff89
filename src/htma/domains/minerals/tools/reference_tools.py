"""MCP tools exposing the reference ranges in force and comparing recalibrations."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from fastmcp import Context, FastMCP

from htma.core.audit.logger import ACTION_REFERENCE_ACCESS
from htma.domains.minerals.domain_logic.models import (
    DefaultedValue,
    ReferenceRangeTable,
    to_jsonable,
)
from htma.domains.minerals.domain_logic.panel import parse_value, resolve_symbol
from htma.domains.minerals.domain_logic.range_versions import (
    analyze_range_change_impact,
    compare_reference_tables,
)
from htma.domains.minerals.domain_logic.registry import (
    ADDITIONAL_ELEMENT_REFERENCES,
    CRITICAL_RATIO_BOUNDS,
    GRADE_BANDS,
    OXIDATION_MINERAL_RANGES,
    OXIDATION_RATIO_THRESHOLDS,
    SHORT_DISCLAIMER,
    TEI_REFERENCE_TABLE,
    TOXIC_ELEMENT_REFERENCES,
)
from htma.domains.minerals.domain_logic.versions import CURRENT_VERSIONS

if TYPE_CHECKING:
    from htma.core.audit.logger import AuditLogger

logger = logging.getLogger(__name__)


def _proposed_table(proposed: Any, version: str) -> ReferenceRangeTable:
    """Current table with the proposed ``{"Ca": {"min": .., "max": ..}}`` bands applied.

    Raises:
        ValueError: On an unknown mineral or a band that is not two numbers with min <= max.
    """
    if not isinstance(proposed, dict) or not proposed:
        raise ValueError("proposed must be a non-empty object of symbol -> {min, max}")
    bands: dict[str, tuple[float, float]] = {}
    for key, band in proposed.items():
        symbol = resolve_symbol(str(key))
        if symbol is None:
            raise ValueError(f"Unknown mineral {key!r}")
        if not isinstance(band, dict):
            raise ValueError(f"{symbol}: band must be an object with min and max")
        low = parse_value(band.get("min"))
        high = parse_value(band.get("max"))
        if isinstance(low, DefaultedValue) or isinstance(high, DefaultedValue):
            raise ValueError(f"{symbol}: min and max must be finite numbers")
        if low.value > high.value:
            raise ValueError(f"{symbol}: min {low.value:g} exceeds max {high.value:g}")
        bands[symbol] = (low.value, high.value)

    minerals = tuple(
        replace(ref, min_ideal=bands[ref.symbol][0], max_ideal=bands[ref.symbol][1])
        if ref.symbol in bands else ref
        for ref in TEI_REFERENCE_TABLE.minerals
    )
    return replace(TEI_REFERENCE_TABLE, version=version, minerals=minerals)


def register_reference_tools(
    mcp: FastMCP,
    audit_logger: AuditLogger | None = None,
) -> None:
    """Register reference registry tools on the MCP server."""

    @mcp.tool
    async def reference_ranges(ctx: Context) -> str:
        """List the ideal mineral and ratio ranges every result is judged against.

        Includes the display-only toxic and additional elements, the grade
        bands, critical ratio bounds, oxidation thresholds and the version
        tags stamped on results computed with these ranges.
        """
        start_time = time.monotonic()
        table = TEI_REFERENCE_TABLE
        payload = {
            "status": "ok",
            "table": {
                "name": table.name,
                "standard": table.standard,
                "version": table.version,
            },
            "minerals": to_jsonable(table.minerals),
            "ratios": to_jsonable(table.ratios),
            "toxic_elements": to_jsonable(TOXIC_ELEMENT_REFERENCES),
            "additional_elements": to_jsonable(ADDITIONAL_ELEMENT_REFERENCES),
            "grades": [
                {"grade": grade.value, "min_score": floor, "interpretation": text}
                for grade, floor, text in GRADE_BANDS
            ],
            "critical_ratio_bounds": {
                name: {"critical_below": low, "critical_above": high}
                for name, (low, high) in CRITICAL_RATIO_BOUNDS.items()
            },
            "oxidation": {
                "mineral_ranges": to_jsonable(OXIDATION_MINERAL_RANGES),
                "ratio_thresholds": {
                    key: {
                        "label": label,
                        "fast_cutoff": fast,
                        "slow_cutoff": slow,
                        "role": role,
                    }
                    for key, (label, _, _, fast, slow, role) in OXIDATION_RATIO_THRESHOLDS.items()
                },
            },
            "versions": CURRENT_VERSIONS.as_dict(),
            "disclaimer": SHORT_DISCLAIMER,
        }

        if audit_logger is not None:
            audit_logger.log_tool_call(
                tool_name="reference_ranges",
                action=ACTION_REFERENCE_ACCESS,
                duration_ms=(time.monotonic() - start_time) * 1000,
                versions=CURRENT_VERSIONS.as_dict(),
            )

        return json.dumps(payload, indent=2)

    @mcp.tool
    async def compare_reference_ranges(
        ctx: Context,
        proposed: dict[str, Any],
        version: str = "proposed",
        minerals: dict[str, Any] | None = None,
    ) -> str:
        """Compare a proposed recalibration against the reference ranges in force.

        Reports, per mineral, how the ideal band moved and how large the move
        is. When readings are supplied, also reports whether each reading of
        a changed mineral would be classified differently under the new band.

        Args:
            proposed: Replacement bands keyed by symbol or name, e.g.
                ``{"Ca": {"min": 38, "max": 45}}``. Unlisted minerals keep their band.
            version: Version label for the proposed table.
            minerals: Optional readings in mg% to check for reclassification.
        """
        start_time = time.monotonic()
        tool_input = {"proposed": proposed, "version": version, "minerals": minerals}
        try:
            current = TEI_REFERENCE_TABLE
            candidate = _proposed_table(proposed, version)
            comparison = compare_reference_tables(current, candidate)
            impacts = []
            for key, raw in (minerals or {}).items():
                symbol = resolve_symbol(str(key))
                if symbol is None or symbol not in comparison.minerals_changed:
                    continue
                parsed = parse_value(raw, symbol=symbol)
                if isinstance(parsed, DefaultedValue):
                    continue
                impacts.append(analyze_range_change_impact(
                    symbol, parsed.value, current.mineral(symbol), candidate.mineral(symbol),
                ))
        except Exception as exc:
            if audit_logger is not None:
                audit_logger.log_tool_call(
                    tool_name="compare_reference_ranges",
                    tool_input=tool_input,
                    action=ACTION_REFERENCE_ACCESS,
                    duration_ms=(time.monotonic() - start_time) * 1000,
                    versions=CURRENT_VERSIONS.as_dict(),
                    status="failure",
                    error_type=type(exc).__name__,
                )
            raise

        logger.info(
            "Compared reference table %s -> %s: %d change(s)",
            comparison.from_version, comparison.to_version, comparison.total_changes,
        )
        if audit_logger is not None:
            audit_logger.log_tool_call(
                tool_name="compare_reference_ranges",
                tool_input=tool_input,
                action=ACTION_REFERENCE_ACCESS,
                duration_ms=(time.monotonic() - start_time) * 1000,
                versions=CURRENT_VERSIONS.as_dict(),
                metadata={"total_changes": comparison.total_changes},
            )

        payload = to_jsonable(comparison)
        payload["status"] = "ok"
        payload["status_impacts"] = to_jsonable(impacts)
        return json.dumps(payload, indent=2)
