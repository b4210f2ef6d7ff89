"""MCP tools for single-panel and two-panel HTMA interpretation.

All computation is deterministic and local. Raw mineral values never reach
the audit trail; only a hash of the tool input is recorded.
"""

from __future__ import annotations

import json
import logging
import time
from typing import TYPE_CHECKING, Any

from fastmcp import Context, FastMCP

from htma.core.audit.logger import ACTION_ANALYSIS_CREATED
from htma.domains.minerals.domain_logic.analysis import analyze_panel
from htma.domains.minerals.domain_logic.models import to_jsonable
from htma.domains.minerals.domain_logic.oxidation import (
    classify_oxidation,
    confidence_description,
    oxidation_type_label,
)
from htma.domains.minerals.domain_logic.panel import parse_panel, parse_timestamp
from htma.domains.minerals.domain_logic.registry import SHORT_DISCLAIMER
from htma.domains.minerals.domain_logic.score_delta import explain_score_change as explain_delta
from htma.domains.minerals.domain_logic.versions import CURRENT_VERSIONS

if TYPE_CHECKING:
    from htma.core.audit.logger import AuditLogger

logger = logging.getLogger(__name__)


def _validate_minerals(value: Any, argument: str) -> dict[str, Any]:
    """Structural check only; individual values are parsed permissively."""
    if not isinstance(value, dict):
        raise ValueError(f"{argument} must be an object mapping mineral symbol -> value")
    return value


def register_panel_tools(
    mcp: FastMCP,
    audit_logger: AuditLogger | None = None,
) -> None:
    """Register panel analysis, oxidation and score-delta tools on the MCP server."""

    def _audit(tool_name: str, tool_input: Any, start_time: float, **kwargs: Any) -> None:
        if audit_logger is None:
            return
        audit_logger.log_tool_call(
            tool_name=tool_name,
            tool_input=tool_input,
            duration_ms=(time.monotonic() - start_time) * 1000,
            versions=CURRENT_VERSIONS.as_dict(),
            **kwargs,
        )

    @mcp.tool
    async def analyze_htma_panel(
        ctx: Context,
        minerals: dict[str, Any],
        taken_at: str | None = None,
        panel_id: str | None = None,
    ) -> str:
        """Interpret one hair tissue mineral analysis panel.

        Returns mineral statuses, the six ratios, the oxidation pattern, the
        0-100 health score with grade and red flags, and an interpretive
        confidence score. Missing or non-numeric values are scored as 0 and
        listed under ``panel.defaulted``. Optional toxic elements (Sb, As, Hg,
        Be, Cd, Pb, Al) and additional elements (Ge, Ba, Li, ...) are reported
        under ``toxic_elements`` and ``additional_elements`` and never scored.

        Args:
            minerals: Mineral values in mg%, keyed by symbol ("Ca") or name ("calcium").
            taken_at: Optional ISO 8601 sample date.
            panel_id: Optional caller reference for the panel.
        """
        start_time = time.monotonic()
        tool_input = {"minerals": minerals, "taken_at": taken_at, "panel_id": panel_id}
        try:
            panel = parse_panel(
                _validate_minerals(minerals, "minerals"),
                taken_at=parse_timestamp(taken_at),
                panel_id=panel_id,
            )
            analysis = analyze_panel(panel)
        except Exception as exc:
            _audit(
                "analyze_htma_panel", tool_input, start_time,
                status="failure", error_type=type(exc).__name__,
            )
            raise

        _audit(
            "analyze_htma_panel", tool_input, start_time,
            action=ACTION_ANALYSIS_CREATED,
            metadata={
                "grade": analysis.health_score.grade.value,
                "defaulted_count": len(panel.defaulted),
            },
        )
        result = to_jsonable(analysis)
        result["disclaimer"] = SHORT_DISCLAIMER
        return json.dumps(result, indent=2)

    @mcp.tool
    async def classify_oxidation_pattern(
        ctx: Context,
        calcium: float,
        magnesium: float,
        sodium: float,
        potassium: float,
    ) -> str:
        """Classify the metabolic oxidation pattern from Ca, Mg, Na and K.

        Returns fast, slow, mixed or balanced with a confidence level, the
        ratio signals behind it and any near-threshold warnings.

        Args:
            calcium: Calcium in mg%.
            magnesium: Magnesium in mg%.
            sodium: Sodium in mg%.
            potassium: Potassium in mg%.
        """
        start_time = time.monotonic()
        tool_input = {"Ca": calcium, "Mg": magnesium, "Na": sodium, "K": potassium}
        classification = classify_oxidation(calcium, magnesium, sodium, potassium)
        _audit(
            "classify_oxidation_pattern", tool_input, start_time,
            metadata={"insufficient_data": classification.insufficient_data},
        )

        result = to_jsonable(classification)
        result["label"] = oxidation_type_label(classification.type)
        result["confidence_description"] = confidence_description(classification.confidence)
        return json.dumps(result, indent=2)

    @mcp.tool
    async def explain_score_change(
        ctx: Context,
        previous: dict[str, Any],
        current: dict[str, Any],
        previous_taken_at: str | None = None,
        current_taken_at: str | None = None,
    ) -> str:
        """Explain why the health score moved between two panels.

        Ranks the minerals and ratios whose status changed, groups them into
        primary drivers, secondary contributors and offsetting factors, and
        describes the accompanying oxidation pattern shift.

        Args:
            previous: Older panel's mineral values (symbol -> mg%).
            current: Newer panel's mineral values (symbol -> mg%).
            previous_taken_at: Optional ISO 8601 date of the older panel.
            current_taken_at: Optional ISO 8601 date of the newer panel.
        """
        start_time = time.monotonic()
        tool_input = {
            "previous": previous,
            "current": current,
            "previous_taken_at": previous_taken_at,
            "current_taken_at": current_taken_at,
        }
        try:
            before = parse_panel(
                _validate_minerals(previous, "previous"),
                taken_at=parse_timestamp(previous_taken_at),
            )
            after = parse_panel(
                _validate_minerals(current, "current"),
                taken_at=parse_timestamp(current_taken_at),
            )
            explanation = explain_delta(before, after)
        except Exception as exc:
            _audit(
                "explain_score_change", tool_input, start_time,
                status="failure", error_type=type(exc).__name__,
            )
            raise

        _audit("explain_score_change", tool_input, start_time)

        if explanation is None:
            return json.dumps({
                "status": "unavailable",
                "message": (
                    "The current panel predates the previous panel. "
                    "Swap the panels to explain the change in chronological order."
                ),
            }, indent=2)

        return json.dumps({"status": "ok", **to_jsonable(explanation)}, indent=2)
