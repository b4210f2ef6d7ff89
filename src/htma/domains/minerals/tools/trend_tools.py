"""MCP tools for longitudinal HTMA trend analysis."""

from __future__ import annotations

import json
import logging
import time
from typing import TYPE_CHECKING, Any

from fastmcp import Context, FastMCP

from htma.domains.minerals.domain_logic.models import to_jsonable
from htma.domains.minerals.domain_logic.panel import panel_from_payload
from htma.domains.minerals.domain_logic.trend_analyzer import MIN_PANELS, analyze_trends
from htma.domains.minerals.domain_logic.versions import CURRENT_VERSIONS

if TYPE_CHECKING:
    from htma.core.audit.logger import AuditLogger

logger = logging.getLogger(__name__)


def register_trend_tools(
    mcp: FastMCP,
    audit_logger: AuditLogger | None = None,
) -> None:
    """Register longitudinal trend analysis tools on the MCP server."""

    @mcp.tool
    async def htma_trend_analysis(
        ctx: Context,
        panels: list[dict[str, Any]],
    ) -> str:
        """Analyze the health score and per-mineral trends across panels.

        Requires at least 3 panels. Panels are sorted by ``taken_at`` when
        every panel has one; otherwise they are taken oldest first as given.

        Args:
            panels: Panels as ``{"minerals": {...}, "taken_at": "...", "panel_id": "..."}``
                objects (a bare symbol -> value mapping is also accepted).
        """
        start_time = time.monotonic()
        try:
            if not isinstance(panels, list):
                raise ValueError("panels must be a list of panel objects")
            parsed = [panel_from_payload(p) for p in panels]
            trend = analyze_trends(parsed)
        except Exception as exc:
            if audit_logger is not None:
                audit_logger.log_tool_call(
                    tool_name="htma_trend_analysis",
                    tool_input={"panels": panels},
                    duration_ms=(time.monotonic() - start_time) * 1000,
                    status="failure",
                    error_type=type(exc).__name__,
                    versions=CURRENT_VERSIONS.as_dict(),
                )
            raise

        if audit_logger is not None:
            audit_logger.log_tool_call(
                tool_name="htma_trend_analysis",
                tool_input={"panels": panels},
                duration_ms=(time.monotonic() - start_time) * 1000,
                versions=CURRENT_VERSIONS.as_dict(),
                metadata={"panel_count": len(parsed)},
            )

        if trend is None:
            return json.dumps({
                "status": "insufficient_data",
                "panels_provided": len(parsed),
                "message": f"At least {MIN_PANELS} panels are needed for trend analysis.",
            })

        return json.dumps({"status": "ok", **to_jsonable(trend)}, indent=2)
