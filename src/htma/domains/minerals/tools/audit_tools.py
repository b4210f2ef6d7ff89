"""MCP tool exposing the in-memory audit trail of HTMA tool calls."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

if TYPE_CHECKING:
    from htma.core.audit.logger import AuditLogger

logger = logging.getLogger(__name__)

_DISPLAY_FIELDS = (
    "timestamp",
    "action",
    "tool_name",
    "status",
    "error_type",
    "duration_ms",
    "versions",
)


def register_audit_tools(
    mcp: FastMCP,
    audit_logger: AuditLogger,
) -> None:
    """Register the audit trail tool on the MCP server."""

    @mcp.tool
    async def audit_summary(
        ctx: Context,
        limit: int = 20,
        tool_name: str | None = None,
    ) -> str:
        """Show recent HTMA tool calls, per-tool call counts and failures.

        Each event lists the engine versions its result was computed with, so
        a stored interpretation can be traced to the thresholds in force.
        No mineral values are recorded.

        Args:
            limit: Maximum number of recent events to return (default: 20).
            tool_name: Only list events for this tool.
        """
        if limit < 1:
            raise ValueError("limit must be a positive integer")

        events = audit_logger.get_events(tool_name=tool_name, limit=limit)
        stats = audit_logger.tool_stats()

        return json.dumps({
            "status": "ok",
            "total_events": audit_logger.count_events(),
            "buffer_capacity": audit_logger.max_events,
            "failures": sum(s.failures for s in stats),
            "by_tool": [asdict(s) for s in stats],
            "recent_events": [
                {key: event.get(key) for key in _DISPLAY_FIELDS} for event in events
            ],
            "note": (
                "Tool inputs are kept only as SHA-256 hashes; "
                "mineral values never enter the audit trail."
            ),
        }, indent=2)
