"""HTMA Interpretation MCP Server: application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- Module-level `mcp` variable for FastMCP discovery (`fastmcp run src/htma/core/server/app.py:mcp`)
"""

from __future__ import annotations

import logging

from fastmcp import FastMCP

from htma.core.audit.logger import AuditLogger
from htma.core.config.settings import get_settings
from htma.domains.minerals.domain_logic.registry import TEI_REFERENCE_TABLE
from htma.domains.minerals.domain_logic.versions import CURRENT_VERSIONS
from htma.domains.minerals.tools.panel_tools import register_panel_tools
from htma.domains.minerals.tools.reference_tools import register_reference_tools
from htma.domains.minerals.tools.trend_tools import register_trend_tools

logger = logging.getLogger(__name__)

SERVER_NAME = "HTMA Interpretation"
SERVER_VERSION = "0.1.0"


def create_app(
    *,
    audit_logger_override: AuditLogger | None = None,
) -> FastMCP:
    """Create and configure the HTMA interpretation MCP server.

    This is the main application factory. It:
    1. Creates the FastMCP server instance
    2. Initializes the in-memory audit trail (unless disabled)
    3. Registers the panel, trend, reference and audit tools
    """
    settings = get_settings()

    # --- Server instance ---
    server = FastMCP(
        SERVER_NAME,
        instructions=(
            "Hair tissue mineral analysis (HTMA) interpretation server. "
            "Classifies mineral and ratio status against TEI reference ranges, "
            "computes a 0-100 mineral balance health score, classifies the "
            "oxidation pattern, and explains changes and trends across panels. "
            "Results describe mineral balance patterns only and are not diagnostic."
        ),
    )

    # --- Initialize audit trail ---
    audit_logger: AuditLogger | None = None
    if audit_logger_override is not None:
        audit_logger = audit_logger_override
    elif settings.audit_enabled:
        audit_logger = AuditLogger(max_events=settings.audit_max_events)
        logger.info("Audit trail enabled (in-memory, %d events)", settings.audit_max_events)
    else:
        logger.info("Audit trail disabled (AUDIT_ENABLED=false)")

    tool_names = [
        "health_check",
        "analyze_htma_panel",
        "classify_oxidation_pattern",
        "explain_score_change",
        "htma_trend_analysis",
        "reference_ranges",
        "compare_reference_ranges",
    ]
    if audit_logger is not None:
        tool_names.append("audit_summary")

    # --- Register tools ---
    @server.tool
    def health_check() -> dict:
        """Check server health and return basic status information."""
        return {
            "status": "ok",
            "server": SERVER_NAME,
            "version": SERVER_VERSION,
            "reference_table": TEI_REFERENCE_TABLE.name,
            "versions": CURRENT_VERSIONS.as_dict(),
            "audit_enabled": audit_logger is not None,
            "tools": tool_names,
        }

    register_panel_tools(server, audit_logger)
    register_trend_tools(server, audit_logger)
    register_reference_tools(server, audit_logger)
    logger.info("HTMA interpretation tools registered")

    if audit_logger is not None:
        from htma.domains.minerals.tools.audit_tools import register_audit_tools

        register_audit_tools(server, audit_logger)
        logger.info("Audit tools registered")

    return server


# Module-level instance for FastMCP discovery (`fastmcp run ...app.py:mcp`).
# Lazy: only created when this module is loaded directly (not when tests import create_app).
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
