"""In-memory audit trail for HTMA tool calls.

Each record notes which tool ran, how long it took, whether it failed and
which engine versions produced the result. Mineral values never enter the
trail: tool inputs are reduced to a SHA-256 digest of their canonical JSON.

The buffer is bounded. Once ``max_events`` records are held, each new record
evicts the oldest one.
"""

from __future__ import annotations

import hashlib
import json
import logging
import uuid
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)

ACTION_TOOL_INVOCATION = "tool_invocation"
ACTION_ANALYSIS_CREATED = "analysis_created"
ACTION_REFERENCE_ACCESS = "reference_access"

STATUS_SUCCESS = "success"
STATUS_FAILURE = "failure"


def _hash_input(data: Any) -> str:
    """Digest ``data`` as sorted, compact JSON; ``""`` if it is not JSON-encodable."""
    try:
        canonical = json.dumps(data, sort_keys=True, separators=(",", ":"))
    except (TypeError, ValueError):
        return ""
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AuditEvent:
    """What happened during one tool call. Holds no mineral values."""

    action: str
    tool_name: str = ""
    tool_input_hash: str = ""
    duration_ms: float | None = None
    status: str = STATUS_SUCCESS
    error_type: str | None = None
    versions: dict[str, str] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class _Entry:
    event_id: str
    timestamp: str
    event: AuditEvent

    def as_dict(self) -> dict[str, Any]:
        return {"id": self.event_id, "timestamp": self.timestamp, **asdict(self.event)}


@dataclass(frozen=True)
class ToolStats:
    """Call counts for one tool across the buffered events."""

    tool_name: str
    calls: int
    failures: int
    mean_duration_ms: float | None


# ---------------------------------------------------------------------------
# AuditLogger
# ---------------------------------------------------------------------------

class AuditLogger:
    """Bounded audit trail shared by every tool on one server instance.

    Example::

        audit = AuditLogger(max_events=500)
        audit.log_tool_call(
            "classify_oxidation_pattern",
            {"Ca": 30, "Mg": 5, "Na": 55, "K": 20},
            duration_ms=0.4,
            versions=CURRENT_VERSIONS.as_dict(),
        )
        audit.get_events(tool_name="classify_oxidation_pattern")
    """

    def __init__(self, max_events: int = 500) -> None:
        if max_events < 1:
            raise ValueError(f"max_events must be positive, got {max_events}")
        self._entries: deque[_Entry] = deque(maxlen=max_events)

    @property
    def max_events(self) -> int:
        return self._entries.maxlen or 0

    def __len__(self) -> int:
        return len(self._entries)

    def log_event(self, event: AuditEvent) -> str:
        """Append ``event`` with a fresh UUID4 and UTC timestamp; return the ID."""
        entry = _Entry(
            event_id=str(uuid.uuid4()),
            timestamp=datetime.now(timezone.utc).isoformat(),
            event=event,
        )
        self._entries.append(entry)
        logger.info(
            "Audit %s tool=%s status=%s duration_ms=%s",
            event.action,
            event.tool_name or "-",
            event.status,
            "-" if event.duration_ms is None else f"{event.duration_ms:.1f}",
        )
        return entry.event_id

    def log_tool_call(
        self,
        tool_name: str,
        tool_input: Any = None,
        *,
        action: str = ACTION_TOOL_INVOCATION,
        duration_ms: float | None = None,
        status: str = STATUS_SUCCESS,
        error_type: str | None = None,
        versions: dict[str, str] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        """Record one tool call.

        Args:
            tool_name: MCP tool that ran.
            tool_input: Arguments the tool received. Only their hash is kept;
                an empty or missing input is recorded with an empty hash.
            action: One of the ``ACTION_*`` labels.
            duration_ms: Wall time spent in the tool.
            status: ``"success"`` or ``"failure"``.
            error_type: Exception class name when the call failed.
            versions: ``EngineVersions.as_dict()`` of the result.
            metadata: Small non-identifying facts (grade, panel count...).

        Returns:
            The new event's ID.
        """
        return self.log_event(AuditEvent(
            action=action,
            tool_name=tool_name,
            tool_input_hash=_hash_input(tool_input) if tool_input else "",
            duration_ms=duration_ms,
            status=status,
            error_type=error_type,
            versions=dict(versions or {}),
            metadata=dict(metadata or {}),
        ))

    def get_events(
        self,
        *,
        action: str | None = None,
        tool_name: str | None = None,
        since: str | None = None,
        limit: int = 50,
    ) -> list[dict[str, Any]]:
        """Buffered events as plain dicts, newest first.

        ``since`` is an ISO 8601 UTC timestamp; earlier events are skipped.
        The returned dicts are copies and may be modified freely.
        """
        matched: list[dict[str, Any]] = []
        for entry in reversed(self._entries):
            if len(matched) >= limit:
                break
            if action and entry.event.action != action:
                continue
            if tool_name and entry.event.tool_name != tool_name:
                continue
            if since and entry.timestamp < since:
                continue
            matched.append(entry.as_dict())
        return matched

    def count_events(self, *, since: str | None = None) -> int:
        if not since:
            return len(self._entries)
        return sum(1 for entry in self._entries if entry.timestamp >= since)

    def tool_stats(self) -> list[ToolStats]:
        """Per-tool call and failure counts, busiest tool first."""
        calls: dict[str, int] = {}
        failures: dict[str, int] = {}
        durations: dict[str, list[float]] = {}
        for entry in self._entries:
            name = entry.event.tool_name or "-"
            calls[name] = calls.get(name, 0) + 1
            if entry.event.status == STATUS_FAILURE:
                failures[name] = failures.get(name, 0) + 1
            if entry.event.duration_ms is not None:
                durations.setdefault(name, []).append(entry.event.duration_ms)

        stats = [
            ToolStats(
                tool_name=name,
                calls=count,
                failures=failures.get(name, 0),
                mean_duration_ms=(
                    round(sum(durations[name]) / len(durations[name]), 2)
                    if name in durations else None
                ),
            )
            for name, count in calls.items()
        ]
        stats.sort(key=lambda s: (-s.calls, s.tool_name))
        return stats
