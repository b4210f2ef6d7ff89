"""Tests for the AuditLogger and related utilities."""

from __future__ import annotations

import logging

import pytest

from htma.core.audit.logger import (
    ACTION_ANALYSIS_CREATED,
    ACTION_TOOL_INVOCATION,
    AuditEvent,
    AuditLogger,
    _hash_input,
)
from htma.domains.minerals.domain_logic.versions import CURRENT_VERSIONS


# ---------------------------------------------------------------------------
# _hash_input tests
# ---------------------------------------------------------------------------

class TestHashInput:
    PANEL = {"minerals": {"Ca": 40, "Mg": 6, "Na": 25, "K": 10}, "taken_at": "2024-03-01"}

    def test_sha256_hex_digest(self):
        digest = _hash_input(self.PANEL)
        assert len(digest) == 64
        assert int(digest, 16) >= 0

    def test_key_order_ignored(self):
        reordered = {"taken_at": "2024-03-01", "minerals": {"K": 10, "Na": 25, "Mg": 6, "Ca": 40}}
        assert _hash_input(reordered) == _hash_input(self.PANEL)

    def test_value_change_changes_digest(self):
        changed = {"minerals": {"Ca": 41, "Mg": 6, "Na": 25, "K": 10}, "taken_at": "2024-03-01"}
        assert _hash_input(changed) != _hash_input(self.PANEL)

    def test_unencodable_input(self):
        assert _hash_input({"taken_at": object()}) == ""


# ---------------------------------------------------------------------------
# AuditLogger.log_event / log_tool_call
# ---------------------------------------------------------------------------

class TestLogEvent:
    def test_log_event_returns_uuid4(self, audit_logger):
        event = AuditEvent(action=ACTION_TOOL_INVOCATION, tool_name="health_check")
        eid = audit_logger.log_event(event)
        assert isinstance(eid, str)
        assert len(eid) == 36  # UUID format

    def test_log_tool_call_convenience(self, audit_logger):
        eid = audit_logger.log_tool_call(
            tool_name="analyze_htma_panel",
            tool_input={"minerals": {"Ca": 40}},
            duration_ms=12.5,
            versions=CURRENT_VERSIONS.as_dict(),
        )
        events = audit_logger.get_events()
        assert events[0]["id"] == eid
        assert events[0]["duration_ms"] == 12.5
        assert events[0]["versions"] == CURRENT_VERSIONS.as_dict()

    def test_defaults_recorded(self, audit_logger):
        audit_logger.log_tool_call(tool_name="health_check", tool_input={"key": "val"})
        events = audit_logger.get_events()
        assert len(events) == 1
        assert events[0]["tool_name"] == "health_check"
        assert events[0]["action"] == ACTION_TOOL_INVOCATION
        assert events[0]["status"] == "success"
        assert events[0]["timestamp"]

    def test_raw_input_not_stored(self, audit_logger):
        audit_logger.log_tool_call("test", tool_input={"minerals": {"Ca": 41.37}})
        event = audit_logger.get_events()[0]
        assert len(event["tool_input_hash"]) == 64
        assert "41.37" not in str(event)

    def test_empty_input_has_no_hash(self, audit_logger):
        audit_logger.log_tool_call("test")
        assert audit_logger.get_events()[0]["tool_input_hash"] == ""

    def test_failure_recorded(self, audit_logger):
        audit_logger.log_tool_call("test", status="failure", error_type="ValueError")
        event = audit_logger.get_events()[0]
        assert event["status"] == "failure"
        assert event["error_type"] == "ValueError"

    def test_metadata_stored(self, audit_logger):
        audit_logger.log_tool_call("test", metadata={"grade": "A"})
        assert audit_logger.get_events()[0]["metadata"] == {"grade": "A"}

    def test_logged_at_info(self, audit_logger, caplog):
        with caplog.at_level(logging.INFO, logger="htma.core.audit.logger"):
            audit_logger.log_tool_call("reference_ranges", duration_ms=1.0)
        assert "reference_ranges" in caplog.text

    def test_returned_events_are_copies(self, audit_logger):
        audit_logger.log_tool_call("test")
        audit_logger.get_events()[0]["status"] = "tampered"
        assert audit_logger.get_events()[0]["status"] == "success"


# ---------------------------------------------------------------------------
# AuditLogger.get_events (filtering)
# ---------------------------------------------------------------------------

class TestGetEvents:
    def test_filter_by_action_label(self, audit_logger):
        audit_logger.log_tool_call("analyze_htma_panel")
        audit_logger.log_tool_call("explain_score_change", action=ACTION_ANALYSIS_CREATED)
        audit_logger.log_tool_call("reference_ranges")

        assert len(audit_logger.get_events(action=ACTION_TOOL_INVOCATION)) == 2
        assert len(audit_logger.get_events(action=ACTION_ANALYSIS_CREATED)) == 1

    def test_filter_by_tool_name(self, audit_logger):
        audit_logger.log_tool_call("htma_trend_analysis")
        audit_logger.log_tool_call("classify_oxidation_pattern")
        audit_logger.log_tool_call("htma_trend_analysis")

        events = audit_logger.get_events(tool_name="htma_trend_analysis")
        assert len(events) == 2

    def test_limit_respected(self, audit_logger):
        for i in range(10):
            audit_logger.log_tool_call(f"tool_{i}")
        events = audit_logger.get_events(limit=3)
        assert len(events) == 3

    def test_newest_first(self, audit_logger):
        audit_logger.log_tool_call("first")
        audit_logger.log_tool_call("second")

        events = audit_logger.get_events()
        assert events[0]["tool_name"] == "second"
        assert events[1]["tool_name"] == "first"

    def test_since_filter(self, audit_logger):
        audit_logger.log_tool_call("t1")
        assert len(audit_logger.get_events(since="2020-01-01T00:00:00+00:00")) == 1
        assert audit_logger.get_events(since="2999-01-01T00:00:00+00:00") == []


# ---------------------------------------------------------------------------
# Counts and capacity
# ---------------------------------------------------------------------------

class TestCounts:
    def test_count_events_empty(self, audit_logger):
        assert audit_logger.count_events() == 0

    def test_count_events_after_inserts(self, audit_logger):
        audit_logger.log_tool_call("a")
        audit_logger.log_tool_call("b")
        assert audit_logger.count_events() == 2

    def test_count_events_with_since(self, audit_logger):
        audit_logger.log_tool_call("a")
        assert audit_logger.count_events(since="2020-01-01T00:00:00+00:00") == 1
        assert audit_logger.count_events(since="2999-01-01T00:00:00+00:00") == 0


class TestCapacity:
    def test_oldest_events_dropped(self):
        audit = AuditLogger(max_events=3)
        for i in range(5):
            audit.log_tool_call(f"tool_{i}")
        assert audit.count_events() == 3
        assert [e["tool_name"] for e in audit.get_events()] == ["tool_4", "tool_3", "tool_2"]

    def test_max_events_exposed(self):
        assert AuditLogger(max_events=7).max_events == 7

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            AuditLogger(max_events=0)


class TestToolStats:
    def test_empty(self, audit_logger):
        assert audit_logger.tool_stats() == []
        assert len(audit_logger) == 0

    def test_counts_and_failures(self, audit_logger):
        audit_logger.log_tool_call("analyze_htma_panel", duration_ms=2.0)
        audit_logger.log_tool_call("analyze_htma_panel", duration_ms=4.0)
        audit_logger.log_tool_call(
            "analyze_htma_panel", status="failure", error_type="ValueError",
        )
        audit_logger.log_tool_call("reference_ranges", duration_ms=1.0)

        stats = audit_logger.tool_stats()
        assert [s.tool_name for s in stats] == ["analyze_htma_panel", "reference_ranges"]
        assert stats[0].calls == 3
        assert stats[0].failures == 1
        assert stats[0].mean_duration_ms == 3.0
        assert stats[1].failures == 0
        assert len(audit_logger) == 4

    def test_missing_durations(self, audit_logger):
        audit_logger.log_tool_call("health_check")
        assert audit_logger.tool_stats()[0].mean_duration_ms is None
