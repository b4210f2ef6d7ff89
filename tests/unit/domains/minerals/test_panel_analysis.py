"""Tests for whole-panel analysis and result serialization."""

from __future__ import annotations

import json
import math

from htma.domains.minerals.domain_logic.analysis import analyze_panel
from htma.domains.minerals.domain_logic.models import (
    ConfidenceLevel,
    Grade,
    OxidationType,
    Status,
    to_jsonable,
)
from htma.domains.minerals.domain_logic.panel import parse_panel
from htma.domains.minerals.domain_logic.versions import CURRENT_VERSIONS, EngineVersions


class TestAnalyzePanel:
    def test_ideal_panel(self, ideal_panel):
        analysis = analyze_panel(ideal_panel)
        assert analysis.panel is ideal_panel
        assert len(analysis.minerals) == 15
        assert len(analysis.ratios) == 6
        assert analysis.health_score.total_score == 100
        assert analysis.health_score.grade is Grade.A
        assert analysis.oxidation.type is OxidationType.BALANCED
        assert analysis.confidence.level is ConfidenceLevel.LOW
        assert analysis.versions == CURRENT_VERSIONS

    def test_abnormal_panel(self, make_panel):
        analysis = analyze_panel(make_panel(Ca=30, Mg=5, Na=55, K=20))
        assert analysis.oxidation.type is OxidationType.FAST
        assert analysis.health_score.total_score < 100
        assert analysis.confidence.abnormal_count > 0

    def test_versions_propagate(self, ideal_panel):
        versions = EngineVersions(semantics_version="2.0.0")
        analysis = analyze_panel(ideal_panel, versions=versions)
        assert analysis.versions is versions
        assert analysis.health_score.versions is versions
        assert analysis.oxidation.versions is versions
        assert analysis.confidence.versions is versions
        assert all(r.versions is versions for r in analysis.ratios)

    def test_defaulted_panel_still_analyzed(self, make_panel):
        analysis = analyze_panel(make_panel(Zn="n/a"))
        assert analysis.panel.has_defaults
        assert analysis.health_score.total_score < 100

    def test_elements_reported_but_not_scored(self, ideal_panel, ideal_values):
        panel = parse_panel({**ideal_values, "Cd": 0.2, "Al": 0.5, "Ba": 0.3})
        analysis = analyze_panel(panel)
        assert analysis.health_score == analyze_panel(ideal_panel).health_score
        assert analysis.oxidation == analyze_panel(ideal_panel).oxidation
        assert [(e.symbol, e.status) for e in analysis.toxic_elements] == [
            ("Cd", Status.HIGH), ("Al", Status.OPTIMAL),
        ]
        assert [e.symbol for e in analysis.additional_elements] == ["Ba"]

    def test_no_elements(self, ideal_panel):
        analysis = analyze_panel(ideal_panel)
        assert analysis.toxic_elements == ()
        assert analysis.additional_elements == ()


class TestToJsonable:
    def test_analysis_serializes(self, make_panel):
        analysis = analyze_panel(make_panel(taken_at="2024-02-01", panel_id="p-1"))
        data = to_jsonable(analysis)
        json.dumps(data)
        assert data["oxidation"]["type"] == "balanced"
        assert data["health_score"]["grade"] == "A"
        assert data["panel"]["taken_at"] == "2024-02-01T00:00:00+00:00"
        assert data["versions"]["engine_version"] == CURRENT_VERSIONS.engine_version

    def test_defaulted_value_includes_value(self, make_panel):
        data = to_jsonable(make_panel(Zn=None))
        assert data["defaulted"] == [
            {"original": None, "reason": "missing", "symbol": "Zn", "value": 0.0},
        ]

    def test_non_finite_float(self):
        assert to_jsonable(math.inf) is None
        assert to_jsonable({"x": float("nan")}) == {"x": None}
