"""Tests for the ratio engine."""

from __future__ import annotations

from htma.domains.minerals.domain_logic.models import Status
from htma.domains.minerals.domain_logic.ratio_engine import (
    calculate_all_ratios,
    get_ratio,
    has_required_minerals,
    non_optimal_ratios,
)
from htma.domains.minerals.domain_logic.registry import RATIO_NAMES, get_ratio_definition
from htma.domains.minerals.domain_logic.versions import EngineVersions


class TestCalculateAllRatios:
    def test_six_ratios_in_display_order(self, ideal_values):
        ratios = calculate_all_ratios(ideal_values)
        assert tuple(r.name for r in ratios) == ("Ca/Mg", "Na/K", "Ca/P", "Zn/Cu", "Fe/Cu", "Ca/K")
        assert tuple(r.name for r in ratios) == RATIO_NAMES

    def test_ideal_values_all_optimal(self, ideal_values):
        ratios = calculate_all_ratios(ideal_values)
        assert all(r.status is Status.OPTIMAL for r in ratios)

    def test_optimal_interpretation_text(self, ideal_values):
        ratio = calculate_all_ratios(ideal_values)[0]
        assert ratio.interpretation == get_ratio_definition("Ca/Mg").optimal_text

    def test_versions_stamped(self, ideal_values):
        versions = EngineVersions(engine_version="9.9.9")
        ratios = calculate_all_ratios(ideal_values, versions=versions)
        assert all(r.versions.engine_version == "9.9.9" for r in ratios)


class TestGetRatio:
    def test_high_ratio(self):
        ratio = get_ratio("Na/K", {"Na": 40, "K": 10})
        assert ratio.value == 4.0
        assert ratio.status is Status.HIGH
        assert ratio.interpretation == get_ratio_definition("Na/K").high_text
        assert (ratio.numerator_value, ratio.denominator_value) == (40.0, 10.0)

    def test_unknown_ratio(self):
        assert get_ratio("Li/Na", {"Na": 25}) is None

    def test_zero_denominator_guarded(self):
        ratio = get_ratio("Ca/Mg", {"Ca": 40, "Mg": 0})
        assert ratio.value == 0.0
        assert ratio.status is Status.LOW

    def test_missing_values_treated_as_zero(self):
        ratio = get_ratio("Zn/Cu", {})
        assert ratio.value == 0.0
        assert ratio.status is Status.LOW


class TestNonOptimalRatios:
    def test_none_for_ideal(self, ideal_values):
        assert non_optimal_ratios(ideal_values) == ()

    def test_lists_only_abnormal(self, ideal_values):
        values = {**ideal_values, "Zn": 30}
        names = [r.name for r in non_optimal_ratios(values)]
        assert names == ["Zn/Cu"]


class TestHasRequiredMinerals:
    def test_complete(self, ideal_values):
        assert has_required_minerals(ideal_values)

    def test_missing_mineral(self, ideal_values):
        values = dict(ideal_values)
        del values["P"]
        assert not has_required_minerals(values)

    def test_non_numeric_value(self, ideal_values):
        assert not has_required_minerals({**ideal_values, "Cu": "2.5"})

    def test_bool_is_not_numeric(self, ideal_values):
        assert not has_required_minerals({**ideal_values, "Fe": True})
