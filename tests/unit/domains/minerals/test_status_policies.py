"""Tests for the fuzzed and strict status policies."""

from __future__ import annotations

import pytest

from htma.domains.minerals.domain_logic.models import (
    ElementCategory,
    MineralReading,
    Status,
    StatusPolicy,
)
from htma.domains.minerals.domain_logic.registry import (
    ADDITIONAL_ELEMENT_REFERENCES,
    MINERAL_RANGES,
    MINERAL_SYMBOLS,
    TOXIC_ELEMENT_REFERENCES,
    get_additional_element_reference,
    get_toxic_element_reference,
    resolve_element,
)
from htma.domains.minerals.domain_logic.status import (
    classify,
    classify_element,
    classify_elements,
    classify_fuzzed,
    classify_mineral,
    classify_minerals,
    classify_ratio,
    classify_strict,
    safe_ratio,
)


class TestStrictPolicy:
    @pytest.mark.parametrize("value,expected", [
        (34.99, Status.LOW),
        (35, Status.OPTIMAL),
        (40, Status.OPTIMAL),
        (45, Status.OPTIMAL),
        (45.01, Status.HIGH),
    ])
    def test_bounds_are_inclusive(self, value, expected):
        assert classify_strict(value, 35, 45) is expected


class TestFuzzedPolicy:
    def test_tolerates_moderately_low_value(self):
        # 25 is below 35 but above 35 * 0.7
        assert classify_fuzzed(25, 35, 45) is Status.OPTIMAL

    def test_well_below_band_is_low(self):
        assert classify_fuzzed(24, 35, 45) is Status.LOW

    def test_tolerates_moderately_high_value(self):
        assert classify_fuzzed(58, 35, 45) is Status.OPTIMAL

    def test_well_above_band_is_high(self):
        assert classify_fuzzed(59, 35, 45) is Status.HIGH


class TestClassify:
    def test_default_policy_is_strict(self):
        assert classify(30, 35, 45) is Status.LOW

    def test_named_policies_differ(self):
        assert classify(30, 35, 45, StatusPolicy.STRICT) is Status.LOW
        assert classify(30, 35, 45, StatusPolicy.FUZZED) is Status.OPTIMAL

    def test_accepts_policy_value_string(self):
        assert classify(30, 35, 45, "fuzzed") is Status.OPTIMAL


class TestRatios:
    def test_safe_ratio_divides(self):
        assert safe_ratio(40, 8) == 5.0

    def test_safe_ratio_zero_denominator(self):
        assert safe_ratio(40, 0) == 0.0

    def test_zero_ratio_is_low(self):
        assert classify_ratio(0, 6.0, 7.5) is Status.LOW

    def test_ratio_uses_strict_bounds(self):
        assert classify_ratio(6.0, 6.0, 7.5) is Status.OPTIMAL
        assert classify_ratio(7.6, 6.0, 7.5) is Status.HIGH


class TestClassifyMinerals:
    def test_ideal_values_all_optimal(self, ideal_values):
        results = classify_minerals(ideal_values)
        assert len(results) == 15
        assert all(r.status is Status.OPTIMAL for r in results)

    def test_registry_order(self, ideal_values):
        results = classify_minerals(ideal_values)
        assert tuple(r.symbol for r in results) == MINERAL_SYMBOLS

    def test_missing_values_are_low(self):
        results = classify_minerals({})
        assert all(r.status is Status.LOW for r in results)
        assert all(r.value == 0.0 for r in results)

    def test_default_policy_is_fuzzed(self):
        calcium = MINERAL_RANGES[0]
        result = classify_mineral(30, calcium)
        assert result.status is Status.OPTIMAL
        assert result.policy is StatusPolicy.FUZZED

    def test_result_carries_reference_band(self):
        calcium = MINERAL_RANGES[0]
        result = classify_mineral(30, calcium, StatusPolicy.STRICT)
        assert result.name == "Calcium"
        assert (result.min_ideal, result.max_ideal) == (35, 45)
        assert result.unit == "mg%"
        assert result.status is Status.LOW


class TestElementReferences:
    def test_toxic_table(self):
        assert [r.symbol for r in TOXIC_ELEMENT_REFERENCES] == [
            "Sb", "As", "Hg", "Be", "Cd", "Pb", "Al",
        ]
        assert get_toxic_element_reference("Pb").reference_high == 0.6
        assert get_toxic_element_reference("Al").reference_high == 1.0

    def test_additional_table_has_no_limits(self):
        assert len(ADDITIONAL_ELEMENT_REFERENCES) == 13
        assert all(r.reference_high is None for r in ADDITIONAL_ELEMENT_REFERENCES)
        assert get_additional_element_reference("Zr").name == "Zirconium"

    def test_lookups_do_not_cross_categories(self):
        assert get_toxic_element_reference("Li") is None
        assert get_additional_element_reference("Pb") is None
        assert get_toxic_element_reference("Ca") is None

    @pytest.mark.parametrize("key,expected", [("Pb", "Pb"), ("pb", "Pb"), ("Lead", "Pb"), ("tin", "Sn")])
    def test_resolve_element(self, key, expected):
        assert resolve_element(key).symbol == expected

    def test_scored_minerals_are_not_elements(self):
        assert all(resolve_element(symbol) is None for symbol in MINERAL_SYMBOLS)


class TestClassifyElements:
    @pytest.mark.parametrize("value,expected", [
        (0.0, Status.OPTIMAL),
        (0.6, Status.OPTIMAL),
        (0.61, Status.HIGH),
    ])
    def test_toxic_upper_limit_is_strict(self, value, expected):
        result = classify_element(value, get_toxic_element_reference("Pb"))
        assert result.status is expected
        assert result.category is ElementCategory.TOXIC

    def test_additional_element_has_no_status(self):
        result = classify_element(0.02, get_additional_element_reference("Li"))
        assert result.status is None
        assert result.reference_high is None
        assert result.value == 0.02

    def test_split_and_ordered(self):
        toxic, additional = classify_elements((
            MineralReading("Al", 2.0),
            MineralReading("Zr", 0.1),
            MineralReading("As", 0.01),
            MineralReading("Ge", 0.03),
        ))
        assert [r.symbol for r in toxic] == ["As", "Al"]
        assert [r.status for r in toxic] == [Status.OPTIMAL, Status.HIGH]
        assert [r.symbol for r in additional] == ["Ge", "Zr"]

    def test_empty(self):
        assert classify_elements(()) == ((), ())
