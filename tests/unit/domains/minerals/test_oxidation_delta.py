"""Tests for oxidation pattern change analysis between two tests."""

from __future__ import annotations

from htma.domains.minerals.domain_logic.models import (
    BalanceDirection,
    IndicatorImpact,
    OxidationType,
    PatternChangeType,
)
from htma.domains.minerals.domain_logic.oxidation import classify_oxidation
from htma.domains.minerals.domain_logic.oxidation_delta import (
    analyze_oxidation_delta,
    distance_to_balanced,
    key_indicator_changes,
)

FAST = classify_oxidation(30, 5, 55, 20)
BALANCED = classify_oxidation(45, 5.5, 35, 12)
MIXED = classify_oxidation(30, 5, 15, 10)
INSUFFICIENT = classify_oxidation(40, 6, 25, 0)


class TestDistanceToBalanced:
    def test_balanced_is_zero(self):
        assert distance_to_balanced(BALANCED) == 0.0

    def test_mixed_is_two(self):
        assert distance_to_balanced(MIXED) == 2.0

    def test_fast_scales_with_alignment_and_confidence(self):
        # (3 + 5 * 0.5) * 1.2 for high confidence
        assert distance_to_balanced(FAST) == 6.6


class TestBaseline:
    def test_no_previous(self):
        delta = analyze_oxidation_delta(None, FAST)
        assert delta.previous_type is None
        assert delta.current_type is OxidationType.FAST
        assert delta.pattern_change.type is PatternChangeType.NEW_TEST
        assert delta.pattern_change.description == "Initial oxidation pattern established: fast"
        assert delta.distance_to_balanced.previous is None
        assert delta.distance_to_balanced.current == 6.6
        assert delta.key_changes == ()
        assert not delta.reached_balanced

    def test_insufficient_current(self):
        delta = analyze_oxidation_delta(FAST, INSUFFICIENT)
        assert delta.pattern_change.type is PatternChangeType.NEW_TEST
        assert delta.pattern_change.description == (
            "Oxidation pattern unavailable - insufficient mineral data"
        )

    def test_insufficient_previous(self):
        delta = analyze_oxidation_delta(INSUFFICIENT, FAST)
        assert delta.pattern_change.type is PatternChangeType.NEW_TEST
        assert delta.previous_type is None


class TestPatternChanges:
    def test_fast_to_balanced_major_shift(self):
        delta = analyze_oxidation_delta(FAST, BALANCED)
        assert delta.pattern_change.type is PatternChangeType.MAJOR_SHIFT
        assert delta.pattern_change.is_milestone
        assert delta.reached_balanced
        assert delta.distance_to_balanced.change == -6.6
        assert delta.distance_to_balanced.direction is BalanceDirection.TOWARD_BALANCED
        assert delta.summary.startswith(
            "Pattern shifted from Fast to Balanced, moving toward metabolic equilibrium. "
            "This represents progress toward metabolic balance."
        )

    def test_mixed_to_balanced_is_milestone(self):
        delta = analyze_oxidation_delta(MIXED, BALANCED)
        assert delta.pattern_change.type is PatternChangeType.MINOR_ADJUSTMENT
        assert delta.pattern_change.is_milestone
        assert delta.reached_balanced

    def test_balanced_to_fast(self):
        delta = analyze_oxidation_delta(BALANCED, FAST)
        assert delta.pattern_change.type is PatternChangeType.MINOR_ADJUSTMENT
        assert not delta.pattern_change.is_milestone
        assert delta.distance_to_balanced.direction is BalanceDirection.AWAY_FROM_BALANCED
        assert delta.summary == (
            "Oxidation pattern adjusted from balanced to fast, suggesting evolving metabolic patterns."
        )

    def test_stable_balanced(self):
        delta = analyze_oxidation_delta(BALANCED, BALANCED)
        assert delta.pattern_change.type is PatternChangeType.STABLE
        assert delta.distance_to_balanced.direction is BalanceDirection.STABLE
        assert not delta.reached_balanced
        assert delta.summary == (
            "Oxidation pattern remained balanced, suggesting stable metabolic equilibrium."
        )

    def test_stable_fast(self):
        delta = analyze_oxidation_delta(FAST, FAST)
        assert delta.summary.startswith("Oxidation pattern remained fast")


class TestKeyIndicatorChanges:
    def test_fast_to_balanced_changes(self):
        changes = {c.indicator: c for c in key_indicator_changes(FAST, BALANCED)}
        assert set(changes) == {"Ca/K Ratio", "Na/K Ratio", "Ca/Mg Ratio", "Calcium", "Sodium"}
        assert changes["Ca/K Ratio"].impact is IndicatorImpact.POSITIVE
        assert changes["Calcium"].from_value == "low"
        assert changes["Calcium"].to_value == "optimal"

    def test_move_away_from_optimal_is_negative(self):
        change = {c.indicator: c for c in key_indicator_changes(FAST, BALANCED)}["Na/K Ratio"]
        assert change.impact is IndicatorImpact.NEGATIVE
        assert change.note == (
            "Na/K signal changed (optimal -> fast), associated with adrenal activity patterns"
        )

    def test_no_changes(self):
        assert key_indicator_changes(BALANCED, BALANCED) == ()
