"""Tests for the score delta explainer."""

from __future__ import annotations

from datetime import datetime, timezone

from htma.domains.minerals.domain_logic.health_score import calculate_health_score
from htma.domains.minerals.domain_logic.models import DeltaDirection, DriverKind, Status
from htma.domains.minerals.domain_logic.panel import parse_panel
from htma.domains.minerals.domain_logic.score_delta import (
    MINIMAL_CHANGES_DRIVER,
    TOP_DRIVER_COUNT,
    categorize_drivers,
    collect_drivers,
    explain_score_change,
)


class TestIdenticalPanels:
    def test_no_change(self, ideal_panel):
        result = explain_score_change(ideal_panel, ideal_panel)
        assert result.score_delta == 0
        assert result.direction is DeltaDirection.UNCHANGED
        assert result.primary_drivers == (MINIMAL_CHANGES_DRIVER,)
        assert result.secondary_contributors == ()
        assert result.offsetting_factors == ()
        assert result.all_drivers == ()
        assert result.headline == "Health Score stayed about the same"
        assert result.summary.endswith("Net change: +0 points.")


class TestImprovement:
    def test_three_trace_minerals_normalized(self, make_panel):
        previous = make_panel(Mn=0.2, Cr=0.25, Se=0.3)
        current = make_panel()
        result = explain_score_change(previous, current)

        assert result.previous_score == 82
        assert result.current_score == 100
        assert result.score_delta == 18
        assert result.direction is DeltaDirection.IMPROVED
        assert result.headline == "Health Score improved by +18"
        assert result.primary_drivers == (
            "Manganese: High → Optimal",
            "Chromium: High → Optimal",
            "Selenium: High → Optimal",
        )
        assert result.breakdown.mineral_score_delta == 12
        assert result.breakdown.ratio_score_delta == 0
        assert result.breakdown.red_flag_score_delta == 6

    def test_summary_names_improvements(self, make_panel):
        result = explain_score_change(make_panel(Mn=0.2, Cr=0.25), make_panel())
        assert result.summary.startswith(
            "Main improvements: Mn moved toward optimal, Cr moved toward optimal."
        )
        assert result.summary.endswith("Net change: +12 points.")

    def test_offsetting_factor(self, make_panel):
        previous = make_panel(Mn=0.2, Cr=0.25)
        current = make_panel(Se=0.3)
        result = explain_score_change(previous, current)

        assert result.score_delta == 6
        assert result.direction is DeltaDirection.IMPROVED
        assert result.primary_drivers == ("Manganese: High → Optimal", "Chromium: High → Optimal")
        assert result.offsetting_factors == ("Selenium: Optimal → High",)
        assert "Main limiter: Se moved away from optimal." in result.summary


class TestDecline:
    def test_declined(self, make_panel):
        result = explain_score_change(make_panel(), make_panel(Mn=0.2, Cr=0.25, Se=0.3))
        assert result.score_delta == -18
        assert result.direction is DeltaDirection.DECLINED
        assert result.headline == "Health Score declined by -18"
        assert "Manganese: Optimal → High" in result.primary_drivers

    def test_small_change_is_unchanged(self, make_panel):
        # -2 red flag points only: Mn stays High under the fuzzed band
        result = explain_score_change(make_panel(Mn=0.11), make_panel(Mn=0.2))
        assert result.score_delta == -2
        assert result.direction is DeltaDirection.UNCHANGED
        assert result.headline == "Health Score declined by -2"


class TestDrivers:
    def test_low_to_high_has_zero_impact(self, make_panel):
        drivers = collect_drivers(make_panel(Na=45), make_panel(Na=15))
        by_key = {d.key: d for d in drivers}
        assert by_key["Na"].impact == 4
        assert by_key["Na/K"].kind is DriverKind.RATIO
        assert by_key["Na/K"].from_status is Status.HIGH
        assert by_key["Na/K"].to_status is Status.LOW
        assert by_key["Na/K"].impact == 0
        assert by_key["Na/K"].description == "Na/K ratio: High → Low"

    def test_ranked_by_absolute_impact(self, make_panel):
        drivers = collect_drivers(make_panel(Na=45), make_panel(Na=15))
        assert [d.key for d in drivers] == ["Na", "Na/K"]

    def test_top_drivers_capped(self, make_panel):
        previous = make_panel(Mn=0.2, Cr=0.25, Se=0.3, B=0.6, Co=0.012, Mo=0.12, S=8000)
        result = explain_score_change(previous, make_panel())
        assert len(result.all_drivers) == 7
        assert len(result.top_drivers) == TOP_DRIVER_COUNT
        assert result.top_drivers == result.all_drivers[:TOP_DRIVER_COUNT]

    def test_top_driver_promoted_when_no_primary(self, make_panel):
        drivers = collect_drivers(make_panel(Na=45), make_panel(Na=15))
        primary, _, offsetting = categorize_drivers(drivers, DeltaDirection.DECLINED)
        assert primary == ("Sodium: High → Optimal",)
        assert "Sodium: High → Optimal" not in offsetting


class TestOrderingAndOxidation:
    def test_reversed_timestamps_return_none(self, make_panel):
        previous = make_panel(taken_at="2024-06-01")
        current = make_panel(taken_at="2024-01-01")
        assert explain_score_change(previous, current) is None

    def test_naive_and_aware_timestamps_compared(self, ideal_values):
        previous = parse_panel(ideal_values, taken_at=datetime(2024, 1, 1))
        current = parse_panel(ideal_values, taken_at=datetime(2024, 6, 1, tzinfo=timezone.utc))
        assert explain_score_change(previous, current) is not None
        assert explain_score_change(current, previous) is None

    def test_undated_panels_accepted(self, make_panel):
        assert explain_score_change(make_panel(), make_panel()) is not None

    def test_precomputed_scores_used(self, make_panel):
        previous = make_panel(Mn=0.2)
        current = make_panel()
        result = explain_score_change(
            previous,
            current,
            previous_score=calculate_health_score(previous.values),
            current_score=calculate_health_score(current.values),
        )
        assert result.score_delta == 6

    def test_oxidation_delta_attached(self, make_panel):
        previous = make_panel(Ca=30, Mg=5, Na=55, K=20)
        result = explain_score_change(previous, make_panel())
        assert result.oxidation_delta is not None
        assert result.oxidation_delta.previous_type.value == "fast"
        assert result.oxidation_delta.current_type.value == "balanced"
        assert result.oxidation_delta.reached_balanced
