"""Single-panel orchestration: one call, one immutable ``PanelAnalysis``."""

from __future__ import annotations

import logging

from htma.domains.minerals.domain_logic.confidence import calculate_confidence_score
from htma.domains.minerals.domain_logic.health_score import calculate_health_score
from htma.domains.minerals.domain_logic.models import HTMAPanel, PanelAnalysis, StatusPolicy
from htma.domains.minerals.domain_logic.oxidation import classify_panel_oxidation
from htma.domains.minerals.domain_logic.ratio_engine import calculate_all_ratios
from htma.domains.minerals.domain_logic.status import classify_elements, classify_minerals
from htma.domains.minerals.domain_logic.versions import CURRENT_VERSIONS, EngineVersions

logger = logging.getLogger(__name__)


def analyze_panel(
    panel: HTMAPanel,
    *,
    versions: EngineVersions = CURRENT_VERSIONS,
) -> PanelAnalysis:
    """Run every single-panel component over ``panel``.

    Minerals use the fuzzed policy (as scored), ratios the strict policy.
    Toxic and additional elements are classified for display only and
    feed neither the score nor the oxidation pattern.
    """
    values = panel.values
    minerals = classify_minerals(values, StatusPolicy.FUZZED)
    ratios = calculate_all_ratios(values, versions=versions)
    oxidation = classify_panel_oxidation(values, versions=versions)
    health_score = calculate_health_score(values, versions=versions)
    confidence = calculate_confidence_score(minerals, ratios, oxidation, versions=versions)
    toxic_elements, additional_elements = classify_elements(panel.elements)

    logger.info(
        "Analyzed panel %s: score %d (%s), oxidation %s",
        panel.panel_id or "<unnamed>",
        health_score.total_score,
        health_score.grade.value,
        oxidation.type.value,
    )

    return PanelAnalysis(
        panel=panel,
        minerals=minerals,
        ratios=ratios,
        oxidation=oxidation,
        health_score=health_score,
        confidence=confidence,
        toxic_elements=toxic_elements,
        additional_elements=additional_elements,
        versions=versions,
    )
