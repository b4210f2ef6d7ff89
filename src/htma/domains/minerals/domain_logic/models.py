"""Result models and closed classifications for HTMA interpretation.

Every derived object is a frozen dataclass: a new panel always produces new
records, never a patched copy of an old one. Sequences inside results are
tuples so results compare (and hash) by value.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, fields, is_dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from htma.domains.minerals.domain_logic.versions import CURRENT_VERSIONS, EngineVersions


# ---------------------------------------------------------------------------
# Closed classifications
# ---------------------------------------------------------------------------

class Status(str, Enum):
    LOW = "Low"
    OPTIMAL = "Optimal"
    HIGH = "High"


class StatusPolicy(str, Enum):
    """Named status classification strategies (see ``status.py``)."""

    FUZZED = "fuzzed"
    STRICT = "strict"


class OxidationType(str, Enum):
    FAST = "fast"
    SLOW = "slow"
    MIXED = "mixed"
    BALANCED = "balanced"


class OxidationConfidence(str, Enum):
    HIGH = "high"
    MODERATE = "moderate"
    LOW = "low"


class RatioSignal(str, Enum):
    FAST = "fast"
    SLOW = "slow"
    OPTIMAL = "optimal"


class ElementCategory(str, Enum):
    """Optional elements reported beside the scored panel."""

    TOXIC = "toxic"
    ADDITIONAL = "additional"


class Grade(str, Enum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    F = "F"


class RedFlagKind(str, Enum):
    SEVERE_DEFICIENCY = "severe_deficiency"
    SEVERE_EXCESS = "severe_excess"
    CRITICAL_RATIO = "critical_ratio"


class DeltaDirection(str, Enum):
    IMPROVED = "improved"
    DECLINED = "declined"
    UNCHANGED = "unchanged"


class DriverKind(str, Enum):
    MINERAL = "mineral"
    RATIO = "ratio"


class PatternChangeType(str, Enum):
    MAJOR_SHIFT = "major_shift"
    MINOR_ADJUSTMENT = "minor_adjustment"
    STABLE = "stable"
    NEW_TEST = "new_test"


class BalanceDirection(str, Enum):
    TOWARD_BALANCED = "toward_balanced"
    AWAY_FROM_BALANCED = "away_from_balanced"
    STABLE = "stable"


class IndicatorImpact(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class TrendDirection(str, Enum):
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"
    VOLATILE = "volatile"


class TrendStrength(str, Enum):
    STRONG = "strong"
    MODERATE = "moderate"
    WEAK = "weak"


class MineralPattern(str, Enum):
    CONSISTENT = "consistent"
    IMPROVING_THEN_DECLINING = "improving-then-declining"
    DECLINING_THEN_IMPROVING = "declining-then-improving"
    ERRATIC = "erratic"


class ConfidenceLevel(str, Enum):
    HIGH = "High"
    MODERATE = "Moderate"
    LOW = "Low"


class EvidenceType(str, Enum):
    MINERAL = "mineral"
    RATIO = "ratio"
    OXIDATION = "oxidation"
    PATTERN = "pattern"


# ---------------------------------------------------------------------------
# Reference data
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ReferenceRange:
    """Ideal band for one mineral."""

    symbol: str
    name: str
    min_ideal: float
    max_ideal: float
    unit: str = "mg%"
    display_order: int = 0
    weight: int = 4                 # score points awarded when Optimal


@dataclass(frozen=True)
class ElementReference:
    """A display-only element. Toxic elements carry an upper reference limit."""

    symbol: str
    name: str
    category: ElementCategory
    reference_high: float | None = None
    unit: str = "mg%"
    display_order: int = 0


@dataclass(frozen=True)
class RatioDefinition:
    """One tracked mineral ratio and its static interpretation text."""

    name: str                       # "Ca/Mg"
    numerator: str
    denominator: str
    min_ideal: float
    max_ideal: float
    display_order: int
    significance: str
    low_text: str
    optimal_text: str
    high_text: str
    weight: int = 5

    def interpretation_for(self, status: Status) -> str:
        if status is Status.LOW:
            return self.low_text
        if status is Status.HIGH:
            return self.high_text
        return self.optimal_text


@dataclass(frozen=True)
class ReferenceRangeTable:
    """A complete reference table, versioned as a whole."""

    version: str
    name: str
    standard: str
    minerals: tuple[ReferenceRange, ...]
    ratios: tuple[RatioDefinition, ...] = ()

    def mineral(self, symbol: str) -> ReferenceRange | None:
        for entry in self.minerals:
            if entry.symbol == symbol:
                return entry
        return None


# ---------------------------------------------------------------------------
# Input capture
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ParsedValue:
    """A raw input value that parsed cleanly."""

    value: float
    symbol: str = ""


@dataclass(frozen=True)
class DefaultedValue:
    """A raw input value that could not be used and participates as 0."""

    original: str | None
    reason: str                     # 'missing' | 'non_numeric' | 'not_finite'
    symbol: str = ""

    @property
    def value(self) -> float:
        return 0.0


@dataclass(frozen=True)
class MineralReading:
    symbol: str
    value: float
    unit: str = "mg%"


@dataclass(frozen=True)
class HTMAPanel:
    """The fifteen captured readings of one hair tissue test."""

    readings: tuple[MineralReading, ...]
    taken_at: datetime | None = None
    panel_id: str | None = None
    defaulted: tuple[DefaultedValue, ...] = ()
    elements: tuple[MineralReading, ...] = ()     # optional toxic/additional, never scored

    def __post_init__(self) -> None:
        # Panels are ordered and compared by taken_at, so it is always aware UTC.
        if self.taken_at is not None:
            if self.taken_at.tzinfo is None:
                normalized = self.taken_at.replace(tzinfo=timezone.utc)
            else:
                normalized = self.taken_at.astimezone(timezone.utc)
            object.__setattr__(self, "taken_at", normalized)

    @property
    def values(self) -> dict[str, float]:
        return {r.symbol: r.value for r in self.readings}

    def value(self, symbol: str) -> float:
        for reading in self.readings:
            if reading.symbol == symbol:
                return reading.value
        return 0.0

    @property
    def has_defaults(self) -> bool:
        return bool(self.defaulted)


# ---------------------------------------------------------------------------
# Status + ratio results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MineralResult:
    symbol: str
    name: str
    value: float
    unit: str
    min_ideal: float
    max_ideal: float
    status: Status
    policy: StatusPolicy


@dataclass(frozen=True)
class ElementResult:
    symbol: str
    name: str
    category: ElementCategory
    value: float
    unit: str
    reference_high: float | None
    status: Status | None           # None when the element has no reference limit


@dataclass(frozen=True)
class RatioResult:
    name: str
    numerator: str
    denominator: str
    numerator_value: float
    denominator_value: float
    value: float
    min_ideal: float
    max_ideal: float
    status: Status
    significance: str
    interpretation: str
    versions: EngineVersions = CURRENT_VERSIONS


# ---------------------------------------------------------------------------
# Oxidation
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class OxidationIndicators:
    calcium_status: Status
    magnesium_status: Status
    sodium_status: Status
    potassium_status: Status
    ca_k_signal: RatioSignal
    na_k_signal: RatioSignal
    ca_mg_signal: RatioSignal


@dataclass(frozen=True)
class OxidationMetadata:
    calcium: float
    magnesium: float
    sodium: float
    potassium: float
    ca_k: float
    na_k: float
    ca_mg: float
    alignment_score: int            # 0-6


@dataclass(frozen=True)
class OxidationClassification:
    type: OxidationType
    confidence: OxidationConfidence
    indicators: OxidationIndicators
    explanation: str
    interpretation: str
    threshold_warnings: tuple[str, ...]
    metadata: OxidationMetadata
    insufficient_data: bool = False
    versions: EngineVersions = CURRENT_VERSIONS


# ---------------------------------------------------------------------------
# Health score
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StatusCounts:
    minerals_optimal: int
    minerals_low: int
    minerals_high: int
    ratios_optimal: int
    ratios_low: int
    ratios_high: int


@dataclass(frozen=True)
class RedFlag:
    kind: RedFlagKind
    subject: str                    # mineral symbol or ratio name
    penalty: int
    message: str


@dataclass(frozen=True)
class HealthScoreBreakdown:
    total_score: int                # 0-100
    mineral_score: int              # 0-60
    ratio_score: int                # 0-30
    red_flag_score: int             # 0-10
    grade: Grade
    interpretation: str
    status_counts: StatusCounts
    red_flags: tuple[RedFlag, ...]
    critical_issues: tuple[str, ...]
    versions: EngineVersions = CURRENT_VERSIONS


# ---------------------------------------------------------------------------
# Deltas
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ScoreDriver:
    kind: DriverKind
    key: str                        # mineral symbol or ratio name
    name: str
    from_status: Status
    to_status: Status
    impact: int                     # signed score points
    description: str


@dataclass(frozen=True)
class ScoreComponentDelta:
    mineral_score_delta: int
    ratio_score_delta: int
    red_flag_score_delta: int


@dataclass(frozen=True)
class PatternChange:
    type: PatternChangeType
    is_milestone: bool
    description: str


@dataclass(frozen=True)
class DistanceToBalanced:
    previous: float | None          # None for a first (baseline) test
    current: float
    change: float                   # negative = moving toward balanced
    direction: BalanceDirection


@dataclass(frozen=True)
class IndicatorChange:
    indicator: str
    from_value: str
    to_value: str
    impact: IndicatorImpact
    note: str


@dataclass(frozen=True)
class OxidationDelta:
    previous_type: OxidationType | None
    current_type: OxidationType
    pattern_change: PatternChange
    distance_to_balanced: DistanceToBalanced
    key_changes: tuple[IndicatorChange, ...]
    reached_balanced: bool
    summary: str
    versions: EngineVersions = CURRENT_VERSIONS


@dataclass(frozen=True)
class ScoreDeltaExplanation:
    score_delta: int
    direction: DeltaDirection
    previous_score: int
    current_score: int
    primary_drivers: tuple[str, ...]
    secondary_contributors: tuple[str, ...]
    offsetting_factors: tuple[str, ...]
    top_drivers: tuple[ScoreDriver, ...]
    all_drivers: tuple[ScoreDriver, ...]
    breakdown: ScoreComponentDelta
    headline: str
    summary: str
    oxidation_delta: OxidationDelta | None = None
    versions: EngineVersions = CURRENT_VERSIONS


# ---------------------------------------------------------------------------
# Trends
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TrendOverall:
    direction: TrendDirection
    strength: TrendStrength
    consistency: float              # 0-1
    score_delta: int
    avg_change_per_period: float


@dataclass(frozen=True)
class MineralTrend:
    symbol: str
    name: str
    direction: TrendDirection       # improving | declining | stable
    pattern: MineralPattern
    note: str


@dataclass(frozen=True)
class TrendTimespan:
    first_date: str | None
    last_date: str | None
    period_count: int
    avg_days_between: int | None


@dataclass(frozen=True)
class TrendExplanation:
    overall: TrendOverall
    headline: str
    summary: str
    key_insights: tuple[str, ...]
    mineral_trends: tuple[MineralTrend, ...]
    timespan: TrendTimespan
    versions: EngineVersions = CURRENT_VERSIONS


# ---------------------------------------------------------------------------
# Confidence
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EvidenceItem:
    type: EvidenceType
    description: str
    weight: float


@dataclass(frozen=True)
class ConfidenceScore:
    level: ConfidenceLevel
    score: int                      # 0-100
    evidence: tuple[EvidenceItem, ...]
    abnormal_count: int
    has_corroboration: bool
    versions: EngineVersions = CURRENT_VERSIONS


# ---------------------------------------------------------------------------
# Whole-panel snapshot
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PanelAnalysis:
    """Everything the engine derives from one panel, ready to persist or render."""

    panel: HTMAPanel
    minerals: tuple[MineralResult, ...]
    ratios: tuple[RatioResult, ...]
    oxidation: OxidationClassification
    health_score: HealthScoreBreakdown
    confidence: ConfidenceScore
    toxic_elements: tuple[ElementResult, ...] = ()
    additional_elements: tuple[ElementResult, ...] = ()
    versions: EngineVersions = CURRENT_VERSIONS


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------

def to_jsonable(obj: Any) -> Any:
    """Recursively convert result objects into JSON-compatible structures."""
    if isinstance(obj, Enum):
        return obj.value
    if is_dataclass(obj) and not isinstance(obj, type):
        out = {f.name: to_jsonable(getattr(obj, f.name)) for f in fields(obj)}
        if isinstance(obj, DefaultedValue):
            out["value"] = obj.value
        return out
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, dict):
        return {str(k): to_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_jsonable(v) for v in obj]
    if isinstance(obj, float) and not math.isfinite(obj):
        return None
    return obj
