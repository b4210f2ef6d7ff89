"""Version identifiers stamped on every computed interpretation record.

Historical records must stay interpretable after thresholds are recalibrated,
so every result carries the exact rule set that produced it. Versions are an
explicit immutable value passed into each computation; bumping any of them is
a data change made here, never a runtime mutation.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class EngineVersions:
    """Immutable set of version tags for one interpretation run."""

    engine_version: str = "1.0.0"
    semantics_version: str = "1.0.0"          # health score weights, grades, red flags
    reference_range_version: str = "1.0.0"    # mineral + ratio reference table
    oxidation_engine_version: str = "1.0.0"
    delta_engine_version: str = "1.0.0"
    trend_engine_version: str = "1.0.0"

    def as_dict(self) -> dict[str, str]:
        return asdict(self)


CURRENT_VERSIONS = EngineVersions()
