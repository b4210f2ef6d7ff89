"""Shared test fixtures for HTMA interpretation tests."""

from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HTMA_TRANSPORT", "streamable-http")
    monkeypatch.setenv("HTMA_HOST", "127.0.0.1")
    monkeypatch.setenv("HTMA_ALLOW_INSECURE_BIND", "false")
    monkeypatch.setenv("AUDIT_ENABLED", "true")
    monkeypatch.setenv("AUDIT_MAX_EVENTS", "500")

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from htma.domains.minerals.domain_logic.models import HTMAPanel  # noqa: E402
from htma.domains.minerals.domain_logic.panel import parse_panel  # noqa: E402


# Every mineral inside its ideal band and every ratio optimal: scores 100 / A.
IDEAL_VALUES: dict[str, float] = {
    "Ca": 40, "Mg": 6, "Na": 25, "K": 10, "P": 16,
    "Cu": 2.5, "Zn": 15, "Fe": 2, "Mn": 0.06, "Cr": 0.08,
    "Se": 0.1, "B": 0.25, "Co": 0.005, "Mo": 0.05, "S": 4500,
}

# One trace mineral raised above both the fuzzed band and the severe-excess
# line: -4 mineral points and -2 red flag points, ratios unaffected.
TRACE_EXCESS: dict[str, float] = {
    "Mn": 0.2, "Cr": 0.25, "Se": 0.3, "B": 0.6, "Co": 0.012, "Mo": 0.12, "S": 8000,
}


def make_values(**overrides: Any) -> dict[str, Any]:
    """Ideal values with selected minerals replaced."""
    return {**IDEAL_VALUES, **overrides}


def make_test_panel(
    taken_at: str | None = None,
    panel_id: str | None = None,
    **overrides: Any,
) -> HTMAPanel:
    """Create a test panel from ideal values plus overrides."""
    stamp = None
    if taken_at is not None:
        stamp = datetime.fromisoformat(taken_at).replace(tzinfo=timezone.utc)
    return parse_panel(make_values(**overrides), taken_at=stamp, panel_id=panel_id)


@pytest.fixture
def ideal_values() -> dict[str, float]:
    return dict(IDEAL_VALUES)


@pytest.fixture
def trace_excess() -> dict[str, float]:
    return dict(TRACE_EXCESS)


@pytest.fixture
def make_panel():
    """Factory fixture: ideal panel with overrides, optional taken_at and panel_id."""
    return make_test_panel


@pytest.fixture
def ideal_panel() -> HTMAPanel:
    return make_test_panel(panel_id="ideal")


@pytest.fixture
def audit_logger():
    """Create an in-memory AuditLogger."""
    from htma.core.audit.logger import AuditLogger

    return AuditLogger(max_events=100)
