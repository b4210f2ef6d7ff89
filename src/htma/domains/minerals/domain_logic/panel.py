"""Panel capture: raw lab values -> immutable ``HTMAPanel``.

Scoring is default-permissive: a missing, non-numeric or non-finite value
participates as 0. Every such substitution is recorded as a
``DefaultedValue`` on the panel so callers can surface data-entry problems
without changing how the panel scores.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from htma.domains.minerals.domain_logic.models import (
    DefaultedValue,
    HTMAPanel,
    MineralReading,
    ParsedValue,
)
from htma.domains.minerals.domain_logic.registry import (
    MINERAL_NAME_ALIASES,
    MINERAL_RANGES,
    MINERAL_SYMBOLS,
    resolve_element,
)

logger = logging.getLogger(__name__)

_SYMBOL_LOOKUP = {s.lower(): s for s in MINERAL_SYMBOLS}


def parse_value(raw: Any, *, symbol: str = "") -> ParsedValue | DefaultedValue:
    """Parse one raw mineral value.

    Args:
        raw: Number, numeric string, or anything else a form/API produced.
        symbol: Mineral symbol, carried on the result for reporting.

    Returns:
        ``ParsedValue`` for a usable finite number, otherwise a
        ``DefaultedValue`` whose value is 0.
    """
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return DefaultedValue(original=None if raw is None else raw, reason="missing", symbol=symbol)
    if isinstance(raw, bool):
        return DefaultedValue(original=str(raw), reason="non_numeric", symbol=symbol)
    try:
        value = float(raw.strip() if isinstance(raw, str) else raw)
    except (TypeError, ValueError):
        return DefaultedValue(original=str(raw), reason="non_numeric", symbol=symbol)
    except OverflowError:
        # Integers beyond float range; str() of a huge int can itself fail.
        text = f"integer of {raw.bit_length()} bits" if isinstance(raw, int) else str(raw)
        return DefaultedValue(original=text, reason="not_finite", symbol=symbol)
    if not math.isfinite(value):
        return DefaultedValue(original=str(raw), reason="not_finite", symbol=symbol)
    return ParsedValue(value=value, symbol=symbol)


def resolve_symbol(key: str) -> str | None:
    """Map an input key ("Ca", "ca", "calcium") to its registry symbol."""
    normalized = key.strip().lower()
    return _SYMBOL_LOOKUP.get(normalized) or MINERAL_NAME_ALIASES.get(normalized)


def parse_timestamp(raw: Any) -> datetime | None:
    """Parse an ISO 8601 timestamp; naive values are taken as UTC.

    Raises:
        ValueError: If ``raw`` is a non-empty value that is not ISO 8601.
    """
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        parsed = raw
    else:
        text = str(raw).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as exc:
            raise ValueError(f"Invalid timestamp {raw!r}: expected ISO 8601") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_panel(
    raw_values: Mapping[str, Any],
    *,
    taken_at: datetime | None = None,
    panel_id: str | None = None,
) -> HTMAPanel:
    """Capture a raw mineral mapping as an ``HTMAPanel``.

    Keys may be symbols in any case or full mineral names. Minerals absent
    from the mapping are recorded as defaulted. Toxic and additional elements
    are kept on ``elements`` when their value is usable; they are never
    defaulted and never scored. Other keys are ignored.
    """
    by_symbol: dict[str, Any] = {}
    elements: list[MineralReading] = []
    for key, raw in raw_values.items():
        symbol = resolve_symbol(str(key))
        if symbol is not None:
            by_symbol[symbol] = raw
            continue
        element = resolve_element(str(key))
        if element is None:
            logger.debug("Ignoring unknown mineral key %r", key)
            continue
        parsed = parse_value(raw, symbol=element.symbol)
        if isinstance(parsed, DefaultedValue):
            logger.warning(
                "Panel %s: %s value dropped (%s)",
                panel_id or "<unnamed>",
                element.symbol,
                parsed.reason,
            )
            continue
        elements.append(MineralReading(symbol=element.symbol, value=parsed.value, unit=element.unit))

    readings: list[MineralReading] = []
    defaulted: list[DefaultedValue] = []
    for ref in MINERAL_RANGES:
        result = parse_value(by_symbol.get(ref.symbol), symbol=ref.symbol)
        if isinstance(result, DefaultedValue):
            defaulted.append(result)
        readings.append(MineralReading(symbol=ref.symbol, value=result.value, unit=ref.unit))

    if defaulted:
        logger.warning(
            "Panel %s: %d mineral value(s) defaulted to 0 (%s)",
            panel_id or "<unnamed>",
            len(defaulted),
            ", ".join(f"{d.symbol}:{d.reason}" for d in defaulted),
        )

    return HTMAPanel(
        readings=tuple(readings),
        taken_at=taken_at,
        panel_id=panel_id,
        defaulted=tuple(defaulted),
        elements=tuple(elements),
    )


def panel_from_payload(payload: Mapping[str, Any]) -> HTMAPanel:
    """Build a panel from a ``{"minerals": {...}, "taken_at": ..., "panel_id": ...}`` payload.

    A payload without a ``minerals`` key is treated as the mineral mapping itself.

    Raises:
        ValueError: If the payload is not a mapping or its timestamp is malformed.
    """
    if not isinstance(payload, Mapping):
        raise ValueError(f"Panel payload must be an object, got {type(payload).__name__}")
    minerals = payload.get("minerals", payload)
    if not isinstance(minerals, Mapping):
        raise ValueError("Panel 'minerals' must be an object of symbol -> value")
    panel_id = payload.get("panel_id")
    return parse_panel(
        minerals,
        taken_at=parse_timestamp(payload.get("taken_at")),
        panel_id=str(panel_id) if panel_id is not None else None,
    )
