"""Call cost calculation.

Provider-reported cost wins: ``llm_cost`` first, then ``cost``.  When the
provider reports neither (or reports zero), cost falls back to a flat
per-minute rate on the call duration, rounded to cents.
"""

from __future__ import annotations

from typing import Any, Mapping

DEFAULT_RATE_PER_MINUTE = 0.30


def _as_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def calculate_call_cost(
    duration_seconds: float,
    cost_data: Mapping[str, Any] | None = None,
    rate_per_minute: float = DEFAULT_RATE_PER_MINUTE,
) -> float:
    """Return the monetary cost of one call."""
    cost_data = cost_data or {}
    for key in ("llm_cost", "cost"):
        reported = _as_float(cost_data.get(key))
        if reported > 0:
            return reported

    minutes = max(_as_float(duration_seconds), 0.0) / 60
    return round(minutes * rate_per_minute, 2)
