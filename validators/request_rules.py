"""Core optimization request validation rules."""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from .types import (
    RATE_BANDWIDTH_FACTOR,
    REQUEST_FIELDS,
    UNREALISTIC_CONSTRAINT_MESSAGE,
    InvalidReason,
    OptimizationRequest,
    ValidationResult,
)


def _coerce_number(value: Any) -> float | None:
    """Coerce a caller value to float, or None when it is not numeric."""
    # bool is an int subclass; a checkbox value is not a rate
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return float(value)
        except OverflowError:
            # Integers past float range behave as infinite
            return math.inf
    if isinstance(value, str):
        # Digit separators are a Python literal spelling, not a wire number
        if "_" in value:
            return None
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def field_message(name: str) -> str:
    return f"Invalid value for {name}"


def validate_request(payload: Mapping[str, Any] | None) -> ValidationResult:
    """Validate a raw request mapping keyed by wire field names.

    Pure function with no I/O dependencies. Every solver entry point runs
    this same check before any numeric work.

    Args:
        payload: Mapping with `minRate`, `maxPower`, `maxBandwidth`,
            `coeffA`, `coeffB`, `coeffC`. Anything that is not a mapping is
            treated as empty.

    Returns:
        ValidationResult; when valid, `request` holds the coerced
        OptimizationRequest.
    """
    data: Mapping[str, Any] = payload if isinstance(payload, Mapping) else {}

    values: dict[str, float] = {}
    for wire_name, attr in REQUEST_FIELDS.items():
        number = _coerce_number(data.get(wire_name))
        if number is None or not math.isfinite(number) or number <= 0:
            return ValidationResult(
                valid=False,
                reason=InvalidReason.INVALID_FIELD,
                field=wire_name,
                message=field_message(wire_name),
            )
        values[attr] = number

    # Cross-field check runs on the coerced values, never the raw input
    if values["min_rate"] >= values["max_bandwidth"] * RATE_BANDWIDTH_FACTOR:
        return ValidationResult(
            valid=False,
            reason=InvalidReason.UNREALISTIC_CONSTRAINT,
            field="minRate",
            message=UNREALISTIC_CONSTRAINT_MESSAGE,
        )

    return ValidationResult(valid=True, request=OptimizationRequest(**values))
