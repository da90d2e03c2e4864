"""Types and models for optimization request validation."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class InvalidReason(Enum):
    """Enumerated error codes for request validation failures."""

    INVALID_FIELD = "invalid_field"
    UNREALISTIC_CONSTRAINT = "unrealistic_constraint"


# Wire name -> attribute name, in validation order
REQUEST_FIELDS: dict[str, str] = {
    "minRate": "min_rate",
    "maxPower": "max_power",
    "maxBandwidth": "max_bandwidth",
    "coeffA": "coeff_a",
    "coeffB": "coeff_b",
    "coeffC": "coeff_c",
}

# minRate must stay below maxBandwidth * this factor
RATE_BANDWIDTH_FACTOR = 10.0

UNREALISTIC_CONSTRAINT_MESSAGE = (
    "Unrealistic constraint: minRate too high for bandwidth ceiling"
)


@dataclass(frozen=True)
class OptimizationRequest:
    """Validated solver input. Only built by `validate_request`."""

    min_rate: float
    max_power: float
    max_bandwidth: float
    coeff_a: float
    coeff_b: float
    coeff_c: float

    def to_dict(self) -> dict[str, float]:
        return {wire: getattr(self, attr) for wire, attr in REQUEST_FIELDS.items()}

    def as_args(self) -> list[str]:
        # Positional order of the native solver contract
        return [repr(getattr(self, attr)) for attr in REQUEST_FIELDS.values()]


@dataclass
class ValidationResult:
    """Result of request validation with the offending field, if any."""

    valid: bool
    reason: InvalidReason | None = None
    field: str | None = None
    message: str | None = None
    request: OptimizationRequest | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "reason": self.reason.value if self.reason else None,
            "field": self.field,
            "message": self.message,
        }
