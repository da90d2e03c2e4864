"""Optimization request validation module."""

from .request_rules import validate_request
from .types import InvalidReason, OptimizationRequest, ValidationResult

__all__ = [
    "validate_request",
    "OptimizationRequest",
    "ValidationResult",
    "InvalidReason",
]
