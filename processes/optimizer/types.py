from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal

import numpy as np

EngineType = Literal["native-solver", "in-process-solver", "client-mirror"]

ENGINE_NATIVE: EngineType = "native-solver"
ENGINE_IN_PROCESS: EngineType = "in-process-solver"
ENGINE_CLIENT_MIRROR: EngineType = "client-mirror"


class ErrorCodes(str, Enum):
    INVALID_INPUT = "INVALID_INPUT"
    CONFIG_ERROR = "CONFIG_ERROR"
    NATIVE_UNAVAILABLE = "NATIVE_UNAVAILABLE"
    NATIVE_OUTPUT_INVALID = "NATIVE_OUTPUT_INVALID"
    SOLVER_FAILURE = "SOLVER_FAILURE"


class OptimizerError(Exception):
    def __init__(
        self,
        code: ErrorCodes,
        message: str,
        user_message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.user_message = user_message or message
        self.details = details or {}


class NativeSolverUnavailable(OptimizerError):
    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(ErrorCodes.NATIVE_UNAVAILABLE, message, details=details)


class NativeSolverOutputInvalid(OptimizerError):
    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(ErrorCodes.NATIVE_OUTPUT_INVALID, message, details=details)


@dataclass
class SolverState:
    """Mutable state of a single solver run; never shared across requests."""

    # iterate (x1, x2, x3)
    x: np.ndarray
    # duals (lambda1, lambda2, lambda3), each >= 0
    duals: np.ndarray
    prev_objective: float = float("inf")
    iteration: int = 0


@dataclass(frozen=True)
class SolverOutput:
    rate: float
    power: float
    bandwidth: float
    latency: float
    iterations: int
    converged: bool
    objective_history: tuple[float, ...] = ()


@dataclass(frozen=True)
class NativeSolverOutput:
    rate: float
    power: float
    bandwidth: float
    latency: float
    iterations: int | None = None


@dataclass(frozen=True)
class OptimizationResult:
    rate: float
    power: float
    bandwidth: float
    latency: float
    iterations: int | None
    baseline_latency: float
    improvement_percent: float
    engine: EngineType

    def to_dict(self) -> dict[str, Any]:
        return {
            "rate": self.rate,
            "power": self.power,
            "bandwidth": self.bandwidth,
            "latency": self.latency,
            "iterations": self.iterations,
            "baselineLatency": self.baseline_latency,
            "improvementPercent": self.improvement_percent,
            "engine": self.engine,
        }


@dataclass(frozen=True)
class FallbackAttempt:
    state: str
    engine: EngineType
    ok: bool
    reason: str | None = None


@dataclass
class OptimizationOutcome:
    result: OptimizationResult
    attempts: list[FallbackAttempt] = field(default_factory=list)
