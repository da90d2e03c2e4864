from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _WireModel(BaseModel):
    # snake_case in Python, camelCase on the wire
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ErrorResponse(BaseModel):
    error: str


class OptimizeInputs(_WireModel):
    min_rate: float
    max_power: float
    max_bandwidth: float
    coeff_a: float
    coeff_b: float
    coeff_c: float


class OptimizeResult(_WireModel):
    rate: float
    power: float
    bandwidth: float
    latency: float
    iterations: int | None = None
    baseline_latency: float
    improvement_percent: float
    engine: Literal["native-solver", "in-process-solver", "client-mirror"]


class OptimizeResponse(BaseModel):
    inputs: OptimizeInputs
    result: OptimizeResult
    message: str
    method: str


class HealthResponse(BaseModel):
    status: Literal["ok"] = "ok"
    version: str
    time: str
