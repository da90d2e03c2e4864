from __future__ import annotations

from validators import OptimizationRequest

from .solver import objective
from .types import EngineType, OptimizationResult, SolverOutput

# Presentation precision, shared by every engine
POINT_DECIMALS = 4
BASELINE_DECIMALS = 6
IMPROVEMENT_DECIMALS = 2

# Naive reference choice: rate at its floor, power and bandwidth at half cap
BASELINE_UTILIZATION = 0.5


def baseline_latency(request: OptimizationRequest) -> float:
    return objective(
        request,
        request.min_rate,
        request.max_power * BASELINE_UTILIZATION,
        request.max_bandwidth * BASELINE_UTILIZATION,
    )


def improvement_percent(baseline: float, latency: float) -> float:
    return (baseline - latency) / baseline * 100


def enrich(
    request: OptimizationRequest,
    *,
    rate: float,
    power: float,
    bandwidth: float,
    latency: float,
    iterations: int | None,
    engine: EngineType,
) -> OptimizationResult:
    """Attach baseline comparison and round for presentation.

    The improvement is computed from the unrounded latency passed in.
    """
    baseline = baseline_latency(request)
    return OptimizationResult(
        rate=round(rate, POINT_DECIMALS),
        power=round(power, POINT_DECIMALS),
        bandwidth=round(bandwidth, POINT_DECIMALS),
        latency=round(latency, POINT_DECIMALS),
        iterations=iterations,
        baseline_latency=round(baseline, BASELINE_DECIMALS),
        improvement_percent=round(
            improvement_percent(baseline, latency), IMPROVEMENT_DECIMALS
        ),
        engine=engine,
    )


def enrich_solver_output(
    request: OptimizationRequest, output: SolverOutput, engine: EngineType
) -> OptimizationResult:
    return enrich(
        request,
        rate=output.rate,
        power=output.power,
        bandwidth=output.bandwidth,
        latency=output.latency,
        iterations=output.iterations,
        engine=engine,
    )
