from __future__ import annotations

import argparse
import json
import logging
import sys
from collections.abc import Mapping, Sequence
from dataclasses import replace
from enum import Enum
from pathlib import Path
from typing import Any

from validators import OptimizationRequest, validate_request

from .enrich import enrich, enrich_solver_output
from .native import run_native_solver
from .settings import SolverSettings, load_settings
from .solver import solve
from .types import (
    ENGINE_IN_PROCESS,
    ENGINE_NATIVE,
    ErrorCodes,
    FallbackAttempt,
    NativeSolverOutputInvalid,
    NativeSolverUnavailable,
    OptimizationOutcome,
    OptimizationResult,
    OptimizerError,
)

logger = logging.getLogger("processes.optimizer")

METHOD_NAME = "Lagrange Multiplier"
GENERIC_FAILURE_MESSAGE = "Optimization failed"


class FallbackState(str, Enum):
    TRY_NATIVE = "try_native"
    TRY_IN_PROCESS = "try_in_process"
    DONE = "done"


def validate_or_raise(payload: Mapping[str, Any] | None) -> OptimizationRequest:
    """Run the shared validator; raise OptimizerError(INVALID_INPUT) on rejection."""
    res = validate_request(payload)
    if not res.valid or res.request is None:
        message = res.message or "Invalid request"
        raise OptimizerError(
            ErrorCodes.INVALID_INPUT, message, details={"field": res.field}
        )
    return res.request


def _log_transition(src: FallbackState, dst: FallbackState, reason: str | None) -> None:
    logger.info(
        json.dumps(
            {
                "event": "fallback_transition",
                "from": src.value,
                "to": dst.value,
                "reason": reason,
            }
        )
    )


def _try_native(
    request: OptimizationRequest, settings: SolverSettings
) -> tuple[OptimizationResult | None, FallbackAttempt]:
    state = FallbackState.TRY_NATIVE.value
    if not settings.native_enabled:
        return None, FallbackAttempt(state, ENGINE_NATIVE, False, "native tier disabled")
    try:
        out = run_native_solver(
            request,
            native_cmd=settings.native_cmd,
            timeout_s=settings.native_timeout_s,
        )
    except (NativeSolverUnavailable, NativeSolverOutputInvalid) as e:
        logger.warning(
            json.dumps(
                {
                    "event": "native_failed",
                    "code": e.code.value,
                    "reason": e.message,
                }
            )
        )
        return None, FallbackAttempt(state, ENGINE_NATIVE, False, e.message)
    result = enrich(
        request,
        rate=out.rate,
        power=out.power,
        bandwidth=out.bandwidth,
        latency=out.latency,
        iterations=out.iterations,
        engine=ENGINE_NATIVE,
    )
    return result, FallbackAttempt(state, ENGINE_NATIVE, True)


def _try_in_process(
    request: OptimizationRequest,
) -> tuple[OptimizationResult, FallbackAttempt]:
    try:
        out = solve(request)
    except Exception as e:
        # Not expected for validated input; surfaced as a generic failure
        raise OptimizerError(
            ErrorCodes.SOLVER_FAILURE,
            f"In-process solver failed: {e}",
            user_message=GENERIC_FAILURE_MESSAGE,
        ) from e
    result = enrich_solver_output(request, out, ENGINE_IN_PROCESS)
    return result, FallbackAttempt(FallbackState.TRY_IN_PROCESS.value, ENGINE_IN_PROCESS, True)


def run_optimization(
    request: OptimizationRequest, settings: SolverSettings | None = None
) -> OptimizationOutcome:
    """Try the solver tiers in priority order, one attempt each.

    TRY_NATIVE -> TRY_IN_PROCESS -> DONE. A native failure is recorded in
    `attempts` and logged, then routes to the in-process tier.
    """
    settings = settings or load_settings()
    attempts: list[FallbackAttempt] = []
    result: OptimizationResult | None = None
    state = FallbackState.TRY_NATIVE

    while state is not FallbackState.DONE:
        if state is FallbackState.TRY_NATIVE:
            result, attempt = _try_native(request, settings)
            attempts.append(attempt)
            nxt = FallbackState.DONE if attempt.ok else FallbackState.TRY_IN_PROCESS
        else:
            result, attempt = _try_in_process(request)
            attempts.append(attempt)
            nxt = FallbackState.DONE
        _log_transition(state, nxt, attempt.reason)
        state = nxt

    if result is None:
        raise OptimizerError(
            ErrorCodes.SOLVER_FAILURE,
            "No solver tier produced a result",
            user_message=GENERIC_FAILURE_MESSAGE,
        )
    return OptimizationOutcome(result=result, attempts=attempts)


def completion_message(result: OptimizationResult) -> str:
    if result.iterations is None:
        return f"Optimization complete using {METHOD_NAME} method (native solver)"
    return (
        f"Optimization complete using {METHOD_NAME} method "
        f"({result.iterations} iterations)"
    )


def build_response(
    request: OptimizationRequest,
    result: OptimizationResult,
    *,
    message: str | None = None,
    method: str = METHOD_NAME,
) -> dict[str, Any]:
    return {
        "inputs": request.to_dict(),
        "result": result.to_dict(),
        "message": message or completion_message(result),
        "method": method,
    }


def optimize_payload(
    payload: Mapping[str, Any] | None, settings: SolverSettings | None = None
) -> dict[str, Any]:
    """Validate, run the fallback chain and build the response envelope."""
    request = validate_or_raise(payload)
    outcome = run_optimization(request, settings)
    return build_response(request, outcome.result)


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="python -m processes.optimizer")
    p.add_argument("--min-rate", required=True)
    p.add_argument("--max-power", required=True)
    p.add_argument("--max-bandwidth", required=True)
    p.add_argument("--coeff-a", required=True)
    p.add_argument("--coeff-b", required=True)
    p.add_argument("--coeff-c", required=True)
    p.add_argument("--config", type=Path, help="YAML/JSON solver settings")
    p.add_argument(
        "--no-native", action="store_true", help="Skip the native solver tier"
    )
    p.add_argument("--verbose", action="store_true")
    return p


def payload_from_args(args: argparse.Namespace) -> dict[str, Any]:
    # Values stay strings; the validator owns coercion
    return {
        "minRate": args.min_rate,
        "maxPower": args.max_power,
        "maxBandwidth": args.max_bandwidth,
        "coeffA": args.coeff_a,
        "coeffB": args.coeff_b,
        "coeffC": args.coeff_c,
    }


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.INFO, stream=sys.stderr, format="%(message)s")
    settings = load_settings(args.config)
    if args.no_native:
        settings = replace(settings, native_enabled=False)
    try:
        out = optimize_payload(payload_from_args(args), settings)
    except OptimizerError as e:
        print(json.dumps({"error": e.user_message}), file=sys.stderr)
        return 2 if e.code is ErrorCodes.INVALID_INPUT else 1
    print(json.dumps(out, indent=2))
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
