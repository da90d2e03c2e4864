"""Caller-side optimize client with a local solver mirror.

The service is always tried first. Only when it cannot be reached at all
(connection refused, DNS failure, timeouts) does the client run the same
validator, solver and enricher locally, tagged ``client-mirror``. HTTP error
responses are raised, not mirrored: the service already ran its own
fallback chain before answering.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections.abc import Mapping, Sequence
from typing import Any

import httpx

from processes.optimizer.adapter import (
    METHOD_NAME,
    build_response,
    payload_from_args,
    validate_or_raise,
)
from processes.optimizer.enrich import enrich_solver_output
from processes.optimizer.solver import solve
from processes.optimizer.types import ENGINE_CLIENT_MIRROR, ErrorCodes, OptimizerError

logger = logging.getLogger("processes.client")

OPTIMIZE_PATH = "/api/optimize"
DEFAULT_TIMEOUT_S = 10.0
MIRROR_MESSAGE = "Optimization complete (client-side solver)"
MIRROR_METHOD = f"{METHOD_NAME} (Client-side)"


def run_local(payload: Mapping[str, Any] | None) -> dict[str, Any]:
    """Validate and solve in-process, returning the service's response envelope."""
    request = validate_or_raise(payload)
    result = enrich_solver_output(request, solve(request), ENGINE_CLIENT_MIRROR)
    return build_response(request, result, message=MIRROR_MESSAGE, method=MIRROR_METHOD)


def _error_from_response(resp: httpx.Response) -> OptimizerError:
    try:
        reason = str(resp.json().get("error") or resp.reason_phrase)
    except (ValueError, AttributeError):
        reason = resp.reason_phrase or f"HTTP {resp.status_code}"
    if resp.status_code == 400:
        return OptimizerError(ErrorCodes.INVALID_INPUT, reason)
    return OptimizerError(
        ErrorCodes.SOLVER_FAILURE,
        f"Service returned HTTP {resp.status_code}: {reason}",
        user_message=reason,
        details={"status_code": resp.status_code},
    )


class OptimizeClient:
    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = DEFAULT_TIMEOUT_S,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def optimize(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        try:
            with httpx.Client(
                base_url=self.base_url, timeout=self.timeout, transport=self.transport
            ) as client:
                resp = client.post(OPTIMIZE_PATH, json=dict(payload))
        except httpx.TransportError as e:
            logger.warning(
                json.dumps(
                    {
                        "event": "client_fallback",
                        "base_url": self.base_url,
                        "error": f"{type(e).__name__}: {e}",
                    }
                )
            )
            return run_local(payload)

        if resp.is_success:
            return dict(resp.json())
        raise _error_from_response(resp)


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="python -m processes.client")
    p.add_argument("--base-url", default="http://localhost:5050")
    p.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT_S)
    p.add_argument("--min-rate", required=True)
    p.add_argument("--max-power", required=True)
    p.add_argument("--max-bandwidth", required=True)
    p.add_argument("--coeff-a", required=True)
    p.add_argument("--coeff-b", required=True)
    p.add_argument("--coeff-c", required=True)
    p.add_argument("--verbose", action="store_true")
    return p


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.INFO, stream=sys.stderr, format="%(message)s")
    client = OptimizeClient(args.base_url, timeout=args.timeout)
    try:
        out = client.optimize(payload_from_args(args))
    except OptimizerError as e:
        print(json.dumps({"error": e.user_message}), file=sys.stderr)
        return 2 if e.code is ErrorCodes.INVALID_INPUT else 1
    print(json.dumps(out, indent=2))
    return 0
