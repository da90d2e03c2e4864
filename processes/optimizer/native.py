"""Runner for the external native solver process.

The native solver is a black box: six positional arguments in, one JSON
object on stdout, exit status 0 on success. Every failure is reported as
`NativeSolverUnavailable` or `NativeSolverOutputInvalid` so the caller can
route to the next tier.
"""

from __future__ import annotations

import json
import shlex
import shutil
import subprocess
from functools import lru_cache
from pathlib import Path
from typing import Any

from jsonschema import ValidationError as SchemaValidationError

from contracts import load_schema, schema_path, validate_obj
from validators import OptimizationRequest

from .types import NativeSolverOutput, NativeSolverOutputInvalid, NativeSolverUnavailable


@lru_cache(maxsize=1)
def _native_schema() -> dict[str, Any]:
    return load_schema(schema_path("native_result"))


def resolve_command(native_cmd: str) -> list[str]:
    """Split the configured command and check its executable can be located."""
    try:
        argv = shlex.split(native_cmd)
    except ValueError as e:
        raise NativeSolverUnavailable(f"Malformed native solver command: {e}") from e
    if not argv:
        raise NativeSolverUnavailable("Native solver command is empty")
    exe = argv[0]
    if shutil.which(exe) is None and not Path(exe).is_file():
        raise NativeSolverUnavailable(
            "Native solver executable missing", details={"executable": exe}
        )
    return argv


def _reject_constant(token: str) -> float:
    raise ValueError(f"non-finite number {token} in solver output")


def parse_output(stdout: str) -> NativeSolverOutput:
    try:
        # Strict JSON: NaN and Infinity are not numbers on this contract
        data = json.loads(stdout, parse_constant=_reject_constant)
    except ValueError as e:
        raise NativeSolverOutputInvalid("Failed to parse solver output") from e
    try:
        validate_obj(_native_schema(), data)
    except SchemaValidationError as e:
        raise NativeSolverOutputInvalid(
            f"Solver output does not match contract: {e.message}"
        ) from e
    iterations = data.get("iterations")
    return NativeSolverOutput(
        rate=float(data["rate"]),
        power=float(data["power"]),
        bandwidth=float(data["bandwidth"]),
        latency=float(data["latency"]),
        iterations=None if iterations is None else int(iterations),
    )


def run_native_solver(
    request: OptimizationRequest, *, native_cmd: str, timeout_s: float
) -> NativeSolverOutput:
    """Run the native solver once and parse its result.

    `subprocess.run` drains stdout and stderr before the exit status is
    inspected, reaps the child on every path and kills it on timeout.
    """
    argv = resolve_command(native_cmd) + request.as_args()
    try:
        proc = subprocess.run(
            argv,
            stdin=subprocess.DEVNULL,
            capture_output=True,
            text=True,
            timeout=timeout_s,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        raise NativeSolverUnavailable(
            f"Solver timed out after {timeout_s}s", details={"timeout_s": timeout_s}
        ) from e
    except OSError as e:
        raise NativeSolverUnavailable(f"Solver failed to start: {e}") from e

    if proc.returncode != 0:
        stderr = (proc.stderr or "").strip()
        raise NativeSolverUnavailable(
            stderr or f"Solver exit code {proc.returncode}",
            details={"returncode": proc.returncode},
        )
    return parse_output(proc.stdout)
