from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from processes.optimizer import adapter as opt
from processes.optimizer.enrich import enrich_solver_output
from processes.optimizer.settings import SolverSettings
from processes.optimizer.solver import solve
from processes.optimizer.types import (
    ENGINE_IN_PROCESS,
    ErrorCodes,
    FallbackAttempt,
    OptimizerError,
)
from validators import OptimizationRequest

EXAMPLE = OptimizationRequest(5.0, 40.0, 50.0, 10.0, 10.0, 10.0)


def _point(result) -> tuple[float, float, float, float]:
    return (result.rate, result.power, result.bandwidth, result.latency)


def test_absent_native_falls_back_to_in_process(tmp_path: Path) -> None:
    settings = SolverSettings(native_cmd=str(tmp_path / "missing-solver"))

    outcome = opt.run_optimization(EXAMPLE, settings)

    assert outcome.result.engine == "in-process-solver"
    direct = enrich_solver_output(EXAMPLE, solve(EXAMPLE), ENGINE_IN_PROCESS)
    assert outcome.result == direct
    assert [a.state for a in outcome.attempts] == ["try_native", "try_in_process"]
    assert outcome.attempts[0].ok is False
    assert "missing" in (outcome.attempts[0].reason or "")
    assert outcome.attempts[1].ok is True


def test_native_success_is_tagged_and_enriched(stub_native_cmd: str) -> None:
    outcome = opt.run_optimization(EXAMPLE, SolverSettings(native_cmd=stub_native_cmd))

    res = outcome.result
    assert res.engine == "native-solver"
    assert len(outcome.attempts) == 1
    assert res.baseline_latency == 2.9
    # Both numeric views agree up to rounding
    direct = enrich_solver_output(EXAMPLE, solve(EXAMPLE), ENGINE_IN_PROCESS)
    assert _point(res) == pytest.approx(_point(direct), abs=1e-4)
    assert res.improvement_percent == pytest.approx(direct.improvement_percent, abs=0.011)
    assert res.iterations == direct.iterations


@pytest.mark.parametrize("mode", ["fail", "garbage", "bad_shape", "nan"])
def test_native_failures_never_surface(stub_native_cmd: str, monkeypatch, mode: str) -> None:
    monkeypatch.setenv("STUB_NATIVE_MODE", mode)

    outcome = opt.run_optimization(EXAMPLE, SolverSettings(native_cmd=stub_native_cmd))

    assert outcome.result.engine == "in-process-solver"
    assert outcome.attempts[0].ok is False


def test_disabled_native_tier_skips_process(monkeypatch) -> None:
    def _boom(*args, **kwargs):
        raise AssertionError("native solver must not run")

    monkeypatch.setattr(opt, "run_native_solver", _boom)

    outcome = opt.run_optimization(EXAMPLE, SolverSettings(native_enabled=False))

    assert outcome.result.engine == "in-process-solver"
    assert outcome.attempts[0].reason == "native tier disabled"


def test_native_attempted_once(monkeypatch) -> None:
    calls: list[str] = []

    def _counting(*args, **kwargs):
        calls.append("native")
        raise opt.NativeSolverUnavailable("down")

    monkeypatch.setattr(opt, "run_native_solver", _counting)
    opt.run_optimization(EXAMPLE, SolverSettings())

    assert calls == ["native"]


def test_in_process_exception_becomes_solver_failure(monkeypatch) -> None:
    def _raise(request):
        raise ZeroDivisionError("float division by zero")

    monkeypatch.setattr(opt, "solve", _raise)

    with pytest.raises(OptimizerError) as ei:
        opt.run_optimization(EXAMPLE, SolverSettings(native_enabled=False))
    assert ei.value.code is ErrorCodes.SOLVER_FAILURE
    assert ei.value.user_message == "Optimization failed"


def test_tier_without_result_is_solver_failure(monkeypatch) -> None:
    def _empty(request):
        return None, FallbackAttempt(opt.FallbackState.TRY_IN_PROCESS.value, ENGINE_IN_PROCESS, True)

    monkeypatch.setattr(opt, "_try_in_process", _empty)

    with pytest.raises(OptimizerError) as ei:
        opt.run_optimization(EXAMPLE, SolverSettings(native_enabled=False))
    assert ei.value.code is ErrorCodes.SOLVER_FAILURE
    assert ei.value.user_message == "Optimization failed"


def test_transitions_are_logged(tmp_path: Path, caplog) -> None:
    caplog.set_level(logging.INFO, logger="processes.optimizer")
    opt.run_optimization(EXAMPLE, SolverSettings(native_cmd=str(tmp_path / "nope")))

    events = [json.loads(r.getMessage()) for r in caplog.records]
    kinds = [e["event"] for e in events]
    assert kinds == ["native_failed", "fallback_transition", "fallback_transition"]
    assert events[1]["from"] == "try_native"
    assert events[1]["to"] == "try_in_process"
    assert events[2]["to"] == "done"


def test_optimize_payload_envelope(example_payload) -> None:
    out = opt.optimize_payload(example_payload, SolverSettings(native_enabled=False))

    assert out["inputs"] == {k: float(v) for k, v in example_payload.items()}
    assert out["method"] == "Lagrange Multiplier"
    assert out["message"] == (
        f"Optimization complete using Lagrange Multiplier method ({out['result']['iterations']} iterations)"
    )
    assert out["result"]["engine"] == "in-process-solver"


def test_optimize_payload_rejects_invalid() -> None:
    with pytest.raises(OptimizerError) as ei:
        opt.optimize_payload({"minRate": 100, "maxBandwidth": 5})
    assert ei.value.code is ErrorCodes.INVALID_INPUT
    assert ei.value.message == "Invalid value for maxPower"


def test_cli_prints_envelope(capsys) -> None:
    rc = opt.main(
        [
            "--min-rate", "5",
            "--max-power", "40",
            "--max-bandwidth", "50",
            "--coeff-a", "10",
            "--coeff-b", "10",
            "--coeff-c", "10",
            "--no-native",
        ]
    )
    assert rc == 0
    out = json.loads(capsys.readouterr().out)
    assert out["result"]["engine"] == "in-process-solver"
    assert out["result"]["baselineLatency"] == 2.9


def test_cli_validation_failure_exit_code(capsys) -> None:
    rc = opt.main(
        [
            "--min-rate", "100",
            "--max-power", "40",
            "--max-bandwidth", "5",
            "--coeff-a", "10",
            "--coeff-b", "10",
            "--coeff-c", "10",
            "--no-native",
        ]
    )
    assert rc == 2
    err = json.loads(capsys.readouterr().err)
    assert err["error"].startswith("Unrealistic constraint")
