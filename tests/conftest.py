from __future__ import annotations

import shlex
import sys
from pathlib import Path

import pytest

# Ensure project root is on sys.path for package imports like `processes.*`
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

STUB_NATIVE = ROOT / "tests" / "fixtures" / "stub_native_solver.py"


@pytest.fixture(autouse=True)
def _isolate_solver_env(monkeypatch: pytest.MonkeyPatch) -> None:
    # Tests choose their native tier explicitly
    for key in ("LAGRANGE_BIN", "LAGRANGE_TIMEOUT_S", "LAGRANGE_NATIVE", "LATENCY_OPT_CONFIG"):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def stub_native_cmd() -> str:
    return shlex.join([sys.executable, str(STUB_NATIVE)])


@pytest.fixture
def example_payload() -> dict[str, float]:
    return {
        "minRate": 5,
        "maxPower": 40,
        "maxBandwidth": 50,
        "coeffA": 10,
        "coeffB": 10,
        "coeffC": 10,
    }
