from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

from .types import ErrorCodes, OptimizerError

# Resolve repo root (two levels up from this file)
REPO_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_NATIVE_CMD = str(REPO_ROOT / "lagrange_opt" / "solver")
DEFAULT_NATIVE_TIMEOUT_S = 10.0

CONFIG_ENV = "LATENCY_OPT_CONFIG"
NATIVE_CMD_ENV = "LAGRANGE_BIN"
NATIVE_TIMEOUT_ENV = "LAGRANGE_TIMEOUT_S"
NATIVE_ENABLED_ENV = "LAGRANGE_NATIVE"

_FALSEY = {"0", "false", "no", "off"}
_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class SolverSettings:
    # shell-style command line; split with shlex before exec
    native_cmd: str = DEFAULT_NATIVE_CMD
    native_timeout_s: float = DEFAULT_NATIVE_TIMEOUT_S
    native_enabled: bool = True


def _config_error(message: str) -> OptimizerError:
    return OptimizerError(ErrorCodes.CONFIG_ERROR, message)


def _coerce_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    lower = str(value).strip().lower()
    if lower in _TRUTHY:
        return True
    if lower in _FALSEY:
        return False
    raise _config_error(f"Invalid boolean for {key}: {value!r}")


def _coerce_timeout(key: str, value: Any) -> float:
    try:
        timeout = float(value)
    except (TypeError, ValueError) as e:
        raise _config_error(f"Invalid timeout for {key}: {value!r}") from e
    if not timeout > 0:
        raise _config_error(f"{key} must be positive, got {value!r}")
    return timeout


def load_config_file(config_path: Path) -> dict[str, Any]:
    text = config_path.read_text(encoding="utf-8")
    if config_path.suffix.lower() in (".yaml", ".yml"):
        import yaml  # lazy

        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, Mapping):
        raise _config_error(f"Config file {config_path} must hold a mapping")
    return dict(data)


def _apply(settings: SolverSettings, values: Mapping[str, Any]) -> SolverSettings:
    # Unknown keys are ignored
    known = {f.name for f in fields(SolverSettings)}
    updates: dict[str, Any] = {}
    for key, value in values.items():
        if key not in known or value is None:
            continue
        if key == "native_cmd":
            updates[key] = str(value)
        elif key == "native_timeout_s":
            updates[key] = _coerce_timeout(key, value)
        elif key == "native_enabled":
            updates[key] = _coerce_bool(key, value)
    return replace(settings, **updates)


def load_settings(
    config_path: Path | None = None, env: Mapping[str, str] | None = None
) -> SolverSettings:
    """Resolve settings: defaults, then config file, then environment.

    The config file path comes from `config_path` or the LATENCY_OPT_CONFIG
    env var; YAML or JSON chosen by suffix.
    """
    env = os.environ if env is None else env
    settings = SolverSettings()

    path = config_path or (Path(env[CONFIG_ENV]) if env.get(CONFIG_ENV) else None)
    if path is not None:
        settings = _apply(settings, load_config_file(path))

    return _apply(
        settings,
        {
            "native_cmd": env.get(NATIVE_CMD_ENV) or None,
            "native_timeout_s": env.get(NATIVE_TIMEOUT_ENV) or None,
            "native_enabled": env.get(NATIVE_ENABLED_ENV) or None,
        },
    )
