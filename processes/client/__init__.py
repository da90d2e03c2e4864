"""Optimize client that mirrors the solver locally when the service is unreachable."""

from .mirror import OptimizeClient, run_local

__all__ = ["OptimizeClient", "run_local"]
