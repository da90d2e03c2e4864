"""Optimizer process package.

Holds the latency solver, the result enricher and a headless adapter that
routes each request through the solver tiers (native process first, then the
in-process solver). Nothing here imports the web layer, so it is testable in
isolation.
"""
