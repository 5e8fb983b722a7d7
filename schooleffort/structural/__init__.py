"""Structural model helpers.

This subpackage contains the closed-form solution of the period-1 effort
problem and the forward simulation of choices built on it.

Currently included:
- solver: optimal effort, value of schooling and emax (status quo or rationed).
- simulate: realised school/success/college choices under both regimes.
"""

from .solver import Solution, optimal_effort, primitives, solve
from .simulate import observed_panel, simulate_choices

__all__ = ["Solution", "optimal_effort", "primitives", "solve", "observed_panel", "simulate_choices"]
