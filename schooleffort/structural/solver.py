from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np

from ..configs import DISCOUNT, Primitives
from ..errors import InvalidEffortDomain
from ..math_utils import EULER, log_effort, logistic, softplus


@dataclass(frozen=True)
class Solution:
    """Closed-form period-1 problem evaluated at a set of primitives."""

    effort: np.ndarray
    variable_cost: np.ndarray
    flow_utility: np.ndarray
    success_prob: np.ndarray
    emax: np.ndarray


def primitives(white, south, params: Primitives = Primitives()) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Map covariates to (fixed_cost, college_payoff, marginal_cost)."""
    w = np.asarray(white, dtype=float)
    s = np.asarray(south, dtype=float)
    fc = params.fc0 + params.fc_white * w + params.fc_south * s
    psi = params.psi0 + params.psi_white * w + params.psi_south * s
    mc = np.exp(params.mc0 + params.mc_white * w + params.mc_south * s)
    return fc, psi, mc


def optimal_effort(college_payoff, marginal_cost, rationing: float = 1.0, discount: float = DISCOUNT) -> np.ndarray:
    """Effort solving the first-order condition, clipped at the zero corner.

    The agent maximises  phi(y) * discount * r * ln(1+exp(psi)) - mc*y  with
    phi(y) = y/(1+y), giving  y* = sqrt(discount * r * ln(1+exp(psi)) / mc) - 1.
    """
    psi = np.asarray(college_payoff, dtype=float)
    mc = np.asarray(marginal_cost, dtype=float)
    if not np.all(np.isfinite(mc)) or np.any(mc <= 0):
        raise InvalidEffortDomain("marginal cost must be finite and > 0")
    r = float(rationing)
    if not (0.0 < r <= 1.0):
        raise ValueError("rationing must be in (0,1]")
    y = np.sqrt(float(discount) * r * softplus(psi) / mc) - 1.0
    return np.maximum(y, 0.0)


def solve(
    fixed_cost,
    college_payoff,
    marginal_cost,
    rationing: float = 1.0,
    discount: float = DISCOUNT,
) -> Solution:
    """Effort, variable cost, flow utility, success probability and emax.

    rationing=1 is the status quo; rationing<1 scales the probability of being
    admitted to college once period 1 is passed.
    """
    fc = np.asarray(fixed_cost, dtype=float)
    psi = np.asarray(college_payoff, dtype=float)
    y = optimal_effort(psi, marginal_cost, rationing=rationing, discount=discount)
    vc = np.asarray(marginal_cost, dtype=float) * y
    u = -fc - vc
    # logistic(-inf) == 0 at the corner y == 0
    phi = logistic(log_effort(y))
    emax = EULER + phi * float(rationing) * softplus(psi)
    return Solution(effort=y, variable_cost=vc, flow_utility=u, success_prob=phi, emax=emax)
