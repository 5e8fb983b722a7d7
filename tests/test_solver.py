import numpy as np
import pytest

from schooleffort.configs import Primitives
from schooleffort.errors import InvalidEffortDomain
from schooleffort.math_utils import EULER
from schooleffort.structural.solver import optimal_effort, primitives, solve


def test_effort_matches_hand_computation():
    fc, psi, mc = primitives(1, 0, Primitives())
    assert float(fc) == pytest.approx(0.0, abs=1e-12)
    assert float(psi) == pytest.approx(3.5, abs=1e-12)
    assert float(mc) == pytest.approx(np.exp(-2.0), rel=1e-12)

    sol = solve(fc, psi, mc)
    expected = np.sqrt(0.95 * np.log(1.0 + np.exp(3.5)) / np.exp(-2.0)) - 1.0
    assert abs(float(sol.effort) - expected) < 1e-9
    assert float(sol.variable_cost) == pytest.approx(np.exp(-2.0) * expected)
    assert float(sol.flow_utility) == pytest.approx(-np.exp(-2.0) * expected)
    assert float(sol.success_prob) == pytest.approx(expected / (1.0 + expected))
    assert float(sol.emax) == pytest.approx(EULER + expected / (1.0 + expected) * np.log(1.0 + np.exp(3.5)))


@pytest.mark.filterwarnings("error")
def test_corner_solution_gives_zero_effort_and_zero_success():
    # marginal cost so high that the interior optimum is negative
    sol = solve(np.array([0.5, 0.5]), np.array([1.0, 1.0]), np.array([50.0, 50.0]), rationing=0.5)
    assert np.all(sol.effort == 0.0)
    assert np.all(sol.variable_cost == 0.0)
    assert np.all(sol.success_prob == 0.0)
    assert np.allclose(sol.emax, EULER)
    assert np.allclose(sol.flow_utility, -0.5)


def test_effort_nonnegative_over_grid():
    psi, mc = np.meshgrid(np.linspace(-5, 5, 41), np.exp(np.linspace(-4, 4, 41)))
    for r in (1.0, 0.5, 0.05):
        y = optimal_effort(psi.ravel(), mc.ravel(), rationing=r)
        assert np.all(y >= 0.0)
        assert np.all(np.isfinite(y))
    # and the clip binds somewhere on this grid
    assert np.any(optimal_effort(psi.ravel(), mc.ravel(), rationing=0.05) == 0.0)


def test_emax_nondecreasing_in_college_payoff():
    psi = np.linspace(-6, 6, 201)
    for mc in (0.05, 0.5, 5.0):
        for r in (1.0, 0.5):
            emax = solve(np.zeros_like(psi), psi, np.full_like(psi, mc), rationing=r).emax
            assert np.all(np.diff(emax) >= -1e-12)


def test_rationing_lowers_effort_and_emax():
    fc, psi, mc = primitives(np.array([0, 1, 0, 1]), np.array([0, 0, 1, 1]))
    sq = solve(fc, psi, mc, rationing=1.0)
    cf = solve(fc, psi, mc, rationing=0.5)
    assert np.all(cf.effort < sq.effort)
    assert np.all(cf.emax < sq.emax)
    assert np.all(cf.flow_utility > sq.flow_utility)


def test_invalid_inputs_raise():
    with pytest.raises(InvalidEffortDomain):
        solve(0.0, 1.0, 0.0)
    with pytest.raises(InvalidEffortDomain):
        solve(0.0, 1.0, np.nan)
    with pytest.raises(ValueError):
        solve(0.0, 1.0, 1.0, rationing=0.0)
    with pytest.raises(ValueError):
        solve(0.0, 1.0, 1.0, rationing=1.5)
