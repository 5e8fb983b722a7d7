from __future__ import annotations

import logging
from typing import Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ..configs import DISCOUNT, Primitives
from ..contract import extend
from ..math_utils import log_effort
from .solver import Solution, primitives, solve

logger = logging.getLogger(__name__)

SOLUTION_COLS = ("effort", "variable_cost", "flow_utility", "success_prob", "emax")


def _solution_cols(sol: Solution, suffix: str) -> dict:
    return {f"{name}{suffix}": np.asarray(getattr(sol, name), dtype=float) for name in SOLUTION_COLS}


def _realize(
    df: pd.DataFrame,
    suffix: str,
    discount: float,
    cap: float,
    gate: Optional[np.ndarray] = None,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Realised school/success for one scenario.

    Returns (school, success, enrolled) as row-aligned arrays; `enrolled` is the
    period-1 enrollment mask (True only on t=1 rows). `gate` replaces that mask
    as the condition for period-1 success when given.
    """
    first = (df["t"] == 1).to_numpy()
    second = ~first
    ids = df["id"].to_numpy()

    u = df[f"flow_utility{suffix}"].to_numpy()
    emax = df[f"emax{suffix}"].to_numpy()
    ly = log_effort(df[f"effort{suffix}"].to_numpy())

    enrolled = first & (u + discount * emax + df["ev11"].to_numpy() > df["ev01"].to_numpy())
    g = enrolled if gate is None else (first & gate)
    passed = g & (ly + df["eta"].to_numpy() > 0)

    # period-1 history carried to the t=2 row of the same individual
    history = pd.Series((enrolled & passed)[first], index=ids[first])
    eligible = history.reindex(ids, fill_value=False).to_numpy(dtype=bool)

    admitted = df["unif"].to_numpy() <= cap
    college = second & eligible & (df["college_payoff"].to_numpy() + df["ev12"].to_numpy() > df["ev02"].to_numpy()) & admitted

    school = np.where(first, enrolled, college).astype(int)
    success = (first & passed).astype(int)
    return school, success, enrolled


def simulate_choices(
    panel: pd.DataFrame,
    params: Primitives = Primitives(),
    rationing: float = 0.5,
    discount: float = DISCOUNT,
    hold_enrollment_fixed: bool = True,
) -> pd.DataFrame:
    """Solve and realise choices in the status quo and under rationing.

    The returned table is the panel plus primitives, solved quantities and
    outcomes, each with a `_counter` mirror computed at `rationing`. Under the
    counterfactual, period-2 entry additionally requires unif <= rationing.
    With hold_enrollment_fixed, counterfactual period-1 success is gated on
    status-quo enrollment rather than counterfactual enrollment.
    """
    df = panel.sort_values(["id", "t"], kind="mergesort").reset_index(drop=True)

    fc, psi, mc = primitives(df["white"], df["south"], params)
    df = extend(df, {"fixed_cost": fc, "college_payoff": psi, "marginal_cost": mc})

    sq = solve(fc, psi, mc, rationing=1.0, discount=discount)
    cf = solve(fc, psi, mc, rationing=rationing, discount=discount)
    df = extend(df, _solution_cols(sq, ""))
    df = extend(df, _solution_cols(cf, "_counter"))

    school, success, enrolled = _realize(df, "", discount, cap=1.0)
    df = extend(df, {"school": school, "success": success})

    school_c, success_c, _ = _realize(
        df,
        "_counter",
        discount,
        cap=float(rationing),
        gate=enrolled if hold_enrollment_fixed else None,
    )
    df = extend(df, {"school_counter": school_c, "success_counter": success_c})

    t1 = df["t"] == 1
    logger.info(
        "simulated %d individuals: school t1=%.3f success=%.3f college=%.3f | counter: %.3f %.3f %.3f",
        int(t1.sum()),
        df.loc[t1, "school"].mean(),
        df.loc[t1, "success"].mean(),
        df.loc[~t1, "school"].mean(),
        df.loc[t1, "school_counter"].mean(),
        df.loc[t1, "success_counter"].mean(),
        df.loc[~t1, "school_counter"].mean(),
    )
    return df


def observed_panel(truth: pd.DataFrame, covariates: Sequence[str] = ("white", "south")) -> pd.DataFrame:
    """Status-quo data as an econometrician would see it.

    Effort is only observed for period-1 enrollees; everywhere else it is NaN.
    Primitives, shocks and counterfactual columns are dropped.
    """
    cols = ["id", "t"] + list(covariates) + ["school", "success"]
    obs = truth[cols].copy()
    seen = (truth["t"] == 1) & (truth["school"] == 1)
    obs["effort"] = truth["effort"].where(seen)
    return obs
