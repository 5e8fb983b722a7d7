from __future__ import annotations

import logging
from dataclasses import replace

import numpy as np

from .contract import extend
from .engine import EstimatedModel
from .math_utils import EULER, log_effort, logistic, softplus
from .structural.solver import optimal_effort

logger = logging.getLogger(__name__)


def _logit(p: np.ndarray) -> np.ndarray:
    p = np.clip(p, 1e-15, 1 - 1e-15)
    return np.log(p) - np.log1p(-p)


def predict_counterfactual(
    model: EstimatedModel,
    rationing: float = 0.5,
    hold_enrollment_fixed: bool = True,
) -> EstimatedModel:
    """Predicted behaviour when college admission is rationed at rate `rationing`.

    static:  effort and PHI stay at their status-quo estimates; only the
             continuation value shrinks, EMAX_COUNTER = gamma + r*PHI*ln(1+exp(PSI)).
    dynamic: effort is re-solved in closed form from the recovered marginal cost,
             which moves PHI, EMAX and the variable cost VC.

    Both re-apply the fitted schooling coefficients at the new EMAX (and VC).
    Period-2 SCHOOL_COUNTER includes the admission probability r. Static
    SUCCESS_COUNTER is HS_PR_COUNTER*PHI. Dynamic SUCCESS_COUNTER is gated on
    status-quo enrollment HS_PR when hold_enrollment_fixed, else on HS_PR_COUNTER.
    """
    r = float(rationing)
    if not (0.0 < r <= 1.0):
        raise ValueError("rationing must be in (0,1]")

    p = model.predictions
    psi = p["PSI"].to_numpy()
    college = p["COLLEGE"].to_numpy()
    first = (p["t"] == 1).to_numpy()

    if model.specification == "static":
        phi_c = p["PHI"].to_numpy()
        cols = {
            "Y_COUNTER": p["Y"].to_numpy(),
            "PHI_COUNTER": phi_c,
            "EMAX_COUNTER": EULER + r * phi_c * softplus(psi),
        }
        overrides = {"EMAX": cols["EMAX_COUNTER"]}
    else:
        y = p["Y"].to_numpy()
        y_c = optimal_effort(psi, p["MC"].to_numpy(), rationing=r, discount=model.discount)
        # success happens when ln(y) + eta > 0, so the fitted success index moves
        # one-for-one with log effort
        phi_c = logistic(_logit(p["PHI"].to_numpy()) + log_effort(y_c) - log_effort(y))
        cols = {
            "Y_COUNTER": y_c,
            "PHI_COUNTER": phi_c,
            "EMAX_COUNTER": EULER + r * phi_c * softplus(psi),
            "VC_COUNTER": p["MC"].to_numpy() * y_c,
        }
        overrides = {"EMAX": cols["EMAX_COUNTER"], "VC": cols["VC_COUNTER"]}

    hs_c = model.school.predict(p, overrides)
    # static success moves only through enrollment
    hold = hold_enrollment_fixed and model.specification == "dynamic"
    gate = p["HS_PR"].to_numpy() if hold else hs_c
    cols["HS_PR_COUNTER"] = hs_c
    cols["SCHOOL_COUNTER"] = np.where(first, hs_c, hs_c * phi_c * college * r)
    cols["SUCCESS_COUNTER"] = np.where(first, gate * phi_c, 0.0)

    pred = extend(p, cols)
    logger.info(
        "[%s] r=%.2f school %.3f -> %.3f | success %.3f -> %.3f",
        model.specification,
        r,
        float(p.loc[first, "SCHOOL"].mean()),
        float(pred.loc[first, "SCHOOL_COUNTER"].mean()),
        float(p.loc[first, "SUCCESS"].mean()),
        float(pred.loc[first, "SUCCESS_COUNTER"].mean()),
    )
    Q = dict(model.Q)
    Q.update({"rationing": r, "hold_enrollment_fixed": bool(hold_enrollment_fixed)})
    return replace(model, predictions=pred, Q=Q)
