"""CCP estimation of the schooling model.

Stages (each returns a FittedModel handle consumed explicitly by later stages):
- college: logit of period-2 school among period-1 graduates      -> COLLEGE, PSI
- success: logit of period-1 success among enrollees             -> PHI
- effort:  OLS of ln(effort) among enrollees                     -> Y
- school:  logit of period-1 school with pinned structural terms -> HS_PR

The static specification pins the continuation value EMAX at the discount
factor. The dynamic specification also builds the variable cost of effort
implied by the first-order condition and pins it at -1.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Sequence

import numpy as np
import pandas as pd

from .adapters import FittedModel, LogitAdapter, OLSAdapter
from .configs import DISCOUNT
from .contract import extend, validate_observed
from .errors import InvalidEffortDomain
from .math_utils import EULER, log_effort, softplus

logger = logging.getLogger(__name__)

SPECIFICATIONS = ("static", "dynamic")


@dataclass
class EstimatedModel:
    """Fitted stage handles plus predicted outcomes for every panel row."""

    specification: str
    college: FittedModel
    success: FittedModel
    effort: FittedModel
    school: FittedModel
    predictions: pd.DataFrame
    covariates: Sequence[str] = ("white", "south")
    discount: float = DISCOUNT
    Q: Dict[str, object] = field(default_factory=dict)

    def coefficients(self) -> pd.DataFrame:
        tabs = [m.table() for m in (self.college, self.success, self.effort, self.school)]
        out = pd.concat(tabs, ignore_index=True)
        out.insert(0, "specification", self.specification)
        return out


def _period1_history(obs: pd.DataFrame) -> pd.DataFrame:
    """school/success of period 1 repeated on both rows of each id."""
    first = obs.loc[obs["t"] == 1].set_index("id")
    return pd.DataFrame({
        "school_1": first["school"].reindex(obs["id"]).to_numpy(dtype=int),
        "success_1": first["success"].reindex(obs["id"]).to_numpy(dtype=int),
    }, index=obs.index)


def fit_college(obs: pd.DataFrame, covariates: Sequence[str], logit: LogitAdapter) -> FittedModel:
    hist = _period1_history(obs)
    mask = (obs["t"] == 2) & (hist["school_1"] == 1) & (hist["success_1"] == 1)
    return logit.fit(obs.loc[mask], "school", list(covariates), stage="college",
                     subsample="t==2 & school_1==1 & success_1==1")


def fit_success(obs: pd.DataFrame, covariates: Sequence[str], logit: LogitAdapter) -> FittedModel:
    mask = (obs["t"] == 1) & (obs["school"] == 1)
    return logit.fit(obs.loc[mask], "success", list(covariates), stage="success", subsample="t==1 & school==1")


def fit_effort(obs: pd.DataFrame, covariates: Sequence[str], ols: OLSAdapter) -> FittedModel:
    mask = (obs["t"] == 1) & (obs["school"] == 1)
    sub = obs.loc[mask]
    y = sub["effort"].to_numpy(dtype=float)
    if np.isnan(y).any():
        raise InvalidEffortDomain("effort is not observed for every period-1 enrollee")
    ly = log_effort(y)
    if np.isinf(ly).any():
        raise InvalidEffortDomain(f"{int(np.isinf(ly).sum())} enrollees at the zero-effort corner; ln(effort) is undefined")
    return ols.fit(sub.assign(log_effort=ly), "log_effort", list(covariates), stage="effort",
                   subsample="t==1 & school==1")


def fit_school(frame: pd.DataFrame, covariates: Sequence[str], logit: LogitAdapter, specification: str,
               discount: float) -> FittedModel:
    x = list(covariates) + ["EMAX"]
    pinned = {"EMAX": float(discount)}
    if specification == "dynamic":
        x.append("VC")
        pinned["VC"] = -1.0
    first = frame.loc[frame["t"] == 1]
    return logit.fit(first, "school", x, pinned=pinned, stage=f"school_{specification}", subsample="t==1")


def estimate(
    observed: pd.DataFrame,
    specification: str = "dynamic",
    covariates: Sequence[str] = ("white", "south"),
    discount: float = DISCOUNT,
    max_iter: int = 100,
    tol: float = 1e-10,
) -> EstimatedModel:
    """Run the college, success/effort and schooling stages on observed data."""
    specification = str(specification).strip().lower()
    if specification not in SPECIFICATIONS:
        raise ValueError(f"Unknown specification: {specification!r}. Available: {list(SPECIFICATIONS)}")
    covariates = list(covariates)
    obs = validate_observed(observed, covariates)

    logit = LogitAdapter(max_iter=max_iter, tol=tol)
    ols = OLSAdapter()

    college = fit_college(obs, covariates, logit)
    success = fit_success(obs, covariates, logit)
    effort = fit_effort(obs, covariates, ols)
    logger.info("[%s] college %s | success %s | ln effort %s", specification,
                college.coef(), success.coef(), effort.coef())

    pred = obs[["id", "t"] + covariates]
    psi = college.index(pred)
    phi = success.predict(pred)
    y = np.exp(effort.index(pred))
    pred = extend(pred, {
        "COLLEGE": college.predict(pred),
        "PSI": psi,
        "PHI": phi,
        "Y": y,
        "EMAX": EULER + phi * softplus(psi),
    })
    if specification == "dynamic":
        mc = float(discount) * softplus(psi) / (1.0 + y) ** 2
        pred = extend(pred, {"MC": mc, "VC": mc * y})

    school = fit_school(pred.assign(school=obs["school"].to_numpy()), covariates, logit, specification, discount)
    logger.info("[%s] school %s (n=%d)", specification, school.coef(), school.n)

    hs = school.predict(pred)
    first = (pred["t"] == 1).to_numpy()
    cols = {
        "HS_PR": hs,
        "SCHOOL": np.where(first, hs, hs * pred["PHI"].to_numpy() * pred["COLLEGE"].to_numpy()),
        "SUCCESS": np.where(first, hs * pred["PHI"].to_numpy(), 0.0),
    }
    if specification == "dynamic":
        idx = school.index(pred)
        cols["FC"] = -(idx - float(discount) * pred["EMAX"].to_numpy() + pred["VC"].to_numpy())
    pred = extend(pred, cols)

    return EstimatedModel(
        specification=specification,
        college=college,
        success=success,
        effort=effort,
        school=school,
        predictions=pred,
        covariates=tuple(covariates),
        discount=float(discount),
    )


def estimate_static(observed: pd.DataFrame, **kwargs) -> EstimatedModel:
    return estimate(observed, specification="static", **kwargs)


def estimate_dynamic(observed: pd.DataFrame, **kwargs) -> EstimatedModel:
    return estimate(observed, specification="dynamic", **kwargs)
