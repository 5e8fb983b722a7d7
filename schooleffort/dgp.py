from __future__ import annotations
import numpy as np
import pandas as pd

PERIODS = (1, 2)
SHOCK_COLS = ("ev01", "ev11", "ev02", "ev12")

def gumbel(rng: np.random.Generator, size) -> np.ndarray:
    """Standard type-1 extreme value draws, -ln(-ln U) with U ~ U(0,1)."""
    # rng.random is on [0,1); nudge 0 away so the double log stays finite
    u = np.clip(rng.random(size), np.finfo(float).tiny, None)
    return -np.log(-np.log(u))

def make_base_sample(n: int, rng: np.random.Generator, white_share: float = 0.5,
                     south_share: float = 0.5) -> pd.DataFrame:
    """Synthetic stand-in for the demographic sample: id, white, south."""
    n = int(n)
    white = (rng.random(n) < float(white_share)).astype(int)
    south = (rng.random(n) < float(south_share)).astype(int)
    return pd.DataFrame({"id": np.arange(n, dtype=int), "white": white, "south": south})

def build_panel(base: pd.DataFrame, rng: np.random.Generator, replicate: int = 1,
                covariates=("white", "south")) -> pd.DataFrame:
    """Expand `base` into an (id, t) panel and draw every exogenous shock.

    Each base individual is copied `replicate` times under fresh ids. Per row:
    ev01, ev11, ev02, ev12 (taste shocks). Per individual: eta, the difference
    of two extreme value draws (standard logistic), repeated on both rows.
    Per t=2 row: unif, the admission-cap draw (NaN on t=1).
    """
    covariates = list(covariates)
    for c in covariates:
        if c not in base.columns:
            raise KeyError(f"base sample is missing covariate column: {c}")
    if int(replicate) < 1:
        raise ValueError("replicate must be >= 1")

    ind = pd.concat([base[covariates]] * int(replicate), ignore_index=True)
    n = len(ind)
    ind.insert(0, "id", np.arange(n, dtype=int))
    ind["eta"] = gumbel(rng, n) - gumbel(rng, n)

    panel = ind.loc[ind.index.repeat(len(PERIODS))].reset_index(drop=True)
    panel.insert(1, "t", np.tile(np.array(PERIODS, dtype=int), n))

    shocks = gumbel(rng, (len(panel), len(SHOCK_COLS)))
    for j, c in enumerate(SHOCK_COLS):
        panel[c] = shocks[:, j]

    unif = np.full(len(panel), np.nan)
    t2 = (panel["t"] == 2).to_numpy()
    unif[t2] = rng.random(int(t2.sum()))
    panel["unif"] = unif
    return panel
