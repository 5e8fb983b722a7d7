"""Contract validators.

Every table in the pipeline is built by stages that return a *new* DataFrame
with extra columns. This module centralizes the checks that keep that
discipline honest:

- `extend` adds columns and refuses to overwrite an existing one
- `validate_observed` checks the estimator's input before any stage runs
- `check_subsample` rejects stage subsamples that cannot identify the fit
"""

from __future__ import annotations

from typing import List, Mapping, Sequence

import numpy as np
import pandas as pd

from .errors import DegenerateSubsample


REQUIRED_OBSERVED_COLS = ["id", "t", "school", "success", "effort"]


def extend(df: pd.DataFrame, cols: Mapping[str, object]) -> pd.DataFrame:
    """Return a copy of `df` with `cols` appended; existing columns are never recomputed."""
    clash = sorted(set(cols) & set(df.columns))
    if clash:
        raise ValueError(f"columns already computed: {clash}")
    return df.assign(**dict(cols))


def _check_binary(df: pd.DataFrame, col: str) -> None:
    vals = set(np.unique(df[col].to_numpy()).tolist())
    if vals - {0, 1, False, True}:
        raise ValueError(f"{col} must be coded 0/1, got {sorted(map(str, vals))}")


def validate_observed(df: pd.DataFrame, covariates: Sequence[str]) -> pd.DataFrame:
    """Check the observed panel and return it sorted by (id, t)."""
    if not isinstance(df, pd.DataFrame):
        raise TypeError("observed panel must be a DataFrame")
    missing = [c for c in REQUIRED_OBSERVED_COLS + list(covariates) if c not in df.columns]
    if missing:
        raise KeyError(f"observed panel is missing columns: {missing}")

    if set(np.unique(df["t"].to_numpy()).tolist()) - {1, 2}:
        raise ValueError("t must take values in {1, 2}")
    counts = df.groupby("id")["t"].nunique()
    if (counts != 2).any():
        raise ValueError("every id must appear exactly once in each period")
    if df.duplicated(["id", "t"]).any():
        raise ValueError("duplicate (id, t) rows")

    _check_binary(df, "school")
    _check_binary(df, "success")
    return df.sort_values(["id", "t"], kind="mergesort").reset_index(drop=True)


def check_subsample(
    y: np.ndarray,
    X: np.ndarray,
    names: List[str],
    *,
    stage: str,
    subsample: str,
    binary: bool,
) -> None:
    """Raise DegenerateSubsample unless (y, X) can identify a regression.

    X is expected to carry a leading constant named "const".
    """
    n = len(y)
    if n == 0:
        raise DegenerateSubsample("no rows", stage=stage, subsample=subsample)
    if binary and np.unique(y).size < 2:
        raise DegenerateSubsample(f"outcome does not vary (all {y[0]:g})", stage=stage, subsample=subsample)
    if not binary and not np.all(np.isfinite(y)):
        raise DegenerateSubsample("outcome has non-finite values", stage=stage, subsample=subsample)
    for j, name in enumerate(names):
        if name == "const":
            continue
        if np.ptp(X[:, j]) == 0:
            raise DegenerateSubsample(f"regressor {name!r} has no variation", stage=stage, subsample=subsample)
    if np.linalg.matrix_rank(X) < X.shape[1]:
        raise DegenerateSubsample(f"design matrix is rank-deficient ({names})", stage=stage, subsample=subsample)
