from __future__ import annotations
from typing import List
import numpy as np
import pandas as pd

from .base import BaseAdapter, FittedModel, build_X
from ..contract import check_subsample
from ..math_utils import fit_ols_cluster

class OLSAdapter(BaseAdapter):
    family = "ols"

    def fit(
        self,
        df: pd.DataFrame,
        y: str,
        x: List[str],
        cluster_col: str = "id",
        stage: str = "ols",
        subsample: str = "",
    ) -> FittedModel:
        X, names = build_X(df, list(x))
        yv = df[y].to_numpy(dtype=float)
        check_subsample(yv, X, names, stage=stage, subsample=subsample, binary=False)

        cl = df[cluster_col].to_numpy() if cluster_col in df.columns else np.arange(len(yv))
        beta, se, pval, V = fit_ols_cluster(yv, X, cl)

        resid = yv - X @ beta
        tss = float(np.sum((yv - yv.mean())**2))
        r2 = 1.0 - float(resid @ resid) / tss if tss > 0 else 1.0
        Q = {"r2": r2, "sigma2": float(resid @ resid) / max(len(yv) - X.shape[1], 1), "subsample": subsample}
        return FittedModel("ols", stage, names, beta, np.zeros(len(names), dtype=bool), V, p=pval, Q=Q, n=int(len(yv)))
