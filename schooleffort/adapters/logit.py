from __future__ import annotations
from typing import List, Mapping, Optional
import numpy as np
import pandas as pd
from scipy import stats

from .base import BaseAdapter, FittedModel, build_X
from ..contract import check_subsample
from ..errors import ConstraintMismatch, FitFailure
from ..math_utils import cluster_sandwich_mle, logistic

class LogitAdapter(BaseAdapter):
    """Binary logit by IRLS, with optional pinned coefficients.

    A pinned coefficient is a structural restriction, not a starting value: its
    regressor enters through a fixed offset and only the remaining coefficients
    are estimated by maximum likelihood.
    """
    family = "logit"

    def __init__(self, max_iter: int = 100, tol: float = 1e-10):
        self.max_iter = int(max_iter)
        self.tol = float(tol)

    @staticmethod
    def _loglike(y: np.ndarray, eta: np.ndarray) -> float:
        return float(np.sum(y * eta - np.logaddexp(0.0, eta)))

    def _irls_logit(self, y: np.ndarray, X: np.ndarray, offset: np.ndarray, names: List[str]):
        n, k = X.shape
        beta = np.zeros(k, dtype=float)
        if "const" in names:
            ybar = float(np.clip(y.mean(), 1e-6, 1 - 1e-6))
            beta[names.index("const")] = np.log(ybar / (1.0 - ybar)) - float(offset.mean())
        ll = self._loglike(y, offset + X @ beta)
        for it in range(1, self.max_iter + 1):
            mu = logistic(offset + X @ beta)
            W = np.maximum(mu * (1.0 - mu), 1e-12)
            grad = X.T @ (y - mu)
            step = np.linalg.solve(X.T @ (X * W[:,None]), grad)
            if not np.all(np.isfinite(step)):
                return beta, it, False
            if np.max(np.abs(step)) < self.tol:
                return beta, it, True
            # halve the Newton step until the likelihood does not fall
            for _ in range(60):
                ll_new = self._loglike(y, offset + X @ (beta + step))
                if ll_new >= ll:
                    break
                step = step / 2.0
            else:
                return beta, it, bool(np.max(np.abs(grad)) < 1e-8 * n)
            beta = beta + step
            ll = ll_new
        return beta, self.max_iter, False

    def fit(
        self,
        df: pd.DataFrame,
        y: str,
        x: List[str],
        pinned: Optional[Mapping[str, float]] = None,
        cluster_col: str = "id",
        stage: str = "logit",
        subsample: str = "",
    ) -> FittedModel:
        pinned = dict(pinned or {})
        X, names = build_X(df, list(x))

        unknown = sorted(set(pinned) - set(names))
        if unknown:
            raise ConstraintMismatch(f"pinned coefficients not among regressors {names}: {unknown}", stage=stage, subsample=subsample)
        bad = [k for k, v in pinned.items() if not np.isfinite(float(v))]
        if bad:
            raise ConstraintMismatch(f"pinned values must be finite: {bad}", stage=stage, subsample=subsample)
        is_pinned = np.array([nm in pinned for nm in names], dtype=bool)
        if is_pinned.all():
            raise ConstraintMismatch("every coefficient is pinned; nothing to estimate", stage=stage, subsample=subsample)

        yv = df[y].to_numpy(dtype=float)
        free_names = [nm for nm, p in zip(names, is_pinned) if not p]
        Xf = X[:, ~is_pinned]
        b_pin = np.array([float(pinned[nm]) for nm in names if nm in pinned], dtype=float)
        offset = X[:, is_pinned] @ b_pin if is_pinned.any() else np.zeros(len(yv))
        if not np.all(np.isfinite(offset)):
            raise ConstraintMismatch("pinned regressors have non-finite values", stage=stage, subsample=subsample)

        check_subsample(yv, Xf, free_names, stage=stage, subsample=subsample, binary=True)

        try:
            b_free, nit, converged = self._irls_logit(yv, Xf, offset, free_names)
        except np.linalg.LinAlgError as ex:
            raise FitFailure(f"IRLS failed: {ex}", stage=stage, subsample=subsample) from ex
        if not converged:
            raise FitFailure(f"IRLS did not converge in {nit} iterations (separation?)", stage=stage, subsample=subsample)
        eta = offset + Xf @ b_free
        if np.max(np.abs(eta)) > 30.0:
            raise FitFailure("fitted probabilities are numerically 0 or 1 (separation)", stage=stage, subsample=subsample)

        mu = logistic(eta)
        W = mu * (1.0 - mu)
        hess = Xf.T @ (Xf * W[:,None])
        score = Xf * (yv - mu)[:,None]
        cl = df[cluster_col].to_numpy() if cluster_col in df.columns else np.arange(len(yv))
        V_free, se_free = cluster_sandwich_mle(score, hess, cl)

        k = len(names)
        beta = np.zeros(k, dtype=float)
        beta[~is_pinned] = b_free
        beta[is_pinned] = b_pin
        U = np.zeros((k, k), dtype=float)
        U[np.ix_(~is_pinned, ~is_pinned)] = V_free
        pval = np.full(k, np.nan)
        pval[~is_pinned] = 2*(1 - stats.norm.cdf(np.abs(b_free / se_free)))

        p1 = np.clip(mu, 1e-12, 1 - 1e-12)
        loglike = float(np.sum(yv * np.log(p1) + (1 - yv) * np.log(1 - p1)))
        Q = {"loglike": loglike, "nit": int(nit), "converged": True, "subsample": subsample}
        return FittedModel("logit", stage, names, beta, is_pinned, U, p=pval, Q=Q, n=int(len(yv)))
