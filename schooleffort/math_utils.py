from __future__ import annotations
import numpy as np
from scipy import stats

from .errors import InvalidEffortDomain

EULER = float(np.euler_gamma)

def logistic(z):
    """1 / (1 + exp(-z)), evaluated without overflow; logistic(-inf) == 0."""
    z = np.asarray(z, dtype=float)
    with np.errstate(over="ignore", invalid="ignore"):
        out = np.where(z >= 0, 1.0 / (1.0 + np.exp(-z)), np.exp(z) / (1.0 + np.exp(z)))
    return out if out.ndim else float(out)

def softplus(x):
    """ln(1 + exp(x)): the logsum of a payoff x against an outside option of 0."""
    out = np.logaddexp(0.0, np.asarray(x, dtype=float))
    return out if np.ndim(out) else float(out)

def log_effort(y):
    """ln(y) with the corner y == 0 mapped to -inf.

    Negative or non-finite effort is outside the model and raises.
    """
    y = np.asarray(y, dtype=float)
    if not np.all(np.isfinite(y)) or np.any(y < 0):
        raise InvalidEffortDomain("effort must be finite and >= 0")
    with np.errstate(divide="ignore"):
        out = np.log(y)
    return out if out.ndim else float(out)

def _cluster_meat(score: np.ndarray, cluster_ids: np.ndarray):
    """Sum of outer products of per-cluster score totals; returns (meat, G)."""
    _, code = np.unique(cluster_ids, return_inverse=True)
    G = int(code.max()) + 1 if code.size else 0
    k = score.shape[1]
    sg = np.column_stack([np.bincount(code, weights=score[:, j], minlength=G) for j in range(k)])
    return sg.T @ sg, G

def _inv(A: np.ndarray) -> np.ndarray:
    try:
        return np.linalg.inv(A)
    except np.linalg.LinAlgError:
        return np.linalg.pinv(A)

def fit_ols_cluster(y: np.ndarray, X: np.ndarray, cluster_ids: np.ndarray):
    """OLS with cluster-robust covariance. Returns beta, se, pval, V."""
    n, k = X.shape
    XtX_inv = _inv(X.T @ X)
    beta = XtX_inv @ (X.T @ y)
    u = y - X @ beta

    meat, G = _cluster_meat(X * u[:, None], cluster_ids)
    df_c = (G/(G-1)) * ((n-1)/(n-k)) if (G>1 and n>k) else 1.0
    V = df_c * (XtX_inv @ meat @ XtX_inv)

    se = np.sqrt(np.maximum(np.diag(V), 1e-12))
    pval = 2*(1 - stats.t.cdf(np.abs(beta / se), df=max(G-1, 1)))
    return beta, se, pval, V

def cluster_sandwich_mle(score: np.ndarray, hess: np.ndarray, cluster_ids: np.ndarray):
    """Sandwich covariance H^-1 (sum_g s_g s_g') H^-1 for an M-estimator."""
    bread = _inv(hess)
    meat, _ = _cluster_meat(score, cluster_ids)
    V = bread @ meat @ bread
    se = np.sqrt(np.maximum(np.diag(V), 1e-12))
    return V, se
