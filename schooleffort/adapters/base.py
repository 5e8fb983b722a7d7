from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional
import numpy as np
import pandas as pd

from ..math_utils import logistic

def build_X(d: pd.DataFrame, xcols: List[str]):
    X_list = [np.ones(len(d), dtype=float)]
    names = ["const"]
    for c in xcols:
        X_list.append(d[c].to_numpy(dtype=float))
        names.append(c)
    return np.column_stack(X_list).astype(float), names

@dataclass
class FittedModel:
    """Handle returned by a regression stage and passed explicitly to later stages."""
    family: str
    stage: str
    names: List[str]
    beta: np.ndarray
    pinned: np.ndarray
    U: np.ndarray
    p: Optional[np.ndarray] = None
    Q: Dict[str, Any] = field(default_factory=dict)
    n: int = 0

    def coef(self) -> Dict[str, float]:
        return {k: float(v) for k, v in zip(self.names, self.beta)}

    def index(self, d: pd.DataFrame, overrides: Optional[Mapping[str, Any]] = None) -> np.ndarray:
        """Linear index X @ beta; `overrides` substitutes regressor columns."""
        overrides = dict(overrides or {})
        out = np.zeros(len(d), dtype=float)
        for name, b in zip(self.names, self.beta):
            if name == "const":
                out += b
                continue
            x = overrides[name] if name in overrides else d[name]
            out += b * np.asarray(x, dtype=float)
        return out

    def predict(self, d: pd.DataFrame, overrides: Optional[Mapping[str, Any]] = None) -> np.ndarray:
        eta = self.index(d, overrides)
        if self.family == "logit":
            return np.asarray(logistic(eta), dtype=float)
        return eta

    def table(self) -> pd.DataFrame:
        se = np.sqrt(np.maximum(np.diag(self.U), 0.0))
        return pd.DataFrame({
            "stage": self.stage,
            "term": self.names,
            "coef": self.beta,
            "se": se,
            "p": self.p if self.p is not None else np.full(len(self.names), np.nan),
            "pinned": self.pinned,
            "n": self.n,
        })

class BaseAdapter:
    family: str = "BASE"
    def fit(self, df: pd.DataFrame, y: str, x: List[str], **kwargs) -> FittedModel:
        raise NotImplementedError
