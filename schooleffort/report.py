from __future__ import annotations
import os, json
from typing import Optional, Sequence
import numpy as np
import pandas as pd

# (label, period, truth column, prediction column)
OUTCOMES = [
    ("school_t1", 1, "school", "SCHOOL"),
    ("success_t1", 1, "success", "SUCCESS"),
    ("college_t2", 2, "school", "SCHOOL"),
]

def ensure_dir(outdir: str):
    os.makedirs(outdir, exist_ok=True)

def save_csv_file(path: str, df: pd.DataFrame):
    """Save a DataFrame to an explicit file path."""
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    df.to_csv(path, index=False)

def save_json_file(path: str, obj):
    """Save JSON to an explicit file path."""
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(obj, f, ensure_ascii=False, indent=2, default=str)

def summary_by_period(table: pd.DataFrame, columns: Optional[Sequence[str]] = None) -> pd.DataFrame:
    """Mean/std/min/max/count of each numeric column within t=1 and t=2."""
    if columns is None:
        columns = [c for c in table.columns if c not in ("id", "t") and pd.api.types.is_numeric_dtype(table[c])]
    missing = [c for c in columns if c not in table.columns]
    if missing:
        raise KeyError(f"unknown columns: {missing}")
    rows = []
    for t, d in table.groupby("t", sort=True):
        for c in columns:
            v = d[c].to_numpy(dtype=float)
            v = v[np.isfinite(v)]
            rows.append({
                "column": c,
                "t": int(t),
                "mean": float(v.mean()) if v.size else np.nan,
                "std": float(v.std(ddof=1)) if v.size > 1 else np.nan,
                "min": float(v.min()) if v.size else np.nan,
                "max": float(v.max()) if v.size else np.nan,
                "count": int(v.size),
            })
    return pd.DataFrame(rows)

def counterfactual_table(series: pd.DataFrame, specifications=("static", "dynamic")) -> pd.DataFrame:
    """Mean status-quo and rationed outcomes: truth next to each specification."""
    rows = []
    for label, t, truth_col, pred_col in OUTCOMES:
        d = series.loc[series["t"] == t]
        row = {
            "outcome": label,
            "truth": float(d[truth_col].mean()),
            "truth_counter": float(d[f"{truth_col}_counter"].mean()),
        }
        for s in specifications:
            row[s] = float(d[f"{s}_{pred_col}"].mean())
            row[f"{s}_counter"] = float(d[f"{s}_{pred_col}_COUNTER"].mean())
        rows.append(row)
    return pd.DataFrame(rows)
