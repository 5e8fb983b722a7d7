from __future__ import annotations
import os
import numpy as np
import pandas as pd
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

def plot_counterfactual_to(path: str, cf_table: pd.DataFrame):
    """Grouped bars: change in mean outcome under rationing, truth vs each specification."""
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    labels = cf_table["outcome"].tolist()
    groups = [c for c in cf_table.columns if c != "outcome" and not c.endswith("_counter")]
    x = np.arange(len(labels))
    width = 0.8 / max(len(groups), 1)

    fig, ax = plt.subplots(figsize=(6.4, 4.0))
    for j, g in enumerate(groups):
        delta = cf_table[f"{g}_counter"].to_numpy() - cf_table[g].to_numpy()
        ax.bar(x + (j - (len(groups) - 1) / 2) * width, delta, width, label=g)
    ax.axhline(0.0, color="black", linewidth=0.8)
    ax.set_xticks(x)
    ax.set_xticklabels(labels)
    ax.set_ylabel("counterfactual - status quo (mean)")
    ax.set_title("Rationing counterfactual: truth vs estimated models")
    ax.grid(True, axis="y", alpha=0.25)
    ax.legend()
    fig.tight_layout()
    fig.savefig(path, dpi=140, bbox_inches="tight")
    plt.close(fig)
