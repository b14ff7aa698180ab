from __future__ import annotations

import os

import numpy as np
import pandas as pd

from .aggregate import summarize


def _require_matplotlib():
    try:
        import matplotlib

        matplotlib.use("Agg", force=True)
        import matplotlib.pyplot as plt
    except ImportError as exc:  # pragma: no cover
        raise ImportError(
            "matplotlib is required for benchmark figure generation; install with `pip install matplotlib`"
        ) from exc
    return plt


def write_power_fdr_figure(long: pd.DataFrame, out_path: str, *, fdr_level: float = 0.05) -> str:
    """
    FDR (top row) and power (bottom row) against sample size, one column per
    proportion of differential taxa and one line per method.
    """
    plt = _require_matplotlib()
    if long.empty:
        raise ValueError("no results to plot")

    agg = summarize(long, group_cols=("method", "diff_prop", "n_sample"))
    diff_props = sorted(agg["diff_prop"].unique().tolist())
    methods = sorted(agg["method"].unique().tolist())
    metrics = [("fdr", "FDR"), ("power", "Power")]

    ncols = len(diff_props)
    fig, axes = plt.subplots(nrows=2, ncols=ncols, figsize=(3.6 * ncols, 6.4), dpi=150, sharex=True, sharey="row")
    axes = np.asarray(axes).reshape((2, ncols))

    for j, diff_prop in enumerate(diff_props):
        sub = agg.loc[agg["diff_prop"] == diff_prop]
        for i, (metric, label) in enumerate(metrics):
            ax = axes[i, j]
            for method in methods:
                m = sub.loc[sub["method"] == method].sort_values("n_sample")
                if m.empty:
                    continue
                ax.errorbar(
                    m["n_sample"].to_numpy(dtype=float),
                    m[f"{metric}_mean"].to_numpy(dtype=float),
                    yerr=m[f"{metric}_sd"].fillna(0.0).to_numpy(dtype=float),
                    marker="o",
                    markersize=3,
                    lw=1,
                    capsize=2,
                    label=method,
                )
            if metric == "fdr":
                ax.axhline(float(fdr_level), color="red", lw=1, ls="--", alpha=0.7)
                ax.set_title(f"Prop. diff = {diff_prop:g}")
            ax.set_ylim(-0.02, 1.02)
            ax.grid(True, linewidth=0.3, alpha=0.5)
            if j == 0:
                ax.set_ylabel(label)
            if i == 1:
                ax.set_xlabel("Sample size")

    handles, labels = axes[0, 0].get_legend_handles_labels()
    if handles:
        fig.legend(handles, labels, loc="lower center", ncol=min(len(labels), 6), frameon=False)
    fig.tight_layout(rect=(0.0, 0.06, 1.0, 1.0))
    os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
    fig.savefig(out_path)
    plt.close(fig)
    return out_path
