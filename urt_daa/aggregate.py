from __future__ import annotations

from collections.abc import Mapping
from collections.abc import Sequence

import numpy as np
import pandas as pd

from .methods import get_method


KEY_COLS = ["n_sample", "diff_prop", "seed"]
LONG_COLS = ["method", *KEY_COLS, "power", "fdr", "failed"]

# Variant suffix -> label suffix for methods that report a filtered and an unfiltered result.
_VARIANT_LABELS = {"ss_filter": "SS filter", "no_filter": "no filter"}


def check_row_counts(results_by_method: Mapping[str, pd.DataFrame], n_tuples: int) -> None:
    bad = {m: int(df.shape[0]) for m, df in results_by_method.items() if int(df.shape[0]) != int(n_tuples)}
    if bad:
        raise ValueError(f"expected {int(n_tuples)} row(s) per method; got {bad}")


def _method_long(method: str, df: pd.DataFrame) -> list[pd.DataFrame]:
    spec = get_method(method)
    missing = [c for c in KEY_COLS if c not in df.columns]
    if missing:
        raise ValueError(f"{method}: results missing column(s): {missing}")
    failed = df["failed"].astype(bool) if "failed" in df.columns else pd.Series(False, index=df.index)

    parts: list[pd.DataFrame] = []
    if spec.reports_filtered:
        for suffix, label in _VARIANT_LABELS.items():
            cols = [f"power_{suffix}", f"fdr_{suffix}"]
            if any(c not in df.columns for c in cols):
                raise ValueError(f"{method}: results missing column(s): {cols}")
            part = df[KEY_COLS].copy()
            part.insert(0, "method", f"{spec.label} ({label})")
            part["power"] = pd.to_numeric(df[cols[0]], errors="coerce")
            part["fdr"] = pd.to_numeric(df[cols[1]], errors="coerce")
            part["failed"] = failed.to_numpy()
            parts.append(part)
    else:
        if "power" not in df.columns or "fdr" not in df.columns:
            raise ValueError(f"{method}: results missing power/fdr columns")
        part = df[KEY_COLS].copy()
        part.insert(0, "method", spec.label)
        part["power"] = pd.to_numeric(df["power"], errors="coerce")
        part["fdr"] = pd.to_numeric(df["fdr"], errors="coerce")
        part["failed"] = failed.to_numpy()
        parts.append(part)
    return parts


def stack_results(results_by_method: Mapping[str, pd.DataFrame]) -> pd.DataFrame:
    """One row per (method label, n_sample, diff_prop, seed) with power and FDR."""
    parts: list[pd.DataFrame] = []
    for method, df in results_by_method.items():
        parts.extend(_method_long(str(method), df))
    if not parts:
        return pd.DataFrame(columns=LONG_COLS)
    out = pd.concat(parts, axis=0, ignore_index=True)
    return out[LONG_COLS]


def summarize(long: pd.DataFrame, *, group_cols: Sequence[str] = ("method", "n_sample")) -> pd.DataFrame:
    """
    Mean and SD of power and FDR per group.

    ``log_power_fdr_ratio`` is ``log(power_mean / fdr_mean)``; it is NaN when
    either mean is missing or the ratio is not finite.
    """
    group_cols = list(group_cols)
    missing = [c for c in [*group_cols, "power", "fdr"] if c not in long.columns]
    if missing:
        raise ValueError(f"missing column(s): {missing}")

    df = long.copy()
    if "failed" not in df.columns:
        df["failed"] = False
    grouped = df.groupby(group_cols, sort=True, dropna=False)
    out = grouped.agg(
        power_mean=("power", "mean"),
        power_sd=("power", "std"),
        fdr_mean=("fdr", "mean"),
        fdr_sd=("fdr", "std"),
        n_runs=("power", "size"),
        n_failed=("failed", "sum"),
    ).reset_index()

    power = out["power_mean"].to_numpy(dtype=float)
    fdr = out["fdr_mean"].to_numpy(dtype=float)
    with np.errstate(divide="ignore", invalid="ignore"):
        ratio = np.log(power / fdr)
    out["log_power_fdr_ratio"] = np.where(np.isfinite(ratio), ratio, np.nan)
    out["n_failed"] = out["n_failed"].astype(int)
    return out


def read_method_results(paths: Mapping[str, str]) -> dict[str, pd.DataFrame]:
    out: dict[str, pd.DataFrame] = {}
    for method, path in paths.items():
        get_method(method)
        out[str(method)] = pd.read_csv(path)
    return out
