from __future__ import annotations

import numpy as np
import pandas as pd


def confusion_counts(est_direction: np.ndarray, true_direction: np.ndarray) -> dict[str, int]:
    """
    TP/FP/FN by non-zero-ness only; direction agreement is not required.

    ``n_sign_mismatch`` counts true positives whose estimated sign differs from
    the true sign.
    """
    est = np.asarray(est_direction, dtype=float)
    true = np.asarray(true_direction, dtype=float)
    if est.shape != true.shape:
        raise ValueError("est_direction and true_direction must have the same shape")
    if np.any(~np.isfinite(est)) or np.any(~np.isfinite(true)):
        raise ValueError("directions must be finite (-1, 0, +1)")

    called = est != 0
    is_diff = true != 0

    tp = int(np.sum(called & is_diff))
    fp = int(np.sum(called & ~is_diff))
    fn = int(np.sum(~called & is_diff))
    tn = int(np.sum(~called & ~is_diff))
    n_sign_mismatch = int(np.sum(called & is_diff & (np.sign(est) != np.sign(true))))
    return {"tp": tp, "fp": fp, "fn": fn, "tn": tn, "n_sign_mismatch": n_sign_mismatch}


def power_fdr(counts: dict[str, int]) -> dict[str, float]:
    tp = int(counts["tp"])
    fp = int(counts["fp"])
    fn = int(counts["fn"])
    n_diff = tp + fn
    n_called = tp + fp
    return {
        "power": float(tp / n_diff) if n_diff else np.nan,
        "fdr": float(fp / n_called) if n_called else np.nan,
    }


def evaluate_calls(calls: pd.DataFrame, truth: pd.Series, *, filtered: bool = False) -> dict[str, float]:
    """
    Compare completed calls against the true direction per taxon.

    With ``filtered=True`` a taxon counts as called only when it also passed
    the method's secondary filter.
    """
    if not calls.index.equals(truth.index):
        if set(calls.index) != set(truth.index) or calls.index.has_duplicates:
            raise ValueError("calls and truth must cover the same taxa")
        calls = calls.reindex(truth.index)

    est = calls["direction"].to_numpy(dtype=int)
    if filtered:
        est = np.where(calls["passed_filter"].to_numpy(dtype=bool), est, 0)
    counts = confusion_counts(est, truth.to_numpy(dtype=int))
    out: dict[str, float] = {k: float(v) for k, v in counts.items()}
    out.update(power_fdr(counts))
    return out


def failed_evaluation() -> dict[str, float]:
    return {
        "tp": np.nan,
        "fp": np.nan,
        "fn": np.nan,
        "tn": np.nan,
        "n_sign_mismatch": np.nan,
        "power": np.nan,
        "fdr": np.nan,
    }
