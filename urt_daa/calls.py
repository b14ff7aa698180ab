from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np
import pandas as pd
from statsmodels.stats.multitest import multipletests


logger = logging.getLogger(__name__)

CALL_COLUMNS = ["direction", "passed_filter"]


def _nan_holm(p_values: Sequence[float]) -> np.ndarray:
    p_values = np.asarray(p_values, dtype=float)
    good = np.isfinite(p_values)
    out = np.ones_like(p_values, dtype=float)
    if good.any():
        out[good] = multipletests(p_values[good], method="holm")[1]
    return out


def make_calls(
    taxa: Sequence[str],
    called: Sequence[bool],
    effect: Sequence[float],
    *,
    passed_filter: Sequence[bool] | None = None,
    method: str = "method",
) -> pd.DataFrame:
    """
    Build the per-taxon call table from a method's native output.

    ``direction`` is the sign of ``effect`` for called taxa and 0 otherwise. A
    called taxon with a missing or zero effect estimate is reported as not
    differential; the number of such calls is logged as a warning.
    """
    taxa = [str(t) for t in taxa]
    called = np.asarray(called, dtype=bool)
    effect = np.asarray(effect, dtype=float)
    if called.shape != (len(taxa),) or effect.shape != (len(taxa),):
        raise ValueError("taxa, called and effect must have the same length")
    if len(set(taxa)) != len(taxa):
        raise ValueError("method output contains duplicate taxon ids")

    sign = np.sign(np.where(np.isfinite(effect), effect, 0.0)).astype(int)
    direction = np.where(called, sign, 0).astype(int)
    n_dropped = int(np.sum(called & (sign == 0)))
    if n_dropped:
        logger.warning(
            "%s: %d significant taxa have no usable effect estimate; counted as not differential", method, n_dropped
        )
    if passed_filter is None:
        passed = np.ones(len(taxa), dtype=bool)
    else:
        passed = pd.Series(list(passed_filter), dtype="object").fillna(False).astype(bool).to_numpy()
        if passed.shape != (len(taxa),):
            raise ValueError("passed_filter must have the same length as taxa")

    return pd.DataFrame(
        {"direction": direction, "passed_filter": passed},
        index=pd.Index(taxa, name="taxon"),
    )


def complete_calls(
    calls: pd.DataFrame,
    taxa: Sequence[str],
    *,
    method: str,
    truth: pd.Series | None = None,
) -> pd.DataFrame:
    """
    Reindex calls onto the full taxon universe.

    Taxa the method did not report (its own prevalence/library filters) are
    filled as not differential; the count is logged, as a warning when ``truth``
    shows some of them are truly differential. Calls for taxa outside the
    universe mean the identifiers are misaligned and raise.
    """
    missing_cols = [c for c in CALL_COLUMNS if c not in calls.columns]
    if missing_cols:
        raise ValueError(f"calls missing required column(s): {missing_cols}")
    universe = pd.Index([str(t) for t in taxa], name="taxon")
    if universe.has_duplicates:
        raise ValueError("taxon universe must not contain duplicates")

    calls = calls.copy()
    calls.index = calls.index.astype(str)
    unknown = calls.index.difference(universe)
    if len(unknown):
        raise ValueError(
            f"{method}: {len(unknown)} taxon id(s) not in the simulated table, e.g. {unknown[:5].tolist()}"
        )

    missing = universe.difference(calls.index)
    if len(missing):
        n_diff = 0
        if truth is not None:
            n_diff = int((truth.reindex(missing).fillna(0) != 0).sum())
        if n_diff:
            logger.warning(
                "%s: %d/%d taxa not reported (%d truly differential); filled as not differential",
                method,
                len(missing),
                len(universe),
                n_diff,
            )
        else:
            logger.info("%s: %d/%d taxa not reported; filled as not differential", method, len(missing), len(universe))

    out = calls.reindex(universe)
    out["direction"] = out["direction"].fillna(0).astype(int)
    out["passed_filter"] = out["passed_filter"].astype("object").fillna(False).astype(bool)
    return out[CALL_COLUMNS]
