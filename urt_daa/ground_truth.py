from __future__ import annotations

from collections.abc import Sequence

import numpy as np
import pandas as pd


DEFAULT_LFC_VALUES: tuple[float, ...] = (-2.0, -1.0, 1.0, 2.0)


def draw_effects(
    rng: np.random.Generator,
    n_taxa: int,
    diff_prop: float,
    *,
    lfc_values: Sequence[float] = DEFAULT_LFC_VALUES,
) -> np.ndarray:
    """
    Draw one vector of log-fold-changes.

    Each entry is 0 with probability ``1 - diff_prop``; otherwise it is drawn
    uniformly from ``lfc_values``.
    """
    n_taxa = int(n_taxa)
    if n_taxa <= 0:
        raise ValueError("n_taxa must be > 0")
    diff_prop = float(diff_prop)
    if not (0.0 <= diff_prop <= 1.0):
        raise ValueError("diff_prop must be in [0, 1]")
    values = np.asarray(list(lfc_values), dtype=float)
    if values.size == 0:
        raise ValueError("lfc_values must not be empty")
    if np.any(values == 0.0) or not np.all(np.isfinite(values)):
        raise ValueError("lfc_values must be finite and non-zero")

    is_diff = rng.random(n_taxa) < diff_prop
    magnitude = rng.choice(values, size=n_taxa, replace=True)
    return np.where(is_diff, magnitude, 0.0).astype(float)


def draw_ground_truth(
    rng: np.random.Generator,
    taxa: Sequence[str],
    diff_prop: float,
    *,
    lfc_values: Sequence[float] = DEFAULT_LFC_VALUES,
) -> pd.DataFrame:
    taxa = [str(t) for t in taxa]
    if len(set(taxa)) != len(taxa):
        raise ValueError("taxa must be unique")
    # Exposure first, then confounder; the draw order is part of reproducibility.
    lfc_x1 = draw_effects(rng, len(taxa), diff_prop, lfc_values=lfc_values)
    lfc_x2 = draw_effects(rng, len(taxa), diff_prop, lfc_values=lfc_values)
    out = pd.DataFrame({"lfc_x1": lfc_x1, "lfc_x2": lfc_x2}, index=pd.Index(taxa, name="taxon"))
    return out


def true_direction(lfc: pd.Series) -> pd.Series:
    out = np.sign(lfc.to_numpy(dtype=float)).astype(int)
    return pd.Series(out, index=lfc.index, name="true_direction")
