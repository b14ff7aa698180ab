from __future__ import annotations

import os
from dataclasses import dataclass

import numpy as np
import pandas as pd

from .r_session import load_r_dataset


@dataclass(frozen=True)
class TemplateModel:
    """Log-normal abundance model calibrated on a reference count table."""

    taxa: tuple[str, ...]
    log_mean: np.ndarray
    log_cov: np.ndarray
    # Library sizes of the latent absolute abundances (negative binomial).
    lib_mean: float
    disp: float

    @property
    def n_taxa(self) -> int:
        return len(self.taxa)


def load_reference_template(path: str | None = None) -> pd.DataFrame:
    """
    Load the URT reference count table as taxa x samples.

    Without a path, the throat microbiome table shipped with the R package
    GUniFrac (``throat.otu.tab``, samples x OTUs) is used. A path must point to
    a TSV/CSV with taxon IDs in the first column and one column per sample.
    """
    if path is None:
        raw = load_r_dataset("GUniFrac", "throat.otu.tab")
        counts = raw.T
        counts.index = [f"otu_{t}" for t in counts.index.astype(str)]
    else:
        if not os.path.isfile(path):
            raise FileNotFoundError(path)
        sep = "," if str(path).endswith(".csv") else "\t"
        counts = pd.read_csv(path, sep=sep, index_col=0)
        counts.index = counts.index.astype(str)

    counts.index.name = "taxon"
    counts.columns = counts.columns.astype(str)
    if counts.index.has_duplicates:
        raise ValueError("reference template taxon IDs must be unique")
    try:
        counts = counts.apply(pd.to_numeric)
    except Exception as exc:  # pragma: no cover
        raise ValueError("reference template must be numeric") from exc
    values = counts.to_numpy(dtype=float)
    if np.any(~np.isfinite(values)) or np.any(values < 0):
        raise ValueError("reference template counts must be finite and non-negative")
    return counts.round().astype(np.int64)


def calibrate_template(
    counts: pd.DataFrame,
    *,
    prv_cut: float = 0.05,
    lib_mean: float = 1e8,
    disp: float = 0.5,
    shrinkage: float = 0.1,
) -> TemplateModel:
    """
    Estimate the mean and covariance of ``log(count + 1)`` per taxon.

    Taxa present in fewer than ``prv_cut`` of the reference samples are dropped.
    The covariance is shrunk toward its diagonal so it stays positive definite
    when taxa outnumber samples.
    """
    if not (0.0 <= float(prv_cut) < 1.0):
        raise ValueError("prv_cut must be in [0, 1)")
    if not (0.0 < float(shrinkage) <= 1.0):
        raise ValueError("shrinkage must be in (0, 1]")
    if float(lib_mean) <= 0:
        raise ValueError("lib_mean must be > 0")
    if float(disp) <= 0:
        raise ValueError("disp must be > 0")
    if counts.shape[1] < 2:
        raise ValueError("reference template needs at least 2 samples")

    values = counts.to_numpy(dtype=float)
    prevalence = np.mean(values > 0, axis=1)
    keep = prevalence >= float(prv_cut)
    if int(keep.sum()) < 2:
        raise ValueError(f"fewer than 2 taxa pass prv_cut={prv_cut}")

    log_abn = np.log(values[keep] + 1.0)
    log_mean = np.mean(log_abn, axis=1)
    cov = np.atleast_2d(np.cov(log_abn))
    diag = np.diag(np.diag(cov))
    cov = (1.0 - float(shrinkage)) * cov + float(shrinkage) * diag
    # Taxa with zero variance in the template would make the draw degenerate.
    cov = cov + np.eye(cov.shape[0]) * 1e-6

    taxa = tuple(str(t) for t in counts.index[keep])
    return TemplateModel(
        taxa=taxa,
        log_mean=log_mean.astype(float),
        log_cov=cov.astype(float),
        lib_mean=float(lib_mean),
        disp=float(disp),
    )
