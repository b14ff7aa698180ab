from __future__ import annotations

import logging

import numpy as np
import pandas as pd

from .calls import _nan_holm
from .calls import make_calls
from .r_session import call_r_frame
from .r_session import r_counts
from .r_session import require_r_packages
from .simulate import SyntheticDataset


logger = logging.getLogger(__name__)

R_PACKAGES = ("LOCOM",)

_LOCOM_R = """
function(counts_t, meta, alpha, filter_thresh, n_perm_max, seed) {
  counts_t <- round(as.matrix(counts_t))
  meta <- meta[rownames(counts_t), , drop = FALSE]
  res <- LOCOM::locom(
    otu.table = counts_t, Y = meta$x1, C = matrix(meta$x2, ncol = 1),
    fdr.nominal = alpha, seed = seed, n.perm.max = n_perm_max,
    n.cores = 1, filter.thresh = filter_thresh, permute = TRUE, verbose = FALSE
  )
  p <- res$p.otu
  effect <- res$effect.otu
  data.frame(
    taxon = colnames(p),
    effect = as.numeric(effect[1, colnames(p)]),
    p = as.numeric(p[1, ]),
    stringsAsFactors = FALSE
  )
}
"""


def locom_calls(native: pd.DataFrame, *, alpha: float) -> pd.DataFrame:
    """Holm-adjust the per-taxon permutation p-values and call taxa below ``alpha``."""
    required = {"taxon", "effect", "p"}
    missing = required.difference(native.columns)
    if missing:
        raise ValueError(f"locom output missing column(s): {sorted(missing)}")
    p_adj = _nan_holm(native["p"].to_numpy(dtype=float))
    called = p_adj < float(alpha)
    return make_calls(
        native["taxon"].astype(str).tolist(),
        called,
        native["effect"].to_numpy(dtype=float),
        method="locom",
    )


def run_locom(
    dataset: SyntheticDataset,
    *,
    alpha: float,
    filter_thresh: float,
    n_perm_max: int,
    r_seed: int,
) -> pd.DataFrame | None:
    """
    Run LOCOM; an R-side failure (e.g. non-convergence) returns ``None``.

    ``None`` is recorded by the runner as missing power/FDR for the iteration.
    """
    from rpy2.rinterface_lib.embedded import RRuntimeError

    require_r_packages(R_PACKAGES)
    try:
        native = call_r_frame(
            _LOCOM_R,
            r_counts(dataset.counts).T,
            dataset.design(),
            float(alpha),
            float(filter_thresh),
            int(n_perm_max),
            int(r_seed),
        )
    except RRuntimeError as exc:
        logger.warning("locom failed (seed=%d, n=%d): %s", int(r_seed), dataset.n_samples, str(exc).strip())
        return None
    if native.empty or not np.isfinite(native["p"].to_numpy(dtype=float)).any():
        logger.warning("locom returned no usable p-values (seed=%d, n=%d)", int(r_seed), dataset.n_samples)
        return None
    return locom_calls(native, alpha=alpha)
