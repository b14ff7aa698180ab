from __future__ import annotations

import numpy as np
import pandas as pd

from .calls import make_calls
from .r_session import call_r_frame
from .r_session import r_counts
from .r_session import require_r_packages
from .simulate import SyntheticDataset


R_PACKAGES = ("corncob",)

# differentialTest takes samples as rows and taxa as columns when given a data.frame.
_CORNCOB_R = """
function(counts_t, meta, alpha, seed) {
  set.seed(seed)
  counts_t <- round(as.matrix(counts_t))
  meta <- as.data.frame(meta[rownames(counts_t), , drop = FALSE])
  out <- corncob::differentialTest(
    formula = ~ x1 + x2, phi.formula = ~ x1 + x2,
    formula_null = ~ x2, phi.formula_null = ~ x1 + x2,
    data = as.data.frame(counts_t), sample_data = meta,
    test = "Wald", boot = FALSE,
    fdr = "holm", fdr_cutoff = alpha
  )
  estimate <- vapply(out$all_models, function(m) {
    tryCatch(
      as.numeric(summary(m)$coefficients["mu.x1", 1]),
      error = function(e) NA_real_
    )
  }, numeric(1))
  data.frame(
    taxon = colnames(counts_t),
    estimate = as.numeric(estimate),
    p_fdr = as.numeric(out$p_fdr),
    stringsAsFactors = FALSE
  )
}
"""


def corncob_calls(native: pd.DataFrame, *, alpha: float) -> pd.DataFrame:
    """A taxon is called when its Holm-adjusted Wald p-value is below ``alpha``."""
    required = {"taxon", "estimate", "p_fdr"}
    missing = required.difference(native.columns)
    if missing:
        raise ValueError(f"corncob output missing column(s): {sorted(missing)}")
    p_fdr = native["p_fdr"].to_numpy(dtype=float)
    called = np.isfinite(p_fdr) & (p_fdr < float(alpha))
    return make_calls(
        native["taxon"].astype(str).tolist(),
        called,
        native["estimate"].to_numpy(dtype=float),
        method="corncob",
    )


def run_corncob(dataset: SyntheticDataset, *, alpha: float, r_seed: int) -> pd.DataFrame:
    require_r_packages(R_PACKAGES)
    native = call_r_frame(
        _CORNCOB_R,
        r_counts(dataset.counts).T,
        dataset.design(),
        float(alpha),
        int(r_seed),
    )
    return corncob_calls(native, alpha=alpha)
