from __future__ import annotations

import pandas as pd

from .calls import make_calls
from .r_session import call_r_frame
from .r_session import r_counts
from .r_session import require_r_packages
from .simulate import SyntheticDataset


R_PACKAGES = ("MicrobiomeStat",)

_LINDA_R = """
function(counts, meta, prv_cut, alpha, seed) {
  set.seed(seed)
  counts <- as.data.frame(round(as.matrix(counts)))
  meta <- as.data.frame(meta[colnames(counts), , drop = FALSE])
  out <- MicrobiomeStat::linda(
    feature.dat = counts, meta.dat = meta,
    formula = "~ x1 + x2", feature.dat.type = "count",
    prev.filter = prv_cut, is.winsor = TRUE, outlier.pct = 0.03,
    adaptive = TRUE, zero.handling = "pseudo-count", pseudo.cnt = 0.5,
    corr.cut = 0.1, p.adj.method = "holm", alpha = alpha,
    n.cores = 1, verbose = FALSE
  )
  res <- out$output$x1
  reject <- res$reject
  reject[is.na(reject)] <- FALSE
  data.frame(
    taxon = rownames(res),
    log2FoldChange = as.numeric(res$log2FoldChange),
    padj = as.numeric(res$padj),
    reject = as.logical(reject),
    stringsAsFactors = FALSE
  )
}
"""


def linda_calls(native: pd.DataFrame) -> pd.DataFrame:
    required = {"taxon", "log2FoldChange", "reject"}
    missing = required.difference(native.columns)
    if missing:
        raise ValueError(f"linda output missing column(s): {sorted(missing)}")
    return make_calls(
        native["taxon"].astype(str).tolist(),
        native["reject"].astype(bool).to_numpy(),
        native["log2FoldChange"].to_numpy(dtype=float),
        method="linda",
    )


def run_linda(dataset: SyntheticDataset, *, alpha: float, prv_cut: float, r_seed: int) -> pd.DataFrame:
    require_r_packages(R_PACKAGES)
    native = call_r_frame(
        _LINDA_R,
        r_counts(dataset.counts),
        dataset.design(),
        float(prv_cut),
        float(alpha),
        int(r_seed),
    )
    return linda_calls(native)
