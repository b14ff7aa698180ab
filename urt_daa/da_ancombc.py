from __future__ import annotations

import pandas as pd

from .calls import make_calls
from .r_session import call_r_frame
from .r_session import r_counts
from .r_session import require_r_packages
from .simulate import SyntheticDataset


R_PACKAGES = ("ANCOMBC", "TreeSummarizedExperiment", "S4Vectors")

_ANCOMBC_R = """
function(counts, meta, prv_cut, lib_cut, alpha, tol, max_iter, seed) {
  set.seed(seed)
  counts <- as.matrix(counts)
  counts <- round(counts)
  meta <- meta[colnames(counts), , drop = FALSE]
  tse <- TreeSummarizedExperiment::TreeSummarizedExperiment(
    assays = S4Vectors::SimpleList(counts = counts),
    colData = S4Vectors::DataFrame(meta)
  )
  out <- ANCOMBC::ancombc(
    data = tse, assay_name = "counts", tax_level = NULL,
    formula = "x1 + x2", p_adj_method = "holm",
    prv_cut = prv_cut, lib_cut = lib_cut, group = NULL,
    struc_zero = FALSE, neg_lb = FALSE, tol = tol, max_iter = max_iter,
    conserve = TRUE, alpha = alpha, global = FALSE, n_cl = 1, verbose = FALSE
  )
  res <- out$res
  diff <- res$diff_abn$x1
  diff[is.na(diff)] <- FALSE
  data.frame(
    taxon = as.character(res$lfc$taxon),
    lfc = as.numeric(res$lfc$x1),
    q = as.numeric(res$q_val$x1),
    diff = as.logical(diff),
    stringsAsFactors = FALSE
  )
}
"""


def ancombc_calls(native: pd.DataFrame) -> pd.DataFrame:
    required = {"taxon", "lfc", "diff"}
    missing = required.difference(native.columns)
    if missing:
        raise ValueError(f"ancombc output missing column(s): {sorted(missing)}")
    return make_calls(
        native["taxon"].astype(str).tolist(),
        native["diff"].astype(bool).to_numpy(),
        native["lfc"].to_numpy(dtype=float),
        method="ancombc",
    )


def run_ancombc(
    dataset: SyntheticDataset,
    *,
    alpha: float,
    prv_cut: float,
    lib_cut: int,
    tol: float,
    max_iter: int,
    r_seed: int,
) -> pd.DataFrame:
    require_r_packages(R_PACKAGES)
    native = call_r_frame(
        _ANCOMBC_R,
        r_counts(dataset.counts),
        dataset.design(),
        float(prv_cut),
        float(lib_cut),
        float(alpha),
        float(tol),
        int(max_iter),
        int(r_seed),
    )
    return ancombc_calls(native)
