from __future__ import annotations

import pandas as pd

from .calls import make_calls
from .r_session import call_r_frame
from .r_session import r_counts
from .r_session import require_r_packages
from .simulate import SyntheticDataset


R_PACKAGES = ("ANCOMBC", "TreeSummarizedExperiment", "S4Vectors")

_ANCOMBC2_R = """
function(counts, meta, prv_cut, lib_cut, alpha, em_tol, em_max_iter, seed) {
  set.seed(seed)
  counts <- as.matrix(counts)
  counts <- round(counts)
  meta <- meta[colnames(counts), , drop = FALSE]
  tse <- TreeSummarizedExperiment::TreeSummarizedExperiment(
    assays = S4Vectors::SimpleList(counts = counts),
    colData = S4Vectors::DataFrame(meta)
  )
  out <- ANCOMBC::ancombc2(
    data = tse, assay_name = "counts", tax_level = NULL,
    fix_formula = "x1 + x2", rand_formula = NULL,
    p_adj_method = "holm", pseudo_sens = TRUE,
    prv_cut = prv_cut, lib_cut = lib_cut, s0_perc = 0.05,
    group = NULL, struc_zero = FALSE, neg_lb = FALSE,
    alpha = alpha, n_cl = 1, verbose = FALSE,
    global = FALSE, pairwise = FALSE, dunnet = FALSE, trend = FALSE,
    iter_control = list(tol = em_tol, max_iter = 20, verbose = FALSE),
    em_control = list(tol = em_tol, max_iter = em_max_iter)
  )
  res <- out$res
  diff <- res$diff_x1
  diff[is.na(diff)] <- FALSE
  passed <- if ("passed_ss_x1" %in% colnames(res)) res$passed_ss_x1 else rep(TRUE, nrow(res))
  passed[is.na(passed)] <- FALSE
  data.frame(
    taxon = as.character(res$taxon),
    lfc = as.numeric(res$lfc_x1),
    q = as.numeric(res$q_x1),
    diff = as.logical(diff),
    passed_ss = as.logical(passed),
    stringsAsFactors = FALSE
  )
}
"""


def ancombc2_calls(native: pd.DataFrame) -> pd.DataFrame:
    """Map ``ancombc2`` output (taxon, lfc, diff, passed_ss) onto per-taxon calls."""
    required = {"taxon", "lfc", "diff", "passed_ss"}
    missing = required.difference(native.columns)
    if missing:
        raise ValueError(f"ancombc2 output missing column(s): {sorted(missing)}")
    return make_calls(
        native["taxon"].astype(str).tolist(),
        native["diff"].astype(bool).to_numpy(),
        native["lfc"].to_numpy(dtype=float),
        passed_filter=native["passed_ss"].tolist(),
        method="ancombc2",
    )


def run_ancombc2(
    dataset: SyntheticDataset,
    *,
    alpha: float,
    prv_cut: float,
    lib_cut: int,
    em_tol: float,
    em_max_iter: int,
    r_seed: int,
) -> pd.DataFrame:
    require_r_packages(R_PACKAGES)
    native = call_r_frame(
        _ANCOMBC2_R,
        r_counts(dataset.counts),
        dataset.design(),
        float(prv_cut),
        float(lib_cut),
        float(alpha),
        float(em_tol),
        int(em_max_iter),
        int(r_seed),
    )
    return ancombc2_calls(native)
