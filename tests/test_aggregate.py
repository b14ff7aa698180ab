import numpy as np
import pandas as pd
import pytest

from urt_daa.aggregate import LONG_COLS
from urt_daa.aggregate import check_row_counts
from urt_daa.aggregate import stack_results
from urt_daa.aggregate import summarize


def _rows(power, fdr, *, suffixes=None, failed=None):
    n = len(power)
    df = pd.DataFrame(
        {
            "n_sample": [20] * n,
            "diff_prop": [0.2] * n,
            "seed": list(range(1, n + 1)),
        }
    )
    if suffixes is None:
        df["power"] = power
        df["fdr"] = fdr
    else:
        for suffix in suffixes:
            df[f"power_{suffix}"] = power
            df[f"fdr_{suffix}"] = fdr
    df["failed"] = failed if failed is not None else [False] * n
    return df


def test_stack_results_labels_filtered_variants():
    results = {
        "ancombc2": _rows([0.8, 0.6], [0.1, 0.0], suffixes=["no_filter", "ss_filter"]),
        "linda": _rows([0.5, 0.7], [0.05, 0.05]),
    }
    long = stack_results(results)

    assert long.columns.tolist() == LONG_COLS
    assert sorted(long["method"].unique().tolist()) == [
        "ANCOM-BC2 (SS filter)",
        "ANCOM-BC2 (no filter)",
        "LinDA",
    ]
    assert long.shape[0] == 6


def test_stack_results_rejects_missing_variant_columns():
    with pytest.raises(ValueError, match="power_ss_filter"):
        stack_results({"ancombc2": _rows([0.8], [0.1], suffixes=["no_filter"])})


def test_check_row_counts():
    check_row_counts({"linda": _rows([0.5, 0.5], [0.1, 0.1])}, 2)
    with pytest.raises(ValueError, match="expected 3"):
        check_row_counts({"linda": _rows([0.5, 0.5], [0.1, 0.1])}, 3)


def test_summarize_mean_sd_and_log_ratio():
    long = stack_results({"linda": _rows([0.4, 0.8], [0.1, 0.1])})
    out = summarize(long)

    row = out.iloc[0]
    assert row["method"] == "LinDA"
    assert row["power_mean"] == pytest.approx(0.6)
    assert row["power_sd"] == pytest.approx(np.std([0.4, 0.8], ddof=1))
    assert row["fdr_mean"] == pytest.approx(0.1)
    assert row["log_power_fdr_ratio"] == pytest.approx(np.log(6.0))
    assert row["n_runs"] == 2
    assert row["n_failed"] == 0


def test_summarize_log_ratio_nan_when_fdr_zero_and_failed_rows_counted():
    long = stack_results(
        {"locom": _rows([0.5, np.nan], [0.0, np.nan], failed=[False, True])},
    )
    out = summarize(long)

    row = out.iloc[0]
    assert row["power_mean"] == pytest.approx(0.5)
    assert np.isnan(row["log_power_fdr_ratio"])
    assert row["n_failed"] == 1
    assert row["n_runs"] == 2
