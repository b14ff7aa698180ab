import numpy as np
import pandas as pd
import pytest

from urt_daa.evaluate import confusion_counts
from urt_daa.evaluate import evaluate_calls
from urt_daa.evaluate import failed_evaluation
from urt_daa.evaluate import power_fdr


def _calls(direction, passed=None):
    taxa = [f"t{i}" for i in range(len(direction))]
    if passed is None:
        passed = [True] * len(direction)
    return pd.DataFrame(
        {"direction": direction, "passed_filter": passed},
        index=pd.Index(taxa, name="taxon"),
    )


def _truth(direction):
    taxa = [f"t{i}" for i in range(len(direction))]
    return pd.Series(direction, index=pd.Index(taxa, name="taxon"), name="true_direction")


def test_confusion_counts_ignores_direction_but_reports_sign_mismatch():
    est = np.array([1, -1, 1, 0, 0, 1])
    true = np.array([1, 1, 0, 1, 0, -1])

    out = confusion_counts(est, true)

    assert out == {"tp": 3, "fp": 1, "fn": 1, "tn": 1, "n_sign_mismatch": 2}


def test_confusion_counts_rejects_bad_input():
    with pytest.raises(ValueError, match="same shape"):
        confusion_counts(np.array([1, 0]), np.array([1]))
    with pytest.raises(ValueError, match="finite"):
        confusion_counts(np.array([np.nan, 0.0]), np.array([1, 0]))


def test_power_fdr_is_nan_when_undefined():
    out = power_fdr({"tp": 0, "fp": 0, "fn": 0, "tn": 10})
    assert np.isnan(out["power"])
    assert np.isnan(out["fdr"])

    out = power_fdr({"tp": 3, "fp": 1, "fn": 1, "tn": 5})
    assert out["power"] == pytest.approx(0.75)
    assert out["fdr"] == pytest.approx(0.25)


def test_evaluate_calls_perfect_oracle():
    truth = _truth([1, -1, 0, 0, 1])
    out = evaluate_calls(_calls(truth.tolist()), truth)

    assert out["power"] == 1.0
    assert out["fdr"] == 0.0
    assert out["n_sign_mismatch"] == 0.0


def test_evaluate_calls_no_calls_gives_zero_power_and_nan_fdr():
    truth = _truth([1, 0, -1, 0])
    out = evaluate_calls(_calls([0, 0, 0, 0]), truth)

    assert out["power"] == 0.0
    assert np.isnan(out["fdr"])


def test_evaluate_calls_secondary_filter_only_removes_calls():
    truth = _truth([1, 0, 1, 0])
    calls = _calls([1, 1, 1, 0], passed=[True, False, False, True])

    plain = evaluate_calls(calls, truth)
    filtered = evaluate_calls(calls, truth, filtered=True)

    assert (plain["tp"], plain["fp"]) == (2.0, 1.0)
    assert (filtered["tp"], filtered["fp"]) == (1.0, 0.0)
    assert filtered["power"] <= plain["power"]


def test_evaluate_calls_aligns_by_taxon_not_position():
    truth = _truth([1, 0, 0])
    calls = _calls([1, 0, 0]).iloc[::-1]

    out = evaluate_calls(calls, truth)

    assert out["tp"] == 1.0
    assert out["fp"] == 0.0


def test_evaluate_calls_rejects_different_taxa():
    truth = _truth([1, 0])
    calls = _calls([1, 0, 0])
    with pytest.raises(ValueError, match="same taxa"):
        evaluate_calls(calls, truth)


def test_failed_evaluation_is_all_nan():
    out = failed_evaluation()
    assert set(out) == {"tp", "fp", "fn", "tn", "n_sign_mismatch", "power", "fdr"}
    assert all(np.isnan(v) for v in out.values())
