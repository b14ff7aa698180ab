import numpy as np
import pandas as pd
import pytest

from urt_daa.ground_truth import draw_ground_truth
from urt_daa.simulate import filter_low_depth
from urt_daa.simulate import simulate_abundance
from urt_daa.simulate import simulate_dataset
from urt_daa.template import calibrate_template
from urt_daa.template import load_reference_template


def _simulate(model, n, seed, diff_prop=0.2):
    rng = np.random.default_rng(seed)
    truth = draw_ground_truth(rng, model.taxa, diff_prop)
    return simulate_dataset(
        model,
        n,
        truth["lfc_x1"].to_numpy(),
        truth["lfc_x2"].to_numpy(),
        rng,
    )


def test_calibrate_template_drops_rare_taxa_and_is_positive_definite(reference_counts):
    model = calibrate_template(reference_counts, prv_cut=0.1)

    assert "otu_39" not in model.taxa
    assert "otu_40" not in model.taxa
    assert model.log_mean.shape == (model.n_taxa,)
    assert model.log_cov.shape == (model.n_taxa, model.n_taxa)
    np.linalg.cholesky(model.log_cov)


def test_calibrate_template_validates_inputs(reference_counts):
    with pytest.raises(ValueError, match="prv_cut"):
        calibrate_template(reference_counts, prv_cut=1.0)
    with pytest.raises(ValueError, match="at least 2 samples"):
        calibrate_template(reference_counts.iloc[:, :1])


def test_simulate_abundance_shape_and_depth(template_model):
    abn = simulate_abundance(template_model, 12, np.random.default_rng(5))

    assert abn.shape == (template_model.n_taxa, 12)
    assert abn.dtype == np.int64
    assert np.all(abn >= 0)
    assert np.all(abn.sum(axis=0) >= 1)


def test_simulate_dataset_is_bit_identical_for_same_seed(template_model):
    a = _simulate(template_model, 20, seed=1)
    b = _simulate(template_model, 20, seed=1)
    c = _simulate(template_model, 20, seed=2)

    pd.testing.assert_frame_equal(a.counts, b.counts)
    pd.testing.assert_frame_equal(a.sample_meta, b.sample_meta)
    assert not a.counts.equals(c.counts)


def test_simulate_dataset_tables_are_aligned(template_model):
    ds = _simulate(template_model, 20, seed=1)

    assert ds.counts.shape == (template_model.n_taxa, 20)
    assert ds.counts.index.tolist() == list(template_model.taxa)
    assert ds.feature_meta.index.equals(ds.counts.index)
    assert ds.sample_meta.index.tolist() == ds.counts.columns.tolist()
    assert ds.sample_meta.columns.tolist() == ["x1", "x2", "log_sample_bias", "library_size"]
    assert ds.feature_meta.columns.tolist() == ["lfc_x1", "lfc_x2", "log_feature_bias"]
    assert (ds.counts.to_numpy() >= 0).all()
    assert ds.sample_meta["library_size"].tolist() == ds.counts.sum(axis=0).tolist()


def test_simulate_dataset_balances_groups_and_confounds_depth(template_model):
    ds = _simulate(template_model, 21, seed=3)
    meta = ds.sample_meta

    assert sorted(meta["x1"].unique().tolist()) == [0, 1]
    assert int(meta["x1"].sum()) == 10
    # Exposed samples draw their bias from a strictly higher range.
    assert meta.loc[meta["x1"] == 1, "log_sample_bias"].min() >= meta.loc[meta["x1"] == 0, "log_sample_bias"].max()


def test_simulate_dataset_rejects_misaligned_effects(template_model):
    d = template_model.n_taxa
    with pytest.raises(ValueError, match="length"):
        simulate_dataset(template_model, 10, np.zeros(d - 1), np.zeros(d), np.random.default_rng(1))


def test_truth_follows_exposure_effect(template_model):
    ds = _simulate(template_model, 10, seed=4, diff_prop=0.5)
    truth = ds.truth()

    assert truth.index.equals(ds.counts.index)
    assert truth.tolist() == np.sign(ds.feature_meta["lfc_x1"]).astype(int).tolist()


def test_filter_low_depth_drops_samples_and_keeps_alignment(template_model):
    ds = _simulate(template_model, 20, seed=1)
    lib = ds.counts.sum(axis=0).sort_values()
    threshold = int(lib.iloc[3])

    out = filter_low_depth(ds, threshold)

    assert out.n_samples == int((lib >= threshold).sum())
    assert (out.counts.sum(axis=0) >= threshold).all()
    assert out.sample_meta.index.tolist() == out.counts.columns.tolist()
    assert out.feature_meta.index.equals(ds.feature_meta.index)
    assert filter_low_depth(ds, 0) is ds


def test_load_reference_template_from_tsv(tmp_path, reference_counts):
    path = tmp_path / "template.tsv"
    reference_counts.to_csv(path, sep="\t")

    out = load_reference_template(str(path))

    assert out.index.name == "taxon"
    assert out.shape == reference_counts.shape
    assert (out.to_numpy() == reference_counts.to_numpy()).all()


def test_load_reference_template_rejects_negative_counts(tmp_path, reference_counts):
    bad = reference_counts.copy()
    bad.iloc[0, 0] = -1
    path = tmp_path / "bad.csv"
    bad.to_csv(path)

    with pytest.raises(ValueError, match="non-negative"):
        load_reference_template(str(path))
