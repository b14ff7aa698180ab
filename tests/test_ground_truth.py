import numpy as np
import pytest

import urt_daa.ground_truth as gt


def test_draw_effects_reproducible_for_fixed_seed():
    a = gt.draw_effects(np.random.default_rng(12345), 200, 0.2)
    b = gt.draw_effects(np.random.default_rng(12345), 200, 0.2)
    assert np.array_equal(a, b)


def test_draw_effects_zero_and_full_proportion():
    zero = gt.draw_effects(np.random.default_rng(1), 100, 0.0)
    assert np.all(zero == 0.0)

    full = gt.draw_effects(np.random.default_rng(1), 100, 1.0, lfc_values=(-1.0, 2.0))
    assert np.all(np.isin(full, [-1.0, 2.0]))


def test_draw_effects_values_come_from_admissible_set():
    out = gt.draw_effects(np.random.default_rng(7), 500, 0.5)
    nonzero = out[out != 0]
    assert nonzero.size > 0
    assert set(np.unique(nonzero).tolist()) <= set(gt.DEFAULT_LFC_VALUES)
    # Roughly half of the taxa are differential.
    assert 0.35 < nonzero.size / out.size < 0.65


@pytest.mark.parametrize("diff_prop", [-0.1, 1.5])
def test_draw_effects_rejects_bad_proportion(diff_prop):
    with pytest.raises(ValueError, match="diff_prop"):
        gt.draw_effects(np.random.default_rng(1), 10, diff_prop)


def test_draw_effects_rejects_zero_lfc_value():
    with pytest.raises(ValueError, match="non-zero"):
        gt.draw_effects(np.random.default_rng(1), 10, 0.5, lfc_values=(0.0, 1.0))


def test_draw_ground_truth_has_independent_exposure_and_confounder():
    taxa = [f"otu_{i}" for i in range(300)]
    out = gt.draw_ground_truth(np.random.default_rng(3), taxa, 1.0)

    assert out.index.tolist() == taxa
    assert out.columns.tolist() == ["lfc_x1", "lfc_x2"]
    assert not np.array_equal(out["lfc_x1"].to_numpy(), out["lfc_x2"].to_numpy())


def test_draw_ground_truth_rejects_duplicate_taxa():
    with pytest.raises(ValueError, match="unique"):
        gt.draw_ground_truth(np.random.default_rng(3), ["a", "a"], 0.5)


def test_true_direction_is_sign_of_lfc():
    taxa = ["a", "b", "c"]
    out = gt.draw_ground_truth(np.random.default_rng(3), taxa, 0.0)
    assert gt.true_direction(out["lfc_x1"]).tolist() == [0, 0, 0]

    full = gt.draw_ground_truth(np.random.default_rng(3), taxa, 1.0)
    direction = gt.true_direction(full["lfc_x1"])
    assert direction.tolist() == np.sign(full["lfc_x1"]).astype(int).tolist()
