from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import pandas as pd
from scipy.special import softmax

from .ground_truth import true_direction
from .template import TemplateModel


@dataclass(frozen=True)
class SyntheticDataset:
    # taxa x samples, non-negative integers
    counts: pd.DataFrame
    # per sample: x1 (binary exposure), x2 (continuous confounder), log_sample_bias, library_size
    sample_meta: pd.DataFrame
    # per taxon: lfc_x1, lfc_x2, log_feature_bias
    feature_meta: pd.DataFrame

    @property
    def taxa(self) -> pd.Index:
        return self.counts.index

    @property
    def n_samples(self) -> int:
        return int(self.counts.shape[1])

    def truth(self) -> pd.Series:
        return true_direction(self.feature_meta["lfc_x1"])

    def design(self) -> pd.DataFrame:
        return self.sample_meta[["x1", "x2"]].copy()


def simulate_abundance(model: TemplateModel, n_samples: int, rng: np.random.Generator) -> np.ndarray:
    """
    Draw absolute abundances (taxa x samples) from the calibrated template.

    Latent log-abundances are multivariate normal; library sizes are negative
    binomial with mean ``model.lib_mean``; counts are multinomial given the
    softmax of the latent draw.
    """
    n_samples = int(n_samples)
    if n_samples <= 0:
        raise ValueError("n_samples must be > 0")

    z = rng.multivariate_normal(model.log_mean, model.log_cov, size=n_samples, method="cholesky")
    prob = softmax(z, axis=1)
    size = 1.0 / float(model.disp)
    lib_size = rng.negative_binomial(size, size / (size + float(model.lib_mean)), size=n_samples)
    lib_size = np.maximum(lib_size, 1)
    abn = rng.multinomial(lib_size, prob)
    return abn.T.astype(np.int64)


def simulate_dataset(
    model: TemplateModel,
    n_samples: int,
    lfc_x1: np.ndarray,
    lfc_x2: np.ndarray,
    rng: np.random.Generator,
    *,
    sample_bias_ctrl: tuple[float, float] = (1e-3, 1e-2),
    sample_bias_exposed: tuple[float, float] = (1e-2, 1e-1),
    feature_bias: tuple[float, float] = (1e-1, 1.0),
) -> SyntheticDataset:
    """
    Simulate one observed count table with known exposure and confounder effects.

    Steps: template abundance draw, add ``lfc_x1 * x1 + lfc_x2 * x2`` on the log
    scale, add a log-uniform sample bias whose range depends on the exposure
    group (library size confounded with exposure) and a log-uniform taxon
    bias, then exponentiate and round.
    """
    n_samples = int(n_samples)
    if n_samples < 2:
        raise ValueError("n_samples must be >= 2 (both exposure groups are required)")
    lfc_x1 = np.asarray(lfc_x1, dtype=float)
    lfc_x2 = np.asarray(lfc_x2, dtype=float)
    d = model.n_taxa
    if lfc_x1.shape != (d,) or lfc_x2.shape != (d,):
        raise ValueError(f"effect vectors must have length {d} (template taxa)")
    for name, (lo, hi) in (
        ("sample_bias_ctrl", sample_bias_ctrl),
        ("sample_bias_exposed", sample_bias_exposed),
        ("feature_bias", feature_bias),
    ):
        if not (0.0 < float(lo) < float(hi)):
            raise ValueError(f"{name} must satisfy 0 < low < high")

    abn = simulate_abundance(model, n_samples, rng)

    n_exposed = n_samples // 2
    x1 = rng.permutation(np.r_[np.zeros(n_samples - n_exposed), np.ones(n_exposed)]).astype(int)
    x2 = rng.normal(loc=0.0, scale=1.0, size=n_samples)

    log_abn = np.log(abn + 1e-5)
    log_abn = log_abn + np.outer(lfc_x1, x1) + np.outer(lfc_x2, x2)

    bias_ctrl = rng.uniform(sample_bias_ctrl[0], sample_bias_ctrl[1], size=n_samples)
    bias_exposed = rng.uniform(sample_bias_exposed[0], sample_bias_exposed[1], size=n_samples)
    log_sample_bias = np.log(np.where(x1 > 0, bias_exposed, bias_ctrl))
    log_feature_bias = np.log(rng.uniform(feature_bias[0], feature_bias[1], size=d))

    obs = np.round(np.exp(log_abn + log_sample_bias[None, :] + log_feature_bias[:, None]))
    obs = np.clip(obs, 0, None).astype(np.int64)

    sample_ids = [f"sample_{i + 1:03d}" for i in range(n_samples)]
    taxa = pd.Index(list(model.taxa), name="taxon")
    counts = pd.DataFrame(obs, index=taxa, columns=sample_ids)
    sample_meta = pd.DataFrame(
        {
            "x1": x1,
            "x2": x2.astype(float),
            "log_sample_bias": log_sample_bias.astype(float),
            "library_size": obs.sum(axis=0).astype(np.int64),
        },
        index=pd.Index(sample_ids, name="sample_id"),
    )
    feature_meta = pd.DataFrame(
        {
            "lfc_x1": lfc_x1,
            "lfc_x2": lfc_x2,
            "log_feature_bias": log_feature_bias.astype(float),
        },
        index=taxa,
    )
    return SyntheticDataset(counts=counts, sample_meta=sample_meta, feature_meta=feature_meta)


def filter_low_depth(dataset: SyntheticDataset, min_library_size: int) -> SyntheticDataset:
    """Drop samples whose total count is below ``min_library_size``."""
    if int(min_library_size) < 0:
        raise ValueError("min_library_size must be >= 0")
    lib_size = dataset.counts.sum(axis=0)
    keep = lib_size >= int(min_library_size)
    if bool(keep.all()):
        return dataset
    kept = keep.index[keep.to_numpy()].tolist()
    return SyntheticDataset(
        counts=dataset.counts.loc[:, kept],
        sample_meta=dataset.sample_meta.loc[kept, :],
        feature_meta=dataset.feature_meta,
    )
