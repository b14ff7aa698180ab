from __future__ import annotations

import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest


def pytest_configure():
    repo_root = str(Path(__file__).resolve().parents[1])
    if repo_root in sys.path:
        sys.path.remove(repo_root)
    sys.path.insert(0, repo_root)


@pytest.fixture
def reference_counts() -> pd.DataFrame:
    # Sparse, over-dispersed table shaped like a small URT OTU table (taxa x samples).
    rng = np.random.default_rng(2010)
    n_taxa, n_ref = 40, 30
    mu = np.exp(rng.normal(loc=3.0, scale=1.5, size=n_taxa))
    counts = rng.negative_binomial(2.0, 2.0 / (2.0 + mu[:, None]), size=(n_taxa, n_ref))
    counts[rng.random((n_taxa, n_ref)) < 0.3] = 0
    # Two rare taxa that any reasonable prevalence cut removes.
    counts[-2:, :] = 0
    counts[-2:, 0] = 5
    taxa = [f"otu_{i + 1}" for i in range(n_taxa)]
    samples = [f"ref_{j + 1:02d}" for j in range(n_ref)]
    return pd.DataFrame(counts.astype(np.int64), index=pd.Index(taxa, name="taxon"), columns=samples)


@pytest.fixture
def template_model(reference_counts):
    from urt_daa.template import calibrate_template

    return calibrate_template(reference_counts, prv_cut=0.1, lib_mean=1e6, disp=0.5)
