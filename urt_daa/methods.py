from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

import pandas as pd

from . import da_ancombc
from . import da_ancombc2
from . import da_corncob
from . import da_linda
from . import da_locom
from .simulate import SyntheticDataset


@dataclass(frozen=True)
class MethodSettings:
    alpha: float = 0.05
    # Prevalence filter passed to the methods that take one.
    prv_cut: float = 0.10
    # Minimum library size; ANCOM-BC/ANCOM-BC2 apply it internally (lib_cut),
    # the runner drops low-depth samples for the other methods.
    min_library_size: int = 1000
    em_tol: float = 1e-5
    em_max_iter: int = 100
    locom_filter_thresh: float = 0.2
    locom_n_perm_max: int = 10000

    def validate(self) -> None:
        if self.alpha <= 0 or self.alpha >= 1:
            raise ValueError("alpha must be in (0, 1)")
        if not (0.0 <= self.prv_cut < 1.0):
            raise ValueError("prv_cut must be in [0, 1)")
        if int(self.min_library_size) < 0:
            raise ValueError("min_library_size must be >= 0")
        if self.em_tol <= 0:
            raise ValueError("em_tol must be > 0")
        if int(self.em_max_iter) <= 0:
            raise ValueError("em_max_iter must be > 0")
        if not (0.0 <= self.locom_filter_thresh < 1.0):
            raise ValueError("locom_filter_thresh must be in [0, 1)")
        if int(self.locom_n_perm_max) <= 0:
            raise ValueError("locom_n_perm_max must be > 0")


@dataclass(frozen=True)
class MethodSpec:
    name: str
    label: str
    fit: Callable[[SyntheticDataset, MethodSettings, int], pd.DataFrame | None]
    # Drop low-depth samples before fitting (method has no internal library-size cut).
    drop_low_depth: bool
    # Also report power/FDR restricted to calls that passed the method's secondary filter.
    reports_filtered: bool = False
    # Failures inside the method are recorded as missing results instead of aborting.
    soft_fail: bool = False


def _fit_ancombc2(dataset: SyntheticDataset, settings: MethodSettings, r_seed: int) -> pd.DataFrame:
    return da_ancombc2.run_ancombc2(
        dataset,
        alpha=settings.alpha,
        prv_cut=settings.prv_cut,
        lib_cut=settings.min_library_size,
        em_tol=settings.em_tol,
        em_max_iter=settings.em_max_iter,
        r_seed=r_seed,
    )


def _fit_ancombc(dataset: SyntheticDataset, settings: MethodSettings, r_seed: int) -> pd.DataFrame:
    return da_ancombc.run_ancombc(
        dataset,
        alpha=settings.alpha,
        prv_cut=settings.prv_cut,
        lib_cut=settings.min_library_size,
        tol=settings.em_tol,
        max_iter=settings.em_max_iter,
        r_seed=r_seed,
    )


def _fit_corncob(dataset: SyntheticDataset, settings: MethodSettings, r_seed: int) -> pd.DataFrame:
    return da_corncob.run_corncob(dataset, alpha=settings.alpha, r_seed=r_seed)


def _fit_linda(dataset: SyntheticDataset, settings: MethodSettings, r_seed: int) -> pd.DataFrame:
    return da_linda.run_linda(dataset, alpha=settings.alpha, prv_cut=settings.prv_cut, r_seed=r_seed)


def _fit_locom(dataset: SyntheticDataset, settings: MethodSettings, r_seed: int) -> pd.DataFrame | None:
    return da_locom.run_locom(
        dataset,
        alpha=settings.alpha,
        filter_thresh=settings.locom_filter_thresh,
        n_perm_max=settings.locom_n_perm_max,
        r_seed=r_seed,
    )


METHODS: dict[str, MethodSpec] = {
    "ancombc2": MethodSpec("ancombc2", "ANCOM-BC2", _fit_ancombc2, drop_low_depth=False, reports_filtered=True),
    "ancombc": MethodSpec("ancombc", "ANCOM-BC", _fit_ancombc, drop_low_depth=False),
    "corncob": MethodSpec("corncob", "CORNCOB", _fit_corncob, drop_low_depth=True),
    "linda": MethodSpec("linda", "LinDA", _fit_linda, drop_low_depth=True),
    "locom": MethodSpec("locom", "LOCOM", _fit_locom, drop_low_depth=True, soft_fail=True),
}


def get_method(name: str) -> MethodSpec:
    try:
        return METHODS[str(name)]
    except KeyError:
        raise ValueError(f"unknown method: {name!r}; expected one of {sorted(METHODS)}") from None
