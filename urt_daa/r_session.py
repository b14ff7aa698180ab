from __future__ import annotations

from collections.abc import Iterable

import numpy as np
import pandas as pd


_R_FUNCTIONS: dict[str, object] = {}


def _require_rpy2():
    try:
        import rpy2.robjects as ro
        from rpy2.robjects import pandas2ri
        from rpy2.robjects.conversion import localconverter
    except ImportError as exc:  # pragma: no cover
        raise ImportError(
            "rpy2 and an R installation are required to run the differential abundance methods; "
            "install with `pip install rpy2`"
        ) from exc
    return ro, pandas2ri, localconverter


def require_r_packages(packages: Iterable[str]) -> None:
    from rpy2.robjects.packages import isinstalled

    _require_rpy2()
    missing = [p for p in packages if not isinstalled(str(p))]
    if missing:
        raise RuntimeError(f"missing R package(s): {missing}")


def r_function(source: str):
    """Evaluate an R function definition once per process and cache it by source."""
    fn = _R_FUNCTIONS.get(source)
    if fn is None:
        ro, _, _ = _require_rpy2()
        fn = ro.r(source)
        _R_FUNCTIONS[source] = fn
    return fn


def call_r_frame(source: str, *args, **kwargs) -> pd.DataFrame:
    """
    Call an R function that returns a data.frame and convert the result to pandas.

    pandas arguments are converted to R data.frames (index -> rownames).
    """
    ro, pandas2ri, localconverter = _require_rpy2()
    fn = r_function(source)
    with localconverter(ro.default_converter + pandas2ri.converter):
        out = fn(*args, **kwargs)
    if not isinstance(out, pd.DataFrame):
        raise TypeError(f"expected an R data.frame, got {type(out).__name__}")
    return out.reset_index(drop=True)


def r_seed(seed_seq: np.random.SeedSequence) -> int:
    # R's set.seed takes a signed 32-bit integer.
    return int(seed_seq.generate_state(1, dtype=np.uint32)[0] % np.uint32(2**31 - 1))


_LOAD_DATASET_R = """
function(package, name) {
  env <- new.env()
  utils::data(list = name, package = package, envir = env)
  as.data.frame(get(name, envir = env))
}
"""


def load_r_dataset(package: str, name: str) -> pd.DataFrame:
    require_r_packages([package])
    ro, pandas2ri, localconverter = _require_rpy2()
    fn = r_function(_LOAD_DATASET_R)
    with localconverter(ro.default_converter + pandas2ri.converter):
        out = fn(str(package), str(name))
    if not isinstance(out, pd.DataFrame):
        raise TypeError(f"expected an R data.frame for {package}::{name}")
    return out


def r_counts(counts: pd.DataFrame) -> pd.DataFrame:
    """Counts as doubles for R; R integers are 32-bit and simulated counts can exceed 2**31 - 1."""
    return counts.astype(np.float64)
