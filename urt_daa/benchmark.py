from __future__ import annotations

import os
import time
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass
from dataclasses import field
from itertools import product

import numpy as np
import pandas as pd

from .calls import complete_calls
from .evaluate import evaluate_calls
from .evaluate import failed_evaluation
from .ground_truth import DEFAULT_LFC_VALUES
from .ground_truth import draw_ground_truth
from .methods import MethodSettings
from .methods import get_method
from .r_session import r_seed
from .simulate import filter_low_depth
from .simulate import simulate_dataset
from .template import TemplateModel


@dataclass(frozen=True)
class BenchmarkConfig:
    n_samples: tuple[int, ...] = (20, 30, 50, 100, 200)
    diff_props: tuple[float, ...] = (0.05, 0.2, 0.5, 0.9)
    iter_num: int = 100
    seed: int = 123
    jobs: int = 8
    lfc_values: tuple[float, ...] = DEFAULT_LFC_VALUES
    # Log-uniform sample bias ranges by exposure group; library size is confounded with x1.
    sample_bias_ctrl: tuple[float, float] = (1e-3, 1e-2)
    sample_bias_exposed: tuple[float, float] = (1e-2, 1e-1)
    feature_bias: tuple[float, float] = (1e-1, 1.0)
    settings: MethodSettings = field(default_factory=MethodSettings)
    progress_every: int = 10

    def validate(self) -> None:
        if not self.n_samples:
            raise ValueError("n_samples must not be empty")
        if any(int(n) < 2 for n in self.n_samples):
            raise ValueError("every sample size must be >= 2")
        if not self.diff_props:
            raise ValueError("diff_props must not be empty")
        if any(not (0.0 <= float(p) <= 1.0) for p in self.diff_props):
            raise ValueError("diff_props must be in [0, 1]")
        if int(self.iter_num) <= 0:
            raise ValueError("iter_num must be > 0")
        if int(self.seed) < 0:
            raise ValueError("seed must be >= 0")
        if int(self.jobs) < 1:
            raise ValueError("jobs must be >= 1")
        if not self.lfc_values or any(float(v) == 0.0 for v in self.lfc_values):
            raise ValueError("lfc_values must be non-empty and non-zero")
        self.settings.validate()

    def grid(self) -> list[tuple[int, float, int]]:
        """All (n_sample, diff_prop, iteration seed) tuples in run order."""
        return [
            (int(n), float(p), int(it))
            for n, p, it in product(self.n_samples, self.diff_props, range(1, int(self.iter_num) + 1))
        ]


def task_seed_sequence(seed: int, n_sample: int, diff_prop: float, iteration: int) -> np.random.SeedSequence:
    # Keyed by the tuple itself so every method sees the same dataset for the same tuple.
    key = (int(n_sample), int(round(float(diff_prop) * 10000)), int(iteration))
    return np.random.SeedSequence(entropy=int(seed), spawn_key=key)


def run_task(
    task: tuple[int, float, int],
    *,
    cfg: BenchmarkConfig,
    method: str,
    model: TemplateModel,
) -> dict[str, object]:
    """Simulate one dataset, fit one method, and evaluate its calls."""
    n_sample, diff_prop, iteration = task
    spec = get_method(method)
    seed_seq = task_seed_sequence(cfg.seed, n_sample, diff_prop, iteration)
    rng = np.random.default_rng(seed_seq)

    truth = draw_ground_truth(rng, model.taxa, diff_prop, lfc_values=cfg.lfc_values)
    dataset = simulate_dataset(
        model,
        n_sample,
        truth["lfc_x1"].to_numpy(dtype=float),
        truth["lfc_x2"].to_numpy(dtype=float),
        rng,
        sample_bias_ctrl=cfg.sample_bias_ctrl,
        sample_bias_exposed=cfg.sample_bias_exposed,
        feature_bias=cfg.feature_bias,
    )
    if spec.drop_low_depth:
        dataset = filter_low_depth(dataset, cfg.settings.min_library_size)

    row: dict[str, object] = {
        "n_sample": int(n_sample),
        "diff_prop": float(diff_prop),
        "seed": int(iteration),
        "n_taxa": int(model.n_taxa),
        "n_samples_used": int(dataset.n_samples),
    }

    calls = spec.fit(dataset, cfg.settings, r_seed(seed_seq))
    if calls is None:
        if not spec.soft_fail:
            raise RuntimeError(f"{method} returned no result for task {task}")
        variants = ["no_filter", "ss_filter"] if spec.reports_filtered else [""]
        for variant in variants:
            row.update(_suffixed(failed_evaluation(), variant))
        row["failed"] = True
        return row

    truth_dir = dataset.truth()
    calls = complete_calls(calls, dataset.taxa, method=method, truth=truth_dir)
    if spec.reports_filtered:
        row.update(_suffixed(evaluate_calls(calls, truth_dir, filtered=False), "no_filter"))
        row.update(_suffixed(evaluate_calls(calls, truth_dir, filtered=True), "ss_filter"))
    else:
        row.update(evaluate_calls(calls, truth_dir))
    row["failed"] = False
    return row


def _suffixed(metrics: dict[str, float], suffix: str) -> dict[str, float]:
    if not suffix:
        return dict(metrics)
    return {f"{k}_{suffix}": v for k, v in metrics.items()}


_WORKER_STATE: dict[str, object] = {}


def _init_worker(cfg: BenchmarkConfig, method: str, model: TemplateModel) -> None:
    _WORKER_STATE["cfg"] = cfg
    _WORKER_STATE["method"] = method
    _WORKER_STATE["model"] = model


def _run_task_in_worker(task: tuple[int, float, int]) -> dict[str, object]:
    return run_task(
        task,
        cfg=_WORKER_STATE["cfg"],
        method=str(_WORKER_STATE["method"]),
        model=_WORKER_STATE["model"],
    )


def run_benchmark(
    cfg: BenchmarkConfig,
    method: str,
    model: TemplateModel,
    *,
    progress: bool = True,
) -> pd.DataFrame:
    """
    Run every grid tuple for one method and return one row per tuple.

    ``cfg.jobs > 1`` distributes tasks over worker processes (the embedded R
    session is per process). Rows come back in grid order.
    """
    cfg.validate()
    get_method(method)
    tasks = cfg.grid()
    n_total = len(tasks)
    progress_every = max(1, int(cfg.progress_every))

    rows: list[dict[str, object]] = []
    t0 = time.monotonic()

    def _report(idx: int) -> None:
        if progress and (idx % progress_every == 0 or idx == n_total):
            now = time.monotonic()
            rate = idx / max(1e-9, (now - t0))
            eta_s = (n_total - idx) / max(1e-9, rate)
            print(f"{method}: {idx}/{n_total} ({rate:.2f} task/s, eta~{eta_s/60.0:.1f} min)", flush=True)

    if progress:
        print(f"{method}: running {n_total} task(s) with {int(cfg.jobs)} worker(s)", flush=True)

    if int(cfg.jobs) == 1:
        for idx, task in enumerate(tasks, start=1):
            rows.append(run_task(task, cfg=cfg, method=method, model=model))
            _report(idx)
    else:
        with ProcessPoolExecutor(
            max_workers=int(cfg.jobs),
            initializer=_init_worker,
            initargs=(cfg, method, model),
        ) as executor:
            for idx, row in enumerate(executor.map(_run_task_in_worker, tasks), start=1):
                rows.append(row)
                _report(idx)

    return pd.DataFrame(rows)


def method_results_path(out_dir: str, method: str) -> str:
    return os.path.join(out_dir, f"sim_{method}.csv")


def write_method_results(df: pd.DataFrame, out_dir: str, method: str) -> str:
    os.makedirs(out_dir, exist_ok=True)
    out_path = method_results_path(out_dir, method)
    df.to_csv(out_path, index=False)
    return out_path
