from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from dataclasses import asdict
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from urt_daa.aggregate import check_row_counts
from urt_daa.benchmark import BenchmarkConfig
from urt_daa.benchmark import run_benchmark
from urt_daa.benchmark import write_method_results
from urt_daa.methods import METHODS
from urt_daa.methods import MethodSettings
from urt_daa.template import calibrate_template
from urt_daa.template import load_reference_template


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Benchmark differential-abundance methods on URT-calibrated synthetic counts (power/FDR per run)."
    )
    parser.add_argument("--out-dir", required=True, type=str, help="Output directory for sim_<method>.csv files.")
    parser.add_argument(
        "--methods",
        type=str,
        nargs="+",
        choices=sorted(METHODS),
        default=["ancombc2", "ancombc", "corncob", "linda", "locom"],
        help="Methods to run (default: all five).",
    )
    parser.add_argument("--n-samples", type=int, nargs="+", default=[20, 30, 50, 100, 200], help="Sample sizes.")
    parser.add_argument(
        "--diff-props",
        type=float,
        nargs="+",
        default=[0.05, 0.2, 0.5, 0.9],
        help="Proportions of differentially abundant taxa.",
    )
    parser.add_argument("--iter-num", type=int, default=100, help="Iterations per (n, diff_prop) (default: 100).")
    parser.add_argument("--seed", type=int, default=123, help="Global seed; per-task seeds derive from it.")
    parser.add_argument("--jobs", type=int, default=8, help="Worker processes (default: 8).")
    parser.add_argument(
        "--template-tsv",
        type=str,
        default=None,
        help="Reference count table (taxa x samples). Default: GUniFrac throat.otu.tab via R.",
    )
    parser.add_argument("--template-prv-cut", type=float, default=0.05, help="Template prevalence cut (default: 0.05).")
    parser.add_argument("--lib-mean", type=float, default=1e8, help="Mean latent library size (default: 1e8).")
    parser.add_argument("--lib-disp", type=float, default=0.5, help="Latent library size NB dispersion (default: 0.5).")
    parser.add_argument("--alpha", type=float, default=0.05, help="Significance level (Holm-adjusted; default: 0.05).")
    parser.add_argument("--prv-cut", type=float, default=0.10, help="Method prevalence filter (default: 0.10).")
    parser.add_argument("--min-library-size", type=int, default=1000, help="Minimum library size (default: 1000).")
    parser.add_argument("--progress-every", type=int, default=10, help="Print progress every N tasks (default: 10).")
    parser.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level for library messages (default: WARNING).",
    )
    args = parser.parse_args()

    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s %(name)s %(levelname)s: %(message)s")

    settings = MethodSettings(
        alpha=float(args.alpha),
        prv_cut=float(args.prv_cut),
        min_library_size=int(args.min_library_size),
    )
    cfg = BenchmarkConfig(
        n_samples=tuple(int(n) for n in args.n_samples),
        diff_props=tuple(float(p) for p in args.diff_props),
        iter_num=int(args.iter_num),
        seed=int(args.seed),
        jobs=int(args.jobs),
        settings=settings,
        progress_every=int(args.progress_every),
    )
    cfg.validate()

    template = load_reference_template(args.template_tsv)
    model = calibrate_template(
        template,
        prv_cut=float(args.template_prv_cut),
        lib_mean=float(args.lib_mean),
        disp=float(args.lib_disp),
    )
    print(f"template: {template.shape[0]} taxa x {template.shape[1]} samples; {model.n_taxa} taxa kept", flush=True)

    os.makedirs(args.out_dir, exist_ok=True)
    with open(os.path.join(args.out_dir, "benchmark_config.json"), "w", encoding="utf-8") as f:
        json.dump(
            {"config": asdict(cfg), "template_tsv": args.template_tsv, "template_taxa": model.n_taxa},
            f,
            indent=2,
            sort_keys=True,
        )

    n_tuples = len(cfg.grid())
    for method in args.methods:
        df = run_benchmark(cfg, method, model)
        check_row_counts({method: df}, n_tuples)
        print(write_method_results(df, args.out_dir, method), flush=True)


if __name__ == "__main__":
    main()
