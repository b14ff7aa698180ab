from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from urt_daa.aggregate import read_method_results
from urt_daa.aggregate import stack_results
from urt_daa.aggregate import summarize
from urt_daa.benchmark import method_results_path
from urt_daa.figures import write_power_fdr_figure
from urt_daa.methods import METHODS


def main() -> None:
    parser = argparse.ArgumentParser(description="Summarize sim_<method>.csv files into a table and a power/FDR figure.")
    parser.add_argument("--results-dir", required=True, type=str, help="Directory holding sim_<method>.csv files.")
    parser.add_argument("--out-dir", type=str, default=None, help="Output directory (default: --results-dir).")
    parser.add_argument("--fdr-level", type=float, default=0.05, help="Nominal FDR reference line (default: 0.05).")
    args = parser.parse_args()

    out_dir = args.out_dir or args.results_dir
    paths = {m: method_results_path(args.results_dir, m) for m in METHODS}
    paths = {m: p for m, p in paths.items() if os.path.isfile(p)}
    if not paths:
        raise FileNotFoundError(f"no sim_<method>.csv files in {args.results_dir}")

    long = stack_results(read_method_results(paths))
    summary = summarize(long)

    os.makedirs(out_dir, exist_ok=True)
    summary_path = os.path.join(out_dir, "da_summary.tsv")
    summary.to_csv(summary_path, sep="\t", index=False)
    print(summary.to_string(index=False, float_format=lambda v: f"{v:.3f}"))

    fig_path = write_power_fdr_figure(long, os.path.join(out_dir, "da_power_fdr.png"), fdr_level=float(args.fdr_level))
    print(summary_path)
    print(fig_path)


if __name__ == "__main__":
    main()
