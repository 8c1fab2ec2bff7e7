"""
Run the levelized cost of water analysis across interest rates and produce visualisations.
"""

from __future__ import annotations

import argparse
from pathlib import Path
import sys

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns

PROJECT_ROOT = Path(__file__).resolve().parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from lcow.levelized_cost import interest_rate_grid, interest_rate_sweep
from lcow.policy_solver import EvaluationConfig
from lcow.scenarios import SCENARIOS
from lcow.transition_tables import build_aging_tables

OUTPUT_DIR = PROJECT_ROOT / "outputs"


def run_sweeps(step: float, tolerance: float) -> pd.DataFrame:
    rates = interest_rate_grid(4.0, 12.0, step)
    config = EvaluationConfig(time_step=1.0, tolerance=tolerance)

    frames = []
    for scenario in SCENARIOS.values():
        print(f"Evaluating {scenario.name} scenario over {len(rates)} interest rates...")
        sweep = interest_rate_sweep(build_aging_tables(scenario), rates, config)
        sweep.insert(0, "scenario", scenario.name)
        frames.append(sweep)
    return pd.concat(frames, ignore_index=True)


def plot_deterministic(sweep: pd.DataFrame, output_dir: Path) -> None:
    subset = sweep[sweep["scenario"] == "deterministic"]

    plt.figure(figsize=(8, 5))
    plt.plot(subset["interest_rate"], subset["levelized_cost"], linewidth=1)
    plt.xlabel("Interest rate (%)")
    plt.ylabel("LCOW ($/m3 of water)")
    plt.title("LCOW Calculation Results - Deterministic Case")
    plt.grid(True)
    plt.tight_layout()
    plt.savefig(output_dir / "lcow_deterministic.png", dpi=200)
    plt.close()


def plot_comparison(sweep: pd.DataFrame, output_dir: Path) -> None:
    plt.figure(figsize=(8, 5))
    sns.lineplot(data=sweep, x="interest_rate", y="levelized_cost", hue="scenario", linewidth=1)
    plt.xlabel("Interest rate (%)")
    plt.ylabel("LCOW ($/m3 of water)")
    plt.title("LCOW: Deterministic vs. Stochastic Aging")
    plt.tight_layout()
    plt.savefig(output_dir / "lcow_comparison.png", dpi=200)
    plt.close()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--step", type=float, default=0.01, help="Interest rate grid spacing (%%).")
    parser.add_argument(
        "--tolerance",
        type=float,
        default=1e-6,
        help="Percent RMS change between sweeps at which evaluation stops.",
    )
    parser.add_argument("--output-dir", type=Path, default=OUTPUT_DIR)
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    output_dir: Path = args.output_dir
    output_dir.mkdir(parents=True, exist_ok=True)

    sweep = run_sweeps(args.step, args.tolerance)
    sweep.to_csv(output_dir / "lcow_sweep.csv", index=False)

    sns.set_theme(style="whitegrid")
    plot_deterministic(sweep, output_dir)
    plot_comparison(sweep, output_dir)

    print("Generated levelized cost outputs at", output_dir)


if __name__ == "__main__":
    main()
