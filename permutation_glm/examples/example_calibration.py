"""
Example: Calibration of the permutation test

Repeats the whole-model permutation test on many independent datasets.
With no signal features the deviance tail areas should be spread uniformly
over [0, 1]; with signal they should pile up near 0.

Usage:
    python permutation_glm/examples/example_calibration.py --signal-features 0 --repetitions 100
    python permutation_glm/examples/example_calibration.py --repetitions 50 --max-workers 4
"""

import argparse
import logging

import numpy as np

from permutation_glm.benchmarks import run_repeated_experiments, summarize_calibration
from permutation_glm.benchmarks.reporting import plot_null_distribution
from permutation_glm.config import ExperimentConfig, add_experiment_arguments


def run_calibration(config: ExperimentConfig, n_repetitions: int, max_workers: int = 1,
                    output_dir: str = None):
    print("=" * 70)
    print(config.title)
    print("=" * 70)
    print(f"\n{n_repetitions} experiments, {config.trial_count} trials each, "
          f"{max_workers} worker(s)\n")

    base = config.random_state if config.random_state is not None else 42
    results = run_repeated_experiments(
        config, n_repetitions=n_repetitions, random_state_base=base, max_workers=max_workers
    )
    summary = summarize_calibration(results, alpha=config.threshold)

    print(f"{'Mean tail area':<32} {summary['mean_tail_area']:.4f}")
    print(f"{'KS statistic (skew toward 0)':<32} {summary['ks_statistic']:.4f}")
    print(f"{'KS p-value':<32} {summary['ks_pvalue']:.4g}")
    print(f"{'Permutation rejection rate':<32} {summary['permutation_rejection_rate']:.3f}")
    print(f"{'Chi-square rejection rate':<32} {summary['chi_square_rejection_rate']:.3f}")
    print(f"\nUniformity {'rejected' if summary['uniformity_rejected'] else 'not rejected'} "
          f"at {config.threshold}")

    if output_dir:
        plot_null_distribution(
            np.array([r['tail_area'] for r in results]), config.threshold,
            title=f"{config.title}: tail areas", statistic='tail area',
            save_path=f"{output_dir}/tail_areas.png"
        )

    return summary


def main():
    parser = argparse.ArgumentParser(description="Repeated-experiment calibration check")
    add_experiment_arguments(
        parser,
        ExperimentConfig(signal_feature_count=0, row_count=200, trial_count=100,
                         threshold=0.01, title="Permutation test calibration")
    )
    parser.add_argument('--repetitions', type=int, default=100,
                        help='Number of independent experiments (default: 100)')
    parser.add_argument('--max-workers', type=int, default=1,
                        help='Parallel worker processes (default: 1)')
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.INFO, format='%(asctime)s %(name)s %(levelname)s %(message)s')

    run_calibration(ExperimentConfig.from_args(args), args.repetitions,
                    max_workers=args.max_workers, output_dir=args.output_dir)


if __name__ == "__main__":
    main()
