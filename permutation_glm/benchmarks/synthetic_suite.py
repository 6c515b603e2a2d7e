"""
Synthetic benchmark suite for permutation significance tests.

This module provides:
- A generator of labelled data with signal-bearing and pure-noise features
- Single and repeated experiments that run the whole-model permutation test
- Calibration summaries checking that tail areas are uniform without signal
"""

import logging
import numpy as np
import pandas as pd
from concurrent.futures import ProcessPoolExecutor
from scipy.stats import kstest
from typing import Dict, List, Mapping

from ..config import ExperimentConfig
from ..models import LogisticTrainer
from ..permutation_test import PermutationEngine
from ..significance import model_permutation_test
from ..utils import RandomStateLike, as_random_state

logger = logging.getLogger(__name__)

POSITIVE = 'positive'
NEGATIVE = 'negative'


def draw_coefficients(signal_feature_count: int,
                      random_state: RandomStateLike = None) -> Dict[str, float]:
    """
    Draw a coefficient map for ``signal_feature_count`` signal features.

    Features are named g_1 .. g_k. The first weight is fixed at 1.0 so any
    non-empty map carries signal; the others are standard-normal draws.

    Parameters
    ----------
    signal_feature_count : int
        Number of signal features (0 gives an empty map)
    random_state : int, np.random.RandomState or None

    Returns
    -------
    coefficients : dict
        {feature_name: weight}
    """
    if signal_feature_count < 0:
        raise ValueError(
            f"signal_feature_count must be >= 0, got {signal_feature_count}"
        )
    rng = as_random_state(random_state)

    coefficients = {}
    for i in range(signal_feature_count):
        weight = 1.0 if i == 0 else float(rng.randn())
        coefficients[f'g_{i + 1}'] = weight
    return coefficients


def generate(
    row_count: int,
    coefficients: Mapping[str, float],
    noise_feature_count: int = 0,
    random_state: RandomStateLike = None,
    label_column: str = 'y'
) -> pd.DataFrame:
    """
    Generate a labelled dataset whose label is a thresholded noisy linear signal.

    The label signal starts as standard-normal noise; every signal feature is
    a fresh standard-normal column added with its fixed weight. Noise
    features are independent standard-normal columns that never enter the
    signal. The label is 'positive' where the signal is > 0.

    Parameters
    ----------
    row_count : int
        Number of rows, at least 1
    coefficients : mapping
        {signal_feature_name: weight}; may be empty
    noise_feature_count : int, default=0
        Number of noise columns, named n_1 .. n_k
    random_state : int, np.random.RandomState or None
    label_column : str, default='y'

    Returns
    -------
    dataset : pd.DataFrame
        Signal columns (in ``coefficients`` order), then noise columns, then
        the label column. ``dataset.attrs['coefficients']`` keeps a copy of
        the weights for reporting.

    Examples
    --------
    >>> data = generate(100, {'g_1': 1.0, 'g_2': -0.5}, noise_feature_count=3,
    ...                 random_state=42)
    >>> list(data.columns)
    ['g_1', 'g_2', 'n_1', 'n_2', 'n_3', 'y']
    """
    if row_count < 1:
        raise ValueError(f"row_count must be >= 1, got {row_count}")
    if noise_feature_count < 0:
        raise ValueError(f"noise_feature_count must be >= 0, got {noise_feature_count}")

    noise_names = [f'n_{i + 1}' for i in range(noise_feature_count)]
    names = list(coefficients) + noise_names
    if len(set(names)) != len(names) or label_column in names:
        raise ValueError(
            f"Feature names must be unique and differ from '{label_column}', got {names}"
        )

    rng = as_random_state(random_state)
    signal = rng.randn(row_count)

    columns = {}
    for name, weight in coefficients.items():
        values = rng.randn(row_count)
        signal = signal + weight * values
        columns[name] = values

    for name in noise_names:
        columns[name] = rng.randn(row_count)

    columns[label_column] = np.where(signal > 0, POSITIVE, NEGATIVE)

    dataset = pd.DataFrame(columns)
    dataset.attrs['coefficients'] = dict(coefficients)
    return dataset


def generate_from_config(config: ExperimentConfig,
                         random_state: RandomStateLike = None) -> pd.DataFrame:
    """Draw coefficients and a dataset from one random source, as described by ``config``."""
    rng = as_random_state(config.random_state if random_state is None else random_state)
    coefficients = draw_coefficients(config.signal_feature_count, rng)
    return generate(
        config.row_count, coefficients, config.noise_feature_count,
        random_state=rng, label_column=config.label_column
    )


def feature_columns(dataset: pd.DataFrame, label_column: str = 'y') -> List[str]:
    return [c for c in dataset.columns if c != label_column]


def run_single_experiment(config: ExperimentConfig, random_state: int) -> Dict:
    """
    Generate one dataset and run the whole-model permutation test on it.

    Parameters
    ----------
    config : ExperimentConfig
    random_state : int
        Seed for both data generation and permutations

    Returns
    -------
    result : dict
        Keys: 'random_state', 'observed_deviance', 'tail_area', 'chi_square_p'
    """
    rng = as_random_state(random_state)
    dataset = generate_from_config(config, rng)

    trainer = LogisticTrainer(
        label_column=config.label_column, positive_class=config.positive_class
    )
    engine = PermutationEngine(trainer=trainer, random_state=rng)
    result = model_permutation_test(
        dataset, feature_columns(dataset, config.label_column),
        config.trial_count, engine=engine
    )

    return {
        'random_state': random_state,
        'observed_deviance': result.observed.deviance,
        'tail_area': result.tail_areas['deviance'],
        'chi_square_p': result.chi_square_p
    }


def run_repeated_experiments(
    config: ExperimentConfig,
    n_repetitions: int = 100,
    random_state_base: int = 42,
    max_workers: int = 1
) -> List[Dict]:
    """
    Run ``n_repetitions`` independent experiments.

    Repetition ``i`` is seeded with ``random_state_base + i``, so results are
    the same whether they run sequentially or in a process pool.

    Parameters
    ----------
    config : ExperimentConfig
    n_repetitions : int, default=100
    random_state_base : int, default=42
    max_workers : int, default=1
        Values above 1 distribute experiments over a ProcessPoolExecutor

    Returns
    -------
    results : list of dict
        Results of run_single_experiment(), ordered by repetition
    """
    if n_repetitions < 1:
        raise ValueError(f"n_repetitions must be >= 1, got {n_repetitions}")
    if max_workers < 1:
        raise ValueError(f"max_workers must be >= 1, got {max_workers}")

    seeds = [random_state_base + rep for rep in range(n_repetitions)]
    logger.info("Running %d experiments (%d trials each, %d workers)",
                n_repetitions, config.trial_count, max_workers)

    if max_workers == 1:
        return [run_single_experiment(config, seed) for seed in seeds]

    with ProcessPoolExecutor(max_workers=max_workers) as executor:
        return list(executor.map(run_single_experiment, [config] * len(seeds), seeds))


def summarize_calibration(results: List[Dict], alpha: float = 0.01) -> Dict:
    """
    Check whether tail areas from repeated experiments look uniform.

    Under no signal the permutation tail area is (super-)uniform on [0, 1].
    A one-sided Kolmogorov-Smirnov test against Uniform(0, 1) detects skew
    toward 0, which is what a miscalibrated test would show.

    Parameters
    ----------
    results : list of dict
        Output of run_repeated_experiments()
    alpha : float, default=0.01
        Level for the KS test and for the per-experiment rejection rates

    Returns
    -------
    summary : dict
        Keys: 'n_experiments', 'mean_tail_area', 'ks_statistic', 'ks_pvalue',
        'permutation_rejection_rate', 'chi_square_rejection_rate',
        'uniformity_rejected'
    """
    if not results:
        raise ValueError("results is empty")

    tail_areas = np.array([r['tail_area'] for r in results])
    chi_square_ps = np.array([r['chi_square_p'] for r in results])

    ks = kstest(tail_areas, 'uniform', alternative='greater')

    return {
        'n_experiments': len(results),
        'mean_tail_area': float(np.mean(tail_areas)),
        'ks_statistic': float(ks.statistic),
        'ks_pvalue': float(ks.pvalue),
        'permutation_rejection_rate': float(np.mean(tail_areas <= alpha)),
        'chi_square_rejection_rate': float(np.mean(chi_square_ps <= alpha)),
        'uniformity_rejected': bool(ks.pvalue < alpha)
    }
