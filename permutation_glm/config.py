"""
Experiment configuration for the example drivers and calibration runs.
"""

import argparse
from dataclasses import dataclass, asdict
from typing import Optional, Dict, Any


def add_experiment_arguments(parser: argparse.ArgumentParser,
                             defaults: Optional["ExperimentConfig"] = None) -> argparse.ArgumentParser:
    """Add the options shared by all example drivers to ``parser``."""
    defaults = defaults if defaults is not None else ExperimentConfig()

    parser.add_argument('--signal-features', type=int, default=defaults.signal_feature_count,
                        help=f'Number of signal features (default: {defaults.signal_feature_count})')
    parser.add_argument('--noise-features', type=int, default=defaults.noise_feature_count,
                        help=f'Number of noise features (default: {defaults.noise_feature_count})')
    parser.add_argument('--rows', type=int, default=defaults.row_count,
                        help=f'Number of rows (default: {defaults.row_count})')
    parser.add_argument('--trials', type=int, default=defaults.trial_count,
                        help=f'Permutation trials (default: {defaults.trial_count})')
    parser.add_argument('--threshold', type=float, default=defaults.threshold,
                        help=f'Significance threshold (default: {defaults.threshold})')
    parser.add_argument('--title', type=str, default=defaults.title,
                        help='Display title for tables and figures')
    parser.add_argument('--random-state', type=int, default=defaults.random_state,
                        help='Random seed (default: unseeded)')
    parser.add_argument('--output-dir', type=str, default=None,
                        help='Directory for figures and CSV tables (default: show only)')
    parser.add_argument('--verbose', action='store_true',
                        help='Log progress messages')
    return parser


@dataclass
class ExperimentConfig:
    """
    Parameters of one synthetic permutation experiment.

    Parameters
    ----------
    signal_feature_count : int, default=10
        Number of features that enter the label signal
    noise_feature_count : int, default=3
        Number of pure-noise features
    row_count : int, default=1000
        Number of rows to generate
    trial_count : int, default=500
        Number of permutation trials
    threshold : float, default=0.05
        Significance threshold used for selection decisions
    title : str
        Display title for tables and figures
    random_state : int or None, default=None
        Seed for the experiment's random source
    positive_class : str, default='positive'
    label_column : str, default='y'
    """
    signal_feature_count: int = 10
    noise_feature_count: int = 3
    row_count: int = 1000
    trial_count: int = 500
    threshold: float = 0.05
    title: str = "Permutation test"
    random_state: Optional[int] = None
    positive_class: str = "positive"
    label_column: str = "y"

    def __post_init__(self):
        if self.signal_feature_count < 0:
            raise ValueError(
                f"signal_feature_count must be >= 0, got {self.signal_feature_count}"
            )
        if self.noise_feature_count < 0:
            raise ValueError(
                f"noise_feature_count must be >= 0, got {self.noise_feature_count}"
            )
        if self.signal_feature_count + self.noise_feature_count < 1:
            raise ValueError("An experiment needs at least one feature")
        if self.row_count < 1:
            raise ValueError(f"row_count must be >= 1, got {self.row_count}")
        if self.trial_count < 1:
            raise ValueError(f"trial_count must be >= 1, got {self.trial_count}")
        if not 0 < self.threshold < 1:
            raise ValueError(f"threshold must be in (0, 1), got {self.threshold}")

    @classmethod
    def from_args(cls, args) -> "ExperimentConfig":
        """Build a config from an argparse namespace produced by the example drivers."""
        return cls(
            signal_feature_count=args.signal_features,
            noise_feature_count=args.noise_features,
            row_count=args.rows,
            trial_count=args.trials,
            threshold=args.threshold,
            title=args.title,
            random_state=args.random_state,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
