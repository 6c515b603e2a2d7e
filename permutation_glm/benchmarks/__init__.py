"""
Synthetic benchmarks and reporting for permutation significance tests.
"""

from .synthetic_suite import (
    draw_coefficients,
    generate,
    generate_from_config,
    feature_columns,
    run_single_experiment,
    run_repeated_experiments,
    summarize_calibration
)

__all__ = [
    'draw_coefficients',
    'generate',
    'generate_from_config',
    'feature_columns',
    'run_single_experiment',
    'run_repeated_experiments',
    'summarize_calibration'
]
