"""
Permutation significance tests for logistic models

This package decides whether a binary logistic model, or a single feature,
fits better than chance:
- PermutationEngine: refits on randomly permuted labels to build an
  empirical null distribution of fit statistics
- model_permutation_test / screen_features: compare observed statistics to
  that null (empirical tail areas) and to the asymptotic chi-square
  likelihood-ratio test
"""

from .config import ExperimentConfig
from .evaluation import PerformanceRecord, evaluate, binomial_deviance, predict_classes
from .models import LogisticTrainer, FittedLogisticModel
from .permutation_test import PermutationEngine, PermutationTrial, permute_labels
from .significance import (
    right_tail,
    left_tail,
    chi_square_significance,
    model_significance,
    model_permutation_test,
    screen_features,
    select_features,
    ModelSignificance,
    SignificanceRecord
)

__version__ = "1.0.0"

__all__ = [
    "ExperimentConfig",
    "PerformanceRecord",
    "evaluate",
    "binomial_deviance",
    "predict_classes",
    "LogisticTrainer",
    "FittedLogisticModel",
    "PermutationEngine",
    "PermutationTrial",
    "permute_labels",
    "right_tail",
    "left_tail",
    "chi_square_significance",
    "model_significance",
    "model_permutation_test",
    "screen_features",
    "select_features",
    "ModelSignificance",
    "SignificanceRecord"
]
