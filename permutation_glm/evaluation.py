"""
Performance evaluation for binary scoring models.

This module turns predicted scores and true labels into the fixed set of
statistics the permutation test compares: deviance, accuracy, precision and
recall at a decision threshold.
"""

import numpy as np
from dataclasses import dataclass, asdict
from sklearn.metrics import confusion_matrix
from typing import Dict, Tuple

from .utils import encode_labels


@dataclass(frozen=True)
class PerformanceRecord:
    """
    Fit statistics of one model on one evaluation set.

    Attributes
    ----------
    label : str
        Identifies the model / evaluation set pair (e.g. 'observed', 'trial 12')
    deviance : float
        -2 x log-likelihood of the labels under the scores (lower is better)
    accuracy : float
    precision : float
        nan when nothing is predicted positive
    recall : float
        nan when no row is actually positive
    threshold : float
        Decision threshold actually used (after any adjustment)
    """
    label: str
    deviance: float
    accuracy: float
    precision: float
    recall: float
    threshold: float

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)


# Statistics where a larger value is a better fit
HIGHER_IS_BETTER = ('accuracy', 'precision', 'recall')
LOWER_IS_BETTER = ('deviance',)
STATISTICS = LOWER_IS_BETTER + HIGHER_IS_BETTER


def binomial_deviance(scores, y) -> float:
    """
    Compute the binomial deviance -2 * sum(y*ln(p) + (1-y)*ln(1-p)).

    Parameters
    ----------
    scores : array-like of shape (n_samples,)
        Predicted probabilities of the positive class, strictly inside (0, 1)
    y : array-like of shape (n_samples,)
        0/1 outcome indicators

    Returns
    -------
    deviance : float
        Non-negative deviance

    Raises
    ------
    ValueError
        If any score is 0, 1 or outside the unit interval (the log-likelihood
        is undefined there), or if the lengths differ
    """
    p = np.asarray(scores, dtype=float)
    y = np.asarray(y, dtype=float)
    if p.shape != y.shape:
        raise ValueError(f"scores and y must have the same shape, got {p.shape} and {y.shape}")
    if np.any(p <= 0) or np.any(p >= 1) or np.any(np.isnan(p)):
        raise ValueError("scores must lie strictly inside (0, 1) to compute deviance")

    return float(-2.0 * np.sum(y * np.log(p) + (1.0 - y) * np.log(1.0 - p)))


def _safe_ratio(numerator: float, denominator: float) -> float:
    if denominator == 0:
        return float('nan')
    return float(numerator) / float(denominator)


def predict_classes(scores, threshold: float = 0.5) -> Tuple[np.ndarray, float]:
    """
    Turn scores into positive/negative predictions at a decision threshold.

    A row is predicted positive when its score is above ``threshold``. When
    every score is >= threshold the threshold is reset to the median score;
    if the median is also the maximum, rows at the median count as positive.

    Returns
    -------
    predicted : np.ndarray of bool, shape (n_samples,)
    threshold : float
        The threshold actually used
    """
    scores = np.asarray(scores, dtype=float)

    adjusted = bool(np.all(scores >= threshold))
    if adjusted:
        threshold = float(np.median(scores))

    predicted = scores > threshold
    if adjusted and not predicted.any():
        predicted = scores >= threshold

    return predicted, float(threshold)


def evaluate(
    scores,
    truth,
    positive_class,
    threshold: float = 0.5,
    label: str = ""
) -> PerformanceRecord:
    """
    Evaluate predicted scores against true class labels.

    Parameters
    ----------
    scores : array-like of shape (n_samples,)
        Predicted probability of ``positive_class``, strictly inside (0, 1)
    truth : array-like of shape (n_samples,)
        True class labels
    positive_class : object
        The label value counted as positive
    threshold : float, default=0.5
        Decision threshold; a row is predicted positive when score > threshold
    label : str, default=""
        Identifier stored on the returned record

    Returns
    -------
    record : PerformanceRecord

    Raises
    ------
    ValueError
        If ``scores`` and ``truth`` differ in length, or a score is not
        strictly inside (0, 1)

    Notes
    -----
    When every score is >= threshold the threshold is reset to the median
    score so both predicted classes are populated. If the median is also the
    maximum score, rows at the median are predicted positive; the predicted
    classes are then non-empty whenever the scores are not all identical.

    The caller is responsible for ``positive_class`` occurring in ``truth``;
    if it does not, recall is nan.
    """
    scores = np.asarray(scores, dtype=float)
    truth = np.asarray(truth)
    if scores.ndim != 1 or len(scores) != len(truth):
        raise ValueError(
            f"scores and truth must be 1D sequences of the same length, "
            f"got {scores.shape} and {truth.shape}"
        )

    y = encode_labels(truth, positive_class)
    deviance = binomial_deviance(scores, y)

    predicted, threshold = predict_classes(scores, threshold)

    cm = confusion_matrix(y.astype(int), predicted.astype(int), labels=[0, 1])
    true_positive = cm[1, 1]

    accuracy = _safe_ratio(np.trace(cm), cm.sum())
    precision = _safe_ratio(true_positive, cm[:, 1].sum())
    recall = _safe_ratio(true_positive, cm[1, :].sum())

    return PerformanceRecord(
        label=label,
        deviance=deviance,
        accuracy=accuracy,
        precision=precision,
        recall=recall,
        threshold=float(threshold)
    )
