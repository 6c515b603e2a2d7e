"""
Logistic regression trainer used by the permutation tests.

The trainer fits an unpenalised binomial logistic model on a structured
feature subset and exposes the quantities the significance tests need:
scores, null deviance, residual deviance and parameter count.
"""

import numpy as np
import pandas as pd
from sklearn.linear_model import LogisticRegression
from typing import Iterable, List

from .evaluation import binomial_deviance
from .utils import check_feature_subset, encode_labels

# Keeps scores strictly inside (0, 1) when the fit separates the classes
SCORE_EPSILON = 1e-15


class FittedLogisticModel:
    """
    Result of fitting a LogisticTrainer on one (dataset, feature subset) pair.

    Attributes
    ----------
    features : list of str
        Feature columns, in the order the model was fitted on
    estimator : LogisticRegression
        Underlying fitted scikit-learn estimator
    training_scores : np.ndarray of shape (n_samples,)
        In-sample predicted probability of the positive class
    null_deviance : float
        Deviance of the constant model predicting the training base rate
    residual_deviance : float
        Deviance of the in-sample predictions
    parameter_count : int
        Number of fitted coefficients including the intercept
    """

    def __init__(self, estimator: LogisticRegression, features: List[str],
                 positive_class, training_scores: np.ndarray,
                 null_deviance: float, residual_deviance: float):
        self.estimator = estimator
        self.features = list(features)
        self.positive_class = positive_class
        self.training_scores = training_scores
        self.null_deviance = null_deviance
        self.residual_deviance = residual_deviance
        self.parameter_count = len(self.features) + 1

    def predict(self, dataset: pd.DataFrame) -> np.ndarray:
        """
        Predict the probability of the positive class for every row.

        Parameters
        ----------
        dataset : pd.DataFrame
            Must contain every column in ``features``

        Returns
        -------
        scores : np.ndarray of shape (n_samples,)
            Scores strictly inside (0, 1)
        """
        missing = [f for f in self.features if f not in dataset.columns]
        if missing:
            raise ValueError(f"Dataset is missing feature columns: {missing}")

        X = dataset[self.features].to_numpy(dtype=float)
        scores = self.estimator.predict_proba(X)[:, 1]
        return np.clip(scores, SCORE_EPSILON, 1 - SCORE_EPSILON)

    @property
    def deviance_reduction(self) -> float:
        return self.null_deviance - self.residual_deviance

    def __repr__(self) -> str:
        return (
            f"FittedLogisticModel(features={self.features}, "
            f"residual_deviance={self.residual_deviance:.3f})"
        )


class LogisticTrainer:
    """
    Fits binomial logistic regression models without regularisation.

    Parameters
    ----------
    label_column : str, default='y'
        Name of the label column in the datasets passed to fit()
    positive_class : object, default='positive'
        Label value modelled as the positive outcome
    max_iter : int, default=1000
        Iteration limit handed to the solver

    Examples
    --------
    >>> from permutation_glm.benchmarks import generate
    >>> data = generate(500, {'g_1': 1.0}, noise_feature_count=2, random_state=0)
    >>> model = LogisticTrainer().fit(data, ['g_1', 'n_1'])
    >>> model.parameter_count
    3
    """

    def __init__(self, label_column: str = 'y', positive_class='positive',
                 max_iter: int = 1000):
        if max_iter < 1:
            raise ValueError(f"max_iter must be >= 1, got {max_iter}")

        self.label_column = label_column
        self.positive_class = positive_class
        self.max_iter = max_iter

    def fit(self, dataset: pd.DataFrame, feature_subset: Iterable[str]) -> FittedLogisticModel:
        """
        Fit a logistic model of the label on ``feature_subset``.

        Parameters
        ----------
        dataset : pd.DataFrame
            Rows with a label column and the named feature columns
        feature_subset : iterable of str
            Feature columns to use; sets are fitted in sorted order

        Returns
        -------
        model : FittedLogisticModel

        Raises
        ------
        ValueError
            If the label column is missing, the feature subset is invalid,
            or the labels contain a single class
        """
        if self.label_column not in dataset.columns:
            raise ValueError(f"Dataset has no label column '{self.label_column}'")
        features = check_feature_subset(dataset, feature_subset, self.label_column)

        X = dataset[features].to_numpy(dtype=float)
        y = encode_labels(dataset[self.label_column], self.positive_class)

        # C=inf drops the L2 term, leaving the maximum-likelihood fit
        estimator = LogisticRegression(C=np.inf, max_iter=self.max_iter)
        estimator.fit(X, y.astype(int))

        training_scores = np.clip(
            estimator.predict_proba(X)[:, 1], SCORE_EPSILON, 1 - SCORE_EPSILON
        )
        base_rate = np.full(len(y), y.mean())

        return FittedLogisticModel(
            estimator=estimator,
            features=features,
            positive_class=self.positive_class,
            training_scores=training_scores,
            null_deviance=binomial_deviance(base_rate, y),
            residual_deviance=binomial_deviance(training_scores, y),
        )

    def __repr__(self) -> str:
        return (
            f"LogisticTrainer(label_column='{self.label_column}', "
            f"positive_class={self.positive_class!r})"
        )
