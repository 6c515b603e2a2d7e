"""
Significance estimates for whole models and single features.

Two independent estimators are provided and meant to be read side by side:

- Empirical tail areas of an observed statistic against a permutation null
  sample (``right_tail`` / ``left_tail``)
- The asymptotic likelihood-ratio test: the deviance reduction of a fitted
  model against the upper tail of a chi-square distribution

They agree when the asymptotic approximation holds (large samples, well
separated classes) and drift apart when it does not.
"""

import logging
import numpy as np
import pandas as pd
from dataclasses import dataclass, field
from scipy.stats import chi2
from typing import Dict, Iterable, List, Literal, Optional

from .evaluation import (
    PerformanceRecord, evaluate, HIGHER_IS_BETTER, LOWER_IS_BETTER, STATISTICS
)
from .models import FittedLogisticModel
from .permutation_test import PermutationEngine, PermutationTrial
from .utils import check_feature_subset

logger = logging.getLogger(__name__)


def _check_null_sample(null_sample) -> np.ndarray:
    null = np.asarray(null_sample, dtype=float)
    if null.size == 0:
        raise ValueError("null_sample is empty; a tail area needs at least one draw")
    return null.ravel()


def right_tail(score: float, null_sample) -> float:
    """
    Fraction of null draws at least as large as ``score``.

    Use for statistics where higher is better (accuracy, precision, recall).
    Ties count toward the null.

    Raises
    ------
    ValueError
        If ``null_sample`` is empty
    """
    null = _check_null_sample(null_sample)
    return float(np.mean(null >= score))


def left_tail(score: float, null_sample) -> float:
    """
    Fraction of null draws at most as large as ``score``.

    Use for statistics where lower is better (deviance). Ties count toward
    the null.

    Raises
    ------
    ValueError
        If ``null_sample`` is empty
    """
    null = _check_null_sample(null_sample)
    return float(np.mean(null <= score))


def tail_area(statistic: str, score: float, null_sample) -> float:
    """Pick the tail matching the direction of ``statistic``."""
    if statistic in LOWER_IS_BETTER:
        return left_tail(score, null_sample)
    if statistic in HIGHER_IS_BETTER:
        return right_tail(score, null_sample)
    raise ValueError(f"Unknown statistic: {statistic}")


def chi_square_significance(null_deviance: float, residual_deviance: float,
                            degrees_of_freedom: int) -> float:
    """
    Upper-tail chi-square probability of the deviance reduction.

    Parameters
    ----------
    null_deviance : float
        Deviance of the base-rate model
    residual_deviance : float
        Deviance of the fitted model
    degrees_of_freedom : int
        Number of parameters beyond the intercept, at least 1

    Returns
    -------
    p_value : float
        P(chi2(df) >= null_deviance - residual_deviance)
    """
    if degrees_of_freedom < 1:
        raise ValueError(f"degrees_of_freedom must be >= 1, got {degrees_of_freedom}")

    delta = null_deviance - residual_deviance
    return float(chi2.sf(delta, degrees_of_freedom))


def model_significance(model: FittedLogisticModel) -> float:
    """Chi-square significance of a fitted model with df = parameter_count - 1."""
    return chi_square_significance(
        model.null_deviance, model.residual_deviance, model.parameter_count - 1
    )


@dataclass(frozen=True)
class SignificanceRecord:
    """
    Significance of one feature (or one model).

    Attributes
    ----------
    name : str
        Feature or model identifier
    observed : float
        Observed statistic (residual deviance for feature screening)
    tail_area : float
        Empirical permutation tail area
    chi_square_p : float
        Theoretical chi-square p-value
    degrees_of_freedom : int
    """
    name: str
    observed: float
    tail_area: float
    chi_square_p: float
    degrees_of_freedom: int = 1

    def selected(self, threshold: float = 0.05,
                 by: Literal['permutation', 'chi_square'] = 'permutation') -> bool:
        if by == 'permutation':
            return self.tail_area < threshold
        elif by == 'chi_square':
            return self.chi_square_p < threshold
        raise ValueError(f"by must be 'permutation' or 'chi_square', got {by}")


@dataclass
class ModelSignificance:
    """
    Result of a whole-model permutation test.

    Attributes
    ----------
    observed : PerformanceRecord
        Fit of the real model against the real labels
    null_records : list of PerformanceRecord
        One record per permutation trial
    tail_areas : dict
        {statistic: empirical tail area}
    chi_square_p : float
        Likelihood-ratio p-value of the real model
    model : FittedLogisticModel
    """
    observed: PerformanceRecord
    null_records: List[PerformanceRecord]
    tail_areas: Dict[str, float]
    chi_square_p: float
    model: FittedLogisticModel
    features: List[str] = field(default_factory=list)

    def null_values(self, statistic: str) -> np.ndarray:
        """Null sample of one statistic as an array."""
        if statistic not in STATISTICS:
            raise ValueError(f"Unknown statistic: {statistic}")
        return np.array([getattr(r, statistic) for r in self.null_records])

    def to_record(self, name: str = 'model') -> SignificanceRecord:
        return SignificanceRecord(
            name=name,
            observed=self.observed.deviance,
            tail_area=self.tail_areas['deviance'],
            chi_square_p=self.chi_square_p,
            degrees_of_freedom=self.model.parameter_count - 1
        )


def model_permutation_test(
    dataset: pd.DataFrame,
    feature_subset: Iterable[str],
    trial_count: int,
    engine: Optional[PermutationEngine] = None,
    threshold: float = 0.5
) -> ModelSignificance:
    """
    Test whether a logistic model on ``feature_subset`` fits better than chance.

    The observed record scores the real model against the real labels. Each
    null record refits on permuted labels, predicts on the original feature
    rows and is scored against the permuted labels it was fitted to.

    Parameters
    ----------
    dataset : pd.DataFrame
    feature_subset : iterable of str
    trial_count : int
        Number of permutation trials
    engine : PermutationEngine, optional
        Supplies the trainer and the random source
    threshold : float, default=0.5
        Decision threshold for accuracy, precision and recall

    Returns
    -------
    result : ModelSignificance
    """
    engine = engine if engine is not None else PermutationEngine()
    trainer = engine.trainer
    positive_class = trainer.positive_class
    features = check_feature_subset(dataset, feature_subset, trainer.label_column)

    model = trainer.fit(dataset, features)
    observed = evaluate(
        model.predict(dataset), dataset[trainer.label_column].to_numpy(),
        positive_class, threshold=threshold, label='observed'
    )

    def score_trial(trial: PermutationTrial) -> PerformanceRecord:
        return evaluate(
            trial.predictions, trial.permuted_labels, positive_class,
            threshold=threshold, label=f'permutation {trial.index}'
        )

    null_records = engine.permute_and_score(
        dataset, features, trial_count, score_trial, mode='model'
    )

    tail_areas = {
        statistic: tail_area(
            statistic,
            getattr(observed, statistic),
            [getattr(r, statistic) for r in null_records]
        )
        for statistic in STATISTICS
    }
    chi_square_p = model_significance(model)

    logger.info("Model on %d features: deviance tail area %.4f, chi-square p %.4g",
                len(features), tail_areas['deviance'], chi_square_p)

    return ModelSignificance(
        observed=observed,
        null_records=null_records,
        tail_areas=tail_areas,
        chi_square_p=chi_square_p,
        model=model,
        features=features
    )


def screen_features(
    dataset: pd.DataFrame,
    features: Iterable[str],
    trial_count: int,
    engine: Optional[PermutationEngine] = None
) -> List[SignificanceRecord]:
    """
    Per-feature significance screening.

    For each feature a single-variable model is fitted on the real labels;
    its residual deviance is compared with the residual deviances of
    single-variable models fitted to that feature's own independent label
    permutations (in-sample scores). The chi-square p-value uses df = 1.

    Parameters
    ----------
    dataset : pd.DataFrame
    features : iterable of str
        Features to screen, each tested on its own
    trial_count : int
        Permutation trials per feature
    engine : PermutationEngine, optional

    Returns
    -------
    records : list of SignificanceRecord
        One record per feature, in the order screened
    """
    engine = engine if engine is not None else PermutationEngine()
    trainer = engine.trainer
    features = check_feature_subset(dataset, features, trainer.label_column)

    null_samples = engine.screen_permutations(
        dataset, features, trial_count,
        scorer=lambda trial: trial.model.residual_deviance
    )

    records = []
    for feature in features:
        model = trainer.fit(dataset, [feature])
        record = SignificanceRecord(
            name=feature,
            observed=model.residual_deviance,
            tail_area=left_tail(model.residual_deviance, null_samples[feature]),
            chi_square_p=model_significance(model),
            degrees_of_freedom=1
        )
        logger.debug("%s: tail area %.4f, chi-square p %.4g",
                     feature, record.tail_area, record.chi_square_p)
        records.append(record)

    return records


def select_features(
    records: Iterable[SignificanceRecord],
    threshold: float = 0.05,
    by: Literal['permutation', 'chi_square'] = 'permutation'
) -> List[str]:
    """
    Names of the features whose significance is below ``threshold``.

    Parameters
    ----------
    records : iterable of SignificanceRecord
    threshold : float, default=0.05
    by : {'permutation', 'chi_square'}, default='permutation'
        Which estimator drives the decision

    Returns
    -------
    selected : list of str
        In the order of ``records``
    """
    if not 0 < threshold < 1:
        raise ValueError(f"threshold must be in (0, 1), got {threshold}")
    return [r.name for r in records if r.selected(threshold, by=by)]
