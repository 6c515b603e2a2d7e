"""
Utility functions shared by the permutation test modules.

This module provides helper functions for:
- Random source normalisation
- Feature subset validation
- Binary label encoding
"""

import numpy as np
import pandas as pd
from sklearn.utils import check_random_state
from typing import Iterable, List, Union


RandomStateLike = Union[None, int, np.random.RandomState]


def as_random_state(random_state: RandomStateLike = None) -> np.random.RandomState:
    """
    Turn a seed or an existing random source into a ``RandomState``.

    An existing ``RandomState`` is returned unchanged, so callers that share
    one source keep drawing from the same stream. Nothing is reseeded.

    Parameters
    ----------
    random_state : int, np.random.RandomState or None
        Seed, random source, or None for the process-wide numpy source

    Returns
    -------
    rng : np.random.RandomState
    """
    return check_random_state(random_state)


def check_feature_subset(dataset: pd.DataFrame, feature_subset: Iterable[str],
                         label_column: str) -> List[str]:
    """
    Validate a feature subset against a dataset and return it as a list.

    Lists and tuples keep their order; sets are sorted so that the column
    order handed to the model does not depend on hashing.

    Parameters
    ----------
    dataset : pd.DataFrame
        Dataset holding the label and feature columns
    feature_subset : iterable of str
        Feature column names
    label_column : str
        Name of the label column, which may not be used as a feature

    Returns
    -------
    features : list of str

    Raises
    ------
    ValueError
        If the subset is empty, repeats a name, names the label column or
        names a column the dataset does not have
    """
    if isinstance(feature_subset, str):
        feature_subset = [feature_subset]
    if isinstance(feature_subset, (set, frozenset)):
        features = sorted(feature_subset)
    else:
        features = list(feature_subset)

    if not features:
        raise ValueError("feature_subset must name at least one feature")
    if len(set(features)) != len(features):
        raise ValueError(f"feature_subset contains duplicate names: {features}")
    if label_column in features:
        raise ValueError(f"Label column '{label_column}' cannot be used as a feature")

    missing = [f for f in features if f not in dataset.columns]
    if missing:
        raise ValueError(f"Unknown feature columns: {missing}")

    return features


def encode_labels(labels, positive_class) -> np.ndarray:
    """Return 1.0 where ``labels == positive_class`` and 0.0 elsewhere."""
    return (np.asarray(labels) == positive_class).astype(float)
