"""
Visualization and reporting utilities for permutation test results.

Everything here consumes the data returned by the core modules (null
samples, performance records, significance records); nothing in the core
calls into this module.
"""

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
from pathlib import Path
from sklearn.metrics import roc_curve, roc_auc_score
from typing import Iterable, Optional

from ..evaluation import PerformanceRecord
from ..significance import SignificanceRecord
from ..utils import encode_labels


def _finish_figure(save_path: Optional[str], what: str):
    plt.tight_layout()

    if save_path:
        Path(save_path).parent.mkdir(parents=True, exist_ok=True)
        plt.savefig(save_path, dpi=300, bbox_inches='tight')
        print(f"Saved {what} to: {save_path}")
    else:
        plt.show()

    plt.close()


def plot_null_distribution(
    null_values,
    observed: float,
    title: str = "Permutation null distribution",
    statistic: str = "deviance",
    save_path: Optional[str] = None,
    figsize: tuple = (8, 5)
):
    """
    Plot the density of a permutation null sample with the observed value marked.

    Parameters
    ----------
    null_values : array-like
        One statistic per permutation trial
    observed : float
        Statistic of the model fitted on the real labels
    title : str
        Figure title
    statistic : str, default='deviance'
        Name shown on the x-axis
    save_path : str, optional
        Path to save figure (if None, display only)
    figsize : tuple, default=(8, 5)
    """
    null_values = np.asarray(null_values, dtype=float)
    null_values = null_values[~np.isnan(null_values)]

    fig, ax = plt.subplots(figsize=figsize)

    sns.histplot(null_values, stat='density', alpha=0.3, ax=ax, label='permuted labels')
    if len(np.unique(null_values)) > 1:
        sns.kdeplot(null_values, ax=ax, linewidth=2)
    ax.axvline(observed, color='red', linestyle='--', linewidth=2, label='observed')

    ax.set_xlabel(statistic, fontsize=12)
    ax.set_ylabel('Density', fontsize=12)
    ax.set_title(title, fontsize=14)
    ax.legend(loc='upper right')
    ax.grid(alpha=0.3)

    _finish_figure(save_path, "null distribution plot")


def plot_roc_curve(
    scores,
    truth,
    positive_class,
    title: str = "ROC curve",
    save_path: Optional[str] = None,
    figsize: tuple = (6, 6)
):
    """
    Plot the ROC curve of predicted scores against true labels.

    Parameters
    ----------
    scores : array-like of shape (n_samples,)
        Predicted probability of ``positive_class``
    truth : array-like of shape (n_samples,)
        True class labels
    positive_class : object
    title : str
    save_path : str, optional
    figsize : tuple, default=(6, 6)

    Returns
    -------
    auc : float
        Area under the ROC curve
    """
    y = encode_labels(truth, positive_class)
    fpr, tpr, _ = roc_curve(y, scores)
    auc = roc_auc_score(y, scores)

    fig, ax = plt.subplots(figsize=figsize)
    ax.plot(fpr, tpr, linewidth=2, label=f'AUC = {auc:.3f}')
    ax.plot([0, 1], [0, 1], color='gray', linestyle=':')

    ax.set_xlabel('False positive rate', fontsize=12)
    ax.set_ylabel('True positive rate', fontsize=12)
    ax.set_title(title, fontsize=14)
    ax.legend(loc='lower right')
    ax.grid(alpha=0.3)

    _finish_figure(save_path, "ROC curve")
    return float(auc)


def format_performance_table(records: Iterable[PerformanceRecord]) -> pd.DataFrame:
    """
    Tabulate performance records, one row per record indexed by its label.
    """
    rows = [r.as_dict() for r in records]
    df = pd.DataFrame(rows, columns=['label', 'deviance', 'accuracy',
                                     'precision', 'recall', 'threshold'])
    return df.set_index('label')


def summarize_null_records(records: Iterable[PerformanceRecord]) -> pd.DataFrame:
    """Mean, std and quantiles of each statistic across a null sample."""
    df = format_performance_table(records).drop(columns='threshold')
    return df.describe(percentiles=[0.01, 0.05, 0.5, 0.95, 0.99]).T


def format_significance_table(
    records: Iterable[SignificanceRecord],
    threshold: Optional[float] = None
) -> pd.DataFrame:
    """
    Tabulate significance records, one row per feature or model.

    When ``threshold`` is given, two boolean columns report selection by the
    permutation tail area and by the chi-square p-value.
    """
    records = list(records)
    df = pd.DataFrame(
        {
            'observed deviance': [r.observed for r in records],
            'tail area': [r.tail_area for r in records],
            'chi-square p': [r.chi_square_p for r in records],
            'df': [r.degrees_of_freedom for r in records],
        },
        index=pd.Index([r.name for r in records], name='name')
    )

    if threshold is not None:
        df['selected (permutation)'] = [r.selected(threshold, 'permutation') for r in records]
        df['selected (chi-square)'] = [r.selected(threshold, 'chi_square') for r in records]

    return df


def save_table_csv(df: pd.DataFrame, filepath: str):
    """Save a table to CSV, keeping the index."""
    Path(filepath).parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(filepath, index=True)
    print(f"Saved table to: {filepath}")


def print_table(df: pd.DataFrame, title: str = None):
    if title:
        print(f"\n{title}")
        print("=" * len(title))

    print(df.to_string())
    print()
