"""
Shared fixtures for the permutation test suite.
"""

import matplotlib
matplotlib.use("Agg")

import pytest

from permutation_glm import LogisticTrainer, PermutationEngine
from permutation_glm.benchmarks import generate


@pytest.fixture
def signal_data():
    """Two strong signal features and two noise features."""
    return generate(300, {'g_1': 2.0, 'g_2': -1.5}, noise_feature_count=2, random_state=7)


@pytest.fixture
def noise_data():
    """No signal features at all."""
    return generate(200, {}, noise_feature_count=3, random_state=11)


@pytest.fixture
def trainer():
    return LogisticTrainer()


@pytest.fixture
def engine(trainer):
    return PermutationEngine(trainer=trainer, random_state=42)
