"""
Tests for tail areas, chi-square significance and feature screening.
"""

import numpy as np
import pytest
from scipy.stats import chi2

from permutation_glm import (
    PermutationEngine, SignificanceRecord, chi_square_significance, left_tail,
    model_permutation_test, model_significance, right_tail, screen_features,
    select_features
)
from permutation_glm.benchmarks import draw_coefficients, generate
from permutation_glm.significance import tail_area


class TestTailAreas:

    def test_simple_values(self):
        null = [1, 2, 3, 4]
        assert right_tail(3, null) == 0.5
        assert left_tail(3, null) == 0.75
        assert right_tail(5, null) == 0.0
        assert left_tail(0, null) == 0.0

    def test_bounded(self):
        rng = np.random.RandomState(0)
        for _ in range(50):
            null = rng.randn(rng.randint(1, 40))
            score = rng.randn() * 2
            assert 0 <= right_tail(score, null) <= 1
            assert 0 <= left_tail(score, null) <= 1

    def test_ties_count_toward_null(self):
        rng = np.random.RandomState(1)
        for _ in range(50):
            null = np.round(rng.randn(20), 1)
            score = null[rng.randint(len(null))]
            assert right_tail(score, null) + left_tail(score, null) >= 1

    def test_monotone_in_score(self):
        null = np.random.RandomState(2).randn(100)
        scores = np.linspace(-3, 3, 61)
        rights = [right_tail(s, null) for s in scores]
        lefts = [left_tail(s, null) for s in scores]
        assert all(a >= b for a, b in zip(rights, rights[1:]))
        assert all(a <= b for a, b in zip(lefts, lefts[1:]))

    def test_empty_null_rejected(self):
        with pytest.raises(ValueError, match="empty"):
            right_tail(0.5, [])
        with pytest.raises(ValueError, match="empty"):
            left_tail(0.5, [])

    def test_direction_by_statistic(self):
        null = [1, 2, 3]
        assert tail_area('deviance', 2, null) == left_tail(2, null)
        assert tail_area('accuracy', 2, null) == right_tail(2, null)
        with pytest.raises(ValueError):
            tail_area('auc', 2, null)


class TestChiSquare:

    def test_matches_scipy(self):
        assert chi_square_significance(100.0, 90.0, 3) == pytest.approx(chi2.sf(10.0, 3))

    def test_no_reduction_is_insignificant(self):
        assert chi_square_significance(50.0, 50.0, 1) == pytest.approx(1.0)

    def test_degrees_of_freedom_validated(self):
        with pytest.raises(ValueError):
            chi_square_significance(10.0, 5.0, 0)

    def test_model_uses_parameter_count_minus_one(self, trainer, signal_data):
        model = trainer.fit(signal_data, ['g_1', 'g_2', 'n_1'])
        expected = chi2.sf(model.null_deviance - model.residual_deviance, 3)
        assert model_significance(model) == pytest.approx(expected)

    def test_single_feature_has_one_degree_of_freedom(self, trainer, signal_data):
        model = trainer.fit(signal_data, ['n_1'])
        expected = chi2.sf(model.null_deviance - model.residual_deviance, 1)
        assert model_significance(model) == pytest.approx(expected)


class TestModelPermutationTest:

    def test_signal_detected(self, signal_data):
        result = model_permutation_test(
            signal_data, ['g_1', 'g_2', 'n_1', 'n_2'], 50,
            engine=PermutationEngine(random_state=0)
        )

        assert len(result.null_records) == 50
        assert result.tail_areas['deviance'] == 0.0
        assert result.tail_areas['accuracy'] == 0.0
        assert result.chi_square_p < 1e-10
        assert result.observed.label == 'observed'
        assert set(result.tail_areas) == {'deviance', 'accuracy', 'precision', 'recall'}

    def test_null_values(self, signal_data):
        result = model_permutation_test(signal_data, ['n_1'], 5,
                                        engine=PermutationEngine(random_state=0))
        values = result.null_values('deviance')
        assert values.shape == (5,)
        with pytest.raises(ValueError):
            result.null_values('auc')

    def test_to_record(self, signal_data):
        result = model_permutation_test(signal_data, ['g_1', 'n_1'], 5,
                                        engine=PermutationEngine(random_state=0))
        record = result.to_record('full')
        assert record.name == 'full'
        assert record.degrees_of_freedom == 2
        assert record.tail_area == result.tail_areas['deviance']

    def test_concrete_signal_scenario(self):
        rng = np.random.RandomState(2024)
        data = generate(1000, draw_coefficients(10, rng), noise_feature_count=3,
                        random_state=rng)
        features = [c for c in data.columns if c != 'y']

        result = model_permutation_test(data, features, 200,
                                        engine=PermutationEngine(random_state=rng))
        assert left_tail(result.observed.deviance, result.null_values('deviance')) <= 0.01

    def test_reproducible(self, signal_data):
        a = model_permutation_test(signal_data, ['g_1'], 10, engine=PermutationEngine(random_state=4))
        b = model_permutation_test(signal_data, ['g_1'], 10, engine=PermutationEngine(random_state=4))
        np.testing.assert_array_equal(a.null_values('deviance'), b.null_values('deviance'))


class TestScreenFeatures:

    def test_signal_features_selected(self, signal_data):
        records = screen_features(signal_data, ['g_1', 'g_2', 'n_1', 'n_2'], 40,
                                  engine=PermutationEngine(random_state=0))

        assert [r.name for r in records] == ['g_1', 'g_2', 'n_1', 'n_2']
        by_name = {r.name: r for r in records}
        assert by_name['g_1'].tail_area == 0.0
        assert by_name['g_2'].tail_area == 0.0
        assert by_name['g_1'].chi_square_p < 1e-6
        assert all(r.degrees_of_freedom == 1 for r in records)
        assert set(select_features(records, 0.05)) >= {'g_1', 'g_2'}
        assert set(select_features(records, 0.05, by='chi_square')) >= {'g_1', 'g_2'}

    def test_observed_is_single_feature_residual_deviance(self, trainer, signal_data):
        records = screen_features(signal_data, ['n_2'], 5,
                                  engine=PermutationEngine(random_state=0))
        expected = trainer.fit(signal_data, ['n_2']).residual_deviance
        assert records[0].observed == pytest.approx(expected)


class TestSelectFeatures:

    @pytest.fixture
    def records(self):
        return [
            SignificanceRecord('a', 10.0, tail_area=0.001, chi_square_p=0.2),
            SignificanceRecord('b', 11.0, tail_area=0.3, chi_square_p=0.001),
            SignificanceRecord('c', 12.0, tail_area=0.04, chi_square_p=0.04),
        ]

    def test_by_permutation(self, records):
        assert select_features(records, 0.05) == ['a', 'c']
        assert select_features(records, 0.01) == ['a']

    def test_by_chi_square(self, records):
        assert select_features(records, 0.05, by='chi_square') == ['b', 'c']

    def test_strict_threshold(self, records):
        assert select_features(records, 0.04) == ['a']

    def test_invalid_arguments(self, records):
        with pytest.raises(ValueError):
            select_features(records, 1.5)
        with pytest.raises(ValueError):
            select_features(records, 0.05, by='bonferroni')
