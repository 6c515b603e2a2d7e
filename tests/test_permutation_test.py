"""
Tests for the label-permutation engine.
"""

from collections import Counter

import numpy as np
import pytest

from permutation_glm import LogisticTrainer, PermutationEngine, evaluate, permute_labels


def residual_deviance(trial):
    return trial.model.residual_deviance


class FlakyTrainer(LogisticTrainer):
    """Fails on every other fit."""

    def __init__(self):
        super().__init__()
        self.calls = 0

    def fit(self, dataset, feature_subset):
        self.calls += 1
        if self.calls % 2 == 0:
            raise ValueError("did not converge")
        return super().fit(dataset, feature_subset)


class TestPermuteLabels:

    def test_only_label_column_moves(self, signal_data):
        perm = np.random.RandomState(0).permutation(len(signal_data))
        permuted = permute_labels(signal_data, 'y', perm)

        features = ['g_1', 'g_2', 'n_1', 'n_2']
        assert permuted[features].equals(signal_data[features])
        np.testing.assert_array_equal(permuted['y'].to_numpy(),
                                      signal_data['y'].to_numpy()[perm])

    def test_original_untouched(self, signal_data):
        before = signal_data.copy()
        permute_labels(signal_data, 'y', np.arange(len(signal_data))[::-1])
        assert signal_data.equals(before)


class TestPermuteAndScore:

    def test_returns_one_result_per_trial(self, engine, signal_data):
        for k in (1, 7):
            results = engine.permute_and_score(signal_data, ['g_1'], k, residual_deviance)
            assert len(results) == k

    @pytest.mark.parametrize("k", [0, -3])
    def test_trial_count_below_one_rejected(self, engine, signal_data, k):
        with pytest.raises(ValueError, match="trial_count"):
            engine.permute_and_score(signal_data, ['g_1'], k, residual_deviance)

    def test_label_multiset_preserved(self, engine, signal_data):
        original = Counter(signal_data['y'])

        def check(trial):
            assert Counter(trial.permuted_labels) == original
            assert sorted(trial.permutation) == list(range(len(signal_data)))
            np.testing.assert_array_equal(
                trial.permuted_labels, trial.original_labels[trial.permutation]
            )
            return True

        assert all(engine.permute_and_score(signal_data, ['g_1'], 5, check))

    def test_dataset_not_modified(self, engine, signal_data):
        before = signal_data.copy()
        engine.permute_and_score(signal_data, ['g_1', 'n_1'], 3, residual_deviance)
        assert signal_data.equals(before)

    def test_reproducible_with_seed(self, signal_data):
        a = PermutationEngine(random_state=3).permute_and_score(
            signal_data, ['g_1'], 5, residual_deviance)
        b = PermutationEngine(random_state=3).permute_and_score(
            signal_data, ['g_1'], 5, residual_deviance)
        assert a == b

    def test_shared_random_state_is_not_reseeded(self, signal_data):
        rng = np.random.RandomState(0)
        engine = PermutationEngine(random_state=rng)
        first = engine.permute_and_score(signal_data, ['g_1'], 3, lambda t: tuple(t.permutation))
        second = engine.permute_and_score(signal_data, ['g_1'], 3, lambda t: tuple(t.permutation))
        assert first != second

    def test_trials_draw_distinct_permutations(self, engine, signal_data):
        perms = engine.permute_and_score(signal_data, ['g_1'], 10, lambda t: tuple(t.permutation))
        assert len(set(perms)) == 10

    def test_model_mode_predicts_on_original_rows(self, engine, signal_data):
        def check(trial):
            np.testing.assert_allclose(trial.predictions, trial.model.predict(signal_data))
            return True

        assert all(engine.permute_and_score(signal_data, ['g_1'], 3, check, mode='model'))

    def test_feature_mode_uses_training_scores(self, engine, signal_data):
        def check(trial):
            return trial.predictions is trial.model.training_scores

        assert all(engine.permute_and_score(signal_data, ['g_1'], 3, check, mode='feature'))

    def test_modes_share_predictions_for_same_permutation(self, signal_data):
        def scores(trial):
            return trial.predictions

        by_model = PermutationEngine(random_state=5).permute_and_score(
            signal_data, ['g_1', 'n_1'], 3, scores, mode='model')
        by_feature = PermutationEngine(random_state=5).permute_and_score(
            signal_data, ['g_1', 'n_1'], 3, scores, mode='feature')

        for a, b in zip(by_model, by_feature):
            np.testing.assert_allclose(a, b)

    def test_permuted_fits_lose_signal(self, engine, signal_data, trainer):
        observed = trainer.fit(signal_data, ['g_1', 'g_2']).residual_deviance
        null = engine.permute_and_score(signal_data, ['g_1', 'g_2'], 20, residual_deviance)
        assert min(null) > observed

    def test_unknown_mode_rejected(self, engine, signal_data):
        with pytest.raises(ValueError, match="mode"):
            engine.permute_and_score(signal_data, ['g_1'], 2, residual_deviance, mode='rows')

    def test_invalid_features_rejected(self, engine, signal_data):
        with pytest.raises(ValueError):
            engine.permute_and_score(signal_data, ['nope'], 2, residual_deviance)


class TestFitFailures:

    def test_failure_propagates_by_default(self, signal_data):
        engine = PermutationEngine(trainer=FlakyTrainer(), random_state=0)
        with pytest.raises(ValueError, match="did not converge"):
            engine.permute_and_score(signal_data, ['g_1'], 4, residual_deviance)

    def test_skip_records_shorter_sample(self, signal_data):
        engine = PermutationEngine(trainer=FlakyTrainer(), random_state=0, on_fit_error='skip')
        with pytest.warns(RuntimeWarning, match="2 of 4"):
            results = engine.permute_and_score(signal_data, ['g_1'], 4, residual_deviance)
        assert len(results) == 2

    def test_scorer_errors_propagate_under_skip(self, signal_data):
        def short_truth(trial):
            return evaluate(trial.predictions, trial.permuted_labels[:-1], 'positive')

        engine = PermutationEngine(random_state=0, on_fit_error='skip')
        with pytest.raises(ValueError, match="same length"):
            engine.permute_and_score(signal_data, ['g_1'], 3, short_truth)

    def test_skip_does_not_cover_scorer_errors(self, signal_data):
        def fail(trial):
            raise ValueError("bad score")

        engine = PermutationEngine(trainer=FlakyTrainer(), random_state=0, on_fit_error='skip')
        with pytest.raises(ValueError, match="bad score"):
            engine.permute_and_score(signal_data, ['g_1'], 4, fail)

    def test_invalid_policy(self):
        with pytest.raises(ValueError, match="on_fit_error"):
            PermutationEngine(on_fit_error='retry')


class TestScreenPermutations:

    def test_one_sample_per_feature(self, engine, signal_data):
        samples = engine.screen_permutations(signal_data, ['g_1', 'n_1'], 4, residual_deviance)

        assert list(samples) == ['g_1', 'n_1']
        assert all(len(s) == 4 for s in samples.values())

    def test_features_get_independent_permutations(self, engine, signal_data):
        samples = engine.screen_permutations(
            signal_data, ['g_1', 'n_1'], 3, lambda t: tuple(t.permutation))
        assert samples['g_1'] != samples['n_1']

    def test_single_feature_models(self, engine, signal_data):
        samples = engine.screen_permutations(
            signal_data, ['g_2', 'n_2'], 2, lambda t: t.model.features)
        assert samples['g_2'] == [['g_2'], ['g_2']]
        assert samples['n_2'] == [['n_2'], ['n_2']]
