import numpy as np
import pytest

from feature_eval.components.features.selection import (
    EVAL_MODES,
    describe_selection,
    has_features_to_evaluate,
    ignored_features,
    restrict_folds,
    uses_common_baseline,
)
from feature_eval.components.splitters.materialize import create_fold_data
from feature_eval.components.splitters.types import FoldSubsets
from feature_eval.errors import FeatureEvalConfigError

SETS = [[0, 1], [2], [3, 4]]


class TestIgnoredFeatures:
    """Which features each role ignores in every mode."""

    @pytest.mark.parametrize(
        "mode, role, set_idx, expected",
        [
            ("OneVsAll", "Baseline", 1, []),
            ("OneVsAll", "Testing", 1, [0, 1, 3, 4]),
            ("OneVsOthers", "Baseline", 1, [2]),
            ("OneVsOthers", "Testing", 1, [0, 1, 3, 4]),
            ("OthersVsAll", "Baseline", 0, []),
            ("OthersVsAll", "Testing", 0, [0, 1]),
            ("OneVsNone", "Baseline", 2, [0, 1, 2, 3, 4]),
            ("OneVsNone", "Testing", 0, [2, 3, 4]),
        ],
    )
    def test_selection_table(self, mode, role, set_idx, expected):
        assert ignored_features(mode, SETS, role, set_idx) == expected

    @pytest.mark.parametrize("set_idx", range(len(SETS)))
    def test_one_vs_others_roles_partition_the_union(self, set_idx):
        baseline = set(ignored_features("OneVsOthers", SETS, "Baseline", set_idx))
        testing = set(ignored_features("OneVsOthers", SETS, "Testing", set_idx))
        assert not baseline & testing
        assert baseline | testing == {0, 1, 2, 3, 4}

    @pytest.mark.parametrize("set_idx", range(len(SETS)))
    def test_one_vs_none_testing_adds_exactly_the_set(self, set_idx):
        baseline = set(ignored_features("OneVsNone", SETS, "Baseline", set_idx))
        testing = set(ignored_features("OneVsNone", SETS, "Testing", set_idx))
        assert baseline - testing == set(SETS[set_idx])

    def test_one_vs_none_baseline_is_shared(self):
        assert len({tuple(ignored_features("OneVsNone", SETS, "Baseline", i)) for i in range(3)}) == 1

    def test_unknown_mode(self):
        with pytest.raises(FeatureEvalConfigError, match="Unknown feature evaluation mode"):
            ignored_features("AllVsNothing", SETS, "Testing", 0)

    def test_set_index_out_of_range(self):
        with pytest.raises(FeatureEvalConfigError):
            ignored_features("OneVsAll", SETS, "Testing", 3)

    def test_common_baseline(self):
        assert [uses_common_baseline(m) for m in EVAL_MODES] == [True, False, True, True]

    def test_describe_selection(self):
        assert describe_selection("Testing", 1, [3, 5]) == "Feature set 1, testing, additional ignored features 3:5"
        assert describe_selection("Baseline", 0, []) == "Feature set 0, baseline, no additional ignored features"


class TestRestrictFolds:
    """Applying the selection to materialized folds."""

    @pytest.fixture
    def folds(self, regression_dataset):
        subsets = FoldSubsets(
            train=[np.arange(0, 60), np.arange(60, 120)],
            test=[np.arange(60, 120), np.arange(0, 60)],
        )
        return create_fold_data(regression_dataset, subsets, n_jobs=1)

    def test_restricts_learn_and_test(self, folds, caplog):
        with caplog.at_level("INFO"):
            restricted = restrict_folds(
                folds, mode="OneVsAll", feature_sets=[[0], [1]], role="Testing", set_idx=0
            )
        assert "Feature set 0, testing, additional ignored features 1" in caplog.text
        for fold in restricted.folds:
            assert fold.learn.layout.ignored.tolist() == [False, True, False, False]
            assert fold.test.layout.ignored.tolist() == [False, True, False, False]
        # source folds untouched
        assert not folds.folds[0].learn.layout.ignored.any()

    def test_constant_feature_set_is_degenerate(self, folds):
        # ignoring a constant feature changes nothing usable
        assert not has_features_to_evaluate(folds.with_ignored_features([3]), folds)

    def test_added_feature_differs(self, folds):
        assert has_features_to_evaluate(folds.with_ignored_features([0]), folds)

    def test_removed_feature_differs(self, folds):
        # OthersVsAll: the tested model drops the set the baseline keeps
        assert has_features_to_evaluate(folds, folds.with_ignored_features([0]))

    def test_testing_without_usable_features(self, folds):
        assert not has_features_to_evaluate(folds, folds.with_ignored_features([0, 1, 2]))
