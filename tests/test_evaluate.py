import numpy as np
import pytest

from feature_eval.api import Dataset, evaluate_features, summary_to_tsv
from feature_eval.components.trainers.gradient_boosting import GradientBoostingTrainer
from feature_eval.errors import FeatureEvalConfigError, FoldCapacityError, SnapshotMismatchError
from feature_eval.factories.training_factory import make_default_trainer


def _update(cfg, **sections):
    """Copy of ``cfg`` with fields of the named sections replaced."""
    updates = {}
    for section, fields in sections.items():
        if isinstance(fields, dict):
            updates[section] = getattr(cfg, section).model_copy(update=fields)
        else:
            updates[section] = fields
    return cfg.model_copy(update=updates)


class RecordingProgress:
    def __init__(self):
        self.total = None
        self.updates = []
        self.finalized = False

    def init(self, *, total, label=None):
        self.total = total

    def update(self, *, current, label=None):
        self.updates.append(current)

    def finalize(self, *, label=None):
        self.finalized = True


class Interrupted(Exception):
    pass


class CountingTrainer:
    """Delegates to the default trainer and counts trained units.

    With ``fail_at`` set, that call raises :class:`Interrupted` instead of
    training, as a killed process would stop mid-evaluation.
    """

    def __init__(self, inner, fail_at=None):
        self.inner = inner
        self.fail_at = fail_at
        self.calls = 0

    def train(self, **kwargs):
        self.calls += 1
        if self.calls == self.fail_at:
            raise Interrupted(f"stopped at unit {self.calls}")
        return self.inner.train(**kwargs)


def _large_groups_dataset():
    """120 objects in ten groups, some larger than a fold of ten objects."""
    sizes = [25, 5, 10, 10, 25, 5, 10, 10, 10, 10]
    rng = np.random.default_rng(2)
    X = rng.normal(size=(sum(sizes), 3))
    y = 2.0 * X[:, 0] + 0.1 * rng.normal(size=sum(sizes))
    return Dataset(X, y, group_id=np.repeat(np.arange(len(sizes)), sizes))


class TestEvaluateFeatures:
    """End-to-end feature evaluation on small synthetic data."""

    def test_informative_set_is_significant(self, small_run_config, regression_dataset):
        summary = evaluate_features(small_run_config, regression_dataset)
        assert summary.metric_names == ["RMSE"]
        assert len(summary.wx_test) == 2
        assert summary.average_metric_delta[0][0] > 0
        assert summary.wx_test[0] < 0.05
        assert len(summary.best_metrics[0][0][0]) == 5
        assert len(summary.best_metrics[1][1][0]) == 5
        assert all(len(h) == 15 for h in summary.metrics_history[1][0])

    def test_common_baseline_is_shared(self, small_run_config, regression_dataset):
        summary = evaluate_features(small_run_config, regression_dataset)
        assert summary.best_baseline_iterations[1] == summary.best_baseline_iterations[0]
        assert summary.best_metrics[0][1] == summary.best_metrics[0][0]
        # baseline histories are recorded once
        assert summary.metrics_history[0][1] == []

    def test_own_baseline_per_set(self, small_run_config, regression_dataset):
        cfg = _update(small_run_config, feature_eval={"feature_eval_mode": "OneVsOthers"})
        summary = evaluate_features(cfg, regression_dataset)
        assert len(summary.metrics_history[0][0]) == 5
        assert len(summary.metrics_history[0][1]) == 5
        # dropping the informative feature hurts the set 0 baseline only
        assert np.mean(summary.best_metrics[0][0][0]) > np.mean(summary.best_metrics[0][1][0])

    def test_others_vs_all_trains_tested_models(self, small_run_config, regression_dataset, recwarn):
        cfg = _update(small_run_config, feature_eval={"feature_eval_mode": "OthersVsAll"})
        summary = evaluate_features(cfg, regression_dataset)
        assert not [w for w in recwarn if "consists of ignored or constant" in str(w.message)]
        assert len(summary.metrics_history[1][0]) == 5
        assert summary.best_metrics[1][0] != summary.best_metrics[0][0]
        # dropping the informative feature makes the tested model worse
        assert summary.average_metric_delta[0][0] < 0
        assert summary.wx_test[0] < 0.05

    def test_report(self, small_run_config, regression_dataset):
        summary = evaluate_features(small_run_config, regression_dataset)
        lines = summary_to_tsv(summary).splitlines()
        assert lines[0] == "p-value\tbest iteration in each fold\tRMSE\tfeature set"
        assert lines[1].endswith("\t0")
        assert lines[2].endswith("\t2")

    def test_constant_feature_set(self, small_run_config, regression_dataset):
        cfg = _update(small_run_config, feature_eval={"features_to_evaluate": [[0], [3]]})
        with pytest.warns(UserWarning, match="Feature set 1 consists of ignored or constant features"):
            summary = evaluate_features(cfg, regression_dataset)
        assert summary.best_metrics[1][1] == summary.best_metrics[0][0]
        assert summary.wx_test[1] == 1.0
        assert summary.average_metric_delta[1] == [0.0]

    def test_without_feature_sets(self, small_run_config, regression_dataset):
        cfg = _update(small_run_config, feature_eval={"features_to_evaluate": []})
        summary = evaluate_features(cfg, regression_dataset)
        assert summary.wx_test == [1.0]
        assert summary.average_metric_delta == [[0.0]]
        assert len(summary.best_baseline_iterations[0]) == 5

    def test_progress(self, small_run_config, regression_dataset):
        progress = RecordingProgress()
        evaluate_features(small_run_config, regression_dataset, progress=progress)
        # 5 folds x (1 common baseline + 2 tested sets)
        assert progress.total == 15
        assert progress.updates[-1] == 15
        assert progress.finalized

    def test_deterministic(self, small_run_config, regression_dataset):
        first = evaluate_features(small_run_config, regression_dataset)
        second = evaluate_features(small_run_config, regression_dataset)
        assert first.best_metrics == second.best_metrics
        assert first.wx_test == second.wx_test

    def test_separate_test_views_match(self, small_run_config, regression_dataset):
        together = evaluate_features(small_run_config, regression_dataset)
        cfg = small_run_config.model_copy(update={"separate_test_views": True})
        apart = evaluate_features(cfg, regression_dataset)
        np.testing.assert_allclose(apart.best_metrics[1][0][0], together.best_metrics[1][0][0])
        assert apart.best_baseline_iterations == together.best_baseline_iterations

    def test_explicit_fold_count(self, small_run_config, regression_dataset):
        cfg = _update(small_run_config, cv={"fold_count": 3})
        summary = evaluate_features(cfg, regression_dataset)
        assert len(summary.best_baseline_iterations[0]) == 3

    def test_multiple_fold_ranges(self, small_run_config, regression_dataset):
        cfg = _update(small_run_config, feature_eval={"fold_size": 40, "fold_count": 4, "offset": 1})
        summary = evaluate_features(cfg, regression_dataset)
        assert len(summary.best_metrics[1][0][0]) == 4

    def test_feature_strengths(self, small_run_config, regression_dataset):
        cfg = _update(small_run_config, output={"fstr_type": "FeatureImportance", "regular_fstr": True})
        summary = evaluate_features(cfg, regression_dataset)
        strengths = summary.feature_strengths[1][0]
        assert len(strengths) == 5
        assert strengths[0][0][1] == 0
        assert len(summary.regular_feature_strengths[1][0][0]) == 4


class TestEvaluateClassification:
    """Classification targets are encoded before training."""

    def _dataset(self, labels):
        rng = np.random.default_rng(3)
        X = rng.normal(size=(120, 3))
        y = np.array(labels)[np.digitize(X[:, 0], np.linspace(-1, 1, len(labels) + 1)[1:-1])]
        return Dataset(X, y)

    def test_string_labels_logloss(self, small_run_config):
        cfg = _update(
            small_run_config,
            boosting={"loss_function": "Logloss", "custom_metrics": ["AUC"]},
            feature_eval={"features_to_evaluate": [[0]]},
        )
        summary = evaluate_features(cfg, self._dataset(["no", "yes"]))
        assert summary.metric_names == ["Logloss", "AUC"]
        assert summary.average_metric_delta[0][0] > 0

    def test_multiclass(self, small_run_config):
        cfg = _update(
            small_run_config,
            boosting={"loss_function": "MultiClass", "iterations": 5},
            feature_eval={"features_to_evaluate": [[0]]},
        )
        summary = evaluate_features(cfg, self._dataset(["a", "b", "c"]))
        assert len(summary.best_metrics[1][0][0]) == 5

    def test_logloss_needs_binary_target(self, small_run_config):
        cfg = _update(small_run_config, boosting={"loss_function": "Logloss"})
        with pytest.raises(FeatureEvalConfigError, match="binary"):
            evaluate_features(cfg, self._dataset(["a", "b", "c"]))


class TestEvaluateValidation:
    """Options the evaluation rejects or corrects."""

    def test_capacity_without_shuffle(self, small_run_config, regression_dataset):
        cfg = _update(small_run_config, cv={"shuffle": False}, feature_eval={"fold_size": 30})
        with pytest.raises(FoldCapacityError) as excinfo:
            evaluate_features(cfg, regression_dataset)
        assert excinfo.value.max_fold_count == 4
        assert excinfo.value.max_fold_size == 24

    def test_object_folds_with_large_groups(self, small_run_config):
        cfg = _update(
            small_run_config,
            cv={"shuffle": False},
            feature_eval={"features_to_evaluate": [[0]], "fold_size": 10, "fold_size_unit": "Object"},
        )
        summary = evaluate_features(cfg, _large_groups_dataset())
        assert len(summary.best_metrics[1][0][0]) == 5
        assert summary.average_metric_delta[0][0] > 0

    def test_large_groups_limit_fold_count(self, small_run_config):
        cfg = _update(
            small_run_config,
            cv={"shuffle": False},
            feature_eval={"fold_size": 10, "fold_size_unit": "Object", "fold_count": 11},
        )
        # twelve folds of ten objects on paper, but only ten groups
        with pytest.raises(FoldCapacityError) as excinfo:
            evaluate_features(cfg, _large_groups_dataset())
        assert excinfo.value.max_fold_count == 10

    def test_ordered_objects(self, small_run_config, regression_dataset):
        X = np.random.default_rng(0).normal(size=(120, 4))
        dataset = Dataset(X, X[:, 0], objects_order="ordered")
        with pytest.raises(FeatureEvalConfigError, match="ordered objects"):
            evaluate_features(small_run_config, dataset)

    def test_feature_out_of_range(self, small_run_config, regression_dataset):
        cfg = _update(small_run_config, feature_eval={"features_to_evaluate": [[7]]})
        with pytest.raises(FeatureEvalConfigError, match="feature 7"):
            evaluate_features(cfg, regression_dataset)

    def test_metric_period_is_reset(self, small_run_config, regression_dataset):
        cfg = _update(small_run_config, output={"metric_period": 5})
        with pytest.warns(UserWarning, match="metric_period=1"):
            evaluate_features(cfg, regression_dataset)
        # caller's config is left untouched
        assert cfg.output.metric_period == 5

    def test_time_split(self, small_run_config, timed_dataset):
        cfg = _update(
            small_run_config,
            feature_eval={"features_to_evaluate": [[0]], "fold_size": 7, "fold_count": 2},
        )
        summary = evaluate_features(cfg, timed_dataset)
        assert len(summary.best_metrics[1][0][0]) == 2
        assert summary.average_metric_delta[0][0] > 0

    def test_time_split_with_empty_train_side(self, small_run_config, timed_dataset):
        cfg = _update(
            small_run_config,
            feature_eval={"features_to_evaluate": [[0]], "fold_size": 7, "time_split_quantile": 0.01},
        )
        with pytest.raises(FeatureEvalConfigError, match="quantile timestamp"):
            evaluate_features(cfg, timed_dataset)


class TestEvaluateResume:
    """Interrupted evaluations resume from the snapshot file."""

    def _config(self, small_run_config, tmp_path):
        return _update(small_run_config, output={"save_snapshot": True, "train_dir": str(tmp_path)})

    def test_rerun_skips_finished_units(self, small_run_config, regression_dataset, tmp_path):
        cfg = self._config(small_run_config, tmp_path)
        first_trainer = CountingTrainer(make_default_trainer(cfg.output))
        first = evaluate_features(cfg, regression_dataset, trainer=first_trainer)
        assert first_trainer.calls == 15
        assert (tmp_path / "feature_eval_snapshot.bkp").exists()

        second_trainer = CountingTrainer(make_default_trainer(cfg.output))
        second = evaluate_features(cfg, regression_dataset, trainer=second_trainer)
        # only the unit in progress at the last snapshot is revisited
        assert second_trainer.calls == 1
        assert second.best_metrics == first.best_metrics
        assert second.wx_test == first.wx_test
        assert second.average_metric_delta == first.average_metric_delta

    @pytest.mark.parametrize("mode, units", [("OneVsNone", 15), ("OneVsOthers", 20)])
    @pytest.mark.parametrize("fail_at", [3, 7, 12])
    def test_resume_after_interruption(self, small_run_config, regression_dataset, tmp_path, mode, units, fail_at):
        base = _update(small_run_config, feature_eval={"feature_eval_mode": mode})
        reference = evaluate_features(self._config(base, tmp_path / "reference"), regression_dataset)

        cfg = self._config(base, tmp_path / "interrupted")
        with pytest.raises(Interrupted):
            evaluate_features(
                cfg, regression_dataset, trainer=CountingTrainer(make_default_trainer(cfg.output), fail_at=fail_at)
            )

        trainer = CountingTrainer(make_default_trainer(cfg.output))
        resumed = evaluate_features(cfg, regression_dataset, trainer=trainer)
        # units finished before the last snapshot are not trained again
        assert trainer.calls == units - fail_at + 2
        assert resumed.best_metrics == reference.best_metrics
        assert resumed.best_baseline_iterations == reference.best_baseline_iterations
        assert resumed.wx_test == reference.wx_test
        assert resumed.average_metric_delta == reference.average_metric_delta

    def test_changed_options_are_rejected(self, small_run_config, regression_dataset, tmp_path):
        cfg = self._config(small_run_config, tmp_path)
        evaluate_features(cfg, regression_dataset)
        changed = _update(cfg, feature_eval={"features_to_evaluate": [[0]]})
        with pytest.raises(SnapshotMismatchError):
            evaluate_features(changed, regression_dataset)

    def test_snapshot_trainer_is_default(self, small_run_config, tmp_path):
        cfg = self._config(small_run_config, tmp_path)
        trainer = make_default_trainer(cfg.output, class_count=2)
        assert isinstance(trainer, GradientBoostingTrainer)
        assert trainer.snapshot_path == str(tmp_path / "feature_eval_snapshot.bkp")
        assert trainer.class_count == 2
