import pandas as pd
import pytest

from feature_eval.components.evaluation.summary import FeatureEvaluationSummary
from feature_eval.io.report import export_fold_histories, fold_dir_name, summary_to_frame


@pytest.fixture
def finished_summary(stub_metric):
    """Two feature sets, two folds, common baseline; statistics computed."""
    summary = FeatureEvaluationSummary()
    summary.set_header_info([stub_metric("RMSE", "Min"), stub_metric("R2", "Max")], [[0], [1, 2]])
    baseline = [[[0.5, 0.1], [0.4, 0.2]], [[0.6, 0.1], [0.45, 0.15]]]
    tested = [[[0.3, 0.5], [0.2, 0.6]], [[0.35, 0.4], [0.25, 0.55]]]
    for history in baseline:
        summary.metrics_history[0][0].append(history)
        summary.append_feature_set_metrics(False, 0, history)
    summary.feature_strengths[0][0] = [[(60.0, 1), (40.0, 0)], [(70.0, 0), (30.0, 1)]]
    for set_idx in range(2):
        if set_idx:
            summary.copy_baseline_results(set_idx)
        for history in tested:
            summary.metrics_history[1][set_idx].append(history)
            summary.append_feature_set_metrics(True, set_idx, history)
    summary.calc_wx_test_and_average_delta()
    return summary


class TestSummaryTable:
    """One row per feature set."""

    def test_columns(self, finished_summary):
        frame = summary_to_frame(finished_summary)
        assert list(frame.columns) == ["p-value", "best iteration in each fold", "RMSE", "R2", "feature set"]
        assert frame["feature set"].tolist() == ["0", "1,2"]
        assert frame["best iteration in each fold"].tolist() == ["1,1", "1,1"]
        assert frame["RMSE"].iloc[0] == pytest.approx(0.425 - 0.225)

    def test_requires_statistics(self, stub_metric):
        summary = FeatureEvaluationSummary()
        summary.set_header_info([stub_metric()], [[0]])
        with pytest.raises(ValueError, match="not computed"):
            summary_to_frame(summary)


class TestFoldHistories:
    """Per-fold directories under the train dir."""

    def test_dir_names(self):
        assert fold_dir_name("OneVsAll", True, False, 3, 7) == "Baseline_fold_7"
        assert fold_dir_name("OneVsOthers", True, False, 3, 7) == "Baseline_set_3_fold_7"
        assert fold_dir_name("OneVsOthers", True, True, 3, 7) == "Testing_set_3_fold_7"

    def test_export(self, finished_summary, tmp_path):
        written = export_fold_histories(finished_summary, tmp_path, mode="OneVsAll", offset=2)
        dirs = sorted({p.parent.name for p in written})
        assert dirs == [
            "Baseline_fold_2",
            "Baseline_fold_3",
            "Testing_set_0_fold_2",
            "Testing_set_0_fold_3",
            "Testing_set_1_fold_2",
            "Testing_set_1_fold_3",
        ]
        history = pd.read_csv(tmp_path / "Baseline_fold_3" / "test_error.tsv", sep="\t")
        assert list(history.columns) == ["iter", "RMSE", "R2"]
        assert history["RMSE"].tolist() == [0.6, 0.45]
        fstr = pd.read_csv(tmp_path / "Baseline_fold_2" / "fstr.tsv", sep="\t", header=None)
        assert fstr.values.tolist() == [[60.0, 1], [40.0, 0]]
        assert not (tmp_path / "Testing_set_0_fold_2" / "fstr.tsv").exists()
