"""Built-in metric registrations."""

from __future__ import annotations

from feature_eval.components.evaluation import metrics as m
from feature_eval.registries.metrics import register_metric


@register_metric("RMSE")
def _rmse():
    return m.ApproxMetric(name="RMSE", direction="Min", best=0.0, fn=m.rmse)


@register_metric("MAE")
def _mae():
    return m.ApproxMetric(name="MAE", direction="Min", best=0.0, fn=m.mae)


@register_metric("R2")
def _r2():
    return m.ApproxMetric(name="R2", direction="Max", best=1.0, fn=m.r2)


@register_metric("Logloss")
def _logloss():
    return m.ApproxMetric(name="Logloss", direction="Min", best=0.0, fn=m.logloss)


@register_metric("MultiClass")
def _multiclass():
    return m.ApproxMetric(name="MultiClass", direction="Min", best=0.0, fn=m.multiclass)


@register_metric("Accuracy")
def _accuracy():
    return m.ApproxMetric(name="Accuracy", direction="Max", best=1.0, fn=m.accuracy)


@register_metric("AUC")
def _auc():
    return m.ApproxMetric(name="AUC", direction="Max", best=1.0, fn=m.auc)
