"""
Metrics
=======

Responsibility:
- Error metrics (lower is better) over targets and predictions, built on
  sklearn.metrics, for both point and probability predictions.
"""

from .metrics import (
    MeanSquaredErrorRegressionMetric,
    MeanAbsoluteErrorRegressionMetric,
    TotalErrorClassificationMetric,
    LogLossClassificationProbabilityMetric,
    MetricFactory,
)

__all__ = [
    'MeanSquaredErrorRegressionMetric',
    'MeanAbsoluteErrorRegressionMetric',
    'TotalErrorClassificationMetric',
    'LogLossClassificationProbabilityMetric',
    'MetricFactory',
]
