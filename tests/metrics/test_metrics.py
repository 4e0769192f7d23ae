import pytest
import numpy as np
from modules.base.interfaces import ProbabilityPrediction
from modules.metrics import (
    MeanSquaredErrorRegressionMetric,
    MeanAbsoluteErrorRegressionMetric,
    TotalErrorClassificationMetric,
    LogLossClassificationProbabilityMetric,
    MetricFactory,
)

def test_regression_metrics():
    targets = np.array([1.0, 2.0, 3.0])
    predictions = np.array([1.0, 3.0, 1.0])
    assert MeanSquaredErrorRegressionMetric().error(targets, predictions) == pytest.approx(5.0 / 3.0)
    assert MeanAbsoluteErrorRegressionMetric().error(targets, predictions) == pytest.approx(1.0)

def test_total_error_is_misclassification_rate():
    assert TotalErrorClassificationMetric().error([0, 1, 1, 0], [0, 1, 0, 0]) == pytest.approx(0.25)

def test_total_error_on_probability_predictions():
    predictions = [
        ProbabilityPrediction(1.0, {0.0: 0.2, 1.0: 0.8}),
        ProbabilityPrediction(0.0, {0.0: 0.9, 1.0: 0.1}),
    ]
    assert TotalErrorClassificationMetric().error([1.0, 1.0], predictions) == pytest.approx(0.5)

def test_log_loss():
    predictions = [
        ProbabilityPrediction(1.0, {0.0: 0.2, 1.0: 0.8}),
        ProbabilityPrediction(0.0, {0.0: 0.6, 1.0: 0.4}),
    ]
    expected = -(np.log(0.8) + np.log(0.6)) / 2
    assert LogLossClassificationProbabilityMetric().error([1.0, 0.0], predictions) == pytest.approx(expected)

def test_log_loss_with_label_missing_from_targets():
    predictions = [
        ProbabilityPrediction(1.0, {0.0: 0.1, 1.0: 0.7, 2.0: 0.2}),
        ProbabilityPrediction(1.0, {0.0: 0.1, 1.0: 0.8, 2.0: 0.1}),
    ]
    expected = -(np.log(0.7) + np.log(0.8)) / 2
    assert LogLossClassificationProbabilityMetric().error([1.0, 1.0], predictions) == pytest.approx(expected)

def test_factory():
    assert isinstance(MetricFactory.create('mse'), MeanSquaredErrorRegressionMetric)
    assert isinstance(MetricFactory.create('log_loss'), LogLossClassificationProbabilityMetric)
    assert MetricFactory.requires_probabilities('log_loss')
    assert not MetricFactory.requires_probabilities('total_error')

def test_unknown_metric():
    with pytest.raises(ValueError, match="Unknown metric name"):
        MetricFactory.create('r2')
