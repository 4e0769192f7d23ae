from typing import List

import numpy as np
from sklearn.metrics import accuracy_score, log_loss, mean_absolute_error, mean_squared_error

from modules.base.interfaces import Metric, ProbabilityPrediction


def _point_predictions(predictions) -> np.ndarray:
    """Point estimates, taking the argmax label of probability predictions."""
    return np.array([
        p.prediction if isinstance(p, ProbabilityPrediction) else p
        for p in predictions
    ], dtype=float)


class MeanSquaredErrorRegressionMetric:
    def error(self, targets, predictions) -> float:
        return float(mean_squared_error(np.asarray(targets, dtype=float), _point_predictions(predictions)))


class MeanAbsoluteErrorRegressionMetric:
    def error(self, targets, predictions) -> float:
        return float(mean_absolute_error(np.asarray(targets, dtype=float), _point_predictions(predictions)))


class TotalErrorClassificationMetric:
    """Fraction of misclassified samples."""

    def error(self, targets, predictions) -> float:
        return float(1.0 - accuracy_score(np.asarray(targets, dtype=float), _point_predictions(predictions)))


class LogLossClassificationProbabilityMetric:
    """Multi-class log loss over ProbabilityPrediction values."""

    def error(self, targets, predictions: List[ProbabilityPrediction]) -> float:
        targets = np.asarray(targets, dtype=float)
        labels = sorted(set(np.unique(targets)) | {
            label for p in predictions for label in p.probabilities
        })
        probabilities = np.array([
            [p.probabilities.get(label, 0.0) for label in labels] for p in predictions
        ])
        return float(log_loss(targets, probabilities, labels=labels))


class MetricFactory:
    METRICS = {
        'mse': MeanSquaredErrorRegressionMetric,
        'mae': MeanAbsoluteErrorRegressionMetric,
        'total_error': TotalErrorClassificationMetric,
        'log_loss': LogLossClassificationProbabilityMetric,
    }

    # Metrics that need ProbabilityPrediction values rather than point estimates.
    PROBABILITY_METRICS = {'log_loss'}

    @classmethod
    def create(cls, name: str) -> Metric:
        if name not in cls.METRICS:
            raise ValueError(f"Unknown metric name: {name}. Available: {list(cls.METRICS)}")
        return cls.METRICS[name]()

    @classmethod
    def requires_probabilities(cls, name: str) -> bool:
        return name in cls.PROBABILITY_METRICS
