import pytest
import numpy as np
import pandas as pd
import logging
from unittest.mock import MagicMock
from modules.learning_curve import (
    LearningCurvePoint,
    RandomShuffleLearningCurvesCalculator,
    StratifiedLearningCurvesCalculator,
    learning_curve_to_dataframe,
    write_learning_curve,
    plot_learning_curve,
)
from modules.metrics import MeanSquaredErrorRegressionMetric, TotalErrorClassificationMetric
from modules.model_factory import ModelFactory
from modules.split_engine import RandomTrainingTestIndexSplitter
from utils.exceptions import ConfigurationError


class _IdModel:
    def predict(self, observations):
        return np.zeros(len(observations))


class RecordingLearner:
    """Records the row ids (column 0) of every training subset."""

    def __init__(self):
        self.subsets = []

    def learn(self, observations, targets):
        self.subsets.append(observations[:, 0].astype(int))
        return _IdModel()


@pytest.fixture
def mock_logger():
    return MagicMock(spec=logging.Logger)

@pytest.fixture
def regression_data():
    rng = np.random.RandomState(0)
    x = rng.uniform(0, 1, 200)
    observations = np.column_stack([np.arange(200), x])
    targets = 3.0 * x + rng.normal(0, 0.1, 200)
    return observations, targets

def test_one_point_per_percentage_in_configured_order(regression_data, mock_logger):
    observations, targets = regression_data
    calculator = RandomShuffleLearningCurvesCalculator(
        MeanSquaredErrorRegressionMetric(), sample_percentages=[0.5, 0.1, 1.0],
        training_percentage=0.7, number_of_shuffles=2, seed=1, logger=mock_logger
    )
    points = calculator.calculate(RecordingLearner(), observations, targets)

    assert [p.sample_size_percentage for p in points] == [0.5, 0.1, 1.0]
    assert [p.sample_size for p in points] == [70, 14, 140]
    assert all(isinstance(p, LearningCurvePoint) for p in points)

def test_subsets_come_from_training_rows_only(regression_data, mock_logger):
    observations, targets = regression_data
    seed = 5
    learner = RecordingLearner()
    calculator = RandomShuffleLearningCurvesCalculator(
        MeanSquaredErrorRegressionMetric(), sample_percentages=[0.25, 1.0],
        training_percentage=0.7, number_of_shuffles=3, seed=seed, logger=mock_logger
    )
    calculator.calculate(learner, observations, targets)

    training_indices, validation_indices = RandomTrainingTestIndexSplitter(0.7, seed=seed).split(targets)
    assert len(learner.subsets) == 6
    for subset in learner.subsets:
        assert set(subset).issubset(set(training_indices))
        assert not set(subset) & set(validation_indices)
    assert [len(s) for s in learner.subsets] == [35, 35, 35, 140, 140, 140]

def test_repetitions_draw_different_subsets(regression_data, mock_logger):
    observations, targets = regression_data
    learner = RecordingLearner()
    RandomShuffleLearningCurvesCalculator(
        MeanSquaredErrorRegressionMetric(), sample_percentages=[0.5],
        number_of_shuffles=3, seed=2, logger=mock_logger
    ).calculate(learner, observations, targets)

    first, second, third = (set(s) for s in learner.subsets)
    assert first != second
    assert second != third

def test_calculation_is_reproducible(regression_data, mock_logger):
    observations, targets = regression_data
    learner = ModelFactory.create('DecisionTreeRegressor', {'random_state': 0})

    def run():
        return RandomShuffleLearningCurvesCalculator(
            MeanSquaredErrorRegressionMetric(), sample_percentages=[0.2, 0.6, 1.0],
            number_of_shuffles=2, seed=11, logger=mock_logger
        ).calculate(learner, observations, targets)

    assert run() == run()

def test_deep_tree_overfits_small_samples(regression_data, mock_logger):
    observations, targets = regression_data
    learner = ModelFactory.create('DecisionTreeRegressor', {'random_state': 0})
    points = RandomShuffleLearningCurvesCalculator(
        MeanSquaredErrorRegressionMetric(), sample_percentages=[0.05, 1.0],
        number_of_shuffles=3, seed=3, logger=mock_logger
    ).calculate(learner, observations[:, 1:], targets)

    assert all(p.training_error == pytest.approx(0.0, abs=1e-12) for p in points)
    assert points[-1].validation_error < points[0].validation_error

def test_parallel_matches_sequential(regression_data, mock_logger):
    observations, targets = regression_data
    learner = ModelFactory.create('DecisionTreeRegressor', {'random_state': 0, 'max_depth': 3})
    kwargs = dict(sample_percentages=[0.3, 1.0], number_of_shuffles=3, seed=4, logger=mock_logger)

    sequential = RandomShuffleLearningCurvesCalculator(MeanSquaredErrorRegressionMetric(), **kwargs).calculate(
        learner, observations, targets
    )
    parallel = RandomShuffleLearningCurvesCalculator(
        MeanSquaredErrorRegressionMetric(), n_jobs=2, backend='threading', **kwargs
    ).calculate(learner, observations, targets)

    assert parallel == sequential

def test_stratified_subsets_keep_class_shares(mock_logger):
    observations = np.arange(100, dtype=float).reshape(-1, 1)
    targets = np.array([0.0] * 50 + [1.0] * 50)
    learner = RecordingLearner()
    StratifiedLearningCurvesCalculator(
        TotalErrorClassificationMetric(), sample_percentages=[0.2], training_percentage=0.8,
        number_of_shuffles=2, seed=1, logger=mock_logger
    ).calculate(learner, observations, targets)

    for subset in learner.subsets:
        assert len(subset) == 16
        assert np.sum(targets[subset] == 0.0) == 8

def test_tiny_percentage_uses_at_least_one_row(mock_logger):
    observations = np.arange(20, dtype=float).reshape(-1, 1)
    targets = np.arange(20, dtype=float)
    points = RandomShuffleLearningCurvesCalculator(
        MeanSquaredErrorRegressionMetric(), sample_percentages=[0.01], number_of_shuffles=1, logger=mock_logger
    ).calculate(RecordingLearner(), observations, targets)
    assert points[0].sample_size == 1

@pytest.mark.parametrize("kwargs", [
    {'sample_percentages': []},
    {'sample_percentages': [0.0]},
    {'sample_percentages': [0.5, 1.5]},
    {'number_of_shuffles': 0},
    {'training_percentage': 1.0},
])
def test_invalid_configuration(mock_logger, kwargs):
    with pytest.raises(ConfigurationError):
        RandomShuffleLearningCurvesCalculator(MeanSquaredErrorRegressionMetric(), logger=mock_logger, **kwargs)

def test_export_and_plot(tmp_path):
    points = [
        LearningCurvePoint(0.5, 10, 0.1, 0.4),
        LearningCurvePoint(1.0, 20, 0.2, 0.3),
    ]
    df = learning_curve_to_dataframe(points)
    assert list(df.columns) == ['sample_size_percentage', 'sample_size', 'training_error', 'validation_error']

    csv_path = write_learning_curve(points, tmp_path / "curves" / "learning_curve.csv")
    loaded = pd.read_csv(csv_path)
    assert loaded['validation_error'].tolist() == [0.4, 0.3]

    png_path = plot_learning_curve(points, tmp_path / "curves" / "learning_curve.png")
    assert png_path.exists()
