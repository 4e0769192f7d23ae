import pytest
import logging
import numpy as np
import pandas as pd
from unittest.mock import MagicMock
from modules.cross_validation import RandomCrossValidation
from modules.metrics import MeanSquaredErrorRegressionMetric
from modules.model_comparison import LearnerComparison, ModelComparisonEngine, compare_learners
from modules.split_engine import RandomTrainingTestIndexSplitter
from utils.exceptions import ConfigurationError, DataValidationError
from utils import constants


class _ConstantModel:
    def __init__(self, value):
        self.value = value

    def predict(self, observations):
        return np.full(len(observations), self.value)


class ConstantLearner:
    def __init__(self, value):
        self.value = value
        self.training_rows = []

    def learn(self, observations, targets):
        self.training_rows.append(set(observations[:, 0]))
        return _ConstantModel(self.value)


class MeanLearner:
    def learn(self, observations, targets):
        return _ConstantModel(float(np.mean(targets)))


@pytest.fixture
def mock_logger():
    return MagicMock(spec=logging.Logger)

@pytest.fixture
def linear_data():
    rng = np.random.RandomState(0)
    observations = np.column_stack([np.arange(40, dtype=float), rng.rand(40)])
    return observations, 3.0 * observations[:, 1] + 1.0

@pytest.fixture
def base_config(tmp_path):
    return {
        'splitting': {'training_percentage': 0.7, 'seed': 1},
        'comparison': {
            'enabled': True,
            'models': {
                'DecisionTreeRegressor': {'max_depth': 1, 'random_state': 0},
                'LinearRegression': {},
            },
            'metric': 'mse',
            'use_cv': False,
            'cv_folds': 4,
        },
        'execution': {'n_jobs': 1},
        'outputs': {'base_results_dir': str(tmp_path)},
        '_internal_seeds': {'split': 1, 'cv': 1001},
    }

def test_holdout_ranking_is_sorted_by_error(linear_data, mock_logger):
    observations, targets = linear_data
    learners = {'far': ConstantLearner(100.0), 'mean': MeanLearner(), 'near': ConstantLearner(2.5)}

    results = compare_learners(
        learners, observations, targets, MeanSquaredErrorRegressionMetric(),
        splitter=RandomTrainingTestIndexSplitter(0.7, seed=3), logger=mock_logger,
    )

    assert all(isinstance(r, LearnerComparison) for r in results)
    assert results[-1].name == 'far'
    assert [r.error for r in results] == sorted(r.error for r in results)
    logged = [call[0][0] for call in mock_logger.info.call_args_list]
    assert any(line.startswith("far: ") for line in logged)

def test_holdout_learners_share_one_split(linear_data):
    observations, targets = linear_data
    first, second = ConstantLearner(1.0), ConstantLearner(2.0)

    compare_learners(
        {'first': first, 'second': second}, observations, targets, MeanSquaredErrorRegressionMetric(),
        splitter=RandomTrainingTestIndexSplitter(0.7, seed=3),
    )

    assert first.training_rows == second.training_rows
    assert len(first.training_rows[0]) == 28

def test_equal_errors_keep_configured_order(linear_data):
    observations, targets = linear_data
    learners = {'b': ConstantLearner(2.0), 'a': ConstantLearner(2.0), 'c': ConstantLearner(-50.0)}

    results = compare_learners(
        learners, observations, targets, MeanSquaredErrorRegressionMetric(),
        splitter=RandomTrainingTestIndexSplitter(0.7, seed=3),
    )

    assert [r.name for r in results] == ['b', 'a', 'c']

def test_cross_validated_comparison_uses_a_fresh_learner_per_fold(linear_data):
    observations, targets = linear_data
    created = []

    def mean_learner_factory():
        created.append(MeanLearner())
        return created[-1]

    results = compare_learners(
        {'mean': mean_learner_factory, 'zero': lambda: ConstantLearner(0.0)}, observations, targets,
        MeanSquaredErrorRegressionMetric(), cross_validation=RandomCrossValidation(folds=4, seed=5),
    )

    assert len(created) == 4
    assert [r.name for r in results] == ['mean', 'zero']

@pytest.mark.parametrize("evaluation", [
    {},
    {'splitter': RandomTrainingTestIndexSplitter(0.7, seed=3), 'cross_validation': RandomCrossValidation(folds=3)},
])
def test_exactly_one_evaluation_is_required(linear_data, evaluation):
    observations, targets = linear_data
    with pytest.raises(ConfigurationError, match="exactly one"):
        compare_learners({'mean': MeanLearner()}, observations, targets, MeanSquaredErrorRegressionMetric(), **evaluation)

def test_no_learners(linear_data):
    observations, targets = linear_data
    with pytest.raises(ConfigurationError, match="at least one learner"):
        compare_learners(
            {}, observations, targets, MeanSquaredErrorRegressionMetric(),
            splitter=RandomTrainingTestIndexSplitter(0.7, seed=3),
        )

def test_engine_ranks_and_persists(base_config, linear_data, mock_logger, tmp_path):
    observations, targets = linear_data
    results = ModelComparisonEngine(base_config, mock_logger).execute(observations, targets)

    assert [r.name for r in results] == ['LinearRegression', 'DecisionTreeRegressor']
    assert results[0].error == pytest.approx(0.0, abs=1e-12)

    table = pd.read_parquet(tmp_path / constants.MODEL_COMPARISON_DIR / constants.MODEL_COMPARISON_FILE)
    assert table['rank'].tolist() == [1, 2]
    assert table['model_name'].tolist() == ['LinearRegression', 'DecisionTreeRegressor']
    assert set(table['metric']) == {'mse'}
    assert not (tmp_path / constants.MODEL_COMPARISON_DIR / "model_comparison.xlsx").exists()

def test_engine_cross_validated_run_is_reproducible(base_config, linear_data, mock_logger):
    observations, targets = linear_data
    base_config['comparison']['use_cv'] = True
    base_config['outputs'] = {}

    first = ModelComparisonEngine(base_config, mock_logger).execute(observations, targets)
    second = ModelComparisonEngine(base_config, mock_logger).execute(observations, targets)

    assert first == second
    assert first[0].name == 'LinearRegression'

@pytest.mark.parametrize("models, message", [
    ({}, "at least one model"),
    ({'SuperAdvancedAIModel': {}}, "Unknown models"),
])
def test_engine_rejects_bad_model_lists(base_config, mock_logger, models, message):
    base_config['comparison']['models'] = models
    with pytest.raises(ConfigurationError, match=message):
        ModelComparisonEngine(base_config, mock_logger)

def test_engine_failure_is_logged_and_reraised(base_config, mock_logger):
    engine = ModelComparisonEngine(base_config, mock_logger)
    with pytest.raises(DataValidationError):
        engine.execute(np.zeros((3, 2)), np.zeros(4))

    assert "Model Comparison aborted" in mock_logger.error.call_args[0][0]
