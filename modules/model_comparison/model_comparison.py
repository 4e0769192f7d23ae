"""
Model comparison with default or fixed parameters.

Every candidate learner is scored on the same evaluation: either one
training/test split (fit on the training set, score on the test set) or one
cross-validation partition (score the out-of-fold predictions of all rows).
Results are ranked by error, lowest first. Ties keep the configured order.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

import pandas as pd

from modules.base.base_engine import BaseEngine
from modules.base.interfaces import Metric, fresh_learner
from modules.cross_validation import CrossValidation, RandomCrossValidation, StratifiedCrossValidation
from modules.metrics import MetricFactory
from modules.model_factory import ModelFactory
from modules.split_engine import (
    TrainingTestIndexSplitter,
    RandomTrainingTestIndexSplitter,
    StratifiedTrainingTestIndexSplitter,
)
from utils.error_handling import handle_engine_errors
from utils.exceptions import ConfigurationError
from utils.file_io import save_result_table
from utils.validation import as_observations_and_targets
from utils import constants


@dataclass(frozen=True)
class LearnerComparison:
    name: str
    error: float


def compare_learners(learners: Mapping[str, Any], observations, targets, metric: Metric,
                     splitter: Optional[TrainingTestIndexSplitter] = None,
                     cross_validation: Optional[CrossValidation] = None,
                     logger: Optional[logging.Logger] = None) -> List[LearnerComparison]:
    """
    Score each named learner (or zero-argument learner factory) with ``metric``.

    Exactly one of ``splitter`` and ``cross_validation`` selects the
    evaluation. The split or fold partition is computed once and shared by all
    learners.

    Returns:
        LearnerComparison entries sorted by ascending error.
    """
    if (splitter is None) == (cross_validation is None):
        raise ConfigurationError("Model comparison needs exactly one of a splitter or a cross validation.")
    if not learners:
        raise ConfigurationError("Model comparison needs at least one learner.")
    logger = logger or logging.getLogger(__name__)
    observations, targets = as_observations_and_targets(observations, targets)

    if splitter is not None:
        split = splitter.split_set(observations, targets)
        training_set, test_set = split.training_set, split.test_set

    results = []
    for name, learner in learners.items():
        if splitter is not None:
            model = fresh_learner(learner).learn(training_set.observations, training_set.targets)
            error = metric.error(test_set.targets, model.predict(test_set.observations))
        else:
            predictions = cross_validation.cross_validate(learner, observations, targets)
            error = metric.error(targets, predictions)
        logger.info(f"{name}: {error:.4f}")
        results.append(LearnerComparison(name, float(error)))

    return sorted(results, key=lambda result: result.error)


class ModelComparisonEngine(BaseEngine):
    """
    Config-driven comparison of several models.

    Reads ``comparison.models`` (model name to fixed parameters, in ranking
    tie order), ``comparison.metric`` and ``comparison.use_cv``. The holdout
    evaluation reuses the ``splitting`` settings and split seed, the
    cross-validated one uses ``comparison.cv_folds`` and the cv seed.
    """

    def __init__(self, config: dict, logger: Optional[logging.Logger] = None):
        super().__init__(config, logger)
        self.comparison_config = config.get('comparison', {})
        self.models: Dict[str, Dict[str, Any]] = dict(self.comparison_config.get('models', {}))
        self.metric_name = self.comparison_config.get('metric', 'mse')
        self.use_cv = self.comparison_config.get('use_cv', False)
        self.stratified = self.comparison_config.get(
            'stratified', config.get('splitting', {}).get('stratify', False)
        )

        if not self.models:
            raise ConfigurationError("comparison.models must name at least one model.")
        unknown = [name for name in self.models if name not in ModelFactory.get_available_models()]
        if unknown:
            raise ConfigurationError(f"Unknown models in comparison: {unknown}")

        self.metric = MetricFactory.create(self.metric_name)
        self.probability = MetricFactory.requires_probabilities(self.metric_name)

    def _get_engine_directory_name(self) -> str:
        return constants.MODEL_COMPARISON_DIR

    def create_splitter(self) -> TrainingTestIndexSplitter:
        split_config = self.config.get('splitting', {})
        splitter_class = StratifiedTrainingTestIndexSplitter if self.stratified else RandomTrainingTestIndexSplitter
        return splitter_class(
            split_config.get('training_percentage', constants.DEFAULT_TRAINING_PERCENTAGE),
            seed=self._seed('split', split_config.get('seed', constants.DEFAULT_SEED)),
            logger=self.logger,
        )

    def create_cross_validation(self) -> CrossValidation:
        cv_class = StratifiedCrossValidation if self.stratified else RandomCrossValidation
        return cv_class(
            folds=self.comparison_config.get('cv_folds', constants.DEFAULT_CV_FOLDS),
            seed=self._seed('cv', constants.DEFAULT_SEED),
            n_jobs=self.config.get('execution', {}).get('n_jobs', 1),
            logger=self.logger,
        )

    def create_learners(self) -> Dict[str, Any]:
        return {
            name: ModelFactory.learner_factory(name, params, probability=self.probability)
            for name, params in self.models.items()
        }

    @handle_engine_errors("Model Comparison")
    def execute(self, observations, targets) -> List[LearnerComparison]:
        """
        Score every configured model and rank them.

        Returns:
            LearnerComparison entries sorted by ascending error.
        """
        evaluation = "cross validation" if self.use_cv else "training/test split"
        self.logger.info(
            f"Starting Model Comparison of {list(self.models)} ({self.metric_name}, {evaluation})..."
        )

        evaluation_kwargs = (
            {'cross_validation': self.create_cross_validation()} if self.use_cv
            else {'splitter': self.create_splitter()}
        )
        results = compare_learners(
            self.create_learners(), observations, targets, self.metric, logger=self.logger, **evaluation_kwargs
        )

        if self.persists_outputs:
            save_result_table(
                comparison_to_dataframe(results, self.metric_name),
                self.output_dir / constants.MODEL_COMPARISON_FILE,
                self.config,
            )

        self.logger.info(f"Best model: {results[0].name} ({self.metric_name}: {results[0].error:.4f})")
        return results


def comparison_to_dataframe(results: List[LearnerComparison], metric_name: str) -> pd.DataFrame:
    return pd.DataFrame({
        'rank': range(1, len(results) + 1),
        'model_name': [result.name for result in results],
        'metric': metric_name,
        'error': [result.error for result in results],
    })
