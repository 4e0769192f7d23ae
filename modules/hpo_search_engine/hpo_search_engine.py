import datetime
import json
import logging
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from modules.base.base_engine import BaseEngine
from modules.cross_validation import CrossValidation, RandomCrossValidation, StratifiedCrossValidation
from modules.metrics import MetricFactory
from modules.model_factory import ModelFactory
from modules.optimization import (
    GridParameterSpec,
    GridSearchOptimizer,
    MinMaxParameterSpec,
    Optimizer,
    OptimizerResult,
    RandomSearchOptimizer,
    SequentialModelBasedOptimizer,
    best_result,
)
from utils.error_handling import handle_engine_errors
from utils.exceptions import ConfigurationError, OptimizationCancelledError
from utils.file_io import save_result_table
from utils.json_utils import NumpyEncoder
from utils.validation import as_observations_and_targets
from utils import constants


class HPOSearchEngine(BaseEngine):
    """
    Hyperparameter Optimization Engine.

    Each candidate parameter vector is turned into a fresh learner through the
    ModelFactory, cross-validated, and scored with the configured metric. The
    optimizer treats this build/fit/predict/score chain as a black box.
    """

    OPTIMIZERS = ('random', 'grid', 'smbo')

    def __init__(self, config: dict, logger: Optional[logging.Logger] = None):
        super().__init__(config, logger)
        self.hpo_config = config.get('hyperparameters', {})
        self.execution = config.get('execution', {})

        self.model_name = self.hpo_config.get('model')
        self.fixed_params = self.hpo_config.get('fixed_params', {})
        self.metric_name = self.hpo_config.get('metric', 'mse')
        self.optimizer_name = self.hpo_config.get('optimizer', 'random')
        self.probability = MetricFactory.requires_probabilities(self.metric_name)

        if self.optimizer_name not in self.OPTIMIZERS:
            raise ConfigurationError(f"Unknown optimizer '{self.optimizer_name}'. Available: {list(self.OPTIMIZERS)}")
        if self.model_name not in ModelFactory.get_available_models():
            raise ConfigurationError(f"Unknown model '{self.model_name}'.")

        if self.optimizer_name == 'grid':
            grid = self.hpo_config.get('grid', {})
            self.parameter_names = list(grid.keys())
            self.parameter_specs = [GridParameterSpec(list(values)) for values in grid.values()]
        else:
            parameters = self.hpo_config.get('parameters', {})
            self.parameter_names = list(parameters.keys())
            self.parameter_specs = [MinMaxParameterSpec.from_config(entry) for entry in parameters.values()]

        if not self.parameter_names:
            raise ConfigurationError("Hyperparameter search requires at least one parameter.")

        self.metric = MetricFactory.create(self.metric_name)
        self.history: List[OptimizerResult] = []

    def _get_engine_directory_name(self) -> str:
        return constants.HPO_OPTIMIZATION_DIR

    def create_cross_validation(self) -> CrossValidation:
        cv_class = StratifiedCrossValidation if self.hpo_config.get('stratified_cv', False) else RandomCrossValidation
        return cv_class(
            folds=self.hpo_config.get('cv_folds', constants.DEFAULT_CV_FOLDS),
            seed=self._seed('cv', constants.DEFAULT_SEED),
            logger=self.logger,
        )

    def create_optimizer(self) -> Optimizer:
        parallel_kwargs = {
            'run_parallel': self.hpo_config.get('run_parallel', False),
            'n_jobs': self.execution.get('n_jobs', -1),
            'backend': self.execution.get('backend'),
            'show_progress': self.hpo_config.get('show_progress', False),
            'logger': self.logger,
        }
        seed = self._seed('optimizer', constants.DEFAULT_SEED)

        if self.optimizer_name == 'grid':
            return GridSearchOptimizer(self.parameter_specs, **parallel_kwargs)
        if self.optimizer_name == 'smbo':
            return SequentialModelBasedOptimizer(
                self.parameter_specs,
                iterations=self.hpo_config.get('iterations', 30),
                initial_parameter_sets=self.hpo_config.get('initial_parameter_sets', 20),
                candidates_per_iteration=self.hpo_config.get('candidates_per_iteration', 1),
                random_search_point_count=self.hpo_config.get(
                    'random_search_point_count', constants.DEFAULT_RANDOM_SEARCH_POINT_COUNT
                ),
                seed=seed,
                **parallel_kwargs,
            )
        return RandomSearchOptimizer(
            self.parameter_specs, iterations=self.hpo_config.get('iterations', 30), seed=seed, **parallel_kwargs
        )

    def params_for(self, parameter_set) -> Dict[str, Any]:
        """Named learner parameters for an optimizer vector."""
        if self.optimizer_name == 'grid':
            # Grid values reach the learner exactly as configured (1.0 and 1 differ for max_features).
            return dict(zip(self.parameter_names, parameter_set))
        return ModelFactory.vector_to_params(self.parameter_names, self.parameter_specs, parameter_set)

    def build_objective(self, observations: np.ndarray, targets: np.ndarray):
        cross_validation = self.create_cross_validation()

        def objective(parameter_set) -> OptimizerResult:
            params = {**self.fixed_params, **self.params_for(parameter_set)}
            learner_factory = ModelFactory.learner_factory(self.model_name, params, probability=self.probability)
            predictions = cross_validation.cross_validate(learner_factory, observations, targets)
            error = self.metric.error(targets, predictions)
            self.logger.debug(f"Candidate Error: {error:.4f}, Candidate Parameters: {params}")
            return OptimizerResult(list(parameter_set), float(error))

        return objective

    @handle_engine_errors("Hyperparameter Optimization")
    def execute(self, observations, targets) -> Dict[str, Any]:
        """
        Run the configured search.

        Returns:
            Dict with 'model', 'params', 'parameter_set' and 'error' of the
            best evaluated candidate.
        """
        observations, targets = as_observations_and_targets(observations, targets)
        self.logger.info(
            f"Starting Hyperparameter Optimization ({self.optimizer_name}) for {self.model_name} "
            f"over {self.parameter_names}..."
        )

        optimizer = self.create_optimizer()
        self.history = optimizer.optimize(self.build_objective(observations, targets))
        if not self.history:
            raise OptimizationCancelledError("Hyperparameter search cancelled before any candidate was evaluated.")

        return self._finalize_results(best_result(self.history))

    def history_to_dataframe(self) -> pd.DataFrame:
        rows = []
        for config_id, result in enumerate(self.history, start=1):
            params = self.params_for(result.parameter_set)
            rows.append({
                'config_id': config_id,
                'model_name': self.model_name,
                'error': result.error,
                **{f"param_{name}": value for name, value in params.items()},
            })
        return pd.DataFrame(rows)

    def _finalize_results(self, best: OptimizerResult) -> Dict[str, Any]:
        formatted_best = {
            'model': self.model_name,
            'params': {**self.fixed_params, **self.params_for(best.parameter_set)},
            'parameter_set': list(best.parameter_set),
            'error': best.error,
            'metric': self.metric_name,
            'evaluations': len(self.history),
        }

        if self.persists_outputs:
            save_result_table(
                self.history_to_dataframe(), self.output_dir / constants.ALL_CONFIGURATIONS_FILE, self.config
            )
            with open(self.output_dir / constants.BEST_CONFIGURATION_FILE, 'w') as f:
                json.dump(
                    {**formatted_best, 'timestamp': datetime.datetime.now().isoformat()},
                    f, indent=2, cls=NumpyEncoder,
                )

        self.logger.info(
            f"Best Config Found: {self.model_name} {formatted_best['params']} "
            f"({self.metric_name}: {best.error:.4f}, {len(self.history)} evaluations)"
        )
        return formatted_best
