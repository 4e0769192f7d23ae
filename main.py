#!/usr/bin/env python
"""
Model Selection Toolkit - Main Entry Point
Runs training/test splitting, cross validation, hyperparameter search and
learning-curve calculation and model comparison on a CSV dataset.
"""
import sys
import logging
import argparse
from pathlib import Path

import numpy as np
import pandas as pd

from modules.config_manager import ConfigurationManager
from modules.logging_config import LoggingConfigurator
from modules.split_engine import SplitEngine
from modules.hpo_search_engine import HPOSearchEngine
from modules.cross_validation import RandomCrossValidation, StratifiedCrossValidation
from modules.learning_curve import (
    RandomShuffleLearningCurvesCalculator,
    StratifiedLearningCurvesCalculator,
    learning_curve_to_dataframe,
    plot_learning_curve,
    write_learning_curve,
)
from modules.metrics import MetricFactory
from modules.model_comparison import ModelComparisonEngine
from modules.model_factory import ModelFactory
from utils.exceptions import ConfigurationError, ModelSelectionException
from utils.file_io import read_dataframe, save_result_table
from utils import constants

TASKS = ('split', 'cross-validate', 'optimize', 'learning-curve', 'compare')


def parse_arguments(argv=None):
    """
    Parse command-line arguments.

    Returns:
        argparse.Namespace: Parsed command-line arguments.
    """
    parser = argparse.ArgumentParser(
        description="Model Selection Toolkit - splitting, cross validation, hyperparameter search, learning curves, model comparison",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument("--config", type=str, default="config/config.json",
                        help="Path to the configuration JSON file")
    parser.add_argument("--schema", type=str, default="config/schema.json",
                        help="Path to the configuration JSON schema")
    parser.add_argument("--data", type=str, default=None,
                        help="Dataset path (csv/parquet/xlsx); overrides data.file_path")
    parser.add_argument("--target", type=str, default=None,
                        help="Target column; overrides data.target_column")
    parser.add_argument("--task", choices=TASKS, default="optimize",
                        help="Operation to run")
    parser.add_argument("--verbose", action="store_true",
                        help="Enable verbose (DEBUG) logging")
    parser.add_argument("--dry-run", action="store_true",
                        help="Validate configuration without running anything")
    return parser.parse_args(argv)


def load_dataset(config: dict, logger: logging.Logger):
    """
    Load the dataset and split it into an observation matrix and a target vector.
    """
    data_config = config.get('data', {})
    file_path = data_config.get('file_path')
    target_column = data_config.get('target_column')
    if not file_path or not target_column:
        raise ModelSelectionException("data.file_path and data.target_column must be specified.")

    df = read_dataframe(Path(file_path))
    if target_column not in df.columns:
        raise ModelSelectionException(f"Target column '{target_column}' not found in {file_path}")

    drop_cols = [c for c in data_config.get('drop_columns', []) if c in df.columns] + [target_column]
    observations = df.drop(columns=drop_cols).to_numpy(dtype=float)
    targets = df[target_column].to_numpy(dtype=float)
    logger.info(f"Loaded {observations.shape[0]} rows x {observations.shape[1]} features from {file_path}")
    return observations, targets


def run_cross_validation(config: dict, observations, targets, logger: logging.Logger) -> float:
    hpo = config.get('hyperparameters', {})
    metric_name = hpo.get('metric', 'mse')
    metric = MetricFactory.create(metric_name)
    if not hpo.get('model'):
        raise ConfigurationError("hyperparameters.model must be specified for cross validation.")
    learner_factory = ModelFactory.learner_factory(
        hpo['model'], hpo.get('fixed_params', {}), probability=MetricFactory.requires_probabilities(metric_name)
    )

    cv_class = StratifiedCrossValidation if hpo.get('stratified_cv', False) else RandomCrossValidation
    cv = cv_class(
        folds=hpo.get('cv_folds', constants.DEFAULT_CV_FOLDS),
        seed=config['_internal_seeds']['cv'],
        n_jobs=config.get('execution', {}).get('n_jobs', 1),
        logger=logger,
    )
    predictions = cv.cross_validate(learner_factory, observations, targets)
    error = metric.error(targets, predictions)
    logger.info(f"Cross-validation {metric_name}: {error:.6f}")

    output_dir = Path(config['outputs']['base_results_dir']) / constants.CROSS_VALIDATION_DIR
    point_predictions = [getattr(p, 'prediction', p) for p in predictions]
    save_result_table(
        pd.DataFrame({'row_index': np.arange(len(targets)), 'target': targets, 'prediction': point_predictions}),
        output_dir / constants.CV_PREDICTIONS_FILE,
        config,
    )
    return error


def run_learning_curve(config: dict, observations, targets, logger: logging.Logger):
    curve = config.get('learning_curve', {})
    metric_name = curve.get('metric', 'mse')
    calculator_class = (
        StratifiedLearningCurvesCalculator if curve.get('stratified', False) else RandomShuffleLearningCurvesCalculator
    )
    calculator = calculator_class(
        MetricFactory.create(metric_name),
        sample_percentages=curve.get('sample_percentages', constants.DEFAULT_LEARNING_CURVE_PERCENTAGES),
        training_percentage=config['splitting'].get('training_percentage', constants.DEFAULT_TRAINING_PERCENTAGE),
        number_of_shuffles=curve.get('number_of_shuffles', 5),
        seed=config['_internal_seeds']['learning_curve'],
        n_jobs=config.get('execution', {}).get('n_jobs', 1),
        logger=logger,
    )
    learner_factory = ModelFactory.learner_factory(
        curve.get('model', 'DecisionTreeRegressor'), curve.get('params', {}),
        probability=MetricFactory.requires_probabilities(metric_name),
    )
    points = calculator.calculate(learner_factory, observations, targets)

    output_dir = Path(config['outputs']['base_results_dir']) / constants.LEARNING_CURVES_DIR
    write_learning_curve(points, output_dir / constants.LEARNING_CURVE_FILE)
    plot_learning_curve(points, output_dir / constants.LEARNING_CURVE_PLOT_FILE)
    logger.info("Learning curve:\n" + learning_curve_to_dataframe(points).to_string(index=False))
    return points


def main(argv=None):
    """
    Main orchestration function.

    Returns:
        int: Exit code (0 for success, 1 for errors)
    """
    logger = None

    try:
        args = parse_arguments(argv)

        config_manager = ConfigurationManager(config_path=args.config, schema_path=args.schema)
        config = config_manager.load_and_validate()

        if args.verbose:
            config.setdefault('logging', {})['level'] = 'DEBUG'
        if args.data:
            config.setdefault('data', {})['file_path'] = args.data
        if args.target:
            config.setdefault('data', {})['target_column'] = args.target

        logging_configurator = LoggingConfigurator(config)
        logging_configurator.setup()
        logger = logging_configurator.get_logger('model_selection')
        logger.info(f"Configuration loaded from: {args.config}")

        if args.dry_run:
            logger.info("Dry run: configuration is valid.")
            return 0

        run_dir = Path(config['outputs'].get('base_results_dir', 'results')).absolute()
        run_dir.mkdir(parents=True, exist_ok=True)
        config['outputs']['base_results_dir'] = str(run_dir)
        config_manager.generate_run_id()
        config_manager.save_artifacts(str(run_dir))

        observations, targets = load_dataset(config, logger)

        if args.task == 'split':
            SplitEngine(config, logger).execute(observations, targets)
        elif args.task == 'cross-validate':
            run_cross_validation(config, observations, targets, logger)
        elif args.task == 'optimize':
            best = HPOSearchEngine(config, logger).execute(observations, targets)
            logger.info(f"Best parameters: {best['params']} (error {best['error']:.6f})")
        elif args.task == 'learning-curve':
            run_learning_curve(config, observations, targets, logger)
        elif args.task == 'compare':
            ranking = ModelComparisonEngine(config, logger).execute(observations, targets)
            logger.info("Model ranking:\n" + "\n".join(f"  {r.name}: {r.error:.6f}" for r in ranking))

        logger.info(f"Task '{args.task}' completed. Results in {run_dir}")
        return 0

    except ModelSelectionException as e:
        if logger:
            logger.error(f"Run failed: {e}")
        else:
            print(f"ERROR: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        if logger:
            logger.critical(f"Unexpected error: {e}", exc_info=True)
        else:
            print(f"UNEXPECTED ERROR: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
