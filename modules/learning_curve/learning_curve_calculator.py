"""
Learning curve calculation.

A single training/test split fixes the validation set. For every configured
sample percentage and every shuffle repetition, a subset of the training rows
is drawn with a seed derived from the base seed and the repetition index, a
fresh model is fitted on it, and both the subset (training error) and the
validation set (validation error) are scored. Errors are averaged over the
repetitions of each percentage.
"""
import abc
import logging
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import List, Optional, Sequence

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from modules.base.interfaces import Metric, fresh_learner
from modules.index_sampler import IndexSampler, RandomIndexSampler, StratifiedIndexSampler
from modules.split_engine import (
    TrainingTestIndexSplitter,
    RandomTrainingTestIndexSplitter,
    StratifiedTrainingTestIndexSplitter,
)
from utils.exceptions import ConfigurationError
from utils.validation import as_observations_and_targets
from utils import constants


@dataclass(frozen=True)
class LearningCurvePoint:
    sample_size_percentage: float
    sample_size: int
    training_error: float
    validation_error: float


class LearningCurvesCalculator(abc.ABC):

    def __init__(self, metric: Metric,
                 sample_percentages: Sequence[float] = tuple(constants.DEFAULT_LEARNING_CURVE_PERCENTAGES),
                 training_percentage: float = constants.DEFAULT_TRAINING_PERCENTAGE,
                 number_of_shuffles: int = 5, seed: int = constants.DEFAULT_SEED,
                 n_jobs: int = 1, backend: Optional[str] = None,
                 logger: Optional[logging.Logger] = None):
        sample_percentages = list(sample_percentages)
        if not sample_percentages:
            raise ConfigurationError("sample_percentages cannot be empty.")
        for percentage in sample_percentages:
            if not (0.0 < percentage <= 1.0):
                raise ConfigurationError(f"Sample percentages must be in (0, 1], got {percentage}")
        if number_of_shuffles < 1:
            raise ConfigurationError(f"number_of_shuffles must be >= 1, got {number_of_shuffles}")

        self.metric = metric
        self.sample_percentages = sample_percentages
        self.number_of_shuffles = number_of_shuffles
        self.seed = seed
        self.n_jobs = n_jobs
        self.backend = backend
        self.logger = logger or logging.getLogger(__name__)
        # Validates training_percentage up front, before any fitting.
        self.splitter = self._create_splitter(training_percentage)

    @abc.abstractmethod
    def _create_splitter(self, training_percentage: float) -> TrainingTestIndexSplitter:
        raise NotImplementedError

    @abc.abstractmethod
    def _create_sampler(self) -> IndexSampler:
        raise NotImplementedError

    def calculate(self, learner, observations, targets) -> List[LearningCurvePoint]:
        """
        Learning curve for ``learner``.

        A zero-argument factory gives every repetition its own learner. A plain
        Learner has ``learn`` called once per repetition and must return a new
        fitted model on every call.

        Returns:
            One point per configured sample percentage, in configured order.
        """
        observations, targets = as_observations_and_targets(observations, targets)
        training_indices, validation_indices = self.splitter.split(targets)

        cells = [
            (p_index, repetition, max(1, int(round(percentage * len(training_indices)))))
            for p_index, percentage in enumerate(self.sample_percentages)
            for repetition in range(self.number_of_shuffles)
        ]
        self.logger.info(
            f"Learning curve: {len(self.sample_percentages)} sample sizes x {self.number_of_shuffles} shuffles "
            f"({len(training_indices)} training rows, {len(validation_indices)} validation rows)"
        )

        cell_errors = Parallel(n_jobs=self.n_jobs, backend=self.backend)(
            delayed(self._run_single_cell)(
                learner, observations, targets, training_indices, validation_indices, sample_size, repetition
            )
            for _, repetition, sample_size in cells
        )

        # Each cell owns one (percentage, repetition) slot.
        training_errors = np.zeros((len(self.sample_percentages), self.number_of_shuffles))
        validation_errors = np.zeros_like(training_errors)
        for (p_index, repetition, _), (train_error, validation_error) in zip(cells, cell_errors):
            training_errors[p_index, repetition] = train_error
            validation_errors[p_index, repetition] = validation_error

        points = []
        for p_index, percentage in enumerate(self.sample_percentages):
            points.append(LearningCurvePoint(
                sample_size_percentage=percentage,
                sample_size=max(1, int(round(percentage * len(training_indices)))),
                training_error=float(training_errors[p_index].mean()),
                validation_error=float(validation_errors[p_index].mean()),
            ))
            self.logger.debug(
                f"Sample {percentage:.2f}: train error {points[-1].training_error:.6f}, "
                f"validation error {points[-1].validation_error:.6f}"
            )
        return points

    def _run_single_cell(self, learner, observations, targets, training_indices, validation_indices,
                         sample_size, repetition):
        subset = self._create_sampler().sample(
            targets, sample_size, training_indices, seed=self.seed + repetition
        )
        model = fresh_learner(learner).learn(observations[subset], targets[subset])

        train_error = self.metric.error(targets[subset], model.predict(observations[subset]))
        validation_error = self.metric.error(
            targets[validation_indices], model.predict(observations[validation_indices])
        )
        return float(train_error), float(validation_error)


class RandomShuffleLearningCurvesCalculator(LearningCurvesCalculator):
    """Random split and uniformly drawn training subsets."""

    def _create_splitter(self, training_percentage):
        return RandomTrainingTestIndexSplitter(training_percentage, seed=self.seed, logger=self.logger)

    def _create_sampler(self):
        return RandomIndexSampler(self.seed, self.logger)


class StratifiedLearningCurvesCalculator(LearningCurvesCalculator):
    """Stratified split and class-preserving training subsets."""

    def _create_splitter(self, training_percentage):
        return StratifiedTrainingTestIndexSplitter(training_percentage, seed=self.seed, logger=self.logger)

    def _create_sampler(self):
        return StratifiedIndexSampler(self.seed, self.logger)


def learning_curve_to_dataframe(points: Sequence[LearningCurvePoint]) -> pd.DataFrame:
    return pd.DataFrame([asdict(point) for point in points])


def write_learning_curve(points: Sequence[LearningCurvePoint], path: Path) -> Path:
    """Write the curve as CSV (one row per sample size)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    learning_curve_to_dataframe(points).to_csv(path, index=False)
    return path


def plot_learning_curve(points: Sequence[LearningCurvePoint], path: Path, title: str = "Learning Curve") -> Path:
    """Plot training and validation error against training-set size."""
    plt.switch_backend('Agg')
    df = learning_curve_to_dataframe(points)

    plt.figure(figsize=(10, 6))
    plt.plot(df['sample_size'], df['training_error'], marker='o', label='Training error')
    plt.plot(df['sample_size'], df['validation_error'], marker='o', label='Validation error')
    plt.xlabel("Training samples")
    plt.ylabel("Error")
    plt.title(title)
    plt.legend()
    plt.grid(True, alpha=0.3)

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    plt.savefig(path)
    plt.close()
    return path
