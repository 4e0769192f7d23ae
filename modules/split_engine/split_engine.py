"""
SplitEngine for the model selection toolkit.

This module partitions an observation matrix and its targets into a training
set and a test set. The random splitter samples training rows uniformly, the
stratified splitter samples per class so each class keeps approximately the
training percentage of its members. Identical seeds on identical input always
reproduce identical partitions.
"""
import abc
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
import pandas as pd

from modules.base.base_engine import BaseEngine
from modules.index_sampler import IndexSampler, RandomIndexSampler, StratifiedIndexSampler
from utils.error_handling import handle_engine_errors
from utils.exceptions import ConfigurationError, DataValidationError
from utils.file_io import save_result_table
from utils.validation import as_observations_and_targets
from utils import constants


@dataclass
class ObservationTargetSet:
    observations: np.ndarray
    targets: np.ndarray

    def __len__(self) -> int:
        return len(self.targets)


@dataclass
class TrainingTestSetSplit:
    training_set: ObservationTargetSet
    test_set: ObservationTargetSet
    training_indices: np.ndarray
    test_indices: np.ndarray


class TrainingTestIndexSplitter(abc.ABC):
    """
    Splits row indices into disjoint training and test index sets whose union
    is the full row range.
    """

    def __init__(self, training_percentage: float, seed: int = constants.DEFAULT_SEED,
                 logger: Optional[logging.Logger] = None):
        if not (0.0 < training_percentage < 1.0):
            raise ConfigurationError(
                f"training_percentage must be between 0 and 1 (exclusive), got {training_percentage}"
            )
        self.training_percentage = training_percentage
        self.seed = seed
        self.logger = logger or logging.getLogger(__name__)

    @abc.abstractmethod
    def _create_sampler(self) -> IndexSampler:
        raise NotImplementedError

    def split(self, targets) -> Tuple[np.ndarray, np.ndarray]:
        """Return ``(training_indices, test_indices)`` for ``targets``."""
        targets = np.asarray(targets)
        row_count = len(targets)
        training_size = int(round(self.training_percentage * row_count))

        if training_size < 1 or training_size >= row_count:
            raise DataValidationError(
                f"A training percentage of {self.training_percentage} on {row_count} rows "
                f"leaves an empty training or test set."
            )

        # Fresh sampler per call keeps split() a pure function of (seed, input).
        sampler = self._create_sampler()
        training_indices = sampler.sample(targets, training_size, np.arange(row_count))
        test_indices = np.setdiff1d(np.arange(row_count), training_indices)
        return training_indices, test_indices

    def split_set(self, observations, targets) -> TrainingTestSetSplit:
        """
        Split observations and targets into a training set and a test set.

        Returns:
            TrainingTestSetSplit holding both sub-sets and their row indices.
        """
        observations, targets = as_observations_and_targets(observations, targets)
        training_indices, test_indices = self.split(targets)

        self.logger.debug(
            f"{self.__class__.__name__}: {len(training_indices)} training rows, {len(test_indices)} test rows"
        )
        return TrainingTestSetSplit(
            training_set=ObservationTargetSet(observations[training_indices], targets[training_indices]),
            test_set=ObservationTargetSet(observations[test_indices], targets[test_indices]),
            training_indices=training_indices,
            test_indices=test_indices,
        )


class RandomTrainingTestIndexSplitter(TrainingTestIndexSplitter):
    """Training rows drawn uniformly at random."""

    def _create_sampler(self) -> IndexSampler:
        return RandomIndexSampler(self.seed, self.logger)


class StratifiedTrainingTestIndexSplitter(TrainingTestIndexSplitter):
    """Training rows drawn per class so class proportions are preserved."""

    def _create_sampler(self) -> IndexSampler:
        return StratifiedIndexSampler(self.seed, self.logger)


class SplitEngine(BaseEngine):
    """
    Config-driven training/test split.

    Reads ``splitting.training_percentage``, ``splitting.stratify`` and the
    propagated split seed, runs the matching splitter and, when a results
    directory is configured, persists the index partition and (for stratified
    splits) a per-class balance report.
    """

    def __init__(self, config: dict, logger: Optional[logging.Logger] = None):
        super().__init__(config, logger)
        split_config = self.config.get('splitting', {})
        self.training_percentage = split_config.get('training_percentage', constants.DEFAULT_TRAINING_PERCENTAGE)
        self.stratify = split_config.get('stratify', False)
        self.seed = self._seed('split', split_config.get('seed', constants.DEFAULT_SEED))

    def _get_engine_directory_name(self) -> str:
        return constants.SPLITS_DIR

    def create_splitter(self) -> TrainingTestIndexSplitter:
        splitter_class = StratifiedTrainingTestIndexSplitter if self.stratify else RandomTrainingTestIndexSplitter
        return splitter_class(self.training_percentage, seed=self.seed, logger=self.logger)

    @handle_engine_errors("Data Splitting")
    def execute(self, observations, targets) -> TrainingTestSetSplit:
        """
        Execute the splitting workflow.

        Returns:
            TrainingTestSetSplit for the configured strategy.
        """
        strategy = "stratified" if self.stratify else "random"
        self.logger.info(
            f"Starting Split Engine execution ({strategy}, training_percentage={self.training_percentage}, seed={self.seed})..."
        )

        splitter = self.create_splitter()
        result = splitter.split_set(observations, targets)

        if self.persists_outputs:
            self._save_split(result)
            if self.stratify:
                self._generate_balance_report(result)

        self.logger.info(f"Split complete: Train={len(result.training_set)}, Test={len(result.test_set)}")
        return result

    def _save_split(self, result: TrainingTestSetSplit) -> None:
        indices_df = pd.DataFrame({
            'row_index': np.concatenate([result.training_indices, result.test_indices]),
            'split': ['train'] * len(result.training_indices) + ['test'] * len(result.test_indices),
        })
        save_result_table(indices_df, self.output_dir / constants.SPLIT_INDICES_FILE, self.config)

    def _generate_balance_report(self, result: TrainingTestSetSplit) -> pd.DataFrame:
        """Save a report showing each class's share in the training set."""
        train_counts = pd.Series(result.training_set.targets).value_counts()
        test_counts = pd.Series(result.test_set.targets).value_counts()

        report = []
        for label in sorted(set(train_counts.index) | set(test_counts.index)):
            c_train = int(train_counts.get(label, 0))
            c_test = int(test_counts.get(label, 0))
            total = c_train + c_test
            report.append({
                'class': str(label),
                'total': total,
                'train%': round(c_train / total, 4),
                'test%': round(c_test / total, 4),
            })

        report_df = pd.DataFrame(report)
        save_result_table(report_df, self.output_dir / constants.SPLIT_BALANCE_FILE, self.config)
        return report_df
