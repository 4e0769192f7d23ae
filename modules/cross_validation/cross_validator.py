import abc
import logging
from typing import Callable, List, Optional, Tuple, Union

import numpy as np
from joblib import Parallel, delayed
from sklearn.model_selection import KFold, StratifiedKFold

from modules.base.interfaces import Learner, fresh_learner
from utils.exceptions import ConfigurationError
from utils.validation import as_observations_and_targets
from utils import constants

LearnerOrFactory = Union[Learner, Callable[[], Learner]]


def _allocate_predictions(first_predictions, row_count: int) -> np.ndarray:
    """Output array matching the prediction flavour (numeric or object)."""
    first = np.asarray(first_predictions)
    if first.dtype.kind in 'biuf':
        return np.zeros(row_count, dtype=float)
    return np.empty(row_count, dtype=object)


def _as_object_array(predictions) -> np.ndarray:
    out = np.empty(len(predictions), dtype=object)
    for i, prediction in enumerate(predictions):
        out[i] = prediction
    return out


class CrossValidation(abc.ABC):
    """
    K-fold cross validation returning one held-out prediction per row.

    Every row is predicted by a model trained on the other folds only, and the
    returned array follows the input row order, not fold order.
    """

    def __init__(self, folds: int = constants.DEFAULT_CV_FOLDS, seed: int = constants.DEFAULT_SEED,
                 n_jobs: int = 1, backend: Optional[str] = None,
                 logger: Optional[logging.Logger] = None):
        if folds < 2:
            raise ConfigurationError(f"Cross validation folds must be >= 2, got {folds}.")
        self.folds = folds
        self.seed = seed
        self.n_jobs = n_jobs
        self.backend = backend
        self.logger = logger or logging.getLogger(__name__)

    @abc.abstractmethod
    def _fold_generator(self, targets: np.ndarray):
        raise NotImplementedError

    def cross_validation_indices(self, targets) -> List[Tuple[np.ndarray, np.ndarray]]:
        """
        Fold partition as a list of ``(training_indices, validation_indices)``.
        """
        targets = np.asarray(targets)
        if self.folds > len(targets):
            raise ConfigurationError(
                f"Cross validation folds ({self.folds}) cannot exceed the number of rows ({len(targets)})."
            )
        placeholder = np.zeros((len(targets), 1))
        return [(train_idx, val_idx) for train_idx, val_idx in self._fold_generator(targets).split(placeholder, targets)]

    def cross_validate(self, learner: LearnerOrFactory, observations, targets) -> np.ndarray:
        """
        Cross-validated predictions for every row.

        Args:
            learner: Zero-argument factory returning a fresh learner per fold
                (preferred), or a Learner whose ``learn`` is then called once per
                fold and must return a new fitted model on every call.
            observations: Observation matrix.
            targets: Target vector.

        Returns:
            Array of predictions in original row order.
        """
        observations, targets = as_observations_and_targets(observations, targets)
        splits = self.cross_validation_indices(targets)

        fold_predictions = Parallel(n_jobs=self.n_jobs, backend=self.backend)(
            delayed(self._run_single_fold)(learner, observations, targets, train_idx, val_idx)
            for train_idx, val_idx in splits
        )

        predictions = _allocate_predictions(fold_predictions[0], len(targets))
        for (_, val_idx), preds in zip(splits, fold_predictions):
            # Each fold owns a disjoint slice of the output.
            if predictions.dtype == object:
                preds = _as_object_array(preds)
            predictions[val_idx] = preds

        self.logger.debug(f"{self.__class__.__name__}: {self.folds} folds over {len(targets)} rows")
        return predictions

    @staticmethod
    def _run_single_fold(learner, observations, targets, train_idx, val_idx):
        """Helper for (optionally parallel) fold execution."""
        model = fresh_learner(learner).learn(observations[train_idx], targets[train_idx])
        return model.predict(observations[val_idx])


class RandomCrossValidation(CrossValidation):
    """Folds drawn from a seeded shuffle of all rows."""

    def _fold_generator(self, targets):
        return KFold(n_splits=self.folds, shuffle=True, random_state=self.seed)


class StratifiedCrossValidation(CrossValidation):
    """
    Folds that preserve class proportions. Falls back to plain random folds
    when some class has fewer members than there are folds.
    """

    def _fold_generator(self, targets):
        _, counts = np.unique(targets, return_counts=True)
        if counts.min() < self.folds:
            self.logger.warning(
                f"Smallest class has {counts.min()} members (< {self.folds} folds). "
                "Falling back to random folds."
            )
            return KFold(n_splits=self.folds, shuffle=True, random_state=self.seed)
        return StratifiedKFold(n_splits=self.folds, shuffle=True, random_state=self.seed)
