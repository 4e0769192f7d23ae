from typing import Tuple

import numpy as np

from utils.exceptions import DataValidationError


def as_observations_and_targets(observations, targets) -> Tuple[np.ndarray, np.ndarray]:
    """
    Convert inputs to arrays and check that they pair up row by row.

    Raises:
        DataValidationError: On non 2-D observations, non 1-D targets or a
            row/target length mismatch.
    """
    observations = np.asarray(observations)
    targets = np.asarray(targets)

    if observations.ndim != 2:
        raise DataValidationError(f"Observations must be a 2-D matrix, got {observations.ndim} dimension(s).")
    if targets.ndim != 1:
        raise DataValidationError(f"Targets must be a 1-D vector, got {targets.ndim} dimension(s).")
    if observations.shape[0] != targets.shape[0]:
        raise DataValidationError(
            f"Observation row count ({observations.shape[0]}) does not match target length ({targets.shape[0]})."
        )
    if observations.shape[0] == 0:
        raise DataValidationError("Observations and targets are empty.")

    return observations, targets
