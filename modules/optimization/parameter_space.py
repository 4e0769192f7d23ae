"""
Parameter space definitions for the hyperparameter optimizers.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Sequence

import numpy as np

from utils.exceptions import ConfigurationError


class Transform(str, Enum):
    LINEAR = "linear"
    LOG = "log"


class ParameterType(str, Enum):
    CONTINUOUS = "continuous"
    DISCRETE = "discrete"


@dataclass(frozen=True)
class MinMaxParameterSpec:
    """
    Bounded hyperparameter.

    Optimizers work on continuous values only; ``transform_value`` rounds
    discrete parameters at the point where a learner is constructed.
    """
    min: float
    max: float
    transform: Transform = Transform.LINEAR
    parameter_type: ParameterType = ParameterType.CONTINUOUS

    def __post_init__(self):
        object.__setattr__(self, 'transform', Transform(self.transform))
        object.__setattr__(self, 'parameter_type', ParameterType(self.parameter_type))
        if not (np.isfinite(self.min) and np.isfinite(self.max)):
            raise ConfigurationError(f"Parameter bounds must be finite, got [{self.min}, {self.max}]")
        if self.min >= self.max:
            raise ConfigurationError(f"Parameter min ({self.min}) must be < max ({self.max})")
        if self.transform == Transform.LOG and self.min <= 0:
            raise ConfigurationError(f"Log-scaled parameter requires min > 0, got {self.min}")

    def sample_value(self, random_state: np.random.RandomState) -> float:
        """Uniform in linear space, or uniform in log space (density ~ 1/x)."""
        if self.transform == Transform.LOG:
            return float(np.exp(random_state.uniform(np.log(self.min), np.log(self.max))))
        return float(random_state.uniform(self.min, self.max))

    def to_search_space(self, value: float) -> float:
        """Coordinate used by surrogate models (log dims are modeled log-linearly)."""
        if self.transform == Transform.LOG:
            return float(np.log(value))
        return float(value)

    def transform_value(self, value: float):
        """Value handed to a learner constructor."""
        if self.parameter_type == ParameterType.DISCRETE:
            return int(round(value))
        return float(value)

    @classmethod
    def from_config(cls, entry: Dict[str, Any]) -> "MinMaxParameterSpec":
        try:
            return cls(
                min=float(entry['min']),
                max=float(entry['max']),
                transform=entry.get('transform', Transform.LINEAR.value),
                parameter_type=entry.get('type', ParameterType.CONTINUOUS.value),
            )
        except KeyError as e:
            raise ConfigurationError(f"Parameter spec is missing {e}: {entry}")
        except ValueError as e:
            raise ConfigurationError(f"Invalid parameter spec {entry}: {e}")


@dataclass(frozen=True)
class GridParameterSpec:
    """Explicit list of values for exhaustive grid search."""
    values: Sequence[Any]

    def __post_init__(self):
        if len(self.values) == 0:
            raise ConfigurationError("Grid parameter requires at least one value.")


def validate_parameters(parameters: Sequence) -> List:
    parameters = list(parameters)
    if not parameters:
        raise ConfigurationError("At least one parameter spec is required.")
    return parameters
