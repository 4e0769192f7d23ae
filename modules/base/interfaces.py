"""
Structural interfaces for the collaborators the selection engines drive.

Any object with the right methods satisfies them; no inheritance is required.
scikit-learn estimators are adapted to these interfaces by
``modules.model_factory``.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Protocol, runtime_checkable

import numpy as np


@runtime_checkable
class Model(Protocol):
    def predict(self, observations: np.ndarray) -> Any:
        ...


@runtime_checkable
class Learner(Protocol):
    def learn(self, observations: np.ndarray, targets: np.ndarray) -> Model:
        ...


@runtime_checkable
class Metric(Protocol):
    def error(self, targets: np.ndarray, predictions: Any) -> float:
        ...


@dataclass(frozen=True)
class ProbabilityPrediction:
    """Class probabilities for one sample plus the most probable label."""
    prediction: float
    probabilities: Dict[float, float] = field(default_factory=dict)


def fresh_learner(learner) -> Learner:
    """Zero-argument factories are called for a new learner; plain learners are used as given."""
    if hasattr(learner, 'learn'):
        return learner
    return learner()
