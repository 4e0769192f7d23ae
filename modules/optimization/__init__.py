"""
Optimization
============

Responsibility:
- Bounded (linear/log, continuous/discrete) parameter specs.
- Black-box search: random search, grid search and sequential model-based
  optimization with a random-forest surrogate.
"""

from .parameter_space import MinMaxParameterSpec, GridParameterSpec, Transform, ParameterType
from .optimizer import (
    OptimizerResult,
    Optimizer,
    RandomSearchOptimizer,
    GridSearchOptimizer,
    best_result,
)
from .sequential_model_based_optimizer import SequentialModelBasedOptimizer, expected_improvement

__all__ = [
    'MinMaxParameterSpec',
    'GridParameterSpec',
    'Transform',
    'ParameterType',
    'OptimizerResult',
    'Optimizer',
    'RandomSearchOptimizer',
    'GridSearchOptimizer',
    'SequentialModelBasedOptimizer',
    'best_result',
    'expected_improvement',
]
