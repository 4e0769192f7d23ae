"""
HPO Search Engine
=================

Responsibility:
- Hyperparameter optimization driven by configuration (random search,
  grid search or sequential model-based optimization).
- Cross-validated error as the optimization objective.
- Persistence of the evaluation history and the best configuration.
"""

from .hpo_search_engine import HPOSearchEngine

__all__ = ['HPOSearchEngine']
