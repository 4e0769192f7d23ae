"""
Model Comparison
================

Responsibility:
- Ranking several learners by error on a shared training/test split or a
  shared cross-validation partition.
- Config-driven comparison of default or fixed-parameter models with a
  persisted ranking table.
"""

from .model_comparison import (
    LearnerComparison,
    compare_learners,
    comparison_to_dataframe,
    ModelComparisonEngine,
)

__all__ = [
    'LearnerComparison',
    'compare_learners',
    'comparison_to_dataframe',
    'ModelComparisonEngine',
]
