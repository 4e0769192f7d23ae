"""
Learning Curves
===============

Responsibility:
- Train/validation error as a function of training-set size, averaged over
  reproducible reshuffles, for bias/variance diagnosis.
- Tabular export and plotting of the resulting curve.
"""

from .learning_curve_calculator import (
    LearningCurvePoint,
    LearningCurvesCalculator,
    RandomShuffleLearningCurvesCalculator,
    StratifiedLearningCurvesCalculator,
    learning_curve_to_dataframe,
    write_learning_curve,
    plot_learning_curve,
)

__all__ = [
    'LearningCurvePoint',
    'LearningCurvesCalculator',
    'RandomShuffleLearningCurvesCalculator',
    'StratifiedLearningCurvesCalculator',
    'learning_curve_to_dataframe',
    'write_learning_curve',
    'plot_learning_curve',
]
