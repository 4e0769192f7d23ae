"""
Model Factory
=============

Responsibility:
- Build scikit-learn estimators by name and adapt them to the Learner /
  Model interfaces used by the selection engines.
- Map optimizer parameter vectors onto named constructor arguments,
  rounding discrete parameters at construction time.
"""

from .model_factory import ModelFactory, SklearnLearner, SklearnModel, SklearnProbabilityModel

__all__ = ['ModelFactory', 'SklearnLearner', 'SklearnModel', 'SklearnProbabilityModel']
