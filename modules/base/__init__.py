"""
Base Module
===========

Responsibility:
- Common engine plumbing (config, logger, output directories).
- Structural interfaces for the external Learner / Model / Metric collaborators.
"""

from .base_engine import BaseEngine
from .interfaces import Learner, Model, Metric, ProbabilityPrediction, fresh_learner

__all__ = ['BaseEngine', 'Learner', 'Model', 'Metric', 'ProbabilityPrediction', 'fresh_learner']
