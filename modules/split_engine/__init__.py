"""
Split Engine
============

Responsibility:
- Deterministic training/test partitioning (random or stratified).
- Config-driven split execution with persisted index partitions.
"""

from .split_engine import (
    ObservationTargetSet,
    TrainingTestSetSplit,
    TrainingTestIndexSplitter,
    RandomTrainingTestIndexSplitter,
    StratifiedTrainingTestIndexSplitter,
    SplitEngine,
)

__all__ = [
    'ObservationTargetSet',
    'TrainingTestSetSplit',
    'TrainingTestIndexSplitter',
    'RandomTrainingTestIndexSplitter',
    'StratifiedTrainingTestIndexSplitter',
    'SplitEngine',
]
