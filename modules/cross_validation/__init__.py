"""
Cross Validation
================

Responsibility:
- Seeded k-fold partitioning (random or class-stratified).
- Out-of-fold predictions aligned to the original row order.
"""

from .cross_validator import CrossValidation, RandomCrossValidation, StratifiedCrossValidation

__all__ = ['CrossValidation', 'RandomCrossValidation', 'StratifiedCrossValidation']
