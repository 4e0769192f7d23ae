"""
Index Sampler
=============

Responsibility:
- Seeded, reproducible draws of row-index subsets.
- Class-stratified draws that preserve per-target proportions.
"""

from .index_sampler import IndexSampler, RandomIndexSampler, StratifiedIndexSampler

__all__ = ['IndexSampler', 'RandomIndexSampler', 'StratifiedIndexSampler']
