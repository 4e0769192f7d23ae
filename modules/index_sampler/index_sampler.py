"""
Index samplers used by the splitters, cross validators and learning curves.

Every sampler owns an explicit ``numpy.random.RandomState`` seeded at
construction. Consecutive calls continue the same stream; passing ``seed`` to
``sample`` draws from a fresh stream for that call only.
"""
import abc
import logging
from typing import Optional, Sequence

import numpy as np

from utils.exceptions import ConfigurationError, DataValidationError


class IndexSampler(abc.ABC):

    def __init__(self, seed: int, logger: Optional[logging.Logger] = None):
        self.seed = seed
        self.logger = logger or logging.getLogger(__name__)
        self.random_state = np.random.RandomState(seed)

    def sample(self, targets: Sequence, sample_size: int,
               available_indices: Optional[Sequence[int]] = None,
               seed: Optional[int] = None) -> np.ndarray:
        """
        Draw ``sample_size`` distinct indices from ``available_indices``.

        Args:
            targets: Full target vector, indexed by the available indices.
            sample_size: Number of indices to draw.
            available_indices: Population to draw from (defaults to all rows).
            seed: Optional per-call seed overriding the sampler's stream.

        Returns:
            Integer array of sampled indices in random order.
        """
        targets = np.asarray(targets)
        if available_indices is None:
            available_indices = np.arange(len(targets))
        available_indices = np.asarray(available_indices, dtype=int)

        if not (1 <= sample_size <= len(available_indices)):
            raise ConfigurationError(
                f"sample_size must be between 1 and the number of available indices "
                f"({len(available_indices)}), got {sample_size}."
            )
        if available_indices.size and (available_indices.min() < 0 or available_indices.max() >= len(targets)):
            raise DataValidationError("Available indices fall outside the target vector.")

        random_state = np.random.RandomState(seed) if seed is not None else self.random_state
        return self._sample(targets, int(sample_size), available_indices, random_state)

    @abc.abstractmethod
    def _sample(self, targets: np.ndarray, sample_size: int,
                available_indices: np.ndarray, random_state: np.random.RandomState) -> np.ndarray:
        raise NotImplementedError


class RandomIndexSampler(IndexSampler):
    """Uniform sampling without replacement."""

    def _sample(self, targets, sample_size, available_indices, random_state):
        # A full-size draw is a permutation, never the identity order.
        return random_state.choice(available_indices, size=sample_size, replace=False)


class StratifiedIndexSampler(IndexSampler):
    """
    Sampling that keeps each target value's share of the sample equal to its
    share of the available indices.

    Shares are apportioned by largest remainder: every stratum gets the floor
    of its exact share, and the units still missing go to the strata with the
    largest fractional parts (ties to the larger stratum, then label order).
    """

    @staticmethod
    def _apportion(counts: np.ndarray, sample_size: int) -> np.ndarray:
        """Per-stratum sample sizes summing exactly to ``sample_size``."""
        counts = np.asarray(counts, dtype=np.int64)
        total = int(counts.sum())
        # Floors and remainders in integers, so exact shares stay exact.
        numerators = counts * sample_size
        shares = np.minimum(numerators // total, counts)
        remainders = numerators % total
        order = np.lexsort((np.arange(len(counts)), -counts, -remainders))

        missing = sample_size - int(shares.sum())
        while missing > 0:
            open_strata = [i for i in order if shares[i] < counts[i]]
            if not open_strata:
                raise DataValidationError(
                    f"Strata hold {total} members, cannot draw a stratified sample of {sample_size}."
                )
            for i in open_strata[:missing]:
                shares[i] += 1
            missing = sample_size - int(shares.sum())
        return shares

    def _sample(self, targets, sample_size, available_indices, random_state):
        strata_targets = targets[available_indices]
        labels, inverse, counts = np.unique(strata_targets, return_inverse=True, return_counts=True)
        shares = self._apportion(counts, sample_size)

        sampled = []
        for stratum, label in enumerate(labels):
            members = available_indices[inverse == stratum]
            share = shares[stratum]
            if share < 0 or share > len(members):
                raise DataValidationError(
                    f"Stratum for target {label} has {len(members)} members but {share} were requested."
                )
            if share:
                sampled.append(random_state.choice(members, size=share, replace=False))

        self.logger.debug(
            f"Stratified sample of {sample_size}: "
            + ", ".join(f"{label}={share}" for label, share in zip(labels, shares))
        )
        return random_state.permutation(np.concatenate(sampled))
