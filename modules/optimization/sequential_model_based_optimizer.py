"""
Sequential model-based optimization (SMBO).

After a random warm-up, each iteration fits a fresh random-forest surrogate to
the evaluation history and picks the next candidates by expected improvement,
using the spread of the individual trees' predictions as the uncertainty
estimate.
"""
from typing import List, Sequence

import numpy as np
from scipy.stats import norm
from sklearn.ensemble import RandomForestRegressor

from modules.optimization.optimizer import Objective, OptimizerResult, RandomSearchOptimizer, best_result
from modules.optimization.parameter_space import MinMaxParameterSpec
from utils.exceptions import ConfigurationError
from utils import constants


def expected_improvement(mean: np.ndarray, std: np.ndarray, best_error: float, xi: float = 0.0) -> np.ndarray:
    """
    Expected improvement of each candidate over ``best_error`` (minimization).
    Zero-variance candidates score their plain improvement.
    """
    improvement = best_error - mean - xi
    with np.errstate(divide='ignore', invalid='ignore'):
        z = np.where(std > 0, improvement / std, 0.0)
    ei = improvement * norm.cdf(z) + std * norm.pdf(z)
    return np.where(std > 0, ei, np.maximum(improvement, 0.0))


class SequentialModelBasedOptimizer(RandomSearchOptimizer):
    """
    Args:
        parameters: Parameter specs.
        iterations: Number of surrogate-guided rounds after the warm-up.
        initial_parameter_sets: Random warm-up evaluations.
        candidates_per_iteration: Real evaluations per round (top acquisition scores).
        random_search_point_count: Sampled points scored by the acquisition
            function each round.
        seed: Seed for sampling and for the surrogate forests.
        n_estimators: Trees per surrogate forest.
        xi: Exploration margin added to the expected-improvement threshold.
    """

    def __init__(self, parameters: Sequence[MinMaxParameterSpec], iterations: int,
                 initial_parameter_sets: int = 20, candidates_per_iteration: int = 1,
                 random_search_point_count: int = constants.DEFAULT_RANDOM_SEARCH_POINT_COUNT,
                 seed: int = constants.DEFAULT_SEED, n_estimators: int = 30, xi: float = 0.0,
                 **kwargs):
        super().__init__(parameters, iterations, seed=seed, **kwargs)
        if initial_parameter_sets < 1:
            raise ConfigurationError(f"initial_parameter_sets must be >= 1, got {initial_parameter_sets}")
        if candidates_per_iteration < 1:
            raise ConfigurationError(f"candidates_per_iteration must be >= 1, got {candidates_per_iteration}")
        if random_search_point_count < candidates_per_iteration:
            raise ConfigurationError(
                f"random_search_point_count ({random_search_point_count}) must be >= "
                f"candidates_per_iteration ({candidates_per_iteration})"
            )
        self.initial_parameter_sets = initial_parameter_sets
        self.candidates_per_iteration = candidates_per_iteration
        self.random_search_point_count = random_search_point_count
        self.n_estimators = n_estimators
        self.xi = xi

    def optimize(self, objective: Objective) -> List[OptimizerResult]:
        random_state = np.random.RandomState(self.seed)

        warm_up = self.generate_candidates(self.initial_parameter_sets, random_state)
        history = self._evaluate(objective, warm_up)
        self.logger.info(f"SMBO warm-up: {len(history)} random evaluations")

        for iteration in range(self.iterations):
            if self.cancelled:
                self.logger.warning(f"SMBO cancelled at iteration {iteration + 1}/{self.iterations}.")
                break

            candidates = self._propose(history, random_state)
            results = self._evaluate(objective, candidates)
            history.extend(results)

            best_error = best_result(history).error
            self.logger.debug(f"SMBO iteration {iteration + 1}/{self.iterations}: best error {best_error:.6f}")

        return history

    def _to_search_space(self, parameter_sets: Sequence[Sequence[float]]) -> np.ndarray:
        return np.array([
            [spec.to_search_space(v) for spec, v in zip(self.parameters, parameter_set)]
            for parameter_set in parameter_sets
        ])

    def _evaluation_key(self, parameter_set: Sequence[float]) -> tuple:
        return tuple(spec.transform_value(v) for spec, v in zip(self.parameters, parameter_set))

    def _propose(self, history: List[OptimizerResult], random_state: np.random.RandomState) -> List[List[float]]:
        """Top expected-improvement candidates not evaluated before."""
        points = self.generate_candidates(self.random_search_point_count, random_state)

        finite = [r for r in history if np.isfinite(r.error)]
        if not finite:
            return points[:self.candidates_per_iteration]

        # Surrogate is rebuilt from scratch on the full history every round.
        surrogate = RandomForestRegressor(
            n_estimators=self.n_estimators,
            random_state=random_state.randint(np.iinfo(np.int32).max),
        )
        surrogate.fit(self._to_search_space([r.parameter_set for r in finite]), [r.error for r in finite])

        search_points = self._to_search_space(points)
        tree_predictions = np.stack([tree.predict(search_points) for tree in surrogate.estimators_])
        mean = tree_predictions.mean(axis=0)
        std = tree_predictions.std(axis=0)

        scores = expected_improvement(mean, std, min(r.error for r in finite), self.xi)
        order = np.argsort(-scores, kind='stable')

        seen = {self._evaluation_key(r.parameter_set) for r in history}
        proposals = []
        for index in order:
            key = self._evaluation_key(points[index])
            if key in seen:
                continue
            seen.add(key)
            proposals.append(points[index])
            if len(proposals) == self.candidates_per_iteration:
                break

        if not proposals:
            # Every sampled point was already evaluated (tiny discrete spaces).
            proposals = [points[int(order[0])]]
        return proposals
