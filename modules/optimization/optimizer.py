"""
Black-box hyperparameter optimizers.

An objective maps a parameter vector (one float per spec, in spec order) to an
``OptimizerResult``. Optimizers never look inside it. Exceptions raised by the
objective propagate unchanged and abort the search.
"""
import abc
import logging
import math
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Union

import numpy as np
from joblib import Parallel, delayed, effective_n_jobs
from tqdm import tqdm
from sklearn.model_selection import ParameterGrid

from modules.optimization.parameter_space import GridParameterSpec, MinMaxParameterSpec, validate_parameters
from utils.exceptions import ConfigurationError, OptimizationCancelledError
from utils import constants


@dataclass(frozen=True)
class OptimizerResult:
    parameter_set: List[float]
    error: float


Objective = Callable[[List[float]], Union[OptimizerResult, float]]


def _error_key(result: OptimizerResult) -> float:
    # NaN errors never win the best-of reduction.
    return math.inf if math.isnan(result.error) else result.error


def best_result(results: Sequence[OptimizerResult]) -> OptimizerResult:
    """Minimum error; on ties the earliest result in the sequence wins."""
    if not results:
        raise ValueError("No optimizer results to reduce.")
    best_index = min(range(len(results)), key=lambda i: (_error_key(results[i]), i))
    return results[best_index]


def _evaluate_candidate(objective: Objective, candidate: Sequence[float]) -> OptimizerResult:
    result = objective(list(candidate))
    if isinstance(result, OptimizerResult):
        return result
    return OptimizerResult(list(candidate), float(result))


class Optimizer(abc.ABC):
    """
    Base for the search strategies.

    Candidate evaluation runs sequentially unless ``run_parallel`` is set, in
    which case batches are dispatched through ``joblib.Parallel``. Results are
    always collected in generation order, so the selected best candidate does
    not depend on completion order. ``cancel_event`` is honored between
    evaluations (between batches when parallel), never inside one.
    """

    def __init__(self, parameters: Sequence, run_parallel: bool = False, n_jobs: int = -1,
                 backend: Optional[str] = None, cancel_event: Optional[threading.Event] = None,
                 show_progress: bool = False, logger: Optional[logging.Logger] = None):
        self.parameters = validate_parameters(parameters)
        self.run_parallel = run_parallel
        self.n_jobs = n_jobs
        self.backend = backend
        self.cancel_event = cancel_event
        self.show_progress = show_progress
        self.logger = logger or logging.getLogger(__name__)

    @abc.abstractmethod
    def optimize(self, objective: Objective) -> List[OptimizerResult]:
        """All evaluated results in generation order."""
        raise NotImplementedError

    def optimize_best(self, objective: Objective) -> OptimizerResult:
        """
        Run the search and return the single best evaluated result.

        Raises:
            OptimizationCancelledError: Cancelled before any evaluation finished.
        """
        results = self.optimize(objective)
        if not results:
            raise OptimizationCancelledError("Optimization cancelled before any candidate was evaluated.")
        best = best_result(results)
        self.logger.info(
            f"{self.__class__.__name__}: best error {best.error:.6f} after {len(results)} evaluations "
            f"(parameters: {best.parameter_set})"
        )
        return best

    @property
    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    def _evaluate(self, objective: Objective, candidates: Sequence[Sequence[float]]) -> List[OptimizerResult]:
        if not self.run_parallel:
            results = []
            with tqdm(total=len(candidates), desc=self.__class__.__name__, unit="candidate",
                      disable=not self.show_progress) as pbar:
                for candidate in candidates:
                    if self.cancelled:
                        self.logger.warning(f"Optimization cancelled after {len(results)} evaluations.")
                        break
                    results.append(_evaluate_candidate(objective, candidate))
                    pbar.update(1)
            return results

        batch_size = max(1, effective_n_jobs(self.n_jobs))
        results = []
        with Parallel(n_jobs=self.n_jobs, backend=self.backend) as parallel:
            for start in range(0, len(candidates), batch_size):
                if self.cancelled:
                    self.logger.warning(f"Optimization cancelled after {len(results)} evaluations.")
                    break
                batch = candidates[start:start + batch_size]
                results.extend(parallel(delayed(_evaluate_candidate)(objective, c) for c in batch))
        return results


class RandomSearchOptimizer(Optimizer):
    """
    Random search: ``iterations`` candidates drawn from a seeded generator,
    one value per spec (log specs sampled uniformly in log space).
    """

    def __init__(self, parameters: Sequence[MinMaxParameterSpec], iterations: int,
                 seed: int = constants.DEFAULT_SEED, **kwargs):
        super().__init__(parameters, **kwargs)
        if iterations < 1:
            raise ConfigurationError(f"iterations must be >= 1, got {iterations}")
        self.iterations = iterations
        self.seed = seed

    def generate_candidates(self, count: int, random_state: np.random.RandomState) -> List[List[float]]:
        return [[spec.sample_value(random_state) for spec in self.parameters] for _ in range(count)]

    def optimize(self, objective: Objective) -> List[OptimizerResult]:
        random_state = np.random.RandomState(self.seed)
        candidates = self.generate_candidates(self.iterations, random_state)
        self.logger.info(f"Random search over {len(self.parameters)} parameter(s), {self.iterations} candidates")
        return self._evaluate(objective, candidates)


class GridSearchOptimizer(Optimizer):
    """
    Exhaustive search over an explicit value list per dimension. The first
    dimension varies slowest. Values are passed to the objective as given.
    """

    def __init__(self, parameters: Sequence[Union[GridParameterSpec, Sequence[float]]], **kwargs):
        parameters = [p if isinstance(p, GridParameterSpec) else GridParameterSpec(list(p)) for p in parameters]
        super().__init__(parameters, **kwargs)

    def generate_candidates(self) -> List[List[float]]:
        # Zero-padded keys keep ParameterGrid's sorted-key order equal to spec order.
        keys = [f"p{i:04d}" for i in range(len(self.parameters))]
        grid = ParameterGrid({key: list(spec.values) for key, spec in zip(keys, self.parameters)})
        return [[point[key] for key in keys] for point in grid]

    def optimize(self, objective: Objective) -> List[OptimizerResult]:
        candidates = self.generate_candidates()
        self.logger.info(f"Grid search over {len(candidates)} combinations")
        return self._evaluate(objective, candidates)
