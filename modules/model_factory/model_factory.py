import functools
import inspect
from typing import Callable, Dict, Any, List, Optional, Sequence

import numpy as np
from sklearn.ensemble import (
    ExtraTreesRegressor,
    ExtraTreesClassifier,
    RandomForestRegressor,
    RandomForestClassifier,
    GradientBoostingRegressor,
    GradientBoostingClassifier,
    AdaBoostRegressor,
    AdaBoostClassifier,
)
from sklearn.neighbors import KNeighborsRegressor, KNeighborsClassifier
from sklearn.linear_model import LinearRegression, Ridge, Lasso, ElasticNet, LogisticRegression
from sklearn.svm import SVR, SVC
from sklearn.tree import DecisionTreeRegressor, DecisionTreeClassifier
from sklearn.neural_network import MLPRegressor, MLPClassifier

from modules.base.interfaces import ProbabilityPrediction
from modules.optimization.parameter_space import MinMaxParameterSpec


class SklearnModel:
    """Fitted estimator exposed through ``predict``."""

    def __init__(self, estimator):
        self.estimator = estimator

    def predict(self, observations) -> np.ndarray:
        return np.asarray(self.estimator.predict(observations))


class SklearnProbabilityModel(SklearnModel):
    """Fitted classifier whose predictions are ProbabilityPrediction values."""

    def predict(self, observations) -> List[ProbabilityPrediction]:
        probabilities = self.estimator.predict_proba(observations)
        classes = [float(c) for c in self.estimator.classes_]
        return [
            ProbabilityPrediction(
                prediction=classes[int(np.argmax(row))],
                probabilities=dict(zip(classes, (float(p) for p in row))),
            )
            for row in probabilities
        ]


class SklearnLearner:
    """
    Learner over a scikit-learn estimator class.

    Every ``learn`` call constructs and fits a new estimator, so one learner
    can be shared by folds and repetitions without sharing fitted state.
    """

    def __init__(self, estimator_class, params: Optional[Dict[str, Any]] = None, probability: bool = False):
        self.estimator_class = estimator_class
        self.params = dict(params or {})
        self.probability = probability

    def learn(self, observations, targets) -> SklearnModel:
        estimator = self.estimator_class(**self.params)
        estimator.fit(observations, targets)
        if self.probability:
            return SklearnProbabilityModel(estimator)
        return SklearnModel(estimator)

    def __repr__(self) -> str:
        return f"SklearnLearner({self.estimator_class.__name__}, {self.params})"


class ModelFactory:
    """
    Factory for creating learners with a unified interface.
    """

    REGRESSORS = {
        'DecisionTreeRegressor': DecisionTreeRegressor,
        'RandomForestRegressor': RandomForestRegressor,
        'ExtraTreesRegressor': ExtraTreesRegressor,
        'GradientBoostingRegressor': GradientBoostingRegressor,
        'AdaBoostRegressor': AdaBoostRegressor,
        'KNeighborsRegressor': KNeighborsRegressor,
        'MLPRegressor': MLPRegressor,
        'LinearRegression': LinearRegression,
        'Ridge': Ridge,
        'Lasso': Lasso,
        'ElasticNet': ElasticNet,
        'SVR': SVR,
    }

    CLASSIFIERS = {
        'DecisionTreeClassifier': DecisionTreeClassifier,
        'RandomForestClassifier': RandomForestClassifier,
        'ExtraTreesClassifier': ExtraTreesClassifier,
        'GradientBoostingClassifier': GradientBoostingClassifier,
        'AdaBoostClassifier': AdaBoostClassifier,
        'KNeighborsClassifier': KNeighborsClassifier,
        'MLPClassifier': MLPClassifier,
        'LogisticRegression': LogisticRegression,
        'SVC': SVC,
    }

    @classmethod
    def create(cls, model_name: str, params: Dict[str, Any] = None, probability: bool = False) -> SklearnLearner:
        """
        Create a learner for ``model_name``. Parameters the estimator does not
        accept are dropped.
        """
        if params is None:
            params = {}

        model_class = cls._resolve_class(model_name, probability)
        valid_params = cls._filter_params(model_class, params)
        return SklearnLearner(model_class, valid_params, probability=probability)

    @classmethod
    def learner_factory(cls, model_name: str, params: Dict[str, Any] = None,
                        probability: bool = False) -> Callable[[], SklearnLearner]:
        """
        Zero-argument factory returning a new learner per call, so every fold
        or repetition fits its own instance. The model name is checked here.
        """
        cls._resolve_class(model_name, probability)
        return functools.partial(cls.create, model_name, dict(params or {}), probability=probability)

    @classmethod
    def _resolve_class(cls, model_name: str, probability: bool):
        if model_name in cls.REGRESSORS:
            if probability:
                raise ValueError(f"{model_name} cannot produce probability predictions.")
            return cls.REGRESSORS[model_name]
        if model_name in cls.CLASSIFIERS:
            return cls.CLASSIFIERS[model_name]
        raise ValueError(f"Unknown model name: {model_name}. Available: {cls.get_available_models()}")

    @classmethod
    def create_from_vector(cls, model_name: str, parameter_names: Sequence[str],
                           parameter_specs: Sequence[MinMaxParameterSpec], parameter_set: Sequence[float],
                           fixed_params: Dict[str, Any] = None, probability: bool = False) -> SklearnLearner:
        """
        Create a learner from an optimizer parameter vector. Discrete
        parameters are rounded here and nowhere else.
        """
        params = dict(fixed_params or {})
        params.update(cls.vector_to_params(parameter_names, parameter_specs, parameter_set))
        return cls.create(model_name, params, probability=probability)

    @staticmethod
    def vector_to_params(parameter_names: Sequence[str], parameter_specs: Sequence[MinMaxParameterSpec],
                         parameter_set: Sequence[float]) -> Dict[str, Any]:
        if not (len(parameter_names) == len(parameter_specs) == len(parameter_set)):
            raise ValueError(
                f"Parameter names ({len(parameter_names)}), specs ({len(parameter_specs)}) and "
                f"values ({len(parameter_set)}) must have the same length."
            )
        return {
            name: spec.transform_value(value)
            for name, spec, value in zip(parameter_names, parameter_specs, parameter_set)
        }

    @classmethod
    def get_available_models(cls) -> List[str]:
        """Return list of all supported model names."""
        return list(cls.REGRESSORS.keys()) + list(cls.CLASSIFIERS.keys())

    @staticmethod
    def _filter_params(model_class, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        Remove parameters from `params` that are not accepted by `model_class` constructor.
        """
        sig = inspect.signature(model_class.__init__)

        valid_keys = [
            p.name for p in sig.parameters.values()
            if p.kind in (p.POSITIONAL_OR_KEYWORD, p.KEYWORD_ONLY)
        ]

        # Always allow **kwargs if the model supports it
        has_kwargs = any(p.kind == p.VAR_KEYWORD for p in sig.parameters.values())

        if has_kwargs:
            return params

        return {k: v for k, v in params.items() if k in valid_keys}
