import json
import os
import hashlib
import sys
import logging
import jsonschema
import psutil
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Optional
from sklearn.model_selection import ParameterGrid

from modules.model_factory import ModelFactory
from modules.optimization.parameter_space import MinMaxParameterSpec
from utils.exceptions import ConfigurationError
from utils import constants

class ConfigurationManager:
    """
    Manages configuration loading, validation, and access.

    Every configuration error is reported here, before any compute-intensive
    work starts.
    """

    DEFAULT_MAX_EVALUATIONS = 10000  # objective evaluations x folds
    OPTIMIZERS = ('random', 'grid', 'smbo')

    def __init__(self, config_path: str = "config/config.json",
                 schema_path: str = "config/schema.json"):
        """
        Initialize the ConfigurationManager.

        Args:
            config_path (str): Path to the user configuration JSON.
            schema_path (str): Path to the JSON schema definition.
        """
        self.config_path = config_path
        self.schema_path = schema_path
        self.config: Dict[str, Any] = {}
        self.schema: Dict[str, Any] = {}
        self.run_id: Optional[str] = None
        self.logger = logging.getLogger("config_manager")

    def load_and_validate(self) -> Dict[str, Any]:
        """
        Main entry point. Loads config, validates schema/logic/resources,
        and propagates seeds.

        Returns:
            Dict[str, Any]: The fully validated configuration.

        Raises:
            ConfigurationError: If any validation step fails.
        """
        self.config = self._load_json(self.config_path)
        self.schema = self._load_json(self.schema_path)
        return self.validate()

    def validate(self) -> Dict[str, Any]:
        """Validate an already loaded ``self.config`` (schema is optional)."""
        if self.schema:
            self._validate_schema()
        self._validate_logic()
        self._validate_resources()
        self._propagate_seeds()
        return self.config

    def generate_run_id(self) -> str:
        """
        Generate or retrieve a unique run identifier based on timestamp.
        """
        if not self.run_id:
            self.run_id = datetime.now().strftime("%Y%m%d_%H%M%S")
        return self.run_id

    def save_artifacts(self, output_dir: str) -> None:
        """
        Save configuration artifacts to the run directory for full reproducibility.

        Saves:
        1. config_used.json: The exact config object in memory.
        2. config_hash.txt: SHA256 hash for versioning.
        3. run_metadata.json: Environment details (Python version, Platform, etc.).
        """
        config_dir = Path(output_dir) / constants.CONFIG_DIR
        config_dir.mkdir(parents=True, exist_ok=True)

        with open(config_dir / constants.CONFIG_USED_FILE, 'w') as f:
            json.dump(self.config, f, indent=2)

        config_str = json.dumps(self.config, sort_keys=True)
        config_hash = hashlib.sha256(config_str.encode()).hexdigest()

        with open(config_dir / constants.CONFIG_HASH_FILE, 'w') as f:
            f.write(config_hash)

        metadata = {
            'run_id': self.run_id,
            'start_time': datetime.now().isoformat(),
            'python_version': sys.version,
            'platform': sys.platform,
            'config_hash': config_hash,
            'working_directory': os.getcwd()
        }

        with open(config_dir / constants.RUN_METADATA_FILE, 'w') as f:
            json.dump(metadata, f, indent=2)

    def _load_json(self, path: str) -> Dict[str, Any]:
        """Safely load a JSON file."""
        if not os.path.exists(path):
            raise ConfigurationError(f"File not found: {path}")
        try:
            with open(path, 'r') as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {path}: {str(e)}")

    def _validate_schema(self) -> None:
        """Validate config structure against JSON schema."""
        try:
            jsonschema.validate(instance=self.config, schema=self.schema)
        except jsonschema.ValidationError as e:
            raise ConfigurationError(f"Schema validation failed: {e.message}")

    def _validate_logic(self) -> None:
        """Comprehensive logical validation."""
        # --- Splitting Section ---
        split = self.config.get('splitting', {})
        training_percentage = split.get('training_percentage', constants.DEFAULT_TRAINING_PERCENTAGE)
        if not (0.0 < training_percentage < 1.0):
            raise ConfigurationError(
                f"training_percentage must be between 0 and 1 (exclusive), got {training_percentage}"
            )
        if split.get('seed', constants.DEFAULT_SEED) < 0:
            raise ConfigurationError("Splitting seed must be non-negative.")

        # --- HPO Section ---
        hpo = self.config.get('hyperparameters', {})
        if hpo.get('enabled', False):
            self._validate_hpo(hpo)

        # --- Learning Curve Section ---
        curve = self.config.get('learning_curve', {})
        if curve.get('enabled', False):
            percentages = curve.get('sample_percentages', constants.DEFAULT_LEARNING_CURVE_PERCENTAGES)
            if not percentages:
                raise ConfigurationError("learning_curve.sample_percentages cannot be empty.")
            for p in percentages:
                if not (0.0 < p <= 1.0):
                    raise ConfigurationError(f"learning_curve sample percentages must be in (0, 1], got {p}")
            if curve.get('number_of_shuffles', 5) < 1:
                raise ConfigurationError(
                    f"learning_curve.number_of_shuffles must be >= 1, got {curve.get('number_of_shuffles')}"
                )

        # --- Comparison Section ---
        comparison = self.config.get('comparison', {})
        if comparison.get('enabled', False):
            self._validate_comparison(comparison)

        # --- Execution Section ---
        execution = self.config.get('execution', {})
        if 'n_jobs' in execution:
            n_jobs = execution['n_jobs']
            if n_jobs == 0 or n_jobs < -1:
                raise ConfigurationError(f"execution.n_jobs must be -1 (all cores) or a positive integer, got {n_jobs}")

    def _validate_hpo(self, hpo: Dict[str, Any]) -> None:
        if not hpo.get('model'):
            raise ConfigurationError("hyperparameters.model must be specified when HPO is enabled.")

        optimizer = hpo.get('optimizer', 'random')
        if optimizer not in self.OPTIMIZERS:
            raise ConfigurationError(f"Unknown optimizer '{optimizer}'. Available: {list(self.OPTIMIZERS)}")

        cv_folds = hpo.get('cv_folds', constants.DEFAULT_CV_FOLDS)
        if cv_folds < 2:
            raise ConfigurationError(f"cv_folds must be >= 2, got {cv_folds}.")

        if optimizer == 'grid':
            grid = hpo.get('grid')
            if not grid:
                raise ConfigurationError("hyperparameters.grid cannot be empty for grid search.")
            for name, values in grid.items():
                if not values:
                    raise ConfigurationError(f"Grid for parameter '{name}' cannot be empty.")
            return

        parameters = hpo.get('parameters')
        if not parameters:
            raise ConfigurationError("hyperparameters.parameters cannot be empty when HPO is enabled.")
        for name, entry in parameters.items():
            try:
                MinMaxParameterSpec.from_config(entry)
            except ConfigurationError as e:
                raise ConfigurationError(f"Invalid bounds for parameter '{name}': {e}")

        if hpo.get('iterations', 30) < 1:
            raise ConfigurationError(f"iterations must be >= 1, got {hpo.get('iterations')}.")

        if optimizer == 'smbo':
            if hpo.get('initial_parameter_sets', 20) < 1:
                raise ConfigurationError("initial_parameter_sets must be >= 1.")
            candidates = hpo.get('candidates_per_iteration', 1)
            if candidates < 1:
                raise ConfigurationError("candidates_per_iteration must be >= 1.")
            if hpo.get('random_search_point_count', constants.DEFAULT_RANDOM_SEARCH_POINT_COUNT) < candidates:
                raise ConfigurationError("random_search_point_count must be >= candidates_per_iteration.")

    def _validate_comparison(self, comparison: Dict[str, Any]) -> None:
        models = comparison.get('models')
        if not models:
            raise ConfigurationError("comparison.models cannot be empty when model comparison is enabled.")
        unknown = [name for name in models if name not in ModelFactory.get_available_models()]
        if unknown:
            raise ConfigurationError(f"Unknown models in comparison: {unknown}")
        if comparison.get('use_cv', False) and comparison.get('cv_folds', constants.DEFAULT_CV_FOLDS) < 2:
            raise ConfigurationError(f"comparison.cv_folds must be >= 2, got {comparison.get('cv_folds')}.")

    def _count_objective_evaluations(self, hpo: Dict[str, Any]) -> int:
        optimizer = hpo.get('optimizer', 'random')
        if optimizer == 'grid':
            try:
                return len(ParameterGrid({name: list(values) for name, values in hpo.get('grid', {}).items()}))
            except Exception as e:
                raise ConfigurationError(f"Invalid parameter grid: {str(e)}")
        iterations = hpo.get('iterations', 30)
        if optimizer == 'smbo':
            return hpo.get('initial_parameter_sets', 20) + iterations * hpo.get('candidates_per_iteration', 1)
        return iterations

    def _validate_resources(self) -> None:
        """
        Guard against accidental evaluation explosions and oversubscribed workers.
        """
        resources = self.config.get('resources', {})
        hpo = self.config.get('hyperparameters', {})

        if hpo.get('enabled', False):
            evaluations = self._count_objective_evaluations(hpo)
            total_fits = evaluations * hpo.get('cv_folds', constants.DEFAULT_CV_FOLDS)
            max_evaluations = resources.get('max_evaluations', self.DEFAULT_MAX_EVALUATIONS)

            if total_fits > max_evaluations:
                raise ConfigurationError(
                    f"Evaluation budget exceeded! {evaluations} candidates x "
                    f"{hpo.get('cv_folds', constants.DEFAULT_CV_FOLDS)} folds = {total_fits} fits exceeds "
                    f"safety limit ({max_evaluations}). Reduce the search or increase 'resources.max_evaluations'."
                )
            logging.info(f"HPO budget validated: {evaluations} candidates, {total_fits} fits (Limit: {max_evaluations})")

        n_jobs = self.config.get('execution', {}).get('n_jobs', 1)
        cpu_count = psutil.cpu_count(logical=True) or 1
        if n_jobs > cpu_count:
            logging.warning(
                f"Configured n_jobs ({n_jobs}) exceeds available CPUs ({cpu_count}). "
                "Workers will be oversubscribed."
            )

    def _propagate_seeds(self) -> None:
        """
        Propagate master seed to internal components to ensure full reproducibility.
        Uses large, non-overlapping offsets to avoid correlation between components.
        """
        master_seed = self.config.get('splitting', {}).get('seed', constants.DEFAULT_SEED)

        self.config['_internal_seeds'] = {
            name: master_seed + offset for name, offset in constants.SEED_OFFSETS.items()
        }
        logging.debug(f"Seeds propagated from master ({master_seed}): {self.config['_internal_seeds']}")
