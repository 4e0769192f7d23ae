import abc
import logging
from pathlib import Path
from typing import Dict, Any, Optional

class BaseEngine(abc.ABC):
    """
    Abstract base class for config-driven engines.

    Provides common functionality for:
    - Configuration and logger attachment.
    - Optional output directory management under ``outputs.base_results_dir``.
    """

    def __init__(self, config: Dict[str, Any], logger: Optional[logging.Logger] = None):
        self.config = config
        self.logger = logger or logging.getLogger(self.__class__.__module__)
        self.engine_dir_name = self._get_engine_directory_name()

        base_results_dir = self.config.get('outputs', {}).get('base_results_dir')
        self.base_dir = Path(base_results_dir) if base_results_dir else None
        self.output_dir = self.base_dir / self.engine_dir_name if self.base_dir else None

        self._setup_directories()

    @abc.abstractmethod
    def _get_engine_directory_name(self) -> str:
        """
        Determines the directory name for the engine's output.
        e.g., '02_TrainingTestSplit', '04_HyperparameterSearch'
        """
        raise NotImplementedError("Subclasses must implement _get_engine_directory_name.")

    def _setup_directories(self):
        """
        Creates the engine output directory. Engines without a configured
        results directory run compute-only.
        """
        if self.output_dir is None:
            return

        if self.config.get('outputs', {}).get('skip_dir_creation', False):
            return

        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.logger.info(f"Output directory for {self.__class__.__name__}: {self.output_dir}")

    @property
    def persists_outputs(self) -> bool:
        return self.output_dir is not None

    def _seed(self, name: str, default: int) -> int:
        """Seed for a component, preferring the propagated internal seeds."""
        return self.config.get('_internal_seeds', {}).get(name, default)

    @abc.abstractmethod
    def execute(self, *args, **kwargs) -> Any:
        """
        Main execution method for the engine.
        This must be implemented by all subclasses.
        """
        pass
