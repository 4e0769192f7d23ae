"""
Custom exception hierarchy for the model selection toolkit.
"""

class ModelSelectionException(Exception):
    """Base exception for all toolkit errors."""
    pass

class ConfigurationError(ModelSelectionException):
    """Invalid settings detected before any sampling or fitting starts."""
    pass

class DataValidationError(ModelSelectionException):
    """Data cannot satisfy the requested operation (length mismatch, tiny strata)."""
    pass

class OptimizationCancelledError(ModelSelectionException):
    """Search was cancelled before any candidate was fully evaluated."""
    pass
