import functools
import logging
from utils.exceptions import ModelSelectionException

def handle_engine_errors(operation_name: str):
    """
    Decorator for consistent error reporting in engines.

    Failures are logged with the operation name and re-raised unchanged, so a
    failing learner or metric aborts the whole run with its original type.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except ModelSelectionException as e:
                logger = args[0].logger if args and hasattr(args[0], 'logger') else logging.getLogger()
                logger.error(f"{operation_name} aborted: {e}")
                raise
            except Exception as e:
                logger = args[0].logger if args and hasattr(args[0], 'logger') else logging.getLogger()
                logger.error(f"{operation_name} failed: {e}", exc_info=True)
                raise
        return wrapper
    return decorator
