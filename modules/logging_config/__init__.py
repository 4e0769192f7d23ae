from .logging_config import LoggingConfigurator

__all__ = ['LoggingConfigurator']
