"""
Shared utilities.
"""
from .logging import configure_logging, get_logger, JsonFormatter, CompilerLoggerAdapter

__all__ = [
    'configure_logging',
    'get_logger',
    'JsonFormatter',
    'CompilerLoggerAdapter',
]
