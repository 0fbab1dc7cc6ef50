"""
Error handling utilities and exceptions.
"""
from .exceptions import (
    ErrorContext,
    TemplateCompilerError,
    ConfigurationError,
    TemplateNotFoundError,
    CircularIncludeError,
    TemplateCompileError,
    ShrinkError
)

__all__ = [
    'ErrorContext',
    'TemplateCompilerError',
    'ConfigurationError',
    'TemplateNotFoundError',
    'CircularIncludeError',
    'TemplateCompileError',
    'ShrinkError',
]
