"""
Template Compiler: flattens, shrinks and compiles templates with a dependency-aware cache.
"""

__version__ = "1.0.0"

from .cache import TemplateCache
from .compiler import TemplateCompiler
from .config import CompilerConfiguration
from .error import (
    TemplateCompilerError,
    ConfigurationError,
    TemplateNotFoundError,
    CircularIncludeError,
    TemplateCompileError,
    ShrinkError
)
from .templates import CompiledTemplate, DirectiveSafeMinifier, TemplateAssembler

__all__ = [
    "TemplateCompiler",
    "TemplateCache",
    "CompilerConfiguration",
    "CompiledTemplate",
    "DirectiveSafeMinifier",
    "TemplateAssembler",
    "TemplateCompilerError",
    "ConfigurationError",
    "TemplateNotFoundError",
    "CircularIncludeError",
    "TemplateCompileError",
    "ShrinkError",
    "__version__"
]
