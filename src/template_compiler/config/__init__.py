"""
Configuration components for the template compiler.
"""

from .configuration import (
    CompilerConfiguration,
    ensure_compiler_config,
    load_config,
    load_config_file,
    load_configuration_from_env,
    merge_configs,
)

__all__ = [
    "CompilerConfiguration",
    "ensure_compiler_config",
    "load_config",
    "load_config_file",
    "load_configuration_from_env",
    "merge_configs",
]
