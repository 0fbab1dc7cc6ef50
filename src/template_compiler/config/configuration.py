"""
Configuration management for the template compiler.
"""
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from ..error.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "TEMPLATE_COMPILER_"

class CompilerConfiguration(BaseModel):
    """Configuration for a template compiler instance."""

    root: Path = Field(..., description="Template root directory")
    compress: bool = Field(default=True, description="Shrink compiled templates")
    watch: bool = Field(default=False, description="Periodically invalidate the whole cache")
    watch_interval: float = Field(default=1.0, description="Seconds between cache resets", gt=0)
    precompile: bool = Field(default=False, description="Compile every template on initialize")
    log: bool = Field(default=False, description="Log compiler progress at INFO level")

    # Logging settings, used by the CLI
    log_level: str = "INFO"
    log_file: Optional[str] = None
    structured_logging: bool = False

    @field_validator("root", mode="before")
    @classmethod
    def convert_root(cls, value: Any) -> Path:
        """Resolve the root directory and check that it exists."""
        if value is None or value == "":
            raise ValueError("root directory is required")
        if not isinstance(value, (str, Path)):
            raise ValueError(f"Invalid path value: {value}")

        path = Path(os.path.expanduser(str(value))).resolve()
        if not path.is_dir():
            raise ValueError(f"root directory does not exist: {path}")
        return path

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        value_upper = value.upper()
        if value_upper not in valid_levels:
            raise ValueError(f"Invalid log level '{value}'. Must be one of: {valid_levels}")
        return value_upper

    class Config:
        """Pydantic configuration."""
        extra = "forbid"
        validate_assignment = True


def ensure_compiler_config(
    config: Union[CompilerConfiguration, Dict[str, Any], None] = None,
    **overrides
) -> CompilerConfiguration:
    """
    Ensure a valid compiler configuration.

    Args:
        config: Existing configuration, dictionary of options or None
        **overrides: Options taking precedence over ``config``

    Returns:
        Validated configuration

    Raises:
        ConfigurationError: if an option is missing or invalid
    """
    if isinstance(config, CompilerConfiguration):
        if not overrides:
            return config
        config = config.model_dump()

    merged_config = merge_configs(config or {}, overrides)

    try:
        return CompilerConfiguration(**merged_config)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'config'}: {error['msg']}"
            for error in e.errors()
        )
        raise ConfigurationError(f"Invalid configuration: {problems}") from e


def load_config_file(file_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load configuration from a file (YAML or JSON).

    Args:
        file_path: Path to the configuration file

    Returns:
        Dictionary with configuration

    Raises:
        ConfigurationError: If the file is not found or cannot be parsed
    """
    path = Path(file_path).expanduser()

    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {file_path}")

    try:
        content = path.read_text(encoding='utf-8')
    except OSError as e:
        raise ConfigurationError(f"Error reading config file {file_path}: {e}") from e

    try:
        if path.suffix in (".yaml", ".yml"):
            loaded_config = yaml.safe_load(content) or {}
        elif path.suffix == ".json":
            loaded_config = json.loads(content) or {}
        else:
            raise ConfigurationError(f"Unsupported config file format: {file_path}")
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML format in {file_path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON format in {file_path}: {e}") from e

    if not isinstance(loaded_config, dict):
        raise ConfigurationError(f"Configuration in {file_path} must be a mapping")

    logger.debug(f"Loaded configuration from {file_path}")
    return loaded_config


def load_configuration_from_env(prefix: str = ENV_PREFIX) -> Dict[str, Any]:
    """
    Collect configuration options from environment variables.

    ``TEMPLATE_COMPILER_ROOT=/srv/views`` sets ``root``; values are left as
    strings for pydantic to coerce.

    Args:
        prefix: Environment variable prefix

    Returns:
        Dictionary with the options found
    """
    fields = set(CompilerConfiguration.model_fields)
    config = {}
    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue
        name = key[len(prefix):].lower()
        if name in fields:
            config[name] = value
    return config


def merge_configs(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge two configuration dictionaries."""
    result = base.copy()
    for key, value in override.items():
        if isinstance(value, dict) and key in result and isinstance(result[key], dict):
            result[key] = merge_configs(result[key], value)
        else:
            result[key] = value
    return result


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    env_prefix: str = ENV_PREFIX,
    **overrides
) -> CompilerConfiguration:
    """
    Load configuration from a file, the environment and explicit options.

    Precedence, lowest first: file, environment, ``overrides``. Overrides
    set to None are ignored.

    Args:
        config_path: Optional YAML or JSON configuration file
        env_prefix: Prefix for environment variables
        **overrides: Explicit options

    Returns:
        Validated configuration
    """
    config: Dict[str, Any] = {}
    if config_path:
        logger.info(f"Loading configuration from {config_path}")
        config = load_config_file(config_path)

    config = merge_configs(config, load_configuration_from_env(env_prefix))
    config = merge_configs(config, {k: v for k, v in overrides.items() if v is not None})
    return ensure_compiler_config(config)
