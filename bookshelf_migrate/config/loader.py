"""
Configuration loader for bookshelf-migrate.

This module loads YAML configuration files, validates them with Pydantic
models, and applies environment variable overrides to produce a MigrateConfig.

Environment variables are only read here, at load time, and the result is
returned to the caller. Nothing is cached at module level.

Environment overrides:
    BOOKSHELF_MIGRATIONS_DIR: migrations_dir
    BOOKSHELF_DB_PATH: database.path
    BOOKSHELF_DB_TIMEOUT: database.timeout_seconds

Functions:
    load_config: Main entrypoint to load and validate migrate.yaml
    apply_env_overrides: Apply BOOKSHELF_* environment variables to a config
"""

import os
from collections.abc import Mapping
from pathlib import Path

import yaml
from pydantic import ValidationError

from bookshelf_migrate.exceptions import ConfigFileNotFoundError, ConfigValidationError

from .schema import MigrateConfig

ENV_MIGRATIONS_DIR = "BOOKSHELF_MIGRATIONS_DIR"
ENV_DB_PATH = "BOOKSHELF_DB_PATH"
ENV_DB_TIMEOUT = "BOOKSHELF_DB_TIMEOUT"


def _format_validation_error(source: str, e: ValidationError) -> str:
    error_messages = []
    for error in e.errors():
        loc = ".".join(str(x) for x in error["loc"])
        error_messages.append(f"  - {loc}: {error['msg']}")
    return f"Configuration validation failed in {source}:\n" + "\n".join(error_messages)


def load_config(
    config_path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> MigrateConfig:
    """
    Load migrate.yaml and apply environment overrides.

    This function:
    1. Loads YAML from the specified path (or starts from defaults if None)
    2. Validates structure using the MigrateConfig Pydantic model
    3. Applies BOOKSHELF_* environment variable overrides

    Args:
        config_path: Path to the YAML file, or None to use built-in defaults
        environ: Environment mapping to read overrides from (default os.environ)

    Returns:
        Validated MigrateConfig

    Raises:
        ConfigFileNotFoundError: If config file doesn't exist at the specified path
        ConfigValidationError: If YAML is invalid or config validation fails

    Example:
        >>> config = load_config("migrate.yaml")
        >>> config.suffixes.up
        'up.sql'

    Security:
        - Uses yaml.safe_load() to prevent code injection
    """
    if config_path is None:
        return apply_env_overrides(MigrateConfig(), environ)

    config_path = Path(config_path)

    if not config_path.exists():
        raise ConfigFileNotFoundError(f"Configuration file not found: {config_path}")

    try:
        with config_path.open(encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigValidationError(f"Invalid YAML syntax in {config_path}: {e}") from e
    except OSError as e:
        raise ConfigValidationError(
            f"Failed to read configuration file {config_path}: {e}"
        ) from e

    # An empty file means "all defaults"
    if raw_config is None:
        raw_config = {}

    if not isinstance(raw_config, dict):
        raise ConfigValidationError(
            f"Configuration in {config_path} must be a mapping, "
            f"got {type(raw_config).__name__}"
        )

    try:
        config = MigrateConfig.model_validate(raw_config)
    except ValidationError as e:
        raise ConfigValidationError(_format_validation_error(str(config_path), e)) from e

    return apply_env_overrides(config, environ)


def apply_env_overrides(
    config: MigrateConfig,
    environ: Mapping[str, str] | None = None,
) -> MigrateConfig:
    """
    Return a copy of ``config`` with BOOKSHELF_* environment overrides applied.

    Empty variables are ignored.

    Args:
        config: Validated configuration
        environ: Environment mapping (default os.environ)

    Returns:
        New MigrateConfig; ``config`` itself is not modified

    Raises:
        ConfigValidationError: If an override value fails validation
            (e.g. BOOKSHELF_DB_TIMEOUT is not a positive number)
    """
    if environ is None:
        environ = os.environ

    data = config.model_dump()

    if environ.get(ENV_MIGRATIONS_DIR):
        data["migrations_dir"] = environ[ENV_MIGRATIONS_DIR]
    if environ.get(ENV_DB_PATH):
        data["database"]["path"] = environ[ENV_DB_PATH]
    if environ.get(ENV_DB_TIMEOUT):
        data["database"]["timeout_seconds"] = environ[ENV_DB_TIMEOUT]

    try:
        return MigrateConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigValidationError(_format_validation_error("environment", e)) from e
