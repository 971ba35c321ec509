"""
Configuration schema models for bookshelf-migrate.

This module defines Pydantic models for validating and parsing the
migrate.yaml configuration file. A MigrateConfig is built once by the caller
(normally via config.loader.load_config) and passed down explicitly; there is
no module-level default configuration.

Models:
    MigrationSuffixes: Filename suffixes selecting up/down migrations
    DatabaseSettings: SQLite database location and busy timeout
    TeardownSettings: Deadline and backoff for releasing the connection
    MigrateConfig: Root configuration model (validates entire YAML)
"""

from pydantic import BaseModel, Field, field_validator, model_validator

from bookshelf_migrate.migrations.catalog import DEFAULT_SUFFIXES, Direction


class MigrationSuffixes(BaseModel):
    """
    Filename suffixes that mark a migration's direction.

    A file is an up migration if its name ends with ``up`` and a down
    migration if it ends with ``down``. Both must be non-empty and distinct.

    Attributes:
        up: Suffix for forward migrations (default "up.sql")
        down: Suffix for reverse migrations (default "down.sql")
    """

    up: str = DEFAULT_SUFFIXES[Direction.UP]
    down: str = DEFAULT_SUFFIXES[Direction.DOWN]

    @field_validator("up", "down")
    @classmethod
    def validate_suffix(cls, v: str) -> str:
        """Validate suffix is non-empty."""
        if not v or v.isspace():
            raise ValueError("suffix cannot be empty")
        return v

    @model_validator(mode="after")
    def validate_distinct(self) -> "MigrationSuffixes":
        """Up and down suffixes must differ, otherwise directions overlap."""
        if self.up == self.down:
            raise ValueError(f"up and down suffixes must differ, both are {self.up!r}")
        return self

    def for_direction(self, direction: Direction) -> str:
        """Return the suffix that selects migrations for ``direction``."""
        return self.up if Direction(direction) is Direction.UP else self.down


class DatabaseSettings(BaseModel):
    """
    SQLite database settings.

    Attributes:
        path: Filesystem path to the SQLite database file
        timeout_seconds: How long SQLite waits on a locked database
    """

    path: str = "bookshelf.db"
    timeout_seconds: float = 5.0

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        """Validate path is non-empty."""
        if not v or v.isspace():
            raise ValueError("database path cannot be empty")
        return v

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Validate timeout is positive."""
        if v <= 0:
            raise ValueError(f"timeout_seconds must be positive, got: {v}")
        return v


class TeardownSettings(BaseModel):
    """
    Connection teardown settings.

    Attributes:
        deadline_seconds: Hard deadline for closing the connection
        backoff_unit_seconds: Base wait between close attempts (doubles each retry)
    """

    deadline_seconds: float = 10.0
    backoff_unit_seconds: float = 1.0

    @field_validator("deadline_seconds", "backoff_unit_seconds")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        """Validate durations are positive."""
        if v <= 0:
            raise ValueError(f"duration must be positive, got: {v}")
        return v


class MigrateConfig(BaseModel):
    """
    Root configuration model for migrate.yaml.

    Example YAML:
        migrations_dir: ./migrations
        suffixes:
          up: up.sql
          down: down.sql
        database:
          path: ./bookshelf.db
          timeout_seconds: 5
        teardown:
          deadline_seconds: 10
          backoff_unit_seconds: 1
    """

    migrations_dir: str = "migrations"
    suffixes: MigrationSuffixes = Field(default_factory=MigrationSuffixes)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    teardown: TeardownSettings = Field(default_factory=TeardownSettings)

    @field_validator("migrations_dir")
    @classmethod
    def validate_migrations_dir(cls, v: str) -> str:
        """Validate migrations_dir is non-empty."""
        if not v or v.isspace():
            raise ValueError("migrations_dir cannot be empty")
        return v
