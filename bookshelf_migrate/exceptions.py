"""
Custom exceptions for bookshelf-migrate.

This module provides a hierarchy of exceptions that enable type-safe error
handling throughout the application. All recoverable exceptions inherit from
the base BookshelfMigrateError for consistent catching.

Exception Hierarchy:
    BookshelfMigrateError (base)
    ├── ConfigurationError
    │   ├── ConfigFileNotFoundError
    │   └── ConfigValidationError
    ├── MigrationError
    │   ├── MigrationDirectoryNotFoundError
    │   ├── EmptyMigrationSetError
    │   └── MigrationFileReadError
    └── StoreError
        ├── StoreConnectionError
        └── MigrationApplyError

    TeardownTimeoutError (SystemExit subclass, fatal)

Usage:
    from bookshelf_migrate.exceptions import MigrationDirectoryNotFoundError

    try:
        batch = migrate_up(sys.stdout, store, "migrations")
    except MigrationDirectoryNotFoundError as e:
        logger.error(f"Migration directory missing: {e}")
        sys.exit(4)
"""


class BookshelfMigrateError(Exception):
    """
    Base exception for all bookshelf-migrate errors.

    All custom exceptions in this application should inherit from this class,
    with the single exception of TeardownTimeoutError which is fatal.

    Example:
        try:
            # application code
            pass
        except BookshelfMigrateError as e:
            logger.error(f"Application error: {e}")
    """

    pass


# ============================================================================
# Configuration Errors
# ============================================================================


class ConfigurationError(BookshelfMigrateError):
    """
    Base class for configuration-related errors.

    Should be caught and result in exit code 1 (configuration error).
    """

    pass


class ConfigFileNotFoundError(ConfigurationError):
    """
    Configuration file does not exist at the specified path.

    Example:
        raise ConfigFileNotFoundError("/path/to/migrate.yaml")
    """

    pass


class ConfigValidationError(ConfigurationError):
    """
    Configuration file is invalid (YAML syntax or schema validation failed).

    Example:
        raise ConfigValidationError("Field 'suffixes.up' cannot be empty")
    """

    pass


# ============================================================================
# Migration Errors
# ============================================================================


class MigrationError(BookshelfMigrateError):
    """Base class for errors raised while discovering or reading migrations."""

    pass


class MigrationDirectoryNotFoundError(MigrationError):
    """
    The migration directory does not exist.

    Raised before any listing is attempted. Nothing is written to the
    progress sink.

    Example:
        raise MigrationDirectoryNotFoundError("migration directory does not exist: ./migrations")
    """

    def __init__(self, message: str, directory: str | None = None):
        super().__init__(message)
        self.directory = directory


class EmptyMigrationSetError(MigrationError):
    """
    The migration directory holds no candidates for the requested direction.

    Evaluated after suffix filtering, so a directory with only down files
    raises this when up migrations are requested.
    """

    def __init__(
        self,
        message: str,
        directory: str | None = None,
        direction: str | None = None,
    ):
        super().__init__(message)
        self.directory = directory
        self.direction = direction


class MigrationFileReadError(MigrationError):
    """
    A selected migration file could not be read.

    Fatal for the run. The underlying OSError is chained as __cause__.

    Attributes:
        name: Base name of the migration file that failed to read
    """

    def __init__(self, message: str, name: str):
        super().__init__(message)
        self.name = name


# ============================================================================
# Store Errors
# ============================================================================


class StoreError(BookshelfMigrateError):
    """
    Base class for storage backend errors.

    Should be caught and result in exit code 2 (database error) when the
    store cannot be used at all.
    """

    pass


class StoreConnectionError(StoreError):
    """
    The backing database could not be opened.

    Example:
        raise StoreConnectionError("unable to open database 'bookshelf.db': disk I/O error")
    """

    pass


class MigrationApplyError(StoreError):
    """
    The backend rejected a migration's content.

    Raised by the bundled store adapters. The migration runner never wraps
    this (or any other store exception); it is reported and kept verbatim.

    Attributes:
        name: Name of the migration that failed
    """

    def __init__(self, message: str, name: str | None = None):
        super().__init__(message)
        self.name = name


# ============================================================================
# Teardown Errors
# ============================================================================


class TeardownTimeoutError(SystemExit):
    """
    A resource could not be released before its teardown deadline.

    Subclasses SystemExit: a leaked long-lived resource stops the process,
    and generic ``except Exception`` handlers do not intercept it.

    Attributes:
        resource: Human-readable name of the resource being released
        deadline: Deadline in seconds that was exceeded
    """

    EXIT_CODE = 70

    def __init__(self, resource: str, deadline: float):
        super().__init__(self.EXIT_CODE)
        self.resource = resource
        self.deadline = deadline

    def __str__(self) -> str:
        return f"timeout of {self.deadline}s exceeded releasing {self.resource}"
