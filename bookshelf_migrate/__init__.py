"""
bookshelf-migrate: apply a directory of versioned SQL migrations.

Migrations are discovered by filename suffix, ordered by name and applied
one at a time through a pluggable MigrationStore, halting on the first
failure.
"""

__version__ = "0.1.0"
