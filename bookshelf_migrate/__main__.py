"""Allow running as ``python -m bookshelf_migrate``."""

from bookshelf_migrate.cli import app

if __name__ == "__main__":
    app()
