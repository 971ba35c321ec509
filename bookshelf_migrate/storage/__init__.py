"""Migration store protocol and its SQLite and in-memory adapters."""
