"""Shared utilities: logging, console output, time and teardown helpers."""
