"""Shared utilities: logging, retries, file I/O."""
