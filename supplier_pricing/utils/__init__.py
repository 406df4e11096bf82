"""Shared utilities: logging, errors, parsing helpers."""
