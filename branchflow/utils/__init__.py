"""Shared utilities: logging setup, async subprocess execution, retries."""
