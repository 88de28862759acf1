"""Shared helpers (logging, HTTP, retry)."""
