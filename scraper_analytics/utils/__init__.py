"""Logging, errors, URL helpers and serialization."""
