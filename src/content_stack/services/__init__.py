"""Versioning, locking and release services."""
