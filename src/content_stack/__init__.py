"""Content versioning, hierarchical locking and release management."""
