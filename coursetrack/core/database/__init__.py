"""Cassandra connection management and storage error boundary."""

from .storage import StorageError, execute


__all__ = ["StorageError", "execute"]
