"""Infrastructure layer implementations."""

from kardex.infrastructure import importers, storage

__all__ = ["storage", "importers"]
