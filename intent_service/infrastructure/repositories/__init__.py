"""
Repository implementations for the intent catalog.

Provides the MongoDB-backed store used in production and an in-process
store for tests and local runs.
"""

from intent_service.infrastructure.repositories.catalog_repository import MongoCatalogRepository
from intent_service.infrastructure.repositories.memory_catalog_repository import InMemoryCatalogRepository

__all__ = [
    'MongoCatalogRepository',
    'InMemoryCatalogRepository'
]
