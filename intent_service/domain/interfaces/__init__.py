from intent_service.domain.interfaces.catalog_repository_interface import (
    CatalogRepository,
    Subscription
)

__all__ = ["CatalogRepository", "Subscription"]
