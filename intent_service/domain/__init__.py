"""
Domain layer package for the Intent Service.

This package contains the domain models, interfaces, schemas and services
that define what the service does with intent catalogs and chat messages.
"""

from intent_service.domain.models.intent import Catalog, Intent, Prediction

__all__ = [
    # Domain Models
    "Catalog",
    "Intent",
    "Prediction",
]
