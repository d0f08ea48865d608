"""
Request and response schemas of the HTTP API.
"""

from intent_service.domain.schemas.chat import (
    CatalogEditRequest,
    CatalogEditResponse,
    CatalogResponse,
    ChatRequest,
    ChatResponse
)

__all__ = [
    "CatalogEditRequest",
    "CatalogEditResponse",
    "CatalogResponse",
    "ChatRequest",
    "ChatResponse",
]
