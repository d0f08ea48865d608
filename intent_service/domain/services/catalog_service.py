"""
Service responsible for validating and merging intent catalog edits.

Clients push partial catalogs; each pushed intent replaces the stored
intent with the same tag as a whole, everything else is kept. The merged
catalog is written back to the store, whose change feed then triggers
retraining.
"""

from typing import Any, Dict, Optional

from pydantic import ValidationError

from intent_service.domain.interfaces.catalog_repository_interface import CatalogRepository
from intent_service.domain.models.intent import Catalog, Intent
from intent_service.utils.exceptions import CatalogValidationError
from intent_service.utils.logger import get_logger

logger = get_logger(__name__)


def parse_catalog(raw: Any) -> Catalog:
    """
    Validate the shape of a raw catalog document.

    Args:
        raw: Decoded JSON value

    Returns:
        The validated catalog

    Raises:
        CatalogValidationError: If `intents` is missing, not a list, or
            holds malformed items
    """
    if not isinstance(raw, dict) or not isinstance(raw.get("intents"), list):
        raise CatalogValidationError()
    try:
        return Catalog.model_validate({"intents": raw["intents"]})
    except ValidationError as e:
        raise CatalogValidationError(
            "Invalid intent entries in catalog",
            details={"errors": e.errors(include_url=False, include_context=False)}
        ) from e


def merge_catalogs(existing: Catalog, incoming: Catalog) -> Catalog:
    """
    Merge an incoming partial catalog into an existing one.

    Args:
        existing: Current catalog
        incoming: Intents to insert or replace

    Returns:
        Catalog with one intent per tag; existing tags keep their position,
        new tags are appended, and an incoming intent fully replaces the
        existing one with the same tag
    """
    merged: Dict[str, Intent] = {}
    for intent in existing.intents:
        merged[intent.tag] = intent
    for intent in incoming.intents:
        merged[intent.tag] = intent
    return Catalog(intents=list(merged.values()))


class CatalogService:
    """
    Service handling client catalog edits against the catalog store.
    """

    MERGE_MESSAGE = "Intents data updated/merged successfully. The model will now retrain automatically."

    def __init__(self, repository: CatalogRepository):
        """
        Initialize the catalog service.

        Args:
            repository: Store holding the catalog
        """
        self.repository = repository

    def read_catalog(self) -> Catalog:
        """
        Read the stored catalog, treating missing or malformed data as empty.

        Raises:
            StoreUnavailableError: If the store cannot be reached
        """
        raw = self.repository.read_catalog()
        if raw is None:
            return Catalog()
        try:
            return parse_catalog(raw)
        except CatalogValidationError as e:
            logger.warning(
                f"Stored catalog is malformed, merging into an empty catalog: {e.message}",
                extra={"details": e.details}
            )
            return Catalog()

    def submit_edit(self, partial_catalog: Optional[Any]) -> Dict[str, str]:
        """
        Merge a partial catalog into the stored one and persist the result.

        Args:
            partial_catalog: Raw `{"intents": [...]}` document from the client

        Returns:
            Confirmation message

        Raises:
            CatalogValidationError: If the partial catalog is malformed;
                the store is not touched in that case
            StoreUnavailableError: If the store cannot be reached
        """
        incoming = parse_catalog(partial_catalog)
        existing = self.read_catalog()
        merged = merge_catalogs(existing, incoming)
        self.repository.write_catalog(merged)

        logger.info(
            "Merged catalog edit",
            extra={
                "incoming_intents": len(incoming.intents),
                "total_intents": len(merged.intents),
            }
        )
        return {"message": self.MERGE_MESSAGE}
