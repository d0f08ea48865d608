import copy
import threading
from typing import Any, Dict, List, Optional

from intent_service.domain.interfaces.catalog_repository_interface import (
    CatalogCallback,
    CatalogRepository,
    ErrorCallback,
    Subscription
)
from intent_service.domain.models.intent import Catalog
from intent_service.utils.logger import get_logger

logger = get_logger(__name__)


class MemorySubscription(Subscription):
    """Subscription handle of the in-memory repository."""

    def __init__(self, repository: "InMemoryCatalogRepository", callback: CatalogCallback, on_error: ErrorCallback):
        self.repository = repository
        self.callback = callback
        self.on_error = on_error
        self.active = True

    def close(self) -> None:
        self.active = False
        self.repository._unsubscribe(self)


class InMemoryCatalogRepository(CatalogRepository):
    """
    In-process implementation of the CatalogRepository interface.

    Notifications are delivered synchronously on the writing thread, after
    the store lock has been released.
    """

    def __init__(self, document: Optional[Dict[str, Any]] = None):
        """
        Initialize the repository.

        Args:
            document: Initial stored value
        """
        self._lock = threading.RLock()
        self._document = copy.deepcopy(document)
        self._subscriptions: List[MemorySubscription] = []
        logger.info("In-memory catalog store initialized")

    def read_catalog(self) -> Optional[Dict[str, Any]]:
        with self._lock:
            return copy.deepcopy(self._document)

    def write_catalog(self, catalog: Catalog) -> None:
        self.put_document(catalog.to_document())

    def put_document(self, document: Optional[Dict[str, Any]]) -> None:
        """
        Replace the stored value with an arbitrary document.

        Stands in for edits made directly in the store by other clients,
        which are not validated.
        """
        with self._lock:
            self._document = copy.deepcopy(document)
            subscriptions = list(self._subscriptions)
        for subscription in subscriptions:
            self._deliver(subscription, document)

    def subscribe(self, callback: CatalogCallback, on_error: ErrorCallback) -> Subscription:
        subscription = MemorySubscription(self, callback, on_error)
        with self._lock:
            self._subscriptions.append(subscription)
            current = self._document
        self._deliver(subscription, current)
        return subscription

    def _unsubscribe(self, subscription: MemorySubscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    @staticmethod
    def _deliver(subscription: MemorySubscription, document: Optional[Dict[str, Any]]) -> None:
        if not subscription.active:
            return
        try:
            subscription.callback(copy.deepcopy(document))
        except Exception as e:
            logger.exception(f"Catalog subscriber failed: {str(e)}")
