from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

from ..models.intent import Catalog

CatalogCallback = Callable[[Optional[Dict[str, Any]]], None]
ErrorCallback = Callable[[Exception], None]


class Subscription(ABC):
    """Handle on an active catalog change subscription."""

    @abstractmethod
    def close(self) -> None:
        """
        Stop delivering notifications and release the underlying resources.
        """
        pass


class CatalogRepository(ABC):
    """
    Abstract interface for the document store holding the intent catalog.

    Values exchanged through `read_catalog` and the subscription are the
    raw stored documents: the store is externally owned and may hold data
    that does not validate.
    """

    @abstractmethod
    def read_catalog(self) -> Optional[Dict[str, Any]]:
        """
        Read the stored catalog.

        Returns:
            The stored document, or None if nothing is stored

        Raises:
            StoreUnavailableError: If the store cannot be reached
        """
        pass

    @abstractmethod
    def write_catalog(self, catalog: Catalog) -> None:
        """
        Replace the stored catalog.

        Args:
            catalog: Catalog to store

        Raises:
            StoreUnavailableError: If the store cannot be reached
        """
        pass

    @abstractmethod
    def subscribe(self, callback: CatalogCallback, on_error: ErrorCallback) -> Subscription:
        """
        Watch the stored catalog.

        The callback receives the current value first and then every new
        value, at most once per underlying change. Writes made through
        `write_catalog` are delivered like any other change.

        Args:
            callback: Receives each stored value (None when deleted)
            on_error: Receives a StoreUnavailableError when the change
                feed is lost for good

        Returns:
            Subscription handle
        """
        pass

    def health_check(self) -> Dict[str, Any]:
        """
        Report whether the store can be reached.

        Returns:
            Dictionary with a `status` of "ok" or "error"
        """
        return {"status": "ok"}

    def close(self) -> None:
        """Release store resources."""
        pass
