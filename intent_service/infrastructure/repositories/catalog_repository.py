from typing import Any, Dict, Optional
import threading

from pymongo.errors import PyMongoError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from intent_service.domain.interfaces.catalog_repository_interface import (
    CatalogCallback,
    CatalogRepository,
    ErrorCallback,
    Subscription
)
from intent_service.domain.models.intent import Catalog
from intent_service.infrastructure.database.mongodb.client import MongoDBClient
from intent_service.utils.exceptions import StoreUnavailableError
from intent_service.utils.logger import get_logger

logger = get_logger(__name__)

# Change event types that carry a new version of the document
_DOCUMENT_EVENTS = ("insert", "replace", "update")


class MongoCatalogRepository(CatalogRepository):
    """
    Catalog store backed by a single MongoDB document.

    The catalog lives in `{_id: document_id, intents: [...]}`; changes are
    observed through a change stream, which requires a replica set.
    """

    def __init__(
        self,
        client: MongoDBClient,
        collection_name: str = "catalogs",
        document_id: str = "intents"
    ):
        """
        Initialize the repository.

        Args:
            client: MongoDB client wrapper
            collection_name: Collection holding the catalog document
            document_id: `_id` of the catalog document
        """
        self.client = client
        self.collection_name = collection_name
        self.document_id = document_id

    @property
    def collection(self):
        return self.client.get_collection(self.collection_name)

    def read_catalog(self) -> Optional[Dict[str, Any]]:
        try:
            document = self.collection.find_one({"_id": self.document_id})
        except PyMongoError as e:
            logger.error(f"Failed to read catalog: {str(e)}")
            raise StoreUnavailableError(f"Failed to read catalog: {str(e)}") from e
        return self._strip(document)

    def write_catalog(self, catalog: Catalog) -> None:
        document = {"_id": self.document_id, **catalog.to_document()}
        try:
            self.collection.replace_one({"_id": self.document_id}, document, upsert=True)
        except PyMongoError as e:
            logger.error(f"Failed to write catalog: {str(e)}")
            raise StoreUnavailableError(f"Failed to write catalog: {str(e)}") from e
        logger.info("Catalog written", extra={"intents": len(catalog.intents)})

    def subscribe(self, callback: CatalogCallback, on_error: ErrorCallback) -> Subscription:
        subscription = ChangeStreamSubscription(self, callback, on_error)
        subscription.start()
        return subscription

    def health_check(self) -> Dict[str, Any]:
        return self.client.health_check()

    def close(self) -> None:
        self.client.close()

    @staticmethod
    def _strip(document: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        if document is None:
            return None
        return {key: value for key, value in document.items() if key != "_id"}


class ChangeStreamSubscription(Subscription):
    """
    Delivers the catalog document to a callback from a background thread.

    The current value is delivered first, then every change reported by
    the change stream. The current value is read again whenever the stream
    has to be opened without a resume token. Losing the stream for good is reported once through
    `on_error`.
    """

    def __init__(
        self,
        repository: MongoCatalogRepository,
        callback: CatalogCallback,
        on_error: ErrorCallback,
        max_await_time_ms: int = 1000
    ):
        self.repository = repository
        self.callback = callback
        self.on_error = on_error
        self.max_await_time_ms = max_await_time_ms
        self._resume_token = None
        self._stop = threading.Event()
        self._thread = threading.Thread(
            target=self._run,
            name="catalog-change-stream",
            daemon=True
        )

    def start(self) -> None:
        self._thread.start()

    def close(self) -> None:
        self._stop.set()
        if self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout=(self.max_await_time_ms / 1000) + 5)

    def _run(self) -> None:
        try:
            while not self._stop.is_set():
                fresh = self._resume_token is None
                self._consume(self._open_stream(), deliver_current=fresh)
        except (PyMongoError, StoreUnavailableError) as e:
            if self._stop.is_set():
                return
            logger.critical(f"Catalog change stream lost: {str(e)}")
            error = e if isinstance(e, StoreUnavailableError) else StoreUnavailableError(
                f"Catalog change stream lost: {str(e)}"
            )
            self.on_error(error)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type((PyMongoError, StoreUnavailableError)),
        reraise=True
    )
    def _open_stream(self):
        return self.repository.collection.watch(
            pipeline=[{"$match": {"documentKey._id": self.repository.document_id}}],
            full_document="updateLookup",
            max_await_time_ms=self.max_await_time_ms,
            resume_after=self._resume_token
        )

    def _consume(self, stream, deliver_current: bool = False) -> None:
        with stream:
            if deliver_current:
                # Read only once the stream is open: a write landing in
                # between is then reported by the stream as well
                self._deliver(self.repository.read_catalog())
            try:
                while not self._stop.is_set() and stream.alive:
                    change = stream.try_next()
                    if change is None:
                        continue
                    self._resume_token = stream.resume_token
                    self._dispatch(change)
            except PyMongoError as e:
                # Reopened with the last resume token by the caller
                logger.warning(f"Catalog change stream interrupted: {str(e)}")

    def _dispatch(self, change: Dict[str, Any]) -> None:
        operation = change.get("operationType")
        if operation in _DOCUMENT_EVENTS:
            self._deliver(MongoCatalogRepository._strip(change.get("fullDocument")))
        elif operation in ("delete", "drop", "invalidate"):
            if operation == "invalidate":
                # An invalidated stream cannot be resumed
                self._resume_token = None
            self._deliver(None)

    def _deliver(self, document: Optional[Dict[str, Any]]) -> None:
        try:
            self.callback(document)
        except Exception as e:
            logger.exception(f"Catalog subscriber failed: {str(e)}")
