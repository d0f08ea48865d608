"""
Retraining state machine driven by catalog change notifications.

Notifications are handed to a single worker thread through a one-slot
mailbox: a notification arriving while a run is in flight replaces any
notification still waiting, and the newest one is processed once the run
completes. Inference keeps reading the last published snapshot the whole
time.
"""

from enum import Enum
from typing import Any, Optional
import threading

from intent_service.domain.models.engine_state import EngineState, EngineStatus
from intent_service.domain.services.catalog_service import parse_catalog
from intent_service.domain.services.change_detector import fingerprint
from intent_service.infrastructure.ai.intent.model_store import FileModelStore
from intent_service.infrastructure.ai.intent.trainer import IntentTrainer
from intent_service.utils.exceptions import (
    CatalogValidationError,
    PersistenceError,
    TrainingDataError
)
from intent_service.utils.logger import get_logger

logger = get_logger(__name__)

_EMPTY = object()


class UpdateOutcome(str, Enum):
    """Result of processing one catalog notification"""
    RETRAINED = "retrained"
    UNCHANGED = "unchanged"
    REJECTED = "rejected"
    FAILED = "failed"
    SUPERSEDED = "superseded"


class RetrainingOrchestrator:
    """
    Decides when to retrain and publishes new models.

    `handle_update` runs one full cycle synchronously; `submit` queues a
    notification for the background worker started by `start_worker`.
    """

    def __init__(
        self,
        state: EngineState,
        trainer: IntentTrainer,
        model_store: FileModelStore
    ):
        """
        Initialize the orchestrator.

        Args:
            state: Runtime state shared with the chat service
            trainer: Trainer used for every run
            model_store: Persistence for trained models
        """
        self.state = state
        self.trainer = trainer
        self.model_store = model_store
        self.training_runs = 0

        self._cycle_lock = threading.Lock()
        self._condition = threading.Condition()
        self._pending: Any = _EMPTY
        self._busy = False
        self._stopped = False
        self._worker: Optional[threading.Thread] = None
        self._unusable_fingerprint: Optional[str] = None

    def start(self) -> EngineStatus:
        """
        Restore the last persisted model, if any.

        The persisted fingerprint is kept so an unchanged catalog does not
        retrain after a restart; an artifact without one retrains on the
        first catalog received.

        Returns:
            Engine status after the load
        """
        model = self.model_store.load()
        if model is None:
            logger.info("Waiting for catalog data to train model")
            return self.state.status

        self.state.publish(model, None, model.fingerprint)
        logger.info(
            "Restored persisted model",
            extra={"has_fingerprint": model.fingerprint is not None}
        )
        return self.state.status

    # ------------------------------------------------------------------
    # Worker
    # ------------------------------------------------------------------

    def start_worker(self) -> None:
        """Start the background thread consuming submitted notifications."""
        with self._condition:
            if self._worker is not None and self._worker.is_alive():
                return
            self._stopped = False
            self._worker = threading.Thread(
                target=self._run,
                name="retraining-worker",
                daemon=True
            )
            self._worker.start()

    def submit(self, raw_catalog: Optional[Any]) -> None:
        """
        Queue a catalog notification without blocking.

        Args:
            raw_catalog: Stored catalog value as delivered by the store
        """
        with self._condition:
            if self._pending is not _EMPTY:
                logger.info("Coalescing catalog notification with a pending one")
            self._pending = raw_catalog
            self._condition.notify_all()

    def wait_until_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Block until no notification is pending or being processed.

        Returns:
            False if the timeout expired first
        """
        with self._condition:
            return self._condition.wait_for(
                lambda: self._pending is _EMPTY and not self._busy,
                timeout
            )

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop the worker after the cycle in flight, if any."""
        with self._condition:
            self._stopped = True
            self._condition.notify_all()
        if self._worker is not None:
            self._worker.join(timeout)
            self._worker = None

    def _run(self) -> None:
        while True:
            with self._condition:
                while self._pending is _EMPTY and not self._stopped:
                    self._condition.wait()
                if self._stopped:
                    return
                raw_catalog = self._pending
                self._pending = _EMPTY
                self._busy = True
            try:
                self.handle_update(raw_catalog)
            except Exception as e:
                logger.exception(f"Unexpected error in retraining worker: {str(e)}")
                self.state.last_error = str(e)
            finally:
                with self._condition:
                    self._busy = False
                    self._condition.notify_all()

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def handle_update(self, raw_catalog: Optional[Any]) -> UpdateOutcome:
        """
        Process one catalog notification.

        Args:
            raw_catalog: Stored catalog value

        Returns:
            What the notification led to; failures are logged and leave
            the served snapshot untouched
        """
        with self._cycle_lock:
            return self._handle_update(raw_catalog)

    def _handle_update(self, raw_catalog: Optional[Any]) -> UpdateOutcome:
        logger.info("Catalog data change detected")
        try:
            catalog = parse_catalog(raw_catalog)
        except CatalogValidationError as e:
            self._record_failure(f"Invalid catalog data: {e.message}", e.details)
            return UpdateOutcome.REJECTED

        new_fingerprint = fingerprint(catalog)
        snapshot = self.state.snapshot

        if new_fingerprint == snapshot.fingerprint:
            if self.state.adopt_catalog(catalog):
                logger.info("Data is unchanged. Catalog attached to the restored model")
            else:
                logger.info("Data is unchanged. No retraining needed")
            return UpdateOutcome.UNCHANGED

        if new_fingerprint == self._unusable_fingerprint:
            logger.info("Catalog was already rejected for training, skipping")
            return UpdateOutcome.FAILED

        logger.info("Data has changed. Retraining model", extra={"fingerprint": new_fingerprint})
        self.state.set_retraining(True)
        try:
            self.training_runs += 1
            model = self.trainer.train(catalog, fingerprint=new_fingerprint)
        except TrainingDataError as e:
            self._unusable_fingerprint = new_fingerprint
            self._record_failure(f"Training aborted: {e.message}", e.details)
            return UpdateOutcome.FAILED
        except Exception as e:
            logger.exception(f"Training failed: {str(e)}")
            self.state.last_error = f"Training failed: {str(e)}"
            return UpdateOutcome.FAILED
        finally:
            self.state.set_retraining(False)

        if self._superseded(new_fingerprint):
            logger.info("Discarding trained model, a newer catalog is pending")
            return UpdateOutcome.SUPERSEDED

        durable = True
        try:
            self.model_store.save(model)
        except PersistenceError as e:
            durable = False
            self._record_failure(f"Model not persisted: {e.message}", e.details)

        self.state.publish(model, catalog, new_fingerprint, durable=durable)
        if durable:
            self.state.last_error = None
        logger.info("Model is now updated and ready", extra={"durable": durable})
        return UpdateOutcome.RETRAINED

    def _superseded(self, trained_fingerprint: str) -> bool:
        with self._condition:
            pending = self._pending
        if pending is _EMPTY:
            return False
        try:
            return fingerprint(parse_catalog(pending)) != trained_fingerprint
        except CatalogValidationError:
            return False

    def _record_failure(self, message: str, details: Optional[dict] = None) -> None:
        logger.error(message, extra={"details": details or {}})
        self.state.last_error = message
