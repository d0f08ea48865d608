from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional
import threading

from intent_service.domain.models.intent import Catalog
from intent_service.domain.models.trained_model import TrainedModel


class EngineStatus(str, Enum):
    """Lifecycle of the serving engine"""
    COLD = "cold"
    READY = "ready"
    RETRAINING = "retraining"


@dataclass(frozen=True)
class ServingSnapshot:
    """
    Immutable view of what the engine serves.

    `model` and `catalog` are always published together so a reader never
    pairs a model with a catalog from another training run.
    """
    model: Optional[TrainedModel] = None
    catalog: Optional[Catalog] = None
    fingerprint: Optional[str] = None
    durable: bool = True

    @property
    def is_serving(self) -> bool:
        return self.model is not None and self.catalog is not None


class EngineState:
    """
    Holder of the engine runtime state.

    Readers take `snapshot` once per request; writers replace the whole
    snapshot under a lock.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._snapshot = ServingSnapshot()
        self._retraining = False
        self._last_error: Optional[str] = None

    @property
    def snapshot(self) -> ServingSnapshot:
        with self._lock:
            return self._snapshot

    @property
    def last_error(self) -> Optional[str]:
        """Message of the last failed update, cleared by a durable publish."""
        with self._lock:
            return self._last_error

    @last_error.setter
    def last_error(self, message: Optional[str]) -> None:
        with self._lock:
            self._last_error = message

    @property
    def status(self) -> EngineStatus:
        with self._lock:
            if self._retraining:
                return EngineStatus.RETRAINING
            if self._snapshot.model is None:
                return EngineStatus.COLD
            return EngineStatus.READY

    def publish(
        self,
        model: TrainedModel,
        catalog: Optional[Catalog],
        fingerprint: Optional[str],
        durable: bool = True
    ) -> ServingSnapshot:
        """
        Atomically replace the served model, catalog and fingerprint.

        Args:
            model: Newly trained or loaded model
            catalog: Catalog the model was trained on, None after a cold load
            fingerprint: Fingerprint of that catalog
            durable: Whether the model was persisted successfully

        Returns:
            The published snapshot
        """
        snapshot = ServingSnapshot(
            model=model,
            catalog=catalog,
            fingerprint=fingerprint,
            durable=durable,
        )
        with self._lock:
            self._snapshot = snapshot
        return snapshot

    def adopt_catalog(self, catalog: Catalog) -> bool:
        """
        Attach a catalog to the served model if none is attached yet.

        Returns:
            True if the catalog was adopted
        """
        with self._lock:
            if self._snapshot.catalog is not None:
                return False
            self._snapshot = replace(self._snapshot, catalog=catalog)
            return True

    def set_retraining(self, active: bool) -> None:
        with self._lock:
            self._retraining = active
