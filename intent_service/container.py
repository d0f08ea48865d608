"""
Construction and lifecycle of the service's collaborators.
"""

from dataclasses import dataclass, field
from typing import Callable, Optional
import os
import signal

from intent_service.config import Settings
from intent_service.domain.interfaces.catalog_repository_interface import (
    CatalogRepository,
    Subscription
)
from intent_service.domain.models.engine_state import EngineState
from intent_service.domain.services.catalog_service import CatalogService
from intent_service.domain.services.chat_service import ChatService
from intent_service.domain.services.retraining_orchestrator import RetrainingOrchestrator
from intent_service.infrastructure.ai.intent.intent_classifier import IntentClassifier
from intent_service.infrastructure.ai.intent.model_store import FileModelStore
from intent_service.infrastructure.ai.intent.trainer import IntentTrainer
from intent_service.infrastructure.database.mongodb.client import MongoDBClient
from intent_service.infrastructure.repositories.catalog_repository import MongoCatalogRepository
from intent_service.infrastructure.repositories.memory_catalog_repository import InMemoryCatalogRepository
from intent_service.utils.logger import get_logger

logger = get_logger(__name__)


def terminate_process(error: Exception) -> None:
    """
    Stop the process after the catalog change feed was lost.

    Without the feed the served model silently drifts from the catalog,
    so the service shuts down instead of degrading.
    """
    logger.critical(f"Catalog change feed unavailable, shutting down: {str(error)}")
    os.kill(os.getpid(), signal.SIGTERM)


@dataclass
class ServiceContainer:
    """Everything the API layer needs, wired together."""
    settings: Settings
    repository: CatalogRepository
    state: EngineState
    orchestrator: RetrainingOrchestrator
    chat_service: ChatService
    catalog_service: CatalogService
    on_store_failure: Callable[[Exception], None] = terminate_process
    subscription: Optional[Subscription] = field(default=None)

    def start(self) -> None:
        """Restore the persisted model and start following the catalog."""
        self.orchestrator.start()
        self.orchestrator.start_worker()
        self.subscription = self.repository.subscribe(
            self.orchestrator.submit,
            self.on_store_failure
        )

    def stop(self) -> None:
        if self.subscription is not None:
            self.subscription.close()
            self.subscription = None
        self.orchestrator.stop(timeout=30)
        self.repository.close()


def build_repository(settings: Settings) -> CatalogRepository:
    if settings.CATALOG_BACKEND == "memory":
        return InMemoryCatalogRepository()
    client = MongoDBClient(
        connection_uri=settings.MONGODB_URI,
        database_name=settings.MONGODB_DATABASE,
        timeout_ms=settings.MONGODB_TIMEOUT_MS
    )
    return MongoCatalogRepository(
        client,
        collection_name=settings.MONGODB_CATALOG_COLLECTION,
        document_id=settings.CATALOG_DOCUMENT_ID
    )


def build_trainer(settings: Settings) -> IntentTrainer:
    return IntentTrainer({
        "epochs": settings.TRAINING_EPOCHS,
        "batch_size": settings.TRAINING_BATCH_SIZE,
        "hidden_layer_sizes": settings.HIDDEN_LAYER_SIZES,
        "alpha": settings.TRAINING_ALPHA,
        "learning_rate": settings.TRAINING_LEARNING_RATE,
        "random_state": settings.TRAINING_RANDOM_SEED,
    })


def build_container(
    settings: Settings,
    repository: Optional[CatalogRepository] = None,
    trainer: Optional[IntentTrainer] = None,
    chooser=None
) -> ServiceContainer:
    """
    Wire the service from settings.

    Args:
        settings: Application settings
        repository: Catalog store, built from settings when omitted
        trainer: Trainer, built from settings when omitted
        chooser: Response chooser passed to the chat service

    Returns:
        ServiceContainer: Unstarted container
    """
    repository = repository or build_repository(settings)
    state = EngineState()
    orchestrator = RetrainingOrchestrator(
        state=state,
        trainer=trainer or build_trainer(settings),
        model_store=FileModelStore(settings.MODEL_DIR)
    )
    classifier = IntentClassifier(
        threshold=settings.CONFIDENCE_THRESHOLD,
        default_tag=settings.DEFAULT_INTENT_TAG
    )
    return ServiceContainer(
        settings=settings,
        repository=repository,
        state=state,
        orchestrator=orchestrator,
        chat_service=ChatService(state, classifier, chooser=chooser),
        catalog_service=CatalogService(repository)
    )
