from intent_service.domain.models.intent import Catalog, Intent, Prediction
from intent_service.domain.models.trained_model import TrainedModel
from intent_service.domain.models.engine_state import EngineState, EngineStatus, ServingSnapshot

__all__ = [
    "Catalog",
    "Intent",
    "Prediction",
    "TrainedModel",
    "EngineState",
    "EngineStatus",
    "ServingSnapshot",
]
