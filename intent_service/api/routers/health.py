from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, status

from intent_service.api.dependencies import get_container
from intent_service.container import ServiceContainer
from intent_service.domain.models.engine_state import EngineStatus

router = APIRouter(prefix="/health")


@router.get(
    "",
    status_code=status.HTTP_200_OK,
    summary="Health check",
    response_description="Service and engine status"
)
def get_health(
    container: ServiceContainer = Depends(get_container)
) -> Dict[str, Any]:
    """
    Health check endpoint including the state of the catalog store and of
    the classification engine.

    Returns:
        Dict: Service information and engine status
    """
    settings = container.settings
    state = container.state
    snapshot = state.snapshot
    engine_status = state.status
    store = container.repository.health_check()
    healthy = snapshot.is_serving and store.get("status") == "ok"

    return {
        "status": "ok" if healthy else "degraded",
        "service": settings.SERVICE_NAME,
        "version": settings.VERSION,
        "environment": settings.ENVIRONMENT,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "store": {"backend": settings.CATALOG_BACKEND, **store},
        "engine": {
            "status": engine_status.value,
            "model_loaded": snapshot.model is not None,
            "catalog_loaded": snapshot.catalog is not None,
            "durable": snapshot.durable,
            "fingerprint": snapshot.fingerprint,
            "vocabulary_size": snapshot.model.input_size if snapshot.model else 0,
            "label_count": snapshot.model.output_size if snapshot.model else 0,
            "training_runs": container.orchestrator.training_runs,
            "retraining": engine_status == EngineStatus.RETRAINING,
            "last_error": state.last_error,
        },
    }
