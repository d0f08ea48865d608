from fastapi import APIRouter, Depends, status

from intent_service.api.dependencies import (
    get_catalog_service,
    get_chat_service,
    get_container,
    get_request_logger_dependency,
    verify_password
)
from intent_service.container import ServiceContainer
from intent_service.domain.schemas.chat import (
    CatalogEditRequest,
    CatalogEditResponse,
    CatalogResponse,
    ChatRequest,
    ChatResponse
)
from intent_service.domain.services.catalog_service import CatalogService
from intent_service.domain.services.chat_service import ChatService
from intent_service.utils.exceptions import ModelNotReadyError
from intent_service.utils.logger import LoggerAdapter

router = APIRouter(dependencies=[Depends(verify_password)])


@router.post(
    "/chat",
    response_model=ChatResponse,
    status_code=status.HTTP_200_OK,
    summary="Answer a chat message",
    response_description="Response of the predicted intent"
)
def chat(
    request: ChatRequest,
    chat_service: ChatService = Depends(get_chat_service),
    logger: LoggerAdapter = Depends(get_request_logger_dependency)
) -> ChatResponse:
    """
    Classify a message and answer with one of the intent's responses.

    Args:
        request: Chat message
        chat_service: Chat service
        logger: Request logger

    Returns:
        ChatResponse: Chosen response and confidence
    """
    logger.debug("Received chat message")
    return ChatResponse(**chat_service.classify(request.message))


@router.post(
    "/update-intents",
    response_model=CatalogEditResponse,
    status_code=status.HTTP_200_OK,
    summary="Merge intents into the catalog",
    response_description="Merge confirmation"
)
def update_intents(
    request: CatalogEditRequest,
    catalog_service: CatalogService = Depends(get_catalog_service),
    logger: LoggerAdapter = Depends(get_request_logger_dependency)
) -> CatalogEditResponse:
    """
    Merge a partial catalog into the stored one.

    Intents are matched by tag; a pushed intent replaces the stored one
    entirely. The model retrains once the store reports the change.

    Args:
        request: Partial catalog
        catalog_service: Catalog service
        logger: Request logger

    Returns:
        CatalogEditResponse: Confirmation message
    """
    logger.info("Received catalog edit")
    return CatalogEditResponse(**catalog_service.submit_edit(request.intentsData))


@router.get(
    "/intents",
    response_model=CatalogResponse,
    status_code=status.HTTP_200_OK,
    summary="Get the served catalog",
    response_description="Catalog the current model was trained on"
)
def get_intents(
    container: ServiceContainer = Depends(get_container)
) -> CatalogResponse:
    """
    Return the catalog currently served alongside the model.

    Raises:
        ModelNotReadyError: If no catalog is being served yet
    """
    snapshot = container.state.snapshot
    if snapshot.catalog is None:
        raise ModelNotReadyError("No catalog is being served yet.")
    return CatalogResponse(
        intents=snapshot.catalog.to_document()["intents"],
        fingerprint=snapshot.fingerprint
    )
