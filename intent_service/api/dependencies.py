from typing import Optional
import hmac
import json
import uuid

from fastapi import Depends, Header, Request

from intent_service.container import ServiceContainer
from intent_service.domain.services.catalog_service import CatalogService
from intent_service.domain.services.chat_service import ChatService
from intent_service.utils.exceptions import ForbiddenException, UnauthorizedException
from intent_service.utils.logger import get_request_logger, LoggerAdapter

BEARER_PREFIX = "Bearer "


def get_correlation_id(
    x_correlation_id: Optional[str] = Header(None)
) -> str:
    """
    Extract correlation ID from headers or generate a new one.

    Args:
        x_correlation_id: Correlation ID from request header

    Returns:
        str: Correlation ID
    """
    return x_correlation_id or str(uuid.uuid4())


def get_request_logger_dependency(
    correlation_id: str = Depends(get_correlation_id)
) -> LoggerAdapter:
    """
    Provide a configured logger for the request context.

    Args:
        correlation_id: Request correlation ID

    Returns:
        LoggerAdapter: Configured logger
    """
    return get_request_logger("intent_service.api", correlation_id)


def get_container(request: Request) -> ServiceContainer:
    """Service container attached to the application at startup."""
    return request.app.state.container


def get_chat_service(
    container: ServiceContainer = Depends(get_container)
) -> ChatService:
    return container.chat_service


def get_catalog_service(
    container: ServiceContainer = Depends(get_container)
) -> CatalogService:
    return container.catalog_service


async def verify_password(
    request: Request,
    authorization: Optional[str] = Header(None),
    container: ServiceContainer = Depends(get_container)
) -> None:
    """
    Check the shared API password.

    The password is read from the JSON body `password` key or from the
    Authorization header, with or without a `Bearer ` prefix.

    Raises:
        UnauthorizedException: If no password was provided
        ForbiddenException: If the password is wrong
    """
    provided = None
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        body = None
    if isinstance(body, dict) and isinstance(body.get("password"), str):
        provided = body["password"]
    if not provided:
        provided = authorization
    if not provided:
        raise UnauthorizedException()

    if provided.startswith(BEARER_PREFIX):
        provided = provided[len(BEARER_PREFIX):]

    expected = container.settings.API_PASSWORD
    if not hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8")):
        raise ForbiddenException()
