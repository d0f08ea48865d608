from contextlib import asynccontextmanager
from typing import Optional
import time
import uuid

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse

from intent_service.config import get_settings
from intent_service.container import ServiceContainer, build_container
from intent_service.utils.logger import configure_logging, get_logger
from intent_service.utils.exceptions import AppException, InvalidRequestError
from intent_service.api.routers import chat, health


# Configure logging
configure_logging()
logger = get_logger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler for startup and shutdown events.

    Args:
        app: FastAPI application instance
    """
    logger.info(f"Starting {settings.SERVICE_NAME} service")

    container: Optional[ServiceContainer] = getattr(app.state, "container", None)
    if container is None:
        container = build_container(settings)
        app.state.container = container
    container.start()

    snapshot = container.state.snapshot
    logger.info(
        "Chatbot is ready with a pre-loaded model."
        if snapshot.model is not None
        else "Waiting for catalog data to train model..."
    )

    yield

    logger.info(f"Shutting down {settings.SERVICE_NAME} service")
    container.stop()


def create_application(container: Optional[ServiceContainer] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        container: Pre-built service container, built from settings at
            startup when omitted

    Returns:
        FastAPI: Configured application instance
    """
    app = FastAPI(
        title=f"{settings.SERVICE_NAME.capitalize()} API",
        description="Intent classification chatbot API",
        version=settings.VERSION,
        lifespan=lifespan,
        debug=settings.DEBUG
    )
    if container is not None:
        app.state.container = container

    configure_middleware(app)
    register_routers(app)
    configure_exception_handlers(app)

    return app


def configure_middleware(app: FastAPI) -> None:
    """
    Configure middleware for the application.

    Args:
        app: FastAPI application instance
    """
    # Request timing middleware
    @app.middleware("http")
    async def add_process_time_header(request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = str(process_time)
        return response

    # Correlation ID middleware
    @app.middleware("http")
    async def add_correlation_id(request: Request, call_next):
        correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
        request.state.correlation_id = correlation_id

        response = await call_next(request)
        response.headers["X-Correlation-ID"] = correlation_id
        return response


def register_routers(app: FastAPI) -> None:
    """
    Register API routers with the application.

    Args:
        app: FastAPI application instance
    """
    app.include_router(health.router, tags=["Health"])
    app.include_router(chat.router, prefix=settings.API_PREFIX, tags=["Chat"])

    @app.get("/", response_class=PlainTextResponse, include_in_schema=False)
    def root() -> str:
        return f"{settings.SERVICE_NAME} API is running!"


def configure_exception_handlers(app: FastAPI) -> None:
    """
    Configure global exception handlers.

    Args:
        app: FastAPI application instance
    """
    @app.exception_handler(AppException)
    async def handle_app_exception(request: Request, exc: AppException):
        logger.error(
            f"Application exception: {exc.message}",
            extra={
                "status_code": exc.status_code,
                "details": exc.details,
                "path": request.url.path
            }
        )

        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": exc.message,
                "details": exc.details,
                "status_code": exc.status_code
            }
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        errors = []
        for error in exc.errors():
            errors.append({
                "loc": list(error["loc"]),
                "msg": error["msg"],
                "type": error["type"]
            })

        # Malformed bodies are reported like any other invalid request
        return await handle_app_exception(
            request,
            InvalidRequestError("Invalid request body", details={"errors": errors})
        )

    @app.exception_handler(Exception)
    async def handle_unhandled_exception(request: Request, exc: Exception):
        logger.exception(
            f"Unhandled exception: {str(exc)}",
            extra={"path": request.url.path}
        )

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "Internal server error",
                "message": str(exc) if settings.DEBUG else "An unexpected error occurred",
                "status_code": status.HTTP_500_INTERNAL_SERVER_ERROR
            }
        )


# Create application instance
app = create_application()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "intent_service.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
