"""FastAPI application and route handlers."""

import sys
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Annotated, Any

from fastapi import Depends, FastAPI, Query, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from . import __version__
from .config import Settings, settings
from .exceptions import ChatProxyError
from .middleware import add_request_id
from .models import ChatRequest, ChatResponse, ErrorResponse
from .pricing import Pricing
from .providers import create_llm_provider
from .proxy import ChatProxy

DEFAULT_ERROR = "Failed to process chat request"


def configure_logging(level: str | None = None) -> None:
    """Configure logging - should be called at startup, not import time."""
    level = level or settings.log_level
    logger.remove()
    logger.configure(extra={"request_id": "-"})
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <magenta>{extra[request_id]}</magenta> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        level=level,
        serialize=False,
    )
    if settings.log_file:
        logger.add(
            settings.log_file,
            rotation="10 MB",
            retention="7 days",
            compression="zip",
            level=level,
        )


def create_chat_proxy(config: Settings | None = None) -> ChatProxy:
    """Build the proxy service from settings."""
    config = config or settings
    pricing = Pricing(
        input_per_mtok=config.input_cost_per_mtok,
        output_per_mtok=config.output_cost_per_mtok,
    )
    return ChatProxy(llm_provider=create_llm_provider(config), pricing=pricing)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle."""
    configure_logging()
    app.state.chat_proxy = create_chat_proxy()
    logger.info("Application started successfully")

    yield

    app.state.chat_proxy = None
    logger.info("Application shutdown complete")


app = FastAPI(
    title="Chat Proxy",
    version=__version__,
    description="Forwards chat conversations to Anthropic and reports token costs",
    lifespan=lifespan,
)

app.middleware("http")(add_request_id)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Handle validation errors with clean messages."""
    error_messages = []

    for error in exc.errors():  # type: ignore[attr-defined]
        field = error["loc"][-1] if error["loc"] else "field"
        message = error.get("msg", f"Invalid {field}")

        match error["type"]:
            case "missing":
                message = f"Required field '{field}' is missing"
            case "json_invalid":
                message = "Invalid JSON format"

        error_messages.append(message)

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "; ".join(error_messages) or "Invalid request"},
    )


app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]


@app.exception_handler(ChatProxyError)
async def chat_proxy_exception_handler(request: Request, exc: ChatProxyError) -> JSONResponse:
    """Handle domain-specific errors. Upstream status codes are never forwarded."""
    logger.error(f"Error in chat API: {exc}")

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse.from_exception(exc, DEFAULT_ERROR),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Report anything unexpected with the generic error envelope."""
    logger.opt(exception=exc).error(f"Unhandled error: {exc!r}")

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(error=DEFAULT_ERROR).model_dump(),
    )


def get_chat_proxy(request: Request) -> ChatProxy:
    """Get the proxy service created at startup."""
    proxy = getattr(request.app.state, "chat_proxy", None)
    if proxy is None:
        raise RuntimeError("Service not initialized")
    return proxy


@app.post(
    "/api/chat",
    tags=["chat"],
    responses={
        400: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def chat_endpoint(
    body: ChatRequest,
    proxy: Annotated[ChatProxy, Depends(get_chat_proxy)],
) -> ChatResponse:
    """Forward a conversation to the provider and return the reply with its cost."""
    try:
        return await proxy.handle(body)
    except ChatProxyError:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error in chat handler: {e}")
        raise ChatProxyError(DEFAULT_ERROR) from e


@app.get("/health", tags=["health"])
async def health_endpoint(
    response: Response,
    proxy: Annotated[ChatProxy, Depends(get_chat_proxy)],
    detailed: bool = Query(False, description="Include model and pricing information"),
) -> dict[str, Any]:
    """Check health status of all components.

    Args:
        detailed: If True, includes version, model and pricing information.

    """
    services = await proxy.health_check()
    all_healthy = all(services.values())

    if not all_healthy:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    result: dict[str, Any] = {
        "status": "healthy" if all_healthy else "unhealthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "services": services,
    }

    if detailed:
        result["version"] = __version__
        result["environment"] = {
            "model": settings.model,
            "max_tokens": settings.max_tokens,
            "input_cost_per_mtok": str(settings.input_cost_per_mtok),
            "output_cost_per_mtok": str(settings.output_cost_per_mtok),
        }

    return result


@app.get("/", tags=["health"])
async def root_endpoint() -> dict[str, str]:
    """API information endpoint."""
    return {
        "name": "Chat Proxy",
        "version": __version__,
        "status": "running",
        "docs": "/docs",
    }


app.openapi_tags = [
    {"name": "chat", "description": "Chat operations"},
    {"name": "health", "description": "Health checks"},
]


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    return app
