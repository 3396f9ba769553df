"""Main FastAPI application."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from wager_wizard import __version__
from wager_wizard.api.endpoints import INVALID_MESSAGES_TEXT, router
from wager_wizard.config import Settings
from wager_wizard.container import AppContainer, build_container
from wager_wizard.utils.logging import LogConfig, get_logger, setup_logging

logger = get_logger(__name__)


async def invalid_request_handler(request: Request, exc: RequestValidationError) -> PlainTextResponse:
    logger.warning(f"Malformed request to {request.url.path}: {len(exc.errors())} validation errors")
    return PlainTextResponse(INVALID_MESSAGES_TEXT, status_code=400)


def create_app(container: AppContainer | None = None) -> FastAPI:
    """Create the application.

    Args:
        container: Prebuilt services; when omitted they are built from the
            environment at startup and logging is configured
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if container is None:
            settings = Settings.from_env()
            setup_logging(LogConfig(level=settings.log_level))
            app.state.container = build_container(settings)
        else:
            app.state.container = container
        logger.info(f"Wager Wizard {__version__} started")
        try:
            yield
        finally:
            await app.state.container.aclose()

    app = FastAPI(
        title="Wager Wizard",
        description=(
            "A conversational sports-betting assistant that streams answers and looks up "
            "live football odds on demand."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
        openapi_tags=[
            {
                "name": "Chat",
                "description": "Streamed assistant replies and stored conversation history.",
            },
            {
                "name": "Health",
                "description": "Service health monitoring and status checks.",
            },
        ],
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, invalid_request_handler)
    app.include_router(router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("wager_wizard.main:app", host="0.0.0.0", port=8000, log_level="info")
