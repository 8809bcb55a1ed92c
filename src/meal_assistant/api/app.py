"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from meal_assistant.api.models import ChatRequest, ChatResponse, PendingMutationModel
from meal_assistant.app_logging import configure_logging
from meal_assistant.containers import AppContainer
from meal_assistant.errors import (
    OracleUnavailableError,
    StoreQueryError,
    StoreUnavailableError,
)


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.exception_handler(StoreUnavailableError)
    async def store_unavailable(
        request: Request, exc: StoreUnavailableError
    ) -> JSONResponse:
        logger.exception("Meal store unavailable", exc_info=exc)
        return JSONResponse(
            status_code=503,
            content={"error": "store_unavailable", "detail": _detail(container, exc)},
        )

    @app.exception_handler(OracleUnavailableError)
    async def oracle_unavailable(
        request: Request, exc: OracleUnavailableError
    ) -> JSONResponse:
        logger.exception("Language model unavailable", exc_info=exc)
        return JSONResponse(
            status_code=503,
            content={"error": "oracle_unavailable", "detail": _detail(container, exc)},
        )

    @app.exception_handler(StoreQueryError)
    async def store_rejected(request: Request, exc: StoreQueryError) -> JSONResponse:
        logger.exception("Meal store rejected a query", exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={"error": "store_rejected", "detail": _detail(container, exc)},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/chat")
    async def chat(payload: ChatRequest, request: Request) -> ChatResponse:
        """Run one conversation turn for the user."""
        state_container: AppContainer = request.app.state.container
        pending = (
            payload.pending_mutation.to_domain(payload.user_id)
            if payload.pending_mutation
            else None
        )
        result = await state_container.chat_service.handle_turn(
            payload.user_id,
            [message.to_domain() for message in payload.messages],
            pending,
        )
        return ChatResponse(
            response_text=result.response_text,
            pending_mutation=(
                PendingMutationModel.from_domain(result.pending_mutation)
                if result.pending_mutation
                else None
            ),
        )

    return app


def _detail(container: AppContainer, exc: Exception) -> str:
    """Return the error detail, with debug info only in local environments."""
    if container.settings.environment == "local":
        return f"{type(exc).__name__}: {exc}"
    if isinstance(exc, StoreQueryError):
        return "The request could not be completed. Please try again."
    return "Service temporarily unavailable. Please try again."
