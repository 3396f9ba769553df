"""API endpoints for the betting assistant."""

from collections.abc import AsyncIterator
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse, Response, StreamingResponse

from wager_wizard import __version__
from wager_wizard.container import AppContainer
from wager_wizard.errors import ErrorKind, InvalidRequestError
from wager_wizard.models.conversation import ChatRequest, HealthResponse, HistoryResponse
from wager_wizard.models.stream import TERMINAL_STEPS, StreamDone, StreamFailed, StreamStep, TextDelta
from wager_wizard.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()

INVALID_MESSAGES_TEXT = "Invalid messages format"
INTERNAL_ERROR_TEXT = "Internal server error"
STREAM_MEDIA_TYPE = "text/plain; charset=utf-8"

_FAILURE_TEXT = {
    ErrorKind.INVALID_INPUT: INVALID_MESSAGES_TEXT,
    ErrorKind.UNCLASSIFIED_FAULT: INTERNAL_ERROR_TEXT,
}


def get_container(request: Request) -> AppContainer:
    return request.app.state.container


def render_step(step: StreamStep) -> str | None:
    """Text written to the client for a step, if any."""
    if isinstance(step, TextDelta):
        return step.text
    if isinstance(step, StreamFailed):
        # Failure after streaming began: close with a readable marker
        return f"\n\n[error] {step.message}\n"
    return None


async def _stream_body(buffered: list[StreamStep], steps: AsyncIterator[StreamStep]) -> AsyncIterator[str]:
    try:
        for step in buffered:
            chunk = render_step(step)
            if chunk:
                yield chunk
        if buffered and isinstance(buffered[-1], TERMINAL_STEPS):
            return
        async for step in steps:
            if not isinstance(step, TextDelta):
                logger.debug(f"Stream step: {step.type}")
            chunk = render_step(step)
            if chunk:
                yield chunk
    finally:
        await steps.aclose()


@router.post("/api/chat", tags=["Chat"])
async def chat(body: ChatRequest, container: AppContainer = Depends(get_container)) -> Response:
    """Stream the assistant's reply to a conversation as plain text.

    The status code is decided once the first text arrives: a failure before
    that (oversized input, deadline or internal fault) gets a proper error status; a failure
    after it ends the stream with an ``[error]`` line.
    """
    try:
        steps = container.orchestrator.stream(body.messages)
    except InvalidRequestError as e:
        logger.warning(f"Rejected chat request: {e.message}")
        return PlainTextResponse(INVALID_MESSAGES_TEXT, status_code=400)

    buffered: list[StreamStep] = []
    try:
        async for step in steps:
            if isinstance(step, StreamFailed):
                logger.warning(f"Chat failed before streaming: {step.kind}")
                await steps.aclose()
                text = _FAILURE_TEXT.get(step.kind, step.message)
                return PlainTextResponse(text, status_code=step.kind.status_code)
            buffered.append(step)
            if isinstance(step, TextDelta | StreamDone):
                break
    except Exception as e:
        logger.error(f"Chat API error: {e}", exc_info=True)
        await steps.aclose()
        return PlainTextResponse(INTERNAL_ERROR_TEXT, status_code=500)

    return StreamingResponse(_stream_body(buffered, steps), media_type=STREAM_MEDIA_TYPE)


@router.get("/api/history", response_model=HistoryResponse, tags=["Chat"])
async def history(container: AppContainer = Depends(get_container)) -> HistoryResponse:
    """Prior exchanges for the guest owner, as chat messages."""
    return HistoryResponse(messages=await container.history.load_messages())


@router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC),
        version=__version__,
    )
