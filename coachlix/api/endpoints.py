"""API endpoints for the coaching chat service."""

import asyncio
import json
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse

from coachlix import __version__
from coachlix.graphs.turn import TRANSPORT_ERROR_MESSAGE
from coachlix.models.chat import ChatRequest, ChatResponse, ClassifyRequest, ClassifyResponse, HealthResponse
from coachlix.models.llm import StreamDelta
from coachlix.services.chat import ChatService, get_chat_service
from coachlix.services.router import map_category_to_plan
from coachlix.utils.logging import get_logger
from coachlix.utils.metrics import fallback_metrics

logger = get_logger(__name__)

router = APIRouter()

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def sse_event(event: str, data: dict[str, Any]) -> str:
    """Format one Server-Sent Event frame."""
    return f"event: {event}\ndata: {json.dumps(data, default=str)}\n\n"


def _validate(chat_service: ChatService, request: ChatRequest) -> None:
    try:
        chat_service.validate_request(request)
    except ValueError as e:
        logger.warning(f"Rejected chat request: {e}")
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.post("/chat", tags=["Chat"])
async def chat_stream(
    request: ChatRequest,
    http_request: Request,
    chat_service: ChatService = Depends(get_chat_service),
) -> StreamingResponse:
    """Stream a coaching answer as Server-Sent Events.

    Events, in order: ``connection``, an optional ``metadata`` with the routed
    intent, one ``word`` per streamed word (the last one has ``isComplete``),
    then ``complete`` or ``error``. Closing the connection cancels the turn.
    """
    _validate(chat_service, request)

    orchestrator = chat_service.create_orchestrator(request.user_id, request.tool_mode)
    queue: asyncio.Queue[str | None] = asyncio.Queue(maxsize=chat_service.settings.stream_queue_size)

    async def on_chunk(delta: StreamDelta) -> None:
        # Blocks when the client reads slower than the model writes
        await queue.put(sse_event("word", delta.model_dump(by_alias=True)))

    async def produce() -> None:
        try:
            plan, intent = await chat_service.resolve_plan(request)
            if intent is not None:
                await queue.put(sse_event("metadata", {"plan": plan, "intent": intent.model_dump()}))

            result = await chat_service.handle_chat(request, plan, on_chunk, orchestrator)

            if result.status == "transport_error":
                error = {"error": TRANSPORT_ERROR_MESSAGE, "partialResponse": result.final_text, "turnId": result.turn_id}
                await queue.put(sse_event("error", error))
            elif result.status != "cancelled":
                await queue.put(
                    sse_event(
                        "complete",
                        {
                            "fullResponse": result.final_text,
                            "usedTools": result.used_tools,
                            "plan": plan,
                            "turnId": result.turn_id,
                            "status": result.status,
                        },
                    )
                )
        except Exception as e:
            logger.error(f"Chat stream failed for user {request.user_id}: {e}", exc_info=True)
            await queue.put(sse_event("error", {"error": TRANSPORT_ERROR_MESSAGE}))

        await queue.put(None)

    async def event_stream():
        task = asyncio.create_task(produce())
        try:
            yield sse_event("connection", {"status": "connected", "turnId": orchestrator.turn_id})
            while True:
                try:
                    item = await asyncio.wait_for(queue.get(), timeout=1.0)
                except TimeoutError:
                    if await http_request.is_disconnected():
                        logger.info(f"Client disconnected from turn {orchestrator.turn_id}")
                        break
                    continue
                if item is None:
                    break
                yield item
        finally:
            if not task.done():
                orchestrator.cancel()
                task.cancel()

    logger.info(f"Streaming chat turn {orchestrator.turn_id} for user {request.user_id}")
    return StreamingResponse(event_stream(), media_type="text/event-stream", headers=SSE_HEADERS)


@router.post("/chat/complete", response_model=ChatResponse, tags=["Chat"])
async def chat_complete(
    request: ChatRequest,
    chat_service: ChatService = Depends(get_chat_service),
) -> ChatResponse:
    """Run a chat turn and return the full answer in one response."""
    _validate(chat_service, request)

    plan, intent = await chat_service.resolve_plan(request)
    result = await chat_service.handle_chat(request, plan)
    logger.info(f"Completed chat turn {result.turn_id} for user {request.user_id}: {result.final_text[:50]}...")

    return ChatResponse(
        success=result.status != "transport_error",
        response=result.final_text,
        turn_id=result.turn_id,
        used_tools=result.used_tools,
        plan=plan,
        intent=intent,
        error=TRANSPORT_ERROR_MESSAGE if result.status == "transport_error" else None,
        metadata={"status": result.status, "llmCalls": result.llm_calls},
    )


@router.post("/classify", response_model=ClassifyResponse, tags=["Chat"])
async def classify_message(
    request: ClassifyRequest,
    chat_service: ChatService = Depends(get_chat_service),
) -> ClassifyResponse:
    """Classify a message's intent and report the coaching plan it routes to."""
    intent = await chat_service.router.classify(request.message)
    return ClassifyResponse(**intent.model_dump(), plan=map_category_to_plan(intent.category))


@router.get("/metrics/fallbacks", tags=["Health"])
async def fallback_counters() -> dict[str, Any]:
    """Counters of locally recovered fallbacks (parse failures, router fallbacks, empty turns)."""
    return fallback_metrics.snapshot()


@router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC),
        version=__version__,
    )
