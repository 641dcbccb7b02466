from __future__ import annotations

import asyncio
import json as _json

from fastapi import APIRouter, HTTPException, Query
from sse_starlette.sse import EventSourceResponse

from groundwork.api import deps
from groundwork.errors import PipelineError
from groundwork.models.events import PipelineEvent
from groundwork.models.schemas import SourcesRequest, SourcesResponse
from groundwork.models.sources import Provider
from groundwork.services import logger as log_service
from groundwork.services import streaming

router = APIRouter(prefix="/api/sources", tags=["sources"])


@router.post("", response_model=SourcesResponse)
async def discover_sources(request: SourcesRequest):
    """Run the whole pipeline and return the scored sources in one response."""
    pipeline = deps.build_pipeline(request.model)
    try:
        sources = await pipeline.discover(
            request.topic,
            providers=request.providers,
            threshold=request.threshold,
            max_sources=request.max_sources,
        )
    except PipelineError as exc:
        raise HTTPException(status_code=422, detail=exc.to_dict()) from exc
    return SourcesResponse(topic=request.topic, sources=sources)


@router.get("/stream")
async def stream_sources(
    topic: str = Query(min_length=1),
    provider: list[Provider] | None = Query(default=None),
    model: str | None = None,
):
    """SSE endpoint that streams pipeline progress and the final source list."""
    topic = topic.strip()
    if not topic:
        raise HTTPException(status_code=422, detail="topic must not be blank")
    pipeline = deps.build_pipeline(model)
    queue: asyncio.Queue[PipelineEvent | None] = asyncio.Queue()

    async def run() -> None:
        try:
            await pipeline.discover(topic, providers=provider, progress=queue.put_nowait)
        except PipelineError:
            # The pipeline has already emitted the checkpoint error event.
            pass
        except Exception as e:
            log_service.log_event(
                event_type="stream_error",
                message="Unhandled error in sources stream",
                error=str(e),
                topic=topic[:100],
            )
            queue.put_nowait(streaming.error("Source discovery failed unexpectedly."))
        finally:
            queue.put_nowait(None)

    async def event_generator():
        log_service.log_event(
            event_type="discovery_started",
            message="Source discovery started",
            topic=topic[:100],
        )
        task = asyncio.create_task(run())
        try:
            while True:
                event = await queue.get()
                if event is None:
                    break
                yield {
                    "event": event.event.value,
                    "data": _json.dumps(event.data),
                }
        finally:
            if not task.done():
                task.cancel()

    return EventSourceResponse(event_generator())
