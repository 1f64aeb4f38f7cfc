"""Engine notification stream (SSE)"""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Request
from sse_starlette.sse import EventSourceResponse

from models.events import EngineEvent

router = APIRouter()

HEARTBEAT_SECONDS = 15.0


@router.get("/stream")
async def stream_events(request: Request):
    """Forward every engine notification to the client as it happens"""
    events = request.app.state.services.events
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[EngineEvent] = asyncio.Queue()

    # Engine operations run in the threadpool; hand events over to the loop
    def listener(event: EngineEvent) -> None:
        loop.call_soon_threadsafe(queue.put_nowait, event)

    events.subscribe(listener)

    async def event_generator():
        try:
            while True:
                if await request.is_disconnected():
                    break
                try:
                    event = await asyncio.wait_for(queue.get(), timeout=HEARTBEAT_SECONDS)
                except asyncio.TimeoutError:
                    continue
                yield {"event": event.type.value, "data": event.model_dump_json()}
        finally:
            events.unsubscribe(listener)

    return EventSourceResponse(event_generator())
