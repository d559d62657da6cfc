"""SSE run event streaming route."""
from __future__ import annotations

import json

from litestar import get
from litestar.exceptions import NotFoundException
from litestar.response import ServerSentEvent, ServerSentEventMessage

from webui.backend.run_manager import run_manager


@get("/api/runs/{run_id:str}/stream", media_type="text/event-stream")
async def stream_run(run_id: str) -> ServerSentEvent:
    if run_manager.status(run_id) is None:
        raise NotFoundException(f"Run {run_id!r} not found")

    async def _generate():
        async for msg in run_manager.stream(run_id):
            yield ServerSentEventMessage(data=json.dumps(msg), event=msg["type"])

    return ServerSentEvent(_generate())
