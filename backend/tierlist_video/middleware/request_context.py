"""Request id and timing shared by every error envelope.

The middleware stamps each request before routing and echoes the id back in
``X-Request-ID`` so a client can quote it when reporting a failed render.
"""

from datetime import datetime, timezone
from time import perf_counter
from typing import Awaitable, Callable
from uuid import uuid4

from fastapi import Request, Response

from tierlist_video.schemas.envelope import ResponseMeta

REQUEST_ID_HEADER = "X-Request-ID"
MAX_CLIENT_REQUEST_ID = 128


async def stamp_request(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
    supplied = request.headers.get(REQUEST_ID_HEADER, "").strip()
    request.state.request_id = supplied[:MAX_CLIENT_REQUEST_ID] or str(uuid4())
    request.state.started_at = perf_counter()

    response = await call_next(request)
    response.headers[REQUEST_ID_HEADER] = request.state.request_id
    return response


def request_id_for(request: Request) -> str:
    # Unhandled errors reach their handler outside the middleware stack
    return getattr(request.state, "request_id", None) or str(uuid4())


def build_meta(request: Request) -> ResponseMeta:
    started_at = getattr(request.state, "started_at", None)
    elapsed_ms = int((perf_counter() - started_at) * 1000) if started_at is not None else 0
    return ResponseMeta(
        processing_time_ms=elapsed_ms,
        timestamp=datetime.now(timezone.utc),
    )
