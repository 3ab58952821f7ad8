"""Video generation endpoint.

Renders synchronously and streams the finished MP4 back in the response.
"""

import logging

from fastapi import APIRouter, Request, Response
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from tierlist_video.api.deps import Pipeline
from tierlist_video.config import get_settings
from tierlist_video.exceptions import PayloadTooLargeError
from tierlist_video.render.pipeline import RenderJob
from tierlist_video.schemas.ranking import GenerateVideoRequest

router = APIRouter()
logger = logging.getLogger(__name__)


async def _read_limited_body(request: Request, limit: int) -> bytes:
    content_length = request.headers.get("content-length")
    if content_length and content_length.isdigit() and int(content_length) > limit:
        raise PayloadTooLargeError(int(content_length), limit)

    # Chunked uploads carry no length; stop reading once past the limit
    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > limit:
            raise PayloadTooLargeError(None, limit)
    return bytes(body)


@router.post(
    "/generate-video",
    response_class=Response,
    responses={200: {"content": {"video/mp4": {}}}},
)
async def generate_video(request: Request, pipeline: Pipeline) -> Response:
    """
    Render a tier list narration video.

    The body is ``{rankingData, audioSections}``; the response is the MP4 file.
    """
    settings = get_settings()
    body = await _read_limited_body(request, settings.max_request_bytes)

    try:
        payload = GenerateVideoRequest.model_validate_json(body)
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False, include_context=False)) from e

    ranking, segments = payload.to_domain()
    job = RenderJob.create(ranking, segments)
    logger.info(
        f"[RENDER] Job {job.id}: {len(ranking.tiers)} tiers, "
        f"{len(ranking.all_items())} items, {len(segments)} audio sections"
    )

    result = await pipeline.render(job)

    return Response(
        content=result.video,
        media_type=result.content_type,
        headers={"Content-Disposition": f'attachment; filename="{result.filename}"'},
    )
