"""Image staging endpoints.

The editor uploads artwork ahead of time and references it by URL in the
ranking document, which keeps generate-video payloads small.
"""

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Response, status

from tierlist_video.api.deps import Staging
from tierlist_video.schemas.ranking import UploadImageRequest, UploadImageResponse

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/upload-image")
async def upload_image(upload: UploadImageRequest, staging: Staging) -> dict[str, Any]:
    staged = staging.stage(upload.image_data)
    logger.info(f"[IMAGE] Uploaded {upload.file_name or '<unnamed>'} as {staged.file_name}")
    response = UploadImageResponse(image_url=staged.url, file_name=staged.file_name)
    return response.model_dump(by_alias=True)


@router.get("/temp-image/{filename}")
async def get_temp_image(filename: str, staging: Staging) -> Response:
    try:
        data, mime_type = staging.read(filename)
    except FileNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Image not found")

    return Response(
        content=data,
        media_type=mime_type,
        headers={"Cache-Control": "public, max-age=3600"},
    )
