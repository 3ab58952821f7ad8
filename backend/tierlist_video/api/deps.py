from typing import Annotated

from fastapi import Depends, Request

from tierlist_video.config import get_settings
from tierlist_video.render.fonts import load_font_set
from tierlist_video.render.pipeline import RenderPipeline
from tierlist_video.services.image_staging import ImageStagingArea


def get_staging(request: Request) -> ImageStagingArea:
    staging = getattr(request.app.state, "staging", None)
    if staging is None:
        staging = ImageStagingArea()
        request.app.state.staging = staging
    return staging


def build_pipeline(staging: ImageStagingArea | None = None) -> RenderPipeline:
    """Create the process-wide pipeline; raises GlyphSetUnavailableError without CJK fonts."""
    settings = get_settings()
    fonts = load_font_set(settings.font_candidates)
    return RenderPipeline(fonts=fonts, settings=settings, staging=staging)


def get_pipeline(request: Request) -> RenderPipeline:
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        pipeline = build_pipeline(get_staging(request))
        request.app.state.pipeline = pipeline
    return pipeline


Pipeline = Annotated[RenderPipeline, Depends(get_pipeline)]
Staging = Annotated[ImageStagingArea, Depends(get_staging)]
