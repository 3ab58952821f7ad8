import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tierlist_video.api import images, render
from tierlist_video.api.deps import build_pipeline
from tierlist_video.config import get_settings
from tierlist_video.constants.error_codes import get_error_spec
from tierlist_video.exceptions import TierVideoError
from tierlist_video.middleware.request_context import (
    REQUEST_ID_HEADER,
    build_meta,
    request_id_for,
    stamp_request,
)
from tierlist_video.schemas.envelope import ErrorEnvelope, ErrorInfo
from tierlist_video.services.image_staging import ImageStagingArea

settings = get_settings()
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup: fonts are checked here so a host without CJK glyphs fails fast
    app.state.staging = ImageStagingArea()
    app.state.pipeline = build_pipeline(app.state.staging)
    logger.info(f"[STARTUP] {settings.app_name} {settings.app_version} ready")
    yield


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[REQUEST_ID_HEADER],
)
app.middleware("http")(stamp_request)


def _http_error_code(status_code: int) -> str:
    mapping = {
        400: "BAD_REQUEST",
        404: "NOT_FOUND",
        413: "PAYLOAD_TOO_LARGE",
        422: "VALIDATION_ERROR",
        500: "INTERNAL_ERROR",
    }
    return mapping.get(status_code, "HTTP_ERROR")


def _envelope_response(request: Request, status_code: int, error: ErrorInfo) -> JSONResponse:
    envelope = ErrorEnvelope(
        request_id=request_id_for(request),
        error=error,
        meta=build_meta(request),
    )
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(envelope.model_dump(exclude_none=True)),
    )


def _error_info_for(code: str, message: str) -> ErrorInfo:
    spec = get_error_spec(code)
    return ErrorInfo(
        code=code,
        message=message,
        retryable=spec.get("retryable", False),
        suggested_fix=spec.get("suggested_fix"),
    )


@app.exception_handler(TierVideoError)
async def tier_video_exception_handler(request: Request, exc: TierVideoError) -> JSONResponse:
    logger.warning(f"{request.method} {request.url.path} failed: {exc.code} {exc.message}")
    return _envelope_response(request, exc.status_code, exc.to_error_info())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Turn request validation errors (422) into the envelope format."""
    errors = exc.errors()
    if errors:
        first_error = errors[0]
        loc = " -> ".join(str(x) for x in first_error.get("loc", []))
        msg = first_error.get("msg", "Validation error")
        message = f"{loc}: {msg}" if loc else msg
    else:
        message = "Request validation failed"
    return _envelope_response(request, 422, _error_info_for("VALIDATION_ERROR", message))


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    error_code = _http_error_code(exc.status_code)
    return _envelope_response(request, exc.status_code, _error_info_for(error_code, str(exc.detail)))


# Global exception handler to ensure errors return proper JSON
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled exception: {exc}")
    return _envelope_response(request, 500, _error_info_for("INTERNAL_ERROR", "Internal server error"))


# Routers
app.include_router(render.router, prefix="/api", tags=["render"])
app.include_router(images.router, prefix="/api", tags=["images"])


@app.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "healthy", "version": settings.app_version}
