"""Error codes dictionary for the rendering API.

This is the single source of truth for all error codes, their retryability,
and suggested fixes. Used by exception handlers to generate machine-readable
error responses.
"""

from typing import Any, TypedDict


class ErrorCodeSpec(TypedDict, total=False):
    """Specification for an error code."""

    retryable: bool
    suggested_action: str
    suggested_fix: str
    parameters: dict[str, Any]


ERROR_CODES: dict[str, ErrorCodeSpec] = {
    # ==========================================================================
    # Image errors (recovered per item with a placeholder)
    # ==========================================================================
    "UNSUPPORTED_IMAGE_SOURCE": {
        "retryable": False,
        "suggested_fix": "Use a data: URL, a staged /api/temp-image/ reference or an http(s) URL",
    },
    "IMAGE_DECODE_FAILED": {
        "retryable": False,
    },
    "INVALID_STAGED_IMAGE": {
        "retryable": False,
        "suggested_fix": "Upload the image again via POST /api/upload-image",
    },
    # ==========================================================================
    # Media tool errors
    # ==========================================================================
    "AUDIO_PROBE_FAILED": {
        "retryable": False,
    },
    "AUDIO_TRANSCODE_FAILED": {
        "retryable": False,
        "suggested_fix": "Re-record or re-generate the narration clip",
    },
    "ENCODER_FAILED": {
        "retryable": False,
    },
    # ==========================================================================
    # Environment errors
    # ==========================================================================
    "GLYPH_SET_UNAVAILABLE": {
        "retryable": False,
        "suggested_fix": "Install a CJK font (e.g. fonts-noto-cjk) or set FONT_CANDIDATES",
    },
    "RESOURCE_ALLOCATION_FAILED": {
        "retryable": True,
        "suggested_action": "retry_with_backoff",
        "parameters": {"delay_ms": 2000, "max_retries": 2},
    },
    # ==========================================================================
    # Request errors
    # ==========================================================================
    "PAYLOAD_TOO_LARGE": {
        "retryable": False,
        "suggested_fix": "Reduce the number of images or compress them",
    },
    "BAD_REQUEST": {
        "retryable": False,
    },
    "VALIDATION_ERROR": {
        "retryable": False,
    },
    "NOT_FOUND": {
        "retryable": False,
    },
    "INTERNAL_ERROR": {
        "retryable": True,
        "suggested_action": "retry_with_backoff",
        "parameters": {"delay_ms": 2000, "max_retries": 2},
    },
}


def get_error_spec(code: str) -> ErrorCodeSpec:
    """Get error specification by code.

    Args:
        code: The error code

    Returns:
        ErrorCodeSpec with retryable flag and suggested actions
    """
    return ERROR_CODES.get(code, {"retryable": False})
