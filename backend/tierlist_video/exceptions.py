"""Custom exceptions for the tier list video backend.

Each exception carries a machine-readable error code that maps to an entry in
``constants.error_codes``. Per-item failures (images, duration probes) are
recovered where they are raised; everything touching the transcoder or the
encoder fails the whole render job.
"""

from tierlist_video.constants.error_codes import get_error_spec
from tierlist_video.schemas.envelope import ErrorInfo, ErrorLocation, SuggestedAction


class TierVideoError(Exception):
    """Base exception for all application errors."""

    code: str = "INTERNAL_ERROR"
    status_code: int = 500
    message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        status_code: int | None = None,
        location: ErrorLocation | None = None,
        suggested_fix: str | None = None,
    ):
        self.message = message or self.__class__.message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.location = location
        self.suggested_fix = suggested_fix
        super().__init__(self.message)

    def to_error_info(self) -> ErrorInfo:
        """Convert exception to ErrorInfo for API response."""
        spec = get_error_spec(self.code)
        retryable = spec.get("retryable", False)

        suggested_actions: list[SuggestedAction] = []
        if "suggested_action" in spec:
            suggested_actions.append(
                SuggestedAction(
                    action=spec["suggested_action"],
                    parameters=spec.get("parameters", {}),
                )
            )

        return ErrorInfo(
            code=self.code,
            message=self.message,
            location=self.location,
            retryable=retryable,
            suggested_fix=self.suggested_fix or spec.get("suggested_fix"),
            suggested_actions=suggested_actions,
        )


# =============================================================================
# Image errors
# =============================================================================


class UnsupportedImageSourceError(TierVideoError):
    """Image reference is neither inline, staged nor remote."""

    code = "UNSUPPORTED_IMAGE_SOURCE"
    status_code = 400
    message = "Unsupported image source"

    def __init__(self, reference: str | None = None):
        message = self.message
        if reference:
            message = f"Unsupported image source: {reference[:64]}"
        super().__init__(message)


class ImageDecodeError(TierVideoError):
    """Image could not be fetched or decoded."""

    code = "IMAGE_DECODE_FAILED"
    status_code = 422
    message = "Failed to load image"


class InvalidStagedImageError(TierVideoError):
    """Staged image name or payload is invalid."""

    code = "INVALID_STAGED_IMAGE"
    status_code = 400
    message = "Invalid staged image"


# =============================================================================
# Media tool errors
# =============================================================================


class AudioProbeError(TierVideoError):
    """Duration probe failed for a transcoded clip."""

    code = "AUDIO_PROBE_FAILED"
    message = "Failed to measure audio duration"


class AudioTranscodeError(TierVideoError):
    """Transcoding, silence synthesis or concatenation failed."""

    code = "AUDIO_TRANSCODE_FAILED"
    message = "Audio processing failed"

    def __init__(self, message: str | None = None, *, segment_index: int | None = None):
        location = ErrorLocation(segment_index=segment_index) if segment_index is not None else None
        super().__init__(message, location=location)


class EncoderInvocationError(TierVideoError):
    """The video encoder exited non-zero, timed out or produced no file."""

    code = "ENCODER_FAILED"
    message = "Video encoding failed"


# =============================================================================
# Environment errors
# =============================================================================


class GlyphSetUnavailableError(TierVideoError):
    """No font with CJK glyph coverage could be loaded."""

    code = "GLYPH_SET_UNAVAILABLE"
    message = "No CJK-capable font available"


class ResourceAllocationError(TierVideoError):
    """Working directory could not be created."""

    code = "RESOURCE_ALLOCATION_FAILED"
    message = "Failed to allocate render resources"


# =============================================================================
# Request errors
# =============================================================================


class PayloadTooLargeError(TierVideoError):
    """Request body exceeds the configured limit."""

    code = "PAYLOAD_TOO_LARGE"
    status_code = 413
    message = "Request body too large"

    def __init__(self, size: int | None = None, limit: int | None = None):
        message = self.message
        if size is not None and limit is not None:
            message = f"Request body too large: {size} bytes (limit {limit})"
        super().__init__(message)
