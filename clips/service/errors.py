"""
Exceptions raised by the download pipeline.

Validation errors are the caller's fault and map to 400 responses. Pipeline
errors come from the external tools and map to 500 responses.
"""

from clips.service.constants import (
    INVALID_END_MESSAGE,
    INVALID_RANGE_MESSAGE,
    INVALID_START_MESSAGE,
    MISSING_URL_MESSAGE,
)


class RequestValidationError(Exception):
    """Raised when request parameters are unusable. The message is user-facing."""

    pass


class MissingURL(RequestValidationError):
    def __init__(self, message=MISSING_URL_MESSAGE):
        super().__init__(message)


class InvalidTime(RequestValidationError):
    """Raised when a start or end bound is not a finite number."""

    def __init__(self, field, value=None):
        self.field = field
        self.value = value
        message = INVALID_START_MESSAGE if field == 'start' else INVALID_END_MESSAGE
        super().__init__(message)


class InvalidRange(RequestValidationError):
    def __init__(self, start, end):
        self.start = start
        self.end = end
        super().__init__(INVALID_RANGE_MESSAGE)


class PipelineError(Exception):
    """Raised when the pipeline fails after validation."""

    def __init__(self, message, invocation=None):
        super().__init__(message)
        self.invocation = invocation


class AcquisitionFailed(PipelineError):
    """yt-dlp failed, timed out, or exited without producing the source file."""

    pass


class TransformFailed(PipelineError):
    """ffmpeg failed, timed out, or exited without producing the deliverable."""

    pass
