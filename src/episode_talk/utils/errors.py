"""Error taxonomy and helpers for consistent error responses."""

import logging
from enum import Enum
from typing import Any

from fastapi.responses import JSONResponse
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Standard error codes for API responses."""

    INVALID_INPUT = "INVALID_INPUT"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    TIMEOUT = "TIMEOUT"
    PROVIDER_ERROR = "PROVIDER_ERROR"
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# HTTP status for each error code
STATUS_CODES: dict[ErrorCode, int] = {
    ErrorCode.INVALID_INPUT: 400,
    ErrorCode.CONFIGURATION_ERROR: 500,
    ErrorCode.TIMEOUT: 504,
    ErrorCode.PROVIDER_ERROR: 500,
    ErrorCode.METHOD_NOT_ALLOWED: 405,
    ErrorCode.INTERNAL_ERROR: 500,
}

USER_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.INVALID_INPUT: "Invalid input",
    ErrorCode.CONFIGURATION_ERROR: "Server is not configured: OPENAI_API_KEY is missing",
    ErrorCode.TIMEOUT: "The model did not respond in time. Please try again.",
    ErrorCode.PROVIDER_ERROR: "The AI provider returned an error. Please try again.",
    ErrorCode.METHOD_NOT_ALLOWED: "Method Not Allowed",
    ErrorCode.INTERNAL_ERROR: "An unexpected error occurred",
}

DEFAULT_USER_MESSAGE = "An unexpected error occurred"

# Maximum length for error messages surfaced to callers
MAX_ERROR_LENGTH = 500


class GenerationError(Exception):
    """Base error for failures that end a generation request.

    Attributes:
        code: Machine-readable error code.
        message: Message returned to the caller.
        detail: Optional structured breakdown (validation failures).
    """

    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str | None = None, detail: Any = None):
        self.message = message or get_user_message(self.code)
        self.detail = detail
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return STATUS_CODES[self.code]


class InvalidInputError(GenerationError):
    """Request payload failed decoding or validation."""

    code = ErrorCode.INVALID_INPUT


class ConfigurationError(GenerationError):
    """A required server setting (the provider credential) is missing."""

    code = ErrorCode.CONFIGURATION_ERROR


class GenerationTimeoutError(GenerationError):
    """The provider call was cancelled by the deadline."""

    code = ErrorCode.TIMEOUT


class ProviderError(GenerationError):
    """The provider call failed for any reason other than the deadline."""

    code = ErrorCode.PROVIDER_ERROR


class ErrorResponse(BaseModel):
    """HTTP error response model."""

    error: str
    detail: Any = None


def get_user_message(code: ErrorCode | None, default: str | None = None) -> str:
    """Get user-appropriate error message for an error code.

    Args:
        code: The error code.
        default: Default message if code not found.

    Returns:
        User-friendly error message.
    """
    if code is None:
        return default or DEFAULT_USER_MESSAGE

    return USER_MESSAGES.get(code, default or DEFAULT_USER_MESSAGE)


def truncate_error(error: str, max_length: int = MAX_ERROR_LENGTH) -> str:
    """Truncate error message if too long."""
    if len(error) <= max_length:
        return error

    return error[: max_length - 3] + "..."


def create_error_response(exc: GenerationError) -> JSONResponse:
    """Render a GenerationError as a JSON response.

    The body is ``{"error": ...}``, plus ``"detail"`` when the error carries one.

    Args:
        exc: The error to render.

    Returns:
        JSONResponse with the error's status code.
    """
    body = ErrorResponse(error=truncate_error(exc.message), detail=exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(exclude_none=True),
    )


def classify_exception(exc: Exception) -> ErrorCode:
    """Classify an exception to an error code.

    Args:
        exc: The exception to classify.

    Returns:
        Appropriate error code.
    """
    import httpx

    if isinstance(exc, GenerationError):
        return exc.code

    if isinstance(exc, (httpx.TimeoutException, TimeoutError)):
        return ErrorCode.TIMEOUT

    # Upstream HTTP and connection failures are provider errors
    if isinstance(exc, (httpx.HTTPError, ConnectionError)):
        return ErrorCode.PROVIDER_ERROR

    return ErrorCode.INTERNAL_ERROR


def log_error(
    exc: Exception,
    code: ErrorCode | None = None,
    request_id: str | None = None,
    **context: Any,
) -> None:
    """Log an error with its code and context.

    Args:
        exc: The exception that occurred.
        code: Optional pre-classified error code.
        request_id: Optional request ID.
        **context: Additional context to include in log.
    """
    if code is None:
        code = classify_exception(exc)

    log_extra = {
        "error_code": code.value,
        "error_type": type(exc).__name__,
        "request_id": request_id,
        **context,
    }

    if code == ErrorCode.INTERNAL_ERROR:
        logger.exception("Internal error occurred", extra=log_extra)
    else:
        logger.error(f"Request error: {exc}", extra=log_extra)
