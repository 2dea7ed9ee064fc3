"""Custom exceptions for the rich menu management tool.

Every failure the LINE client can report is a ``RichMenuApiError``. The
subclasses form a closed set so callers can branch on the type (or on
``kind`` / ``status_code``) instead of inspecting message text.
"""
from typing import Optional, Dict, Any, Type
import json


class RichMenuApiError(Exception):
    """Base class for all rich menu client errors."""

    kind = "unknown"
    default_status = 500

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize rich menu API error.

        Args:
            message: Human-readable error message
            status_code: HTTP status code (remote or equivalent for local errors)
            details: Error body returned by LINE, or local context
        """
        self.message = message
        self.status_code = status_code if status_code is not None else self.default_status
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert error to dictionary format for API responses.

        Returns:
            Dictionary with error information
        """
        return {
            "success": False,
            "error": {
                "code": self.status_code,
                "kind": self.kind,
                "message": self.message,
                "details": self.details
            }
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status_code={self.status_code!r}, message={self.message!r})"


class UnauthenticatedError(RichMenuApiError):
    """Channel access token is missing, a placeholder, invalid or expired."""

    kind = "unauthenticated"
    default_status = 401


class RichMenuValidationError(RichMenuApiError):
    """Input rejected locally, before any request was sent."""

    kind = "validation"
    default_status = 400


class BadRequestError(RichMenuApiError):
    """LINE rejected the payload as malformed."""

    kind = "bad_request"
    default_status = 400


class ForbiddenError(RichMenuApiError):
    """The token is valid but lacks permission for the operation."""

    kind = "forbidden"
    default_status = 403


class NotFoundError(RichMenuApiError):
    """The rich menu, alias or user does not exist."""

    kind = "not_found"
    default_status = 404


class ConflictError(RichMenuApiError):
    """The resource already exists (e.g. a duplicate alias ID)."""

    kind = "conflict"
    default_status = 409


class RateLimitedError(RichMenuApiError):
    """LINE kept answering 429 after all retries were used."""

    kind = "rate_limited"
    default_status = 429


class UnknownApiError(RichMenuApiError):
    """Any other non-2xx response."""

    kind = "unknown"


class TransportError(RichMenuApiError):
    """LINE could not be reached (connection failure, timeout, protocol error)."""

    kind = "transport"
    default_status = 503


ERROR_MESSAGES = {
    400: "Bad request: {detail}",
    401: "Channel access token is invalid or has expired. Issue a new token.",
    403: "Permission denied. Check the permissions granted to the channel access token.",
    404: "The requested resource (rich menu, alias or user) was not found.",
    409: "Resource conflict. An alias with the same ID may already exist.",
    429: "LINE API rate limit exceeded. Try again later.",
}

ERROR_CLASSES: Dict[int, Type[RichMenuApiError]] = {
    400: BadRequestError,
    401: UnauthenticatedError,
    403: ForbiddenError,
    404: NotFoundError,
    409: ConflictError,
    429: RateLimitedError,
}


def extract_detail(body: Any) -> str:
    """
    Pull the most useful message out of a LINE error body.

    Args:
        body: Parsed error body (usually ``{"message": ..., "details": [...]}``)

    Returns:
        Detail string for the error message
    """
    if isinstance(body, dict):
        if body.get("message"):
            return str(body["message"])
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    try:
        return json.dumps(body, ensure_ascii=False)
    except (TypeError, ValueError):
        return str(body)


def get_error_message(status_code: int, body: Any) -> str:
    """
    Build the human-readable message for a failed response.

    Args:
        status_code: HTTP status code returned by LINE
        body: Parsed error body

    Returns:
        Error message from the status table, or a generic one
    """
    detail = extract_detail(body)
    template = ERROR_MESSAGES.get(status_code)
    if template is None:
        return f"API call failed (HTTP {status_code}): {detail}"
    return template.format(detail=detail)


def error_from_response(status_code: int, body: Any) -> RichMenuApiError:
    """
    Convert a non-2xx response into the matching typed error.

    Args:
        status_code: HTTP status code returned by LINE
        body: Parsed error body, or ``{"message": text}`` if it was not JSON

    Returns:
        Error instance carrying status code and LINE's details
    """
    error_class = ERROR_CLASSES.get(status_code, UnknownApiError)
    details = body if isinstance(body, dict) else {"message": str(body)}
    return error_class(
        get_error_message(status_code, body),
        status_code=status_code,
        details=details
    )


def format_error_for_cli(error: RichMenuApiError) -> str:
    """
    Format an error for terminal output.

    Args:
        error: Error to format

    Returns:
        Message with the HTTP status, followed by LINE's details when present
    """
    text = f"❌ API error (HTTP {error.status_code}): {error.message}"
    if error.details:
        text += "\n   Details: " + json.dumps(error.details, ensure_ascii=False, indent=2)
    return text
