"""Error taxonomy shared by the edge functions.

Every failure that reaches the HTTP boundary is an ``AppError``. The public
``message`` is what the caller sees; anything more specific goes to the
server-side logs only.
"""

from __future__ import annotations

from enum import Enum

HTTP_BAD_REQUEST = 400
HTTP_UNAUTHORIZED = 401
HTTP_INTERNAL_SERVER_ERROR = 500

UNAUTHORIZED_MESSAGE = "Unauthorized"
CONFIG_ERROR_MESSAGE = "Service configuration error"
INTERNAL_ERROR_MESSAGE = "Internal server error"


class ErrorCode(str, Enum):
    """Stable machine-readable codes returned alongside error messages."""

    UNAUTHORIZED = "UNAUTHORIZED"
    CONFIG_ERROR = "CONFIG_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class AppError(Exception):
    """Base class for errors converted to JSON responses at the boundary."""

    def __init__(
        self,
        message: str,
        status_code: int = HTTP_INTERNAL_SERVER_ERROR,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code

    def to_dict(self) -> dict[str, str]:
        return {"error": self.message, "code": self.code.value}


class AuthenticationError(AppError):
    """Caller-attributable verification failure.

    The public message is identical for every cause. ``reason`` is kept for
    logging and tests and is never serialised.
    """

    def __init__(self, reason: str = "unauthorized") -> None:
        super().__init__(UNAUTHORIZED_MESSAGE, HTTP_UNAUTHORIZED, ErrorCode.UNAUTHORIZED)
        self.reason = reason


class ConfigurationError(AppError):
    """Deployment problem that a legitimate caller cannot retry around."""

    def __init__(self, reason: str) -> None:
        super().__init__(
            CONFIG_ERROR_MESSAGE,
            HTTP_INTERNAL_SERVER_ERROR,
            ErrorCode.CONFIG_ERROR,
        )
        self.reason = reason


class PayloadValidationError(AppError):
    """Authenticated request whose payload is malformed."""

    def __init__(self, message: str) -> None:
        super().__init__(message, HTTP_BAD_REQUEST, ErrorCode.VALIDATION_ERROR)


class EmailDeliveryError(AppError):
    """Raised when the email provider rejects or cannot receive a message."""

    def __init__(self, reason: str) -> None:
        super().__init__(
            "Failed to send welcome email",
            HTTP_INTERNAL_SERVER_ERROR,
            ErrorCode.EXTERNAL_SERVICE_ERROR,
        )
        self.reason = reason
