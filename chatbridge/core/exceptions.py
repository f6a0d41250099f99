"""Application exception classes and handlers."""

import structlog
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = structlog.get_logger()


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, code: str, status_code: int = 400) -> None:
        self.message = message
        self.code = code
        self.status_code = status_code
        super().__init__(message)


# --- Session lifecycle ---


class SessionAlreadyExistsError(AppException):
    """A live session already exists for the chat."""

    def __init__(self) -> None:
        super().__init__(
            message="A conversation is already running for this chat",
            code="SESSION_ALREADY_EXISTS",
            status_code=409,
        )


class SessionNotFoundError(AppException):
    """No live session exists for the chat."""

    def __init__(self) -> None:
        super().__init__(
            message="No conversation is running for this chat",
            code="SESSION_NOT_FOUND",
            status_code=404,
        )


class InvalidSessionStateError(AppException):
    """Operation is not allowed in the session's current phase."""

    def __init__(self, message: str = "Operation not allowed in this session phase") -> None:
        super().__init__(message=message, code="INVALID_SESSION_STATE", status_code=409)


# --- Credentials ---


class InvalidCredentialFormatError(AppException):
    """Text does not look like an API key."""

    def __init__(self) -> None:
        super().__init__(
            message="Credential is not correctly formatted",
            code="INVALID_CREDENTIAL_FORMAT",
            status_code=400,
        )


class CredentialRejectedError(AppException):
    """Provider rejected the API key at validation time."""

    def __init__(self) -> None:
        super().__init__(
            message="Credential was rejected by the provider",
            code="CREDENTIAL_REJECTED",
            status_code=401,
        )


# --- Upstream completion ---


class UpstreamAuthError(AppException):
    """Provider rejected a previously accepted API key."""

    def __init__(self, message: str = "Upstream authentication failed") -> None:
        super().__init__(message=message, code="UPSTREAM_AUTH", status_code=401)


class UpstreamRateLimitError(AppException):
    """Provider is rate limiting the API key."""

    def __init__(self, message: str = "Upstream rate limit exceeded") -> None:
        super().__init__(message=message, code="UPSTREAM_RATE_LIMIT", status_code=429)


class UpstreamError(AppException):
    """Any other completion failure."""

    def __init__(self, message: str = "Upstream request failed") -> None:
        super().__init__(message=message, code="UPSTREAM_ERROR", status_code=502)


# --- Webhook access ---


class WebhookAuthError(AppException):
    """Webhook path token does not match the configured secret."""

    def __init__(self) -> None:
        super().__init__(message="Unauthorized", code="UNAUTHORIZED", status_code=401)


class UntrustedSourceError(AppException):
    """Request did not originate from a trusted address."""

    def __init__(self) -> None:
        super().__init__(
            message="Request source is not trusted",
            code="UNTRUSTED_SOURCE",
            status_code=403,
        )


# --- Exception Handlers ---


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Central exception handler for AppException."""
    logger.warning(
        "Request failed",
        path=request.url.path,
        code=exc.code,
        status_code=exc.status_code,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "status": exc.status_code,
            "message": exc.message,
            "code": exc.code,
        },
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Flatten request validation errors into the common error envelope."""
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()))
    detail = first.get("msg", "Invalid request")
    return JSONResponse(
        status_code=422,
        content={
            "status": 422,
            "message": f"{location}: {detail}" if location else detail,
            "code": "VALIDATION_ERROR",
        },
    )
