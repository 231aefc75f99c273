import logging

from fastapi import Request
from fastapi.responses import JSONResponse, Response

from mailhub.errors import (
    AccessDeniedError,
    AlreadyUsedTokenError,
    AuthenticationError,
    ExpiredTokenError,
    InactiveAccountError,
    InvalidTokenError,
    NotFoundError,
    UserError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Most specific classes first
USER_ERROR_STATUS: list[tuple[type[UserError], int, str]] = [
    (AuthenticationError, 401, "authentication_error"),
    (AccessDeniedError, 403, "access_denied"),
    (NotFoundError, 404, "not_found"),
    (ValidationError, 400, "validation_error"),
    (InactiveAccountError, 403, "account_inactive"),
    (InvalidTokenError, 400, "invalid_token"),
    (ExpiredTokenError, 401, "expired_token"),
    (AlreadyUsedTokenError, 401, "token_already_used"),
]


def create_json_error_response(status_code: int, message: str, error_type: str | None = None) -> JSONResponse:
    """Create JSON error response with optional type for machine parsing."""
    content = {"message": message}
    if error_type:
        content["type"] = error_type
    return JSONResponse(status_code=status_code, content=content)


def classify_user_error(exc: Exception) -> tuple[int, str]:
    """Status code and machine-readable type for a UserError."""
    for error_class, status_code, error_type in USER_ERROR_STATUS:
        if isinstance(exc, error_class):
            return status_code, error_type
    return 400, "bad_request"


async def user_error_handler(_: Request, exc: Exception) -> Response:
    """Handle all UserError subclasses with appropriate status codes."""
    status_code, error_type = classify_user_error(exc)
    return create_json_error_response(status_code=status_code, message=str(exc), error_type=error_type)


async def transport_error_handler(_: Request, exc: Exception) -> Response:
    """Relay failures surface as 502, details stay in the log."""
    logger.warning("Mail relay error: %s", exc)
    return create_json_error_response(
        status_code=502, message="The mail relay rejected the message.", error_type="mail_transport_error"
    )


async def general_exception_handler(_: Request, exc: Exception) -> Response:
    """Handle unexpected errors (500)."""
    logger.exception("Unexpected error: %s", exc)
    return create_json_error_response(
        status_code=500, message="An unexpected error occurred.", error_type="internal_server_error"
    )
