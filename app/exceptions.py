import logging
from typing import Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class VerificationError(Exception):
    """Base class for every failure the verification flow reports to a caller."""

    status_code: int = 500
    code: str = "internal"
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidArgument(VerificationError):
    status_code = 400
    code = "invalid_argument"
    default_message = "Invalid request"

    def __init__(self, field: str, message: Optional[str] = None):
        self.field = field
        super().__init__(message or f"{field} is required")


class NotFound(VerificationError):
    status_code = 404
    code = "not_found"
    default_message = "Verification code not found for this phone number"


class AlreadyUsed(VerificationError):
    status_code = 400
    code = "already_used"
    default_message = "This verification code has already been used"


class Expired(VerificationError):
    status_code = 400
    code = "expired"
    default_message = "Verification code has expired"


class CodeMismatch(VerificationError):
    status_code = 400
    code = "code_mismatch"
    default_message = "Invalid verification code"


class DeliveryFailed(VerificationError):
    status_code = 500
    code = "delivery_failed"
    default_message = "Failed to send verification code"


class StoreUnavailable(VerificationError):
    status_code = 500
    code = "store_unavailable"
    default_message = "Verification store is unavailable"


def create_error_response(error_message: str, code: Optional[str] = None) -> dict:
    """Create a standardized error response"""
    return {
        "success": False,
        "data": None,
        "error": error_message,
        "code": code,
    }


async def verification_exception_handler(request: Request, exc: VerificationError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{exc.code}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(exc.message, exc.code)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render request schema violations as InvalidArgument with a field-specific reason."""
    errors = exc.errors()
    if not errors:
        invalid = InvalidArgument("body", "Request body is invalid")
    else:
        first = errors[0]
        loc = [str(part) for part in first.get("loc", ()) if part != "body"]
        field = loc[-1] if loc else "body"
        if first.get("type") == "missing" or (first.get("type") == "string_too_short" and field != "body"):
            invalid = InvalidArgument(field)
        else:
            reason = first.get("msg", "is invalid")
            if reason.startswith("Value error, "):
                reason = reason[len("Value error, "):]
            invalid = InvalidArgument(field, reason)
    return JSONResponse(
        status_code=invalid.status_code,
        content=create_error_response(invalid.message, invalid.code)
    )
