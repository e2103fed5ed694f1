"""
Centralized Error Handling
File: skillcerts/errors.py

Every failure leaves the API in the same envelope as a success:
{
    "success": false,
    "message": "Human-readable description",
    "code": "MACHINE_READABLE_CODE",
    "statusCode": 404,
    "timestamp": "...",
    "errors": [...]   (validation failures only)
}

Internal detail (tracebacks, driver messages) never reaches the client.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from skillcerts.responses import ApiResponse

logger = logging.getLogger(__name__)


class ErrorCode:
    """Unique error codes for machine-readable error handling"""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"

    AUTH_REQUIRED = "AUTH_REQUIRED"
    AUTH_EXPIRED = "AUTH_EXPIRED"
    AUTH_INVALID = "AUTH_INVALID"

    FORBIDDEN = "FORBIDDEN"
    OWNERSHIP_VIOLATION = "OWNERSHIP_VIOLATION"
    ROLE_REQUIRED = "ROLE_REQUIRED"
    NOT_ENROLLED = "NOT_ENROLLED"

    NOT_FOUND = "NOT_FOUND"
    COURSE_NOT_FOUND = "COURSE_NOT_FOUND"
    LECTURE_NOT_FOUND = "LECTURE_NOT_FOUND"
    ENROLLMENT_NOT_FOUND = "ENROLLMENT_NOT_FOUND"
    PAYMENT_NOT_FOUND = "PAYMENT_NOT_FOUND"
    CERTIFICATE_NOT_FOUND = "CERTIFICATE_NOT_FOUND"

    INVALID_STATE = "INVALID_STATE"
    COURSE_NOT_PUBLISHED = "COURSE_NOT_PUBLISHED"
    COURSE_IS_FREE = "COURSE_IS_FREE"
    COURSE_NOT_COMPLETED = "COURSE_NOT_COMPLETED"
    ALREADY_COMPLETED = "ALREADY_COMPLETED"
    PAYMENT_FAILED = "PAYMENT_FAILED"

    CONFLICT = "CONFLICT"
    ALREADY_ENROLLED = "ALREADY_ENROLLED"
    ALREADY_PAID = "ALREADY_PAID"
    ALREADY_VERIFIED = "ALREADY_VERIFIED"
    DUPLICATE_SLUG = "DUPLICATE_SLUG"

    PAYMENT_REQUIRED = "PAYMENT_REQUIRED"

    INTERNAL_ERROR = "INTERNAL_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"


class APIError(Exception):
    """Base API exception with consistent structure"""

    def __init__(
        self,
        status_code: int,
        message: str,
        code: str,
        details: Optional[List[Dict[str, Any]]] = None
    ):
        self.status_code = status_code
        self.message = message
        self.code = code
        self.details = details
        super().__init__(message)

    def to_response(self):
        return ApiResponse.error(self.status_code, self.message, code=self.code, errors=self.details)


class BadRequestError(APIError):
    """400 Bad Request"""
    def __init__(self, message: str, code: str = ErrorCode.INVALID_INPUT):
        super().__init__(status.HTTP_400_BAD_REQUEST, message, code)


class ValidationFailedError(APIError):
    """400 Bad Request - malformed input, with field-level detail"""
    def __init__(self, details: List[Dict[str, Any]], message: str = "Validation failed"):
        super().__init__(status.HTTP_400_BAD_REQUEST, message, ErrorCode.VALIDATION_ERROR, details)


class UnauthorizedError(APIError):
    """401 Unauthorized - missing, invalid or expired credential"""
    def __init__(self, message: str = "Authentication required", code: str = ErrorCode.AUTH_REQUIRED):
        super().__init__(status.HTTP_401_UNAUTHORIZED, message, code)


class PaymentRequiredError(APIError):
    """402 Payment Required"""
    def __init__(self, message: str = "Payment required", code: str = ErrorCode.PAYMENT_REQUIRED):
        super().__init__(status.HTTP_402_PAYMENT_REQUIRED, message, code)


class ForbiddenError(APIError):
    """403 Forbidden - authenticated but not allowed"""
    def __init__(self, message: str = "Forbidden", code: str = ErrorCode.FORBIDDEN):
        super().__init__(status.HTTP_403_FORBIDDEN, message, code)


class NotFoundError(APIError):
    """404 Not Found"""
    def __init__(self, message: str = "Not found", code: str = ErrorCode.NOT_FOUND):
        super().__init__(status.HTTP_404_NOT_FOUND, message, code)


class ConflictError(APIError):
    """409 Conflict - duplicate or uniqueness violation"""
    def __init__(self, message: str = "Conflict", code: str = ErrorCode.CONFLICT):
        super().__init__(status.HTTP_409_CONFLICT, message, code)


class InvalidStateError(APIError):
    """400 Bad Request - operation not valid for the entity's current state"""
    def __init__(self, message: str, code: str = ErrorCode.INVALID_STATE):
        super().__init__(status.HTTP_400_BAD_REQUEST, message, code)


class ServiceUnavailableError(APIError):
    """503 - an upstream collaborator failed or timed out; safe to retry"""
    def __init__(self, message: str = "Service temporarily unavailable. Please retry."):
        super().__init__(status.HTTP_503_SERVICE_UNAVAILABLE, message, ErrorCode.SERVICE_UNAVAILABLE)


class InternalError(APIError):
    """500 - only for true internal failures"""
    def __init__(self, message: str = "An internal error occurred"):
        super().__init__(status.HTTP_500_INTERNAL_SERVER_ERROR, message, ErrorCode.INTERNAL_ERROR)


# ==================== HANDLERS ====================

def _validation_details(exc: RequestValidationError) -> List[Dict[str, Any]]:
    details = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        details.append({"field": ".".join(loc) or None, "message": err.get("msg", "Invalid value")})
    return details


async def api_error_handler(request: Request, exc: APIError):
    return exc.to_response()


async def validation_error_handler(request: Request, exc: RequestValidationError):
    return ValidationFailedError(_validation_details(exc)).to_response()


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return ApiResponse.error(exc.status_code, message, code=f"HTTP_{exc.status_code}")


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return InternalError().to_response()


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
