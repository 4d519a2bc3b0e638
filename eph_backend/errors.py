"""
eph_backend/errors.py
Centralized Error Handling

CORE PRINCIPLES:
- No 500 errors caused by user input
- All errors follow consistent structure
- Errors are user-safe (no stack traces)
- Errors are machine-readable

ERROR RESPONSE STRUCTURE:
{
    "success": false,
    "error": "ErrorType",
    "message": "Human-readable description",
    "code": "UNIQUE_ERROR_CODE",
    "details": {} (optional)
}

HTTP STATUS CODE DISCIPLINE:
- 200/201: Successful, valid request
- 400: Invalid input or a registration rule was violated
- 401: Authentication missing or expired
- 403: Access forbidden (ownership / role)
- 404: Resource does not exist
- 422: Validation error (Pydantic)
- 429: Rate limit exceeded
- 500: NEVER caused by user input (internal only)
"""

import logging
import uuid
from typing import Optional, Dict, Any
from fastapi import status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ErrorCode:
    """Unique error codes for machine-readable error handling"""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_SCHEDULE = "INVALID_SCHEDULE"

    AUTH_REQUIRED = "AUTH_REQUIRED"
    AUTH_INVALID = "AUTH_INVALID"

    FORBIDDEN = "FORBIDDEN"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    OWNERSHIP_VIOLATION = "OWNERSHIP_VIOLATION"

    NOT_FOUND = "NOT_FOUND"
    COMPETITION_NOT_FOUND = "COMPETITION_NOT_FOUND"
    REGISTRATION_NOT_FOUND = "REGISTRATION_NOT_FOUND"

    INVALID_STATE = "INVALID_STATE"

    # Registration taxonomy
    ALREADY_REGISTERED = "ALREADY_REGISTERED"
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
    TEAM_TOO_LARGE = "TEAM_TOO_LARGE"
    MEMBER_CONFLICT = "MEMBER_CONFLICT"
    REGISTRATION_CLOSED = "REGISTRATION_CLOSED"
    CANCELLATION_NOT_ALLOWED = "CANCELLATION_NOT_ALLOWED"
    NOT_REGISTRATION_LEADER = "NOT_REGISTRATION_LEADER"

    RATE_LIMITED = "RATE_LIMITED"

    INTERNAL_ERROR = "INTERNAL_ERROR"


class APIError(Exception):
    """Base API exception with consistent structure"""

    def __init__(
        self,
        status_code: int,
        error: str,
        message: str,
        code: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.status_code = status_code
        self.error = error
        self.message = message
        self.code = code
        self.details = details
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        result = {
            "success": False,
            "error": self.error,
            "message": self.message,
            "code": self.code
        }
        if self.details:
            result["details"] = self.details
        return result

    def to_response(self) -> JSONResponse:
        """Convert to FastAPI JSONResponse"""
        return JSONResponse(status_code=self.status_code, content=self.to_dict())


class BadRequestError(APIError):
    """400 Bad Request - Invalid input"""
    def __init__(self, message: str, code: str = ErrorCode.INVALID_INPUT, details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error="Bad Request",
            message=message,
            code=code,
            details=details
        )


class ForbiddenError(APIError):
    """403 Forbidden - Access denied"""
    def __init__(self, message: str, code: str = ErrorCode.FORBIDDEN, details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            error="Forbidden",
            message=message,
            code=code,
            details=details
        )


class NotFoundError(APIError):
    """404 Not Found - Resource does not exist"""
    def __init__(self, resource: str, identifier: Any = None, code: str = ErrorCode.NOT_FOUND):
        message = f"{resource} not found"
        if identifier is not None:
            message = f"{resource} with id '{identifier}' not found"
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            error="Not Found",
            message=message,
            code=code
        )


class InvalidStateError(APIError):
    """400 Bad Request - Operation not allowed in the current state"""
    def __init__(self, message: str, code: str = ErrorCode.INVALID_STATE, details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error="Invalid State",
            message=message,
            code=code,
            details=details
        )


class InternalError(APIError):
    """500 Internal Server Error - Use sparingly, only for true internal failures"""
    def __init__(self, message: str = "An internal error occurred", log_id: Optional[str] = None):
        details = {"log_id": log_id} if log_id else None
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error="Internal Error",
            message=message,
            code=ErrorCode.INTERNAL_ERROR,
            details=details
        )


# ================= REGISTRATION TAXONOMY =================

class CompetitionNotFoundError(NotFoundError):
    def __init__(self, competition_id: Any = None):
        super().__init__("Competition", competition_id, code=ErrorCode.COMPETITION_NOT_FOUND)


class RegistrationNotFoundError(NotFoundError):
    def __init__(self, registration_id: Any = None):
        super().__init__("Registration", registration_id, code=ErrorCode.REGISTRATION_NOT_FOUND)


class RegistrationClosedError(BadRequestError):
    """Competition inactive, past its deadline, or already over."""
    def __init__(self, message: str = "Competition registration has ended"):
        super().__init__(message, code=ErrorCode.REGISTRATION_CLOSED)


class AlreadyRegisteredError(BadRequestError):
    def __init__(self, message: str = "You are already registered for this competition"):
        super().__init__(message, code=ErrorCode.ALREADY_REGISTERED)


class CapacityExceededError(BadRequestError):
    """No seats left at reservation time. State is unchanged."""
    def __init__(self, competition_id: Any = None, requested: int = 1, remaining: Optional[int] = None):
        details = {"competition_id": competition_id, "requested": requested}
        if remaining is not None:
            details["seats_remaining"] = remaining
        super().__init__(
            "No seats remaining for this competition",
            code=ErrorCode.CAPACITY_EXCEEDED,
            details=details
        )


class TeamTooLargeError(BadRequestError):
    def __init__(self, max_team_size: int, requested: int):
        super().__init__(
            f"Team size cannot exceed {max_team_size} members",
            code=ErrorCode.TEAM_TOO_LARGE,
            details={"max_team_size": max_team_size, "requested": requested}
        )


class MemberConflictError(BadRequestError):
    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(message, code=ErrorCode.MEMBER_CONFLICT, details=details)


class CancellationNotAllowedError(InvalidStateError):
    def __init__(self, message: str):
        super().__init__(message, code=ErrorCode.CANCELLATION_NOT_ALLOWED)


class NotRegistrationLeaderError(ForbiddenError):
    def __init__(self):
        super().__init__(
            "Only team leader can cancel registration",
            code=ErrorCode.NOT_REGISTRATION_LEADER
        )


# ================= HELPERS =================

def new_log_id() -> str:
    return str(uuid.uuid4())[:8]


ERROR_MAPPING = {
    400: ("Bad Request", ErrorCode.INVALID_INPUT),
    401: ("Unauthorized", ErrorCode.AUTH_REQUIRED),
    403: ("Forbidden", ErrorCode.FORBIDDEN),
    404: ("Not Found", ErrorCode.NOT_FOUND),
    405: ("Method Not Allowed", ErrorCode.INVALID_INPUT),
    422: ("Validation Error", ErrorCode.VALIDATION_ERROR),
    429: ("Too Many Requests", ErrorCode.RATE_LIMITED),
    500: ("Internal Error", ErrorCode.INTERNAL_ERROR),
}


def get_error_summary() -> Dict[str, Any]:
    """Return summary of error handling system for documentation"""
    return {
        "version": "1.0",
        "service": "api-error-handler",
        "response_structure": {
            "success": "boolean (always false for errors)",
            "error": "string (error type)",
            "message": "string (human-readable)",
            "code": "string (machine-readable)",
            "details": "object (optional)"
        },
        "status_codes": {
            str(code): label for code, (label, _) in ERROR_MAPPING.items()
        },
        "error_codes": [
            attr for attr in dir(ErrorCode)
            if not attr.startswith('_')
        ]
    }
