"""Custom exceptions following RFC 9457 Problem Details for HTTP APIs."""

import logging
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

PROBLEM_BASE_URI = "https://stayhub.example.com/problems"


class ErrorKind(str, Enum):
    """Failure kinds surfaced by the booking and settlement core."""
    NOT_FOUND = "NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_STATE = "INVALID_STATE"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    AVAILABILITY_CONFLICT = "AVAILABILITY_CONFLICT"
    SELF_BOOKING_FORBIDDEN = "SELF_BOOKING_FORBIDDEN"
    DUPLICATE_PAYMENT = "DUPLICATE_PAYMENT"


class ProblemDetailsException(HTTPException):
    """
    Base exception class following RFC 9457 Problem Details for HTTP APIs.

    https://tools.ietf.org/rfc/rfc9457.txt
    """

    def __init__(
        self,
        status_code: int,
        title: str,
        detail: Optional[str] = None,
        type_uri: Optional[str] = None,
        instance: Optional[str] = None,
        extensions: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        """
        Initialize Problem Details exception.

        Args:
            status_code: HTTP status code
            title: Short, human-readable summary of the problem type
            detail: Human-readable explanation specific to this occurrence
            type_uri: URI reference that identifies the problem type
            instance: URI reference that identifies the specific occurrence
            extensions: Additional problem-specific information
            headers: HTTP headers to include in response
        """
        self.title = title
        self.type_uri = type_uri or f"about:blank#{status_code}"
        self.instance = instance
        self.extensions = extensions or {}

        self.problem_details = {
            "type": self.type_uri,
            "title": self.title,
            "status": status_code,
        }
        if detail:
            self.problem_details["detail"] = detail
        if instance:
            self.problem_details["instance"] = instance
        self.problem_details.update(self.extensions)

        super().__init__(status_code=status_code, detail=detail, headers=headers)

    def __str__(self) -> str:
        return f"{self.status_code} {self.title}: {self.detail}"


class DomainError(ProblemDetailsException):
    """
    A terminal failure of a core booking or settlement operation.

    Every domain error carries its ``kind`` and a human-readable message; the
    kind is exposed to clients as the ``code`` member of the problem details.
    """

    kind: ErrorKind
    status: int = 409
    title: str = "Conflict"

    def __init__(
        self,
        detail: str,
        extensions: Optional[Dict[str, Any]] = None,
        instance: Optional[str] = None,
    ):
        problem_extensions = {"code": self.kind.value, "retryable": False}
        problem_extensions.update(extensions or {})
        super().__init__(
            status_code=self.status,
            title=self.title,
            detail=detail,
            type_uri=f"{PROBLEM_BASE_URI}/{self.kind.value.lower().replace('_', '-')}",
            instance=instance,
            extensions=problem_extensions,
        )

    @property
    def message(self) -> str:
        return self.detail


class ValidationError(ProblemDetailsException):
    """Exception for request validation errors."""

    def __init__(
        self,
        detail: str = "The request data failed validation",
        violations: Optional[list[Dict[str, str]]] = None,
        instance: Optional[str] = None,
    ):
        extensions = {}
        if violations:
            extensions["violations"] = violations

        super().__init__(
            status_code=422,
            title="Validation Error",
            detail=detail,
            type_uri=f"{PROBLEM_BASE_URI}/validation-error",
            instance=instance,
            extensions=extensions,
        )


class AuthenticationError(ProblemDetailsException):
    """Exception for missing or invalid bearer credentials."""

    def __init__(
        self,
        detail: str = "Authorization credentials are required",
        instance: Optional[str] = None,
    ):
        super().__init__(
            status_code=401,
            title="Authorization Required",
            detail=detail,
            type_uri=f"{PROBLEM_BASE_URI}/authentication-required",
            instance=instance,
            headers={"WWW-Authenticate": "Bearer"},
        )


class NotFoundError(DomainError):
    """Referenced entity is absent."""

    kind = ErrorKind.NOT_FOUND
    status = 404
    title = "Resource Not Found"

    def __init__(
        self,
        resource_type: str = "resource",
        resource_id: Optional[str] = None,
        detail: Optional[str] = None,
    ):
        if not detail:
            detail = f"The requested {resource_type}"
            if resource_id:
                detail += f" with ID '{resource_id}'"
            detail += " could not be found"

        extensions = {"resource_type": resource_type}
        if resource_id:
            extensions["resource_id"] = resource_id

        super().__init__(detail=detail, extensions=extensions)


class AuthorizationError(DomainError):
    """Principal lacks the required relationship to the entity."""

    kind = ErrorKind.UNAUTHORIZED
    status = 403
    title = "Access Forbidden"

    def __init__(self, detail: str = "Insufficient permissions to access this resource"):
        super().__init__(detail=detail)


class InvalidStateError(DomainError):
    """Operation is not legal from the entity's current state."""

    kind = ErrorKind.INVALID_STATE
    title = "Invalid State"

    def __init__(self, detail: str, current_status: Optional[str] = None):
        extensions = {}
        if current_status:
            extensions["current_status"] = current_status
        super().__init__(detail=detail, extensions=extensions)


class InvalidTransitionError(DomainError):
    """Requested booking status is not reachable from the current one."""

    kind = ErrorKind.INVALID_TRANSITION
    title = "Invalid Status Transition"

    def __init__(self, current_status: str, target_status: str):
        super().__init__(
            detail=f"Cannot move booking from '{current_status}' to '{target_status}'",
            extensions={
                "current_status": current_status,
                "target_status": target_status,
            },
        )


class AvailabilityConflictError(DomainError):
    """Requested dates overlap an existing non-cancelled booking."""

    kind = ErrorKind.AVAILABILITY_CONFLICT
    title = "Dates Unavailable"

    def __init__(self, property_id: str, check_in: str, check_out: str):
        super().__init__(
            detail=f"Property {property_id} is not available from {check_in} to {check_out}",
            extensions={
                "property_id": property_id,
                "check_in": check_in,
                "check_out": check_out,
            },
        )


class SelfBookingForbiddenError(DomainError):
    """A host attempted to book their own property."""

    kind = ErrorKind.SELF_BOOKING_FORBIDDEN
    status = 403
    title = "Self Booking Forbidden"

    def __init__(self, property_id: str):
        super().__init__(
            detail="Hosts cannot book their own property",
            extensions={"property_id": property_id},
        )


class DuplicatePaymentError(DomainError):
    """An active payment already settles the booking."""

    kind = ErrorKind.DUPLICATE_PAYMENT
    title = "Duplicate Payment"

    def __init__(self, booking_id: str, payment_id: Optional[str] = None):
        extensions = {"booking_id": booking_id}
        if payment_id:
            extensions["payment_id"] = payment_id
        super().__init__(
            detail=f"Booking {booking_id} already has an active payment",
            extensions=extensions,
        )


async def problem_details_handler(request: Request, exc: ProblemDetailsException) -> JSONResponse:
    """
    Exception handler for Problem Details exceptions.

    Args:
        request: FastAPI request object
        exc: Problem Details exception

    Returns:
        JSONResponse: Problem Details formatted response
    """
    content = dict(exc.problem_details)
    content.setdefault("instance", request.url.path)
    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=exc.headers,
        media_type="application/problem+json",
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Convert FastAPI request validation failures to Problem Details."""
    violations = [
        {
            "path": ".".join(str(part) for part in error["loc"]),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    problem = ValidationError(violations=violations, instance=request.url.path)
    return await problem_details_handler(request, problem)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Generic exception handler that converts unhandled exceptions to Problem Details format.

    Args:
        request: FastAPI request object
        exc: Unhandled exception

    Returns:
        JSONResponse: Problem Details formatted response
    """
    error_id = str(uuid.uuid4())

    logger.error(
        "Unhandled exception",
        extra={"error_id": error_id, "path": request.url.path, "error": str(exc)},
        exc_info=exc,
    )

    problem_details = {
        "type": f"{PROBLEM_BASE_URI}/internal-server-error",
        "title": "Internal Server Error",
        "status": 500,
        "detail": "An unexpected error occurred while processing the request",
        "instance": str(request.url),
        "error_id": error_id,
        "timestamp": datetime.utcnow().isoformat() + "Z",
    }

    return JSONResponse(
        status_code=500,
        content=problem_details,
        media_type="application/problem+json",
    )
