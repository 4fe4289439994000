"""
Custom exceptions and error handlers for consistent error responses.

Every domain failure maps to a stable error code, an error kind and an
HTTP status. Handlers never leak stack traces or internal identifiers.
"""

import logging
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from typing import Any, Dict

logger = logging.getLogger(__name__)


class AppException(Exception):
    """Base application exception."""

    kind = "internal"

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


# Error kinds

class NotFoundError(AppException):
    """A ride or booking does not exist."""

    kind = "not_found"

    def __init__(self, message: str, error_code: str, details: Dict[str, Any] = None):
        super().__init__(message, error_code, status.HTTP_404_NOT_FOUND, details)


class ForbiddenError(AppException):
    """Authorization failure."""

    kind = "forbidden"

    def __init__(self, message: str, error_code: str, details: Dict[str, Any] = None):
        super().__init__(message, error_code, status.HTTP_403_FORBIDDEN, details)


class ConflictError(AppException):
    """Request conflicts with the current state of a ride or booking."""

    kind = "conflict"

    def __init__(self, message: str, error_code: str, details: Dict[str, Any] = None):
        super().__init__(message, error_code, status.HTTP_409_CONFLICT, details)


class InvalidInputError(AppException):
    """Malformed or out-of-range input."""

    kind = "invalid_input"

    def __init__(self, message: str, error_code: str, details: Dict[str, Any] = None):
        super().__init__(message, error_code, status.HTTP_400_BAD_REQUEST, details)


class StorageUnavailableError(AppException):
    """Connection failure from the storage layer."""

    kind = "storage_unavailable"

    def __init__(self, message: str = "Storage is temporarily unavailable, please try again later", error_code: str = "ERR_STORAGE_UNAVAILABLE"):
        super().__init__(message, error_code, status.HTTP_503_SERVICE_UNAVAILABLE)


class StorageTimeoutError(StorageUnavailableError):
    """The atomic unit did not complete within the storage timeout."""

    def __init__(self, message: str = "Request timed out, please try again"):
        super().__init__(message, "ERR_STORAGE_TIMEOUT")


# Not found

class RideNotFoundError(NotFoundError):
    def __init__(self, ride_id: Any = None):
        super().__init__("Ride not found", "ERR_RIDE_NOT_FOUND", {"resource": "ride", "id": ride_id})


class BookingNotFoundError(NotFoundError):
    def __init__(self, message: str = "Booking not found"):
        super().__init__(message, "ERR_BOOKING_NOT_FOUND", {"resource": "booking"})


# Forbidden

class SelfJoinForbiddenError(ForbiddenError):
    def __init__(self):
        super().__init__("Drivers cannot join their own rides", "ERR_SELF_JOIN")


class NotAuthorizedError(ForbiddenError):
    def __init__(self, message: str = "Only the ride's driver can perform this action"):
        super().__init__(message, "ERR_NOT_RIDE_DRIVER")


class NotADriverError(ForbiddenError):
    def __init__(self):
        super().__init__("Only drivers can create rides", "ERR_NOT_A_DRIVER")


# Conflict

class RideUnavailableError(ConflictError):
    def __init__(self, message: str = "This ride is no longer available"):
        super().__init__(message, "ERR_RIDE_UNAVAILABLE")


class NoSeatsAvailableError(ConflictError):
    def __init__(self):
        super().__init__("No seats available", "ERR_NO_SEATS")


class AlreadyBookedError(ConflictError):
    def __init__(self):
        super().__init__("You are already a passenger on this ride", "ERR_ALREADY_BOOKED")


class InvalidStatusTransitionError(ConflictError):
    def __init__(self, current: str, requested: str):
        super().__init__(
            f"Cannot change ride status from {current} to {requested}",
            "ERR_RIDE_TRANSITION",
            {"current_status": current, "requested_status": requested}
        )


class BookingStateError(ConflictError):
    def __init__(self, message: str):
        super().__init__(message, "ERR_BOOKING_STATE")


class SeatCounterConflictError(ConflictError):
    def __init__(self, ride_id: Any = None):
        super().__init__(
            "Seat counter does not match the ride's bookings",
            "ERR_SEAT_COUNTER",
            {"ride_id": ride_id}
        )


# Invalid input

class InvalidPickupLocationError(InvalidInputError):
    def __init__(self):
        super().__init__(
            "Pickup location must include either coordinates (lat, lng) or latitude/longitude, and address",
            "ERR_INVALID_PICKUP"
        )


class InvalidRideError(InvalidInputError):
    def __init__(self, message: str):
        super().__init__(message, "ERR_INVALID_RIDE")


class InvalidStatusError(InvalidInputError):
    def __init__(self, value: Any):
        super().__init__(f"Unknown status: {value}", "ERR_INVALID_STATUS", {"status": value})


# Global Exception Handlers

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": exc.error_code,
            "kind": exc.kind,
            "message": exc.message,
            "details": exc.details
        }
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException with standardized format."""
    # Map status code to error code
    error_code_map = {
        400: ("ERR_BAD_REQUEST", "invalid_input"),
        401: ("ERR_UNAUTHORIZED", "unauthorized"),
        403: ("ERR_FORBIDDEN", "forbidden"),
        404: ("ERR_NOT_FOUND", "not_found"),
        500: ("ERR_INTERNAL_SERVER", "internal")
    }

    error_code, kind = error_code_map.get(exc.status_code, ("ERR_UNKNOWN", "internal"))

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": error_code,
            "kind": kind,
            "message": exc.detail,
            "details": {}
        },
        headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handler for Pydantic validation errors."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error_code": "ERR_VALIDATION",
            "kind": "invalid_input",
            "message": "Validation error",
            "details": {
                "errors": [
                    {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
                    for error in exc.errors()
                ]
            }
        }
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error_code": "ERR_INTERNAL_SERVER",
            "kind": "internal",
            "message": "An internal server error occurred",
            "details": {}
        }
    )
