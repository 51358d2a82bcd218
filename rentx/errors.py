import logging

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse


logger = logging.getLogger("rentx.errors")


class AppError(Exception):
    """Domain rule violation surfaced to the caller as a 4xx response."""

    code = "app_error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str | None = None, *, code: str | None = None):
        super().__init__(message or self.code)
        self.message = message or self.code
        if code:
            self.code = code


class ValidationFailed(AppError):
    code = "validation_failed"


class VehicleUnavailable(AppError):
    code = "vehicle_unavailable"


class BookingConflict(AppError):
    code = "booking_conflict"
    status_code = status.HTTP_409_CONFLICT


class RenterNotFound(AppError):
    code = "renter_not_found"
    status_code = status.HTTP_404_NOT_FOUND


class InvalidDistance(AppError):
    code = "invalid_distance"


class InvalidTransition(AppError):
    code = "invalid_transition"


class AccessDenied(AppError):
    code = "access_denied"
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(AppError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


async def app_error_handler(request: Request, exc: AppError):
    logger.info("%s %s -> %s (%s)", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"code": exc.code, "message": exc.message}},
    )


async def http_exception_handler(request: Request, exc: HTTPException):
    detail = exc.detail
    if isinstance(detail, dict):
        body = {"code": detail.get("code", "http_error"), "message": detail.get("message", str(detail))}
    else:
        body = {"code": "http_error", "message": str(detail)}
    return JSONResponse(status_code=exc.status_code, content={"error": body}, headers=getattr(exc, "headers", None))
