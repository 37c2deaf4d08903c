"""
Domain errors and global exception handlers — prevents stack-trace leakage
to clients.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

logger = logging.getLogger(__name__)


class LocationAdmissionError(Exception):
    """The coordinate is not inside any permitted location."""

    def __init__(self, message: str, latitude: float, longitude: float) -> None:
        super().__init__(message)
        self.message = message
        self.latitude = latitude
        self.longitude = longitude


class AttendanceStateError(Exception):
    """Check-in while already IN, or check-out while OUT."""

    def __init__(self, message: str, status_code: int = 409) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


async def _http_exception_handler(_request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "success": False},
        headers=getattr(exc, "headers", None),
    )


async def _location_admission_handler(
    _request: Request, exc: LocationAdmissionError
) -> JSONResponse:
    # Echo the rejected coordinate so the client can show "how far am I"
    return JSONResponse(
        status_code=400,
        content={
            "detail": exc.message,
            "success": False,
            "latitude": exc.latitude,
            "longitude": exc.longitude,
        },
    )


async def _attendance_state_handler(
    _request: Request, exc: AttendanceStateError
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "success": False},
    )


async def _integrity_error_handler(_request: Request, exc: IntegrityError) -> JSONResponse:
    logger.error("Database integrity error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=409,
        content={"detail": "Database constraint violation", "success": False},
    )


async def _sqlalchemy_error_handler(_request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal database error", "success": False},
    )


async def _generic_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "success": False},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all exception handlers to the FastAPI app."""
    app.add_exception_handler(HTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(LocationAdmissionError, _location_admission_handler)  # type: ignore[arg-type]
    app.add_exception_handler(AttendanceStateError, _attendance_state_handler)  # type: ignore[arg-type]
    app.add_exception_handler(IntegrityError, _integrity_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, _sqlalchemy_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _generic_exception_handler)
