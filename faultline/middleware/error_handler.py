"""
Application-wide exception handling.

Unhandled route exceptions are written to the backend error log and answered
with a generic 500. The raw message is only echoed in development.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from faultline.utils.logging import get_logger

logger = get_logger(__name__)

GENERIC_SERVER_ERROR = "Internal Server Error. Please try again later."


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Record the exception as a backend error and return a safe response."""
    state = request.app.state
    await state.backend_recorder.record(exc, request)

    detail = str(exc) if state.settings.environment == "development" else GENERIC_SERVER_ERROR
    return JSONResponse(status_code=500, content={"success": False, "error": detail})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(Exception, unhandled_exception_handler)
