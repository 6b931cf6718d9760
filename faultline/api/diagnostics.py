"""
Diagnostic endpoint that raises on demand to exercise backend error capture.
"""

import asyncio
from typing import Optional

from fastapi import APIRouter

router = APIRouter(tags=["diagnostics"])

ERROR_TYPES = ["runtime", "validation", "database", "async", "promise"]


async def _failing_operation(message: str = "Async operation failed") -> None:
    await asyncio.sleep(0.01)
    raise RuntimeError(message)


@router.api_route("/test-error", methods=["GET", "POST"])
async def test_error(type: Optional[str] = None) -> dict:
    """Raise the requested kind of error, or list the available kinds."""
    if type == "runtime":
        raise RuntimeError("This is a test runtime error")
    if type == "validation":
        raise ValueError("Validation error: Invalid input data")
    if type == "database":
        raise ConnectionError("Database connection failed")
    if type == "async":
        await _failing_operation()
    if type == "promise":
        # No reference is kept: the failure surfaces through the loop exception handler
        asyncio.get_running_loop().create_task(_failing_operation("Unhandled promise rejection"))
        return {"success": True}

    return {
        "success": True,
        "message": "Error test endpoint",
        "availableTypes": ERROR_TYPES,
        "usage": "/test-error?type=runtime",
    }
