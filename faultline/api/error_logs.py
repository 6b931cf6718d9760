"""
Error log ingestion endpoint.
"""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from faultline.errors import RateLimitError
from faultline.models.api_response import IngestionResponse
from faultline.models.error_report import ClientErrorReport, IngestedErrorRecord
from faultline.services.backend_errors import resolve_client_ip
from faultline.utils.clock import now_ms
from faultline.utils.metrics import emit_metric

logger = logging.getLogger(__name__)

router = APIRouter(tags=["error-logs"])


def _failure(status_code: int, error: str, headers: dict = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=IngestionResponse(success=False, error=error).model_dump(exclude_none=True),
        headers=headers,
    )


@router.post("/error-logs", response_model=IngestionResponse, response_model_exclude_none=True)
async def ingest_error_log(request: Request):
    """
    Receive a client error report and append it to the frontend error log.

    This endpoint:
    1. Resolves the client identifier (proxy header, peer address, "unknown")
    2. Applies the per-client fixed-window rate limit
    3. Validates the body against the ClientErrorReport schema
    4. Appends the report, stamped with client IP and server time

    Returns:
        200 {"success": true}; 400 on invalid body; 429 when rate limited;
        500 when the log cannot be written
    """
    state = request.app.state
    settings = state.settings
    metrics = state.metrics

    ip = resolve_client_ip(request, settings.trust_proxy_headers)

    try:
        state.rate_limiter.check(ip)
    except RateLimitError as e:
        metrics.record_rate_limited()
        emit_metric("error_logs.rejected", 1, reason="rate_limited")
        logger.warning("Error log rate limit exceeded", extra={"client_ip": ip})
        headers = {"Retry-After": str(max(int(e.retry_after or 0), 1))}
        return _failure(429, "Rate limit exceeded", headers)

    try:
        body = await request.json()
        report = ClientErrorReport.model_validate(
            body,
            context={"max_message_length": settings.max_message_length},
        )
    except (ValueError, PydanticValidationError) as e:
        metrics.record_invalid()
        emit_metric("error_logs.rejected", 1, reason="invalid")
        logger.warning(
            f"Rejected invalid error log: {type(e).__name__}",
            extra={"client_ip": ip}
        )
        return _failure(400, "Invalid error log format")

    record = IngestedErrorRecord.model_validate(
        {**report.model_dump(), "ip": ip, "server_timestamp": now_ms()},
        context={"max_message_length": settings.max_message_length},
    )

    try:
        await state.frontend_log.append(record.to_record())
    except OSError as e:
        metrics.record_persistence_failure()
        emit_metric("error_logs.persistence_failed", 1)
        logger.error(f"Failed to persist error log: {e}", extra={"client_ip": ip}, exc_info=True)
        return _failure(500, "Failed to persist error log")

    metrics.record_accepted()
    emit_metric("error_logs.accepted", 1, report_type=report.type)
    logger.info(
        "Error log accepted",
        extra={"client_ip": ip, "report_type": report.type}
    )
    return IngestionResponse(success=True)
