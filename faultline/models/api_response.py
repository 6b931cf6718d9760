"""API response data models."""

from typing import Optional

from pydantic import BaseModel


class IngestionResponse(BaseModel):
    """Response from the error ingestion endpoint."""

    success: bool
    error: Optional[str] = None
