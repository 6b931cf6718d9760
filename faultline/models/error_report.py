"""Error report data models.

Two variants share one record shape:

- ClientErrorReport: submitted over HTTP, strictly validated at the boundary.
- BackendErrorReport: built in-process by the backend hooks, trusted.

Validation context key ``max_message_length`` overrides the message bound.
"""

from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, TypeAdapter, ValidationInfo, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

DEFAULT_MAX_MESSAGE_LENGTH = 200

_HTTP_URL = TypeAdapter(HttpUrl)


class ErrorType(str, Enum):
    """Origin of a captured failure."""

    ERROR = "error"
    UNHANDLED_REJECTION = "unhandledrejection"
    BACKEND = "backend"


class _ReportModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_record(self) -> dict:
        """Wire/log representation: camelCase keys, unset optionals dropped."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ClientErrorReport(_ReportModel):
    """Error report captured by a client interceptor."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    message: str
    stack: Optional[str] = None
    url: str
    line_number: Optional[int] = None
    column_number: Optional[int] = None
    browser: Optional[str] = None
    os: Optional[str] = None
    timestamp: int
    type: Literal["error", "unhandledrejection"]
    user_agent: Optional[str] = None
    component_stack: Optional[str] = None

    @field_validator("message")
    @classmethod
    def truncate_message(cls, value: str, info: ValidationInfo) -> str:
        limit = DEFAULT_MAX_MESSAGE_LENGTH
        if info.context and info.context.get("max_message_length"):
            limit = info.context["max_message_length"]
        return value[:limit]

    @field_validator("url")
    @classmethod
    def require_absolute_url(cls, value: str) -> str:
        # Validated as an http(s) URL, stored as submitted
        try:
            _HTTP_URL.validate_python(value)
        except PydanticValidationError as e:
            raise ValueError(f"url must be an absolute http(s) URL: {e.errors()[0]['msg']}") from None
        return value


class IngestedErrorRecord(ClientErrorReport):
    """Client report as persisted, stamped by the collector."""

    ip: str
    server_timestamp: int


class BackendErrorReport(_ReportModel):
    """Error raised inside the backend process. Trusted, not schema-checked on input."""

    message: str = "Unknown error"
    stack: Optional[str] = None
    url: str = ""
    method: str = ""
    timestamp: int
    type: Literal["backend"] = "backend"
    user_agent: str = ""
    ip: str = "unknown"


ErrorReport = Annotated[
    Union[IngestedErrorRecord, BackendErrorReport],
    Field(discriminator="type"),
]
