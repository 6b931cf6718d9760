"""
Unit tests for error report data models.
"""

import pytest
from pydantic import TypeAdapter, ValidationError

from faultline.models.error_report import (
    BackendErrorReport,
    ClientErrorReport,
    ErrorReport,
    IngestedErrorRecord,
)


@pytest.fixture
def payload():
    return {
        "message": "Cannot read properties of undefined (reading 'map')",
        "stack": "TypeError: Cannot read properties of undefined\n    at render (app.js:10:5)",
        "url": "https://example.com/contact",
        "lineNumber": 10,
        "columnNumber": 5,
        "timestamp": 1_700_000_000_000,
        "type": "error",
        "userAgent": "Mozilla/5.0",
    }


class TestClientErrorReport:
    """Test client report validation."""

    def test_accepts_camel_case_payload(self, payload):
        report = ClientErrorReport.model_validate(payload)

        assert report.line_number == 10
        assert report.column_number == 5
        assert report.user_agent == "Mozilla/5.0"

    def test_to_record_uses_camel_case_and_drops_unset(self, payload):
        record = ClientErrorReport.model_validate(payload).to_record()

        assert record["lineNumber"] == 10
        assert record["userAgent"] == "Mozilla/5.0"
        assert "componentStack" not in record
        assert "browser" not in record

    @pytest.mark.parametrize("field", ["message", "url", "timestamp", "type"])
    def test_required_fields(self, payload, field):
        del payload[field]
        with pytest.raises(ValidationError):
            ClientErrorReport.model_validate(payload)

    def test_message_is_truncated_not_rejected(self, payload):
        payload["message"] = "x" * 500

        report = ClientErrorReport.model_validate(payload)

        assert report.message == "x" * 200

    def test_message_limit_comes_from_context(self, payload):
        payload["message"] = "x" * 500

        report = ClientErrorReport.model_validate(payload, context={"max_message_length": 50})

        assert len(report.message) == 50

    @pytest.mark.parametrize(
        "url",
        ["not a url", "/relative/path", "", "example.com/page", "http://exa mple.com/", "http://:80/", "ftp://example.com/file"],
    )
    def test_url_must_be_absolute(self, payload, url):
        payload["url"] = url
        with pytest.raises(ValidationError):
            ClientErrorReport.model_validate(payload)

    def test_url_is_stored_as_submitted(self, payload):
        payload["url"] = "HTTPS://Example.com"

        report = ClientErrorReport.model_validate(payload)

        assert report.url == "HTTPS://Example.com"

    def test_backend_type_is_not_accepted_from_clients(self, payload):
        payload["type"] = "backend"
        with pytest.raises(ValidationError):
            ClientErrorReport.model_validate(payload)

    def test_unknown_fields_are_rejected(self, payload):
        payload["isAdmin"] = True
        with pytest.raises(ValidationError):
            ClientErrorReport.model_validate(payload)

    def test_unhandled_rejection_type(self, payload):
        payload["type"] = "unhandledrejection"
        assert ClientErrorReport.model_validate(payload).type == "unhandledrejection"


def test_backend_report_defaults():
    report = BackendErrorReport(timestamp=1)

    assert report.to_record() == {
        "message": "Unknown error",
        "url": "",
        "method": "",
        "timestamp": 1,
        "type": "backend",
        "userAgent": "",
        "ip": "unknown",
    }


def test_error_report_union_dispatches_on_type(payload):
    adapter = TypeAdapter(ErrorReport)

    client = adapter.validate_python({**payload, "ip": "10.0.0.1", "serverTimestamp": 2})
    backend = adapter.validate_python({"message": "boom", "timestamp": 1, "type": "backend"})

    assert isinstance(client, IngestedErrorRecord)
    assert client.server_timestamp == 2
    assert isinstance(backend, BackendErrorReport)
