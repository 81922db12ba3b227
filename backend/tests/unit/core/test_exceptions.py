"""
Tests for custom exception hierarchy.

WHY: Comprehensive exception testing ensures:
1. Exceptions serialize correctly without leaking sensitive data
2. HTTP status codes map correctly
3. Temporal context serializes to JSON
4. Exception handlers work as expected
"""

from datetime import date, datetime

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.core.exceptions import (
    AppException,
    AuthorizationError,
    ValidationError,
    EmptySelectionError,
    ResourceNotFoundError,
    TimesheetNotFoundError,
    TimesheetAlreadyExistsError,
    InvalidStateError,
    ConflictError,
    TimeEntryError,
    OverlapError,
    QuotaExceededError,
    ConfirmationRequiredError,
    PersistenceError,
)
from app.core.exception_handlers import app_exception_handler


class TestAppException:
    """Test base AppException class."""

    def test_default_message(self):
        """Verify default message is used when none provided."""
        exc = AppException()
        assert exc.message == "An unexpected error occurred"
        assert exc.status_code == 500

    def test_custom_message(self):
        """Verify custom message overrides default."""
        exc = AppException(message="Custom error message")
        assert exc.message == "Custom error message"
        assert str(exc) == "Custom error message"

    def test_custom_status_code(self):
        """Verify custom status code overrides class default."""
        exc = AppException(status_code=418)
        assert exc.status_code == 418

    def test_context_data(self):
        """Verify context data is stored."""
        exc = AppException(user_id=123, org_id=456, action="submit")
        assert exc.context == {"user_id": 123, "org_id": 456, "action": "submit"}

    def test_to_dict_basic(self):
        """Verify exception serializes to dict correctly."""
        exc = AppException(message="Test error", user_id=123)
        result = exc.to_dict()

        assert result["error"] == "AppException"
        assert result["message"] == "Test error"
        assert result["status_code"] == 500
        assert result["details"] == {"user_id": 123}

    def test_to_dict_filters_sensitive_data(self):
        """Verify sensitive fields are filtered from dict."""
        exc = AppException(
            message="Test error",
            user_id=123,
            password="secret123",
            token="abc123",
            api_key="key123",
            regular_field="visible",
        )
        details = exc.to_dict()["details"]

        assert details == {"user_id": 123, "regular_field": "visible"}

    def test_to_dict_no_context(self):
        """Verify details is None when there is no context."""
        assert AppException().to_dict()["details"] is None

    def test_to_dict_serializes_temporal_context(self):
        """Verify dates and datetimes in context become ISO strings."""
        exc = ValidationError(
            message="Cannot log time in the future",
            end=datetime(2026, 3, 11, 13, 0),
            week_start=date(2026, 3, 9),
        )

        details = exc.to_dict()["details"]

        assert details["end"] == "2026-03-11T13:00:00"
        assert details["week_start"] == "2026-03-09"


class TestStatusCodes:
    """Test HTTP status mapping of each exception class."""

    @pytest.mark.parametrize(
        "exc_class,status_code",
        [
            (AuthorizationError, 403),
            (ValidationError, 400),
            (EmptySelectionError, 400),
            (ResourceNotFoundError, 404),
            (TimesheetNotFoundError, 404),
            (TimesheetAlreadyExistsError, 409),
            (InvalidStateError, 409),
            (ConflictError, 409),
            (OverlapError, 409),
            (QuotaExceededError, 402),
            (ConfirmationRequiredError, 428),
            (PersistenceError, 503),
        ],
    )
    def test_status_code(self, exc_class, status_code):
        assert exc_class().status_code == status_code

    def test_rule_rejections_share_base(self):
        """Overlap and quota are both business-rule rejections of an entry."""
        assert issubclass(OverlapError, TimeEntryError)
        assert issubclass(QuotaExceededError, TimeEntryError)
        assert not issubclass(ConfirmationRequiredError, TimeEntryError)

    def test_empty_selection_is_validation_error(self):
        exc = EmptySelectionError()
        assert isinstance(exc, ValidationError)
        assert exc.message == "Please select at least one time entry"


class TestExceptionHandlerIntegration:
    """Test exception handler integration with FastAPI."""

    @pytest.fixture
    def app(self):
        """Create test FastAPI app with exception handlers."""
        app = FastAPI()
        app.add_exception_handler(AppException, app_exception_handler)

        @app.get("/test-overlap")
        async def test_overlap():
            raise OverlapError(start=datetime(2026, 3, 11, 9, 0), user_id=1)

        @app.get("/test-sensitive-data")
        async def test_sensitive_data():
            raise PersistenceError(
                message="Store unavailable",
                operation="insert_time_entry",
                secret="should-be-filtered",
            )

        return app

    @pytest.fixture
    def client(self, app):
        """Create test client."""
        return TestClient(app)

    def test_exception_handler_returns_json(self, client):
        """Verify exception handler returns JSON response."""
        response = client.get("/test-overlap")

        assert response.status_code == 409
        assert response.headers["content-type"] == "application/json"

        data = response.json()
        assert data["error"] == "OverlapError"
        assert data["message"] == "Time entry overlaps with existing entry"
        assert data["details"] == {"start": "2026-03-11T09:00:00", "user_id": 1}

    def test_exception_handler_filters_sensitive_data(self, client):
        """Verify exception handler filters sensitive data from response."""
        response = client.get("/test-sensitive-data")

        data = response.json()
        assert response.status_code == 503
        assert "secret" not in data["details"]
        assert data["details"]["operation"] == "insert_time_entry"
