"""
Tests for error handling: structured error responses, HTTP status codes,
and the custom exception classes.
"""
import pytest
from datetime import datetime, timezone

from habitflow.core.errors import (
    ConcurrentCompletionError,
    EmailAlreadyRegisteredError,
    ExtractionFailedError,
    HabitAlreadyCompletedError,
    HabitNotFoundError,
    UnauthenticatedError,
)
from habitflow.schemas.habit import INPUT_TEXT_MAX_LENGTH


# ---------------------------------------------------------------------------
# Unit tests on exception classes
# ---------------------------------------------------------------------------

class TestExceptionClasses:
    def test_habit_not_found_error(self):
        err = HabitNotFoundError(habit_id="abc123")
        assert err.http_status == 404
        assert err.code == "HABIT_NOT_FOUND"
        d = err.to_dict()
        assert d["code"] == "HABIT_NOT_FOUND"
        assert d["details"]["habit_id"] == "abc123"

    def test_habit_already_completed_error(self):
        err = HabitAlreadyCompletedError(
            completed_at=datetime(2024, 1, 9, 6, tzinfo=timezone.utc),
            cycle_start=datetime(2024, 1, 9, 5, tzinfo=timezone.utc),
        )
        assert err.http_status == 409
        assert err.code == "HABIT_ALREADY_COMPLETED"
        assert err.details == {
            "completed_at": "2024-01-09T06:00:00+00:00",
            "cycle_start": "2024-01-09T05:00:00+00:00",
        }

    def test_concurrent_completion_error(self):
        err = ConcurrentCompletionError(habit_id="abc123", attempts=3)
        assert err.http_status == 409
        assert err.code == "CONCURRENT_COMPLETION"
        assert err.details["attempts"] == 3

    def test_extraction_failed_error_with_reason(self):
        err = ExtractionFailedError(reason="APITimeoutError")
        assert err.http_status == 502
        assert err.code == "EXTRACTION_FAILED"
        assert err.details["reason"] == "APITimeoutError"

    def test_unauthenticated_error(self):
        err = UnauthenticatedError()
        assert err.http_status == 401
        assert err.code == "UNAUTHENTICATED"

    def test_email_already_registered_error(self):
        err = EmailAlreadyRegisteredError(email="ada@example.com")
        assert err.http_status == 409
        assert "ada@example.com" in err.message

    def test_to_dict_without_details(self):
        err = ExtractionFailedError()
        d = err.to_dict()
        assert "code" in d
        assert "message" in d
        # details should not be in dict when empty
        assert "details" not in d


# ---------------------------------------------------------------------------
# Integration tests on HTTP error responses
# ---------------------------------------------------------------------------

class TestValidationErrors:
    def test_empty_input_returns_validation_error(self, client, auth_headers):
        r = client.post("/habits", json={"input_text": ""}, headers=auth_headers)
        assert r.status_code == 422
        body = r.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert isinstance(body["details"]["errors"], list)

    def test_whitespace_only_input_returns_validation_error(self, client, auth_headers):
        r = client.post("/habits", json={"input_text": "   \t\n  "}, headers=auth_headers)
        assert r.status_code == 422
        assert r.json()["code"] == "VALIDATION_ERROR"

    def test_missing_input_names_the_field(self, client, auth_headers):
        r = client.post("/habits", json={}, headers=auth_headers)
        assert r.status_code == 422
        fields = [e["field"] for e in r.json()["details"]["errors"]]
        assert any("input_text" in f for f in fields)

    def test_input_too_long_returns_validation_error(self, client, auth_headers):
        r = client.post(
            "/habits", json={"input_text": "x" * (INPUT_TEXT_MAX_LENGTH + 1)}, headers=auth_headers
        )
        assert r.status_code == 422
        assert r.json()["code"] == "VALIDATION_ERROR"

    def test_non_string_input_returns_validation_error(self, client, auth_headers):
        r = client.post("/habits", json={"input_text": 42}, headers=auth_headers)
        assert r.status_code == 422

    @pytest.mark.parametrize("email", ["", "not-an-email", "a@b", "two words@example.com"])
    def test_bad_email_rejected(self, client, email):
        r = client.post("/auth/signup", json={"email": email, "password": "password-123"})
        assert r.status_code == 422
        assert r.json()["code"] == "VALIDATION_ERROR"


class TestConflictErrors:
    def test_complete_twice_returns_409_with_code(self, client, auth_headers, clock):
        habit = client.post("/habits", json={"input_text": "ran"}, headers=auth_headers).json()["habit"]
        clock.now = datetime(2024, 1, 11, 6, tzinfo=timezone.utc)
        r1 = client.patch(f"/habits/{habit['id']}/complete", headers=auth_headers)
        assert r1.status_code == 200

        clock.now = datetime(2024, 1, 12, 4, tzinfo=timezone.utc)
        r2 = client.patch(f"/habits/{habit['id']}/complete", headers=auth_headers)
        assert r2.status_code == 409
        body = r2.json()
        assert body["code"] == "HABIT_ALREADY_COMPLETED"
        assert body["details"]["cycle_start"] == "2024-01-11T05:00:00+00:00"
        assert body["details"]["completed_at"] == "2024-01-11T06:00:00+00:00"

    def test_complete_in_creation_cycle_returns_409(self, client, auth_headers):
        habit = client.post("/habits", json={"input_text": "ran"}, headers=auth_headers).json()["habit"]
        r = client.patch(f"/habits/{habit['id']}/complete", headers=auth_headers)
        assert r.status_code == 409
        assert r.json()["details"]["completed_at"] == habit["completed_at"]


class TestErrorEnvelope:
    def test_not_found_envelope(self, client, auth_headers):
        r = client.get("/habits/missing", headers=auth_headers)
        assert r.status_code == 404
        assert set(r.json()) == {"code", "message", "details"}

    def test_unauthenticated_has_no_details(self, client):
        r = client.get("/habits")
        assert r.status_code == 401
        assert "details" not in r.json()
