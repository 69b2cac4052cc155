"""Tests for api/base.py - Unified API response format."""

import json
from datetime import timezone

from api.base import (
    success_response,
    error_response,
    render,
    ErrorCodes,
)
from auth.types import TokenPair


class TestSuccessResponse:
    """Tests for success_response()."""

    def test_structure(self):
        resp = success_response({"foo": "bar"})
        assert resp.success is True
        assert resp.data == {"foo": "bar"}
        assert resp.error is None

    def test_request_id_generated(self):
        resp = success_response({})
        assert resp.meta.request_id is not None
        assert len(resp.meta.request_id) > 0

    def test_request_id_passed_through(self):
        resp = success_response({}, request_id="req-123")
        assert resp.meta.request_id == "req-123"

    def test_timestamp_is_utc(self):
        resp = success_response({})
        assert resp.meta.timestamp.tzinfo == timezone.utc


class TestErrorResponse:
    """Tests for error_response()."""

    def test_structure(self):
        resp = error_response("TEST_ERROR", "Something went wrong")
        assert resp.success is False
        assert resp.data is None
        assert resp.error.code == "TEST_ERROR"
        assert resp.error.message == "Something went wrong"

    def test_details_included(self):
        resp = error_response(ErrorCodes.VALIDATION_ERROR, "bad", details=[{"field": "email"}])
        assert resp.error.details == [{"field": "email"}]


class TestRender:
    """Tests for render() - JSON serialization of envelopes."""

    def test_nested_models_use_camel_case(self):
        pair = TokenPair(access_token="a", refresh_token="r", expires_in=900)
        response = render(success_response(pair, "ok", "req-1"))
        body = json.loads(response.body)
        assert body["data"] == {"accessToken": "a", "refreshToken": "r", "expiresIn": 900}
        assert body["meta"]["requestId"] == "req-1"

    def test_status_and_headers(self):
        response = render(error_response("X", "y"), status_code=429, headers={"Retry-After": "5"})
        assert response.status_code == 429
        assert response.headers["Retry-After"] == "5"
