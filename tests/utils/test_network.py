"""Tests for utils/network.py - client IP and bearer token extraction."""

from starlette.requests import Request

from utils.network import get_client_ip, get_bearer_token


def make_request(client=("203.0.113.7", 5000), headers=None) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


class TestGetClientIp:

    def test_valid_ipv4(self):
        assert get_client_ip(make_request()) == "203.0.113.7"

    def test_valid_ipv6(self):
        assert get_client_ip(make_request(client=("2001:db8::1", 5000))) == "2001:db8::1"

    def test_hostname_is_rejected(self):
        assert get_client_ip(make_request(client=("testclient", 5000))) is None

    def test_missing_client(self):
        assert get_client_ip(make_request(client=None)) is None


class TestGetBearerToken:

    def test_extracts_token(self):
        request = make_request(headers={"Authorization": "Bearer abc.def.ghi"})
        assert get_bearer_token(request) == "abc.def.ghi"

    def test_scheme_is_case_insensitive(self):
        request = make_request(headers={"Authorization": "bearer abc"})
        assert get_bearer_token(request) == "abc"

    def test_missing_header(self):
        assert get_bearer_token(make_request()) is None

    def test_other_scheme(self):
        request = make_request(headers={"Authorization": "Basic dXNlcjpwYXNz"})
        assert get_bearer_token(request) is None

    def test_empty_token(self):
        request = make_request(headers={"Authorization": "Bearer "})
        assert get_bearer_token(request) is None
