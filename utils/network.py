"""Request metadata helpers shared by routes and middleware."""

import ipaddress

from starlette.requests import Request


def get_client_ip(request: Request) -> str | None:
    """Extract valid IP address from request, or None if invalid."""
    if not request.client:
        return None
    host = request.client.host
    try:
        ipaddress.ip_address(host)
        return host
    except ValueError:
        return None


def get_bearer_token(request: Request) -> str | None:
    """Return the token from an 'Authorization: Bearer <token>' header."""
    header = request.headers.get("Authorization")
    if not header:
        return None
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()
