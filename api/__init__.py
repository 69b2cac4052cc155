"""API modules for HTTP interface."""

from api.base import (
    APIError,
    APIMeta,
    APIResponse,
    success_response,
    error_response,
    render,
    ErrorCodes,
)
from api.config import APIConfig
