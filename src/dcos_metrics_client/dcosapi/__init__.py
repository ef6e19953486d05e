"""DC/OS REST API client package.

Provides an HTTP client for the DC/OS cluster API that logs in with a
service account, and returns validated API response types or typed errors.
Turning the responses into metrics is left to the caller.

Exports:
    ClusterClient: HTTP client with authentication and error handling.
    types: Module containing Pydantic models for API responses.
    DEFAULT_RESPONSE_TIMEOUT: Default HTTP request timeout.
    DEFAULT_MAX_CONNECTIONS: Default number of concurrent requests.
"""

from . import types
from .client import (
    DEFAULT_MAX_CONNECTIONS,
    DEFAULT_RESPONSE_TIMEOUT,
    ClusterClient,
)
from .errors import (
    APIError,
    ClusterClientError,
    DecodeError,
    ExpiredTokenError,
    RequestCancelledError,
    RequestTimeoutError,
    SigningError,
    TransportError,
)
from .session import Session, SessionState
from .signing import load_service_account, load_token_file, sign

__all__ = [
    "DEFAULT_MAX_CONNECTIONS",
    "DEFAULT_RESPONSE_TIMEOUT",
    "APIError",
    "ClusterClient",
    "ClusterClientError",
    "DecodeError",
    "ExpiredTokenError",
    "RequestCancelledError",
    "RequestTimeoutError",
    "Session",
    "SessionState",
    "SigningError",
    "TransportError",
    "load_service_account",
    "load_token_file",
    "sign",
    "types",
]
