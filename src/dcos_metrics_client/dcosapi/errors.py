"""Exception types raised by the DC/OS API client.

Every failure reaches the caller as a subclass of :class:`ClusterClientError`
so that the polling loop can decide whether to retry, alert or skip a cycle.
"""


class ClusterClientError(Exception):
    """Base class for all client errors."""


class SigningError(ClusterClientError):
    """Raised when a login assertion cannot be signed."""


class ExpiredTokenError(ClusterClientError):
    """Raised when a static DC/OS token has already expired."""


class APIError(ClusterClientError):
    """Raised for any non-2xx response from the cluster.

    Two errors compare equal when status code, title and description all
    match, so tests and callers can branch on exact error identity.
    """

    def __init__(self, status_code: int, title: str, description: str = ""):
        super().__init__(status_code, title, description)
        self.status_code = status_code
        self.title = title
        self.description = description

    def __str__(self) -> str:
        if self.description:
            return f"{self.title}: {self.description}"
        return self.title

    def __repr__(self) -> str:
        return (
            f"APIError(status_code={self.status_code!r}, "
            f"title={self.title!r}, description={self.description!r})"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, APIError):
            return NotImplemented
        return (self.status_code, self.title, self.description) == (
            other.status_code,
            other.title,
            other.description,
        )

    def __hash__(self) -> int:
        return hash((self.status_code, self.title, self.description))


class TransportError(ClusterClientError):
    """Raised when no HTTP status was obtained.

    The underlying cause (usually an ``httpx.TransportError``) is kept in
    ``cause`` and chained as ``__cause__``.
    """

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause


class RequestTimeoutError(TransportError):
    """Raised when the response timeout elapsed before a response arrived."""


class RequestCancelledError(TransportError):
    """Raised when the caller cancelled the request."""


class DecodeError(ClusterClientError):
    """Raised when a response body does not match the expected JSON shape."""

    SNIPPET_LENGTH = 200

    def __init__(self, type_name: str, body: str):
        self.type_name = type_name
        self.snippet = body[: self.SNIPPET_LENGTH]
        super().__init__(f"cannot decode {type_name} from response body: {self.snippet!r}")
