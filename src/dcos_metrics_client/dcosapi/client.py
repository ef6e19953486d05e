"""DC/OS cluster REST API client.

Provides an HTTP client with service-account authentication, a bounded
number of concurrent requests, and decoding of responses into Pydantic
models or typed errors.
"""

import threading
import time
import urllib.parse
from typing import Any, TypeVar

import httpx
import pydantic
import structlog

from . import signing
from .errors import APIError, DecodeError, RequestCancelledError, RequestTimeoutError, TransportError
from .session import Session
from .types import AuthToken, ErrorBody, Metrics, ServiceAccount, Summary

logger = structlog.get_logger(__name__)

DEFAULT_RESPONSE_TIMEOUT = 20.0

DEFAULT_MAX_CONNECTIONS = 10

LOGIN_PATH = "/acs/api/v1/auth/login"
SUMMARY_PATH = "/mesos/master/state-summary"
NODE_METRICS_PATH = "/system/v1/agent/{node_id}/metrics/v0/node"
CONTAINER_METRICS_PATH = "/system/v1/agent/{node_id}/metrics/v0/containers/{container_id}"

# How often a caller blocked on the admission gate checks its cancel event.
ADMISSION_POLL_INTERVAL = 0.05

ModelT = TypeVar("ModelT", bound=pydantic.BaseModel)


def _path_segment(value: str) -> str:
    """Quote an identifier so it stays a single path segment.

    Raises:
        ValueError: If value is empty or a dot segment.
    """
    if value in ("", ".", ".."):
        msg = f"invalid identifier in request path: {value!r}"
        raise ValueError(msg)
    return urllib.parse.quote(value, safe="")


def decode_response(response: httpx.Response, model: type[ModelT], *, allow_empty: bool = True) -> ModelT:
    """Decode a successful response body into ``model``.

    A 204 or a blank body decodes to ``model()`` when ``allow_empty`` is set.

    Raises:
        DecodeError: If the body does not match the model.
    """
    if allow_empty and (
        response.status_code == httpx.codes.NO_CONTENT or not response.content.strip()
    ):
        return model()
    try:
        return model.model_validate_json(response.content)
    except pydantic.ValidationError as exc:
        raise DecodeError(model.__name__, response.text) from exc


def api_error_from_response(response: httpx.Response) -> APIError:
    """Build an APIError from a failed response.

    Uses the ``title`` and ``description`` of a structured error body when
    there is one, otherwise the status line with an empty description.
    """
    try:
        body = ErrorBody.model_validate_json(response.content)
    except pydantic.ValidationError:
        status_line = f"{response.status_code} {httpx.codes.get_reason_phrase(response.status_code)}"
        return APIError(response.status_code, status_line.strip(), "")
    return APIError(response.status_code, body.title, body.description)


class ClusterClient:
    """HTTP client for the DC/OS cluster REST API.

    Holds the authentication session shared by all callers, and admits at
    most ``max_connections`` simultaneous requests. Safe to use from many
    threads at once. Can be used as a context manager for automatic cleanup.

    Every endpoint accepts a ``timeout`` in seconds and a ``cancel`` event.
    Setting the event stops a call that is still waiting for a login or a
    free connection; once the request is on the wire only the timeout ends it.
    """

    def __init__(
        self,
        base_url: str,
        credentials: ServiceAccount | AuthToken | None = None,
        response_timeout: float = DEFAULT_RESPONSE_TIMEOUT,
        max_connections: int = DEFAULT_MAX_CONNECTIONS,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the REST API client.

        Args:
            base_url: Base URL of the cluster (e.g., "https://dcos.example.com").
            credentials: Service account used to log in, a static token, or
                None to send requests without authentication.
            response_timeout: Default timeout in seconds for each request.
            max_connections: Maximum number of requests in flight at once.
            transport: Optional httpx transport, e.g. one configured for TLS.

        Raises:
            ValueError: If base_url is empty, or response_timeout or
                max_connections is not positive.
        """
        if not base_url:
            msg = "base_url cannot be empty"
            raise ValueError(msg)
        if response_timeout <= 0:
            msg = "response_timeout must be positive"
            raise ValueError(msg)
        if max_connections <= 0:
            msg = "max_connections must be positive"
            raise ValueError(msg)

        self.base_url = base_url.rstrip("/")
        self._response_timeout = response_timeout
        self._admission = threading.BoundedSemaphore(max_connections)
        self._client = httpx.Client(
            base_url=self.base_url,
            headers={
                "Accept": "application/json",
                "Content-Type": "application/json",
            },
            timeout=response_timeout,
            transport=transport,
        )

        if isinstance(credentials, ServiceAccount):
            account = credentials
            self.session = Session(
                login=lambda timeout, cancel: self.login(account, timeout=timeout, cancel=cancel),
            )
        else:
            self.session = Session(token=credentials)

    def __enter__(self):
        """Enter context manager."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Exit context manager and cleanup resources."""
        self.close()

    def close(self):
        """Close the underlying HTTP client if open."""
        if not self._client.is_closed:
            self._client.close()

    def _admit(self, cancel: threading.Event | None) -> None:
        if cancel is None:
            self._admission.acquire()
            return
        while not self._admission.acquire(timeout=ADMISSION_POLL_INTERVAL):
            if cancel.is_set():
                msg = "request cancelled while waiting for a free connection"
                raise RequestCancelledError(msg)

    def _execute(
        self,
        method: str,
        endpoint: str,
        token: AuthToken | None = None,
        json: dict[str, Any] | None = None,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
    ) -> httpx.Response:
        """Perform a single HTTP request to the cluster.

        Waits for a free slot in the admission gate, attaches the token,
        and sends the request exactly once. Does not look at the status.

        Args:
            method: HTTP method.
            endpoint: API endpoint path (e.g., "/mesos/master/state-summary").
            token: Token to attach as authorization, if any.
            json: Optional JSON request body.
            timeout: Response timeout in seconds; defaults to the client's.
            cancel: Event that aborts the request when set. It is checked
                while waiting for admission and before sending; a request
                already sent is bounded only by the timeout.

        Returns:
            The response, whatever its status.

        Raises:
            RequestCancelledError: If cancel was set before the request went out.
            RequestTimeoutError: If no response arrived in time.
            TransportError: For any other failure before a usable response
                arrived, such as a refused connection or a body that does not
                match its Content-Encoding.
        """
        self._admit(cancel)
        try:
            if cancel is not None and cancel.is_set():
                msg = f"{method} {endpoint} cancelled"
                raise RequestCancelledError(msg)

            headers = {"Authorization": f"token={token.text}"} if token is not None else None
            start_time = time.time()
            logger.debug("Making API request", method=method, endpoint=endpoint)
            try:
                response = self._client.request(
                    method,
                    endpoint,
                    json=json,
                    headers=headers,
                    timeout=timeout if timeout is not None else self._response_timeout,
                )
            except httpx.TimeoutException as exc:
                logger.exception(
                    "API request timed out",
                    endpoint=endpoint,
                    duration_seconds=round(time.time() - start_time, 3),
                )
                msg = f"{method} {endpoint} timed out"
                raise RequestTimeoutError(msg, exc) from exc
            except httpx.RequestError as exc:
                logger.exception(
                    "API request failed",
                    endpoint=endpoint,
                    duration_seconds=round(time.time() - start_time, 3),
                )
                msg = f"{method} {endpoint} failed: {exc}"
                raise TransportError(msg, exc) from exc

            logger.debug(
                "API request completed",
                endpoint=endpoint,
                status_code=response.status_code,
                duration_seconds=round(time.time() - start_time, 3),
            )
            return response
        finally:
            self._admission.release()

    def _get(
        self,
        endpoint: str,
        model: type[ModelT],
        timeout: float | None,
        cancel: threading.Event | None,
    ) -> ModelT:
        token = self.session.ensure_authenticated(timeout, cancel)
        response = self._execute("GET", endpoint, token=token, timeout=timeout, cancel=cancel)

        if response.status_code == httpx.codes.UNAUTHORIZED and token is not None:
            self.session.invalidate(token)
            if self.session.can_login:
                logger.info("Retrying request after logging in again", endpoint=endpoint)
                token = self.session.ensure_authenticated(timeout, cancel)
                response = self._execute("GET", endpoint, token=token, timeout=timeout, cancel=cancel)
                if response.status_code == httpx.codes.UNAUTHORIZED:
                    self.session.invalidate(token)

        if not response.is_success:
            raise api_error_from_response(response)
        return decode_response(response, model)

    def login(
        self,
        account: ServiceAccount,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
    ) -> AuthToken:
        """Exchange a signed assertion for an authentication token.

        Failures are not retried.

        Args:
            account: Service account to log in as.
            timeout: Response timeout in seconds.
            cancel: Event that aborts the login when set, up to the point the
                request is sent.

        Returns:
            The token issued by the cluster.

        Raises:
            SigningError: If the assertion cannot be signed.
            APIError: If the cluster does not answer 200.
            DecodeError: If the answer carries no token.
            TransportError: If the request did not complete.
        """
        assertion = signing.sign(account)
        response = self._execute(
            "POST",
            LOGIN_PATH,
            json={"uid": account.account_id, "token": assertion},
            timeout=timeout,
            cancel=cancel,
        )
        if response.status_code != httpx.codes.OK:
            raise api_error_from_response(response)
        return decode_response(response, AuthToken, allow_empty=False)

    def get_summary(
        self,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
    ) -> Summary:
        """Fetch the cluster summary from the Mesos master."""
        return self._get(SUMMARY_PATH, Summary, timeout, cancel)

    def get_node_metrics(
        self,
        node_id: str,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
    ) -> Metrics:
        """Fetch the host-level metrics of an agent node.

        Returns ``Metrics()`` when the node reports nothing. Raises
        ValueError for an empty or dot-segment node_id.
        """
        endpoint = NODE_METRICS_PATH.format(node_id=_path_segment(node_id))
        return self._get(endpoint, Metrics, timeout, cancel)

    def get_container_metrics(
        self,
        node_id: str,
        container_id: str,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
    ) -> Metrics:
        """Fetch the metrics of one container running on an agent node.

        Agents answer 204 for containers without metrics; this returns
        ``Metrics()`` in that case.
        """
        endpoint = CONTAINER_METRICS_PATH.format(
            node_id=_path_segment(node_id),
            container_id=_path_segment(container_id),
        )
        return self._get(endpoint, Metrics, timeout, cancel)
