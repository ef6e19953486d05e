"""Thread-safe holder of the cluster authentication token.

Serializes logins so that concurrent callers arriving while unauthenticated
share the outcome of a single login request instead of each issuing their
own.
"""

import enum
import threading
import time
from collections.abc import Callable
from typing import TypeAlias

import structlog

from .errors import RequestCancelledError
from .types import AuthToken

logger = structlog.get_logger(__name__)

# Login callable with the service account already bound; receives the
# caller's timeout and cancel event.
LoginFunc: TypeAlias = Callable[[float | None, threading.Event | None], AuthToken]

# How often a caller waiting on another thread's login checks its cancel event.
CANCEL_POLL_INTERVAL = 0.05


class SessionState(enum.Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"


class Session:
    """Authentication state shared by every caller of one client.

    All state transitions happen under a single lock. The login request
    itself runs outside the lock so that ``invalidate`` never blocks on the
    network; callers arriving meanwhile wait on a condition for the result.
    """

    def __init__(self, login: LoginFunc | None = None, token: AuthToken | None = None):
        """Initialize the session.

        Args:
            login: Function performing a login; None if the session cannot
                log in by itself.
            token: Token to start with, e.g. a static token read from a file.
        """
        self._cond = threading.Condition(threading.Lock())
        self._login = login
        self._token = token
        self._state = SessionState.AUTHENTICATED if token else SessionState.UNAUTHENTICATED
        # Bumped after every finished login attempt; waiters compare against it.
        self._generation = 0
        self._outcome: AuthToken | BaseException | None = None

    @property
    def state(self) -> SessionState:
        with self._cond:
            return self._state

    @property
    def token(self) -> AuthToken | None:
        with self._cond:
            return self._token

    @property
    def can_login(self) -> bool:
        return self._login is not None

    def ensure_authenticated(
        self,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
    ) -> AuthToken | None:
        """Return the current token, logging in first if needed.

        Args:
            timeout: Response timeout for the login request.
            cancel: Event that aborts the call when set.

        Returns:
            The held token, or None when unauthenticated and unable to log in.

        Raises:
            Whatever the login raised; callers that waited on another
            thread's login receive that same error.
        """
        with self._cond:
            if self._state is SessionState.AUTHENTICATING:
                return self._wait_for_login(cancel)
            if self._state is SessionState.AUTHENTICATED or self._login is None:
                return self._token
            self._state = SessionState.AUTHENTICATING

        outcome: AuthToken | BaseException
        try:
            start = time.time()
            outcome = self._login(timeout, cancel)
            logger.info("Authenticated with cluster", duration_seconds=round(time.time() - start, 3))
        except BaseException as exc:  # noqa: BLE001
            outcome = exc

        with self._cond:
            if isinstance(outcome, AuthToken):
                self._token = outcome
                self._state = SessionState.AUTHENTICATED
            else:
                self._token = None
                self._state = SessionState.UNAUTHENTICATED
            self._outcome = outcome
            self._generation += 1
            self._cond.notify_all()

        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def _wait_for_login(self, cancel: threading.Event | None) -> AuthToken:
        # Called with the lock held.
        generation = self._generation
        while self._generation == generation:
            if cancel is not None and cancel.is_set():
                msg = "request cancelled while waiting for login"
                raise RequestCancelledError(msg)
            self._cond.wait(CANCEL_POLL_INTERVAL if cancel is not None else None)
        outcome = self._outcome
        if isinstance(outcome, BaseException):
            # Drop frames other threads added while raising the same error.
            raise outcome.with_traceback(None)
        return outcome

    def invalidate(self, token: AuthToken | None) -> None:
        """Discard the token after the cluster rejected it.

        Only the token the failing request actually used is discarded; a
        token stored by a newer login stays in place. Static tokens are
        never discarded since the session could not replace them.

        Args:
            token: Token that was attached to the rejected request.
        """
        with self._cond:
            if self._login is None or token is None:
                return
            if self._state is SessionState.AUTHENTICATED and self._token == token:
                logger.warning("Authentication token rejected, logging in again on next request")
                self._token = None
                self._state = SessionState.UNAUTHENTICATED
