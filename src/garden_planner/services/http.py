"""
Shared HTTP client pieces: retrying sessions and bounded request deadlines.

``create_session`` builds a ``requests.Session`` with a retry adapter and a
default timeout.  Provider clients pass ``retry=NO_RETRY`` because retries
are driven by the caller, not the transport.

``RequestDeadline`` is the cancellation handle for one outbound call: a
timer that marks the call expired and shuts down the socket under the
attached response, so a body read blocked on the network returns at once.
Closing the response alone does not wake a thread stuck in ``recv``.  Use it
as a context manager; the timer is cancelled on every exit path.

Usage::

    from garden_planner.services.http import RequestDeadline, create_session, read_json

    session = create_session(retry=NO_RETRY)
    with RequestDeadline(1.2) as deadline:
        resp = session.get(url, timeout=deadline.request_timeout(), stream=True)
        deadline.attach(resp)
        payload = read_json(resp, deadline)
"""

from __future__ import annotations

import contextlib
import json
import socket
import threading
import time
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.exceptions import HTTPError as Urllib3Error
from urllib3.util.retry import Retry

#: Default retry strategy for idempotent reads of third-party APIs.
DEFAULT_RETRY = Retry(
    total=4,
    backoff_factor=2,  # 0s, 2s, 4s, 8s between retries
    status_forcelist=[429, 502, 503, 504],
    allowed_methods=["GET", "HEAD", "OPTIONS"],
    raise_on_status=False,  # let callers inspect the status
)

#: No transport-level retries; the caller decides whether to try again.
NO_RETRY = Retry(total=0, raise_on_status=False, redirect=3)

DEFAULT_TIMEOUT = 30  # seconds

USER_AGENT = "garden-planner/0.1"

_CHUNK_SIZE = 16 * 1024
_MIN_SOCKET_TIMEOUT = 0.001


class DeadlineExceeded(Exception):
    """The request budget ran out before the call completed."""


class RequestCancelled(Exception):
    """The caller cancelled the request."""


def create_session(
    retry: Retry | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> requests.Session:
    """
    Build a ``requests.Session`` with retry adapter mounted.

    Args:
        retry: Custom retry strategy (defaults to ``DEFAULT_RETRY``).
        timeout: Default timeout applied to every request.
    """
    s = requests.Session()
    adapter = HTTPAdapter(max_retries=retry if retry is not None else DEFAULT_RETRY)
    s.mount("https://", adapter)
    s.mount("http://", adapter)
    s.headers["User-Agent"] = USER_AGENT

    # Inject a default timeout so callers don't need to pass ``timeout=`` every time.
    _original_send = s.send

    def _send_with_timeout(
        prepared: requests.PreparedRequest, **kwargs: object
    ) -> requests.Response:
        kwargs.setdefault("timeout", timeout)
        return _original_send(prepared, **kwargs)  # type: ignore[arg-type]

    s.send = _send_with_timeout  # type: ignore[method-assign]
    return s


class RequestDeadline:
    """Hard time budget and cancellation handle for a single request."""

    def __init__(self, timeout_s: float) -> None:
        if timeout_s <= 0:
            msg = f"timeout must be positive, got {timeout_s}"
            raise ValueError(msg)
        self.timeout_s = timeout_s
        self.expired = False
        self.cancelled = False
        self._lock = threading.Lock()
        self._response: requests.Response | None = None
        self._timer: threading.Timer | None = None
        self._started_at: float | None = None

    def __enter__(self) -> RequestDeadline:
        self._started_at = time.monotonic()
        self._timer = threading.Timer(self.timeout_s, self._expire)
        self._timer.daemon = True
        self._timer.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()

    @property
    def active(self) -> bool:
        """Whether the timer is still pending."""
        return self._timer is not None and not self._timer.finished.is_set()

    def remaining(self) -> float:
        """Seconds left in the budget (never negative)."""
        if self._started_at is None:
            return self.timeout_s
        return max(0.0, self.timeout_s - (time.monotonic() - self._started_at))

    def request_timeout(self) -> float:
        """Timeout to pass to ``requests``; raises if the budget is already spent."""
        self.check()
        return max(self.remaining(), _MIN_SOCKET_TIMEOUT)

    def attach(self, response: requests.Response) -> None:
        """Register the in-flight response so expiry or cancel can close it."""
        with self._lock:
            self._response = response
            abort = self.expired or self.cancelled
        if abort:
            _abort_response(response)

    def cancel(self) -> None:
        """Abort the request from any thread."""
        with self._lock:
            self.cancelled = True
            response = self._response
        if response is not None:
            _abort_response(response)

    def abort_error(self) -> DeadlineExceeded | RequestCancelled | None:
        """The exception describing why the request was aborted, if it was."""
        if self.expired:
            return DeadlineExceeded(f"request exceeded {self.timeout_s:.3f}s budget")
        if self.cancelled:
            return RequestCancelled("request cancelled by caller")
        return None

    def check(self) -> None:
        """Raise if the request expired or was cancelled."""
        error = self.abort_error()
        if error is not None:
            raise error

    def release(self) -> None:
        """Stop the timer and close the attached response."""
        if self._timer is not None:
            self._timer.cancel()
        with self._lock:
            response, self._response = self._response, None
        if response is not None:
            response.close()

    def _expire(self) -> None:
        with self._lock:
            self.expired = True
            response = self._response
        if response is not None:
            _abort_response(response)


def _response_socket(response: requests.Response) -> socket.socket | None:
    """The socket a streamed ``requests`` response is reading from, if any."""
    raw = getattr(response, "raw", None)
    sock = getattr(getattr(raw, "_connection", None), "sock", None)
    if sock is None:
        # http.client response -> buffered reader -> SocketIO
        fp = getattr(getattr(raw, "_fp", None), "fp", None)
        sock = getattr(getattr(fp, "raw", None), "_sock", None)
    return sock if isinstance(sock, socket.socket) else None


def _abort_response(response: requests.Response) -> None:
    sock = _response_socket(response)
    if sock is not None:
        # Already closed or never connected
        with contextlib.suppress(OSError):
            sock.shutdown(socket.SHUT_RDWR)
    response.close()


def read_body(response: requests.Response, deadline: RequestDeadline) -> bytes:
    """
    Read a streamed body chunk by chunk, honouring the deadline.

    A read broken off by expiry or ``cancel()`` raises ``DeadlineExceeded`` or
    ``RequestCancelled`` chained to the underlying I/O error.
    """
    chunks: list[bytes] = []
    try:
        for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
            deadline.check()
            if chunk:
                chunks.append(chunk)
    except (requests.RequestException, Urllib3Error, OSError, ValueError) as e:
        aborted = deadline.abort_error()
        if aborted is not None:
            raise aborted from e
        raise
    deadline.check()
    return b"".join(chunks)


def read_json(response: requests.Response, deadline: RequestDeadline) -> Any:
    """Read a streamed body and decode it as JSON."""
    body = read_body(response, deadline)
    return json.loads(body)


def excerpt(text: str, limit: int = 200) -> str:
    """Truncate ``text`` for error messages."""
    text = text.strip()
    return text if len(text) <= limit else text[:limit] + "..."
