"""HTTP GET with bounded retries, deadlines, and cancellation."""

import json
import logging
import threading
import time
from concurrent.futures import Future
from concurrent.futures import wait as futures_wait
from typing import Any, Callable, Optional, Tuple

import requests

from genrebender.exceptions import DecodeError, FetchCancelled, FetchError

logger = logging.getLogger(__name__)


class CancelToken:
    """Cancellation signal shared between a caller and in-flight fetches."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, seconds: float) -> bool:
        """Sleep up to `seconds`; return True early if cancelled."""
        return self._event.wait(max(0.0, seconds))


class HttpFetcher:
    """Issues GET requests and decodes JSON bodies, retrying failures."""

    BASE_DELAY = 0.9
    DELAY_STEP = 0.3
    MAX_BODY_CHARS = 500
    CHUNK_SIZE = 16 * 1024
    CANCEL_POLL = 0.05

    def __init__(self, user_agent: str, timeout: float = 15.0,
                 max_attempts: int = 5,
                 session: Optional[requests.Session] = None):
        """
        Initialize fetcher.

        Args:
            user_agent: User-Agent header sent with every request
            timeout: Per-attempt timeout in seconds
            max_attempts: Attempts before giving up
            session: Optional pre-built session (mainly for tests)
        """
        self.user_agent = user_agent
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.session = session or requests.Session()
        self.session.headers.update({
            "User-Agent": user_agent,
            "Accept": "application/json",
        })

    def close(self) -> None:
        self.session.close()

    def retry_delay(self, attempt: int) -> float:
        """Seconds to wait after the zero-based `attempt` fails."""
        return self.BASE_DELAY + attempt * self.DELAY_STEP

    def fetch_json(self, url: str, params: Optional[dict] = None,
                   parse: Optional[Callable[[Any], Any]] = None,
                   timeout: Optional[float] = None,
                   max_attempts: Optional[int] = None,
                   cancel: Optional[CancelToken] = None,
                   deadline: Optional[float] = None) -> Any:
        """
        GET `url` and return the decoded JSON body.

        Args:
            url: Endpoint URL
            params: Query string parameters
            parse: Optional converter applied to the decoded JSON. Lookup
                and conversion errors it raises are treated like malformed
                JSON and retried.
            timeout: Per-attempt timeout override
            max_attempts: Attempt bound override (at least one attempt is made)
            cancel: Token that aborts the in-flight attempt and the retry loop
            deadline: time.monotonic() value after which no attempt starts
                and the current attempt's timeout is clipped

        Returns:
            Decoded (and parsed, if `parse` is given) response body.

        Raises:
            FetchCancelled: If cancelled or past the deadline.
            DecodeError: If the last attempt returned undecodable JSON.
            FetchError: If the last attempt failed at transport or HTTP level.
        """
        timeout = timeout or self.timeout
        attempts = max(1, max_attempts or self.max_attempts)
        last_error: Optional[FetchError] = None

        for attempt in range(attempts):
            attempt_timeout = self._attempt_timeout(url, timeout, cancel, deadline)
            try:
                return self._attempt(url, params, parse, attempt_timeout, cancel)
            except FetchCancelled:
                raise
            except FetchError as e:
                last_error = e

            logger.warning(f"Attempt {attempt + 1}/{attempts} for {url} failed: {last_error}")
            if attempt + 1 >= attempts:
                break

            delay = self.retry_delay(attempt)
            if deadline is not None:
                delay = min(delay, max(0.0, deadline - time.monotonic()))
            if cancel is not None:
                if cancel.wait(delay):
                    raise FetchCancelled(url, f"Request to {url} cancelled")
            else:
                time.sleep(delay)

        raise last_error

    def _attempt_timeout(self, url: str, timeout: float,
                         cancel: Optional[CancelToken],
                         deadline: Optional[float]) -> float:
        self._check_cancelled(url, cancel)
        if deadline is None:
            return timeout
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise FetchCancelled(url, f"Deadline exceeded before requesting {url}")
        return min(timeout, remaining)

    @staticmethod
    def _check_cancelled(url: str, cancel: Optional[CancelToken]) -> None:
        if cancel is not None and cancel.cancelled:
            raise FetchCancelled(url, f"Request to {url} cancelled")

    def _attempt(self, url: str, params: Optional[dict],
                 parse: Optional[Callable[[Any], Any]], timeout: float,
                 cancel: Optional[CancelToken]) -> Any:
        status, content = self._download_cancellable(url, params, timeout, cancel)
        self._check_cancelled(url, cancel)

        if not 200 <= status < 300:
            body = content.decode("utf-8", errors="replace").strip()[:self.MAX_BODY_CHARS]
            raise FetchError(
                url, f"HTTP {status} from {url}: {body}",
                status=status, body=body,
            )
        try:
            data = json.loads(content)
            return parse(data) if parse else data
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise DecodeError(
                url, f"Malformed response from {url}: {e}", status=status,
            ) from e

    def _download_cancellable(self, url: str, params: Optional[dict],
                              timeout: float,
                              cancel: Optional[CancelToken]) -> Tuple[int, bytes]:
        """
        Run one download on a worker thread and wait for it or the token.

        A cancelled caller stops waiting at once. The abandoned worker stops at its
        next chunk (or its socket timeout) and closes the response itself.
        """
        if cancel is None:
            return self._download(url, params, timeout, cancel)

        future: Future = Future()

        def run():
            future.set_running_or_notify_cancel()
            try:
                future.set_result(self._download(url, params, timeout, cancel))
            except Exception as e:
                future.set_exception(e)

        threading.Thread(target=run, name="genrebender-fetch", daemon=True).start()
        while True:
            done, _ = futures_wait([future], timeout=self.CANCEL_POLL)
            self._check_cancelled(url, cancel)
            if done:
                return future.result()

    def _download(self, url: str, params: Optional[dict], timeout: float,
                  cancel: Optional[CancelToken]) -> Tuple[int, bytes]:
        """GET `url` and read the whole body, checking `cancel` between chunks."""
        try:
            resp = self.session.get(url, params=params, timeout=timeout, stream=True)
            with resp:
                chunks = []
                for chunk in resp.iter_content(chunk_size=self.CHUNK_SIZE):
                    self._check_cancelled(url, cancel)
                    chunks.append(chunk)
                return resp.status_code, b"".join(chunks)
        except requests.exceptions.RequestException as e:
            raise FetchError(url, f"Request to {url} failed: {e}") from e
