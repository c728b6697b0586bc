"""
TransferChannel: one HTTP exchange with the upload API.

Wraps requests so that callers see progress callbacks, a total deadline,
cancellation through a threading.Event, and typed failures from
client.errors instead of requests exceptions.
"""
import logging
import threading
import time
from concurrent.futures import Future, wait
from dataclasses import dataclass, field
from typing import Any, Callable

import requests

from client.errors import CancelledError, NetworkError, ServerError, TransferTimeoutError, UploadFailure

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]

DEFAULT_CONNECT_TIMEOUT = 10.0
POLL_INTERVAL = 0.05


@dataclass
class ParsedResponse:
    """Status plus a JSON body (parsed, or synthesized when the server sent something else)."""
    status: int
    body: dict[str, Any] = field(default_factory=dict)
    content_type: str | None = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


@dataclass
class UploadMetadata:
    """Form fields sent alongside the file."""
    filename: str
    content_type: str
    subject_id: str
    year: int
    topic: str | None = None
    sub_category_id: str | None = None

    def form_fields(self) -> dict[str, str]:
        fields = {"subjectId": self.subject_id, "year": str(self.year)}
        if self.topic:
            fields["topic"] = self.topic
        if self.sub_category_id:
            fields["subCategoryId"] = self.sub_category_id
        return fields


class _TransferAborted(Exception):
    """Raised from inside the request body to stop sending."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class ProgressReader:
    """
    File-like request body that counts bytes as the transport pulls them.

    Percentages are derived from the bytes handed to the socket and never go
    down. Cancellation and the deadline are checked before every chunk.
    """

    def __init__(
        self,
        body: bytes,
        on_progress: ProgressCallback | None = None,
        signal: threading.Event | None = None,
        deadline: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._body = body
        self._offset = 0
        self._on_progress = on_progress
        self._signal = signal
        self._deadline = deadline
        self._clock = clock
        self.last_percent = -1

    def __len__(self) -> int:
        return len(self._body)

    @property
    def bytes_sent(self) -> int:
        return self._offset

    def report(self, percent: int) -> None:
        if percent <= self.last_percent:
            return
        self.last_percent = percent
        if self._on_progress:
            self._on_progress(percent)

    def read(self, size: int = -1) -> bytes:
        if self._signal is not None and self._signal.is_set():
            raise _TransferAborted("cancelled")
        if self._deadline is not None and self._clock() > self._deadline:
            raise _TransferAborted("timeout")

        end = len(self._body) if size is None or size < 0 else self._offset + size
        chunk = self._body[self._offset:end]
        self._offset += len(chunk)

        total = len(self._body)
        self.report(100 if total == 0 else self._offset * 100 // total)
        return chunk


def parse_response(response: requests.Response) -> ParsedResponse:
    """Parse a JSON body, falling back to a synthesized one rather than raising."""
    content_type = response.headers.get("content-type")
    body: Any = None

    if content_type and "application/json" in content_type.lower():
        try:
            body = response.json()
        except ValueError:
            logger.warning(f"Could not parse JSON response (status {response.status_code})")

    if not isinstance(body, dict):
        if 200 <= response.status_code < 300:
            body = {"success": True}
        else:
            body = {"error": f"Server returned status {response.status_code}: {response.reason}"}

    return ParsedResponse(status=response.status_code, body=body, content_type=content_type)


def _close_late_response(future: Future) -> None:
    """Release a response that arrives after its exchange was given up."""
    if future.cancelled() or future.exception() is not None:
        return
    future.result().close()


class TransferChannel:
    """
    Sends requests to the upload API and classifies every outcome.

    Each exchange runs on its own worker thread while the caller waits on the
    cancel signal and the total deadline, so neither has to wait for the
    server to answer.
    """

    def __init__(
        self,
        base_url: str,
        access_token: str | None = None,
        session: requests.Session | None = None,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
        poll_interval: float = POLL_INTERVAL,
    ):
        self.base_url = base_url.rstrip("/")
        self.access_token = access_token
        self.session = session or requests.Session()
        self.connect_timeout = connect_timeout
        self.clock = clock
        self.poll_interval = poll_interval

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    def abort(self) -> None:
        """Close pooled connections; the waiting exchange notices the signal on its own."""
        self.session.close()

    def close(self) -> None:
        self.session.close()

    def send(
        self,
        payload: bytes,
        metadata: UploadMetadata,
        on_progress: ProgressCallback | None = None,
        signal: threading.Event | None = None,
        timeout: float = 300.0,
    ) -> ParsedResponse:
        """
        POST the file and its fields to /upload.

        timeout bounds the whole exchange: sending the body and waiting for
        the answer.

        Returns:
            ParsedResponse for a 2xx answer

        Raises:
            CancelledError, TransferTimeoutError, NetworkError, ServerError
        """
        request = requests.Request(
            "POST",
            f"{self.base_url}/upload",
            params={"t": str(int(time.time() * 1000))},
            headers={
                **self._headers(),
                "X-File-Size": str(len(payload)),
                "X-File-Name": metadata.filename,
            },
            data=metadata.form_fields(),
            files={"file": (metadata.filename, payload, metadata.content_type)},
        )
        prepared = self.session.prepare_request(request)
        deadline = self.clock() + timeout
        reader = ProgressReader(
            prepared.body,
            on_progress=on_progress,
            signal=signal,
            deadline=deadline,
            clock=self.clock,
        )
        prepared.body = reader

        logger.info(f"Starting upload of {metadata.filename} ({len(payload)} bytes, timeout {timeout:.0f}s)")
        parsed = self._exchange(prepared, timeout, deadline, signal)
        reader.report(100)
        return parsed

    def request_json(
        self,
        method: str,
        path: str,
        timeout: float = 30.0,
        signal: threading.Event | None = None,
    ) -> ParsedResponse:
        """Small JSON exchange (storage init, admin check) with the same error typing."""
        prepared = self.session.prepare_request(
            requests.Request(method, f"{self.base_url}{path}", headers=self._headers())
        )
        return self._exchange(prepared, timeout, self.clock() + timeout, signal)

    def _exchange(
        self,
        prepared: requests.PreparedRequest,
        timeout: float,
        deadline: float,
        signal: threading.Event | None,
    ) -> ParsedResponse:
        if signal is not None and signal.is_set():
            raise CancelledError()

        future = self._start(prepared, timeout)

        try:
            response = self._await(future, deadline, signal)
        except _TransferAborted as e:
            raise self._aborted(e.reason) from e
        except requests.RequestException as e:
            raise self._classify(e, signal) from e

        try:
            parsed = parse_response(response)
        finally:
            response.close()

        if not parsed.ok:
            raise ServerError(parsed.status, parsed.body)
        return parsed

    def _start(self, prepared: requests.PreparedRequest, timeout: float) -> Future:
        """Run session.send on a daemon thread so an abandoned request never holds up exit."""
        future: Future = Future()

        def run():
            if not future.set_running_or_notify_cancel():
                return
            try:
                future.set_result(self.session.send(prepared, timeout=(self.connect_timeout, timeout)))
            except Exception as e:
                future.set_exception(e)

        threading.Thread(target=run, name="upload-exchange", daemon=True).start()
        return future

    def _await(self, future: Future, deadline: float, signal: threading.Event | None) -> requests.Response:
        """Wait for the worker, giving up on cancel or once the deadline has passed."""
        while not future.done():
            wait([future], timeout=self.poll_interval)
            if future.done():
                break
            if signal is not None and signal.is_set():
                raise self._abandon(future, "cancelled")
            if self.clock() > deadline:
                raise self._abandon(future, "timeout")
        return future.result()

    def _abandon(self, future: Future, reason: str) -> _TransferAborted:
        logger.warning(f"Abandoning in-flight request ({reason})")
        future.add_done_callback(_close_late_response)
        self.session.close()
        return _TransferAborted(reason)

    @staticmethod
    def _aborted(reason: str) -> UploadFailure:
        if reason == "cancelled":
            return CancelledError()
        return TransferTimeoutError("Upload timed out")

    @staticmethod
    def _classify(exc: requests.RequestException, signal: threading.Event | None) -> UploadFailure:
        # A cancel closes the session, which surfaces here as a connection error
        if signal is not None and signal.is_set():
            return CancelledError()
        if isinstance(exc, requests.Timeout):
            return TransferTimeoutError(f"Upload timed out: {exc}")
        return NetworkError(f"Network error occurred during upload: {exc}")
