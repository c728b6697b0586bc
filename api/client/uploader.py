"""
UploadClient: validation, retry and cancellation around a TransferChannel.

States:
    IDLE -> VALIDATING -> TRANSFERRING -> SUCCEEDED | RETRYING | FAILED
    RETRYING -> TRANSFERRING
    any terminal state -> IDLE on reset()
"""
import io
import logging
import mimetypes
import threading
import time
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from pathlib import Path
from typing import Any, BinaryIO, Callable, Mapping

from client.errors import (
    CancelledError,
    FailureKind,
    ServerError,
    UploadFailure,
    ValidationError,
    describe_failure,
    is_retryable,
)
from client.transfer import ParsedResponse, ProgressCallback, TransferChannel, UploadMetadata

logger = logging.getLogger(__name__)

MIB = 1024 * 1024

ACCEPTED_CONTENT_TYPE = "application/pdf"
MAX_FILE_SIZE = 50 * MIB
LARGE_FILE_THRESHOLD = 50 * MIB
LARGE_FILE_TIMEOUT = 600.0
DEFAULT_TIMEOUT = 300.0
ADMIN_CHECK_TIMEOUT = 5.0

MAX_RETRIES = 2
BASE_DELAY = 2.0
MIN_YEAR = 2000


class UploadState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    TRANSFERRING = "transferring"
    RETRYING = "retrying"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


TERMINAL_STATES = frozenset({UploadState.SUCCEEDED, UploadState.FAILED})


class UploadInProgressError(RuntimeError):
    """A second submission was made while a transfer is running."""


@dataclass
class LocalFile:
    """A file selected for upload: name, declared type, size and a way to open it."""
    name: str
    size: int
    content_type: str | None
    opener: Callable[[], BinaryIO]

    @classmethod
    def from_path(cls, path: str | Path, content_type: str | None = None) -> "LocalFile":
        path = Path(path)
        guessed, _ = mimetypes.guess_type(path.name)
        return cls(
            name=path.name,
            size=path.stat().st_size,
            content_type=content_type or guessed,
            opener=lambda: path.open("rb"),
        )

    @classmethod
    def from_bytes(cls, name: str, data: bytes, content_type: str | None) -> "LocalFile":
        return cls(name=name, size=len(data), content_type=content_type, opener=lambda: io.BytesIO(data))

    def read_bytes(self) -> bytes:
        with self.opener() as handle:
            return handle.read()


@dataclass
class SubjectInfo:
    """What the client knows about a subject when validating."""
    id: str
    name: str = ""
    has_subcategories: bool = False


@dataclass
class UploadRequest:
    file: LocalFile | None
    subject_id: str | None
    year: int | str | None
    sub_category_id: str | None = None
    topic: str | None = None


@dataclass
class TransferAttempt:
    index: int
    started_at: float
    bytes_sent: int = 0
    outcome: str = "pending"  # pending, success, or a FailureKind value
    delay_before: float = 0.0


@dataclass
class UploadResult:
    state: UploadState
    paper: dict[str, Any] | None = None
    error: UploadFailure | None = None
    message: str | None = None
    attempts: list[TransferAttempt] = field(default_factory=list)

    @property
    def file_url(self) -> str | None:
        if self.paper:
            return self.paper.get("fileUrl")
        if isinstance(self.error, ServerError):
            return self.error.file_url
        return None


def transfer_timeout(size: int) -> float:
    """Slow links near the size cap get the longer tier."""
    return LARGE_FILE_TIMEOUT if size > LARGE_FILE_THRESHOLD else DEFAULT_TIMEOUT


def backoff_delay(retry: int, base_delay: float = BASE_DELAY) -> float:
    """Delay before retry number `retry` (1-based): base, then 2x base."""
    return base_delay * 2 ** (retry - 1)


def _wait(signal: threading.Event, delay: float) -> bool:
    return signal.wait(delay)


class UploadClient:
    """
    Drives one logical upload at a time through a TransferChannel.

    Failures are classified once by the channel; this class only matches on
    their kind to decide between retrying, succeeding and failing.
    """

    def __init__(
        self,
        channel: TransferChannel,
        subjects: Mapping[str, SubjectInfo] | None = None,
        max_retries: int = MAX_RETRIES,
        base_delay: float = BASE_DELAY,
        max_file_size: int = MAX_FILE_SIZE,
        on_progress: ProgressCallback | None = None,
        on_state_change: Callable[[UploadState], None] | None = None,
        waiter: Callable[[threading.Event, float], bool] = _wait,
        today: Callable[[], date] = date.today,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.channel = channel
        self.subjects = dict(subjects or {})
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_file_size = max_file_size
        self.on_progress = on_progress
        self.on_state_change = on_state_change
        self.waiter = waiter
        self.today = today
        self.clock = clock

        self._lock = threading.Lock()
        self._signal = threading.Event()
        self._state = UploadState.IDLE
        self._request: UploadRequest | None = None
        self._year: int | None = None
        self.attempts: list[TransferAttempt] = []
        self.progress = 0
        self.last_result: UploadResult | None = None

    # ---- State ----------------------------------------------------------------

    @property
    def state(self) -> UploadState:
        return self._state

    def _transition(self, state: UploadState) -> None:
        logger.debug(f"Upload state {self._state.value} -> {state.value}")
        self._state = state
        if self.on_state_change:
            self.on_state_change(state)

    def reset(self) -> None:
        """Return to IDLE from a terminal state, dropping the request and attempts."""
        with self._lock:
            if self._state not in TERMINAL_STATES and self._state != UploadState.IDLE:
                raise UploadInProgressError(f"Cannot reset while {self._state.value}")
            self._request = None
            self._year = None
            self.attempts = []
            self.progress = 0
            self._signal = threading.Event()
            self._transition(UploadState.IDLE)

    def cancel(self) -> None:
        """Abort the in-flight transfer or backoff; the upload ends FAILED with CancelledError."""
        logger.info("Upload cancellation requested")
        self._signal.set()
        if self._state == UploadState.TRANSFERRING:
            self.channel.abort()

    # ---- Validation -----------------------------------------------------------

    def _check(self, request: UploadRequest) -> int:
        if request.file is None or not request.subject_id or request.year in (None, ""):
            raise ValidationError("Please fill all required fields")

        subject = self.subjects.get(request.subject_id)
        if subject and subject.has_subcategories and not request.sub_category_id:
            raise ValidationError("Please select a subcategory")

        if request.file.content_type != ACCEPTED_CONTENT_TYPE:
            raise ValidationError("Invalid file type: please upload a PDF file only")

        if request.file.size > self.max_file_size:
            raise ValidationError(
                f"File too large: please upload a file smaller than {self.max_file_size // MIB}MB"
            )

        year_text = str(request.year).strip()
        current_year = self.today().year
        if len(year_text) != 4 or not year_text.isdigit() or not MIN_YEAR <= int(year_text) <= current_year:
            raise ValidationError(f"Year must be a 4-digit year between {MIN_YEAR} and {current_year}")
        return int(year_text)

    def validate(self, request: UploadRequest) -> None:
        """
        Check a request before anything touches the network.

        Raises:
            UploadInProgressError: A transfer is running
            ValidationError: Wrong file type, file too large, missing required
                field, year out of range, or missing subcategory
        """
        with self._lock:
            if self._state in (UploadState.TRANSFERRING, UploadState.RETRYING):
                raise UploadInProgressError("An upload is already in progress")
            self._transition(UploadState.VALIDATING)
            try:
                self._year = self._check(request)
            except ValidationError as e:
                logger.info(f"Upload rejected before transfer: {e.reason}")
                self._request = None
                self._finish(UploadResult(state=UploadState.FAILED, error=e, message=e.reason))
                raise
            self._request = request
            self._signal = threading.Event()
            self.attempts = []
            self._transition(UploadState.TRANSFERRING)

    # ---- Transfer -------------------------------------------------------------

    def _report_progress(self, percent: int) -> None:
        if percent <= self.progress:
            return
        self.progress = percent
        if self.on_progress:
            self.on_progress(percent)

    def _attempt(self, payload: bytes, metadata: UploadMetadata, timeout: float) -> ParsedResponse:
        attempt = self.attempts[-1]

        def on_progress(percent: int) -> None:
            attempt.bytes_sent = len(payload) * percent // 100
            self._report_progress(percent)

        return self.channel.send(
            payload,
            metadata,
            on_progress=on_progress,
            signal=self._signal,
            timeout=timeout,
        )

    def submit(self) -> UploadResult:
        """
        Send the validated request, retrying transient failures.

        At most max_retries retries follow the first attempt, with delays of
        base_delay, then 2 * base_delay. Failures never escape as exceptions:
        they end in FAILED with a user-facing message on the result.

        Raises:
            UploadInProgressError: Not validated, or another transfer is running
        """
        with self._lock:
            if self._state != UploadState.TRANSFERRING or self._request is None or self.attempts:
                raise UploadInProgressError(
                    f"submit() requires a freshly validated request (state: {self._state.value})"
                )
            request = self._request
            # Claim the slot before releasing the lock
            self.attempts.append(TransferAttempt(index=0, started_at=self.clock()))

        try:
            payload = request.file.read_bytes()
        except OSError as e:
            failure = ValidationError(f"Could not read file: {e}")
            self.attempts[-1].outcome = failure.kind.value
            return self._finish(UploadResult(state=UploadState.FAILED, error=failure, message=failure.reason))

        metadata = UploadMetadata(
            filename=request.file.name,
            content_type=request.file.content_type or ACCEPTED_CONTENT_TYPE,
            subject_id=request.subject_id,
            year=self._year,
            topic=request.topic,
            sub_category_id=request.sub_category_id,
        )
        timeout = transfer_timeout(request.file.size)

        while True:
            attempt = self.attempts[-1]
            self.progress = 0
            logger.info(f"Upload attempt {attempt.index + 1}/{self.max_retries + 1} for {metadata.filename}")

            try:
                response = self._attempt(payload, metadata, timeout)
            except UploadFailure as failure:
                attempt.outcome = failure.kind.value
                if self._signal.is_set() and failure.kind != FailureKind.CANCELLED:
                    failure = CancelledError()
                    attempt.outcome = failure.kind.value
                logger.warning(f"Upload attempt {attempt.index + 1} failed ({failure.kind.value}): {failure}")

                retry = attempt.index + 1
                if not is_retryable(failure) or retry > self.max_retries:
                    if is_retryable(failure):
                        logger.error(f"Upload failed after {len(self.attempts)} attempts: {failure}")
                    return self._fail(failure)

                delay = backoff_delay(retry, self.base_delay)
                self._transition(UploadState.RETRYING)
                logger.info(f"Retrying upload (attempt {retry + 1}/{self.max_retries + 1}) in {delay:g} seconds")
                if self.waiter(self._signal, delay) or self._signal.is_set():
                    return self._fail(CancelledError())

                self.attempts.append(TransferAttempt(index=retry, started_at=self.clock(), delay_before=delay))
                self._transition(UploadState.TRANSFERRING)
                continue

            if self._signal.is_set():
                # Answer arrived after cancel; the user already asked to stop
                attempt.outcome = FailureKind.CANCELLED.value
                return self._fail(CancelledError())

            attempt.outcome = "success"
            attempt.bytes_sent = len(payload)
            self._report_progress(100)
            logger.info(f"Upload succeeded on attempt {attempt.index + 1}")
            return self._finish(UploadResult(
                state=UploadState.SUCCEEDED,
                paper=response.body.get("paper"),
                message="Paper uploaded successfully",
                attempts=list(self.attempts),
            ))

    def upload(self, request: UploadRequest) -> UploadResult:
        """validate() then submit(), reporting validation failures as a result."""
        try:
            self.validate(request)
        except ValidationError:
            return self.last_result
        return self.submit()

    def _fail(self, failure: UploadFailure) -> UploadResult:
        return self._finish(UploadResult(
            state=UploadState.FAILED,
            error=failure,
            message=describe_failure(failure),
            attempts=list(self.attempts),
        ))

    def _finish(self, result: UploadResult) -> UploadResult:
        self._transition(result.state)
        self.last_result = result
        return result

    # ---- Admin surface --------------------------------------------------------

    def initialize_storage(self) -> ParsedResponse:
        """POST /storage/init. Raises the channel's typed failures."""
        return self.channel.request_json("POST", "/storage/init")

    def check_admin(self, user_email: str | None = None, admin_email: str | None = None) -> bool:
        """
        GET /admin/check with a short timeout.

        When the call fails, falls back to comparing the user's email with the
        configured admin email.
        """
        try:
            response = self.channel.request_json("GET", "/admin/check", timeout=ADMIN_CHECK_TIMEOUT)
        except UploadFailure as e:
            logger.error(f"Error checking admin status: {e}")
            return bool(user_email and admin_email and user_email.lower() == admin_email.lower())
        return bool(response.body.get("isAdmin"))
