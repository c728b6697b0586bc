"""Object writes with a fixed retry budget."""
import logging
import time
from typing import Callable

from app.config import OBJECT_WRITE_ATTEMPTS, OBJECT_WRITE_RETRY_DELAY, PAPERS_BUCKET
from db import StorageQueries
from errors import ObjectWriteError

logger = logging.getLogger(__name__)


class ObjectStore:
    """Writes whole objects to the papers bucket, retrying failed attempts."""

    def __init__(
        self,
        storage: StorageQueries | None = None,
        attempts: int = OBJECT_WRITE_ATTEMPTS,
        retry_delay: float = OBJECT_WRITE_RETRY_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.storage = storage or StorageQueries(PAPERS_BUCKET)
        self.attempts = attempts
        self.retry_delay = retry_delay
        self.sleep = sleep

    def public_url(self, key: str) -> str:
        return self.storage.public_url(key)

    def put_with_retry(self, content: bytes, key: str, content_type: str) -> int:
        """
        Upload content under key, retrying with a fixed delay.

        Every attempt sends the full payload. From the second attempt on the
        write is an upsert, so an object left behind by an earlier attempt
        does not block the retry.

        Returns:
            The attempt number that succeeded (1-based)

        Raises:
            ObjectWriteError: After all attempts failed, carrying the last error
        """
        last_error: Exception | None = None

        for attempt in range(1, self.attempts + 1):
            logger.info(f"Upload attempt {attempt} for file {key}")
            try:
                self.storage.upload(key, content, content_type, upsert=attempt > 1)
                logger.info(f"Upload succeeded on attempt {attempt}")
                return attempt
            except Exception as e:
                last_error = e
                logger.error(f"Upload attempt {attempt} failed for {key}: {e}")

            if attempt < self.attempts:
                self.sleep(self.retry_delay)

        logger.error(f"All {self.attempts} upload attempts failed for {key}: {last_error}")
        raise ObjectWriteError(last_error, attempts=self.attempts)
