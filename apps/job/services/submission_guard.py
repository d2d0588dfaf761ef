import logging
import threading
from contextlib import contextmanager

from apps.job.exceptions import DuplicateSubmissionError

logger = logging.getLogger(__name__)


class SubmissionGuard:
    """
    Tracks submissions that are in flight so a double click (or a retry
    racing the first request) cannot create or save the same thing twice.

    Keys are released when the guarded block exits, whether it succeeded or
    raised, so a failed attempt can be retried.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._in_flight = set()

    def acquire(self, key: str) -> None:
        with self._lock:
            if key in self._in_flight:
                logger.warning("Rejected duplicate submission %s", key)
                raise DuplicateSubmissionError(key)
            self._in_flight.add(key)

    def release(self, key: str) -> None:
        with self._lock:
            self._in_flight.discard(key)

    def is_in_flight(self, key: str) -> bool:
        with self._lock:
            return key in self._in_flight

    @contextmanager
    def hold(self, key: str):
        self.acquire(key)
        try:
            yield
        finally:
            self.release(key)
