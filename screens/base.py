import logging
import threading
from contextlib import contextmanager

from backend import CBTBackend
from errors import ActionInProgressError

logger = logging.getLogger(__name__)


class CancellationToken:
    """Tied to a screen's lifetime; once cancelled, late results are dropped."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class Screen:
    """
    Base for admin screens.

    A screen keeps a local, read-only snapshot of backend collections and
    replaces it wholesale after every successful mutation. Mutating actions
    run one at a time per action name: a second attempt while the first is
    still waiting on the backend fails fast instead of double-submitting.
    """

    def __init__(self, backend: CBTBackend):
        self.backend = backend
        self.token = CancellationToken()
        self._locks = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, action: str) -> threading.Lock:
        with self._locks_guard:
            if action not in self._locks:
                self._locks[action] = threading.Lock()
            return self._locks[action]

    @contextmanager
    def in_flight(self, action: str):
        lock = self._lock_for(action)
        if not lock.acquire(blocking=False):
            logger.info("%s: '%s' rejected, previous request still pending", type(self).__name__, action)
            raise ActionInProgressError(action)
        try:
            yield
        finally:
            lock.release()

    def is_busy(self, action: str) -> bool:
        return self._lock_for(action).locked()

    @property
    def disposed(self) -> bool:
        return self.token.cancelled

    def dispose(self) -> None:
        self.token.cancel()
        logger.debug("%s disposed", type(self).__name__)
