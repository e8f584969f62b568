"""Per-resource exclusive locks with bounded retry.

acquire() makes 1 + max_retries attempts. Attempt n waits up to
retry_wait * 2**n seconds (capped at max_wait) for the current holder to let
go, then LockTimeout is raised. Every successful acquire hands back a
ReleaseToken that must be passed to release() exactly once.

ThreadLockManager serializes threads of one process. FileLockManager adds an
OS advisory lock on "<resource>.lock" so separate processes sharing the file
are serialized as well.
"""

import logging
import os
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator

from filelock import FileLock, Timeout

from tasklog.errors import LockTimeout

logger = logging.getLogger(__name__)

LOCK_BACKENDS = ("file", "thread")


@dataclass
class ReleaseToken:
    resource_key: str
    handle: Any = field(repr=False)
    released: bool = False


class LockManager:
    def __init__(self, retry_wait: float = 0.1, max_wait: float = 2.0):
        self._retry_wait = retry_wait
        self._max_wait = max_wait

    def wait_for_attempt(self, attempt: int) -> float:
        return min(self._retry_wait * (2 ** attempt), self._max_wait)

    def acquire(self, resource_key: str, max_retries: int = 5) -> ReleaseToken:
        attempts = max(max_retries, 0) + 1
        for attempt in range(attempts):
            handle = self._try_acquire(resource_key, self.wait_for_attempt(attempt))
            if handle is not None:
                logger.debug("Lock acquired for %s (attempt %d)", resource_key, attempt + 1)
                return ReleaseToken(resource_key, handle)
            logger.debug("Lock busy for %s (attempt %d/%d)", resource_key, attempt + 1, attempts)
        raise LockTimeout(resource_key, attempts)

    def release(self, token: ReleaseToken) -> None:
        if token.released:
            logger.warning("Lock for %s already released", token.resource_key)
            return
        token.released = True
        try:
            self._release(token.handle)
        except (OSError, RuntimeError) as e:
            logger.error("Error releasing lock for %s: %s", token.resource_key, e)
            return
        logger.debug("Lock released for %s", token.resource_key)

    @contextmanager
    def hold(self, resource_key: str, max_retries: int = 5) -> Iterator[ReleaseToken]:
        token = self.acquire(resource_key, max_retries)
        try:
            yield token
        finally:
            self.release(token)

    def _try_acquire(self, resource_key: str, wait: float):
        """Return a handle if the lock was taken within *wait* seconds, else None."""
        raise NotImplementedError

    def _release(self, handle) -> None:
        raise NotImplementedError


class ThreadLockManager(LockManager):
    """In-process locking, one threading.Lock per resource key."""

    def __init__(self, retry_wait: float = 0.1, max_wait: float = 2.0):
        super().__init__(retry_wait, max_wait)
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, resource_key: str) -> threading.Lock:
        with self._registry_lock:
            return self._locks.setdefault(resource_key, threading.Lock())

    def _try_acquire(self, resource_key: str, wait: float):
        lock = self._lock_for(resource_key)
        return lock if lock.acquire(timeout=wait) else None

    def _release(self, handle) -> None:
        handle.release()


class FileLockManager(ThreadLockManager):
    """Cross-process locking through an advisory lock file beside the resource.

    The per-key thread lock is taken first so that only one thread of this
    process ever touches a given FileLock.
    """

    def __init__(self, retry_wait: float = 0.1, max_wait: float = 2.0,
                 poll_interval: float = 0.01):
        super().__init__(retry_wait, max_wait)
        self._poll_interval = poll_interval
        self._file_locks: dict[str, FileLock] = {}

    @staticmethod
    def lock_path(resource_key: str) -> str:
        return resource_key + ".lock"

    def _file_lock_for(self, resource_key: str) -> FileLock:
        with self._registry_lock:
            file_lock = self._file_locks.get(resource_key)
            if file_lock is None:
                path = self.lock_path(resource_key)
                os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
                file_lock = FileLock(path)
                self._file_locks[resource_key] = file_lock
            return file_lock

    def _try_acquire(self, resource_key: str, wait: float):
        deadline = time.monotonic() + wait
        thread_lock = super()._try_acquire(resource_key, wait)
        if thread_lock is None:
            return None

        try:
            file_lock = self._file_lock_for(resource_key)
            remaining = max(deadline - time.monotonic(), 0)
            file_lock.acquire(timeout=remaining, poll_interval=self._poll_interval)
        except Timeout:
            thread_lock.release()
            return None
        except BaseException:
            thread_lock.release()
            raise
        return thread_lock, file_lock

    def _release(self, handle) -> None:
        thread_lock, file_lock = handle
        try:
            file_lock.release()
        finally:
            thread_lock.release()


def create_lock_manager(backend: str = "file", retry_wait: float = 0.1,
                        max_wait: float = 2.0) -> LockManager:
    if backend == "file":
        return FileLockManager(retry_wait, max_wait)
    if backend == "thread":
        return ThreadLockManager(retry_wait, max_wait)
    raise ValueError(f"Unknown lock backend {backend!r}, expected one of {LOCK_BACKENDS}")
