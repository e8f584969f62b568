"""Append, clear, list and export operations over the shared log file.

Mutations run under the store's lock: read the current array, change it,
write it back, release. Reads go straight to the store without locking,
since every write replaces the file atomically.
"""

import logging

from tasklog.csv_export import entries_to_csv
from tasklog.errors import (
    ConcurrencyError,
    LockTimeout,
    LogNotFoundError,
    StoreError,
    ValidationError,
)
from tasklog.locking import LockManager, ThreadLockManager
from tasklog.store import LogFileStore
from tasklog.validator import EntryValidator

logger = logging.getLogger(__name__)


class LogService:
    def __init__(self, store: LogFileStore, locks: LockManager | None = None,
                 validator: EntryValidator | None = None, max_retries: int = 5,
                 backup_corrupt: bool = True):
        self._store = store
        self._locks = locks or ThreadLockManager()
        self._validator = validator or EntryValidator()
        self._max_retries = max_retries
        self._backup_corrupt = backup_corrupt

    @property
    def store(self) -> LogFileStore:
        return self._store

    @property
    def validator(self) -> EntryValidator:
        return self._validator

    def initialize(self) -> bool:
        return self._store.initialize()

    def append(self, entry: dict) -> None:
        is_valid, errors = self._validator.validate(entry)
        if not is_valid:
            raise ValidationError(errors)

        token = self._acquire("saving")
        try:
            entries = self._store.read_all(backup_corrupt=self._backup_corrupt)
            entries.append(entry)
            self._store.write_all(entries)
        except StoreError as e:
            logger.error("Error during save operation: %s", e)
            raise
        finally:
            self._locks.release(token)
        logger.info("Log entry saved (%d total)", len(entries))

    def clear(self) -> None:
        token = self._acquire("clearing")
        try:
            if self._backup_corrupt:
                # Only for its side effect of copying corrupt content aside.
                self._store.read_all(backup_corrupt=True)
            self._store.write_all([])
        except StoreError as e:
            logger.error("Error clearing log: %s", e)
            raise
        finally:
            self._locks.release(token)
        logger.info("Log file cleared")

    def list_all(self) -> list:
        return self._store.read_all()

    def export_csv(self) -> bytes:
        if not self._store.exists():
            raise LogNotFoundError(f"Log file {self._store.path} not found")
        return entries_to_csv(self.list_all()).encode("utf-8")

    def stats(self) -> dict:
        return {
            "log_file": self._store.path,
            "initialized": self._store.exists(),
            "entries": len(self.list_all()),
            "validation": self._validator.get_stats(),
        }

    def _acquire(self, purpose: str):
        key = self._store.resource_key
        try:
            token = self._locks.acquire(key, self._max_retries)
        except LockTimeout as e:
            logger.error("Could not acquire lock for %s: %s", purpose, e)
            raise ConcurrencyError(str(e)) from e
        except OSError as e:
            logger.error("Lock file error while %s: %s", purpose, e)
            raise StoreError(f"Error locking log file: {e}") from e
        logger.debug("Lock acquired for %s", purpose)
        return token
