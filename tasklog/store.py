"""File-backed store for the log collection.

The whole collection lives in one JSON array. Writes go to a temp file in the
same directory and are moved into place with os.replace, so readers see either
the old or the new array. Content that is not a JSON array is read back as an
empty collection.
"""

import json
import logging
import os
import tempfile
from datetime import datetime, timezone

from tasklog.errors import ParseError, StoreError

logger = logging.getLogger(__name__)


class LogFileStore:
    def __init__(self, path: str):
        self._path = os.path.abspath(path)

    @property
    def path(self) -> str:
        return self._path

    @property
    def resource_key(self) -> str:
        """Identity of this store for the lock layer."""
        return self._path

    def exists(self) -> bool:
        return os.path.isfile(self._path)

    def initialize(self) -> bool:
        """Create the file holding an empty array if it is missing.

        Returns True if the file was created.
        """
        if self.exists():
            return False
        self.write_all([])
        logger.info("Log file created at %s", self._path)
        return True

    def read_all(self, backup_corrupt: bool = False) -> list:
        try:
            with open(self._path, "rb") as f:
                raw = f.read()
        except FileNotFoundError:
            return []
        except OSError as e:
            raise StoreError(f"Error reading log file {self._path}: {e}") from e

        try:
            return self._parse(raw)
        except ParseError as e:
            logger.warning("Error parsing log file %s: %s. Resetting log data.", self._path, e)
            if backup_corrupt:
                self._backup(raw)
            return []

    @staticmethod
    def _parse(raw: bytes) -> list:
        try:
            data = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ParseError(str(e)) from e
        if not isinstance(data, list):
            raise ParseError(f"expected a JSON array, got {type(data).__name__}")
        return data

    def _backup(self, raw: bytes) -> str | None:
        """Copy corrupt content aside before it gets overwritten."""
        now = datetime.now(timezone.utc)
        backup_path = f"{self._path}.corrupt-{now.strftime('%Y%m%dT%H%M%S')}{now.microsecond:06d}"
        try:
            with open(backup_path, "wb") as f:
                f.write(raw)
        except OSError as e:
            logger.warning("Could not back up corrupt log file to %s: %s", backup_path, e)
            return None
        logger.warning("Backed up corrupt log file to %s", backup_path)
        return backup_path

    def write_all(self, entries: list) -> None:
        """Replace the file content with *entries* in one step."""
        directory = os.path.dirname(self._path)
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=directory, prefix=".log-", suffix=".tmp")
        except OSError as e:
            raise StoreError(f"Error writing log file {self._path}: {e}") from e

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(entries, f, indent=2, allow_nan=False)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp, 0o644)
            os.replace(tmp, self._path)
        except (OSError, TypeError, ValueError) as e:
            try:
                os.unlink(tmp)
            except OSError:
                pass
            raise StoreError(f"Error writing log file {self._path}: {e}") from e
