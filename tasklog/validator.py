import json
import os
import threading
from collections import defaultdict

import jsonschema

DEFAULT_SCHEMA_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "schemas", "log_entry.json")


class EntryValidator:
    """Checks that an entry is a JSON object carrying a non-empty timestamp.

    Every other field is passed through untouched.
    """

    def __init__(self, schema_path: str = DEFAULT_SCHEMA_PATH):
        with open(schema_path, "r", encoding="utf-8") as f:
            schema = json.load(f)

        self._validator = jsonschema.Draft202012Validator(schema)
        self._lock = threading.Lock()
        self._stats = self._empty_stats()

    @staticmethod
    def _empty_stats() -> dict:
        return {
            "total": 0,
            "valid": 0,
            "invalid": 0,
            "error_types": defaultdict(int),
        }

    def validate(self, entry) -> tuple[bool, list[str]]:
        """Validate an entry against the schema.

        Returns:
            tuple: (is_valid: bool, errors: list[str])
        """
        errors = sorted(self._validator.iter_errors(entry), key=lambda e: [str(p) for p in e.path])

        with self._lock:
            self._stats["total"] += 1
            if not errors:
                self._stats["valid"] += 1
                return True, []

            self._stats["invalid"] += 1
            for error in errors:
                self._stats["error_types"][error.validator] += 1

        return False, [error.message for error in errors]

    def get_stats(self) -> dict:
        with self._lock:
            stats = dict(self._stats)
            stats["error_types"] = dict(stats["error_types"])
        return stats
