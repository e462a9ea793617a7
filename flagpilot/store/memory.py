"""
In-memory preference store.

Keeps values in a plain dict. Values survive close()/open() cycles for the
lifetime of the object, which is enough for tests and throwaway runs.
"""

from typing import Dict, Optional, Set

from flagpilot.errors import StoreUnavailableError


class InMemoryPreferenceStore:
    """Dict-backed implementation of the KeyValueStore protocol."""

    def __init__(self, initial: Optional[Dict[str, bool]] = None):
        self._values: Dict[str, bool] = dict(initial or {})
        self._open = False
        self.open_count = 0

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self) -> None:
        if self._open:
            return
        self._open = True
        self.open_count += 1

    def close(self) -> None:
        self._open = False

    def _require_open(self) -> None:
        if not self._open:
            raise StoreUnavailableError("Preference store is not open")

    def get_boolean(self, key: str) -> Optional[bool]:
        self._require_open()
        return self._values.get(key)

    def set_boolean(self, key: str, value: bool) -> None:
        self._require_open()
        self._values[key] = bool(value)

    def remove_key(self, key: str) -> bool:
        self._require_open()
        return self._values.pop(key, None) is not None

    def list_keys(self) -> Set[str]:
        self._require_open()
        return set(self._values)

    def ping(self) -> bool:
        return self._open
