"""
Protocol definition for preference stores.

Defines the narrow key-value interface the feature flag service depends on.
"""

from typing import Optional, Protocol, Set


class KeyValueStore(Protocol):
    """
    Protocol for durable boolean key-value stores.

    Both SqlPreferenceStore and InMemoryPreferenceStore implement this protocol,
    allowing FeatureFlagService to use either without knowing the implementation.
    Stores must be opened before use and may be re-opened after close().
    """

    @property
    def is_open(self) -> bool:
        """Whether open() has completed and close() has not been called since."""
        ...

    def open(self) -> None:
        """
        Open the underlying storage.

        Calling open() on an already open store is a no-op.

        Raises:
            StoreUnavailableError: If the storage cannot be opened.
        """
        ...

    def close(self) -> None:
        """
        Release the underlying storage.

        Data must survive a close/open cycle, except for stores that exist only
        in memory (in-memory SQLite loses its contents when the engine is
        disposed).
        """
        ...

    def get_boolean(self, key: str) -> Optional[bool]:
        """Return the stored value, or None if the key is absent."""
        ...

    def set_boolean(self, key: str, value: bool) -> None:
        """Create or overwrite the value stored under key."""
        ...

    def remove_key(self, key: str) -> bool:
        """Remove key. Returns True if an entry was removed."""
        ...

    def list_keys(self) -> Set[str]:
        """Return every key currently stored, regardless of namespace."""
        ...

    def ping(self) -> bool:
        """Return True if the storage answers a trivial request."""
        ...
