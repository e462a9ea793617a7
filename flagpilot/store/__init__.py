"""
Preference stores backing the feature flag service.
"""

from flagpilot.store.memory import InMemoryPreferenceStore
from flagpilot.store.protocol import KeyValueStore
from flagpilot.store.sql import SqlPreferenceStore

__all__ = [
    "KeyValueStore",
    "InMemoryPreferenceStore",
    "SqlPreferenceStore",
]
