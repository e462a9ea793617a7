"""
Feature flag service for persisting runtime toggles.

This service is the only owner of the feature flag namespace in the preference
store. It is constructed explicitly and handed to its callers (the FastAPI app
state, the CLI context) rather than living in a module global.
"""
import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, TypeVar

from flagpilot.config import DEFAULT_FLAG_KEY_PREFIX
from flagpilot.errors import UnknownFeatureError
from flagpilot.features.registry import FeatureRegistry
from flagpilot.store.protocol import KeyValueStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FeatureFlagService:
    """
    Service for reading and writing persisted feature flag states.

    Every key written by this service is "<key_prefix><feature id>". Keys
    outside that prefix are never read, written or removed.

    The store is opened lazily: every operation awaits init() first if the
    store is not open yet, so callers may skip init() entirely. Store calls are
    blocking and run in a worker thread so they never stall the event loop.

    Attributes:
        store: The underlying key-value store
        key_prefix: Namespace prefix for persisted keys
        registry: Registry used to validate ids when strict is enabled
        strict: Reject ids that are not in the registry
    """

    def __init__(
        self,
        store: KeyValueStore,
        key_prefix: str = DEFAULT_FLAG_KEY_PREFIX,
        registry: Optional[FeatureRegistry] = None,
        strict: bool = False,
    ):
        """
        Initialize the feature flag service.

        Args:
            store: Key-value store holding the persisted toggles
            key_prefix: Namespace prefix for persisted keys
            registry: Optional registry for id validation
            strict: Raise UnknownFeatureError for ids missing from the registry.
                Requires a registry.
        """
        if not key_prefix:
            raise ValueError("key_prefix must not be empty")
        if strict and registry is None:
            raise ValueError("strict id validation requires a registry")

        self.store = store
        self.key_prefix = key_prefix
        self.registry = registry
        self.strict = strict
        self._init_lock = asyncio.Lock()
        self._feature_locks: Dict[str, asyncio.Lock] = {}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def init(self) -> None:
        """
        Open the underlying store.

        Idempotent: concurrent or repeated calls open the store once.

        Raises:
            StoreUnavailableError: If the store cannot be opened
        """
        if self.store.is_open:
            return
        async with self._init_lock:
            if self.store.is_open:
                return
            await self._run(self.store.open)
            logger.info("Feature flag store opened")

    async def close(self) -> None:
        """Close the underlying store. Later operations re-open it lazily."""
        async with self._init_lock:
            if not self.store.is_open:
                return
            await self._run(self.store.close)
            logger.info("Feature flag store closed")

    async def _run(self, call: Callable[..., T], *args: Any) -> T:
        return await asyncio.to_thread(call, *args)

    async def _ensure_ready(self) -> None:
        if not self.store.is_open:
            await self.init()

    async def ping(self) -> bool:
        """Return True if the store can be opened and answers."""
        await self._ensure_ready()
        return await self._run(self.store.ping)

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    def _key(self, feature_id: str) -> str:
        if self.strict and feature_id not in self.registry:
            raise UnknownFeatureError(feature_id)
        return f"{self.key_prefix}{feature_id}"

    async def _owned_keys(self) -> List[str]:
        keys = await self._run(self.store.list_keys)
        return sorted(k for k in keys if k.startswith(self.key_prefix))

    def _feature_id(self, key: str) -> str:
        return key[len(self.key_prefix):]

    def _lock_for(self, feature_id: str) -> asyncio.Lock:
        lock = self._feature_locks.get(feature_id)
        if lock is None:
            lock = self._feature_locks[feature_id] = asyncio.Lock()
        return lock

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def is_feature_enabled(self, feature_id: str) -> Optional[bool]:
        """
        Get the persisted state of a feature.

        Args:
            feature_id: The feature to look up

        Returns:
            The persisted boolean, or None if the feature was never set.
            None and False are different answers.
        """
        key = self._key(feature_id)
        await self._ensure_ready()
        return await self._run(self.store.get_boolean, key)

    async def set_feature_enabled(self, feature_id: str, enabled: bool) -> None:
        """Persist the state of a feature, overwriting any previous value."""
        key = self._key(feature_id)
        await self._ensure_ready()
        async with self._lock_for(feature_id):
            await self._run(self.store.set_boolean, key, enabled)
        logger.info(f"Feature '{feature_id}' set to {enabled}")

    async def toggle_feature(self, feature_id: str) -> bool:
        """
        Flip the persisted state of a feature.

        A feature that was never set counts as disabled, so the first toggle
        enables it. The read and the write happen under a per-feature lock,
        so concurrent toggles of the same feature are never lost.

        Returns:
            The new persisted state
        """
        key = self._key(feature_id)
        await self._ensure_ready()
        async with self._lock_for(feature_id):
            current = await self._run(self.store.get_boolean, key)
            new_state = not bool(current)
            await self._run(self.store.set_boolean, key, new_state)
        logger.info(f"Feature '{feature_id}' toggled to {new_state}")
        return new_state

    async def reset_all(self) -> int:
        """
        Remove every persisted feature flag.

        Only keys under this service's prefix are removed. Afterwards every
        feature falls back to its default on the next read.

        Returns:
            Number of removed entries
        """
        await self._ensure_ready()
        removed = 0
        for key in await self._owned_keys():
            async with self._lock_for(self._feature_id(key)):
                if await self._run(self.store.remove_key, key):
                    removed += 1
        logger.info(f"Reset {removed} persisted feature flags")
        return removed

    async def get_enabled_features(self) -> List[str]:
        """
        Get the ids of all features persisted as enabled.

        Defaults and compile-time defines are not considered; a feature that
        is enabled only by default is not listed.
        """
        return [feature_id for feature_id, enabled in (await self.export_flags()).items() if enabled]

    async def export_flags(self) -> Dict[str, bool]:
        """
        Dump every persisted feature flag for debugging.

        Returns:
            Dictionary mapping feature ids to their persisted states
        """
        await self._ensure_ready()
        flags: Dict[str, bool] = {}
        for key in await self._owned_keys():
            value = await self._run(self.store.get_boolean, key)
            if value is not None:
                flags[self._feature_id(key)] = value
        return flags
