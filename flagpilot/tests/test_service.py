"""
Tests for FeatureFlagService.

Runs against both the in-memory store and in-memory SQLite so that the
service behaves the same over any KeyValueStore.
"""
import asyncio
import time

import pytest
from sqlalchemy import create_engine, text

from flagpilot.errors import StoreOperationError, StoreUnavailableError, UnknownFeatureError
from flagpilot.features import DEFAULT_REGISTRY, FeatureFlagService
from flagpilot.store import InMemoryPreferenceStore, SqlPreferenceStore


class SlowPreferenceStore(InMemoryPreferenceStore):
    """In-memory store with blocking reads, like a store on a slow disk."""

    def get_boolean(self, key):
        time.sleep(0.01)
        return super().get_boolean(key)


@pytest.fixture(params=["memory", "sql"])
def any_service(request, service, sql_service) -> FeatureFlagService:
    return service if request.param == "memory" else sql_service


class TestLifecycle:
    """Tests for init(), lazy initialization and close()."""

    @pytest.mark.asyncio
    async def test_init_is_idempotent(self, service, memory_store):
        await service.init()
        await service.set_feature_enabled("dark_mode", True)
        await service.init()

        assert memory_store.open_count == 1
        assert await service.is_feature_enabled("dark_mode") is True

    @pytest.mark.asyncio
    async def test_concurrent_init_opens_once(self, service, memory_store):
        await asyncio.gather(*(service.init() for _ in range(5)))

        assert memory_store.open_count == 1

    @pytest.mark.asyncio
    async def test_operations_initialize_lazily(self, service, memory_store):
        assert memory_store.is_open is False

        assert await service.is_feature_enabled("dark_mode") is None
        assert memory_store.is_open is True

    @pytest.mark.asyncio
    async def test_close_then_lazy_reopen_keeps_data(self, service, memory_store):
        await service.set_feature_enabled("dark_mode", True)
        await service.close()

        assert memory_store.is_open is False
        assert await service.is_feature_enabled("dark_mode") is True
        assert memory_store.open_count == 2

    @pytest.mark.asyncio
    async def test_store_unavailable_propagates(self, tmp_path):
        missing_dir = tmp_path / "does" / "not" / "exist"
        store = SqlPreferenceStore(f"sqlite:///{missing_dir}/flags.db")
        service = FeatureFlagService(store)

        with pytest.raises(StoreUnavailableError) as exc_info:
            await service.init()
        assert exc_info.value.status_code == 503

        with pytest.raises(StoreUnavailableError):
            await service.toggle_feature("dark_mode")

    @pytest.mark.asyncio
    async def test_store_operation_failure_propagates(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'flags.db'}"
        service = FeatureFlagService(SqlPreferenceStore(url))
        await service.set_feature_enabled("dark_mode", True)

        # Break the table behind the open store
        engine = create_engine(url)
        with engine.begin() as conn:
            conn.execute(text("DROP TABLE preferences"))
        engine.dispose()

        with pytest.raises(StoreOperationError) as exc_info:
            await service.set_feature_enabled("dark_mode", False)
        assert exc_info.value.status_code == 500
        assert exc_info.value.details["operation"] == "write"

        with pytest.raises(StoreOperationError) as exc_info:
            await service.export_flags()
        assert exc_info.value.details["operation"] == "list"

        await service.close()

    @pytest.mark.asyncio
    async def test_ping(self, service):
        assert await service.ping() is True

    def test_empty_prefix_rejected(self, memory_store):
        with pytest.raises(ValueError):
            FeatureFlagService(memory_store, key_prefix="")

    def test_strict_requires_registry(self, memory_store):
        with pytest.raises(ValueError):
            FeatureFlagService(memory_store, strict=True)


class TestReadWrite:
    """Tests for is_feature_enabled and set_feature_enabled."""

    @pytest.mark.asyncio
    async def test_absent_is_none(self, any_service):
        assert await any_service.is_feature_enabled("dark_mode") is None

    @pytest.mark.asyncio
    async def test_set_true_round_trip(self, any_service):
        await any_service.set_feature_enabled("dark_mode", True)
        assert await any_service.is_feature_enabled("dark_mode") is True

    @pytest.mark.asyncio
    async def test_set_false_is_distinct_from_absent(self, any_service):
        await any_service.set_feature_enabled("dark_mode", False)
        assert await any_service.is_feature_enabled("dark_mode") is False

    @pytest.mark.asyncio
    async def test_overwrite(self, any_service):
        await any_service.set_feature_enabled("dark_mode", True)
        await any_service.set_feature_enabled("dark_mode", False)
        assert await any_service.is_feature_enabled("dark_mode") is False

    @pytest.mark.asyncio
    async def test_keys_use_prefix(self, service, memory_store):
        await service.set_feature_enabled("dark_mode", True)
        assert memory_store.list_keys() == {"feature_flag_dark_mode"}

    @pytest.mark.asyncio
    async def test_custom_prefix(self, memory_store):
        service = FeatureFlagService(memory_store, key_prefix="ff.")
        await service.set_feature_enabled("dark_mode", True)
        assert memory_store.list_keys() == {"ff.dark_mode"}

    @pytest.mark.asyncio
    async def test_unregistered_ids_allowed_by_default(self, service):
        await service.set_feature_enabled("not_registered", True)
        assert await service.is_feature_enabled("not_registered") is True


class TestToggle:
    """Tests for toggle_feature."""

    @pytest.mark.asyncio
    async def test_toggle_sequence(self, any_service):
        assert await any_service.is_feature_enabled("dark_mode") is None

        assert await any_service.toggle_feature("dark_mode") is True
        assert await any_service.is_feature_enabled("dark_mode") is True

        assert await any_service.toggle_feature("dark_mode") is False
        assert await any_service.is_feature_enabled("dark_mode") is False

    @pytest.mark.asyncio
    async def test_toggle_from_persisted_false(self, any_service):
        await any_service.set_feature_enabled("enhanced_search", False)
        assert await any_service.toggle_feature("enhanced_search") is True

    @pytest.mark.asyncio
    async def test_concurrent_toggles_are_not_lost(self, service):
        results = await asyncio.gather(*(service.toggle_feature("dark_mode") for _ in range(10)))

        assert sorted(results) == [False] * 5 + [True] * 5
        assert await service.is_feature_enabled("dark_mode") is False

    @pytest.mark.asyncio
    async def test_concurrent_toggles_over_blocking_store(self):
        service = FeatureFlagService(SlowPreferenceStore())

        results = await asyncio.gather(*(service.toggle_feature("dark_mode") for _ in range(6)))

        assert sorted(results) == [False] * 3 + [True] * 3
        assert await service.is_feature_enabled("dark_mode") is False

    @pytest.mark.asyncio
    async def test_blocking_store_does_not_stall_event_loop(self):
        service = FeatureFlagService(SlowPreferenceStore())
        await service.init()
        ticks = 0

        async def tick():
            nonlocal ticks
            while True:
                ticks += 1
                await asyncio.sleep(0)

        ticker = asyncio.create_task(tick())
        await service.is_feature_enabled("dark_mode")
        ticker.cancel()
        with pytest.raises(asyncio.CancelledError):
            await ticker

        assert ticks > 1


class TestReset:
    """Tests for reset_all."""

    @pytest.mark.asyncio
    async def test_reset_removes_owned_entries(self, any_service):
        await any_service.set_feature_enabled("dark_mode", True)
        await any_service.set_feature_enabled("offline_mode", False)

        assert await any_service.reset_all() == 2

        assert await any_service.is_feature_enabled("dark_mode") is None
        assert await any_service.is_feature_enabled("offline_mode") is None
        assert await any_service.export_flags() == {}

    @pytest.mark.asyncio
    async def test_reset_leaves_unrelated_keys(self):
        store = InMemoryPreferenceStore({"theme_color_dark": True, "feature_flag_dark_mode": True})
        service = FeatureFlagService(store)

        assert await service.reset_all() == 1

        assert store.list_keys() == {"theme_color_dark"}
        assert store.get_boolean("theme_color_dark") is True

    @pytest.mark.asyncio
    async def test_reset_on_empty_store(self, any_service):
        assert await any_service.reset_all() == 0


class TestQueries:
    """Tests for get_enabled_features and export_flags."""

    @pytest.mark.asyncio
    async def test_enabled_features_only_lists_persisted_true(self, any_service):
        await any_service.set_feature_enabled("dark_mode", True)
        await any_service.set_feature_enabled("offline_mode", False)

        enabled = await any_service.get_enabled_features()

        assert enabled == ["dark_mode"]
        # Enabled by default but never persisted
        assert "enhanced_search" not in enabled

    @pytest.mark.asyncio
    async def test_export_flags(self, any_service):
        await any_service.set_feature_enabled("dark_mode", True)
        await any_service.set_feature_enabled("offline_mode", False)

        assert await any_service.export_flags() == {"dark_mode": True, "offline_mode": False}

    @pytest.mark.asyncio
    async def test_export_ignores_foreign_keys(self):
        store = InMemoryPreferenceStore({"other_setting": True, "feature_flag_voice_to_text": True})
        service = FeatureFlagService(store)

        assert await service.export_flags() == {"voice_to_text": True}
        assert await service.get_enabled_features() == ["voice_to_text"]


class TestStrictMode:
    """Tests for registry validation of feature ids."""

    @pytest.fixture
    def strict_service(self, memory_store) -> FeatureFlagService:
        return FeatureFlagService(memory_store, registry=DEFAULT_REGISTRY, strict=True)

    @pytest.mark.asyncio
    async def test_unknown_id_rejected_on_write(self, strict_service, memory_store):
        with pytest.raises(UnknownFeatureError):
            await strict_service.set_feature_enabled("not_registered", True)
        with pytest.raises(UnknownFeatureError):
            await strict_service.toggle_feature("not_registered")

        assert memory_store.open_count == 0

    @pytest.mark.asyncio
    async def test_unknown_id_rejected_on_read(self, strict_service):
        with pytest.raises(UnknownFeatureError):
            await strict_service.is_feature_enabled("not_registered")

    @pytest.mark.asyncio
    async def test_registered_id_accepted(self, strict_service):
        assert await strict_service.toggle_feature("dark_mode") is True
