"""
Shared pytest fixtures for FlagPilot tests.

This module provides common fixtures for:
- Preference stores (in-memory dict and in-memory SQLite)
- Feature flag services over those stores
- Build configurations for unrestricted and release builds
- FastAPI test clients wired to an isolated service
"""
import os
from typing import Callable, Generator

import pytest

# Set test environment variables BEFORE importing app modules
# so the module-level app never points at a real database file
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from fastapi.testclient import TestClient

from flagpilot.config import get_settings
from flagpilot.features import (
    DEFAULT_REGISTRY,
    BuildConfig,
    BuildMode,
    Feature,
    FeatureFlagService,
    FeatureRegistry,
    ProjectCategory,
)
from flagpilot.main import create_app
from flagpilot.store import InMemoryPreferenceStore, SqlPreferenceStore


# ============================================================================
# Store Fixtures
# ============================================================================

@pytest.fixture
def memory_store() -> InMemoryPreferenceStore:
    """A fresh, unopened in-memory preference store."""
    return InMemoryPreferenceStore()


@pytest.fixture
def sql_store() -> Generator[SqlPreferenceStore, None, None]:
    """An in-memory SQLite preference store, closed after the test."""
    store = SqlPreferenceStore("sqlite:///:memory:")
    yield store
    store.close()


# ============================================================================
# Service Fixtures
# ============================================================================

@pytest.fixture
def service(memory_store) -> FeatureFlagService:
    """Feature flag service over the in-memory store. Not initialized."""
    return FeatureFlagService(memory_store, registry=DEFAULT_REGISTRY)


@pytest.fixture
def sql_service(sql_store) -> FeatureFlagService:
    """Feature flag service over in-memory SQLite. Not initialized."""
    return FeatureFlagService(sql_store, registry=DEFAULT_REGISTRY)


# ============================================================================
# Build Fixtures
# ============================================================================

@pytest.fixture
def debug_build() -> BuildConfig:
    return BuildConfig(mode=BuildMode.DEBUG)


@pytest.fixture
def release_build() -> BuildConfig:
    """Release build with no compile-time defines supplied."""
    return BuildConfig(mode=BuildMode.RELEASE)


# ============================================================================
# Feature Fixtures
# ============================================================================

@pytest.fixture
def runtime_feature() -> Feature:
    """Runtime-toggleable feature without a compile-time flag."""
    return Feature(
        id="runtime_only",
        name="Runtime Only",
        description="Toggled at runtime only",
        category=ProjectCategory.BETA,
    )


@pytest.fixture
def gated_feature() -> Feature:
    """Feature gated by a compile-time flag in release builds."""
    return Feature(
        id="gated",
        name="Gated",
        description="Gated by ENABLE_GATED in release builds",
        category=ProjectCategory.EXPERIMENTAL,
        compile_time_flag="ENABLE_GATED",
    )


@pytest.fixture
def fixed_feature() -> Feature:
    """Feature that ignores runtime toggles."""
    return Feature(
        id="fixed",
        name="Fixed",
        description="Never toggled at runtime",
        category=ProjectCategory.STABLE,
        default_enabled=True,
        can_toggle_at_runtime=False,
    )


@pytest.fixture
def test_registry(runtime_feature, gated_feature, fixed_feature) -> FeatureRegistry:
    return FeatureRegistry([runtime_feature, gated_feature, fixed_feature])


# ============================================================================
# API Fixtures
# ============================================================================

@pytest.fixture
def make_client(memory_store) -> Generator[Callable[..., TestClient], None, None]:
    """
    Factory for FastAPI test clients.

    All clients created in one test share the same in-memory store, so state
    written under one build mode is visible under another.
    """
    clients = []

    def factory(build: BuildConfig = None, registry: FeatureRegistry = DEFAULT_REGISTRY) -> TestClient:
        service = FeatureFlagService(memory_store, registry=registry)
        app = create_app(
            app_settings=get_settings(database_url="sqlite:///:memory:"),
            service=service,
            build=build or BuildConfig(),
            registry=registry,
        )
        test_client = TestClient(app, raise_server_exceptions=False)
        test_client.__enter__()
        clients.append(test_client)
        return test_client

    yield factory

    for test_client in clients:
        test_client.__exit__(None, None, None)


@pytest.fixture
def client(make_client) -> TestClient:
    """Test client for a debug build over a fresh in-memory store."""
    return make_client()


@pytest.fixture
def release_client(make_client, release_build) -> TestClient:
    """Test client for a release build with no defines supplied."""
    return make_client(build=release_build)
