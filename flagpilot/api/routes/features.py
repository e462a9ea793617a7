"""
Feature flags API routes.

Lists every registered feature with its resolved state and lets the caller
toggle, set, reset and export runtime toggles. Toggling and resetting are
refused in release builds, where compile-time defines decide instead.
"""
import logging

from fastapi import APIRouter, Depends

from flagpilot.api.dependencies import get_build_config, get_feature_service, get_registry
from flagpilot.errors import (
    FeatureToggleLockedError,
    ResetNotAllowedError,
)
from flagpilot.features import (
    BuildConfig,
    Feature,
    FeatureFlagService,
    FeatureRegistry,
    ProjectCategory,
    can_toggle,
)
from flagpilot.models.schemas import (
    BuildInfo,
    CategoryGroupResponse,
    ExportFlagsResponse,
    FeatureListResponse,
    FeatureStateResponse,
    ResetResponse,
    SetFeatureRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/features", tags=["features"])


async def _feature_state(
    feature: Feature,
    service: FeatureFlagService,
    build: BuildConfig,
) -> FeatureStateResponse:
    persisted = await service.is_feature_enabled(feature.id)
    enabled = await feature.is_enabled(service, build)
    return FeatureStateResponse.from_feature(feature, build, enabled, persisted)


def _require_toggleable(feature: Feature, build: BuildConfig) -> None:
    if not can_toggle(feature, build):
        raise FeatureToggleLockedError(
            feature.id, build.mode.value, feature.compile_time_flag
        )


@router.get("", response_model=FeatureListResponse)
async def list_features(
    service: FeatureFlagService = Depends(get_feature_service),
    build: BuildConfig = Depends(get_build_config),
    registry: FeatureRegistry = Depends(get_registry),
):
    """
    Get every feature grouped by category.

    Each feature carries its metadata, its resolved state and whether it can be
    toggled at runtime in the current build. Empty categories are omitted.
    """
    groups = []
    for category in ProjectCategory:
        features = registry.get_features_by_category(category)
        if not features:
            continue
        groups.append(
            CategoryGroupResponse(
                category=category,
                display_name=category.display_name,
                emoji=category.emoji,
                features=[await _feature_state(f, service, build) for f in features],
            )
        )

    return FeatureListResponse(build=BuildInfo.from_build(build), categories=groups)


@router.get("/export", response_model=ExportFlagsResponse)
async def export_flags(
    service: FeatureFlagService = Depends(get_feature_service),
):
    """Dump every persisted runtime toggle (defaults and defines are not merged in)."""
    return ExportFlagsResponse(flags=await service.export_flags())


@router.post("/reset", response_model=ResetResponse)
async def reset_features(
    service: FeatureFlagService = Depends(get_feature_service),
    build: BuildConfig = Depends(get_build_config),
):
    """
    Reset all runtime toggles to their defaults.

    Not available in release builds.
    """
    if build.is_restricted:
        raise ResetNotAllowedError(build.mode.value)
    removed = await service.reset_all()

    return ResetResponse(removed=removed)


@router.get("/{feature_id}", response_model=FeatureStateResponse)
async def get_feature(
    feature_id: str,
    service: FeatureFlagService = Depends(get_feature_service),
    build: BuildConfig = Depends(get_build_config),
    registry: FeatureRegistry = Depends(get_registry),
):
    """Get a single feature with its resolved state."""
    feature = registry.require(feature_id)
    return await _feature_state(feature, service, build)


@router.post("/{feature_id}/toggle", response_model=FeatureStateResponse)
async def toggle_feature(
    feature_id: str,
    service: FeatureFlagService = Depends(get_feature_service),
    build: BuildConfig = Depends(get_build_config),
    registry: FeatureRegistry = Depends(get_registry),
):
    """
    Flip a feature's runtime toggle.

    Returns 409 FEATURE_TOGGLE_LOCKED when the feature cannot be toggled at
    runtime in this build; the details name the compile-time flag to set instead.
    """
    feature = registry.require(feature_id)
    _require_toggleable(feature, build)
    await service.toggle_feature(feature.id)
    return await _feature_state(feature, service, build)


@router.put("/{feature_id}", response_model=FeatureStateResponse)
async def set_feature(
    feature_id: str,
    request: SetFeatureRequest,
    service: FeatureFlagService = Depends(get_feature_service),
    build: BuildConfig = Depends(get_build_config),
    registry: FeatureRegistry = Depends(get_registry),
):
    """Explicitly enable or disable a feature's runtime toggle."""
    feature = registry.require(feature_id)
    _require_toggleable(feature, build)
    await service.set_feature_enabled(feature.id, request.enabled)
    return await _feature_state(feature, service, build)
