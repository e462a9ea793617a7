"""
Feature state resolution.

Combines the build mode, compile-time defines and persisted runtime toggles
into a single enabled/disabled answer. The decision itself (resolve) is pure;
is_feature_enabled only adds the store lookup around it.
"""
from typing import TYPE_CHECKING, Optional

from flagpilot.features.build import BuildConfig

if TYPE_CHECKING:
    from flagpilot.features.registry import Feature
    from flagpilot.features.service import FeatureFlagService


def is_compile_time_gated(feature: "Feature", build: BuildConfig) -> bool:
    """
    Whether the feature is decided by build-time inputs alone.

    Only features that declare a compile-time flag are gated, and only in
    restricted builds. Everything else stays on the runtime path.
    """
    return build.is_restricted and feature.compile_time_flag is not None


def resolve(feature: "Feature", build: BuildConfig, persisted: Optional[bool]) -> bool:
    """
    Decide whether a feature is enabled.

    Evaluation order:
    1. Restricted build and a compile-time flag: the kill switch forces False,
       otherwise the supplied define wins, falling back to default_enabled.
       Persisted state is ignored.
    2. Runtime-toggleable feature: the persisted value, falling back to
       default_enabled when nothing was persisted.
    3. Otherwise default_enabled.

    Args:
        feature: The feature to resolve
        build: Build-time configuration
        persisted: Persisted toggle for this feature, or None if never set

    Returns:
        True if the feature is enabled
    """
    if is_compile_time_gated(feature, build):
        if build.force_disable_all_experimental:
            return False
        supplied = build.define(feature.compile_time_flag)
        return feature.default_enabled if supplied is None else supplied

    if feature.can_toggle_at_runtime:
        return feature.default_enabled if persisted is None else persisted

    return feature.default_enabled


async def is_feature_enabled(
    feature: "Feature",
    service: "FeatureFlagService",
    build: BuildConfig,
) -> bool:
    """Resolve a feature, reading persisted state only when the runtime path applies."""
    if is_compile_time_gated(feature, build) or not feature.can_toggle_at_runtime:
        return resolve(feature, build, None)

    persisted = await service.is_feature_enabled(feature.id)
    return resolve(feature, build, persisted)


def can_toggle(feature: "Feature", build: BuildConfig) -> bool:
    """Whether a runtime toggle may be offered for this feature in the current build."""
    return feature.can_toggle_at_runtime and not build.is_restricted
