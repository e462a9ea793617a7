"""
Feature flags module for FlagPilot.

A static registry of features, each resolved to enabled/disabled from
build-time defines or persisted runtime toggles.
"""

from flagpilot.features.build import BuildConfig, BuildMode
from flagpilot.features.registry import (
    DEFAULT_REGISTRY,
    Feature,
    FeatureRegistry,
    ProjectCategory,
)
from flagpilot.features.resolution import can_toggle, is_feature_enabled, resolve
from flagpilot.features.service import FeatureFlagService

__all__ = [
    "BuildConfig",
    "BuildMode",
    "DEFAULT_REGISTRY",
    "Feature",
    "FeatureRegistry",
    "ProjectCategory",
    "FeatureFlagService",
    "can_toggle",
    "is_feature_enabled",
    "resolve",
]
