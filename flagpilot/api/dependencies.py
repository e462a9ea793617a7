"""
FastAPI dependencies for the feature flag service and build configuration.

The service, build configuration and registry are created once per application
by flagpilot.main.create_app() and kept on app.state.
"""
from fastapi import Request

from flagpilot.features import BuildConfig, FeatureFlagService, FeatureRegistry


def get_feature_service(request: Request) -> FeatureFlagService:
    """
    Dependency returning the application's FeatureFlagService.

    Usage:
        @router.post("/{feature_id}/toggle")
        async def toggle(
            feature_id: str,
            service: FeatureFlagService = Depends(get_feature_service),
        ):
            return await service.toggle_feature(feature_id)
    """
    return request.app.state.feature_service


def get_build_config(request: Request) -> BuildConfig:
    """Dependency returning the build configuration resolved at startup."""
    return request.app.state.build_config


def get_registry(request: Request) -> FeatureRegistry:
    """Dependency returning the feature registry."""
    return request.app.state.feature_registry
