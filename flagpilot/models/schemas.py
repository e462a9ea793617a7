"""
Pydantic response and request models for the FlagPilot API.
"""
from typing import Dict, List, Optional

from pydantic import BaseModel

from flagpilot.features.build import BuildConfig, BuildMode
from flagpilot.features.registry import Feature, ProjectCategory
from flagpilot.features.resolution import can_toggle


class BuildInfo(BaseModel):
    """Build mode summary shown above the feature list."""
    mode: BuildMode
    display_name: str
    restricted: bool
    force_disable_all_experimental: bool
    message: str

    @classmethod
    def from_build(cls, build: BuildConfig) -> "BuildInfo":
        if build.is_restricted:
            message = (
                "Experimental features are disabled in release builds. "
                "Use compile-time flags to enable."
            )
        else:
            message = (
                f"You can toggle experimental features at runtime in "
                f"{build.mode.display_name} mode."
            )
        return cls(
            mode=build.mode,
            display_name=build.mode.display_name,
            restricted=build.is_restricted,
            force_disable_all_experimental=build.force_disable_all_experimental,
            message=message,
        )


class FeatureStateResponse(BaseModel):
    """A feature with its metadata and resolved state."""
    id: str
    name: str
    description: str
    category: ProjectCategory
    default_enabled: bool
    compile_time_flag: Optional[str] = None
    can_toggle_at_runtime: bool
    can_toggle: bool
    enabled: bool
    persisted: Optional[bool] = None

    @classmethod
    def from_feature(
        cls,
        feature: Feature,
        build: BuildConfig,
        enabled: bool,
        persisted: Optional[bool] = None,
    ) -> "FeatureStateResponse":
        return cls(
            id=feature.id,
            name=feature.name,
            description=feature.description,
            category=feature.category,
            default_enabled=feature.default_enabled,
            compile_time_flag=feature.compile_time_flag,
            can_toggle_at_runtime=feature.can_toggle_at_runtime,
            can_toggle=can_toggle(feature, build),
            enabled=enabled,
            persisted=persisted,
        )


class CategoryGroupResponse(BaseModel):
    """Features of one category, in registry order."""
    category: ProjectCategory
    display_name: str
    emoji: str
    features: List[FeatureStateResponse]


class FeatureListResponse(BaseModel):
    """All features grouped by category, plus build mode information."""
    build: BuildInfo
    categories: List[CategoryGroupResponse]

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "build": {
                        "mode": "debug",
                        "display_name": "Debug",
                        "restricted": False,
                        "force_disable_all_experimental": False,
                        "message": "You can toggle experimental features at runtime in Debug mode.",
                    },
                    "categories": [
                        {
                            "category": "beta",
                            "display_name": "Beta",
                            "emoji": "🔵",
                            "features": [
                                {
                                    "id": "enhanced_search",
                                    "name": "Enhanced Search",
                                    "description": "Fuzzy search with advanced filtering",
                                    "category": "beta",
                                    "default_enabled": True,
                                    "compile_time_flag": None,
                                    "can_toggle_at_runtime": True,
                                    "can_toggle": True,
                                    "enabled": True,
                                    "persisted": None,
                                }
                            ],
                        }
                    ],
                }
            ]
        }
    }


class SetFeatureRequest(BaseModel):
    """Request body for explicitly setting a feature's runtime state."""
    enabled: bool


class ResetResponse(BaseModel):
    """Result of resetting all runtime toggles."""
    removed: int


class ExportFlagsResponse(BaseModel):
    """Persisted runtime toggles only, without defaults or compile-time defines."""
    flags: Dict[str, bool]
