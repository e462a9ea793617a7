"""
Feature definitions and the feature registry.

This module defines every known feature together with its category, default
state and build-time gating. The registry is an immutable, ordered table built
once at import time.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Dict, Iterable, Iterator, List, Optional, Tuple

from flagpilot.errors import UnknownFeatureError
from flagpilot.features.build import BuildConfig
from flagpilot.features.resolution import is_feature_enabled

if TYPE_CHECKING:
    from flagpilot.features.service import FeatureFlagService


class ProjectCategory(str, Enum):
    """
    Categories used to group features for display.

    Declaration order is display order.
    """

    STABLE = "stable"
    ADVANCED_TECHNOLOGY = "advanced_technology"
    EXPERIMENTAL = "experimental"
    BETA = "beta"

    @property
    def display_name(self) -> str:
        return CATEGORY_DISPLAY[self][0]

    @property
    def emoji(self) -> str:
        return CATEGORY_DISPLAY[self][1]


# Display metadata for every category: (display name, emoji)
CATEGORY_DISPLAY: Dict[ProjectCategory, Tuple[str, str]] = {
    ProjectCategory.STABLE: ("Stable", "✅"),
    ProjectCategory.ADVANCED_TECHNOLOGY: ("Advanced Technology", "🚀"),
    ProjectCategory.EXPERIMENTAL: ("Experimental", "🧪"),
    ProjectCategory.BETA: ("Beta", "🔵"),
}


@dataclass(frozen=True)
class Feature:
    """
    A single toggleable feature.

    Attributes:
        id: Unique identifier, also the suffix of the persisted key
        name: Human-readable name
        description: One-line description
        category: Display category
        default_enabled: State used when nothing else decides
        compile_time_flag: Name of the build-time define gating this feature
            in release builds. None means build-time defines are ignored.
        can_toggle_at_runtime: Whether persisted toggles are honoured
    """

    id: str
    name: str
    description: str
    category: ProjectCategory
    default_enabled: bool = False
    compile_time_flag: Optional[str] = None
    can_toggle_at_runtime: bool = True

    def __post_init__(self):
        if not self.id or not self.id.strip():
            raise ValueError("Feature id must not be empty")

    async def is_enabled(self, service: "FeatureFlagService", build: BuildConfig) -> bool:
        """
        Check if this feature is enabled.

        Considers both compile-time defines and runtime toggles; see
        flagpilot.features.resolution.resolve for the exact order.
        """
        return await is_feature_enabled(self, service, build)


class FeatureRegistry:
    """
    Ordered, immutable collection of features with unique ids.

    Raises:
        ValueError: On construction, if two features share an id
    """

    def __init__(self, features: Iterable[Feature]):
        features = tuple(features)
        by_id: Dict[str, Feature] = {}
        for feature in features:
            if feature.id in by_id:
                raise ValueError(f"Duplicate feature id '{feature.id}' in registry")
            by_id[feature.id] = feature

        self._features = features
        self._by_id = by_id

    @property
    def all_features(self) -> Tuple[Feature, ...]:
        return self._features

    def __iter__(self) -> Iterator[Feature]:
        return iter(self._features)

    def __len__(self) -> int:
        return len(self._features)

    def __contains__(self, feature_id: object) -> bool:
        return feature_id in self._by_id

    def get(self, feature_id: str) -> Optional[Feature]:
        return self._by_id.get(feature_id)

    def require(self, feature_id: str) -> Feature:
        """
        Look up a feature by id.

        Raises:
            UnknownFeatureError: If no feature has this id
        """
        feature = self._by_id.get(feature_id)
        if feature is None:
            raise UnknownFeatureError(feature_id)
        return feature

    def get_features_by_category(self, category: ProjectCategory) -> List[Feature]:
        return [f for f in self._features if f.category == category]

    def compile_time_flag_names(self) -> List[str]:
        """Names of every compile-time flag declared in the registry, in order."""
        return [f.compile_time_flag for f in self._features if f.compile_time_flag]

    async def resolve_all(
        self, service: "FeatureFlagService", build: BuildConfig
    ) -> Dict[str, bool]:
        """Resolve every feature, keyed by id in registry order."""
        return {f.id: await f.is_enabled(service, build) for f in self._features}

    async def has_category_enabled(
        self,
        category: ProjectCategory,
        service: "FeatureFlagService",
        build: BuildConfig,
    ) -> bool:
        for feature in self.get_features_by_category(category):
            if await feature.is_enabled(service, build):
                return True
        return False

    async def has_advanced_tech_enabled(
        self, service: "FeatureFlagService", build: BuildConfig
    ) -> bool:
        return await self.has_category_enabled(
            ProjectCategory.ADVANCED_TECHNOLOGY, service, build
        )

    async def has_experimental_enabled(
        self, service: "FeatureFlagService", build: BuildConfig
    ) -> bool:
        return await self.has_category_enabled(ProjectCategory.EXPERIMENTAL, service, build)


# ============================================================================
# Advanced technology projects
# ============================================================================

DOCTOR_AI_AVATAR = Feature(
    id="doctor_ai_avatar",
    name="Doctor AI Avatar",
    description="AI-powered doctor avatar with voice interaction and real-time responses",
    category=ProjectCategory.ADVANCED_TECHNOLOGY,
    compile_time_flag="ENABLE_DOCTOR_AI_AVATAR",
)

VOICE_TO_TEXT = Feature(
    id="voice_to_text",
    name="Voice to Text",
    description="Real-time voice transcription using Whisper.cpp",
    category=ProjectCategory.ADVANCED_TECHNOLOGY,
    compile_time_flag="ENABLE_VOICE_TO_TEXT",
)

# ============================================================================
# Experimental features
# ============================================================================

VOICE_ASSISTANT = Feature(
    id="voice_assistant",
    name="Voice Assistant",
    description="AI-powered voice assistant for hands-free interaction",
    category=ProjectCategory.EXPERIMENTAL,
    compile_time_flag="ENABLE_VOICE_ASSISTANT",
)

DARK_MODE = Feature(
    id="dark_mode",
    name="Dark Mode",
    description="System-wide dark theme support",
    category=ProjectCategory.EXPERIMENTAL,
    compile_time_flag="ENABLE_DARK_MODE",
)

OFFLINE_MODE = Feature(
    id="offline_mode",
    name="Offline Mode",
    description="Full offline support with local data sync",
    category=ProjectCategory.EXPERIMENTAL,
)

# ============================================================================
# Beta features
# ============================================================================

ENHANCED_SEARCH = Feature(
    id="enhanced_search",
    name="Enhanced Search",
    description="Fuzzy search with advanced filtering",
    category=ProjectCategory.BETA,
    default_enabled=True,  # Safe to enable by default
)


# All registered features
DEFAULT_REGISTRY = FeatureRegistry(
    [
        # Advanced technology
        DOCTOR_AI_AVATAR,
        VOICE_TO_TEXT,
        # Experimental
        VOICE_ASSISTANT,
        DARK_MODE,
        OFFLINE_MODE,
        # Beta
        ENHANCED_SEARCH,
    ]
)
