"""
Build-time configuration for feature resolution.

Build mode, compile-time defines and the global kill switch are resolved once
at startup into an immutable BuildConfig and passed to the resolution functions.
"""
import logging
import os
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# flagpilot/ package directory, shared .env with flagpilot.config
_PACKAGE_DIR = Path(__file__).parent.parent.resolve()

# Validator for define values whose names are only known from the registry
_DEFINE_VALUE = TypeAdapter(bool)


class BuildMode(str, Enum):
    """Build configurations, from least to most restricted."""
    DEBUG = "debug"
    PROFILE = "profile"
    RELEASE = "release"

    @property
    def is_restricted(self) -> bool:
        return self is BuildMode.RELEASE

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


class BuildSettings(BaseSettings):
    """
    Build-level settings loaded from environment variables.

    Example:
        FLAGPILOT_BUILD_MODE=release
        FORCE_DISABLE_ALL_EXPERIMENTAL=true
    """

    flagpilot_build_mode: BuildMode = BuildMode.DEBUG
    force_disable_all_experimental: bool = False

    model_config = SettingsConfigDict(
        env_file=_PACKAGE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("flagpilot_build_mode", mode="before")
    @classmethod
    def normalize_build_mode(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value


class BuildConfig(BaseModel):
    """
    Immutable snapshot of build-time inputs.

    Attributes:
        mode: Current build mode; only RELEASE is restricted
        defines: Supplied compile-time flags; a name missing here was not supplied
        force_disable_all_experimental: Kill switch for compile-time gated features
    """

    mode: BuildMode = BuildMode.DEBUG
    defines: Dict[str, bool] = Field(default_factory=dict)
    force_disable_all_experimental: bool = False

    model_config = ConfigDict(frozen=True)

    @property
    def is_restricted(self) -> bool:
        return self.mode.is_restricted

    def define(self, name: str) -> Optional[bool]:
        """Return the supplied value of a compile-time flag, or None if it was not supplied."""
        return self.defines.get(name)

    @classmethod
    def from_environ(
        cls,
        flag_names: Iterable[str],
        build_settings: Optional[BuildSettings] = None,
    ) -> "BuildConfig":
        """
        Resolve the build configuration from environment variables.

        Build mode and kill switch come from BuildSettings. Each compile-time
        flag is read from the environment variable of the same name; values
        pydantic does not accept as booleans are logged and treated as not
        supplied.

        Args:
            flag_names: Compile-time flag names to look up (one env var each)
            build_settings: Pre-loaded build settings. Loaded from the
                environment if not provided.

        Returns:
            BuildConfig with every recognised define filled in

        Raises:
            ValidationError: If FLAGPILOT_BUILD_MODE or FORCE_DISABLE_ALL_EXPERIMENTAL
                holds an invalid value
        """
        build_settings = build_settings or BuildSettings()

        defines: Dict[str, bool] = {}
        for name in flag_names:
            raw = os.environ.get(name)
            if raw is None:
                continue
            try:
                defines[name] = _DEFINE_VALUE.validate_python(raw)
            except ValidationError:
                logger.warning(f"Ignoring compile-time flag {name}: '{raw}' is not a boolean")

        return cls(
            mode=build_settings.flagpilot_build_mode,
            defines=defines,
            force_disable_all_experimental=build_settings.force_disable_all_experimental,
        )
