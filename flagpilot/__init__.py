"""FlagPilot: feature flags with build-time and runtime toggles."""

__version__ = "0.1.0"
